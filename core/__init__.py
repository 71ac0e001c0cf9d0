"""Core application of the clinic backend.

Models, services, serializers, views and routes for doctors, patients,
appointment booking and prescriptions.
"""
