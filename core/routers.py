"""
URL mappings for the clinic API.

Trailing slashes are deliberately omitted; ``APPEND_SLASH`` is off.
"""
from django.urls import path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view
from .views import appointments, dashboard, doctors, health, patients, prescriptions

urlpatterns = [
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout'),
    # Doctors
    path('api/doctors', doctors.doctors, name='doctors'),
    path('api/doctors/<int:doctor_id>', doctors.doctor_detail, name='doctor_detail'),
    path('api/doctors/<int:doctor_id>/slots', doctors.doctor_slots, name='doctor_slots'),
    path('api/doctors/<int:doctor_id>/slots/<int:slot_id>', doctors.doctor_slot_detail, name='doctor_slot_detail'),
    path('api/doctors/<int:doctor_id>/availability', doctors.doctor_availability, name='doctor_availability'),
    # Patients
    path('api/patients/register', patients.patient_register, name='patient_register'),
    path('api/patients/me', patients.patient_me, name='patient_me'),
    path('api/patients/<int:patient_id>/appointments', patients.patient_appointment_list,
         name='patient_appointments'),
    # Appointments
    path('api/appointments', appointments.appointments, name='appointments'),
    path('api/appointments/doctor/day', appointments.doctor_day, name='doctor_day'),
    path('api/appointments/doctor/upcoming', appointments.doctor_upcoming, name='doctor_upcoming'),
    path('api/appointments/<int:appointment_id>', appointments.appointment_detail, name='appointment_detail'),
    path('api/appointments/<int:appointment_id>/cancel', appointments.appointment_cancel,
         name='appointment_cancel'),
    # Prescriptions
    path('api/prescriptions', prescriptions.prescription_create, name='prescription_create'),
    path('api/prescriptions/<int:appointment_id>', prescriptions.prescription_list, name='prescription_list'),
    # Dashboards
    path('api/dashboard/admin', dashboard.admin_dashboard, name='admin_dashboard'),
    path('api/dashboard/doctor', dashboard.doctor_dashboard, name='doctor_dashboard'),
    path('api/dashboard/patient', dashboard.patient_dashboard, name='patient_dashboard'),
]
