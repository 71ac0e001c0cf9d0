"""
Role dashboards.

The admin view summarises today's load, the doctor view lists today's
schedule with the slots still free, and the patient view lists what is
coming up next.
"""
from __future__ import annotations

from django.db.models import Count
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, AppointmentStatus, Doctor, Patient
from ..permissions import IsAdminRole, IsDoctorRole, IsPatientRole
from ..services.appointments import day_bounds, doctor_day_appointments, patient_appointments
from ..services.availability import resolve_availability
from ..services.doctors import doctor_for_user
from ..services.patients import patient_for_user


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_dashboard(request):
    """Counts of doctors and patients and today's appointments per status."""
    today = timezone.localdate()
    start, end = day_bounds(today)
    rows = (
        Appointment.objects
        .filter(appointment_time__gte=start, appointment_time__lt=end)
        .values('status')
        .annotate(n=Count('id'))
    )
    per_status = {s.label.lower(): 0 for s in AppointmentStatus}
    for row in rows:
        per_status[AppointmentStatus(row['status']).label.lower()] = row['n']
    return Response({
        'ok': True,
        'date': today.isoformat(),
        'doctors': Doctor.objects.count(),
        'patients': Patient.objects.count(),
        'appointmentsToday': sum(per_status.values()),
        'appointmentsByStatus': per_status,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def doctor_dashboard(request):
    doctor = doctor_for_user(request.user)
    today = timezone.localdate()
    return Response({
        'ok': True,
        'date': today.isoformat(),
        'doctor': {'id': doctor.id, 'name': doctor.name, 'specialty': doctor.specialty},
        'appointments': doctor_day_appointments(doctor.id, today),
        'freeSlots': [str(s) for s in resolve_availability(doctor.id, today)],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def patient_dashboard(request):
    patient = patient_for_user(request.user)
    upcoming = patient_appointments(patient.id, condition='future')
    return Response({
        'ok': True,
        'patient': {'id': patient.id, 'name': patient.name},
        'upcoming': upcoming,
        'next': upcoming[0] if upcoming else None,
    })
