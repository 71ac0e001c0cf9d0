"""
Booking, search, doctor day/upcoming views, update and cancel.

Times are ISO-8601; naive values are read in the clinic time zone.
"""
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import ValidationError
from core.models import User
from core.permissions import IsAdminOrDoctor, IsDoctorRole
from core.serializers.appointment import (
    AppointmentSearchQuerySerializer,
    BookAppointmentSerializer,
    DoctorDayQuerySerializer,
    DoctorUpcomingQuerySerializer,
    UpdateAppointmentSerializer,
)
from core.services.appointments import (
    AppointmentFilter,
    book_appointment,
    cancel_appointment,
    doctor_day_appointments,
    doctor_upcoming_appointments,
    get_appointment,
    search_appointments,
    update_appointment,
)
from core.services.doctors import doctor_for_user
from core.services.patients import patient_for_user


def _book(request):
    s = BookAppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    role = request.user.role
    if role == User.ROLE_PATIENT:
        patient_id = patient_for_user(request.user).id
        if vd.get('patientId') not in (None, patient_id):
            raise PermissionDenied('patients may only book for themselves')
    elif role == User.ROLE_ADMIN:
        patient_id = vd.get('patientId')
        if patient_id is None:
            raise ValidationError('patientId is required')
    else:
        raise PermissionDenied('only patients and admins may book appointments')
    data = book_appointment(vd['doctorId'], patient_id, vd['appointmentTime'],
                            notes=vd.get('notes'), user=request.user)
    return Response({'ok': True, 'data': data}, status=status.HTTP_201_CREATED)


def _search(request):
    q = AppointmentSearchQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    doctor_id, patient_id = vd.get('doctorId'), vd.get('patientId')
    role = request.user.role
    # scope to the caller's own records
    if role == User.ROLE_PATIENT:
        patient_id = patient_for_user(request.user).id
    elif role == User.ROLE_DOCTOR:
        doctor_id = doctor_for_user(request.user).id
    flt = AppointmentFilter(
        doctor_id=doctor_id,
        patient_id=patient_id,
        patient_name=vd.get('patientName'),
        doctor_name=vd.get('doctorName'),
        start=vd.get('start'),
        end=vd.get('end'),
        status=vd.get('status'),
        upcoming=vd.get('upcoming', False),
        now=timezone.now(),
    )
    data = search_appointments(flt)
    return Response({'ok': True, 'data': data, 'total': len(data)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments(request):
    """GET: search appointments visible to the caller.  POST: book one."""
    if request.method == 'POST':
        return _book(request)
    return _search(request)

appointments.cls.throttle_scope = 'booking'


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def doctor_day(request):
    """The calling doctor's appointments on ``?date=``, optionally filtered by ``patientName``."""
    q = DoctorDayQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    doctor = doctor_for_user(request.user)
    data = doctor_day_appointments(doctor.id, q.validated_data['date'],
                                   patient_name=q.validated_data.get('patientName'))
    return Response({'ok': True, 'data': data, 'total': len(data)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def doctor_upcoming(request):
    q = DoctorUpcomingQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    doctor = doctor_for_user(request.user)
    data = doctor_upcoming_appointments(doctor.id, patient_name=q.validated_data.get('patientName'))
    return Response({'ok': True, 'data': data, 'total': len(data)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminOrDoctor])
def appointment_detail(request, appointment_id: int):
    appt = get_appointment(appointment_id)
    if request.user.role == User.ROLE_DOCTOR and appt.doctor.user_id != request.user.id:
        raise PermissionDenied('doctors may only change their own appointments')
    s = UpdateAppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    data = update_appointment(
        appt.id,
        appointment_time=vd.get('appointmentTime'),
        status=vd.get('status'),
        notes=vd.get('notes'),
        user=request.user,
    )
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def appointment_cancel(request, appointment_id: int):
    return Response({'ok': True, 'data': cancel_appointment(appointment_id, user=request.user)})
