from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from core.models import User
from core.permissions import IsAdminOrPatient, IsPatientRole
from core.serializers.patient import PatientAppointmentsQuerySerializer, PatientRegisterSerializer
from core.services.appointments import patient_appointments
from core.services.patients import get_patient, patient_for_user, patient_view, register_patient


@api_view(['POST'])
@permission_classes([AllowAny])
def patient_register(request):
    """Self-registration.  The generated password is only returned when none was supplied."""
    s = PatientRegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    supplied = vd.get('password') or None
    patient, password = register_patient(
        name=vd['name'], email=vd['email'], phone=vd['phone'],
        address=vd.get('address', ''), password=supplied,
    )
    payload = {'ok': True, 'data': patient_view(patient)}
    if not supplied:
        payload['initialPassword'] = password
    return Response(payload, status=status.HTTP_201_CREATED)

patient_register.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def patient_me(request):
    return Response({'ok': True, 'data': patient_view(patient_for_user(request.user))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminOrPatient])
def patient_appointment_list(request, patient_id: int):
    """A patient's appointments, ``?condition=past|future`` and ``doctorName``."""
    patient = get_patient(patient_id)
    if request.user.role == User.ROLE_PATIENT and patient.user_id != request.user.id:
        raise PermissionDenied('patients may only view their own appointments')
    q = PatientAppointmentsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = patient_appointments(
        patient.id,
        condition=q.validated_data.get('condition'),
        doctor_name=q.validated_data.get('doctorName'),
    )
    return Response({'ok': True, 'data': data, 'total': len(data)})
