from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsAdminOrDoctor, IsDoctorRole
from core.serializers.prescription import PrescriptionSerializer
from core.services.prescriptions import list_prescriptions, save_prescription


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def prescription_create(request):
    s = PrescriptionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    data = save_prescription(
        appointment_id=vd['appointmentId'],
        medication=vd['medication'],
        dosage=vd['dosage'],
        doctor_notes=vd.get('doctorNotes', ''),
        user=request.user,
    )
    return Response({'ok': True, 'data': data}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminOrDoctor])
def prescription_list(request, appointment_id: int):
    data = list_prescriptions(appointment_id, user=request.user)
    return Response({'ok': True, 'data': data, 'total': len(data)})
