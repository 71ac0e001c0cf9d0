"""
Doctor directory, doctor management and per-doctor slot endpoints.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from core.permissions import IsAdminOrDoctor, IsAdminRole, ReadOnly, is_admin_or_doctor_self
from core.serializers.doctor import (
    AvailabilityQuerySerializer,
    DoctorCreateSerializer,
    DoctorFilterQuerySerializer,
    DoctorUpdateSerializer,
    SlotSerializer,
)
from core.services.availability import (
    add_available_time,
    get_doctor,
    list_available_times,
    remove_available_time,
    resolve_availability,
)
from core.services.doctors import create_doctor, delete_doctor, doctor_view, filter_doctors, update_doctor


def _ensure_can_manage(request, doctor_id):
    if not is_admin_or_doctor_self(request.user, doctor_id):
        raise PermissionDenied('only an admin or the doctor themself may change this record')


@api_view(['GET', 'POST'])
@permission_classes([ReadOnly | IsAdminRole])
def doctors(request):
    """GET: directory filtered by ``name``, ``specialty`` and exact ``time`` slot.
    POST: create a doctor with an optional list of ``availableTimes`` (admin).
    """
    if request.method == 'GET':
        q = DoctorFilterQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        data = filter_doctors(**q.validated_data)
        return Response({'ok': True, 'data': data, 'total': len(data)})

    s = DoctorCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    doctor = create_doctor(
        name=vd['name'], email=vd['email'], phone=vd['phone'], specialty=vd['specialty'],
        bio=vd.get('bio', ''), password=vd.get('password') or None,
        available_times=vd.get('availableTimes'), user=request.user,
    )
    return Response({'ok': True, 'data': doctor_view(doctor)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([ReadOnly | IsAdminOrDoctor])
def doctor_detail(request, doctor_id: int):
    if request.method == 'GET':
        return Response({'ok': True, 'data': doctor_view(get_doctor(doctor_id))})

    if request.method == 'DELETE':
        if not IsAdminRole().has_permission(request, None):
            raise PermissionDenied('only an admin may delete doctors')
        removed = delete_doctor(doctor_id, user=request.user)
        return Response({'ok': True, 'appointmentsRemoved': removed})

    _ensure_can_manage(request, doctor_id)
    s = DoctorUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = update_doctor(doctor_id, user=request.user, **s.validated_data)
    return Response({'ok': True, 'data': doctor_view(doctor)})


@api_view(['GET', 'POST'])
@permission_classes([ReadOnly | IsAdminOrDoctor])
def doctor_slots(request, doctor_id: int):
    if request.method == 'GET':
        return Response({'ok': True, 'data': list_available_times(doctor_id)})

    _ensure_can_manage(request, doctor_id)
    s = SlotSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    row = add_available_time(doctor_id, s.validated_data['timeSlot'])
    return Response({'ok': True, 'data': {'id': row.id, 'doctorId': row.doctor_id, 'timeSlot': row.time_slot}},
                    status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAdminOrDoctor])
def doctor_slot_detail(request, doctor_id: int, slot_id: int):
    _ensure_can_manage(request, doctor_id)
    remove_available_time(doctor_id, slot_id)
    return Response({'ok': True})


@api_view(['GET'])
@permission_classes([ReadOnly])
def doctor_availability(request, doctor_id: int):
    """Free slots of a doctor on ``?date=YYYY-MM-DD``."""
    q = AvailabilityQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    day = q.validated_data['date']
    slots = resolve_availability(doctor_id, day)
    return Response({
        'ok': True,
        'doctorId': doctor_id,
        'date': day.isoformat(),
        'data': [{'timeSlot': str(s), 'start': f"{s.start:%H:%M}", 'end': f"{s.end:%H:%M}"} for s in slots],
    })
