"""
Appointment booking, search and cascade delete.

Booking runs "read existing appointments -> validate -> insert" inside a
single transaction that holds a row lock on the doctor, so two requests
for the same doctor are serialized.  The partial unique constraint on
``(doctor, appointment_time)`` catches identical start times even on
backends where ``select_for_update`` is a no-op.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from core.exceptions import ClinicError, NotFound, OutsideAvailability, SlotConflict, ValidationError
from core.models import Appointment, AppointmentStatus, Doctor, Patient, User
from core.realtime.consumers import broadcast_schedule_change
from core.scheduling import at, booking_window, conflicts, slot_for_start, to_local
from core.services.audit import log_action
from core.services.availability import booked_starts, declared_slots, get_doctor

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)


def appointment_view(appt: Appointment) -> dict:
    """Flatten an appointment with its doctor and patient for transport."""
    local = to_local(appt.appointment_time)
    return {
        'id': appt.id,
        'doctorId': appt.doctor_id,
        'doctorName': appt.doctor.name,
        'patientId': appt.patient_id,
        'patientName': appt.patient.name,
        'patientEmail': appt.patient.email,
        'patientPhone': appt.patient.phone,
        'patientAddress': appt.patient.address,
        'appointmentTime': local.isoformat(),
        'appointmentDate': local.date().isoformat(),
        'appointmentTimeOnly': local.strftime('%H:%M'),
        'endTime': to_local(appt.end_time).isoformat(),
        'status': appt.status,
        'statusLabel': AppointmentStatus(appt.status).label,
        'notes': appt.notes,
    }


def _aware(value: datetime) -> datetime:
    if timezone.is_naive(value):
        return timezone.make_aware(value)
    return value


def _check_bookable(doctor: Doctor, start: datetime, *, exclude_id=None) -> None:
    if slot_for_start(declared_slots(doctor), start) is None:
        raise OutsideAvailability(
            f'{to_local(start):%Y-%m-%d %H:%M} is outside the available slots of doctor {doctor.id}'
        )
    req_start, req_end = booking_window(start)
    clashing = conflicts(start, booked_starts(doctor.id, req_start, req_end, exclude_id=exclude_id))
    if clashing:
        raise SlotConflict(
            f'doctor {doctor.id} is already booked at {to_local(clashing[0]):%Y-%m-%d %H:%M}'
        )


def book_appointment(doctor_id, patient_id, start: datetime, *, notes: Optional[str]=None,
                     user: Optional[User]=None) -> dict:
    start = _aware(start)
    patient = Patient.objects.filter(id=patient_id).first()
    if not patient:
        raise NotFound(f'patient {patient_id} not found')
    try:
        with transaction.atomic():
            doctor = Doctor.objects.select_for_update().filter(id=doctor_id).first()
            if not doctor:
                raise NotFound(f'doctor {doctor_id} not found')
            _check_bookable(doctor, start)
            appt = Appointment.objects.create(
                doctor=doctor,
                patient=patient,
                appointment_time=start,
                status=AppointmentStatus.SCHEDULED,
                notes=notes or None,
            )
            log_action(user=user, action='appointment_book', object_type='appointment', object_id=appt.id,
                       detail={'doctorId': doctor.id, 'patientId': patient.id, 'start': start.isoformat()})
            broadcast_schedule_change(doctor.id, 'booked', appt.id)
    except IntegrityError:
        logger.info("booking rejected by store constraint: doctor=%s start=%s", doctor_id, start)
        raise SlotConflict(f'doctor {doctor_id} is already booked at {to_local(start):%Y-%m-%d %H:%M}')
    except ClinicError as exc:
        logger.info("booking rejected (%s): doctor=%s patient=%s start=%s", exc.default_code, doctor_id, patient_id, start)
        raise
    logger.info("booked appointment %s: doctor=%s patient=%s start=%s", appt.id, doctor.id, patient.id, start)
    return appointment_view(appt)


def get_appointment(appointment_id) -> Appointment:
    appt = Appointment.objects.select_related('doctor', 'patient').filter(id=appointment_id).first()
    if not appt:
        raise NotFound(f'appointment {appointment_id} not found')
    return appt


def update_appointment(appointment_id, *, appointment_time: Optional[datetime]=None,
                       status: Optional[int]=None, notes: Optional[str]=None,
                       user: Optional[User]=None) -> dict:
    """Change time, status or notes.  A new time or a reactivation is re-validated."""
    if status is not None and status not in AppointmentStatus.values:
        raise ValidationError(f'unknown status {status}')
    with transaction.atomic():
        appt = get_appointment(appointment_id)
        doctor = Doctor.objects.select_for_update().get(id=appt.doctor_id)
        new_time = _aware(appointment_time) if appointment_time is not None else appt.appointment_time
        new_status = status if status is not None else appt.status
        moved = new_time != appt.appointment_time
        reactivated = appt.status == AppointmentStatus.CANCELLED and new_status != AppointmentStatus.CANCELLED
        if new_status != AppointmentStatus.CANCELLED and (moved or reactivated):
            _check_bookable(doctor, new_time, exclude_id=appt.id)
        appt.appointment_time = new_time
        appt.status = new_status
        if notes is not None:
            appt.notes = notes
        try:
            with transaction.atomic():
                appt.save()
        except IntegrityError:
            raise SlotConflict(f'doctor {doctor.id} is already booked at {to_local(new_time):%Y-%m-%d %H:%M}')
        log_action(user=user, action='appointment_update', object_type='appointment', object_id=appt.id,
                   detail={'status': new_status, 'start': new_time.isoformat()})
        broadcast_schedule_change(doctor.id, 'updated', appt.id)
    return appointment_view(appt)


def _can_cancel(user: Optional[User], appt: Appointment) -> bool:
    role = getattr(user, 'role', None)
    if role == User.ROLE_ADMIN:
        return True
    if role == User.ROLE_DOCTOR:
        return appt.doctor.user_id == user.id
    if role == User.ROLE_PATIENT:
        return appt.patient.user_id == user.id
    return False


def cancel_appointment(appointment_id, *, user: Optional[User]) -> dict:
    with transaction.atomic():
        appt = get_appointment(appointment_id)
        if not _can_cancel(user, appt):
            raise PermissionDenied('only the booking patient, the doctor or an admin may cancel')
        if appt.status == AppointmentStatus.CANCELLED:
            return appointment_view(appt)
        appt.status = AppointmentStatus.CANCELLED
        appt.save(update_fields=['status', 'updated_at'])
        log_action(user=user, action='appointment_cancel', object_type='appointment', object_id=appt.id)
        broadcast_schedule_change(appt.doctor_id, 'cancelled', appt.id)
    logger.info("appointment %s cancelled by %s", appt.id, getattr(user, 'username', None))
    return appointment_view(appt)


@dataclass(frozen=True)
class AppointmentFilter:
    """Read-side filter; every field is optional and ``None`` means "no constraint".

    ``start``/``end`` bound ``appointment_time`` as ``[start, end)``.
    ``upcoming`` restricts to confirmed appointments at or after ``now``.
    """
    doctor_id: Optional[int] = None
    patient_id: Optional[int] = None
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    status: Optional[int] = None
    upcoming: bool = False
    now: Optional[datetime] = None


def _clean(name: Optional[str]) -> Optional[str]:
    name = (name or '').strip()
    return name or None


def search_appointments(flt: AppointmentFilter) -> list[dict]:
    qs = Appointment.objects.select_related('doctor', 'patient')
    if flt.doctor_id is not None:
        qs = qs.filter(doctor_id=flt.doctor_id)
    if flt.patient_id is not None:
        qs = qs.filter(patient_id=flt.patient_id)
    patient_name = _clean(flt.patient_name)
    if patient_name:
        qs = qs.filter(patient__name__icontains=patient_name)
    doctor_name = _clean(flt.doctor_name)
    if doctor_name:
        qs = qs.filter(doctor__name__icontains=doctor_name)
    if flt.start is not None:
        qs = qs.filter(appointment_time__gte=_aware(flt.start))
    if flt.end is not None:
        qs = qs.filter(appointment_time__lt=_aware(flt.end))
    if flt.status is not None:
        qs = qs.filter(status=flt.status)
    if flt.upcoming:
        qs = qs.filter(status=AppointmentStatus.CONFIRMED, appointment_time__gte=flt.now or timezone.now())
    return [appointment_view(a) for a in qs.order_by('appointment_time', 'id')]


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = at(day, time.min)
    return start, start + timedelta(days=1)


def doctor_day_appointments(doctor_id, day: date, *, patient_name: Optional[str]=None) -> list[dict]:
    start, end = day_bounds(day)
    return search_appointments(AppointmentFilter(doctor_id=doctor_id, patient_name=patient_name, start=start, end=end))


def doctor_upcoming_appointments(doctor_id, *, patient_name: Optional[str]=None, now=None) -> list[dict]:
    return search_appointments(AppointmentFilter(doctor_id=doctor_id, patient_name=patient_name, upcoming=True, now=now))


def patient_appointments(patient_id, *, condition: Optional[str]=None, doctor_name: Optional[str]=None,
                         now=None) -> list[dict]:
    """A patient's appointments, optionally only ``past`` or ``future`` ones.

    past: completed, or scheduled/confirmed and already started.
    future: scheduled/confirmed and not yet started.
    """
    now = now or timezone.now()
    qs = Appointment.objects.select_related('doctor', 'patient').filter(patient_id=patient_id)
    condition = (condition or '').strip().lower() or None
    if condition == 'past':
        qs = qs.filter(Q(status=AppointmentStatus.COMPLETED)
                       | Q(status__in=ACTIVE_STATUSES, appointment_time__lt=now))
    elif condition == 'future':
        qs = qs.filter(status__in=ACTIVE_STATUSES, appointment_time__gte=now)
    elif condition is not None:
        raise ValidationError("condition must be 'past' or 'future'")
    doctor_name = _clean(doctor_name)
    if doctor_name:
        qs = qs.filter(doctor__name__icontains=doctor_name)
    return [appointment_view(a) for a in qs.order_by('appointment_time', 'id')]


def delete_doctor_appointments(doctor_id, *, user: Optional[User]=None) -> int:
    """Delete every appointment of a doctor in one statement; return the count."""
    get_doctor(doctor_id)
    with transaction.atomic():
        _, per_model = Appointment.objects.filter(doctor_id=doctor_id).delete()
        count = per_model.get(Appointment._meta.label, 0)
        log_action(user=user, action='doctor_appointments_delete', object_type='doctor', object_id=doctor_id,
                   detail={'count': count})
        broadcast_schedule_change(doctor_id, 'cleared')
    logger.info("deleted %s appointments of doctor %s", count, doctor_id)
    return count
