"""
Doctor availability: recurring slot management and the free-slot view.
"""
from __future__ import annotations

import logging
from datetime import date, time, timedelta

from django.db import IntegrityError, transaction

from core.exceptions import NotFound, ValidationError
from core.models import Appointment, AppointmentStatus, Doctor, DoctorAvailableTime
from core.scheduling import BOOKING_DURATION, Slot, at, free_slots, normalize_slot, parse_slots
from core.services.directory import invalidate_directory

logger = logging.getLogger(__name__)


def get_doctor(doctor_id) -> Doctor:
    doctor = Doctor.objects.filter(id=doctor_id).first()
    if not doctor:
        raise NotFound(f'doctor {doctor_id} not found')
    return doctor


def declared_slots(doctor: Doctor) -> list[Slot]:
    raws = doctor.available_times.values_list('time_slot', flat=True)
    return parse_slots(raws, doctor_id=doctor.id)


def list_available_times(doctor_id) -> list[dict]:
    doctor = get_doctor(doctor_id)
    return [
        {'id': row.id, 'doctorId': doctor.id, 'timeSlot': row.time_slot}
        for row in doctor.available_times.order_by('time_slot', 'id')
    ]


def add_available_time(doctor_id, time_slot: str) -> DoctorAvailableTime:
    doctor = get_doctor(doctor_id)
    canonical = normalize_slot(time_slot)
    if DoctorAvailableTime.objects.filter(doctor=doctor, time_slot=canonical).exists():
        raise ValidationError(f'time slot {canonical} already declared for this doctor')
    try:
        with transaction.atomic():
            row = DoctorAvailableTime.objects.create(doctor=doctor, time_slot=canonical)
    except IntegrityError:
        raise ValidationError(f'time slot {canonical} already declared for this doctor')
    invalidate_directory()
    logger.info("doctor %s declared slot %s", doctor.id, canonical)
    return row


def remove_available_time(doctor_id, slot_id) -> None:
    deleted, _ = DoctorAvailableTime.objects.filter(id=slot_id, doctor_id=doctor_id).delete()
    if not deleted:
        raise NotFound(f'time slot {slot_id} not found for doctor {doctor_id}')
    invalidate_directory()
    logger.info("doctor %s removed slot #%s", doctor_id, slot_id)


def booked_starts(doctor_id, start, end, *, exclude_id=None) -> list:
    """Start times of non-cancelled appointments whose window touches [start, end)."""
    qs = (
        Appointment.objects
        .filter(doctor_id=doctor_id, appointment_time__gt=start - BOOKING_DURATION, appointment_time__lt=end)
        .exclude(status=AppointmentStatus.CANCELLED)
    )
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    return list(qs.values_list('appointment_time', flat=True))


def resolve_availability(doctor_id, day: date) -> list[Slot]:
    """Free slots of a doctor on ``day``, ordered by start time."""
    doctor = get_doctor(doctor_id)
    slots = declared_slots(doctor)
    if not slots:
        return []
    day_start = at(day, time.min)
    taken = booked_starts(doctor.id, day_start, day_start + timedelta(days=1))
    return free_slots(slots, day, taken)
