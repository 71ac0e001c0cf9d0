from __future__ import annotations

import logging
import secrets
from typing import Optional

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Q

from core.exceptions import NotFound, ValidationError
from core.models import Doctor, User
from core.scheduling import normalize_slot
from core.services.appointments import delete_doctor_appointments
from core.services.audit import log_action
from core.services.availability import get_doctor
from core.services.directory import directory_version, invalidate_directory

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('name', 'email', 'phone', 'specialty', 'bio')


def doctor_view(doctor: Doctor) -> dict:
    return {
        'id': doctor.id,
        'name': doctor.name,
        'email': doctor.email,
        'phone': doctor.phone,
        'specialty': doctor.specialty,
        'bio': doctor.bio,
        'availableTimes': sorted(t.time_slot for t in doctor.available_times.all()),
    }


def _ensure_unique(email: Optional[str], phone: Optional[str], *, exclude_id=None) -> None:
    clash = Q()
    if email:
        clash |= Q(email__iexact=email)
    if phone:
        clash |= Q(phone=phone)
    if not clash:
        return
    qs = Doctor.objects.filter(clash)
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    if qs.exists():
        raise ValidationError('a doctor with this email or phone already exists')


def create_doctor(*, name: str, email: str, phone: str, specialty: str, bio: str='',
                  password: Optional[str]=None, available_times: Optional[list[str]]=None,
                  user: Optional[User]=None) -> Doctor:
    """Create a doctor with a login account (username = email)."""
    _ensure_unique(email, phone)
    slots = sorted({normalize_slot(s) for s in (available_times or [])})
    if User.objects.filter(username__iexact=email).exists():
        raise ValidationError('an account with this email already exists')
    try:
        with transaction.atomic():
            account = User.objects.create_user(
                username=email, email=email, password=password or secrets.token_urlsafe(12),
                first_name=name, role=User.ROLE_DOCTOR,
            )
            doctor = Doctor.objects.create(
                user=account, name=name, email=email, phone=phone, specialty=specialty, bio=bio or ''
            )
            for slot in slots:
                doctor.available_times.create(time_slot=slot)
    except IntegrityError:
        raise ValidationError('a doctor with this email or phone already exists')
    log_action(user=user, action='doctor_create', object_type='doctor', object_id=doctor.id)
    invalidate_directory()
    logger.info("created doctor %s (%s)", doctor.id, doctor.email)
    return doctor


def update_doctor(doctor_id, *, user: Optional[User]=None, **fields) -> Doctor:
    doctor = get_doctor(doctor_id)
    changes = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS and v is not None}
    _ensure_unique(changes.get('email'), changes.get('phone'), exclude_id=doctor.id)
    for key, value in changes.items():
        setattr(doctor, key, value)
    try:
        with transaction.atomic():
            doctor.save()
            if doctor.user_id and 'email' in changes:
                User.objects.filter(id=doctor.user_id).update(username=doctor.email, email=doctor.email)
    except IntegrityError:
        raise ValidationError('a doctor with this email or phone already exists')
    log_action(user=user, action='doctor_update', object_type='doctor', object_id=doctor.id,
               detail={'fields': sorted(changes)})
    invalidate_directory()
    return doctor


def delete_doctor(doctor_id, *, user: Optional[User]=None) -> int:
    """Remove a doctor, their slots, appointments and login; return appointments removed."""
    with transaction.atomic():
        doctor = Doctor.objects.select_for_update().filter(id=doctor_id).first()
        if doctor is None:
            raise NotFound(f'doctor {doctor_id} not found')
        removed = delete_doctor_appointments(doctor.id, user=user)
        account_id = doctor.user_id
        doctor.delete()
        if account_id:
            User.objects.filter(id=account_id, role=User.ROLE_DOCTOR).delete()
        log_action(user=user, action='doctor_delete', object_type='doctor', object_id=doctor_id,
                   detail={'appointmentsRemoved': removed})
    invalidate_directory()
    logger.info("deleted doctor %s with %s appointments", doctor_id, removed)
    return removed


def filter_doctors(*, name: Optional[str]=None, specialty: Optional[str]=None,
                   time: Optional[str]=None) -> list[dict]:
    """Doctor directory filtered by name/specialty substring and an exact slot."""
    name = (name or '').strip() or None
    specialty = (specialty or '').strip() or None
    slot = normalize_slot(time) if (time or '').strip() else None

    cache_key = f"doctors:v={directory_version()}:n={name or ''}:s={specialty or ''}:t={slot or ''}"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    qs = Doctor.objects.prefetch_related('available_times')
    if name:
        qs = qs.filter(name__icontains=name)
    if specialty:
        qs = qs.filter(specialty__icontains=specialty)
    if slot:
        qs = qs.filter(available_times__time_slot=slot).distinct()
    data = [doctor_view(d) for d in qs.order_by('name', 'id')]
    cache.set(cache_key, data, settings.DOCTOR_DIRECTORY_CACHE_SECONDS)
    return data


def doctor_for_user(user) -> Doctor:
    doctor = Doctor.objects.filter(user_id=getattr(user, 'id', None)).first()
    if not doctor:
        raise NotFound('no doctor profile linked to this account')
    return doctor
