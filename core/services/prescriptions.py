"""
Prescriptions are documents in MongoDB keyed by a bare appointment id.

The link to the relational ``Appointment`` is only checked when a
prescription is written; deleting the appointment later leaves the
document in place.
"""
import logging
from functools import lru_cache
from typing import Optional

import bleach
from django.conf import settings
from django.utils import timezone
from pymongo import ASCENDING, MongoClient
from pymongo.errors import DuplicateKeyError
from rest_framework.exceptions import PermissionDenied

from core.exceptions import NotFound, ValidationError
from core.models import Appointment, User
from core.services.audit import log_action

logger = logging.getLogger(__name__)


def clean_text(value: Optional[str]) -> str:
    return bleach.clean(value or '', tags=[], strip=True).strip()


class PrescriptionStore:
    """Thin wrapper over the prescriptions collection."""

    def __init__(self, collection):
        self.collection = collection

    @classmethod
    def from_settings(cls) -> 'PrescriptionStore':
        client = MongoClient(settings.MONGO_URI, serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS)
        collection = client[settings.MONGO_DB_NAME][settings.MONGO_PRESCRIPTION_COLLECTION]
        collection.create_index('appointment_id', unique=True)
        return cls(collection)

    def insert(self, document: dict) -> dict:
        self.collection.insert_one(document)
        return document

    def find_by_appointment(self, appointment_id: int) -> list[dict]:
        cursor = self.collection.find({'appointment_id': appointment_id}, {'_id': False})
        return list(cursor.sort('created_at', ASCENDING))

    def exists_for_appointment(self, appointment_id: int) -> bool:
        return self.collection.find_one({'appointment_id': appointment_id}) is not None


@lru_cache(maxsize=1)
def get_store() -> PrescriptionStore:
    return PrescriptionStore.from_settings()


def prescription_view(doc: dict) -> dict:
    created = doc.get('created_at')
    return {
        'appointmentId': doc['appointment_id'],
        'patientName': doc.get('patient_name', ''),
        'medication': doc.get('medication', ''),
        'dosage': doc.get('dosage', ''),
        'doctorNotes': doc.get('doctor_notes', ''),
        'createdAt': created.isoformat() if created else None,
    }


def save_prescription(*, appointment_id: int, medication: str, dosage: str,
                      doctor_notes: str = '', user: Optional[User] = None,
                      store: Optional[PrescriptionStore] = None) -> dict:
    store = store or get_store()
    appt = Appointment.objects.select_related('doctor', 'patient').filter(id=appointment_id).first()
    if not appt:
        raise NotFound(f'appointment {appointment_id} not found')
    if getattr(user, 'role', None) == User.ROLE_DOCTOR and appt.doctor.user_id != user.id:
        raise PermissionDenied('only the treating doctor may prescribe for this appointment')

    medication = clean_text(medication)
    dosage = clean_text(dosage)
    if not medication or not dosage:
        raise ValidationError('medication and dosage are required')
    if store.exists_for_appointment(appt.id):
        raise ValidationError(f'appointment {appt.id} already has a prescription')

    try:
        doc = store.insert({
            'appointment_id': appt.id,
            'patient_name': appt.patient.name,
            'medication': medication,
            'dosage': dosage,
            'doctor_notes': clean_text(doctor_notes),
            'created_at': timezone.now(),
        })
    except DuplicateKeyError:
        raise ValidationError(f'appointment {appt.id} already has a prescription')
    log_action(user=user, action='prescription_save', object_type='appointment', object_id=appt.id)
    logger.info("saved prescription for appointment %s", appt.id)
    return prescription_view(doc)


def list_prescriptions(appointment_id: int, *, user: Optional[User] = None,
                       store: Optional[PrescriptionStore] = None) -> list[dict]:
    """Prescriptions of an appointment; doctors only see those of their own patients."""
    store = store or get_store()
    if getattr(user, 'role', None) == User.ROLE_DOCTOR:
        treating = Appointment.objects.filter(id=appointment_id).values_list('doctor__user_id', flat=True).first()
        if treating != user.id:
            raise PermissionDenied('only the treating doctor may read prescriptions for this appointment')
    return [prescription_view(d) for d in store.find_by_appointment(appointment_id)]
