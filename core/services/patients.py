import logging
import secrets
from typing import Optional

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q

from core.exceptions import NotFound, ValidationError
from core.models import Patient
from core.services.audit import log_action

User = get_user_model()
logger = logging.getLogger(__name__)


def patient_view(patient: Patient) -> dict:
    return {
        'id': patient.id,
        'name': patient.name,
        'email': patient.email,
        'phone': patient.phone,
        'address': patient.address,
    }


def get_patient(patient_id) -> Patient:
    patient = Patient.objects.filter(id=patient_id).first()
    if not patient:
        raise NotFound(f'patient {patient_id} not found')
    return patient


def patient_for_user(user) -> Patient:
    patient = Patient.objects.filter(user_id=getattr(user, 'id', None)).first()
    if not patient:
        raise NotFound('no patient profile linked to this account')
    return patient


def register_patient(*, name, email, phone, address='', password=None):
    """Create a patient and its login account (username = email).

    Returns ``(patient, password)``; the password is generated when none is given
    so the caller can hand it over once.
    """
    if Patient.objects.filter(Q(email__iexact=email) | Q(phone=phone)).exists():
        raise ValidationError('a patient with this email or phone already exists')
    if User.objects.filter(username__iexact=email).exists():
        raise ValidationError('an account with this email already exists')

    if password:
        try:
            validate_password(password)
        except DjangoValidationError as e:
            raise ValidationError('; '.join(e.messages))
    else:
        password = secrets.token_urlsafe(12)

    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=email, email=email, password=password, first_name=name, role=User.ROLE_PATIENT
            )
            patient = Patient.objects.create(
                user=user, name=name, email=email, phone=phone, address=address or ''
            )
    except IntegrityError:
        raise ValidationError('a patient with this email or phone already exists')

    log_action(user=user, action='patient_register', object_type='patient', object_id=patient.id)
    logger.info("registered patient %s (%s)", patient.id, patient.email)
    return patient, password
