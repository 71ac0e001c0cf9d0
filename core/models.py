"""
Database models for the clinic backend.

Doctors and patients are the root records; each may optionally be bound
to a login :class:`User`.  Doctors declare recurring availability as
``"HH:MM-HH:MM"`` strings and appointments reference one doctor and one
patient.  Prescriptions are not modelled here: they live in the document
store (see :mod:`core.services.prescriptions`).
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q
from django.utils import timezone

from core.scheduling import BOOKING_DURATION


class User(AbstractUser):
    """Login account with a role.

    Admins are plain accounts with role ``admin``.  Doctor and patient
    accounts are linked to their :class:`Doctor` / :class:`Patient`
    record through the ``doctor_profile`` / ``patient_profile`` reverse
    relations.
    """
    ROLE_ADMIN = 'admin'
    ROLE_DOCTOR = 'doctor'
    ROLE_PATIENT = 'patient'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_PATIENT, 'Patient'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Doctor(models.Model):
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctor_profile'
    )
    name = models.CharField(max_length=100)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=10, unique=True)
    specialty = models.CharField(max_length=50, db_index=True)
    bio = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.specialty})"


class Patient(models.Model):
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='patient_profile'
    )
    name = models.CharField(max_length=100)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=10, unique=True)
    address = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class DoctorAvailableTime(models.Model):
    """A recurring daily slot, e.g. ``"09:00-10:00"``.

    The slot string is stored verbatim; parsing happens in
    :mod:`core.scheduling` so that a malformed legacy row only affects
    the slot it belongs to.
    """
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='available_times')
    time_slot = models.CharField(max_length=11)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['doctor', 'time_slot'], name='uniq_doctor_time_slot'),
        ]

    def __str__(self) -> str:
        return f"{self.doctor_id}: {self.time_slot}"


class AppointmentStatus(models.IntegerChoices):
    SCHEDULED = 0, 'Scheduled'
    CONFIRMED = 1, 'Confirmed'
    CANCELLED = 2, 'Cancelled'
    COMPLETED = 3, 'Completed'


class Appointment(models.Model):
    """A booked one-hour visit.

    Only ``appointment_time`` is stored; the date, time-of-day and end
    time are derived.  At most one non-cancelled appointment may start
    at a given instant for a doctor; the general no-overlap rule is
    enforced by :func:`core.services.appointments.book_appointment`.
    """
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='appointments')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    appointment_time = models.DateTimeField()
    status = models.PositiveSmallIntegerField(
        choices=AppointmentStatus.choices, default=AppointmentStatus.SCHEDULED, db_index=True
    )
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['doctor', 'appointment_time'], name='core_appoin_doctor__4b1c2e_idx'),
            models.Index(fields=['patient', 'status', 'appointment_time'], name='core_appoin_patient_9d2f7a_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['doctor', 'appointment_time'],
                condition=~Q(status=AppointmentStatus.CANCELLED),
                name='uniq_active_doctor_appointment_time',
            ),
        ]

    def __str__(self) -> str:
        return f"appt {self.id} d={self.doctor_id} p={self.patient_id} @ {self.appointment_time:%F %H:%M}"

    @property
    def end_time(self):
        return self.appointment_time + BOOKING_DURATION

    @property
    def local_time(self):
        if timezone.is_aware(self.appointment_time):
            return timezone.localtime(self.appointment_time)
        return self.appointment_time

    @property
    def appointment_date(self):
        return self.local_time.date()

    @property
    def appointment_time_only(self):
        return self.local_time.time()


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='core_audite_action_1e6b0c_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='core_audite_object__5a8d3f_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.object_type}#{self.object_id}"
