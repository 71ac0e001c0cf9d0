# core/management/commands/seed_clinic.py
from django.core.management.base import BaseCommand
from django.db import transaction

from core.models import Doctor, DoctorAvailableTime, Patient, User
from core.scheduling import normalize_slot
from core.services.directory import invalidate_directory

DEMO_PASSWORD = "clinic123"

DOCTORS = [
    ("Dr. Alice Morgan", "alice.morgan@clinic.test", "5550000001", "Cardiology",
     ["09:00-10:00", "10:00-11:00", "14:00-15:00"]),
    ("Dr. Brian Chen", "brian.chen@clinic.test", "5550000002", "Dermatology",
     ["08:00-09:00", "11:00-12:00"]),
    ("Dr. Carla Diaz", "carla.diaz@clinic.test", "5550000003", "Pediatrics",
     ["13:00-14:00", "15:00-16:00", "16:00-17:00"]),
]

PATIENTS = [
    ("Paul Patient", "paul@clinic.test", "5551000001", "1 Main Street"),
    ("Petra Jones", "petra@clinic.test", "5551000002", "22 Oak Avenue"),
    ("Peter Smith", "peter@clinic.test", "5551000003", ""),
]


class Command(BaseCommand):
    help = "Create demo admin, doctors with slots and patients (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default=DEMO_PASSWORD, help="password for every demo account")

    def _account(self, username, role, name, password):
        u, created = User.objects.get_or_create(
            username=username,
            defaults={"role": role, "email": username, "first_name": name, "is_active": True},
        )
        if not created and u.role != role:
            u.role = role
            u.save(update_fields=["role"])
        u.set_password(password)
        u.save(update_fields=["password"])
        return u

    @transaction.atomic
    def handle(self, *args, **opts):
        password = opts["password"]
        admin = self._account("admin", User.ROLE_ADMIN, "Administrator", password)
        admin.is_staff = True
        admin.save(update_fields=["is_staff"])
        self.stdout.write(self.style.SUCCESS("ok: admin (admin)"))

        for name, email, phone, specialty, slots in DOCTORS:
            account = self._account(email, User.ROLE_DOCTOR, name, password)
            doctor, _ = Doctor.objects.update_or_create(
                email=email,
                defaults={"name": name, "phone": phone, "specialty": specialty, "user": account},
            )
            for raw in slots:
                DoctorAvailableTime.objects.get_or_create(doctor=doctor, time_slot=normalize_slot(raw))
            self.stdout.write(self.style.SUCCESS(f"ok: {email} (doctor #{doctor.id}, {len(slots)} slots)"))

        for name, email, phone, address in PATIENTS:
            account = self._account(email, User.ROLE_PATIENT, name, password)
            patient, _ = Patient.objects.update_or_create(
                email=email,
                defaults={"name": name, "phone": phone, "address": address, "user": account},
            )
            self.stdout.write(self.style.SUCCESS(f"ok: {email} (patient #{patient.id})"))

        invalidate_directory()
        self.stdout.write(self.style.SUCCESS("Demo clinic data ensured."))
