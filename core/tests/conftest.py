from datetime import date, time

import pytest
from django.core.cache import cache
from pymongo.errors import DuplicateKeyError
from rest_framework.test import APIClient

from core.models import Doctor, DoctorAvailableTime, Patient, User
from core.scheduling import at

DAY = date(2024, 6, 1)


def when(hour, minute=0, day=DAY):
    return at(day, time(hour, minute))


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters and the doctor directory live in the cache
    cache.clear()
    yield
    cache.clear()


def make_doctor(name='Dr. One', email='d1@clinic.test', phone='5550000001', specialty='Cardiology',
                slots=('09:00-10:00', '10:00-11:00'), with_user=True):
    user = None
    if with_user:
        user = User.objects.create_user(username=email, email=email, password='P@ssw0rd1', role=User.ROLE_DOCTOR)
    doctor = Doctor.objects.create(user=user, name=name, email=email, phone=phone, specialty=specialty)
    for s in slots:
        DoctorAvailableTime.objects.create(doctor=doctor, time_slot=s)
    return doctor


def make_patient(name='Pat One', email='p1@clinic.test', phone='5551000001', with_user=True):
    user = None
    if with_user:
        user = User.objects.create_user(username=email, email=email, password='P@ssw0rd1', role=User.ROLE_PATIENT)
    return Patient.objects.create(user=user, name=name, email=email, phone=phone)


@pytest.fixture
def d1(db):
    return make_doctor()


@pytest.fixture
def patients(db):
    return [
        make_patient('Pat One', 'p1@clinic.test', '5551000001'),
        make_patient('Pam Two', 'p2@clinic.test', '5551000002'),
        make_patient('Phil Three', 'p3@clinic.test', '5551000003'),
    ]


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin', password='P@ssw0rd1', role=User.ROLE_ADMIN)


@pytest.fixture
def api():
    return APIClient()


class FakeCursor(list):
    def sort(self, key, direction=1):
        return FakeCursor(sorted(self, key=lambda d: d[key], reverse=direction < 0))


class FakeCollection:
    """In-memory stand-in for the prescriptions collection."""

    def __init__(self):
        self.docs = []
        self.unique = set()

    def create_index(self, key, unique=False):
        if unique:
            self.unique.add(key)
        return f"{key}_1"

    def insert_one(self, doc):
        for key in self.unique:
            if self._match({key: doc.get(key)}):
                raise DuplicateKeyError(f"E11000 duplicate key error on {key}")
        self.docs.append(dict(doc))

    def _match(self, query):
        return [d for d in self.docs if all(d.get(k) == v for k, v in query.items())]

    def find_one(self, query):
        found = self._match(query)
        return found[0] if found else None

    def find(self, query, projection=None):
        return FakeCursor(dict(d) for d in self._match(query))


@pytest.fixture
def prescription_store(monkeypatch):
    from core.services import prescriptions

    collection = FakeCollection()
    collection.create_index("appointment_id", unique=True)
    store = prescriptions.PrescriptionStore(collection)
    monkeypatch.setattr(prescriptions, 'get_store', lambda: store)
    return store
