import pytest
from django.urls import reverse
from pymongo.errors import ServerSelectionTimeoutError
from rest_framework.exceptions import PermissionDenied

from core.exceptions import NotFound, ValidationError
from core.models import AuditEvent
from core.services import prescriptions
from core.services.appointments import book_appointment, delete_doctor_appointments
from core.services.prescriptions import list_prescriptions, save_prescription

from .conftest import FakeCollection, make_doctor, when

pytestmark = pytest.mark.django_db


@pytest.fixture
def appointment(d1, patients):
    return book_appointment(d1.id, patients[0].id, when(9))


def test_save_and_list(d1, appointment, prescription_store):
    view = save_prescription(appointment_id=appointment['id'], medication='Ibuprofen 200mg',
                             dosage='2x daily', doctor_notes='after meals', user=d1.user)
    assert view['patientName'] == 'Pat One'
    assert list_prescriptions(appointment['id']) == [view]
    assert AuditEvent.objects.filter(action='prescription_save').count() == 1


def test_unknown_appointment_is_rejected(d1, prescription_store):
    with pytest.raises(NotFound):
        save_prescription(appointment_id=999, medication='x', dosage='y', user=d1.user)
    assert prescription_store.collection.docs == []


def test_one_prescription_per_appointment(d1, appointment, prescription_store):
    save_prescription(appointment_id=appointment['id'], medication='A', dosage='1', user=d1.user)
    with pytest.raises(ValidationError):
        save_prescription(appointment_id=appointment['id'], medication='B', dosage='2', user=d1.user)


def test_duplicate_key_from_store_is_a_validation_error(d1, appointment, prescription_store, monkeypatch):
    # a concurrent save can pass the existence check before the first insert lands
    monkeypatch.setattr(prescription_store, 'exists_for_appointment', lambda appointment_id: False)
    save_prescription(appointment_id=appointment['id'], medication='A', dosage='1', user=d1.user)
    with pytest.raises(ValidationError):
        save_prescription(appointment_id=appointment['id'], medication='B', dosage='2', user=d1.user)
    assert len(prescription_store.collection.docs) == 1


def test_only_treating_doctor_reads(d1, appointment, prescription_store, admin_user):
    save_prescription(appointment_id=appointment['id'], medication='A', dosage='1', user=d1.user)
    stranger = make_doctor(name='Dr. Else', email='else@clinic.test', phone='5550000004')
    with pytest.raises(PermissionDenied):
        list_prescriptions(appointment['id'], user=stranger.user)
    with pytest.raises(PermissionDenied):
        list_prescriptions(999, user=d1.user)
    assert len(list_prescriptions(appointment['id'], user=d1.user)) == 1
    assert len(list_prescriptions(appointment['id'], user=admin_user)) == 1


def test_only_treating_doctor_prescribes(appointment, prescription_store):
    stranger = make_doctor(name='Dr. Else', email='else@clinic.test', phone='5550000004')
    with pytest.raises(PermissionDenied):
        save_prescription(appointment_id=appointment['id'], medication='A', dosage='1', user=stranger.user)


def test_text_is_sanitized(d1, appointment, prescription_store):
    view = save_prescription(appointment_id=appointment['id'], medication='<script>alert(1)</script>Aspirin',
                             dosage='<b>1</b> tablet', user=d1.user)
    assert '<' not in view['medication']
    assert view['dosage'] == '1 tablet'
    with pytest.raises(ValidationError):
        save_prescription(appointment_id=appointment['id'], medication='<i></i>', dosage='1', user=d1.user)


def test_prescription_survives_appointment_removal(d1, appointment, prescription_store):
    save_prescription(appointment_id=appointment['id'], medication='A', dosage='1', user=d1.user)
    delete_doctor_appointments(d1.id)
    assert len(list_prescriptions(appointment['id'])) == 1


def test_api_roles_and_store_outage(d1, patients, appointment, prescription_store, api, monkeypatch):
    api.force_authenticate(user=patients[0].user)
    payload = {'appointmentId': appointment['id'], 'medication': 'A', 'dosage': '1'}
    assert api.post(reverse('prescription_create'), payload, format='json').status_code == 403

    api.force_authenticate(user=d1.user)
    resp = api.post(reverse('prescription_create'), payload, format='json')
    assert resp.status_code == 201
    resp = api.get(reverse('prescription_list', args=[appointment['id']]))
    assert resp.data['total'] == 1

    other = make_doctor(name='Dr. Else', email='else@clinic.test', phone='5550000004')
    api.force_authenticate(user=other.user)
    assert api.get(reverse('prescription_list', args=[appointment['id']])).status_code == 403

    api.force_authenticate(user=d1.user)

    def down(*args, **kwargs):
        raise ServerSelectionTimeoutError('no servers')

    monkeypatch.setattr(prescription_store, 'find_by_appointment', down)
    resp = api.get(reverse('prescription_list', args=[appointment['id']]))
    assert resp.status_code == 503
    assert resp.data['error']['code'] == 'store_unavailable'


def test_store_is_built_from_settings(settings, monkeypatch):
    captured = {}
    collection = FakeCollection()

    class Client:
        def __init__(self, uri, **kwargs):
            captured.update(uri=uri, **kwargs)

        def __getitem__(self, name):
            captured['db'] = name
            return {settings.MONGO_PRESCRIPTION_COLLECTION: collection}

    settings.MONGO_URI = 'mongodb://mongo.test:27017'
    monkeypatch.setattr(prescriptions, 'MongoClient', Client)
    store = prescriptions.PrescriptionStore.from_settings()
    assert store.collection is collection
    assert collection.unique == {'appointment_id'}
    assert captured['uri'] == 'mongodb://mongo.test:27017'
    assert captured['serverSelectionTimeoutMS'] == settings.MONGO_TIMEOUT_MS
    assert captured['db'] == settings.MONGO_DB_NAME
