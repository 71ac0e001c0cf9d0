"""
Integration tests for the clinic API.

These exercise the HTTP surface end to end: role checks, the error
envelope, booking through the API and the scoped appointment search.
"""

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from ..models import Appointment, AppointmentStatus, Doctor, DoctorAvailableTime, Patient, User


class ClinicAPITests(APITestCase):
    def setUp(self) -> None:
        self.admin = User.objects.create_user(username='admin', password='P@ssw0rd1', role=User.ROLE_ADMIN)

        self.doctor_user = User.objects.create_user(username='d1@clinic.test', password='P@ssw0rd1',
                                                    role=User.ROLE_DOCTOR)
        self.doctor = Doctor.objects.create(user=self.doctor_user, name='Dr. One', email='d1@clinic.test',
                                            phone='5550000001', specialty='Cardiology')
        for s in ('09:00-10:00', '10:00-11:00'):
            DoctorAvailableTime.objects.create(doctor=self.doctor, time_slot=s)

        self.other_doctor = Doctor.objects.create(name='Dr. Two', email='d2@clinic.test',
                                                  phone='5550000002', specialty='Dermatology')
        DoctorAvailableTime.objects.create(doctor=self.other_doctor, time_slot='09:00-10:00')

        self.patient_user = User.objects.create_user(username='p1@clinic.test', password='P@ssw0rd1',
                                                     role=User.ROLE_PATIENT)
        self.patient = Patient.objects.create(user=self.patient_user, name='Pat One', email='p1@clinic.test',
                                              phone='5551000001')
        self.other_patient_user = User.objects.create_user(username='p2@clinic.test', password='P@ssw0rd1',
                                                           role=User.ROLE_PATIENT)
        self.other_patient = Patient.objects.create(user=self.other_patient_user, name='Pam Two',
                                                    email='p2@clinic.test', phone='5551000002')

    def book(self, user, doctor_id, when, **extra):
        self.client.force_authenticate(user=user)
        return self.client.post(reverse('appointments'),
                                {'doctorId': doctor_id, 'appointmentTime': when, **extra}, format='json')

    def test_patient_books_and_conflicts_get_distinct_codes(self):
        resp = self.book(self.patient_user, self.doctor.id, '2024-06-01T09:00:00')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['data']['patientId'], self.patient.id)
        self.assertEqual(resp.data['data']['statusLabel'], 'Scheduled')

        resp = self.book(self.other_patient_user, self.doctor.id, '2024-06-01T09:30:00')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data, {'ok': False, 'error': {'code': 'slot_conflict', 'message': resp.data['error']['message']}})

        resp = self.book(self.other_patient_user, self.doctor.id, '2024-06-01T08:00:00')
        self.assertEqual(resp.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(resp.data['error']['code'], 'outside_availability')

        resp = self.book(self.other_patient_user, 9999, '2024-06-01T10:00:00')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data['error']['code'], 'not_found')

    def test_patient_cannot_book_for_someone_else(self):
        resp = self.book(self.patient_user, self.doctor.id, '2024-06-01T09:00:00', patientId=self.other_patient.id)
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_books_for_patient_and_must_name_one(self):
        resp = self.book(self.admin, self.doctor.id, '2024-06-01T09:00:00')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['error']['code'], 'validation_error')
        resp = self.book(self.admin, self.doctor.id, '2024-06-01T09:00:00', patientId=self.other_patient.id)
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)

    def test_doctor_cannot_book(self):
        resp = self.book(self.doctor_user, self.doctor.id, '2024-06-01T09:00:00', patientId=self.patient.id)
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_invalid_payload_uses_error_envelope(self):
        resp = self.book(self.patient_user, self.doctor.id, 'not-a-date')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(resp.data['ok'])
        self.assertEqual(resp.data['error']['code'], 'validation_error')

    def test_unauthenticated_booking_is_rejected(self):
        resp = self.client.post(reverse('appointments'), {}, format='json')
        self.assertIn(resp.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))
        self.assertFalse(resp.data['ok'])

    def test_search_is_scoped_to_caller(self):
        self.book(self.patient_user, self.doctor.id, '2024-06-01T09:00:00')
        self.book(self.other_patient_user, self.other_doctor.id, '2024-06-01T09:00:00')

        self.client.force_authenticate(user=self.patient_user)
        resp = self.client.get(reverse('appointments'))
        self.assertEqual([r['patientId'] for r in resp.data['data']], [self.patient.id])

        self.client.force_authenticate(user=self.doctor_user)
        resp = self.client.get(reverse('appointments'), {'doctorId': self.other_doctor.id})
        self.assertEqual([r['doctorId'] for r in resp.data['data']], [self.doctor.id])

        self.client.force_authenticate(user=self.admin)
        resp = self.client.get(reverse('appointments'), {'doctorName': 'two'})
        self.assertEqual(resp.data['total'], 1)
        resp = self.client.get(reverse('appointments'),
                               {'start': '2024-06-01T00:00:00', 'end': '2024-06-02T00:00:00'})
        self.assertEqual(resp.data['total'], 2)

    def test_search_rejects_inverted_range(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.get(reverse('appointments'), {'start': '2024-06-02T00:00:00', 'end': '2024-06-01T00:00:00'})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_availability_endpoint(self):
        self.book(self.patient_user, self.doctor.id, '2024-06-01T10:00:00')
        resp = self.client.get(reverse('doctor_availability', args=[self.doctor.id]), {'date': '2024-06-01'})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([s['timeSlot'] for s in resp.data['data']], ['09:00-10:00'])
        resp = self.client.get(reverse('doctor_availability', args=[self.doctor.id]))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_doctor_directory_is_public(self):
        resp = self.client.get(reverse('doctors'), {'specialty': 'derm'})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([d['name'] for d in resp.data['data']], ['Dr. Two'])
        resp = self.client.get(reverse('doctor_detail', args=[self.doctor.id]))
        self.assertEqual(resp.data['data']['availableTimes'], ['09:00-10:00', '10:00-11:00'])

    def test_only_admin_creates_and_deletes_doctors(self):
        payload = {'name': 'Dr. Three', 'email': 'd3@clinic.test', 'phone': '5550000003',
                   'specialty': 'Pediatrics', 'availableTimes': ['13:00-14:00']}
        self.client.force_authenticate(user=self.doctor_user)
        self.assertEqual(self.client.post(reverse('doctors'), payload, format='json').status_code,
                         status.HTTP_403_FORBIDDEN)
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(reverse('doctors'), payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        new_id = resp.data['data']['id']
        self.assertTrue(User.objects.filter(username='d3@clinic.test', role=User.ROLE_DOCTOR).exists())

        self.client.force_authenticate(user=self.doctor_user)
        self.assertEqual(self.client.delete(reverse('doctor_detail', args=[new_id])).status_code,
                         status.HTTP_403_FORBIDDEN)
        self.client.force_authenticate(user=self.admin)
        resp = self.client.delete(reverse('doctor_detail', args=[new_id]))
        self.assertEqual(resp.data, {'ok': True, 'appointmentsRemoved': 0})

    def test_delete_doctor_cascades_appointments(self):
        self.book(self.patient_user, self.doctor.id, '2024-06-01T09:00:00')
        self.book(self.other_patient_user, self.doctor.id, '2024-06-01T10:00:00')
        self.book(self.patient_user, self.other_doctor.id, '2024-06-01T09:00:00')
        self.client.force_authenticate(user=self.admin)
        resp = self.client.delete(reverse('doctor_detail', args=[self.doctor.id]))
        self.assertEqual(resp.data['appointmentsRemoved'], 2)
        self.assertEqual(Appointment.objects.count(), 1)

    def test_doctor_manages_only_own_slots(self):
        self.client.force_authenticate(user=self.doctor_user)
        resp = self.client.post(reverse('doctor_slots', args=[self.doctor.id]), {'timeSlot': '14:00-15:00'},
                                format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        resp = self.client.post(reverse('doctor_slots', args=[self.doctor.id]), {'timeSlot': '14:00-15:00'},
                                format='json')
        self.assertEqual(resp.data['error']['code'], 'validation_error')
        resp = self.client.post(reverse('doctor_slots', args=[self.other_doctor.id]), {'timeSlot': '14:00-15:00'},
                                format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        slot_id = DoctorAvailableTime.objects.get(doctor=self.doctor, time_slot='14:00-15:00').id
        resp = self.client.delete(reverse('doctor_slot_detail', args=[self.doctor.id, slot_id]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

    def test_doctor_day_and_update(self):
        resp = self.book(self.patient_user, self.doctor.id, '2024-06-01T09:00:00')
        appt_id = resp.data['data']['id']

        self.client.force_authenticate(user=self.doctor_user)
        resp = self.client.get(reverse('doctor_day'), {'date': '2024-06-01', 'patientName': 'pat'})
        self.assertEqual([r['id'] for r in resp.data['data']], [appt_id])

        resp = self.client.put(reverse('appointment_detail', args=[appt_id]),
                               {'status': AppointmentStatus.CONFIRMED}, format='json')
        self.assertEqual(resp.data['data']['statusLabel'], 'Confirmed')
        resp = self.client.put(reverse('appointment_detail', args=[appt_id]),
                               {'appointmentTime': '2024-06-01T07:00:00'}, format='json')
        self.assertEqual(resp.data['error']['code'], 'outside_availability')

        self.client.force_authenticate(user=User.objects.create_user(
            username='stranger', password='x', role=User.ROLE_DOCTOR))
        resp = self.client.put(reverse('appointment_detail', args=[appt_id]), {'notes': 'x'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_cancel_by_owner_only(self):
        resp = self.book(self.patient_user, self.doctor.id, '2024-06-01T09:00:00')
        appt_id = resp.data['data']['id']
        self.client.force_authenticate(user=self.other_patient_user)
        resp = self.client.post(reverse('appointment_cancel', args=[appt_id]))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.client.force_authenticate(user=self.patient_user)
        resp = self.client.post(reverse('appointment_cancel', args=[appt_id]))
        self.assertEqual(resp.data['data']['status'], AppointmentStatus.CANCELLED)

    def test_patient_appointments_condition(self):
        self.book(self.patient_user, self.doctor.id, '2024-06-01T09:00:00')
        self.client.force_authenticate(user=self.patient_user)
        url = reverse('patient_appointments', args=[self.patient.id])
        self.assertEqual(self.client.get(url, {'condition': 'past'}).data['total'], 1)
        self.assertEqual(self.client.get(url, {'condition': 'future'}).data['total'], 0)
        self.assertEqual(self.client.get(url, {'condition': 'later'}).status_code, status.HTTP_400_BAD_REQUEST)
        other = reverse('patient_appointments', args=[self.other_patient.id])
        self.assertEqual(self.client.get(other).status_code, status.HTTP_403_FORBIDDEN)

    def test_dashboards_by_role(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.get(reverse('admin_dashboard'))
        self.assertEqual(resp.data['doctors'], 2)
        self.assertEqual(resp.data['patients'], 2)
        self.assertIn('scheduled', resp.data['appointmentsByStatus'])

        self.client.force_authenticate(user=self.doctor_user)
        resp = self.client.get(reverse('doctor_dashboard'))
        self.assertEqual(resp.data['doctor']['id'], self.doctor.id)
        self.assertEqual(self.client.get(reverse('admin_dashboard')).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.patient_user)
        resp = self.client.get(reverse('patient_dashboard'))
        self.assertEqual(resp.data['patient']['id'], self.patient.id)
        self.assertEqual(resp.data['upcoming'], [])

    def test_healthz(self):
        resp = self.client.get(reverse('healthz'))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()['db'])
