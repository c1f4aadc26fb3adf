"""
Integration tests for staff authentication and patient management.

They exercise login, clinic scoping, patient CRUD, phone search and the
refund on patient deletion through DRF's APIClient.
"""
from datetime import timedelta

from django.core.cache import cache
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from clinic.models import AppInstallation, AuditEvent, Clinic, Notification, Patient, User
from clinic.services.notifications import create_notification


class ClinicAPITests(APITestCase):
    def setUp(self) -> None:
        cache.clear()
        self.clinic = Clinic.objects.create(
            name='Sharma Homeopathy Clinic', doctor_name='Dr. Rajesh Sharma', phone='9876543210',
            city='Delhi', push_notification_balance=5,
        )
        self.other_clinic = Clinic.objects.create(name='Other Clinic', doctor_name='Dr. Other', phone='9123456780')
        self.doctor = User.objects.create_user(
            username='doc', password='P@ssw0rd1', role='doctor', clinic=self.clinic, first_name='Rajesh',
        )
        self.patient = Patient.objects.create(clinic=self.clinic, name='Rajesh Kumar', mobile='9876543211', age=34)
        self.other_patient = Patient.objects.create(clinic=self.other_clinic, name='Sunita Rao', mobile='9876543299')

    def authenticate(self, user: User) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    # -- auth ---------------------------------------------------------------

    def test_login_returns_legacy_token_and_jwt_pair(self):
        r = self.client.post(reverse('login_view'), {'username': 'doc', 'password': 'P@ssw0rd1'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertTrue(r.data['ok'])
        self.assertTrue(r.data['token'])
        self.assertTrue(r.data['jwt_access'])
        self.assertTrue(r.data['jwt_refresh'])
        self.assertEqual(r.data['role'], 'doctor')
        self.assertEqual(r.data['user']['clinicId'], self.clinic.id)
        self.assertTrue(AuditEvent.objects.filter(action='login', user=self.doctor).exists())

    def test_login_with_bad_password_is_rejected(self):
        r = self.client.post(reverse('login_view'), {'username': 'doc', 'password': 'nope'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(r.data['ok'])
        self.assertNotIn('token', r.data)

    def test_token_from_login_authenticates_requests(self):
        r = self.client.post(reverse('login_view'), {'username': 'doc', 'password': 'P@ssw0rd1'}, format='json')
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Token {r.data['token']}")
        resp = client.get('/api/patients')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

    def test_refresh_returns_new_access_token(self):
        r = self.client.post(reverse('login_view'), {'username': 'doc', 'password': 'P@ssw0rd1'}, format='json')
        resp = self.client.post('/api/auth/refresh', {'refresh': r.data['jwt_refresh']}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data['jwt_access'])

    def test_unauthenticated_request_is_401(self):
        r = APIClient().get('/api/patients')
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(r.data['error']['code'], 'not_authenticated')

    def test_user_without_clinic_is_forbidden(self):
        loose = User.objects.create_user(username='loose', password='P@ssw0rd1')
        r = self.authenticate(loose).get('/api/patients')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

    # -- patients -----------------------------------------------------------

    def test_list_is_scoped_to_clinic(self):
        r = self.authenticate(self.doctor).get('/api/patients')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        ids = [p['id'] for p in r.data['patients']]
        self.assertEqual(ids, [self.patient.id])
        self.assertEqual(r.data['total'], 1)
        row = r.data['patients'][0]
        self.assertFalse(row['hasAppInstalled'])
        self.assertEqual(row['prescriptionCount'], 0)

    def test_list_filter_with_app(self):
        with_app = Patient.objects.create(clinic=self.clinic, name='Priya Sharma', mobile='9876543212')
        AppInstallation.objects.create(patient=with_app, device_type='ios')
        r = self.authenticate(self.doctor).get('/api/patients', {'filter': 'with_app'})
        self.assertEqual([p['id'] for p in r.data['patients']], [with_app.id])
        self.assertTrue(r.data['patients'][0]['hasAppInstalled'])
        self.assertEqual(r.data['patients'][0]['deviceType'], 'ios')

    def test_list_search_by_name(self):
        Patient.objects.create(clinic=self.clinic, name='Amit Patel', mobile='9876543213')
        r = self.authenticate(self.doctor).get('/api/patients', {'search': 'amit'})
        self.assertEqual([p['name'] for p in r.data['patients']], ['Amit Patel'])

    def test_create_patient_normalizes_mobile(self):
        r = self.authenticate(self.doctor).post(
            '/api/patients', {'name': 'Priya <b>Sharma</b>', 'mobile': '+91 98765-43212', 'age': 28}, format='json'
        )
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r.data['patient']['mobile'], '9876543212')
        self.assertEqual(r.data['patient']['name'], 'Priya Sharma')
        self.assertEqual(r.data['patient']['initials'], 'PS')

    def test_create_patient_rejects_invalid_mobile(self):
        r = self.authenticate(self.doctor).post('/api/patients', {'name': 'X', 'mobile': '12345'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('mobile', r.data['error']['message'])

    def test_create_duplicate_patient_returns_existing(self):
        r = self.authenticate(self.doctor).post(
            '/api/patients', {'name': 'Someone', 'mobile': '9876543211'}, format='json'
        )
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['error']['code'], 'duplicate_patient')
        self.assertEqual(r.data['error']['existingPatient']['id'], self.patient.id)

    def test_same_mobile_allowed_in_another_clinic(self):
        r = self.authenticate(self.doctor).post(
            '/api/patients', {'name': 'Sunita Rao', 'mobile': '9876543299'}, format='json'
        )
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)

    def test_search_matches_last_ten_digits(self):
        r = self.authenticate(self.doctor).get('/api/patients/search', {'phone': '+91-98765 43211'})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['patient']['id'], self.patient.id)
        self.assertEqual(r.data['patient']['clinic']['name'], 'Sharma Homeopathy Clinic')
        self.assertEqual(r.data['patient']['lastDoctor'], 'Dr. Rajesh Sharma')

    def test_search_does_not_cross_clinics(self):
        r = self.authenticate(self.doctor).get('/api/patients/search', {'phone': '9876543299'})
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_search_requires_phone_and_auth(self):
        self.assertEqual(self.authenticate(self.doctor).get('/api/patients/search').status_code, 400)
        r = APIClient().get('/api/patients/search', {'phone': '9876543211'})
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_detail_of_other_clinic_patient_is_404(self):
        r = self.authenticate(self.doctor).get(f'/api/patients/{self.other_patient.id}')
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(r.data['error']['code'], 'not_found')

    def test_update_patient(self):
        r = self.authenticate(self.doctor).put(
            f'/api/patients/{self.patient.id}', {'name': 'Rajesh K Verma', 'optOut': True, 'age': 35}, format='json'
        )
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.patient.refresh_from_db()
        self.assertEqual(self.patient.name, 'Rajesh K Verma')
        self.assertTrue(self.patient.opt_out)
        self.assertEqual(r.data['patient']['initials'], 'RK')

    def test_update_patient_rejects_taken_mobile(self):
        Patient.objects.create(clinic=self.clinic, name='Priya Sharma', mobile='9876543212')
        r = self.authenticate(self.doctor).put(
            f'/api/patients/{self.patient.id}', {'mobile': '9876543212'}, format='json'
        )
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['error']['code'], 'duplicate_patient')

    def test_update_patient_rejects_age_out_of_range(self):
        r = self.authenticate(self.doctor).put(f'/api/patients/{self.patient.id}', {'age': 130}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_patient_refunds_scheduled_notifications(self):
        AppInstallation.objects.create(patient=self.patient, device_type='android')
        later = timezone.now() + timedelta(days=1)
        create_notification(clinic=self.clinic, patient=self.patient, message='a', scheduled_date=later)
        create_notification(clinic=self.clinic, patient=self.patient, message='b', scheduled_date=later)
        create_notification(clinic=self.clinic, patient=self.patient, message='now')
        self.clinic.refresh_from_db()
        self.assertEqual(self.clinic.push_notification_balance, 2)

        r = self.authenticate(self.doctor).delete(f'/api/patients/{self.patient.id}')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['refunded'], 2)
        self.clinic.refresh_from_db()
        self.assertEqual(self.clinic.push_notification_balance, 4)
        self.assertFalse(Patient.objects.filter(pk=self.patient.pk).exists())
        self.assertFalse(Notification.objects.filter(patient_id=self.patient.pk).exists())

    def test_patient_detail_includes_recent_prescriptions(self):
        client = self.authenticate(self.doctor)
        client.post(f'/api/patients/{self.patient.id}/prescriptions', {
            'diagnosis': 'Viral Fever',
            'medicines': [{'name': 'Paracetamol', 'dosage': '1-0-1', 'duration': '3 days'}],
        }, format='json')
        r = client.get(f'/api/patients/{self.patient.id}')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['patient']['prescriptionCount'], 1)
        self.assertEqual(r.data['patient']['recentPrescriptions'][0]['diagnosis'], 'Viral Fever')

    def test_logout_blacklists_refresh_token(self):
        r = self.client.post(reverse('login_view'), {'username': 'doc', 'password': 'P@ssw0rd1'}, format='json')
        client = self.authenticate(self.doctor)
        resp = client.post('/api/auth/logout', {'refresh': r.data['jwt_refresh']}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['blacklisted'], 1)
        again = self.client.post('/api/auth/refresh', {'refresh': r.data['jwt_refresh']}, format='json')
        self.assertEqual(again.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(again.data['ok'])

    # -- prescriptions ------------------------------------------------------

    def test_prescription_list_and_print_view(self):
        client = self.authenticate(self.doctor)
        created = client.post(f'/api/patients/{self.patient.id}/prescriptions', {
            'diagnosis': 'Viral Fever',
            'medicines': [
                {'name': 'Paracetamol', 'dosage': '1-0-1', 'duration': '3 days'},
                {'medicineName': 'Vitamin C', 'dosage': '0-0-1'},
            ],
            'advice': 'Rest and fluids',
        }, format='json')
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        rx_id = created.data['prescription']['id']

        listing = client.get('/api/prescriptions')
        self.assertEqual(listing.data['total'], 1)
        row = listing.data['prescriptions'][0]
        self.assertEqual(row['patientName'], 'Rajesh Kumar')
        self.assertEqual(row['medicinesCount'], 2)

        detail = client.get(f'/api/prescriptions/{rx_id}')
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        rx = detail.data['prescription']
        self.assertEqual([m['name'] for m in rx['medicines']], ['Paracetamol', 'Vitamin C'])
        self.assertEqual(rx['clinic']['doctorName'], 'Dr. Rajesh Sharma')
        self.assertEqual(rx['clinicBranding']['name'], 'Sharma Homeopathy Clinic')

    def test_prescription_of_other_clinic_is_404(self):
        client = self.authenticate(self.doctor)
        other_doc = User.objects.create_user(username='other', password='P@ssw0rd1', role='doctor',
                                             clinic=self.other_clinic)
        created = self.authenticate(other_doc).post(f'/api/patients/{self.other_patient.id}/prescriptions', {
            'diagnosis': 'Cold', 'medicines': [{'name': 'Cetirizine'}],
        }, format='json')
        r = client.get(f"/api/prescriptions/{created.data['prescription']['id']}")
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(client.get('/api/prescriptions').data['total'], 0)
