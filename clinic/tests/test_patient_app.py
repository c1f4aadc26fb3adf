from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from clinic.models import AppInstallation, Patient
from clinic.services.prescriptions import create_prescription

pytestmark = pytest.mark.django_db

REQUEST_OTP = '/api/patient/auth/request-otp'
VERIFY_OTP = '/api/patient/auth/verify-otp'


@pytest.fixture(autouse=True)
def otp_settings(settings):
    settings.OTP_DEV_MODE = False
    settings.OTP_FIXED_CODE = '123456'
    return settings


@pytest.fixture
def api():
    return APIClient()


def login(api, phone='9876543211', **extra):
    api.post(REQUEST_OTP, {'phoneNumber': phone}, format='json')
    r = api.post(VERIFY_OTP, {'phoneNumber': phone, 'otpCode': '123456', **extra}, format='json')
    assert r.status_code == 200, r.data
    return r.data['data']['token']


def bearer(token):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    return client


def test_request_otp_unknown_phone(api, clinic):
    r = api.post(REQUEST_OTP, {'phoneNumber': '9000000000'}, format='json')
    assert r.status_code == 404
    assert r.data['error']['message'] == 'Patient not found. Please visit the clinic to register.'


def test_request_otp_hides_code_outside_dev_mode(api, patient):
    r = api.post(REQUEST_OTP, {'phoneNumber': '+91 98765 43211'}, format='json')
    assert r.status_code == 200
    assert 'demoOTP' not in r.data['data']
    assert r.data['data']['otpExpiresIn'] == 300
    patient.refresh_from_db()
    assert patient.otp_code == '123456'
    assert patient.otp_expires_at > timezone.now()


def test_request_otp_dev_mode_returns_code(api, patient, otp_settings):
    otp_settings.OTP_DEV_MODE = True
    r = api.post(REQUEST_OTP, {'phoneNumber': '9876543211'}, format='json')
    assert r.data['data']['demoOTP'] == '123456'


def test_verify_marks_patient_and_registers_device(api, patient):
    token = login(api, deviceType='android', appVersion='1.2.0', fcmToken='fcm-abc')
    assert token
    patient.refresh_from_db()
    assert patient.is_verified
    assert patient.last_app_login is not None
    assert patient.otp_code == ''
    installation = AppInstallation.objects.get(patient=patient)
    assert installation.device_type == 'android'
    assert installation.fcm_token == 'fcm-abc'


def test_verify_updates_existing_installation(api, app_patient):
    login(api, deviceType='ios', fcmToken='new-token')
    assert AppInstallation.objects.filter(patient=app_patient).count() == 1
    assert AppInstallation.objects.get(patient=app_patient).device_type == 'ios'


def test_verify_wrong_code(api, patient):
    api.post(REQUEST_OTP, {'phoneNumber': '9876543211'}, format='json')
    r = api.post(VERIFY_OTP, {'phoneNumber': '9876543211', 'otpCode': '654321'}, format='json')
    assert r.status_code == 401
    assert r.data['error']['code'] == 'invalid_otp'


def test_verify_expired_code(api, patient):
    api.post(REQUEST_OTP, {'phoneNumber': '9876543211'}, format='json')
    Patient.objects.filter(pk=patient.pk).update(otp_expires_at=timezone.now() - timedelta(seconds=1))
    r = api.post(VERIFY_OTP, {'phoneNumber': '9876543211', 'otpCode': '123456'}, format='json')
    assert r.status_code == 401
    assert 'expired' in r.data['error']['message']


def test_code_is_single_use(api, patient):
    login(api)
    r = api.post(VERIFY_OTP, {'phoneNumber': '9876543211', 'otpCode': '123456'}, format='json')
    assert r.status_code == 401


def test_dev_mode_accepts_any_six_digits(api, patient, otp_settings):
    otp_settings.OTP_DEV_MODE = True
    r = api.post(VERIFY_OTP, {'phoneNumber': '9876543211', 'otpCode': '111111'}, format='json')
    assert r.status_code == 200
    r = api.post(VERIFY_OTP, {'phoneNumber': '9876543211', 'otpCode': '12ab'}, format='json')
    assert r.status_code == 401


def test_latest_visit_wins_across_clinics(api, patient, other_clinic):
    newer = Patient.objects.create(clinic=other_clinic, name='Rajesh Kumar', mobile='9876543211',
                                   visit_date=timezone.now() + timedelta(minutes=5))
    api.post(REQUEST_OTP, {'phoneNumber': '9876543211'}, format='json')
    r = api.post(VERIFY_OTP, {'phoneNumber': '9876543211', 'otpCode': '123456'}, format='json')
    assert r.data['data']['patient']['id'] == newer.id
    r = api.post(REQUEST_OTP, {'phoneNumber': '9876543211', 'clinicId': patient.clinic_id}, format='json')
    assert r.status_code == 200


def test_profile_with_token(api, patient):
    create_prescription(patient=patient, diagnosis='Viral Fever', enable_push_reminders=True,
                        medicines=[{'name': 'Paracetamol', 'dosage': '1-0-1', 'duration': '3 days'}])
    client = bearer(login(api))
    r = client.get('/api/patient/profile')
    assert r.status_code == 200
    data = r.data['data']
    assert data['patient']['id'] == patient.id
    assert data['clinic']['name'] == 'Sharma Homeopathy Clinic'
    assert data['stats']['totalPrescriptions'] == 1
    assert data['stats']['activeReminders'] == 1


def test_reminders_grouped_by_time(api, patient):
    create_prescription(patient=patient, diagnosis='Viral Fever', enable_push_reminders=True,
                        medicines=[{'name': 'Paracetamol', 'dosage': '1-0-1', 'duration': '3 days'}])
    r = bearer(login(api)).get('/api/patient/reminders')
    assert r.status_code == 200
    assert r.data['data']['count'] == 1
    assert [g['time'] for g in r.data['data']['groupedReminders']] == ['09:00', '20:00']


def test_prescriptions_paginated(api, patient):
    for i in range(3):
        create_prescription(patient=patient, diagnosis=f'Visit {i}', medicines=[{'name': 'Paracetamol'}])
    r = bearer(login(api)).get('/api/patient/prescriptions', {'limit': 2, 'page': 2})
    assert r.status_code == 200
    assert len(r.data['data']['prescriptions']) == 1
    assert r.data['data']['pagination'] == {'total': 3, 'page': 2, 'limit': 2, 'pages': 2}


def test_other_patient_id_is_forbidden(api, patient):
    r = bearer(login(api)).get('/api/patient/profile', {'patientId': patient.id + 1})
    assert r.status_code == 403


def test_missing_or_bad_token(patient):
    assert APIClient().get('/api/patient/profile').status_code == 401
    assert bearer('not-a-token').get('/api/patient/profile').status_code == 401


def test_staff_token_is_not_a_patient_token(staff_client):
    assert staff_client.get('/api/patient/profile').status_code in (401, 403)
