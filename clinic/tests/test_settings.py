import pytest
from rest_framework.test import APIClient

from clinic.models import AuditEvent, Clinic, User

pytestmark = pytest.mark.django_db

URL = '/api/settings/clinic'


@pytest.fixture
def receptionist_client(clinic):
    user = User.objects.create_user(username='desk', password='P@ssw0rd1', role='staff', clinic=clinic)
    client = APIClient()
    client.force_authenticate(user=user)
    return client


def test_get_merges_default_settings(staff_client, clinic):
    Clinic.objects.filter(pk=clinic.pk).update(settings={'workingHoursEnd': '18:00'})
    r = staff_client.get(URL)
    assert r.status_code == 200
    prefs = r.data['clinic']['settings']
    assert prefs['workingHoursEnd'] == '18:00'
    assert prefs['workingHoursStart'] == '09:00'
    assert prefs['timezone'] == 'Asia/Kolkata'
    assert r.data['clinic']['pushNotificationBalance'] == 5


def test_put_updates_branding(staff_client, clinic):
    r = staff_client.put(URL, {
        'name': 'Sharma <i>Family</i> Clinic',
        'primaryColor': '#0d9488',
        'settings': {'reviewAutomation': False},
    }, format='json')
    assert r.status_code == 200
    assert r.data['clinic']['name'] == 'Sharma Family Clinic'
    assert r.data['clinic']['primaryColor'] == '#0d9488'
    assert r.data['clinic']['settings']['reviewAutomation'] is False
    assert AuditEvent.objects.filter(action='settings_update').exists()


def test_put_rejects_bad_color_and_taken_phone(staff_client, clinic, other_clinic):
    assert staff_client.put(URL, {'primaryColor': 'teal'}, format='json').status_code == 400
    r = staff_client.put(URL, {'phone': other_clinic.phone}, format='json')
    assert r.status_code == 400
    assert 'phone' in r.data['error']['message']
    assert staff_client.put(URL, {'phone': clinic.phone}, format='json').status_code == 200


def test_patch_tops_up_balance(staff_client, clinic):
    r = staff_client.patch(URL, {'pushNotificationBalance': 100}, format='json')
    assert r.status_code == 200
    assert r.data['pushNotificationBalance'] == 105
    assert r.data['updates'] == ['push_notification_balance']
    event = AuditEvent.objects.get(action='balance_topup')
    assert event.detail == {'amount': 100, 'balance': 105}


def test_patch_validation(staff_client):
    assert staff_client.patch(URL, {}, format='json').status_code == 400
    assert staff_client.patch(URL, {'pushNotificationBalance': 0}, format='json').status_code == 400
    assert staff_client.patch(URL, {'pushDeliveryRate': 120}, format='json').status_code == 400


def test_patch_counters(staff_client, clinic):
    r = staff_client.patch(URL, {'pushDeliveryRate': 92.5, 'hasAppUsers': 12}, format='json')
    assert r.status_code == 200
    assert r.data['pushDeliveryRate'] == 92.5
    assert r.data['hasAppUsers'] == 12
    assert r.data['pushNotificationBalance'] == 5
    assert not AuditEvent.objects.filter(action='balance_topup').exists()


def test_staff_role_can_read_but_not_write(receptionist_client):
    assert receptionist_client.get(URL).status_code == 200
    assert receptionist_client.patch(URL, {'pushNotificationBalance': 10}, format='json').status_code == 403
    assert receptionist_client.put(URL, {'name': 'Mine now'}, format='json').status_code == 403


def test_settings_require_auth():
    assert APIClient().get(URL).status_code == 401


def test_dashboard_stats(staff_client, clinic, app_patient):
    r = staff_client.get('/api/dashboard/stats')
    assert r.status_code == 200
    stats = r.data['stats']
    assert stats['totalPatients'] == 1
    assert stats['patientsWithApp'] == 1
    assert stats['patientsToday'] == 1
    assert stats['pushNotificationBalance'] == 5
    assert 0 <= stats['notificationDeliveryRate'] <= 100
