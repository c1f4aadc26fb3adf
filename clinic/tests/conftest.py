from datetime import timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from clinic.models import AppInstallation, Clinic, Patient, User


@pytest.fixture(autouse=True)
def _clear_cache():
    # Throttle counters and dashboard stats live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def clinic(db):
    return Clinic.objects.create(
        name='Sharma Homeopathy Clinic',
        doctor_name='Dr. Rajesh Sharma',
        phone='9876543210',
        city='Delhi',
        google_review_link='https://g.page/r/demo/review',
        push_notification_balance=5,
    )


@pytest.fixture
def other_clinic(db):
    return Clinic.objects.create(name='Other Clinic', doctor_name='Dr. Other', phone='9123456780')


@pytest.fixture
def doctor(clinic):
    return User.objects.create_user(username='doc', password='P@ssw0rd1', role='doctor', clinic=clinic)


@pytest.fixture
def staff_client(doctor):
    client = APIClient()
    client.force_authenticate(user=doctor)
    return client


@pytest.fixture
def patient(clinic):
    return Patient.objects.create(clinic=clinic, name='Rajesh Kumar', mobile='9876543211', age=34, gender='male')


@pytest.fixture
def app_patient(patient):
    AppInstallation.objects.create(patient=patient, device_type='android', is_active=True)
    return patient


@pytest.fixture
def future():
    return timezone.now() + timedelta(days=2)
