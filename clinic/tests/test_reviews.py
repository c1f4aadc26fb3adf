from datetime import timedelta

import pytest
from django.utils import timezone

from clinic.models import AppInstallation, Patient, Review
from clinic.services.reviews import review_stats

pytestmark = pytest.mark.django_db


@pytest.fixture
def second_app_patient(clinic):
    p = Patient.objects.create(clinic=clinic, name='Priya Sharma', mobile='9876543212', age=28, gender='female')
    AppInstallation.objects.create(patient=p, device_type='ios')
    return p


def test_request_review_creates_pending(staff_client, clinic, app_patient):
    r = staff_client.post('/api/reviews', {'patientId': app_patient.id}, format='json')
    assert r.status_code == 201
    assert r.data['review']['status'] == 'pending'
    assert r.data['clinicReviewLink'] == 'https://g.page/r/demo/review'


def test_second_request_within_window_is_rejected(staff_client, clinic, app_patient):
    first = staff_client.post('/api/reviews', {'patientId': app_patient.id}, format='json')
    r = staff_client.post('/api/reviews', {'patientId': app_patient.id}, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'duplicate_review'
    assert r.data['error']['existingReview']['id'] == first.data['review']['id']
    assert Review.objects.count() == 1


def test_old_or_closed_requests_do_not_block(staff_client, clinic, app_patient):
    Review.objects.create(clinic=clinic, patient=app_patient, status='pending',
                          request_date=timezone.now() - timedelta(days=8))
    Review.objects.create(clinic=clinic, patient=app_patient, status='received')
    r = staff_client.post('/api/reviews', {'patientId': app_patient.id}, format='json')
    assert r.status_code == 201


def test_push_request_requires_app(staff_client, patient):
    r = staff_client.post('/api/reviews', {'patientId': patient.id}, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'app_not_installed'
    sms = staff_client.post('/api/reviews', {'patientId': patient.id, 'deliveryMethod': 'sms'}, format='json')
    assert sms.status_code == 201


def test_bulk_skips_recently_asked(staff_client, clinic, app_patient, second_app_patient):
    Review.objects.create(clinic=clinic, patient=app_patient, status='sent')
    r = staff_client.post('/api/reviews/schedule-bulk', {
        'patientIds': [app_patient.id, second_app_patient.id],
    }, format='json')
    assert r.status_code == 201
    assert r.data['scheduled'] == 1
    assert r.data['skipped'] == 1
    assert r.data['existingRequests'][0]['patientId'] == app_patient.id
    assert r.data['reviews'][0]['patientId'] == second_app_patient.id


def test_bulk_all_blocked(staff_client, clinic, app_patient):
    Review.objects.create(clinic=clinic, patient=app_patient, status='pending')
    r = staff_client.post('/api/reviews/schedule-bulk', {'patientIds': [app_patient.id]}, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'duplicate_review'
    assert len(r.data['error']['existingReviews']) == 1


def test_bulk_without_eligible_patients(staff_client, other_clinic, patient):
    stranger = Patient.objects.create(clinic=other_clinic, name='Sunita Rao', mobile='9876543299')
    AppInstallation.objects.create(patient=stranger, device_type='android')
    r = staff_client.post('/api/reviews/schedule-bulk', {'patientIds': [patient.id, stranger.id]}, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'no_eligible_patients'


def test_review_status_flow(staff_client, clinic, app_patient):
    review = Review.objects.create(clinic=clinic, patient=app_patient)
    r = staff_client.put(f'/api/reviews/{review.id}', {'status': 'sent'}, format='json')
    assert r.status_code == 200
    r = staff_client.put(f'/api/reviews/{review.id}', {'status': 'received', 'rating': 5,
                                                       'reviewText': 'Very caring doctor'}, format='json')
    assert r.status_code == 200
    review.refresh_from_db()
    assert review.sent_date is not None and review.received_date is not None
    assert review.rating == 5
    r = staff_client.put(f'/api/reviews/{review.id}', {'status': 'pending'}, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'invalid_transition'


def test_rating_out_of_range(staff_client, clinic, app_patient):
    review = Review.objects.create(clinic=clinic, patient=app_patient)
    assert staff_client.put(f'/api/reviews/{review.id}', {'rating': 6}, format='json').status_code == 400


def test_review_of_other_clinic_is_404(staff_client, other_clinic):
    stranger = Patient.objects.create(clinic=other_clinic, name='Sunita Rao', mobile='9876543299')
    review = Review.objects.create(clinic=other_clinic, patient=stranger)
    assert staff_client.get(f'/api/reviews/{review.id}').status_code == 404


def test_list_counts_by_status(staff_client, clinic, app_patient, second_app_patient):
    Review.objects.create(clinic=clinic, patient=app_patient, status='received', rating=4)
    Review.objects.create(clinic=clinic, patient=second_app_patient, status='pending')
    r = staff_client.get('/api/reviews', {'status': 'received'})
    assert r.status_code == 200
    assert r.data['total'] == 1
    assert r.data['stats']['received'] == 1
    assert r.data['stats']['pending'] == 1
    assert r.data['stats']['failed'] == 0


def test_stats(clinic, app_patient, second_app_patient):
    Review.objects.create(clinic=clinic, patient=app_patient, status='received', rating=4)
    Review.objects.create(clinic=clinic, patient=second_app_patient, status='received', rating=5)
    Review.objects.create(clinic=clinic, patient=second_app_patient, status='sent')
    Review.objects.create(clinic=clinic, patient=app_patient, status='skipped')
    stats = review_stats(clinic)
    assert stats['totalRequests'] == 4
    assert stats['receivedReviews'] == 2
    assert stats['averageRating'] == 4.5
    assert stats['responseRate'] == 50.0


def test_stats_endpoint_is_flat(staff_client, clinic):
    r = staff_client.get('/api/reviews/stats')
    assert r.status_code == 200
    assert r.data['ok'] is True
    assert r.data['totalRequests'] == 0
    assert r.data['averageRating'] == 0
