from datetime import date, datetime

import pytest
from django.utils import timezone

from clinic.models import Notification, Patient, Prescription, Review
from clinic.services.reports import ReportRange, age_group, build_report, pct, sentiment

pytestmark = pytest.mark.django_db


@pytest.mark.parametrize('age,group', [
    (None, 'Not Specified'),
    (0, 'Under 18'),
    (17, 'Under 18'),
    (18, '18-25'),
    (25, '18-25'),
    (26, '26-35'),
    (45, '36-45'),
    (60, '46-60'),
    (61, '61+'),
])
def test_age_group(age, group):
    assert age_group(age) == group


def test_sentiment_buckets():
    assert sentiment(5) == 'positive'
    assert sentiment(4) == 'positive'
    assert sentiment(3) == 'neutral'
    assert sentiment(1) == 'negative'
    assert sentiment(None) is None


def test_pct_handles_empty_base():
    assert pct(1, 3) == 33
    assert pct(2, 3) == 67
    assert pct(5, 0) == 0


def test_range_days_and_previous():
    rng = ReportRange.from_dates(date(2024, 3, 1), date(2024, 3, 7))
    assert len(rng.days) == 7
    prev = rng.previous()
    assert prev.first_day == date(2024, 2, 23)
    assert prev.last_day == date(2024, 2, 29)


# 2024-03-03 is a Sunday, so the week runs Sun..Sat
def week():
    return ReportRange.from_dates(date(2024, 3, 3), date(2024, 3, 9))


def local(day: date, hour: int, minute: int = 0) -> datetime:
    return timezone.make_aware(datetime(day.year, day.month, day.day, hour, minute))


def _today_range():
    today = timezone.localdate()
    return ReportRange.from_dates(today, today)


def test_top_medicines_ignore_case(clinic, patient):
    Prescription.objects.create(clinic=clinic, patient=patient, diagnosis='Viral Fever', medicines=[
        {'name': 'Paracetamol', 'dosage': '1-0-1'}, {'name': 'Cetirizine', 'dosage': '0-0-1'},
    ])
    Prescription.objects.create(clinic=clinic, patient=patient, diagnosis='Viral Fever', medicines=[
        {'name': 'paracetamol ', 'dosage': '1-1-1'},
    ])
    data = build_report(clinic, _today_range(), 'prescriptions')['prescriptions']
    assert data['total'] == 2
    assert data['topMedicines'][0] == {'medicine': 'Paracetamol', 'count': 2, 'percentage': 67}
    assert data['commonDiagnosis'] == [{'diagnosis': 'Viral Fever', 'count': 2}]
    assert data['averageMedicinesPerPrescription'] == 1.5


def test_review_sentiment_skips_unrated(clinic, patient):
    Review.objects.create(clinic=clinic, patient=patient, status='received', rating=5,
                          received_date=timezone.now())
    Review.objects.create(clinic=clinic, patient=patient, status='received', rating=2,
                          received_date=timezone.now())
    Review.objects.create(clinic=clinic, patient=patient, status='sent')
    data = build_report(clinic, _today_range(), 'reviews')['reviews']
    assert data['total'] == 3
    assert data['sentimentAnalysis'] == {'positive': 1, 'neutral': 0, 'negative': 1}
    assert data['averageRating'] == 3.5
    assert data['conversionRate'] == 67


def test_patients_report_groups(clinic, patient):
    data = build_report(clinic, _today_range(), 'patients')['patients']
    assert data['newPatients'] == 1
    groups = {g['ageGroup']: g['count'] for g in data['byAgeGroup']}
    assert groups['26-35'] == 1
    assert data['byGender'] == [{'gender': 'male', 'count': 1, 'percentage': 100}]


def test_overview_summary(staff_client, clinic, patient):
    today = timezone.localdate().isoformat()
    r = staff_client.get('/api/reports', {'startDate': today, 'endDate': today})
    assert r.status_code == 200
    assert r.data['type'] == 'overview'
    assert r.data['dateRange'] == {'startDate': today, 'endDate': today}
    summary = r.data['data']['summary']
    assert summary['totalPatients'] == 1
    assert summary['newPatients'] == 1
    assert set(r.data['data']) >= {'notifications', 'patients', 'prescriptions', 'reviews', 'analytics'}


def test_single_section(staff_client, clinic):
    r = staff_client.get('/api/reports', {'startDate': '2024-01-01', 'endDate': '2024-01-31', 'type': 'reviews'})
    assert r.status_code == 200
    assert list(r.data['data']) == ['reviews']


@pytest.mark.parametrize('params', [
    {'startDate': '2024-02-01', 'endDate': '2024-01-01'},
    {'startDate': '2020-01-01', 'endDate': '2024-01-01'},
    {'startDate': '2024-01-01', 'endDate': '2024-01-31', 'type': 'finance'},
    {'startDate': 'yesterday', 'endDate': '2024-01-31'},
    {'endDate': '2024-01-31'},
])
def test_invalid_report_queries(staff_client, clinic, params):
    r = staff_client.get('/api/reports', params)
    assert r.status_code == 400
    assert r.data['error']['code'] == 'invalid'


def test_notifications_section_buckets_local_time(clinic, patient):
    def notify(when, status, read_at=None):
        Notification.objects.create(clinic=clinic, patient=patient, message='Take your medicine',
                                    scheduled_date=when, status=status, read_at=read_at)

    monday, wednesday = date(2024, 3, 4), date(2024, 3, 6)
    notify(local(monday, 9, 30), 'delivered')
    notify(local(monday, 9, 45), 'read', read_at=local(monday, 10))
    notify(local(wednesday, 18), 'delivered')
    notify(local(wednesday, 18, 10), 'failed')
    notify(local(date(2024, 3, 12), 9), 'delivered')

    data = build_report(clinic, week(), 'notifications')['notifications']
    assert data['total'] == 4
    assert data['failed'] == 1
    assert data['deliveryRate'] == 50
    # read / delivered
    assert data['engagementRate'] == 50
    assert data['daily'] == [
        {'date': '2024-03-03', 'count': 0},
        {'date': '2024-03-04', 'count': 2},
        {'date': '2024-03-05', 'count': 0},
        {'date': '2024-03-06', 'count': 2},
        {'date': '2024-03-07', 'count': 0},
        {'date': '2024-03-08', 'count': 0},
        {'date': '2024-03-09', 'count': 0},
    ]
    hourly = data['hourlyTrend']
    assert [h['hour'] for h in hourly] == list(range(24))
    assert hourly[9]['count'] == 2
    assert hourly[18]['count'] == 2
    assert sum(h['count'] for h in hourly) == 4


def test_notifications_section_empty_range(clinic):
    data = build_report(clinic, week(), 'notifications')['notifications']
    assert data['total'] == 0
    assert data['deliveryRate'] == 0
    assert data['engagementRate'] == 0
    assert len(data['daily']) == 7
    assert all(d['count'] == 0 for d in data['daily'])


def test_analytics_weekly_trend_and_growth(clinic):
    sunday, saturday = date(2024, 3, 3), date(2024, 3, 9)
    visits = [local(sunday, 10), local(saturday, 10), local(saturday, 11)]
    for i, visit in enumerate(visits):
        p = Patient.objects.create(clinic=clinic, name=f'Patient {i}', mobile=f'900000000{i}', visit_date=visit)
        Patient.objects.filter(pk=p.pk).update(created_at=visit)
    earlier = Patient.objects.create(clinic=clinic, name='Earlier', mobile='9000000009',
                                     visit_date=local(date(2024, 2, 27), 10))
    Patient.objects.filter(pk=earlier.pk).update(created_at=local(date(2024, 2, 27), 10))
    rx = Prescription.objects.create(clinic=clinic, patient=earlier, diagnosis='Migraine')
    Prescription.objects.filter(pk=rx.pk).update(created_at=local(date(2024, 3, 5), 12))

    data = build_report(clinic, week(), 'analytics')['analytics']
    trend = data['weeklyTrend']
    assert [d['day'] for d in trend] == ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']
    assert trend[0]['count'] == 1
    assert trend[6]['count'] == 2
    assert sum(d['count'] for d in trend) == 3
    assert data['peakHours'][0] == {'hour': '10:00', 'patients': 2}
    # 3 new patients against 1 the week before
    assert data['monthlyGrowth']['patients'] == 200
    # nothing in the previous week
    assert data['monthlyGrowth']['prescriptions'] == 100
    assert data['monthlyGrowth']['notifications'] == 0
