"""
Date-ranged clinic reports.

Rows in the requested window are loaded once per section and reduced in
Python; all day and hour bucketing happens in the clinic's local time
zone.  ``pct`` rounds to whole percent and is 0 for an empty base.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from django.db.models import Count, Q
from django.utils import timezone

from clinic.models import Clinic, Notification, Patient, Prescription, Review

AGE_GROUPS = ('Under 18', '18-25', '26-35', '36-45', '46-60', '61+')
NOT_SPECIFIED = 'Not Specified'
WEEKDAYS = ('Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat')
REPORT_TYPES = ('overview', 'notifications', 'patients', 'prescriptions', 'reviews', 'analytics')

TOP_MEDICINES = 15
TOP_DIAGNOSES = 10
PEAK_HOURS = 8
ACTIVE_LOGIN_DAYS = 30


def pct(value: float, total: float) -> int:
    return round(value / total * 100) if total > 0 else 0


def age_group(age: int | None) -> str:
    if age is None:
        return NOT_SPECIFIED
    if age < 18:
        return 'Under 18'
    if age <= 25:
        return '18-25'
    if age <= 35:
        return '26-35'
    if age <= 45:
        return '36-45'
    if age <= 60:
        return '46-60'
    return '61+'


def sentiment(rating: int | None) -> str | None:
    """Bucket a star rating; unrated reviews carry no sentiment."""
    if rating is None:
        return None
    if rating >= 4:
        return 'positive'
    if rating == 3:
        return 'neutral'
    return 'negative'


@dataclass(frozen=True)
class ReportRange:
    start: datetime
    end: datetime
    first_day: date
    last_day: date

    @classmethod
    def from_dates(cls, first_day: date, last_day: date) -> 'ReportRange':
        tz = timezone.get_current_timezone()
        start = timezone.make_aware(datetime.combine(first_day, time.min), tz)
        end = timezone.make_aware(datetime.combine(last_day, time.max), tz)
        return cls(start=start, end=end, first_day=first_day, last_day=last_day)

    @property
    def days(self) -> list[date]:
        span = (self.last_day - self.first_day).days
        return [self.first_day + timedelta(days=i) for i in range(span + 1)]

    def previous(self) -> 'ReportRange':
        length = len(self.days)
        last = self.first_day - timedelta(days=1)
        return ReportRange.from_dates(last - timedelta(days=length - 1), last)

    def as_dict(self) -> dict:
        return {'startDate': self.first_day.isoformat(), 'endDate': self.last_day.isoformat()}


def _local_day(value: datetime) -> date:
    return timezone.localtime(value).date()


def _daily(rng: ReportRange, stamps) -> list[dict]:
    counts = Counter(_local_day(s) for s in stamps if s)
    return [{'date': d.isoformat(), 'count': counts.get(d, 0)} for d in rng.days]


def _shares(counter: Counter, total: int, key: str) -> list[dict]:
    return [
        {key: name, 'count': count, 'percentage': pct(count, total)}
        for name, count in counter.most_common()
    ]


def _growth(current: int, previous: int) -> int:
    if previous > 0:
        return round((current - previous) / previous * 100)
    return 100 if current > 0 else 0


def notifications_report(clinic: Clinic, rng: ReportRange) -> dict:
    rows = list(
        Notification.objects.filter(clinic=clinic, scheduled_date__range=(rng.start, rng.end))
        .values('type', 'category', 'status', 'read_at', 'scheduled_date')
    )
    total = len(rows)
    delivered = sum(1 for r in rows if r['status'] == Notification.STATUS_DELIVERED)
    read = sum(1 for r in rows if r['read_at'] is not None)
    failed = sum(1 for r in rows if r['status'] == Notification.STATUS_FAILED)
    by_type = Counter(r['type'] or 'Unknown' for r in rows)
    by_category = Counter(r['category'] or 'reminder' for r in rows)
    hours = Counter(timezone.localtime(r['scheduled_date']).hour for r in rows)
    return {
        'total': total,
        'delivered': delivered,
        'read': read,
        'failed': failed,
        'deliveryRate': pct(delivered, total),
        'engagementRate': pct(read, delivered),
        'byType': [{'type': k, 'count': v} for k, v in by_type.most_common()],
        'byCategory': [{'category': k, 'count': v} for k, v in by_category.most_common()],
        'daily': _daily(rng, (r['scheduled_date'] for r in rows)),
        'hourlyTrend': [{'hour': h, 'count': hours.get(h, 0)} for h in range(24)],
    }


def patients_report(clinic: Clinic, rng: ReportRange) -> dict:
    clinic_patients = Patient.objects.filter(clinic=clinic)
    rows = list(
        clinic_patients.filter(created_at__range=(rng.start, rng.end))
        .annotate(
            active_apps=Count('app_installations', filter=Q(app_installations__is_active=True), distinct=True),
            rx_count=Count('prescriptions', distinct=True),
        )
        .values('gender', 'age', 'opt_out', 'created_at', 'active_apps', 'rx_count')
    )
    new_patients = len(rows)
    genders = Counter((r['gender'] or NOT_SPECIFIED) for r in rows)
    ages = Counter(age_group(r['age']) for r in rows)
    with_app = sum(1 for r in rows if r['active_apps'])
    opted_out = sum(1 for r in rows if r['opt_out'])
    returning = sum(1 for r in rows if r['rx_count'] > 1)
    return {
        'total': clinic_patients.count(),
        'newPatients': new_patients,
        'newByDay': _daily(rng, (r['created_at'] for r in rows)),
        'byGender': _shares(genders, new_patients, 'gender'),
        'byAgeGroup': [
            {'ageGroup': g, 'count': ages.get(g, 0), 'percentage': pct(ages.get(g, 0), new_patients)}
            for g in AGE_GROUPS + (NOT_SPECIFIED,)
        ],
        'appInstallationRate': pct(with_app, new_patients),
        'optOutRate': pct(opted_out, new_patients),
        'retentionRate': pct(returning, new_patients),
    }


def prescriptions_report(clinic: Clinic, rng: ReportRange) -> dict:
    rows = list(
        Prescription.objects.filter(clinic=clinic, created_at__range=(rng.start, rng.end))
        .order_by('created_at', 'id')
        .values('diagnosis', 'medicines', 'enable_push_reminders', 'created_at')
    )
    total = len(rows)
    with_reminders = sum(1 for r in rows if r['enable_push_reminders'])
    medicine_counts: Counter = Counter()
    display_names: dict[str, str] = {}
    total_medicines = 0
    for r in rows:
        for medicine in r['medicines'] or []:
            name = (medicine.get('name') or '').strip()
            if not name:
                continue
            total_medicines += 1
            key = name.lower()
            display_names.setdefault(key, name)
            medicine_counts[key] += 1
    diagnoses = Counter((r['diagnosis'] or NOT_SPECIFIED).strip() for r in rows)
    return {
        'total': total,
        'withReminders': with_reminders,
        'reminderRate': pct(with_reminders, total),
        'byDay': _daily(rng, (r['created_at'] for r in rows)),
        'topMedicines': [
            {'medicine': display_names[key], 'count': count, 'percentage': pct(count, total_medicines)}
            for key, count in medicine_counts.most_common(TOP_MEDICINES)
        ],
        'commonDiagnosis': [
            {'diagnosis': d, 'count': c} for d, c in diagnoses.most_common(TOP_DIAGNOSES)
        ],
        'averageMedicinesPerPrescription': round(total_medicines / total, 1) if total else 0,
    }


def reviews_report(clinic: Clinic, rng: ReportRange) -> dict:
    rows = list(
        Review.objects.filter(clinic=clinic, created_at__range=(rng.start, rng.end))
        .values('rating', 'status', 'platform', 'received_date')
    )
    total = len(rows)
    ratings = [r['rating'] for r in rows if r['rating'] is not None]
    moods = Counter(sentiment(r) for r in ratings)
    return {
        'total': total,
        'averageRating': round(sum(ratings) / len(ratings), 1) if ratings else 0,
        'ratingDistribution': [{'rating': n, 'count': ratings.count(n)} for n in range(1, 6)],
        'byStatus': _shares(Counter(r['status'] for r in rows), total, 'status'),
        'byPlatform': _shares(Counter(r['platform'] for r in rows), total, 'platform'),
        'responseRate': pct(sum(1 for r in rows if r['received_date']), total),
        'conversionRate': pct(len(ratings), total),
        'sentimentAnalysis': {
            'positive': moods.get('positive', 0),
            'neutral': moods.get('neutral', 0),
            'negative': moods.get('negative', 0),
        },
    }


def analytics_report(clinic: Clinic, rng: ReportRange) -> dict:
    visits = list(
        Patient.objects.filter(clinic=clinic, visit_date__range=(rng.start, rng.end))
        .values_list('visit_date', flat=True)
    )
    local_visits = [timezone.localtime(v) for v in visits]
    hours = Counter(v.hour for v in local_visits)
    # isoweekday: Mon=1 .. Sun=7, mapped onto a Sunday-first week
    weekdays = Counter(v.isoweekday() % 7 for v in local_visits)

    prev = rng.previous()

    def period_counts(model, field: str) -> tuple[int, int]:
        qs = model.objects.filter(clinic=clinic)
        return (
            qs.filter(**{f'{field}__range': (rng.start, rng.end)}).count(),
            qs.filter(**{f'{field}__range': (prev.start, prev.end)}).count(),
        )

    patients_now, patients_before = period_counts(Patient, 'created_at')
    rx_now, rx_before = period_counts(Prescription, 'created_at')
    notif_now, notif_before = period_counts(Notification, 'scheduled_date')

    with_app = Patient.objects.filter(clinic=clinic, app_installations__is_active=True).distinct()
    active = with_app.filter(last_app_login__gte=timezone.now() - timedelta(days=ACTIVE_LOGIN_DAYS)).count()
    returning = (
        Patient.objects.filter(clinic=clinic)
        .annotate(visits=Count('prescriptions', filter=Q(
            prescriptions__created_at__range=(rng.start, rng.end))))
        .filter(visits__gt=1)
        .count()
    )
    return {
        'peakHours': [
            {'hour': f'{h}:00', 'patients': c} for h, c in hours.most_common(PEAK_HOURS)
        ],
        'weeklyTrend': [{'day': WEEKDAYS[i], 'count': weekdays.get(i, 0)} for i in range(7)],
        'monthlyGrowth': {
            'patients': _growth(patients_now, patients_before),
            'prescriptions': _growth(rx_now, rx_before),
            'notifications': _growth(notif_now, notif_before),
        },
        'patientEngagement': {
            'activePatients': active,
            'returningPatients': returning,
            'engagementScore': pct(active, with_app.count()),
        },
    }


SECTIONS = {
    'notifications': notifications_report,
    'patients': patients_report,
    'prescriptions': prescriptions_report,
    'reviews': reviews_report,
    'analytics': analytics_report,
}


def build_report(clinic: Clinic, rng: ReportRange, report_type: str = 'overview') -> dict:
    if report_type != 'overview':
        return {report_type: SECTIONS[report_type](clinic, rng)}
    data = {name: fn(clinic, rng) for name, fn in SECTIONS.items()}
    data['summary'] = {
        'totalPatients': data['patients']['total'],
        'totalNotifications': data['notifications']['total'],
        'totalPrescriptions': data['prescriptions']['total'],
        'totalReviews': data['reviews']['total'],
        'newPatients': data['patients']['newPatients'],
        'patientsWithApp': Patient.objects.filter(
            clinic=clinic, app_installations__is_active=True).distinct().count(),
        'growthRate': data['analytics']['monthlyGrowth']['patients'],
    }
    return data
