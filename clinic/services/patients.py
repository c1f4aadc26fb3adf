from __future__ import annotations

from datetime import timedelta

from django.db import IntegrityError, transaction
from django.db.models import Count, Exists, OuterRef, Subquery

from clinic.exceptions import DuplicatePatient
from clinic.models import AppInstallation, Clinic, Notification, Patient, Review
from clinic.services.dashboard import invalidate_dashboard, local_day_start
from clinic.services.notifications import refund_scheduled_for_patient

LIST_FILTERS = ('all', 'today', 'with_app', 'pending_notifications')


def _active_installs():
    return AppInstallation.objects.filter(patient=OuterRef('pk'), is_active=True).order_by('-installed_at')


def _scheduled():
    return Notification.objects.filter(
        patient=OuterRef('pk'), status=Notification.STATUS_SCHEDULED
    ).order_by('scheduled_date')


def with_list_annotations(qs):
    """Counts plus app/notification/review markers for the patients list."""
    latest_notification = Notification.objects.filter(patient=OuterRef('pk')).order_by('-scheduled_date')
    latest_review = Review.objects.filter(patient=OuterRef('pk')).order_by('-request_date')
    return qs.annotate(
        prescription_count=Count('prescriptions', distinct=True),
        notification_count=Count('notifications', distinct=True),
        review_count=Count('reviews', distinct=True),
        app_installed_at=Subquery(_active_installs().values('installed_at')[:1]),
        device_type=Subquery(_active_installs().values('device_type')[:1]),
        next_notification_date=Subquery(_scheduled().values('scheduled_date')[:1]),
        notification_status=Subquery(latest_notification.values('status')[:1]),
        review_status=Subquery(latest_review.values('status')[:1]),
    )


def apply_list_filter(qs, name: str):
    if name == 'today':
        start = local_day_start()
        return qs.filter(visit_date__gte=start, visit_date__lt=start + timedelta(days=1))
    if name == 'with_app':
        return qs.filter(Exists(_active_installs()))
    if name == 'pending_notifications':
        return qs.filter(Exists(_scheduled()))
    return qs


def _check_unique_mobile(clinic: Clinic, mobile: str, exclude_id: int | None = None) -> None:
    qs = Patient.objects.filter(clinic=clinic, mobile=mobile)
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    existing = qs.first()
    if existing:
        raise DuplicatePatient(existingPatient={
            'id': existing.id, 'name': existing.name, 'mobile': existing.mobile,
        })


def create_patient(clinic: Clinic, data: dict) -> Patient:
    _check_unique_mobile(clinic, data['mobile'])
    try:
        with transaction.atomic():
            patient = Patient.objects.create(clinic=clinic, **data)
    except IntegrityError:
        # Lost a race with a concurrent registration of the same number
        _check_unique_mobile(clinic, data['mobile'])
        raise
    invalidate_dashboard(clinic.pk)
    return patient


def update_patient(patient: Patient, data: dict) -> Patient:
    if 'mobile' in data and data['mobile'] != patient.mobile:
        _check_unique_mobile(patient.clinic, data['mobile'], exclude_id=patient.pk)
    for field, value in data.items():
        setattr(patient, field, value)
    patient.save()
    return patient


@transaction.atomic
def delete_patient(patient: Patient) -> int:
    """Delete a patient, refunding its still-scheduled notifications."""
    refunded = refund_scheduled_for_patient(patient)
    clinic_id = patient.clinic_id
    patient.delete()
    invalidate_dashboard(clinic_id)
    return refunded
