"""
Review request workflow.

A patient may have at most one open (``pending`` or ``sent``) review
request per rolling ``REVIEW_DEDUP_DAYS`` window.  Single and bulk
requests share the same window query.
"""
from __future__ import annotations

from datetime import datetime, timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Avg, Count, Q
from django.utils import timezone

from clinic.exceptions import (
    AppNotInstalled,
    DuplicateReviewRequest,
    InvalidTransition,
    NoEligiblePatients,
)
from clinic.models import Clinic, Patient, Review
from clinic.services.notifications import has_app_installed

TRANSITIONS = {
    Review.STATUS_PENDING: {Review.STATUS_SENT, Review.STATUS_SKIPPED, Review.STATUS_FAILED},
    Review.STATUS_SENT: {Review.STATUS_RECEIVED, Review.STATUS_SKIPPED, Review.STATUS_FAILED},
}


def dedup_cutoff(now: datetime | None = None) -> datetime:
    return (now or timezone.now()) - timedelta(days=settings.REVIEW_DEDUP_DAYS)


def open_reviews(clinic: Clinic, patient_ids):
    """Open review requests inside the de-duplication window."""
    return Review.objects.filter(
        clinic=clinic,
        patient_id__in=patient_ids,
        status__in=Review.OPEN_STATUSES,
        request_date__gte=dedup_cutoff(),
    )


def review_ref(review: Review) -> dict:
    return {'id': review.id, 'status': review.status, 'requestDate': review.request_date}


@transaction.atomic
def request_review(*, clinic: Clinic, patient: Patient, platform: str = 'google',
                   delivery_method: str = 'push', scheduled_date: datetime | None = None) -> Review:
    # Lock the patient row so concurrent requests see each other's insert
    patient = Patient.objects.select_for_update().get(pk=patient.pk)
    if delivery_method == 'push' and not has_app_installed(patient):
        raise AppNotInstalled(hint='Patient needs the app installed to receive push review requests.')
    existing = open_reviews(clinic, [patient.id]).order_by('-request_date').first()
    if existing:
        raise DuplicateReviewRequest(
            hint='A review request was already sent to this patient in the last '
                 f'{settings.REVIEW_DEDUP_DAYS} days.',
            existingReview=review_ref(existing),
        )
    return Review.objects.create(
        clinic=clinic,
        patient=patient,
        platform=platform,
        delivery_method=delivery_method,
        status=Review.STATUS_PENDING,
        scheduled_date=scheduled_date,
    )


@transaction.atomic
def schedule_bulk(*, clinic: Clinic, patient_ids: list[int], platform: str = 'google',
                  delivery_method: str = 'push', scheduled_date: datetime | None = None) -> dict:
    """Create review requests for every eligible patient not asked recently."""
    eligible_ids = list(
        Patient.objects.filter(clinic=clinic, id__in=patient_ids, app_installations__is_active=True)
        .values_list('id', flat=True)
        .distinct()
    )
    eligible = list(Patient.objects.select_for_update().filter(id__in=eligible_ids).order_by('id'))
    if not eligible:
        raise NoEligiblePatients(hint='Patients must belong to this clinic and have the app installed.')

    existing = list(open_reviews(clinic, [p.id for p in eligible]).select_related('patient'))
    blocked = {r.patient_id for r in existing}
    to_request = [p for p in eligible if p.id not in blocked]
    existing_refs = [
        {**review_ref(r), 'patientId': r.patient_id, 'patientName': r.patient.name} for r in existing
    ]
    if not to_request:
        raise DuplicateReviewRequest(
            'All selected patients already have recent review requests',
            existingReviews=existing_refs,
        )

    created = [
        Review.objects.create(
            clinic=clinic,
            patient=p,
            platform=platform,
            delivery_method=delivery_method,
            status=Review.STATUS_PENDING,
            scheduled_date=scheduled_date,
        )
        for p in to_request
    ]
    return {
        'reviews': created,
        'skipped': len(set(patient_ids)) - len(created),
        'existingRequests': existing_refs,
    }


def update_review(review: Review, changes: dict) -> Review:
    status = changes.get('status', review.status)
    if status != review.status and status not in TRANSITIONS.get(review.status, set()):
        raise InvalidTransition(f'Cannot change review status from {review.status} to {status}')
    now = timezone.now()
    if status != review.status:
        review.status = status
        if status == Review.STATUS_SENT:
            review.sent_date = now
        elif status == Review.STATUS_RECEIVED:
            review.received_date = now
    if 'rating' in changes:
        review.rating = changes['rating']
    if 'review_text' in changes:
        review.review_text = changes['review_text']
    review.save()
    return review


def review_stats(clinic: Clinic) -> dict:
    now = timezone.localtime()
    this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    last_month = (this_month - timedelta(days=1)).replace(day=1)
    agg = Review.objects.filter(clinic=clinic).aggregate(
        total=Count('id'),
        received=Count('id', filter=Q(status=Review.STATUS_RECEIVED)),
        avg_rating=Avg('rating'),
        this_month=Count('id', filter=Q(request_date__gte=this_month)),
        last_month=Count('id', filter=Q(request_date__gte=last_month, request_date__lt=this_month)),
    )
    total = agg['total']
    return {
        'totalRequests': total,
        'receivedReviews': agg['received'],
        'averageRating': round(agg['avg_rating'] or 0, 1),
        'responseRate': round(agg['received'] / total * 100, 1) if total else 0,
        'thisMonth': agg['this_month'],
        'lastMonth': agg['last_month'],
    }
