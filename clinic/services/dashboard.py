from __future__ import annotations

from datetime import datetime, timedelta

from django.conf import settings
from django.core.cache import cache
from django.db.models import Count, Q
from django.utils import timezone

from clinic.models import Clinic, Notification, Patient


def dashboard_cache_key(clinic_id: int) -> str:
    return f"dashboard:stats:{clinic_id}"


def invalidate_dashboard(clinic_id: int) -> None:
    cache.delete(dashboard_cache_key(clinic_id))


def local_day_start(now: datetime | None = None) -> datetime:
    now = timezone.localtime(now or timezone.now())
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def percent(value: float, total: float) -> int:
    return round(value / total * 100) if total > 0 else 0


def clamp_percent(value: int) -> int:
    return min(max(value, 0), 100)


def compute_dashboard_stats(clinic: Clinic) -> dict:
    today = local_day_start()
    tomorrow = today + timedelta(days=1)
    week_start = today - timedelta(days=today.weekday())

    patients = Patient.objects.filter(clinic=clinic)
    patient_counts = patients.aggregate(
        total=Count('id'),
        today=Count('id', filter=Q(visit_date__gte=today, visit_date__lt=tomorrow)),
    )
    patients_with_app = patients.filter(app_installations__is_active=True).distinct().count()
    patients_pending = patients.filter(
        notifications__status=Notification.STATUS_SCHEDULED
    ).distinct().count()

    success = Q(status__in=[Notification.STATUS_DELIVERED, Notification.STATUS_READ])
    counts = Notification.objects.filter(clinic=clinic).aggregate(
        scheduled=Count('id', filter=Q(status=Notification.STATUS_SCHEDULED, scheduled_date__gte=today)),
        scheduled_today=Count('id', filter=Q(status=Notification.STATUS_SCHEDULED,
                                             scheduled_date__gte=today, scheduled_date__lt=tomorrow)),
        sent_today=Count('id', filter=Q(sent_at__gte=today, sent_at__lt=tomorrow)),
        sent_week=Count('id', filter=Q(sent_at__gte=week_start)),
        success_week=Count('id', filter=success & Q(sent_at__gte=week_start)),
        delivered=Count('id', filter=Q(status=Notification.STATUS_DELIVERED)),
        read=Count('id', filter=Q(status=Notification.STATUS_READ)),
        failed=Count('id', filter=Q(status=Notification.STATUS_FAILED)),
    )

    if counts['sent_week']:
        delivery_rate = percent(counts['success_week'], counts['sent_week'])
    else:
        delivery_rate = percent(
            counts['delivered'] + counts['read'],
            counts['delivered'] + counts['read'] + counts['failed'],
        )

    if clinic.has_app_users != patients_with_app:
        Clinic.objects.filter(pk=clinic.pk).update(has_app_users=patients_with_app)

    return {
        'patientsToday': patient_counts['today'],
        'totalPatients': patient_counts['total'],
        'patientsWithApp': patients_with_app,
        'notificationsScheduled': counts['scheduled'],
        'notificationsSentToday': counts['sent_today'],
        'notificationsSentThisWeek': counts['sent_week'],
        'notificationsScheduledToday': counts['scheduled_today'],
        'patientsWithPendingNotifications': patients_pending,
        'notificationDeliveryRate': clamp_percent(delivery_rate),
        'engagementRate': clamp_percent(percent(counts['read'], counts['delivered'])),
        'totalDelivered': counts['delivered'],
        'totalRead': counts['read'],
        'totalFailed': counts['failed'],
        'pushNotificationBalance': Clinic.objects.values_list(
            'push_notification_balance', flat=True).get(pk=clinic.pk),
        'subscriptionPlan': clinic.subscription_plan,
        'subscriptionStatus': clinic.subscription_status,
        'hasAppUsers': patients_with_app,
    }


def dashboard_stats(clinic: Clinic) -> dict:
    ck = dashboard_cache_key(clinic.pk)
    payload = cache.get(ck)
    if payload is None:
        payload = compute_dashboard_stats(clinic)
        cache.set(ck, payload, settings.DASHBOARD_CACHE_SECONDS)
    return payload
