"""
Push notification bookkeeping.

Each created notification costs one unit of the clinic's
``push_notification_balance``; deleting a notification that is still
``scheduled`` gives the unit back.  The balance is only ever changed by a
conditional ``UPDATE`` inside the same transaction as the row insert or
delete, so concurrent requests cannot overdraw it and a failed insert
never leaks a debit.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

from django.db import transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import NotFound

from clinic.exceptions import (
    AppNotInstalled,
    InsufficientBalance,
    InvalidTransition,
    NotificationNotDeletable,
)
from clinic.models import AppInstallation, Clinic, Notification, Patient
from clinic.services.dashboard import invalidate_dashboard

logger = logging.getLogger(__name__)

# Forward-only lifecycle; ``failed`` branches off before delivery
_ORDER = {
    Notification.STATUS_SCHEDULED: 0,
    Notification.STATUS_SENT: 1,
    Notification.STATUS_DELIVERED: 2,
    Notification.STATUS_READ: 3,
}
_TERMINAL = {Notification.STATUS_READ, Notification.STATUS_FAILED}
_FAILABLE = {Notification.STATUS_SCHEDULED, Notification.STATUS_SENT}


def has_app_installed(patient: Patient) -> bool:
    return AppInstallation.objects.filter(patient=patient, is_active=True).exists()


def require_app_installed(patient: Patient) -> None:
    if not has_app_installed(patient):
        raise AppNotInstalled(
            hint='Cannot schedule notification. Patient needs to install the app first.'
        )


def current_balance(clinic_id: int) -> int:
    return Clinic.objects.values_list('push_notification_balance', flat=True).get(pk=clinic_id)


def debit_balance(clinic_id: int, count: int = 1) -> int:
    """Take ``count`` units from the balance or raise; returns what is left.

    Must run inside a transaction together with the insert it pays for.
    """
    updated = (
        Clinic.objects.filter(pk=clinic_id, push_notification_balance__gte=count)
        .update(push_notification_balance=F('push_notification_balance') - count)
    )
    if not updated:
        balance = current_balance(clinic_id)
        raise InsufficientBalance(
            hint=f'Please top up your push notification balance. '
                 f'You have {balance} remaining but need {count}.',
            balance=balance,
            required=count,
        )
    remaining = current_balance(clinic_id)
    logger.info('Debited %s notification credit(s) from clinic %s, %s left', count, clinic_id, remaining)
    return remaining


def refund_balance(clinic_id: int, count: int = 1) -> int:
    if count <= 0:
        return current_balance(clinic_id)
    Clinic.objects.filter(pk=clinic_id).update(
        push_notification_balance=F('push_notification_balance') + count
    )
    remaining = current_balance(clinic_id)
    logger.info('Refunded %s notification credit(s) to clinic %s, %s left', count, clinic_id, remaining)
    return remaining


def _initial_state(scheduled_date: datetime | None, now: datetime) -> dict[str, Any]:
    if scheduled_date and scheduled_date > now:
        return {'status': Notification.STATUS_SCHEDULED, 'scheduled_date': scheduled_date}
    return {
        'status': Notification.STATUS_SENT,
        'scheduled_date': scheduled_date or now,
        'sent_at': now,
    }


def _build(clinic: Clinic, patient: Patient, item: dict, now: datetime) -> Notification:
    return Notification.objects.create(
        clinic=clinic,
        patient=patient,
        message=item['message'],
        type=item.get('type') or 'reminder',
        category=item.get('category') or 'reminder',
        priority=item.get('priority') or 'normal',
        medicine_reminder=item.get('medicine_reminder'),
        delivery_method='push',
        **_initial_state(item.get('scheduled_date'), now),
    )


def create_notification(*, clinic: Clinic, patient: Patient, message: str,
                        scheduled_date: datetime | None = None, type: str | None = None,
                        category: str | None = None, priority: str | None = None,
                        medicine_reminder=None) -> tuple[Notification, int]:
    """Create one push notification and pay for it.

    Returns the notification and the clinic's remaining balance.
    """
    created, remaining = create_notifications(
        clinic=clinic,
        patient=patient,
        items=[{
            'message': message,
            'scheduled_date': scheduled_date,
            'type': type,
            'category': category,
            'priority': priority,
            'medicine_reminder': medicine_reminder,
        }],
    )
    return created[0], remaining


@transaction.atomic
def create_notifications(*, clinic: Clinic, patient: Patient,
                         items: Iterable[dict]) -> tuple[list[Notification], int]:
    """Create a batch for one patient; the whole batch is paid up front."""
    items = list(items)
    require_app_installed(patient)
    remaining = debit_balance(clinic.pk, len(items))
    now = timezone.now()
    created = [_build(clinic, patient, item, now) for item in items]
    invalidate_dashboard(clinic.pk)
    return created, remaining


@transaction.atomic
def delete_scheduled_notification(notification: Notification) -> int:
    """Delete a still-scheduled notification and refund it."""
    if notification.status != Notification.STATUS_SCHEDULED:
        raise NotificationNotDeletable()
    # Conditional delete so a concurrent send or delete cannot double refund
    _, per_model = Notification.objects.filter(
        pk=notification.pk, status=Notification.STATUS_SCHEDULED
    ).delete()
    if not per_model.get(Notification._meta.label):
        raise NotificationNotDeletable()
    invalidate_dashboard(notification.clinic_id)
    return refund_balance(notification.clinic_id, 1)


def refund_scheduled_for_patient(patient: Patient) -> int:
    """Refund every still-scheduled notification of ``patient``.

    Called inside the transaction that deletes the patient; the rows stay
    locked until the cascade removes them.
    """
    count = len(
        Notification.objects.select_for_update()
        .filter(patient=patient, status=Notification.STATUS_SCHEDULED)
        .values_list('pk', flat=True)
    )
    if count:
        refund_balance(patient.clinic_id, count)
    return count


def can_transition(current: str, new: str) -> bool:
    if current == new:
        return True
    if current in _TERMINAL:
        return False
    if new == Notification.STATUS_FAILED:
        return current in _FAILABLE
    return new in _ORDER and _ORDER[new] > _ORDER[current]


def _lock(notification: Notification) -> Notification:
    """Re-read ``notification`` under a row lock; 404 if it was deleted meanwhile."""
    locked = Notification.objects.select_for_update().filter(pk=notification.pk).first()
    if locked is None:
        raise NotFound('Notification not found')
    return locked


@transaction.atomic
def update_notification(notification: Notification, changes: dict) -> Notification:
    """Apply edits and a status transition, stamping transition times."""
    notification = _lock(notification)
    status = changes.get('status', notification.status)
    if not can_transition(notification.status, status):
        raise InvalidTransition(f'Cannot change status from {notification.status} to {status}')
    edits_content = any(k in changes for k in ('message', 'scheduled_date'))
    if edits_content and notification.status != Notification.STATUS_SCHEDULED:
        raise InvalidTransition('Only scheduled notifications can be edited')

    now = timezone.now()
    fields = ['updated_at']
    for field in ('message', 'scheduled_date', 'failure_reason'):
        if field in changes:
            setattr(notification, field, changes[field])
            fields.append(field)
    if status != notification.status:
        notification.status = status
        fields += ['status', 'sent_at', 'delivered_at', 'read_at']
        if status in (Notification.STATUS_SENT, Notification.STATUS_DELIVERED, Notification.STATUS_READ):
            notification.sent_at = notification.sent_at or now
        if status == Notification.STATUS_DELIVERED:
            notification.delivered_at = now
        elif status == Notification.STATUS_READ:
            notification.read_at = now
    notification.save(update_fields=fields)
    invalidate_dashboard(notification.clinic_id)
    return notification


@transaction.atomic
def dispatch_now(notification: Notification) -> Notification:
    """Send a scheduled notification immediately; it is already paid for."""
    notification = _lock(notification)
    if notification.status != Notification.STATUS_SCHEDULED:
        raise InvalidTransition('Only scheduled notifications can be sent now')
    now = timezone.now()
    notification.status = Notification.STATUS_SENT
    notification.sent_at = now
    notification.scheduled_date = now
    notification.save(update_fields=['status', 'sent_at', 'scheduled_date', 'updated_at'])
    invalidate_dashboard(notification.clinic_id)
    return notification
