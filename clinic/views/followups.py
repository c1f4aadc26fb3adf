"""
Follow-up views: the clinic-wide view of scheduled push notifications.
"""
from __future__ import annotations

from datetime import timedelta

from django.db.models import Count, Exists, OuterRef, Q
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import AppInstallation, Notification
from clinic.permissions import IsClinicStaff
from clinic.serializers.notifications import (
    FollowUpCreateSerializer,
    FollowUpDeleteQuerySerializer,
    RuleSendSerializer,
)
from clinic.serializers.payloads import follow_up_payload, notification_payload
from clinic.services.dashboard import local_day_start, percent
from clinic.services.follow_up_rules import RULES_BY_ID, render_for_patient, rules_for_clinic
from clinic.services.notifications import create_notification, current_balance, dispatch_now

from .notifications import delete_notification, get_clinic_notification, notification_detail_response
from .scoping import get_clinic_patient, request_clinic

UPCOMING_DAYS = 7


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def follow_ups_collection(request):
    if request.method == 'POST':
        s = FollowUpCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = dict(s.validated_data)
        patient = get_clinic_patient(request, vd.pop('patient_id'))
        notification, remaining = create_notification(clinic=patient.clinic, patient=patient, **vd)
        return Response(
            {'ok': True, 'followUp': follow_up_payload(notification, True), 'remainingBalance': remaining},
            status=status.HTTP_201_CREATED,
        )

    if request.method == 'DELETE':
        q = FollowUpDeleteQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        notification = get_clinic_notification(request, q.validated_data['id'])
        remaining = delete_notification(request, notification)
        return Response({
            'ok': True,
            'message': 'Follow-up deleted and balance refunded',
            'refunded': True,
            'remainingBalance': remaining,
        })

    has_app = AppInstallation.objects.filter(patient=OuterRef('patient_id'), is_active=True)
    rows = (
        Notification.objects.filter(clinic_id=request.user.clinic_id, status=Notification.STATUS_SCHEDULED)
        .select_related('patient')
        .annotate(app_installed=Exists(has_app))
        .order_by('scheduled_date', 'id')
    )
    return Response({
        'ok': True,
        'followUps': [follow_up_payload(n, n.app_installed) for n in rows],
        'clinicId': request.user.clinic_id,
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def follow_up_rules(request):
    clinic = request_clinic(request)

    if request.method == 'POST':
        s = RuleSendSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        patient = get_clinic_patient(request, vd['patient_id'])
        rule = RULES_BY_ID.get(vd['template_id'])
        if rule is None:
            raise NotFound('Template not found')
        message = (vd.get('custom_message') or '').strip() or render_for_patient(rule, clinic, patient)
        notification, remaining = create_notification(
            clinic=clinic, patient=patient, message=message,
            scheduled_date=vd.get('scheduled_date'), type=rule['type'], category='reminder',
        )
        return Response({
            'ok': True,
            'notification': notification_payload(notification, with_patient=True),
            'templateUsed': rule['name'],
            'remainingBalance': remaining,
        }, status=status.HTTP_201_CREATED)

    templates = rules_for_clinic(clinic)
    return Response({
        'ok': True,
        'templates': templates,
        'clinicName': clinic.name,
        'totalTemplates': len(templates),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def follow_up_stats(request):
    now = timezone.now()
    today = local_day_start(now)
    scheduled = Q(status=Notification.STATUS_SCHEDULED)
    counts = Notification.objects.filter(clinic_id=request.user.clinic_id).aggregate(
        total=Count('id'),
        pending=Count('id', filter=scheduled),
        scheduled_today=Count('id', filter=scheduled & Q(
            scheduled_date__gte=today, scheduled_date__lt=today + timedelta(days=1))),
        upcoming=Count('id', filter=scheduled & Q(
            scheduled_date__gte=now, scheduled_date__lt=now + timedelta(days=UPCOMING_DAYS))),
        sent=Count('id', filter=Q(status=Notification.STATUS_SENT)),
        delivered=Count('id', filter=Q(status=Notification.STATUS_DELIVERED)),
        read=Count('id', filter=Q(status=Notification.STATUS_READ)),
        failed=Count('id', filter=Q(status=Notification.STATUS_FAILED)),
    )
    total_sent = counts['sent'] + counts['delivered'] + counts['read'] + counts['failed']
    return Response({
        'ok': True,
        'scheduledToday': counts['scheduled_today'],
        'pendingCount': counts['pending'],
        'upcomingCount': counts['upcoming'],
        'totalNotifications': counts['total'],
        'sent': counts['sent'],
        'delivered': counts['delivered'],
        'read': counts['read'],
        'failed': counts['failed'],
        'totalSent': total_sent,
        'deliverySuccessRate': percent(counts['delivered'] + counts['read'], total_sent),
        'engagementRate': percent(counts['read'], counts['delivered']),
        'failureRate': percent(counts['failed'], total_sent),
        'notificationBalance': current_balance(request.user.clinic_id),
    })


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def follow_up_detail(request, pk: int):
    return notification_detail_response(request, pk)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def follow_up_send(request, pk: int):
    """Send a scheduled follow-up right away."""
    notification = dispatch_now(get_clinic_notification(request, pk))
    return Response({
        'ok': True,
        'message': 'Follow-up sent',
        'notification': notification_payload(notification, with_patient=True),
    })
