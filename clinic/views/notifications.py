"""
Push notification views.

Creation and deletion go through :mod:`clinic.services.notifications`,
which keeps the clinic balance in step with the rows.
"""
from __future__ import annotations

import math

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Notification
from clinic.permissions import IsClinicStaff
from clinic.serializers.notifications import (
    NotificationCreateSerializer,
    NotificationListQuerySerializer,
    NotificationUpdateSerializer,
)
from clinic.serializers.payloads import notification_payload
from clinic.services.audit import log_action
from clinic.services.notifications import (
    create_notification,
    delete_scheduled_notification,
    update_notification,
)

from .scoping import get_clinic_patient


def get_clinic_notification(request, pk) -> Notification:
    return get_object_or_404(
        Notification.objects.select_related('patient'), pk=pk, clinic_id=request.user.clinic_id
    )


def delete_notification(request, notification: Notification) -> int:
    """Delete a scheduled notification, audit it and return the new balance."""
    remaining = delete_scheduled_notification(notification)
    log_action(user=request.user, action='notification_delete', object_type='notification',
               object_id=notification.pk, detail={'patientId': notification.patient_id, 'refunded': 1})
    return remaining


def notification_detail_response(request, pk):
    """Shared GET/PUT/DELETE handling for a single notification."""
    notification = get_clinic_notification(request, pk)

    if request.method == 'PUT':
        s = NotificationUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        notification = update_notification(notification, dict(s.validated_data))
        return Response({'ok': True, 'notification': notification_payload(notification, with_patient=True)})

    if request.method == 'DELETE':
        remaining = delete_notification(request, notification)
        return Response({
            'ok': True,
            'message': 'Notification deleted and balance refunded',
            'refunded': True,
            'remainingBalance': remaining,
        })

    return Response({'ok': True, 'notification': notification_payload(notification, with_patient=True)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def notifications_collection(request):
    if request.method == 'POST':
        s = NotificationCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = dict(s.validated_data)
        patient = get_clinic_patient(request, vd.pop('patient_id'))
        notification, remaining = create_notification(clinic=patient.clinic, patient=patient, **vd)
        return Response(
            {'ok': True, 'notification': notification_payload(notification, with_patient=True),
             'remainingBalance': remaining},
            status=status.HTTP_201_CREATED,
        )

    q = NotificationListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = Notification.objects.filter(clinic_id=request.user.clinic_id).select_related('patient')
    if vd['status'] != 'all':
        qs = qs.filter(status=vd['status'])
    if vd.get('patient_id'):
        qs = qs.filter(patient_id=vd['patient_id'])
    total = qs.count()
    limit, page = vd['limit'], vd['page']
    offset = (page - 1) * limit
    rows = qs.order_by('-scheduled_date', '-id')[offset:offset + limit]
    return Response({
        'ok': True,
        'notifications': [notification_payload(n, with_patient=True) for n in rows],
        'total': total,
        'page': page,
        'totalPages': math.ceil(total / limit),
        'limit': limit,
    })


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def notification_detail(request, pk: int):
    return notification_detail_response(request, pk)
