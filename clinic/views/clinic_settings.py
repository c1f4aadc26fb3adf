"""
Clinic settings: branding and preferences (PUT), balance top-up and
delivery counters (PATCH).
"""
from __future__ import annotations

from django.db import transaction
from django.db.models import F
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Clinic
from clinic.permissions import IsClinicAdminOrReadOnly, IsClinicStaff
from clinic.serializers.clinic_settings import ClinicPatchSerializer, ClinicUpdateSerializer
from clinic.serializers.payloads import clinic_settings
from clinic.services.audit import log_action
from clinic.services.dashboard import invalidate_dashboard


def _merge_settings(clinic: Clinic, incoming: dict) -> dict:
    return {**(clinic.settings or {}), **incoming}


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated, IsClinicStaff, IsClinicAdminOrReadOnly])
def clinic_settings_view(request):
    if request.method == 'GET':
        clinic = Clinic.objects.get(pk=request.user.clinic_id)
        return Response({'ok': True, 'clinic': clinic_settings(clinic)})
    with transaction.atomic():
        clinic = Clinic.objects.select_for_update().get(pk=request.user.clinic_id)
        if request.method == 'PUT':
            return _update_clinic(request, clinic)
        return _patch_clinic(request, clinic)


def _update_clinic(request, clinic: Clinic):
    s = ClinicUpdateSerializer(data=request.data, context={'clinic': clinic})
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    if 'settings' in vd:
        vd['settings'] = _merge_settings(clinic, vd['settings'])
    for field, value in vd.items():
        setattr(clinic, field, value)
    clinic.save()
    log_action(user=request.user, action='settings_update', object_type='clinic', object_id=clinic.id,
               detail={'fields': sorted(vd)})
    return Response({'ok': True, 'message': 'Clinic settings updated successfully',
                     'clinic': clinic_settings(clinic)})


def _patch_clinic(request, clinic: Clinic):
    s = ClinicPatchSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    updates = {}
    top_up = vd.pop('push_notification_balance', None)
    if top_up:
        updates['push_notification_balance'] = F('push_notification_balance') + top_up
    if 'settings' in vd:
        updates['settings'] = _merge_settings(clinic, vd.pop('settings'))
    updates.update(vd)
    Clinic.objects.filter(pk=clinic.pk).update(**updates)
    clinic.refresh_from_db()
    invalidate_dashboard(clinic.pk)
    if top_up:
        log_action(user=request.user, action='balance_topup', object_type='clinic', object_id=clinic.id,
                   detail={'amount': top_up, 'balance': clinic.push_notification_balance})
    log_action(user=request.user, action='settings_update', object_type='clinic', object_id=clinic.id,
               detail={'fields': sorted(s.validated_data)})
    return Response({
        'ok': True,
        'message': 'Clinic settings updated successfully',
        'updates': sorted(s.validated_data),
        'pushNotificationBalance': clinic.push_notification_balance,
        'pushDeliveryRate': clinic.push_delivery_rate,
        'hasAppUsers': clinic.has_app_users,
    })
