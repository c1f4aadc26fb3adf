"""
Patient management views for clinic staff.

Every lookup is scoped to ``request.user.clinic``; a patient of another
clinic is indistinguishable from one that does not exist.
"""
from __future__ import annotations

from django.db.models import Q
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Notification, Patient
from clinic.permissions import IsClinicStaff
from clinic.serializers.notifications import (
    NotificationBatchSerializer,
    NotificationCreateSerializer,
    ScheduledItemSerializer,
)
from clinic.serializers.patients import (
    PatientCreateSerializer,
    PatientListQuerySerializer,
    PatientSearchQuerySerializer,
    PatientUpdateSerializer,
)
from clinic.serializers.payloads import (
    clinic_branding,
    notification_payload,
    patient_basic,
    patient_row,
    prescription_payload,
)
from clinic.serializers.prescriptions import PrescriptionCreateSerializer
from clinic.services import patients as patient_service
from clinic.services.audit import log_action
from clinic.services.notifications import create_notification, create_notifications
from clinic.services.phones import match_mobile
from clinic.services.prescriptions import create_prescription

from .scoping import get_clinic_patient, request_clinic

RECENT_PRESCRIPTIONS = 5


@api_view(['GET', 'POST', 'PATCH'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def patients_collection(request):
    if request.method == 'POST':
        return _create_patient(request)
    if request.method == 'PATCH':
        return _send_adhoc_notification(request)

    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = Patient.objects.filter(clinic_id=request.user.clinic_id)
    search = (vd.get('search') or '').strip()
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(mobile__contains=search))
    qs = patient_service.apply_list_filter(qs, vd['filter'])
    total = qs.count()
    rows = patient_service.with_list_annotations(qs).order_by('-visit_date')[:vd['limit']]
    return Response({'ok': True, 'patients': [patient_row(p) for p in rows], 'total': total})


def _create_patient(request):
    s = PatientCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = patient_service.create_patient(request_clinic(request), dict(s.validated_data))
    log_action(user=request.user, action='patient_create', object_type='patient', object_id=patient.id)
    return Response(
        {'ok': True, 'patient': patient_basic(patient), 'message': 'Patient added successfully'},
        status=status.HTTP_201_CREATED,
    )


def _send_adhoc_notification(request):
    s = NotificationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    patient = get_clinic_patient(request, vd.pop('patient_id'))
    notification, remaining = create_notification(clinic=patient.clinic, patient=patient, **vd)
    return Response(
        {'ok': True, 'notification': notification_payload(notification), 'remainingBalance': remaining},
        status=status.HTTP_201_CREATED,
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def patient_search(request):
    """Look a patient up by phone number within the caller's clinic."""
    q = PatientSearchQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    clinic = request_clinic(request)
    patient = match_mobile(Patient.objects.filter(clinic=clinic), q.validated_data['phone']).first()
    if patient is None:
        raise NotFound('Patient not found')
    last_rx = patient.prescriptions.order_by('-created_at').first()
    return Response({'ok': True, 'patient': {
        'id': patient.id,
        'fullName': patient.name,
        'phoneNumber': patient.mobile,
        'age': patient.age,
        'gender': patient.gender,
        'lastVisit': patient.visit_date,
        'lastDiagnosis': last_rx.diagnosis if last_rx else None,
        'lastDoctor': clinic.doctor_name,
        'medicalRecordNumber': f'MRN{patient.id:06d}',
        'hasAppInstalled': patient.active_installation() is not None,
        'lastAppLogin': patient.last_app_login,
        'clinicId': clinic.id,
        'clinic': clinic_branding(clinic),
    }})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def patient_detail(request, pk: int):
    patient = get_clinic_patient(request, pk)

    if request.method == 'PUT':
        s = PatientUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        patient = patient_service.update_patient(patient, dict(s.validated_data))
        log_action(user=request.user, action='patient_update', object_type='patient', object_id=patient.id,
                   detail={'fields': sorted(s.validated_data)})
        return Response({'ok': True, 'patient': patient_basic(patient)})

    if request.method == 'DELETE':
        patient_id = patient.id
        refunded = patient_service.delete_patient(patient)
        log_action(user=request.user, action='patient_delete', object_type='patient', object_id=patient_id,
                   detail={'refunded': refunded})
        return Response({'ok': True, 'message': 'Patient deleted successfully', 'refunded': refunded})

    installation = patient.active_installation()
    pending = patient.notifications.filter(status=Notification.STATUS_SCHEDULED).order_by('scheduled_date')
    recent = patient.prescriptions.order_by('-created_at')[:RECENT_PRESCRIPTIONS]
    return Response({'ok': True, 'patient': {
        **patient_basic(patient),
        'lastAppLogin': patient.last_app_login,
        'isVerified': patient.is_verified,
        'hasAppInstalled': installation is not None,
        'appInstalledAt': installation.installed_at if installation else None,
        'deviceType': installation.device_type if installation else None,
        'prescriptionCount': patient.prescriptions.count(),
        'notificationCount': patient.notifications.count(),
        'reviewCount': patient.reviews.count(),
        'pendingNotifications': [notification_payload(n) for n in pending],
        'recentPrescriptions': [prescription_payload(rx) for rx in recent],
    }})


@api_view(['GET', 'POST', 'PATCH'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def patient_follow_ups(request, pk: int):
    patient = get_clinic_patient(request, pk)

    if request.method == 'POST':
        s = ScheduledItemSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        notification, remaining = create_notification(clinic=patient.clinic, patient=patient,
                                                      **s.validated_data)
        return Response(
            {'ok': True, 'notification': notification_payload(notification), 'remainingBalance': remaining},
            status=status.HTTP_201_CREATED,
        )

    if request.method == 'PATCH':
        s = NotificationBatchSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        created, remaining = create_notifications(clinic=patient.clinic, patient=patient,
                                                  items=s.validated_data['notifications'])
        return Response(
            {'ok': True, 'notifications': [notification_payload(n) for n in created],
             'remainingBalance': remaining},
            status=status.HTTP_201_CREATED,
        )

    notifications = sorted(
        patient.notifications.all(),
        key=lambda n: (n.status != Notification.STATUS_SCHEDULED, n.scheduled_date),
    )
    return Response({
        'ok': True,
        'patient': {'id': patient.id, 'name': patient.name, 'mobile': patient.mobile},
        'followUps': [notification_payload(n) for n in notifications],
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def patient_prescriptions(request, pk: int):
    patient = get_clinic_patient(request, pk)

    if request.method == 'POST':
        s = PrescriptionCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        rx = create_prescription(patient=patient, **s.validated_data)
        return Response({'ok': True, 'prescription': prescription_payload(rx)}, status=status.HTTP_201_CREATED)

    prescriptions = patient.prescriptions.order_by('-created_at')
    return Response({'ok': True, 'prescriptions': [prescription_payload(rx) for rx in prescriptions]})
