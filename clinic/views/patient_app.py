"""
Endpoints used by the patient mobile app.

Login is by OTP to the registered mobile number; a successful
verification returns a Bearer token that identifies the patient on the
remaining endpoints.  CORS for these paths is handled by
:class:`clinic.middleware.PatientAppCorsMiddleware`.
"""
from __future__ import annotations

import math

from django.conf import settings
from django.utils import timezone
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from clinic.authentication import PatientTokenAuthentication, issue_patient_token
from clinic.models import MedicineReminder, Patient, Review
from clinic.permissions import IsAppPatient
from clinic.serializers.patient_app import (
    PatientPrescriptionQuerySerializer,
    PatientScopeQuerySerializer,
    RequestOTPSerializer,
    VerifyOTPSerializer,
)
from clinic.serializers.payloads import clinic_branding, prescription_payload, reminder_payload, review_payload
from clinic.services.otp import check_otp, complete_login, issue_otp
from clinic.services.phones import match_mobile
from clinic.services.prescriptions import current_reminders, group_by_time

RECENT_PRESCRIPTIONS = 10
RECENT_REVIEWS = 5


def _find_patient(phone: str, clinic_id: int | None) -> Patient | None:
    qs = Patient.objects.select_related('clinic')
    if clinic_id:
        qs = qs.filter(clinic_id=clinic_id)
    return match_mobile(qs, phone).order_by('-visit_date', '-id').first()


def _token_patient(request, query_serializer=PatientScopeQuerySerializer):
    """The token's patient; a ``patientId`` parameter must name the same one."""
    q = query_serializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    requested = q.validated_data.get('patient_id')
    if requested is not None and requested != request.user.id:
        raise PermissionDenied('Access denied for this patient')
    return request.user, q.validated_data


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def request_otp(request):
    s = RequestOTPSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = _find_patient(s.validated_data['phone_number'], s.validated_data.get('clinic_id'))
    if patient is None:
        raise NotFound('Patient not found. Please visit the clinic to register.')
    code = issue_otp(patient)
    data = {
        'retryAfter': settings.OTP_RETRY_AFTER_SECONDS,
        'otpExpiresIn': settings.OTP_TTL_SECONDS,
    }
    if settings.OTP_DEV_MODE:
        data['demoOTP'] = code
    return Response({'ok': True, 'message': 'OTP sent successfully', 'data': data})


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def verify_otp(request):
    s = VerifyOTPSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    patient = _find_patient(vd['phone_number'], vd.get('clinic_id'))
    if patient is None:
        raise NotFound('Patient not found. Please visit the clinic to register.')
    check_otp(patient, vd['otp_code'])
    complete_login(
        patient,
        device_type=vd.get('device_type', ''),
        app_version=vd.get('app_version', ''),
        fcm_token=vd.get('fcm_token', ''),
    )
    clinic = patient.clinic
    return Response({'ok': True, 'message': 'Login successful', 'data': {
        'token': issue_patient_token(patient),
        'patient': {
            'id': patient.id,
            'name': patient.name,
            'mobile': patient.mobile,
            'clinicId': clinic.id,
            'clinicName': clinic.name,
            'clinicPhone': clinic.phone,
            'clinicAddress': clinic.address,
            'age': patient.age,
            'gender': patient.gender,
            'lastVisit': patient.visit_date,
            'hasAppInstalled': patient.active_installation() is not None,
            'isVerified': patient.is_verified,
        },
    }})


# ScopedRateThrottle reads the scope from the wrapped view class
request_otp.cls.throttle_scope = 'otp'
verify_otp.cls.throttle_scope = 'otp'


@api_view(['GET'])
@authentication_classes([PatientTokenAuthentication])
@permission_classes([IsAppPatient])
def patient_profile(request):
    patient, _ = _token_patient(request)
    prescriptions = patient.prescriptions.order_by('-created_at')
    reminders = patient.medicine_reminders.all()
    active_reminders = reminders.filter(status=MedicineReminder.STATUS_ACTIVE).order_by('start_date', 'id')
    reviews = patient.reviews.order_by('-request_date')
    return Response({'ok': True, 'data': {
        'patient': {
            'id': patient.id,
            'name': patient.name,
            'mobile': patient.mobile,
            'age': patient.age,
            'gender': patient.gender,
            'visitDate': patient.visit_date,
            'lastAppLogin': patient.last_app_login,
            'isVerified': patient.is_verified,
            'initials': patient.initials,
        },
        'clinic': {**clinic_branding(patient.clinic), 'googleReviewLink': patient.clinic.google_review_link},
        'recentPrescriptions': [prescription_payload(rx) for rx in prescriptions[:RECENT_PRESCRIPTIONS]],
        'activeReminders': [reminder_payload(r) for r in active_reminders],
        'recentReviews': [review_payload(r) for r in reviews[:RECENT_REVIEWS]],
        'stats': {
            'totalPrescriptions': prescriptions.count(),
            'activeReminders': active_reminders.count(),
            'completedReminders': reminders.filter(status=MedicineReminder.STATUS_COMPLETED).count(),
            'pendingReviews': reviews.filter(status__in=Review.OPEN_STATUSES).count(),
        },
    }})


@api_view(['GET'])
@authentication_classes([PatientTokenAuthentication])
@permission_classes([IsAppPatient])
def patient_reminders(request):
    patient, _ = _token_patient(request)
    today = timezone.localdate()
    reminders = current_reminders(patient, today)
    return Response({'ok': True, 'data': {
        'reminders': [reminder_payload(r) for r in reminders],
        'groupedReminders': group_by_time(reminders),
        'today': today.isoformat(),
        'patientId': patient.id,
        'count': len(reminders),
    }})


@api_view(['GET'])
@authentication_classes([PatientTokenAuthentication])
@permission_classes([IsAppPatient])
def patient_prescriptions(request):
    patient, vd = _token_patient(request, PatientPrescriptionQuerySerializer)
    limit, page = vd['limit'], vd['page']
    qs = patient.prescriptions.order_by('-created_at', '-id')
    total = qs.count()
    offset = (page - 1) * limit
    return Response({'ok': True, 'data': {
        'prescriptions': [prescription_payload(rx) for rx in qs[offset:offset + limit]],
        'pagination': {'total': total, 'page': page, 'limit': limit, 'pages': math.ceil(total / limit)},
    }})
