"""
Prescription views and scanned-prescription uploads.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Prescription, UploadedPrescription
from clinic.permissions import IsClinicStaff
from clinic.serializers.payloads import (
    clinic_branding,
    prescription_payload,
    prescription_row,
    upload_payload,
)
from clinic.serializers.prescriptions import (
    UploadCreateSerializer,
    UploadDeleteQuerySerializer,
    UploadListQuerySerializer,
)
from clinic.services.audit import log_action
from clinic.services.uploads import delete_upload, store_upload

from .scoping import get_clinic_patient


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def prescriptions_list(request):
    rows = (
        Prescription.objects.filter(clinic_id=request.user.clinic_id)
        .select_related('patient')
        .order_by('-created_at', '-id')
    )
    prescriptions = [prescription_row(rx) for rx in rows]
    return Response({'ok': True, 'prescriptions': prescriptions, 'total': len(prescriptions)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def prescription_detail(request, pk: int):
    """A prescription formatted for printing."""
    rx = get_object_or_404(
        Prescription.objects.select_related('patient', 'clinic'), pk=pk, clinic_id=request.user.clinic_id
    )
    patient, clinic = rx.patient, rx.clinic
    return Response({'ok': True, 'prescription': {
        **prescription_payload(rx),
        'date': rx.visit_date,
        'patient': {
            'id': patient.id,
            'name': patient.name,
            'mobile': patient.mobile,
            'age': patient.age,
            'gender': patient.gender,
        },
        'clinic': {
            'id': clinic.id,
            'name': clinic.name,
            'doctorName': clinic.doctor_name,
            'phone': clinic.phone,
            'address': clinic.address,
            'city': clinic.city,
        },
        'clinicBranding': clinic_branding(clinic),
    }})


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def prescription_uploads(request):
    if request.method == 'POST':
        s = UploadCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        patient = get_clinic_patient(request, s.validated_data['patient_id'])
        upload = store_upload(patient=patient, f=s.validated_data['file'],
                              uploaded_by=request.user.get_full_name() or request.user.username)
        log_action(user=request.user, action='upload_create', object_type='upload', object_id=upload.id,
                   detail={'patientId': patient.id, 'fileName': upload.file_name})
        return Response(
            {'ok': True, 'upload': upload_payload(upload), 'message': 'Prescription uploaded successfully'},
            status=status.HTTP_201_CREATED,
        )

    if request.method == 'DELETE':
        q = UploadDeleteQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        upload = get_object_or_404(
            UploadedPrescription, pk=q.validated_data['upload_id'], clinic_id=request.user.clinic_id
        )
        upload_id, patient_id = upload.id, upload.patient_id
        delete_upload(upload)
        log_action(user=request.user, action='upload_delete', object_type='upload', object_id=upload_id,
                   detail={'patientId': patient_id})
        return Response({'ok': True, 'message': 'Upload deleted successfully'})

    q = UploadListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    patient = get_clinic_patient(request, q.validated_data['patient_id'])
    uploads = patient.uploads.order_by('-uploaded_at')
    return Response({'ok': True, 'uploads': [upload_payload(u) for u in uploads]})


# ScopedRateThrottle reads the scope from the wrapped view class
prescription_uploads.cls.throttle_scope = 'upload'
