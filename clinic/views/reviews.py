from __future__ import annotations

from django.db.models import Count
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Review
from clinic.permissions import IsClinicStaff
from clinic.serializers.payloads import review_payload
from clinic.serializers.reviews import (
    ReviewBulkSerializer,
    ReviewCreateSerializer,
    ReviewListQuerySerializer,
    ReviewUpdateSerializer,
)
from clinic.services import reviews as review_service

from .scoping import get_clinic_patient, request_clinic


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def reviews_collection(request):
    clinic = request_clinic(request)

    if request.method == 'POST':
        s = ReviewCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = dict(s.validated_data)
        patient = get_clinic_patient(request, vd.pop('patient_id'))
        review = review_service.request_review(clinic=clinic, patient=patient, **vd)
        return Response(
            {'ok': True, 'review': review_payload(review), 'clinicReviewLink': clinic.google_review_link},
            status=status.HTTP_201_CREATED,
        )

    q = ReviewListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = Review.objects.filter(clinic=clinic).select_related('patient')
    if vd['status'] != 'all':
        qs = qs.filter(status=vd['status'])
    if vd.get('patient_id'):
        qs = qs.filter(patient_id=vd['patient_id'])
    by_status = dict(
        Review.objects.filter(clinic=clinic).values('status').annotate(n=Count('id')).values_list('status', 'n')
    )
    rows = qs.order_by('-request_date', '-id')[:vd['limit']]
    return Response({
        'ok': True,
        'reviews': [review_payload(r, with_patient=True) for r in rows],
        'total': qs.count(),
        'stats': {key: by_status.get(key, 0) for key, _ in Review.STATUS_CHOICES},
    })


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def review_detail(request, pk: int):
    review = get_object_or_404(Review.objects.select_related('patient'), pk=pk, clinic_id=request.user.clinic_id)
    if request.method == 'PUT':
        s = ReviewUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        review = review_service.update_review(review, dict(s.validated_data))
    return Response({'ok': True, 'review': review_payload(review, with_patient=True)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def reviews_schedule_bulk(request):
    s = ReviewBulkSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    clinic = request_clinic(request)
    result = review_service.schedule_bulk(clinic=clinic, **s.validated_data)
    return Response({
        'ok': True,
        'scheduled': len(result['reviews']),
        'skipped': result['skipped'],
        'existingRequests': result['existingRequests'],
        'reviews': [review_payload(r) for r in result['reviews']],
        'clinicReviewLink': clinic.google_review_link,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def review_stats(request):
    return Response({'ok': True, **review_service.review_stats(request_clinic(request))})
