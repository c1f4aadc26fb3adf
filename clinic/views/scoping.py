"""Clinic-scoped lookups shared by the staff views."""
from django.shortcuts import get_object_or_404

from clinic.models import Clinic, Patient


def request_clinic(request) -> Clinic:
    return request.user.clinic


def get_clinic_patient(request, pk) -> Patient:
    """Patient ``pk`` of the caller's clinic, or 404."""
    return get_object_or_404(Patient.objects.select_related('clinic'), pk=pk, clinic_id=request.user.clinic_id)
