"""
Authentication backends for staff and patient-app requests.

Staff use DRF token authentication with the ``Token`` keyword.  Patients
of the mobile app authenticate with a ``Bearer`` access token issued by
the OTP flow; it is a simplejwt access token carrying patient claims
rather than a user id, so it is decoded here and resolved to a
:class:`~clinic.models.Patient`.
"""
from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from rest_framework import authentication, exceptions
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from .models import Patient

PATIENT_TOKEN_TYPE = 'patient'


class TokenAuthentication(authentication.TokenAuthentication):
    """Staff token authentication using the ``Token`` keyword."""

    keyword = 'Token'


def issue_patient_token(patient: Patient) -> str:
    """Return a signed access token for the mobile app."""
    token = AccessToken()
    token.set_exp(lifetime=timedelta(days=settings.PATIENT_TOKEN_DAYS))
    token['type'] = PATIENT_TOKEN_TYPE
    token['patient_id'] = patient.id
    token['clinic_id'] = patient.clinic_id
    token['mobile'] = patient.mobile
    return str(token)


class PatientTokenAuthentication(authentication.BaseAuthentication):
    keyword = 'Bearer'

    def authenticate(self, request):
        auth = authentication.get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None
        if len(auth) != 2:
            raise exceptions.AuthenticationFailed('Invalid authorization header.')
        try:
            token = AccessToken(auth[1].decode())
        except (TokenError, UnicodeError):
            raise exceptions.AuthenticationFailed('Invalid or expired token.')
        if token.get('type') != PATIENT_TOKEN_TYPE or not token.get('patient_id'):
            raise exceptions.AuthenticationFailed('Invalid or expired token.')
        patient = (
            Patient.objects.select_related('clinic')
            .filter(pk=token['patient_id'], clinic_id=token.get('clinic_id'))
            .first()
        )
        if patient is None:
            raise exceptions.AuthenticationFailed('Patient not found.')
        return patient, token

    def authenticate_header(self, request):
        return self.keyword
