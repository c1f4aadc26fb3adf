"""
OTP login for the patient mobile app.

Codes are stored on the patient row with an expiry.  With
``OTP_FIXED_CODE`` set every request stores that code (useful for demo
clinics without an SMS provider); otherwise a random six-digit code is
drawn.  ``OTP_DEV_MODE`` additionally accepts any six-digit code.
"""
from __future__ import annotations

import logging
import re
import secrets
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from clinic.exceptions import OTPRejected
from clinic.models import AppInstallation, Patient

logger = logging.getLogger(__name__)

_SIX_DIGITS = re.compile(r'^\d{6}$')


def generate_code() -> str:
    return settings.OTP_FIXED_CODE or f"{secrets.randbelow(10 ** 6):06d}"


def send_otp(phone: str, code: str) -> None:
    """Deliver the code to the patient.

    No SMS gateway is wired in; the send is logged with a masked number.
    """
    logger.info('OTP issued for phone ending %s', phone[-4:])
    if settings.OTP_DEV_MODE:
        logger.debug('Dev OTP for %s is %s', phone[-4:], code)


def issue_otp(patient: Patient) -> str:
    code = generate_code()
    patient.otp_code = code
    patient.otp_expires_at = timezone.now() + timedelta(seconds=settings.OTP_TTL_SECONDS)
    patient.save(update_fields=['otp_code', 'otp_expires_at', 'updated_at'])
    send_otp(patient.mobile, code)
    return code


def check_otp(patient: Patient, code: str) -> None:
    """Raise :class:`OTPRejected` unless ``code`` verifies for ``patient``."""
    code = (code or '').strip()
    if settings.OTP_DEV_MODE:
        if not _SIX_DIGITS.match(code):
            raise OTPRejected('Invalid OTP format. Use 6 digits.')
        return
    if not patient.otp_code or not secrets.compare_digest(patient.otp_code, code):
        raise OTPRejected('Invalid OTP')
    if not patient.otp_expires_at or patient.otp_expires_at < timezone.now():
        raise OTPRejected('OTP expired. Please request a new one.')


def complete_login(patient: Patient, *, device_type: str = '', app_version: str = '',
                   fcm_token: str = '') -> Patient:
    """Clear the used code, mark the patient verified and bind the device."""
    now = timezone.now()
    patient.otp_code = ''
    patient.otp_expires_at = None
    patient.is_verified = True
    patient.last_app_login = now
    patient.save(update_fields=['otp_code', 'otp_expires_at', 'is_verified', 'last_app_login', 'updated_at'])
    if device_type or fcm_token:
        installation = patient.active_installation()
        if installation is None:
            installation = AppInstallation(patient=patient, installed_at=now)
        installation.device_type = device_type or installation.device_type
        installation.app_version = app_version or installation.app_version
        installation.fcm_token = fcm_token or installation.fcm_token
        installation.is_active = True
        installation.last_seen_at = now
        installation.save()
    return patient
