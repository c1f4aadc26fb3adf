"""
API error types and the unified exception handler.

Every error leaves the API as ``{'ok': False, 'error': {'code', 'message', ...}}``.
Business-rule failures raise one of the :class:`ClinicAPIException`
subclasses below; anything unexpected is logged with its traceback and
answered with a generic 500 so no internal detail reaches the client.
"""
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler, set_rollback

logger = logging.getLogger(__name__)

# Headers DRF sets on error responses that clients rely on
_PASSTHROUGH_HEADERS = ('WWW-Authenticate', 'Retry-After')
_STATUS_CODES = {400: 'invalid', 401: 'not_authenticated', 403: 'permission_denied', 404: 'not_found'}


class ClinicAPIException(APIException):
    """APIException carrying extra payload merged into the error body."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail=None, code=None, **extra):
        super().__init__(detail, code)
        self.extra = extra


class InsufficientBalance(ClinicAPIException):
    default_detail = 'Insufficient notification balance'
    default_code = 'insufficient_balance'


class AppNotInstalled(ClinicAPIException):
    default_detail = 'Patient does not have the app installed'
    default_code = 'app_not_installed'


class NotificationNotDeletable(ClinicAPIException):
    default_detail = 'Only scheduled notifications can be deleted'
    default_code = 'not_deletable'


class InvalidTransition(ClinicAPIException):
    default_detail = 'Invalid status transition'
    default_code = 'invalid_transition'


class DuplicatePatient(ClinicAPIException):
    default_detail = 'Patient with this mobile number already exists'
    default_code = 'duplicate_patient'


class DuplicateReviewRequest(ClinicAPIException):
    default_detail = 'Review request already sent'
    default_code = 'duplicate_review'


class NoEligiblePatients(ClinicAPIException):
    default_detail = 'No eligible patients found'
    default_code = 'no_eligible_patients'


class OTPRejected(ClinicAPIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Invalid OTP'
    default_code = 'invalid_otp'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        request = context.get('request')
        logger.error('Unhandled error on %s %s', getattr(request, 'method', '-'), getattr(request, 'path', '-'),
                     exc_info=(type(exc), exc, exc.__traceback__))
        set_rollback()
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error'}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    error = {
        'code': getattr(exc, 'default_code', None) or _STATUS_CODES.get(resp.status_code, 'api_error'),
        'message': detail,
    }
    error.update(getattr(exc, 'extra', None) or {})
    headers = {h: resp[h] for h in _PASSTHROUGH_HEADERS if resp.has_header(h)}
    return Response({'ok': False, 'error': error}, status=resp.status_code, headers=headers)
