"""Phone number normalization for Indian mobile numbers."""
from __future__ import annotations

import re

_NON_DIGITS = re.compile(r'\D+')
_MOBILE = re.compile(r'^[6-9]\d{9}$')


def digits_only(value: str | None) -> str:
    return _NON_DIGITS.sub('', value or '')


def last_ten(value: str | None) -> str:
    """Return the last 10 digits, dropping country code and punctuation."""
    return digits_only(value)[-10:]


def is_valid_mobile(value: str | None) -> bool:
    return bool(_MOBILE.match(value or ''))


def match_mobile(queryset, phone: str | None):
    """Filter ``queryset`` of patients by last-10-digit suffix."""
    suffix = last_ten(phone)
    if len(suffix) < 10:
        return queryset.none()
    return queryset.filter(mobile__endswith=suffix)
