import bleach
from rest_framework import serializers

from clinic.services.phones import is_valid_mobile, last_ten


def clean_text(v):
    """Strip all markup from free text."""
    return bleach.clean((v or '').strip(), tags=[], strip=True)


class CleanCharField(serializers.CharField):
    """CharField whose value has markup stripped."""

    def to_internal_value(self, data):
        return clean_text(super().to_internal_value(data))


class MobileField(serializers.CharField):
    """Accepts any formatting and stores the last ten digits."""

    def __init__(self, **kwargs):
        kwargs.setdefault('max_length', 20)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        v = last_ten(super().to_internal_value(data))
        if not is_valid_mobile(v):
            raise serializers.ValidationError('Invalid mobile number. Enter a 10 digit number starting with 6-9.')
        return v

