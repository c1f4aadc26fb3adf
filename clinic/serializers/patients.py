from rest_framework import serializers

from clinic.models import Patient
from clinic.services.patients import LIST_FILTERS

from .common import CleanCharField, MobileField


class PatientCreateSerializer(serializers.Serializer):
    name = CleanCharField(max_length=255)
    mobile = MobileField()
    age = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=120)
    gender = serializers.ChoiceField(choices=Patient.GENDER_CHOICES, required=False, allow_blank=True)
    notes = CleanCharField(required=False, allow_blank=True)
    visitDate = serializers.DateTimeField(required=False, source='visit_date')

    def validate_name(self, v):
        if not v:
            raise serializers.ValidationError('Name is required')
        return v


class PatientUpdateSerializer(PatientCreateSerializer):
    """All fields optional; only those sent are changed."""
    name = CleanCharField(max_length=255, required=False)
    mobile = MobileField(required=False)
    optOut = serializers.BooleanField(required=False, source='opt_out')


class PatientListQuerySerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)
    filter = serializers.ChoiceField(choices=LIST_FILTERS, required=False, default='all')
    limit = serializers.IntegerField(required=False, min_value=1, max_value=500, default=100)


class PatientSearchQuerySerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=20)
