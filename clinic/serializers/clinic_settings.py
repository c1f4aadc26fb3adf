from rest_framework import serializers

from clinic.models import Clinic

from .common import CleanCharField

_HEX_COLOR = r'^#[0-9a-fA-F]{3,8}$'


class ClinicUpdateSerializer(serializers.Serializer):
    name = CleanCharField(required=False, max_length=255)
    doctorName = CleanCharField(required=False, max_length=255, source='doctor_name')
    email = serializers.EmailField(required=False, allow_blank=True)
    address = CleanCharField(required=False, allow_blank=True)
    city = CleanCharField(required=False, allow_blank=True, max_length=100)
    phone = serializers.CharField(required=False, max_length=20)
    googleReviewLink = serializers.URLField(required=False, allow_blank=True, max_length=512,
                                            source='google_review_link')
    language = serializers.ChoiceField(choices=Clinic.LANGUAGE_CHOICES, required=False)
    logoUrl = serializers.CharField(required=False, allow_blank=True, max_length=512, source='logo_url')
    primaryColor = serializers.RegexField(_HEX_COLOR, required=False, source='primary_color')
    secondaryColor = serializers.RegexField(_HEX_COLOR, required=False, source='secondary_color')
    accentColor = serializers.RegexField(_HEX_COLOR, required=False, source='accent_color')
    workingHours = CleanCharField(required=False, allow_blank=True, max_length=100, source='working_hours')
    emergencyPhone = serializers.CharField(required=False, allow_blank=True, max_length=20,
                                           source='emergency_phone')
    supportEmail = serializers.EmailField(required=False, allow_blank=True, source='support_email')
    settings = serializers.DictField(required=False)

    def validate_phone(self, v):
        v = v.strip()
        clinic = self.context.get('clinic')
        qs = Clinic.objects.filter(phone=v)
        if clinic is not None:
            qs = qs.exclude(pk=clinic.pk)
        if qs.exists():
            raise serializers.ValidationError('Another clinic already uses this phone number')
        return v


class ClinicPatchSerializer(serializers.Serializer):
    pushNotificationBalance = serializers.IntegerField(required=False, min_value=1,
                                                       source='push_notification_balance')
    pushDeliveryRate = serializers.FloatField(required=False, min_value=0, max_value=100,
                                              source='push_delivery_rate')
    hasAppUsers = serializers.IntegerField(required=False, min_value=0, source='has_app_users')
    settings = serializers.DictField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('No valid fields to update')
        return attrs
