from rest_framework import serializers


class RequestOTPSerializer(serializers.Serializer):
    phoneNumber = serializers.CharField(max_length=20, source='phone_number')
    clinicId = serializers.IntegerField(required=False, allow_null=True, source='clinic_id')


class VerifyOTPSerializer(serializers.Serializer):
    phoneNumber = serializers.CharField(max_length=20, source='phone_number')
    otpCode = serializers.CharField(max_length=10, source='otp_code')
    clinicId = serializers.IntegerField(required=False, allow_null=True, source='clinic_id')
    deviceType = serializers.CharField(required=False, allow_blank=True, max_length=20, source='device_type')
    appVersion = serializers.CharField(required=False, allow_blank=True, max_length=20, source='app_version')
    fcmToken = serializers.CharField(required=False, allow_blank=True, max_length=512, source='fcm_token')


class PatientScopeQuerySerializer(serializers.Serializer):
    patientId = serializers.IntegerField(required=False, source='patient_id')


class PatientPrescriptionQuerySerializer(PatientScopeQuerySerializer):
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=20)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
