from rest_framework import serializers

from clinic.services.medicines import MEDICINE_FIELDS, normalize_medicines

from .common import CleanCharField, clean_text


class PrescriptionCreateSerializer(serializers.Serializer):
    diagnosis = CleanCharField(max_length=500)
    medicines = serializers.ListField(child=serializers.JSONField(), allow_empty=False)
    notes = CleanCharField(required=False, allow_blank=True)
    advice = CleanCharField(required=False, allow_blank=True)
    visitDate = serializers.DateTimeField(required=False, source='visit_date')
    nextVisitDate = serializers.DateTimeField(required=False, allow_null=True, source='next_visit_date')
    enablePushReminders = serializers.BooleanField(required=False, default=False, source='enable_push_reminders')

    def validate_medicines(self, v):
        medicines = normalize_medicines(v)
        if len(medicines) != len(v):
            raise serializers.ValidationError('Every medicine needs a name')
        return [{k: clean_text(m[k]) for k in MEDICINE_FIELDS} for m in medicines]

    def validate(self, attrs):
        advice = attrs.pop('advice', '')
        attrs['notes'] = attrs.get('notes') or advice
        return attrs


class UploadListQuerySerializer(serializers.Serializer):
    patientId = serializers.IntegerField(source='patient_id')


class UploadCreateSerializer(serializers.Serializer):
    file = serializers.FileField()
    patientId = serializers.IntegerField(source='patient_id')


class UploadDeleteQuerySerializer(serializers.Serializer):
    uploadId = serializers.UUIDField(source='upload_id')
