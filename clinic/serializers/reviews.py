from rest_framework import serializers

from clinic.models import Review

from .common import CleanCharField

DELIVERY_METHODS = ('push', 'sms', 'whatsapp')


class ReviewCreateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(source='patient_id')
    platform = serializers.CharField(required=False, default='google', max_length=32)
    deliveryMethod = serializers.ChoiceField(
        choices=DELIVERY_METHODS, required=False, default='push', source='delivery_method'
    )
    scheduledDate = serializers.DateTimeField(required=False, allow_null=True, source='scheduled_date')


class ReviewBulkSerializer(serializers.Serializer):
    patientIds = serializers.ListField(
        child=serializers.IntegerField(), allow_empty=False, max_length=500, source='patient_ids'
    )
    platform = serializers.CharField(required=False, default='google', max_length=32)
    deliveryMethod = serializers.ChoiceField(
        choices=DELIVERY_METHODS, required=False, default='push', source='delivery_method'
    )
    scheduledDate = serializers.DateTimeField(required=False, allow_null=True, source='scheduled_date')


class ReviewUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Review.STATUS_CHOICES, required=False)
    rating = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=5)
    reviewText = CleanCharField(required=False, allow_blank=True, source='review_text')


class ReviewListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[('all', 'all')] + list(Review.STATUS_CHOICES), required=False, default='all'
    )
    patientId = serializers.IntegerField(required=False, source='patient_id')
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200, default=50)
