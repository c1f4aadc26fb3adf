from rest_framework import serializers

from clinic.models import Notification

from .common import CleanCharField

MAX_BATCH = 50


class NotificationItemSerializer(serializers.Serializer):
    message = CleanCharField()
    scheduledDate = serializers.DateTimeField(required=False, allow_null=True, source='scheduled_date')
    type = serializers.CharField(required=False, allow_blank=True, max_length=32)
    category = serializers.CharField(required=False, allow_blank=True, max_length=32)
    priority = serializers.ChoiceField(choices=Notification.PRIORITY_CHOICES, required=False)

    def validate_message(self, v):
        if not v:
            raise serializers.ValidationError('Message is required')
        return v


class ScheduledItemSerializer(NotificationItemSerializer):
    """Item whose schedule date is mandatory."""
    scheduledDate = serializers.DateTimeField(source='scheduled_date')


class NotificationCreateSerializer(NotificationItemSerializer):
    patientId = serializers.IntegerField(source='patient_id')


class FollowUpCreateSerializer(ScheduledItemSerializer):
    patientId = serializers.IntegerField(source='patient_id')


class NotificationBatchSerializer(serializers.Serializer):
    notifications = ScheduledItemSerializer(many=True, allow_empty=False)

    def validate_notifications(self, v):
        if len(v) > MAX_BATCH:
            raise serializers.ValidationError(f'At most {MAX_BATCH} notifications per batch')
        return v


class NotificationUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Notification.STATUS_CHOICES, required=False)
    message = CleanCharField(required=False)
    scheduledDate = serializers.DateTimeField(required=False, source='scheduled_date')
    failureReason = CleanCharField(required=False, allow_blank=True, max_length=500, source='failure_reason')


class NotificationListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[('all', 'all')] + list(Notification.STATUS_CHOICES), required=False, default='all'
    )
    patientId = serializers.IntegerField(required=False, source='patient_id')
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200, default=50)
    page = serializers.IntegerField(required=False, min_value=1, default=1)


class FollowUpDeleteQuerySerializer(serializers.Serializer):
    id = serializers.IntegerField()


class RuleSendSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(source='patient_id')
    templateId = serializers.CharField(source='template_id')
    customMessage = CleanCharField(required=False, allow_blank=True, source='custom_message')
    scheduledDate = serializers.DateTimeField(required=False, allow_null=True, source='scheduled_date')
