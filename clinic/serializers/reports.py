from django.conf import settings
from rest_framework import serializers

from clinic.services.reports import REPORT_TYPES


class ReportQuerySerializer(serializers.Serializer):
    startDate = serializers.DateField(source='start_date')
    endDate = serializers.DateField(source='end_date')
    type = serializers.ChoiceField(choices=REPORT_TYPES, required=False, default='overview')

    def validate(self, attrs):
        start, end = attrs['start_date'], attrs['end_date']
        if start > end:
            raise serializers.ValidationError('startDate must be on or before endDate')
        if (end - start).days + 1 > settings.REPORT_MAX_DAYS:
            raise serializers.ValidationError(f'Date range cannot exceed {settings.REPORT_MAX_DAYS} days')
        return attrs
