"""GPS tracking serializers."""
from rest_framework import serializers

from apps.core.serializers import NormalizedChoiceField, UserSummarySerializer
from apps.core.vocabulary import CASE_STATUS

from .models import LocationPoint, TrackingState


class SafeZoneSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    radius = serializers.FloatField(help_text='meters')

    def validate_radius(self, value):
        if value <= 0:
            raise serializers.ValidationError('Safe zone radius must be positive')
        return value


class LocationPointSerializer(serializers.ModelSerializer):
    class Meta:
        model = LocationPoint
        fields = ['sequence', 'latitude', 'longitude', 'recorded_at', 'battery_level', 'signal_strength', 'device_id']
        read_only_fields = fields


class TrackingStateSerializer(serializers.ModelSerializer):
    case_id = serializers.CharField(source='case.case_id', read_only=True)
    animal_type = serializers.CharField(source='case.animal_type', read_only=True)
    case_status = serializers.CharField(source='case.status', read_only=True)
    safe_zone = serializers.SerializerMethodField()
    last_location = serializers.SerializerMethodField()
    enabled_by = UserSummarySerializer(read_only=True, allow_null=True)

    class Meta:
        model = TrackingState
        fields = [
            'case_id', 'animal_type', 'case_status', 'is_active', 'device_id',
            'safe_zone', 'last_location', 'enabled_at', 'enabled_by',
            'disabled_at', 'disabled_reason',
        ]
        read_only_fields = fields

    def get_safe_zone(self, obj):
        zone = obj.safe_zone
        if zone is None:
            return None
        return {'latitude': zone.latitude, 'longitude': zone.longitude, 'radius': zone.radius}

    def get_last_location(self, obj):
        if not obj.has_location:
            return None
        return {
            'latitude': obj.last_latitude,
            'longitude': obj.last_longitude,
            'timestamp': obj.last_recorded_at,
        }


class EnableTrackingSerializer(serializers.Serializer):
    device_id = serializers.CharField(max_length=100)
    safe_zone = SafeZoneSerializer(required=False)


class DisableTrackingSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class RecordLocationSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    device_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    battery_level = serializers.IntegerField(min_value=0, max_value=100, required=False, allow_null=True)
    signal_strength = serializers.IntegerField(required=False, allow_null=True)
    recorded_at = serializers.DateTimeField(required=False)


class HistoryFilterSerializer(serializers.Serializer):
    start_date = serializers.DateTimeField(required=False)
    end_date = serializers.DateTimeField(required=False)
    limit = serializers.IntegerField(min_value=1, max_value=1000, default=100)


class ActiveTrackingFilterSerializer(serializers.Serializer):
    area = serializers.CharField(required=False)
    status = NormalizedChoiceField(vocabulary=CASE_STATUS, required=False)


class TrackingAlertSerializer(serializers.Serializer):
    type = serializers.CharField()
    severity = serializers.CharField()
    case_id = serializers.CharField()
    message = serializers.CharField()
    details = serializers.DictField()
