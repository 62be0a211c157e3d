"""GPS tracking views."""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authz.permissions import IsAnimalCareStaff

from . import services
from .serializers import (
    ActiveTrackingFilterSerializer,
    DisableTrackingSerializer,
    EnableTrackingSerializer,
    HistoryFilterSerializer,
    LocationPointSerializer,
    RecordLocationSerializer,
    SafeZoneSerializer,
    TrackingAlertSerializer,
    TrackingStateSerializer,
)


class TrackingViewSet(viewsets.GenericViewSet):
    """
    GPS tracking keyed by case.

    Endpoints:
    - POST /api/v1/tracking/{case_id}/enable/
    - POST /api/v1/tracking/{case_id}/disable/
    - GET/POST /api/v1/tracking/{case_id}/location/
    - GET /api/v1/tracking/{case_id}/history/
    - PUT /api/v1/tracking/{case_id}/safe-zone/
    - GET /api/v1/tracking/active/
    - GET /api/v1/tracking/alerts/
    """
    permission_classes = [IsAnimalCareStaff]
    serializer_class = TrackingStateSerializer
    lookup_url_kwarg = 'case_id'

    @action(detail=True, methods=['post'])
    def enable(self, request, case_id=None):
        serializer = EnableTrackingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        state = services.enable_tracking(
            case_id,
            request.user,
            serializer.validated_data['device_id'],
            safe_zone=serializer.validated_data.get('safe_zone'),
        )
        return Response(TrackingStateSerializer(state).data)

    @action(detail=True, methods=['post'])
    def disable(self, request, case_id=None):
        serializer = DisableTrackingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        state = services.disable_tracking(case_id, request.user, serializer.validated_data['reason'])
        return Response(TrackingStateSerializer(state).data)

    @action(detail=True, methods=['get', 'post'])
    def location(self, request, case_id=None):
        """
        GET: current tracking state and last location.
        POST: record a location ping, returns the point and any alerts.
        """
        if request.method == 'GET':
            state = services.get_current_location(case_id, request.user)
            return Response(TrackingStateSerializer(state).data)

        serializer = RecordLocationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        update = services.record_location(
            case_id,
            data['latitude'],
            data['longitude'],
            battery_level=data.get('battery_level'),
            signal_strength=data.get('signal_strength'),
            device_id=data.get('device_id'),
            recorded_by=request.user,
            recorded_at=data.get('recorded_at'),
        )
        return Response({
            'location': LocationPointSerializer(update.location).data,
            'alerts': TrackingAlertSerializer([a.as_dict() for a in update.alerts], many=True).data,
        }, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def history(self, request, case_id=None):
        filters = HistoryFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        state, points = services.get_history(
            case_id,
            request.user,
            start=filters.validated_data.get('start_date'),
            end=filters.validated_data.get('end_date'),
            limit=filters.validated_data['limit'],
        )
        return Response({
            'case_id': state.case.case_id,
            'location_history': LocationPointSerializer(points, many=True).data,
            'total_points': len(points),
            'safe_zone': TrackingStateSerializer(state).data['safe_zone'],
        })

    @action(detail=True, methods=['put', 'post'], url_path='safe-zone')
    def safe_zone(self, request, case_id=None):
        serializer = SafeZoneSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        state = services.update_safe_zone(case_id, request.user, **serializer.validated_data)
        return Response(TrackingStateSerializer(state).data)

    @action(detail=False, methods=['get'])
    def active(self, request):
        filters = ActiveTrackingFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        states = services.active_tracked_cases(**filters.validated_data)
        return Response({
            'animals': TrackingStateSerializer(states, many=True).data,
            'total_active': states.count(),
        })

    @action(detail=False, methods=['get'])
    def alerts(self, request):
        data = services.get_alerts()
        return Response({
            'alerts': TrackingAlertSerializer([a.as_dict() for a in data['alerts']], many=True).data,
            'summary': data['summary'],
        })
