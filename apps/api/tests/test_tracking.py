"""
GPS tracking: enable/disable, location history and alerts.

Test coverage:
1. Enabling requires a device and the assignee or an officer
2. Location pings require active tracking
3. History is bounded; the oldest points are evicted
4. Geofence, no-movement and low-battery alerts
5. Cross-case alert summary and active listing
"""
import math
from datetime import timedelta

import pytest
from django.utils import timezone

from apps.core.exceptions import Conflict, DomainValidationError, Forbidden, NotFound
from apps.tracking import services
from apps.tracking.geo import EARTH_RADIUS_METERS
from apps.tracking.models import LocationPoint
from apps.tracking.services import AlertType, Severity

SAFE_ZONE = {'latitude': 7.95, 'longitude': 80.75, 'radius': 1000}


@pytest.fixture
def tracked_case(assigned_case, vet_user):
    """Assigned case with active tracking and a 1km safe zone."""
    services.enable_tracking(assigned_case.pk, vet_user, 'COLLAR-17', safe_zone=SAFE_ZONE)
    return assigned_case


# ============================================================================
# Lifecycle
# ============================================================================

@pytest.mark.django_db
class TestTrackingLifecycle:
    """enable / disable / safe zone."""

    def test_enable_tracking(self, assigned_case, vet_user):
        state = services.enable_tracking(assigned_case.pk, vet_user, 'COLLAR-17', safe_zone=SAFE_ZONE)

        assert state.is_active
        assert state.device_id == 'COLLAR-17'
        assert state.enabled_by == vet_user
        assert state.safe_zone.radius == 1000

    def test_device_required(self, assigned_case, vet_user):
        with pytest.raises(DomainValidationError):
            services.enable_tracking(assigned_case.pk, vet_user, '  ')

    def test_unrelated_vet_cannot_enable(self, assigned_case, second_vet):
        with pytest.raises(Forbidden):
            services.enable_tracking(assigned_case.pk, second_vet, 'COLLAR-17')

    def test_officer_can_enable(self, assigned_case, officer_user):
        state = services.enable_tracking(assigned_case.pk, officer_user, 'COLLAR-17')
        assert state.is_active
        assert state.safe_zone is None

    def test_invalid_safe_zone_rejected(self, assigned_case, vet_user):
        with pytest.raises(DomainValidationError):
            services.enable_tracking(
                assigned_case.pk, vet_user, 'COLLAR-17',
                safe_zone={'latitude': 7.95, 'longitude': 80.75, 'radius': 0}
            )

    def test_reenable_overwrites_device(self, tracked_case, vet_user):
        services.disable_tracking(tracked_case.pk, vet_user, 'Collar replaced')

        state = services.enable_tracking(tracked_case.pk, vet_user, 'COLLAR-22')

        assert state.is_active
        assert state.device_id == 'COLLAR-22'
        assert state.disabled_reason == ''
        assert state.safe_zone.radius == 1000

    def test_update_safe_zone(self, tracked_case, vet_user):
        state = services.update_safe_zone(tracked_case.pk, vet_user, 8.0, 80.8, 2500)

        assert state.safe_zone.latitude == 8.0
        assert state.safe_zone.radius == 2500


# ============================================================================
# Location history
# ============================================================================

@pytest.mark.django_db
class TestLocationHistory:
    """record_location and get_history."""

    def test_record_updates_last_location(self, tracked_case, vet_user):
        update = services.record_location(tracked_case.pk, 7.951, 80.751, battery_level=80)

        state = services.get_current_location(tracked_case.pk, vet_user)
        assert state.last_latitude == 7.951
        assert state.last_longitude == 80.751
        assert update.location.sequence == 1
        assert update.location.device_id == 'COLLAR-17'
        assert update.alerts == []

    def test_disabled_tracking_rejects_pings(self, tracked_case, vet_user):
        """
        GIVEN tracking disabled for a case
        WHEN a location is recorded
        THEN Conflict is raised and nothing is stored
        """
        services.disable_tracking(tracked_case.pk, vet_user)

        with pytest.raises(Conflict):
            services.record_location(tracked_case.pk, 7.95, 80.75)

        assert not LocationPoint.objects.exists()

    def test_untracked_case_is_not_found(self, assigned_case):
        with pytest.raises(NotFound):
            services.record_location(assigned_case.pk, 7.95, 80.75)

    def test_invalid_coordinates_store_nothing(self, tracked_case):
        with pytest.raises(DomainValidationError):
            services.record_location(tracked_case.pk, 95, 80.75)

        assert not LocationPoint.objects.exists()

    def test_history_capacity_evicts_oldest(self, tracked_case, vet_user, settings):
        """
        GIVEN a history capacity of 3
        WHEN 5 pings are recorded
        THEN only the 3 newest remain, oldest first
        """
        settings.WILDCARE = {**settings.WILDCARE, 'TRACKING_HISTORY_CAPACITY': 3}
        for offset in range(5):
            services.record_location(tracked_case.pk, 7.95 + offset * 0.0001, 80.75)

        _state, points = services.get_history(tracked_case.pk, vet_user)

        assert [p.sequence for p in points] == [3, 4, 5]
        assert LocationPoint.objects.count() == 3

    def test_default_capacity_evicts_oldest(self, tracked_case, vet_user, settings):
        """
        GIVEN the default history capacity of 1000
        WHEN 1001 pings are recorded
        THEN the first ping is gone and the newest is kept
        """
        settings.WILDCARE = {
            k: v for k, v in settings.WILDCARE.items() if k != 'TRACKING_HISTORY_CAPACITY'
        }
        for _ in range(1001):
            services.record_location(tracked_case.pk, 7.95, 80.75)

        sequences = set(LocationPoint.objects.values_list('sequence', flat=True))

        assert len(sequences) == 1000
        assert 1 not in sequences
        assert 1001 in sequences

    def test_history_limit_returns_most_recent(self, tracked_case, vet_user):
        for offset in range(4):
            services.record_location(tracked_case.pk, 7.95 + offset * 0.0001, 80.75)

        _state, points = services.get_history(tracked_case.pk, vet_user, limit=2)

        assert [p.sequence for p in points] == [3, 4]

    def test_history_requires_case_access(self, tracked_case, second_vet):
        with pytest.raises(Forbidden):
            services.get_history(tracked_case.pk, second_vet)


# ============================================================================
# Alerts
# ============================================================================

@pytest.mark.django_db
class TestTrackingAlerts:
    """Alert evaluation."""

    def test_geofence_violation(self, tracked_case):
        """
        GIVEN a 1km safe zone
        WHEN the animal is reported about 1.1km north of its center
        THEN a high severity geofence alert is raised
        """
        update = services.record_location(tracked_case.pk, 7.96, 80.75)

        assert [a.type for a in update.alerts] == [AlertType.GEOFENCE_VIOLATION]
        alert = update.alerts[0]
        assert alert.severity == Severity.HIGH
        assert alert.case_id == tracked_case.case_id
        assert alert.details['radius'] == 1000

    def test_fractional_radius_is_kept(self, assigned_case, vet_user):
        """
        GIVEN a 500.9m safe zone
        WHEN the animal is reported 500.45m from its center
        THEN no geofence alert is raised
        """
        zone = {'latitude': 6.9, 'longitude': 79.9, 'radius': 500.9}
        services.enable_tracking(assigned_case.pk, vet_user, 'COLLAR-17', safe_zone=zone)

        latitude = 6.9 + math.degrees(500.45 / EARTH_RADIUS_METERS)
        update = services.record_location(assigned_case.pk, latitude, 79.9)

        assert update.alerts == []
        state = services.get_current_location(assigned_case.pk, vet_user)
        assert state.safe_zone.radius == 500.9

    def test_sub_metre_radius_does_not_break_alert_feed(self, tracked_case, vet_user):
        services.update_safe_zone(tracked_case.pk, vet_user, 7.95, 80.75, 0.5)
        services.record_location(tracked_case.pk, 7.95, 80.75)

        data = services.get_alerts()

        assert data['summary']['total'] == 0
        _state, points = services.get_history(tracked_case.pk, vet_user)
        assert len(points) == 1

    def test_inside_zone_no_alert(self, tracked_case):
        update = services.record_location(tracked_case.pk, 7.955, 80.75)
        assert update.alerts == []

    def test_low_battery(self, tracked_case):
        update = services.record_location(tracked_case.pk, 7.95, 80.75, battery_level=15)

        assert [a.type for a in update.alerts] == [AlertType.LOW_BATTERY]
        assert update.alerts[0].severity == Severity.MEDIUM

    def test_battery_at_threshold_is_not_low(self, tracked_case):
        update = services.record_location(tracked_case.pk, 7.95, 80.75, battery_level=20)
        assert update.alerts == []

    @pytest.mark.parametrize('hours,severity', [
        (7, Severity.MEDIUM),
        (30, Severity.CRITICAL),
    ])
    def test_no_movement(self, tracked_case, hours, severity):
        """
        GIVEN a last ping `hours` ago
        WHEN alerts are evaluated now
        THEN a no-movement alert with the matching severity is raised
        """
        now = timezone.now()
        services.record_location(
            tracked_case.pk, 7.95, 80.75, recorded_at=now - timedelta(hours=hours)
        )

        alerts = services.get_alerts(now=now)['alerts']

        assert [(a.type, a.severity) for a in alerts] == [(AlertType.NO_MOVEMENT, severity)]

    def test_recent_ping_no_movement_alert(self, tracked_case):
        now = timezone.now()
        services.record_location(tracked_case.pk, 7.95, 80.75, recorded_at=now - timedelta(hours=5))

        assert services.get_alerts(now=now)['alerts'] == []

    def test_alert_summary_across_cases(self, tracked_case, make_case, officer_user):
        other = make_case(animal_type='Leopard', location='Yala')
        services.enable_tracking(other.pk, officer_user, 'COLLAR-9', safe_zone=SAFE_ZONE)
        services.record_location(tracked_case.pk, 7.96, 80.75, battery_level=10)
        services.record_location(other.pk, 7.95, 80.75)

        data = services.get_alerts()

        assert data['summary'] == {'total': 2, 'critical': 0, 'high': 1, 'medium': 1}

    def test_disabled_cases_not_evaluated(self, tracked_case, vet_user):
        services.record_location(tracked_case.pk, 7.96, 80.75)
        services.disable_tracking(tracked_case.pk, vet_user)

        assert services.get_alerts()['summary']['total'] == 0


@pytest.mark.django_db
def test_active_tracked_cases_filters_by_area(tracked_case, make_case, officer_user):
    other = make_case(location='Yala National Park')
    services.enable_tracking(other.pk, officer_user, 'COLLAR-9')

    assert [s.case for s in services.active_tracked_cases(area='yala')] == [other]
    assert services.active_tracked_cases().count() == 2
