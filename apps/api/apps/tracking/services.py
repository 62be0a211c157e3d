"""
GPS tracking services.

Location pings are appended under a row lock on the case's tracking
state; the append, the eviction of points beyond the history capacity
and the last-location update commit together. Alerts are computed on
demand and never stored.
"""
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import List, Optional

from django.db import transaction
from django.utils import timezone

from apps.authz.roles import is_officer_or_admin
from apps.cases.services import ensure_can_read, get_case
from apps.core.conf import wildcare_setting
from apps.core.exceptions import Conflict, DomainValidationError, Forbidden
from apps.core.lookups import get_or_not_found
from apps.core.observability import log_domain_event, metrics
from apps.core.observability.events import log_tracking_alerts

from .geo import SafeZone, validate_coordinates
from .models import LocationPoint, TrackingState


class AlertType:
    GEOFENCE_VIOLATION = 'geofence_violation'
    NO_MOVEMENT = 'no_movement'
    LOW_BATTERY = 'low_battery'


class Severity:
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'


@dataclass
class TrackingAlert:
    type: str
    severity: str
    case_id: str
    message: str
    details: dict = field(default_factory=dict)

    def as_dict(self):
        return asdict(self)


@dataclass
class LocationUpdate:
    location: LocationPoint
    alerts: List[TrackingAlert]


# ============================================================================
# Access rules
# ============================================================================

def ensure_can_manage(case, user):
    """Assigned vet or officer/admin."""
    if is_officer_or_admin(user) or case.is_assignee(user):
        return
    raise Forbidden('Only the assigned veterinarian or an officer can manage GPS tracking for this case')


def get_tracking(case_id) -> TrackingState:
    case = get_case(case_id)
    return get_or_not_found(
        TrackingState.objects.select_related('case'), 'Tracking state', case=case
    )


def _lock_tracking(case_id) -> TrackingState:
    case = get_case(case_id)
    return get_or_not_found(
        TrackingState.objects.select_for_update().select_related('case'),
        'Tracking state',
        case=case,
    )


def _safe_zone_from(data) -> Optional[SafeZone]:
    if not data:
        return None
    try:
        return SafeZone(float(data['latitude']), float(data['longitude']), float(data['radius']))
    except (KeyError, TypeError, ValueError):
        raise DomainValidationError('Safe zone requires numeric latitude, longitude and radius')


# ============================================================================
# Tracking lifecycle
# ============================================================================

@transaction.atomic
def enable_tracking(case_id, user, device_id, safe_zone=None) -> TrackingState:
    """
    Enable tracking; re-enabling overwrites the device id.

    `safe_zone` is a dict with latitude, longitude and radius (meters).
    """
    if not (device_id or '').strip():
        raise DomainValidationError('Device ID is required')
    case = get_case(case_id)
    ensure_can_manage(case, user)
    zone = _safe_zone_from(safe_zone)

    state, _created = TrackingState.objects.select_for_update().get_or_create(
        case=case,
        defaults={'device_id': device_id},
    )
    state.is_active = True
    state.device_id = device_id
    state.enabled_at = timezone.now()
    state.enabled_by = user
    state.disabled_at = None
    state.disabled_by = None
    state.disabled_reason = ''
    if zone is not None:
        state.set_safe_zone(zone)
    state.save()

    log_domain_event(
        'tracking_enabled',
        entity_type='TrackingState',
        entity_id=case.case_id,
        device_id=device_id,
        safe_zone=zone is not None,
    )
    return state


@transaction.atomic
def disable_tracking(case_id, user, reason='') -> TrackingState:
    """Stop tracking; history is kept."""
    state = _lock_tracking(case_id)
    ensure_can_manage(state.case, user)

    state.is_active = False
    state.disabled_at = timezone.now()
    state.disabled_by = user
    state.disabled_reason = reason or 'No reason provided'
    state.save(update_fields=['is_active', 'disabled_at', 'disabled_by', 'disabled_reason', 'updated_at'])

    log_domain_event('tracking_disabled', entity_type='TrackingState', entity_id=state.case.case_id)
    return state


@transaction.atomic
def update_safe_zone(case_id, user, latitude, longitude, radius) -> TrackingState:
    state = _lock_tracking(case_id)
    ensure_can_manage(state.case, user)

    state.set_safe_zone(_safe_zone_from({'latitude': latitude, 'longitude': longitude, 'radius': radius}))
    state.save(update_fields=['safe_zone_latitude', 'safe_zone_longitude', 'safe_zone_radius', 'updated_at'])
    return state


def record_location(case_id, latitude, longitude, *, battery_level=None, signal_strength=None,
                    device_id=None, recorded_by=None, recorded_at=None, now=None) -> LocationUpdate:
    """
    Append a location ping and evaluate alerts.

    Raises:
        DomainValidationError: coordinates out of range
        NotFound: case has never been tracked
        Conflict: tracking is disabled for the case
    """
    latitude, longitude = validate_coordinates(latitude, longitude)
    if battery_level is not None and not 0 <= battery_level <= 100:
        raise DomainValidationError(f'Battery level out of range: {battery_level}')
    capacity = wildcare_setting('TRACKING_HISTORY_CAPACITY')

    with transaction.atomic():
        state = _lock_tracking(case_id)
        if not state.is_active:
            raise Conflict('GPS tracking is not active for this case')

        sequence = state.next_sequence
        point = LocationPoint.objects.create(
            tracking=state,
            sequence=sequence,
            latitude=latitude,
            longitude=longitude,
            recorded_at=recorded_at or timezone.now(),
            battery_level=battery_level,
            signal_strength=signal_strength,
            device_id=device_id or state.device_id,
            recorded_by=recorded_by,
        )
        # Keep the newest `capacity` points
        state.points.filter(sequence__lte=sequence - capacity).delete()

        state.next_sequence = sequence + 1
        state.last_latitude = latitude
        state.last_longitude = longitude
        state.last_recorded_at = point.recorded_at
        update_fields = ['next_sequence', 'last_latitude', 'last_longitude', 'last_recorded_at', 'updated_at']
        if device_id and device_id != state.device_id:
            state.device_id = device_id
            update_fields.append('device_id')
        state.save(update_fields=update_fields)

    metrics.tracking_location_recorded_total.inc()
    alerts = evaluate_alerts(state, now=now, latest_point=point)
    log_tracking_alerts(state, alerts)
    return LocationUpdate(location=point, alerts=alerts)


# ============================================================================
# Alerts
# ============================================================================

def evaluate_alerts(state, now=None, latest_point=None) -> List[TrackingAlert]:
    """
    Alerts for one tracked case.

    - geofence_violation (high): last location strictly farther than the safe-zone radius
    - no_movement (medium / critical): no location for more than the stale / critical hours
    - low_battery (medium): most recent point reports battery below the threshold
    """
    now = now or timezone.now()
    case_id = state.case.case_id
    alerts = []

    zone = state.safe_zone
    if zone is not None and state.has_location:
        distance = zone.distance_to(state.last_latitude, state.last_longitude)
        if distance > zone.radius:
            alerts.append(TrackingAlert(
                type=AlertType.GEOFENCE_VIOLATION,
                severity=Severity.HIGH,
                case_id=case_id,
                message=f'Animal is {round(distance)}m from safe zone center (radius {zone.radius:g}m)',
                details={'distance': round(distance, 1), 'radius': zone.radius},
            ))

    if state.has_location:
        elapsed = now - state.last_recorded_at
        critical_after = timedelta(hours=wildcare_setting('TRACKING_CRITICAL_HOURS'))
        stale_after = timedelta(hours=wildcare_setting('TRACKING_STALE_HOURS'))
        if elapsed > stale_after:
            hours = elapsed.total_seconds() / 3600
            alerts.append(TrackingAlert(
                type=AlertType.NO_MOVEMENT,
                severity=Severity.CRITICAL if elapsed > critical_after else Severity.MEDIUM,
                case_id=case_id,
                message=f'No location update for {hours:.1f} hours',
                details={'hours_since_update': round(hours, 1)},
            ))

    point = latest_point or state.points.order_by('-sequence').first()
    threshold = wildcare_setting('TRACKING_LOW_BATTERY_PERCENT')
    if point is not None and point.battery_level is not None and point.battery_level < threshold:
        alerts.append(TrackingAlert(
            type=AlertType.LOW_BATTERY,
            severity=Severity.MEDIUM,
            case_id=case_id,
            message=f'GPS device battery at {point.battery_level}%',
            details={'battery_level': point.battery_level, 'device_id': state.device_id},
        ))

    for alert in alerts:
        metrics.tracking_alerts_total.labels(type=alert.type, severity=alert.severity).inc()
    return alerts


def get_alerts(now=None) -> dict:
    """Alerts across every actively tracked case."""
    alerts = []
    for state in TrackingState.objects.filter(is_active=True, case__is_deleted=False).select_related('case'):
        alerts.extend(evaluate_alerts(state, now=now))

    summary = {'total': len(alerts)}
    for severity in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM):
        summary[severity] = sum(1 for alert in alerts if alert.severity == severity)
    return {'alerts': alerts, 'summary': summary}


# ============================================================================
# Queries
# ============================================================================

def get_current_location(case_id, user) -> TrackingState:
    state = get_tracking(case_id)
    ensure_can_read(state.case, user)
    return state


def get_history(case_id, user, start=None, end=None, limit=100):
    """The most recent `limit` points within the range, oldest first."""
    state = get_tracking(case_id)
    ensure_can_read(state.case, user)

    points = state.points.all()
    if start:
        points = points.filter(recorded_at__gte=start)
    if end:
        points = points.filter(recorded_at__lte=end)
    latest = list(points.order_by('-sequence')[:limit])
    latest.reverse()
    return state, latest


def active_tracked_cases(area=None, status=None):
    queryset = TrackingState.objects.filter(
        is_active=True, case__is_deleted=False
    ).select_related('case', 'case__assigned_vet')
    if area:
        queryset = queryset.filter(case__location__icontains=area)
    if status:
        queryset = queryset.filter(case__status=status)
    return queryset.order_by('case__case_id')
