"""
Great-circle distance and circular safe zones.
"""
import math
from dataclasses import dataclass

from apps.core.exceptions import DomainValidationError

EARTH_RADIUS_METERS = 6371000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in meters between two WGS84 points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def validate_coordinates(latitude, longitude):
    """
    Raises:
        DomainValidationError: latitude outside [-90, 90] or longitude outside [-180, 180]
    """
    try:
        latitude = float(latitude)
        longitude = float(longitude)
    except (TypeError, ValueError):
        raise DomainValidationError('Latitude and longitude must be numbers')
    if not -90 <= latitude <= 90:
        raise DomainValidationError(f'Latitude out of range: {latitude}')
    if not -180 <= longitude <= 180:
        raise DomainValidationError(f'Longitude out of range: {longitude}')
    return latitude, longitude


@dataclass(frozen=True)
class SafeZone:
    latitude: float
    longitude: float
    radius: float  # meters

    def __post_init__(self):
        validate_coordinates(self.latitude, self.longitude)
        if self.radius is None or self.radius <= 0:
            raise DomainValidationError('Safe zone radius must be positive')

    def distance_to(self, latitude, longitude) -> float:
        return haversine_distance(latitude, longitude, self.latitude, self.longitude)

    def contains(self, latitude, longitude) -> bool:
        # A point exactly on the boundary is inside
        return self.distance_to(latitude, longitude) <= self.radius
