"""
Haversine distance and safe zone geometry.
"""
import pytest

from apps.core.exceptions import DomainValidationError
from apps.tracking.geo import SafeZone, haversine_distance, validate_coordinates


class TestHaversine:

    def test_same_point_is_zero(self):
        assert haversine_distance(7.95, 80.75, 7.95, 80.75) == 0

    def test_one_degree_of_latitude(self):
        assert haversine_distance(0, 0, 1, 0) == pytest.approx(111195, abs=1)

    def test_symmetric(self):
        forward = haversine_distance(7.95, 80.75, 8.31, 80.41)
        backward = haversine_distance(8.31, 80.41, 7.95, 80.75)
        assert forward == pytest.approx(backward)

    def test_antimeridian(self):
        # 179.9E to 179.9W is 0.2 degrees of longitude at the equator
        assert haversine_distance(0, 179.9, 0, -179.9) == pytest.approx(22239, abs=1)


class TestSafeZone:

    def test_point_on_boundary_is_inside(self):
        """
        GIVEN a zone whose radius equals the distance to a point
        WHEN containment is checked
        THEN the point is inside
        """
        radius = haversine_distance(0.01, 0, 0, 0)
        zone = SafeZone(0, 0, radius)

        assert zone.contains(0.01, 0)

    def test_point_beyond_radius_is_outside(self):
        zone = SafeZone(0, 0, 1000)
        assert not zone.contains(0.01, 0)
        assert zone.contains(0.005, 0)

    @pytest.mark.parametrize('radius', [0, -5, None])
    def test_radius_must_be_positive(self, radius):
        with pytest.raises(DomainValidationError):
            SafeZone(0, 0, radius)

    def test_center_must_be_valid(self):
        with pytest.raises(DomainValidationError):
            SafeZone(91, 0, 100)


@pytest.mark.parametrize('latitude,longitude', [
    (90.0001, 0),
    (-91, 0),
    (0, 180.5),
    (0, -181),
    ('north', 0),
    (None, 0),
])
def test_invalid_coordinates_rejected(latitude, longitude):
    with pytest.raises(DomainValidationError):
        validate_coordinates(latitude, longitude)


def test_extreme_valid_coordinates_accepted():
    assert validate_coordinates(-90, 180) == (-90.0, 180.0)
    assert validate_coordinates('45.5', '-122.6') == (45.5, -122.6)
