"""Test great-circle distance and proximity checks."""
import pytest

from campus_attendance.services.gps_service import GPSService
from campus_attendance.utils.errors import ValidationError
from conftest import ANCHOR_LAT, ANCHOR_LNG, METERS_PER_DEGREE_LAT, north_of


def test_distance_to_self_is_zero():
    assert GPSService.calculate_distance(ANCHOR_LAT, ANCHOR_LNG, ANCHOR_LAT, ANCHOR_LNG) == 0


def test_distance_is_symmetric():
    a = (12.9716, 77.5946)
    b = (13.0827, 80.2707)  # Chennai
    forward = GPSService.calculate_distance(*a, *b)
    backward = GPSService.calculate_distance(*b, *a)
    assert forward == pytest.approx(backward)


@pytest.mark.parametrize('meters', [1, 50, 80, 150, 1000])
def test_distance_along_meridian(meters):
    lat, lng = north_of(ANCHOR_LAT, ANCHOR_LNG, meters)
    distance = GPSService.calculate_distance(ANCHOR_LAT, ANCHOR_LNG, lat, lng)
    assert distance == pytest.approx(meters, abs=0.01)


def test_one_degree_of_longitude_on_equator():
    distance = GPSService.calculate_distance(0, 0, 0, 1)
    assert distance == pytest.approx(METERS_PER_DEGREE_LAT, rel=1e-9)


def test_bengaluru_to_chennai():
    # ~290 km great-circle
    distance = GPSService.calculate_distance(12.9716, 77.5946, 13.0827, 80.2707)
    assert 285_000 < distance < 295_000


def test_antipodal_points():
    distance = GPSService.calculate_distance(0, 0, 0, 180)
    assert distance == pytest.approx(METERS_PER_DEGREE_LAT * 180, rel=1e-9)


def test_proximity_threshold_is_inclusive():
    assert GPSService.is_within_proximity(99.9, 100)
    assert GPSService.is_within_proximity(100, 100)
    assert not GPSService.is_within_proximity(100.01, 100)


def test_proximity_defaults_to_100_meters():
    assert GPSService.is_within_proximity(50)
    assert not GPSService.is_within_proximity(150)


@pytest.mark.parametrize('lat,lng', [(91, 0), (-90.5, 0), (0, 180.1), (0, -181)])
def test_validate_coordinates_rejects_out_of_range(lat, lng):
    with pytest.raises(ValidationError):
        GPSService.validate_coordinates(lat, lng)


def test_validate_coordinates_accepts_bounds():
    GPSService.validate_coordinates(90, 180)
    GPSService.validate_coordinates(-90, -180)
