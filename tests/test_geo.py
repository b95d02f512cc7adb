import pytest

from geo import ServiceArea, can_runner_be_available, haversine_meters, point_in_radius

from conftest import ORIGIN, north_of


def test_haversine_known_distance():
    # One degree of latitude on the 6371 km sphere
    assert haversine_meters(0.0, 0.0, 1.0, 0.0) == pytest.approx(111194.93, rel=1e-6)


def test_haversine_zero_and_symmetric():
    a = ORIGIN
    b = (7.1150, 125.6090)
    assert haversine_meters(*a, *a) == 0.0
    assert haversine_meters(*a, *b) == pytest.approx(haversine_meters(*b, *a), abs=1e-9)


def test_point_in_radius_is_inclusive():
    inside = north_of(ORIGIN, 499.99)
    outside = north_of(ORIGIN, 500.01)

    assert point_in_radius(inside, ORIGIN, 500)
    assert not point_in_radius(outside, ORIGIN, 500)

    exact = haversine_meters(*inside, *ORIGIN)
    assert point_in_radius(inside, ORIGIN, exact)


@pytest.fixture
def campus():
    # Roughly 800m x 800m square around the campus center
    lat, lon = ORIGIN
    d = 0.0036
    return ServiceArea(
        name="Main Campus",
        vertices=[(lat - d, lon - d), (lat - d, lon + d), (lat + d, lon + d), (lat + d, lon - d), (lat - d, lon - d)],
    )


def test_service_area_drops_closing_vertex(campus):
    assert len(campus.vertices) == 4


def test_service_area_needs_three_vertices():
    with pytest.raises(ValueError):
        ServiceArea(name="Line", vertices=[(0.0, 0.0), (1.0, 1.0)])


def test_service_area_contains(campus):
    assert campus.contains_polygon(ORIGIN)
    assert campus.contains(ORIGIN)

    # Far outside the ring and its buffer
    assert not campus.contains(north_of(ORIGIN, 2000))


def test_service_area_buffer_band(campus):
    # Just past the north edge, still inside the circle through the corners
    just_outside = north_of((ORIGIN[0] + 0.0036, ORIGIN[1]), 5)
    assert not campus.contains_polygon(just_outside)
    assert campus.contains(just_outside)


def test_can_runner_be_available(campus):
    assert can_runner_be_available(ORIGIN, campus).allowed

    missing = can_runner_be_available(None, campus)
    assert not missing.allowed
    assert missing.reason == "Location not available"

    far = can_runner_be_available(north_of(ORIGIN, 3000), campus)
    assert not far.allowed
    assert "Main Campus" in far.reason
