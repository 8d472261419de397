import math

import pytest
from pyproj import Geod

from buffersearch.core.errors import InvalidParameterError
from buffersearch.core.geo import Point, generate_buffer, haversine_m, to_meters

_GEOD = Geod(ellps="WGS84")


def test_generate_buffer_is_deterministic():
    origin = Point(x=121.5170, y=25.0478)

    a = generate_buffer(origin, 750, "meters")
    b = generate_buffer(origin, 750, "meters")

    assert a == b
    assert a.to_geojson() == b.to_geojson()


def test_kilometers_and_meters_agree():
    origin = Point(x=10, y=20)

    km = generate_buffer(origin, 1, "kilometers")
    m = generate_buffer(origin, 1000, "meters")

    assert km.distance_m == m.distance_m == 1000
    for (x1, y1), (x2, y2) in zip(km.ring, m.ring):
        assert haversine_m(Point(x1, y1), Point(x2, y2)) < 0.01


@pytest.mark.parametrize("distance", [0, -5, float("nan"), float("inf"), "abc"])
def test_invalid_distance_is_rejected(distance):
    with pytest.raises(InvalidParameterError):
        generate_buffer(Point(x=10, y=20), distance, "meters")


def test_unsupported_unit_is_rejected():
    with pytest.raises(InvalidParameterError, match="Unsupported unit"):
        generate_buffer(Point(x=10, y=20), 5, "miles")


def test_invalid_parameter_error_is_a_value_error():
    with pytest.raises(ValueError):
        to_meters(-1, "meters")


def test_ring_is_closed_and_has_requested_segments():
    area = generate_buffer(Point(x=10, y=20), 500, "meters", segments=32)

    assert len(area.ring) == 33
    assert area.ring[0] == area.ring[-1]
    assert area.polygon.is_valid
    assert area.polygon.contains(area.polygon.centroid)


@pytest.mark.parametrize("lat", [0.0, 45.0, 70.0])
def test_boundary_is_at_true_ground_distance_at_any_latitude(lat):
    area = generate_buffer(Point(x=30.0, y=lat), 2000, "meters")

    for x, y in area.ring[:-1]:
        _, _, dist = _GEOD.inv(30.0, lat, x, y)
        assert math.isclose(dist, 2000, rel_tol=1e-6)


def test_high_latitude_buffer_is_wider_in_degrees_of_longitude():
    equator = generate_buffer(Point(x=0, y=0), 10, "kilometers").polygon.bounds
    north = generate_buffer(Point(x=0, y=60), 10, "kilometers").polygon.bounds

    equator_width = equator[2] - equator[0]
    north_width = north[2] - north[0]
    assert north_width == pytest.approx(equator_width * 2, rel=0.02)


def test_projected_origin_is_buffered_in_its_own_crs():
    # Web Mercator coordinates of roughly (10E, 20N).
    origin = Point(x=1113194.9, y=2273030.9, crs="EPSG:3857")

    area = generate_buffer(origin, 1000, "meters")

    assert area.crs == "EPSG:3857"
    xs = [x for x, _ in area.ring]
    # Mercator stretches ground distance by 1/cos(lat) (about 1.064 at 20N).
    assert (max(xs) - min(xs)) == pytest.approx(2000 / math.cos(math.radians(20)), rel=0.01)


def test_unknown_crs_is_rejected():
    with pytest.raises(InvalidParameterError, match="Unknown CRS"):
        generate_buffer(Point(x=1, y=2, crs="EPSG:99999999"), 100, "meters")


def test_too_few_segments_is_rejected():
    with pytest.raises(InvalidParameterError, match="segments"):
        generate_buffer(Point(x=1, y=2), 100, "meters", segments=3)
