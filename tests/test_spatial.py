import math

from safetyscore.core.geo import EARTH_RADIUS_M, GeoPoint, distance_m
from safetyscore.core.spatial import nearest, within
from safetyscore.domain.models import Point

M_PER_DEG_LAT = EARTH_RADIUS_M * math.pi / 180
ORIGIN = GeoPoint(lat=35.0, lon=139.0)


def _north(name: str, meters: float, category: str = "shelter") -> Point:
    # Moving along a meridian keeps the haversine distance equal to R * dlat.
    return Point(name=name, lon=ORIGIN.lon, lat=ORIGIN.lat + meters / M_PER_DEG_LAT, category=category)


def test_nearest_of_empty_sequence_is_none():
    assert nearest([], ORIGIN) is None


def test_within_of_empty_sequence_is_empty():
    assert within([], ORIGIN, 1000) == []


def test_nearest_picks_minimum_distance():
    points = [_north("far", 900), _north("near", 100), _north("mid", 400)]
    best = nearest(points, ORIGIN)
    assert best is not None
    assert best.point.name == "near"
    assert math.isclose(best.distance_m, 100, rel_tol=1e-6)


def test_nearest_tie_keeps_first_point_in_catalog_order():
    # Mirror images around (0, 0) are exactly equidistant.
    origin = GeoPoint(lat=0.0, lon=0.0)
    east = Point(name="east", lon=0.01, lat=0.0, category="school")
    west = Point(name="west", lon=-0.01, lat=0.0, category="school")
    assert distance_m(0, 0, 0.01, 0) == distance_m(0, 0, -0.01, 0)

    for _ in range(5):
        assert nearest([east, west], origin).point.name == "east"
        assert nearest([west, east], origin).point.name == "west"


def test_within_boundary_is_inclusive():
    p = _north("edge", 750)
    d = distance_m(ORIGIN.lon, ORIGIN.lat, p.lon, p.lat)

    assert [n.point for n in within([p], ORIGIN, d)] == [p]
    # Same as the point sitting at radius + epsilon.
    assert within([p], ORIGIN, d - 1e-6) == []


def test_within_zero_or_negative_radius_is_empty():
    at_origin = Point(name="here", lon=ORIGIN.lon, lat=ORIGIN.lat, category="health")
    assert within([at_origin], ORIGIN, 0) == []
    assert within([at_origin], ORIGIN, -5) == []


def test_within_sorts_ascending_and_keeps_catalog_order_on_ties():
    a = _north("a", 300)
    b = _north("b", 100)
    twin_1 = _north("twin-1", 200)
    twin_2 = Point(name="twin-2", lon=twin_1.lon, lat=twin_1.lat, category="shelter")
    outside = _north("outside", 5000)

    names = [n.point.name for n in within([a, twin_1, outside, b, twin_2], ORIGIN, 1000)]
    assert names == ["b", "twin-1", "twin-2", "a"]
