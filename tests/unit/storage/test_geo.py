"""Unit tests for the fixed-point distance approximation."""

from geoplacement.models.base import Location
from geoplacement.storage.geo import distance, to_radians


def test_to_radians_truncates_toward_zero():
    assert to_radians(1_000_000) == 17453
    assert to_radians(-1_000_000) == -17453
    assert to_radians(90_000_000) == 1_570_796
    assert to_radians(0) == 0


def test_distance_to_self_is_zero():
    here = Location(40_712_776, -74_005_974)
    assert distance(here, here) == 0


def test_distance_of_one_degree():
    assert distance(Location(0, 0), Location(1_000_000, 0)) == 970_326_261_084


def test_distance_is_symmetric():
    a = Location(51_507_351, -127_758)
    b = Location(48_856_614, 2_352_222)
    assert distance(a, b) == distance(b, a)


def test_distance_grows_with_separation():
    origin = Location(0, 0)
    near = distance(origin, Location(500_000, 500_000))
    far = distance(origin, Location(5_000_000, 5_000_000))
    assert 0 < near < far


def test_distance_at_extremes():
    d = distance(Location(90_000_000, 180_000_000), Location(-90_000_000, -180_000_000))
    assert d > 10 ** 14
