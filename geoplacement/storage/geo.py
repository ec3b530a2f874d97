"""
Fixed-point distance approximation between two locations.

The result is a monotonic proxy for great-circle distance: half the sum of
the squared angular deltas (in micro-radians) scaled by the Earth radius.
It is deterministic integer arithmetic, not kilometres.
"""
from ..models.base import DEGREE_SCALE, Location

PI_CONST = 3_141_592  # pi * 10**6, radians come out in micro-radians
EARTH_RADIUS_KM = 6371


def _truncdiv(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(numerator) // denominator
    return -quotient if numerator < 0 else quotient


def to_radians(degrees_fixed: int) -> int:
    """Convert fixed-point degrees to fixed-point radians."""
    return _truncdiv(degrees_fixed * PI_CONST, 180 * DEGREE_SCALE)


def distance(a: Location, b: Location) -> int:
    """Approximate squared-angle distance between two valid locations."""
    d_lat = to_radians(b.latitude) - to_radians(a.latitude)
    d_lon = to_radians(b.longitude) - to_radians(a.longitude)
    half_sum = (d_lat * d_lat + d_lon * d_lon) // 2
    return half_sum * EARTH_RADIUS_KM
