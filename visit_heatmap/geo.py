"""Geospatial utilities (no external dependencies)."""

from __future__ import annotations

import math

DEFAULT_CELL_PRECISION = 3  # ~111m of latitude


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute Haversine distance in meters between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in meters.
    """

    r = 6_371_000.0  # mean Earth radius in meters
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return r * c


def is_valid_coordinate(lat: float, lon: float) -> bool:
    """Check that a coordinate is finite and inside the WGS84 ranges."""

    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def round_half_away(value: float, precision: int) -> float:
    """Round to ``precision`` decimals, ties away from zero.

    Python's ``round`` uses banker's rounding, which would put x.xxx5 boundaries in a
    different cell depending on the parity of the last digit.
    """

    scale = 10**precision
    scaled = value * scale
    rounded = math.floor(abs(scaled) + 0.5)
    # + 0.0 turns -0.0 into 0.0 so both sides of the equator share one key
    return math.copysign(rounded, scaled) / scale + 0.0


def grid_cell_key(lat: float, lon: float, precision: int = DEFAULT_CELL_PRECISION) -> str:
    """Build the aggregation key for the grid cell containing a point.

    Example:
        >>> grid_cell_key(37.77493, -122.41942)
        'lat_37.775_lng_-122.419'
    """

    return f"lat_{round_half_away(lat, precision)!r}_lng_{round_half_away(lon, precision)!r}"
