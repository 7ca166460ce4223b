"""Bearing, ring radius and great-circle helpers for the clock/ring grid."""
import math
import re
from dataclasses import dataclass
from typing import Union

from geo.layout import (
    BLOCK_DEPTH_FT,
    CITY_ROTATION_DEG,
    EARTH_RADIUS_M,
    ESPLANADE_NAMES,
    ESPLANADE_RADIUS_FT,
    FT2M,
    RING_ORDER,
    STREET_WIDTH_FT,
)

_HOUR_MINUTE = re.compile(r'^(\d{1,2}):(\d{0,2})$')
_DIGITS = re.compile(r'^\d{1,4}$')
_DECIMAL_HOURS = re.compile(r'^\d+(\.\d+)?$')


class ParseError(ValueError):
    """Raised when a clock, ring or address string is not recognized."""


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 latitude/longitude pair in decimal degrees."""
    lat: float
    lon: float


def bearing_from_clock(clock: Union[str, int, float]) -> float:
    """
    Convert clock notation to a compass bearing.

    Accepts "9", "930", "9:30" and decimal hours such as "6.5" (6:30).

    Args:
        clock: Clock notation

    Returns:
        Bearing in degrees within [0, 360)

    Raises:
        ParseError: If the notation is not recognized
    """
    text = re.sub(r'\s+', '', str(clock)).upper()

    match = _HOUR_MINUTE.match(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
    elif _DIGITS.match(text):
        # "9" => 9:00, "930" => 9:30, "1230" => 12:30
        if len(text) <= 2:
            hour, minute = int(text), 0
        else:
            hour, minute = int(text[:-2]), int(text[-2:])
    elif _DECIMAL_HOURS.match(text):
        value = float(text)
        hour = math.floor(value)
        minute = math.floor((value - hour) * 60 + 0.5)
    else:
        raise ParseError(f"Unrecognized clock notation: {clock}")

    # 12:xx is 0:xx on the clock face
    if hour == 12:
        hour = 0

    clock_deg = (hour + minute / 60) * 30
    return (clock_deg + CITY_ROTATION_DEG) % 360


def radius_feet_for_ring(name: str) -> float:
    """
    Calculate the centerline radius in feet for a ring street.

    Args:
        name: Ring letter (A-K) or Esplanade

    Returns:
        Radius from the origin in feet

    Raises:
        ParseError: If the ring name is unknown
    """
    ring = str(name).strip().upper()

    if ring in ESPLANADE_NAMES:
        return ESPLANADE_RADIUS_FT

    if len(ring) != 1 or ring not in RING_ORDER:
        raise ParseError(f"Unknown ring: {name}")

    target = RING_ORDER.index(ring)
    radius = ESPLANADE_RADIUS_FT + STREET_WIDTH_FT['Esplanade'] / 2

    for i, letter in enumerate(RING_ORDER[:target + 1]):
        radius += BLOCK_DEPTH_FT[letter]
        if i == target:
            radius += STREET_WIDTH_FT[letter] / 2
        else:
            radius += STREET_WIDTH_FT[letter]

    return radius


def radius_for_ring(name: str) -> float:
    """Centerline radius of a ring street in meters."""
    return radius_feet_for_ring(name) * FT2M


def destination_point(
    origin: Coordinate,
    distance_m: float,
    bearing_deg: float
) -> Coordinate:
    """
    Project a point along a great circle.

    Args:
        origin: Starting coordinate
        distance_m: Distance to travel in meters
        bearing_deg: Initial bearing in degrees clockwise from north

    Returns:
        Destination coordinate
    """
    bearing = math.radians(bearing_deg)
    lat1 = math.radians(origin.lat)
    lon1 = math.radians(origin.lon)
    angular = distance_m / EARTH_RADIUS_M

    sin_lat2 = (
        math.sin(lat1) * math.cos(angular) +
        math.cos(lat1) * math.sin(angular) * math.cos(bearing)
    )
    lat2 = math.asin(sin_lat2)
    lon2 = lon1 + math.atan2(
        math.sin(bearing) * math.sin(angular) * math.cos(lat1),
        math.cos(angular) - math.sin(lat1) * sin_lat2
    )

    return Coordinate(
        lat=math.degrees(lat2),
        lon=(math.degrees(lon2) + 540) % 360 - 180
    )


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in meters."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = lat2 - lat1
    dlon = math.radians(b.lon - a.lon)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def format_distance(meters: float) -> str:
    """Format a distance as "850m" or "1.2km"."""
    if meters < 1000:
        return f"{math.floor(meters + 0.5)}m"
    return f"{meters / 1000:.1f}km"
