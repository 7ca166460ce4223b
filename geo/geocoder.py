"""Geocoder for clock/ring street addresses.

Supported address formats:
    - Intersections: "6:00 & D", "Esplanade & 9:30"
    - Plazas: "9:00 B Plaza @ 8:15", "Center Camp Plaza"
    - Portals: "6:00 Portal", "7:30 Portal"
"""
import re

from geo.layout import (
    CENTER_CAMP_CLOCK,
    CENTER_CAMP_PLAZA,
    MAN_LAT,
    MAN_LON,
)
from geo.spherical import (
    Coordinate,
    ParseError,
    bearing_from_clock,
    destination_point,
    haversine_distance,
    radius_for_ring,
)

ORIGIN = Coordinate(lat=MAN_LAT, lon=MAN_LON)

_RING_PLAZA = re.compile(r'([A-K])\s+Plaza', re.IGNORECASE)
_PORTAL = re.compile(r'(\d{1,2}:\d{2}|\d{1,2})\s+Portal')
_CLOCKISH = re.compile(r'^\d{1,4}(\.\d+)?$')


def _project(ring: str, clock: str) -> Coordinate:
    return destination_point(ORIGIN, radius_for_ring(ring), bearing_from_clock(clock))


def _is_clockish(token: str) -> bool:
    return ':' in token or bool(_CLOCKISH.match(token))


def resolve_address(address: str) -> Coordinate:
    """
    Convert a street address to GPS coordinates.

    Grammars are tried in a fixed order: named plaza, ring plaza, portal,
    then intersection.

    Args:
        address: Address string such as "6:00 & D"

    Returns:
        Coordinate of the address

    Raises:
        ParseError: If the address matches none of the grammars
    """
    text = str(address)

    if 'Plaza' in text:
        if CENTER_CAMP_PLAZA in text:
            return _project('ESPLANADE', CENTER_CAMP_CLOCK)

        parts = [part.strip() for part in text.split('@')]
        if len(parts) == 2:
            plaza_part, clock_part = parts
            ring_match = _RING_PLAZA.search(plaza_part)
            if ring_match:
                return _project(ring_match.group(1), clock_part)

    if 'Portal' in text and '&' not in text:
        portal_match = _PORTAL.search(text)
        if portal_match:
            return _project('ESPLANADE', portal_match.group(1))

    tokens = [token.strip() for token in text.split('&')]
    if len(tokens) != 2 or not all(tokens):
        raise ParseError(f"Invalid location: {address}")

    first, second = tokens
    if _is_clockish(first) and not _is_clockish(second):
        clock, ring = first, second
    elif _is_clockish(second) and not _is_clockish(first):
        clock, ring = second, first
    else:
        raise ParseError(f"Ambiguous location format: {address}")

    return _project(ring, clock)


def is_valid_address(address: str) -> bool:
    """Check whether a string parses as a street address."""
    try:
        resolve_address(address)
    except ParseError:
        return False
    return True


def distance_to_address(coordinate: Coordinate, address: str) -> float:
    """
    Distance in meters from a coordinate to a street address.

    Raises:
        ParseError: If the address cannot be resolved
    """
    return haversine_distance(coordinate, resolve_address(address))
