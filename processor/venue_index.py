"""Read-only uid lookups for art installations and camps."""
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Generic, Iterable, Mapping, Optional, TypeVar

from geo.geocoder import resolve_address
from geo.spherical import Coordinate, ParseError
from processor.models import ArtRecord, CampRecord

Record = TypeVar('Record')


class VenueIndex(Generic[Record]):
    """Immutable uid -> record map."""

    def __init__(self, records: Mapping[str, Record]):
        self._records = MappingProxyType(dict(records))

    @classmethod
    def build(cls, records: Iterable[Record]) -> 'VenueIndex[Record]':
        """
        Index records by their ``uid`` attribute.

        Records without a uid are skipped. When a uid repeats, the last
        record wins.
        """
        indexed = {}
        for record in records:
            uid = getattr(record, 'uid', None)
            if uid:
                indexed[uid] = record
        return cls(indexed)

    def get(self, uid: Optional[str]) -> Optional[Record]:
        if not uid:
            return None
        return self._records.get(uid)

    def __contains__(self, uid: object) -> bool:
        return uid in self._records

    def __len__(self) -> int:
        return len(self._records)


def _empty_index() -> VenueIndex:
    return VenueIndex({})


@dataclass(frozen=True)
class VenueCache:
    """
    Snapshot of the venue indexes for one year.

    A refresh builds a new snapshot instead of mutating this one, so a
    processing pass holding a reference keeps a consistent view.
    """
    year: Optional[int] = None
    art: VenueIndex = field(default_factory=_empty_index)
    camps: VenueIndex = field(default_factory=_empty_index)

    @classmethod
    def build(
        cls,
        year: int,
        art: Iterable[ArtRecord],
        camps: Iterable[CampRecord]
    ) -> 'VenueCache':
        return cls(year=year, art=VenueIndex.build(art), camps=VenueIndex.build(camps))


def is_finite_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def venue_coordinate(
    gps_latitude: Any,
    gps_longitude: Any,
    address: Optional[str] = None
) -> Optional[Coordinate]:
    """
    Coordinate for a venue from GPS fields, falling back to its address.

    Args:
        gps_latitude: Latitude from the dataset, possibly missing
        gps_longitude: Longitude from the dataset, possibly missing
        address: Street address string, possibly missing

    Returns:
        Coordinate or None if neither source is usable
    """
    if is_finite_number(gps_latitude) and is_finite_number(gps_longitude):
        return Coordinate(lat=float(gps_latitude), lon=float(gps_longitude))

    if address:
        try:
            return resolve_address(address)
        except ParseError:
            return None

    return None
