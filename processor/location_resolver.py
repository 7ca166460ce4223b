"""Location resolution for events.

Resolvers are tried in order; the first one to return a LocationInfo wins.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from geo.geocoder import resolve_address
from geo.spherical import ParseError
from processor.models import LocationInfo, LocationSource, RawEvent
from processor.venue_index import VenueCache, venue_coordinate

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = LocationInfo(
    coordinate=None,
    label='Location TBD',
    source=LocationSource.UNKNOWN
)


class LocationStrategy(ABC):
    """One step of the location fallback chain."""

    @abstractmethod
    def resolve(self, event: RawEvent, venues: VenueCache) -> Optional[LocationInfo]:
        """Return a LocationInfo, or None to let the next strategy try."""


class ArtLocationStrategy(LocationStrategy):
    """Events placed at an art installation."""

    def resolve(self, event: RawEvent, venues: VenueCache) -> Optional[LocationInfo]:
        art = venues.art.get(event.located_at_art)
        if art is None:
            return None

        coordinate = venue_coordinate(
            art.gps_latitude, art.gps_longitude, art.location_string
        )
        label = f"@ {art.name}" if art.name else 'Art Location'
        return LocationInfo(coordinate=coordinate, label=label, source=LocationSource.ART)


class CampLocationStrategy(LocationStrategy):
    """Events hosted by a camp with a street address."""

    def resolve(self, event: RawEvent, venues: VenueCache) -> Optional[LocationInfo]:
        camp = venues.camps.get(event.hosted_by_camp)
        if camp is None or not camp.location_string:
            return None

        label = f"@ [{camp.location_string}]"
        try:
            coordinate = resolve_address(camp.location_string)
        except ParseError as e:
            logger.debug(f"Failed to parse camp location '{camp.location_string}': {e}")
            coordinate = None

        return LocationInfo(coordinate=coordinate, label=label, source=LocationSource.CAMP)


class OtherLocationStrategy(LocationStrategy):
    """Free-text locations, geocoded when they look like an address."""

    def resolve(self, event: RawEvent, venues: VenueCache) -> Optional[LocationInfo]:
        if not event.other_location:
            return None

        try:
            coordinate = resolve_address(event.other_location)
        except ParseError:
            coordinate = None

        return LocationInfo(
            coordinate=coordinate,
            label=event.other_location,
            source=LocationSource.OTHER
        )


DEFAULT_STRATEGIES = (
    ArtLocationStrategy(),
    CampLocationStrategy(),
    OtherLocationStrategy(),
)


class LocationResolver:
    """Runs location strategies in priority order."""

    def __init__(self, strategies: Sequence[LocationStrategy] = DEFAULT_STRATEGIES):
        self.strategies = tuple(strategies)

    def resolve(self, event: RawEvent, venues: VenueCache) -> LocationInfo:
        """
        Resolve an event's location.

        Args:
            event: Raw event record
            venues: Venue snapshot used for art and camp lookups

        Returns:
            First LocationInfo produced by a strategy, or an unknown location
        """
        for strategy in self.strategies:
            location = strategy.resolve(event, venues)
            if location is not None:
                return location
        return UNKNOWN_LOCATION
