"""Event processor for flattening, locating, filtering and ranking events."""
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Protocol, Set

from geo.spherical import Coordinate, haversine_distance
from processor.location_resolver import LocationResolver
from processor.models import (
    DEFAULT_TYPE_ABBR,
    DEFAULT_TYPE_LABEL,
    ArtRecord,
    CampRecord,
    EventStats,
    EventStatus,
    ProcessedEvent,
    RawEvent,
    SearchParams,
)
from processor.time_display import DAY_ABBREVIATIONS, day_abbreviation, parse_timestamp
from processor.venue_index import VenueCache, is_finite_number

logger = logging.getLogger(__name__)

STATUS_BUFFER = timedelta(minutes=15)


class EventSource(Protocol):
    def load_events(self, year: int) -> List[RawEvent]: ...

    def load_art(self, year: int) -> List[ArtRecord]: ...

    def load_camps(self, year: int) -> List[CampRecord]: ...


class FavoriteIdSource(Protocol):
    def get_favorite_ids(self) -> Set[str]: ...


def has_position(coordinate: Optional[Coordinate]) -> bool:
    """True when a coordinate is present and both components are finite."""
    return (
        coordinate is not None
        and is_finite_number(coordinate.lat)
        and is_finite_number(coordinate.lon)
    )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def determine_status(start: datetime, end: datetime, now: datetime) -> EventStatus:
    """
    Determine the status of an occurrence.

    An occurrence in its final 15 minutes is reported as ENDED.

    Args:
        start: Occurrence start
        end: Occurrence end
        now: Reference time

    Returns:
        EventStatus for the occurrence
    """
    if start <= now <= end and end - now >= STATUS_BUFFER:
        return EventStatus.NOW

    if now < start:
        if start - now <= STATUS_BUFFER:
            return EventStatus.SOON
        return EventStatus.UPCOMING

    return EventStatus.ENDED


def passes_time_window(
    start: datetime,
    end: datetime,
    now: datetime,
    window_minutes: int
) -> bool:
    """
    Check whether an occurrence is active or starts within the window.

    Args:
        start: Occurrence start
        end: Occurrence end
        now: Reference time
        window_minutes: Look-ahead window in minutes

    Returns:
        True if active with at least 15 minutes left, or starting
        after now and no later than now + window
    """
    is_active = start <= now <= end and end - now >= STATUS_BUFFER
    is_upcoming = now < start <= now + timedelta(minutes=window_minutes)
    return is_active or is_upcoming


def make_occurrence_id(event_uid: str, raw_start: str) -> str:
    """Composite id of an occurrence, stable across runs."""
    return f"{event_uid}_{raw_start}"


class EventProcessor:
    """Processor turning raw events into filtered, located occurrences."""

    def __init__(
        self,
        loader: Optional[EventSource] = None,
        favorites: Optional[FavoriteIdSource] = None,
        clock: Callable[[], datetime] = utc_now,
        resolver: Optional[LocationResolver] = None
    ):
        """
        Initialize the event processor.

        Args:
            loader: Source of events, art and camps
            favorites: Source of favorited occurrence ids
            clock: Wall clock, used for defaults and future-day badges
            resolver: Location fallback chain
        """
        self.loader = loader
        self.favorites = favorites
        self.clock = clock
        self.resolver = resolver or LocationResolver()
        self.venues = VenueCache()

    def refresh(self, year: int) -> VenueCache:
        """
        Reload art and camps and swap in a new venue snapshot.

        Raises:
            Whatever the loader raises; the previous snapshot stays in place
        """
        if self.loader is None:
            raise ValueError("No loader configured")

        art = self.loader.load_art(year)
        camps = self.loader.load_camps(year)
        venues = VenueCache.build(year, art, camps)
        self.venues = venues
        logger.info(
            f"Indexed {len(venues.art)} art installations and "
            f"{len(venues.camps)} camps for {year}"
        )
        return venues

    def process_events(self, params: SearchParams) -> List[ProcessedEvent]:
        """
        Load events and run one processing pass.

        Args:
            params: Search parameters; a missing ``now`` uses the clock

        Returns:
            List of ProcessedEvent objects in dataset order
        """
        if self.loader is None:
            raise ValueError("No loader configured")

        if params.now is None:
            params = replace(params, now=self.clock())

        events = self.loader.load_events(params.year)

        venues = self.venues
        if venues.year != params.year:
            venues = self.refresh(params.year)

        favorite_ids: Set[str] = set()
        if params.favorites_only and self.favorites is not None:
            favorite_ids = set(self.favorites.get_favorite_ids())

        return self.process(events, params, venues, favorite_ids)

    def process(
        self,
        events: Iterable[RawEvent],
        params: SearchParams,
        venues: VenueCache,
        favorite_ids: Optional[Set[str]] = None
    ) -> List[ProcessedEvent]:
        """
        Flatten, filter and locate occurrences.

        Malformed occurrences and events without a uid are dropped.

        Args:
            events: Raw events for the year
            params: Search parameters with an explicit ``now``
            venues: Venue snapshot for location lookups
            favorite_ids: Favorited occurrence ids, used by favorites_only

        Returns:
            List of ProcessedEvent objects
        """
        if params.now is None:
            raise ValueError("params.now is required")

        now = params.now
        wall_clock = self.clock()
        favorite_ids = favorite_ids or set()
        processed_events = []
        considered = 0

        for event in events:
            if not event.uid:
                continue

            for occurrence in event.occurrences:
                considered += 1
                processed_event = self._process_occurrence(
                    event, occurrence.start_time, occurrence.end_time,
                    params, now, wall_clock, venues, favorite_ids
                )
                if processed_event:
                    processed_events.append(processed_event)

        logger.info(
            f"Processed {len(processed_events)} matching occurrences out of "
            f"{considered} total occurrences"
        )
        return processed_events

    def _process_occurrence(
        self,
        event: RawEvent,
        raw_start: Optional[str],
        raw_end: Optional[str],
        params: SearchParams,
        now: datetime,
        wall_clock: datetime,
        venues: VenueCache,
        favorite_ids: Set[str]
    ) -> Optional[ProcessedEvent]:
        start = parse_timestamp(raw_start)
        end = parse_timestamp(raw_end)
        if not start or not end:
            return None

        status = determine_status(start, end, now)

        if not passes_time_window(start, end, now, params.time_window_minutes):
            return None

        location = self.resolver.resolve(event, venues)

        distance = None
        if has_position(params.viewer_location) and location.coordinate is not None:
            distance = haversine_distance(params.viewer_location, location.coordinate)
            if distance > params.radius:
                return None

        type_abbr = event.event_type.abbr if event.event_type else DEFAULT_TYPE_ABBR
        if type_abbr not in params.event_types:
            return None

        if params.active_only and status != EventStatus.NOW:
            return None

        if params.upcoming_only and status in (EventStatus.NOW, EventStatus.ENDED):
            return None

        occurrence_id = make_occurrence_id(event.uid, raw_start)
        if params.favorites_only and occurrence_id not in favorite_ids:
            return None

        return ProcessedEvent(
            id=occurrence_id,
            event_uid=event.uid,
            title=event.title or 'Untitled Event',
            description=event.description or '',
            type_label=event.event_type.label if event.event_type else DEFAULT_TYPE_LABEL,
            type_abbr=type_abbr,
            start=start,
            end=end,
            status=status,
            distance_meters=distance,
            coordinate=location.coordinate,
            location_label=location.label,
            location_source=location.source,
            is_recurring=len(event.occurrences) > 1,
            future_occurrence_days=self.get_future_occurrence_days(event, start, wall_clock),
            url=event.url,
            contact_email=event.contact_email,
            all_day=event.all_day
        )

    def get_future_occurrence_days(
        self,
        event: RawEvent,
        current_start: datetime,
        wall_clock: datetime
    ) -> str:
        """
        Day abbreviations of the event's other future occurrences.

        Args:
            event: Raw event
            current_start: Start of the occurrence being displayed
            wall_clock: Real current time

        Returns:
            Comma-joined, Sunday-first day abbreviations, e.g. "M,W,F"
        """
        if len(event.occurrences) <= 1:
            return ''

        days = set()
        for occurrence in event.occurrences:
            start = parse_timestamp(occurrence.start_time)
            if start is None or start <= wall_clock or start == current_start:
                continue
            days.add(day_abbreviation(start))

        return ','.join(day for day in DAY_ABBREVIATIONS if day in days)

    def get_event_stats(
        self,
        events: List[ProcessedEvent],
        radius: Optional[float] = None
    ) -> EventStats:
        """
        Summarize a processed list.

        Args:
            events: Processed events
            radius: Radius in meters for the nearby count

        Returns:
            EventStats with counts by status and type plus distance figures
        """
        stats = EventStats(
            total_events=len(events),
            active_events=sum(1 for e in events if e.status == EventStatus.NOW),
            upcoming_events=sum(
                1 for e in events
                if e.status in (EventStatus.SOON, EventStatus.UPCOMING)
            )
        )

        for event in events:
            stats.events_by_type[event.type_abbr] = (
                stats.events_by_type.get(event.type_abbr, 0) + 1
            )

        distances = [e.distance_meters for e in events if e.distance_meters is not None]
        if distances:
            stats.average_distance = int(sum(distances) / len(distances) + 0.5)
            if radius:
                stats.nearby_events = sum(1 for d in distances if d <= radius)

        return stats

