"""Data models for event processing."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from geo.spherical import Coordinate

ALL_EVENT_TYPES = frozenset(
    ['prty', 'food', 'tea', 'arts', 'work', 'kid', 'adlt', 'othr']
)
DEFAULT_TYPE_ABBR = 'othr'
DEFAULT_TYPE_LABEL = 'Other'

DEFAULT_RADIUS_METERS = 1000
DEFAULT_TIME_WINDOW_MINUTES = 90
DEFAULT_YEAR = 2025


class EventStatus(str, Enum):
    """Temporal status of an occurrence relative to now."""
    NOW = 'NOW'
    SOON = 'SOON'
    UPCOMING = 'UPCOMING'
    ENDED = 'ENDED'


class LocationSource(str, Enum):
    """Where a resolved location came from."""
    ART = 'art'
    CAMP = 'camp'
    OTHER = 'other'
    UNKNOWN = 'unknown'


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class EventType:
    label: str
    abbr: str


@dataclass(frozen=True)
class Occurrence:
    """One scheduled occurrence, kept as the raw dataset strings."""
    start_time: Optional[str]
    end_time: Optional[str]


@dataclass(frozen=True)
class RawEvent:
    """Event record as published in the dataset."""
    uid: Optional[str]
    title: str
    year: Optional[int]
    occurrences: Tuple[Occurrence, ...]
    description: str = ''
    event_type: Optional[EventType] = None
    located_at_art: Optional[str] = None
    hosted_by_camp: Optional[str] = None
    other_location: Optional[str] = None
    url: Optional[str] = None
    contact_email: Optional[str] = None
    all_day: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawEvent':
        """Build a RawEvent from a dataset record, tolerating missing fields."""
        event_type = None
        raw_type = data.get('event_type')
        if isinstance(raw_type, dict):
            label = _text(raw_type.get('label'))
            abbr = _text(raw_type.get('abbr'))
            if label or abbr:
                event_type = EventType(
                    label=label or DEFAULT_TYPE_LABEL,
                    abbr=abbr or DEFAULT_TYPE_ABBR
                )

        occurrences = tuple(
            Occurrence(
                start_time=occurrence.get('start_time'),
                end_time=occurrence.get('end_time')
            )
            for occurrence in data.get('occurrence_set') or []
            if isinstance(occurrence, dict)
        )

        return cls(
            uid=_text(data.get('uid')),
            title=_text(data.get('title')) or '',
            year=data.get('year'),
            occurrences=occurrences,
            description=_text(data.get('description')) or '',
            event_type=event_type,
            located_at_art=_text(data.get('located_at_art')),
            hosted_by_camp=_text(data.get('hosted_by_camp')),
            other_location=_text(data.get('other_location')),
            url=_text(data.get('url')),
            contact_email=_text(data.get('contact_email')),
            all_day=bool(data.get('all_day'))
        )


@dataclass(frozen=True)
class ArtRecord:
    """Art installation."""
    uid: Optional[str]
    name: str
    year: Optional[int]
    artist: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    location_string: Optional[str] = None
    gps_latitude: Optional[float] = None
    gps_longitude: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ArtRecord':
        location = data.get('location')
        if not isinstance(location, dict):
            location = {}
        return cls(
            uid=_text(data.get('uid')),
            name=_text(data.get('name')) or '',
            year=data.get('year'),
            artist=_text(data.get('artist')),
            description=_text(data.get('description')),
            url=_text(data.get('url')),
            location_string=_text(location.get('string')),
            gps_latitude=location.get('gps_latitude'),
            gps_longitude=location.get('gps_longitude')
        )


@dataclass(frozen=True)
class CampRecord:
    """Theme camp."""
    uid: Optional[str]
    name: str
    year: Optional[int]
    description: Optional[str] = None
    url: Optional[str] = None
    location_string: Optional[str] = None
    hometown: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CampRecord':
        return cls(
            uid=_text(data.get('uid')),
            name=_text(data.get('name')) or '',
            year=data.get('year'),
            description=_text(data.get('description')),
            url=_text(data.get('url')),
            location_string=_text(data.get('location_string')),
            hometown=_text(data.get('hometown'))
        )


@dataclass(frozen=True)
class LocationInfo:
    """Resolved location of an event."""
    coordinate: Optional[Coordinate]
    label: str
    source: LocationSource


@dataclass(frozen=True)
class SearchParams:
    """Filters for one processing pass."""
    viewer_location: Optional[Coordinate] = None
    radius: float = DEFAULT_RADIUS_METERS
    time_window_minutes: int = DEFAULT_TIME_WINDOW_MINUTES
    year: int = DEFAULT_YEAR
    now: Optional[datetime] = None
    event_types: FrozenSet[str] = ALL_EVENT_TYPES
    active_only: bool = False
    upcoming_only: bool = False
    favorites_only: bool = False


@dataclass
class ProcessedEvent:
    """One occurrence of an event, resolved and ready for display."""
    id: str
    event_uid: str
    title: str
    description: str
    type_label: str
    type_abbr: str
    start: datetime
    end: datetime
    status: EventStatus
    distance_meters: Optional[float]
    coordinate: Optional[Coordinate]
    location_label: str
    location_source: LocationSource
    is_recurring: bool
    future_occurrence_days: str = ''
    url: Optional[str] = None
    contact_email: Optional[str] = None
    all_day: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            'id': self.id,
            'event_uid': self.event_uid,
            'title': self.title,
            'description': self.description,
            'type': self.type_label,
            'type_abbr': self.type_abbr,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'status': self.status.value,
            'distance_meters': self.distance_meters,
            'lat': self.coordinate.lat if self.coordinate else None,
            'lon': self.coordinate.lon if self.coordinate else None,
            'location_label': self.location_label,
            'location_source': self.location_source.value,
            'is_recurring': self.is_recurring,
            'future_occurrence_days': self.future_occurrence_days,
            'url': self.url,
            'contact_email': self.contact_email,
            'all_day': self.all_day
        }


@dataclass
class FavoriteEvent:
    """Serializable snapshot of a favorited occurrence."""
    id: str
    event_uid: str
    title: str
    start: str
    end: str
    type: str
    type_abbr: str
    location_label: str
    added_at: str

    @classmethod
    def from_processed(cls, event: ProcessedEvent, added_at: datetime) -> 'FavoriteEvent':
        return cls(
            id=event.id,
            event_uid=event.event_uid,
            title=event.title,
            start=event.start.isoformat(),
            end=event.end.isoformat(),
            type=event.type_label,
            type_abbr=event.type_abbr,
            location_label=event.location_label,
            added_at=added_at.isoformat()
        )


@dataclass
class EventStats:
    """Summary counts over a processed list."""
    total_events: int
    active_events: int
    upcoming_events: int
    events_by_type: Dict[str, int] = field(default_factory=dict)
    average_distance: int = 0
    nearby_events: int = 0
