"""Sort strategies for processed events."""
from enum import Enum
from typing import Callable, Dict, Iterable, List, Tuple, Union

from processor.models import EventStatus, ProcessedEvent

STATUS_PRIORITY = {
    EventStatus.NOW: 0,
    EventStatus.SOON: 1,
    EventStatus.UPCOMING: 2,
    EventStatus.ENDED: 3,
}


class SortStrategy(str, Enum):
    DEFAULT = 'default'
    DISTANCE = 'distance'
    TIME = 'time'
    ENDING = 'ending'
    TYPE = 'type'
    TITLE = 'title'


def _distance_key(event: ProcessedEvent) -> Tuple:
    # Unknown distances go last
    if event.distance_meters is None:
        return (1, 0.0, event.id)
    return (0, event.distance_meters, event.id)


def _time_key(event: ProcessedEvent) -> Tuple:
    return (event.start, event.id)


def _ending_key(event: ProcessedEvent) -> Tuple:
    if event.status == EventStatus.NOW:
        return (0, event.end, event.id)
    return (1, event.start, event.id)


def _type_key(event: ProcessedEvent) -> Tuple:
    return (event.type_abbr, event.start, event.id)


def _title_key(event: ProcessedEvent) -> Tuple:
    return (event.title.casefold(), event.title, event.start, event.id)


def _default_key(event: ProcessedEvent) -> Tuple:
    priority = STATUS_PRIORITY.get(event.status, 3)
    # Active events ending soonest first, everything else starting soonest
    moment = event.end if event.status == EventStatus.NOW else event.start
    return (priority, moment, event.id)


SORT_KEYS: Dict[SortStrategy, Callable[[ProcessedEvent], Tuple]] = {
    SortStrategy.DEFAULT: _default_key,
    SortStrategy.DISTANCE: _distance_key,
    SortStrategy.TIME: _time_key,
    SortStrategy.ENDING: _ending_key,
    SortStrategy.TYPE: _type_key,
    SortStrategy.TITLE: _title_key,
}


def parse_strategy(value: Union[str, SortStrategy, None]) -> SortStrategy:
    """Map a strategy name to a SortStrategy, falling back to default."""
    if isinstance(value, SortStrategy):
        return value
    try:
        return SortStrategy(str(value).strip().lower())
    except ValueError:
        return SortStrategy.DEFAULT


def sort_events(
    events: Iterable[ProcessedEvent],
    strategy: Union[str, SortStrategy, None] = SortStrategy.DEFAULT
) -> List[ProcessedEvent]:
    """
    Sort processed events without modifying the input.

    Every strategy ends with the event id as a tie-break, so the result
    depends only on the events themselves and not on their input order.

    Args:
        events: Processed events
        strategy: Sort strategy or its name

    Returns:
        New sorted list
    """
    return sorted(events, key=SORT_KEYS[parse_strategy(strategy)])
