"""Countdown, duration and timestamp helpers shared by the processor and callers."""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from geo.layout import CITY_TIMEZONE

CITY_TZ = ZoneInfo(CITY_TIMEZONE)

NEAR_MINUTES = 15

# Sunday-first, indexed by (datetime.weekday() + 1) % 7
DAY_ABBREVIATIONS = ['Su', 'M', 'Tu', 'W', 'Th', 'F', 'S']


@dataclass(frozen=True)
class RelativeTime:
    """Relative time text such as "in 2h 30m" or "15m ago"."""
    text: str
    is_past: bool
    is_near: bool


@dataclass(frozen=True)
class CountdownInfo:
    """Countdown state for an occurrence at a given moment."""
    minutes_until_start: int
    minutes_until_end: int
    starts_in: RelativeTime
    ends_in: RelativeTime
    is_starting_soon: bool
    is_ending_soon: bool
    is_active: bool
    has_started: bool
    has_ended: bool


def _round_minutes(delta: timedelta) -> int:
    # Half-up rounding, so -2.5 becomes -2
    return math.floor(delta.total_seconds() / 60 + 0.5)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp.

    Naive values are read in the city timezone.

    Args:
        value: Timestamp string

    Returns:
        Timezone-aware datetime or None if the value is missing or invalid
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=CITY_TZ)
    return parsed


def parse_occurrence_set(occurrences: Iterable[Any]) -> List[Tuple[datetime, datetime]]:
    """Parse raw occurrence dicts into (start, end) pairs, dropping invalid ones."""
    parsed = []
    for occurrence in occurrences or []:
        if not isinstance(occurrence, dict):
            continue
        start = parse_timestamp(occurrence.get('start_time'))
        end = parse_timestamp(occurrence.get('end_time'))
        if start and end:
            parsed.append((start, end))
    return parsed


def format_countdown(minutes: int) -> str:
    """
    Format a minute count as "45m", "2h" or "2h 30m".

    The output is unsigned; callers add "in"/"ago" themselves.
    """
    abs_minutes = abs(int(minutes))

    if abs_minutes < 60:
        return f"{abs_minutes}m"

    hours, remaining = divmod(abs_minutes, 60)
    if remaining == 0:
        return f"{hours}h"
    return f"{hours}h {remaining}m"


def relative_time(target: datetime, reference: datetime) -> RelativeTime:
    """
    Describe a target time relative to a reference time.

    Args:
        target: Time being described
        reference: Time to measure from

    Returns:
        RelativeTime with text, whether it is past, and whether it is
        within 15 minutes
    """
    delta = target - reference
    diff_minutes = _round_minutes(delta)
    is_past = delta < timedelta(0)

    if is_past:
        text = f"{format_countdown(-diff_minutes)} ago"
    else:
        text = f"in {format_countdown(diff_minutes)}"

    return RelativeTime(
        text=text,
        is_past=is_past,
        is_near=abs(diff_minutes) <= NEAR_MINUTES
    )


def countdown_info(start: datetime, end: datetime, now: datetime) -> CountdownInfo:
    """Compute countdown state for an occurrence at ``now``."""
    to_start = _round_minutes(start - now)
    to_end = _round_minutes(end - now)
    is_active = to_start <= 0 and to_end > 0

    return CountdownInfo(
        minutes_until_start=to_start,
        minutes_until_end=to_end,
        starts_in=relative_time(start, now),
        ends_in=relative_time(end, now),
        is_starting_soon=0 < to_start <= NEAR_MINUTES,
        is_ending_soon=is_active and to_end <= NEAR_MINUTES,
        is_active=is_active,
        has_started=to_start <= 0,
        has_ended=to_end <= 0
    )


def format_duration(start: datetime, end: datetime) -> str:
    """Format the length of an interval as "45m", "1h 30m" or "2d 3h"."""
    minutes = _round_minutes(end - start)

    if minutes < 60:
        return f"{minutes}m"

    hours, remaining = divmod(minutes, 60)
    if hours >= 24:
        days, remaining_hours = divmod(hours, 24)
        if remaining_hours == 0:
            return f"{days}d"
        return f"{days}d {remaining_hours}h"

    if remaining == 0:
        return f"{hours}h"
    return f"{hours}h {remaining}m"


def day_abbreviation(moment: datetime) -> str:
    """Day abbreviation (Su, M, Tu, W, Th, F, S) in the city timezone."""
    local = moment.astimezone(CITY_TZ)
    return DAY_ABBREVIATIONS[(local.weekday() + 1) % 7]


def format_time(moment: datetime, compact: bool = False) -> str:
    """Format a time in the city timezone, e.g. "Mon 8/25 09:30" or "09:30"."""
    local = moment.astimezone(CITY_TZ)
    clock = local.strftime('%H:%M')
    if compact:
        return clock
    return f"{local.strftime('%a')} {local.month}/{local.day} {clock}"


def format_time_range(start: datetime, end: datetime, compact: bool = False) -> str:
    """Format a start/end pair, showing the end date only when it differs."""
    start_text = format_time(start, compact=compact)
    end_text = format_time(end, compact=True)

    if compact:
        return f"{start_text}-{end_text}"

    if start.astimezone(CITY_TZ).date() == end.astimezone(CITY_TZ).date():
        return f"{start_text} - {end_text}"

    return f"{start_text} - {format_time(end)}"


def is_today(moment: datetime, now: datetime) -> bool:
    """Whether ``moment`` falls on the same city-local date as ``now``."""
    return moment.astimezone(CITY_TZ).date() == now.astimezone(CITY_TZ).date()


def is_tomorrow(moment: datetime, now: datetime) -> bool:
    """Whether ``moment`` falls on the city-local date after ``now``."""
    tomorrow = now.astimezone(CITY_TZ).date() + timedelta(days=1)
    return moment.astimezone(CITY_TZ).date() == tomorrow
