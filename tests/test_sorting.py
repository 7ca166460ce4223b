"""Unit tests for event sorting."""
import random
from datetime import datetime, timedelta, timezone

import pytest

from processor.models import EventStatus, LocationSource, ProcessedEvent
from processor.sorting import SortStrategy, parse_strategy, sort_events

BASE = datetime(2025, 8, 27, 18, 0, tzinfo=timezone.utc)


def make_processed(
    event_id,
    status=EventStatus.UPCOMING,
    start_minutes=0,
    end_minutes=60,
    distance=None,
    type_abbr='othr',
    title='Event'
):
    return ProcessedEvent(
        id=event_id,
        event_uid=event_id.split('_')[0],
        title=title,
        description='',
        type_label='Other',
        type_abbr=type_abbr,
        start=BASE + timedelta(minutes=start_minutes),
        end=BASE + timedelta(minutes=end_minutes),
        status=status,
        distance_meters=distance,
        coordinate=None,
        location_label='Location TBD',
        location_source=LocationSource.UNKNOWN,
        is_recurring=False
    )


@pytest.fixture
def events():
    return [
        make_processed('a', EventStatus.UPCOMING, 60, 120, distance=300, type_abbr='prty', title='beta'),
        make_processed('b', EventStatus.NOW, -60, 90, distance=None, type_abbr='food', title='Alpha'),
        make_processed('c', EventStatus.SOON, 10, 70, distance=100, type_abbr='arts', title='alpha'),
        make_processed('d', EventStatus.NOW, -30, 30, distance=200, type_abbr='food', title='Gamma'),
        make_processed('e', EventStatus.ENDED, -120, 5, distance=None, type_abbr='arts', title='Delta'),
        make_processed('f', EventStatus.UPCOMING, 30, 40, distance=100, type_abbr='prty', title='beta'),
    ]


def ids(events):
    return [event.id for event in events]


class TestSortEvents:
    """Test cases for sort strategies."""

    def test_default_order(self, events):
        # NOW by end, then SOON, UPCOMING, ENDED by start
        assert ids(sort_events(events, 'default')) == ['d', 'b', 'c', 'f', 'a', 'e']

    def test_distance_nulls_last(self, events):
        assert ids(sort_events(events, 'distance')) == ['c', 'f', 'd', 'a', 'b', 'e']

    def test_time(self, events):
        assert ids(sort_events(events, 'time')) == ['e', 'b', 'd', 'c', 'f', 'a']

    def test_ending(self, events):
        # NOW first by end time, then everything else by start time
        assert ids(sort_events(events, 'ending')) == ['d', 'b', 'e', 'c', 'f', 'a']

    def test_type(self, events):
        assert ids(sort_events(events, 'type')) == ['e', 'c', 'b', 'd', 'f', 'a']

    def test_title(self, events):
        assert ids(sort_events(events, 'title')) == ['b', 'c', 'f', 'a', 'e', 'd']

    def test_does_not_mutate_input(self, events):
        original = list(events)
        result = sort_events(events, SortStrategy.DISTANCE)
        assert events == original
        assert result is not events

    @pytest.mark.parametrize("strategy", list(SortStrategy))
    def test_independent_of_input_order(self, events, strategy):
        expected = ids(sort_events(events, strategy))
        rng = random.Random(42)
        for _ in range(10):
            shuffled = list(events)
            rng.shuffle(shuffled)
            assert ids(sort_events(shuffled, strategy)) == expected

    def test_ties_broken_by_id(self):
        tied = [make_processed('z'), make_processed('m'), make_processed('a')]
        assert ids(sort_events(tied, 'time')) == ['a', 'm', 'z']
        assert ids(sort_events(tied, 'distance')) == ['a', 'm', 'z']

    def test_empty(self):
        assert sort_events([], 'default') == []


class TestParseStrategy:

    def test_known_names(self):
        assert parse_strategy('distance') == SortStrategy.DISTANCE
        assert parse_strategy(' Title ') == SortStrategy.TITLE
        assert parse_strategy(SortStrategy.ENDING) == SortStrategy.ENDING

    def test_unknown_falls_back_to_default(self):
        assert parse_strategy('popularity') == SortStrategy.DEFAULT
        assert parse_strategy(None) == SortStrategy.DEFAULT
