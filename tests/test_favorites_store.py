"""Unit tests for FavoritesStore."""
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import boto3
import pytest
from moto import mock_aws

from processor.models import EventStatus, LocationSource, ProcessedEvent
from storage.favorites_store import FavoritesError, FavoritesStore
from storage.reminders import ReminderScheduler, reminder_trigger_time

TABLE_NAME = 'test-playa-favorites'
NOW = datetime(2025, 8, 27, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def favorites_table():
    """Create a mock DynamoDB table for testing."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')
        table = dynamodb.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {'AttributeName': 'id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'id', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )
        yield table


@pytest.fixture
def scheduler():
    return Mock(spec=ReminderScheduler)


def make_store(reminders=None, now=NOW):
    return FavoritesStore(
        TABLE_NAME,
        reminders=reminders,
        region_name='us-east-1',
        clock=lambda: now
    )


@pytest.fixture
def store(favorites_table, scheduler):
    return make_store(reminders=scheduler)


def make_event(event_id='e1_2025-08-27T18:00:00Z', start=None, duration_minutes=60,
               type_abbr='work', title='Sunset Yoga'):
    start = start or NOW + timedelta(hours=6)
    return ProcessedEvent(
        id=event_id,
        event_uid=event_id.split('_')[0],
        title=title,
        description='Stretch at sunset',
        type_label='Class/Workshop',
        type_abbr=type_abbr,
        start=start,
        end=start + timedelta(minutes=duration_minutes),
        status=EventStatus.UPCOMING,
        distance_meters=250.0,
        coordinate=None,
        location_label='@ [7:30 & E]',
        location_source=LocationSource.CAMP,
        is_recurring=False
    )


class TestFavoritesStore:
    """Test cases for FavoritesStore class."""

    def test_add_favorite(self, store, favorites_table):
        event = make_event()
        store.add_favorite(event)

        assert store.is_favorite(event.id)
        assert store.get_favorites_count() == 1
        item = favorites_table.get_item(Key={'id': event.id})['Item']
        assert item['title'] == 'Sunset Yoga'
        assert item['start'] == event.start.isoformat()
        assert item['added_at'] == NOW.isoformat()

    def test_add_is_idempotent(self, store):
        event = make_event()
        store.add_favorite(event)
        store.add_favorite(event)

        assert store.get_favorites_count() == 1

    def test_remove_favorite(self, store, favorites_table):
        event = make_event()
        store.add_favorite(event)
        store.remove_favorite(event.id)

        assert not store.is_favorite(event.id)
        assert 'Item' not in favorites_table.get_item(Key={'id': event.id})

    def test_remove_unknown_is_noop(self, store, scheduler):
        store.remove_favorite('missing')

        scheduler.cancel.assert_not_called()

    def test_toggle_favorite(self, store):
        event = make_event()

        assert store.toggle_favorite(event) is True
        assert store.is_favorite(event.id)
        assert store.toggle_favorite(event) is False
        assert not store.is_favorite(event.id)

    def test_favorites_persist_across_instances(self, store):
        event = make_event()
        store.add_favorite(event)

        reloaded = make_store()
        assert reloaded.get_favorite_ids() == {event.id}
        assert reloaded.get_favorites()[0].location_label == '@ [7:30 & E]'

    def test_get_favorites_sorted_by_start(self, store):
        later = make_event('b_1', start=NOW + timedelta(hours=8))
        earlier = make_event('a_1', start=NOW + timedelta(hours=2))
        store.add_favorite(later)
        store.add_favorite(earlier)

        assert [fav.id for fav in store.get_favorites()] == ['a_1', 'b_1']

    def test_get_favorites_by_type(self, store):
        store.add_favorite(make_event('a_1', type_abbr='work'))
        store.add_favorite(make_event('b_1', type_abbr='prty'))

        assert [fav.id for fav in store.get_favorites_by_type('prty')] == ['b_1']

    def test_get_upcoming_favorites(self, store):
        store.add_favorite(make_event('past_1', start=NOW - timedelta(hours=3)))
        store.add_favorite(make_event('live_1', start=NOW - timedelta(minutes=30)))
        store.add_favorite(make_event('next_1', start=NOW + timedelta(hours=1)))

        assert [fav.id for fav in store.get_upcoming_favorites()] == ['live_1', 'next_1']

    def test_get_favorite_ids_is_snapshot(self, store):
        store.add_favorite(make_event('a_1'))
        ids = store.get_favorite_ids()
        store.add_favorite(make_event('b_1'))

        assert ids == {'a_1'}

    def test_clear_all_favorites(self, store, favorites_table):
        for i in range(30):
            store.add_favorite(make_event(f'e{i}_1'))

        assert store.clear_all_favorites() == 30
        assert store.get_favorites_count() == 0
        assert favorites_table.scan()['Count'] == 0

    def test_cleanup_expired_favorites(self, store):
        store.add_favorite(make_event('old_1', start=NOW - timedelta(days=31)))
        store.add_favorite(make_event('recent_1', start=NOW - timedelta(days=10)))
        store.add_favorite(make_event('next_1'))

        assert store.cleanup_expired_favorites() == 1
        assert store.get_favorite_ids() == {'recent_1', 'next_1'}
        assert make_store().get_favorite_ids() == {'recent_1', 'next_1'}

    def test_cleanup_with_nothing_expired(self, store):
        store.add_favorite(make_event())

        assert store.cleanup_expired_favorites() == 0

    def test_skips_corrupt_items(self, favorites_table):
        favorites_table.put_item(Item={'id': 'broken', 'title': 'No times'})
        favorites_table.put_item(Item={
            'id': 'bad_dates', 'title': 'Bad', 'start': 'soon', 'end': 'later'
        })

        assert make_store().get_favorites_count() == 0


class TestReminders:
    """Test cases for reminder scheduling on add and remove."""

    def test_schedules_reminder(self, store, scheduler):
        event = make_event()
        store.add_favorite(event)

        scheduler.schedule.assert_called_once()
        favorite, trigger_at = scheduler.schedule.call_args.args
        assert favorite.id == event.id
        assert trigger_at == event.start - timedelta(minutes=30)

    def test_no_reminder_when_trigger_has_passed(self, store, scheduler):
        store.add_favorite(make_event(start=NOW + timedelta(minutes=20)))

        scheduler.schedule.assert_not_called()

    def test_cancels_reminder_on_remove(self, store, scheduler):
        event = make_event()
        store.add_favorite(event)
        store.remove_favorite(event.id)

        scheduler.cancel.assert_called_once_with(event.id)

    def test_reminder_failure_does_not_fail_add(self, store, scheduler):
        scheduler.schedule.side_effect = RuntimeError('push unavailable')
        event = make_event()

        store.add_favorite(event)

        assert store.is_favorite(event.id)

    def test_cancel_failure_does_not_fail_remove(self, store, scheduler):
        scheduler.cancel.side_effect = RuntimeError('push unavailable')
        event = make_event()
        store.add_favorite(event)

        store.remove_favorite(event.id)

        assert not store.is_favorite(event.id)

    def test_trigger_time(self):
        start = NOW + timedelta(hours=1)
        assert reminder_trigger_time(start, 30, NOW) == NOW + timedelta(minutes=30)
        assert reminder_trigger_time(start, 60, NOW) is None
        assert reminder_trigger_time(start, 90, NOW) is None


class TestExportImport:
    """Test cases for backup and restore."""

    def test_export_format(self, store):
        store.add_favorite(make_event())

        data = json.loads(store.export_favorites())

        assert data['version'] == '1.0'
        assert data['export_date'] == NOW.isoformat()
        assert data['favorites'][0]['id'] == 'e1_2025-08-27T18:00:00Z'

    def test_import_merge_skips_existing(self, store, favorites_table):
        store.add_favorite(make_event('a_1'))
        backup = store.export_favorites()
        store.add_favorite(make_event('b_1'))

        other = json.loads(backup)
        other['favorites'].append(dict(other['favorites'][0], id='c_1'))

        assert store.import_favorites(json.dumps(other)) == 1
        assert store.get_favorite_ids() == {'a_1', 'b_1', 'c_1'}
        assert favorites_table.scan()['Count'] == 3

    def test_import_replace(self, store):
        store.add_favorite(make_event('a_1'))
        backup = store.export_favorites()
        store.remove_favorite('a_1')
        store.add_favorite(make_event('b_1'))

        assert store.import_favorites(backup, merge=False) == 1
        assert store.get_favorite_ids() == {'a_1'}
        assert make_store().get_favorite_ids() == {'a_1'}

    def test_import_skips_invalid_entries(self, store):
        payload = json.dumps({
            'version': '1.0',
            'favorites': [{'id': 'no_title'}, 'junk', {
                'id': 'ok_1', 'title': 'Fine',
                'start': NOW.isoformat(), 'end': (NOW + timedelta(hours=1)).isoformat()
            }]
        })

        assert store.import_favorites(payload) == 1
        assert store.get_favorite_ids() == {'ok_1'}

    @pytest.mark.parametrize("payload", ['not json', '[]', '{"favorites": "nope"}', None])
    def test_import_invalid_payload(self, store, payload):
        with pytest.raises(FavoritesError, match="Invalid data format"):
            store.import_favorites(payload)

    def test_failed_import_leaves_favorites_unchanged(self, store):
        store.add_favorite(make_event('a_1'))
        backup = json.loads(store.export_favorites())
        backup['favorites'][0]['id'] = 'b_1'

        with patch.object(store, '_batch_put', side_effect=FavoritesError('Failed to save favorites')):
            with pytest.raises(FavoritesError):
                store.import_favorites(json.dumps(backup))

        assert store.get_favorite_ids() == {'a_1'}

    def test_import_deduplicates_entries(self, store, favorites_table):
        entry = {
            'id': 'dup_1', 'title': 'Twice',
            'start': NOW.isoformat(), 'end': (NOW + timedelta(hours=1)).isoformat()
        }

        assert store.import_favorites(json.dumps({'favorites': [entry, entry]})) == 1
        assert favorites_table.scan()['Count'] == 1
