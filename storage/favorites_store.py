"""DynamoDB-backed storage for favorite events."""
import json
import logging
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Set

import boto3
from botocore.exceptions import ClientError

from processor.models import FavoriteEvent, ProcessedEvent
from processor.time_display import parse_timestamp
from storage.reminders import ReminderScheduler, reminder_trigger_time

logger = logging.getLogger(__name__)

EXPORT_VERSION = '1.0'


class FavoritesError(Exception):
    """Raised when favorites cannot be saved or imported."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FavoritesStore:
    """Favorites persisted in a DynamoDB table keyed by occurrence id."""

    BATCH_SIZE = 25  # DynamoDB batch operation limit
    EXPIRY_DAYS = 30

    def __init__(
        self,
        table_name: str,
        reminders: Optional[ReminderScheduler] = None,
        reminder_minutes: int = 30,
        region_name: Optional[str] = None,
        clock: Callable[[], datetime] = _utc_now
    ):
        """
        Initialize DynamoDB table reference.

        Args:
            table_name: Name of the DynamoDB table
            reminders: Optional reminder backend notified on add/remove
            reminder_minutes: Reminder lead time in minutes
            region_name: AWS region, defaults to the environment
            clock: Current time provider
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        self.reminders = reminders
        self.reminder_minutes = reminder_minutes
        self.clock = clock
        self._favorites: Optional[Dict[str, FavoriteEvent]] = None
        logger.info(f"Initialized FavoritesStore for table: {table_name}")

    def _load(self) -> Dict[str, FavoriteEvent]:
        """
        Read all favorites from the table on first use.

        Returns:
            Dictionary mapping occurrence id to FavoriteEvent
        """
        if self._favorites is not None:
            return self._favorites

        logger.info("Scanning DynamoDB table for favorites")
        try:
            response = self.table.scan()
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error scanning favorites table: {e}")
            raise

        favorites = {}
        for item in items:
            favorite = self._item_to_favorite(item)
            if favorite:
                favorites[favorite.id] = favorite

        logger.info(f"Loaded {len(favorites)} favorites")
        self._favorites = favorites
        return favorites

    def add_favorite(self, event: ProcessedEvent) -> None:
        """
        Add an occurrence to favorites and schedule its reminder.

        Raises:
            FavoritesError: If the favorite cannot be saved
        """
        favorites = self._load()
        if event.id in favorites:
            return

        favorite = FavoriteEvent.from_processed(event, added_at=self.clock())
        self._put(favorite)
        favorites[favorite.id] = favorite

        if self.reminders is None:
            return

        start = parse_timestamp(favorite.start)
        trigger_at = reminder_trigger_time(start, self.reminder_minutes, self.clock())
        if trigger_at is None:
            return
        try:
            self.reminders.schedule(favorite, trigger_at)
        except Exception as e:
            logger.warning(f"Favorite saved but reminder scheduling failed: {e}")

    def remove_favorite(self, favorite_id: str) -> None:
        """Remove a favorite and cancel its reminder."""
        favorites = self._load()
        if favorite_id not in favorites:
            return

        try:
            self.table.delete_item(Key={'id': favorite_id})
        except ClientError as e:
            logger.error(f"Error deleting favorite {favorite_id}: {e}")
            raise FavoritesError(f"Failed to remove favorite {favorite_id}") from e
        del favorites[favorite_id]

        if self.reminders is None:
            return
        try:
            self.reminders.cancel(favorite_id)
        except Exception as e:
            logger.warning(f"Favorite removed but reminder cancelation failed: {e}")

    def toggle_favorite(self, event: ProcessedEvent) -> bool:
        """
        Toggle the favorite status of an occurrence.

        Returns:
            True if the occurrence is now a favorite
        """
        if self.is_favorite(event.id):
            self.remove_favorite(event.id)
            return False
        self.add_favorite(event)
        return True

    def is_favorite(self, favorite_id: str) -> bool:
        return favorite_id in self._load()

    def get_favorites(self) -> List[FavoriteEvent]:
        """All favorites ordered by start time."""
        return sorted(
            self._load().values(),
            key=lambda favorite: (parse_timestamp(favorite.start), favorite.id)
        )

    def get_favorites_count(self) -> int:
        return len(self._load())

    def get_favorite_ids(self) -> Set[str]:
        """Snapshot of favorited occurrence ids."""
        return set(self._load())

    def get_favorites_by_type(self, type_abbr: str) -> List[FavoriteEvent]:
        return [fav for fav in self.get_favorites() if fav.type_abbr == type_abbr]

    def get_upcoming_favorites(self) -> List[FavoriteEvent]:
        """Favorites that have not ended yet."""
        now = self.clock()
        return [
            fav for fav in self.get_favorites()
            if parse_timestamp(fav.end) > now
        ]

    def clear_all_favorites(self) -> int:
        """
        Delete every favorite.

        Returns:
            Count of deleted favorites
        """
        favorite_ids = list(self._load())
        deleted = self._batch_delete(favorite_ids)
        self._favorites = {}
        return deleted

    def export_favorites(self) -> str:
        """Serialize favorites for backup."""
        return json.dumps({
            'version': EXPORT_VERSION,
            'export_date': self.clock().isoformat(),
            'favorites': [asdict(fav) for fav in self.get_favorites()]
        }, indent=2)

    def import_favorites(self, json_data: str, merge: bool = True) -> int:
        """
        Import favorites from a backup.

        Args:
            json_data: Output of export_favorites
            merge: Keep existing favorites when True, replace them when False

        Returns:
            Count of newly imported favorites

        Raises:
            FavoritesError: If the payload is not a valid backup
        """
        try:
            data = json.loads(json_data)
        except (TypeError, ValueError) as e:
            raise FavoritesError("Failed to import favorites: Invalid data format") from e

        if not isinstance(data, dict) or not isinstance(data.get('favorites'), list):
            raise FavoritesError("Failed to import favorites: Invalid data format")

        if not merge:
            self.clear_all_favorites()

        favorites = self._load()
        imported: Dict[str, FavoriteEvent] = {}
        for entry in data['favorites']:
            favorite = self._item_to_favorite(entry) if isinstance(entry, dict) else None
            if favorite is None or favorite.id in favorites or favorite.id in imported:
                continue
            imported[favorite.id] = favorite

        self._batch_put(list(imported.values()))
        favorites.update(imported)
        logger.info(f"Imported {len(imported)} favorites")
        return len(imported)

    def cleanup_expired_favorites(self) -> int:
        """
        Remove favorites that ended more than 30 days ago.

        Returns:
            Count of removed favorites
        """
        cutoff = self.clock() - timedelta(days=self.EXPIRY_DAYS)
        expired = [
            fav.id for fav in self._load().values()
            if parse_timestamp(fav.end) <= cutoff
        ]
        if not expired:
            return 0

        removed = self._batch_delete(expired)
        for favorite_id in expired:
            self._favorites.pop(favorite_id, None)
        logger.info(f"Removed {removed} expired favorites")
        return removed

    def _put(self, favorite: FavoriteEvent) -> None:
        try:
            self.table.put_item(Item=asdict(favorite))
        except ClientError as e:
            logger.error(f"Error saving favorite {favorite.id}: {e}")
            raise FavoritesError("Failed to save favorites") from e

    def _batch_put(self, favorites: List[FavoriteEvent]) -> int:
        """Write favorites in batches of 25 items."""
        success_count = 0
        for i in range(0, len(favorites), self.BATCH_SIZE):
            batch = favorites[i:i + self.BATCH_SIZE]
            try:
                with self.table.batch_writer() as writer:
                    for favorite in batch:
                        writer.put_item(Item=asdict(favorite))
                        success_count += 1
            except ClientError as e:
                logger.error(f"Error writing batch {i // self.BATCH_SIZE + 1}: {e}")
                raise FavoritesError("Failed to save favorites") from e
        return success_count

    def _batch_delete(self, favorite_ids: List[str]) -> int:
        """Delete favorites in batches of 25 items."""
        success_count = 0
        for i in range(0, len(favorite_ids), self.BATCH_SIZE):
            batch = favorite_ids[i:i + self.BATCH_SIZE]
            try:
                with self.table.batch_writer() as writer:
                    for favorite_id in batch:
                        writer.delete_item(Key={'id': favorite_id})
                        success_count += 1
            except ClientError as e:
                logger.error(f"Error deleting batch {i // self.BATCH_SIZE + 1}: {e}")
                raise FavoritesError("Failed to remove favorites") from e
        return success_count

    def _item_to_favorite(self, item: dict) -> Optional[FavoriteEvent]:
        """
        Convert a DynamoDB item or backup entry to a FavoriteEvent.

        Returns:
            FavoriteEvent or None if required fields are missing or invalid
        """
        try:
            favorite = FavoriteEvent(
                id=item['id'],
                event_uid=item.get('event_uid', ''),
                title=item['title'],
                start=item['start'],
                end=item['end'],
                type=item.get('type', ''),
                type_abbr=item.get('type_abbr', ''),
                location_label=item.get('location_label', ''),
                added_at=item.get('added_at', '')
            )
        except KeyError as e:
            logger.warning(f"Failed to convert item to FavoriteEvent: {e}")
            return None

        if not favorite.id or not parse_timestamp(favorite.start) or not parse_timestamp(favorite.end):
            logger.warning(f"Skipping favorite with invalid fields: {item.get('id')}")
            return None
        return favorite
