"""Reminder scheduling interface for favorited events."""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional

from processor.models import FavoriteEvent


class ReminderScheduler(ABC):
    """Delivery backend for event reminders (push, email, ...)."""

    @abstractmethod
    def schedule(self, favorite: FavoriteEvent, trigger_at: datetime) -> None:
        """Schedule a reminder for ``favorite`` at ``trigger_at``."""

    @abstractmethod
    def cancel(self, favorite_id: str) -> None:
        """Cancel any pending reminder for a favorite."""


def reminder_trigger_time(
    start: datetime,
    minutes_before: int,
    now: datetime
) -> Optional[datetime]:
    """
    When a reminder should fire.

    Args:
        start: Occurrence start
        minutes_before: Lead time in minutes
        now: Current time

    Returns:
        Trigger time, or None if it has already passed
    """
    trigger_at = start - timedelta(minutes=minutes_before)
    if trigger_at <= now:
        return None
    return trigger_at
