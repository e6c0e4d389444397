"""Delayed removal of completed reminders.

Each armed expiry is an asyncio task keyed by reminder id, never by
position. A fired timer re-reads the store and only removes the record if
it is still there, so a record deleted in the meantime is a no-op even if
cancellation was missed.
"""

import asyncio
from typing import Dict, Optional, Tuple

from config import settings
from logger_config import setup_logger
from store import ReminderStore

logger = setup_logger(__name__, 'expiry.log')


class ExpiryScheduler:
    """One-shot removal timers for a single store.

    Must be used from inside a running event loop.
    """

    def __init__(self, store: ReminderStore, delay: Optional[float] = None):
        self.store = store
        self.delay = settings.LOCATION_EXPIRY_SECONDS if delay is None else delay
        self._handles: Dict[str, asyncio.Task] = {}

    @property
    def pending(self) -> Tuple[str, ...]:
        """Ids whose expiry is armed and has not fired yet."""
        return tuple(rid for rid, task in self._handles.items() if not task.done())

    def schedule_expiry(self, reminder_id: str, delay: Optional[float] = None) -> asyncio.Task:
        """Arm a one-shot removal of ``reminder_id`` after ``delay`` seconds.

        Re-arming an id replaces its previous timer.

        Raises:
            RuntimeError: If no event loop is running
        """
        loop = asyncio.get_running_loop()
        delay = self.delay if delay is None else delay

        self.cancel(reminder_id)
        task = loop.create_task(
            self._expire_later(reminder_id, delay),
            name=f"expire-{reminder_id}"
        )
        self._handles[reminder_id] = task
        logger.info(f"Expiry armed for {self.store.category.value} reminder {reminder_id} in {delay}s")
        return task

    def cancel(self, reminder_id: str) -> bool:
        """Disarm the timer for ``reminder_id``.

        Returns:
            bool: True if a pending timer was cancelled
        """
        task = self._handles.pop(reminder_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.info(f"Expiry cancelled for {self.store.category.value} reminder {reminder_id}")
        return True

    def cancel_all(self) -> int:
        """Disarm every pending timer and return how many were cancelled."""
        cancelled = 0
        for reminder_id in list(self._handles):
            if self.cancel(reminder_id):
                cancelled += 1
        return cancelled

    async def _expire_later(self, reminder_id: str, delay: float) -> bool:
        await asyncio.sleep(delay)

        if self._handles.get(reminder_id) is asyncio.current_task():
            del self._handles[reminder_id]

        if self.store.get(reminder_id) is None:
            logger.debug(f"Expiry fired for missing reminder {reminder_id}, nothing to do")
            return False

        self.store.remove(reminder_id)
        logger.info(f"Expired {self.store.category.value} reminder {reminder_id}")
        return True
