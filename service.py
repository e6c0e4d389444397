"""ReminderService: the entry point a UI layer drives.

Owns one store per category, the shared durable layer and the location
expiry timers. There is no module-level state; create one service per
session.

Control flow:
    draft = service.new_draft(ReminderCategory.ALARM)
    draft.set_field("title", "Wake up")
    ...
    service.commit(draft)                       # validate, upsert, persist
    service.toggle(ReminderCategory.ALARM, rid, "active")
    service.snapshot(ReminderCategory.ALARM)    # re-render from this
"""

import asyncio
from typing import Dict, Optional, Tuple

from database import KeyValueStore
from drafts import ReminderDraft
from expiry import ExpiryScheduler
from location import LocationProvider, resolve_current_place
from logger_config import setup_logger
from schemas import Place, ReminderBase, ReminderCategory
from store import ReminderStore

logger = setup_logger(__name__, 'service.log')


class ReminderService:
    """Single owner of the three reminder stores."""

    def __init__(
        self,
        kv: Optional[KeyValueStore] = None,
        expiry_delay: Optional[float] = None
    ):
        self.kv = kv or KeyValueStore()
        self.stores: Dict[ReminderCategory, ReminderStore] = {
            category: ReminderStore(category, self.kv) for category in ReminderCategory
        }
        self.expiry = ExpiryScheduler(self.stores[ReminderCategory.LOCATION], delay=expiry_delay)

    def load_all(self) -> Dict[ReminderCategory, Tuple[ReminderBase, ...]]:
        """Load every category from durable storage (session start)."""
        return {category: store.load() for category, store in self.stores.items()}

    def store(self, category: ReminderCategory) -> ReminderStore:
        return self.stores[ReminderCategory(category)]

    def snapshot(self, category: ReminderCategory) -> Tuple[ReminderBase, ...]:
        return self.store(category).reminders

    def new_draft(self, category: ReminderCategory) -> ReminderDraft:
        return ReminderDraft(category)

    def edit_draft(self, category: ReminderCategory, reminder_id: str) -> Optional[ReminderDraft]:
        """Draft seeded from an existing record, or None if it is gone."""
        record = self.store(category).get(reminder_id)
        if record is None:
            return None
        return ReminderDraft.from_record(record)

    def commit(self, draft: ReminderDraft) -> ReminderBase:
        """Commit ``draft`` into its category's store.

        A committed location reminder keeps its expiry in step with
        ``completed``: completed records get a timer (including an edit that
        lands after the original already expired), others lose theirs.

        Raises:
            DraftValidationError: Draft and store are left unchanged
            RuntimeError: A completed location draft needs a running event
                loop; draft and store are left unchanged
        """
        category = draft.category
        if category == ReminderCategory.LOCATION and draft.fields.get("completed"):
            asyncio.get_running_loop()

        record = draft.commit(self.store(category))

        if category == ReminderCategory.LOCATION:
            if not record.completed:
                self.expiry.cancel(record.id)
            elif record.id not in self.expiry.pending:
                self.expiry.schedule_expiry(record.id)

        return record

    def toggle(self, category: ReminderCategory, reminder_id: str, field: str) -> Tuple[ReminderBase, ...]:
        """Flip a flag; completing a location reminder arms its expiry.

        Completing a location reminder needs a running event loop for the
        expiry timer.

        Raises:
            ValueError: If ``field`` is not ``active`` or ``completed``
            RuntimeError: Completing a location reminder outside an event
                loop; the record is left unchanged
        """
        category = ReminderCategory(category)
        store = self.store(category)
        tracks_expiry = category == ReminderCategory.LOCATION and field == "completed"

        if tracks_expiry:
            record = store.get(reminder_id)
            if record is not None and not record.completed:
                asyncio.get_running_loop()

        snapshot = store.toggle_field(reminder_id, field)

        if tracks_expiry:
            record = store.get(reminder_id)
            if record is not None and record.completed:
                self.expiry.schedule_expiry(reminder_id)
            else:
                self.expiry.cancel(reminder_id)

        return snapshot

    def remove(self, category: ReminderCategory, reminder_id: str) -> Tuple[ReminderBase, ...]:
        """Delete a record and disarm any pending expiry for it."""
        category = ReminderCategory(category)
        if category == ReminderCategory.LOCATION:
            self.expiry.cancel(reminder_id)
        return self.store(category).remove(reminder_id)

    async def locate(self, draft: ReminderDraft, provider: LocationProvider) -> Place:
        """Fill a location draft's place from the device position.

        Raises:
            PermissionDeniedError: Draft is left unchanged
        """
        if draft.category != ReminderCategory.LOCATION:
            raise ValueError(f"{draft.category.value} drafts have no place")
        place = await resolve_current_place(provider)
        draft.set_field("place", place)
        return place

    def resume_expiries(self) -> int:
        """Re-arm expiry for location reminders already completed at startup.

        Timers do not survive a restart, so without this a reminder completed
        just before the app closed would never be cleaned up. Needs a running
        event loop.
        """
        armed = 0
        for record in self.store(ReminderCategory.LOCATION).reminders:
            if record.completed and record.id not in self.expiry.pending:
                self.expiry.schedule_expiry(record.id)
                armed += 1
        if armed:
            logger.info(f"Re-armed expiry for {armed} completed location reminder(s)")
        return armed

    def shutdown(self) -> None:
        """Cancel pending timers and release the database."""
        cancelled = self.expiry.cancel_all()
        if cancelled:
            logger.info(f"Cancelled {cancelled} pending expiry timer(s) on shutdown")
        self.kv.close()
