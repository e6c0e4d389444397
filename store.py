"""ReminderStore: single source of truth for one category's reminders.

Every mutation rewrites the whole collection to the durable key-value layer
before returning. The durable layer only offers whole-value get/set, so a
full overwrite is the consistency model, not an incremental append.
"""

import json
from typing import List, Optional, Tuple

from pydantic import ValidationError

from database import KeyValueStore
from errors import PersistenceError
from logger_config import setup_logger
from schemas import (
    CATEGORY_MODELS,
    ReminderBase,
    ReminderCategory,
    dump_collection,
    parse_collection,
    storage_key,
)

logger = setup_logger(__name__, 'store.log')

TOGGLE_FIELDS = ("active", "completed")


class ReminderStore:
    """In-memory ordered collection of one category, write-coupled to storage.

    Usage:
        alarms = ReminderStore(ReminderCategory.ALARM, KeyValueStore())
        alarms.load()
        alarms.toggle_field(alarm_id, "active")
    """

    def __init__(self, category: ReminderCategory, kv: KeyValueStore):
        self.category = ReminderCategory(category)
        self.model = CATEGORY_MODELS[self.category]
        self.key = storage_key(self.category)
        self.kv = kv
        self._records: List[ReminderBase] = []

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self):
        return f"<ReminderStore(category={self.category.value}, key={self.key}, size={len(self)})>"

    @property
    def reminders(self) -> Tuple[ReminderBase, ...]:
        """Read-only snapshot of the current collection."""
        return tuple(self._records)

    def get(self, reminder_id: str) -> Optional[ReminderBase]:
        """Return the record with ``reminder_id`` or None."""
        return next((r for r in self._records if r.id == reminder_id), None)

    def load(self) -> Tuple[ReminderBase, ...]:
        """Replace the in-memory collection with the durable one.

        Soft failure: unreadable storage, corrupt JSON or records that do
        not match the schema all yield an empty collection.

        Returns:
            Tuple of records in stored order
        """
        try:
            raw = self.kv.get(self.key)
        except PersistenceError as e:
            logger.warning(f"Could not read '{self.key}', starting empty: {str(e)}")
            self._records = []
            return self.reminders

        if raw is None:
            self._records = []
            return self.reminders

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            missing_ids = sum(1 for item in data if isinstance(item, dict) and "id" not in item)
            records = parse_collection(self.category, data)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Discarding unreadable '{self.key}' collection: {str(e)}")
            self._records = []
            return self.reminders

        self._records = []
        seen = set()
        for record in records:
            if record.id in seen:
                logger.warning(f"Dropping duplicate id {record.id} from '{self.key}'")
                continue
            seen.add(record.id)
            self._records.append(record)

        logger.info(f"Loaded {len(self._records)} {self.category.value} reminder(s)")

        # Ids generated for legacy records must be stable across reloads
        if missing_ids or len(self._records) != len(records):
            logger.info(f"Assigned {missing_ids} missing id(s) in '{self.key}', rewriting")
            self.persist()

        return self.reminders

    def upsert(self, record: ReminderBase) -> Tuple[ReminderBase, ...]:
        """Replace the record with the same id in place, or append it.

        The record is assumed to be validated already (see ReminderDraft).

        Raises:
            TypeError: If the record belongs to another category
        """
        if not isinstance(record, self.model):
            raise TypeError(
                f"{self.category.value} store cannot hold {type(record).__name__}"
            )

        for index, existing in enumerate(self._records):
            if existing.id == record.id:
                self._records[index] = record
                logger.info(f"Updated {self.category.value} reminder {record.id}")
                break
        else:
            self._records.append(record)
            logger.info(f"Added {self.category.value} reminder {record.id}")

        self.persist()
        return self.reminders

    def toggle_field(self, reminder_id: str, field: str) -> Tuple[ReminderBase, ...]:
        """Flip ``active`` or ``completed`` on the matching record.

        Unknown ids are a silent no-op.

        Raises:
            ValueError: If ``field`` is not a toggleable flag
        """
        if field not in TOGGLE_FIELDS:
            raise ValueError(f"Cannot toggle '{field}', expected one of {TOGGLE_FIELDS}")

        for index, existing in enumerate(self._records):
            if existing.id == reminder_id:
                self._records[index] = existing.model_copy(
                    update={field: not getattr(existing, field)}
                )
                logger.info(
                    f"Toggled {field} on {self.category.value} reminder {reminder_id} "
                    f"-> {getattr(self._records[index], field)}"
                )
                break
        else:
            logger.debug(f"Toggle on missing {self.category.value} reminder {reminder_id}, ignored")

        self.persist()
        return self.reminders

    def remove(self, reminder_id: str) -> Tuple[ReminderBase, ...]:
        """Remove the matching record. Unknown ids are a silent no-op."""
        remaining = [r for r in self._records if r.id != reminder_id]
        if len(remaining) == len(self._records):
            logger.debug(f"Remove on missing {self.category.value} reminder {reminder_id}, ignored")
        else:
            logger.info(f"Removed {self.category.value} reminder {reminder_id}")
        self._records = remaining

        self.persist()
        return self.reminders

    def persist(self) -> bool:
        """Overwrite the durable key with the full collection.

        A storage failure is logged and swallowed; the in-memory collection
        stays authoritative for the rest of the session.

        Returns:
            bool: True if the write reached durable storage
        """
        payload = dump_collection(self.category, self._records)
        try:
            self.kv.set(self.key, payload)
        except PersistenceError as e:
            logger.error(
                f"Persisting {len(self._records)} {self.category.value} reminder(s) failed, "
                f"keeping in-memory state: {str(e)}"
            )
            return False
        return True
