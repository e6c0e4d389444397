"""ReminderDraft: an in-progress reminder built from discrete user edits.

A draft never touches the store until ``commit`` succeeds, and a failed
commit leaves the draft exactly as it was.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from errors import DraftValidationError
from logger_config import setup_logger
from schemas import CATEGORY_MODELS, ReminderBase, ReminderCategory, Weekday, draft_fields
from store import ReminderStore

logger = setup_logger(__name__, 'drafts.log')

# Fields that must be present before a draft can become a record
REQUIRED_FIELDS = {
    ReminderCategory.ALARM: ("title", "fire_time"),
    ReminderCategory.BATTERY: ("threshold_percent",),
    ReminderCategory.LOCATION: ("title", "place"),
}


class ReminderDraft:
    """Partially filled candidate record for one category.

    A draft seeded from an existing record keeps its id, so committing it
    replaces that record instead of appending a new one.
    """

    def __init__(self, category: ReminderCategory):
        self.category = ReminderCategory(category)
        self.model = CATEGORY_MODELS[self.category]
        self.allowed_fields = draft_fields(self.category)
        self.reminder_id: Optional[str] = None
        self.fields: Dict[str, Any] = {}

    @classmethod
    def from_record(cls, record: ReminderBase) -> "ReminderDraft":
        """Seed a draft with every field of an existing record, id included."""
        draft = cls(record.category)
        draft.reminder_id = record.id
        draft.fields = {name: getattr(record, name) for name in draft.allowed_fields}
        return draft

    def __repr__(self):
        return (
            f"<ReminderDraft(category={self.category.value}, id={self.reminder_id}, "
            f"fields={sorted(self.fields)})>"
        )

    @property
    def is_editing(self) -> bool:
        return self.reminder_id is not None

    @property
    def is_empty(self) -> bool:
        return self.reminder_id is None and not self.fields

    def set_field(self, name: str, value: Any) -> None:
        """Merge one field into the draft.

        Raises:
            ValueError: If the category has no such field
        """
        if name not in self.allowed_fields:
            raise ValueError(
                f"{self.category.value} reminders have no field '{name}' "
                f"(expected one of {self.allowed_fields})"
            )
        self.fields[name] = value

    def toggle_repeat_day(self, day) -> None:
        """Add ``day`` to the repeat days, or remove it if already there.

        Raises:
            ValueError: For non-alarm drafts or an unknown weekday
        """
        if self.category != ReminderCategory.ALARM:
            raise ValueError(f"{self.category.value} reminders have no repeat days")

        day = Weekday(day)
        days: List[Weekday] = [Weekday(d) for d in self.fields.get("repeat_days") or ()]
        if day in days:
            days = [d for d in days if d != day]
        else:
            days.append(day)
        self.fields["repeat_days"] = tuple(days)

    def missing_fields(self) -> List[str]:
        """Names of required fields that are absent, blank or out of range."""
        missing = []
        for name in REQUIRED_FIELDS[self.category]:
            value = self.fields.get(name)
            if name == "title":
                if not isinstance(value, str) or not value.strip():
                    missing.append(name)
            elif name == "threshold_percent":
                try:
                    positive = value is not None and float(value) > 0
                except (TypeError, ValueError):
                    positive = False
                if not positive:
                    missing.append(name)
            elif value is None:
                missing.append(name)
        return missing

    def validate(self) -> ReminderBase:
        """Build the record this draft describes.

        Returns:
            A fully formed record; a fresh id is assigned when the draft has none

        Raises:
            DraftValidationError: Naming every missing or invalid field
        """
        missing = self.missing_fields()
        if missing:
            raise DraftValidationError(missing)

        data = dict(self.fields)
        if self.reminder_id is not None:
            data["id"] = self.reminder_id

        try:
            return self.model(**data)
        except ValidationError as e:
            raise DraftValidationError(self._invalid_fields(e)) from e

    def commit(self, store: ReminderStore) -> ReminderBase:
        """Validate, upsert into ``store`` and clear the draft.

        Raises:
            DraftValidationError: The draft and the store are both left unchanged
        """
        if store.category != self.category:
            raise ValueError(
                f"Cannot commit a {self.category.value} draft into the {store.category.value} store"
            )

        try:
            record = self.validate()
        except DraftValidationError as e:
            logger.info(f"Rejected {self.category.value} draft: {str(e)}")
            raise

        store.upsert(record)
        self.clear()
        return record

    def clear(self) -> None:
        """Reset to an empty, new-record draft."""
        self.reminder_id = None
        self.fields = {}

    def _invalid_fields(self, error: ValidationError) -> List[str]:
        # pydantic reports aliases ("time", "percentage"); map back to field names
        by_alias = {
            (info.alias or name): name for name, info in self.model.model_fields.items()
        }
        names = []
        for detail in error.errors():
            if not detail.get("loc"):
                continue
            loc = str(detail["loc"][0])
            name = by_alias.get(loc, loc)
            if name not in names:
                names.append(name)
        return names
