"""Pydantic record models for the reminder core.

Alarm, battery and location reminders share one envelope (``id``,
``active``, ``completed``) and differ in payload. Each record class carries
its category as a class-level tag so a single store implementation can be
parameterized by category.

IMPORTANT: the persisted JSON uses the external field names
(``time``, ``repeatDays``, ``percentage``, ``location``), not the Python names.
"""

import enum
import uuid
from datetime import datetime, time
from typing import ClassVar, Dict, List, Tuple, Type
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from config import settings


class ReminderCategory(str, enum.Enum):
    """Reminder categories, one store each"""
    ALARM = "alarm"
    BATTERY = "battery"
    LOCATION = "location"


class Weekday(str, enum.Enum):
    """Fixed weekday set used by alarm repeats"""
    SUN = "Sun"
    MON = "Mon"
    TUE = "Tue"
    WED = "Wed"
    THU = "Thu"
    FRI = "Fri"
    SAT = "Sat"


def new_reminder_id() -> str:
    """Generate an opaque, collision-resistant reminder id."""
    return str(uuid.uuid4())


def parse_legacy_time(value: str) -> time:
    """Reduce an ISO datetime string to a wall-clock time of day.

    Handles:
    - ISO with Z: "2024-06-01T07:30:00.000Z" → converted to settings.TIMEZONE
    - ISO with offset: "2024-06-01T07:30:00+02:00" → converted to settings.TIMEZONE
    - Naive ISO: "2024-06-01T07:30:00" → taken as already local
    """
    dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if dt.tzinfo is not None:
        dt = dt.astimezone(ZoneInfo(settings.TIMEZONE))
    return dt.time().replace(microsecond=0, tzinfo=None)


class Place(BaseModel):
    """Named coordinate a location reminder is attached to."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(
        default_factory=lambda: settings.UNKNOWN_PLACE_NAME,
        description="Human readable place name"
    )
    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class ReminderBase(BaseModel):
    """Envelope shared by every reminder variant.

    Records are immutable; mutations produce a copy via ``model_copy``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    category: ClassVar[ReminderCategory]

    id: str = Field(
        default_factory=new_reminder_id,
        min_length=1,
        description="Opaque id, assigned once and never reassigned"
    )
    active: bool = Field(default=True, description="Participates in triggering")
    completed: bool = Field(default=False, description="Has been acted upon")


class _TitledReminder(ReminderBase):
    title: str = Field(..., min_length=1, description="Display title")

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value


class AlarmRecord(_TitledReminder):
    """Time-of-day alarm with optional weekly repeats.

    JSON layout: ``{id, title, time, repeatDays[], active, completed}``
    """

    category: ClassVar[ReminderCategory] = ReminderCategory.ALARM

    fire_time: time = Field(..., alias="time", description="Wall-clock time of day")
    repeat_days: Tuple[Weekday, ...] = Field(
        default=(),
        alias="repeatDays",
        description="Weekdays to repeat on; empty means no repeat"
    )

    @field_validator("fire_time", mode="before")
    @classmethod
    def accept_legacy_datetime(cls, value):
        # Older clients stored a full Date instead of a time of day
        if isinstance(value, datetime):
            value = value.isoformat()
        if isinstance(value, str) and "T" in value:
            return parse_legacy_time(value)
        return value

    @field_validator("repeat_days")
    @classmethod
    def normalize_days(cls, value: Tuple[Weekday, ...]) -> Tuple[Weekday, ...]:
        # Set semantics, canonical weekday order
        return tuple(day for day in Weekday if day in value)


class BatteryRecord(ReminderBase):
    """Battery threshold reminder.

    JSON layout: ``{id, percentage, completed, active}``
    """

    category: ClassVar[ReminderCategory] = ReminderCategory.BATTERY

    threshold_percent: int = Field(
        ...,
        alias="percentage",
        ge=0,
        le=100,
        description="Battery level that triggers the reminder"
    )


class LocationRecord(_TitledReminder):
    """Place-bound reminder, removed shortly after being completed.

    JSON layout: ``{id, title, location: {name, latitude, longitude}, completed, active}``
    """

    category: ClassVar[ReminderCategory] = ReminderCategory.LOCATION

    place: Place = Field(..., alias="location", description="Where the reminder applies")


CATEGORY_MODELS: Dict[ReminderCategory, Type[ReminderBase]] = {
    ReminderCategory.ALARM: AlarmRecord,
    ReminderCategory.BATTERY: BatteryRecord,
    ReminderCategory.LOCATION: LocationRecord,
}

_ADAPTERS: Dict[ReminderCategory, TypeAdapter] = {
    category: TypeAdapter(List[model]) for category, model in CATEGORY_MODELS.items()
}


def storage_key(category: ReminderCategory) -> str:
    """Durable key holding the collection of ``category``."""
    return {
        ReminderCategory.ALARM: settings.ALARMS_KEY,
        ReminderCategory.BATTERY: settings.BATTERY_KEY,
        ReminderCategory.LOCATION: settings.LOCATION_KEY,
    }[ReminderCategory(category)]


def draft_fields(category: ReminderCategory) -> Tuple[str, ...]:
    """Python field names a draft of ``category`` may set (``id`` excluded)."""
    model = CATEGORY_MODELS[ReminderCategory(category)]
    return tuple(name for name in model.model_fields if name != "id")


def parse_collection(category: ReminderCategory, data) -> List[ReminderBase]:
    """Validate decoded JSON (a list of dicts) into records.

    Raises:
        pydantic.ValidationError: When the data does not match the category schema
    """
    return _ADAPTERS[ReminderCategory(category)].validate_python(data)


def dump_collection(category: ReminderCategory, records) -> str:
    """Serialize records to the persisted JSON array."""
    adapter = _ADAPTERS[ReminderCategory(category)]
    return adapter.dump_json(list(records), by_alias=True).decode("utf-8")
