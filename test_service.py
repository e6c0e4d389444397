"""End-to-end tests for ReminderService, the API a UI layer drives.

Covers the three categories through one shared durable store.
"""

import asyncio
from datetime import time

import pytest

from database import KeyValueStore
from errors import DraftValidationError, PermissionDeniedError
from location import Coordinate, PermissionStatus
from schemas import ReminderCategory, Weekday
from service import ReminderService

DELAY = 0.02

ALARM = ReminderCategory.ALARM
BATTERY = ReminderCategory.BATTERY
LOCATION = ReminderCategory.LOCATION


class StaticLocationProvider:

    def __init__(self, granted=True):
        self.granted = granted

    async def request_permission(self):
        return PermissionStatus.GRANTED if self.granted else PermissionStatus.DENIED

    async def get_current_position(self):
        return Coordinate(latitude=35.6895, longitude=139.6917)

    async def reverse_geocode(self, coordinate):
        return "Shinjuku"


def make_service(kv=None):
    service = ReminderService(kv or KeyValueStore("sqlite://"), expiry_delay=DELAY)
    service.load_all()
    return service


def add_location(service, title="Buy stamps"):
    draft = service.new_draft(LOCATION)
    draft.set_field("title", title)
    draft.set_field("place", {"name": "Post office", "latitude": 1.0, "longitude": 2.0})
    return service.commit(draft)


def test_load_all_starts_empty():
    service = ReminderService(KeyValueStore("sqlite://"))
    assert service.load_all() == {ALARM: (), BATTERY: (), LOCATION: ()}


def test_alarm_flow_survives_restart():
    kv = KeyValueStore("sqlite://")
    service = make_service(kv)

    draft = service.new_draft(ALARM)
    draft.set_field("title", "Wake up")
    draft.set_field("fire_time", time(7, 30))
    draft.toggle_repeat_day("Mon")
    draft.toggle_repeat_day("Wed")
    alarm = service.commit(draft)

    assert service.toggle(ALARM, alarm.id, "active")[0].active is False
    assert service.toggle(ALARM, alarm.id, "active")[0].active is True

    restarted = make_service(kv)
    assert restarted.snapshot(ALARM) == (alarm,)
    assert restarted.snapshot(ALARM)[0].repeat_days == (Weekday.MON, Weekday.WED)


def test_battery_flow():
    service = make_service()
    draft = service.new_draft(BATTERY)
    draft.set_field("threshold_percent", 20)
    reminder = service.commit(draft)

    assert len(service.snapshot(BATTERY)) == 1
    toggled = service.toggle(BATTERY, reminder.id, "active")[0]
    assert toggled.active is False
    assert toggled.threshold_percent == 20
    assert toggled.completed is False

    completed = service.toggle(BATTERY, reminder.id, "completed")[0]
    assert completed.completed is True
    assert completed.active is False


def test_invalid_draft_leaves_everything_unchanged():
    service = make_service()
    draft = service.new_draft(LOCATION)
    draft.set_field("title", "No place yet")

    with pytest.raises(DraftValidationError):
        service.commit(draft)

    assert service.snapshot(LOCATION) == ()
    assert draft.fields == {"title": "No place yet"}


def test_edit_draft():
    service = make_service()
    record = add_location(service)

    draft = service.edit_draft(LOCATION, record.id)
    draft.set_field("title", "Buy stamps and envelopes")
    service.commit(draft)

    assert [r.title for r in service.snapshot(LOCATION)] == ["Buy stamps and envelopes"]
    assert service.edit_draft(LOCATION, "missing") is None


def test_completed_location_expires():
    service = make_service()

    async def scenario():
        record = add_location(service)
        keep = add_location(service, "Keep me")
        service.toggle(LOCATION, record.id, "completed")
        assert service.expiry.pending == (record.id,)
        await asyncio.sleep(DELAY * 5)
        return keep

    keep = asyncio.run(scenario())
    assert service.snapshot(LOCATION) == (keep,)
    assert make_service(service.kv).snapshot(LOCATION) == (keep,)


def test_uncompleting_cancels_expiry():
    service = make_service()

    async def scenario():
        record = add_location(service)
        service.toggle(LOCATION, record.id, "completed")
        service.toggle(LOCATION, record.id, "completed")
        assert service.expiry.pending == ()
        await asyncio.sleep(DELAY * 5)
        return record

    record = asyncio.run(scenario())
    assert service.snapshot(LOCATION) == (record,)


def test_manual_remove_before_expiry():
    service = make_service()

    async def scenario():
        record = add_location(service)
        service.toggle(LOCATION, record.id, "completed")
        service.remove(LOCATION, record.id)
        assert service.expiry.pending == ()
        # Removing again is harmless
        service.remove(LOCATION, record.id)
        await asyncio.sleep(DELAY * 5)

    asyncio.run(scenario())
    assert service.snapshot(LOCATION) == ()


def test_resume_expiries_after_restart():
    kv = KeyValueStore("sqlite://")
    service = make_service(kv)

    async def complete_then_stop():
        record = add_location(service)
        service.toggle(LOCATION, record.id, "completed")
        # App closes before the timer fires
        service.expiry.cancel_all()

    asyncio.run(complete_then_stop())
    assert len(make_service(kv).snapshot(LOCATION)) == 1

    restarted = make_service(kv)

    async def resume():
        assert restarted.resume_expiries() == 1
        assert restarted.resume_expiries() == 0
        await asyncio.sleep(DELAY * 5)

    asyncio.run(resume())
    assert restarted.snapshot(LOCATION) == ()


def test_locate_fills_place():
    service = make_service()
    draft = service.new_draft(LOCATION)
    draft.set_field("title", "Meet Kenji")

    place = asyncio.run(service.locate(draft, StaticLocationProvider()))

    assert place.name == "Shinjuku"
    record = service.commit(draft)
    assert record.place == place


def test_locate_denied_leaves_draft_unchanged():
    service = make_service()
    draft = service.new_draft(LOCATION)
    draft.set_field("title", "Meet Kenji")

    with pytest.raises(PermissionDeniedError):
        asyncio.run(service.locate(draft, StaticLocationProvider(granted=False)))
    assert "place" not in draft.fields


def test_locate_requires_location_draft():
    service = make_service()
    with pytest.raises(ValueError):
        asyncio.run(service.locate(service.new_draft(ALARM), StaticLocationProvider()))


def test_shutdown_cancels_timers(tmp_path):
    service = make_service(KeyValueStore(f"sqlite:///{tmp_path / 'reminders.db'}"))

    async def scenario():
        record = add_location(service)
        service.toggle(LOCATION, record.id, "completed")
        service.shutdown()
        assert service.expiry.pending == ()

    asyncio.run(scenario())


def test_edit_back_to_uncompleted_disarms_expiry():
    service = make_service()

    async def scenario():
        record = add_location(service)
        service.toggle(LOCATION, record.id, "completed")
        draft = service.edit_draft(LOCATION, record.id)
        draft.set_field("completed", False)
        service.commit(draft)
        assert service.expiry.pending == ()
        await asyncio.sleep(DELAY * 5)
        return record.id

    record_id = asyncio.run(scenario())
    kept = service.store(LOCATION).get(record_id)
    assert kept is not None
    assert kept.completed is False


def test_new_completed_location_expires():
    service = make_service()

    async def scenario():
        draft = service.new_draft(LOCATION)
        draft.set_field("title", "Already done")
        draft.set_field("place", {"name": "Gym", "latitude": 3.0, "longitude": 4.0})
        draft.set_field("completed", True)
        record = service.commit(draft)
        assert service.expiry.pending == (record.id,)
        await asyncio.sleep(DELAY * 5)

    asyncio.run(scenario())
    assert service.snapshot(LOCATION) == ()


def test_edit_committed_after_expiry_is_cleaned_up():
    service = make_service()

    async def scenario():
        record = add_location(service)
        service.toggle(LOCATION, record.id, "completed")
        draft = service.edit_draft(LOCATION, record.id)
        await asyncio.sleep(DELAY * 5)
        assert service.snapshot(LOCATION) == ()

        draft.set_field("title", "Buy stamps today")
        restored = service.commit(draft)
        assert restored.completed is True
        assert service.expiry.pending == (record.id,)
        await asyncio.sleep(DELAY * 5)

    asyncio.run(scenario())
    assert service.snapshot(LOCATION) == ()


def test_completing_outside_event_loop_changes_nothing():
    kv = KeyValueStore("sqlite://")
    service = make_service(kv)
    record = add_location(service)

    with pytest.raises(RuntimeError):
        service.toggle(LOCATION, record.id, "completed")

    assert service.store(LOCATION).get(record.id).completed is False
    assert make_service(kv).snapshot(LOCATION) == (record,)
    assert service.expiry.pending == ()


def test_committing_completed_location_outside_event_loop_changes_nothing():
    service = make_service()
    draft = service.new_draft(LOCATION)
    draft.set_field("title", "Already done")
    draft.set_field("place", {"name": "Gym", "latitude": 3.0, "longitude": 4.0})
    draft.set_field("completed", True)
    fields_before = dict(draft.fields)

    with pytest.raises(RuntimeError):
        service.commit(draft)

    assert service.snapshot(LOCATION) == ()
    assert draft.fields == fields_before


def test_uncompleting_outside_event_loop_is_allowed():
    service = make_service()
    record = add_location(service)

    async def complete():
        service.toggle(LOCATION, record.id, "completed")
        service.expiry.cancel_all()

    asyncio.run(complete())
    snapshot = service.toggle(LOCATION, record.id, "completed")
    assert snapshot[0].completed is False
