from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

from app.calendar_sync import parse_event_times, event_slot_id, sync_user_calendar
from app.models import SlotStatus
from app.stores import SlotStore

from .conftest import BASE_TIME, make_slot, make_user


def test_parse_timed_event():
    start, end = parse_event_times(
        {"start": {"dateTime": "2030-01-01T09:00:00"}, "end": {"dateTime": "2030-01-01T09:45:00"}}
    )
    assert start == datetime(2030, 1, 1, 9, 0)
    assert end - start == timedelta(minutes=45)


def test_parse_all_day_and_missing_end():
    start, end = parse_event_times({"start": {"date": "2030-01-01"}, "end": {"date": "2030-01-02"}})
    assert (start, end) == (datetime(2030, 1, 1), datetime(2030, 1, 2))

    start, end = parse_event_times({"start": {"dateTime": "2030-01-01T09:00:00"}})
    assert end - start == timedelta(hours=1)


def test_parse_unusable_events():
    assert parse_event_times({}) is None
    assert parse_event_times({"start": {"dateTime": "not a date"}}) is None


def test_event_slot_id_fallbacks():
    start = datetime(2030, 1, 1, 9)
    assert event_slot_id({"id": "g1"}, start) == "g1"
    assert event_slot_id({"iCalUID": "ical@x"}, start) == "google-ical@x"
    assert event_slot_id({}, start).startswith("google-")


async def test_sync_upserts_owned_events_and_skips_foreign(session):
    alice = await make_user(session, "Alice", google_refresh_token="tok")
    mallory = await make_user(session, "Mallory")
    owned = await make_slot(session, alice, "Old title", status=SlotStatus.SWAPPABLE, id="g-owned")
    await make_slot(session, mallory, "Swapped away", id="g-foreign")

    events = [
        {"id": "g-new", "summary": "Dentist",
         "start": {"dateTime": "2030-02-01T10:00:00"}, "end": {"dateTime": "2030-02-01T11:00:00"}},
        {"id": "g-owned", "summary": "New title",
         "start": {"dateTime": "2030-02-02T10:00:00"}, "end": {"dateTime": "2030-02-02T10:30:00"}},
        {"id": "g-foreign", "summary": "Mine again?",
         "start": {"dateTime": "2030-02-03T10:00:00"}, "end": {"dateTime": "2030-02-03T10:30:00"}},
        {"id": "g-broken", "start": {}},
    ]
    with patch("app.calendar_sync.google_calendar.list_events", new=AsyncMock(return_value=events)) as list_events:
        synced = await sync_user_calendar(session, alice)

    assert list_events.await_args.args[:2] == ("tok", "primary")
    assert [s.id for s in synced] == ["g-new", "g-owned"]

    store = SlotStore(session)
    created = await store.get("g-new")
    assert (created.owner_id, created.status, created.title) == (alice.id, SlotStatus.BUSY, "Dentist")

    updated = await store.get(owned.id)
    assert updated.title == "New title"
    assert updated.status == SlotStatus.SWAPPABLE

    foreign = await store.get("g-foreign")
    assert (foreign.owner_id, foreign.title) == (mallory.id, "Swapped away")


async def test_sync_leaves_pending_slots_untouched(session):
    alice = await make_user(session, "Alice", google_refresh_token="tok")
    await make_slot(session, alice, "Offered", status=SlotStatus.SWAP_PENDING, id="g-offered")

    events = [
        {"id": "g-offered", "summary": "Moved",
         "start": {"dateTime": "2030-03-01T10:00:00"}, "end": {"dateTime": "2030-03-01T11:00:00"}},
    ]
    with patch("app.calendar_sync.google_calendar.list_events", new=AsyncMock(return_value=events)):
        synced = await sync_user_calendar(session, alice)

    assert synced == []
    slot = await SlotStore(session).get("g-offered")
    assert (slot.title, slot.start_time, slot.status) == ("Offered", BASE_TIME, SlotStatus.SWAP_PENDING)
