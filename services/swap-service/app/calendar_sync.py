import logging
from datetime import datetime, timedelta, timezone

from dateutil import parser
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import transaction

from . import google_calendar
from .models import Slot, SlotStatus, User
from .stores import SlotStore

logger = logging.getLogger("swap-service.calendar_sync")

SYNC_WINDOW_DAYS = 30
DEFAULT_EVENT_LENGTH = timedelta(hours=1)


def parse_event_times(event: dict) -> tuple[datetime, datetime] | None:
    """Start/end of a Google event; all-day events use their dates. None if unusable."""
    start = event.get("start") or {}
    end = event.get("end") or {}

    raw_start = start.get("dateTime") or start.get("date")
    if not raw_start:
        return None

    try:
        start_time = parser.isoparse(raw_start)
        raw_end = end.get("dateTime") or end.get("date")
        end_time = parser.isoparse(raw_end) if raw_end else start_time + DEFAULT_EVENT_LENGTH
    except ValueError:
        return None

    if end_time <= start_time:
        end_time = start_time + DEFAULT_EVENT_LENGTH
    return start_time, end_time


def event_slot_id(event: dict, start_time: datetime) -> str:
    if event.get("id"):
        return event["id"]
    return f"google-{event.get('iCalUID') or int(start_time.timestamp() * 1000)}"


async def sync_user_calendar(session: AsyncSession, user: User, now: datetime | None = None) -> list[Slot]:
    """
    Import the user's upcoming Google events as BUSY slots.
    Existing slots keep their status; slots now owned by someone else, or pending
    a swap, are left alone.
    """
    now = now or datetime.now(timezone.utc)
    events = await google_calendar.list_events(
        user.google_refresh_token,
        user.google_calendar_id or "primary",
        time_min=now,
        time_max=now + timedelta(days=SYNC_WINDOW_DAYS),
    )

    slots = SlotStore(session)
    synced_ids = []
    async with transaction(session):
        for ev in events:
            times = parse_event_times(ev)
            if times is None:
                continue
            start_time, end_time = times
            slot_id = event_slot_id(ev, start_time)
            fields = {
                "title": ev.get("summary") or "Untitled Event",
                "start_time": start_time,
                "end_time": end_time,
            }

            existing = await slots.get(slot_id)
            if existing is None:
                await slots.create({"id": slot_id, "status": SlotStatus.BUSY.value, "owner_id": user.id, **fields})
            elif existing.owner_id != user.id:
                logger.info("sync skipped slot=%s owned by another user", slot_id)
                continue
            elif existing.status == SlotStatus.SWAP_PENDING.value:
                logger.info("sync skipped slot=%s with a pending swap request", slot_id)
                continue
            else:
                await slots.update(slot_id, fields)
            synced_ids.append(slot_id)

    logger.info("calendar sync user=%s events=%d synced=%d", user.id, len(events), len(synced_ids))
    return [await slots.get_with_owner(slot_id) for slot_id in synced_ids]
