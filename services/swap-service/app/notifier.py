import logging

from . import google_calendar
from .hooks import PostCommitHooks, SWAP_ACCEPTED
from .models import Slot, SwapRequest, User, as_utc

logger = logging.getLogger("swap-service.notifier")


class CalendarNotifier:
    """Mirrors an accepted swap into the new owner's Google Calendar."""

    async def on_accepted(self, owner: User, slot: Slot, counterpart: User):
        if not owner.google_refresh_token:
            return

        await google_calendar.patch_event(
            owner.google_refresh_token,
            slot.id,
            {
                "summary": slot.title,
                "start": {"dateTime": as_utc(slot.start_time).isoformat(), "timeZone": "UTC"},
                "end": {"dateTime": as_utc(slot.end_time).isoformat(), "timeZone": "UTC"},
                "description": f"Swapped with {counterpart.name}",
            },
            calendar_id=owner.google_calendar_id or "primary",
        )
        logger.info("calendar updated owner=%s slot=%s", owner.id, slot.id)

    async def __call__(self, request: SwapRequest):
        # requester now owns their_slot, requested user now owns my_slot
        pairs = [
            (request.requester, request.their_slot, request.requested_user),
            (request.requested_user, request.my_slot, request.requester),
        ]
        for owner, slot, counterpart in pairs:
            try:
                await self.on_accepted(owner, slot, counterpart)
            except Exception as e:
                logger.warning(
                    "calendar update failed owner=%s slot=%s request_id=%s: %s",
                    owner.id, slot.id, request.id, e,
                )


def register(hooks: PostCommitHooks, notifier: CalendarNotifier | None = None) -> PostCommitHooks:
    return hooks.on(SWAP_ACCEPTED, notifier or CalendarNotifier())
