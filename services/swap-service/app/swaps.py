"""
Swap engine: the propose/respond state machine over slots and swap requests.

Every mutation runs inside `shared.database.transaction` on the injected session.
Each state transition is a conditional UPDATE whose row count is checked, so two
racing transactions can never both apply it. Hooks fire only after commit.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import transaction

from .errors import Forbidden, InvalidState, NotFound
from .hooks import PostCommitHooks, SWAP_ACCEPTED, SWAP_REJECTED, SWAP_REQUESTED
from .models import Slot, SlotStatus, SwapRequest, SwapStatus
from .stores import SlotStore, SwapRequestStore

logger = logging.getLogger("swap-service.swaps")

DURATION_TOLERANCE = timedelta(minutes=5)


@dataclass
class AvailableFilters:
    search: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    duration_minutes: int | None = None


# ---- validation helpers ----

def require_owned(slot: Slot | None, user_id: str) -> Slot:
    if slot is None or slot.owner_id != user_id:
        raise Forbidden("You do not own the specified slot")
    return slot


def require_swappable(slot: Slot, message: str):
    if slot.status != SlotStatus.SWAPPABLE.value:
        raise InvalidState(message)


def require_pending(request: SwapRequest):
    if request.status != SwapStatus.PENDING.value:
        raise InvalidState("request already resolved")


# ---- transitions ----

async def propose(
    session: AsyncSession,
    requester_id: str,
    my_slot_id: str,
    their_slot_id: str,
    hooks: PostCommitHooks | None = None,
) -> SwapRequest:
    slots = SlotStore(session)
    requests = SwapRequestStore(session)

    async with transaction(session):
        my_slot = require_owned(await slots.get(my_slot_id, for_update=True), requester_id)

        their_slot = await slots.get(their_slot_id, for_update=True)
        if their_slot is None:
            raise NotFound("Their slot not found")

        require_swappable(my_slot, "own slot not swappable")
        require_swappable(their_slot, "target slot not swappable")

        if their_slot.owner_id == requester_id:
            raise InvalidState("cannot swap with your own slot")

        request = await requests.create(
            {
                "status": SwapStatus.PENDING.value,
                "requester_id": requester_id,
                "requested_user_id": their_slot.owner_id,
                "my_slot_id": my_slot.id,
                "their_slot_id": their_slot.id,
            }
        )

        # both must still be SWAPPABLE at write time
        if await slots.mark_pending([my_slot.id, their_slot.id]) != 2:
            raise InvalidState("slot is no longer swappable")

        request = await requests.get_with_related(request.id)

    logger.info(
        "swap proposed request_id=%s requester=%s requested_user=%s",
        request.id, request.requester_id, request.requested_user_id,
    )
    if hooks:
        await hooks.fire(SWAP_REQUESTED, request)
    return request


async def respond(
    session: AsyncSession,
    request_id: str,
    responder_id: str,
    accept: bool,
    hooks: PostCommitHooks | None = None,
) -> SwapRequest:
    slots = SlotStore(session)
    requests = SwapRequestStore(session)

    async with transaction(session):
        request = await requests.get(request_id, for_update=True)
        if request is None:
            raise NotFound("Swap request not found")

        if request.requested_user_id != responder_id:
            raise Forbidden("You do not have permission to respond to this swap request")

        require_pending(request)

        target = SwapStatus.ACCEPTED if accept else SwapStatus.REJECTED
        if not await requests.transition(request.id, SwapStatus.PENDING, target):
            raise InvalidState("request already resolved")

        if accept:
            await slots.update(
                request.my_slot_id,
                {"owner_id": request.requested_user_id, "status": SlotStatus.BUSY.value},
            )
            await slots.update(
                request.their_slot_id,
                {"owner_id": request.requester_id, "status": SlotStatus.BUSY.value},
            )
        else:
            await slots.update(request.my_slot_id, {"status": SlotStatus.SWAPPABLE.value})
            await slots.update(request.their_slot_id, {"status": SlotStatus.SWAPPABLE.value})

        request = await requests.get_with_related(request.id)

    logger.info("swap %s request_id=%s by=%s", target.value.lower(), request.id, responder_id)
    if hooks:
        await hooks.fire(SWAP_ACCEPTED if accept else SWAP_REJECTED, request)
    return request


# ---- queries ----

def _duration_matches(slot: Slot, minutes: int) -> bool:
    wanted = timedelta(minutes=minutes)
    return abs((slot.end_time - slot.start_time) - wanted) <= DURATION_TOLERANCE


async def list_available(
    session: AsyncSession,
    exclude_user_id: str,
    filters: AvailableFilters | None = None,
) -> list[Slot]:
    filters = filters or AvailableFilters()
    found = await SlotStore(session).list_swappable(
        exclude_user_id,
        start_from=filters.start_date,
        end_until=filters.end_date,
    )

    # duration and title search are applied after fetch
    if filters.duration_minutes is not None:
        found = [s for s in found if _duration_matches(s, filters.duration_minutes)]

    search = (filters.search or "").strip().lower()
    if search:
        found = [s for s in found if search in s.title.lower()]

    return found


async def list_requests_for(session: AsyncSession, user_id: str) -> list[SwapRequest]:
    return await SwapRequestStore(session).list_for_user(user_id)
