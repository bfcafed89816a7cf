from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import transaction

from .errors import Forbidden, InvalidState, NotFound
from .models import Slot, SlotStatus, as_utc
from .stores import SlotStore


async def _owned_slot(store: SlotStore, slot_id: str, user_id: str, action: str) -> Slot:
    slot = await store.get(slot_id, for_update=True)
    if slot is None:
        raise NotFound("Event not found")
    if slot.owner_id != user_id:
        raise Forbidden(f"You do not have permission to {action} this event")
    return slot


async def create_slot(session: AsyncSession, owner_id: str, fields: dict) -> Slot:
    store = SlotStore(session)
    async with transaction(session):
        slot = await store.create({**fields, "owner_id": owner_id})
    return await store.get_with_owner(slot.id)


async def update_slot(session: AsyncSession, slot_id: str, user_id: str, fields: dict) -> Slot:
    store = SlotStore(session)
    async with transaction(session):
        slot = await _owned_slot(store, slot_id, user_id, "update")

        if fields.get("status") == SlotStatus.SWAP_PENDING.value:
            raise InvalidState("SWAP_PENDING is set only by a swap request")
        # a pending slot is frozen until its request resolves
        if fields and slot.status == SlotStatus.SWAP_PENDING.value:
            raise InvalidState("slot has a pending swap request")

        start_time = fields.get("start_time", slot.start_time)
        end_time = fields.get("end_time", slot.end_time)
        if as_utc(end_time) <= as_utc(start_time):
            raise InvalidState("end_time must be after start_time")

        await store.update(slot_id, fields)

    return await store.get_with_owner(slot_id)


async def delete_slot(session: AsyncSession, slot_id: str, user_id: str):
    store = SlotStore(session)
    async with transaction(session):
        slot = await _owned_slot(store, slot_id, user_id, "delete")
        if slot.status == SlotStatus.SWAP_PENDING.value:
            raise InvalidState("slot has a pending swap request")
        await store.delete(slot_id)


async def list_my_slots(session: AsyncSession, user_id: str) -> list[Slot]:
    return await SlotStore(session).list_for_owner(user_id)
