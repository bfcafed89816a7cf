from datetime import datetime

from sqlalchemy import select, update, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import Slot, SwapRequest, SlotStatus, SwapStatus

SLOT_FIELDS = {"title", "start_time", "end_time", "status", "owner_id"}
SWAP_REQUEST_FIELDS = {"status"}


def _check_fields(fields: dict, allowed: set[str]):
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {sorted(unknown)}")


class SlotStore:
    """Slot data access bound to the caller's session (the transaction scope)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, slot_id: str, for_update: bool = False) -> Slot | None:
        stmt = select(Slot).where(Slot.id == slot_id)
        if for_update:
            stmt = stmt.with_for_update()
        res = await self.session.execute(stmt.execution_options(populate_existing=True))
        return res.scalar_one_or_none()

    async def get_with_owner(self, slot_id: str) -> Slot | None:
        stmt = (
            select(Slot)
            .where(Slot.id == slot_id)
            .options(selectinload(Slot.owner))
            .execution_options(populate_existing=True)
        )
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def create(self, fields: dict) -> Slot:
        slot = Slot(**fields)
        self.session.add(slot)
        await self.session.flush()
        return slot

    async def update(self, slot_id: str, fields: dict) -> int:
        """Apply exactly the given fields. Returns the number of rows changed."""
        _check_fields(fields, SLOT_FIELDS)
        if not fields:
            return 0
        res = await self.session.execute(
            update(Slot)
            .where(Slot.id == slot_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    async def mark_pending(self, slot_ids: list[str]) -> int:
        """SWAPPABLE -> SWAP_PENDING for every given slot still SWAPPABLE."""
        res = await self.session.execute(
            update(Slot)
            .where(Slot.id.in_(slot_ids), Slot.status == SlotStatus.SWAPPABLE.value)
            .values(status=SlotStatus.SWAP_PENDING.value)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    async def delete(self, slot_id: str) -> int:
        res = await self.session.execute(
            delete(Slot).where(Slot.id == slot_id).execution_options(synchronize_session=False)
        )
        return res.rowcount

    async def list_for_owner(self, owner_id: str) -> list[Slot]:
        res = await self.session.execute(
            select(Slot)
            .where(Slot.owner_id == owner_id)
            .options(selectinload(Slot.owner))
            .order_by(Slot.start_time.asc())
        )
        return list(res.scalars().all())

    async def list_swappable(
        self,
        exclude_owner_id: str,
        start_from: datetime | None = None,
        end_until: datetime | None = None,
    ) -> list[Slot]:
        stmt = select(Slot).where(
            Slot.status == SlotStatus.SWAPPABLE.value,
            Slot.owner_id != exclude_owner_id,
        )
        if start_from is not None:
            stmt = stmt.where(Slot.start_time >= start_from)
        if end_until is not None:
            stmt = stmt.where(Slot.end_time <= end_until)

        res = await self.session.execute(
            stmt.options(selectinload(Slot.owner)).order_by(Slot.start_time.asc())
        )
        return list(res.scalars().all())


class SwapRequestStore:
    """Swap request data access bound to the caller's session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _with_related(stmt):
        return stmt.options(
            selectinload(SwapRequest.requester),
            selectinload(SwapRequest.requested_user),
            selectinload(SwapRequest.my_slot),
            selectinload(SwapRequest.their_slot),
        ).execution_options(populate_existing=True)

    async def create(self, fields: dict) -> SwapRequest:
        request = SwapRequest(**fields)
        self.session.add(request)
        await self.session.flush()
        return request

    async def get(self, request_id: str, for_update: bool = False) -> SwapRequest | None:
        stmt = select(SwapRequest).where(SwapRequest.id == request_id)
        if for_update:
            stmt = stmt.with_for_update()
        res = await self.session.execute(stmt.execution_options(populate_existing=True))
        return res.scalar_one_or_none()

    async def get_with_related(self, request_id: str) -> SwapRequest | None:
        res = await self.session.execute(
            self._with_related(select(SwapRequest).where(SwapRequest.id == request_id))
        )
        return res.scalar_one_or_none()

    async def update(self, request_id: str, fields: dict) -> int:
        _check_fields(fields, SWAP_REQUEST_FIELDS)
        if not fields:
            return 0
        res = await self.session.execute(
            update(SwapRequest)
            .where(SwapRequest.id == request_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    async def transition(self, request_id: str, from_status: SwapStatus, to_status: SwapStatus) -> bool:
        """
        Compare-and-set on status. False means another transaction got there first
        (or the request was never in `from_status`).
        """
        res = await self.session.execute(
            update(SwapRequest)
            .where(SwapRequest.id == request_id, SwapRequest.status == from_status.value)
            .values(status=to_status.value)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    async def list_for_user(self, user_id: str) -> list[SwapRequest]:
        res = await self.session.execute(
            self._with_related(
                select(SwapRequest)
                .where(or_(SwapRequest.requester_id == user_id, SwapRequest.requested_user_id == user_id))
                .order_by(SwapRequest.created_at.desc())
            )
        )
        return list(res.scalars().all())
