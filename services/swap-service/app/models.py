import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from .db import Base


class SlotStatus(str, enum.Enum):
    BUSY = "BUSY"
    SWAPPABLE = "SWAPPABLE"
    SWAP_PENDING = "SWAP_PENDING"


class SwapStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    # naive values (SQLite, clients without an offset) are taken as UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    password = Column(String, nullable=False)

    google_refresh_token = Column(String, nullable=True)
    google_calendar_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Slot(Base):
    __tablename__ = "slots"

    id = Column(String, primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    status = Column(String, nullable=False, default=SlotStatus.BUSY.value)  # BUSY/SWAPPABLE/SWAP_PENDING
    owner_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    owner = relationship("User", lazy="raise")

    __table_args__ = (
        Index("ix_slots_owner_id", "owner_id"),
        Index("ix_slots_status_start_time", "status", "start_time"),
    )


class SwapRequest(Base):
    __tablename__ = "swap_requests"

    id = Column(String, primary_key=True, default=new_id)
    status = Column(String, nullable=False, default=SwapStatus.PENDING.value)  # PENDING/ACCEPTED/REJECTED

    requester_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    requested_user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    my_slot_id = Column(String, ForeignKey("slots.id", ondelete="CASCADE"), nullable=False)
    their_slot_id = Column(String, ForeignKey("slots.id", ondelete="CASCADE"), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    requester = relationship("User", foreign_keys=[requester_id], lazy="raise")
    requested_user = relationship("User", foreign_keys=[requested_user_id], lazy="raise")
    my_slot = relationship("Slot", foreign_keys=[my_slot_id], lazy="raise")
    their_slot = relationship("Slot", foreign_keys=[their_slot_id], lazy="raise")

    __table_args__ = (
        Index("ix_swap_requests_requester_id", "requester_id"),
        Index("ix_swap_requests_requested_user_id", "requested_user_id"),
        Index("ix_swap_requests_status", "status"),
    )
