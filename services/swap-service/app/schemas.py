from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator
from sqlalchemy import inspect

from .models import Slot, SwapRequest, User, as_utc

OwnerSettableStatus = Literal["BUSY", "SWAPPABLE"]

# ---- Auth ----

class Signup(BaseModel):
    email: str = Field(min_length=3)
    name: str = Field(min_length=1)
    password: str = Field(min_length=1)

class Login(BaseModel):
    email: str
    password: str

class UserSummary(BaseModel):
    id: str
    email: str
    name: str

class AuthResponse(BaseModel):
    token: str
    user: UserSummary

class UserStatus(BaseModel):
    has_google_connected: bool
    google_calendar_id: Optional[str] = None

class GoogleAuthUrl(BaseModel):
    authUrl: str

# ---- Slots ----

class CreateSlot(BaseModel):
    title: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    status: OwnerSettableStatus = "BUSY"

    @model_validator(mode="after")
    def check_times(self):
        if as_utc(self.end_time) <= as_utc(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self

class UpdateSlot(BaseModel):
    """Partial update: only fields present in the request body are applied."""
    title: Optional[str] = Field(default=None, min_length=1)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[OwnerSettableStatus] = None

    def changed_fields(self) -> dict:
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}

class SlotResponse(BaseModel):
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    status: str
    owner_id: str
    owner: Optional[UserSummary] = None

class SyncResponse(BaseModel):
    message: str
    events: List[SlotResponse]

# ---- Swaps ----

class CreateSwapRequest(BaseModel):
    my_slot_id: str = Field(min_length=1)
    their_slot_id: str = Field(min_length=1)

class RespondToSwap(BaseModel):
    accept: bool

class SwapRequestResponse(BaseModel):
    id: str
    status: str
    requester_id: str
    requested_user_id: str
    my_slot_id: str
    their_slot_id: str
    created_at: datetime
    requester: Optional[UserSummary] = None
    requested_user: Optional[UserSummary] = None
    my_slot: Optional[SlotResponse] = None
    their_slot: Optional[SlotResponse] = None

# ---- ORM -> response ----

def _loaded(obj, attr: str):
    if attr in inspect(obj).unloaded:
        return None
    return getattr(obj, attr)

def user_summary(user: User | None) -> UserSummary | None:
    if user is None:
        return None
    return UserSummary(id=user.id, email=user.email, name=user.name)

def slot_response(slot: Slot | None) -> SlotResponse | None:
    if slot is None:
        return None
    return SlotResponse(
        id=slot.id,
        title=slot.title,
        start_time=slot.start_time,
        end_time=slot.end_time,
        status=slot.status,
        owner_id=slot.owner_id,
        owner=user_summary(_loaded(slot, "owner")),
    )

def swap_request_response(req: SwapRequest) -> SwapRequestResponse:
    return SwapRequestResponse(
        id=req.id,
        status=req.status,
        requester_id=req.requester_id,
        requested_user_id=req.requested_user_id,
        my_slot_id=req.my_slot_id,
        their_slot_id=req.their_slot_id,
        created_at=req.created_at,
        requester=user_summary(_loaded(req, "requester")),
        requested_user=user_summary(_loaded(req, "requested_user")),
        my_slot=slot_response(_loaded(req, "my_slot")),
        their_slot=slot_response(_loaded(req, "their_slot")),
    )
