import logging
from datetime import datetime
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import transaction

from . import calendar_sync, google_calendar, notifier, publisher, slots, swaps
from .config import FRONTEND_URL, GOOGLE_CLIENT_ID
from .db import get_db
from .hooks import PostCommitHooks
from .models import User
from .schemas import (
    Signup, Login, AuthResponse, UserStatus, GoogleAuthUrl,
    CreateSlot, UpdateSlot, SlotResponse, SyncResponse,
    CreateSwapRequest, RespondToSwap, SwapRequestResponse,
    user_summary, slot_response, swap_request_response,
)
from .security import (
    get_current_user, hash_password, verify_password, create_token,
    create_oauth_state, read_oauth_state,
)

logger = logging.getLogger("swap-service.routes")

router = APIRouter()


def get_hooks() -> PostCommitHooks:
    hooks = PostCommitHooks()
    publisher.register(hooks)
    notifier.register(hooks)
    return hooks


async def _email_taken(db: AsyncSession, email: str) -> bool:
    res = await db.execute(select(User.id).where(User.email == email))
    return res.scalar_one_or_none() is not None


# ================= AUTH =================

@router.post("/auth/signup", response_model=AuthResponse, status_code=201, tags=["Auth"])
async def signup(data: Signup, db: AsyncSession = Depends(get_db)):
    if await _email_taken(db, data.email):
        raise HTTPException(status_code=400, detail="User with this email already exists")

    try:
        async with transaction(db):
            user = User(email=data.email, name=data.name, password=hash_password(data.password))
            db.add(user)
            await db.flush()
    except IntegrityError:
        # lost a race with a concurrent signup for the same email
        raise HTTPException(status_code=400, detail="User with this email already exists")

    return AuthResponse(token=create_token(user.id), user=user_summary(user))


@router.post("/auth/login", response_model=AuthResponse, tags=["Auth"])
async def login(data: Login, db: AsyncSession = Depends(get_db)):
    res = await db.execute(select(User).where(User.email == data.email))
    user = res.scalar_one_or_none()

    if not user or not verify_password(data.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return AuthResponse(token=create_token(user.id), user=user_summary(user))


@router.get("/auth/google", response_model=GoogleAuthUrl, tags=["Auth"])
async def google_auth(user: User = Depends(get_current_user)):
    if not GOOGLE_CLIENT_ID:
        raise HTTPException(status_code=503, detail="Google OAuth is not configured")
    return GoogleAuthUrl(authUrl=google_calendar.authorization_url(create_oauth_state(user.id)))


def _dashboard(**params) -> RedirectResponse:
    return RedirectResponse(str(httpx.URL(f"{FRONTEND_URL}/dashboard", params=params)))


@router.get("/auth/google/callback", tags=["Auth"])
async def google_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    if error:
        return _dashboard(error="Google OAuth cancelled")
    if not code or not state:
        return _dashboard(error="missing_parameters")

    user_id = read_oauth_state(state)
    if not user_id:
        return _dashboard(error="invalid_state")

    try:
        tokens = await google_calendar.exchange_code(code)
    except (google_calendar.GoogleCalendarError, httpx.HTTPError) as e:
        logger.warning("google code exchange failed user=%s: %s", user_id, e)
        return _dashboard(error="oauth_failed")

    refresh_token = tokens.get("refresh_token")
    if not refresh_token:
        return _dashboard(error="no_refresh_token")

    async with transaction(db):
        user = await db.get(User, user_id)
        if user is None:
            return _dashboard(error="invalid_state")
        user.google_refresh_token = refresh_token
        user.google_calendar_id = user.google_calendar_id or "primary"

    logger.info("google calendar connected user=%s", user_id)
    return _dashboard(success="google_connected")


# ================= USER =================

@router.get("/user/status", response_model=UserStatus, tags=["User"])
async def user_status(user: User = Depends(get_current_user)):
    return UserStatus(
        has_google_connected=bool(user.google_refresh_token),
        google_calendar_id=user.google_calendar_id,
    )


# ================= SLOTS =================

@router.get("/events", response_model=List[SlotResponse], tags=["Slots"])
async def list_events(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return [slot_response(s) for s in await slots.list_my_slots(db, user.id)]


@router.post("/events", response_model=SlotResponse, status_code=201, tags=["Slots"])
async def create_event(
    data: CreateSlot,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    slot = await slots.create_slot(db, user.id, data.model_dump())
    return slot_response(slot)


@router.put("/events/{slot_id}", response_model=SlotResponse, tags=["Slots"])
async def update_event(
    slot_id: str,
    data: UpdateSlot,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    slot = await slots.update_slot(db, slot_id, user.id, data.changed_fields())
    return slot_response(slot)


@router.delete("/events/{slot_id}", tags=["Slots"])
async def delete_event(slot_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await slots.delete_slot(db, slot_id, user.id)
    return {"message": "Event deleted successfully"}


@router.post("/events/sync", response_model=SyncResponse, tags=["Slots"])
async def sync_events(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    if not user.google_refresh_token:
        raise HTTPException(status_code=400, detail="Google Calendar not connected")

    try:
        synced = await calendar_sync.sync_user_calendar(db, user)
    except (google_calendar.GoogleCalendarError, httpx.HTTPError) as e:
        logger.warning("calendar sync failed user=%s: %s", user.id, e)
        raise HTTPException(status_code=502, detail="Failed to sync Google Calendar")

    return SyncResponse(
        message=f"Synced {len(synced)} events",
        events=[slot_response(s) for s in synced],
    )


# ================= SWAPS =================

@router.get("/swap/available", response_model=List[SlotResponse], tags=["Swaps"])
async def available_slots(
    search: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    duration: Optional[int] = Query(default=None, ge=1, description="minutes"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    filters = swaps.AvailableFilters(
        search=search,
        start_date=start_date,
        end_date=end_date,
        duration_minutes=duration,
    )
    return [slot_response(s) for s in await swaps.list_available(db, user.id, filters)]


@router.post("/swap/request", response_model=SwapRequestResponse, status_code=201, tags=["Swaps"])
async def request_swap(
    data: CreateSwapRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    hooks: PostCommitHooks = Depends(get_hooks),
):
    req = await swaps.propose(db, user.id, data.my_slot_id, data.their_slot_id, hooks=hooks)
    return swap_request_response(req)


@router.get("/swap/requests", response_model=List[SwapRequestResponse], tags=["Swaps"])
async def swap_requests(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return [swap_request_response(r) for r in await swaps.list_requests_for(db, user.id)]


@router.post("/swap/respond/{request_id}", response_model=SwapRequestResponse, tags=["Swaps"])
async def respond_to_swap(
    request_id: str,
    data: RespondToSwap,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    hooks: PostCommitHooks = Depends(get_hooks),
):
    req = await swaps.respond(db, request_id, user.id, data.accept, hooks=hooks)
    return swap_request_response(req)
