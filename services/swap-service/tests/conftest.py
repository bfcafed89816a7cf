"""
Shared fixtures for the swap-service test suite.

Each test gets its own SQLite database file (through aiosqlite), so the
transaction code runs against a real SQL backend with real locking.
"""

import os
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test env vars before any app imports
os.environ.setdefault("SWAP_DB", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("JWT_ALGORITHM", "HS256")

from shared.database import Base, get_engine, get_session  # noqa: E402

from app import models  # noqa: E402
from app.hooks import PostCommitHooks, SWAP_ACCEPTED  # noqa: E402
from app.models import Slot, SlotStatus, User  # noqa: E402
from app.security import create_token  # noqa: E402

BASE_TIME = datetime(2030, 1, 7, 9, 0)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine(tmp_path):
    eng = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'swap.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

# Factories detach what they build so a rollback in the code under test
# cannot expire it.

async def make_user(session, name: str, **overrides) -> User:
    user = User(
        email=overrides.pop("email", f"{name.lower()}@example.com"),
        name=name,
        password=overrides.pop("password", "not-a-real-hash"),
        **overrides,
    )
    session.add(user)
    await session.commit()
    session.expunge(user)
    return user


async def make_slot(
    session,
    owner: User,
    title: str = "Standup",
    status: SlotStatus = SlotStatus.SWAPPABLE,
    start: datetime = BASE_TIME,
    minutes: int = 60,
    **overrides,
) -> Slot:
    slot = Slot(
        title=title,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        status=status.value,
        owner_id=owner.id,
        **overrides,
    )
    session.add(slot)
    await session.commit()
    session.expunge(slot)
    return slot


@pytest.fixture
async def alice(session):
    return await make_user(session, "Alice")


@pytest.fixture
async def bob(session):
    return await make_user(session, "Bob")


@pytest.fixture
async def carol(session):
    return await make_user(session, "Carol")


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_notifier():
    return AsyncMock(name="calendar_notifier")


@pytest.fixture
def hooks(mock_notifier):
    return PostCommitHooks().on(SWAP_ACCEPTED, mock_notifier)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest.fixture
async def app(session_factory, hooks):
    from app.db import get_db
    from app.main import app as _app
    from app.routes import get_hooks

    async def _get_db():
        async with session_factory() as s:
            yield s

    _app.dependency_overrides[get_db] = _get_db
    _app.dependency_overrides[get_hooks] = lambda: hooks
    yield _app
    _app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_token(user.id)}"}
