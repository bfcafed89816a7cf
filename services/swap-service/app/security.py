from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from .config import JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRE_DAYS
from .db import get_db
from .models import User

pwd_context = CryptContext(schemes=["bcrypt"])

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def create_token(user_id: str) -> str:
    expires = datetime.now(timezone.utc) + timedelta(days=JWT_EXPIRE_DAYS)
    return jwt.encode({"sub": user_id, "exp": expires}, JWT_SECRET, algorithm=JWT_ALGORITHM)


OAUTH_STATE_PURPOSE = "google_oauth"
OAUTH_STATE_TTL = timedelta(minutes=10)


def create_oauth_state(user_id: str) -> str:
    expires = datetime.now(timezone.utc) + OAUTH_STATE_TTL
    claims = {"sub": user_id, "purpose": OAUTH_STATE_PURPOSE, "exp": expires}
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def read_oauth_state(state: str) -> str | None:
    """User id carried by a state issued by create_oauth_state, or None."""
    try:
        payload = jwt.decode(state, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
    if payload.get("purpose") != OAUTH_STATE_PURPOSE:
        return None
    return payload.get("sub")


async def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    token = None
    if creds and creds.scheme.lower() == "bearer":
        token = creds.credentials

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Bearer token",
        )

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    # purpose-bound tokens (OAuth state) are not sessions
    sub = None if payload.get("purpose") else payload.get("sub")
    user = await db.get(User, sub) if sub else None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    request.state.user_sub = user.id
    return user
