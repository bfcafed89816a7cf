from datetime import datetime

import httpx

from .config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"

HTTP_TIMEOUT = 5.0

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]


class GoogleCalendarError(Exception):
    pass


def authorization_url(state: str) -> str:
    """Consent screen URL. Offline access with a forced prompt so Google returns a refresh token."""
    params = {
        "client_id": GOOGLE_CLIENT_ID,
        "redirect_uri": GOOGLE_REDIRECT_URI,
        "response_type": "code",
        "scope": " ".join(SCOPES),
        "access_type": "offline",
        "prompt": "consent",
        "state": state,
    }
    return str(httpx.URL(AUTH_URL, params=params))


async def exchange_code(code: str) -> dict:
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        r = await client.post(
            TOKEN_URL,
            data={
                "client_id": GOOGLE_CLIENT_ID,
                "client_secret": GOOGLE_CLIENT_SECRET,
                "redirect_uri": GOOGLE_REDIRECT_URI,
                "code": code,
                "grant_type": "authorization_code",
            },
        )
        if r.status_code != 200:
            raise GoogleCalendarError(f"code exchange failed: {r.status_code}")
        return r.json()


async def get_access_token(refresh_token: str) -> str:
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        r = await client.post(
            TOKEN_URL,
            data={
                "client_id": GOOGLE_CLIENT_ID,
                "client_secret": GOOGLE_CLIENT_SECRET,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )
        if r.status_code != 200:
            raise GoogleCalendarError(f"token refresh failed: {r.status_code}")
        token = r.json().get("access_token")
        if not token:
            raise GoogleCalendarError("token refresh returned no access_token")
        return token


async def list_events(
    refresh_token: str,
    calendar_id: str = "primary",
    time_min: datetime | None = None,
    time_max: datetime | None = None,
) -> list[dict]:
    token = await get_access_token(refresh_token)
    params = {"singleEvents": "true", "orderBy": "startTime"}
    if time_min:
        params["timeMin"] = time_min.isoformat()
    if time_max:
        params["timeMax"] = time_max.isoformat()

    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        r = await client.get(
            f"{CALENDAR_API_URL}/calendars/{calendar_id}/events",
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
        r.raise_for_status()
        return r.json().get("items") or []


async def patch_event(refresh_token: str, event_id: str, updates: dict, calendar_id: str = "primary") -> dict:
    token = await get_access_token(refresh_token)
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        r = await client.patch(
            f"{CALENDAR_API_URL}/calendars/{calendar_id}/events/{event_id}",
            json=updates,
            headers={"Authorization": f"Bearer {token}"},
        )
        r.raise_for_status()
        return r.json()
