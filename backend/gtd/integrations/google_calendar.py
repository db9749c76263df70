"""Google Calendar v3 REST client.

Auth: OAuth access token. Either a static GOOGLE_CALENDAR_ACCESS_TOKEN or a
connector endpoint (CALENDAR_CONNECTOR_URL) that hands out the current
token for the linked account.
Docs: https://developers.google.com/calendar/api/v3/reference

Access tokens expire, so a token is obtained and a new HTTP client is built
on every call. Neither is kept on the instance.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import httpx

from gtd.config import settings

logger = logging.getLogger(__name__)

_HEADERS = {"Accept": "application/json"}
_PRIMARY = "primary"


class CalendarError(Exception):
    """The calendar service failed or returned an error status."""


class CalendarNotConnectedError(CalendarError):
    """No access token could be obtained."""


class GoogleCalendarClient:
    """Async client for the user's Google Calendar.

    Usage:
        client = GoogleCalendarClient()
        events = await client.list_upcoming_events(max_results=20)
        created = await client.create_event({"summary": "Review", "start": {...}, "end": {...}})
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout if timeout is not None else settings.calendar_timeout_seconds

    async def get_access_token(self) -> str:
        """Obtain a current access token. Never cached."""
        if settings.google_calendar_access_token:
            return settings.google_calendar_access_token
        if not settings.calendar_connector_url:
            raise CalendarNotConnectedError("Google Calendar not connected")

        headers = dict(_HEADERS)
        if settings.calendar_connector_token:
            headers["Authorization"] = f"Bearer {settings.calendar_connector_token}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(
                    settings.calendar_connector_url,
                    params={"include_secrets": "true", "connector_names": "google-calendar"},
                    headers=headers,
                )
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CalendarNotConnectedError(f"Calendar connector unavailable: {e}") from e

        items = data.get("items") or []
        connection = (items[0] if items else {}).get("settings") or {}
        token = connection.get("access_token") or (
            (connection.get("oauth") or {}).get("credentials", {}).get("access_token")
        )
        if not token:
            raise CalendarNotConnectedError("Google Calendar not connected")
        return token

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        token = await self.get_access_token()
        headers = {**_HEADERS, "Authorization": f"Bearer {token}"}
        try:
            async with httpx.AsyncClient(
                base_url=settings.calendar_api_base, timeout=self._timeout,
            ) as client:
                resp = await client.request(method, path, headers=headers, **kwargs)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning("Calendar %s %s returned %s", method, path, e.response.status_code)
            raise CalendarError(f"Calendar API error {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("Calendar %s %s failed: %s", method, path, e)
            raise CalendarError(f"Calendar request failed: {e}") from e
        except ValueError as e:
            logger.warning("Calendar %s %s returned a non-JSON body", method, path)
            raise CalendarError("Calendar API returned an invalid response") from e

    async def check_connection(self) -> dict:
        """``{"connected": True}`` or ``{"connected": False, "error": ...}``."""
        try:
            await self.get_access_token()
        except CalendarError as e:
            return {"connected": False, "error": str(e)}
        return {"connected": True}

    async def list_calendars(self) -> list[dict]:
        data = await self._request("GET", "/users/me/calendarList")
        return data.get("items") or []

    async def list_upcoming_events(self, max_results: int = 20, now: datetime | None = None) -> list[dict]:
        """Events on the primary calendar from now until the lookahead window ends."""
        now = now or datetime.now(timezone.utc)
        params = {
            "timeMin": now.isoformat(),
            "timeMax": (now + timedelta(days=settings.calendar_lookahead_days)).isoformat(),
            "maxResults": max_results,
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        data = await self._request("GET", f"/calendars/{_PRIMARY}/events", params=params)
        return data.get("items") or []

    async def create_event(self, event: dict) -> dict:
        """Insert an event on the primary calendar. ``event`` is the v3 event body."""
        created = await self._request("POST", f"/calendars/{_PRIMARY}/events", json=event)
        logger.info("Created calendar event %s", created.get("id"))
        return created


calendar_client = GoogleCalendarClient()
