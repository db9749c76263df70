"""Calendar API endpoints (Google Calendar passthrough).

GET  /api/calendar/status      is a calendar connected?
GET  /api/calendar/events      upcoming events on the primary calendar
GET  /api/calendar/calendars   the user's calendars
POST /api/calendar/events      create a timed or all-day event
"""

from __future__ import annotations

from typing import Union

from fastapi import APIRouter, HTTPException, Query
from pydantic import Field

from gtd.integrations.google_calendar import CalendarError, CalendarNotConnectedError, calendar_client
from gtd.models.base import CamelModel

router = APIRouter(prefix="/api/calendar", tags=["calendar"])


class TimedPoint(CamelModel):
    date_time: str
    time_zone: str | None = None


class AllDayPoint(CamelModel):
    date: str


EventPoint = Union[TimedPoint, AllDayPoint]


class CreateEventRequest(CamelModel):
    summary: str = Field(min_length=1)
    description: str | None = None
    start: EventPoint
    end: EventPoint
    location: str | None = None


def _upstream_error(e: CalendarError) -> HTTPException:
    if isinstance(e, CalendarNotConnectedError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=502, detail=str(e))


@router.get("/status")
async def calendar_status() -> dict:
    return await calendar_client.check_connection()


@router.get("/events")
async def list_events(max_results: int = Query(default=20, ge=1, le=250, alias="maxResults")) -> list[dict]:
    try:
        return await calendar_client.list_upcoming_events(max_results=max_results)
    except CalendarError as e:
        raise _upstream_error(e)


@router.get("/calendars")
async def list_calendars() -> list[dict]:
    try:
        return await calendar_client.list_calendars()
    except CalendarError as e:
        raise _upstream_error(e)


@router.post("/events", status_code=201)
async def create_event(request: CreateEventRequest) -> dict:
    try:
        return await calendar_client.create_event(request.model_dump(by_alias=True, exclude_none=True))
    except CalendarError as e:
        raise _upstream_error(e)
