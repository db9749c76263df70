"""Integration status and live connection tests.

GET  /api/integrations/status          what is configured / connected
POST /api/integrations/email/test      fetch from IMAP once
POST /api/integrations/calendar/test   read one upcoming event
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlmodel import Session

from gtd.api.events import change_hub
from gtd.config import is_email_configured, settings
from gtd.db.database import get_session
from gtd.email.gateway import EmailGatewayError, fetch_new_emails
from gtd.integrations.google_calendar import CalendarError, calendar_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/integrations", tags=["integrations"])


@router.get("/status")
async def integration_status() -> dict:
    email_configured = is_email_configured()
    calendar = await calendar_client.check_connection()
    return {
        "email": {
            "configured": email_configured,
            "address": settings.email_address if email_configured else None,
        },
        "calendar": {
            "connected": calendar["connected"],
            "provider": "Google Calendar" if calendar["connected"] else None,
        },
    }


@router.post("/email/test")
async def test_email(session: Session = Depends(get_session)):
    try:
        stored = await fetch_new_emails(session)
    except EmailGatewayError as e:
        logger.error("Email connection test failed: %s", e)
        return JSONResponse(status_code=502, content={"success": False, "message": f"Email connection failed: {e}"})
    if stored:
        await change_hub.notify("email", "created", None, ["emails"])
    return {"success": True, "message": "Email connection successful", "fetched": len(stored)}


@router.post("/calendar/test")
async def test_calendar():
    try:
        events = await calendar_client.list_upcoming_events(max_results=1)
    except CalendarError as e:
        logger.error("Calendar connection test failed: %s", e)
        return JSONResponse(status_code=502, content={"success": False, "message": f"Calendar connection failed: {e}"})
    return {"success": True, "message": "Calendar connection successful", "eventCount": len(events)}
