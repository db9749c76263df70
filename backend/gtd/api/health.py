"""System health endpoint: storage and integration configuration checks.

Checks: SQLite DB, email account, calendar credentials, email fetch scheduler.
No network calls are made; use /api/integrations/*/test for live checks.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import text

from gtd.config import is_email_configured, settings
from gtd.db.database import engine

router = APIRouter()

VERSION = "0.1.0"


class HealthStatus(BaseModel):
    status: str  # "healthy" | "degraded" | "unhealthy"
    version: str
    checks: dict[str, dict]
    dependencies: dict[str, str]  # Simplified view for frontend
    timestamp: datetime


@router.get("/health", response_model=HealthStatus)
async def health_check(request: Request) -> HealthStatus:
    checks: dict[str, dict] = {}
    overall_healthy = True
    has_warning = False

    # 1. SQLite DB
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
            wal = conn.execute(text("PRAGMA journal_mode")).fetchone()
            checks["database"] = {"status": "ok", "detail": f"journal_mode={wal[0]}"}
    except Exception as e:
        checks["database"] = {"status": "error", "detail": str(e)}
        overall_healthy = False

    # 2. Email account
    if is_email_configured():
        checks["email"] = {"status": "ok", "detail": f"imap={settings.imap_host} smtp={settings.smtp_host}"}
    else:
        checks["email"] = {"status": "warning", "detail": "EMAIL_ADDRESS/EMAIL_PASSWORD/IMAP_HOST/SMTP_HOST not set"}
        has_warning = True

    # 3. Calendar credentials
    if settings.google_calendar_access_token:
        checks["calendar"] = {"status": "ok", "detail": "static access token"}
    elif settings.calendar_connector_url:
        checks["calendar"] = {"status": "ok", "detail": "connector configured"}
    else:
        checks["calendar"] = {"status": "disabled", "detail": "no calendar credentials configured"}

    # 4. Email fetch scheduler (informational)
    scheduler = getattr(request.app.state, "email_scheduler", None)
    if scheduler is not None and scheduler.enabled:
        sched = scheduler.get_status()
        checks["email_fetch"] = {
            "status": "ok" if sched["running"] and not sched["last_error"] else "warning",
            "detail": sched["last_error"] or f"every {sched['interval_minutes']:.0f} min",
        }
        if checks["email_fetch"]["status"] == "warning":
            has_warning = True
    else:
        checks["email_fetch"] = {"status": "disabled", "detail": "set EMAIL_FETCH_ENABLED=true to poll the inbox"}

    dependencies = {name: check["status"] for name, check in checks.items()}

    if overall_healthy:
        status = "degraded" if has_warning else "healthy"
    else:
        status = "unhealthy"

    return HealthStatus(
        status=status,
        version=VERSION,
        checks=checks,
        dependencies=dependencies,
        timestamp=datetime.now(timezone.utc),
    )
