"""GTD FastAPI Application.

Entry point for the backend server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session

from gtd.api.calendar import router as calendar_router
from gtd.api.contexts import router as contexts_router
from gtd.api.dashboard import router as dashboard_router
from gtd.api.emails import router as emails_router
from gtd.api.events import change_hub
from gtd.api.events import router as events_router
from gtd.api.health import VERSION
from gtd.api.health import router as health_router
from gtd.api.inbox import router as inbox_router
from gtd.api.integrations import router as integrations_router
from gtd.api.projects import router as projects_router
from gtd.api.tasks import router as tasks_router
from gtd.api.weekly_reviews import router as weekly_reviews_router
from gtd.cold_start.seeder import ColdStartSeeder
from gtd.config import is_email_configured, settings
from gtd.db.database import create_db_and_tables, engine
from gtd.email.scheduler import EmailFetchScheduler
from gtd.middleware.auth import APIKeyAuthMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    create_db_and_tables()

    if settings.seed_on_startup:
        with Session(engine) as session:
            ColdStartSeeder(session).seed()

    email_scheduler = EmailFetchScheduler(
        interval_minutes=settings.email_fetch_interval_minutes,
        enabled=settings.email_fetch_enabled and is_email_configured(),
    )
    app.state.email_scheduler = email_scheduler
    await email_scheduler.start()

    yield

    email_scheduler.stop()
    await change_hub.disconnect_all()


app = FastAPI(
    title="GTD",
    description="Getting Things Done backend: capture, clarify, organize, reflect, engage",
    version=VERSION,
    lifespan=lifespan,
)

# Middleware (order matters: first added = outermost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)
app.add_middleware(APIKeyAuthMiddleware)


# Global exception handler: prevent internal details from leaking
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    if isinstance(exc, HTTPException):
        raise exc
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error."},
    )


# Routes
app.include_router(health_router)
app.include_router(events_router)
app.include_router(inbox_router)
app.include_router(tasks_router)
app.include_router(projects_router)
app.include_router(contexts_router)
app.include_router(emails_router)
app.include_router(calendar_router)
app.include_router(weekly_reviews_router)
app.include_router(dashboard_router)
app.include_router(integrations_router)


@app.get("/")
async def root():
    return {"name": "GTD", "version": VERSION, "docs": "/docs"}
