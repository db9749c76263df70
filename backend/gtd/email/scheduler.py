"""Email fetch scheduler: periodic IMAP pulls using asyncio.

Usage:
    scheduler = EmailFetchScheduler(interval_minutes=15)
    await scheduler.start()
    # ... app runs ...
    scheduler.stop()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from sqlmodel import Session

from gtd.api.events import change_hub
from gtd.db.database import engine
from gtd.email.gateway import fetch_new_emails

logger = logging.getLogger(__name__)


class EmailFetchScheduler:
    """Fetches new mail on a fixed interval. One failed run never stops the loop."""

    def __init__(
        self,
        interval_minutes: float = 15.0,
        enabled: bool = True,
        session_factory=None,
    ) -> None:
        self.interval_seconds = interval_minutes * 60
        self.enabled = enabled
        self._session_factory = session_factory or (lambda: Session(engine))
        self._task: asyncio.Task | None = None
        self._running = False
        self.last_run: datetime | None = None
        self.last_error: str | None = None

    async def start(self) -> None:
        if not self.enabled:
            logger.info("Email fetch scheduler disabled")
            return

        if self._running:
            logger.warning("Email fetch scheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Email fetch scheduler started (interval: %.1f minutes)",
            self.interval_seconds / 60,
        )

    def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            logger.info("Email fetch scheduler stopped")

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)
                if not self._running:
                    break
                await self.run_once()
            except asyncio.CancelledError:
                break

    async def run_once(self) -> int:
        """Fetch once. Returns the number of new messages stored (0 on failure)."""
        self.last_run = datetime.now(timezone.utc)
        try:
            with self._session_factory() as session:
                stored = await fetch_new_emails(session)
        except Exception as e:
            self.last_error = str(e)
            logger.error("Scheduled email fetch failed: %s", e, exc_info=True)
            return 0

        self.last_error = None
        if stored:
            await change_hub.notify("email", "created", None, ["emails"])
        return len(stored)

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    def get_status(self) -> dict:
        """Scheduler status for health checks."""
        return {
            "enabled": self.enabled,
            "running": self.is_running,
            "interval_minutes": self.interval_seconds / 60,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_error": self.last_error,
        }
