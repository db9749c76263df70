"""Weekly review snapshot model."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlmodel import SQLModel
from sqlmodel import Field as SQLField


class WeeklyReview(SQLModel, table=True):
    """Counts captured when a weekly review is completed. Never updated afterwards."""

    __tablename__ = "weekly_review"

    id: int | None = SQLField(default=None, primary_key=True)
    completed_at: datetime = SQLField(default_factory=lambda: datetime.now(timezone.utc), index=True)
    projects_reviewed: int = 0
    stalled_projects_found: int = 0
    waiting_for_reviewed: int = 0
    someday_reviewed: int = 0
    completed_tasks_count: int = 0
    notes: str | None = None
