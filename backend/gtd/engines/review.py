"""Weekly review snapshot: what a review completed right now would record."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from sqlmodel import Session, select

from gtd.db.queries import latest_review, stalled_projects, tasks_with_status
from gtd.engines.health import days_since
from gtd.models.task import Project, TaskStatus

REVIEW_DUE_SOON_DAYS = 5
REVIEW_OVERDUE_DAYS = 7


@dataclass
class ReviewSnapshot:
    projects_reviewed: int = 0
    stalled_projects_found: int = 0
    waiting_for_reviewed: int = 0
    someday_reviewed: int = 0
    completed_tasks_count: int = 0
    overdue_waiting_for: int = 0
    days_since_review: int | None = None

    @property
    def status(self) -> str:
        """``overdue``, ``due-soon`` or ``on-track``."""
        if self.days_since_review is None or self.days_since_review >= REVIEW_OVERDUE_DAYS:
            return "overdue"
        if self.days_since_review >= REVIEW_DUE_SOON_DAYS:
            return "due-soon"
        return "on-track"

    def review_counts(self) -> dict:
        """The fields stored on a WeeklyReview row."""
        return {
            "projects_reviewed": self.projects_reviewed,
            "stalled_projects_found": self.stalled_projects_found,
            "waiting_for_reviewed": self.waiting_for_reviewed,
            "someday_reviewed": self.someday_reviewed,
            "completed_tasks_count": self.completed_tasks_count,
        }

    def to_dict(self) -> dict:
        return {**asdict(self), "status": self.status}


def take_snapshot(session: Session, now: datetime | None = None) -> ReviewSnapshot:
    now = now or datetime.now(timezone.utc)
    active = session.exec(select(Project).where(Project.is_active == True)).all()  # noqa: E712
    waiting = tasks_with_status(session, TaskStatus.WAITING)
    latest = latest_review(session)
    today = now.date()

    return ReviewSnapshot(
        projects_reviewed=len(active),
        stalled_projects_found=len(stalled_projects(session)),
        waiting_for_reviewed=len(waiting),
        someday_reviewed=len(tasks_with_status(session, TaskStatus.SOMEDAY)),
        completed_tasks_count=len(tasks_with_status(session, TaskStatus.DONE)),
        overdue_waiting_for=sum(
            1 for t in waiting
            if t.waiting_for_follow_up is not None and t.waiting_for_follow_up < today
        ),
        days_since_review=days_since(latest.completed_at if latest else None, now),
    )
