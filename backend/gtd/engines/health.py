"""GTD health heuristics: one 1..5 gauge per phase of the method.

Level 1 is excellent, 5 needs attention. The scoring functions are pure;
``gather_health_inputs`` reads the counts they need from the store.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone

from sqlmodel import Session, select

from gtd.config import settings
from gtd.db.queries import as_utc, latest_review, stalled_projects, tasks_with_status, unprocessed_emails
from gtd.models.task import Project, Task, TaskStatus

HEALTH_LABELS: dict[int, str] = {
    1: "Excellent",
    2: "Good",
    3: "Healthy",
    4: "Attention",
    5: "Review Now",
}


@dataclass(frozen=True)
class HealthScore:
    level: int
    metric: str

    @property
    def label(self) -> str:
        return HEALTH_LABELS[self.level]

    def to_dict(self) -> dict:
        return {"level": self.level, "metric": self.metric, "label": self.label}


def capture_health(inbox_count: int) -> HealthScore:
    if inbox_count == 0:
        return HealthScore(1, "Inbox clear")
    if inbox_count <= 5:
        return HealthScore(2, f"{inbox_count} items")
    if inbox_count <= 10:
        return HealthScore(3, f"{inbox_count} items")
    if inbox_count <= 15:
        return HealthScore(4, f"{inbox_count} items")
    return HealthScore(5, f"{inbox_count} items")


def clarify_health(pending_count: int) -> HealthScore:
    if pending_count == 0:
        return HealthScore(1, "All processed")
    if pending_count <= 3:
        return HealthScore(2, f"{pending_count} pending")
    if pending_count <= 7:
        return HealthScore(3, f"{pending_count} pending")
    if pending_count <= 12:
        return HealthScore(4, f"{pending_count} pending")
    return HealthScore(5, f"{pending_count} backlog")


def organize_health(active_projects: int, projects_with_next_action: int) -> HealthScore:
    if active_projects == 0:
        return HealthScore(3, "No projects")
    stalled = active_projects - projects_with_next_action
    ratio = projects_with_next_action / active_projects

    if ratio == 1:
        return HealthScore(1, "All active")
    if ratio >= 0.9:
        return HealthScore(2, f"{stalled} stalled")
    if ratio >= 0.7:
        return HealthScore(3, f"{stalled} stalled")
    if ratio >= 0.5:
        return HealthScore(4, f"{stalled} stalled")
    return HealthScore(5, f"{stalled} stalled")


def reflect_health(days_since_review: int | None) -> HealthScore:
    if days_since_review is None:
        return HealthScore(5, "Never reviewed")
    if days_since_review <= 3:
        return HealthScore(1, f"{days_since_review}d ago")
    if days_since_review <= 5:
        return HealthScore(2, f"{days_since_review}d ago")
    if days_since_review <= 7:
        return HealthScore(3, f"{days_since_review}d ago")
    if days_since_review <= 14:
        return HealthScore(4, f"{days_since_review}d ago")
    return HealthScore(5, f"{days_since_review}d+ overdue")


def engage_health(completed_this_week: int, stale_waiting_count: int) -> HealthScore:
    if completed_this_week >= 10 and stale_waiting_count == 0:
        return HealthScore(1, f"{completed_this_week} done")
    if completed_this_week >= 5 and stale_waiting_count <= 1:
        return HealthScore(2, f"{completed_this_week} done")
    if completed_this_week >= 3:
        return HealthScore(3, f"{completed_this_week} done")
    if completed_this_week >= 1:
        return HealthScore(4, f"{completed_this_week} done")
    return HealthScore(5, "No progress")


# === Inputs from the store ===


@dataclass
class HealthInputs:
    inbox_count: int = 0
    pending_count: int = 0
    active_projects: int = 0
    projects_with_next_action: int = 0
    days_since_review: int | None = None
    completed_this_week: int = 0
    stale_waiting_count: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def days_since(moment: datetime | None, now: datetime) -> int | None:
    """Whole days elapsed, ``None`` when there is no moment."""
    if moment is None:
        return None
    return int((now - as_utc(moment)).total_seconds() // 86400)


def gather_health_inputs(session: Session, now: datetime | None = None) -> HealthInputs:
    """Count everything the five gauges need.

    - capture: inbox tasks plus unprocessed emails
    - clarify: inbox tasks already deferred once plus emails left unprocessed
      longer than ``settings.stale_email_hours``
    - engage: tasks completed within ``settings.engage_window_days``; waiting
      tasks whose follow-up date has passed
    """
    now = now or datetime.now(timezone.utc)
    inbox_tasks = tasks_with_status(session, TaskStatus.INBOX)
    emails = unprocessed_emails(session)

    stale_cutoff = now - timedelta(hours=settings.stale_email_hours)
    pending = sum(1 for t in inbox_tasks if t.defer_count > 0)
    pending += sum(1 for e in emails if as_utc(e.received_at) < stale_cutoff)

    active = session.exec(select(Project).where(Project.is_active == True)).all()  # noqa: E712
    stalled = stalled_projects(session)

    latest = latest_review(session)

    engage_cutoff = now - timedelta(days=settings.engage_window_days)
    done = session.exec(select(Task).where(Task.completed_at != None)).all()  # noqa: E711
    completed = sum(1 for t in done if t.status == TaskStatus.DONE.value and as_utc(t.completed_at) >= engage_cutoff)

    today = now.date()
    stale_waiting = sum(
        1 for t in tasks_with_status(session, TaskStatus.WAITING)
        if t.waiting_for_follow_up is not None and t.waiting_for_follow_up < today
    )

    return HealthInputs(
        inbox_count=len(inbox_tasks) + len(emails),
        pending_count=pending,
        active_projects=len(active),
        projects_with_next_action=len(active) - len(stalled),
        days_since_review=days_since(latest.completed_at if latest else None, now),
        completed_this_week=completed,
        stale_waiting_count=stale_waiting,
    )


def score_all(inputs: HealthInputs) -> dict[str, HealthScore]:
    return {
        "capture": capture_health(inputs.inbox_count),
        "clarify": clarify_health(inputs.pending_count),
        "organize": organize_health(inputs.active_projects, inputs.projects_with_next_action),
        "reflect": reflect_health(inputs.days_since_review),
        "engage": engage_health(inputs.completed_this_week, inputs.stale_waiting_count),
    }
