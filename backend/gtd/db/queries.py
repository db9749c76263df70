"""Shared queries over the GTD lists."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlmodel import Session, select

from gtd.models.email import Email
from gtd.models.review import WeeklyReview
from gtd.models.task import Project, Task, TaskStatus


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands datetimes back naive; they were stored as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def task_collections(*statuses: str | None) -> set[str]:
    """Collection names touched by a task moving between the given statuses."""
    names = {"tasks"}
    for status in statuses:
        if status:
            names.add(f"tasks:{status}")
    return names


def tasks_with_status(session: Session, status: TaskStatus | str) -> list[Task]:
    value = status.value if isinstance(status, TaskStatus) else status
    return list(session.exec(select(Task).where(Task.status == value).order_by(Task.id)).all())


def unprocessed_emails(session: Session) -> list[Email]:
    stmt = select(Email).where(Email.processed == False).order_by(Email.received_at)  # noqa: E712
    return list(session.exec(stmt).all())


def stalled_projects(session: Session) -> list[Project]:
    """Active projects with no task in next_action."""
    with_next = set(session.exec(
        select(Task.project_id).where(
            Task.status == TaskStatus.NEXT_ACTION.value,
            Task.project_id != None,  # noqa: E711
        )
    ).all())
    active = session.exec(select(Project).where(Project.is_active == True).order_by(Project.id)).all()  # noqa: E712
    return [p for p in active if p.id not in with_next]


def detach_tasks(session: Session, column, value: int) -> set[str]:
    """Null out a task reference (project, context or email) before its target is deleted.

    Returns the collections that changed.
    """
    changed: set[str] = set()
    for task in session.exec(select(Task).where(column == value)).all():
        setattr(task, column.key, None)
        task.updated_at = datetime.now(timezone.utc)
        session.add(task)
        changed |= task_collections(task.status)
    session.flush()
    return changed


def latest_review(session: Session) -> WeeklyReview | None:
    return session.exec(
        select(WeeklyReview).order_by(WeeklyReview.completed_at.desc(), WeeklyReview.id.desc()).limit(1)
    ).first()
