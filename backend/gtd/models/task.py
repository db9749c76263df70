"""Task, Project and Context models.

A task's ``status`` decides which GTD list it sits on. The status-specific
columns (``waiting_for``, ``reference_category``, ``notes``...) are plain
nullable columns; which of them matter for a given status is enforced by
the clarification workflow, not by the schema.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Literal

from sqlmodel import SQLModel, Field as SQLField


class TaskStatus(str, Enum):
    INBOX = "inbox"
    NEXT_ACTION = "next_action"
    WAITING = "waiting"
    SOMEDAY = "someday"
    REFERENCE = "reference"
    DONE = "done"
    TRASH = "trash"


TimeEstimate = Literal["15min", "30min", "1hr", "2hr+"]
EnergyLevel = Literal["high", "medium", "low"]

TIME_ESTIMATES: tuple[str, ...] = ("15min", "30min", "1hr", "2hr+")
ENERGY_LEVELS: tuple[str, ...] = ("high", "medium", "low")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Project(SQLModel, table=True):
    """A multi-step outcome. Inactive = completed or archived."""

    id: int | None = SQLField(default=None, primary_key=True)
    name: str
    description: str | None = None
    is_active: bool = True
    created_at: datetime = SQLField(default_factory=_utcnow)


class Context(SQLModel, table=True):
    """A place, tool or situation where next actions can be done (@home, @phone)."""

    id: int | None = SQLField(default=None, primary_key=True)
    name: str = SQLField(unique=True, index=True)
    color: str = "#9E9E9E"


class Task(SQLModel, table=True):
    """A single GTD item, from raw inbox capture to done."""

    id: int | None = SQLField(default=None, primary_key=True)
    title: str
    description: str | None = None
    status: str = SQLField(default=TaskStatus.INBOX.value, index=True)  # TaskStatus
    project_id: int | None = SQLField(default=None, foreign_key="project.id", index=True)
    context_id: int | None = SQLField(default=None, foreign_key="context.id", index=True)
    due_date: date | None = None
    email_id: int | None = SQLField(default=None, foreign_key="email.id")
    defer_count: int = 0
    time_estimate: str | None = None  # TimeEstimate
    energy_level: str | None = None  # EnergyLevel
    # status == waiting
    waiting_for: str | None = None
    waiting_for_follow_up: date | None = None
    # status == reference
    reference_category: str | None = None
    # mostly status == someday
    notes: str | None = None
    created_at: datetime = SQLField(default_factory=_utcnow)
    updated_at: datetime = SQLField(default_factory=_utcnow)
    completed_at: datetime | None = None


def apply_task_changes(task: Task, changes: dict) -> Task:
    """Apply a partial update to ``task``, keeping ``completed_at`` in step with status.

    ``completed_at`` is stamped when the task moves into ``done`` and cleared
    when it moves back out.
    """
    previous_status = task.status
    for key, value in changes.items():
        if isinstance(value, Enum):
            value = value.value
        setattr(task, key, value)

    if task.status != previous_status:
        if task.status == TaskStatus.DONE.value:
            task.completed_at = _utcnow()
        elif previous_status == TaskStatus.DONE.value:
            task.completed_at = None
    task.updated_at = _utcnow()
    return task
