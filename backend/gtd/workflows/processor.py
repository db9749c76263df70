"""Apply a ProcessingResult to the store.

One result → one database transaction. When the result asks for a new
project, the project and the task that points at it are committed together,
so a failed task write never leaves an empty project behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlmodel import Session

from gtd.db.queries import detach_tasks, task_collections
from gtd.models.email import Email
from gtd.models.processing import EmailItem, InboxItem, ProcessingResult, TaskItem
from gtd.models.task import Project, Task, TaskStatus, apply_task_changes

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Raised when a result cannot be applied to the given item."""


@dataclass
class ProcessingOutcome:
    """What applying a result changed."""

    action: str
    item_kind: str
    item_id: int
    task: Task | None = None
    email: Email | None = None
    project: Project | None = None
    email_deleted: bool = False
    collections: set[str] = field(default_factory=set)


def apply_processing_result(
    session: Session,
    item: InboxItem,
    result: ProcessingResult,
) -> ProcessingOutcome:
    """Persist ``result`` for ``item`` and commit.

    Raises:
        ProcessingError: If the action does not apply to the item kind.
    """
    if isinstance(item, TaskItem):
        outcome = _apply_to_task(session, item, result)
    elif isinstance(item, EmailItem):
        outcome = _apply_to_email(session, item, result)
    else:
        raise TypeError(f"Unsupported inbox item: {type(item).__name__}")

    try:
        session.commit()
    except Exception:
        session.rollback()
        logger.error("Failed to apply %s to %s %s", result.action, outcome.item_kind, outcome.item_id)
        raise

    for obj in (outcome.task, outcome.email, outcome.project):
        if obj is not None:
            session.refresh(obj)
    logger.info("Processed %s %s as %s", outcome.item_kind, outcome.item_id, result.action)
    return outcome


def _create_project(session: Session, result: ProcessingResult, outcome: ProcessingOutcome) -> int | None:
    if result.create_project is None:
        return None
    project = Project(
        name=result.create_project.name,
        description=result.create_project.description,
        is_active=True,
    )
    session.add(project)
    session.flush()  # assigns project.id inside the open transaction
    outcome.project = project
    outcome.collections.add("projects")
    return project.id


def _apply_to_task(session: Session, item: TaskItem, result: ProcessingResult) -> ProcessingOutcome:
    task = session.get(Task, item.id)
    if task is None:
        raise ProcessingError(f"Task not found: {item.id}")

    outcome = ProcessingOutcome(action=result.action, item_kind="task", item_id=task.id, task=task)
    previous_status = task.status

    if result.action == "trash":
        changes = {"status": TaskStatus.TRASH.value}
    elif result.action == "do-now":
        changes = {"status": TaskStatus.DONE.value}
    elif result.action in ("reference", "someday"):
        changes = result.task_fields()
    elif result.action in ("delegate", "next-action"):
        changes = result.task_fields()
        project_id = _create_project(session, result, outcome)
        if project_id is not None:
            changes["project_id"] = project_id
    elif result.action == "defer":
        changes = {"defer_count": task.defer_count + 1}
    else:
        raise ProcessingError(f"Unknown action: {result.action}")

    apply_task_changes(task, changes)
    session.add(task)
    outcome.collections |= task_collections(previous_status, task.status)
    return outcome


def _apply_to_email(session: Session, item: EmailItem, result: ProcessingResult) -> ProcessingOutcome:
    email = session.get(Email, item.id)
    if email is None:
        raise ProcessingError(f"Email not found: {item.id}")

    outcome = ProcessingOutcome(action=result.action, item_kind="email", item_id=email.id, email=email)
    outcome.collections.add("emails")

    if result.action == "trash":
        outcome.collections |= detach_tasks(session, Task.email_id, email.id)
        session.delete(email)
        outcome.email_deleted = True
        outcome.email = None
    elif result.action in ("reference", "someday", "do-now"):
        email.processed = True
        session.add(email)
    elif result.action in ("delegate", "next-action"):
        fields = result.task_fields()
        project_id = _create_project(session, result, outcome)
        if project_id is not None:
            fields["project_id"] = project_id
        fields["email_id"] = email.id
        task = apply_task_changes(Task(title=fields.pop("title")), fields)
        session.add(task)
        email.processed = True
        session.add(email)
        outcome.task = task
        outcome.collections |= task_collections(task.status)
    elif result.action == "defer":
        raise ProcessingError("Only tasks can be deferred")
    else:
        raise ProcessingError(f"Unknown action: {result.action}")
    return outcome
