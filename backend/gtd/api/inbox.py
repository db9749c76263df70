"""Inbox API endpoints: the merged inbox and clarification.

GET  /api/inbox                                  inbox tasks, then unprocessed emails
POST /api/inbox/process                          apply a result decided on the client
POST /api/inbox/{itemType}/{itemId}/clarify      replay dialog steps server-side
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from gtd.api.emails import _mailbox_side_effect
from gtd.api.events import change_hub
from gtd.api.schemas import EmailResponse, ProjectResponse, TaskResponse
from gtd.api.tasks import check_task_references
from gtd.db.database import get_session
from gtd.db.queries import tasks_with_status, unprocessed_emails
from gtd.email import gateway
from gtd.models.base import CamelModel
from gtd.models.email import Email
from gtd.models.processing import EmailItem, InboxItem, ProcessingResult, TaskItem
from gtd.models.task import Context, Task, TaskStatus
from gtd.workflows.clarify import (
    ClarificationSession,
    ClarifyValidationError,
    IllegalStepError,
    SessionClosedError,
)
from gtd.workflows.processor import ProcessingError, ProcessingOutcome, apply_processing_result

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["inbox"])

ItemType = Literal["task", "email"]


# === Request / Response Models ===


class InboxEntry(CamelModel):
    item_type: ItemType
    id: int
    title: str
    description: str | None = None
    defer_count: int = 0
    task: TaskResponse | None = None
    email: EmailResponse | None = None


class ProcessRequest(CamelModel):
    item_type: ItemType
    item_id: int
    result: ProcessingResult


class ClarifyOp(CamelModel):
    """One dialog step. Which fields matter depends on ``op``."""

    op: Literal[
        "answer_actionable", "choose_non_actionable", "submit_reference",
        "submit_someday", "submit_next_action", "answer_two_minute",
        "answer_delegate", "submit_delegate", "answer_project",
        "submit_project", "submit_organize", "back", "reset",
    ]
    value: bool | None = None
    choice: str | None = None
    text: str | None = None
    category: str | None = None
    notes: str | None = None
    waiting_for: str | None = None
    follow_up_date: date | None = None
    name: str | None = None
    description: str | None = None
    context_id: int | None = None
    time_estimate: str | None = None
    energy_level: str | None = None
    due_date: date | None = None


class ProcessResponse(CamelModel):
    action: str
    item_type: ItemType
    item_id: int
    result: dict
    task: TaskResponse | None = None
    email: EmailResponse | None = None
    project: ProjectResponse | None = None
    email_deleted: bool = False


class ClarifyResponse(CamelModel):
    step: str | None = None
    can_go_back: bool = False
    next_action: str | None = None
    processed: ProcessResponse | None = None


# === Helpers ===


def _load_item(session: Session, item_type: str, item_id: int) -> InboxItem:
    """Fetch the item being processed; it must still be in the inbox."""
    if item_type == "task":
        task = session.get(Task, item_id)
        if task is None:
            raise HTTPException(status_code=404, detail=f"Task not found: {item_id}")
        if task.status != TaskStatus.INBOX.value:
            raise HTTPException(status_code=409, detail=f"Task {item_id} is not in the inbox")
        return TaskItem(task)
    if item_type == "email":
        email = session.get(Email, item_id)
        if email is None:
            raise HTTPException(status_code=404, detail=f"Email not found: {item_id}")
        if email.processed:
            raise HTTPException(status_code=409, detail=f"Email {item_id} is already processed")
        return EmailItem(email)
    raise HTTPException(status_code=422, detail=f"Unknown item type: {item_type}")


def _require_bool(op: ClarifyOp) -> bool:
    if op.value is None:
        raise ClarifyValidationError("value", f"'{op.op}' needs a true/false value")
    return op.value


def _replay(dialog: ClarificationSession, op: ClarifyOp) -> None:
    if op.op == "answer_actionable":
        dialog.answer_actionable(_require_bool(op))
    elif op.op == "choose_non_actionable":
        dialog.choose_non_actionable(op.choice or "")
    elif op.op == "submit_reference":
        dialog.submit_reference(op.category)
    elif op.op == "submit_someday":
        dialog.submit_someday(op.notes)
    elif op.op == "submit_next_action":
        dialog.submit_next_action(op.text or "")
    elif op.op == "answer_two_minute":
        dialog.answer_two_minute(_require_bool(op))
    elif op.op == "answer_delegate":
        dialog.answer_delegate(_require_bool(op))
    elif op.op == "submit_delegate":
        dialog.submit_delegate(op.waiting_for or "", op.follow_up_date)
    elif op.op == "answer_project":
        dialog.answer_project(_require_bool(op))
    elif op.op == "submit_project":
        dialog.submit_project(op.name or "", op.description)
    elif op.op == "submit_organize":
        dialog.submit_organize(
            context_id=op.context_id,
            time_estimate=op.time_estimate,
            energy_level=op.energy_level,
            due_date=op.due_date,
        )
    elif op.op == "back":
        dialog.back()
    elif op.op == "reset":
        dialog.reset()
    else:
        raise TypeError(f"Unsupported clarify op: {op.op}")


async def _apply(session: Session, item: InboxItem, result: ProcessingResult) -> ProcessResponse:
    check_task_references(session, result.task_fields())
    message_id = item.email.message_id if isinstance(item, EmailItem) else None
    try:
        outcome: ProcessingOutcome = apply_processing_result(session, item, result)
    except ProcessingError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if message_id is not None:
        operation = gateway.delete_message if outcome.email_deleted else gateway.mark_as_read
        await _mailbox_side_effect(operation, message_id)
    if outcome.project is not None:
        await change_hub.notify("project", "created", outcome.project.id, ["projects"])
    await change_hub.notify(
        outcome.item_kind,
        "deleted" if outcome.email_deleted else "processed",
        outcome.item_id,
        outcome.collections,
    )
    return ProcessResponse(
        action=outcome.action,
        item_type=outcome.item_kind,
        item_id=outcome.item_id,
        result=result.to_payload(),
        task=TaskResponse.model_validate(outcome.task) if outcome.task is not None else None,
        email=EmailResponse.model_validate(outcome.email) if outcome.email is not None else None,
        project=ProjectResponse.model_validate(outcome.project) if outcome.project is not None else None,
        email_deleted=outcome.email_deleted,
    )


# === Endpoints ===


@router.get("/inbox", response_model=list[InboxEntry])
async def get_inbox(session: Session = Depends(get_session)) -> list[InboxEntry]:
    """Inbox tasks (by id) followed by unprocessed emails (oldest first)."""
    entries = [
        InboxEntry(
            item_type="task",
            id=t.id,
            title=t.title,
            description=t.description,
            defer_count=t.defer_count,
            task=TaskResponse.model_validate(t),
        )
        for t in tasks_with_status(session, TaskStatus.INBOX)
    ]
    entries.extend(
        InboxEntry(
            item_type="email",
            id=e.id,
            title=e.subject,
            description=e.content,
            email=EmailResponse.model_validate(e),
        )
        for e in unprocessed_emails(session)
    )
    return entries


@router.post("/inbox/process", response_model=ProcessResponse)
async def process_item(request: ProcessRequest, session: Session = Depends(get_session)) -> ProcessResponse:
    """Apply a processing result to one inbox item in a single transaction."""
    item = _load_item(session, request.item_type, request.item_id)
    return await _apply(session, item, request.result)


@router.post("/inbox/{item_type}/{item_id}/clarify", response_model=ClarifyResponse)
async def clarify_item(
    item_type: ItemType,
    item_id: int,
    steps: list[ClarifyOp],
    session: Session = Depends(get_session),
) -> ClarifyResponse:
    """Run the clarify dialog from the start over the given steps.

    If the steps reach a decision it is applied and returned under
    ``processed``; otherwise the step the dialog stopped at is returned.
    """
    item = _load_item(session, item_type, item_id)
    contexts = session.exec(select(Context)).all()
    dialog = ClarificationSession(item, contexts=contexts)

    for index, op in enumerate(steps):
        try:
            _replay(dialog, op)
        except ClarifyValidationError as e:
            raise HTTPException(status_code=422, detail=f"Step {index} ({op.op}): {e}")
        except (IllegalStepError, SessionClosedError) as e:
            raise HTTPException(status_code=409, detail=f"Step {index} ({op.op}): {e}")

    if dialog.result is None:
        return ClarifyResponse(
            step=dialog.step.value,
            can_go_back=dialog.can_go_back(),
            next_action=dialog.next_action or None,
        )

    logger.info("Clarified %s %s as %s", item_type, item_id, dialog.result.action)
    return ClarifyResponse(processed=await _apply(session, item, dialog.result))
