"""Task API endpoints.

GET    /api/tasks                       list (optional ?status=&projectId=&contextId=)
GET    /api/tasks/status/{status}       one GTD list
GET    /api/tasks/project/{project_id}  tasks of a project
GET    /api/tasks/context/{context_id}  tasks of a context
GET    /api/tasks/{id}                  single task
POST   /api/tasks                       create (defaults to the inbox)
PATCH  /api/tasks/{id}                  partial update
DELETE /api/tasks/{id}                  hard delete
POST   /api/tasks/{id}/defer            put off deciding, bumps deferCount
"""

from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import Field, StringConstraints
from sqlmodel import Session, select

from gtd.api.events import change_hub
from gtd.api.schemas import TaskResponse
from gtd.db.database import get_session
from gtd.db.queries import task_collections
from gtd.models.base import CamelModel
from gtd.models.email import Email
from gtd.models.processing import ProcessingResult, TaskItem
from gtd.models.task import (
    Context,
    EnergyLevel,
    Project,
    Task,
    TaskStatus,
    TimeEstimate,
    apply_task_changes,
)
from gtd.workflows.processor import apply_processing_result

router = APIRouter(prefix="/api", tags=["tasks"])

TaskTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]


# === Request Models ===


class CreateTaskRequest(CamelModel):
    """Request to create a task. Only the title is required."""

    title: TaskTitle
    description: str | None = None
    status: TaskStatus = TaskStatus.INBOX
    project_id: int | None = None
    context_id: int | None = None
    due_date: date | None = None
    email_id: int | None = None
    defer_count: int = Field(default=0, ge=0)
    time_estimate: TimeEstimate | None = None
    energy_level: EnergyLevel | None = None
    waiting_for: str | None = None
    waiting_for_follow_up: date | None = None
    reference_category: str | None = None
    notes: str | None = None


class UpdateTaskRequest(CamelModel):
    """Request to update a task. All fields optional; only sent fields change."""

    title: TaskTitle | None = None
    description: str | None = None
    status: TaskStatus | None = None
    project_id: int | None = None
    context_id: int | None = None
    due_date: date | None = None
    email_id: int | None = None
    defer_count: int | None = Field(default=None, ge=0)
    time_estimate: TimeEstimate | None = None
    energy_level: EnergyLevel | None = None
    waiting_for: str | None = None
    waiting_for_follow_up: date | None = None
    reference_category: str | None = None
    notes: str | None = None


def _to_response(task: Task) -> TaskResponse:
    return TaskResponse.model_validate(task)


def _get_or_404(session: Session, task_id: int) -> Task:
    task = session.get(Task, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return task


def check_task_references(session: Session, data: dict) -> None:
    """Reject project/context/email ids that do not exist (422)."""
    for key, model, label in (
        ("project_id", Project, "Project"),
        ("context_id", Context, "Context"),
        ("email_id", Email, "Email"),
    ):
        ref = data.get(key)
        if ref is not None and session.get(model, ref) is None:
            raise HTTPException(status_code=422, detail=f"{label} not found: {ref}")


# === Endpoints ===


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(
    status: TaskStatus | None = Query(default=None),
    project_id: int | None = Query(default=None, alias="projectId"),
    context_id: int | None = Query(default=None, alias="contextId"),
    session: Session = Depends(get_session),
) -> list[TaskResponse]:
    """List tasks, optionally filtered by status, project and context."""
    stmt = select(Task)
    if status is not None:
        stmt = stmt.where(Task.status == status.value)
    if project_id is not None:
        stmt = stmt.where(Task.project_id == project_id)
    if context_id is not None:
        stmt = stmt.where(Task.context_id == context_id)
    return [_to_response(t) for t in session.exec(stmt.order_by(Task.id)).all()]


@router.get("/tasks/status/{status}", response_model=list[TaskResponse])
async def list_tasks_by_status(status: TaskStatus, session: Session = Depends(get_session)) -> list[TaskResponse]:
    stmt = select(Task).where(Task.status == status.value).order_by(Task.id)
    return [_to_response(t) for t in session.exec(stmt).all()]


@router.get("/tasks/project/{project_id}", response_model=list[TaskResponse])
async def list_tasks_by_project(project_id: int, session: Session = Depends(get_session)) -> list[TaskResponse]:
    stmt = select(Task).where(Task.project_id == project_id).order_by(Task.id)
    return [_to_response(t) for t in session.exec(stmt).all()]


@router.get("/tasks/context/{context_id}", response_model=list[TaskResponse])
async def list_tasks_by_context(context_id: int, session: Session = Depends(get_session)) -> list[TaskResponse]:
    stmt = select(Task).where(Task.context_id == context_id).order_by(Task.id)
    return [_to_response(t) for t in session.exec(stmt).all()]


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, session: Session = Depends(get_session)) -> TaskResponse:
    return _to_response(_get_or_404(session, task_id))


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(request: CreateTaskRequest, session: Session = Depends(get_session)) -> TaskResponse:
    """Create a task. Without a status it lands in the inbox."""
    data = request.model_dump()
    check_task_references(session, data)
    title = data.pop("title")
    task = apply_task_changes(Task(title=title), data)
    session.add(task)
    session.commit()
    session.refresh(task)
    await change_hub.notify("task", "created", task.id, task_collections(task.status))
    return _to_response(task)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    request: UpdateTaskRequest,
    session: Session = Depends(get_session),
) -> TaskResponse:
    """Update only the fields present in the body."""
    task = _get_or_404(session, task_id)
    update_data = request.model_dump(exclude_unset=True)
    for required in ("title", "status"):
        if required in update_data and update_data[required] is None:
            raise HTTPException(status_code=422, detail=f"{required} cannot be null")
    check_task_references(session, update_data)

    previous_status = task.status
    apply_task_changes(task, update_data)
    session.add(task)
    session.commit()
    session.refresh(task)
    await change_hub.notify("task", "updated", task.id, task_collections(previous_status, task.status))
    return _to_response(task)


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(task_id: int, session: Session = Depends(get_session)) -> None:
    """Delete a task permanently. Use status=trash for the soft bin."""
    task = _get_or_404(session, task_id)
    status = task.status
    session.delete(task)
    session.commit()
    await change_hub.notify("task", "deleted", task_id, task_collections(status))


@router.post("/tasks/{task_id}/defer", response_model=TaskResponse)
async def defer_task(task_id: int, session: Session = Depends(get_session)) -> TaskResponse:
    """Put off deciding on a task. Status is unchanged."""
    task = _get_or_404(session, task_id)
    outcome = apply_processing_result(session, TaskItem(task), ProcessingResult.defer())
    await change_hub.notify("task", "updated", task_id, outcome.collections)
    return _to_response(outcome.task)
