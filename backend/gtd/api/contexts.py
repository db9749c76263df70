"""Context API endpoints.

GET    /api/contexts        list
GET    /api/contexts/{id}   single context
POST   /api/contexts        create (name must be unique)
PATCH  /api/contexts/{id}   partial update
DELETE /api/contexts/{id}   delete; its tasks become uncategorized
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field, StringConstraints
from sqlmodel import Session, select

from gtd.api.events import change_hub
from gtd.api.schemas import ContextResponse
from gtd.db.database import get_session
from gtd.db.queries import detach_tasks
from gtd.models.base import CamelModel
from gtd.models.task import Context, Task

router = APIRouter(prefix="/api", tags=["contexts"])

_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
ContextName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]


class CreateContextRequest(CamelModel):
    name: ContextName
    color: str = Field(default="#9E9E9E", pattern=_COLOR_PATTERN)


class UpdateContextRequest(CamelModel):
    name: ContextName | None = None
    color: str | None = Field(default=None, pattern=_COLOR_PATTERN)


def _to_response(context: Context) -> ContextResponse:
    return ContextResponse.model_validate(context)


def _get_or_404(session: Session, context_id: int) -> Context:
    context = session.get(Context, context_id)
    if context is None:
        raise HTTPException(status_code=404, detail=f"Context not found: {context_id}")
    return context


def _ensure_unique_name(session: Session, name: str, exclude_id: int | None = None) -> None:
    existing = session.exec(select(Context).where(Context.name == name)).first()
    if existing is not None and existing.id != exclude_id:
        raise HTTPException(status_code=409, detail=f"Context already exists: {name}")


@router.get("/contexts", response_model=list[ContextResponse])
async def list_contexts(session: Session = Depends(get_session)) -> list[ContextResponse]:
    return [_to_response(c) for c in session.exec(select(Context).order_by(Context.id)).all()]


@router.get("/contexts/{context_id}", response_model=ContextResponse)
async def get_context(context_id: int, session: Session = Depends(get_session)) -> ContextResponse:
    return _to_response(_get_or_404(session, context_id))


@router.post("/contexts", response_model=ContextResponse, status_code=201)
async def create_context(request: CreateContextRequest, session: Session = Depends(get_session)) -> ContextResponse:
    name = request.name.strip()
    _ensure_unique_name(session, name)
    context = Context(name=name, color=request.color)
    session.add(context)
    session.commit()
    session.refresh(context)
    await change_hub.notify("context", "created", context.id, ["contexts"])
    return _to_response(context)


@router.patch("/contexts/{context_id}", response_model=ContextResponse)
async def update_context(
    context_id: int,
    request: UpdateContextRequest,
    session: Session = Depends(get_session),
) -> ContextResponse:
    context = _get_or_404(session, context_id)
    update_data = request.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in update_data:
        update_data["name"] = update_data["name"].strip()
        _ensure_unique_name(session, update_data["name"], exclude_id=context_id)
    for key, value in update_data.items():
        setattr(context, key, value)
    session.add(context)
    session.commit()
    session.refresh(context)
    await change_hub.notify("context", "updated", context.id, ["contexts"])
    return _to_response(context)


@router.delete("/contexts/{context_id}", status_code=204)
async def delete_context(context_id: int, session: Session = Depends(get_session)) -> None:
    context = _get_or_404(session, context_id)
    changed = detach_tasks(session, Task.context_id, context_id)
    session.delete(context)
    session.commit()
    await change_hub.notify("context", "deleted", context_id, changed | {"contexts"})
