"""Project API endpoints.

GET    /api/projects           list (optional ?active=true|false)
GET    /api/projects/stalled   active projects without a next action
GET    /api/projects/{id}      single project
POST   /api/projects           create
PATCH  /api/projects/{id}      partial update
DELETE /api/projects/{id}      delete; its tasks become standalone
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import StringConstraints
from sqlmodel import Session, select

from gtd.api.events import change_hub
from gtd.api.schemas import ProjectResponse
from gtd.db.database import get_session
from gtd.db.queries import detach_tasks, stalled_projects
from gtd.models.base import CamelModel
from gtd.models.task import Project, Task

router = APIRouter(prefix="/api", tags=["projects"])

ProjectName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


class CreateProjectRequest(CamelModel):
    name: ProjectName
    description: str | None = None
    is_active: bool = True


class UpdateProjectRequest(CamelModel):
    name: ProjectName | None = None
    description: str | None = None
    is_active: bool | None = None


def _to_response(project: Project) -> ProjectResponse:
    return ProjectResponse.model_validate(project)


def _get_or_404(session: Session, project_id: int) -> Project:
    project = session.get(Project, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Project not found: {project_id}")
    return project


@router.get("/projects", response_model=list[ProjectResponse])
async def list_projects(
    active: bool | None = Query(default=None),
    session: Session = Depends(get_session),
) -> list[ProjectResponse]:
    stmt = select(Project)
    if active is not None:
        stmt = stmt.where(Project.is_active == active)
    return [_to_response(p) for p in session.exec(stmt.order_by(Project.id)).all()]


@router.get("/projects/stalled", response_model=list[ProjectResponse])
async def list_stalled_projects(session: Session = Depends(get_session)) -> list[ProjectResponse]:
    """Active projects with no task in next_action."""
    return [_to_response(p) for p in stalled_projects(session)]


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: int, session: Session = Depends(get_session)) -> ProjectResponse:
    return _to_response(_get_or_404(session, project_id))


@router.post("/projects", response_model=ProjectResponse, status_code=201)
async def create_project(request: CreateProjectRequest, session: Session = Depends(get_session)) -> ProjectResponse:
    project = Project(**request.model_dump())
    session.add(project)
    session.commit()
    session.refresh(project)
    await change_hub.notify("project", "created", project.id, ["projects"])
    return _to_response(project)


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    request: UpdateProjectRequest,
    session: Session = Depends(get_session),
) -> ProjectResponse:
    project = _get_or_404(session, project_id)
    update_data = request.model_dump(exclude_unset=True)
    for required in ("name", "is_active"):
        if required in update_data and update_data[required] is None:
            raise HTTPException(status_code=422, detail=f"{required} cannot be null")
    for key, value in update_data.items():
        setattr(project, key, value)
    session.add(project)
    session.commit()
    session.refresh(project)
    await change_hub.notify("project", "updated", project.id, ["projects"])
    return _to_response(project)


@router.delete("/projects/{project_id}", status_code=204)
async def delete_project(project_id: int, session: Session = Depends(get_session)) -> None:
    project = _get_or_404(session, project_id)
    changed = detach_tasks(session, Task.project_id, project_id)
    session.delete(project)
    session.commit()
    await change_hub.notify("project", "deleted", project_id, changed | {"projects"})
