"""Response models shared by the routers."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import Field

from gtd.models.base import CamelModel


class TaskResponse(CamelModel):
    id: int
    title: str
    description: str | None = None
    status: str
    project_id: int | None = None
    context_id: int | None = None
    due_date: date | None = None
    email_id: int | None = None
    defer_count: int = 0
    time_estimate: str | None = None
    energy_level: str | None = None
    waiting_for: str | None = None
    waiting_for_follow_up: date | None = None
    reference_category: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


class ProjectResponse(CamelModel):
    id: int
    name: str
    description: str | None = None
    is_active: bool
    created_at: datetime


class ContextResponse(CamelModel):
    id: int
    name: str
    color: str


class EmailResponse(CamelModel):
    id: int
    message_id: str
    subject: str
    sender: str
    recipients: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    content: str
    html_content: str | None = None
    folder: str
    processed: bool
    flags: list[str] = Field(default_factory=list)
    received_at: datetime
    attachments: list[dict] = Field(default_factory=list)


class WeeklyReviewResponse(CamelModel):
    id: int
    completed_at: datetime
    projects_reviewed: int
    stalled_projects_found: int
    waiting_for_reviewed: int
    someday_reviewed: int
    completed_tasks_count: int
    notes: str | None = None


class MessageResponse(CamelModel):
    message: str
