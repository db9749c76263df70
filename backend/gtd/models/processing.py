"""Processing models: what clarifying one inbox item decided.

Includes: TaskItem / EmailItem (the inbox item variant), the per-action
details payloads, ProjectRequest and ProcessingResult.

Each details payload carries only the fields that are meaningful for the
status it produces, so a ``waiting`` result can never carry a reference
category and vice versa.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Annotated, Literal, Union

from pydantic import Field, model_validator
from pydantic.alias_generators import to_camel

from gtd.models.base import CamelModel
from gtd.models.email import Email
from gtd.models.task import EnergyLevel, Task, TaskStatus, TimeEstimate

ProcessingAction = Literal[
    "trash", "reference", "someday", "do-now", "delegate", "next-action", "defer",
]
ItemKind = Literal["task", "email"]


# === Inbox item variant ===


@dataclass(frozen=True)
class TaskItem:
    """An inbox task being clarified."""

    task: Task
    kind: Literal["task"] = "task"

    @property
    def id(self) -> int:
        return self.task.id

    @property
    def title(self) -> str:
        return self.task.title

    @property
    def description(self) -> str | None:
        return self.task.description

    @property
    def email_id(self) -> int | None:
        return None


@dataclass(frozen=True)
class EmailItem:
    """An unprocessed email being clarified."""

    email: Email
    kind: Literal["email"] = "email"

    @property
    def id(self) -> int:
        return self.email.id

    @property
    def title(self) -> str:
        return self.email.subject

    @property
    def description(self) -> str | None:
        return self.email.content

    @property
    def email_id(self) -> int | None:
        return self.email.id


InboxItem = Union[TaskItem, EmailItem]


# === Details payloads ===


class ReferenceDetails(CamelModel):
    kind: Literal["reference"] = "reference"
    category: str | None = None

    def to_task_fields(self) -> dict:
        fields: dict = {"status": TaskStatus.REFERENCE.value}
        if self.category:
            fields["reference_category"] = self.category
        return fields


class SomedayDetails(CamelModel):
    kind: Literal["someday"] = "someday"
    notes: str | None = None

    def to_task_fields(self) -> dict:
        fields: dict = {"status": TaskStatus.SOMEDAY.value}
        if self.notes:
            fields["notes"] = self.notes
        return fields


class WaitingDetails(CamelModel):
    kind: Literal["waiting"] = "waiting"
    title: str = Field(min_length=3)
    waiting_for: str = Field(min_length=1)
    follow_up: date
    description: str | None = None
    email_id: int | None = None
    project_id: int | None = None

    def to_task_fields(self) -> dict:
        fields = {
            "title": self.title,
            "status": TaskStatus.WAITING.value,
            "waiting_for": self.waiting_for,
            "waiting_for_follow_up": self.follow_up,
            "description": self.description,
        }
        if self.email_id is not None:
            fields["email_id"] = self.email_id
        if self.project_id is not None:
            fields["project_id"] = self.project_id
        return fields


class NextActionDetails(CamelModel):
    kind: Literal["next_action"] = "next_action"
    title: str = Field(min_length=3)
    context_id: int | None = None
    time_estimate: TimeEstimate | None = None
    energy_level: EnergyLevel | None = None
    due_date: date | None = None
    description: str | None = None
    email_id: int | None = None
    project_id: int | None = None

    def to_task_fields(self) -> dict:
        fields: dict = {
            "title": self.title,
            "status": TaskStatus.NEXT_ACTION.value,
            "description": self.description,
        }
        optional = {
            "context_id": self.context_id,
            "time_estimate": self.time_estimate,
            "energy_level": self.energy_level,
            "due_date": self.due_date,
            "email_id": self.email_id,
            "project_id": self.project_id,
        }
        fields.update({k: v for k, v in optional.items() if v is not None})
        return fields


ProcessingDetails = Annotated[
    Union[ReferenceDetails, SomedayDetails, WaitingDetails, NextActionDetails],
    Field(discriminator="kind"),
]

# action -> required details type (None = no details allowed)
_DETAILS_FOR_ACTION: dict[str, type | None] = {
    "trash": None,
    "do-now": None,
    "defer": None,
    "reference": ReferenceDetails,
    "someday": SomedayDetails,
    "delegate": WaitingDetails,
    "next-action": NextActionDetails,
}

# details field -> Task field, for results sent in the client `task` shape
_TASK_FIELDS_FOR_KIND: dict[str, dict[str, str]] = {
    "reference": {"category": "reference_category"},
    "someday": {"notes": "notes"},
    "waiting": {
        "title": "title",
        "waiting_for": "waiting_for",
        "follow_up": "waiting_for_follow_up",
        "description": "description",
        "email_id": "email_id",
        "project_id": "project_id",
    },
    "next_action": {
        name: name
        for name in (
            "title", "context_id", "time_estimate", "energy_level",
            "due_date", "description", "email_id", "project_id",
        )
    },
}


class ProjectRequest(CamelModel):
    """A project to create before the task is filed under it."""

    name: str = Field(min_length=3)
    description: str | None = None


class ProcessingResult(CamelModel):
    """The single outcome of clarifying one inbox item."""

    action: ProcessingAction
    details: ProcessingDetails | None = None
    create_project: ProjectRequest | None = None

    @model_validator(mode="before")
    @classmethod
    def _task_to_details(cls, data):
        """Accept the ``{action, task}`` shape that ``to_payload`` emits."""
        if not isinstance(data, dict) or "task" not in data or "details" in data:
            return data
        data = dict(data)
        task = data.pop("task") or {}
        details_type = _DETAILS_FOR_ACTION.get(data.get("action"))
        if details_type is None:
            return data
        kind = details_type.model_fields["kind"].default
        details: dict = {"kind": kind}
        for field, task_field in _TASK_FIELDS_FOR_KIND[kind].items():
            value = task.get(to_camel(task_field), task.get(task_field))
            if value is not None:
                details[field] = value
        data["details"] = details
        return data

    @model_validator(mode="after")
    def _check_details_match_action(self) -> ProcessingResult:
        expected = _DETAILS_FOR_ACTION[self.action]
        if expected is None and self.details is not None:
            raise ValueError(f"action '{self.action}' takes no details")
        if expected is not None and not isinstance(self.details, expected):
            raise ValueError(f"action '{self.action}' requires {expected.__name__}")
        if self.create_project is not None and self.action not in ("delegate", "next-action"):
            raise ValueError("create_project is only valid for delegate and next-action")
        return self

    @classmethod
    def defer(cls) -> ProcessingResult:
        """Record that a decision on the item was put off."""
        return cls(action="defer")

    def task_fields(self) -> dict:
        """Partial Task (model field names) this result implies."""
        if self.details is None:
            return {}
        return self.details.to_task_fields()

    def to_payload(self) -> dict:
        """Client-facing shape: ``{action, task?, createProject?}`` with camelCase task keys."""
        payload: dict = {"action": self.action}
        if self.details is not None:
            payload["task"] = {to_camel(k): v for k, v in self.task_fields().items()}
        if self.create_project is not None:
            payload["createProject"] = self.create_project.model_dump(by_alias=True, exclude_none=True)
        return payload
