"""Change notification schema."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

ChangeEntity = Literal["task", "project", "context", "email", "weekly_review"]
ChangeAction = Literal["created", "updated", "deleted", "processed"]


class ChangeEvent(BaseModel):
    """One store mutation and exactly the lists it changed.

    ``collections`` uses plain list names (``tasks``, ``projects``,
    ``contexts``, ``emails``, ``weekly-reviews``) plus per-status task lists
    such as ``tasks:inbox`` or ``tasks:next_action``.
    """

    entity: ChangeEntity
    action: ChangeAction
    entity_id: int | None = None
    collections: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def event_type(self) -> str:
        return f"{self.entity}.{self.action}"
