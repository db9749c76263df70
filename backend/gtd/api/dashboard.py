"""Dashboard API endpoints.

GET /api/dashboard/health    the five GTD health gauges plus their raw inputs
GET /api/dashboard/summary   list counts for the overview cards
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic.alias_generators import to_camel
from sqlmodel import Session

from gtd.db.database import get_session
from gtd.db.queries import stalled_projects, tasks_with_status, unprocessed_emails
from gtd.engines.health import HealthInputs, gather_health_inputs, score_all
from gtd.models.base import CamelModel
from gtd.models.task import TaskStatus

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


class GaugeResponse(CamelModel):
    level: int
    label: str
    metric: str


class HealthResponse(CamelModel):
    capture: GaugeResponse
    clarify: GaugeResponse
    organize: GaugeResponse
    reflect: GaugeResponse
    engage: GaugeResponse
    inputs: dict


class SummaryResponse(CamelModel):
    inbox: int
    unprocessed_emails: int
    next_actions: int
    waiting: int
    someday: int
    stalled_projects: int
    overdue_waiting_for: int


def _camel_inputs(inputs: HealthInputs) -> dict:
    return {to_camel(k): v for k, v in inputs.to_dict().items()}


@router.get("/health", response_model=HealthResponse)
async def get_health(session: Session = Depends(get_session)) -> HealthResponse:
    inputs = gather_health_inputs(session)
    scores = {name: GaugeResponse(**score.to_dict()) for name, score in score_all(inputs).items()}
    return HealthResponse(**scores, inputs=_camel_inputs(inputs))


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(session: Session = Depends(get_session)) -> SummaryResponse:
    today = datetime.now(timezone.utc).date()
    waiting = tasks_with_status(session, TaskStatus.WAITING)
    return SummaryResponse(
        inbox=len(tasks_with_status(session, TaskStatus.INBOX)),
        unprocessed_emails=len(unprocessed_emails(session)),
        next_actions=len(tasks_with_status(session, TaskStatus.NEXT_ACTION)),
        waiting=len(waiting),
        someday=len(tasks_with_status(session, TaskStatus.SOMEDAY)),
        stalled_projects=len(stalled_projects(session)),
        overdue_waiting_for=sum(
            1 for t in waiting
            if t.waiting_for_follow_up is not None and t.waiting_for_follow_up < today
        ),
    )
