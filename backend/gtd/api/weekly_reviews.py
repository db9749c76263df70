"""Weekly review API endpoints.

GET  /api/weekly-reviews            all reviews, newest first
GET  /api/weekly-reviews/latest     most recent review or null
GET  /api/weekly-reviews/snapshot   counts a review would record now
POST /api/weekly-reviews            record a completed review
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlmodel import Session, select

from gtd.api.events import change_hub
from gtd.api.schemas import WeeklyReviewResponse
from gtd.db.database import get_session
from gtd.db.queries import latest_review
from gtd.engines.review import take_snapshot
from gtd.models.base import CamelModel
from gtd.models.review import WeeklyReview

router = APIRouter(prefix="/api", tags=["weekly-reviews"])


class CreateReviewRequest(CamelModel):
    """Counts left out are taken from the current snapshot."""

    projects_reviewed: int | None = Field(default=None, ge=0)
    stalled_projects_found: int | None = Field(default=None, ge=0)
    waiting_for_reviewed: int | None = Field(default=None, ge=0)
    someday_reviewed: int | None = Field(default=None, ge=0)
    completed_tasks_count: int | None = Field(default=None, ge=0)
    notes: str | None = None


class SnapshotResponse(CamelModel):
    projects_reviewed: int
    stalled_projects_found: int
    waiting_for_reviewed: int
    someday_reviewed: int
    completed_tasks_count: int
    overdue_waiting_for: int
    days_since_review: int | None = None
    status: str


@router.get("/weekly-reviews", response_model=list[WeeklyReviewResponse])
async def list_reviews(session: Session = Depends(get_session)) -> list[WeeklyReviewResponse]:
    stmt = select(WeeklyReview).order_by(WeeklyReview.completed_at.desc(), WeeklyReview.id.desc())
    return [WeeklyReviewResponse.model_validate(r) for r in session.exec(stmt).all()]


@router.get("/weekly-reviews/latest", response_model=WeeklyReviewResponse | None)
async def get_latest_review(session: Session = Depends(get_session)) -> WeeklyReviewResponse | None:
    review = latest_review(session)
    return WeeklyReviewResponse.model_validate(review) if review else None


@router.get("/weekly-reviews/snapshot", response_model=SnapshotResponse)
async def get_snapshot(session: Session = Depends(get_session)) -> SnapshotResponse:
    return SnapshotResponse(**take_snapshot(session).to_dict())


@router.post("/weekly-reviews", response_model=WeeklyReviewResponse, status_code=201)
async def create_review(request: CreateReviewRequest, session: Session = Depends(get_session)) -> WeeklyReviewResponse:
    counts = take_snapshot(session).review_counts()
    counts.update(request.model_dump(exclude_none=True, exclude={"notes"}))
    review = WeeklyReview(**counts, notes=request.notes)
    session.add(review)
    session.commit()
    session.refresh(review)
    await change_hub.notify("weekly_review", "created", review.id, ["weekly-reviews"])
    return WeeklyReviewResponse.model_validate(review)
