"""Tests for the weekly review endpoints."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

from datetime import datetime, timedelta, timezone

import pytest

from gtd.api.weekly_reviews import router as reviews_router
from gtd.models.review import WeeklyReview
from gtd.models.task import Project, Task


@pytest.fixture
def client(make_client):
    return make_client(reviews_router)


def test_latest_is_null_when_never_reviewed(client):
    assert client.get("/api/weekly-reviews/latest").json() is None
    snap = client.get("/api/weekly-reviews/snapshot").json()
    assert snap["status"] == "overdue"
    assert snap["daysSinceReview"] is None


def test_create_fills_counts_from_snapshot(client, session):
    session.add_all([Project(name="Website Redesign"), Task(title="Maybe", status="someday")])
    session.commit()

    resp = client.post("/api/weekly-reviews", json={"notes": "Good week", "completedTasksCount": 9})
    assert resp.status_code == 201
    review = resp.json()
    assert review["projectsReviewed"] == 1
    assert review["stalledProjectsFound"] == 1
    assert review["somedayReviewed"] == 1
    assert review["completedTasksCount"] == 9
    assert review["notes"] == "Good week"

    latest = client.get("/api/weekly-reviews/latest").json()
    assert latest["id"] == review["id"]
    assert client.get("/api/weekly-reviews/snapshot").json()["status"] == "on-track"


def test_negative_count_rejected(client):
    assert client.post("/api/weekly-reviews", json={"projectsReviewed": -1}).status_code == 422


def test_list_newest_first(client, session):
    now = datetime.now(timezone.utc)
    session.add_all([
        WeeklyReview(completed_at=now - timedelta(days=14), notes="older"),
        WeeklyReview(completed_at=now - timedelta(days=7), notes="newer"),
    ])
    session.commit()
    assert [r["notes"] for r in client.get("/api/weekly-reviews").json()] == ["newer", "older"]
    assert client.get("/api/weekly-reviews/latest").json()["notes"] == "newer"
