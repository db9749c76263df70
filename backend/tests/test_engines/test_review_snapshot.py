"""Tests for the weekly review snapshot."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

from datetime import date, datetime, timedelta, timezone

from gtd.engines.review import ReviewSnapshot, take_snapshot
from gtd.models.review import WeeklyReview
from gtd.models.task import Project, Task

NOW = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


def test_status_thresholds():
    assert ReviewSnapshot(days_since_review=None).status == "overdue"
    assert ReviewSnapshot(days_since_review=7).status == "overdue"
    assert ReviewSnapshot(days_since_review=5).status == "due-soon"
    assert ReviewSnapshot(days_since_review=4).status == "on-track"


def test_snapshot_counts(session):
    p1, p2 = Project(name="Website Redesign"), Project(name="Bug Fixes")
    session.add_all([p1, p2])
    session.commit()
    session.add_all([
        Task(title="Slides", status="next_action", project_id=p1.id),
        Task(title="Wait", status="waiting", waiting_for="Bob", waiting_for_follow_up=date(2025, 3, 10)),
        Task(title="Maybe", status="someday"),
        Task(title="Done", status="done"),
        Task(title="Done too", status="done"),
        WeeklyReview(completed_at=NOW - timedelta(days=6)),
    ])
    session.commit()

    snap = take_snapshot(session, now=NOW)
    assert snap.review_counts() == {
        "projects_reviewed": 2,
        "stalled_projects_found": 1,
        "waiting_for_reviewed": 1,
        "someday_reviewed": 1,
        "completed_tasks_count": 2,
    }
    assert snap.overdue_waiting_for == 1
    assert snap.days_since_review == 6
    assert snap.to_dict()["status"] == "due-soon"
