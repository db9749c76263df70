"""Tests for processing result models."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

from datetime import date

import pytest
from pydantic import ValidationError

from gtd.models.email import Email
from gtd.models.processing import (
    EmailItem,
    NextActionDetails,
    ProcessingResult,
    ProjectRequest,
    ReferenceDetails,
    TaskItem,
    WaitingDetails,
)
from gtd.models.task import Task, TaskStatus, apply_task_changes


class TestProcessingResult:
    def test_details_must_match_action(self):
        with pytest.raises(ValidationError):
            ProcessingResult(action="reference", details=WaitingDetails(
                title="Draft", waiting_for="Alice", follow_up=date(2025, 1, 10),
            ))

    def test_action_without_details_rejects_details(self):
        with pytest.raises(ValidationError):
            ProcessingResult(action="trash", details=ReferenceDetails())

    def test_required_details_missing(self):
        with pytest.raises(ValidationError):
            ProcessingResult(action="next-action")

    def test_create_project_only_for_task_producing_actions(self):
        with pytest.raises(ValidationError):
            ProcessingResult(action="someday", create_project=ProjectRequest(name="Garden"))

    def test_parses_camel_case_json(self):
        result = ProcessingResult.model_validate({
            "action": "next-action",
            "details": {"kind": "next_action", "title": "Call vendor", "contextId": 2, "timeEstimate": "30min"},
            "createProject": {"name": "Vendor onboarding"},
        })
        assert isinstance(result.details, NextActionDetails)
        assert result.details.context_id == 2
        assert result.create_project.name == "Vendor onboarding"

    def test_unknown_time_estimate_rejected(self):
        with pytest.raises(ValidationError):
            NextActionDetails(title="Call vendor", time_estimate="3hr")

    def test_short_titles_rejected(self):
        with pytest.raises(ValidationError):
            NextActionDetails(title="ab")
        with pytest.raises(ValidationError):
            ProjectRequest(name="ab")

    def test_defer(self):
        result = ProcessingResult.defer()
        assert result.action == "defer"
        assert result.task_fields() == {}

    def test_waiting_fields(self):
        details = WaitingDetails(title="Draft", waiting_for="Alice", follow_up=date(2025, 1, 10), email_id=3)
        assert details.to_task_fields() == {
            "title": "Draft",
            "status": "waiting",
            "waiting_for": "Alice",
            "waiting_for_follow_up": date(2025, 1, 10),
            "description": None,
            "email_id": 3,
        }

    def test_accepts_task_shape(self):
        result = ProcessingResult.model_validate({
            "action": "delegate",
            "task": {"title": "Draft proposal", "status": "waiting",
                     "waitingFor": "Alice", "waitingForFollowUp": "2025-01-10"},
        })
        assert isinstance(result.details, WaitingDetails)
        assert result.details.waiting_for == "Alice"
        assert result.details.follow_up == date(2025, 1, 10)

    def test_payload_validates_back(self):
        original = ProcessingResult(
            action="next-action",
            details=NextActionDetails(title="Call vendor", context_id=2, time_estimate="30min", email_id=7),
            create_project=ProjectRequest(name="Vendor onboarding"),
        )
        parsed = ProcessingResult.model_validate(original.to_payload())
        assert parsed.task_fields() == original.task_fields()
        assert parsed.create_project.name == "Vendor onboarding"

        reference = ProcessingResult(action="reference", details=ReferenceDetails(category="Finance"))
        assert ProcessingResult.model_validate(reference.to_payload()).details.category == "Finance"

    def test_task_shape_dropped_for_trash(self):
        result = ProcessingResult.model_validate({"action": "trash", "task": {"title": "Old"}})
        assert result.details is None

    def test_task_shape_still_checked(self):
        with pytest.raises(ValidationError):
            ProcessingResult.model_validate({"action": "delegate", "task": {"title": "Draft proposal"}})


class TestInboxItems:
    def test_task_item(self):
        item = TaskItem(Task(id=1, title="Review", description="desc"))
        assert (item.kind, item.id, item.title, item.description, item.email_id) == (
            "task", 1, "Review", "desc", None,
        )

    def test_email_item_uses_subject_and_content(self):
        item = EmailItem(Email(id=9, message_id="55", subject="Hello", content="Body"))
        assert (item.kind, item.id, item.title, item.description, item.email_id) == (
            "email", 9, "Hello", "Body", 9,
        )


class TestApplyTaskChanges:
    def test_completed_at_stamped_and_cleared(self):
        task = Task(title="Ship it")
        apply_task_changes(task, {"status": TaskStatus.DONE})
        assert task.status == "done"
        assert task.completed_at is not None

        apply_task_changes(task, {"status": "next_action"})
        assert task.completed_at is None

    def test_other_changes_keep_completed_at(self):
        task = Task(title="Ship it")
        apply_task_changes(task, {"status": "done"})
        stamp = task.completed_at
        apply_task_changes(task, {"notes": "shipped on Friday"})
        assert task.completed_at == stamp
