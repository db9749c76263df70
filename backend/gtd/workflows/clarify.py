"""Clarification workflow: the GTD "process the inbox" decision tree.

    actionable ──no──▶ non-actionable ──▶ trash | reference | someday
        │yes
        ▼
    next-action ──▶ two-minute ──yes──▶ do-now
                        │no
                        ▼
                  delegate-choice ──yes──▶ delegate-form ──▶ delegate
                        │no
                        ▼
                  project-choice ──yes──▶ project-form ─┐
                        │no                            ▼
                        └──────────────────────────▶ organize ──▶ next-action

A ClarificationSession is a plain value object: current step, a history
stack of earlier steps, and the answers collected so far. It never touches
storage; the caller applies the emitted ProcessingResult.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Iterable

from gtd.models.processing import (
    EmailItem,
    InboxItem,
    NextActionDetails,
    ProcessingResult,
    ProjectRequest,
    ReferenceDetails,
    SomedayDetails,
    TaskItem,
    WaitingDetails,
)
from gtd.models.task import ENERGY_LEVELS, TIME_ESTIMATES, Context

MIN_NEXT_ACTION_LENGTH = 3
MIN_PROJECT_NAME_LENGTH = 3


class ClarifyStep(str, Enum):
    ACTIONABLE = "actionable"
    NON_ACTIONABLE = "non-actionable"
    NEXT_ACTION = "next-action"
    TWO_MINUTE = "two-minute"
    DELEGATE_CHOICE = "delegate-choice"
    DELEGATE_FORM = "delegate-form"
    PROJECT_CHOICE = "project-choice"
    PROJECT_FORM = "project-form"
    ORGANIZE = "organize"


# === Step Transition Table ===
# Key: (from_step, to_step) → answer that leads there
# Absent pair → illegal transition

LEGAL_TRANSITIONS: dict[tuple[ClarifyStep, ClarifyStep], str] = {
    (ClarifyStep.ACTIONABLE, ClarifyStep.NON_ACTIONABLE): "Not actionable",
    (ClarifyStep.ACTIONABLE, ClarifyStep.NEXT_ACTION): "Actionable",
    (ClarifyStep.NEXT_ACTION, ClarifyStep.TWO_MINUTE): "Next action entered",
    (ClarifyStep.TWO_MINUTE, ClarifyStep.DELEGATE_CHOICE): "Takes longer than two minutes",
    (ClarifyStep.DELEGATE_CHOICE, ClarifyStep.DELEGATE_FORM): "Can be delegated",
    (ClarifyStep.DELEGATE_CHOICE, ClarifyStep.PROJECT_CHOICE): "Do it myself",
    (ClarifyStep.PROJECT_CHOICE, ClarifyStep.PROJECT_FORM): "Part of a larger outcome",
    (ClarifyStep.PROJECT_CHOICE, ClarifyStep.ORGANIZE): "Standalone action",
    (ClarifyStep.PROJECT_FORM, ClarifyStep.ORGANIZE): "Project described",
}

NON_ACTIONABLE_CHOICES = ("trash", "reference", "someday")


class IllegalStepError(Exception):
    """Raised when an answer is given at a step that does not ask for it."""

    def __init__(self, current: ClarifyStep, attempted: str) -> None:
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot {attempted} at step '{current.value}'")


class ClarifyValidationError(ValueError):
    """Raised when form input is missing or invalid. The session does not advance."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class SessionClosedError(Exception):
    """Raised when input arrives after the session already emitted its result."""


class ClarificationSession:
    """One run of the clarify dialog over a single inbox item.

    Usage:
        session = ClarificationSession(EmailItem(email), contexts=contexts)
        session.answer_actionable(True)
        session.submit_next_action("Call vendor")
        session.answer_two_minute(False)
        session.answer_delegate(False)
        session.answer_project(False)
        result = session.submit_organize(context_id=2, time_estimate="30min")
    """

    def __init__(
        self,
        item: InboxItem,
        contexts: Iterable[Context] | None = None,
    ) -> None:
        if not isinstance(item, (TaskItem, EmailItem)):
            raise TypeError(f"Unsupported inbox item: {type(item).__name__}")
        self.item = item
        self._context_ids = (
            None if contexts is None else {c.id for c in contexts}
        )
        self.result: ProcessingResult | None = None
        self._clear()

    def _clear(self) -> None:
        self.step = ClarifyStep.ACTIONABLE
        self.history: list[ClarifyStep] = []
        self.non_actionable_choice: str | None = None
        self.next_action = ""
        self.pending_project: ProjectRequest | None = None

    # --- state ---

    @property
    def is_closed(self) -> bool:
        return self.result is not None

    def can_go_back(self) -> bool:
        if self.is_closed:
            return False
        return bool(self.history) or self.non_actionable_choice is not None

    def _require(self, step: ClarifyStep, attempted: str) -> None:
        if self.is_closed:
            raise SessionClosedError("Session already emitted its result")
        if self.step != step:
            raise IllegalStepError(self.step, attempted)

    def _navigate(self, to_step: ClarifyStep) -> None:
        if (self.step, to_step) not in LEGAL_TRANSITIONS:
            raise IllegalStepError(self.step, f"move to '{to_step.value}'")
        self.history.append(self.step)
        self.step = to_step

    def _emit(self, result: ProcessingResult) -> ProcessingResult:
        self._clear()
        self.result = result
        return result

    def back(self) -> ClarifyStep:
        """Go back one screen.

        From a reference/someday sub-form only the sub-choice is dropped, so
        the user lands on the bare non-actionable choice; the sub-form was
        never pushed on the history stack.
        """
        if self.is_closed:
            raise SessionClosedError("Session already emitted its result")
        if self.step == ClarifyStep.NON_ACTIONABLE and self.non_actionable_choice:
            self.non_actionable_choice = None
            return self.step
        if self.history:
            self.step = self.history.pop()
        return self.step

    def reset(self) -> None:
        """Discard all answers, as when the dialog is closed without finishing."""
        self._clear()
        self.result = None

    # --- actionable ---

    def answer_actionable(self, actionable: bool) -> ClarifyStep:
        self._require(ClarifyStep.ACTIONABLE, "answer 'is it actionable?'")
        self._navigate(ClarifyStep.NEXT_ACTION if actionable else ClarifyStep.NON_ACTIONABLE)
        return self.step

    # --- non-actionable branch ---

    def choose_non_actionable(self, choice: str) -> ProcessingResult | None:
        """Pick trash, reference or someday. Trash finishes immediately."""
        self._require(ClarifyStep.NON_ACTIONABLE, "choose a non-actionable outcome")
        if self.non_actionable_choice is not None:
            raise IllegalStepError(self.step, "choose again before going back")
        if choice not in NON_ACTIONABLE_CHOICES:
            raise ClarifyValidationError("choice", f"must be one of {', '.join(NON_ACTIONABLE_CHOICES)}")
        if choice == "trash":
            return self._emit(ProcessingResult(action="trash"))
        self.non_actionable_choice = choice
        return None

    def submit_reference(self, category: str | None = None) -> ProcessingResult:
        self._require(ClarifyStep.NON_ACTIONABLE, "file as reference")
        if self.non_actionable_choice != "reference":
            raise IllegalStepError(self.step, "file as reference")
        category = (category or "").strip() or None
        return self._emit(ProcessingResult(
            action="reference",
            details=ReferenceDetails(category=category),
        ))

    def submit_someday(self, notes: str | None = None) -> ProcessingResult:
        self._require(ClarifyStep.NON_ACTIONABLE, "incubate as someday/maybe")
        if self.non_actionable_choice != "someday":
            raise IllegalStepError(self.step, "incubate as someday/maybe")
        notes = (notes or "").strip() or None
        return self._emit(ProcessingResult(
            action="someday",
            details=SomedayDetails(notes=notes),
        ))

    # --- actionable branch ---

    def submit_next_action(self, text: str) -> ClarifyStep:
        self._require(ClarifyStep.NEXT_ACTION, "describe the next action")
        text = (text or "").strip()
        if len(text) < MIN_NEXT_ACTION_LENGTH:
            raise ClarifyValidationError(
                "next_action", f"must be at least {MIN_NEXT_ACTION_LENGTH} characters",
            )
        self.next_action = text
        self._navigate(ClarifyStep.TWO_MINUTE)
        return self.step

    def answer_two_minute(self, under_two_minutes: bool) -> ProcessingResult | ClarifyStep:
        """Yes = do it now and finish; no = consider delegating."""
        self._require(ClarifyStep.TWO_MINUTE, "answer the two-minute question")
        if under_two_minutes:
            return self._emit(ProcessingResult(action="do-now"))
        self._navigate(ClarifyStep.DELEGATE_CHOICE)
        return self.step

    def answer_delegate(self, delegate: bool) -> ClarifyStep:
        self._require(ClarifyStep.DELEGATE_CHOICE, "answer 'can it be delegated?'")
        self._navigate(ClarifyStep.DELEGATE_FORM if delegate else ClarifyStep.PROJECT_CHOICE)
        return self.step

    def submit_delegate(self, waiting_for: str, follow_up_date: date | None) -> ProcessingResult:
        self._require(ClarifyStep.DELEGATE_FORM, "delegate")
        waiting_for = (waiting_for or "").strip()
        if not waiting_for:
            raise ClarifyValidationError("waiting_for", "enter who this is delegated to")
        if isinstance(follow_up_date, datetime):
            follow_up_date = follow_up_date.date()
        if not isinstance(follow_up_date, date):
            raise ClarifyValidationError("follow_up_date", "pick a follow-up date")
        return self._emit(ProcessingResult(
            action="delegate",
            details=WaitingDetails(
                title=self.next_action,
                waiting_for=waiting_for,
                follow_up=follow_up_date,
                description=self.item.description,
                email_id=self.item.email_id,
            ),
        ))

    def answer_project(self, is_project: bool) -> ClarifyStep:
        self._require(ClarifyStep.PROJECT_CHOICE, "answer 'is it part of a project?'")
        self._navigate(ClarifyStep.PROJECT_FORM if is_project else ClarifyStep.ORGANIZE)
        return self.step

    def submit_project(self, name: str, description: str | None = None) -> ClarifyStep:
        self._require(ClarifyStep.PROJECT_FORM, "describe the project")
        name = (name or "").strip()
        if len(name) < MIN_PROJECT_NAME_LENGTH:
            raise ClarifyValidationError(
                "project_name", f"must be at least {MIN_PROJECT_NAME_LENGTH} characters",
            )
        self.pending_project = ProjectRequest(
            name=name,
            description=(description or "").strip() or None,
        )
        self._navigate(ClarifyStep.ORGANIZE)
        return self.step

    def submit_organize(
        self,
        context_id: int | None = None,
        time_estimate: str | None = None,
        energy_level: str | None = None,
        due_date: date | None = None,
    ) -> ProcessingResult:
        self._require(ClarifyStep.ORGANIZE, "organize")
        if context_id is not None and self._context_ids is not None and context_id not in self._context_ids:
            raise ClarifyValidationError("context_id", f"unknown context {context_id}")
        if time_estimate is not None and time_estimate not in TIME_ESTIMATES:
            raise ClarifyValidationError("time_estimate", f"must be one of {', '.join(TIME_ESTIMATES)}")
        if energy_level is not None and energy_level not in ENERGY_LEVELS:
            raise ClarifyValidationError("energy_level", f"must be one of {', '.join(ENERGY_LEVELS)}")
        if isinstance(due_date, datetime):
            due_date = due_date.date()

        # Only a project entered on this pass counts; going back past the
        # project form and choosing "standalone" drops it.
        project = self.pending_project if ClarifyStep.PROJECT_FORM in self.history else None
        return self._emit(ProcessingResult(
            action="next-action",
            details=NextActionDetails(
                title=self.next_action,
                context_id=context_id,
                time_estimate=time_estimate,
                energy_level=energy_level,
                due_date=due_date,
                description=self.item.description,
                email_id=self.item.email_id,
            ),
            create_project=project,
        ))
