"""Cold Start Seeder: populate an empty database with starter GTD data.

Seeds four contexts, five projects, five inbox tasks and one next action
per context, so a fresh install has something to process and review.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlmodel import Session, select

from gtd.models.task import Context, Project, Task, TaskStatus

logger = logging.getLogger(__name__)

DEFAULT_CONTEXTS = [
    ("@home", "#4CAF50"),
    ("@work", "#2196F3"),
    ("@computer", "#9C27B0"),
    ("@phone", "#F44336"),
]

DEFAULT_PROJECTS = [
    ("Website Redesign", "Update company website with new branding"),
    ("Q4 Planning", "Strategic planning for Q4 initiatives"),
    ("Team Training", "Onboard new team members and provide training"),
    ("Bug Fixes", "Address critical bugs in production"),
    ("Documentation", "Update system and API documentation"),
]

INBOX_TASKS = [
    ("Review budget proposal", "Check Q4 budget allocation from finance team"),
    ("Reply to client email", "Follow up on contract negotiation"),
    ("Schedule team meeting", "Set up weekly sync with project team"),
    ("Update project status", "Send weekly status report to stakeholders"),
    ("Review pull requests", "Check pending code reviews from team"),
]

# (title, description, context index, project index or None, time estimate, energy)
NEXT_ACTIONS = [
    ("Buy groceries for dinner", "Pick up ingredients for meal prep", 0, None, "30min", "low"),
    ("Prepare presentation slides", "Create slides for client meeting", 1, 0, "1hr", "medium"),
    ("Debug login form issue", "Fix authentication timeout error", 2, 3, "1hr", "high"),
    ("Call dentist for appointment", "Schedule routine cleaning", 3, None, "15min", "low"),
]


@dataclass
class SeedResult:
    """Result of a seeding operation."""

    contexts: int = 0
    projects: int = 0
    tasks: int = 0
    skipped: bool = False  # Database already had data
    errors: list[str] = field(default_factory=list)


class ColdStartSeeder:
    """Seeds the GTD lists with starter data.

    Usage:
        with Session(engine) as session:
            result = ColdStartSeeder(session).seed()
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def is_empty(self) -> bool:
        """True when no context exists yet. Seeding never touches a used database."""
        return self.session.exec(select(Context).limit(1)).first() is None

    def seed(self) -> SeedResult:
        result = SeedResult()
        if not self.is_empty():
            logger.info("Database already has contexts, skipping seed")
            result.skipped = True
            return result

        try:
            contexts = [Context(name=name, color=color) for name, color in DEFAULT_CONTEXTS]
            projects = [Project(name=name, description=desc, is_active=True) for name, desc in DEFAULT_PROJECTS]
            self.session.add_all(contexts + projects)
            self.session.flush()

            tasks = [
                Task(title=title, description=desc, status=TaskStatus.INBOX.value)
                for title, desc in INBOX_TASKS
            ]
            for title, desc, ctx, proj, estimate, energy in NEXT_ACTIONS:
                tasks.append(Task(
                    title=title,
                    description=desc,
                    status=TaskStatus.NEXT_ACTION.value,
                    context_id=contexts[ctx].id,
                    project_id=projects[proj].id if proj is not None else None,
                    time_estimate=estimate,
                    energy_level=energy,
                ))
            self.session.add_all(tasks)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error("Seeding failed: %s", e)
            result.errors.append(str(e))
            return result

        result.contexts = len(contexts)
        result.projects = len(projects)
        result.tasks = len(tasks)
        logger.info(
            "Seeded %d contexts, %d projects, %d tasks",
            result.contexts, result.projects, result.tasks,
        )
        return result
