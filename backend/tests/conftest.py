"""Shared test fixtures for GTD backend tests."""

import os
import sys

import pytest

# Ensure backend is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")
os.environ.setdefault("SEED_ON_STARTUP", "false")

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from gtd.db.database import get_session

# Import ALL SQLModel tables so metadata is fully populated before create_all
from gtd.models.email import Email  # noqa: F401
from gtd.models.review import WeeklyReview  # noqa: F401
from gtd.models.task import Context, Project, Task  # noqa: F401


@pytest.fixture
def engine():
    """In-memory SQLite. StaticPool keeps one connection so every session sees the same DB."""
    eng = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def make_client(engine):
    """Build a TestClient for a bare app with the given routers on the test DB."""

    def _make(*routers) -> TestClient:
        app = FastAPI()
        for router in routers:
            app.include_router(router)

        def override_get_session():
            with Session(engine) as s:
                yield s

        app.dependency_overrides[get_session] = override_get_session
        return TestClient(app)

    return _make
