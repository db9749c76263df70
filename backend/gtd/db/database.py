"""Database setup: SQLite with WAL mode via SQLModel/SQLAlchemy.

What goes where:
- task, project, context: the GTD lists
- email: mirror of the IMAP inbox plus locally sent mail
- weekly_review: one snapshot row per completed review
"""

from __future__ import annotations

import os
from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy import event
from sqlalchemy.engine import Engine

from gtd.config import settings


def get_database_url() -> str:
    """Get database URL, ensuring the data directory exists."""
    url = settings.database_url
    if url.startswith("sqlite:///"):
        db_path = url.replace("sqlite:///", "")
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
    return url


@event.listens_for(Engine, "connect")
def set_sqlite_pragmas(dbapi_connection, connection_record):
    """Enable WAL and foreign keys on every SQLite connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
    cursor.execute("PRAGMA busy_timeout=5000")    # 5s wait on lock
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = create_engine(
    get_database_url(),
    echo=False,
    connect_args={"check_same_thread": False},  # Required for SQLite + async
)


def create_db_and_tables():
    """Create all tables defined by SQLModel metadata."""
    # Registers every table class on SQLModel.metadata
    import gtd.models.email  # noqa: F401
    import gtd.models.review  # noqa: F401
    import gtd.models.task  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for FastAPI endpoints."""
    with Session(engine) as session:
        yield session
