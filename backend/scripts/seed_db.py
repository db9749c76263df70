#!/usr/bin/env python3
"""Seed starter contexts, projects and tasks into an empty database.

Usage:
    cd backend
    python -m scripts.seed_db
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BACKEND_DIR))

# Ensure CWD is backend/ so sqlite:///data/gtd.db resolves correctly
os.chdir(BACKEND_DIR)

from sqlmodel import Session  # noqa: E402

from gtd.cold_start.seeder import ColdStartSeeder  # noqa: E402
from gtd.db.database import create_db_and_tables, engine  # noqa: E402

logger = logging.getLogger("seed_db")


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    create_db_and_tables()
    with Session(engine) as session:
        result = ColdStartSeeder(session).seed()
    if result.errors:
        logger.error("Seeding failed: %s", "; ".join(result.errors))
        return 1
    if result.skipped:
        logger.info("Nothing to do, database already seeded")
    return 0


if __name__ == "__main__":
    sys.exit(main())
