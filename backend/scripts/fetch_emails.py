#!/usr/bin/env python3
"""Pull unread mail from the configured IMAP account once.

Usage:
    cd backend
    python -m scripts.fetch_emails [--limit 50]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BACKEND_DIR))

os.chdir(BACKEND_DIR)

from sqlmodel import Session  # noqa: E402

from gtd.db.database import create_db_and_tables, engine  # noqa: E402
from gtd.email.gateway import EmailGatewayError, fetch_new_emails  # noqa: E402

logger = logging.getLogger("fetch_emails")


async def _fetch(limit: int | None) -> int:
    with Session(engine) as session:
        stored = await fetch_new_emails(session, limit=limit)
    for email in stored:
        logger.info("%s  %s  %s", email.message_id, email.sender, email.subject)
    return len(stored)


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--limit", type=int, default=None, help="most recent unread messages to fetch")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    create_db_and_tables()
    try:
        count = asyncio.run(_fetch(args.limit))
    except EmailGatewayError as e:
        logger.error("Fetch failed: %s", e)
        return 1
    logger.info("Stored %d new messages", count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
