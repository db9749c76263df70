"""Tests for EmailFetchScheduler."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from sqlmodel import Session

from gtd.email.gateway import EmailGatewayError
from gtd.email.scheduler import EmailFetchScheduler
from gtd.models.email import Email


@pytest.fixture
def scheduler(engine):
    return EmailFetchScheduler(interval_minutes=0.001, session_factory=lambda: Session(engine))


def test_init_defaults():
    s = EmailFetchScheduler()
    assert s.interval_seconds == 900
    assert s.enabled is True
    assert s.is_running is False


def test_status_before_first_run(scheduler):
    status = scheduler.get_status()
    assert status["running"] is False
    assert status["last_run"] is None
    assert status["last_error"] is None


@pytest.mark.asyncio
async def test_run_once_counts_new(scheduler):
    with patch("gtd.email.scheduler.fetch_new_emails", new_callable=AsyncMock,
               return_value=[Email(message_id="1"), Email(message_id="2")]), \
            patch("gtd.email.scheduler.change_hub.notify", new_callable=AsyncMock) as notify:
        assert await scheduler.run_once() == 2
    notify.assert_awaited_once_with("email", "created", None, ["emails"])
    assert scheduler.last_run is not None


@pytest.mark.asyncio
async def test_run_once_survives_failure(scheduler):
    with patch("gtd.email.scheduler.fetch_new_emails", new_callable=AsyncMock,
               side_effect=EmailGatewayError("IMAP down")):
        assert await scheduler.run_once() == 0
    assert scheduler.get_status()["last_error"] == "IMAP down"

    with patch("gtd.email.scheduler.fetch_new_emails", new_callable=AsyncMock, return_value=[]):
        await scheduler.run_once()
    assert scheduler.last_error is None


@pytest.mark.asyncio
async def test_disabled_does_not_start():
    s = EmailFetchScheduler(enabled=False)
    await s.start()
    assert s.is_running is False


@pytest.mark.asyncio
async def test_loop_runs_and_stops(scheduler):
    with patch("gtd.email.scheduler.fetch_new_emails", new_callable=AsyncMock, return_value=[]) as fetch:
        await scheduler.start()
        assert scheduler.is_running is True
        await asyncio.sleep(0.2)
        scheduler.stop()
        await asyncio.sleep(0)
    assert fetch.await_count >= 1
    assert scheduler.is_running is False
