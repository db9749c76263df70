"""Tests for GoogleCalendarClient against a mocked HTTP transport."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import httpx
import pytest

from gtd.integrations.google_calendar import (
    CalendarError,
    CalendarNotConnectedError,
    GoogleCalendarClient,
)

_RealAsyncClient = httpx.AsyncClient
API_BASE = "https://www.googleapis.com/calendar/v3"
CONNECTOR = "https://connectors.example.com/api/v2/connection"


def _settings(**overrides):
    s = MagicMock()
    s.google_calendar_access_token = ""
    s.calendar_connector_url = ""
    s.calendar_connector_token = ""
    s.calendar_api_base = API_BASE
    s.calendar_lookahead_days = 7
    s.calendar_timeout_seconds = 5.0
    for key, value in overrides.items():
        setattr(s, key, value)
    return s


def _transport(handler):
    """Route every AsyncClient the module builds through ``handler``."""

    def factory(**kwargs):
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    return patch("gtd.integrations.google_calendar.httpx.AsyncClient", side_effect=factory)


class TestAccessToken:
    @pytest.mark.asyncio
    async def test_static_token(self):
        with patch("gtd.integrations.google_calendar.settings", _settings(google_calendar_access_token="tok")):
            assert await GoogleCalendarClient().get_access_token() == "tok"

    @pytest.mark.asyncio
    async def test_nothing_configured(self):
        with patch("gtd.integrations.google_calendar.settings", _settings()):
            with pytest.raises(CalendarNotConnectedError):
                await GoogleCalendarClient().get_access_token()

    @pytest.mark.asyncio
    async def test_connector_settings_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"items": [{"settings": {"access_token": "fresh"}}]})

        cfg = _settings(calendar_connector_url=CONNECTOR, calendar_connector_token="conn-secret")
        with patch("gtd.integrations.google_calendar.settings", cfg), _transport(handler):
            assert await GoogleCalendarClient().get_access_token() == "fresh"
        assert seen["auth"] == "Bearer conn-secret"
        assert seen["params"] == {"include_secrets": "true", "connector_names": "google-calendar"}

    @pytest.mark.asyncio
    async def test_connector_oauth_token(self):
        def handler(request):
            return httpx.Response(200, json={"items": [
                {"settings": {"oauth": {"credentials": {"access_token": "nested"}}}},
            ]})

        with patch("gtd.integrations.google_calendar.settings", _settings(calendar_connector_url=CONNECTOR)), \
                _transport(handler):
            assert await GoogleCalendarClient().get_access_token() == "nested"

    @pytest.mark.asyncio
    async def test_connector_without_connection(self):
        def handler(request):
            return httpx.Response(200, json={"items": []})

        with patch("gtd.integrations.google_calendar.settings", _settings(calendar_connector_url=CONNECTOR)), \
                _transport(handler):
            with pytest.raises(CalendarNotConnectedError):
                await GoogleCalendarClient().get_access_token()

    @pytest.mark.asyncio
    async def test_connector_down(self):
        def handler(request):
            return httpx.Response(503)

        with patch("gtd.integrations.google_calendar.settings", _settings(calendar_connector_url=CONNECTOR)), \
                _transport(handler):
            client = GoogleCalendarClient()
            with pytest.raises(CalendarNotConnectedError):
                await client.get_access_token()
            assert (await client.check_connection())["connected"] is False

    @pytest.mark.asyncio
    async def test_connector_returns_html(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>login</html>", headers={"Content-Type": "text/html"})

        with patch("gtd.integrations.google_calendar.settings", _settings(calendar_connector_url=CONNECTOR)), \
                _transport(handler):
            with pytest.raises(CalendarNotConnectedError):
                await GoogleCalendarClient().get_access_token()


class TestCalendarCalls:
    @pytest.mark.asyncio
    async def test_upcoming_events_query(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"items": [{"id": "e1", "summary": "Standup"}]})

        now = datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc)
        with patch("gtd.integrations.google_calendar.settings", _settings(google_calendar_access_token="tok")), \
                _transport(handler):
            events = await GoogleCalendarClient().list_upcoming_events(max_results=5, now=now)

        assert events == [{"id": "e1", "summary": "Standup"}]
        assert seen["path"] == "/calendar/v3/calendars/primary/events"
        assert seen["auth"] == "Bearer tok"
        assert seen["params"]["timeMin"] == "2025-01-06T08:00:00+00:00"
        assert seen["params"]["timeMax"] == "2025-01-13T08:00:00+00:00"
        assert seen["params"]["maxResults"] == "5"
        assert seen["params"]["singleEvents"] == "true"
        assert seen["params"]["orderBy"] == "startTime"

    @pytest.mark.asyncio
    async def test_list_calendars_empty(self):
        def handler(request):
            return httpx.Response(200, json={})

        with patch("gtd.integrations.google_calendar.settings", _settings(google_calendar_access_token="tok")), \
                _transport(handler):
            assert await GoogleCalendarClient().list_calendars() == []

    @pytest.mark.asyncio
    async def test_create_event_posts_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = request.content
            return httpx.Response(200, json={"id": "new", "summary": "Review"})

        event = {"summary": "Review", "start": {"date": "2025-01-10"}, "end": {"date": "2025-01-11"}}
        with patch("gtd.integrations.google_calendar.settings", _settings(google_calendar_access_token="tok")), \
                _transport(handler):
            created = await GoogleCalendarClient().create_event(event)

        assert created["id"] == "new"
        assert seen["method"] == "POST"
        assert b'"summary":"Review"' in seen["body"].replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_error_status(self):
        def handler(request):
            return httpx.Response(401, json={"error": "invalid_grant"})

        with patch("gtd.integrations.google_calendar.settings", _settings(google_calendar_access_token="tok")), \
                _transport(handler):
            with pytest.raises(CalendarError, match="401"):
                await GoogleCalendarClient().list_calendars()

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with patch("gtd.integrations.google_calendar.settings", _settings(google_calendar_access_token="tok")), \
                _transport(handler):
            with pytest.raises(CalendarError, match="request failed"):
                await GoogleCalendarClient().list_calendars()

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, content=b"not json")

        with patch("gtd.integrations.google_calendar.settings", _settings(google_calendar_access_token="tok")), \
                _transport(handler):
            with pytest.raises(CalendarError, match="invalid response"):
                await GoogleCalendarClient().list_upcoming_events()
