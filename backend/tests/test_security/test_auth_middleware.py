"""Tests for APIKeyAuthMiddleware."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from gtd.middleware.auth import APIKeyAuthMiddleware

API_KEY = "test-secret-key"


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(APIKeyAuthMiddleware)

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/api/tasks")
    async def tasks():
        return []

    @app.get("/api/events")
    async def events():
        return {"stream": True}

    return app


@pytest.fixture
def client():
    with patch("gtd.middleware.auth.settings") as mock_settings:
        mock_settings.gtd_api_key = API_KEY
        yield TestClient(_app())


def test_dev_mode_without_key():
    with patch("gtd.middleware.auth.settings") as mock_settings:
        mock_settings.gtd_api_key = ""
        assert TestClient(_app()).get("/api/tasks").status_code == 200


def test_missing_token(client):
    assert client.get("/api/tasks").status_code == 401


def test_wrong_token(client):
    resp = client.get("/api/tasks", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 403


def test_valid_token(client):
    resp = client.get("/api/tasks", headers={"Authorization": f"Bearer {API_KEY}"})
    assert resp.status_code == 200


def test_health_exempt(client):
    assert client.get("/health").status_code == 200


def test_query_token_only_on_event_stream(client):
    assert client.get(f"/api/events?token={API_KEY}").status_code == 200
    assert client.get(f"/api/tasks?token={API_KEY}").status_code == 401


def test_preflight_passes(client):
    assert client.options("/api/tasks").status_code != 401
