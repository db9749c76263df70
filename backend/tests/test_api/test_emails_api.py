"""Tests for the email endpoints. The mail gateway is mocked throughout."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

from unittest.mock import AsyncMock, patch

import pytest

from gtd.api.emails import router as emails_router
from gtd.api.tasks import router as tasks_router
from gtd.email.gateway import EmailGatewayError


@pytest.fixture
def client(make_client):
    return make_client(emails_router, tasks_router)


@pytest.fixture
def configured():
    """Pretend IMAP/SMTP credentials are set."""
    with patch("gtd.api.emails.is_email_configured", return_value=True):
        yield


def _store(client, message_id="1001", **body):
    body = {"messageId": message_id, "subject": "Vendor quote", "sender": "vendor@example.com",
            "content": "Please call me.", **body}
    resp = client.post("/api/emails", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestStore:
    def test_create_and_get(self, client):
        email = _store(client, recipients=["me@example.com"])
        assert email["folder"] == "INBOX"
        assert email["processed"] is False
        assert client.get(f"/api/emails/{email['id']}").json()["recipients"] == ["me@example.com"]

    def test_create_is_idempotent(self, client):
        first = _store(client)
        second = _store(client, subject="Changed")
        assert second["id"] == first["id"]
        assert second["subject"] == "Vendor quote"
        assert len(client.get("/api/emails").json()) == 1

    def test_list_filters_and_order(self, client):
        _store(client, "1", receivedAt="2025-01-01T09:00:00Z")
        _store(client, "2", receivedAt="2025-01-02T09:00:00Z", processed=True)
        _store(client, "3", receivedAt="2025-01-03T09:00:00Z", folder="ARCHIVED")

        assert [e["messageId"] for e in client.get("/api/emails").json()] == ["3", "2", "1"]
        assert [e["messageId"] for e in client.get("/api/emails?processed=false").json()] == ["3", "1"]
        assert [e["messageId"] for e in client.get("/api/emails?folder=ARCHIVED").json()] == ["3"]

    def test_list_schedules_fetch_when_configured(self, client, configured):
        with patch("gtd.api.emails._background_fetch", new_callable=AsyncMock) as fetch:
            assert client.get("/api/emails").status_code == 200
        fetch.assert_awaited_once()

    def test_unknown_email(self, client):
        assert client.get("/api/emails/999").status_code == 404
        assert client.post("/api/emails/999/process").status_code == 404


class TestMailboxSideEffects:
    def test_process_marks_read(self, client, configured):
        email = _store(client)
        with patch("gtd.email.gateway.mark_as_read", new_callable=AsyncMock) as mark:
            body = client.post(f"/api/emails/{email['id']}/process").json()
        assert body["processed"] is True
        mark.assert_awaited_once_with("1001")

    def test_server_failure_does_not_undo_store_change(self, client, configured):
        email = _store(client)
        with patch("gtd.email.gateway.archive", new_callable=AsyncMock,
                   side_effect=EmailGatewayError("IMAP down")):
            resp = client.post(f"/api/emails/{email['id']}/archive")
        assert resp.status_code == 200
        assert resp.json()["folder"] == "ARCHIVED"

    def test_unconfigured_skips_server(self, client):
        email = _store(client)
        with patch("gtd.api.emails.is_email_configured", return_value=False), \
                patch("gtd.email.gateway.move_to_folder", new_callable=AsyncMock) as move:
            resp = client.post(f"/api/emails/{email['id']}/move", json={"folder": "TRASH"})
        assert resp.json()["folder"] == "TRASH"
        move.assert_not_awaited()

    def test_patch_processed(self, client, configured):
        email = _store(client)
        with patch("gtd.email.gateway.mark_as_read", new_callable=AsyncMock) as mark:
            body = client.patch(f"/api/emails/{email['id']}", json={"processed": True, "flags": ["\\Seen"]}).json()
        assert body["flags"] == ["\\Seen"]
        mark.assert_awaited_once()

    def test_delete_detaches_tasks_and_expunges(self, client, configured):
        email = _store(client)
        task = client.post("/api/tasks", json={"title": "Call vendor", "emailId": email["id"]}).json()
        with patch("gtd.email.gateway.delete_message", new_callable=AsyncMock) as delete:
            assert client.delete(f"/api/emails/{email['id']}").status_code == 204
        delete.assert_awaited_once_with("1001")
        assert client.get(f"/api/tasks/{task['id']}").json()["emailId"] is None

    def test_delete_sent_copy_stays_local(self, client, configured):
        email = _store(client, folder="SENT")
        with patch("gtd.email.gateway.delete_message", new_callable=AsyncMock) as delete:
            client.delete(f"/api/emails/{email['id']}")
        delete.assert_not_awaited()


class TestSending:
    def test_send_records_sent_copy(self, client):
        with patch("gtd.email.gateway.send_email", new_callable=AsyncMock,
                   return_value="<abc@example.com>") as send:
            resp = client.post("/api/emails/send", json={
                "to": ["bob@example.com"], "subject": "Hello", "text": "Hi Bob",
            })
        assert resp.status_code == 201
        body = resp.json()
        assert body["messageId"] == "<abc@example.com>"
        assert body["folder"] == "SENT"
        assert body["processed"] is True
        send.assert_awaited_once_with(["bob@example.com"], "Hello", "Hi Bob", None, [], [])

    def test_send_requires_recipient(self, client):
        resp = client.post("/api/emails/send", json={"to": [], "subject": "Hello", "text": "Hi"})
        assert resp.status_code == 422

    def test_send_failure_is_502(self, client):
        with patch("gtd.email.gateway.send_email", new_callable=AsyncMock,
                   side_effect=EmailGatewayError("SMTP refused")):
            resp = client.post("/api/emails/send", json={"to": ["bob@example.com"], "subject": "Hi", "text": "x"})
        assert resp.status_code == 502
        assert client.get("/api/emails").json() == []

    def test_reply(self, client):
        original = _store(client)
        with patch("gtd.email.gateway.reply_to", new_callable=AsyncMock, return_value="<r1@example.com>"):
            resp = client.post(f"/api/emails/{original['id']}/reply", json={"text": "Will call at 3"})
        body = resp.json()
        assert resp.status_code == 201
        assert body["subject"] == "Re: Vendor quote"
        assert body["recipients"] == ["vendor@example.com"]

    def test_forward(self, client):
        original = _store(client)
        with patch("gtd.email.gateway.forward", new_callable=AsyncMock, return_value="<f1@example.com>"):
            resp = client.post(f"/api/emails/{original['id']}/forward",
                               json={"to": ["boss@example.com"], "text": "FYI"})
        body = resp.json()
        assert body["subject"] == "Fwd: Vendor quote"
        assert body["content"].startswith("FYI")
        assert "---------- Forwarded message ---------" in body["content"]

    def test_fetch_now(self, client):
        with patch("gtd.email.gateway.fetch_new_emails", new_callable=AsyncMock, return_value=[]):
            body = client.post("/api/emails/fetch").json()
        assert body == {"fetched": 0, "emails": []}

    def test_fetch_unconfigured_is_502(self, client):
        with patch("gtd.email.gateway.fetch_new_emails", new_callable=AsyncMock,
                   side_effect=EmailGatewayError("IMAP is not configured")):
            assert client.post("/api/emails/fetch").status_code == 502
