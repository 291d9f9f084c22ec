"""
Tests for the Slack endpoint and the integration request form.
"""

import hashlib
import hmac
import json
import time
from unittest.mock import patch
from urllib.parse import urlencode

import pytest
from fastapi.testclient import TestClient

from github_agent.api.routes.integrations import integration_request_email
from github_agent.api.schemas import IntegrationRequest
from github_agent.config import settings

SIGNING_SECRET = "shh-secret"


def signed_headers(body: str, content_type: str = "application/json") -> dict[str, str]:
    timestamp = str(int(time.time()))
    digest = hmac.new(
        SIGNING_SECRET.encode(), f"v0:{timestamp}:{body}".encode(), hashlib.sha256
    ).hexdigest()
    return {
        "Content-Type": content_type,
        "X-Slack-Request-Timestamp": timestamp,
        "X-Slack-Signature": f"v0={digest}",
    }


@pytest.fixture
def signing_secret(monkeypatch):
    monkeypatch.setattr(settings, "slack_signing_secret", SIGNING_SECRET)


class TestSlackEvents:
    """Tests for /api/slack/events."""

    def test_endpoint_info(self, api_client: TestClient):
        data = api_client.get("/api/slack/events").json()

        assert data["status"] == "GitHub Agent Dashboard Slack Webhook"

    def test_url_verification_needs_no_signature(self, api_client: TestClient):
        response = api_client.post(
            "/api/slack/events", json={"type": "url_verification", "challenge": "abc123"}
        )

        assert response.json() == {"challenge": "abc123"}

    def test_invalid_json(self, api_client: TestClient):
        response = api_client.post(
            "/api/slack/events",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON payload"

    @pytest.mark.parametrize(
        "content_type", ["application/json", "application/x-www-form-urlencoded"]
    )
    def test_undecodable_body(self, api_client: TestClient, content_type):
        response = api_client.post(
            "/api/slack/events",
            content=b"\xff\xfe{}",
            headers={"Content-Type": content_type},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid payload"

    def test_signing_secret_not_configured(self, api_client: TestClient):
        response = api_client.post("/api/slack/events", json={"type": "event_callback"})

        assert response.status_code == 500
        assert response.json()["error"] == "Configuration error"

    def test_missing_signature(self, api_client: TestClient, signing_secret):
        response = api_client.post("/api/slack/events", json={"type": "event_callback"})

        assert response.status_code == 401

    def test_wrong_signature(self, api_client: TestClient, signing_secret):
        body = json.dumps({"type": "event_callback", "event": {}})
        headers = signed_headers(body)
        headers["X-Slack-Signature"] = "v0=" + "0" * 64

        response = api_client.post("/api/slack/events", content=body, headers=headers)

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid signature"

    def test_signed_event_is_acknowledged(self, api_client: TestClient, signing_secret):
        body = json.dumps({"type": "event_callback", "event": {"type": "reaction_added"}})

        response = api_client.post(
            "/api/slack/events", content=body, headers=signed_headers(body)
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_slash_command(self, api_client: TestClient, signing_secret):
        body = urlencode({"command": "/deploy", "text": "now"})

        response = api_client.post(
            "/api/slack/events",
            content=body,
            headers=signed_headers(body, "application/x-www-form-urlencoded"),
        )

        data = response.json()
        assert data["response_type"] == "ephemeral"
        assert data["text"].startswith("Unknown command.")

    def test_unsigned_slash_command(self, api_client: TestClient, signing_secret):
        response = api_client.post(
            "/api/slack/events",
            content="command=%2Frepo-chat&text=hi",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 401


class TestIntegrationRequest:
    """Tests for /api/integration-request."""

    def test_missing_fields(self, api_client: TestClient):
        response = api_client.post("/api/integration-request", json={"type": "crm"})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"

    def test_recipient_not_configured(self, api_client: TestClient):
        response = api_client.post(
            "/api/integration-request",
            json={"type": "crm", "name": "HubSpot", "details": "Sync contacts"},
        )

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to send integration request"

    def test_sends_email(self, api_client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "integration_request_email", "maint@example.com")

        with patch("github_agent.api.routes.integrations.EmailSender") as sender:
            response = api_client.post(
                "/api/integration-request",
                json={
                    "type": "crm",
                    "name": "HubSpot",
                    "details": "Sync contacts",
                    "userEmail": "dev@example.com",
                },
            )

        assert response.json() == {"success": True}
        kwargs = sender.from_env.return_value.send.call_args.kwargs
        assert kwargs["to"] == "maint@example.com"
        assert kwargs["subject"] == "New Integration Request: HubSpot"
        assert "dev@example.com" in kwargs["html"]

    def test_user_input_is_escaped(self):
        content = integration_request_email(
            IntegrationRequest(type="crm", name="<b>X</b>", details="<script>alert(1)</script>")
        )

        assert "<script>" not in content["html"]
        assert "&lt;script&gt;" in content["html"]
