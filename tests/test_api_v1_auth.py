"""
Tests for /api/v1 authentication, rate limiting and error envelopes.
"""

import pytest
from fastapi.testclient import TestClient

from github_agent.api.auth import RateLimiter
from github_agent.config import settings
from github_agent.db.repositories import ApiKeyRepository


def assert_error(response, status: int, code: str) -> None:
    assert response.status_code == status
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == code
    assert body["error"]["status"] == status
    assert body["api_version"] == "1.0"
    assert response.headers["X-API-Version"] == "1.0"


class TestApiKeyAuthentication:
    """Tests for require_api_key."""

    def test_missing_key(self, api_client: TestClient):
        response = api_client.get("/api/v1/projects")

        assert_error(response, 401, "MISSING_API_KEY")
        assert response.json()["error"]["message"] == "API key required"

    def test_invalid_key(self, api_client: TestClient):
        response = api_client.get(
            "/api/v1/projects", headers={"Authorization": "Bearer gha_nope"}
        )

        assert_error(response, 401, "INVALID_API_KEY")

    def test_non_bearer_scheme_is_ignored(self, api_client: TestClient, api_key):
        response = api_client.get(
            "/api/v1/projects", headers={"Authorization": f"Basic {api_key}"}
        )

        assert_error(response, 401, "MISSING_API_KEY")

    def test_bearer_key(self, api_client: TestClient, auth_headers):
        response = api_client.get("/api/v1/projects", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_x_api_key_header(self, api_client: TestClient, api_key):
        response = api_client.get("/api/v1/projects", headers={"X-API-Key": api_key})

        assert response.status_code == 200

    def test_revoked_key(self, api_client: TestClient, db_session):
        keys = ApiKeyRepository(db_session)
        row, full_key = keys.issue("Old Key")
        keys.revoke(row)
        db_session.commit()

        response = api_client.get(
            "/api/v1/projects", headers={"Authorization": f"Bearer {full_key}"}
        )

        assert_error(response, 401, "INVALID_API_KEY")

    def test_usage_is_recorded(self, api_client: TestClient, auth_headers, db_session):
        api_client.get("/api/v1/projects", headers=auth_headers)
        api_client.get("/api/v1/projects", headers=auth_headers)

        key = ApiKeyRepository(db_session).list_keys()[0]
        assert key.request_count == 2
        assert key.last_used_at is not None

    def test_master_key(self, api_client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "master_api_key", "master-secret")

        response = api_client.get(
            "/api/v1/projects", headers={"Authorization": "Bearer master-secret"}
        )

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == str(settings.api_master_rate_limit)

    def test_inactive_keys_are_listed(self, api_client: TestClient, inactive_key):
        keys = api_client.get("/api/keys").json()["data"]

        assert [(k["name"], k["is_active"]) for k in keys] == [("Revoked Key", False)]


class TestRateLimiting:
    """Tests for per-key request limits."""

    def test_headers(self, api_client: TestClient, auth_headers):
        response = api_client.get("/api/v1/projects", headers=auth_headers)

        assert response.headers["X-RateLimit-Limit"] == "1000"
        assert response.headers["X-RateLimit-Remaining"] == "999"
        assert int(response.headers["X-RateLimit-Reset"]) > 0

    def test_limit_exceeded(self, api_client: TestClient, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "api_rate_limit", 2)

        for _ in range(2):
            assert api_client.get("/api/v1/projects", headers=auth_headers).status_code == 200
        response = api_client.get("/api/v1/projects", headers=auth_headers)

        assert_error(response, 429, "RATE_LIMIT_EXCEEDED")

    def test_window_resets(self):
        limiter = RateLimiter(window_seconds=60)

        assert limiter.check("k", 1, now=1000).allowed
        assert not limiter.check("k", 1, now=1030).allowed
        status = limiter.check("k", 1, now=1061)
        assert status.allowed
        assert status.reset_at == 1121 * 1000

    def test_keys_are_counted_separately(self):
        limiter = RateLimiter()

        limiter.check("a", 1, now=0)

        assert limiter.check("b", 1, now=0).allowed


class TestErrorEnvelopes:
    def test_unknown_route(self, api_client: TestClient):
        assert_error(api_client.get("/api/v1/nothing-here"), 404, "NOT_FOUND")

    def test_method_not_allowed(self, api_client: TestClient, auth_headers):
        response = api_client.delete("/api/v1/projects", headers=auth_headers)

        assert_error(response, 405, "METHOD_NOT_ALLOWED")

    def test_validation_error(self, api_client: TestClient, auth_headers):
        response = api_client.get(
            "/api/v1/projects", params={"limit": 0}, headers=auth_headers
        )

        assert_error(response, 400, "VALIDATION_ERROR")
        assert response.json()["error"]["message"].startswith("query.limit:")


@pytest.mark.parametrize(
    "path",
    ["/api/v1/projects", "/api/v1/todos", "/api/v1/recaps", "/api/v1/webhooks"],
)
def test_endpoints_require_key(api_client: TestClient, path):
    assert_error(api_client.get(path), 401, "MISSING_API_KEY")
