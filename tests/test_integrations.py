"""
Tests for the GitHub and Vercel API clients.
"""

import base64
from datetime import datetime, timezone

import httpx
import pytest

from github_agent.exceptions import GitHubAPIError
from github_agent.integrations.github import (
    GitHubClient,
    commit_date,
    parse_github_url,
    parse_timestamp,
)
from github_agent.integrations.vercel import (
    NOT_DEPLOYED,
    VercelClient,
    get_deployment_info,
    lookup_deployment,
)


def _github(handler, token="ghp_test") -> GitHubClient:
    return GitHubClient(token=token, transport=httpx.MockTransport(handler))


class TestParseGithubUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/octocat/hello-world",
            "https://github.com/octocat/hello-world.git",
            "https://github.com/octocat/hello-world/tree/main",
            "git@github.com:octocat/hello-world.git",
            "github.com/octocat/hello-world?tab=readme",
        ],
    )
    def test_valid_urls(self, url):
        assert parse_github_url(url) == ("octocat", "hello-world")

    def test_invalid_url(self):
        with pytest.raises(ValueError, match="Not a GitHub repository URL"):
            parse_github_url("https://gitlab.com/octocat/hello-world")

    def test_empty_url(self):
        with pytest.raises(ValueError):
            parse_github_url("")


def test_parse_timestamp():
    assert parse_timestamp("2024-05-01T12:00:00Z") == datetime(
        2024, 5, 1, 12, 0, tzinfo=timezone.utc
    )
    assert parse_timestamp(None) is None


def test_commit_date(commit_factory):
    assert commit_date(commit_factory("a", "m")).tzinfo is not None
    assert commit_date({}) is None


class TestGitHubClient:
    """Tests for the GitHub REST client."""

    def test_headers_and_params(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        with _github(handler) as github:
            github.list_commits(
                "octocat", "hello-world", since=datetime(2025, 1, 1, tzinfo=timezone.utc)
            )

        request = seen[0]
        assert request.url.path == "/repos/octocat/hello-world/commits"
        assert request.url.params["since"] == "2025-01-01T00:00:00+00:00"
        assert "until" not in request.url.params
        assert request.headers["Authorization"] == "Bearer ghp_test"
        assert request.headers["Accept"] == "application/vnd.github+json"

    def test_no_token_no_auth_header(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": 1})

        _github(handler, token="").get_repo("octocat", "hello-world")

        assert "Authorization" not in seen[0].headers

    def test_error_response(self):
        def handler(request):
            return httpx.Response(404, json={"message": "Not Found"})

        with pytest.raises(GitHubAPIError) as exc_info:
            _github(handler).get_repo("octocat", "missing")

        assert exc_info.value.status_code == 404
        assert str(exc_info.value) == (
            "GitHub API error 404: Not Found (/repos/octocat/missing)"
        )

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(GitHubAPIError) as exc_info:
            _github(handler).get_languages("octocat", "hello-world")

        assert exc_info.value.status_code == 0

    def test_get_file_text(self):
        def handler(request):
            if request.url.path.endswith("/README.md"):
                content = base64.b64encode(b"# Hello").decode()
                return httpx.Response(200, json={"content": content})
            return httpx.Response(404, json={"message": "Not Found"})

        github = _github(handler)

        assert github.get_file_text("octocat", "hello-world", "README.md") == "# Hello"
        assert github.get_file_text("octocat", "hello-world", "package.json") is None

    def test_get_file_text_other_errors_raise(self):
        def handler(request):
            return httpx.Response(403, json={"message": "rate limited"})

        with pytest.raises(GitHubAPIError):
            _github(handler).get_file_text("octocat", "hello-world", "README.md")

    def test_workflow_runs(self):
        def handler(request):
            return httpx.Response(200, json={"workflow_runs": [{"conclusion": "failure"}]})

        runs = _github(handler).list_workflow_runs("octocat", "hello-world")

        assert runs == [{"conclusion": "failure"}]


class TestVercel:
    """Tests for deployment lookup."""

    @pytest.fixture
    def vercel_calls(self):
        return []

    @pytest.fixture
    def vercel(self, vercel_calls):
        def handler(request):
            vercel_calls.append(request.url.path)
            if request.url.path == "/v9/projects":
                return httpx.Response(
                    200,
                    json={
                        "projects": [
                            {"id": "prj_other", "name": "other"},
                            {
                                "id": "prj_1",
                                "name": "site",
                                "link": {"org": "octocat", "repo": "hello-world"},
                            },
                        ]
                    },
                )
            if request.url.path == "/v6/deployments":
                return httpx.Response(
                    200,
                    json={
                        "deployments": [
                            {
                                "url": "hello-world-abc.vercel.app",
                                "state": "READY",
                                "created": 1717200000000,
                            }
                        ]
                    },
                )
            return httpx.Response(200, json={"domains": [{"name": "hello.dev"}]})

        return VercelClient(token="vc", transport=httpx.MockTransport(handler))

    def test_lookup_deployment(self, vercel, sample_repository):
        info = lookup_deployment(vercel, sample_repository)

        assert info == {
            "is_deployed": True,
            "platform": "Vercel",
            "url": "https://hello.dev",
            "last_deployment": {
                "date": "2024-06-01T00:00:00+00:00",
                "status": "READY",
                "url": "https://hello-world-abc.vercel.app",
            },
        }

    def test_no_matching_project(self, sample_repository):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"projects": []})
        )

        info = lookup_deployment(VercelClient(token="vc", transport=transport), sample_repository)

        assert info == NOT_DEPLOYED

    def test_without_token(self, db_session, sample_repository):
        assert get_deployment_info(db_session, sample_repository) == NOT_DEPLOYED

    def test_result_is_cached(self, db_session, sample_repository, vercel, vercel_calls):
        first = get_deployment_info(db_session, sample_repository, client=vercel)
        calls = len(vercel_calls)

        second = get_deployment_info(db_session, sample_repository, client=vercel)

        assert second == first
        assert len(vercel_calls) == calls

    def test_api_error_means_not_deployed(self, db_session, sample_repository):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="forbidden"))

        info = get_deployment_info(
            db_session,
            sample_repository,
            client=VercelClient(token="bad", transport=transport),
        )

        assert info == NOT_DEPLOYED
