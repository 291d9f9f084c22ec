"""
Pytest configuration and fixtures for GitHub Agent tests.

Provides an in-memory database with per-test rollback, fake GitHub and
LLM clients, and a FastAPI test client wired to both.
"""

import os

# Settings are read at import time; configure them before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["GITHUB_TOKEN"] = ""
os.environ["VERCEL_TOKEN"] = ""
os.environ["SLACK_BOT_TOKEN"] = ""
os.environ["SLACK_SIGNING_SECRET"] = ""
os.environ["MASTER_API_KEY"] = ""
os.environ["SIMPLE_PASSWORD"] = ""
os.environ["LOG_FILE_ENABLED"] = "false"
os.environ["LLM_LOGGING_ENABLED"] = "false"
os.environ["ENCRYPTION_KEY"] = "A" * 43 + "="

import base64
import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Generator, Iterator, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from github_agent.exceptions import GitHubAPIError
from github_agent.llm.base import LLMProvider, LLMResponse
from github_agent.models.db import ApiKey, Base, Repository
from github_agent.single_user import ensure_single_user


# ===== Fakes =====


def github_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def make_commit(
    sha: str,
    message: str,
    author: str = "octocat",
    days_ago: float = 1,
    additions: int = 10,
    deletions: int = 2,
    files: Optional[list[str]] = None,
) -> dict[str, Any]:
    """Commit payload in the shape of GET /repos/{owner}/{repo}/commits/{sha}."""
    date = github_timestamp(datetime.now(timezone.utc) - timedelta(days=days_ago))
    return {
        "sha": sha,
        "author": {"login": author},
        "commit": {
            "message": message,
            "author": {"name": author, "date": date},
        },
        "stats": {"additions": additions, "deletions": deletions},
        "files": [{"filename": name} for name in (files or ["src/app.py"])],
    }


class FakeGitHub:
    """
    In-memory stand-in for GitHubClient.

    Attributes hold the canned payloads; set `fail` to make every call
    raise GitHubAPIError with that status code.
    """

    def __init__(self):
        now = datetime.now(timezone.utc)
        self.repo = {
            "id": 1296269,
            "name": "hello-world",
            "full_name": "octocat/hello-world",
            "description": "My first repository on GitHub",
            "private": False,
            "html_url": "https://github.com/octocat/hello-world",
            "clone_url": "https://github.com/octocat/hello-world.git",
            "language": "Python",
            "topics": ["demo"],
            "stargazers_count": 42,
            "forks_count": 7,
            "open_issues_count": 3,
            "default_branch": "main",
            "size": 2048,
            "updated_at": github_timestamp(now - timedelta(days=2)),
            "license": {"key": "mit"},
        }
        self.user_repos: list[dict[str, Any]] = [self.repo]
        self.languages = {"Python": 9000, "JavaScript": 1000}
        self.contributors = [
            {"login": "octocat", "contributions": 30},
            {"login": "hubot", "contributions": 1},
        ]
        self.contents: list[dict[str, Any]] = [
            {"name": "README.md", "path": "README.md", "type": "file"},
            {"name": "requirements.txt", "path": "requirements.txt", "type": "file"},
            {"name": "src", "path": "src", "type": "dir"},
            {"name": "tests", "path": "tests", "type": "dir"},
            {"name": "LICENSE", "path": "LICENSE", "type": "file"},
        ]
        self.files: dict[str, str] = {
            "README.md": "# Hello World\n\nA demo project.",
            "requirements.txt": "fastapi==0.110.0\nsqlalchemy>=2.0\npytest\n",
        }
        self.workflows: list[dict[str, Any]] = []
        self.commits = [
            make_commit("a1", "fix: handle empty payloads", days_ago=1),
            make_commit("b2", "feat(api): add search", author="hubot", days_ago=3),
        ]
        self.issues: list[dict[str, Any]] = [
            {
                "number": 12,
                "title": "Crash on startup",
                "state": "closed",
                "labels": [{"name": "bug"}],
                "created_at": github_timestamp(now - timedelta(days=4)),
                "closed_at": github_timestamp(now - timedelta(days=2)),
            },
            {
                "number": 13,
                "title": "Add dark mode",
                "state": "open",
                "labels": [{"name": "enhancement"}],
                "created_at": github_timestamp(now - timedelta(days=1)),
                "closed_at": None,
            },
        ]
        self.pulls: list[dict[str, Any]] = [
            {
                "number": 14,
                "title": "Add search endpoint",
                "state": "closed",
                "draft": False,
                "user": {"login": "hubot"},
                "merged_at": github_timestamp(now - timedelta(days=2)),
            }
        ]
        self.workflow_runs: list[dict[str, Any]] = [{"conclusion": "success"}]
        self.fail: Optional[int] = None
        self.calls: list[str] = []

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if self.fail is not None:
            raise GitHubAPIError(self.fail, "Not Found" if self.fail == 404 else "boom")

    def close(self) -> None:
        pass

    def __enter__(self) -> "FakeGitHub":
        return self

    def __exit__(self, *args: Any) -> None:
        pass

    def list_user_repos(self, page=1, per_page=100, visibility="all", sort="updated"):
        self._call("list_user_repos")
        return self.user_repos if page == 1 else []

    def get_repo(self, owner, repo):
        self._call("get_repo")
        return self.repo

    def get_languages(self, owner, repo):
        self._call("get_languages")
        return self.languages

    def list_contributors(self, owner, repo, per_page=100):
        self._call("list_contributors")
        return self.contributors

    def get_contents(self, owner, repo, path=""):
        self._call("get_contents")
        if path == ".github/workflows":
            return self.workflows
        if path:
            if path not in self.files:
                raise GitHubAPIError(404, "Not Found", path)
            return {"content": base64.b64encode(self.files[path].encode()).decode()}
        return self.contents

    def get_file_text(self, owner, repo, path):
        self._call("get_file_text")
        return self.files.get(path)

    def list_commits(self, owner, repo, since=None, until=None, per_page=100):
        self._call("list_commits")
        return self.commits

    def get_commit(self, owner, repo, sha):
        self._call("get_commit")
        for commit in self.commits:
            if commit["sha"] == sha:
                return commit
        raise GitHubAPIError(404, "No commit found", sha)

    def list_issues(self, owner, repo, state="all", since=None, per_page=50):
        self._call("list_issues")
        if state == "all":
            return self.issues
        return [i for i in self.issues if i["state"] == state]

    def list_pulls(self, owner, repo, state="all", sort=None, direction=None, per_page=30):
        self._call("list_pulls")
        if state == "all":
            return self.pulls
        return [pr for pr in self.pulls if pr["state"] == state]

    def list_workflow_runs(self, owner, repo, per_page=1):
        self._call("list_workflow_runs")
        return self.workflow_runs


class FakeLLM(LLMProvider):
    """LLM provider returning canned content; set `error` to make calls fail."""

    def __init__(
        self,
        content: str = "This is a fake response.",
        chunks: Optional[list[str]] = None,
        error: Optional[Exception] = None,
    ):
        self.content = content
        self.chunks = chunks if chunks is not None else ["Hello", ", ", "world"]
        self.error = error
        self.prompts: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def model_name(self) -> str:
        return "fake-model"

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.3,
        json_schema: dict[str, Any] | None = None,
    ) -> LLMResponse:
        self.prompts.append(
            {"system": system_prompt, "user": user_prompt, "temperature": temperature}
        )
        if self.error is not None:
            raise self.error
        return LLMResponse(
            content=self.content,
            prompt_tokens=10,
            completion_tokens=20,
            total_tokens=30,
            finish_reason="stop",
            model=self.model_name,
            duration_ms=1.0,
        )

    def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.3,
    ) -> Iterator[str]:
        self.prompts.append({"system": system_prompt, "user": user_prompt})
        if self.error is not None:
            raise self.error
        yield from self.chunks

    def calculate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        return 0.0


# ===== Database =====


@pytest.fixture(scope="session")
def test_engine():
    """Create a test database engine using SQLite in-memory."""
    from sqlalchemy import JSON, event
    from sqlalchemy.dialects import postgresql

    # Replace JSONB with JSON for SQLite
    @event.listens_for(Base.metadata, "before_create")
    def _set_json_type(target, connection, **kw):
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, postgresql.JSONB):
                    column.type = JSON()

    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={
            "check_same_thread": False
        },  # Allow cross-thread access for TestClient
    )

    # pysqlite defers BEGIN; emit it ourselves so SAVEPOINTs roll back with the test
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """
    Create a new database session for a test.

    Each test gets a fresh session with a transaction that is rolled back
    after the test completes, ensuring test isolation.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = sessionmaker(bind=connection)()
    ensure_single_user(session)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# ===== Fakes as fixtures =====


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def llm_factory():
    """Build a FakeLLM with custom content, chunks or error."""
    return FakeLLM


@pytest.fixture
def commit_factory():
    return make_commit


@pytest.fixture
def todo_reply() -> str:
    """LLM reply containing a todo JSON array wrapped in prose."""
    return "Here are the todos:\n" + json.dumps(
        [
            {
                "title": "Add integration tests",
                "description": "Cover the search endpoint.",
                "priority": "high",
                "category": "testing",
                "estimated_hours": 3,
                "rationale": "Search shipped without tests.",
            },
            {
                "title": "Patch dependency CVE",
                "description": "Upgrade the vulnerable package.",
                "priority": "urgent",
                "category": "security",
                "estimated_hours": 1,
                "rationale": "Security fix.",
            },
        ]
    )


# ===== API =====


@pytest.fixture
def api_client(db_session: Session, fake_github: FakeGitHub):
    """Create a test client for FastAPI with database and GitHub overrides."""
    from unittest.mock import patch

    from fastapi.testclient import TestClient

    from github_agent.api.app import app
    from github_agent.api.auth import rate_limiter
    from github_agent.api.dependencies import get_github_client
    from github_agent.db.connection import get_db

    # Override the get_db dependency to use test database
    def override_get_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_github_client] = lambda: fake_github
    rate_limiter.reset()

    # Disable lifespan startup checks for testing
    with patch("github_agent.api.app.run_all_startup_checks"):
        client = TestClient(app)
        yield client

    # Clean up
    app.dependency_overrides.clear()
    rate_limiter.reset()


@pytest.fixture
def api_key(db_session: Session) -> str:
    """A freshly issued /api/v1 key (plaintext)."""
    from github_agent.db.repositories import ApiKeyRepository

    _, full_key = ApiKeyRepository(db_session).issue("Test Key")
    db_session.commit()
    return full_key


@pytest.fixture
def auth_headers(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


# ===== Sample data =====


@pytest.fixture
def sample_repository(db_session: Session) -> Repository:
    """Create a sample imported repository for testing."""
    repository = Repository(
        id=uuid.uuid4(),
        user_id=uuid.UUID("550e8400-e29b-41d4-a716-446655440000"),
        github_id=1296269,
        name="hello-world",
        full_name="octocat/hello-world",
        description="My first repository on GitHub",
        private=False,
        html_url="https://github.com/octocat/hello-world",
        clone_url="https://github.com/octocat/hello-world.git",
        language="Python",
        languages={},
        topics=["demo"],
        stars=42,
        forks=7,
        open_issues=3,
        default_branch="main",
        tech_stack={"primary_language": "Python"},
        analysis_summary="Python project with 42 stars",
        is_active=True,
    )
    db_session.add(repository)
    db_session.commit()
    db_session.refresh(repository)
    return repository


@pytest.fixture
def inactive_key(db_session: Session) -> ApiKey:
    from github_agent.db.repositories import ApiKeyRepository

    keys = ApiKeyRepository(db_session)
    row, _ = keys.issue("Revoked Key")
    keys.revoke(row)
    db_session.commit()
    return row
