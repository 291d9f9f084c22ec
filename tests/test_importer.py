"""
Tests for GitHub repository import.
"""

from unittest.mock import MagicMock

import pytest

from github_agent.db.repositories import RepositoryRepository
from github_agent.exceptions import GitHubAPIError
from github_agent.services.importer import (
    fetch_all_repositories,
    import_repositories,
    placeholder_github_id,
    project_fields,
    repository_fields,
)


class TestRepositoryFields:
    def test_maps_payload(self, fake_github):
        fields = repository_fields(fake_github.repo)

        assert fields["github_id"] == 1296269
        assert fields["stars"] == 42
        assert fields["forks"] == 7
        assert fields["tech_stack"]["size_kb"] == 2048
        assert fields["analysis_summary"] == "Python project with 42 stars"

    def test_defaults(self):
        fields = repository_fields(
            {"id": 1, "name": "x", "full_name": "a/x", "html_url": "https://github.com/a/x"}
        )

        assert fields["clone_url"] == "https://github.com/a/x.git"
        assert fields["default_branch"] == "main"
        assert fields["analysis_summary"] == "Unknown project with 0 stars"


def test_fetch_all_repositories_pages_until_empty():
    github = MagicMock()
    github.list_user_repos.side_effect = [[{"id": 1}], [{"id": 2}], []]

    assert fetch_all_repositories(github) == [{"id": 1}, {"id": 2}]
    assert github.list_user_repos.call_count == 3


class TestImportRepositories:
    """Tests for importing the owner's repositories."""

    def test_imports_new_repositories(self, db_session, fake_github):
        result = import_repositories(db_session, fake_github)

        assert result["summary"] == {"total_found": 1, "imported": 1, "skipped": 0, "errors": 0}
        assert result["imported"] == [
            {"name": "octocat/hello-world", "language": "Python", "stars": 42, "private": False}
        ]
        assert result["message"] == "Successfully imported 1 repositories!"
        assert RepositoryRepository(db_session).get_by_github_id(1296269) is not None

    def test_skips_known_repositories(self, db_session, fake_github, sample_repository):
        result = import_repositories(db_session, fake_github)

        assert result["summary"]["skipped"] == 1
        assert result["skipped"] == ["octocat/hello-world"]

    def test_bad_payload_is_reported(self, db_session, fake_github):
        fake_github.user_repos = [{"id": 5, "full_name": "broken/repo"}, fake_github.repo]

        result = import_repositories(db_session, fake_github)

        assert result["summary"]["imported"] == 1
        assert result["summary"]["errors"] == 1
        assert result["errors"][0]["repo"] == "broken/repo"

    def test_listing_failure_propagates(self, db_session, fake_github):
        fake_github.fail = 401

        with pytest.raises(GitHubAPIError):
            import_repositories(db_session, fake_github)


class TestProjectFields:
    def test_placeholder_id_is_stable_and_negative(self):
        assert placeholder_github_id("Acme/Rocket") == placeholder_github_id("acme/rocket")
        assert placeholder_github_id("acme/rocket") < 0

    def test_live_metadata(self, fake_github):
        fields = project_fields(
            fake_github, "octocat", "hello-world", "https://github.com/octocat/hello-world"
        )

        assert fields["github_id"] == 1296269

    def test_placeholder_when_unavailable(self, fake_github):
        fake_github.fail = 404

        fields = project_fields(fake_github, "acme", "rocket", "https://github.com/acme/rocket")

        assert fields["github_id"] == placeholder_github_id("acme/rocket")
        assert fields["description"] == "Imported from https://github.com/acme/rocket"
        assert fields["language"] == "Unknown"
