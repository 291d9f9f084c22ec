"""
Tests for repository report generation and delivery.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from github_agent.exceptions import EmailNotConfiguredError
from github_agent.models.db import EmailSettings
from github_agent.reports import ReportGenerator, email_report, template_variables
from github_agent.reports.generator import (
    activity_score,
    build_recommendations,
    commit_type,
    complexity_score,
    default_metrics,
    empty_issue_summary,
    empty_pr_summary,
    language_breakdown,
    performance_metrics,
    summarize_commits,
    summarize_issues,
    summarize_pulls,
)
from github_agent.single_user import get_single_user_id

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def report(db_session, sample_repository, fake_github):
    end = datetime.now(timezone.utc)
    return ReportGenerator(db_session, github=fake_github).generate(
        str(sample_repository.id), end - timedelta(days=7), end
    )


class TestCommitType:
    def test_keyword_types(self):
        assert commit_type("Fix login bug") == "bugfix"
        assert commit_type("Refactor session handling") == "refactor"
        assert commit_type("Add tests for importer") == "testing"
        assert commit_type("Update docs") == "documentation"
        assert commit_type("chore: bump deps") == "maintenance"

    def test_first_match_wins(self):
        # "bug" is checked before "test"
        assert commit_type("Test for bug 12") == "bugfix"
        assert commit_type("Refactor doc builder") == "refactor"

    def test_everything_else_is_a_feature(self):
        assert commit_type("Add new dashboard") == "feature"
        assert commit_type("Merge branch 'main'") == "feature"


class TestSummaries:
    """Tests for commit, issue and pull request aggregation."""

    def test_summarize_commits(self, commit_factory):
        details = [
            commit_factory("a", "feat: one", author="octocat", files=["app.py", "db.py"]),
            commit_factory("b", "fix: two", author="octocat", additions=5, deletions=5,
                           files=["app.py"]),
            commit_factory("c", "chore: three", author="hubot", files=["setup.cfg"]),
        ]

        summary = summarize_commits(details, details, NOW - timedelta(days=3), NOW)

        totals = summary["totalStats"]
        assert totals["total_commits"] == 3
        assert totals["total_lines_added"] == 25
        assert totals["total_lines_removed"] == 9
        assert totals["total_lines_changed"] == 34
        assert totals["most_active_files"][0] == {"filename": "app.py", "changes": 2}
        assert totals["commit_types"] == {"feature": 1, "bugfix": 1, "maintenance": 1}
        assert totals["avg_commits_per_day"] == 1

        octocat = summary["authors"][0]
        assert octocat["author"] == "octocat"
        assert octocat["commit_count"] == 2
        assert octocat["files_changed"] == ["app.py", "db.py"]
        assert octocat["avg_commit_size"] == 11

    def test_summarize_issues(self, fake_github):
        issues = fake_github.issues + [
            {"state": "open", "labels": [{"name": "Critical"}, {"name": "bug"}]}
        ]

        summary = summarize_issues(issues)

        assert summary["total_issues"] == 3
        assert summary["open_issues"] == 2
        assert summary["closed_issues"] == 1
        assert summary["critical_issues"] == 1
        assert summary["avg_resolution_time"] == 2
        assert summary["top_labels"][0] == "bug"

    def test_halves_round_up(self, commit_factory):
        details = [
            commit_factory("a", "Add search", author="octocat", additions=10, deletions=2),
            commit_factory("b", "Add filters", author="octocat", additions=10, deletions=3),
        ]
        commits = details + [commit_factory(sha, "Add more") for sha in ("c", "d", "e")]

        summary = summarize_commits(commits, details, NOW - timedelta(days=2), NOW)

        assert summary["totalStats"]["avg_commits_per_day"] == 3
        assert summary["authors"][0]["avg_commit_size"] == 13

    def test_resolution_time_rounds_half_up(self):
        issues = [
            {
                "state": "closed",
                "labels": [],
                "created_at": "2025-05-01T00:00:00Z",
                "closed_at": "2025-05-03T12:00:00Z",
            }
        ]

        assert summarize_issues(issues)["avg_resolution_time"] == 3

    def test_only_critical_labels_are_critical(self):
        issues = [
            {"state": "open", "labels": [{"name": "urgent"}]},
            {"state": "open", "labels": [{"name": "high-priority"}]},
            {"state": "open", "labels": [{"name": "P0-critical"}]},
        ]

        assert summarize_issues(issues)["critical_issues"] == 1

    def test_summarize_pulls(self, fake_github):
        summary = summarize_pulls(fake_github.pulls + [{"state": "open", "draft": True}])

        assert summary["total_prs"] == 2
        assert summary["merged_prs"] == 1
        assert summary["open_prs"] == 1
        assert summary["draft_prs"] == 1
        assert summary["top_contributors"] == ["hubot"]


class TestMetrics:
    """Tests for repository-level metrics."""

    def test_language_breakdown(self):
        breakdown = language_breakdown({"JavaScript": 1000, "Python": 9000})

        assert breakdown[0] == {"language": "Python", "bytes": 9000, "percentage": 90.0}
        assert breakdown[1]["percentage"] == 10.0

    def test_language_breakdown_empty(self):
        assert language_breakdown({}) == []

    def test_complexity_score(self):
        assert complexity_score({"size": 100}, []) == 50
        big = {"size": 200000, "stargazers_count": 2000, "forks_count": 200}
        langs = [{"language": str(i)} for i in range(6)]
        assert complexity_score(big, langs) == 100

    def test_activity_score(self):
        stale = {
            "updated_at": "2025-04-01T00:00:00Z",
            "stargazers_count": 42,
            "forks_count": 7,
        }

        assert activity_score(stale, now=NOW) == 72
        assert activity_score({}, now=NOW) == 100

    def test_performance_metrics(self, fake_github):
        metrics = performance_metrics(
            fake_github.repo, fake_github.languages, fake_github.contributors
        )

        assert metrics["repository_size"] == {
            "total_size_kb": 2048,
            "lines_of_code": 40960,
            "file_count": 683,
        }
        assert metrics["collaboration_metrics"] == {
            "total_contributors": 2,
            "active_contributors": 1,
            "bus_factor": 1,
        }
        assert metrics["repository_health"]["has_license"] is True
        assert metrics["performance_estimates"]["test_coverage"] == 85
        assert metrics["trends"]["commits_trend"] == "stable"

    def test_recommendations(self):
        issues = {**empty_issue_summary(), "open_issues": 11}
        pulls = {**empty_pr_summary(), "open_prs": 6}

        recommendations = build_recommendations(issues, pulls, default_metrics())

        assert recommendations == [
            "Consider prioritizing issue resolution - you have a growing backlog",
            "Review open pull requests to maintain development velocity",
            "Increase test coverage to improve code reliability",
        ]

    def test_healthy_recommendation(self, fake_github):
        metrics = performance_metrics(fake_github.repo, fake_github.languages, [])

        assert build_recommendations(empty_issue_summary(), empty_pr_summary(), metrics) == [
            "Great work! Your repository is well-maintained and active."
        ]


class TestReportGenerator:
    """Tests for persisted reports."""

    def test_generate(self, report, sample_repository):
        assert report.repository_id == sample_repository.id
        assert report.title.startswith("hello-world Report - ")
        assert report.commit_summary["totalStats"]["total_commits"] == 2
        assert report.commit_summary["totalStats"]["total_lines_changed"] == 24
        assert report.issue_summary["closed_issues"] == 1
        assert report.pull_request_summary["merged_prs"] == 1
        assert report.summary.startswith(
            "This week, hello-world saw 2 commits from 2 contributors. "
            "1 issues were resolved and 1 pull requests were merged."
        )
        assert report.email_sent is False

    def test_unknown_repository(self, db_session, fake_github):
        end = datetime.now(timezone.utc)

        with pytest.raises(LookupError):
            ReportGenerator(db_session, github=fake_github).generate(
                "00000000-0000-0000-0000-000000000000", end - timedelta(days=7), end
            )

    def test_github_failures_use_defaults(self, db_session, sample_repository, fake_github):
        fake_github.fail = 503
        end = datetime.now(timezone.utc)

        report = ReportGenerator(db_session, github=fake_github).generate(
            str(sample_repository.id), end - timedelta(days=7), end
        )

        assert report.commit_summary["totalStats"]["total_commits"] == 0
        assert report.issue_summary == empty_issue_summary()
        assert report.performance_metrics == default_metrics()


class TestDelivery:
    """Tests for rendering and emailing reports."""

    def test_template_variables(self, report, sample_repository):
        variables = template_variables(report, sample_repository)

        assert variables["repository_name"] == "hello-world"
        assert variables["commit_count"] == 2
        assert variables["lines_of_code"] == "40,960"
        assert variables["prs_merged"] == 1
        assert variables["company_name"] == "GitHub Helper"

    def test_template_variables_branding(self, report, sample_repository):
        email_settings = EmailSettings(
            user_id=get_single_user_id(),
            smtp_host="smtp.example.com",
            smtp_user="bot",
            smtp_password="x",
            sender_email="bot@example.com",
            company_name="Acme",
            logo_url=None,
            primary_color="#ff0000",
        )

        variables = template_variables(report, sample_repository, email_settings)

        assert variables["company_name"] == "Acme"
        assert variables["logo_url"] == "/whitelogo.png"
        assert variables["primary_color"] == "#ff0000"

    def test_email_report(self, db_session, report):
        sender = MagicMock()
        sender.send.return_value = "<abc@example.com>"

        message_id = email_report(db_session, report, ["team@example.com"], sender=sender)

        assert message_id == "<abc@example.com>"
        kwargs = sender.send.call_args.kwargs
        assert kwargs["to"] == ["team@example.com"]
        assert kwargs["subject"].startswith("Repository Report: hello-world - ")
        assert "hello-world" in kwargs["html"]
        assert report.email_sent is True
        assert report.recipients == ["team@example.com"]

    def test_custom_subject(self, db_session, report):
        sender = MagicMock()

        email_report(db_session, report, ["a@example.com"], "Weekly numbers", sender=sender)

        assert sender.send.call_args.kwargs["subject"] == "Weekly numbers"

    def test_requires_email_settings(self, db_session, report):
        with pytest.raises(EmailNotConfiguredError):
            email_report(db_session, report, ["a@example.com"])
