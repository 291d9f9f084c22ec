"""
Tests for recap generation.
"""

from datetime import datetime, timedelta, timezone

from github_agent.models.db import AgentExecution
from github_agent.recaps import (
    RecapGenerator,
    build_action_items,
    build_key_updates,
    build_summary,
    collect_activity,
    resolve_period,
)
from github_agent.recaps.generator import V1_ACTION_ITEMS, empty_activity, subtract_months

NOW = datetime(2025, 3, 31, 12, 0, tzinfo=timezone.utc)

DEPLOYED = {
    "is_deployed": True,
    "platform": "vercel",
    "url": "https://hello-world.vercel.app",
    "last_deployment": {"status": "READY", "date": "2025-03-30T08:00:00Z"},
}


class TestPeriods:
    def test_subtract_months_clamps_day(self):
        assert subtract_months(NOW, 1) == datetime(2025, 2, 28, 12, 0, tzinfo=timezone.utc)

    def test_subtract_months_crosses_year(self):
        moment = datetime(2025, 1, 15, tzinfo=timezone.utc)

        assert subtract_months(moment, 3) == datetime(2024, 10, 15, tzinfo=timezone.utc)

    def test_resolve_period(self):
        assert resolve_period("week", NOW) == (NOW - timedelta(days=7), NOW)
        assert resolve_period("weekly", NOW)[0] == NOW - timedelta(days=7)
        assert resolve_period("daily", NOW)[0] == NOW - timedelta(days=1)
        assert resolve_period("monthly", NOW)[0] == subtract_months(NOW, 1)
        assert resolve_period("quarter", NOW)[0] == datetime(
            2024, 12, 31, 12, 0, tzinfo=timezone.utc
        )

    def test_unknown_period_means_week(self):
        assert resolve_period("decade", NOW)[0] == NOW - timedelta(days=7)


class TestSummary:
    """Tests for the narrative recap summary."""

    def test_quiet_period(self):
        summary = build_summary("month", empty_activity(), None)

        assert summary.startswith("This month showed a quieter period with 0 commits")
        assert "for the project codebase." in summary
        assert summary.endswith("The project is not currently deployed to production.")

    def test_busy_deployed_period(self):
        activity = {**empty_activity(), "commits": 15, "lines_changed": 1500}

        summary = build_summary("week", activity, "Python", DEPLOYED)

        assert "strong development momentum" in summary
        assert "1,500 lines modified" in summary
        assert "for the Python codebase." in summary
        assert summary.endswith(
            " The project is actively deployed on vercel and accessible at "
            "https://hello-world.vercel.app. Latest deployment was on 2025-03-30 "
            "with status: READY."
        )

    def test_moderate_changes(self):
        activity = {**empty_activity(), "commits": 3, "lines_changed": 250}

        summary = build_summary("quarter", activity, "Go")

        assert summary.startswith("This quarter showed steady progress")
        assert "Moderate code changes totaling 250 lines" in summary


class TestKeyUpdates:
    def test_counts(self):
        activity = {
            **empty_activity(),
            "commits": 3,
            "issues_closed": 2,
            "prs_merged": 1,
            "lines_changed": 1200,
        }

        assert build_key_updates(activity) == [
            "3 commits pushed with new features and improvements",
            "2 issues resolved and closed",
            "1 pull requests reviewed and merged",
            "1,200 lines of code modified across the codebase",
        ]

    def test_deployment_updates(self):
        updates = build_key_updates(empty_activity(), DEPLOYED)

        assert updates == [
            "Project is live and accessible at https://hello-world.vercel.app",
            "Latest deployment completed successfully on vercel",
        ]

    def test_no_activity(self):
        assert build_key_updates(empty_activity()) == [
            "Repository maintenance and monitoring continued"
        ]


class TestActionItems:
    def test_capped_at_six(self):
        activity = {**empty_activity(), "commits": 25, "prs_merged": 6}

        items = build_action_items(activity, "Python")

        assert len(items) == 6
        assert items[0] == "Consider creating a release candidate for recent changes"
        assert "Review and triage open issues for next iteration" in items

    def test_not_deployed(self):
        items = build_action_items(empty_activity(), None)

        assert items == [
            "Plan next development sprint priorities",
            "Schedule team sync to discuss recent progress",
            "Set up deployment pipeline and production environment",
            "Configure domain and deployment automation",
        ]

    def test_failed_deployment(self):
        deployment = {**DEPLOYED, "last_deployment": {"status": "ERROR"}}

        items = build_action_items(empty_activity(), None, deployment)

        assert items[-1] == "Investigate and fix deployment issues"


class TestCollectActivity:
    """Tests for GitHub activity bucketing."""

    def test_counts_window(self, fake_github):
        start, end = resolve_period("week")

        activity = collect_activity(fake_github, "octocat", "hello-world", start, end)

        assert activity["commits"] == 2
        assert activity["issues_closed"] == 1
        assert activity["prs_merged"] == 1
        assert activity["lines_changed"] == 24

    def test_pull_requests_in_issue_feed_are_skipped(self, fake_github):
        fake_github.issues.append(
            {"number": 15, "state": "closed", "labels": [], "pull_request": {}}
        )
        start, end = resolve_period("week")

        activity = collect_activity(fake_github, "octocat", "hello-world", start, end)

        assert activity["issues_closed"] == 1

    def test_merged_before_window_is_excluded(self, fake_github):
        start, end = resolve_period("daily")

        activity = collect_activity(fake_github, "octocat", "hello-world", start, end)

        assert activity["prs_merged"] == 0

    def test_skip_line_counts(self, fake_github):
        start, end = resolve_period("week")

        activity = collect_activity(
            fake_github, "octocat", "hello-world", start, end, count_lines=False
        )

        assert activity["lines_changed"] == 0
        assert "get_commit" not in fake_github.calls

    def test_github_failure_means_no_activity(self, fake_github):
        fake_github.fail = 502
        start, end = resolve_period("week")

        assert collect_activity(fake_github, "octocat", "hello-world", start, end) == (
            empty_activity()
        )


class TestRecapGenerator:
    """Tests for persisted recaps."""

    def test_generate_weekly(self, db_session, sample_repository, fake_github):
        recap = RecapGenerator(db_session, github=fake_github).generate(sample_repository)

        assert recap.title == "Weekly Update - hello-world"
        assert recap.period == "week"
        assert recap.generated_by == "ai"
        assert recap.metrics["commits"] == 2
        assert recap.metrics["deployment"]["is_deployed"] is False
        assert recap.summary.startswith("This week showed steady progress with 2 commits")
        assert "Review Python best practices and code standards" in recap.action_items

    def test_generate_monthly(self, db_session, sample_repository, fake_github):
        recap = RecapGenerator(db_session, github=fake_github).generate(
            sample_repository, "month"
        )

        assert recap.title == "Monthly Update - hello-world"

    def test_unknown_range_is_weekly(self, db_session, sample_repository, fake_github):
        recap = RecapGenerator(db_session, github=fake_github).generate(
            sample_repository, "year"
        )

        assert recap.period == "week"

    def test_generate_v1_with_llm(self, db_session, sample_repository, fake_github, fake_llm):
        fake_llm.content = "## Weekly recap\nGood week."
        generator = RecapGenerator(db_session, github=fake_github, llm=fake_llm)

        recap, stats = generator.generate_v1(sample_repository, "weekly", "Sprint 12")

        assert recap.title == "Weekly Update - hello-world"
        assert recap.summary == "## Weekly recap\nGood week."
        assert recap.action_items == V1_ACTION_ITEMS
        assert recap.key_updates == [
            "2 commits made",
            "1 issues resolved",
            "1 pull requests merged",
        ]
        assert stats == {"commits": 2, "issues_closed": 1, "prs_merged": 1, "lines_changed": 0}

        prompt = fake_llm.prompts[0]["user"]
        assert "- fix: handle empty payloads (octocat)" in prompt
        assert "Sprint 12" in prompt

        execution = db_session.query(AgentExecution).one()
        assert execution.agent_type == "recap_generator"
        assert execution.output_data["recap_id"] == str(recap.id)

    def test_generate_v1_without_llm(self, db_session, sample_repository, fake_github):
        recap, _ = RecapGenerator(db_session, github=fake_github).generate_v1(
            sample_repository, "daily"
        )

        assert recap.title == "Daily Update - hello-world"
        assert recap.summary.startswith("This week showed")

    def test_generate_v1_llm_failure(
        self, db_session, sample_repository, fake_github, llm_factory
    ):
        generator = RecapGenerator(
            db_session, github=fake_github, llm=llm_factory(error=RuntimeError("down"))
        )

        recap, _ = generator.generate_v1(sample_repository, "quarterly")

        assert recap.summary.startswith("This quarter showed")

    def test_generate_v1_without_sources(self, db_session, sample_repository, fake_github):
        recap, stats = RecapGenerator(db_session, github=fake_github).generate_v1(
            sample_repository,
            include_commits=False,
            include_issues=False,
            include_prs=False,
        )

        assert stats["commits"] == 0
        assert recap.key_updates == []
