"""
Tests for analysis-driven todo generation.
"""

import pytest

from github_agent.agents.todo_generator import (
    TodoGenerator,
    activity_score,
    analyze_commits,
    analyze_issues,
    analyze_pull_requests,
    architecture_score,
    fallback_todos,
    impact_score,
    prioritize,
)
from github_agent.db.repositories import TodoListRepository
from github_agent.exceptions import LLMNotConfiguredError
from github_agent.models.db import AgentExecution


class TestActivityAnalysis:
    """Tests for the commit, pull request and issue summaries."""

    def test_analyze_commits(self, commit_factory):
        commits = [
            commit_factory("a", "one", author="octocat"),
            commit_factory("b", "two", author="octocat"),
            commit_factory("c", "three", author="hubot"),
        ]

        analysis = analyze_commits(commits)

        assert analysis["total"] == 3
        assert analysis["contributors"][0] == {"author": "octocat", "count": 2}
        assert analysis["frequency"] == pytest.approx(0.1)
        assert analysis["recent_activity"][0]["message"] == "one"

    def test_analyze_issues_ignores_pull_requests(self):
        issues = [
            {"state": "closed", "labels": [{"name": "Bug"}]},
            {"state": "open", "labels": []},
            {"state": "closed", "pull_request": {}, "labels": []},
        ]

        analysis = analyze_issues(issues)

        assert analysis == {
            "total": 2,
            "open": 1,
            "closed": 1,
            "close_rate": 0.5,
            "bug_issues": 1,
        }

    def test_analyze_pull_requests(self):
        pulls = [{"state": "open"}, {"state": "closed", "merged_at": "2025-01-01T00:00:00Z"}]

        assert analyze_pull_requests(pulls)["merge_rate"] == 0.5

    def test_activity_score(self):
        commits = {"frequency": 5, "recent_activity": [{}]}
        pulls = {"merge_rate": 1.0}
        issues = {"close_rate": 0.5}

        assert activity_score(commits, pulls, issues) == 40 + 20 + 10 + 20

    def test_activity_score_rounds_half_up(self):
        commits = {"frequency": 0.05, "recent_activity": []}
        pulls = {"merge_rate": 0}
        issues = {"close_rate": 0}

        assert activity_score(commits, pulls, issues) == 1

    def test_architecture_score(self):
        health = {
            "has_readme": True,
            "has_tests": True,
            "has_ci": True,
            "has_dockerfile": True,
            "package_json": {"scripts": {"test": "jest"}},
        }

        assert architecture_score({"directories": 3}, health) == 100
        assert architecture_score({"directories": 0}, {}) == 0


class TestPrioritization:
    def test_impact_score(self):
        assert impact_score({"priority": "urgent", "category": "security"}) == 10
        assert impact_score({"priority": "low", "category": "docs"}) == 6

    def test_prioritize_orders_by_priority_then_impact(self):
        todos = [
            {"title": "a", "priority": "low", "category": "docs"},
            {"title": "b", "priority": "high", "category": "maintenance"},
            {"title": "c", "priority": "high", "category": "security"},
        ]

        ordered = prioritize(todos)

        assert [t["title"] for t in ordered] == ["c", "b", "a"]
        assert ordered[0]["order"] == 3


class TestFallbackTodos:
    """Tests for heuristic todos."""

    def test_bug_fix_follow_up(self):
        analysis = {
            "commits": {"recent_activity": [{"message": "Fix login bug", "author": "a"}]},
            "activity_score": 80,
            "architecture_score": 80,
        }

        todos = fallback_todos("hello-world", analysis)

        assert len(todos) == 1
        assert todos[0]["title"] == "Review and test recent bug fixes"
        assert todos[0]["priority"] == "high"

    def test_low_scores_add_planning_tasks(self):
        todos = fallback_todos(
            "hello-world",
            {"commits": {"recent_activity": []}, "activity_score": 10, "architecture_score": 20},
        )

        assert [t["title"] for t in todos] == [
            "Plan development roadmap",
            "Improve project structure and documentation",
        ]

    def test_always_returns_a_todo(self):
        todos = fallback_todos(
            "hello-world",
            {"commits": {"recent_activity": []}, "activity_score": 90, "architecture_score": 90},
        )

        assert len(todos) == 1
        assert "hello-world" in todos[0]["description"]


class TestTodoGenerator:
    """Tests for generating and saving todo lists."""

    def test_analyze(self, db_session, sample_repository, fake_github):
        analysis = TodoGenerator(db_session, github=fake_github).analyze(sample_repository)

        assert analysis["commits"]["total"] == 2
        assert analysis["issues"] == {
            "total": 2,
            "open": 1,
            "closed": 1,
            "close_rate": 0.5,
            "bug_issues": 1,
        }
        assert analysis["structure"] == {"total_files": 3, "directories": 2}
        assert analysis["health"]["build_status"] == "success"
        assert analysis["health"]["deployment_status"] == "unknown"
        assert analysis["architecture_score"] == 45
        assert analysis["is_production_ready"] is False

    def test_generate_with_llm(self, db_session, sample_repository, fake_github, llm_factory, todo_reply):
        generator = TodoGenerator(db_session, github=fake_github, llm=llm_factory(todo_reply))

        result = generator.generate(str(sample_repository.id))

        assert result["success"] is True
        todo_list = result["todo_list"]
        assert todo_list.title == "AI Analysis - hello-world"
        assert todo_list.category == "ai_analysis"
        assert todo_list.priority == "high"
        assert todo_list.auto_generated is True
        assert [t["title"] for t in result["todos"]] == [
            "Patch dependency CVE",
            "Add integration tests",
        ]
        titles = {item.title for item in todo_list.items}
        assert titles == {"Patch dependency CVE", "Add integration tests"}
        assert all("ai-generated" in item.labels for item in todo_list.items)

        execution = db_session.query(AgentExecution).one()
        assert execution.agent_type == "todo_generator"
        assert execution.status == "completed"
        assert execution.output_data["todos_generated"] == 2

    def test_generate_without_llm_uses_heuristics(self, db_session, sample_repository, fake_github):
        result = TodoGenerator(db_session, github=fake_github).generate(str(sample_repository.id))

        assert result["success"] is True
        assert [t["source"] for t in result["todos"]] == ["fallback", "fallback"]
        assert result["todos"][0]["title"] == "Review and test recent bug fixes"
        assert len(TodoListRepository(db_session).list_with_items()) == 1

    def test_unparseable_reply_uses_heuristics(
        self, db_session, sample_repository, fake_github, llm_factory
    ):
        generator = TodoGenerator(
            db_session, github=fake_github, llm=llm_factory("I cannot help with that.")
        )

        result = generator.generate(str(sample_repository.id))

        assert all(t["source"] == "fallback" for t in result["todos"])

    def test_unknown_repository(self, db_session, fake_github):
        result = TodoGenerator(db_session, github=fake_github).generate(
            "00000000-0000-0000-0000-000000000000"
        )

        assert result["success"] is False
        assert "Repository not found" in result["error"]

    def test_github_failures_degrade(self, db_session, sample_repository, fake_github):
        fake_github.fail = 503

        analysis = TodoGenerator(db_session, github=fake_github).analyze(sample_repository)

        assert analysis["commits"]["total"] == 0
        assert analysis["health"]["build_status"] == "no_ci"


class TestSuggestProjectTodos:
    def test_returns_items(self, db_session, sample_repository, fake_github, llm_factory):
        llm = llm_factory('[{"description": "Write docs", "priority": "low"}]')
        generator = TodoGenerator(db_session, github=fake_github, llm=llm)

        items = generator.suggest_project_todos(sample_repository, "Focus on docs")

        assert items == [{"description": "Write docs", "priority": "low"}]
        assert "Focus on docs" in llm.prompts[0]["user"]

    def test_rejects_non_array(self, db_session, sample_repository, fake_github, llm_factory):
        generator = TodoGenerator(db_session, github=fake_github, llm=llm_factory("nope"))

        with pytest.raises(ValueError):
            generator.suggest_project_todos(sample_repository)

    def test_requires_llm(self, db_session, sample_repository, fake_github):
        with pytest.raises(LLMNotConfiguredError):
            TodoGenerator(db_session, github=fake_github).suggest_project_todos(
                sample_repository
            )
