"""
Tests for the repository analyzer.
"""

from github_agent.agents.analyzer import RepoAnalyzer, fallback_summary
from github_agent.db.repositories import AnalysisCacheRepository


class TestRepoAnalyzer:
    """Tests for end-to-end repository analysis."""

    def test_analyze_saves_results(self, db_session, sample_repository, fake_github, fake_llm):
        fake_llm.content = "## Summary\nSolid Python service."
        analyzer = RepoAnalyzer(db_session, github=fake_github, llm=fake_llm)

        result = analyzer.analyze(repository_id=str(sample_repository.id))

        assert result["success"] is True
        assert result["steps"] == 7
        results = result["results"]
        assert results["status"] == "completed"
        assert results["comprehensive_summary"] == "## Summary\nSolid Python service."
        assert "FastAPI" in results["tech_stack"]["frameworks"]
        assert results["tech_stack"]["github_languages"] == fake_github.languages

        db_session.refresh(sample_repository)
        assert sample_repository.analysis_summary == "## Summary\nSolid Python service."
        assert sample_repository.last_analyzed is not None

        cached = AnalysisCacheRepository(db_session).get_valid(
            sample_repository.id, "full_analysis"
        )
        assert cached["comprehensive_summary"] == "## Summary\nSolid Python service."

    def test_llm_failure_uses_fallback_summary(self, db_session, fake_github, llm_factory):
        analyzer = RepoAnalyzer(
            db_session, github=fake_github, llm=llm_factory(error=RuntimeError("quota"))
        )

        result = analyzer.analyze(github_url="https://github.com/octocat/hello-world")

        assert result["success"] is True
        summary = result["results"]["comprehensive_summary"]
        assert summary.startswith("## Repository Summary: octocat/hello-world")

    def test_without_llm_configured(self, db_session, fake_github):
        analyzer = RepoAnalyzer(db_session, github=fake_github)

        result = analyzer.analyze(github_url="https://github.com/octocat/hello-world")

        assert result["success"] is True
        assert "Overall health score" in result["results"]["comprehensive_summary"]

    def test_requires_url_or_repository(self, db_session, fake_github):
        result = RepoAnalyzer(db_session, github=fake_github).analyze()

        assert result == {
            "success": False,
            "error": "Repository ID or GitHub URL required",
            "execution_time": 0,
            "steps": 0,
        }

    def test_repository_fetch_failure(self, db_session, fake_github):
        fake_github.fail = 404

        result = RepoAnalyzer(db_session, github=fake_github).analyze(
            github_url="https://github.com/octocat/missing"
        )

        assert result["success"] is False
        assert "404" in result["error"]
        assert result["steps"] == 1

    def test_invalid_url(self, db_session, fake_github):
        result = RepoAnalyzer(db_session, github=fake_github).analyze(
            github_url="https://gitlab.com/octocat/hello"
        )

        assert result["success"] is False
        assert "Not a GitHub repository URL" in result["error"]


def test_fallback_summary_lists_recommendations():
    summary = fallback_summary(
        "octocat/hello-world",
        {"patterns": {"architectural_pattern": "Library/CLI", "folder_structure": "Flat/Simple"}},
        {"languages": ["Go"], "frameworks": []},
        {"overall_score": 40, "recommendations": ["Add tests"]},
    )

    assert "- **Languages:** Go" in summary
    assert "- **Frameworks:** None detected" in summary
    assert "Library/CLI (Flat/Simple)" in summary
    assert summary.endswith("- Add tests")
