"""
Repository analyzer.

Runs the deterministic analysis tools over a repository's GitHub data,
asks the LLM to synthesize the results, and stores the outcome on the
repository row and in the analysis cache.
"""

import json
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from github_agent.agents.prompts import AGENT_CONFIGS, ANALYSIS_SYNTHESIS_PROMPT
from github_agent.agents.tools import (
    analyze_files,
    assess_code_quality,
    detect_tech_stack,
    fetch_repository_data,
)
from github_agent.db.repositories import AnalysisCacheRepository, RepositoryRepository
from github_agent.exceptions import GitHubAPIError, LLMNotConfiguredError
from github_agent.integrations.github import GitHubClient, parse_github_url
from github_agent.llm import LLMProvider, get_default_provider
from github_agent.models.db import Repository

logger = logging.getLogger(__name__)

FULL_ANALYSIS_TTL = timedelta(hours=24)


def fallback_summary(
    full_name: str,
    structure: dict[str, Any],
    tech_stack: dict[str, Any],
    quality: dict[str, Any],
) -> str:
    """Markdown summary built from tool output alone."""
    languages = ", ".join(tech_stack.get("languages") or []) or "Unknown"
    frameworks = ", ".join(tech_stack.get("frameworks") or []) or "None detected"
    patterns = structure.get("patterns") or {}
    lines = [
        f"## Repository Summary: {full_name}",
        "",
        f"- **Languages:** {languages}",
        f"- **Frameworks:** {frameworks}",
        f"- **Architecture:** {patterns.get('architectural_pattern', 'unknown')}"
        f" ({patterns.get('folder_structure', 'unknown')})",
        f"- **Overall health score:** {quality.get('overall_score', 0)}/100",
        f"  - Documentation {quality.get('documentation_score', 0)},"
        f" activity {quality.get('activity_score', 0)},"
        f" maintenance {quality.get('maintenance_score', 0)},"
        f" community {quality.get('community_score', 0)}",
    ]
    recommendations = quality.get("recommendations") or []
    if recommendations:
        lines += ["", "### Recommendations"]
        lines += [f"- {r}" for r in recommendations]
    return "\n".join(lines)


class RepoAnalyzer:
    """Analyzes one repository end to end."""

    def __init__(
        self,
        session: Session,
        github: Optional[GitHubClient] = None,
        llm: Optional[LLMProvider] = None,
    ):
        self.session = session
        self.github = github or GitHubClient()
        self.llm = llm
        self.config = AGENT_CONFIGS["repo_analyzer"]
        self.repositories = RepositoryRepository(session)
        self.cache = AnalysisCacheRepository(session)

    def _provider(self) -> Optional[LLMProvider]:
        if self.llm is None:
            try:
                self.llm = get_default_provider()
            except LLMNotConfiguredError as e:
                logger.warning("Analysis synthesis without LLM: %s", e)
                return None
        return self.llm

    def _synthesize(
        self,
        full_name: str,
        structure: dict[str, Any],
        tech_stack: dict[str, Any],
        quality: dict[str, Any],
    ) -> str:
        provider = self._provider()
        if provider is not None:
            prompt = ANALYSIS_SYNTHESIS_PROMPT.format(
                structure=json.dumps(structure, indent=2),
                tech_stack=json.dumps(tech_stack, indent=2),
                quality=json.dumps(quality, indent=2),
            )
            try:
                response = provider.generate(
                    "analysis",
                    system_prompt=self.config.system_prompt,
                    user_prompt=prompt,
                    temperature=self.config.temperature,
                )
                if response.content.strip():
                    return response.content
            except Exception as e:
                logger.warning("LLM synthesis failed for %s: %s", full_name, e)
        return fallback_summary(full_name, structure, tech_stack, quality)

    def analyze(
        self,
        github_url: Optional[str] = None,
        repository_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Analyze a repository.

        Args:
            github_url: Repository URL (used when not derivable from the row)
            repository_id: Repository row id; when given, results are saved

        Returns:
            {success, results, execution_time, steps} on success, or
            {success: False, error, execution_time, steps} on failure
        """
        start = time.time()
        steps = 1

        repository: Optional[Repository] = None
        if repository_id:
            repository = self.repositories.get(repository_id)

        url = github_url or (repository.html_url if repository else None)
        if not url:
            return {
                "success": False,
                "error": "Repository ID or GitHub URL required",
                "execution_time": 0,
                "steps": 0,
            }

        try:
            owner, repo = parse_github_url(url)
            github_data = fetch_repository_data(self.github, owner, repo)
        except (ValueError, GitHubAPIError) as e:
            logger.error("Repository fetch failed for %s: %s", url, e)
            return {
                "success": False,
                "error": str(e),
                "execution_time": int((time.time() - start) * 1000),
                "steps": steps,
            }
        steps += 1

        files = github_data.get("files") or []
        file_contents = github_data.get("file_contents") or {}

        structure = analyze_files(files, file_contents)
        steps += 1

        tech_stack: dict[str, Any] = detect_tech_stack(files, file_contents)
        if github_data.get("languages"):
            tech_stack["github_languages"] = github_data["languages"]
        steps += 1

        quality = assess_code_quality(
            github_data.get("repository") or {},
            files,
            file_contents,
            github_data.get("commits") or [],
            github_data.get("issues") or [],
            github_data.get("pull_requests") or [],
        )
        steps += 1

        summary = self._synthesize(f"{owner}/{repo}", structure, tech_stack, quality)
        steps += 1

        results: dict[str, Any] = {
            "structure_analysis": structure,
            "tech_stack": tech_stack,
            "quality_assessment": quality,
            "comprehensive_summary": summary,
            "status": "completed",
            "completion_time": datetime.now(timezone.utc).isoformat(),
        }

        if repository is not None:
            self.repositories.update(
                repository,
                tech_stack=tech_stack,
                analysis_summary=summary,
                last_analyzed=datetime.now(timezone.utc),
            )
            self.cache.set(repository.id, "full_analysis", results, FULL_ANALYSIS_TTL)
            logger.info(
                "Analyzed %s (health %s/100)",
                repository.full_name,
                quality["overall_score"],
            )
        steps += 1

        return {
            "success": True,
            "results": results,
            "execution_time": int((time.time() - start) * 1000),
            "steps": steps,
        }
