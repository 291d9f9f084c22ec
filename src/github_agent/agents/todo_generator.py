"""
Analysis-driven todo generation.

Gathers a month of repository activity, scores it, asks the LLM for a
todo list and persists the result as an auto-generated todo list. When
the LLM is unavailable or its reply does not parse, heuristic todos are
derived from the same analysis.
"""

import json
import logging
import time
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from github_agent.agents.prompts import (
    AGENT_CONFIGS,
    PROJECT_TODOS_PROMPT,
    TODO_GENERATION_PROMPT,
)
from github_agent.agents.tools import file_path, parse_json_array
from github_agent.db.repositories import (
    AgentExecutionRepository,
    RepositoryRepository,
    TodoListRepository,
)
from github_agent.exceptions import GitHubAPIError, LLMNotConfiguredError
from github_agent.integrations.github import GitHubClient
from github_agent.integrations.vercel import get_deployment_info
from github_agent.llm import LLMProvider, get_default_provider
from github_agent.models.db import Repository
from github_agent.single_user import get_single_user_id
from github_agent.utils import round_half_up

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"urgent": 4, "high": 3, "medium": 2, "low": 1}

FORCED_FALLBACK_TODO = {
    "title": "Code review and quality improvements",
    "description": (
        "Conduct a comprehensive review of the codebase for potential "
        "improvements, refactoring opportunities, and best practice "
        "implementation."
    ),
    "priority": "medium",
    "category": "maintenance",
    "estimated_hours": 4,
    "rationale": "Fallback todo to ensure at least one task is always generated.",
    "source": "fallback-forced",
}


def analyze_commits(commits: list[dict[str, Any]]) -> dict[str, Any]:
    """Commit totals, contributors and daily frequency over a 30-day window."""
    authors = Counter(
        (c.get("author") or {}).get("login") or "Unknown" for c in commits
    )
    return {
        "total": len(commits),
        "contributors": [
            {"author": author, "count": count}
            for author, count in authors.most_common()
        ],
        "frequency": len(commits) / 30 if commits else 0,
        "recent_activity": [
            {
                "message": (c.get("commit") or {}).get("message", ""),
                "author": (c.get("author") or {}).get("login"),
                "date": ((c.get("commit") or {}).get("author") or {}).get("date"),
            }
            for c in commits[:5]
        ],
    }


def analyze_pull_requests(pulls: list[dict[str, Any]]) -> dict[str, Any]:
    merged = [pr for pr in pulls if pr.get("merged_at")]
    return {
        "total": len(pulls),
        "open": sum(1 for pr in pulls if pr.get("state") == "open"),
        "merged": len(merged),
        "merge_rate": len(merged) / len(pulls) if pulls else 0,
    }


def analyze_issues(issues: list[dict[str, Any]]) -> dict[str, Any]:
    """Issue counts; pull requests in the issues feed are ignored."""
    issues = [i for i in issues if "pull_request" not in i]
    closed = sum(1 for i in issues if i.get("state") == "closed")
    return {
        "total": len(issues),
        "open": sum(1 for i in issues if i.get("state") == "open"),
        "closed": closed,
        "close_rate": closed / len(issues) if issues else 0,
        "bug_issues": sum(
            1
            for i in issues
            if any("bug" in (label.get("name") or "").lower() for label in i.get("labels") or [])
        ),
    }


def activity_score(
    commits: dict[str, Any], pulls: dict[str, Any], issues: dict[str, Any]
) -> int:
    score = (
        min(commits["frequency"] * 10, 40)
        + min(pulls["merge_rate"] * 20, 20)
        + min(issues["close_rate"] * 20, 20)
        + (20 if commits["recent_activity"] else 0)
    )
    return round_half_up(score)


def architecture_score(structure: dict[str, Any], health: dict[str, Any]) -> int:
    score = 0
    if health.get("has_readme"):
        score += 20
    if health.get("has_tests"):
        score += 25
    if health.get("has_ci"):
        score += 20
    if health.get("has_dockerfile"):
        score += 15
    if (health.get("package_json") or {}).get("scripts"):
        score += 10
    if structure.get("directories", 0) > 2:
        score += 10
    return min(score, 100)


def impact_score(todo: dict[str, Any]) -> int:
    score = 5 + PRIORITY_ORDER.get(todo.get("priority"), 1)
    category = todo.get("category")
    if category == "security":
        score += 3
    elif category == "performance":
        score += 2
    elif category == "maintenance":
        score += 1
    return min(score, 10)


def prioritize(todos: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Order todos by priority (urgent first), then by impact score."""
    scored = [
        {**todo, "order": index + 1, "impact_score": impact_score(todo)}
        for index, todo in enumerate(todos)
    ]
    return sorted(
        scored,
        key=lambda t: (PRIORITY_ORDER.get(t.get("priority"), 0), t["impact_score"]),
        reverse=True,
    )


def fallback_todos(repository_name: str, analysis: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Heuristic todos derived from the analysis.

    Uses the last commit message for a follow-up task, then adds planning
    and structure tasks for low activity and architecture scores.
    """
    todos: list[dict[str, Any]] = []
    recent = (analysis.get("commits") or {}).get("recent_activity") or []

    if recent:
        message = recent[0].get("message") or ""
        author = recent[0].get("author") or "team"
        lowered = message.lower()
        if "fix" in lowered or "bug" in lowered:
            title = "Review and test recent bug fixes"
            description = (
                f'Following the recent fix "{message[:80]}", ensure comprehensive '
                "testing and consider adding regression tests to prevent similar issues."
            )
            category, priority = "testing", "high"
        elif "feat" in lowered or "add" in lowered:
            title = "Document and optimize new feature"
            description = (
                f'The recent addition "{message[:80]}" may need documentation '
                "updates and performance optimization review."
            )
            category, priority = "documentation", "medium"
        elif "update" in lowered or "upgrade" in lowered:
            title = "Validate recent updates"
            description = (
                f'Following the update "{message[:80]}", verify compatibility and '
                "test all affected functionality."
            )
            category, priority = "testing", "medium"
        else:
            title = "Follow up on recent changes"
            description = (
                f'Recent commit by {author}: "{message[:100]}". Consider adding '
                "tests, documentation, or optimization opportunities."
            )
            category, priority = "maintenance", "medium"
        todos.append(
            {
                "title": title,
                "description": description,
                "priority": priority,
                "category": category,
                "estimated_hours": 2,
                "rationale": (
                    "Generated based on recent commit activity to ensure code "
                    "quality and maintainability."
                ),
                "source": "fallback",
            }
        )

    activity = analysis.get("activity_score", 0)
    if activity < 30:
        todos.append(
            {
                "title": "Plan development roadmap",
                "description": (
                    f"Repository shows low activity (score: {activity}/100). Consider "
                    "creating a development roadmap, updating documentation, or "
                    "planning feature improvements."
                ),
                "priority": "medium",
                "category": "planning",
                "estimated_hours": 4,
                "rationale": (
                    "Low repository activity indicates need for strategic planning "
                    "and development focus."
                ),
                "source": "fallback",
            }
        )

    architecture = analysis.get("architecture_score", 0)
    if architecture < 60:
        todos.append(
            {
                "title": "Improve project structure and documentation",
                "description": (
                    f"Architecture score is {architecture}/100. Consider adding missing "
                    "documentation, tests, CI/CD setup, or improving code organization."
                ),
                "priority": "medium",
                "category": "architecture",
                "estimated_hours": 6,
                "rationale": (
                    "Lower architecture score indicates opportunities for structural "
                    "improvements."
                ),
                "source": "fallback",
            }
        )

    if not todos:
        todos.append(
            {
                **FORCED_FALLBACK_TODO,
                "description": (
                    f"Conduct a comprehensive review of {repository_name} for potential "
                    "improvements, refactoring opportunities, and best practice "
                    "implementation."
                ),
                "rationale": (
                    "Regular code reviews ensure maintainability and code quality "
                    "over time."
                ),
                "source": "fallback",
            }
        )
    return todos


def _normalize(todo: dict[str, Any]) -> Optional[dict[str, Any]]:
    if not isinstance(todo, dict) or not todo.get("title"):
        return None
    priority = str(todo.get("priority") or "medium").lower()
    hours = todo.get("estimated_hours")
    return {
        "title": str(todo["title"])[:255],
        "description": str(todo.get("description") or ""),
        "priority": priority if priority in PRIORITY_ORDER else "medium",
        "category": str(todo.get("category") or "maintenance"),
        "estimated_hours": round(hours) if isinstance(hours, (int, float)) else None,
        "rationale": str(todo.get("rationale") or ""),
        "source": todo.get("source", "ai"),
    }


class TodoGenerator:
    """Generates and saves an analysis-based todo list for a repository."""

    def __init__(
        self,
        session: Session,
        github: Optional[GitHubClient] = None,
        llm: Optional[LLMProvider] = None,
    ):
        self.session = session
        self.github = github or GitHubClient()
        self.llm = llm
        self.config = AGENT_CONFIGS["todo_generator"]
        self.repositories = RepositoryRepository(session)
        self.todo_lists = TodoListRepository(session)
        self.executions = AgentExecutionRepository(session)

    def _safe(self, label: str, fetch, default):
        try:
            return fetch()
        except GitHubAPIError as e:
            logger.warning("Todo analysis: could not fetch %s: %s", label, e)
            return default

    def _check_health_files(
        self, owner: str, repo: str, contents: list[dict[str, Any]]
    ) -> dict[str, Any]:
        names = [file_path(item).lower() for item in contents]
        health: dict[str, Any] = {
            "has_readme": any(name.startswith("readme") for name in names),
            "has_tests": any(
                "test" in name or "spec" in name or name == "__tests__" for name in names
            ),
            "has_ci": False,
            "has_dockerfile": "dockerfile" in names,
            "package_json": None,
        }

        package_text = self._safe(
            "package.json", lambda: self.github.get_file_text(owner, repo, "package.json"), None
        )
        if package_text:
            try:
                health["package_json"] = json.loads(package_text)
            except ValueError:
                logger.warning("Unparseable package.json in %s/%s", owner, repo)

        workflows = self._safe(
            "workflows",
            lambda: self.github.get_contents(owner, repo, ".github/workflows"),
            [],
        )
        health["has_ci"] = isinstance(workflows, list) and len(workflows) > 0
        return health

    def analyze(self, repository: Repository) -> dict[str, Any]:
        """
        Build the analysis dict the prompt and fallbacks are based on.

        Every GitHub call degrades to empty data on failure.
        """
        owner, repo = repository.owner, repository.name
        since = datetime.now(timezone.utc) - timedelta(days=30)

        commits = self._safe(
            "commits",
            lambda: self.github.list_commits(owner, repo, since=since, per_page=100),
            [],
        )
        pulls = self._safe(
            "pulls",
            lambda: self.github.list_pulls(
                owner, repo, state="all", sort="updated", direction="desc", per_page=50
            ),
            [],
        )
        issues = self._safe(
            "issues", lambda: self.github.list_issues(owner, repo, state="all", per_page=50), []
        )
        contents = self._safe("contents", lambda: self.github.get_contents(owner, repo), [])
        if not isinstance(contents, list):
            contents = []

        commit_analysis = analyze_commits(commits)
        pr_analysis = analyze_pull_requests(pulls)
        issue_analysis = analyze_issues(issues)

        structure = {
            "total_files": sum(1 for item in contents if item.get("type") == "file"),
            "directories": sum(1 for item in contents if item.get("type") == "dir"),
        }
        health_files = self._check_health_files(owner, repo, contents)

        runs = self._safe(
            "workflow runs", lambda: self.github.list_workflow_runs(owner, repo), []
        )
        build_status = (runs[0].get("conclusion") or "running") if runs else "no_ci"
        deployment = get_deployment_info(self.session, repository)

        analysis: dict[str, Any] = {
            "commits": commit_analysis,
            "pull_requests": pr_analysis,
            "issues": issue_analysis,
            "structure": structure,
            "health_files": {
                k: v for k, v in health_files.items() if k != "package_json"
            },
            "health": {
                "build_status": build_status,
                "deployment_status": "deployed" if deployment.get("is_deployed") else "unknown",
                "live_url": deployment.get("url"),
            },
            "activity_score": activity_score(commit_analysis, pr_analysis, issue_analysis),
            "architecture_score": architecture_score(structure, health_files),
        }
        analysis["is_production_ready"] = (
            analysis["activity_score"] + analysis["architecture_score"] > 120
            and build_status == "success"
            and analysis["health"]["deployment_status"] != "unknown"
        )
        return analysis

    def _ask_llm(self, repository: Repository, analysis: dict[str, Any]) -> list[dict[str, Any]]:
        if self.llm is None:
            try:
                self.llm = get_default_provider()
            except LLMNotConfiguredError as e:
                logger.warning("Todo generation without LLM: %s", e)
                return []

        subjects = [
            (c["message"] or "").split("\n")[0]
            for c in analysis["commits"]["recent_activity"]
        ]
        recent = "\n".join(f"- {s}" for s in subjects) or "- none"
        prompt = TODO_GENERATION_PROMPT.format(
            full_name=repository.full_name,
            activity_score=analysis["activity_score"],
            architecture_score=analysis["architecture_score"],
            production_ready=str(analysis["is_production_ready"]).lower(),
            recent_commits=recent,
        )
        try:
            response = self.llm.generate(
                "todos",
                system_prompt=self.config.system_prompt,
                user_prompt=prompt,
                temperature=self.config.temperature,
            )
        except Exception as e:
            logger.warning("LLM todo generation failed for %s: %s", repository.full_name, e)
            return []
        return parse_json_array(response.content)

    def suggest_project_todos(
        self, repository: Repository, context_prompt: Optional[str] = None
    ) -> list[dict[str, Any]]:
        """
        Ask the LLM for 5-8 todo items for a project, without analysis.

        Args:
            repository: Project to plan for
            context_prompt: Caller supplied focus for the suggestions

        Returns:
            Item dicts with description, priority, estimated_hours and category

        Raises:
            LLMNotConfiguredError: If no LLM provider is configured
            ValueError: If the reply is not a JSON array of items
        """
        if self.llm is None:
            self.llm = get_default_provider()

        prompt = PROJECT_TODOS_PROMPT.format(
            name=repository.name,
            description=repository.description or "No description available",
            tech_stack=json.dumps(repository.tech_stack or {}),
            context=context_prompt or "General development tasks",
        )
        response = self.llm.generate(
            "project_todos",
            system_prompt=self.config.system_prompt,
            user_prompt=prompt,
            temperature=self.config.temperature,
        )
        items = [item for item in parse_json_array(response.content) if isinstance(item, dict)]
        if not items:
            raise ValueError("AI response is not a JSON array of todo items")
        return items

    def generate(self, repository_id: str) -> dict[str, Any]:
        """
        Analyze a repository and save an "AI Analysis" todo list.

        Args:
            repository_id: Repository row id

        Returns:
            {success, todo_list, todos, analysis, execution_time}, or
            {success: False, error} when the repository is unknown
        """
        start = time.time()
        repository = self.repositories.get(repository_id)
        if repository is None:
            return {"success": False, "error": f"Repository not found: {repository_id}"}

        execution = self.executions.start(
            "todo_generator",
            {"repository_id": str(repository.id)},
            user_id=get_single_user_id(),
        )

        analysis = self.analyze(repository)
        todos = [t for t in map(_normalize, self._ask_llm(repository, analysis)) if t]
        if not todos:
            logger.info("Using heuristic todos for %s", repository.full_name)
            todos = fallback_todos(repository.name, analysis)
        todos = prioritize(todos)

        todo_list = self.todo_lists.create_with_items(
            [
                {
                    "title": todo["title"],
                    "description": f"{todo['description']}\n\n**Rationale:** {todo['rationale']}",
                    "priority": todo["priority"],
                    "category": todo["category"],
                    "completed": False,
                    "labels": [todo["category"], "ai-generated"],
                    "estimated_hours": todo.get("estimated_hours"),
                }
                for todo in todos
            ],
            user_id=get_single_user_id(),
            repository_id=repository.id,
            title=f"AI Analysis - {repository.name}",
            description=(
                f"Comprehensive analysis-based improvements for {repository.name}. "
                f"Generated {datetime.now(timezone.utc).date().isoformat()}"
            ),
            category="ai_analysis",
            priority="high",
            status="active",
            auto_generated=True,
        )

        execution_time = int((time.time() - start) * 1000)
        self.executions.complete(
            execution,
            output_data={
                "todo_list_id": str(todo_list.id),
                "todos_generated": len(todos),
                "high_priority_todos": sum(1 for t in todos if t["priority"] == "high"),
            },
            execution_time_ms=execution_time,
            step_count=8,
        )
        logger.info("Generated %d todos for %s", len(todos), repository.full_name)

        return {
            "success": True,
            "todo_list": todo_list,
            "todos": todos,
            "analysis": analysis,
            "execution_time": execution_time,
        }
