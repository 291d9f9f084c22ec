"""
Deterministic repository analysis tools.

These functions take raw GitHub API payloads and return plain dicts, so
their output can be cached in analysis_cache and fed into LLM prompts
as JSON.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from github_agent.exceptions import GitHubAPIError
from github_agent.integrations.github import GitHubClient, commit_date
from github_agent.utils import round_half_up

logger = logging.getLogger(__name__)

IMPORTANT_FILES = [
    "README.md",
    "package.json",
    "requirements.txt",
    "Dockerfile",
    ".env.example",
]

ALL_DETAILS = ("basic", "files", "commits", "issues", "pulls", "languages")

_PACKAGE_JSON_STACK: dict[str, list[tuple[str, str]]] = {
    "frameworks": [
        ("react", "React"),
        ("next", "Next.js"),
        ("vue", "Vue.js"),
        ("@angular/core", "Angular"),
        ("svelte", "Svelte"),
        ("express", "Express.js"),
        ("fastify", "Fastify"),
    ],
    "styling": [
        ("tailwindcss", "Tailwind CSS"),
        ("sass", "SASS/SCSS"),
        ("styled-components", "Styled Components"),
        ("@emotion/react", "Emotion"),
    ],
    "testing": [
        ("jest", "Jest"),
        ("cypress", "Cypress"),
        ("@playwright/test", "Playwright"),
        ("vitest", "Vitest"),
    ],
    "tools": [
        ("typescript", "TypeScript"),
        ("eslint", "ESLint"),
        ("prettier", "Prettier"),
        ("webpack", "Webpack"),
        ("vite", "Vite"),
    ],
    "apis": [("axios", "Axios")],
    "databases": [
        ("@supabase/supabase-js", "Supabase"),
        ("prisma", "Prisma"),
        ("mongoose", "MongoDB (Mongoose)"),
    ],
}

_REQUIREMENTS_STACK = [
    ("django", "frameworks", "Django"),
    ("flask", "frameworks", "Flask"),
    ("fastapi", "frameworks", "FastAPI"),
    ("pytest", "testing", "pytest"),
    ("sqlalchemy", "databases", "SQLAlchemy"),
]

_EXTENSION_LANGUAGES = {
    "js": "JavaScript",
    "jsx": "JavaScript",
    "ts": "TypeScript",
    "tsx": "TypeScript",
    "py": "Python",
    "go": "Go",
    "java": "Java",
    "rs": "Rust",
}

# (pattern, type, importance, reason)
_IMPORTANT_PATTERNS = [
    (re.compile(r"^README", re.I), "documentation", 10, "Main documentation"),
    (re.compile(r"package\.json$"), "config", 9, "Node.js dependencies"),
    (re.compile(r"Dockerfile$"), "deployment", 8, "Container configuration"),
    (re.compile(r"\.env"), "config", 7, "Environment configuration"),
    (re.compile(r"tsconfig\.json$"), "config", 6, "TypeScript configuration"),
    (re.compile(r"webpack\.config"), "build", 6, "Build configuration"),
    (re.compile(r"index\.(js|ts|jsx|tsx)$"), "entry", 8, "Entry point"),
    (re.compile(r"app\.(js|ts|jsx|tsx)$"), "entry", 8, "Main application"),
    (re.compile(r"main\.(js|ts)$"), "entry", 8, "Main entry point"),
    (re.compile(r"routes?(/|$)", re.I), "routing", 7, "Routing logic"),
    (re.compile(r"models?(/|$)", re.I), "data", 7, "Data models"),
    (re.compile(r"components?(/|$)", re.I), "ui", 6, "UI components"),
    (re.compile(r"utils?(/|$)", re.I), "utility", 5, "Utility functions"),
    (re.compile(r"test", re.I), "testing", 5, "Test files"),
]


def file_path(entry: dict[str, Any]) -> str:
    """Path of a contents-API entry (root listings only carry the name)."""
    return entry.get("path") or entry.get("name") or ""


def _append_unique(values: list[str], value: str) -> None:
    if value not in values:
        values.append(value)


def fetch_repository_data(
    client: GitHubClient,
    owner: str,
    repo: str,
    details: Iterable[str] = ("all",),
) -> dict[str, Any]:
    """
    Collect the raw GitHub payloads the other tools work on.

    Args:
        client: GitHub client
        owner: Repository owner
        repo: Repository name
        details: Any of "basic", "files", "commits", "issues", "pulls",
            "languages", or "all"

    Returns:
        Dict with keys repository, files, file_contents, commits, issues,
        pull_requests, languages (only those requested)

    Raises:
        GitHubAPIError: If the repository itself cannot be fetched
    """
    wanted = set(details)
    if "all" in wanted:
        wanted = set(ALL_DETAILS)

    result: dict[str, Any] = {}

    if "basic" in wanted:
        result["repository"] = client.get_repo(owner, repo)

    if "files" in wanted:
        try:
            contents = client.get_contents(owner, repo)
            result["files"] = contents if isinstance(contents, list) else []
        except GitHubAPIError as e:
            logger.warning("Could not list files for %s/%s: %s", owner, repo, e)
            result["files"] = []

        result["file_contents"] = {}
        for name in IMPORTANT_FILES:
            try:
                text = client.get_file_text(owner, repo, name)
            except GitHubAPIError as e:
                logger.debug("Skipping %s for %s/%s: %s", name, owner, repo, e)
                continue
            if text is not None:
                result["file_contents"][name] = text

    optional = [
        ("commits", "commits", lambda: client.list_commits(owner, repo, per_page=20)),
        (
            "issues",
            "issues",
            lambda: client.list_issues(owner, repo, state="all", per_page=50),
        ),
        (
            "pulls",
            "pull_requests",
            lambda: client.list_pulls(owner, repo, state="all", per_page=30),
        ),
        ("languages", "languages", lambda: client.get_languages(owner, repo)),
    ]
    for detail, key, fetch in optional:
        if detail not in wanted:
            continue
        try:
            result[key] = fetch()
        except GitHubAPIError as e:
            logger.warning("Could not fetch %s for %s/%s: %s", key, owner, repo, e)
            result[key] = {} if key == "languages" else []

    return result


def detect_tech_stack(
    files: list[dict[str, Any]], file_contents: dict[str, str]
) -> dict[str, list[str]]:
    """
    Detect frameworks, languages and tooling from manifest files and
    file extensions.

    Returns:
        Dict of category -> list of technology names (no duplicates)
    """
    stack: dict[str, list[str]] = {
        "frameworks": [],
        "languages": [],
        "databases": [],
        "tools": [],
        "deployment": [],
        "testing": [],
        "styling": [],
        "apis": [],
    }

    package_json = file_contents.get("package.json")
    if package_json:
        try:
            manifest = json.loads(package_json)
        except ValueError:
            logger.warning("Ignoring unparseable package.json")
            manifest = {}
        dependencies = {
            **(manifest.get("dependencies") or {}),
            **(manifest.get("devDependencies") or {}),
        }
        for category, entries in _PACKAGE_JSON_STACK.items():
            for package, label in entries:
                if package in dependencies:
                    _append_unique(stack[category], label)

    requirements = file_contents.get("requirements.txt")
    if requirements is not None:
        for line in requirements.splitlines():
            package = re.split(r"[=<>~!\[;\s]", line.strip(), maxsplit=1)[0].lower()
            if not package:
                continue
            for needle, category, label in _REQUIREMENTS_STACK:
                if needle in package:
                    _append_unique(stack[category], label)
        _append_unique(stack["languages"], "Python")

    dockerfile = file_contents.get("Dockerfile")
    if dockerfile:
        _append_unique(stack["deployment"], "Docker")
        if "FROM node" in dockerfile:
            _append_unique(stack["languages"], "Node.js")
        if "FROM python" in dockerfile:
            _append_unique(stack["languages"], "Python")
        if "FROM golang" in dockerfile:
            _append_unique(stack["languages"], "Go")
        if "nginx" in dockerfile:
            _append_unique(stack["deployment"], "Nginx")

    for entry in files:
        path = file_path(entry)
        if "." not in path:
            continue
        language = _EXTENSION_LANGUAGES.get(path.rsplit(".", 1)[1].lower())
        if language:
            _append_unique(stack["languages"], language)

    return stack


def analyze_files(
    files: list[dict[str, Any]], file_contents: dict[str, str]
) -> dict[str, Any]:
    """Summarize repository layout, architecture pattern and key files."""
    analysis: dict[str, Any] = {
        "structure": {
            "total_files": len(files),
            "directories": [],
            "file_types": {},
            "size_distribution": {"small": 0, "medium": 0, "large": 0, "huge": 0},
        },
        "patterns": {
            "architectural_pattern": "unknown",
            "folder_structure": "unknown",
        },
        "important_files": [],
        "insights": [],
    }
    structure = analysis["structure"]

    for entry in files:
        path = file_path(entry)
        if entry.get("type") == "dir":
            _append_unique(structure["directories"], path.split("/")[0])
            continue
        if "/" in path:
            _append_unique(structure["directories"], path.split("/")[0])

        ext = path.rsplit(".", 1)[1].lower() if "." in path else "unknown"
        structure["file_types"][ext] = structure["file_types"].get(ext, 0) + 1

        content = file_contents.get(path)
        if content is not None:
            lines = len(content.split("\n"))
            if lines < 100:
                bucket = "small"
            elif lines < 500:
                bucket = "medium"
            elif lines < 1000:
                bucket = "large"
            else:
                bucket = "huge"
            structure["size_distribution"][bucket] += 1

    dirs = structure["directories"]
    patterns = analysis["patterns"]
    if "src" in dirs and "components" in dirs:
        patterns["architectural_pattern"] = "Component-based (React/Vue)"
    elif "app" in dirs and "models" in dirs and "views" in dirs:
        patterns["architectural_pattern"] = "MVC (Ruby/Django)"
    elif "pages" in dirs and "api" in dirs:
        patterns["architectural_pattern"] = "Full-stack (Next.js)"
    elif "lib" in dirs and "bin" in dirs:
        patterns["architectural_pattern"] = "Library/CLI"

    if "src" in dirs:
        patterns["folder_structure"] = "Source-based"
    elif "app" in dirs:
        patterns["folder_structure"] = "App-based"
    elif "packages" in dirs:
        patterns["folder_structure"] = "Monorepo"
    else:
        patterns["folder_structure"] = "Flat/Simple"

    for entry in files:
        path = file_path(entry)
        for pattern, kind, importance, reason in _IMPORTANT_PATTERNS:
            if pattern.search(path):
                analysis["important_files"].append(
                    {"path": path, "type": kind, "importance": importance, "reason": reason}
                )
    analysis["important_files"].sort(key=lambda f: f["importance"], reverse=True)

    insights = analysis["insights"]
    if structure["file_types"]:
        ext, count = max(structure["file_types"].items(), key=lambda kv: kv[1])
        insights.append(f"Primary file type: {ext} ({count} files)")
    if patterns["architectural_pattern"] != "unknown":
        insights.append(f"Detected architecture: {patterns['architectural_pattern']}")
    if any("test" in file_path(f).lower() for f in files):
        insights.append("Project includes test files")
    else:
        insights.append("No test files detected - consider adding tests")
    config_files = [f for f in analysis["important_files"] if f["type"] == "config"]
    if len(config_files) > 3:
        insights.append("Complex configuration setup detected")

    return analysis


def _has_file(files: list[dict[str, Any]], *needles: str) -> bool:
    return any(
        needle in file_path(f).lower() for f in files for needle in needles
    )


def assess_code_quality(
    repository: dict[str, Any],
    files: list[dict[str, Any]],
    file_contents: dict[str, str],
    commits: list[dict[str, Any]],
    issues: list[dict[str, Any]],
    pull_requests: list[dict[str, Any]],
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Score documentation, activity, maintenance and community health.

    Each sub-score is capped at 100; the overall score is a weighted mean
    (0.25 docs, 0.25 activity, 0.3 maintenance, 0.2 community).

    Args:
        repository: GitHub repository payload
        files: Root contents listing
        file_contents: Important file texts keyed by name
        commits: Recent commits (newest first)
        issues: Issues, state all
        pull_requests: Pull requests, state all
        now: Reference time (defaults to the current UTC time)

    Returns:
        Assessment dict with *_score fields, details and recommendations
    """
    now = now or datetime.now(timezone.utc)
    details: dict[str, Any] = {
        "has_readme": False,
        "has_license": False,
        "has_contributing": False,
        "has_tests": False,
        "has_ci": False,
        "recent_commits": 0,
        "open_issues_ratio": 0,
        "pr_merge_rate": 0,
    }

    # Documentation
    doc_score = 0
    readme = file_contents.get("README.md")
    if readme:
        details["has_readme"] = True
        doc_score += 30
        if len(readme) > 1000:
            doc_score += 20
        if len(readme) > 3000:
            doc_score += 10
    if _has_file(files, "license"):
        details["has_license"] = True
        doc_score += 20
    if _has_file(files, "contributing"):
        details["has_contributing"] = True
        doc_score += 15

    # Activity
    commit_dates = [d for d in (commit_date(c) for c in commits) if d is not None]
    recent = [d for d in commit_dates if (now - d).total_seconds() <= 30 * 86400]
    details["recent_commits"] = len(recent)
    activity_score = min(len(recent) * 5, 50)
    if commit_dates:
        days_since_last = (now - commit_dates[0]).total_seconds() / 86400
        if days_since_last <= 7:
            activity_score += 30
        elif days_since_last <= 30:
            activity_score += 20
        elif days_since_last <= 90:
            activity_score += 10

    # Maintenance
    maintenance_score = 0
    if issues:
        open_count = sum(1 for i in issues if i.get("state") == "open")
        details["open_issues_ratio"] = open_count / len(issues)
        if details["open_issues_ratio"] < 0.3:
            maintenance_score += 40
        elif details["open_issues_ratio"] < 0.6:
            maintenance_score += 20
    if pull_requests:
        merged = sum(1 for pr in pull_requests if pr.get("merged_at"))
        details["pr_merge_rate"] = merged / len(pull_requests)
        if details["pr_merge_rate"] > 0.8:
            maintenance_score += 30
        elif details["pr_merge_rate"] > 0.6:
            maintenance_score += 20
        elif details["pr_merge_rate"] > 0.4:
            maintenance_score += 10
    if _has_file(files, "test", "spec"):
        details["has_tests"] = True
        maintenance_score += 20
    if _has_file(files, ".github", ".gitlab-ci", "jenkins"):
        details["has_ci"] = True
        maintenance_score += 10

    # Community
    community_score = 0
    if (repository.get("stargazers_count") or 0) > 100:
        community_score += 20
    if (repository.get("forks_count") or 0) > 20:
        community_score += 15
    if (repository.get("open_issues_count") or 0) > 0:
        community_score += 10
    if details["has_contributing"]:
        community_score += 25
    if details["has_license"]:
        community_score += 20
    if len(repository.get("description") or "") > 50:
        community_score += 10

    scores = {
        "documentation_score": min(doc_score, 100),
        "activity_score": min(activity_score, 100),
        "maintenance_score": min(maintenance_score, 100),
        "community_score": min(community_score, 100),
    }
    overall = round_half_up(
        scores["documentation_score"] * 0.25
        + scores["activity_score"] * 0.25
        + scores["maintenance_score"] * 0.3
        + scores["community_score"] * 0.2
    )

    recommendations = []
    if not details["has_readme"]:
        recommendations.append(
            "Add a comprehensive README.md with project description, "
            "installation, and usage instructions"
        )
    if not details["has_license"]:
        recommendations.append("Add a LICENSE file to clarify usage permissions")
    if not details["has_tests"]:
        recommendations.append("Add unit tests to improve code reliability")
    if not details["has_ci"]:
        recommendations.append(
            "Set up CI/CD pipeline for automated testing and deployment"
        )
    if details["open_issues_ratio"] > 0.5:
        recommendations.append("Address open issues to improve project health")
    if details["recent_commits"] < 5:
        recommendations.append(
            "Increase development activity with more regular commits"
        )

    return {
        "overall_score": overall,
        **scores,
        "details": details,
        "recommendations": recommendations,
    }


_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def parse_json_array(content: str) -> list[Any]:
    """
    Extract the first JSON array from an LLM reply.

    Models often wrap JSON in prose or code fences, so the outermost
    bracketed span is tried before the whole text.

    Returns:
        The parsed list, or [] if nothing parses to a list
    """
    candidates = []
    match = _JSON_ARRAY_RE.search(content or "")
    if match:
        candidates.append(match.group(0))
    candidates.append(content or "")
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, list):
            return parsed
    return []
