"""
Repository report generation.

Aggregates commits, issues and pull requests for a period together with
repository-level metrics, then persists the result as a RepositoryReport
that can be rendered into the report email.
"""

import logging
import math
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from github_agent.db.repositories import ReportRepository, RepositoryRepository
from github_agent.exceptions import GitHubAPIError
from github_agent.integrations.github import GitHubClient, parse_timestamp
from github_agent.models.db import EmailSettings, Repository, RepositoryReport
from github_agent.single_user import get_single_user_id
from github_agent.utils import round_half_up

logger = logging.getLogger(__name__)

COMMIT_DETAIL_LIMIT = 20
# First matching substring wins; anything unmatched counts as a feature
COMMIT_TYPE_KEYWORDS = (
    (("fix", "bug"), "bugfix"),
    (("refactor",), "refactor"),
    (("test",), "testing"),
    (("doc",), "documentation"),
    (("chore", "maintenance"), "maintenance"),
)
CRITICAL_LABEL = "critical"

DEFAULT_BRANDING = {
    "company_name": "GitHub Helper",
    "logo_url": "/whitelogo.png",
    "primary_color": "#3b82f6",
}


def commit_type(message: str) -> str:
    """Bucket a commit by keywords in its message ("Fix login bug" -> "bugfix")."""
    lowered = message.lower()
    for keywords, kind in COMMIT_TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return kind
    return "feature"


def empty_commit_summary() -> dict[str, Any]:
    return {
        "authors": [],
        "totalStats": {
            "total_commits": 0,
            "total_lines_added": 0,
            "total_lines_removed": 0,
            "total_lines_changed": 0,
            "most_active_files": [],
            "commit_types": {},
            "avg_commits_per_day": 0,
        },
    }


def empty_issue_summary() -> dict[str, Any]:
    return {
        "total_issues": 0,
        "open_issues": 0,
        "closed_issues": 0,
        "critical_issues": 0,
        "avg_resolution_time": 0,
        "top_labels": [],
    }


def empty_pr_summary() -> dict[str, Any]:
    return {
        "total_prs": 0,
        "open_prs": 0,
        "merged_prs": 0,
        "draft_prs": 0,
        "avg_review_time": 0,
        "top_contributors": [],
    }


def default_metrics() -> dict[str, Any]:
    return {
        "repository_size": {"total_size_kb": 0, "lines_of_code": 0, "file_count": 0},
        "language_breakdown": [],
        "code_quality": {
            "complexity_score": 50,
            "maintainability_index": 70,
            "technical_debt_ratio": 10,
        },
        "collaboration_metrics": {
            "total_contributors": 1,
            "active_contributors": 1,
            "bus_factor": 1,
        },
        "repository_health": {
            "has_readme": True,
            "has_license": False,
            "has_contributing_guide": False,
            "open_issues_ratio": 0.1,
            "fork_ratio": 0.1,
            "activity_score": 50,
        },
        "performance_estimates": {
            "build_success_rate": 85,
            "test_coverage": 75,
            "security_score": 90,
            "bundle_size_trend": "stable",
            "dependencies_status": {"total": 0, "outdated": 0, "vulnerable": 0},
        },
        "trends": {
            "commits_trend": "stable",
            "issues_trend": "stable",
            "contributors_trend": "stable",
            "size_growth_rate": 0,
        },
    }


def summarize_commits(
    commits: list[dict[str, Any]],
    details: list[dict[str, Any]],
    start: datetime,
    end: datetime,
) -> dict[str, Any]:
    """
    Per-author and total statistics for a period's commits.

    Args:
        commits: Commits in the period (list endpoint entries)
        details: Single-commit payloads (with stats and files) for the
            commits that were looked up in detail
        start: Period start
        end: Period end

    Returns:
        {authors: [...], totalStats: {...}}
    """
    authors: dict[str, dict[str, Any]] = {}
    author_files: dict[str, set[str]] = {}
    file_changes: Counter[str] = Counter()
    types: Counter[str] = Counter()
    added = removed = 0

    for detail in details:
        info = detail.get("commit") or {}
        name = (info.get("author") or {}).get("name") or "Unknown"
        stats = authors.setdefault(
            name,
            {
                "author": name,
                "commit_count": 0,
                "lines_added": 0,
                "lines_removed": 0,
                "files_changed": [],
                "avg_commit_size": 0,
                "commit_types": {},
            },
        )
        files = author_files.setdefault(name, set())

        stats["commit_count"] += 1
        line_stats = detail.get("stats") or {}
        stats["lines_added"] += line_stats.get("additions") or 0
        stats["lines_removed"] += line_stats.get("deletions") or 0
        added += line_stats.get("additions") or 0
        removed += line_stats.get("deletions") or 0

        for changed in detail.get("files") or []:
            files.add(changed["filename"])
            file_changes[changed["filename"]] += 1

        kind = commit_type(info.get("message") or "")
        types[kind] += 1
        stats["commit_types"][kind] = stats["commit_types"].get(kind, 0) + 1

    for name, stats in authors.items():
        stats["files_changed"] = sorted(author_files[name])
        if stats["commit_count"]:
            stats["avg_commit_size"] = round_half_up(
                (stats["lines_added"] + stats["lines_removed"]) / stats["commit_count"]
            )

    days = max(1, math.ceil((end - start).total_seconds() / 86400))
    return {
        "authors": list(authors.values()),
        "totalStats": {
            "total_commits": len(commits),
            "total_lines_added": added,
            "total_lines_removed": removed,
            "total_lines_changed": added + removed,
            "most_active_files": [
                {"filename": f, "changes": n} for f, n in file_changes.most_common(10)
            ],
            "commit_types": dict(types),
            "avg_commits_per_day": round_half_up(len(commits) / days),
        },
    }


def summarize_issues(issues: list[dict[str, Any]]) -> dict[str, Any]:
    """Counts, average resolution time in days and the five most used labels."""
    label_counts: Counter[str] = Counter()
    critical = 0
    resolution_days = []

    for issue in issues:
        names = [label.get("name", "") for label in issue.get("labels") or []]
        label_counts.update(names)
        if any(CRITICAL_LABEL in n.lower() for n in names):
            critical += 1

        if issue.get("state") == "closed":
            created = parse_timestamp(issue.get("created_at"))
            closed = parse_timestamp(issue.get("closed_at"))
            if created and closed:
                resolution_days.append((closed - created).total_seconds() / 86400)

    return {
        "total_issues": len(issues),
        "open_issues": sum(1 for i in issues if i.get("state") == "open"),
        "closed_issues": sum(1 for i in issues if i.get("state") == "closed"),
        "critical_issues": critical,
        "avg_resolution_time": (
            round_half_up(sum(resolution_days) / len(resolution_days))
            if resolution_days
            else 0
        ),
        "top_labels": [name for name, _ in label_counts.most_common(5)],
    }


def summarize_pulls(pulls: list[dict[str, Any]]) -> dict[str, Any]:
    contributors: Counter[str] = Counter(
        pr["user"]["login"] for pr in pulls if (pr.get("user") or {}).get("login")
    )
    return {
        "total_prs": len(pulls),
        "open_prs": sum(1 for pr in pulls if pr.get("state") == "open"),
        "merged_prs": sum(1 for pr in pulls if pr.get("merged_at")),
        "draft_prs": sum(1 for pr in pulls if pr.get("draft")),
        "avg_review_time": 0,
        "top_contributors": [login for login, _ in contributors.most_common(5)],
    }


def language_breakdown(languages: dict[str, int]) -> list[dict[str, Any]]:
    total = sum(languages.values())
    breakdown = [
        {
            "language": language,
            "bytes": size,
            "percentage": round_half_up(size / total * 100, 2) if total else 0,
        }
        for language, size in languages.items()
    ]
    return sorted(breakdown, key=lambda entry: entry["bytes"], reverse=True)


def complexity_score(repo_info: dict[str, Any], breakdown: list[dict[str, Any]]) -> int:
    score = 50
    size = repo_info.get("size") or 0
    if size > 100000:
        score += 20
    elif size > 10000:
        score += 10

    if len(breakdown) > 5:
        score += 15
    elif len(breakdown) > 3:
        score += 10

    if (repo_info.get("stargazers_count") or 0) > 1000:
        score += 10
    if (repo_info.get("forks_count") or 0) > 100:
        score += 5
    return min(100, max(10, score))


def estimate_test_coverage(breakdown: list[dict[str, Any]]) -> int:
    names = [entry["language"] for entry in breakdown]
    coverage = 70
    if any("JavaScript" in n or n in ("TypeScript", "Java") for n in names):
        coverage += 10
    if "Python" in names:
        coverage += 5
    return min(100, coverage)


def activity_score(repo_info: dict[str, Any], now: Optional[datetime] = None) -> int:
    """Recency of the last update plus a bonus for stars and forks, 0-100."""
    now = now or datetime.now(timezone.utc)
    updated = parse_timestamp(repo_info.get("updated_at"))
    score = 100.0
    if updated is not None:
        days = (now - updated).total_seconds() / 86400
        if days > 30:
            score -= 30
        elif days > 7:
            score -= 10

    score += min(20, (repo_info.get("stargazers_count") or 0) / 50)
    score += min(10, (repo_info.get("forks_count") or 0) / 10)
    return max(0, min(100, round_half_up(score)))


def performance_metrics(
    repo_info: dict[str, Any],
    languages: dict[str, int],
    contributors: list[dict[str, Any]],
) -> dict[str, Any]:
    """Repository-level size, quality, collaboration and health metrics."""
    breakdown = language_breakdown(languages)
    names = {entry["language"] for entry in breakdown}
    size = repo_info.get("size") or 0
    lines_per_kb = 20 if names & {"JavaScript", "TypeScript"} else 18
    kb_per_file = 3 if names & {"JavaScript", "Python"} else 5

    stars = repo_info.get("stargazers_count") or 0
    forks = repo_info.get("forks_count") or 0
    open_issues = repo_info.get("open_issues_count") or 0

    metrics = default_metrics()
    metrics.update(
        repository_size={
            "total_size_kb": round_half_up(size),
            "lines_of_code": round_half_up(size * lines_per_kb),
            "file_count": round_half_up(size / kb_per_file),
        },
        language_breakdown=breakdown,
        code_quality={
            "complexity_score": complexity_score(repo_info, breakdown),
            "maintainability_index": 85,
            "technical_debt_ratio": 10,
        },
        collaboration_metrics={
            "total_contributors": len(contributors),
            "active_contributors": sum(
                1 for c in contributors if (c.get("contributions") or 0) > 1
            ),
            "bus_factor": min(
                len(contributors), max(1, math.floor(len(contributors) * 0.3))
            ),
        },
        repository_health={
            "has_readme": True,
            "has_license": bool(repo_info.get("license")),
            "has_contributing_guide": False,
            "open_issues_ratio": open_issues / max(1, open_issues + 50),
            "fork_ratio": forks / max(1, stars),
            "activity_score": activity_score(repo_info),
        },
    )
    metrics["performance_estimates"].update(
        build_success_rate=90,
        test_coverage=estimate_test_coverage(breakdown),
        security_score=90,
    )
    return metrics


def build_report_summary(
    repository_name: str,
    commit_summary: dict[str, Any],
    issue_summary: dict[str, Any],
    pr_summary: dict[str, Any],
) -> str:
    total_commits = commit_summary["totalStats"]["total_commits"]
    contributors = len(commit_summary["authors"]) or 1
    return (
        f"This week, {repository_name} saw {total_commits} commits from "
        f"{contributors} contributors. {issue_summary['closed_issues']} issues were "
        f"resolved and {pr_summary['merged_prs']} pull requests were merged. "
        "The repository maintains strong development momentum with active "
        "community engagement."
    )


def build_recommendations(
    issue_summary: dict[str, Any],
    pr_summary: dict[str, Any],
    metrics: dict[str, Any],
) -> list[str]:
    recommendations = []
    if issue_summary["open_issues"] > 10:
        recommendations.append(
            "Consider prioritizing issue resolution - you have a growing backlog"
        )
    if pr_summary["open_prs"] > 5:
        recommendations.append(
            "Review open pull requests to maintain development velocity"
        )

    estimates = metrics.get("performance_estimates") or {}
    if (estimates.get("test_coverage") or 0) < 80:
        recommendations.append("Increase test coverage to improve code reliability")
    if ((estimates.get("dependencies_status") or {}).get("outdated") or 0) > 5:
        recommendations.append(
            "Update outdated dependencies for security and performance"
        )

    if not recommendations:
        recommendations.append("Great work! Your repository is well-maintained and active.")
    return recommendations


def template_variables(
    report: RepositoryReport,
    repository: Repository,
    email_settings: Optional[EmailSettings] = None,
) -> dict[str, Any]:
    """
    Variables for the repository report email template.

    Args:
        report: Generated report
        repository: Repository the report covers
        email_settings: User's email settings, for branding

    Returns:
        Flat mapping of template variable names to values
    """
    totals = (report.commit_summary or {}).get("totalStats") or {}
    metrics = report.performance_metrics or {}
    size = metrics.get("repository_size") or {}
    quality = metrics.get("code_quality") or {}
    estimates = metrics.get("performance_estimates") or {}
    collaboration = metrics.get("collaboration_metrics") or {}
    health = metrics.get("repository_health") or {}

    branding = dict(DEFAULT_BRANDING)
    if email_settings is not None:
        for key in branding:
            value = getattr(email_settings, key)
            if value:
                branding[key] = value

    return {
        "repository_name": repository.name,
        "period_start": report.period_start.date().isoformat(),
        "period_end": report.period_end.date().isoformat(),
        "total_size_kb": size.get("total_size_kb", 0),
        "lines_of_code": f"{size.get('lines_of_code', 0):,}",
        "file_count": size.get("file_count", 0),
        "complexity_score": quality.get("complexity_score", 50),
        "commit_count": totals.get("total_commits", 0),
        "total_lines_changed": f"{totals.get('total_lines_changed', 0):,}",
        "total_lines_added": f"{totals.get('total_lines_added', 0):,}",
        "total_lines_removed": f"{totals.get('total_lines_removed', 0):,}",
        "avg_commits_per_day": totals.get("avg_commits_per_day", 0),
        "issues_resolved": (report.issue_summary or {}).get("closed_issues", 0),
        "prs_merged": (report.pull_request_summary or {}).get("merged_prs", 0),
        "language_breakdown": metrics.get("language_breakdown") or [],
        "maintainability_index": round_half_up(
            quality.get("maintainability_index", 85)
        ),
        "test_coverage": round_half_up(estimates.get("test_coverage", 75)),
        "security_score": round_half_up(estimates.get("security_score", 90)),
        "technical_debt_ratio": quality.get("technical_debt_ratio", 8),
        "most_active_files": (totals.get("most_active_files") or [])[:8],
        "top_contributors": ((report.commit_summary or {}).get("authors") or [])[:6],
        "total_contributors": collaboration.get("total_contributors", 1),
        "active_contributors": collaboration.get("active_contributors", 1),
        "bus_factor": collaboration.get("bus_factor", 1),
        "activity_score": health.get("activity_score", 75),
        "summary": report.summary or "",
        "recommendations": report.recommendations or [],
        **branding,
    }


class ReportGenerator:
    """Builds and stores repository reports."""

    def __init__(self, session: Session, github: Optional[GitHubClient] = None):
        self.session = session
        self.github = github or GitHubClient()
        self.reports = ReportRepository(session)
        self.repositories = RepositoryRepository(session)

    def _commit_summary(
        self, owner: str, repo: str, start: datetime, end: datetime
    ) -> dict[str, Any]:
        try:
            commits = self.github.list_commits(owner, repo, since=start, until=end)
        except GitHubAPIError as e:
            logger.warning("Failed to fetch commits for %s/%s: %s", owner, repo, e)
            return empty_commit_summary()

        details = []
        for commit in commits[:COMMIT_DETAIL_LIMIT]:
            try:
                details.append(self.github.get_commit(owner, repo, commit["sha"]))
            except GitHubAPIError as e:
                logger.warning("Failed to get details for commit %s: %s", commit["sha"], e)
        return summarize_commits(commits, details, start, end)

    def _issue_summary(self, owner: str, repo: str, start: datetime) -> dict[str, Any]:
        try:
            issues = self.github.list_issues(owner, repo, state="all", since=start, per_page=100)
        except GitHubAPIError as e:
            logger.warning("Failed to fetch issues for %s/%s: %s", owner, repo, e)
            return empty_issue_summary()
        return summarize_issues([i for i in issues if not i.get("pull_request")])

    def _pr_summary(self, owner: str, repo: str) -> dict[str, Any]:
        try:
            pulls = self.github.list_pulls(owner, repo, state="all", per_page=100)
        except GitHubAPIError as e:
            logger.warning("Failed to fetch pull requests for %s/%s: %s", owner, repo, e)
            return empty_pr_summary()
        return summarize_pulls(pulls)

    def _metrics(self, owner: str, repo: str) -> dict[str, Any]:
        try:
            repo_info = self.github.get_repo(owner, repo)
            languages = self.github.get_languages(owner, repo)
            contributors = self.github.list_contributors(owner, repo)
        except GitHubAPIError as e:
            logger.warning("Failed to fetch repository metrics for %s/%s: %s", owner, repo, e)
            return default_metrics()
        return performance_metrics(repo_info, languages, contributors)

    def generate(
        self, repository_id: str, start: datetime, end: datetime
    ) -> RepositoryReport:
        """
        Generate and persist a report for one repository and period.

        Args:
            repository_id: Repository row id
            start: Period start
            end: Period end

        Returns:
            The saved RepositoryReport

        Raises:
            LookupError: If the repository does not exist
        """
        repository = self.repositories.get(repository_id)
        if repository is None:
            raise LookupError(f"Repository not found: {repository_id}")

        owner, repo = repository.owner, repository.name
        commit_summary = self._commit_summary(owner, repo, start, end)
        issue_summary = self._issue_summary(owner, repo, start)
        pr_summary = self._pr_summary(owner, repo)
        metrics = self._metrics(owner, repo)

        report = self.reports.create(
            user_id=get_single_user_id(),
            repository_id=repository.id,
            title=(
                f"{repository.name} Report - {start.date().isoformat()} "
                f"to {end.date().isoformat()}"
            ),
            summary=build_report_summary(
                repository.name, commit_summary, issue_summary, pr_summary
            ),
            commit_summary=commit_summary,
            issue_summary=issue_summary,
            pull_request_summary=pr_summary,
            performance_metrics=metrics,
            recommendations=build_recommendations(issue_summary, pr_summary, metrics),
            period_start=start,
            period_end=end,
            generated_at=datetime.now(timezone.utc),
        )
        logger.info(
            "Generated report for %s (%d commits)",
            repository.full_name,
            commit_summary["totalStats"]["total_commits"],
        )
        return report
