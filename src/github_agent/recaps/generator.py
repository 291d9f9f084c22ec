"""
Recap generation.

Buckets a repository's GitHub activity into a time window and turns the
counts into a meeting-ready recap: a narrative summary, key updates and
action items. The dashboard recap is fully deterministic; the /api/v1
recap has the LLM write the summary and falls back to the same
heuristics when it cannot.
"""

import calendar
import json
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from github_agent.agents.prompts import AGENT_CONFIGS, PERIOD_RECAP_PROMPT
from github_agent.db.repositories import AgentExecutionRepository, RecapRepository
from github_agent.exceptions import GitHubAPIError, LLMNotConfiguredError
from github_agent.integrations.github import GitHubClient, parse_timestamp
from github_agent.integrations.vercel import get_deployment_info
from github_agent.llm import LLMProvider, get_default_provider
from github_agent.models.db import Recap, Repository
from github_agent.single_user import get_single_user_id

logger = logging.getLogger(__name__)

TIME_RANGES = ("week", "month", "quarter")
# v1 period -> dashboard range used for the heuristic summary
V1_PERIODS = {
    "daily": "week",
    "weekly": "week",
    "monthly": "month",
    "quarterly": "quarter",
}

_TIME_LABELS = {"week": "This week", "month": "This month", "quarter": "This quarter"}

V1_ACTION_ITEMS = [
    "Review and prioritize next sprint tasks",
    "Update project documentation if needed",
    "Plan technical debt reduction activities",
]


def subtract_months(moment: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the month's length."""
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def resolve_period(time_range: str, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """
    Window for a recap period, ending now.

    Accepts both dashboard ranges (week, month, quarter) and v1 periods
    (daily, weekly, monthly, quarterly). Unknown values mean one week.

    Returns:
        (start, end) as aware UTC datetimes
    """
    end = now or datetime.now(timezone.utc)
    if time_range == "daily":
        return end - timedelta(days=1), end
    if time_range in ("month", "monthly"):
        return subtract_months(end, 1), end
    if time_range in ("quarter", "quarterly"):
        return subtract_months(end, 3), end
    return end - timedelta(days=7), end


def empty_activity() -> dict[str, Any]:
    return {
        "commits": 0,
        "issues_closed": 0,
        "prs_merged": 0,
        "lines_changed": 0,
        "recent_commits": [],
        "recent_issues": [],
        "recent_prs": [],
    }


def collect_activity(
    github: GitHubClient,
    owner: str,
    repo: str,
    start: datetime,
    end: datetime,
    include_commits: bool = True,
    include_issues: bool = True,
    include_prs: bool = True,
    commits_per_page: int = 100,
    count_lines: bool = True,
) -> dict[str, Any]:
    """
    Count commits, closed issues and merged pull requests in a window.

    Lines changed are summed from the first 20 commits' stats. Any GitHub
    failure is logged and yields zero activity.

    Returns:
        {commits, issues_closed, prs_merged, lines_changed, recent_commits,
        recent_issues, recent_prs}
    """
    activity = empty_activity()
    try:
        commits: list[dict[str, Any]] = []
        if include_commits:
            commits = github.list_commits(
                owner, repo, since=start, until=end, per_page=commits_per_page
            )

        issues: list[dict[str, Any]] = []
        if include_issues:
            issues = [
                i
                for i in github.list_issues(
                    owner, repo, state="closed", since=start, per_page=50
                )
                if "pull_request" not in i
            ]

        merged: list[dict[str, Any]] = []
        if include_prs:
            pulls = github.list_pulls(
                owner, repo, state="closed", sort="updated", direction="desc", per_page=50
            )
            for pr in pulls:
                merged_at = parse_timestamp(pr.get("merged_at"))
                if merged_at is not None and start <= merged_at <= end:
                    merged.append(pr)
    except GitHubAPIError as e:
        logger.warning("Error fetching GitHub activity for %s/%s: %s", owner, repo, e)
        return activity

    lines_changed = 0
    if count_lines:
        for commit in commits[:20]:
            try:
                detail = github.get_commit(owner, repo, commit["sha"])
            except (GitHubAPIError, KeyError) as e:
                logger.debug("Skipping commit stats: %s", e)
                continue
            stats = detail.get("stats") or {}
            lines_changed += (stats.get("additions") or 0) + (stats.get("deletions") or 0)

    activity.update(
        commits=len(commits),
        issues_closed=len(issues),
        prs_merged=len(merged),
        lines_changed=lines_changed,
        recent_commits=commits[:10],
        recent_issues=issues[:10],
        recent_prs=merged[:10],
    )
    return activity


def _deployment_date(deployment: dict[str, Any]) -> Optional[str]:
    last = deployment.get("last_deployment") or {}
    parsed = parse_timestamp(last.get("date"))
    return parsed.date().isoformat() if parsed else None


def build_summary(
    time_range: str,
    activity: dict[str, Any],
    language: Optional[str],
    deployment: Optional[dict[str, Any]] = None,
) -> str:
    """Narrative recap summary from activity counts and deployment state."""
    deployment = deployment or {}
    summary = f"{_TIME_LABELS.get(time_range, 'This week')} showed "

    if activity["commits"] > 10:
        summary += "strong development momentum "
    elif activity["commits"] > 0:
        summary += "steady progress "
    else:
        summary += "a quieter period "

    summary += (
        f"with {activity['commits']} commits, {activity['issues_closed']} issues "
        f"resolved, and {activity['prs_merged']} pull requests merged. "
    )

    lines = activity["lines_changed"]
    if lines > 1000:
        summary += (
            f"Significant code changes were made with {lines:,} lines modified, "
            "indicating major feature development or refactoring. "
        )
    elif lines > 100:
        summary += (
            f"Moderate code changes totaling {lines} lines, suggesting steady "
            "feature development and bug fixes. "
        )

    summary += (
        "The team maintained focus on code quality and feature delivery for the "
        f"{language or 'project'} codebase."
    )

    if deployment.get("is_deployed"):
        summary += f" The project is actively deployed on {deployment.get('platform') or 'production'}"
        if deployment.get("url"):
            summary += f" and accessible at {deployment['url']}"
        if deployment.get("last_deployment"):
            status = deployment["last_deployment"].get("status")
            summary += (
                f". Latest deployment was on {_deployment_date(deployment) or 'an unknown date'}"
                f" with status: {status}"
            )
        summary += "."
    else:
        summary += " The project is not currently deployed to production."

    return summary


def build_key_updates(
    activity: dict[str, Any], deployment: Optional[dict[str, Any]] = None
) -> list[str]:
    deployment = deployment or {}
    updates = []

    if activity["commits"] > 0:
        updates.append(f"{activity['commits']} commits pushed with new features and improvements")
    if activity["issues_closed"] > 0:
        updates.append(f"{activity['issues_closed']} issues resolved and closed")
    if activity["prs_merged"] > 0:
        updates.append(f"{activity['prs_merged']} pull requests reviewed and merged")
    if activity["lines_changed"] > 0:
        updates.append(
            f"{activity['lines_changed']:,} lines of code modified across the codebase"
        )

    if len(activity["recent_commits"]) > 5:
        updates.append("Active development with frequent commits and code improvements")
    if len(activity["recent_prs"]) > 2:
        updates.append("Strong collaboration with multiple pull request reviews")

    if deployment.get("is_deployed"):
        if deployment.get("url"):
            updates.append(f"Project is live and accessible at {deployment['url']}")
        if deployment.get("last_deployment"):
            updates.append(
                "Latest deployment completed successfully on "
                f"{deployment.get('platform') or 'production'}"
            )

    if not updates:
        updates.append("Repository maintenance and monitoring continued")
    return updates


def build_action_items(
    activity: dict[str, Any],
    language: Optional[str],
    deployment: Optional[dict[str, Any]] = None,
) -> list[str]:
    """Suggested next steps, at most six."""
    deployment = deployment or {}
    items = []

    if activity["commits"] > 20:
        items.append("Consider creating a release candidate for recent changes")
        items.append("Update changelog and documentation for new features")
    if activity["issues_closed"] < activity["commits"] / 2:
        items.append("Review and triage open issues for next iteration")
    if activity["prs_merged"] > 5:
        items.append("Review deployment pipeline for merged changes")

    items.append("Plan next development sprint priorities")
    items.append("Schedule team sync to discuss recent progress")

    if language:
        items.append(f"Review {language} best practices and code standards")

    if not deployment.get("is_deployed"):
        items.append("Set up deployment pipeline and production environment")
        items.append("Configure domain and deployment automation")
    elif (deployment.get("last_deployment") or {}).get("status") != "READY":
        items.append("Investigate and fix deployment issues")

    return items[:6]


def _period_title(period: str) -> str:
    """'weekly' -> 'Weekly', 'week' -> 'Weekly'."""
    title = period.capitalize()
    return title if title.endswith("ly") else f"{title}ly"


def _bullet_lines(entries: list[str]) -> str:
    return "\n".join(entries) if entries else "- None"


class RecapGenerator:
    """Builds and persists recaps for one repository."""

    def __init__(
        self,
        session: Session,
        github: Optional[GitHubClient] = None,
        llm: Optional[LLMProvider] = None,
    ):
        self.session = session
        self.github = github or GitHubClient()
        self.llm = llm
        self.recaps = RecapRepository(session)
        self.executions = AgentExecutionRepository(session)

    def generate(self, repository: Repository, time_range: str = "week") -> Recap:
        """
        Create the dashboard recap for a week, month or quarter.

        Args:
            repository: Repository to summarize
            time_range: week, month or quarter (anything else means week)

        Returns:
            The persisted Recap
        """
        if time_range not in TIME_RANGES:
            time_range = "week"
        start, end = resolve_period(time_range)

        activity = collect_activity(self.github, repository.owner, repository.name, start, end)
        deployment = get_deployment_info(self.session, repository)

        recap = self.recaps.create(
            user_id=get_single_user_id(),
            repository_id=repository.id,
            title=f"{_period_title(time_range)} Update - {repository.name}",
            summary=build_summary(time_range, activity, repository.language, deployment),
            period=time_range,
            key_updates=build_key_updates(activity, deployment),
            action_items=build_action_items(activity, repository.language, deployment),
            metrics={
                "commits": activity["commits"],
                "issues_closed": activity["issues_closed"],
                "prs_merged": activity["prs_merged"],
                "lines_changed": activity["lines_changed"],
                "deployment": deployment,
            },
            date_range={"start": start.isoformat(), "end": end.isoformat()},
            generated_by="ai",
            period_start=start,
            period_end=end,
            generated_at=end,
        )
        logger.info(
            "Generated %s recap for %s (%d commits)",
            time_range,
            repository.full_name,
            activity["commits"],
        )
        return recap

    def _v1_prompt(
        self,
        repository: Repository,
        period: str,
        start: datetime,
        end: datetime,
        activity: dict[str, Any],
        custom_context: Optional[str],
        output_format: str,
    ) -> str:
        commit_lines = []
        for commit in activity["recent_commits"][:10]:
            info = commit.get("commit") or {}
            subject = (info.get("message") or "").split("\n")[0]
            author = (info.get("author") or {}).get("name", "Unknown")
            commit_lines.append(f"- {subject} ({author})")

        return PERIOD_RECAP_PROMPT.format(
            period=period,
            name=repository.name,
            description=repository.description or "No description",
            tech_stack=json.dumps(repository.tech_stack or {}),
            start=start.date().isoformat(),
            end=end.date().isoformat(),
            commits=activity["commits"],
            issues_closed=activity["issues_closed"],
            prs_merged=activity["prs_merged"],
            commit_lines=_bullet_lines(commit_lines),
            issue_lines=_bullet_lines(
                [f"- #{i.get('number')}: {i.get('title')}" for i in activity["recent_issues"][:5]]
            ),
            pr_lines=_bullet_lines(
                [f"- #{pr.get('number')}: {pr.get('title')}" for pr in activity["recent_prs"][:5]]
            ),
            custom_context=custom_context or "No additional context provided",
            format_name="Markdown" if output_format == "markdown" else "plain text",
        )

    def _v1_summary(self, prompt: str, fallback: str) -> str:
        config = AGENT_CONFIGS["recap_generator"]
        if self.llm is None:
            try:
                self.llm = get_default_provider()
            except LLMNotConfiguredError as e:
                logger.warning("Recap summary without LLM: %s", e)
                return fallback
        try:
            response = self.llm.generate(
                "recap",
                system_prompt=config.system_prompt,
                user_prompt=prompt,
                temperature=config.temperature,
            )
        except Exception as e:
            logger.warning("LLM recap generation failed, using heuristic summary: %s", e)
            return fallback
        return response.content or fallback

    def generate_v1(
        self,
        repository: Repository,
        period: str = "weekly",
        custom_context: Optional[str] = None,
        include_commits: bool = True,
        include_issues: bool = True,
        include_prs: bool = True,
        output_format: str = "markdown",
    ) -> tuple[Recap, dict[str, int]]:
        """
        Create a recap for the public API.

        Args:
            repository: Repository to summarize
            period: daily, weekly, monthly or quarterly
            custom_context: Free text passed through to the prompt
            include_commits: Fetch commits
            include_issues: Fetch closed issues
            include_prs: Fetch merged pull requests
            output_format: "markdown" or anything else for plain text

        Returns:
            (recap, stats) where stats holds the activity counts
        """
        started = time.time()
        start, end = resolve_period(period)
        execution = self.executions.start(
            "recap_generator",
            {
                "period": period,
                "project_id": str(repository.id),
                "custom_context": custom_context,
            },
            user_id=get_single_user_id(),
        )

        activity = collect_activity(
            self.github,
            repository.owner,
            repository.name,
            start,
            end,
            include_commits=include_commits,
            include_issues=include_issues,
            include_prs=include_prs,
            commits_per_page=50,
            count_lines=False,
        )
        stats = {
            "commits": activity["commits"],
            "issues_closed": activity["issues_closed"],
            "prs_merged": activity["prs_merged"],
            "lines_changed": activity["lines_changed"],
        }

        prompt = self._v1_prompt(
            repository, period, start, end, activity, custom_context, output_format
        )
        fallback = build_summary(
            V1_PERIODS.get(period, "week"), activity, repository.language
        )
        summary = self._v1_summary(prompt, fallback)

        key_updates = []
        if stats["commits"] > 0:
            key_updates.append(f"{stats['commits']} commits made")
        if stats["issues_closed"] > 0:
            key_updates.append(f"{stats['issues_closed']} issues resolved")
        if stats["prs_merged"] > 0:
            key_updates.append(f"{stats['prs_merged']} pull requests merged")

        recap = self.recaps.create(
            user_id=get_single_user_id(),
            repository_id=repository.id,
            title=f"{period.capitalize()} Update - {repository.name}",
            summary=summary,
            period=period,
            key_updates=key_updates,
            action_items=list(V1_ACTION_ITEMS),
            metrics=stats,
            date_range={"start": start.isoformat(), "end": end.isoformat()},
            generated_by="ai",
            period_start=start,
            period_end=end,
            generated_at=end,
        )

        self.executions.complete(
            execution,
            output_data={"recap_id": str(recap.id), "title": recap.title},
            execution_time_ms=int((time.time() - started) * 1000),
            step_count=1,
        )
        return recap, stats
