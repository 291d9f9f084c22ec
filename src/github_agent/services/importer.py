"""
GitHub repository import.

Pulls every repository visible to the configured token and inserts the
ones not yet known (matched on GitHub id). Shared by the dashboard route
and the `github-agent import-repos` command.
"""

import hashlib
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from github_agent.db.repositories import RepositoryRepository
from github_agent.exceptions import GitHubAPIError
from github_agent.integrations.github import GitHubClient
from github_agent.single_user import get_single_user_id

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


def repository_fields(repo: dict[str, Any]) -> dict[str, Any]:
    """Map a GitHub repository payload onto Repository columns."""
    stars = repo.get("stargazers_count") or 0
    return {
        "github_id": repo["id"],
        "name": repo["name"],
        "full_name": repo["full_name"],
        "description": repo.get("description"),
        "private": bool(repo.get("private")),
        "html_url": repo["html_url"],
        "clone_url": repo.get("clone_url") or f"{repo['html_url']}.git",
        "language": repo.get("language"),
        "languages": {},
        "topics": repo.get("topics") or [],
        "stars": stars,
        "forks": repo.get("forks_count") or 0,
        "open_issues": repo.get("open_issues_count") or 0,
        "default_branch": repo.get("default_branch") or "main",
        "tech_stack": {
            "primary_language": repo.get("language"),
            "topics": repo.get("topics") or [],
            "size_kb": repo.get("size"),
            "default_branch": repo.get("default_branch"),
            "private": bool(repo.get("private")),
        },
        "analysis_summary": f"{repo.get('language') or 'Unknown'} project with {stars} stars",
        "is_active": True,
    }


def fetch_all_repositories(github: GitHubClient) -> list[dict[str, Any]]:
    """Page through the authenticated user's repositories until a page is empty."""
    repos: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = github.list_user_repos(
            page=page, per_page=PAGE_SIZE, visibility="all", sort="updated"
        )
        if not batch:
            break
        repos.extend(batch)
        logger.debug("Fetched page %d: %d repositories", page, len(batch))
        page += 1
    return repos


def import_repositories(session: Session, github: GitHubClient) -> dict[str, Any]:
    """
    Import the owner's repositories.

    Args:
        session: Database session
        github: GitHub client authenticated as the owner

    Returns:
        {summary, imported, skipped, errors, message} with the lists
        truncated for display

    Raises:
        GitHubAPIError: If listing repositories fails
    """
    repositories = RepositoryRepository(session)
    all_repos = fetch_all_repositories(github)
    known = repositories.existing_github_ids()
    logger.info("Found %d repositories on GitHub", len(all_repos))

    imported: list[dict[str, Any]] = []
    skipped: list[str] = []
    errors: list[dict[str, str]] = []

    for repo in all_repos:
        if repo.get("id") in known:
            skipped.append(repo.get("full_name", ""))
            continue
        try:
            with session.begin_nested():
                repositories.create(user_id=get_single_user_id(), **repository_fields(repo))
        except (KeyError, SQLAlchemyError) as e:
            logger.error("Error importing %s: %s", repo.get("full_name"), e)
            errors.append({"repo": repo.get("full_name", ""), "error": str(e)})
            continue
        known.add(repo["id"])
        imported.append(
            {
                "name": repo["full_name"],
                "language": repo.get("language"),
                "stars": repo.get("stargazers_count") or 0,
                "private": bool(repo.get("private")),
            }
        )

    summary = {
        "total_found": len(all_repos),
        "imported": len(imported),
        "skipped": len(skipped),
        "errors": len(errors),
    }
    logger.info(
        "Import finished: %d imported, %d skipped, %d errors",
        summary["imported"],
        summary["skipped"],
        summary["errors"],
    )
    return {
        "summary": summary,
        "imported": imported[:10],
        "skipped": skipped[:5],
        "errors": errors[:5],
        "message": f"Successfully imported {len(imported)} repositories!",
    }


def placeholder_github_id(full_name: str) -> int:
    """
    Stable negative id for a repository whose GitHub metadata is unavailable.

    Real GitHub ids are positive, so placeholders never collide with them.
    """
    digest = hashlib.sha256(full_name.lower().encode()).hexdigest()
    return -int(digest[:15], 16)


def project_fields(
    github: GitHubClient, owner: str, name: str, github_url: str
) -> dict[str, Any]:
    """
    Repository columns for a project imported by URL.

    Uses the live GitHub metadata when the repository can be fetched and
    placeholder values otherwise.
    """
    try:
        return repository_fields(github.get_repo(owner, name))
    except GitHubAPIError as e:
        logger.warning("Importing %s/%s without GitHub metadata: %s", owner, name, e)

    full_name = f"{owner}/{name}"
    return {
        "github_id": placeholder_github_id(full_name),
        "name": name,
        "full_name": full_name,
        "description": f"Imported from {github_url}",
        "html_url": github_url,
        "clone_url": f"https://github.com/{full_name}.git",
        "language": "Unknown",
        "tech_stack": {},
        "stars": 0,
        "forks": 0,
        "open_issues": 0,
        "is_active": True,
    }
