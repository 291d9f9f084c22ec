"""
/api/v1/projects: list and import repositories.
"""

import logging
import uuid
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from github_agent.agents.analyzer import RepoAnalyzer
from github_agent.api import envelope
from github_agent.api.auth import require_api_key
from github_agent.api.dependencies import get_github_client
from github_agent.api.schemas import ProjectCreate, RepositoryResponse, dump
from github_agent.db.connection import db_session, get_db
from github_agent.db.repositories import RepositoryRepository
from github_agent.exceptions import APIError
from github_agent.integrations.github import GitHubClient, parse_github_url
from github_agent.services.importer import project_fields
from github_agent.single_user import get_single_user_id
from github_agent.webhooks import WebhookDispatcher

router = APIRouter(dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)


def run_project_analysis(repository_id: uuid.UUID) -> None:
    """Analyze a freshly imported project after the response is sent."""
    try:
        with db_session() as session, GitHubClient() as github:
            result = RepoAnalyzer(session, github=github).analyze(
                repository_id=str(repository_id)
            )
            if result.get("success"):
                WebhookDispatcher(session).dispatch(
                    "project.analyzed",
                    {"project_id": str(repository_id)},
                    project_id=repository_id,
                )
    except Exception:
        logger.exception("Background analysis failed for project %s", repository_id)


@router.get("")
def list_projects(
    limit: int = Query(default=50, ge=1),
    offset: int = Query(default=0, ge=0),
    search: Optional[str] = None,
    language: Optional[str] = None,
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    limit = min(limit, 100)
    projects, total = RepositoryRepository(session).search(
        limit=limit, offset=offset, search=search, language=language
    )
    return envelope.success(
        {
            "projects": [dump(RepositoryResponse, p) for p in projects],
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "has_more": offset + limit < total,
            },
        }
    )


@router.post("", status_code=201)
def import_project(
    request: ProjectCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
) -> dict[str, Any]:
    """
    Import a project from its GitHub URL.

    GitHub metadata is used when the repository can be fetched; otherwise
    the project is stored with placeholder values.
    """
    if not request.github_url:
        raise APIError("github_url is required", "MISSING_URL", 400)

    try:
        owner, name = parse_github_url(request.github_url)
    except ValueError as exc:
        raise APIError("Invalid GitHub URL format", "INVALID_URL", 400) from exc

    repositories = RepositoryRepository(session)
    if repositories.get_by_full_name(f"{owner}/{name}"):
        raise APIError("Project already exists", "PROJECT_EXISTS", 409)

    fields = project_fields(github, owner, name, request.github_url)
    if repositories.get_by_github_id(fields["github_id"]):
        raise APIError("Project already exists", "PROJECT_EXISTS", 409)

    project = repositories.create(user_id=get_single_user_id(), **fields)
    # Background tasks run after the response; the row must be visible by then
    session.commit()
    logger.info("Imported project %s via API", project.full_name)

    data = dump(RepositoryResponse, project)
    WebhookDispatcher(session).dispatch("project.created", data, project_id=project.id)
    if request.auto_analyze:
        background_tasks.add_task(run_project_analysis, project.id)

    return envelope.success(
        {
            "project": data,
            "message": "Project imported successfully",
            "analysis_queued": request.auto_analyze,
        }
    )
