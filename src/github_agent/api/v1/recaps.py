"""
/api/v1/recaps: list and generate period recaps.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from github_agent.api import envelope
from github_agent.api.auth import require_api_key
from github_agent.api.dependencies import get_github_client
from github_agent.api.schemas import RecapResponse, V1RecapCreate, dump
from github_agent.db.connection import get_db
from github_agent.db.repositories import RecapRepository, RepositoryRepository, coerce_uuid
from github_agent.exceptions import APIError
from github_agent.integrations.github import GitHubClient
from github_agent.recaps.generator import RecapGenerator
from github_agent.webhooks import WebhookDispatcher

router = APIRouter(dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)


@router.get("")
def list_recaps(
    project_id: Optional[str] = None,
    period: Optional[str] = None,
    limit: int = Query(default=20, ge=1),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    recaps = RecapRepository(session).list_for_repository(
        repository_id=coerce_uuid(project_id), period=period, limit=min(limit, 100)
    )
    return envelope.success(
        {"recaps": [dump(RecapResponse, r) for r in recaps], "total": len(recaps)}
    )


@router.post("", status_code=201)
def generate_recap(
    request: V1RecapCreate,
    session: Session = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
) -> dict[str, Any]:
    if not request.project_id:
        raise APIError("project_id is required", "MISSING_PROJECT", 400)

    repository = RepositoryRepository(session).get(request.project_id)
    if repository is None:
        raise APIError("Project not found", "PROJECT_NOT_FOUND", 404)

    try:
        recap, stats = RecapGenerator(session, github=github).generate_v1(
            repository,
            period=request.period,
            custom_context=request.custom_context,
            include_commits=request.include_commits,
            include_issues=request.include_issues,
            include_prs=request.include_prs,
            output_format=request.output_format,
        )
    except Exception as exc:
        logger.exception("Recap generation failed for %s", repository.full_name)
        raise APIError("Failed to generate recap", "RECAP_GENERATION_FAILED", 500) from exc

    data = dump(RecapResponse, recap)
    WebhookDispatcher(session).dispatch("recap.generated", data, project_id=repository.id)
    return envelope.success(
        {
            "recap": data,
            "message": f"{request.period.capitalize()} recap generated successfully",
            "github_data": stats,
        }
    )
