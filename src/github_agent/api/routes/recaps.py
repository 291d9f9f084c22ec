"""Recap API routes."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from github_agent.api.dependencies import get_github_client
from github_agent.api.schemas import RecapCreate, RecapResponse, dump
from github_agent.db.connection import get_db
from github_agent.db.repositories import RecapRepository, RepositoryRepository, coerce_uuid
from github_agent.integrations.github import GitHubClient
from github_agent.recaps import RecapGenerator

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def list_recaps(
    repository_id: Optional[str] = Query(default=None, alias="repositoryId"),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    recaps = RecapRepository(session).list_for_repository(
        repository_id=coerce_uuid(repository_id)
    )
    return {"success": True, "recaps": [dump(RecapResponse, r) for r in recaps]}


@router.post("")
def create_recap(
    request: RecapCreate,
    session: Session = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
) -> dict[str, Any]:
    """Generate a week, month or quarter recap from live GitHub activity."""
    if not request.repository_id:
        raise HTTPException(status_code=400, detail="Repository ID is required")

    repository = RepositoryRepository(session).get(request.repository_id)
    if repository is None:
        raise HTTPException(status_code=404, detail="Repository not found")

    try:
        recap = RecapGenerator(session, github=github).generate(
            repository, request.time_range
        )
    except Exception as exc:
        logger.exception("Recap generation failed for %s", repository.full_name)
        raise HTTPException(status_code=500, detail="Recap generation failed") from exc

    return {
        "success": True,
        "message": f"Generated {recap.period}ly recap for {repository.name}",
        "recap": dump(RecapResponse, recap),
    }
