"""
Repository API routes.

Listing, GitHub import and AI analysis of imported repositories.
"""

import logging
from collections import Counter
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from github_agent.agents.analyzer import RepoAnalyzer
from github_agent.api.dependencies import get_github_client
from github_agent.api.schemas import (
    AnalyzeRepositoryRequest,
    RepositoryAnalysisRequest,
    RepositoryResponse,
    dump,
)
from github_agent.config import settings
from github_agent.db.connection import get_db
from github_agent.db.repositories import (
    AnalysisCacheRepository,
    RepositoryRepository,
    coerce_uuid,
)
from github_agent.exceptions import GitHubAPIError
from github_agent.integrations.github import GitHubClient
from github_agent.services.importer import import_repositories

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def list_repositories(session: Session = Depends(get_db)) -> dict[str, Any]:
    """Active repositories, most recently updated first."""
    repositories = RepositoryRepository(session).list_active()
    return {
        "success": True,
        "repositories": [dump(RepositoryResponse, r) for r in repositories],
        "count": len(repositories),
    }


@router.post("")
def analyze_repository(
    request: AnalyzeRepositoryRequest,
    session: Session = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
) -> dict[str, Any]:
    """Run the analyzer for an imported repository and return the stored result."""
    if not request.repository_id:
        raise HTTPException(status_code=400, detail="Repository ID is required")

    repositories = RepositoryRepository(session)
    repository = repositories.get(request.repository_id)
    if repository is None:
        raise HTTPException(status_code=404, detail="Repository not found")

    result = RepoAnalyzer(session, github=github).analyze(repository_id=str(repository.id))
    if not result["success"]:
        raise HTTPException(status_code=500, detail=f"Analysis failed: {result['error']}")

    session.refresh(repository)
    return {
        "success": True,
        "message": "Repository analysis completed",
        "analysis": {
            "tech_stack": repository.tech_stack,
            "analysis_summary": repository.analysis_summary,
            "last_analyzed": (
                repository.last_analyzed.isoformat() if repository.last_analyzed else None
            ),
        },
    }


@router.post("/import")
def import_from_github(
    session: Session = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
) -> dict[str, Any]:
    """Import every repository visible to the configured GitHub token."""
    if not settings.github_token or settings.github_token == "your_github_token_here":
        raise HTTPException(status_code=400, detail="GitHub token not configured")

    try:
        result = import_repositories(session, github)
    except GitHubAPIError as exc:
        logger.exception("Repository import failed")
        status = exc.status_code if exc.status_code >= 400 else 502
        raise HTTPException(status_code=status, detail=str(exc)) from exc

    return {"success": True, **result}


@router.get("/import")
def import_stats(session: Session = Depends(get_db)) -> dict[str, Any]:
    """Language and star totals over the imported repositories."""
    repositories = RepositoryRepository(session).list_active()
    languages = Counter(r.language or "Unknown" for r in repositories)
    return {
        "success": True,
        "total_repositories": len(repositories),
        "languages": dict(languages),
        "total_stars": sum(r.stars or 0 for r in repositories),
        "repositories": [
            {
                "id": str(r.id),
                "name": r.name,
                "language": r.language,
                "stars": r.stars,
                "is_active": r.is_active,
            }
            for r in repositories[:10]
        ],
    }


@router.post("/analyze")
def run_analysis(
    request: RepositoryAnalysisRequest,
    session: Session = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
) -> dict[str, Any]:
    """Full analysis with a 24 hour cache per repository."""
    if not request.repository_id and not request.github_url:
        raise HTTPException(
            status_code=400, detail="Repository ID or GitHub URL is required"
        )

    repository_id = coerce_uuid(request.repository_id)
    if not request.force_refresh and repository_id is not None:
        cached = AnalysisCacheRepository(session).get_valid(repository_id, "full_analysis")
        if cached:
            return {"success": True, "data": cached, "from_cache": True}

    result = RepoAnalyzer(session, github=github).analyze(
        github_url=request.github_url,
        repository_id=str(repository_id) if repository_id else None,
    )
    if not result["success"]:
        logger.error("Analysis failed: %s", result["error"])
        raise HTTPException(status_code=500, detail="Analysis failed")

    return {
        "success": True,
        "data": result["results"],
        "execution_time": result["execution_time"],
        "steps": result["steps"],
        "from_cache": False,
    }


@router.get("/analyze")
def get_analysis(
    repository_id: Optional[str] = Query(default=None, alias="repositoryId"),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    """Cached analysis, or the analysis fields stored on the repository."""
    if not repository_id:
        raise HTTPException(status_code=400, detail="Repository ID is required")

    parsed = coerce_uuid(repository_id)
    if parsed is not None:
        cached = AnalysisCacheRepository(session).get_valid(parsed, "full_analysis")
        if cached:
            return {"success": True, "data": cached, "from_cache": True}

    repository = RepositoryRepository(session).get(parsed)
    if repository is None:
        raise HTTPException(status_code=404, detail="Repository not found")

    data = dump(RepositoryResponse, repository)
    return {
        "success": True,
        "data": {
            "repository": data,
            "analysis_summary": data["analysis_summary"],
            "tech_stack": data["tech_stack"],
            "last_analyzed": data["last_analyzed"],
        },
        "from_cache": False,
    }
