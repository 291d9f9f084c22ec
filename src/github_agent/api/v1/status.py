"""
/api/v1/status: unauthenticated health of the API and its dependencies.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from github_agent.api import envelope
from github_agent.api.auth import API_VERSION
from github_agent.config import settings
from github_agent.db.connection import get_db
from github_agent.llm import configured_model, is_llm_configured

router = APIRouter()
logger = logging.getLogger(__name__)

STARTED_AT = time.time()


def _database_status(session: Session) -> dict[str, Any]:
    started = time.perf_counter()
    try:
        session.execute(text("SELECT 1"))
        status = "healthy"
    except SQLAlchemyError as e:
        logger.warning("Status check: database unreachable: %s", e)
        status = "error"
    return {
        "status": status,
        "latency": round((time.perf_counter() - started) * 1000),
        "provider": session.get_bind().dialect.name,
    }


@router.get("/status")
def api_status(session: Session = Depends(get_db)) -> Any:
    started = time.perf_counter()
    try:
        database = _database_status(session)
        ai_status = "healthy" if is_llm_configured() else "not_configured"
        github_status = "healthy" if settings.github_token else "not_configured"

        data = {
            "api": {
                "status": "healthy",
                "version": API_VERSION,
                "uptime": round(time.time() - STARTED_AT, 3),
                "response_time": round((time.perf_counter() - started) * 1000),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            "services": {
                "database": database,
                "ai": {
                    "status": ai_status,
                    "provider": settings.llm_provider,
                    "model": configured_model(),
                },
                "github": {"status": github_status, "provider": "github_api"},
            },
            "features": {
                "projects": True,
                "todos": True,
                "recaps": True,
                "ai_chat": ai_status == "healthy",
                "github_analysis": github_status == "healthy",
                "streaming": True,
                "webhooks": True,
            },
            "rate_limits": {
                "requests_per_day": settings.api_rate_limit,
                "master_requests_per_day": settings.api_master_rate_limit,
            },
        }
    except Exception:
        logger.exception("Status check failed")
        body = envelope.success(
            {"api": {"status": "error", "version": API_VERSION, "error": "Health check failed"}}
        )
        return JSONResponse(status_code=503, content=body)
    return envelope.success(data)
