"""
Versioned public API (/api/v1).

Every endpoint except /status requires an API key and answers with the
{success, data|error, timestamp, api_version} envelope.
"""

from fastapi import APIRouter

from github_agent.api.v1 import chat, projects, recaps, status, todos, webhooks

router = APIRouter()
router.include_router(projects.router, prefix="/projects", tags=["v1"])
router.include_router(todos.router, prefix="/todos", tags=["v1"])
router.include_router(recaps.router, prefix="/recaps", tags=["v1"])
router.include_router(chat.router, prefix="/ai", tags=["v1"])
router.include_router(webhooks.router, prefix="/webhooks", tags=["v1"])
router.include_router(status.router, tags=["v1"])

__all__ = ["router"]
