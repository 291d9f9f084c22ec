"""
Dashboard password login.

A correct shared password sets the auth cookie that the dashboard guard
middleware checks.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Response

from github_agent.api.auth import AUTH_COOKIE, AUTH_COOKIE_MAX_AGE, AUTH_COOKIE_VALUE
from github_agent.api.schemas import PasswordRequest
from github_agent.config import settings
from github_agent.security import verify_password

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/password")
def login(request: PasswordRequest, response: Response) -> dict[str, Any]:
    if not request.password:
        raise HTTPException(status_code=400, detail="Password is required")

    if not settings.simple_password:
        logger.error("SIMPLE_PASSWORD is not set; dashboard login is disabled")
        raise HTTPException(status_code=500, detail="Server configuration error")

    if not verify_password(request.password, settings.simple_password):
        logger.info("Rejected dashboard login attempt")
        raise HTTPException(status_code=401, detail="Invalid password")

    response.set_cookie(
        AUTH_COOKIE,
        AUTH_COOKIE_VALUE,
        max_age=AUTH_COOKIE_MAX_AGE,
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )
    return {"success": True}
