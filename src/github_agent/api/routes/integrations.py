"""
Integration request form.

Emails the request to the configured maintainer address with the system
SMTP account.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException

from github_agent.api.schemas import IntegrationRequest
from github_agent.config import settings
from github_agent.exceptions import EmailDeliveryError, EmailNotConfiguredError
from github_agent.mail.renderer import render
from github_agent.mail.sender import EmailSender
from github_agent.mail.templates import (
    INTEGRATION_REQUEST_HTML,
    INTEGRATION_REQUEST_SUBJECT,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def integration_request_email(request: IntegrationRequest) -> dict[str, str]:
    """Render subject and HTML body; the HTML body escapes user input."""
    submitted = request.timestamp or datetime.now(timezone.utc)
    variables = {
        "type": request.type or "",
        "name": request.name or "",
        "details": request.details or "",
        "description": request.description or "",
        "user_email": request.user_email or "",
        "requested_by": request.user_email or "Anonymous",
        "submitted": submitted.strftime("%Y-%m-%d %H:%M %Z").strip(),
    }
    return {
        "subject": render(INTEGRATION_REQUEST_SUBJECT, {"name": request.name}),
        "html": render(INTEGRATION_REQUEST_HTML, variables, escape=True),
    }


@router.post("")
def request_integration(request: IntegrationRequest) -> dict[str, Any]:
    if not request.type or not request.name or not request.details:
        raise HTTPException(status_code=400, detail="Missing required fields")

    content = integration_request_email(request)
    try:
        if not settings.integration_request_email:
            raise EmailNotConfiguredError("INTEGRATION_REQUEST_EMAIL is not set")
        EmailSender.from_env().send(
            to=settings.integration_request_email,
            subject=content["subject"],
            html=content["html"],
        )
    except (EmailNotConfiguredError, EmailDeliveryError) as exc:
        logger.error("Failed to send integration request %r: %s", request.name, exc)
        raise HTTPException(
            status_code=500, detail="Failed to send integration request"
        ) from exc

    logger.info("Integration request sent: %s (%s)", request.name, request.type)
    return {"success": True}
