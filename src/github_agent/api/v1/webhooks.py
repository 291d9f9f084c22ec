"""
/api/v1/webhooks: register, list and remove webhook subscriptions.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from github_agent.api import envelope
from github_agent.api.auth import require_api_key
from github_agent.api.schemas import WebhookCreate, WebhookResponse, dump
from github_agent.db.connection import get_db
from github_agent.db.repositories import RepositoryRepository, WebhookRepository
from github_agent.exceptions import APIError, CredentialEncryptionError
from github_agent.security import encrypt_secret
from github_agent.single_user import get_single_user_id
from github_agent.webhooks import VALID_EVENTS, invalid_events

router = APIRouter(dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)


def example_payload() -> dict[str, Any]:
    now = datetime.now(timezone.utc).isoformat()
    return {
        "event": "project.created",
        "project_id": "proj_123",
        "data": {
            "name": "my-awesome-project",
            "full_name": "user/my-awesome-project",
            "created_at": now,
        },
        "timestamp": now,
        "source": "github_agent_dashboard",
    }


@router.get("")
def list_webhooks(session: Session = Depends(get_db)) -> dict[str, Any]:
    hooks = WebhookRepository(session).list_all()
    return envelope.success(
        {"webhooks": [dump(WebhookResponse, h) for h in hooks], "total": len(hooks)}
    )


@router.post("", status_code=201)
def register_webhook(
    request: WebhookCreate, session: Session = Depends(get_db)
) -> dict[str, Any]:
    """
    Register a webhook.

    The optional secret is stored encrypted and used to sign deliveries
    with an X-Hub-Signature-256 header.
    """
    if not request.url:
        raise APIError("webhook url is required", "MISSING_URL", 400)
    if not request.events:
        raise APIError(
            "events array is required and must not be empty", "MISSING_EVENTS", 400
        )
    invalid = invalid_events(request.events)
    if invalid:
        raise APIError(
            f"Invalid events: {', '.join(invalid)}. Available: {', '.join(VALID_EVENTS)}",
            "INVALID_EVENTS",
            400,
        )

    project_id = None
    if request.project_id:
        project = RepositoryRepository(session).get(request.project_id)
        if project is None:
            raise APIError("Project not found", "PROJECT_NOT_FOUND", 404)
        project_id = project.id

    try:
        secret = encrypt_secret(request.secret) if request.secret else None
    except CredentialEncryptionError as exc:
        logger.error("Cannot encrypt webhook secret: %s", exc)
        raise APIError(str(exc), "ENCRYPTION_ERROR", 500) from exc

    hook = WebhookRepository(session).create(
        user_id=get_single_user_id(),
        project_id=project_id,
        url=request.url,
        events=list(dict.fromkeys(request.events)),
        secret=secret,
        is_active=request.active,
    )
    logger.info("Registered webhook %s for %s", hook.url, ", ".join(hook.events))
    return envelope.success(
        {
            "webhook": dump(WebhookResponse, hook),
            "message": "Webhook registered successfully",
            "test_payload_example": example_payload(),
        }
    )


@router.delete("/{webhook_id}")
def delete_webhook(webhook_id: str, session: Session = Depends(get_db)) -> dict[str, Any]:
    webhooks = WebhookRepository(session)
    hook = webhooks.get(webhook_id)
    if hook is None:
        raise APIError("Webhook not found", "NOT_FOUND", 404)
    webhooks.delete(hook)
    return envelope.success({"message": "Webhook deleted successfully"})
