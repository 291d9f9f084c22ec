"""
Settings API routes.

Email (SMTP and branding) and Slack app settings of the single user.
Secrets are stored encrypted and returned masked; a masked value sent
back by the client keeps the stored secret.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from github_agent.api.schemas import (
    EmailSettingsRequest,
    SlackSettingsRequest,
    SMTPTestRequest,
)
from github_agent.config import settings
from github_agent.db.connection import get_db
from github_agent.db.repositories import EmailSettingsRepository, SlackSettingsRepository
from github_agent.exceptions import CredentialEncryptionError, EmailDeliveryError
from github_agent.mail.sender import EmailSender, SMTPConfig
from github_agent.models.db import EmailSettings, SlackSettings
from github_agent.security import (
    MASK_PREFIX,
    decrypt_secret,
    encrypt_secret,
    is_masked,
    mask_secret,
)
from github_agent.single_user import get_single_user_id

router = APIRouter()
logger = logging.getLogger(__name__)

SLACK_DEFAULT_FEATURES = {
    "chat_commands": True,
    "repo_updates": True,
    "todo_notifications": True,
    "meeting_recaps": True,
    "direct_messages": True,
}
SLACK_DEFAULT_SCOPES = [
    "channels:read",
    "chat:write",
    "commands",
    "im:write",
    "users:read",
    "app_mentions:read",
]
SLACK_DEFAULTS = {
    "bot_name": "GitHub Agent Bot",
    "app_name": "GitHub Agent Dashboard",
    "description": "AI-powered GitHub repository assistant for Slack",
}

SLACK_SECRET_FIELDS = ("bot_token", "signing_secret", "client_secret", "verification_token")


def _masked(token: Optional[str]) -> str:
    """Decrypt a stored secret and mask it for display."""
    if not token:
        return ""
    try:
        return mask_secret(decrypt_secret(token)) or ""
    except CredentialEncryptionError as e:
        logger.warning("Cannot decrypt stored secret for display: %s", e)
        return MASK_PREFIX


def _email_settings_data(row: EmailSettings) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "smtp_host": row.smtp_host,
        "smtp_port": row.smtp_port,
        "smtp_secure": row.smtp_secure,
        "smtp_user": row.smtp_user,
        "smtp_password": _masked(row.smtp_password),
        "sender_name": row.sender_name,
        "sender_email": row.sender_email,
        "logo_url": row.logo_url,
        "company_name": row.company_name,
        "primary_color": row.primary_color,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


def _slack_settings_data(row: SlackSettings) -> dict[str, Any]:
    data = {
        "id": str(row.id),
        "user_id": str(row.user_id),
        "bot_name": row.bot_name,
        "app_name": row.app_name,
        "description": row.description,
        "webhook_url": row.webhook_url,
        "client_id": row.client_id,
        "features": row.features,
        "scopes": row.scopes,
        "is_active": row.is_active,
    }
    for field in SLACK_SECRET_FIELDS:
        data[field] = _masked(getattr(row, field))
    return data


# ===== Email =====


@router.get("/email")
def get_email_settings(session: Session = Depends(get_db)) -> dict[str, Any]:
    row = EmailSettingsRepository(session).get_for_user(get_single_user_id())
    return {"success": True, "data": _email_settings_data(row) if row else None}


@router.post("/email")
def save_email_settings(
    request: EmailSettingsRequest, session: Session = Depends(get_db)
) -> dict[str, Any]:
    repository = EmailSettingsRepository(session)
    existing = repository.get_for_user(get_single_user_id())

    fields: dict[str, Any] = {
        "smtp_host": request.smtp.host,
        "smtp_port": request.smtp.port,
        "smtp_secure": request.smtp.secure,
        "smtp_user": request.smtp.auth.user,
        "sender_name": request.sender.name,
        "sender_email": request.sender.email,
        "logo_url": request.branding.logo_url,
        "company_name": request.branding.company_name,
        "primary_color": request.branding.primary_color,
    }

    password = request.smtp.auth.password
    if is_masked(password) or not password:
        if existing is None:
            raise HTTPException(status_code=400, detail="SMTP password is required")
    else:
        try:
            fields["smtp_password"] = encrypt_secret(password)
        except CredentialEncryptionError as exc:
            logger.error("Cannot encrypt SMTP password: %s", exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    row = repository.upsert(get_single_user_id(), **fields)
    return {
        "success": True,
        "message": "Email settings saved successfully",
        "data": _email_settings_data(row),
    }


@router.delete("/email")
def delete_email_settings(session: Session = Depends(get_db)) -> dict[str, Any]:
    EmailSettingsRepository(session).delete_for_user(get_single_user_id())
    return {"success": True, "message": "Email settings deleted successfully"}


@router.post("/email/test")
def test_email_settings(request: SMTPTestRequest) -> dict[str, Any]:
    """Open and authenticate an SMTP connection with the given settings."""
    auth = request.auth or {}
    if not request.host or not request.port or not auth.get("user") or not auth.get("pass"):
        raise HTTPException(status_code=400, detail="Missing required SMTP configuration")

    sender = EmailSender(
        SMTPConfig(
            host=request.host,
            port=request.port,
            secure=request.secure,
            user=auth["user"],
            password=auth["pass"],
            sender_email=auth["user"],
        )
    )
    try:
        sender.verify()
    except EmailDeliveryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {"success": True, "message": "SMTP connection successful!"}


# ===== Slack =====


@router.get("/slack")
def get_slack_settings(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    if not user_id:
        raise HTTPException(status_code=400, detail="User ID is required")

    row = SlackSettingsRepository(session).get_for_user(get_single_user_id())
    if row is None:
        return {
            "success": True,
            "data": {
                **SLACK_DEFAULTS,
                "features": dict(SLACK_DEFAULT_FEATURES),
                "scopes": list(SLACK_DEFAULT_SCOPES),
                "is_active": False,
            },
        }
    return {"success": True, "data": _slack_settings_data(row)}


@router.post("/slack")
def save_slack_settings(
    request: SlackSettingsRequest, session: Session = Depends(get_db)
) -> dict[str, Any]:
    """
    Save Slack app settings.

    The bot is active only when both a bot token and a signing secret are
    provided.
    """
    if not request.user_id:
        raise HTTPException(status_code=400, detail="User ID is required")

    fields: dict[str, Any] = {
        "bot_name": request.bot_name or SLACK_DEFAULTS["bot_name"],
        "app_name": request.app_name or SLACK_DEFAULTS["app_name"],
        "description": request.description or SLACK_DEFAULTS["description"],
        "features": request.features or dict(SLACK_DEFAULT_FEATURES),
        "scopes": request.scopes or list(SLACK_DEFAULT_SCOPES),
        "is_active": bool(request.bot_token and request.signing_secret),
        "webhook_url": f"{settings.public_base_url.rstrip('/')}/api/slack/events",
    }
    if request.client_id and not is_masked(request.client_id):
        fields["client_id"] = request.client_id

    try:
        for field in SLACK_SECRET_FIELDS:
            value = getattr(request, field)
            if value and not is_masked(value):
                fields[field] = encrypt_secret(value)
    except CredentialEncryptionError as exc:
        logger.error("Cannot encrypt Slack credentials: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    row = SlackSettingsRepository(session).upsert(get_single_user_id(), **fields)
    return {
        "success": True,
        "message": "Slack settings saved successfully",
        "data": {
            "id": str(row.id),
            "is_active": row.is_active,
            "webhook_url": row.webhook_url,
        },
    }


@router.delete("/slack")
def delete_slack_settings(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    if not user_id:
        raise HTTPException(status_code=400, detail="User ID is required")
    SlackSettingsRepository(session).delete_for_user(get_single_user_id())
    return {"success": True, "message": "Slack settings deleted successfully"}
