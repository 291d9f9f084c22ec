"""
Slack Events API and slash command endpoint.

A single URL receives JSON event callbacks and form-encoded slash
commands. Every request except the url_verification handshake must
carry a valid Slack signature.
"""

import json
import logging
from typing import Any, Optional
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from github_agent.db.connection import get_db
from github_agent.integrations.slack import SlackClient
from github_agent.security import verify_slack_signature
from github_agent.slack_bot import SlackBot, endpoint_info, slack_credentials

router = APIRouter()
logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _check_signature(
    signing_secret: Optional[str],
    body: str,
    timestamp: Optional[str],
    signature: Optional[str],
) -> None:
    if not signing_secret:
        logger.error("Slack request received but no signing secret is configured")
        raise HTTPException(status_code=500, detail="Configuration error")
    if not timestamp or not signature:
        raise HTTPException(status_code=401, detail="Invalid signature")
    if not verify_slack_signature(signing_secret, timestamp, body, signature):
        raise HTTPException(status_code=401, detail="Invalid signature")


def _handle_command(session: Session, form: dict[str, str]) -> dict[str, Any]:
    return SlackBot(session).handle_command(form.get("command", ""), form.get("text", ""))


def _handle_event(
    session: Session, bot_token: Optional[str], payload: dict[str, Any]
) -> None:
    if not bot_token:
        logger.warning("Slack bot token not configured; replies will not be posted")
        SlackBot(session).handle_event(payload)
        return
    with SlackClient(bot_token) as slack:
        SlackBot(session, slack=slack).handle_event(payload)


@router.get("/events")
def slack_endpoint_info() -> dict[str, Any]:
    return endpoint_info()


@router.post("/events")
async def slack_events(
    request: Request,
    x_slack_signature: Optional[str] = Header(default=None),
    x_slack_request_timestamp: Optional[str] = Header(default=None),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    try:
        body = (await request.body()).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="Invalid payload") from exc
    content_type = request.headers.get("content-type", "")

    if FORM_CONTENT_TYPE in content_type:
        _, signing_secret = await run_in_threadpool(slack_credentials, session)
        _check_signature(signing_secret, body, x_slack_request_timestamp, x_slack_signature)
        form = dict(parse_qsl(body))
        logger.info("Slack slash command %s", form.get("command"))
        return await run_in_threadpool(_handle_command, session, form)

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from exc

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    bot_token, signing_secret = await run_in_threadpool(slack_credentials, session)
    _check_signature(signing_secret, body, x_slack_request_timestamp, x_slack_signature)

    if payload.get("type") == "event_callback":
        await run_in_threadpool(_handle_event, session, bot_token, payload)
    return {"ok": True}
