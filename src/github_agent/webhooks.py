"""
Outbound webhook delivery for /api/v1 events.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from github_agent.db.repositories import WebhookRepository
from github_agent.exceptions import CredentialEncryptionError
from github_agent.models.db import Webhook
from github_agent.security import decrypt_secret, sign_payload

logger = logging.getLogger(__name__)

VALID_EVENTS = (
    "project.created",
    "project.updated",
    "project.analyzed",
    "todo.created",
    "todo.updated",
    "todo.completed",
    "recap.generated",
    "ai.chat.completed",
    "analysis.completed",
)

USER_AGENT = "GitHub-Agent-Dashboard/1.0"
DELIVERY_TIMEOUT = 10.0


def invalid_events(events: list[str]) -> list[str]:
    return [event for event in events if event not in VALID_EVENTS]


class WebhookDispatcher:
    """POSTs event payloads to every active webhook subscribed to the event."""

    def __init__(
        self,
        session: Session,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.session = session
        self.webhooks = WebhookRepository(session)
        self.transport = transport

    def _headers(self, webhook: Webhook, body: bytes) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        if webhook.secret:
            try:
                secret = decrypt_secret(webhook.secret)
            except CredentialEncryptionError as e:
                logger.warning("Cannot sign webhook %s: %s", webhook.id, e)
                return headers
            if secret:
                headers["X-Hub-Signature-256"] = sign_payload(secret, body)
        return headers

    def dispatch(
        self,
        event: str,
        payload: dict[str, Any],
        project_id: Optional[uuid.UUID] = None,
    ) -> int:
        """
        Deliver an event.

        Delivery failures are logged and recorded on the webhook row
        (last_status 0 for connection errors); they never propagate.

        Args:
            event: One of VALID_EVENTS
            payload: Event data
            project_id: Project the event concerns, if any

        Returns:
            Number of webhooks that answered with a 2xx status
        """
        hooks = self.webhooks.subscribed_to(event, project_id)
        if not hooks:
            return 0

        body = json.dumps(
            {
                "event": event,
                "project_id": str(project_id) if project_id else None,
                "data": payload,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "source": "github_agent_dashboard",
            },
            default=str,
        ).encode()

        delivered = 0
        with httpx.Client(timeout=DELIVERY_TIMEOUT, transport=self.transport) as client:
            for hook in hooks:
                try:
                    response = client.post(hook.url, content=body, headers=self._headers(hook, body))
                    hook.last_status = response.status_code
                    if response.is_success:
                        delivered += 1
                    else:
                        logger.warning(
                            "Webhook %s returned %s for %s", hook.url, response.status_code, event
                        )
                except httpx.HTTPError as e:
                    hook.last_status = 0
                    logger.warning("Webhook delivery failed for %s: %s", hook.url, e)
                hook.last_delivery_at = datetime.now(timezone.utc)

        self.session.flush()
        logger.debug("Dispatched %s to %d/%d webhooks", event, delivered, len(hooks))
        return delivered
