"""
API key and webhook repositories for the /api/v1 surface.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from github_agent.db.repositories.base import BaseRepository
from github_agent.models.db import ApiKey, Webhook
from github_agent.security import generate_api_key, hash_api_key


class ApiKeyRepository(BaseRepository[ApiKey]):
    """Repository for ApiKey model."""

    def __init__(self, session: Session):
        super().__init__(ApiKey, session)

    def issue(self, name: str) -> tuple[ApiKey, str]:
        """
        Create a new key.

        Args:
            name: Human readable label

        Returns:
            Tuple of (stored row, full plaintext key). The plaintext key is
            never persisted.
        """
        full_key, prefix, key_hash = generate_api_key()
        row = self.create(name=name, key_prefix=prefix, key_hash=key_hash)
        return row, full_key

    def authenticate(self, api_key: str) -> Optional[ApiKey]:
        """Return the active key row matching `api_key` and record usage."""
        row = (
            self.session.query(ApiKey)
            .filter(ApiKey.key_hash == hash_api_key(api_key), ApiKey.is_active.is_(True))
            .first()
        )
        if row:
            row.last_used_at = datetime.now(timezone.utc)
            row.request_count = (row.request_count or 0) + 1
            self.session.flush()
        return row

    def list_keys(self) -> List[ApiKey]:
        return self.session.query(ApiKey).order_by(ApiKey.created_at.desc()).all()

    def revoke(self, key: ApiKey) -> ApiKey:
        return self.update(key, is_active=False)


class WebhookRepository(BaseRepository[Webhook]):
    """Repository for Webhook model."""

    def __init__(self, session: Session):
        super().__init__(Webhook, session)

    def list_all(self) -> List[Webhook]:
        return self.session.query(Webhook).order_by(Webhook.created_at.desc()).all()

    def subscribed_to(
        self, event: str, project_id: Optional[uuid.UUID] = None
    ) -> List[Webhook]:
        """Active webhooks for `event`; project-scoped hooks only match their project."""
        # events is a JSON list; filter in Python to stay dialect-neutral
        hooks = self.session.query(Webhook).filter(Webhook.is_active.is_(True)).all()
        return [
            hook
            for hook in hooks
            if event in (hook.events or [])
            and (hook.project_id is None or hook.project_id == project_id)
        ]
