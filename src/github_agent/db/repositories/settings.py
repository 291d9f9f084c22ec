"""
Per-user settings repositories (email, Slack, email templates, users).
"""

import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from github_agent.db.repositories.base import BaseRepository
from github_agent.models.db import EmailSettings, EmailTemplate, SlackSettings, User


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self, session: Session):
        super().__init__(User, session)


class _UserScopedSettings(BaseRepository):
    """Settings tables holding at most one row per user."""

    def get_for_user(self, user_id: uuid.UUID):
        return (
            self.session.query(self.model)
            .filter(self.model.user_id == user_id)
            .first()
        )

    def upsert(self, user_id: uuid.UUID, **fields: Any):
        """Create the user's row or update it in place."""
        existing = self.get_for_user(user_id)
        if existing:
            return self.update(existing, **fields)
        return self.create(user_id=user_id, **fields)

    def delete_for_user(self, user_id: uuid.UUID) -> bool:
        existing = self.get_for_user(user_id)
        if not existing:
            return False
        self.delete(existing)
        return True


class EmailSettingsRepository(_UserScopedSettings):
    """Repository for EmailSettings model."""

    def __init__(self, session: Session):
        super().__init__(EmailSettings, session)


class SlackSettingsRepository(_UserScopedSettings):
    """Repository for SlackSettings model."""

    def __init__(self, session: Session):
        super().__init__(SlackSettings, session)


class EmailTemplateRepository(BaseRepository[EmailTemplate]):
    """Repository for EmailTemplate model."""

    def __init__(self, session: Session):
        super().__init__(EmailTemplate, session)

    def get_active_by_type(
        self, template_type: str, user_id: Optional[uuid.UUID] = None
    ) -> Optional[EmailTemplate]:
        query = self.session.query(EmailTemplate).filter(
            EmailTemplate.type == template_type,
            EmailTemplate.is_active.is_(True),
        )
        if user_id:
            query = query.filter(EmailTemplate.user_id == user_id)
        return query.order_by(EmailTemplate.created_at.desc()).first()
