"""
Conversation and message repositories.
"""

import uuid
from typing import Any, List

from sqlalchemy.orm import Session

from github_agent.db.repositories.base import BaseRepository
from github_agent.models.db import Conversation, Message


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for Conversation model."""

    def __init__(self, session: Session):
        super().__init__(Conversation, session)


class MessageRepository(BaseRepository[Message]):
    """Repository for Message model."""

    def __init__(self, session: Session):
        super().__init__(Message, session)

    def recent_history(self, conversation_id: uuid.UUID, limit: int = 10) -> List[Message]:
        """
        Last `limit` messages of a conversation in chronological order.

        Args:
            conversation_id: Conversation UUID
            limit: Number of messages to keep

        Returns:
            Messages, oldest first
        """
        rows = (
            self.session.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .limit(limit)
            .all()
        )
        return list(reversed(rows))

    def add(
        self,
        conversation_id: uuid.UUID,
        role: str,
        content: str,
        metadata: dict[str, Any],
        token_count: int,
    ) -> Message:
        return self.create(
            conversation_id=conversation_id,
            role=role,
            content=content,
            message_metadata=metadata,
            token_count=token_count,
        )
