"""
Email queue repository.
"""

from datetime import datetime, timezone
from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from github_agent.db.repositories.base import BaseRepository
from github_agent.models.db import EmailQueueEntry


class EmailQueueRepository(BaseRepository[EmailQueueEntry]):
    """Repository for EmailQueueEntry model."""

    def __init__(self, session: Session):
        super().__init__(EmailQueueEntry, session)

    def due(self, limit: int = 10) -> List[EmailQueueEntry]:
        """
        Entries ready to send: pending or retry, scheduled in the past.

        Ordered by priority (highest first), then oldest first.
        """
        return (
            self.session.query(EmailQueueEntry)
            .filter(
                or_(
                    EmailQueueEntry.status == "pending",
                    EmailQueueEntry.status == "retry",
                ),
                EmailQueueEntry.scheduled_for <= datetime.now(timezone.utc),
            )
            .order_by(EmailQueueEntry.priority.desc(), EmailQueueEntry.created_at.asc())
            .limit(limit)
            .all()
        )
