"""
Recap repository.
"""

import uuid
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from github_agent.db.repositories.base import BaseRepository
from github_agent.models.db import Recap


class RecapRepository(BaseRepository[Recap]):
    """Repository for Recap model."""

    def __init__(self, session: Session):
        super().__init__(Recap, session)

    def list_for_repository(
        self,
        repository_id: Optional[uuid.UUID] = None,
        period: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Recap]:
        """
        Recaps with their repository loaded, newest first.

        Args:
            repository_id: Optional repository filter
            period: Optional period filter (week, monthly, ...)
            limit: Maximum number of recaps

        Returns:
            List of recaps
        """
        query = self.session.query(Recap).options(joinedload(Recap.repository))
        if repository_id:
            query = query.filter(Recap.repository_id == repository_id)
        if period:
            query = query.filter(Recap.period == period)
        query = query.order_by(Recap.generated_at.desc(), Recap.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def list_recent(self, limit: int) -> List[Recap]:
        return self.list_for_repository(limit=limit)
