"""
Repository report repository.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from github_agent.db.repositories.base import BaseRepository
from github_agent.models.db import RepositoryReport


class ReportRepository(BaseRepository[RepositoryReport]):
    """Repository for RepositoryReport model."""

    def __init__(self, session: Session):
        super().__init__(RepositoryReport, session)

    def paginate(
        self,
        page: int = 1,
        limit: int = 10,
        repository_id: Optional[uuid.UUID] = None,
    ) -> Tuple[List[RepositoryReport], int]:
        """
        Page through reports, newest generated first.

        Args:
            page: 1-based page number
            limit: Page size
            repository_id: Optional repository filter

        Returns:
            Tuple of (reports on this page, total count)
        """
        query = self.session.query(RepositoryReport)
        if repository_id:
            query = query.filter(RepositoryReport.repository_id == repository_id)

        total = query.count()
        reports = (
            query.options(joinedload(RepositoryReport.repository))
            .order_by(RepositoryReport.generated_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return reports, total

    def mark_sent(self, report: RepositoryReport, recipients: List[str]) -> None:
        report.email_sent = True
        report.email_sent_at = datetime.now(timezone.utc)
        report.recipients = list(recipients)
        self.session.flush()
