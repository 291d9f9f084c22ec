"""
Analysis cache repository.

Simple TTL cache: a row is valid while expires_at is in the future.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from github_agent.db.repositories.base import BaseRepository
from github_agent.models.db import AnalysisCache


class AnalysisCacheRepository(BaseRepository[AnalysisCache]):
    """Repository for AnalysisCache model."""

    def __init__(self, session: Session):
        super().__init__(AnalysisCache, session)

    def _find(
        self, repository_id: uuid.UUID, analysis_type: str, cache_key: str
    ) -> Optional[AnalysisCache]:
        return (
            self.session.query(AnalysisCache)
            .filter(
                AnalysisCache.repository_id == repository_id,
                AnalysisCache.analysis_type == analysis_type,
                AnalysisCache.cache_key == cache_key,
            )
            .first()
        )

    def get_valid(
        self,
        repository_id: uuid.UUID,
        analysis_type: str,
        cache_key: str = "latest",
    ) -> Optional[dict[str, Any]]:
        """
        Return cached data if present and not expired.

        Args:
            repository_id: Repository UUID
            analysis_type: Cache namespace (full_analysis, deployment, ...)
            cache_key: Key within the namespace

        Returns:
            Cached payload or None
        """
        row = (
            self.session.query(AnalysisCache)
            .filter(
                AnalysisCache.repository_id == repository_id,
                AnalysisCache.analysis_type == analysis_type,
                AnalysisCache.cache_key == cache_key,
                AnalysisCache.expires_at > datetime.now(timezone.utc),
            )
            .first()
        )
        return row.cached_data if row else None

    def set(
        self,
        repository_id: uuid.UUID,
        analysis_type: str,
        data: dict[str, Any],
        ttl: timedelta,
        cache_key: str = "latest",
    ) -> AnalysisCache:
        """Insert or replace a cache entry."""
        expires_at = datetime.now(timezone.utc) + ttl
        row = self._find(repository_id, analysis_type, cache_key)
        if row:
            row.cached_data = data
            row.expires_at = expires_at
            self.session.flush()
            return row
        return self.create(
            repository_id=repository_id,
            analysis_type=analysis_type,
            cache_key=cache_key,
            cached_data=data,
            expires_at=expires_at,
        )
