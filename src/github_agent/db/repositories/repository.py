"""
GitHub repository (imported project) repository.
"""

from typing import List, Optional, Set, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from github_agent.db.repositories.base import BaseRepository
from github_agent.models.db import Repository


class RepositoryRepository(BaseRepository[Repository]):
    """Repository for imported GitHub repositories."""

    def __init__(self, session: Session):
        super().__init__(Repository, session)

    def list_active(self) -> List[Repository]:
        """Active repositories, most recently updated first."""
        return (
            self.session.query(Repository)
            .filter(Repository.is_active.is_(True))
            .order_by(Repository.updated_at.desc())
            .all()
        )

    def list_recent(self, limit: int) -> List[Repository]:
        return (
            self.session.query(Repository)
            .order_by(Repository.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_by_github_id(self, github_id: int) -> Optional[Repository]:
        return (
            self.session.query(Repository)
            .filter(Repository.github_id == github_id)
            .first()
        )

    def get_by_full_name(self, full_name: str) -> Optional[Repository]:
        return (
            self.session.query(Repository)
            .filter(Repository.full_name.ilike(full_name))
            .first()
        )

    def get_by_html_url(self, html_url: str) -> Optional[Repository]:
        return (
            self.session.query(Repository)
            .filter(Repository.html_url == html_url)
            .first()
        )

    def existing_github_ids(self) -> Set[int]:
        rows = self.session.query(Repository.github_id).all()
        return {row[0] for row in rows}

    def search(
        self,
        limit: int = 50,
        offset: int = 0,
        search: Optional[str] = None,
        language: Optional[str] = None,
    ) -> Tuple[List[Repository], int]:
        """
        Search repositories with pagination.

        Args:
            limit: Maximum number of rows
            offset: Rows to skip
            search: Case-insensitive substring of name or description
            language: Exact primary language

        Returns:
            Tuple of (repositories, total matching count)
        """
        query = self.session.query(Repository)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Repository.name.ilike(pattern),
                    Repository.description.ilike(pattern),
                )
            )
        if language:
            query = query.filter(Repository.language == language)

        total = query.count()
        items = (
            query.order_by(Repository.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    def resolve(self, identifier: str) -> Optional[Repository]:
        """Find a repository by UUID, "owner/name" or bare name."""
        repository = self.get(identifier)
        if repository:
            return repository
        if "/" in identifier:
            return self.get_by_full_name(identifier)
        return (
            self.session.query(Repository)
            .filter(Repository.name.ilike(identifier))
            .first()
        )
