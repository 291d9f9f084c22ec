"""
Base repository with common CRUD operations.
"""

import uuid
from typing import Any, Generic, List, Optional, Type, TypeVar, Union

from sqlalchemy.orm import Session

from github_agent.models.db import Base

ModelType = TypeVar("ModelType", bound=Base)


def coerce_uuid(value: Union[str, uuid.UUID, None]) -> Optional[uuid.UUID]:
    """Parse a UUID from a path/query/body value; None if malformed."""
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class BaseRepository(Generic[ModelType]):
    """Generic repository providing CRUD helpers for a single model."""

    def __init__(self, model: Type[ModelType], session: Session):
        self.model = model
        self.session = session

    def create(self, **kwargs: Any) -> ModelType:
        """
        Create a new instance and flush it so generated fields are populated.

        Args:
            **kwargs: Model field values

        Returns:
            Created instance
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        self.session.flush()
        self.session.refresh(instance)
        return instance

    def get(self, id: Union[str, uuid.UUID, None]) -> Optional[ModelType]:
        parsed = coerce_uuid(id)
        if parsed is None:
            return None
        return self.session.get(self.model, parsed)

    def get_all(self, limit: Optional[int] = None, offset: int = 0) -> List[ModelType]:
        query = self.session.query(self.model).offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def update(self, instance: ModelType, **kwargs: Any) -> ModelType:
        """
        Update fields on an existing instance.

        Args:
            instance: Instance to update
            **kwargs: Field values to set

        Returns:
            Updated instance
        """
        for key, value in kwargs.items():
            setattr(instance, key, value)
        self.session.flush()
        self.session.refresh(instance)
        return instance

    def delete(self, instance: ModelType) -> None:
        self.session.delete(instance)
        self.session.flush()

    def count(self) -> int:
        return self.session.query(self.model).count()
