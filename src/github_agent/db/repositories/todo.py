"""
Todo list and todo item repositories.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy.orm import Session, selectinload

from github_agent.db.repositories.base import BaseRepository
from github_agent.models.db import TodoItem, TodoList


class TodoListRepository(BaseRepository[TodoList]):
    """Repository for TodoList model."""

    def __init__(self, session: Session):
        super().__init__(TodoList, session)

    def list_with_items(
        self,
        repository_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[TodoList]:
        """
        Todo lists with their items eagerly loaded, newest first.

        Args:
            repository_id: Optional repository filter
            status: Optional list status filter
            limit: Maximum number of lists

        Returns:
            List of todo lists
        """
        query = self.session.query(TodoList).options(selectinload(TodoList.items))
        if repository_id:
            query = query.filter(TodoList.repository_id == repository_id)
        if status:
            query = query.filter(TodoList.status == status)
        query = query.order_by(TodoList.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def list_recent(self, limit: int) -> List[TodoList]:
        return (
            self.session.query(TodoList)
            .order_by(TodoList.created_at.desc())
            .limit(limit)
            .all()
        )

    def create_with_items(
        self, items: List[dict[str, Any]], **fields: Any
    ) -> TodoList:
        """
        Create a todo list and its items in one flush.

        Args:
            items: Item field dicts (title required)
            **fields: TodoList field values

        Returns:
            The created list with items loaded
        """
        todo_list = TodoList(**fields)
        for item in items:
            todo_list.items.append(TodoItem(**item))
        self.session.add(todo_list)
        self.session.flush()
        self.session.refresh(todo_list)
        return todo_list


class TodoItemRepository(BaseRepository[TodoItem]):
    """Repository for TodoItem model."""

    def __init__(self, session: Session):
        super().__init__(TodoItem, session)

    def update(self, instance: TodoItem, **kwargs: Any) -> TodoItem:
        """
        Update an item, keeping completed/status/completed_at consistent.

        Completing an item stamps completed_at; un-completing clears it.
        """
        if "completed" in kwargs and kwargs["completed"] is not None:
            completed = bool(kwargs["completed"])
            kwargs["completed_at"] = datetime.now(timezone.utc) if completed else None
            kwargs.setdefault("status", "completed" if completed else "pending")
        elif kwargs.get("status") == "completed":
            kwargs["completed"] = True
            kwargs["completed_at"] = datetime.now(timezone.utc)
        return super().update(instance, **kwargs)

    def delete_for_list(self, todo_list_id: uuid.UUID) -> int:
        return (
            self.session.query(TodoItem)
            .filter(TodoItem.todo_list_id == todo_list_id)
            .delete(synchronize_session=False)
        )
