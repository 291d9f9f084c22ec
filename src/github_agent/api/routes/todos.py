"""
Todo API routes.

Todo lists can be created by hand or generated from a repository
analysis; items are managed individually under /items.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from github_agent.agents.todo_generator import TodoGenerator
from github_agent.api.dependencies import get_github_client
from github_agent.api.schemas import (
    TodoCreate,
    TodoItemCreate,
    TodoItemResponse,
    TodoItemUpdate,
    TodoListResponse,
    TodoListUpdate,
    dump,
)
from github_agent.db.connection import get_db
from github_agent.db.repositories import (
    RepositoryRepository,
    TodoItemRepository,
    TodoListRepository,
    coerce_uuid,
)
from github_agent.integrations.github import GitHubClient
from github_agent.models.db import TodoList
from github_agent.single_user import get_single_user_id

router = APIRouter()
logger = logging.getLogger(__name__)

FALLBACK_ITEM = {
    "title": "Project ready for manual review and task planning",
    "description": (
        "The AI analysis completed successfully, but no specific improvement areas "
        "were identified. This project appears to be in good condition and ready for "
        "manual review to determine next steps or new feature development."
    ),
    "priority": "medium",
    "status": "pending",
    "labels": ["AI Analysis", "GitHub API", "Repository Health"],
}


def _fallback_list(todo_lists: TodoListRepository, repository_id: UUID) -> TodoList:
    today = datetime.now(timezone.utc)
    return todo_lists.create_with_items(
        [dict(FALLBACK_ITEM)],
        user_id=get_single_user_id(),
        repository_id=repository_id,
        title=f"AI Analysis Complete - {today.month}/{today.day}/{today.year}",
        description="Generated task based on repository analysis",
        status="active",
    )


def _get_list_or_404(session: Session, todo_list_id: UUID) -> TodoList:
    todo_list = TodoListRepository(session).get(todo_list_id)
    if todo_list is None:
        raise HTTPException(status_code=404, detail="Todo list not found")
    return todo_list


# ===== Items =====


@router.post("/items")
def create_item(
    request: TodoItemCreate, session: Session = Depends(get_db)
) -> dict[str, Any]:
    _get_list_or_404(session, request.todo_list_id)
    item = TodoItemRepository(session).create(
        todo_list_id=request.todo_list_id,
        title=request.title,
        description=request.description or "",
        priority=request.priority,
        status="pending",
    )
    return {
        "success": True,
        "message": "Todo item created successfully",
        "todoItem": dump(TodoItemResponse, item),
    }


@router.put("/items/{item_id}")
def update_item(
    item_id: UUID, request: TodoItemUpdate, session: Session = Depends(get_db)
) -> dict[str, Any]:
    """Update an item; completing it stamps completed_at."""
    items = TodoItemRepository(session)
    item = items.get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Todo item not found")

    item = items.update(item, **request.model_dump(exclude_unset=True))
    return {
        "success": True,
        "message": "Todo item updated successfully",
        "todoItem": dump(TodoItemResponse, item),
    }


@router.delete("/items/{item_id}")
def delete_item(item_id: UUID, session: Session = Depends(get_db)) -> dict[str, Any]:
    items = TodoItemRepository(session)
    item = items.get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Todo item not found")
    items.delete(item)
    return {"success": True, "message": "Todo item deleted successfully"}


# ===== Lists =====


@router.get("")
def list_todo_lists(
    repository_id: Optional[str] = Query(default=None, alias="repositoryId"),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    todo_lists = TodoListRepository(session).list_with_items(
        repository_id=coerce_uuid(repository_id)
    )
    return {
        "success": True,
        "todoLists": [dump(TodoListResponse, t) for t in todo_lists],
    }


@router.post("")
def create_todo_list(
    request: TodoCreate,
    session: Session = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
) -> dict[str, Any]:
    """
    Create a todo list.

    With type "generate-ai" the repository is analyzed and an
    auto-generated list is saved; otherwise a manual list is created
    from the given items.
    """
    todo_lists = TodoListRepository(session)

    if request.type == "generate-ai":
        if not request.repository_id:
            raise HTTPException(
                status_code=400, detail="Repository ID is required for AI generation"
            )
        if RepositoryRepository(session).get(request.repository_id) is None:
            raise HTTPException(status_code=404, detail="Repository not found")

        try:
            result = TodoGenerator(session, github=github).generate(request.repository_id)
        except Exception as exc:
            logger.exception("Todo generation failed for %s", request.repository_id)
            raise HTTPException(status_code=500, detail="AI todo generation failed") from exc
        if not result["success"]:
            raise HTTPException(
                status_code=500, detail=result.get("error") or "AI todo generation failed"
            )

        todo_list = result["todo_list"]
        todos_generated = len(result["todos"])
        if todos_generated == 0:
            logger.info("No todos generated, creating fallback list")
            todo_lists.delete(todo_list)
            todo_list = _fallback_list(todo_lists, coerce_uuid(request.repository_id))
            todos_generated = 1

        analysis = result.get("analysis") or {}
        return {
            "success": True,
            "message": (
                f"Generated {todos_generated} intelligent todos using advanced AI analysis"
            ),
            "todoListId": str(todo_list.id),
            "todosGenerated": todos_generated,
            "analysisPerformed": True,
            "executionTime": result.get("execution_time"),
            "analysis": {
                "activity_score": analysis.get("activity_score"),
                "architecture_score": analysis.get("architecture_score"),
                "is_production_ready": analysis.get("is_production_ready"),
                "health_checks_completed": True,
            },
        }

    todo_list = todo_lists.create_with_items(
        [
            {
                "title": item.title,
                "description": item.description or "",
                "priority": item.priority or "medium",
                "status": "pending",
            }
            for item in request.items
        ],
        user_id=get_single_user_id(),
        repository_id=coerce_uuid(request.repository_id),
        title=request.title or "New Todo List",
        description=request.description or "",
        status="active",
    )
    return {
        "success": True,
        "message": "Todo list created successfully",
        "todoList": dump(TodoListResponse, todo_list),
    }


@router.get("/{todo_list_id}")
def get_todo_list(todo_list_id: UUID, session: Session = Depends(get_db)) -> dict[str, Any]:
    todo_list = _get_list_or_404(session, todo_list_id)
    return {"success": True, "todoList": dump(TodoListResponse, todo_list)}


@router.put("/{todo_list_id}")
def update_todo_list(
    todo_list_id: UUID, request: TodoListUpdate, session: Session = Depends(get_db)
) -> dict[str, Any]:
    todo_list = _get_list_or_404(session, todo_list_id)
    todo_list = TodoListRepository(session).update(
        todo_list, **request.model_dump(exclude_unset=True)
    )
    return {
        "success": True,
        "message": "Todo list updated successfully",
        "todoList": dump(TodoListResponse, todo_list),
    }


@router.delete("/{todo_list_id}")
def delete_todo_list(
    todo_list_id: UUID, session: Session = Depends(get_db)
) -> dict[str, Any]:
    """Delete a list together with its items."""
    todo_list = _get_list_or_404(session, todo_list_id)
    TodoListRepository(session).delete(todo_list)
    return {"success": True, "message": "Todo list deleted successfully"}
