"""
/api/v1/todos: list todo lists and create them, optionally with AI items.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from github_agent.agents.todo_generator import TodoGenerator
from github_agent.api import envelope
from github_agent.api.auth import require_api_key
from github_agent.api.dependencies import get_github_client
from github_agent.api.schemas import TodoListResponse, V1TodoCreate, dump
from github_agent.db.connection import get_db
from github_agent.db.repositories import (
    RepositoryRepository,
    TodoListRepository,
    coerce_uuid,
)
from github_agent.exceptions import APIError
from github_agent.integrations.github import GitHubClient
from github_agent.models.db import TodoList
from github_agent.single_user import get_single_user_id
from github_agent.webhooks import WebhookDispatcher

router = APIRouter(dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)


def _item_fields(item: dict[str, Any]) -> dict[str, Any]:
    description = str(item.get("description") or item.get("title") or "")
    hours = item.get("estimated_hours")
    return {
        "title": str(item.get("title") or description or "Untitled task")[:255],
        "description": description,
        "priority": item.get("priority") or "medium",
        "status": item.get("status") or "pending",
        "estimated_hours": round(hours) if isinstance(hours, (int, float)) else None,
        "category": item.get("category") or "development",
    }


def _todo_list_data(todo_list: TodoList, include_items: bool = True) -> dict[str, Any]:
    data = dump(TodoListResponse, todo_list)
    items = data.pop("items")
    if include_items:
        data["todo_items"] = items
    return data


@router.get("")
def list_todo_lists(
    project_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = Query(default=20, ge=1),
    include_items: bool = False,
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    todo_lists = TodoListRepository(session).list_with_items(
        repository_id=coerce_uuid(project_id),
        status=status,
        limit=min(limit, 100),
    )
    return envelope.success(
        {
            "todo_lists": [_todo_list_data(t, include_items) for t in todo_lists],
            "total": len(todo_lists),
        }
    )


@router.post("", status_code=201)
def create_todo_list(
    request: V1TodoCreate,
    session: Session = Depends(get_db),
    github: GitHubClient = Depends(get_github_client),
) -> dict[str, Any]:
    """
    Create a todo list.

    With ai_generate the items come from the LLM, planned for the project
    and the optional context_prompt; otherwise the given items are stored.
    """
    if not request.title:
        raise APIError("title is required", "MISSING_TITLE", 400)

    repository = None
    if request.ai_generate:
        if not request.project_id:
            raise APIError(
                "project_id is required for AI generation", "MISSING_PROJECT", 400
            )
        repository = RepositoryRepository(session).get(request.project_id)
        if repository is None:
            raise APIError("Project not found", "PROJECT_NOT_FOUND", 404)

        try:
            suggested = TodoGenerator(session, github=github).suggest_project_todos(
                repository, request.context_prompt
            )
        except Exception as exc:
            logger.warning("AI todo generation failed for %s: %s", repository.full_name, exc)
            raise APIError(
                "Failed to generate AI todos", "AI_GENERATION_FAILED", 500
            ) from exc
        items = [_item_fields(item) for item in suggested]
    else:
        if request.project_id:
            repository = RepositoryRepository(session).get(request.project_id)
        items = [_item_fields(item.model_dump()) for item in request.items]

    todo_list = TodoListRepository(session).create_with_items(
        items,
        user_id=get_single_user_id(),
        repository_id=repository.id if repository else None,
        title=request.title,
        description=request.description
        or ("AI-generated todo list based on project analysis" if request.ai_generate else None),
        status="active",
        auto_generated=request.ai_generate,
    )
    data = _todo_list_data(todo_list)
    WebhookDispatcher(session).dispatch(
        "todo.created", data, project_id=todo_list.repository_id
    )

    result: dict[str, Any] = {"todo_list": data}
    if request.ai_generate:
        result["message"] = "AI-generated todo list created successfully"
        result["ai_generated"] = True
    else:
        result["message"] = "Todo list created successfully"
    return envelope.success(result)
