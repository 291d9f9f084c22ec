"""
Recent activity feed for the dashboard.

Merges recently imported or analyzed repositories, todo lists and recaps
into one list, newest first.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from github_agent.db.connection import get_db
from github_agent.db.repositories import (
    RecapRepository,
    RepositoryRepository,
    TodoListRepository,
)

router = APIRouter()

RECENT_REPOSITORIES = 5
RECENT_TODO_LISTS = 3
RECENT_RECAPS = 3


def _activity(
    activity_id: str,
    kind: str,
    title: str,
    description: str,
    repository: str | None,
    timestamp: datetime,
    icon: str,
) -> dict[str, Any]:
    return {
        "id": activity_id,
        "type": kind,
        "title": title,
        "description": description,
        "repository": repository,
        "timestamp": timestamp,
        "icon": icon,
    }


@router.get("")
def list_activities(
    limit: int = Query(default=10, ge=1, le=100),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    activities = []

    for repo in RepositoryRepository(session).list_recent(RECENT_REPOSITORIES):
        activities.append(
            _activity(
                f"repo-{repo.id}",
                "repository",
                "Repository Imported",
                f"{repo.full_name} added to dashboard",
                repo.name,
                repo.created_at,
                "github",
            )
        )
        if repo.last_analyzed:
            activities.append(
                _activity(
                    f"analysis-{repo.id}",
                    "analysis",
                    "Repository Analysis Completed",
                    f"AI analysis finished for {repo.name}",
                    repo.name,
                    repo.last_analyzed,
                    "sparkles",
                )
            )

    for todo_list in TodoListRepository(session).list_recent(RECENT_TODO_LISTS):
        activities.append(
            _activity(
                f"todo-{todo_list.id}",
                "todo",
                "Todo List Created",
                todo_list.title,
                todo_list.repository.name if todo_list.repository else None,
                todo_list.created_at,
                "list-todo",
            )
        )

    for recap in RecapRepository(session).list_recent(RECENT_RECAPS):
        name = recap.repository.name if recap.repository else None
        activities.append(
            _activity(
                f"recap-{recap.id}",
                "recap",
                "Recap Generated",
                f"{recap.period}ly summary for {name}",
                name,
                recap.created_at,
                "bar-chart",
            )
        )

    activities.sort(key=lambda a: a["timestamp"], reverse=True)
    for activity in activities:
        activity["timestamp"] = activity["timestamp"].isoformat()
    return {"success": True, "activities": activities[:limit]}
