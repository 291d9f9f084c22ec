"""
API routes for the GitHub Agent dashboard.
"""

from github_agent.api.routes import (
    activities,
    api_keys,
    chat,
    integrations,
    login,
    recaps,
    reports,
    repositories,
    settings,
    slack,
    todos,
)

__all__ = [
    "activities",
    "api_keys",
    "chat",
    "integrations",
    "login",
    "recaps",
    "reports",
    "repositories",
    "settings",
    "slack",
    "todos",
]
