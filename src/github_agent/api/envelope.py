"""
Response envelopes for the versioned API.
"""

from datetime import datetime, timezone
from typing import Any

from github_agent.api.auth import API_VERSION


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def success(data: Any) -> dict[str, Any]:
    return {
        "success": True,
        "data": data,
        "timestamp": _timestamp(),
        "api_version": API_VERSION,
    }


def failure(message: str, code: str, status: int) -> dict[str, Any]:
    return {
        "success": False,
        "error": {"message": message, "code": code, "status": status},
        "timestamp": _timestamp(),
        "api_version": API_VERSION,
    }
