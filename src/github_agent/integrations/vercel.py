"""
Vercel deployment lookup.

Used by recaps and the todo generator to tell whether a repository is
deployed and how its latest deployment went.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from github_agent.config import settings
from github_agent.db.repositories import AnalysisCacheRepository
from github_agent.exceptions import VercelAPIError
from github_agent.models.db import Repository

logger = logging.getLogger(__name__)

VERCEL_API_URL = "https://api.vercel.com"
DEPLOYMENT_CACHE_TTL = timedelta(hours=1)

NOT_DEPLOYED: dict[str, Any] = {
    "is_deployed": False,
    "platform": None,
    "url": None,
    "last_deployment": None,
}


class VercelClient:
    """HTTP client for the Vercel REST API."""

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            base_url=VERCEL_API_URL,
            headers={"Authorization": f"Bearer {token or settings.vercel_token}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "VercelClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        response = self._client.get(path, params=params)
        if response.status_code >= 400:
            raise VercelAPIError(response.status_code, response.text)
        return response.json()

    def list_projects(self) -> list[dict[str, Any]]:
        return self._get("/v9/projects").get("projects", [])

    def list_deployments(self, project_id: str, limit: int = 5) -> list[dict[str, Any]]:
        return self._get(
            "/v6/deployments", {"projectId": project_id, "limit": limit}
        ).get("deployments", [])

    def list_domains(self, project_id: str) -> list[dict[str, Any]]:
        return self._get(f"/v9/projects/{project_id}/domains").get("domains", [])


def _matches(project: dict[str, Any], repository: Repository) -> bool:
    link = project.get("link") or {}
    linked = f"{link.get('org') or link.get('owner', '')}/{link.get('repo', '')}"
    if link.get("repo") and linked.lower() == repository.full_name.lower():
        return True
    return (project.get("name") or "").lower() == repository.name.lower()


def lookup_deployment(client: VercelClient, repository: Repository) -> dict[str, Any]:
    """
    Find the Vercel project for a repository and summarize its deployments.

    Returns:
        {is_deployed, platform, url, last_deployment{date, status, url}}
    """
    project = next(
        (p for p in client.list_projects() if _matches(p, repository)), None
    )
    if project is None:
        return dict(NOT_DEPLOYED)

    deployments = client.list_deployments(project["id"])
    domains = client.list_domains(project["id"])

    url = None
    if domains:
        url = f"https://{domains[0]['name']}"
    elif deployments and deployments[0].get("url"):
        url = f"https://{deployments[0]['url']}"

    last_deployment = None
    if deployments:
        latest = deployments[0]
        created = latest.get("created") or latest.get("createdAt")
        last_deployment = {
            "date": (
                datetime.fromtimestamp(created / 1000, tz=timezone.utc).isoformat()
                if created
                else None
            ),
            "status": latest.get("state") or latest.get("readyState"),
            "url": f"https://{latest['url']}" if latest.get("url") else None,
        }

    return {
        "is_deployed": bool(deployments),
        "platform": "Vercel",
        "url": url,
        "last_deployment": last_deployment,
    }


def get_deployment_info(
    session: Session,
    repository: Repository,
    client: Optional[VercelClient] = None,
) -> dict[str, Any]:
    """
    Cached deployment status for a repository.

    Any Vercel failure is logged and reported as "not deployed".
    """
    cache = AnalysisCacheRepository(session)
    cached = cache.get_valid(repository.id, "deployment")
    if cached is not None:
        return cached

    if client is None and not settings.vercel_token:
        return dict(NOT_DEPLOYED)

    owns_client = client is None
    client = client or VercelClient()
    try:
        info = lookup_deployment(client, repository)
    except (VercelAPIError, httpx.HTTPError) as e:
        logger.warning("Vercel lookup failed for %s: %s", repository.full_name, e)
        return dict(NOT_DEPLOYED)
    finally:
        if owns_client:
            client.close()

    cache.set(repository.id, "deployment", info, DEPLOYMENT_CACHE_TTL)
    return info
