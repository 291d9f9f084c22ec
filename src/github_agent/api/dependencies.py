"""
Shared FastAPI dependencies.
"""

from typing import Generator

from github_agent.integrations.github import GitHubClient


def get_github_client() -> Generator[GitHubClient, None, None]:
    """GitHub client for one request, closed afterwards."""
    client = GitHubClient()
    try:
        yield client
    finally:
        client.close()
