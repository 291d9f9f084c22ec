"""Slack Web API client (chat.postMessage only)."""

import logging
from typing import Any, Optional

import httpx

from github_agent.exceptions import SlackAPIError

logger = logging.getLogger(__name__)

SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"


class SlackClient:
    """Posts bot replies back to Slack."""

    def __init__(
        self,
        bot_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not bot_token:
            raise SlackAPIError("Slack bot token is not configured")
        self._client = httpx.Client(
            headers={
                "Authorization": f"Bearer {bot_token}",
                "Content-Type": "application/json; charset=utf-8",
            },
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SlackClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def post_message(
        self,
        channel: str,
        text: str,
        thread_ts: Optional[str] = None,
        attachments: Optional[list[dict[str, Any]]] = None,
    ) -> dict[str, Any]:
        """
        Send a message to a channel or DM.

        Raises:
            SlackAPIError: On transport errors or an `ok: false` reply
        """
        payload: dict[str, Any] = {"channel": channel, "text": text}
        if thread_ts:
            payload["thread_ts"] = thread_ts
        if attachments:
            payload["attachments"] = attachments

        try:
            response = self._client.post(SLACK_POST_MESSAGE_URL, json=payload)
        except httpx.HTTPError as e:
            raise SlackAPIError(f"Slack request failed: {e}") from e

        data = response.json()
        if not data.get("ok"):
            raise SlackAPIError(f"Slack API error: {data.get('error', 'unknown')}")
        return data
