"""
Slack bot: app mentions, direct messages and slash commands.

The HTTP route verifies the request and hands the parsed payload to
SlackBot. Event replies are posted back with the Web API; slash command
replies are returned as the HTTP response body.
"""

import logging
import re
from typing import Any, Optional

from sqlalchemy.orm import Session

from github_agent.agents.analyzer import RepoAnalyzer
from github_agent.agents.chat import ChatAssistant
from github_agent.agents.todo_generator import TodoGenerator
from github_agent.config import settings
from github_agent.db.repositories import RepositoryRepository, SlackSettingsRepository
from github_agent.exceptions import CredentialEncryptionError, SlackAPIError
from github_agent.integrations.slack import SlackClient
from github_agent.models.db import Repository
from github_agent.recaps.generator import RecapGenerator
from github_agent.security import decrypt_secret
from github_agent.single_user import get_single_user_id

logger = logging.getLogger(__name__)

COMMANDS = ("/repo-analyze", "/repo-todo", "/repo-recap", "/repo-chat")

_MENTION_RE = re.compile(r"<@[UW][A-Z0-9]+>")
_REPO_HINT_RE = re.compile(r"(?:repo|repository):\s*(\S+)", re.IGNORECASE)

MENTION_ERROR = (
    "I apologize, but I encountered an error processing your request. "
    "Please try again later."
)
DM_ERROR = "I encountered an error processing your message. Please try again later."
COMMAND_ERROR = "I encountered an error processing your command. Please try again later."


def slack_credentials(session: Session) -> tuple[Optional[str], Optional[str]]:
    """
    Bot token and signing secret: environment first, then the saved settings.

    Returns:
        (bot_token, signing_secret), either may be None
    """
    bot_token = settings.slack_bot_token or None
    signing_secret = settings.slack_signing_secret or None
    if bot_token and signing_secret:
        return bot_token, signing_secret

    row = SlackSettingsRepository(session).get_for_user(get_single_user_id())
    if row is not None and row.is_active:
        try:
            bot_token = bot_token or decrypt_secret(row.bot_token)
            signing_secret = signing_secret or decrypt_secret(row.signing_secret)
        except CredentialEncryptionError as e:
            logger.error("Cannot decrypt stored Slack credentials: %s", e)
    return bot_token, signing_secret


def endpoint_info() -> dict[str, Any]:
    return {
        "status": "GitHub Agent Dashboard Slack Webhook",
        "endpoints": {
            "events": "POST /api/slack/events",
            "commands": "POST /api/slack/events (form-encoded)",
        },
        "available_commands": [
            "/repo-analyze [repository-url]",
            "/repo-todo [repository-name]",
            "/repo-recap [repository-name] [date-range]",
            "/repo-chat [repository-name] [question]",
        ],
    }


def _ephemeral(text: str) -> dict[str, Any]:
    return {"response_type": "ephemeral", "text": text}


def _recap_range(text: str) -> str:
    lowered = text.lower()
    for time_range in ("quarter", "month"):
        if time_range in lowered:
            return time_range
    return "week"


class SlackBot:
    """Answers Slack events using the chat, analysis, todo and recap agents."""

    def __init__(
        self,
        session: Session,
        slack: Optional[SlackClient] = None,
        chat: Optional[ChatAssistant] = None,
        analyzer: Optional[RepoAnalyzer] = None,
        todos: Optional[TodoGenerator] = None,
        recaps: Optional[RecapGenerator] = None,
    ):
        self.session = session
        self.slack = slack
        self.chat = chat or ChatAssistant(session)
        self.analyzer = analyzer or RepoAnalyzer(session)
        self.todos = todos or TodoGenerator(session)
        self.recaps = recaps or RecapGenerator(session)
        self.repositories = RepositoryRepository(session)

    def _find_repository(self, name: str) -> Optional[Repository]:
        name = name.strip().rstrip("/")
        if "github.com/" in name:
            name = name.split("github.com/", 1)[1]
        return self.repositories.resolve(name)

    def _ask(self, message: str, repository_name: Optional[str] = None) -> str:
        repository = self._find_repository(repository_name) if repository_name else None
        if repository_name and repository is None:
            message = f"{message}\n\n(Repository: {repository_name})"
        result = self.chat.chat(message, repository_id=str(repository.id) if repository else None)
        return result.get("response") or ""

    # Events

    def handle_app_mention(self, event: dict[str, Any]) -> dict[str, Any]:
        channel, ts = event.get("channel"), event.get("ts")
        text = _MENTION_RE.sub("", event.get("text") or "").strip()
        try:
            hint = _REPO_HINT_RE.search(text)
            if hint:
                reply = self._ask(text, hint.group(1)) or (
                    "I encountered an issue processing your repository query."
                )
            elif "analyze" in text.lower() or "analysis" in text.lower():
                reply = (
                    "To analyze a repository, please specify it like this: "
                    "`repo:owner/repository-name`\n\n"
                    "For example: `@github-agent analyze repo:facebook/react`"
                )
            else:
                reply = self._ask(text) or "How can I help you with your GitHub repositories today?"
        except Exception:
            logger.exception("App mention handling failed")
            reply = MENTION_ERROR
        return {"channel": channel, "text": reply, "thread_ts": ts}

    def handle_direct_message(self, event: dict[str, Any]) -> dict[str, Any]:
        try:
            reply = self._ask(event.get("text") or "") or (
                "I apologize, but I encountered an issue. Please try again."
            )
        except Exception:
            logger.exception("Direct message handling failed")
            reply = DM_ERROR
        return {"channel": event.get("channel"), "text": reply}

    def handle_event(self, payload: dict[str, Any]) -> Optional[dict[str, Any]]:
        """
        Handle an event_callback payload and post the reply.

        Bot messages are ignored so the bot never answers itself.

        Returns:
            The message that was (or would have been) posted, if any
        """
        event = payload.get("event") or {}
        if event.get("bot_id") or event.get("subtype") == "bot_message":
            return None

        message = None
        if event.get("type") == "app_mention":
            message = self.handle_app_mention(event)
        elif event.get("type") == "message" and event.get("channel_type") == "im":
            message = self.handle_direct_message(event)
        else:
            logger.debug("Unhandled Slack event type: %s", event.get("type"))

        if message and self.slack is not None:
            try:
                self.slack.post_message(
                    message["channel"], message["text"], thread_ts=message.get("thread_ts")
                )
            except SlackAPIError as e:
                logger.error("Failed to send Slack message: %s", e)
        return message

    # Slash commands

    def _analyze_command(self, text: str) -> dict[str, Any]:
        url = text if "github.com" in text else f"https://github.com/{text}"
        repository = self._find_repository(text)
        result = self.analyzer.analyze(
            github_url=url, repository_id=str(repository.id) if repository else None
        )
        if not result["success"]:
            return _ephemeral(f"Analysis failed: {result['error']}")

        summary = result["results"].get("comprehensive_summary") or ""
        value = f"{summary[:500]}..." if summary else "Analysis completed successfully"
        return {
            "response_type": "in_channel",
            "text": f"Analysis complete for `{text}`:",
            "attachments": [
                {
                    "color": "good",
                    "fields": [{"title": "Repository Analysis", "value": value, "short": False}],
                }
            ],
        }

    def _todo_command(self, text: str) -> dict[str, Any]:
        repository = self._find_repository(text.split()[0])
        if repository is None:
            return _ephemeral(f"Repository `{text}` is not imported yet.")

        result = self.todos.generate(str(repository.id))
        if not result["success"]:
            return _ephemeral(f"Todo generation failed: {result['error']}")
        lines = [f"• [{t['priority']}] {t['title']}" for t in result["todos"][:5]]
        return {
            "response_type": "in_channel",
            "text": f"Generated {len(result['todos'])} todos for `{repository.full_name}`",
            "attachments": [{"color": "#3b82f6", "text": "\n".join(lines)}],
        }

    def _recap_command(self, text: str) -> dict[str, Any]:
        name, _, rest = text.partition(" ")
        repository = self._find_repository(name)
        if repository is None:
            return _ephemeral(f"Repository `{name}` is not imported yet.")

        recap = self.recaps.generate(repository, _recap_range(rest))
        updates = "\n".join(f"• {u}" for u in recap.key_updates)
        return {
            "response_type": "in_channel",
            "text": recap.title,
            "attachments": [
                {"color": "#3b82f6", "text": recap.summary},
                {"color": "good", "title": "Key updates", "text": updates},
            ],
        }

    def _chat_command(self, text: str) -> dict[str, Any]:
        name, _, question = text.partition(" ")
        if not question.strip():
            return _ephemeral("Please provide a question about the repository.")
        reply = self._ask(question.strip(), name)
        return {
            "response_type": "in_channel",
            "text": f"Question about `{name}`: {question.strip()}",
            "attachments": [
                {
                    "color": "#3b82f6",
                    "text": reply or "I encountered an issue answering your question.",
                }
            ],
        }

    def handle_command(self, command: str, text: str) -> dict[str, Any]:
        """
        Run a slash command.

        Args:
            command: e.g. "/repo-chat"
            text: Everything after the command

        Returns:
            Slack response body
        """
        text = (text or "").strip()
        usage = {
            "/repo-analyze": "Please provide a repository URL or name. Example: `/repo-analyze owner/repository-name`",
            "/repo-todo": "Please provide a repository name. Example: `/repo-todo owner/repository-name`",
            "/repo-recap": "Please provide a repository name and optional date range. Example: `/repo-recap owner/repository-name last week`",
            "/repo-chat": "Please provide a repository name and question. Example: `/repo-chat owner/repository-name What is the main technology stack?`",
        }
        if command not in COMMANDS:
            return _ephemeral(
                "Unknown command. Available commands: "
                + ", ".join(f"`{c}`" for c in COMMANDS)
            )
        if not text:
            return _ephemeral(usage[command])

        handlers = {
            "/repo-analyze": self._analyze_command,
            "/repo-todo": self._todo_command,
            "/repo-recap": self._recap_command,
            "/repo-chat": self._chat_command,
        }
        try:
            return handlers[command](text)
        except Exception:
            logger.exception("Slash command %s failed", command)
            return _ephemeral(COMMAND_ERROR)
