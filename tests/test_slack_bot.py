"""
Tests for the Slack bot and Slack Web API client.
"""

from unittest.mock import MagicMock

import httpx
import pytest

from github_agent.agents.analyzer import RepoAnalyzer
from github_agent.agents.chat import ChatAssistant
from github_agent.agents.todo_generator import TodoGenerator
from github_agent.exceptions import SlackAPIError
from github_agent.integrations.slack import SlackClient
from github_agent.models.db import SlackSettings
from github_agent.recaps.generator import RecapGenerator
from github_agent.security import encrypt_secret
from github_agent.single_user import get_single_user_id
from github_agent.slack_bot import (
    COMMAND_ERROR,
    SlackBot,
    endpoint_info,
    slack_credentials,
)


@pytest.fixture
def slack():
    return MagicMock()


@pytest.fixture
def bot(db_session, fake_github, fake_llm, slack):
    return SlackBot(
        db_session,
        slack=slack,
        chat=ChatAssistant(db_session, llm=fake_llm),
        analyzer=RepoAnalyzer(db_session, github=fake_github, llm=fake_llm),
        todos=TodoGenerator(db_session, github=fake_github),
        recaps=RecapGenerator(db_session, github=fake_github),
    )


class TestCredentials:
    def test_nothing_configured(self, db_session):
        assert slack_credentials(db_session) == (None, None)

    def test_saved_settings(self, db_session):
        db_session.add(
            SlackSettings(
                user_id=get_single_user_id(),
                bot_token=encrypt_secret("xoxb-saved"),
                signing_secret=encrypt_secret("signing-saved"),
                is_active=True,
            )
        )
        db_session.flush()

        assert slack_credentials(db_session) == ("xoxb-saved", "signing-saved")

    def test_inactive_settings_are_ignored(self, db_session):
        db_session.add(
            SlackSettings(
                user_id=get_single_user_id(),
                bot_token=encrypt_secret("xoxb-saved"),
                is_active=False,
            )
        )
        db_session.flush()

        assert slack_credentials(db_session) == (None, None)


def test_endpoint_info_lists_commands():
    info = endpoint_info()

    assert info["endpoints"]["events"] == "POST /api/slack/events"
    assert len(info["available_commands"]) == 4


class TestEvents:
    """Tests for app mentions and direct messages."""

    def test_bot_messages_are_ignored(self, bot, slack):
        payload = {"event": {"type": "message", "bot_id": "B1", "text": "hi"}}

        assert bot.handle_event(payload) is None
        slack.post_message.assert_not_called()

    def test_app_mention_with_repository(self, bot, slack, sample_repository, fake_llm):
        payload = {
            "event": {
                "type": "app_mention",
                "channel": "C1",
                "ts": "1700000000.0001",
                "text": "<@U123ABC> repo:octocat/hello-world what does it do?",
            }
        }

        message = bot.handle_event(payload)

        assert message == {
            "channel": "C1",
            "text": "This is a fake response.",
            "thread_ts": "1700000000.0001",
        }
        slack.post_message.assert_called_once_with(
            "C1", "This is a fake response.", thread_ts="1700000000.0001"
        )
        assert "Repository: octocat/hello-world" in fake_llm.prompts[0]["user"]

    def test_app_mention_asking_for_analysis(self, bot):
        message = bot.handle_event(
            {"event": {"type": "app_mention", "channel": "C1", "text": "<@U1> analyze this"}}
        )

        assert message["text"].startswith("To analyze a repository, please specify it")

    def test_unknown_repository_is_mentioned_in_prompt(self, bot, fake_llm):
        bot.handle_event(
            {"event": {"type": "app_mention", "channel": "C1", "text": "repo:acme/rocket status?"}}
        )

        assert "(Repository: acme/rocket)" in fake_llm.prompts[0]["user"]

    def test_direct_message(self, bot, slack):
        message = bot.handle_event(
            {"event": {"type": "message", "channel_type": "im", "channel": "D1", "text": "hi"}}
        )

        assert message == {"channel": "D1", "text": "This is a fake response."}
        slack.post_message.assert_called_once()

    def test_post_failure_is_logged(self, bot, slack):
        slack.post_message.side_effect = SlackAPIError("channel_not_found")

        message = bot.handle_event(
            {"event": {"type": "message", "channel_type": "im", "channel": "D1", "text": "hi"}}
        )

        assert message["text"] == "This is a fake response."

    def test_other_events_are_ignored(self, bot, slack):
        assert bot.handle_event({"event": {"type": "reaction_added"}}) is None
        slack.post_message.assert_not_called()


class TestCommands:
    """Tests for slash commands."""

    def test_unknown_command(self, bot):
        response = bot.handle_command("/deploy", "now")

        assert response["response_type"] == "ephemeral"
        assert response["text"].startswith("Unknown command.")

    def test_usage_without_text(self, bot):
        response = bot.handle_command("/repo-todo", "  ")

        assert response["text"].startswith("Please provide a repository name.")

    def test_chat_requires_question(self, bot):
        response = bot.handle_command("/repo-chat", "hello-world")

        assert response == {
            "response_type": "ephemeral",
            "text": "Please provide a question about the repository.",
        }

    def test_chat(self, bot, sample_repository):
        response = bot.handle_command("/repo-chat", "hello-world What is the stack?")

        assert response["response_type"] == "in_channel"
        assert response["text"] == "Question about `hello-world`: What is the stack?"
        assert response["attachments"][0]["text"] == "This is a fake response."

    def test_todo_unknown_repository(self, bot):
        response = bot.handle_command("/repo-todo", "acme/rocket")

        assert response["text"] == "Repository `acme/rocket` is not imported yet."

    def test_todo(self, bot, sample_repository):
        response = bot.handle_command("/repo-todo", "octocat/hello-world")

        assert response["text"] == "Generated 2 todos for `octocat/hello-world`"
        assert response["attachments"][0]["text"].startswith(
            "• [high] Review and test recent bug fixes"
        )

    def test_recap(self, bot, sample_repository):
        response = bot.handle_command("/repo-recap", "hello-world last month")

        assert response["text"] == "Monthly Update - hello-world"
        assert response["attachments"][1]["title"] == "Key updates"

    def test_analyze(self, bot, sample_repository):
        response = bot.handle_command("/repo-analyze", "octocat/hello-world")

        assert response["response_type"] == "in_channel"
        assert response["text"] == "Analysis complete for `octocat/hello-world`:"
        assert response["attachments"][0]["fields"][0]["value"] == (
            "This is a fake response...."
        )

    def test_failures_become_ephemeral(self, db_session, sample_repository):
        chat = MagicMock()
        chat.chat.side_effect = RuntimeError("boom")
        bot = SlackBot(
            db_session,
            chat=chat,
            analyzer=MagicMock(),
            todos=MagicMock(),
            recaps=MagicMock(),
        )

        response = bot.handle_command("/repo-chat", "hello-world why?")

        assert response == {"response_type": "ephemeral", "text": COMMAND_ERROR}


class TestSlackClient:
    def test_requires_token(self):
        with pytest.raises(SlackAPIError):
            SlackClient("")

    def test_post_message(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"ok": True, "ts": "1.2"})

        with SlackClient("xoxb-1", transport=httpx.MockTransport(handler)) as client:
            data = client.post_message("C1", "hello", thread_ts="1.0")

        assert data["ts"] == "1.2"
        assert requests[0].headers["Authorization"] == "Bearer xoxb-1"
        assert b'"thread_ts":"1.0"' in requests[0].content.replace(b" ", b"")

    def test_api_error(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"ok": False, "error": "not_in_channel"})
        )

        with SlackClient("xoxb-1", transport=transport) as client:
            with pytest.raises(SlackAPIError, match="not_in_channel"):
                client.post_message("C1", "hello")
