"""
Tests for the LLM providers, price lookup and call logging.
"""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from github_agent.config import settings
from github_agent.exceptions import LLMNotConfiguredError
from github_agent.llm import create_provider, get_default_provider, is_llm_configured
from github_agent.llm.anthropic_provider import JSON_ONLY, AnthropicProvider
from github_agent.llm.base import TokenPrice, lookup_price
from github_agent.llm.llm_logger import LLMLogger
from github_agent.llm.openai_provider import OpenAIProvider


def openai_completion(content: str = "done") -> SimpleNamespace:
    return SimpleNamespace(
        choices=[
            SimpleNamespace(
                message=SimpleNamespace(content=content), finish_reason="stop"
            )
        ],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=8, total_tokens=20),
        model="gpt-4o-2024-08-06",
    )


class TestLookupPrice:
    TABLE = {
        "gpt-4o-mini": TokenPrice(0.15, 0.60),
        "gpt-4o": TokenPrice(2.50, 10.00),
        "claude-3-5-haiku-20241022": TokenPrice(0.80, 4.00),
    }
    DEFAULT = TokenPrice(1.0, 1.0)

    def test_exact_name(self):
        assert lookup_price("gpt-4o", self.TABLE, self.DEFAULT).input == 2.50

    def test_snapshot_of_known_model(self):
        assert lookup_price("gpt-4o-2024-08-06", self.TABLE, self.DEFAULT).input == 2.50
        mini = lookup_price("gpt-4o-mini-2024-07-18", self.TABLE, self.DEFAULT)
        assert mini.input == 0.15

    def test_other_dated_snapshot(self):
        price = lookup_price("claude-3-5-haiku-20250101", self.TABLE, self.DEFAULT)

        assert price == TokenPrice(0.80, 4.00)

    def test_unknown_model(self):
        assert lookup_price("mystery", self.TABLE, self.DEFAULT) is self.DEFAULT


class TestOpenAIProvider:
    def test_requires_key(self):
        with pytest.raises(ValueError):
            OpenAIProvider(api_key="")

    def test_complete(self):
        client = MagicMock()
        client.chat.completions.create.return_value = openai_completion("hello")
        provider = OpenAIProvider(api_key="sk-test", client=client)

        response = provider.complete("system", "user", max_tokens=50)

        assert response.content == "hello"
        assert response.total_tokens == 20
        assert response.model == "gpt-4o-2024-08-06"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert kwargs["max_tokens"] == 50
        assert "response_format" not in kwargs

    def test_json_mode(self):
        client = MagicMock()
        client.chat.completions.create.return_value = openai_completion("{}")
        provider = OpenAIProvider(api_key="sk-test", client=client)

        provider.complete("system", "user", json_schema={"type": "object"})

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}

    def test_stream_skips_empty_deltas(self):
        def chunk(text):
            delta = SimpleNamespace(content=text)
            return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])

        client = MagicMock()
        client.chat.completions.create.return_value = iter(
            [chunk("Hel"), chunk(None), SimpleNamespace(choices=[]), chunk("lo")]
        )
        provider = OpenAIProvider(api_key="sk-test", client=client)

        assert list(provider.stream("system", "user")) == ["Hel", "lo"]
        assert client.chat.completions.create.call_args.kwargs["stream"] is True

    def test_cost(self):
        provider = OpenAIProvider(api_key="sk-test", model="gpt-4o", client=MagicMock())

        assert provider.calculate_cost(1_000_000, 1_000_000) == pytest.approx(12.5)


class TestAnthropicProvider:
    def test_complete_joins_text_blocks(self):
        client = MagicMock()
        client.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(text="Hello "),
                SimpleNamespace(type="tool_use"),
                SimpleNamespace(text="there"),
            ],
            usage=SimpleNamespace(input_tokens=7, output_tokens=3),
            stop_reason="end_turn",
            model="claude-sonnet-4-5-20250514",
        )
        provider = AnthropicProvider(api_key="sk-ant", client=client)

        response = provider.complete("system", "user", json_schema={})

        assert response.content == "Hello there"
        assert response.total_tokens == 10
        assert response.finish_reason == "end_turn"
        assert client.messages.create.call_args.kwargs["system"] == "system" + JSON_ONLY

    def test_stream(self):
        client = MagicMock()
        events = client.messages.stream.return_value.__enter__.return_value
        events.text_stream = ["a", "b"]
        provider = AnthropicProvider(api_key="sk-ant", client=client)

        assert list(provider.stream("system", "user")) == ["a", "b"]

    def test_unknown_model_uses_default_price(self):
        provider = AnthropicProvider(
            api_key="sk-ant", model="claude-x", client=MagicMock()
        )

        assert provider.calculate_cost(1_000_000, 0) == pytest.approx(3.0)


class TestProviderFactory:
    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider type"):
            create_provider("cohere", "key")  # type: ignore[arg-type]

    def test_missing_key(self):
        with pytest.raises(ValueError, match="API key is required"):
            create_provider("openai", "")

    def test_default_provider_requires_key(self, monkeypatch):
        monkeypatch.setattr(settings, "llm_provider", "openai")
        monkeypatch.setattr(settings, "openai_api_key", "")

        assert not is_llm_configured()
        with pytest.raises(LLMNotConfiguredError):
            get_default_provider()

    def test_anthropic_selected(self, monkeypatch):
        monkeypatch.setattr(settings, "llm_provider", "anthropic")
        monkeypatch.setattr(settings, "anthropic_api_key", "sk-ant")

        with patch("github_agent.llm.anthropic_provider.Anthropic"):
            provider = get_default_provider()

        assert provider.provider_name == "anthropic"
        assert provider.model_name == settings.anthropic_model


class TestCallLogging:
    @pytest.fixture
    def audit_log(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "llm_logging_enabled", True)
        monkeypatch.setattr(settings, "log_file_enabled", True)
        monkeypatch.setattr(settings, "log_dir", str(tmp_path))
        call_logger = LLMLogger(name=f"test.llm.{tmp_path.name}")
        with patch("github_agent.llm.llm_logger.llm_logger", call_logger):
            yield tmp_path / "llm" / "requests.log"
        for handler in call_logger.audit.handlers:
            handler.close()

    def test_generate_writes_request_and_response(self, audit_log, fake_llm):
        fake_llm.generate("recap", "system", "user")

        records = [json.loads(line) for line in audit_log.read_text().splitlines()]
        assert [r["type"] for r in records] == ["request", "response"]
        assert records[0]["purpose"] == "recap"
        assert records[0]["request_id"] == records[1]["request_id"]
        assert records[1]["tokens"]["total"] == 30

    def test_generate_logs_and_reraises_errors(self, audit_log, fake_llm):
        fake_llm.error = RuntimeError("quota exceeded")

        with pytest.raises(RuntimeError):
            fake_llm.generate("chat", "system", "user")

        records = [json.loads(line) for line in audit_log.read_text().splitlines()]
        assert records[-1]["type"] == "error"
        assert records[-1]["error_message"] == "quota exceeded"

    def test_disabled_writes_nothing(self, monkeypatch, tmp_path, fake_llm):
        monkeypatch.setattr(settings, "log_dir", str(tmp_path))

        fake_llm.generate("todos", "system", "user")

        assert not (tmp_path / "llm").exists()
