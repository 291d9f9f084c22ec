"""Messages API client."""

import logging
import time
from typing import Any, Iterator

from anthropic import Anthropic

from github_agent.llm.base import LLMProvider, LLMResponse, TokenPrice

logger = logging.getLogger(__name__)

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-5-20250514"

ANTHROPIC_PRICING = {
    "claude-sonnet-4-5-20250514": TokenPrice(3.00, 15.00),
    "claude-opus-4-1-20250410": TokenPrice(15.00, 75.00),
    "claude-3-5-haiku-20241022": TokenPrice(0.80, 4.00),
    "claude-3-5-sonnet-20241022": TokenPrice(3.00, 15.00),
}

# The Messages API has no JSON mode
JSON_ONLY = (
    "\n\nRespond with a single valid JSON value and nothing else: "
    "no markdown fences, no commentary."
)


class AnthropicProvider(LLMProvider):
    """Claude models."""

    pricing = ANTHROPIC_PRICING
    default_price = TokenPrice(3.00, 15.00)

    def __init__(
        self, api_key: str, model: str = DEFAULT_ANTHROPIC_MODEL, client: Any = None
    ):
        if not api_key:
            raise ValueError("Anthropic API key is required")
        self.client = client or Anthropic(api_key=api_key)
        self._model = model
        logger.info("Anthropic provider ready (model=%s)", model)

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def model_name(self) -> str:
        return self._model

    def _request(
        self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float
    ) -> dict[str, Any]:
        return {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.3,
        json_schema: dict[str, Any] | None = None,
    ) -> LLMResponse:
        if json_schema is not None:
            system_prompt += JSON_ONLY

        started = time.perf_counter()
        response = self.client.messages.create(
            **self._request(system_prompt, user_prompt, max_tokens, temperature)
        )
        elapsed = (time.perf_counter() - started) * 1000

        text = "".join(getattr(block, "text", "") for block in response.content)
        input_tokens = getattr(response.usage, "input_tokens", 0)
        output_tokens = getattr(response.usage, "output_tokens", 0)
        return LLMResponse(
            content=text,
            prompt_tokens=input_tokens,
            completion_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            finish_reason=response.stop_reason or "unknown",
            model=response.model,
            duration_ms=elapsed,
            raw_response=response,
        )

    def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.3,
    ) -> Iterator[str]:
        request = self._request(system_prompt, user_prompt, max_tokens, temperature)
        with self.client.messages.stream(**request) as events:
            yield from events.text_stream
