"""Chat Completions client."""

import logging
import time
from typing import Any, Iterator

from openai import OpenAI

from github_agent.llm.base import LLMProvider, LLMResponse, TokenPrice

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "gpt-4o"

OPENAI_PRICING = {
    "gpt-4o-mini": TokenPrice(0.15, 0.60),
    "gpt-4o": TokenPrice(2.50, 10.00),
    "gpt-4-turbo": TokenPrice(10.00, 30.00),
}


def _messages(system_prompt: str, user_prompt: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


class OpenAIProvider(LLMProvider):
    """OpenAI models; JSON requests use ``response_format=json_object``."""

    pricing = OPENAI_PRICING
    default_price = OPENAI_PRICING["gpt-4o"]

    def __init__(
        self, api_key: str, model: str = DEFAULT_OPENAI_MODEL, client: Any = None
    ):
        if not api_key:
            raise ValueError("OpenAI API key is required")
        self.client = client or OpenAI(api_key=api_key)
        self._model = model
        logger.info("OpenAI provider ready (model=%s)", model)

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.3,
        json_schema: dict[str, Any] | None = None,
    ) -> LLMResponse:
        extra: dict[str, Any] = {}
        if json_schema is not None:
            extra["response_format"] = {"type": "json_object"}

        started = time.perf_counter()
        response = self.client.chat.completions.create(
            model=self._model,
            messages=_messages(system_prompt, user_prompt),
            max_tokens=max_tokens,
            temperature=temperature,
            **extra,
        )
        elapsed = (time.perf_counter() - started) * 1000

        choice = response.choices[0]
        usage = response.usage
        return LLMResponse(
            content=choice.message.content or "",
            prompt_tokens=getattr(usage, "prompt_tokens", 0),
            completion_tokens=getattr(usage, "completion_tokens", 0),
            total_tokens=getattr(usage, "total_tokens", 0),
            finish_reason=choice.finish_reason or "unknown",
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
        chunks = self.client.chat.completions.create(
            model=self._model,
            messages=_messages(system_prompt, user_prompt),
            max_tokens=max_tokens,
            temperature=temperature,
            stream=True,
        )
        for chunk in chunks:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content
