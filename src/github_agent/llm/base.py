"""Provider interface shared by the OpenAI and Anthropic clients."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator, NamedTuple


@dataclass
class LLMResponse:
    """One completed model call.

    ``model`` is what the API reports back, which may be a dated variant of
    the requested name. ``raw_response`` keeps the SDK object for debugging.
    """

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    finish_reason: str
    model: str
    duration_ms: float
    raw_response: Any = None


class TokenPrice(NamedTuple):
    """USD per million tokens."""

    input: float
    output: float


def lookup_price(
    model: str, table: dict[str, TokenPrice], default: TokenPrice
) -> TokenPrice:
    """Exact model name, else the longest matching family, else `default`.

    Dated names ("claude-3-5-haiku-20241022") also match other snapshots
    of the same family.
    """
    if model in table:
        return table[model]
    for name in sorted(table, key=len, reverse=True):
        head, _, tail = name.rpartition("-")
        family = head if tail.isdigit() else name
        if model.startswith(family):
            return table[name]
    return default


class LLMProvider(ABC):
    """A chat model behind a system prompt + user prompt interface."""

    pricing: dict[str, TokenPrice] = {}
    default_price = TokenPrice(0.0, 0.0)

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @property
    @abstractmethod
    def model_name(self) -> str: ...

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.3,
        json_schema: dict[str, Any] | None = None,
    ) -> LLMResponse:
        """Single blocking completion.

        A non-None ``json_schema`` asks the provider for a JSON-only answer;
        the schema itself is advisory.
        """

    @abstractmethod
    def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.3,
    ) -> Iterator[str]:
        """Yield text deltas as they arrive."""

    def calculate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        price = lookup_price(self.model_name, self.pricing, self.default_price)
        spent = prompt_tokens * price.input + completion_tokens * price.output
        return spent / 1_000_000

    def generate(
        self,
        purpose: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.3,
        json_schema: dict[str, Any] | None = None,
    ) -> LLMResponse:
        """`complete`, recorded in the LLM call log under ``purpose``.

        Provider errors are logged and re-raised unchanged.
        """
        from github_agent.llm.llm_logger import llm_logger

        call_id = llm_logger.log_request(
            purpose=purpose,
            provider=self.provider_name,
            model=self.model_name,
            prompt=f"{system_prompt}\n\n{user_prompt}",
            max_tokens=max_tokens,
            temperature=temperature,
        )
        started = time.perf_counter()
        try:
            response = self.complete(
                system_prompt,
                user_prompt,
                max_tokens=max_tokens,
                temperature=temperature,
                json_schema=json_schema,
            )
        except Exception as e:
            llm_logger.log_error(call_id, e, purpose=purpose)
            raise

        llm_logger.log_response(
            call_id,
            response,
            duration_ms=(time.perf_counter() - started) * 1000,
            cost_usd=self.calculate_cost(
                response.prompt_tokens, response.completion_tokens
            ),
        )
        return response
