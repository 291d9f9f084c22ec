"""
Opt-in audit trail of LLM calls.

With ``LLM_LOGGING_ENABLED`` each request, response and failure becomes one
JSON line in ``<log dir>/llm/requests.log``. Failures are also reported on
the normal application logger whether or not the audit file is on.
"""

import json
import logging
import logging.handlers
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from github_agent.config import settings
from github_agent.llm.base import LLMResponse

logger = logging.getLogger(__name__)

PROMPT_PREVIEW_CHARS = 500
CONTENT_PREVIEW_CHARS = 200


def _preview(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class LLMLogger:
    """Writes request/response/error records for LLM calls."""

    def __init__(self, name: str = "github_agent.llm.calls"):
        self.audit = logging.getLogger(name)
        self._file_attached = False

    @property
    def enabled(self) -> bool:
        return settings.llm_logging_enabled

    def _attach_file(self) -> None:
        if self._file_attached or not settings.log_file_enabled:
            return
        target = settings.log_directory / "llm"
        target.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            target / "requests.log",
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        self.audit.addHandler(handler)
        self.audit.setLevel(logging.INFO)
        self.audit.propagate = False
        self._file_attached = True

    def _write(self, level: int, kind: str, call_id: str, **fields: Any) -> dict:
        record = {
            "type": kind,
            "request_id": call_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **fields,
        }
        self._attach_file()
        self.audit.log(level, json.dumps(record, default=str))
        return record

    def log_request(
        self,
        purpose: str,
        provider: str,
        model: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Record an outgoing call and return the id used to correlate its outcome."""
        call_id = f"{purpose}_{uuid.uuid4().hex[:12]}"
        if self.enabled and settings.llm_log_requests:
            self._write(
                logging.INFO,
                "request",
                call_id,
                purpose=purpose,
                provider=provider,
                model=model,
                parameters={"max_tokens": max_tokens, "temperature": temperature},
                prompt_length=len(prompt),
                prompt_preview=_preview(prompt, PROMPT_PREVIEW_CHARS),
            )
        return call_id

    def log_response(
        self,
        call_id: str,
        response: LLMResponse,
        duration_ms: float,
        cost_usd: Optional[float] = None,
    ) -> None:
        if not (self.enabled and settings.llm_log_responses):
            return
        fields: dict[str, Any] = {
            "model": response.model,
            "finish_reason": response.finish_reason,
            "duration_ms": round(duration_ms, 2),
            "content_length": len(response.content),
            "content_preview": _preview(response.content, CONTENT_PREVIEW_CHARS),
        }
        if settings.llm_log_tokens:
            fields["tokens"] = {
                "prompt": response.prompt_tokens,
                "completion": response.completion_tokens,
                "total": response.total_tokens,
            }
            if cost_usd is not None:
                fields["cost_usd"] = round(cost_usd, 6)
        self._write(logging.INFO, "response", call_id, **fields)

    def log_error(
        self, call_id: str, error: Exception, purpose: Optional[str] = None
    ) -> None:
        logger.warning("LLM call %s failed: %s", call_id, error)
        if self.enabled:
            self._write(
                logging.ERROR,
                "error",
                call_id,
                purpose=purpose,
                error_type=type(error).__name__,
                error_message=str(error),
            )


llm_logger = LLMLogger()
