"""
/api/v1/ai/chat: single-response chat with the repository assistant.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from github_agent.agents.chat import ChatAssistant
from github_agent.api import envelope
from github_agent.api.auth import require_api_key
from github_agent.api.schemas import V1ChatRequest
from github_agent.db.connection import get_db
from github_agent.db.repositories import coerce_uuid
from github_agent.exceptions import APIError
from github_agent.llm import configured_model, get_default_provider, is_llm_configured
from github_agent.webhooks import WebhookDispatcher

router = APIRouter(dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)


@router.post("/chat")
def chat(request: V1ChatRequest, session: Session = Depends(get_db)) -> dict[str, Any]:
    if not request.message:
        raise APIError("message is required", "MISSING_MESSAGE", 400)
    if request.stream:
        raise APIError(
            "Streaming not supported in this endpoint. "
            "Use /api/chat/stream for streaming responses.",
            "STREAMING_NOT_SUPPORTED",
            400,
        )

    model = request.model or configured_model()
    message = request.message
    if request.context:
        message = f"{message}\n\nAdditional context: {request.context}"

    try:
        llm = get_default_provider(model) if is_llm_configured() else None
        result = ChatAssistant(session, llm=llm).chat(
            message,
            repository_id=request.project_id,
            conversation_id=request.conversation_id,
            temperature=request.temperature,
        )
    except Exception as exc:
        logger.exception("API chat failed")
        raise APIError("AI chat processing failed", "AI_PROCESSING_ERROR", 500) from exc

    data = {
        "response": result["response"],
        "conversation_id": result["conversation_id"],
        "execution_time": result["execution_time"],
        "steps": result["steps"],
        "model_used": model,
        "temperature_used": request.temperature,
    }
    WebhookDispatcher(session).dispatch(
        "ai.chat.completed",
        {"conversation_id": data["conversation_id"], "model_used": model},
        project_id=coerce_uuid(request.project_id),
    )
    return envelope.success(data)
