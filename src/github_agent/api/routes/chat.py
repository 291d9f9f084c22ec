"""
Chat API routes.

POST /api/chat answers in one response; POST /api/chat/stream returns
newline-delimited JSON events ({"type", "data"}) as the answer is
generated.
"""

import json
import logging
from typing import Any, Iterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from github_agent.agents.chat import ChatAssistant
from github_agent.api.schemas import ChatRequest
from github_agent.db.connection import get_db

router = APIRouter()
logger = logging.getLogger(__name__)


def _validate(request: ChatRequest) -> None:
    if not request.message:
        raise HTTPException(status_code=400, detail="Message is required")
    if not request.user_id:
        raise HTTPException(status_code=400, detail="User ID is required")


@router.post("")
def chat(request: ChatRequest, session: Session = Depends(get_db)) -> dict[str, Any]:
    _validate(request)
    try:
        result = ChatAssistant(session).chat(
            request.message,
            repository_id=request.repository_id,
            conversation_id=request.conversation_id,
        )
    except Exception as exc:
        logger.exception("Chat processing failed")
        raise HTTPException(status_code=500, detail="Chat processing failed") from exc

    return {
        "success": True,
        "response": result["response"],
        "conversation_id": result["conversation_id"],
        "execution_time": result["execution_time"],
        "steps": result["steps"],
    }


@router.post("/stream")
def chat_stream(
    request: ChatRequest, session: Session = Depends(get_db)
) -> StreamingResponse:
    _validate(request)
    assistant = ChatAssistant(session)

    def events() -> Iterator[str]:
        for event in assistant.stream(
            request.message,
            repository_id=request.repository_id,
            conversation_id=request.conversation_id,
        ):
            yield json.dumps(event) + "\n"
        # The session outlives the request scope while streaming
        session.commit()

    return StreamingResponse(
        events(),
        media_type="application/x-ndjson",
        headers={"Cache-Control": "no-cache"},
    )
