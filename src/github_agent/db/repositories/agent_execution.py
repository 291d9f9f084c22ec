"""
Agent execution repository.
"""

from typing import Any, Optional

from sqlalchemy.orm import Session

from github_agent.db.repositories.base import BaseRepository
from github_agent.models.db import AgentExecution


class AgentExecutionRepository(BaseRepository[AgentExecution]):
    """Repository for AgentExecution audit rows."""

    def __init__(self, session: Session):
        super().__init__(AgentExecution, session)

    def start(
        self, agent_type: str, input_data: dict[str, Any], user_id=None
    ) -> AgentExecution:
        return self.create(
            agent_type=agent_type,
            input_data=input_data,
            user_id=user_id,
            status="running",
        )

    def complete(
        self,
        execution: AgentExecution,
        output_data: dict[str, Any],
        execution_time_ms: int,
        step_count: int,
        token_usage: int = 0,
    ) -> AgentExecution:
        return self.update(
            execution,
            status="completed",
            output_data=output_data,
            execution_time=execution_time_ms,
            step_count=step_count,
            token_usage=token_usage,
        )

    def fail(
        self,
        execution: AgentExecution,
        error: str,
        execution_time_ms: Optional[int] = None,
    ) -> AgentExecution:
        return self.update(
            execution,
            status="failed",
            error_message=error,
            execution_time=execution_time_ms,
        )
