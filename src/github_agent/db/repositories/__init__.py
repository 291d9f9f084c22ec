"""
Repository layer for database operations.

Provides a clean API for CRUD operations on database models.
"""

from github_agent.db.repositories.agent_execution import AgentExecutionRepository
from github_agent.db.repositories.analysis_cache import AnalysisCacheRepository
from github_agent.db.repositories.api_key import ApiKeyRepository, WebhookRepository
from github_agent.db.repositories.base import BaseRepository, coerce_uuid
from github_agent.db.repositories.conversation import (
    ConversationRepository,
    MessageRepository,
)
from github_agent.db.repositories.email_queue import EmailQueueRepository
from github_agent.db.repositories.recap import RecapRepository
from github_agent.db.repositories.report import ReportRepository
from github_agent.db.repositories.repository import RepositoryRepository
from github_agent.db.repositories.settings import (
    EmailSettingsRepository,
    EmailTemplateRepository,
    SlackSettingsRepository,
    UserRepository,
)
from github_agent.db.repositories.todo import TodoItemRepository, TodoListRepository

__all__ = [
    "AgentExecutionRepository",
    "AnalysisCacheRepository",
    "ApiKeyRepository",
    "BaseRepository",
    "ConversationRepository",
    "EmailQueueRepository",
    "EmailSettingsRepository",
    "EmailTemplateRepository",
    "MessageRepository",
    "RecapRepository",
    "ReportRepository",
    "RepositoryRepository",
    "SlackSettingsRepository",
    "TodoItemRepository",
    "TodoListRepository",
    "UserRepository",
    "WebhookRepository",
    "coerce_uuid",
]
