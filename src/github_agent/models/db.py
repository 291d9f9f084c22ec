"""
SQLAlchemy database models for GitHub Agent.

These models represent the database schema for imported repositories and
everything generated about them: conversations, todo lists, recaps,
reports and the email/Slack/API-key settings of the single user.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class User(Base, TimestampMixin):
    """The single owner of this deployment."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    github_username: Mapped[Optional[str]] = mapped_column(String(255))
    name: Mapped[Optional[str]] = mapped_column(String(255))

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"


class Repository(Base, TimestampMixin):
    """GitHub repository imported into the dashboard."""

    __tablename__ = "repositories"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE")
    )
    github_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    private: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    html_url: Mapped[str] = mapped_column(Text, nullable=False)
    clone_url: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[Optional[str]] = mapped_column(String(100))
    languages: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    topics: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    stars: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    forks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    open_issues: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    default_branch: Mapped[str] = mapped_column(
        String(100), default="main", nullable=False
    )
    last_commit_sha: Mapped[Optional[str]] = mapped_column(String(40))
    last_commit_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )
    tech_stack: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    analysis_summary: Mapped[Optional[str]] = mapped_column(Text)
    last_analyzed: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    todo_lists: Mapped[list["TodoList"]] = relationship(
        back_populates="repository", cascade="all, delete-orphan"
    )
    recaps: Mapped[list["Recap"]] = relationship(
        back_populates="repository", cascade="all, delete-orphan"
    )
    conversations: Mapped[list["Conversation"]] = relationship(
        back_populates="repository", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_repositories_user_id", "user_id"),
        Index("idx_repositories_is_active", "is_active"),
    )

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    def __repr__(self) -> str:
        return f"<Repository(id={self.id}, full_name={self.full_name})>"


class Conversation(Base, TimestampMixin):
    """Chat conversation about a repository."""

    __tablename__ = "conversations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE")
    )
    repository_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("repositories.id", ondelete="CASCADE")
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    context: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)

    repository: Mapped[Optional["Repository"]] = relationship(
        back_populates="conversations"
    )
    messages: Mapped[list["Message"]] = relationship(
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )


class Message(Base):
    """Single chat message."""

    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(50), nullable=False)  # user/assistant/system
    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_metadata: Mapped[dict] = mapped_column(
        "metadata", JSONB, default=dict, nullable=False
    )
    token_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    conversation: Mapped["Conversation"] = relationship(back_populates="messages")

    __table_args__ = (Index("idx_messages_conversation_id", "conversation_id"),)


class TodoList(Base, TimestampMixin):
    """Todo list, manually created or AI generated."""

    __tablename__ = "todo_lists"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE")
    )
    repository_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("repositories.id", ondelete="CASCADE")
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    priority: Mapped[str] = mapped_column(String(50), default="medium", nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="active", nullable=False)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    auto_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    repository: Mapped[Optional["Repository"]] = relationship(
        back_populates="todo_lists"
    )
    items: Mapped[list["TodoItem"]] = relationship(
        back_populates="todo_list",
        cascade="all, delete-orphan",
        order_by="TodoItem.created_at",
    )

    __table_args__ = (Index("idx_todo_lists_repository_id", "repository_id"),)


class TodoItem(Base, TimestampMixin):
    """Individual task within a todo list."""

    __tablename__ = "todo_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    todo_list_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("todo_lists.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="pending", nullable=False)
    priority: Mapped[str] = mapped_column(String(50), default="medium", nullable=False)
    assignee: Mapped[Optional[str]] = mapped_column(String(255))
    labels: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    github_issue_url: Mapped[Optional[str]] = mapped_column(Text)
    estimated_hours: Mapped[Optional[int]] = mapped_column(Integer)
    actual_hours: Mapped[Optional[int]] = mapped_column(Integer)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    todo_list: Mapped["TodoList"] = relationship(back_populates="items")

    __table_args__ = (Index("idx_todo_items_todo_list_id", "todo_list_id"),)


class Recap(Base, TimestampMixin):
    """Generated summary of repository activity over a time window."""

    __tablename__ = "recaps"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE")
    )
    repository_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("repositories.id", ondelete="CASCADE")
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    period: Mapped[Optional[str]] = mapped_column(String(50))
    key_updates: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    action_items: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    metrics: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    date_range: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    tech_changes: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    next_steps: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    generated_by: Mapped[str] = mapped_column(String(50), default="ai", nullable=False)
    meeting_ready: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    period_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    repository: Mapped[Optional["Repository"]] = relationship(back_populates="recaps")

    __table_args__ = (Index("idx_recaps_repository_id", "repository_id"),)


class AgentExecution(Base, TimestampMixin):
    """Audit row for one run of an AI agent (analyzer, todo generator, recaps)."""

    __tablename__ = "agent_executions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE")
    )
    conversation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("conversations.id", ondelete="CASCADE")
    )
    agent_type: Mapped[str] = mapped_column(String(100), nullable=False)
    graph_state: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    input_data: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    output_data: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="running", nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    step_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    token_usage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    execution_time: Mapped[Optional[int]] = mapped_column(Integer)  # milliseconds

    __table_args__ = (Index("idx_agent_executions_status", "status"),)


class AnalysisCache(Base):
    """TTL cache of analysis results keyed by repository, type and key."""

    __tablename__ = "analysis_cache"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    repository_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    analysis_type: Mapped[str] = mapped_column(String(100), nullable=False)
    cache_key: Mapped[str] = mapped_column(String(255), nullable=False)
    cached_data: Mapped[dict] = mapped_column(JSONB, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "repository_id", "analysis_type", "cache_key", name="uq_analysis_cache_key"
        ),
        Index("idx_analysis_cache_expires_at", "expires_at"),
    )


class EmailSettings(Base, TimestampMixin):
    """SMTP and branding configuration for report emails."""

    __tablename__ = "email_settings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    smtp_host: Mapped[str] = mapped_column(
        String(255), default="smtp.gmail.com", nullable=False
    )
    smtp_port: Mapped[int] = mapped_column(Integer, default=587, nullable=False)
    smtp_secure: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    smtp_user: Mapped[str] = mapped_column(String(255), nullable=False)
    smtp_password: Mapped[str] = mapped_column(Text, nullable=False)  # Encrypted
    sender_name: Mapped[str] = mapped_column(
        String(255), default="GitHub Helper", nullable=False
    )
    sender_email: Mapped[str] = mapped_column(String(255), nullable=False)
    logo_url: Mapped[Optional[str]] = mapped_column(String(500), default="/whitelogo.png")
    company_name: Mapped[Optional[str]] = mapped_column(
        String(255), default="GitHub Helper"
    )
    primary_color: Mapped[Optional[str]] = mapped_column(String(7), default="#3b82f6")


class EmailTemplate(Base, TimestampMixin):
    """Stored email template (Handlebars-style placeholders)."""

    __tablename__ = "email_templates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    html_content: Mapped[str] = mapped_column(Text, nullable=False)
    text_content: Mapped[Optional[str]] = mapped_column(Text)
    variables: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (Index("idx_email_templates_type", "type"),)


class RepositoryReport(Base, TimestampMixin):
    """Generated repository activity/health report."""

    __tablename__ = "repository_reports"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    repository_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    commit_summary: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    issue_summary: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    pull_request_summary: Mapped[dict] = mapped_column(
        JSONB, default=dict, nullable=False
    )
    performance_metrics: Mapped[dict] = mapped_column(
        JSONB, default=dict, nullable=False
    )
    recommendations: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    period_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    email_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    email_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    recipients: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)

    repository: Mapped["Repository"] = relationship()

    __table_args__ = (
        Index("idx_repository_reports_repository_id", "repository_id"),
        Index("idx_repository_reports_period", "period_start", "period_end"),
    )


class EmailQueueEntry(Base, TimestampMixin):
    """Outbound email waiting for (re)delivery."""

    __tablename__ = "email_queue"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    template_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("email_templates.id", ondelete="SET NULL")
    )
    report_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("repository_reports.id", ondelete="SET NULL")
    )
    to_emails: Mapped[list] = mapped_column(JSONB, nullable=False)
    cc_emails: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    bcc_emails: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    html_content: Mapped[str] = mapped_column(Text, nullable=False)
    text_content: Mapped[Optional[str]] = mapped_column(Text)
    priority: Mapped[int] = mapped_column(Integer, default=5, nullable=False)  # 1-10
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    scheduled_for: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_email_queue_status", "status"),
        Index("idx_email_queue_scheduled", "scheduled_for"),
    )


class SlackSettings(Base, TimestampMixin):
    """Slack app credentials and feature toggles."""

    __tablename__ = "slack_settings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    bot_name: Mapped[str] = mapped_column(
        String(255), default="GitHub Agent Bot", nullable=False
    )
    app_name: Mapped[str] = mapped_column(
        String(255), default="GitHub Agent Dashboard", nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text)
    webhook_url: Mapped[Optional[str]] = mapped_column(Text)
    bot_token: Mapped[Optional[str]] = mapped_column(Text)  # Encrypted
    signing_secret: Mapped[Optional[str]] = mapped_column(Text)  # Encrypted
    client_id: Mapped[Optional[str]] = mapped_column(String(255))
    client_secret: Mapped[Optional[str]] = mapped_column(Text)  # Encrypted
    verification_token: Mapped[Optional[str]] = mapped_column(Text)  # Encrypted
    features: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    scopes: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class ApiKey(Base, TimestampMixin):
    """API key for the /api/v1 surface. Only the SHA-256 hash is stored."""

    __tablename__ = "api_keys"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    key_prefix: Mapped[str] = mapped_column(String(20), nullable=False)
    key_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    request_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Webhook(Base, TimestampMixin):
    """Outbound webhook subscription."""

    __tablename__ = "webhooks"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE")
    )
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("repositories.id", ondelete="CASCADE")
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    events: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    secret: Mapped[Optional[str]] = mapped_column(Text)  # Encrypted
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_delivery_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )
    last_status: Mapped[Optional[int]] = mapped_column(Integer)
