"""initial_schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _jsonb(name: str, default: str = "'{}'::jsonb") -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(astext_type=sa.Text()),
        server_default=sa.text(default),
        nullable=False,
    )


def _jsonb_list(name: str) -> sa.Column:
    return _jsonb(name, "'[]'::jsonb")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _user_fk(nullable: bool = True) -> sa.Column:
    return sa.Column(
        "user_id",
        sa.UUID(),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=nullable,
    )


def _repository_fk(name: str = "repository_id", nullable: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.UUID(),
        sa.ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("github_username", sa.String(length=255), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "repositories",
        sa.Column("id", sa.UUID(), nullable=False),
        _user_fk(),
        sa.Column("github_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("private", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("html_url", sa.Text(), nullable=False),
        sa.Column("clone_url", sa.Text(), nullable=False),
        sa.Column("language", sa.String(length=100), nullable=True),
        _jsonb("languages"),
        _jsonb_list("topics"),
        sa.Column("stars", sa.Integer(), server_default="0", nullable=False),
        sa.Column("forks", sa.Integer(), server_default="0", nullable=False),
        sa.Column("open_issues", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "default_branch", sa.String(length=100), server_default="main", nullable=False
        ),
        sa.Column("last_commit_sha", sa.String(length=40), nullable=True),
        sa.Column("last_commit_date", sa.TIMESTAMP(timezone=True), nullable=True),
        _jsonb("tech_stack"),
        sa.Column("analysis_summary", sa.Text(), nullable=True),
        sa.Column("last_analyzed", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("github_id"),
    )
    op.create_index("idx_repositories_user_id", "repositories", ["user_id"])
    op.create_index("idx_repositories_is_active", "repositories", ["is_active"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.UUID(), nullable=False),
        _user_fk(),
        _repository_fk(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        _jsonb("context"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column(
            "conversation_id",
            sa.UUID(),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _jsonb("metadata"),
        sa.Column("token_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_messages_conversation_id", "messages", ["conversation_id"])

    op.create_table(
        "todo_lists",
        sa.Column("id", sa.UUID(), nullable=False),
        _user_fk(),
        _repository_fk(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("priority", sa.String(length=50), server_default="medium", nullable=False),
        sa.Column("status", sa.String(length=50), server_default="active", nullable=False),
        sa.Column("due_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("auto_generated", sa.Boolean(), server_default="false", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_todo_lists_repository_id", "todo_lists", ["repository_id"])

    op.create_table(
        "todo_items",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column(
            "todo_list_id",
            sa.UUID(),
            sa.ForeignKey("todo_lists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("completed", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("status", sa.String(length=50), server_default="pending", nullable=False),
        sa.Column("priority", sa.String(length=50), server_default="medium", nullable=False),
        sa.Column("assignee", sa.String(length=255), nullable=True),
        _jsonb_list("labels"),
        sa.Column("github_issue_url", sa.Text(), nullable=True),
        sa.Column("estimated_hours", sa.Integer(), nullable=True),
        sa.Column("actual_hours", sa.Integer(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("completed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_todo_items_todo_list_id", "todo_items", ["todo_list_id"])

    op.create_table(
        "recaps",
        sa.Column("id", sa.UUID(), nullable=False),
        _user_fk(),
        _repository_fk(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("period", sa.String(length=50), nullable=True),
        _jsonb_list("key_updates"),
        _jsonb_list("action_items"),
        _jsonb("metrics"),
        _jsonb("date_range"),
        _jsonb_list("tech_changes"),
        _jsonb_list("next_steps"),
        sa.Column("generated_by", sa.String(length=50), server_default="ai", nullable=False),
        sa.Column("meeting_ready", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("period_start", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("period_end", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "generated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_recaps_repository_id", "recaps", ["repository_id"])

    op.create_table(
        "agent_executions",
        sa.Column("id", sa.UUID(), nullable=False),
        _user_fk(),
        sa.Column(
            "conversation_id",
            sa.UUID(),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("agent_type", sa.String(length=100), nullable=False),
        _jsonb("graph_state"),
        _jsonb("input_data"),
        _jsonb("output_data"),
        sa.Column("status", sa.String(length=50), server_default="running", nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("step_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("token_usage", sa.Integer(), server_default="0", nullable=False),
        sa.Column("execution_time", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_agent_executions_status", "agent_executions", ["status"])

    op.create_table(
        "analysis_cache",
        sa.Column("id", sa.UUID(), nullable=False),
        _repository_fk(nullable=False),
        sa.Column("analysis_type", sa.String(length=100), nullable=False),
        sa.Column("cache_key", sa.String(length=255), nullable=False),
        sa.Column("cached_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "repository_id", "analysis_type", "cache_key", name="uq_analysis_cache_key"
        ),
    )
    op.create_index("idx_analysis_cache_expires_at", "analysis_cache", ["expires_at"])

    op.create_table(
        "email_settings",
        sa.Column("id", sa.UUID(), nullable=False),
        _user_fk(nullable=False),
        sa.Column(
            "smtp_host", sa.String(length=255), server_default="smtp.gmail.com", nullable=False
        ),
        sa.Column("smtp_port", sa.Integer(), server_default="587", nullable=False),
        sa.Column("smtp_secure", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("smtp_user", sa.String(length=255), nullable=False),
        sa.Column("smtp_password", sa.Text(), nullable=False),
        sa.Column(
            "sender_name", sa.String(length=255), server_default="GitHub Helper", nullable=False
        ),
        sa.Column("sender_email", sa.String(length=255), nullable=False),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("primary_color", sa.String(length=7), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "email_templates",
        sa.Column("id", sa.UUID(), nullable=False),
        _user_fk(nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("subject", sa.String(length=500), nullable=False),
        sa.Column("html_content", sa.Text(), nullable=False),
        sa.Column("text_content", sa.Text(), nullable=True),
        _jsonb_list("variables"),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_email_templates_type", "email_templates", ["type"])

    op.create_table(
        "repository_reports",
        sa.Column("id", sa.UUID(), nullable=False),
        _user_fk(nullable=False),
        _repository_fk(nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        _jsonb("commit_summary"),
        _jsonb("issue_summary"),
        _jsonb("pull_request_summary"),
        _jsonb("performance_metrics"),
        _jsonb_list("recommendations"),
        sa.Column("period_start", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("period_end", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "generated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("email_sent", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("email_sent_at", sa.TIMESTAMP(timezone=True), nullable=True),
        _jsonb_list("recipients"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_repository_reports_repository_id", "repository_reports", ["repository_id"]
    )
    op.create_index(
        "idx_repository_reports_period",
        "repository_reports",
        ["period_start", "period_end"],
    )

    op.create_table(
        "email_queue",
        sa.Column("id", sa.UUID(), nullable=False),
        _user_fk(nullable=False),
        sa.Column(
            "template_id",
            sa.UUID(),
            sa.ForeignKey("email_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "report_id",
            sa.UUID(),
            sa.ForeignKey("repository_reports.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("to_emails", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        _jsonb_list("cc_emails"),
        _jsonb_list("bcc_emails"),
        sa.Column("subject", sa.String(length=500), nullable=False),
        sa.Column("html_content", sa.Text(), nullable=False),
        sa.Column("text_content", sa.Text(), nullable=True),
        sa.Column("priority", sa.Integer(), server_default="5", nullable=False),
        sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
        sa.Column("attempts", sa.Integer(), server_default="0", nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "scheduled_for",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("sent_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_email_queue_status", "email_queue", ["status"])
    op.create_index("idx_email_queue_scheduled", "email_queue", ["scheduled_for"])

    op.create_table(
        "slack_settings",
        sa.Column("id", sa.UUID(), nullable=False),
        _user_fk(nullable=False),
        sa.Column(
            "bot_name", sa.String(length=255), server_default="GitHub Agent Bot", nullable=False
        ),
        sa.Column(
            "app_name",
            sa.String(length=255),
            server_default="GitHub Agent Dashboard",
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("webhook_url", sa.Text(), nullable=True),
        sa.Column("bot_token", sa.Text(), nullable=True),
        sa.Column("signing_secret", sa.Text(), nullable=True),
        sa.Column("client_id", sa.String(length=255), nullable=True),
        sa.Column("client_secret", sa.Text(), nullable=True),
        sa.Column("verification_token", sa.Text(), nullable=True),
        _jsonb("features"),
        _jsonb_list("scopes"),
        sa.Column("is_active", sa.Boolean(), server_default="false", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "api_keys",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("key_prefix", sa.String(length=20), nullable=False),
        sa.Column("key_hash", sa.String(length=64), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("last_used_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("request_count", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key_hash"),
    )

    op.create_table(
        "webhooks",
        sa.Column("id", sa.UUID(), nullable=False),
        _user_fk(),
        _repository_fk("project_id"),
        sa.Column("url", sa.Text(), nullable=False),
        _jsonb_list("events"),
        sa.Column("secret", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("last_delivery_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("last_status", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("webhooks")
    op.drop_table("api_keys")
    op.drop_table("slack_settings")
    op.drop_index("idx_email_queue_scheduled", table_name="email_queue")
    op.drop_index("idx_email_queue_status", table_name="email_queue")
    op.drop_table("email_queue")
    op.drop_index("idx_repository_reports_period", table_name="repository_reports")
    op.drop_index("idx_repository_reports_repository_id", table_name="repository_reports")
    op.drop_table("repository_reports")
    op.drop_index("idx_email_templates_type", table_name="email_templates")
    op.drop_table("email_templates")
    op.drop_table("email_settings")
    op.drop_index("idx_analysis_cache_expires_at", table_name="analysis_cache")
    op.drop_table("analysis_cache")
    op.drop_index("idx_agent_executions_status", table_name="agent_executions")
    op.drop_table("agent_executions")
    op.drop_index("idx_recaps_repository_id", table_name="recaps")
    op.drop_table("recaps")
    op.drop_index("idx_todo_items_todo_list_id", table_name="todo_items")
    op.drop_table("todo_items")
    op.drop_index("idx_todo_lists_repository_id", table_name="todo_lists")
    op.drop_table("todo_lists")
    op.drop_index("idx_messages_conversation_id", table_name="messages")
    op.drop_table("messages")
    op.drop_table("conversations")
    op.drop_index("idx_repositories_is_active", table_name="repositories")
    op.drop_index("idx_repositories_user_id", table_name="repositories")
    op.drop_table("repositories")
    op.drop_table("users")
