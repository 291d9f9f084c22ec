"""
Settings for GitHub Agent, read from the environment and an optional `.env`.

Everything lives on one pydantic-settings model; import the module-level
``settings`` instance rather than constructing new ones.
"""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_DIR_NAME = "github-agent"


def get_xdg_state_dir() -> str:
    """
    Default log location.

    ``$XDG_STATE_HOME/github-agent/logs``, else ``~/.local/state/github-agent/logs``,
    else ``./logs`` when no home directory is known.
    """
    for base, parts in (
        (os.getenv("XDG_STATE_HOME"), ()),
        (os.getenv("HOME"), (".local", "state")),
    ):
        if base:
            return str(Path(base).joinpath(*parts, APP_DIR_NAME, "logs"))
    return "./logs"


class Settings(BaseSettings):
    """Environment-backed configuration. Field names map to upper-case variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = "development"

    # PostgreSQL parts, ignored when DATABASE_URL is given
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "github_agent"
    postgres_user: str = "github_agent"
    postgres_password: str = "github_agent_dev_password"
    database_url_override: str = Field(default="", alias="DATABASE_URL")

    db_pool_size: int = 5
    db_pool_max_overflow: int = 5
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # HTTP server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000"]
    public_base_url: str = "http://localhost:8000"

    # Credentials and limits
    simple_password: str = ""
    encryption_key: str = ""
    master_api_key: str = ""
    api_rate_limit: int = 1000
    api_master_rate_limit: int = 10000

    # The one dashboard user
    single_user_email: str = "user@example.com"
    single_user_github_username: str = "your-github-username"
    single_user_name: str = "GitHub Helper User"

    # Third-party services
    github_token: str = ""
    vercel_token: str = ""
    slack_bot_token: str = ""
    slack_signing_secret: str = ""

    llm_provider: str = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250514"
    llm_max_tokens: int = 2000
    llm_temperature: float = 0.3

    # System mail (integration requests); user reports use the stored email settings
    integration_request_email: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_sender_email: str = ""

    # Logging
    log_level: str = "INFO"
    log_format: str = "standard"  # or "json"
    log_dir: str = ""
    log_console_enabled: bool = True
    log_to_stdout: bool = True
    log_to_stderr: bool = True
    log_file_enabled: bool = True
    log_max_bytes: int = 10 * 1024 * 1024
    log_backup_count: int = 5

    llm_logging_enabled: bool = False
    llm_log_requests: bool = True
    llm_log_responses: bool = True
    llm_log_tokens: bool = True

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return "postgresql://{}:{}@{}:{}/{}".format(
            self.postgres_user,
            self.postgres_password,
            self.postgres_host,
            self.postgres_port,
            self.postgres_db,
        )

    @property
    def log_directory(self) -> Path:
        return Path(self.log_dir).expanduser() if self.log_dir else Path(get_xdg_state_dir())

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()
