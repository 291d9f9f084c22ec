"""
Pre-flight checks run before the API accepts traffic.

Critical problems (no database, bad encryption key, stale schema) stop the
process with a message and a hint. Missing optional integrations such as
the GitHub token or an LLM key are only reported.
"""

import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from alembic.config import Config as AlembicConfig
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import text

from github_agent.config import settings
from github_agent.db.connection import SessionLocal, engine, is_sqlite_url
from github_agent.exceptions import CredentialEncryptionError

RULE = "=" * 70


@dataclass
class StartupMetrics:
    """Per-check timings in milliseconds, keyed by check attribute."""

    started_at: datetime
    completed_at: Optional[datetime] = None
    total_duration_ms: Optional[float] = None
    environment_check_ms: Optional[float] = None
    database_check_ms: Optional[float] = None
    migrations_check_ms: Optional[float] = None
    log_directory_check_ms: Optional[float] = None
    llm_check_ms: Optional[float] = None
    checks_passed: bool = False
    last_check_time: Optional[datetime] = None
    warnings: list[str] = field(default_factory=list)


startup_metrics = StartupMetrics(started_at=datetime.now(timezone.utc))


class StartupCheckError(Exception):
    """A check failed badly enough that the server must not start."""

    def __init__(self, message: str, hint: Optional[str] = None):
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        lines = [RULE, "STARTUP CHECK FAILED", RULE, "", self.message]
        if self.hint:
            lines += ["", f"Hint: {self.hint}"]
        lines.append(RULE)
        return "\n" + "\n".join(lines) + "\n"


def _using_sqlite() -> bool:
    return is_sqlite_url(settings.database_url)


def _ms_since(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _warn(message: str) -> None:
    startup_metrics.warnings.append(message)
    print(f"\n    warning: {message}", end="")


# --- individual checks -----------------------------------------------------


def check_required_environment() -> None:
    """
    Make sure the database is addressable and stored secrets can be encrypted.

    PostgreSQL parts are only required when DATABASE_URL is not set.
    Production deployments must also provide ENCRYPTION_KEY.
    """
    startup_metrics.warnings.clear()
    required: list[tuple[str, object]] = []
    if not settings.database_url_override:
        required += [
            ("POSTGRES_HOST", settings.postgres_host),
            ("POSTGRES_DB", settings.postgres_db),
            ("POSTGRES_USER", settings.postgres_user),
            ("POSTGRES_PASSWORD", settings.postgres_password),
        ]
    if settings.is_production:
        required.append(("ENCRYPTION_KEY", settings.encryption_key))

    missing = [name for name, value in required if not value]
    if missing:
        listing = "\n".join(f"  - {name}" for name in missing)
        raise StartupCheckError(
            f"Missing required environment variables:\n{listing}",
            "Set these variables in your .env file",
        )

    if settings.encryption_key:
        from github_agent.security import encrypt_secret

        try:
            encrypt_secret("startup-check")
        except CredentialEncryptionError as e:
            raise StartupCheckError(
                str(e), "Generate a key with: github-agent generate-encryption-key"
            ) from e

    optional = {
        "GITHUB_TOKEN": (settings.github_token, "GitHub data will be unavailable"),
        "SIMPLE_PASSWORD": (settings.simple_password, "dashboard login disabled"),
        "ENCRYPTION_KEY": (settings.encryption_key, "stored secrets cannot be saved"),
    }
    for name, (value, consequence) in optional.items():
        if not value:
            _warn(f"{name} not set, {consequence}")


# Substring of a driver error -> hint shown to the operator
_POSTGRES_HINTS: list[tuple[tuple[str, ...], str]] = [
    (
        ("could not connect", "connection refused"),
        "PostgreSQL is not running. Start it with: docker compose up -d",
    ),
    (
        ("authentication failed", "password"),
        "Database authentication failed. Check POSTGRES_USER / POSTGRES_PASSWORD.",
    ),
    (
        ("does not exist",),
        "Create the database (createdb {db}) and run: alembic upgrade head",
    ),
    (
        ("timeout", "timed out"),
        "Connection timed out. Is {host}:{port} reachable?",
    ),
]


def _postgres_hint(error: Exception) -> str:
    lowered = str(error).lower()
    for needles, hint in _POSTGRES_HINTS:
        if any(needle in lowered for needle in needles):
            return hint.format(
                db=settings.postgres_db,
                host=settings.postgres_host,
                port=settings.postgres_port,
            )
    return f"Check your database configuration in .env\nError: {error}"


def check_database_connection() -> None:
    """Run ``SELECT 1`` through a real session."""
    try:
        with SessionLocal() as session:
            value = session.execute(text("SELECT 1")).scalar()
    except Exception as e:
        if _using_sqlite():
            raise StartupCheckError(
                f"Cannot open SQLite database: {e}",
                "Check DATABASE_URL and file permissions",
            ) from e
        raise StartupCheckError(
            "Cannot connect to PostgreSQL database\n"
            f"Host: {settings.postgres_host}:{settings.postgres_port}\n"
            f"Database: {settings.postgres_db}\n"
            f"User: {settings.postgres_user}",
            _postgres_hint(e),
        ) from e

    if value != 1:
        raise StartupCheckError(
            "Database query returned unexpected result",
            "Database may be corrupted or misconfigured",
        )


def check_database_migrations() -> None:
    """Compare the stamped Alembic revision with the script head (PostgreSQL only)."""
    if _using_sqlite():
        print("SKIP (SQLite schema is created from models)", end=" ")
        return

    ini = Path("alembic.ini")
    if not ini.exists():
        raise StartupCheckError(
            "Alembic configuration not found",
            "Run the server from the project root, where alembic.ini lives",
        )

    try:
        script = ScriptDirectory.from_config(AlembicConfig(str(ini)))
        head = script.get_current_head()
        with engine.connect() as connection:
            current = MigrationContext.configure(connection).get_current_revision()
    except Exception as e:
        raise StartupCheckError(
            f"Failed to check migration status: {e}",
            "Verify Alembic is properly configured",
        ) from e

    if current is None:
        raise StartupCheckError(
            "Database has no migration version\nDatabase appears uninitialized",
            "Run migrations: alembic upgrade head",
        )
    if current == head:
        return

    pending = "\n".join(
        f"  - {rev.revision[:8]}: {rev.doc}"
        for rev in script.iterate_revisions(head, current)
        if rev.revision != current
    )
    raise StartupCheckError(
        "Database migrations are out of date\n"
        f"Current revision: {current[:8]}\n"
        f"Expected revision: {(head or 'None')[:8]}\n\n"
        f"Pending migrations:\n{pending or 'Unknown'}",
        "Run: alembic upgrade head",
    )


def check_log_directory() -> None:
    """Create the log directory and prove it is writable, unless file logging is off."""
    if not settings.log_file_enabled:
        return

    log_dir = settings.log_directory
    marker = log_dir / ".write_test"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        marker.write_text("ok")
        marker.unlink()
    except PermissionError as e:
        raise StartupCheckError(
            f"Log directory is not writable: {log_dir}\n{e}",
            f"Fix permissions (chmod u+w {log_dir}) or point LOG_DIR elsewhere",
        ) from e
    except OSError as e:
        raise StartupCheckError(
            f"Failed to create log directory: {log_dir}\n{e}",
            "Check filesystem and parent directory permissions",
        ) from e


def check_llm_configuration() -> None:
    """Send a one-token completion when a provider key is configured."""
    from github_agent import llm

    provider_name = settings.llm_provider
    if not llm.is_llm_configured():
        print(f"SKIP ({provider_name} not configured, AI features use fallbacks)", end=" ")
        return

    try:
        llm.get_default_provider().complete(
            system_prompt="Health check.", user_prompt="test", max_tokens=1
        )
    except Exception as e:
        reason = str(e).lower()
        if "model" in reason and "not found" in reason:
            hint = f"Verify your key has access to {llm.configured_model()}"
        elif any(marker in reason for marker in ("auth", "api key", "401")):
            hint = f"Check the {provider_name.upper()}_API_KEY setting in .env"
        else:
            hint = f"Check the {provider_name} API status and your network"
        raise StartupCheckError(f"LLM provider check failed ({provider_name}): {e}", hint) from e


# --- orchestration ---------------------------------------------------------


def _checks() -> list[tuple[str, Callable[[], None], str]]:
    # Looked up at call time so individual checks can be patched
    return [
        ("Environment Variables", check_required_environment, "environment_check_ms"),
        ("Database Connection", check_database_connection, "database_check_ms"),
        ("Database Migrations", check_database_migrations, "migrations_check_ms"),
        ("Log Directory", check_log_directory, "log_directory_check_ms"),
        ("LLM Configuration", check_llm_configuration, "llm_check_ms"),
    ]


def run_all_startup_checks() -> None:
    """
    Run every check in dependency order, recording timings.

    Exits the process with status 1 on the first failure.
    """
    overall = time.perf_counter()
    print(f"\n{RULE}\nStarting GitHub Agent - running startup checks\n{RULE}\n")

    for label, check, metric in _checks():
        print(f"  {label}...", end=" ", flush=True)
        started = time.perf_counter()
        try:
            check()
        except StartupCheckError as e:
            setattr(startup_metrics, metric, _ms_since(started))
            print(f"FAIL ({getattr(startup_metrics, metric):.1f}ms)")
            print(e)
            sys.exit(1)
        setattr(startup_metrics, metric, _ms_since(started))
        print(f"ok ({getattr(startup_metrics, metric):.1f}ms)")

    finished = datetime.now(timezone.utc)
    startup_metrics.completed_at = finished
    startup_metrics.last_check_time = finished
    startup_metrics.total_duration_ms = _ms_since(overall)
    startup_metrics.checks_passed = True
    print(f"\n{RULE}\nReady ({startup_metrics.total_duration_ms:.1f}ms)\n{RULE}\n")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def check_readiness() -> tuple[bool, dict]:
    """
    Readiness probe: startup finished and the database answers.

    Returns ``(ready, details)``.
    """
    try:
        with SessionLocal() as session:
            session.execute(text("SELECT 1"))
        db_ready = True
    except Exception:
        db_ready = False

    m = startup_metrics
    ready = m.checks_passed and db_ready
    return ready, {
        "ready": ready,
        "database": "healthy" if db_ready else "unhealthy",
        "startup_completed": m.checks_passed,
        "uptime_seconds": (datetime.now(timezone.utc) - m.started_at).total_seconds(),
        "warnings": list(m.warnings),
        "startup_metrics": {
            "total_duration_ms": m.total_duration_ms,
            "environment_check_ms": m.environment_check_ms,
            "database_check_ms": m.database_check_ms,
            "migrations_check_ms": m.migrations_check_ms,
            "log_directory_check_ms": m.log_directory_check_ms,
            "llm_check_ms": m.llm_check_ms,
            "started_at": m.started_at.isoformat(),
            "completed_at": _iso(m.completed_at),
            "last_check_time": _iso(m.last_check_time),
        },
    }
