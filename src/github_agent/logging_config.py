"""
Logging configuration for GitHub Agent.

Sets up console and rotating file handlers for the API server and CLI.
INFO and below go to stdout, WARNING and above to stderr, and each
context ("api", "cli") gets its own rotating log file.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone

from github_agent.config import settings


class MaxLevelFilter(logging.Filter):
    """Only pass records at or below a given level."""

    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self.max_level


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _build_formatter() -> logging.Formatter:
    if settings.log_format == "json":
        return JSONFormatter()
    return logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(context: str = "api") -> None:
    """
    Configure root logging for the given context.

    Args:
        context: Log file name prefix ("api" or "cli")

    Raises:
        PermissionError: If the log directory cannot be created
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    # Idempotent: drop handlers from a previous call
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = _build_formatter()

    if settings.log_console_enabled:
        if settings.log_to_stdout:
            stdout_handler = logging.StreamHandler(sys.stdout)
            stdout_handler.setLevel(logging.DEBUG)
            stdout_handler.addFilter(MaxLevelFilter(logging.INFO))
            stdout_handler.setFormatter(formatter)
            root.addHandler(stdout_handler)

        if settings.log_to_stderr:
            stderr_handler = logging.StreamHandler(sys.stderr)
            stderr_handler.setLevel(logging.WARNING)
            stderr_handler.setFormatter(formatter)
            root.addHandler(stderr_handler)

    if settings.log_file_enabled:
        log_dir = settings.log_directory
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{context}.log",
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Quiet noisy third-party loggers
    for noisy in ("httpx", "httpcore", "openai", "anthropic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured (context=%s, dir=%s)", context, settings.log_directory
    )
