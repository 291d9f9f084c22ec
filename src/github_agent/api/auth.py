"""
Authentication for the dashboard and the versioned API.

The dashboard is gated by a shared password that sets an auth cookie.
/api/v1 requests carry an API key (Authorization: Bearer or X-API-Key)
that is either the configured master key or an active key from the
api_keys table, and are rate limited per key over a 24 hour window.
"""

import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, Request, Response
from sqlalchemy.orm import Session

from github_agent.config import settings
from github_agent.db.connection import get_db
from github_agent.db.repositories import ApiKeyRepository
from github_agent.exceptions import APIError
from github_agent.security import verify_password

AUTH_COOKIE = "github-agent-auth"
AUTH_COOKIE_VALUE = "authenticated"
AUTH_COOKIE_MAX_AGE = 60 * 60 * 24 * 7

API_VERSION = "1.0"
RATE_LIMIT_WINDOW = 24 * 60 * 60


def is_dashboard_authenticated(request: Request) -> bool:
    return request.cookies.get(AUTH_COOKIE) == AUTH_COOKIE_VALUE


@dataclass
class RateLimitStatus:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # epoch milliseconds


class RateLimiter:
    """
    Fixed-window request counter per key.

    Process-local: each worker keeps its own counts.
    """

    def __init__(self, window_seconds: int = RATE_LIMIT_WINDOW):
        self.window_seconds = window_seconds
        self._windows: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def check(self, key: str, limit: int, now: Optional[float] = None) -> RateLimitStatus:
        now = time.time() if now is None else now
        with self._lock:
            count, reset_at = self._windows.get(key, (0, 0.0))
            if now > reset_at:
                count, reset_at = 0, now + self.window_seconds
            if count >= limit:
                return RateLimitStatus(False, limit, 0, int(reset_at * 1000))
            count += 1
            self._windows[key] = (count, reset_at)
            return RateLimitStatus(True, limit, limit - count, int(reset_at * 1000))

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


rate_limiter = RateLimiter()


@dataclass
class ApiAuthContext:
    """Who is calling /api/v1."""

    key_name: str
    is_master: bool
    rate_limit: int
    api_key_id: Optional[UUID] = None


def _extract_key(authorization: Optional[str], x_api_key: Optional[str]) -> Optional[str]:
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    return x_api_key or None


def require_api_key(
    response: Response,
    authorization: Optional[str] = Header(default=None),
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    session: Session = Depends(get_db),
) -> ApiAuthContext:
    """
    FastAPI dependency authenticating an /api/v1 request.

    Sets the X-RateLimit-* headers on the response.

    Raises:
        APIError: MISSING_API_KEY / INVALID_API_KEY (401) or
            RATE_LIMIT_EXCEEDED (429)
    """
    api_key = _extract_key(authorization, x_api_key)
    if not api_key:
        raise APIError("API key required", "MISSING_API_KEY", 401)

    if settings.master_api_key and verify_password(api_key, settings.master_api_key):
        context = ApiAuthContext(
            key_name="Master Key", is_master=True, rate_limit=settings.api_master_rate_limit
        )
    else:
        row = ApiKeyRepository(session).authenticate(api_key)
        if row is None:
            raise APIError("Invalid API key", "INVALID_API_KEY", 401)
        context = ApiAuthContext(
            key_name=row.name,
            is_master=False,
            rate_limit=settings.api_rate_limit,
            api_key_id=row.id,
        )

    bucket = hashlib.sha256(api_key.encode()).hexdigest()
    status = rate_limiter.check(bucket, context.rate_limit)
    if not status.allowed:
        raise APIError("Rate limit exceeded", "RATE_LIMIT_EXCEEDED", 429)

    response.headers["X-RateLimit-Limit"] = str(status.limit)
    response.headers["X-RateLimit-Remaining"] = str(status.remaining)
    response.headers["X-RateLimit-Reset"] = str(status.reset_at)
    response.headers["X-API-Version"] = API_VERSION
    return context
