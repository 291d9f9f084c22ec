"""
GitHub Agent FastAPI Application.

Dashboard JSON routes under /api and the key-authenticated public API
under /api/v1.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from github_agent.api import envelope
from github_agent.api.auth import API_VERSION, is_dashboard_authenticated
from github_agent.api.routes import (
    activities,
    api_keys,
    chat,
    integrations,
    login,
    recaps,
    reports,
    repositories,
    settings as settings_routes,
    slack,
    todos,
)
from github_agent.api.v1 import router as v1_router
from github_agent.config import settings
from github_agent.db.connection import db_session
from github_agent.exceptions import APIError
from github_agent.logging_config import setup_logging
from github_agent.single_user import ensure_single_user
from github_agent.startup import run_all_startup_checks

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Runs startup checks before the application starts serving requests
    and makes sure the single user row exists.
    """
    setup_logging(context="api")

    logger.info("Running startup checks...")
    run_all_startup_checks()
    logger.info("✓ Startup checks passed")

    with db_session() as session:
        ensure_single_user(session)

    logger.info("Application startup complete")
    yield
    logger.info("Application shutdown complete")


app = FastAPI(
    lifespan=lifespan,
    title="GitHub Agent API",
    description="AI assistant for your GitHub repositories",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _is_v1(request: Request) -> bool:
    return request.url.path.startswith("/api/v1")


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status,
        content=envelope.failure(exc.message, exc.code, exc.status),
        headers={"X-API-Version": API_VERSION},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if _is_v1(request):
        code = {404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}.get(
            exc.status_code, "INTERNAL_ERROR" if exc.status_code >= 500 else "BAD_REQUEST"
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope.failure(str(exc.detail), code, exc.status_code),
            headers={"X-API-Version": API_VERSION},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if field:
        message = f"{field}: {message}"

    if _is_v1(request):
        return JSONResponse(
            status_code=400,
            content=envelope.failure(message, "VALIDATION_ERROR", 400),
            headers={"X-API-Version": API_VERSION},
        )
    return JSONResponse(status_code=400, content={"success": False, "error": message})


@app.middleware("http")
async def dashboard_guard(request: Request, call_next):
    """Send visitors without the auth cookie from /dashboard back to /."""
    if request.url.path.startswith("/dashboard") and not is_dashboard_authenticated(
        request
    ):
        return RedirectResponse(url="/", status_code=307)
    return await call_next(request)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint - API health check."""
    return {
        "status": "ok",
        "message": "GitHub Agent API is running",
        "version": APP_VERSION,
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    from github_agent.db.connection import check_connection

    db_status = "healthy" if check_connection() else "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
    }


@app.get("/ready")
async def ready():
    """
    Readiness probe endpoint for load balancers.

    Returns 200 OK if ready to serve requests, 503 otherwise.
    """
    from github_agent.startup import check_readiness

    is_ready, details = check_readiness()
    if not is_ready:
        return JSONResponse(content=details, status_code=503)
    return details


app.include_router(repositories.router, prefix="/api/repositories", tags=["repositories"])
app.include_router(recaps.router, prefix="/api/recaps", tags=["recaps"])
app.include_router(todos.router, prefix="/api/todos", tags=["todos"])
app.include_router(reports.router, prefix="/api/reports", tags=["reports"])
app.include_router(settings_routes.router, prefix="/api/settings", tags=["settings"])
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(login.router, prefix="/api/auth", tags=["auth"])
app.include_router(activities.router, prefix="/api/activities", tags=["activities"])
app.include_router(integrations.router, prefix="/api/integration-request", tags=["integrations"])
app.include_router(slack.router, prefix="/api/slack", tags=["slack"])
app.include_router(api_keys.router, prefix="/api/keys", tags=["api-keys"])
app.include_router(v1_router, prefix="/api/v1")
