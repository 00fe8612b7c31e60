"""FastAPI application for the flagsweep API.

Provides the main application instance with routers, CORS and exception
handlers configured.
"""

import logging
import sys
import time as _time
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from src.config import get_settings, validate_startup_config

# Configure logging to stdout for uvicorn to capture
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
# Ensure our application loggers are captured
logging.getLogger("src").setLevel(get_settings().log_level)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes import flags, jobs, sessions, tasks
from src.api.routes.sessions import NO_STORE_HEADERS
from src.errors import (
    FlagSweepError,
    InvalidRequestError,
    RateLimitedError,
    error_response_body,
)
from src.models import ANALYZE_EXAMPLE, REMOVE_EXAMPLE
from src.services.provider import get_job_store

logger = logging.getLogger(__name__)

# Module-level state for health endpoint
_startup_time: float = 0.0

# Poll endpoints stay uncacheable even when they answer with an error
_POLL_PATH_PREFIXES = ("/api/v1/sessions/", "/api/v1/jobs")


def _error_headers(request: Request) -> dict[str, str]:
    if request.method == "GET" and request.url.path.startswith(_POLL_PATH_PREFIXES):
        return dict(NO_STORE_HEADERS)
    return {}


def _package_version() -> str:
    try:
        return _pkg_version("flagsweep")
    except PackageNotFoundError:
        return "unknown"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async lifespan: fail-fast configuration check at startup."""
    global _startup_time

    _startup_time = _time.time()
    settings = get_settings()

    # Fail fast if live mode has no agent credential
    validate_startup_config(settings)

    logger.info(
        "flagsweep started in %s mode (agent API %s)",
        settings.mode, "simulated" if settings.mock_mode else settings.agent_api_url,
    )
    logger.warning(
        "Jobs and mock sessions are held in memory; run a single worker and "
        "expect state to be lost on restart."
    )
    yield


app = FastAPI(
    title="flagsweep API",
    description="Feature flag analysis and removal delegated to an autonomous coding agent",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS allowlist is env-driven. If unset, CORS is disabled (same-origin only).
allowed_origins = get_settings().allowed_origins
if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )


@app.exception_handler(FlagSweepError)
async def flagsweep_error_handler(request: Request, exc: FlagSweepError) -> JSONResponse:
    """Handle FlagSweepError exceptions with consistent format.

    Args:
        request: The incoming request.
        exc: The FlagSweepError exception.

    Returns:
        JSONResponse with the error's HTTP status and error body.
    """
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)

    headers = _error_headers(request)
    if isinstance(exc, RateLimitedError) and exc.retry_after is not None:
        headers["Retry-After"] = str(int(exc.retry_after))
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response_body(exc),
        headers=headers or None,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as 400 invalid_request with an example body."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location or 'body'}: {error.get('msg', 'invalid')}")

    example = REMOVE_EXAMPLE if request.url.path.endswith("/remove") else ANALYZE_EXAMPLE
    error = InvalidRequestError(
        fields=", ".join(problems) or "request body",
        suggestions=problems,
        example=example if request.method == "POST" else None,
    )
    return JSONResponse(status_code=error.status_code, content=error_response_body(error))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all: log the failure and answer 500 internal_error."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = FlagSweepError(reason=type(exc).__name__)
    return JSONResponse(
        status_code=error.status_code,
        content=error_response_body(error),
        headers=_error_headers(request) or None,
    )


# Include routers
app.include_router(tasks.router, prefix="/api/v1")
app.include_router(sessions.router, prefix="/api/v1")
app.include_router(jobs.router, prefix="/api/v1")
app.include_router(flags.router, prefix="/api/v1")


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint with service status.

    Returns:
        Dictionary with status, version, uptime, mode and job count.
    """
    uptime = int(_time.time() - _startup_time) if _startup_time else 0
    return {
        "status": "healthy",
        "version": _package_version(),
        "uptime_seconds": uptime,
        "mode": get_settings().mode,
        "jobs": len(get_job_store().list_jobs()),
    }


@app.get("/api")
def api_root() -> dict:
    """API root with links to docs.

    Returns:
        Dictionary with API info and links.
    """
    return {
        "name": "flagsweep API",
        "version": _package_version(),
        "docs": "/docs",
        "redoc": "/redoc",
    }
