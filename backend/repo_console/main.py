"""FastAPI application entry point."""

import logging
import os

# Configure logging based on ENV environment variable
# ENV=dev: INFO level with detailed format (default)
# ENV=prod/staging: WARNING level, minimal logs
_env = os.getenv("ENV", "dev").lower()
_is_dev = _env == "dev"
_log_level = logging.INFO if _is_dev else logging.WARNING

logging.basicConfig(
    level=_log_level,
    format=(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        if _is_dev
        else "%(levelname)s | %(message)s"
    ),
    datefmt="%H:%M:%S",
)

# Enable request/exception loggers in dev mode only
if _is_dev:
    logging.getLogger("repo_console.request").setLevel(logging.INFO)
    logging.getLogger("repo_console.exception").setLevel(logging.INFO)

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from repo_console.api import github, oauth_intermediary, workspace
from repo_console.config import settings
from repo_console.middleware.cors import DashboardCORSMiddleware
from repo_console.middleware.exception_handlers import (
    general_exception_handler,
    github_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from repo_console.middleware.request_logging import RequestLoggingMiddleware
from repo_console.services.github.exceptions import GithubError

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="API for linking GitHub accounts and managing a repository workspace",
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.add_middleware(
    DashboardCORSMiddleware,
    exclude_paths=oauth_intermediary.INTERMEDIARY_PATHS,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Trace middleware for request logging and correlation
app.add_middleware(RequestLoggingMiddleware)

# Register global exception handlers
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(GithubError, github_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)


app.include_router(github.router, prefix="/api", tags=["GitHub"])
app.include_router(workspace.router, prefix="/api", tags=["Workspace"])
# Intermediary is mounted without the /api prefix
app.include_router(oauth_intermediary.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/api/docs",
    }


@app.get("/api/health", tags=["Health"])
async def health():
    return {"status": "ok"}


@app.on_event("startup")
async def startup_event():
    """Application startup tasks."""
    # Ensure MongoDB indexes exist
    try:
        from repo_console.database.ensure_indexes import ensure_indexes
        from repo_console.database.mongo import get_database

        db = get_database()
        ensure_indexes(db)
    except Exception as e:
        logger.warning(f"Failed to ensure database indexes: {e}")

    if not settings.GITHUB_CLIENT_ID:
        logger.warning("GITHUB_CLIENT_ID is not set; GitHub connect is disabled")
