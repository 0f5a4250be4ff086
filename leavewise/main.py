"""
LeaveWise Backend - Main Application Entry Point
"""
import logging
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from leavewise.api.router import api_router
from leavewise.core.config import settings
from leavewise.core.errors import (
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from leavewise.core.logging import setup_logging
from leavewise.db.init_db import bootstrap_initial_admin
from leavewise.db.session import SessionLocal, create_sqlite_schema

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    try:
        parsed = urlparse(url)
        if parsed.scheme == "sqlite":
            return url
        if parsed.password:
            netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
            if parsed.port:
                netloc += f":{parsed.port}"
            return urlunparse(parsed._replace(netloc=netloc))
    except ValueError:
        return "***"
    return url


app = FastAPI(
    title="LeaveWise Backend",
    description="Leave and reimbursement management with an advisory engine",
    version=settings.VERSION or "1.0.0"
)

# CORS must be registered before other middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag"],
)

app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL at startup so it can be verified against Alembic."""
    logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))


@app.on_event("startup")
def startup_bootstrap() -> None:
    """Create SQLite tables and make sure at least one admin exists."""
    create_sqlite_schema()
    db = SessionLocal()
    try:
        bootstrap_initial_admin(db)
    except Exception as e:
        logger.error("Error during initial admin bootstrap: %s", e)
    finally:
        db.close()
