"""
Dependency injection utilities for FastAPI.

This module provides reusable dependencies for the services built at
startup (stored on ``app.state``), the database engine factory, and the
admin authorization gate.
"""

import logging
import secrets
from typing import Optional

from fastapi import HTTPException, Request, status
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from api.config import Settings
from services.backup_service import BackupManager
from services.entry_store import EntryStore
from services.ingestion_service import IngestionService
from tasks.backup_scheduler import BackupScheduler

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> Engine:
    """
    Create the database engine for a settings object.

    SQLite (used for tests and local runs) gets a thread-shareable
    connection; every other backend gets the configured connection pool.
    """
    url = settings.DATABASE_URL

    if url.startswith('sqlite'):
        kwargs = {'connect_args': {'check_same_thread': False}, 'echo': settings.DEBUG}
        if url in ('sqlite://', 'sqlite:///:memory:'):
            kwargs['poolclass'] = StaticPool
        return create_engine(url, **kwargs)

    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=settings.DB_POOL_PRE_PING,
        echo=settings.DEBUG
    )


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_entry_store(request: Request) -> EntryStore:
    """
    Get the entry store built at startup.

    Usage:
        @router.get("/endpoint")
        def endpoint(store: EntryStore = Depends(get_entry_store)):
            pass
    """
    return request.app.state.entry_store


def get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def get_backup_manager(request: Request) -> BackupManager:
    return request.app.state.backup_manager


def get_backup_scheduler(request: Request) -> Optional[BackupScheduler]:
    return request.app.state.backup_scheduler


def is_authorized(request: Request) -> bool:
    """
    Check whether the caller may use admin endpoints.

    With API key auth disabled every caller is authorized. Otherwise the
    key header must match one of ADMIN_API_KEYS.
    """
    settings = request.app.state.settings

    if not settings.ENABLE_API_KEY_AUTH:
        return True

    api_key = request.headers.get(settings.API_KEY_HEADER)
    if not api_key:
        return False

    # compare_digest accepts non-ASCII input only as bytes
    supplied = api_key.encode('utf-8')
    return any(secrets.compare_digest(supplied, valid.encode('utf-8')) for valid in settings.ADMIN_API_KEYS)


def require_admin(request: Request) -> str:
    """
    Admin gate dependency.

    Returns:
        Caller identifier for logging ("public" when auth is disabled)

    Raises:
        HTTPException: 401 if the caller is not authorized

    Usage:
        @router.get("/endpoint")
        def endpoint(admin: str = Depends(require_admin)):
            pass
    """
    settings = request.app.state.settings

    if not is_authorized(request):
        logger.warning(f"Unauthorized request to {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    if not settings.ENABLE_API_KEY_AUTH:
        return "public"

    # Never log the key itself
    return f"key:{request.headers.get(settings.API_KEY_HEADER, '')[:4]}..."
