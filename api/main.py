"""
FastAPI application for the Excel data intake service.

This module creates and configures the FastAPI application: services are
built in the lifespan and stored on ``app.state``, routers and middleware
are registered, and domain errors are translated to JSON responses.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import redis
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import Settings, get_settings
from api.dependencies import build_engine
from api.routers import backups, excel_data
from api.schemas.common import ErrorResponse, HealthCheckResponse
from api.schemas.excel_data_schema import UploadLimitsResponse
from backend.models.schema import Base
from services.backup_service import BackupManager
from services.entry_store import EntryStore
from services.errors import (
    BackupError, ExcelDataError, NotFoundError, UploadRejectedError, ValidationError
)
from services.ingestion_service import IngestionService
from services.ingestion_validator import IngestionValidator, RejectionReason
from tasks.backup_scheduler import BackupScheduler

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    """Configure root logging from settings (file handler only when LOG_FILE is set)."""
    handlers = [logging.StreamHandler()]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE))

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format=settings.LOG_FORMAT,
        handlers=handlers
    )


def _error_response(request: Request, status_code: int, error: str,
                    detail: Optional[dict] = None, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            detail=detail,
            path=str(request.url.path)
        ).model_dump(mode='json'),
        headers=headers
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the engine, store, ingestion service and backup manager on
    startup, and starts the in-process backup scheduler when configured.
    """
    settings = app.state.settings

    # Startup
    logger.info(f"Starting {settings.API_TITLE} v{settings.API_VERSION}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}")  # Hide credentials

    engine = build_engine(settings)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables verified")

    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    store = EntryStore(session_factory)
    validator = IngestionValidator(
        max_size_bytes=settings.max_upload_size_bytes,
        allowed_extensions=settings.ALLOWED_EXTENSIONS,
        allowed_content_types=settings.ALLOWED_CONTENT_TYPES
    )
    backup_manager = BackupManager(
        store,
        backup_dir=settings.BACKUP_DIR,
        version=settings.BACKUP_FORMAT_VERSION
    )

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.entry_store = store
    app.state.ingestion_service = IngestionService(
        store,
        validator=validator,
        pasted_filename=settings.PASTED_DATA_FILENAME,
        download_filename=settings.DOWNLOAD_DEFAULT_FILENAME
    )
    app.state.backup_manager = backup_manager
    app.state.backup_scheduler = None

    if not settings.ENABLE_API_KEY_AUTH:
        logger.warning("API key auth is disabled: admin endpoints are open to every caller")
    elif not settings.ADMIN_API_KEYS:
        logger.warning("API key auth is enabled but ADMIN_API_KEYS is empty: admin endpoints deny every caller")

    if settings.BACKUP_SCHEDULER == 'inprocess':
        scheduler = BackupScheduler(backup_manager, interval_seconds=settings.backup_interval_seconds)
        scheduler.start()
        app.state.backup_scheduler = scheduler
        logger.info(f"Backup scheduler started (every {settings.BACKUP_INTERVAL_HOURS}h)")
    else:
        logger.info(f"In-process backup scheduler disabled (mode: {settings.BACKUP_SCHEDULER})")

    yield

    # Shutdown
    logger.info("Shutting down application")
    if app.state.backup_scheduler is not None:
        app.state.backup_scheduler.stop(timeout=10)
    engine.dispose()


def register_exception_handlers(app: FastAPI):
    """Translate domain and framework errors to ErrorResponse JSON."""

    @app.exception_handler(UploadRejectedError)
    async def upload_rejected_handler(request: Request, exc: UploadRejectedError):
        status_code = (status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
                       if exc.reason == RejectionReason.SIZE
                       else status.HTTP_400_BAD_REQUEST)
        return _error_response(request, status_code, exc.message,
                               detail={'reason': exc.reason.value})

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error_response(request, status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_error_handler(request: Request, exc: NotFoundError):
        return _error_response(request, status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(BackupError)
    async def backup_error_handler(request: Request, exc: BackupError):
        logger.error(f"Backup operation failed: {exc}", exc_info=True)
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(ExcelDataError)
    async def service_error_handler(request: Request, exc: ExcelDataError):
        logger.error(f"Service error: {exc}", exc_info=True)
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error_response(request, status.HTTP_400_BAD_REQUEST, "Invalid request",
                               detail={'errors': [
                                   {'loc': [str(part) for part in error['loc']], 'msg': error['msg']}
                                   for error in exc.errors()
                               ]})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc.status_code, str(exc.detail),
                               headers=getattr(exc, 'headers', None))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        debug = request.app.state.settings.DEBUG
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR,
                               "Internal server error",
                               detail={'message': str(exc)} if debug else None)


def register_root_endpoints(app: FastAPI):
    settings = app.state.settings

    @app.get('/', include_in_schema=False)
    async def root():
        """
        Root endpoint - points at the docs.
        """
        return {
            'message': f'Welcome to {settings.API_TITLE}',
            'version': settings.API_VERSION,
            'docs': '/docs',
            'redoc': '/redoc',
            'openapi': '/openapi.json'
        }

    @app.get('/health', response_model=HealthCheckResponse, tags=['health'])
    def health_check(request: Request):
        """
        Health check endpoint.

        Checks connectivity to:
        - Database
        - Redis (only when backups run through Celery)
        - In-process backup scheduler

        **Example:**
        ```bash
        curl http://localhost:8000/health
        ```
        """
        health_status = {
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc),
            'version': settings.API_VERSION,
            'database': 'unknown',
            'backup_scheduler': 'disabled',
            'redis': 'not used'
        }

        # Check database
        try:
            with request.app.state.session_factory() as session:
                session.execute(text('SELECT 1'))
            health_status['database'] = 'connected'
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            health_status['database'] = 'disconnected'
            health_status['status'] = 'unhealthy'

        # Check scheduler
        scheduler = request.app.state.backup_scheduler
        if scheduler is not None:
            if scheduler.is_running:
                health_status['backup_scheduler'] = 'running'
            else:
                health_status['backup_scheduler'] = 'stopped'
                health_status['status'] = 'degraded'
        elif settings.BACKUP_SCHEDULER == 'celery':
            health_status['backup_scheduler'] = 'celery beat'

            # Check Redis
            try:
                redis_client = redis.Redis.from_url(settings.REDIS_URL)
                redis_client.ping()
                health_status['redis'] = 'connected'
            except Exception as e:
                logger.error(f"Redis health check failed: {e}")
                health_status['redis'] = 'disconnected'
                health_status['status'] = 'degraded'

        return HealthCheckResponse(**health_status)

    @app.get('/api/ping', tags=['health'])
    async def ping():
        """
        Simple ping endpoint for load balancers.

        **Returns:**
        ```json
        {"ping": "pong"}
        ```
        """
        return {'ping': 'pong'}

    @app.get(f'{settings.API_PREFIX}/upload-limits', response_model=UploadLimitsResponse,
             response_model_by_alias=True, tags=['excel-data'])
    async def upload_limits():
        """
        Limits the upload form enforces before sending a file.

        The client limit is advisory; the server limit is enforced on upload.
        """
        return UploadLimitsResponse(
            max_file_size_mb=settings.CLIENT_MAX_UPLOAD_SIZE_MB,
            server_max_file_size_mb=settings.MAX_UPLOAD_SIZE_MB,
            allowed_extensions=settings.ALLOWED_EXTENSIONS,
            allowed_content_types=settings.ALLOWED_CONTENT_TYPES
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json"
    )
    app.state.settings = settings

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests."""
        logger.info(f"{request.method} {request.url.path}")
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} - {response.status_code}")
        return response

    register_exception_handlers(app)

    # Register routers with API prefix
    app.include_router(excel_data.router, prefix=settings.API_PREFIX)
    app.include_router(backups.router, prefix=settings.API_PREFIX)

    register_root_endpoints(app)

    return app


app = create_app()


if __name__ == '__main__':
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        'api.main:app',
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
