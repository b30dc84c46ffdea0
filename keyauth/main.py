import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from keyauth.api.v1.endpoints import actions
from keyauth.config import settings
from keyauth.database import Database
from keyauth.core.envelope import failure, ok, rejected
from keyauth.core.exceptions import (
    BusinessRejection,
    InvalidRequestException,
    PermissionDeniedException,
    StoreUnavailableException,
)
from keyauth.core.logging_config import setup_logging, cleanup_old_logs
from keyauth.core.logging_utils import get_request_id, sanitize_log_message
from keyauth.middleware.logging_middleware import LoggingMiddleware
from keyauth.middleware.security import setup_security_middleware

logger = logging.getLogger(__name__)


def create_app(
    database: Optional[Database] = None,
    configure_logging: bool = True
) -> FastAPI:
    """
    Build the FastAPI application around an explicit store handle.

    The handle is connected when the application starts and disposed when it stops.

    Args:
        database: Store handle; a new one from settings when omitted
        configure_logging: Install the logging handlers on startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_logging()
            cleanup_old_logs()
        if not app.state.database.connected:
            await app.state.database.connect()
        logger.info("Application startup complete")
        yield
        await app.state.database.dispose()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
        lifespan=lifespan,
    )
    app.state.database = database or Database()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["POST", "OPTIONS", "GET", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    # Security middleware (request size limit + security headers)
    setup_security_middleware(app, max_request_size=settings.MAX_REQUEST_SIZE)

    if settings.LOG_ENABLE_REQUEST_LOGGING:
        app.add_middleware(LoggingMiddleware)

    app.include_router(actions.router, prefix=settings.API_V1_STR, tags=["actions"])
    # Path used by clients of the 1.x deployment
    app.include_router(actions.router, prefix="/api", include_in_schema=False)

    register_exception_handlers(app)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint reporting store connectivity."""
        database: Database = request.app.state.database
        return {
            "success": True,
            "message": "API Health Check",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": {
                "database_url": bool(settings.DATABASE_URL)
            },
            "database": {
                "connected": database.connected,
                "initialized": database.initialized
            },
            "version": settings.VERSION
        }

    @app.get("/")
    async def root(request: Request):
        """Root endpoint."""
        database: Database = request.app.state.database
        return ok(
            "KeyAuth API is running!",
            database="connected" if database.connected else "disconnected",
            version=settings.VERSION,
            docs=f"{settings.API_V1_STR}/docs"
        )

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Map exceptions onto the response envelope."""

    @app.exception_handler(BusinessRejection)
    async def business_rejection_handler(request: Request, exc: BusinessRejection):
        logger.info(
            sanitize_log_message(
                "Request rejected",
                Path=request.url.path,
                Reason=exc.message,
                RequestID=get_request_id(request)
            )
        )
        return rejected(exc.message, **exc.extra)

    @app.exception_handler(InvalidRequestException)
    async def invalid_request_handler(request: Request, exc: InvalidRequestException):
        logger.warning(
            sanitize_log_message(
                "Invalid request",
                Path=request.url.path,
                IP=request.client.host if request.client else None,
                Detail=exc.detail,
                RequestID=get_request_id(request)
            )
        )
        return failure(exc.status_code, exc.detail)

    @app.exception_handler(PermissionDeniedException)
    async def permission_denied_handler(request: Request, exc: PermissionDeniedException):
        logger.warning(
            sanitize_log_message(
                "Permission denied",
                Path=request.url.path,
                IP=request.client.host if request.client else None,
                Detail=exc.detail,
                RequestID=get_request_id(request)
            )
        )
        return failure(exc.status_code, exc.detail)

    @app.exception_handler(StoreUnavailableException)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableException):
        logger.error(
            sanitize_log_message(
                "Store unavailable",
                Path=request.url.path,
                Detail=exc.detail,
                RequestID=get_request_id(request)
            )
        )
        return failure(exc.status_code, exc.detail)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return failure(exc.status_code, str(exc.detail))

    # Generic exception handler for unhandled exceptions
    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(
            sanitize_log_message(
                f"Unhandled exception: {type(exc).__name__}",
                Path=request.url.path,
                Method=request.method,
                ExceptionMessage=str(exc),
                RequestID=get_request_id(request)
            )
        )
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Server error: {exc}")


app = create_app()
