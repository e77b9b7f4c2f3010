"""
NavGuard API - Main application entry point.
"""
import time
from contextlib import asynccontextmanager
from typing import Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from structlog.contextvars import bind_contextvars, clear_contextvars

from navguard.api.v1.router import api_router
from navguard.core.config import settings
from navguard.core.dependencies import Services, build_services
from navguard.core.errors import ErrorResponse
from navguard.core.exceptions import CredentialError, NavGuardException
from navguard.core.logging import log_error_details, log_request_details, setup_logging
from navguard.infrastructure.cache import close_redis

# Setup logging
setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    """
    logger.info(
        "navguard_starting",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        backend=settings.BACKEND_API_URL,
        session_backend=settings.SESSION_BACKEND,
    )

    yield

    logger.info("navguard_shutting_down")
    app.state.services.store.clear()
    if app.state.services.settings.SESSION_BACKEND == "redis":
        await close_redis()


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-wired services; built from settings when omitted

    Returns:
        Configured application
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.APP_VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json" if not settings.is_production else None,
        docs_url=f"{settings.API_V1_PREFIX}/docs" if not settings.is_production else None,
        redoc_url=f"{settings.API_V1_PREFIX}/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.services = services or build_services(settings)
    session_header = app.state.services.settings.SESSION_HEADER

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Add unique request ID to each request."""
        request_id = request.headers.get("X-Request-ID", str(time.time_ns()))

        # Bind request ID to logging context
        clear_contextvars()
        bind_contextvars(request_id=request_id)
        session_id = request.headers.get(session_header)
        if session_id:
            bind_contextvars(session_id=session_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    # Add request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing information."""
        start_time = time.time()

        logger.info(
            "request_started",
            **log_request_details(
                request_id=request.headers.get("X-Request-ID", ""),
                method=request.method,
                path=request.url.path,
                client_ip=request.client.host if request.client else None,
                session_id=request.headers.get(session_header),
            ),
        )

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        return response

    @app.exception_handler(NavGuardException)
    async def navguard_exception_handler(request: Request, exc: NavGuardException):
        """Render application errors in the standard error envelope."""
        logger.warning(
            "request_failed",
            status_code=exc.status_code,
            **log_error_details(exc, error_code=exc.error_code.value, path=request.url.path),
        )

        content = ErrorResponse(exc.error_code, exc.message, exc.details).to_dict()
        if isinstance(exc, CredentialError):
            content["error"]["redirect"] = exc.redirect_to
        if getattr(exc, "retryable", False):
            content["error"]["retryable"] = True
        return JSONResponse(status_code=exc.status_code, content=content)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all unhandled exceptions."""
        logger.error(
            "unhandled_exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
        )

        # Don't expose internal errors in production
        if settings.is_production:
            return JSONResponse(
                status_code=500,
                content=ErrorResponse.internal_error().to_dict(),
            )

        return JSONResponse(
            status_code=500,
            content=ErrorResponse.internal_error(str(exc)).to_dict(),
        )

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Root endpoint
    @app.get("/")
    async def root() -> Dict[str, str]:
        """
        Root endpoint.

        Returns:
            API information
        """
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": f"{settings.API_V1_PREFIX}/docs" if not settings.is_production else "Disabled in production",
        }

    return app


app = create_app()
