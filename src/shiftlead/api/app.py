"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shiftlead.api.routes import attributions_router, health_router, roster_router
from shiftlead.config import get_settings
from shiftlead.database import create_tables, dispose_db, init_db
from shiftlead.pos.errors import AuthError, ConfigurationError, RateLimitedError, UpstreamError
from shiftlead.services.sync_service import build_toast_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    engine, _ = init_db()
    await create_tables(engine)

    http = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    app.state.toast = build_toast_services(settings, http)
    try:
        yield
    finally:
        await http.aclose()
        await dispose_db()


def _error(status_code: int, detail: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, "code": code})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Shift Leader Engine API",
        description="Order attribution and shift leader performance",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(RateLimitedError)
    async def rate_limited_handler(request: Request, exc: RateLimitedError) -> JSONResponse:
        response = _error(
            status.HTTP_429_TOO_MANY_REQUESTS, RateLimitedError.user_message, "RATE_LIMITED"
        )
        if exc.retry_after is not None:
            response.headers["Retry-After"] = str(int(exc.retry_after))
        return response

    @app.exception_handler(ConfigurationError)
    async def configuration_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("%s", exc)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc), "NOT_CONFIGURED")

    @app.exception_handler(AuthError)
    async def auth_handler(request: Request, exc: AuthError) -> JSONResponse:
        logger.error("Point-of-sale authentication failed: %s", exc)
        return _error(status.HTTP_502_BAD_GATEWAY, str(exc), "POS_AUTH_FAILED")

    @app.exception_handler(UpstreamError)
    async def upstream_handler(request: Request, exc: UpstreamError) -> JSONResponse:
        logger.error("Point-of-sale request failed: %s", exc)
        return _error(status.HTTP_502_BAD_GATEWAY, str(exc), "POS_UPSTREAM_ERROR")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s", request.url.path)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            "INTERNAL_ERROR",
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(attributions_router, prefix="/api/v1")
    app.include_router(roster_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
