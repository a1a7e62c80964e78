"""
Main FastAPI application for the S3 Image Server.
Wires the object store gateway, the listing cache and the HTTP routes together.
"""

import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import (
    APP_DESCRIPTION,
    APP_TITLE,
    LOG_RETENTION,
    LOG_ROTATION,
    Settings,
    load_settings,
)
from .middleware.rate_limiter import RateLimitMiddleware
from .middleware.request_logging import RequestLoggingMiddleware
from .middleware.security_headers import SecurityHeadersMiddleware
from .routes import health
from .routes.api import images as api_images
from .services.cache_service import ImageCache
from .services.query_service import ImageQueryService
from .services.refresh_scheduler import RefreshScheduler
from .services.storage_service import ObjectStoreGateway

_logging_configured = False


def configure_logging(settings: Settings) -> None:
    """Add rotating file sinks once per process."""
    global _logging_configured
    if _logging_configured:
        return
    os.makedirs(settings.log_dir, exist_ok=True)
    logger.add(
        os.path.join(settings.log_dir, "imageserver.log"),
        rotation=LOG_ROTATION,
        retention=LOG_RETENTION,
        level=settings.log_level,
    )
    logger.add(
        os.path.join(settings.log_dir, "errors.log"),
        rotation=LOG_ROTATION,
        retention=LOG_RETENTION,
        level="ERROR",
    )
    _logging_configured = True


def _cors_origins(value: str) -> list:
    return [origin.strip() for origin in value.split(",") if origin.strip()] or ["*"]


def create_app(
    settings: Settings, gateway: Optional[ObjectStoreGateway] = None
) -> FastAPI:
    """
    Build the application around an explicitly owned cache.

    Args:
        settings: Validated configuration.
        gateway: Object store gateway to list from. Built from ``settings``
            when omitted; tests pass a fake.
    """
    app = FastAPI(title=APP_TITLE, description=APP_DESCRIPTION, version=__version__)

    if gateway is None:
        gateway = ObjectStoreGateway(settings)
    cache = ImageCache(gateway)
    scheduler = RefreshScheduler(cache, settings.refresh_interval)
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.cache = cache
    app.state.scheduler = scheduler
    app.state.query_service = ImageQueryService(cache, scheduler)

    # Added innermost first; request logging ends up outermost.
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
        path_prefix="/api/",
        trust_proxy=settings.trust_proxy,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(settings.cors_origin),
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RequestLoggingMiddleware,
        enabled=settings.request_logging_enabled,
        trust_proxy=settings.trust_proxy,
    )

    app.include_router(health.router)
    app.include_router(api_images.router, prefix="/api")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(
            f"Server error on {request.method} {request.url.path}: {exc}"
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.on_event("startup")
    async def startup_event():
        scheduler.start()
        logger.info(f"{APP_TITLE} serving bucket '{settings.bucket}' ({settings.region})")

    @app.on_event("shutdown")
    async def shutdown_event():
        await scheduler.stop()
        await gateway.close()

    return app


def build_app() -> FastAPI:
    """Application factory for uvicorn: read the environment, then build the app."""
    settings = load_settings()
    configure_logging(settings)
    return create_app(settings)

