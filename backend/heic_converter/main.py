"""HEIC Converter Backend Application.

This is the main entry point for the HEIC to JPEG conversion service.
Clients upload a HEIC/HEIF photo, get back a one-time download link for the
JPEG version, and a small dashboard reads usage counters.

Modules:
    - intake: upload validation and temporary storage
    - conversion: codec, worker and request orchestration
    - artifacts: converted files pending download, deleted after a grace period
    - analytics: in-process usage counters with a daily archive
    - spa: fallback serving the built web client

Everything is held in memory. Restarting the process loses the analytics
counters and every pending artifact; files never downloaded stay on disk.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .analytics.router import router as analytics_router
from .artifacts.router import router as artifacts_router
from .config import AppConfig, get_config
from .conversion.codec import ImageCodec, PillowHeifCodec
from .conversion.router import router as conversion_router
from .errors import ConversionError, ConverterError, redact_paths
from .services import ConverterServices, build_services
from .spa import router as spa_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# PIL logs every plugin it probes; multipart logs every chunk boundary.
for _noisy in (
    "PIL",
    "PIL.PngImagePlugin",
    "python_multipart",
    "multipart",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}


def _services(request: Request) -> ConverterServices:
    return request.app.state.services


def create_app(
    config: Optional[AppConfig] = None,
    codec: Optional[ImageCodec] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Explicit configuration. Defaults to ``get_config()``.
        codec: Image codec. Defaults to :class:`PillowHeifCodec`.
        clock: Time source for analytics date rollover.

    Returns:
        The configured application. Services are created on startup.
    """
    app_config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup/shutdown events."""
        # Startup
        configured_level = getattr(logging, app_config.server.log_level.upper(), None)
        if configured_level is not None:
            logging.getLogger().setLevel(configured_level)
            logger.info("Root logger level set to %s", app_config.server.log_level.upper())

        app.state.services = build_services(
            app_config,
            codec=codec or PillowHeifCodec(),
            started_at=time.monotonic(),
            clock=clock,
        )
        logger.info(
            "HEIC to JPEG Converter ready on port %s (uploads=%s, output=%s)",
            app_config.server.port,
            app_config.storage.upload_dir,
            app_config.storage.output_dir,
        )

        yield  # Application runs here

        # Shutdown
        await app.state.services.store.shutdown()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="HEIC Converter API",
        description="Converts HEIC/HEIF photos to JPEG for one-time download",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.server.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    # -------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------

    @app.exception_handler(ConverterError)
    async def converter_error_handler(request: Request, exc: ConverterError) -> JSONResponse:
        message = redact_paths(exc.message, _services(request).storage_roots)
        if isinstance(exc, ConversionError):
            logger.error("Conversion error: %s", message)
            return JSONResponse(
                {"error": "Conversion failed", "message": message},
                status_code=exc.status_code,
            )
        return JSONResponse({"error": message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # A malformed /convert form is still a failed conversion attempt.
        if request.url.path.endswith("/convert"):
            _services(request).analytics.record_failure()
        logger.info("Rejected malformed request to %s", request.url.path)
        return JSONResponse({"error": "Invalid request"}, status_code=400)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Server error on %s", request.url.path)
        services = _services(request)
        services.analytics.record_failure()
        return JSONResponse(
            {
                "error": "Internal server error",
                "message": redact_paths(str(exc), services.storage_roots),
            },
            status_code=500,
        )

    # -------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------

    @app.get("/health")
    async def health(request: Request) -> dict:
        """Health check endpoint.

        Returns:
            dict: Liveness status, server time and uptime. No side effects.
        """
        services = _services(request)
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptimeSeconds": round(time.monotonic() - services.started_at, 3),
            "port": services.config.server.port,
        }

    api_prefix = app_config.server.api_prefix
    if api_prefix:
        app.add_api_route(f"{api_prefix}/health", health, methods=["GET"], include_in_schema=False)

    for api_router in (analytics_router, conversion_router, artifacts_router):
        app.include_router(api_router)
        if api_prefix:
            app.include_router(api_router, prefix=api_prefix, include_in_schema=False)

    # Catch-all, must stay last.
    app.include_router(spa_router)

    return app


app = create_app()
