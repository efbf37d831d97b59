"""
Application factory for the Composition API.

This module provides a factory function to create configured FastAPI instances.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..core.exceptions import MathemelodyError, get_error_summary
from ..infrastructure.config.settings import AppConfig, get_config
from ..infrastructure.database.connection import create_database, create_tables
from ..infrastructure.monitoring.logging import configure_logging, get_logger
from ..infrastructure.monitoring.metrics import metrics
from .endpoints import auth, comments, compositions, health

logger = get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    if first.get("type") == "missing":
        field = first.get("loc", ("body",))[-1]
        return f"Missing required field: {field}"

    message = str(first.get("msg", "Invalid request"))
    # pydantic prefixes messages raised from validators
    return message.removeprefix("Value error, ")


def register_exception_handlers(app: FastAPI) -> None:
    """Map every error to a ``{"error": message}`` body."""

    @app.exception_handler(MathemelodyError)
    async def mathemelody_error_handler(request: Request, exc: MathemelodyError):
        if exc.http_status >= 500:
            logger.error("Request failed", path=request.url.path, **get_error_summary(exc))
            return _error(exc.http_status, "Internal server error")
        return _error(exc.http_status, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, _validation_message(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error", path=request.url.path, **get_error_summary(exc))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration; defaults to the global one

    Returns:
        Configured FastAPI application
    """
    config = config or get_config()
    database = create_database(config.database)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        configure_logging(
            level=config.logging.level,
            format_type=config.logging.format,
            log_file=config.logging.file,
        )
        logger.info("Starting Mathemelody API", environment=config.environment)
        await database.connect()
        await create_tables(database)

        yield

        logger.info("Shutting down Mathemelody API")
        await database.disconnect()

    app = FastAPI(
        title="Mathemelody",
        description="Share equation grids that play as music",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(compositions.router, prefix="/api/compositions", tags=["compositions"])
    app.include_router(comments.router, prefix="/api/comments", tags=["comments"])
    app.include_router(health.router, prefix="/health", tags=["health"])

    @app.get("/metrics", include_in_schema=False)
    async def get_metrics():
        """Prometheus metrics endpoint"""
        return Response(content=metrics.export(), media_type=metrics.content_type)

    return app
