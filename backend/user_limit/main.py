"""User Limit Service - Main FastAPI Application

Caps the number of rows in the host users table, keeping the
longest-registered accounts.

This module creates and configures the FastAPI application, including:
- The retention admin router and observability endpoints
- Request ID middleware
- Exception handlers
- Startup/shutdown of the eviction scheduler
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import get_settings
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router
from .retention.plugin import UserLimitPlugin, build_plugin
from .retention.router import router as retention_router

logger = logging.getLogger(__name__)


def create_app(
    plugin_factory: Callable[[], UserLimitPlugin] = build_plugin,
    start_scheduler: Optional[bool] = None,
) -> FastAPI:
    """Build the application.

    Args:
        plugin_factory: Creates the plugin on startup
        start_scheduler: Run the timer thread; defaults to SCHEDULER_ENABLED
    """
    settings = get_settings()
    if start_scheduler is None:
        start_scheduler = settings.SCHEDULER_ENABLED

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: build the plugin and restore the eviction job.

        Scheduler failures are logged, not raised, so the API still comes
        up; the next startup retries.
        """
        logger.info("User limit API starting up...")
        logger.info(f"Environment: {settings.ENVIRONMENT}")

        plugin = plugin_factory()
        app.state.plugin = plugin

        try:
            plugin.on_startup(start_timer=start_scheduler)
        except Exception:
            logger.error("Could not ensure the eviction job on startup", exc_info=True)

        yield

        logger.info("User limit API shutting down...")
        plugin.on_shutdown()

    app = FastAPI(
        title="User Limit API",
        description="Keeps only the configured number of longest-registered users",
        version="1.0.0",
        docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
        openapi_url="/openapi.json" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Request ID Middleware (must be first for proper correlation)
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors with field-level details."""
        logger.warning(f"Validation error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "validation_error",
                "message": "Request validation failed",
                "details": jsonable_errors(exc),
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(
        request: Request,
        exc: SQLAlchemyError
    ) -> JSONResponse:
        """Handle database errors without leaking SQL."""
        logger.error(
            f"Database error on {request.method} {request.url.path}",
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "database_error",
                "message": "A database error occurred",
            },
        )

    app.include_router(observability_router)
    app.include_router(retention_router)

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors with only JSON-safe fields."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


configure_logging(
    level=get_settings().LOG_LEVEL,
    json_format=get_settings().LOG_JSON,
)

app = create_app()


if __name__ == "__main__":
    import os
    import uvicorn

    uvicorn.run(
        "user_limit.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=get_settings().LOG_LEVEL.lower(),
    )
