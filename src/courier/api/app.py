"""FastAPI application for Courier."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from courier import __version__
from courier.config import Settings
from courier.exceptions import CourierError, NotFoundError, StorageError, ValidationError
from courier.logging import configure_logging, get_logger
from courier.service import CourierService

from .middleware import RequestIDMiddleware
from .router import router, set_service

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan.

    Initializes the CourierService and starts the retry worker on
    startup; stops the worker and closes storage on shutdown.
    """
    settings: Settings = app.state.settings

    configure_logging(level=settings.log_level, format=settings.log_format)
    logger.info(
        "Starting Courier API", log_level=settings.log_level, log_format=settings.log_format
    )

    service = CourierService.create(settings)
    await service.initialize()
    set_service(service)

    if settings.retry_worker_enabled:
        service.worker.start()

    yield

    await service.close()
    set_service(None)
    logger.info("Courier API stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Args:
        settings: Optional settings. Uses environment if None.

    Returns:
        Configured FastAPI application.

    Example:
        ```python
        from courier.api import create_app

        app = create_app()
        # Run with: uvicorn courier.api:app --reload
        ```
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="Courier",
        description="Signed webhook delivery with retries.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    app.add_middleware(RequestIDMiddleware)

    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=settings.cors_allow_methods,
            allow_headers=settings.cors_allow_headers,
            max_age=settings.cors_max_age,
        )

    register_exception_handlers(app)
    app.include_router(router, prefix="/api/v1")

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Map Courier errors to HTTP responses."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Handle validation errors with 400 status."""
        logger.warning(
            "Validation error", field=exc.field, error=exc.message, path=str(request.url)
        )
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Render malformed request bodies and parameters like ValidationError."""
        error = ValidationError.from_errors(exc.errors())
        logger.warning(
            "Request validation error",
            field=error.field,
            error=error.message,
            path=str(request.url),
        )
        return JSONResponse(status_code=400, content=error.to_dict())

    @app.exception_handler(NotFoundError)
    async def not_found_error_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        """Handle not found errors with 404 status."""
        logger.info(
            "Resource not found",
            resource_type=exc.resource_type,
            resource_id=exc.resource_id,
            path=str(request.url),
        )
        return JSONResponse(status_code=404, content=exc.to_dict())

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        """Handle storage failures with 500 status."""
        logger.error("Storage error", error=exc.message, path=str(request.url))
        return JSONResponse(status_code=500, content=exc.to_dict())

    @app.exception_handler(CourierError)
    async def courier_error_handler(request: Request, exc: CourierError) -> JSONResponse:
        """Handle all other Courier errors with 500 status."""
        logger.error("Courier error", error=exc.message, code=exc.code, path=str(request.url))
        return JSONResponse(status_code=500, content=exc.to_dict())


# Default app instance for uvicorn
app = create_app()
