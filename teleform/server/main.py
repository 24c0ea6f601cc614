"""
FastAPI Application for Teleform.

Serves the AWS template generators and the Azure existing-resource export.
Every error response has the shape ``{"success": false, "error": "..."}``.

Run with ``teleform serve`` or
``uvicorn teleform.server.main:create_app --factory``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..config_manager import TeleformConfig
from ..exceptions import TeleformError
from ..export.workspace import cleanup_stale_workspaces
from ..logging_config import configure_logging
from .dependencies import initialize_services, reset_services
from .routers import aws, azure, download, export, health

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}
    )


async def teleform_error_handler(request: Request, exc: TeleformError) -> JSONResponse:
    """Map our exceptions to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return _error_response(exc.status_code, exc.message)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors with 400 Bad Request."""
    errors = exc.errors()
    first_error = errors[0] if errors else {}

    field = ".".join(str(loc) for loc in first_error.get("loc", []))
    message = first_error.get("msg", "Validation error")
    return _error_response(status.HTTP_400_BAD_REQUEST, f"Invalid {field}: {message}")


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: keep the error shape for anything not mapped above."""
    logger.exception(f"{request.method} {request.url.path} failed unexpectedly: {exc}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


def create_app(config: Optional[TeleformConfig] = None) -> FastAPI:
    """
    Build the application.

    Args:
        config: Configuration to serve with (default: loaded from environment)
    """
    config = config or TeleformConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(config.server.log_level)
        logger.info("Starting Teleform...")
        logger.info(str(f"Configuration: {config}"))

        initialize_services(config)
        # exports interrupted by a previous crash or restart
        removed = cleanup_stale_workspaces(config.exporter.workspace_dir)
        if removed:
            logger.info(f"Removed {removed} stale export workspaces")

        try:
            yield
        finally:
            logger.info("Shutting down Teleform...")
            reset_services()

    app = FastAPI(
        title="Teleform",
        version=__version__,
        description="Terraform generation from AWS forms and existing Azure resources",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
        expose_headers=["Content-Disposition"],
    )

    app.add_exception_handler(TeleformError, teleform_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(aws.router, prefix="/api", tags=["AWS"])
    app.include_router(download.router, prefix="/api", tags=["Download"])
    app.include_router(azure.router, prefix="/api", tags=["Azure"])
    app.include_router(export.router, prefix="/api", tags=["Export"])

    return app


def serve(
    config: Optional[TeleformConfig] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    reload: bool = False,
) -> None:
    """Run the server with uvicorn."""
    import uvicorn

    config = config or TeleformConfig.from_env()
    host = host or config.server.host
    port = port or config.server.port
    if reload:
        # reload needs an import string; the factory re-reads the environment
        uvicorn.run(
            "teleform.server.main:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
        )
    else:
        uvicorn.run(create_app(config), host=host, port=port)


__all__ = ["create_app", "serve"]
