"""Conversation Store API - Main Application Module.

This module initializes the FastAPI application with configuration,
middleware, routing, and the lifecycle of the record stores behind the
local chat tool.
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

# Add the project root to Python path if running directly
if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import ConfigValidator, settings
from app.core.dependencies import StoreContainer, build_container
from app.core.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle events."""
    # Startup
    configure_logging()
    if not isinstance(getattr(app.state, "stores", None), StoreContainer):
        ConfigValidator.validate_required_settings()
        app.state.stores = build_container()
    logger.info("Starting %s (%s storage)", settings.app_name, app.state.stores.backend)

    yield

    # Shutdown
    logger.info("Shutting down, flushing record stores")
    await app.state.stores.close()


def create_app(stores: StoreContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        stores: Pre-built store container; built from settings at startup if omitted.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Capped, append-only conversation store for a local chat tool",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    if stores is not None:
        app.state.stores = stores

    # Add middleware
    setup_middleware(app)

    # Add exception handlers
    setup_exception_handlers(app)

    # Include routers
    setup_routers(app)

    return app


def setup_middleware(app: FastAPI):
    """Configure application middleware."""
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Handle custom exceptions that have structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            message = exc.detail["message"]
            error_code = exc.detail.get("error_code", "HTTP_ERROR")
            details = exc.detail.get("details")
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"
            error_code = "HTTP_ERROR"
            details = None

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "status": "error",
                "message": message,
                "error_code": error_code,
                "details": details,
                "timestamp": datetime.now(UTC).isoformat(),
                "request_id": getattr(request.state, "request_id", None),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Convert errors to JSON-serializable format
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": error.get("loc", []),
                "msg": str(error.get("msg", "Validation error")),
                "type": error.get("type", "value_error"),
            }
            if "input" in error:
                error_dict["input"] = str(error["input"])
            errors.append(error_dict)

        return JSONResponse(
            status_code=422,
            content={
                "status": "error",
                "message": "Validation error",
                "error_code": "VALIDATION_ERROR",
                "details": errors,
                "timestamp": datetime.now(UTC).isoformat(),
                "request_id": getattr(request.state, "request_id", None),
            },
        )


def setup_routers(app: FastAPI):
    """Configure application routers."""
    from app.domains.conversation.controller import router as conversation_router

    @app.get("/health")
    async def health_check(request: Request):
        """Report which substrate the stores run on and whether writes are landing."""
        stores: StoreContainer | None = getattr(request.app.state, "stores", None)
        if stores is None:
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "message": "Record stores are not initialized",
                    "timestamp": datetime.now(UTC).isoformat(),
                },
            )

        store_status = {
            "conversations": "degraded" if stores.conversations.dirty else "healthy",
            "messages": "degraded" if stores.messages.dirty else "healthy",
        }
        return {
            "status": "healthy" if set(store_status.values()) == {"healthy"} else "degraded",
            "version": settings.version,
            "environment": settings.environment,
            "storage_backend": stores.backend,
            "timestamp": datetime.now(UTC).isoformat(),
            "services": store_status,
        }

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "description": "Capped, append-only conversation store",
            "docs_url": "/docs" if settings.is_development else None,
        }

    app.include_router(conversation_router)


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
