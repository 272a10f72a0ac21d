"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from asha_dashboard import __version__
from asha_dashboard.api import dashboard, health, login, mothers
from asha_dashboard.api.rate_limits import limiter
from asha_dashboard.clients.factory import close_backend
from asha_dashboard.config import get_settings, require_valid_settings
from asha_dashboard.core.exceptions import DashboardError
from asha_dashboard.core.log import get_logger, setup_logging


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please try again later.",
            "detail": str(exc.detail),
        },
    )


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with structured response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": _status_code_to_error_type(exc.status_code),
            "message": str(exc.detail),
            "status_code": exc.status_code,
        },
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with detailed field information."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors.append({
            "field": field or "request",
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": errors,
        },
    )


def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
    """Map domain errors that reach the HTTP layer to their status codes."""
    log = get_logger(__name__)
    log.warning(
        "Request failed",
        error=exc.error_code,
        message=exc.message,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions.

    Logs the error and returns a generic 500 response without exposing
    internal details in production.
    """
    log = get_logger(__name__)
    log.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )

    settings = get_settings()
    detail = str(exc) if settings.debug else "An internal error occurred"

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": detail,
        },
    )


def _status_code_to_error_type(status_code: int) -> str:
    """Map HTTP status codes to error type strings."""
    error_types = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        422: "validation_error",
        429: "rate_limit_exceeded",
        500: "internal_error",
        502: "bad_gateway",
        503: "service_unavailable",
        504: "gateway_timeout",
    }
    return error_types.get(status_code, "error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = require_valid_settings()
    log = get_logger(__name__)

    setup_logging(level=settings.log_level, json_output=settings.log_json)

    log.info(
        "Starting ASHA Dashboard",
        version=__version__,
        environment=settings.environment,
        backend=settings.backend.provider,
    )

    yield

    # Shutdown
    log.info("Shutting down ASHA Dashboard")
    await close_backend()
    log.info("Backend connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="ASHA Dashboard",
        description="Patient roster, follow-up flags and IVR calls for ASHA workers",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Rate limiting
    app.state.limiter = limiter

    # Exception handlers (order matters - most specific first)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(DashboardError, dashboard_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Cannot use wildcard origins with credentials, so debug mode lists the
    # usual local frontends
    cors_origins = (
        [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://localhost:8501",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:8501",
        ]
        if settings.debug
        else []
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(login.router, prefix="/api/v1", tags=["Auth"])
    app.include_router(dashboard.router, prefix="/api/v1", tags=["Dashboard"])
    app.include_router(mothers.router, prefix="/api/v1", tags=["Mothers"])

    return app


# Create application instance
app = create_app()


def run() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asha_dashboard.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
