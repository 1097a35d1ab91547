# backend/price_history/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)
"""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from price_history.config import settings
from price_history.dependencies import get_file_storage
from price_history.middleware import CorrelationIdMiddleware
from price_history.routers import (
    coverage_router,
    positions_router,
    prices_router,
    sync_router,
)
from price_history.schemas.errors import ErrorDetail
from price_history.services.exceptions import (
    ConfigError,
    FetchError,
    MarketDataError,
    NotFoundError,
    ParseError,
    ProviderUnavailableError,
    ServiceError,
    UnsupportedExchangeError,
)
from price_history.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()

# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Daily price history, corporate actions and position analytics for a portfolio",
    version="0.1.0",
)

# =============================================================================
# MIDDLEWARE
# =============================================================================

# Add correlation ID tracking for request tracing
# This extracts/generates correlation IDs and adds them to response headers
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# These handlers catch service-layer exceptions and convert them to
# consistent HTTP responses. The most specific registered class wins.
# =============================================================================

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle missing price history or transactions (404)."""
    logger.warning(f"Not found: {exc}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={"resource_type": exc.resource_type, "resource_id": exc.resource_id},
        ).model_dump(),
    )


@app.exception_handler(ParseError)
async def parse_error_handler(request: Request, exc: ParseError) -> JSONResponse:
    """Handle malformed dates, numbers or JSON documents (400)."""
    logger.warning(f"Parse error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="ParseError",
            message=str(exc),
            details={"value": exc.value, "source": exc.source} if exc.value or exc.source else None,
        ).model_dump(),
    )


@app.exception_handler(ProviderUnavailableError)
async def provider_unavailable_handler(request: Request, exc: ProviderUnavailableError) -> JSONResponse:
    """Handle an unreachable chart API (503)."""
    logger.error(f"Provider unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorDetail(
            error="ProviderUnavailableError",
            message=str(exc),
            details={"provider": exc.provider, "symbol": exc.symbol},
        ).model_dump(),
    )


@app.exception_handler(FetchError)
async def fetch_error_handler(request: Request, exc: FetchError) -> JSONResponse:
    """Handle upstream fetch failures (502)."""
    logger.error(f"Fetch error: {exc}")
    return JSONResponse(
        status_code=502,
        content=ErrorDetail(
            error="FetchError",
            message=str(exc),
            details={
                "provider": exc.provider,
                "symbol": exc.symbol,
                "status_code": exc.status_code,
            },
        ).model_dump(),
    )


@app.exception_handler(UnsupportedExchangeError)
async def unsupported_exchange_handler(request: Request, exc: UnsupportedExchangeError) -> JSONResponse:
    """Handle symbols on exchanges the provider does not cover (422)."""
    logger.warning(f"Unsupported exchange: {exc.exchange}")
    return JSONResponse(
        status_code=422,
        content=ErrorDetail(
            error="UnsupportedExchangeError",
            message=str(exc),
            details={"symbol": exc.symbol, "exchange": exc.exchange},
        ).model_dump(),
    )


@app.exception_handler(MarketDataError)
async def market_data_error_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    """Handle generic market data errors (500)."""
    logger.error(f"Market data error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="MarketDataError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(ConfigError)
async def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
    """Handle unusable configuration, e.g. an unwritable storage root (500)."""
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ConfigError",
            message=str(exc),
            details={"setting": exc.setting} if exc.setting else None,
        ).model_dump(),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ServiceError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle all HTTPExceptions with consistent error format.

    Converts FastAPI's default {"detail": "..."} format to our standard
    ErrorDetail format for API consistency.
    """
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        409: "ConflictError",
        422: "ValidationError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }
    error_type = error_types.get(exc.status_code, "HTTPError")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorDetail(
            error=error_type,
            message=str(exc.detail) if exc.detail else "An error occurred",
            details=None,
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors with the ErrorDetail format (422)."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content=ErrorDetail(
            error="ValidationError",
            message="Request validation failed",
            details={"errors": errors},
        ).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(sync_router)  # /sync/*
app.include_router(coverage_router)  # /coverage/*
app.include_router(prices_router)  # /prices/*
app.include_router(positions_router)  # /positions/*


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
def root():
    """
    API root - returns basic application info.
    """
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns HTTP 503 if the storage root is missing or not writable.
    The chart API is not probed; sync outcomes report upstream failures.
    """
    try:
        storage = get_file_storage()
    except ConfigError as e:
        logger.error(f"Storage health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "checks": {"storage": {"status": "unhealthy", "error": str(e)}},
            },
        )

    return {
        "status": "healthy",
        "checks": {"storage": {"status": "healthy", "root": str(storage.root)}},
    }
