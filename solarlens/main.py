"""
FastAPI application entry point.

Configures the application with routes, middleware, and settings.
"""
import logging
import os
import traceback

import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from solarlens import __version__
from solarlens.api.routes import estimates, results, upload
from solarlens.config import get_settings
from solarlens.database import init_db
from solarlens.exceptions import SolarLensError
from solarlens.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    add_correlation_id_processor,
    redact_sensitive_data,
    redact_sensitive_processor,
)

settings = get_settings()

sentry_dsn = os.getenv("SENTRY_DSN")
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=os.getenv("ENVIRONMENT", "development"),
        release=os.getenv("APP_VERSION", __version__),
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        send_default_pii=False,
        before_send=lambda event, hint: redact_sensitive_data(event),
    )

logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        add_correlation_id_processor,
        redact_sensitive_processor,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

app = FastAPI(
    title="SolarLens API",
    description="""
## Solar Proposal and Utility Bill Analysis API

Upload a solar installation proposal and a recent utility bill; SolarLens
extracts the relevant fields, reconciles them with roof potential,
production and incentive estimates, and stores a savings forecast.

Protected endpoints require a valid JWT token in the Authorization header.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Upload", "description": "Proposal and utility bill upload and extraction"},
        {"name": "Results", "description": "Analysis generation and stored results"},
        {"name": "Estimates", "description": "Roof potential, production, incentives and environmental impact"},
        {"name": "Health", "description": "Service health"},
    ],
)

# Order matters: correlation ID first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(upload.router, prefix="/api/v1", tags=["Upload"])
app.include_router(results.router, prefix="/api/v1", tags=["Results"])
app.include_router(estimates.router, prefix="/api/v1", tags=["Estimates"])


@app.exception_handler(SolarLensError)
async def solarlens_exception_handler(request: Request, exc: SolarLensError):
    """Handle all SolarLens custom exceptions."""
    logger.error(
        "solarlens_error",
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        path=str(request.url.path),
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with consistent format."""
    sentry_sdk.capture_exception(exc)

    logger.error(
        "unhandled_error",
        error_type=type(exc).__name__,
        message=str(exc),
        path=str(request.url.path),
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "error_code": "SLR-999",
            "message": "An unexpected error occurred. Please try again.",
            "details": {"error_type": type(exc).__name__} if settings.debug else {},
        },
    )


@app.on_event("startup")
async def startup_event() -> None:
    """Initialize application on startup."""
    logger.info("solarlens_starting", debug=settings.debug, sentry_enabled=bool(sentry_dsn))
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    init_db()
    logger.info("solarlens_started")


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
