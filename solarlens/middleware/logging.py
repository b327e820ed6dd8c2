"""
Request correlation, request logging and timing helpers.

The correlation id set here travels through every structlog event emitted
while a request (or an analysis started by it) is running.
"""
import asyncio
import functools
import time
import uuid
from contextvars import ContextVar
from typing import Any, Callable, Optional

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger(__name__)

SENSITIVE_FIELDS = {
    "authorization", "access_token", "jwt",
    "api_key", "secret", "account_number",
}

SLOW_REQUEST_MS = 2000


def get_correlation_id() -> str:
    """Get the current request's correlation ID."""
    return correlation_id.get()


def redact_sensitive_data(data: Any, depth: int = 0) -> Any:
    """Replace values of sensitive keys with "[REDACTED]", recursing into dicts and lists."""
    if depth > 5:
        return data
    if isinstance(data, list):
        return [redact_sensitive_data(item, depth + 1) for item in data]
    if not isinstance(data, dict):
        return data

    redacted = {}
    for key, value in data.items():
        if isinstance(key, str) and any(s in key.lower() for s in SENSITIVE_FIELDS):
            redacted[key] = "[REDACTED]"
        else:
            redacted[key] = redact_sensitive_data(value, depth + 1)
    return redacted


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach an X-Correlation-ID to every request and response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        token = correlation_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id.reset(token)
        response.headers["X-Correlation-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of each API request."""

    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        request_info = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }
        logger.info("request_started", **request_info)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                **request_info,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(start_time),
            )
            raise

        duration_ms = _elapsed_ms(start_time)
        log = logger.warning if duration_ms > SLOW_REQUEST_MS else logger.info
        log(
            "request_completed",
            **request_info,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        return response


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


def _log_outcome(operation: str, start_time: float, error: Optional[BaseException] = None) -> None:
    if error is None:
        logger.info("operation_completed", operation=operation, duration_ms=_elapsed_ms(start_time))
    else:
        logger.error(
            "operation_failed",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            duration_ms=_elapsed_ms(start_time),
        )


def log_performance(operation_name: str):
    """
    Decorator that logs the duration of a sync or async callable.

    Usage:
        @log_performance("pdf_text_extraction")
        def extract_pdf(path):
            ...
    """
    def decorator(func: Callable) -> Callable:
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                start_time = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _log_outcome(operation_name, start_time, e)
                    raise
                _log_outcome(operation_name, start_time)
                return result

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_outcome(operation_name, start_time, e)
                raise
            _log_outcome(operation_name, start_time)
            return result

        return sync_wrapper

    return decorator


def add_correlation_id_processor(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Structlog processor that adds the correlation ID to every entry."""
    event_dict.setdefault("correlation_id", get_correlation_id())
    return event_dict


def redact_sensitive_processor(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Structlog processor that redacts sensitive data from log entries."""
    return redact_sensitive_data(event_dict)
