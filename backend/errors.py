"""Custom exceptions and centralized FastAPI error handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DashboardError(Exception):
    """Base exception with HTTP status code."""

    def __init__(self, message: str, status_code: int = 500, extra: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.extra = extra or {}


class MissingParameterError(DashboardError):
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class APIKeyNotConfiguredError(DashboardError):
    def __init__(self):
        super().__init__("API key not configured", status_code=500)


class UpstreamError(DashboardError):
    """An upstream provider failed or returned something unusable."""

    def __init__(self, message: str, status_code: int = 502, extra: dict | None = None):
        super().__init__(message, status_code=status_code, extra=extra)


class UpstreamTimeoutError(UpstreamError):
    def __init__(self, message: str = "Request timeout"):
        super().__init__(message, status_code=504)


class ServiceUnavailableError(DashboardError):
    def __init__(self, message: str):
        super().__init__(message, status_code=503)


class LocationNotFoundError(DashboardError):
    def __init__(self, message: str, extra: dict | None = None):
        super().__init__(message, status_code=404, extra=extra)


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(DashboardError)
    async def handle_dashboard_error(_request: Request, exc: DashboardError):
        return JSONResponse({"error": str(exc), **exc.extra}, status_code=exc.status_code)

    @app.exception_handler(ValueError)
    async def handle_value_error(_request: Request, exc: ValueError):
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            {"error": "Internal server error"},
            status_code=500,
        )
