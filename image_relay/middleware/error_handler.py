"""
Error taxonomy and centralized error handling middleware.

Every failure of the upload pipeline is a RelayError subclass carrying the
HTTP status code it maps to. Responses are plain text, like the success body.
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """Base exception for upload pipeline errors."""

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class EmptyUpload(RelayError):
    """Raised when the request carries no usable file part."""

    def __init__(self, reason: str = "No file part in request"):
        super().__init__(
            message=f"Empty upload: {reason}",
            status_code=400,
            details={"reason": reason},
        )


class StagingIOError(RelayError):
    """Raised when writing the staged file to local disk fails."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            message=f"Failed to save file: {reason}",
            status_code=500,
            details={"path": path, "reason": reason},
        )


class NoMediaInResponse(RelayError):
    """Raised when the platform response carries no media reference."""

    def __init__(self):
        super().__init__(
            message="Failed to upload image: no photo in platform response",
            status_code=502,
        )


class EmptyMediaSet(RelayError):
    """Raised when the platform returns an empty list of media variants."""

    def __init__(self):
        super().__init__(
            message="Failed to upload image: photo size list is empty",
            status_code=502,
        )


class UpstreamError(RelayError):
    """Raised on transport failures and non-success platform responses."""

    def __init__(self, reason: str, status_code: int = 502, upstream_status: int | None = None):
        super().__init__(
            message=f"Failed to upload image: {reason}",
            status_code=status_code,
            details={"upstream_status": upstream_status},
        )


class UpstreamTimeout(UpstreamError):
    """Raised when a platform call exceeds its timeout."""

    def __init__(self, timeout_seconds: float):
        super().__init__(
            reason=f"platform did not respond within {timeout_seconds} seconds",
            status_code=504,
        )
        self.details = {"timeout_seconds": timeout_seconds}


def error_response(error: RelayError) -> PlainTextResponse:
    """Render a RelayError as the plain-text response returned to callers."""
    return PlainTextResponse(error.message, status_code=error.status_code)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware that catches unhandled exceptions and returns plain-text error responses.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response

        except RelayError as e:
            logger.error(
                f"RelayError: {e.message}",
                extra={"status_code": e.status_code, "details": e.details},
            )
            return error_response(e)

        except Exception as e:
            # Log full stack trace for unexpected errors
            logger.exception(f"Unhandled exception: {type(e).__name__}")
            return PlainTextResponse("Internal server error", status_code=500)
