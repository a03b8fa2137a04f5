"""FastAPI middleware and the upload pipeline error taxonomy."""

from .error_handler import (
    EmptyMediaSet,
    EmptyUpload,
    ErrorHandlerMiddleware,
    NoMediaInResponse,
    RelayError,
    StagingIOError,
    UpstreamError,
    UpstreamTimeout,
    error_response,
)

__all__ = [
    "ErrorHandlerMiddleware",
    "RelayError",
    "EmptyUpload",
    "StagingIOError",
    "NoMediaInResponse",
    "EmptyMediaSet",
    "UpstreamError",
    "UpstreamTimeout",
    "error_response",
]
