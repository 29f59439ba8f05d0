"""
Error taxonomy for the file storage service.

Services raise these; only the FastAPI exception handler maps them to HTTP.
"""

from __future__ import annotations

from typing import Optional


class FileStorageError(Exception):
    """Base class for errors surfaced to callers of the file storage service."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(FileStorageError):
    status_code = 400
    code = "BAD_REQUEST"


class PayloadTooLargeError(FileStorageError):
    """Raised for uploads over the upload ceiling, or documents over the store ceiling."""

    status_code = 413
    code = "PAYLOAD_TOO_LARGE"

    def __init__(self, message: str, limit_bytes: Optional[int] = None):
        super().__init__(message)
        self.limit_bytes = limit_bytes


class UnsupportedMediaTypeError(FileStorageError):
    status_code = 415
    code = "UNSUPPORTED_MEDIA_TYPE"


class FileNotFoundInStoreError(FileStorageError):
    status_code = 404
    code = "NOT_FOUND"


class StorageFailureError(FileStorageError):
    """Opaque wrapper around backing-store I/O errors.

    The message is safe to show to end users; the underlying error is kept
    as ``__cause__`` for logs.
    """

    status_code = 500
    code = "INTERNAL_ERROR"
