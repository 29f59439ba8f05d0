"""
FastAPI application entry point for the file storage backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.config import get_settings
from backend.errors import FileStorageError, PayloadTooLargeError
from backend.routes import router
from backend.schemas import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


async def handle_file_storage_error(
    request: Request, exc: FileStorageError
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    detail = ErrorDetail(
        code=exc.code,
        message=exc.message,
        limit_bytes=exc.limit_bytes if isinstance(exc, PayloadTooLargeError) else None,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=detail).model_dump(exclude_none=True),
    )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="File Storage Backend (FastAPI)", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.add_exception_handler(FileStorageError, handle_file_storage_error)
    return app


app = create_app()
