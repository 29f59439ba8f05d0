"""
Pydantic schemas for the file storage API.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field


class FileCreatedResponse(BaseModel):
    id: str


class FileDataUriResponse(BaseModel):
    id: str
    data_uri: str


class FileBase64Response(BaseModel):
    id: str
    data: str


class QrCodeStoreRequest(BaseModel):
    data: Dict[str, Any]
    location: str = Field(..., min_length=1, max_length=512)


class QrCodePreviewRequest(BaseModel):
    content: Union[str, Dict[str, Any]]


class QrCodePreviewResponse(BaseModel):
    data_uri: str


class ErrorDetail(BaseModel):
    code: str
    message: str
    limit_bytes: Optional[int] = None


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    error: ErrorDetail
