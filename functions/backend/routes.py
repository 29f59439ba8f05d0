"""
HTTP routes for the file storage API.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from starlette.concurrency import run_in_threadpool

from backend.dependencies import get_file_service, get_qr_code_service
from backend.files import FileStorageService
from backend.qr_codes import QrCodeService
from backend.schemas import (
    FileBase64Response,
    FileCreatedResponse,
    FileDataUriResponse,
    QrCodePreviewRequest,
    QrCodePreviewResponse,
    QrCodeStoreRequest,
)

router = APIRouter()


@router.post("/files", response_model=FileCreatedResponse, status_code=201)
async def upload_file(
    file: UploadFile | None = File(None),
    location: str = Form(..., min_length=1, max_length=512),
    files: FileStorageService = Depends(get_file_service),
):
    """
    Store an uploaded image. Compression is CPU-bound, so it runs off the event loop.
    """
    data = None
    content_type = None
    filename = None
    if file is not None:
        # One byte past the ceiling is enough for store_image to reject it.
        data = await file.read(files.config.max_upload_bytes + 1)
        content_type = file.content_type
        filename = file.filename
    file_id = await run_in_threadpool(
        files.store_image,
        location,
        data,
        content_type,
        filename,
    )
    return FileCreatedResponse(id=file_id)


@router.get("/files/{file_id}", response_model=FileDataUriResponse)
def get_file(file_id: str, files: FileStorageService = Depends(get_file_service)):
    return FileDataUriResponse(id=file_id, data_uri=files.get_data_uri(file_id))


@router.get("/files/{file_id}/raw", response_model=FileBase64Response)
def get_file_raw(
    file_id: str, files: FileStorageService = Depends(get_file_service)
):
    return FileBase64Response(id=file_id, data=files.get_base64(file_id))


@router.delete("/files/{file_id}", status_code=204)
def delete_file(file_id: str, files: FileStorageService = Depends(get_file_service)):
    files.delete(file_id)
    return Response(status_code=204)


@router.post("/qr-codes", response_model=FileCreatedResponse, status_code=201)
def create_qr_code(
    payload: QrCodeStoreRequest,
    qr_codes: QrCodeService = Depends(get_qr_code_service),
):
    file_id = qr_codes.generate_and_store(payload.data, payload.location)
    return FileCreatedResponse(id=file_id)


@router.post("/qr-codes/preview", response_model=QrCodePreviewResponse)
def preview_qr_code(
    payload: QrCodePreviewRequest,
    qr_codes: QrCodeService = Depends(get_qr_code_service),
):
    return QrCodePreviewResponse(data_uri=qr_codes.render_data_uri(payload.content))
