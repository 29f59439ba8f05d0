"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from backend.compression import (
    CodecImageCompressor,
    ImageCompressor,
    PassthroughImageCompressor,
    PillowImageCodec,
)
from backend.config import IngestionConfig, get_settings
from backend.db import DocumentStore, FirestoreDocumentStore, InMemoryDocumentStore
from backend.files import FileStorageService
from backend.qr_codes import QrCodeService

_document_store: DocumentStore | None = None
_file_service: FileStorageService | None = None
_qr_code_service: QrCodeService | None = None


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so in-memory state persists across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.firebase_project_id:
        _document_store = InMemoryDocumentStore()
    else:
        _document_store = FirestoreDocumentStore.from_firebase(
            settings.firebase_project_id
        )
    return _document_store


def build_compressor(config: IngestionConfig) -> ImageCompressor:
    if get_settings().image_compression_enabled:
        return CodecImageCompressor(PillowImageCodec(), config)
    return PassthroughImageCompressor()


def get_file_service() -> FileStorageService:
    global _file_service
    if _file_service:
        return _file_service

    config = IngestionConfig.from_settings(get_settings())
    _file_service = FileStorageService(
        store=get_document_store(),
        compressor=build_compressor(config),
        config=config,
    )
    return _file_service


def get_qr_code_service() -> QrCodeService:
    global _qr_code_service
    if _qr_code_service:
        return _qr_code_service

    settings = get_settings()
    _qr_code_service = QrCodeService(
        get_file_service(),
        box_size=settings.qr_box_size,
        border=settings.qr_border,
    )
    return _qr_code_service
