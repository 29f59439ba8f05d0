"""
Firestore-backed file storage.

Files are stored as base64 inside a single document so the app runs without a
Cloud Storage bucket. Firestore caps documents at ~1 MB, so image uploads are
compressed when they exceed a target size and rejected if the encoded
document would still be over the ceiling.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from backend.compression import CompressionOutcome, ImageCompressor
from backend.config import IngestionConfig
from backend.db import DocumentStore
from backend.errors import (
    FileNotFoundInStoreError,
    InvalidInputError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)
from shared.utils import get_unique_id

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:"
DEFAULT_BUFFER_MIME_TYPE = "image/svg+xml"

_EXTENSIONS_BY_MIME = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/svg+xml": "svg",
    "image/webp": "webp",
}


def extension_for_mime(mime_type: str) -> str:
    return _EXTENSIONS_BY_MIME.get(mime_type, "bin")


def _format_megabytes(num_bytes: int) -> str:
    return f"{num_bytes / 1024 / 1024:g}"


@dataclass
class StoredFile:
    id: str
    location: str
    filename: str
    mime_type: str
    size: int
    data: str
    created_at: Any = None

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "location": self.location,
            "filename": self.filename,
            "mimeType": self.mime_type,
            "size": self.size,
            "data": self.data,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_document(cls, document: dict) -> "StoredFile":
        return cls(
            id=document["id"],
            location=document.get("location", ""),
            filename=document.get("filename", ""),
            mime_type=document["mimeType"],
            size=document.get("size", 0),
            data=document["data"],
            created_at=document.get("createdAt"),
        )

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class FileStorageService:
    """Stores, retrieves and deletes files kept as base64 documents."""

    def __init__(
        self,
        store: DocumentStore,
        compressor: ImageCompressor,
        config: Optional[IngestionConfig] = None,
    ):
        self._store = store
        self._compressor = compressor
        self._config = config or IngestionConfig()

    @property
    def config(self) -> IngestionConfig:
        return self._config

    def store_image(
        self,
        location: str,
        data: Optional[bytes],
        mime_type: Optional[str],
        filename: Optional[str] = None,
    ) -> str:
        """
        Validates, compresses if needed, and stores a user-uploaded image.

        Args:
            location (str): Purpose/path tag, e.g. "partner-logo/business1".
            data (bytes): Raw upload bytes.
            mime_type (str): Declared MIME type of the upload.
            filename (str): Original filename; synthesized from the id if absent.

        Returns:
            str: The generated file id.

        Raises:
            InvalidInputError: No data was uploaded.
            PayloadTooLargeError: The upload exceeds the upload ceiling, or the
                encoded document exceeds the store ceiling after compression.
            UnsupportedMediaTypeError: The declared type is not image/*.
        """
        config = self._config
        if not data:
            raise InvalidInputError("No file uploaded.")

        if len(data) > config.max_upload_bytes:
            raise PayloadTooLargeError(
                "File too large. Maximum size is "
                f"{_format_megabytes(config.max_upload_bytes)}MB",
                limit_bytes=config.max_upload_bytes,
            )

        if not mime_type or not mime_type.startswith("image/"):
            raise UnsupportedMediaTypeError("Only image files are allowed")

        if len(data) > config.target_size_bytes:
            result = self._compressor.compress(data, mime_type)
            if result.outcome is CompressionOutcome.UNAVAILABLE:
                logger.warning(
                    "Image compression not available. Using original image "
                    "(%d bytes, %s).",
                    len(data),
                    mime_type,
                )
            elif result.outcome is CompressionOutcome.COMPRESSED:
                logger.info(
                    "Compressed %s upload from %d to %d bytes",
                    mime_type,
                    len(data),
                    len(result.data),
                )
            data, mime_type = result.data, result.mime_type

        return self._write(
            data,
            location=location,
            mime_type=mime_type,
            filename=filename,
            too_large_message=(
                "Image is too large even after compression. "
                "Please use a smaller image."
            ),
        )

    def store_buffer(
        self,
        data: bytes,
        location: str,
        mime_type: str = DEFAULT_BUFFER_MIME_TYPE,
    ) -> str:
        """
        Stores a machine-generated buffer (QR codes and the like) as-is.

        Upload validation is skipped; the document ceiling still applies.
        """
        return self._write(
            data,
            location=location,
            mime_type=mime_type,
            filename=None,
            too_large_message="File is too large to store.",
        )

    def _write(
        self,
        data: bytes,
        *,
        location: str,
        mime_type: str,
        filename: Optional[str],
        too_large_message: str,
    ) -> str:
        config = self._config
        encoded = base64.b64encode(data).decode("ascii")

        estimated_doc_size = len(encoded) + config.metadata_overhead_bytes
        if estimated_doc_size > config.document_ceiling_bytes:
            logger.warning(
                "Refusing to store %s: estimated document size %d exceeds %d",
                location,
                estimated_doc_size,
                config.document_ceiling_bytes,
            )
            raise PayloadTooLargeError(
                too_large_message, limit_bytes=config.document_ceiling_bytes
            )

        file_id = get_unique_id()
        stored = StoredFile(
            id=file_id,
            location=location,
            filename=filename or f"{file_id}.{extension_for_mime(mime_type)}",
            mime_type=mime_type,
            size=len(data),
            data=encoded,
            created_at=SERVER_TIMESTAMP,
        )
        self._store.put(config.collection, file_id, stored.to_document())
        return file_id

    def _load(self, file_id: str, not_found_message: str) -> StoredFile:
        if not file_id:
            raise InvalidInputError("File id is required.")
        document = self._store.get(self._config.collection, file_id)
        if document is None:
            raise FileNotFoundInStoreError(not_found_message)
        return StoredFile.from_document(document)

    def get_data_uri(self, file_id: str) -> str:
        """Returns the stored file as a data URI; data URIs pass through untouched."""
        if file_id and file_id.startswith(DATA_URI_PREFIX):
            return file_id
        return self._load(file_id, "Image not found").to_data_uri()

    def get_base64(self, file_id: str) -> str:
        return self._load(file_id, "File not found").data

    def delete(self, file_id: str) -> None:
        # Deleting an unknown id is a no-op.
        if not file_id:
            raise InvalidInputError("File id is required.")
        self._store.delete(self._config.collection, file_id)
