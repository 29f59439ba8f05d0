"""
Configuration and settings for the file storage backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Firestore
    firebase_project_id: Optional[str] = Field(default=None)
    files_collection: str = Field(default="files")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)
    image_compression_enabled: bool = Field(default=True)

    # Ingestion limits (bytes)
    max_upload_bytes: int = Field(default=5 * 1024 * 1024, gt=0)
    target_size_bytes: int = Field(default=700 * 1024, gt=0)
    document_ceiling_bytes: int = Field(default=1_000_000, gt=0)
    metadata_overhead_bytes: int = Field(default=500, ge=0)

    # Lossy re-encode policy
    compression_initial_quality: int = Field(default=80, ge=1, le=100)
    compression_quality_step: int = Field(default=10, ge=1)
    compression_min_quality: int = Field(default=10, ge=0, le=100)
    compression_max_dimension: int = Field(default=1200, gt=0)

    # QR rendering
    qr_box_size: int = Field(default=10, gt=0)
    qr_border: int = Field(default=4, ge=0)


@dataclass(frozen=True)
class IngestionConfig:
    """Size ceilings and compression steps used by FileStorageService."""

    collection: str = "files"
    max_upload_bytes: int = 5 * 1024 * 1024
    # Base64 adds ~33%, so 700 KiB raw stays under the 1 MB document limit.
    target_size_bytes: int = 700 * 1024
    document_ceiling_bytes: int = 1_000_000
    metadata_overhead_bytes: int = 500
    initial_quality: int = 80
    quality_step: int = 10
    min_quality: int = 10
    max_dimension: int = 1200

    @classmethod
    def from_settings(cls, settings: Settings) -> "IngestionConfig":
        return cls(
            collection=settings.files_collection,
            max_upload_bytes=settings.max_upload_bytes,
            target_size_bytes=settings.target_size_bytes,
            document_ceiling_bytes=settings.document_ceiling_bytes,
            metadata_overhead_bytes=settings.metadata_overhead_bytes,
            initial_quality=settings.compression_initial_quality,
            quality_step=settings.compression_quality_step,
            min_quality=settings.compression_min_quality,
            max_dimension=settings.compression_max_dimension,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
