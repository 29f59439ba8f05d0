"""
Best-effort image compression used to fit uploads under the document ceiling.

Compression is a size reducer, not a size guarantee: the loop stops at a
quality floor, and FileStorageService enforces the hard ceiling afterwards.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from PIL import Image

from backend.config import IngestionConfig

logger = logging.getLogger(__name__)

COMPRESSED_MIME_TYPE = "image/jpeg"
_COMPRESSED_FORMAT = "JPEG"


class CompressionOutcome(Enum):
    COMPRESSED = "compressed"
    UNCHANGED = "unchanged"
    UNAVAILABLE = "unavailable"
    UNDECODABLE = "undecodable"


@dataclass(frozen=True)
class CompressionResult:
    data: bytes
    mime_type: str
    outcome: CompressionOutcome


class ImageDecodeError(Exception):
    """Raised by a codec when the payload is not an image it can read."""


class ImageCodec(Protocol):
    def read_dimensions(self, data: bytes) -> tuple[int, int]:
        ...

    def resize(self, data: bytes, max_width: int, max_height: int) -> bytes:
        ...

    def encode(self, data: bytes, image_format: str, quality: int) -> bytes:
        ...


class ImageCompressor(Protocol):
    def compress(self, data: bytes, mime_type: str) -> CompressionResult:
        ...


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (
        img.mode == "P" and "transparency" in img.info
    )


def _flatten_to_rgb(img: Image.Image) -> Image.Image:
    if _has_alpha(img):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


class PillowImageCodec:
    """ImageCodec backed by Pillow."""

    def _open(self, data: bytes) -> Image.Image:
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (OSError, Image.DecompressionBombError) as e:
            raise ImageDecodeError(str(e)) from e
        return img

    def read_dimensions(self, data: bytes) -> tuple[int, int]:
        try:
            with Image.open(io.BytesIO(data)) as img:
                return img.size
        except (OSError, Image.DecompressionBombError) as e:
            raise ImageDecodeError(str(e)) from e

    def resize(self, data: bytes, max_width: int, max_height: int) -> bytes:
        """Fit inside max_width x max_height, keeping aspect ratio; never upscales.

        Returns PNG so the lossy step only happens once, in encode().
        """
        img = self._open(data)
        img = img.convert("RGBA") if _has_alpha(img) else img.convert("RGB")
        img.thumbnail((max_width, max_height), Image.Resampling.LANCZOS)
        output = io.BytesIO()
        img.save(output, format="PNG")
        return output.getvalue()

    def encode(self, data: bytes, image_format: str, quality: int) -> bytes:
        img = _flatten_to_rgb(self._open(data))
        output = io.BytesIO()
        img.save(
            output,
            format=image_format,
            quality=quality,
            optimize=True,
            progressive=True,
        )
        return output.getvalue()


class CodecImageCompressor:
    """Progressive-quality JPEG re-encoder.

    Quality starts at ``initial_quality`` and drops by ``quality_step`` while
    the result is above ``target_size_bytes`` and quality is above
    ``min_quality``. Oversized images are downscaled to ``max_dimension``
    first.
    """

    def __init__(self, codec: ImageCodec, config: IngestionConfig):
        self._codec = codec
        self._config = config

    def compress(self, data: bytes, mime_type: str) -> CompressionResult:
        config = self._config
        try:
            width, height = self._codec.read_dimensions(data)
            source = data
            if width > config.max_dimension or height > config.max_dimension:
                source = self._codec.resize(
                    data, config.max_dimension, config.max_dimension
                )

            quality = config.initial_quality
            result = data
            while (
                len(result) > config.target_size_bytes
                and quality > config.min_quality
            ):
                result = self._codec.encode(source, _COMPRESSED_FORMAT, quality)
                logger.debug(
                    "Re-encoded %s at quality %d: %d -> %d bytes",
                    mime_type,
                    quality,
                    len(data),
                    len(result),
                )
                quality -= config.quality_step
        except ImageDecodeError as e:
            logger.warning(
                "Could not decode %s payload for compression, storing original: %s",
                mime_type,
                e,
            )
            return CompressionResult(data, mime_type, CompressionOutcome.UNDECODABLE)

        if result is data or len(result) >= len(data):
            return CompressionResult(data, mime_type, CompressionOutcome.UNCHANGED)
        return CompressionResult(
            result, COMPRESSED_MIME_TYPE, CompressionOutcome.COMPRESSED
        )


class PassthroughImageCompressor:
    """Wired in when image compression is disabled for this deployment."""

    def compress(self, data: bytes, mime_type: str) -> CompressionResult:
        return CompressionResult(data, mime_type, CompressionOutcome.UNAVAILABLE)
