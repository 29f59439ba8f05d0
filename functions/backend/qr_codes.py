"""
QR code rendering and storage.

Rendering is done locally with the ``qrcode`` library; stored codes go through
FileStorageService.store_buffer as SVG documents.
"""

from __future__ import annotations

import base64
import io
import json
import logging
from typing import Any, Dict, Union

import qrcode
import qrcode.image.svg
from qrcode.exceptions import DataOverflowError

from backend.errors import InvalidInputError
from backend.files import FileStorageService

logger = logging.getLogger(__name__)

SVG_MIME_TYPE = "image/svg+xml"

QrContent = Union[str, Dict[str, Any]]


def _to_text(content: QrContent) -> str:
    if isinstance(content, str):
        return content
    return json.dumps(content)


class QrCodeService:
    def __init__(
        self,
        files: FileStorageService,
        box_size: int = 10,
        border: int = 4,
    ):
        self._files = files
        self._box_size = box_size
        self._border = border

    def _build(self, content: QrContent) -> qrcode.QRCode:
        text = _to_text(content)
        if not text:
            raise InvalidInputError("QR content is required.")
        qr = qrcode.QRCode(
            error_correction=qrcode.constants.ERROR_CORRECT_Q,
            box_size=self._box_size,
            border=self._border,
        )
        qr.add_data(text)
        try:
            qr.make(fit=True)
        except (DataOverflowError, ValueError) as e:
            raise InvalidInputError("Content is too long to encode as a QR code") from e
        return qr

    def render_svg(self, content: QrContent) -> bytes:
        image = self._build(content).make_image(
            image_factory=qrcode.image.svg.SvgPathImage
        )
        output = io.BytesIO()
        image.save(output)
        return output.getvalue()

    def render_png(self, content: QrContent) -> bytes:
        image = self._build(content).make_image(
            fill_color="black", back_color="white"
        )
        output = io.BytesIO()
        image.save(output)
        return output.getvalue()

    def render_data_uri(self, content: QrContent) -> str:
        """PNG data URI, for embedding in HTML without storing anything."""
        encoded = base64.b64encode(self.render_png(content)).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def generate_and_store(self, data: Dict[str, Any], location: str) -> str:
        """
        Renders ``data`` as an SVG QR code and stores it under "<location>/<id>".

        Returns:
            str: The stored file id.
        """
        item_id = data.get("id")
        if not item_id:
            raise InvalidInputError("QR data must include an 'id'.")
        svg = self.render_svg(data)
        file_id = self._files.store_buffer(svg, f"{location}/{item_id}", SVG_MIME_TYPE)
        logger.info("Stored QR code for %s as %s", item_id, file_id)
        return file_id
