import base64
import io
import random
import unittest
from datetime import datetime
from unittest.mock import MagicMock

from PIL import Image

from backend.compression import (
    CodecImageCompressor,
    PassthroughImageCompressor,
    PillowImageCodec,
)
from backend.config import IngestionConfig
from backend.db import InMemoryDocumentStore
from backend.errors import (
    FileNotFoundInStoreError,
    InvalidInputError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)
from backend.files import FileStorageService
from shared.utils import URL_SAFE_ALPHABET


def _noise_image(width: int, height: int, fmt: str = "PNG", **save_kwargs) -> bytes:
    rng = random.Random(width * 7919 + height)
    img = Image.frombytes("RGB", (width, height), rng.randbytes(width * height * 3))
    output = io.BytesIO()
    img.save(output, format=fmt, **save_kwargs)
    return output.getvalue()


class FileStorageServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.config = IngestionConfig()
        self.service = FileStorageService(
            self.store, CodecImageCompressor(PillowImageCodec(), self.config), self.config
        )

    def _stored(self, file_id: str) -> dict:
        return self.store.get(self.config.collection, file_id)

    def test_small_png_is_stored_without_compression(self):
        payload = _noise_image(100, 100)
        self.assertLess(len(payload), self.config.target_size_bytes)
        compressor = MagicMock()
        service = FileStorageService(self.store, compressor, self.config)

        file_id = service.store_image("partner-logo/biz1", payload, "image/png", "logo.png")

        compressor.compress.assert_not_called()
        doc = self._stored(file_id)
        self.assertEqual(doc["mimeType"], "image/png")
        self.assertEqual(doc["size"], len(payload))
        self.assertEqual(doc["filename"], "logo.png")
        self.assertEqual(doc["location"], "partner-logo/biz1")
        self.assertEqual(base64.b64decode(doc["data"]), payload)
        self.assertIsInstance(doc["createdAt"], datetime)

    def test_generated_id_is_sixteen_url_safe_characters(self):
        file_id = self.service.store_image("x", b"\x89PNG fake", "image/png")
        self.assertEqual(len(file_id), 16)
        self.assertTrue(all(ch in URL_SAFE_ALPHABET for ch in file_id))
        self.assertEqual(self._stored(file_id)["id"], file_id)

    def test_missing_filename_is_synthesized_from_id(self):
        file_id = self.service.store_image("x", b"\x89PNG fake", "image/png")
        self.assertEqual(self._stored(file_id)["filename"], f"{file_id}.png")

    def test_large_png_is_compressed_to_jpeg(self):
        payload = _noise_image(600, 600)
        self.assertGreater(len(payload), self.config.target_size_bytes)

        file_id = self.service.store_image("products/p1", payload, "image/png")

        doc = self._stored(file_id)
        self.assertEqual(doc["mimeType"], "image/jpeg")
        self.assertLess(doc["size"], len(payload))
        decoded = base64.b64decode(doc["data"])
        self.assertEqual(len(decoded), doc["size"])
        with Image.open(io.BytesIO(decoded)) as img:
            self.assertEqual(img.format, "JPEG")

    def test_two_megabyte_jpeg_is_recompressed(self):
        # Noise at quality 100 without chroma subsampling barely compresses:
        # roughly one byte per sample, so 900x900x3 lands between 2 and 5 MB.
        payload = _noise_image(900, 900, fmt="JPEG", quality=100, subsampling=0)
        self.assertGreaterEqual(len(payload), 2_000_000)
        self.assertLess(len(payload), self.config.max_upload_bytes)

        file_id = self.service.store_image("products/p2", payload, "image/jpeg")

        doc = self._stored(file_id)
        self.assertEqual(doc["mimeType"], "image/jpeg")
        self.assertLess(doc["size"], len(payload))
        self.assertLessEqual(
            len(doc["data"]) + self.config.metadata_overhead_bytes,
            self.config.document_ceiling_bytes,
        )

    def test_payload_over_upload_ceiling_is_rejected(self):
        payload = b"\x00" * (6 * 1024 * 1024)
        with self.assertRaises(PayloadTooLargeError) as ctx:
            self.service.store_image("x", payload, "image/png")
        self.assertIn("5MB", ctx.exception.message)
        self.assertEqual(ctx.exception.limit_bytes, 5 * 1024 * 1024)
        self.assertEqual(self.store.write_count, 0)

    def test_non_image_is_rejected(self):
        with self.assertRaises(UnsupportedMediaTypeError):
            self.service.store_image("x", b"hello", "text/plain")
        with self.assertRaises(UnsupportedMediaTypeError):
            self.service.store_image("x", b"hello", None)
        self.assertEqual(self.store.write_count, 0)

    def test_empty_payload_is_rejected_first(self):
        with self.assertRaises(InvalidInputError):
            self.service.store_image("x", b"", "text/plain")
        with self.assertRaises(InvalidInputError):
            self.service.store_image("x", None, "image/png")

    def test_size_check_runs_before_media_type_check(self):
        with self.assertRaises(PayloadTooLargeError):
            self.service.store_image("x", b"a" * (6 * 1024 * 1024), "text/plain")

    def test_incompressible_image_fails_closed(self):
        config = IngestionConfig(
            target_size_bytes=1_000,
            document_ceiling_bytes=4_000,
            metadata_overhead_bytes=500,
        )
        service = FileStorageService(
            self.store, CodecImageCompressor(PillowImageCodec(), config), config
        )
        payload = _noise_image(300, 300)

        with self.assertRaises(PayloadTooLargeError) as ctx:
            service.store_image("x", payload, "image/png")
        self.assertIn("even after compression", ctx.exception.message)
        self.assertEqual(ctx.exception.limit_bytes, 4_000)
        self.assertEqual(self.store.write_count, 0)

    def test_unavailable_compression_stores_original(self):
        config = IngestionConfig(target_size_bytes=100)
        service = FileStorageService(self.store, PassthroughImageCompressor(), config)
        payload = b"x" * 500

        with self.assertLogs("backend.files", level="WARNING"):
            file_id = service.store_image("x", payload, "image/png")

        doc = self._stored(file_id)
        self.assertEqual(doc["mimeType"], "image/png")
        self.assertEqual(doc["size"], 500)

    def test_undecodable_image_is_stored_as_is(self):
        config = IngestionConfig(target_size_bytes=100)
        service = FileStorageService(
            self.store, CodecImageCompressor(PillowImageCodec(), config), config
        )
        payload = b"not really a png" * 50

        file_id = service.store_image("x", payload, "image/png")

        doc = self._stored(file_id)
        self.assertEqual(doc["mimeType"], "image/png")
        self.assertEqual(base64.b64decode(doc["data"]), payload)

    def test_store_buffer_skips_upload_validation(self):
        svg = b"<svg xmlns='http://www.w3.org/2000/svg'></svg>"
        file_id = self.service.store_buffer(svg, "qr/batch-1")
        doc = self._stored(file_id)
        self.assertEqual(doc["mimeType"], "image/svg+xml")
        self.assertEqual(doc["filename"], f"{file_id}.svg")
        self.assertEqual(doc["size"], len(svg))

        other_id = self.service.store_buffer(b"raw", "misc", "application/octet-stream")
        self.assertEqual(self._stored(other_id)["filename"], f"{other_id}.bin")

    def test_store_buffer_still_enforces_document_ceiling(self):
        config = IngestionConfig(document_ceiling_bytes=1_000, metadata_overhead_bytes=0)
        service = FileStorageService(self.store, PassthroughImageCompressor(), config)
        with self.assertRaises(PayloadTooLargeError):
            service.store_buffer(b"a" * 2_000, "qr")
        self.assertEqual(self.store.write_count, 0)

    def test_get_data_uri(self):
        file_id = self.service.store_image("x", b"\x89PNG fake", "image/png")
        expected = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode()
        self.assertEqual(self.service.get_data_uri(file_id), expected)
        self.assertEqual(self.service.get_data_uri(file_id), expected)

    def test_get_data_uri_passes_data_uris_through(self):
        uri = "data:image/png;base64,AAAA"
        self.assertEqual(self.service.get_data_uri(uri), uri)

    def test_get_data_uri_unknown_id(self):
        with self.assertRaises(FileNotFoundInStoreError):
            self.service.get_data_uri("nonexistent-id")

    def test_get_base64(self):
        file_id = self.service.store_image("x", b"\x89PNG fake", "image/png")
        self.assertEqual(
            self.service.get_base64(file_id), base64.b64encode(b"\x89PNG fake").decode()
        )
        with self.assertRaises(FileNotFoundInStoreError):
            self.service.get_base64("nonexistent-id")

    def test_delete(self):
        file_id = self.service.store_image("x", b"\x89PNG fake", "image/png")
        self.service.delete(file_id)
        with self.assertRaises(FileNotFoundInStoreError):
            self.service.get_data_uri(file_id)
        # Unknown ids are a no-op.
        self.service.delete(file_id)

    def test_empty_id_is_invalid(self):
        with self.assertRaises(InvalidInputError):
            self.service.get_data_uri("")
        with self.assertRaises(InvalidInputError):
            self.service.get_base64("")
        with self.assertRaises(InvalidInputError):
            self.service.delete("")


if __name__ == "__main__":
    unittest.main()
