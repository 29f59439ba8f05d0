"""
CLI helper to store, fetch and delete files in the Firestore file store.
"""

from __future__ import annotations

import argparse
import base64
import logging
import mimetypes
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.dependencies import get_file_service, get_qr_code_service
from backend.errors import FileStorageError

logger = logging.getLogger(__name__)


def _store(args: argparse.Namespace) -> int:
    path = Path(args.path)
    mime_type = args.mime_type or mimetypes.guess_type(path.name)[0]
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.error("Could not read %s: %s", path, e)
        return 1
    file_id = get_file_service().store_image(args.location, data, mime_type, path.name)
    print(file_id)
    return 0


def _get(args: argparse.Namespace) -> int:
    files = get_file_service()
    if args.output:
        Path(args.output).write_bytes(base64.b64decode(files.get_base64(args.file_id)))
    else:
        print(files.get_data_uri(args.file_id))
    return 0


def _delete(args: argparse.Namespace) -> int:
    get_file_service().delete(args.file_id)
    return 0


def _qr(args: argparse.Namespace) -> int:
    file_id = get_qr_code_service().generate_and_store(
        {"id": args.id, "content": args.content}, args.location
    )
    print(file_id)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Firestore file store")
    subparsers = parser.add_subparsers(dest="command", required=True)

    store = subparsers.add_parser("store", help="Store an image file")
    store.add_argument("path", help="Image file to upload")
    store.add_argument("-l", "--location", required=True, help="Location tag")
    store.add_argument(
        "-m",
        "--mime-type",
        default=None,
        help="Override the MIME type guessed from the file name",
    )
    store.set_defaults(handler=_store)

    get = subparsers.add_parser("get", help="Print a stored file as a data URI")
    get.add_argument("file_id")
    get.add_argument(
        "-o", "--output", default=None, help="Write decoded bytes to this path"
    )
    get.set_defaults(handler=_get)

    delete = subparsers.add_parser("delete", help="Delete a stored file")
    delete.add_argument("file_id")
    delete.set_defaults(handler=_delete)

    qr = subparsers.add_parser("qr", help="Generate and store a QR code")
    qr.add_argument("content", help="Text to encode")
    qr.add_argument("-l", "--location", required=True, help="Location tag")
    qr.add_argument("--id", required=True, help="Identifier of the coded item")
    qr.set_defaults(handler=_qr)
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    try:
        return args.handler(args)
    except FileStorageError as e:
        logger.error("%s: %s", e.code, e.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
