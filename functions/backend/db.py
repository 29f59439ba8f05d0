"""
Document store abstraction for Firestore and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from backend.errors import StorageFailureError

logger = logging.getLogger(__name__)

# API failures plus credential refresh and transport failures.
_STORE_ERRORS = (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


class DocumentStore(Protocol):
    """Per-document operations the file service needs from the database.

    Values equal to ``SERVER_TIMESTAMP`` are resolved by the store at write time.
    """

    def put(self, collection: str, doc_id: str, document: Dict[str, Any]) -> None:
        ...

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...


class InMemoryDocumentStore:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.write_count = 0

    def put(self, collection: str, doc_id: str, document: Dict[str, Any]) -> None:
        now = datetime.now(timezone.utc)
        stored = {
            key: (now if value is SERVER_TIMESTAMP else copy.deepcopy(value))
            for key, value in document.items()
        }
        self.collections.setdefault(collection, {})[doc_id] = stored
        self.write_count += 1

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        document = self.collections.get(collection, {}).get(doc_id)
        if document is None:
            return None
        return copy.deepcopy(document)

    def delete(self, collection: str, doc_id: str) -> None:
        self.collections.get(collection, {}).pop(doc_id, None)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.collections.clear()
        self.write_count = 0


class FirestoreDocumentStore:
    """Firestore-backed document store.

    API errors from the client are logged and re-raised as
    StorageFailureError so callers never see storage paths or client internals.
    """

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_firebase(cls, project_id: str | None = None) -> "FirestoreDocumentStore":
        import firebase_admin
        from firebase_admin import firestore

        try:
            firebase_admin.get_app()
        except ValueError:
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(options=options)
        return cls(firestore.client())

    def _doc(self, collection: str, doc_id: str):
        return self._client.collection(collection).document(doc_id)

    def put(self, collection: str, doc_id: str, document: Dict[str, Any]) -> None:
        try:
            self._doc(collection, doc_id).set(document)
        except _STORE_ERRORS as e:
            logger.exception("Firestore write failed for %s/%s", collection, doc_id)
            raise StorageFailureError("Failed to store file") from e

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            snapshot = self._doc(collection, doc_id).get()
        except _STORE_ERRORS as e:
            logger.exception("Firestore read failed for %s/%s", collection, doc_id)
            raise StorageFailureError("Failed to retrieve file") from e
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            self._doc(collection, doc_id).delete()
        except _STORE_ERRORS as e:
            logger.exception("Firestore delete failed for %s/%s", collection, doc_id)
            raise StorageFailureError("Failed to delete file") from e
