"""Firestore-backed document store used by every training service.

Services talk to the ``DocumentStore`` protocol only, so they can run against
the in-memory store used in tests. Collection paths may address
subcollections (``employees/{id}/skills``).
"""

from __future__ import annotations

import logging
import os
from typing import Any, NamedTuple, Protocol

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from app.core.config import Settings
from app.core.errors import PersistenceError

logger = logging.getLogger(__name__)

EMPLOYEES = "employees"
TRAININGS = "trainings"
TRAINING_PROGRAMS = "training_programs"

_APP_NAME = "skillbridge"


def employee_skills_path(employee_id: str) -> str:
    return f"{EMPLOYEES}/{employee_id}/skills"


def employee_qualifications_path(employee_id: str) -> str:
    return f"{EMPLOYEES}/{employee_id}/qualifications"


def employee_trainings_path(employee_id: str) -> str:
    return f"{EMPLOYEES}/{employee_id}/trainings"


class StoredDocument(NamedTuple):
    id: str
    data: dict[str, Any]


class DocumentStore(Protocol):
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    async def query(self, collection: str, field: str, value: Any) -> list[StoredDocument]: ...

    async def list_documents(self, collection: str) -> list[StoredDocument]: ...

    async def add(self, collection: str, data: dict[str, Any]) -> str: ...

    async def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = True) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...


class FirestoreDocumentStore:
    def __init__(self) -> None:
        self.app: firebase_admin.App | None = None
        self.client: Any = None
        self.initialized: bool = False

    async def initialize(self, settings: Settings) -> None:
        if self.initialized:
            return

        credentials_path = settings.FIREBASE_CREDENTIALS_PATH
        if not credentials_path or not settings.FIREBASE_PROJECT_ID:
            logger.warning("Firebase credentials missing — document store not initialized")
            return

        if not os.path.exists(credentials_path):
            raise RuntimeError(f"Firebase credentials file not found at: {os.path.abspath(credentials_path)}")

        cred = credentials.Certificate(credentials_path)
        self.app = firebase_admin.initialize_app(
            cred,
            {"projectId": settings.FIREBASE_PROJECT_ID},
            name=_APP_NAME,
        )
        self.client = firestore_async.client(self.app)
        self.initialized = True
        logger.info("Firestore document store initialized (project=%s)", settings.FIREBASE_PROJECT_ID)

    async def close(self) -> None:
        if self.app is not None:
            firebase_admin.delete_app(self.app)
        self.app = None
        self.client = None
        self.initialized = False

    def _collection(self, collection: str) -> Any:
        if not self.client:
            raise PersistenceError("Document store not initialized")
        return self.client.collection(collection)

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        if not doc_id:
            return None
        try:
            snapshot = await self._collection(collection).document(doc_id).get()
        except google_exceptions.GoogleAPIError as e:
            raise PersistenceError(f"Failed to read {collection}/{doc_id}: {e}") from e
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    async def query(self, collection: str, field: str, value: Any) -> list[StoredDocument]:
        query = self._collection(collection).where(filter=FieldFilter(field, "==", value))
        return await self._stream(collection, query)

    async def list_documents(self, collection: str) -> list[StoredDocument]:
        return await self._stream(collection, self._collection(collection))

    async def _stream(self, collection: str, query: Any) -> list[StoredDocument]:
        documents: list[StoredDocument] = []
        try:
            async for snapshot in query.stream():
                documents.append(StoredDocument(snapshot.id, snapshot.to_dict() or {}))
        except google_exceptions.GoogleAPIError as e:
            raise PersistenceError(f"Failed to query {collection}: {e}") from e
        return documents

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        try:
            _, ref = await self._collection(collection).add(data)
        except google_exceptions.GoogleAPIError as e:
            raise PersistenceError(f"Failed to add document to {collection}: {e}") from e
        return ref.id

    async def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = True) -> None:
        try:
            await self._collection(collection).document(doc_id).set(data, merge=merge)
        except google_exceptions.GoogleAPIError as e:
            raise PersistenceError(f"Failed to write {collection}/{doc_id}: {e}") from e

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            await self._collection(collection).document(doc_id).delete()
        except google_exceptions.GoogleAPIError as e:
            raise PersistenceError(f"Failed to delete {collection}/{doc_id}: {e}") from e

    async def check_connection(self) -> bool:
        if not self.client:
            return False
        try:
            async for _ in self.client.collection(EMPLOYEES).limit(1).stream():
                return True
            return True
        except Exception:
            logger.exception("Firestore connection check failed")
            return False


document_store = FirestoreDocumentStore()
