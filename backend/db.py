"""
Document-store abstraction for Firestore and an in-memory test implementation.

Documents cross this boundary as camelCase dicts, the shape they have in
Firestore. Every returned document carries its id under "id".
"""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Protocol

from firebase_admin import firestore

from shared.firebase_constants import (
    BOARDS_COLLECTION,
    HEALTH_CHECK_COLLECTION,
    ICON_LIBRARY_COLLECTION,
    USER_PROFILES_COLLECTION,
)

ORDER_FIELDS = ("createdAt", "updatedAt", "name")


class DbClient(Protocol):
    """Interface for database access."""

    def ping(self) -> None:
        ...

    def create_board(self, data: dict) -> dict:
        ...

    def get_board(self, board_id: str) -> Optional[dict]:
        ...

    def replace_board(self, board_id: str, data: dict) -> dict:
        ...

    def delete_board(self, board_id: str) -> None:
        ...

    def list_boards(
        self,
        *,
        user_id: Optional[str] = None,
        is_public: Optional[bool] = None,
        order_by: str = "updatedAt",
        direction: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict]:
        ...

    def create_icon(self, data: dict) -> dict:
        ...

    def get_icon(self, icon_id: str) -> Optional[dict]:
        ...

    def list_icons(self, user_id: str, limit: int = 50) -> list[dict]:
        ...

    def get_profile(self, user_id: str) -> Optional[dict]:
        ...

    def save_profile(self, user_id: str, data: dict) -> dict:
        ...

    def delete_profile(self, user_id: str) -> bool:
        ...


def _sort_key(value: Any):
    # None sorts first in ascending order, as Firestore orders nulls first.
    return (value is not None, value)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {
            BOARDS_COLLECTION: {},
            ICON_LIBRARY_COLLECTION: {},
            USER_PROFILES_COLLECTION: {},
        }
        self._epoch = datetime.now(timezone.utc)
        self._clock_ticks = 0

    def reset(self) -> None:
        for documents in self.collections.values():
            documents.clear()

    def _now(self) -> datetime:
        # Strictly increasing so ordering by timestamp is deterministic.
        self._clock_ticks += 1
        return self._epoch + timedelta(milliseconds=self._clock_ticks)

    def _put(self, collection: str, doc_id: str, data: dict, *, created_at=None) -> dict:
        now = self._now()
        stored = copy.deepcopy(data)
        stored.pop("id", None)
        stored["createdAt"] = created_at or now
        stored["updatedAt"] = now
        self.collections[collection][doc_id] = stored
        return self._get(collection, doc_id)

    def _get(self, collection: str, doc_id: str) -> Optional[dict]:
        stored = self.collections[collection].get(doc_id)
        if stored is None:
            return None
        return {"id": doc_id, **copy.deepcopy(stored)}

    def ping(self) -> None:
        return None

    def create_board(self, data: dict) -> dict:
        return self._put(BOARDS_COLLECTION, uuid.uuid4().hex, data)

    def get_board(self, board_id: str) -> Optional[dict]:
        return self._get(BOARDS_COLLECTION, board_id)

    def replace_board(self, board_id: str, data: dict) -> dict:
        existing = self.collections[BOARDS_COLLECTION].get(board_id)
        if existing is None:
            raise KeyError(board_id)
        return self._put(
            BOARDS_COLLECTION, board_id, data, created_at=existing.get("createdAt")
        )

    def delete_board(self, board_id: str) -> None:
        self.collections[BOARDS_COLLECTION].pop(board_id, None)

    def list_boards(
        self,
        *,
        user_id: Optional[str] = None,
        is_public: Optional[bool] = None,
        order_by: str = "updatedAt",
        direction: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict]:
        if order_by not in ORDER_FIELDS:
            raise ValueError(f"Unsupported order field: {order_by}")
        docs = [
            self._get(BOARDS_COLLECTION, doc_id)
            for doc_id in self.collections[BOARDS_COLLECTION]
        ]
        if user_id is not None:
            docs = [doc for doc in docs if doc.get("userId") == user_id]
        if is_public is not None:
            docs = [doc for doc in docs if bool(doc.get("isPublic")) == is_public]
        docs.sort(
            key=lambda doc: _sort_key(doc.get(order_by)),
            reverse=direction == "desc",
        )
        return docs[offset : offset + limit]

    def create_icon(self, data: dict) -> dict:
        return self._put(ICON_LIBRARY_COLLECTION, uuid.uuid4().hex, data)

    def get_icon(self, icon_id: str) -> Optional[dict]:
        return self._get(ICON_LIBRARY_COLLECTION, icon_id)

    def list_icons(self, user_id: str, limit: int = 50) -> list[dict]:
        docs = [
            self._get(ICON_LIBRARY_COLLECTION, doc_id)
            for doc_id in self.collections[ICON_LIBRARY_COLLECTION]
        ]
        docs = [doc for doc in docs if doc.get("generatedBy") == user_id]
        docs.sort(key=lambda doc: doc["createdAt"], reverse=True)
        return docs[:limit]

    def get_profile(self, user_id: str) -> Optional[dict]:
        return self._get(USER_PROFILES_COLLECTION, user_id)

    def save_profile(self, user_id: str, data: dict) -> dict:
        existing = self.collections[USER_PROFILES_COLLECTION].get(user_id)
        created_at = existing.get("createdAt") if existing else None
        return self._put(USER_PROFILES_COLLECTION, user_id, data, created_at=created_at)

    def delete_profile(self, user_id: str) -> bool:
        return self.collections[USER_PROFILES_COLLECTION].pop(user_id, None) is not None


class FirestoreDbClient:
    """Firestore-backed implementation using the firebase-admin client."""

    def __init__(self, app=None, database_id: Optional[str] = None):
        if database_id == "(default)":
            database_id = None
        self._db = firestore.client(app=app, database_id=database_id)

    @staticmethod
    def _to_dict(snapshot) -> Optional[dict]:
        if not snapshot.exists:
            return None
        return {"id": snapshot.id, **snapshot.to_dict()}

    def _write(self, doc_ref, data: dict, *, keep_created: bool) -> dict:
        payload = dict(data)
        payload.pop("id", None)
        payload["updatedAt"] = firestore.SERVER_TIMESTAMP
        if not keep_created:
            payload["createdAt"] = firestore.SERVER_TIMESTAMP
        doc_ref.set(payload, merge=False)
        return self._to_dict(doc_ref.get())

    def ping(self) -> None:
        list(self._db.collection(HEALTH_CHECK_COLLECTION).limit(1).stream())

    def create_board(self, data: dict) -> dict:
        doc_ref = self._db.collection(BOARDS_COLLECTION).document()
        return self._write(doc_ref, data, keep_created=False)

    def get_board(self, board_id: str) -> Optional[dict]:
        return self._to_dict(
            self._db.collection(BOARDS_COLLECTION).document(board_id).get()
        )

    def replace_board(self, board_id: str, data: dict) -> dict:
        doc_ref = self._db.collection(BOARDS_COLLECTION).document(board_id)
        existing = doc_ref.get()
        if not existing.exists:
            raise KeyError(board_id)
        payload = dict(data)
        payload["createdAt"] = existing.get("createdAt")
        return self._write(doc_ref, payload, keep_created=True)

    def delete_board(self, board_id: str) -> None:
        self._db.collection(BOARDS_COLLECTION).document(board_id).delete()

    def list_boards(
        self,
        *,
        user_id: Optional[str] = None,
        is_public: Optional[bool] = None,
        order_by: str = "updatedAt",
        direction: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict]:
        if order_by not in ORDER_FIELDS:
            raise ValueError(f"Unsupported order field: {order_by}")
        query = self._db.collection(BOARDS_COLLECTION)
        if user_id is not None:
            query = query.where(filter=firestore.FieldFilter("userId", "==", user_id))
        if is_public is not None:
            query = query.where(
                filter=firestore.FieldFilter("isPublic", "==", is_public)
            )
        fs_direction = (
            firestore.Query.DESCENDING
            if direction == "desc"
            else firestore.Query.ASCENDING
        )
        query = query.order_by(order_by, direction=fs_direction)
        if offset:
            query = query.offset(offset)
        return [self._to_dict(snap) for snap in query.limit(limit).stream()]

    def create_icon(self, data: dict) -> dict:
        doc_ref = self._db.collection(ICON_LIBRARY_COLLECTION).document()
        return self._write(doc_ref, data, keep_created=False)

    def get_icon(self, icon_id: str) -> Optional[dict]:
        return self._to_dict(
            self._db.collection(ICON_LIBRARY_COLLECTION).document(icon_id).get()
        )

    def list_icons(self, user_id: str, limit: int = 50) -> list[dict]:
        query = (
            self._db.collection(ICON_LIBRARY_COLLECTION)
            .where(filter=firestore.FieldFilter("generatedBy", "==", user_id))
            .limit(limit)
        )
        docs = [self._to_dict(snap) for snap in query.stream()]
        # Sorted client-side so no extra composite index is required.
        docs.sort(key=lambda doc: _sort_key(doc.get("createdAt")), reverse=True)
        return docs

    def get_profile(self, user_id: str) -> Optional[dict]:
        return self._to_dict(
            self._db.collection(USER_PROFILES_COLLECTION).document(user_id).get()
        )

    def save_profile(self, user_id: str, data: dict) -> dict:
        doc_ref = self._db.collection(USER_PROFILES_COLLECTION).document(user_id)
        existing = doc_ref.get()
        payload = dict(data)
        if existing.exists:
            payload["createdAt"] = existing.get("createdAt")
        return self._write(doc_ref, payload, keep_created=existing.exists)

    def delete_profile(self, user_id: str) -> bool:
        doc_ref = self._db.collection(USER_PROFILES_COLLECTION).document(user_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True
