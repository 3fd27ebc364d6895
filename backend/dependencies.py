"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Callable

import firebase_admin
from firebase_admin import auth

from backend.config import get_settings
from backend.db import DbClient, FirestoreDbClient, InMemoryDbClient
from backend.storage import GcsStorageClient, InMemoryStorageClient, StorageClient
from models.vertex_ai import VertexAIService

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_ai_service: VertexAIService | None = None


def get_firebase_app() -> firebase_admin.App:
    """Return the default Firebase app, initialising it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        settings = get_settings()
        options = {"projectId": settings.project_id} if settings.project_id else None
        return firebase_admin.initialize_app(options=options)


def _use_in_memory() -> bool:
    settings = get_settings()
    return settings.aac_use_in_memory_backends or not settings.project_id


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so in-memory state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    if _use_in_memory():
        _db_client = InMemoryDbClient()
    else:
        _db_client = FirestoreDbClient(
            app=get_firebase_app(), database_id=get_settings().firestore_database
        )
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if _use_in_memory() or not settings.storage_bucket_name:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = GcsStorageClient(
            bucket_name=settings.storage_bucket_name,
            project=settings.project_id,
        )
    return _storage_client


def get_ai_service() -> VertexAIService:
    global _ai_service
    if _ai_service:
        return _ai_service
    _ai_service = VertexAIService.from_settings(get_settings())
    return _ai_service


def get_token_verifier() -> Callable[[str], dict]:
    """Return a callable that verifies a Firebase ID token and returns claims."""

    def verify(token: str) -> dict:
        return auth.verify_id_token(token, app=get_firebase_app(), check_revoked=True)

    return verify
