"""
Storage abstraction for Google Cloud Storage and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from google.cloud import storage

PUBLIC_URL_ROOT = "https://storage.googleapis.com"

class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        self.stored_objects[path] = (bytes(data), content_type)
        return f"{self.base_url}/{path}"


@dataclass
class GcsStorageClient:
    """
    Google Cloud Storage client. Objects are served from the bucket's public
    URL; access is governed by bucket-level IAM, not per-object ACLs.
    """

    bucket_name: str
    project: Optional[str] = None

    def __post_init__(self):
        self._client = storage.Client(project=self.project)
        self._bucket = self._client.bucket(self.bucket_name)

    def public_url(self, path: str) -> str:
        return f"{PUBLIC_URL_ROOT}/{self.bucket_name}/{path}"

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        blob = self._bucket.blob(path)
        blob.upload_from_string(data, content_type=content_type)
        return self.public_url(path)

