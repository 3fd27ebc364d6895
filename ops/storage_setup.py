"""
Idempotent creation of the asset bucket.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from google.cloud import storage
from google.cloud.storage.constants import PUBLIC_ACCESS_PREVENTION_INHERITED

logger = logging.getLogger(__name__)

STORAGE_CLASS = "STANDARD"
RETENTION_DAYS = 365
CORS_MAX_AGE_SECONDS = 3600
VERIFICATION_OBJECT = "_test/verification.txt"
VERIFICATION_TEXT = "Test file for bucket verification"


@dataclass
class BucketReport:
    name: str
    created: bool
    location: Optional[str] = None
    storage_class: Optional[str] = None
    time_created: Optional[datetime] = None
    verified: bool = False
    public_url_root: str = ""

    def describe(self) -> str:
        state = "created" if self.created else "already exists"
        return (
            f"gs://{self.name} {state} (location={self.location}, "
            f"class={self.storage_class}, created={self.time_created})"
        )


def cors_rules(origins: Sequence[str] = ("*",)) -> list[dict]:
    return [
        {
            "origin": list(origins),
            "method": ["GET", "HEAD"],
            "responseHeader": ["Content-Type", "Access-Control-Allow-Origin"],
            "maxAgeSeconds": CORS_MAX_AGE_SECONDS,
        }
    ]


def configure_new_bucket(bucket: storage.Bucket, origins: Sequence[str] = ("*",)) -> None:
    bucket.storage_class = STORAGE_CLASS
    bucket.iam_configuration.uniform_bucket_level_access_enabled = True
    bucket.iam_configuration.public_access_prevention = (
        PUBLIC_ACCESS_PREVENTION_INHERITED
    )
    bucket.versioning_enabled = False
    bucket.cors = cors_rules(origins)
    bucket.add_lifecycle_delete_rule(age=RETENTION_DAYS)


def verify_bucket(bucket: storage.Bucket) -> None:
    """Writes, reads back and deletes a marker object."""
    blob = bucket.blob(VERIFICATION_OBJECT)
    blob.upload_from_string(VERIFICATION_TEXT, content_type="text/plain")
    try:
        content = blob.download_as_text()
    finally:
        blob.delete()
    if content != VERIFICATION_TEXT:
        raise RuntimeError(
            f"Verification object read back {len(content)} chars, expected {len(VERIFICATION_TEXT)}"
        )


def ensure_bucket(
    client: storage.Client,
    bucket_name: str,
    location: str,
    *,
    cors_origins: Sequence[str] = ("*",),
) -> BucketReport:
    """Reports an existing bucket or creates and verifies a new one.

    An existing bucket is left untouched. google.api_core errors (Conflict
    for a name taken in another project, Forbidden for missing IAM roles)
    propagate to the caller.
    """
    existing = client.lookup_bucket(bucket_name)
    if existing is not None:
        logger.info("Bucket %s already exists", bucket_name)
        return BucketReport(
            name=bucket_name,
            created=False,
            location=existing.location,
            storage_class=existing.storage_class,
            time_created=existing.time_created,
        )

    bucket = client.bucket(bucket_name)
    configure_new_bucket(bucket, cors_origins)
    logger.info("Creating bucket %s in %s", bucket_name, location)
    created = client.create_bucket(bucket, location=location)
    verify_bucket(created)
    return BucketReport(
        name=bucket_name,
        created=True,
        location=created.location,
        storage_class=created.storage_class,
        time_created=created.time_created,
        verified=True,
        public_url_root=f"https://storage.googleapis.com/{bucket_name}/",
    )
