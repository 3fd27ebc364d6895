"""
Error taxonomy for remote calls and the remediation text shown to operators.
"""

from __future__ import annotations

from enum import StrEnum

from google.api_core import exceptions as gexc
from pydantic import ValidationError

from backend.config import Settings, get_settings


class MissingConfigError(RuntimeError):
    """A required setting or file is absent; raised before any remote call."""

    def __init__(self, message: str, remediation: str = ""):
        super().__init__(message)
        self.remediation = remediation


def load_settings() -> Settings:
    """Settings from the environment; a malformed value becomes a MissingConfigError."""
    try:
        return get_settings()
    except ValidationError as exc:
        names = sorted({str(err["loc"][0]).upper() for err in exc.errors() if err["loc"]})
        raise MissingConfigError(
            f"Invalid configuration: {', '.join(names) or exc}",
            "Fix the value in .env or the environment and rerun",
        ) from exc


class ErrorKind(StrEnum):
    AUTH = "auth"
    PERMISSION = "permission"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNCLASSIFIED = "unclassified"


def classify(exc: BaseException) -> ErrorKind:
    if isinstance(exc, (gexc.Unauthenticated, gexc.Unauthorized)):
        return ErrorKind.AUTH
    if isinstance(exc, (gexc.PermissionDenied, gexc.Forbidden)):
        return ErrorKind.PERMISSION
    if isinstance(exc, (gexc.Conflict, gexc.AlreadyExists)):
        return ErrorKind.CONFLICT
    if isinstance(exc, gexc.NotFound):
        return ErrorKind.NOT_FOUND
    return ErrorKind.UNCLASSIFIED


_STORAGE_PERMISSION = [
    "The service account needs the Storage Admin (roles/storage.admin) role",
    "Object access also needs Storage Object Admin (roles/storage.objectAdmin)",
    "IAM changes can take a few minutes to propagate; wait and rerun",
]

_FIRESTORE_PERMISSION = [
    "The service account needs the Cloud Datastore User (roles/datastore.user) role",
    "Check that Firestore is created in Native mode for this project",
    "IAM changes can take a few minutes to propagate; wait and rerun",
]

_AUTH = [
    "Set GOOGLE_APPLICATION_CREDENTIALS to a valid service account key file",
    "Or run: gcloud auth application-default login",
]


def remediation(exc: BaseException, resource: str) -> list[str]:
    """Actionable lines for an error raised while handling `resource`.

    `resource` is "bucket", "firestore", "indexes" or "auth"; unknown
    resources get the generic advice for the error kind.
    """
    kind = classify(exc)
    if kind is ErrorKind.AUTH:
        return list(_AUTH)
    if kind is ErrorKind.PERMISSION:
        if resource == "bucket":
            return list(_STORAGE_PERMISSION)
        return list(_FIRESTORE_PERMISSION)
    if kind is ErrorKind.CONFLICT and resource == "bucket":
        return [
            "Bucket names are global across all Google Cloud projects",
            "Choose a different STORAGE_BUCKET_NAME, e.g. suffix it with the project id",
        ]
    if kind is ErrorKind.NOT_FOUND:
        return [
            "Check that GOOGLE_CLOUD_PROJECT names an existing project",
            "Enable the required APIs: gcloud services enable firestore.googleapis.com storage.googleapis.com",
        ]
    return [f"Upstream error: {exc}"]
