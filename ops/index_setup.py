"""
Composite index definitions for the boards collection.

The definitions are written to firestore.indexes.json for the Firebase CLI
and can optionally be deployed directly through the Firestore Admin API.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from itertools import product
from pathlib import Path
from typing import Optional

from google.cloud import firestore_admin_v1

from shared.firebase_constants import BOARDS_COLLECTION

logger = logging.getLogger(__name__)

INDEX_FILE = "firestore.indexes.json"
BASE_FIELDS = ("userId", "isPublic")
ORDER_FIELDS = (
    ("updatedAt", "DESCENDING"),
    ("createdAt", "DESCENDING"),
    ("name", "ASCENDING"),
)

Signature = tuple[tuple[str, str], ...]


def build_index_definitions() -> list[dict]:
    return [
        {
            "collectionGroup": BOARDS_COLLECTION,
            "queryScope": "COLLECTION",
            "fields": [
                {"fieldPath": base, "order": "ASCENDING"},
                {"fieldPath": order_field, "order": order},
            ],
        }
        for base, (order_field, order) in product(BASE_FIELDS, ORDER_FIELDS)
    ]


def index_config() -> dict:
    return {"indexes": build_index_definitions(), "fieldOverrides": []}


@dataclass
class IndexFileReport:
    path: Path
    written: bool
    count: int


def write_index_file(path: Path = Path(INDEX_FILE)) -> IndexFileReport:
    """Writes the config unless the file already holds the same content."""
    config = index_config()
    if path.is_file():
        try:
            current = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("%s is not valid JSON; rewriting it", path)
            current = None
        if current == config:
            return IndexFileReport(path, written=False, count=len(config["indexes"]))
    path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
    return IndexFileReport(path, written=True, count=len(config["indexes"]))


def signature(definition: dict) -> Signature:
    return tuple((f["fieldPath"], f["order"]) for f in definition["fields"])


def _existing_signature(index: firestore_admin_v1.Index) -> Signature:
    # Deployed indexes carry an implicit trailing __name__ field.
    return tuple(
        (f.field_path, firestore_admin_v1.Index.IndexField.Order(f.order).name)
        for f in index.fields
        if f.field_path != "__name__"
    )


def _to_admin_index(definition: dict) -> firestore_admin_v1.Index:
    return firestore_admin_v1.Index(
        query_scope=firestore_admin_v1.Index.QueryScope.COLLECTION,
        fields=[
            firestore_admin_v1.Index.IndexField(
                field_path=f["fieldPath"],
                order=firestore_admin_v1.Index.IndexField.Order[f["order"]],
            )
            for f in definition["fields"]
        ],
    )


@dataclass
class DeployReport:
    existing: list[Signature] = field(default_factory=list)
    requested: list[Signature] = field(default_factory=list)


def deploy_indexes(
    project_id: str,
    database: str = "(default)",
    client: Optional[firestore_admin_v1.FirestoreAdminClient] = None,
) -> DeployReport:
    """Requests creation of missing indexes; does not wait for builds."""
    client = client or firestore_admin_v1.FirestoreAdminClient()
    parent = (
        f"projects/{project_id}/databases/{database}"
        f"/collectionGroups/{BOARDS_COLLECTION}"
    )
    deployed = {_existing_signature(index) for index in client.list_indexes(parent=parent)}
    report = DeployReport()
    for definition in build_index_definitions():
        wanted = signature(definition)
        if wanted in deployed:
            report.existing.append(wanted)
            continue
        logger.info("Creating index %s", wanted)
        client.create_index(parent=parent, index=_to_admin_index(definition))
        report.requested.append(wanted)
    return report
