"""
Runs the resource bootstrappers independently and aggregates their results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from firebase_admin import firestore
from google.cloud import storage

from backend.config import Settings
from backend.dependencies import get_firebase_app
from ops.errors import MissingConfigError
from ops.firestore_setup import setup_firestore
from ops.index_setup import deploy_indexes, write_index_file
from ops.steps import (
    Outcome,
    Step,
    StepResult,
    StepStatus,
    overall_success,
    run_pipeline,
)
from ops.storage_setup import ensure_bucket

logger = logging.getLogger(__name__)

RESOURCES = ("bucket", "firestore", "indexes")


@dataclass
class BootstrapReport:
    results: dict[str, StepResult]
    success: bool


def storage_client(settings: Settings):
    return storage.Client(project=settings.project_id)


def firestore_client(settings: Settings):
    database = settings.firestore_database
    return firestore.client(
        app=get_firebase_app(),
        database_id=None if database == "(default)" else database,
    )


def require_project(settings: Settings) -> str:
    if not settings.project_id:
        raise MissingConfigError(
            "GOOGLE_CLOUD_PROJECT is not set",
            "Set GOOGLE_CLOUD_PROJECT (or FIREBASE_PROJECT_ID) in .env",
        )
    return settings.project_id


def bucket_step(
    settings: Settings,
    client_factory: Callable = storage_client,
    cors_origins=("*",),
) -> Step:
    def run(_shared: dict) -> Outcome:
        require_project(settings)
        if not settings.storage_bucket_name:
            raise MissingConfigError(
                "STORAGE_BUCKET_NAME is not set",
                "Set STORAGE_BUCKET_NAME in .env to a globally unique name",
            )
        report = ensure_bucket(
            client_factory(settings),
            settings.storage_bucket_name,
            settings.vertex_ai_location,
            cors_origins=cors_origins,
        )
        return Outcome(detail=report.describe(), data={"report": report})

    return Step("bucket", run)


def firestore_step(
    settings: Settings,
    client_factory: Callable = firestore_client,
    on_result: Optional[Callable[[StepResult], Any]] = None,
) -> Step:
    def run(_shared: dict) -> Outcome:
        require_project(settings)
        results = setup_firestore(
            client_factory(settings), environment=settings.node_env, on_result=on_result
        )
        created = [r.name for r in results if r.data.get("created")]
        if not overall_success(results):
            failed = [r for r in results if r.required and r.status is not StepStatus.SUCCEEDED]
            cause = next((r.error for r in failed if r.error is not None), None)
            if cause is not None:
                logger.error("Seed steps failed: %s", ", ".join(r.name for r in failed))
                raise cause
            raise RuntimeError(f"required seed steps failed: {', '.join(r.name for r in failed)}")
        detail = f"created {', '.join(created)}" if created else "all seed documents already exist"
        return Outcome(
            detail=detail,
            degraded=any(r.degraded or r.status is not StepStatus.SUCCEEDED for r in results),
            data={"steps": results},
        )

    return Step("firestore", run)


def indexes_step(
    settings: Settings,
    *,
    path: Path = Path("firestore.indexes.json"),
    deploy: bool = False,
    admin_client=None,
) -> Step:
    def run(_shared: dict) -> Outcome:
        report = write_index_file(path)
        state = "written" if report.written else "unchanged"
        detail = f"{report.count} index definitions {state} in {path}"
        data = {"file": report}
        if deploy:
            deployed = deploy_indexes(
                require_project(settings), settings.firestore_database, admin_client
            )
            detail += (
                f"; {len(deployed.requested)} index builds requested, "
                f"{len(deployed.existing)} already deployed"
            )
            data["deploy"] = deployed
        return Outcome(detail=detail, data=data)

    return Step("indexes", run)


def run_bootstrap(
    settings: Settings,
    *,
    resources: Sequence[str] = RESOURCES,
    steps: Optional[dict[str, Step]] = None,
    on_result: Optional[Callable[[StepResult], Any]] = None,
) -> BootstrapReport:
    """Runs each selected resource; one failing does not stop the others."""
    unknown = set(resources) - set(RESOURCES)
    if unknown:
        raise ValueError(f"Unknown resources: {', '.join(sorted(unknown))}")
    available = steps or {
        "bucket": bucket_step(settings),
        "firestore": firestore_step(settings, on_result=on_result),
        "indexes": indexes_step(settings),
    }
    selected = [available[name] for name in RESOURCES if name in resources]
    results = run_pipeline(selected, on_result=on_result)
    return BootstrapReport(
        results={result.name: result for result in results},
        success=overall_success(results),
    )
