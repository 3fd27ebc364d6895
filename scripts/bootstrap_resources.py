"""
Bootstraps every cloud resource the API needs: the storage bucket, the
seed Firestore documents and the composite indexes.

Safe to rerun; existing resources are reported, not recreated.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ops.bootstrap import (
    RESOURCES,
    bucket_step,
    firestore_step,
    indexes_step,
    run_bootstrap,
)
from ops.console import Level, configure_logging, echo, header
from ops.errors import MissingConfigError, load_settings, remediation
from ops.index_setup import INDEX_FILE
from ops.steps import StepStatus, Tally, report

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Bootstrap cloud resources")
    parser.add_argument(
        "--only",
        choices=RESOURCES,
        action="append",
        default=None,
        help="Limit to one resource (repeatable)",
    )
    parser.add_argument(
        "--deploy-indexes",
        action="store_true",
        help="Create missing composite indexes instead of only writing the file",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()
    configure_logging(args.verbose)

    try:
        settings = load_settings()
    except MissingConfigError as exc:
        echo(str(exc), Level.ERROR)
        echo(exc.remediation, Level.INFO)
        return 1
    steps = {
        "bucket": bucket_step(settings),
        "firestore": firestore_step(settings, on_result=report),
        "indexes": indexes_step(
            settings, path=ROOT / INDEX_FILE, deploy=args.deploy_indexes
        ),
    }
    header(f"Bootstrapping project {settings.project_id or '(unset)'}")
    try:
        result = run_bootstrap(
            settings, resources=args.only or RESOURCES, steps=steps, on_result=report
        )
    except Exception as exc:
        logger.exception("Bootstrap crashed")
        echo(f"Bootstrap crashed: {exc}", Level.ERROR)
        return 1

    for name, step_result in result.results.items():
        if step_result.status is not StepStatus.FAILED:
            continue
        header(f"How to fix {name}")
        error = step_result.error
        if isinstance(error, MissingConfigError):
            echo(error.remediation, Level.INFO)
        elif error is not None:
            for line in remediation(error, name):
                echo(f"  {line}", Level.INFO)

    header("Summary")
    echo(str(Tally.from_results(result.results.values())), Level.INFO)
    if result.success:
        echo("All resources are ready", Level.SUCCESS)
        return 0
    echo("Some resources failed; fix them and rerun", Level.ERROR)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
