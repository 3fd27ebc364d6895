"""
Creates the icon/audio storage bucket, or reports the existing one.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from google.api_core import exceptions as gexc

from ops.bootstrap import bucket_step
from ops.console import Level, configure_logging, echo, header
from ops.errors import MissingConfigError, load_settings, remediation
from ops.steps import StepStatus, run_pipeline

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Set up the storage bucket")
    parser.add_argument(
        "--cors-origin",
        action="append",
        default=None,
        help="Allowed CORS origin (repeatable, default *)",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()
    configure_logging(args.verbose)

    header("Storage bucket")
    try:
        settings = load_settings()
        step = bucket_step(settings, cors_origins=tuple(args.cors_origin or ("*",)))
        (result,) = run_pipeline([step])
    except MissingConfigError as exc:
        echo(str(exc), Level.ERROR)
        echo(exc.remediation, Level.INFO)
        return 1
    except Exception as exc:
        logger.exception("Bucket setup crashed")
        echo(f"Bucket setup crashed: {exc}", Level.ERROR)
        return 1

    if result.status is StepStatus.SUCCEEDED:
        report = result.data["report"]
        echo(report.describe(), Level.SUCCESS)
        if report.created:
            echo(f"Public URL root: {report.public_url_root}", Level.INFO)
        return 0

    echo(f"Bucket setup failed: {result.detail}", Level.ERROR)
    error = result.error
    if isinstance(error, MissingConfigError):
        echo(error.remediation, Level.INFO)
    elif isinstance(error, gexc.GoogleAPICallError):
        for line in remediation(error, "bucket"):
            echo(f"  {line}", Level.INFO)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
