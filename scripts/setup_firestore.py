"""
Seeds Firestore with the health check, sample board, default culture
profile, sample icons and the system user.
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

from ops.bootstrap import firestore_client, require_project
from ops.console import Level, configure_logging, echo, header
from ops.errors import MissingConfigError, load_settings, remediation
from ops.firestore_setup import setup_firestore
from ops.steps import StepStatus, Tally, overall_success, report

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed Firestore collections")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()
    configure_logging(args.verbose)

    header("Firestore")
    try:
        settings = load_settings()
        require_project(settings)
        results = setup_firestore(
            firestore_client(settings), environment=settings.node_env, on_result=report
        )
    except MissingConfigError as exc:
        echo(str(exc), Level.ERROR)
        echo(exc.remediation, Level.INFO)
        return 1
    except Exception as exc:
        logger.exception("Firestore setup crashed")
        echo(f"Firestore setup crashed: {exc}", Level.ERROR)
        return 1

    for result in results:
        if result.status is StepStatus.FAILED and isinstance(
            result.error, gexc.GoogleAPICallError
        ):
            for line in remediation(result.error, "firestore"):
                echo(f"  {line}", Level.INFO)
            break

    echo(str(Tally.from_results(results)), Level.INFO)
    return 0 if overall_success(results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
