"""
Writes firestore.indexes.json for the board queries and optionally
requests the missing indexes from the Firestore admin API.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ops.bootstrap import indexes_step
from ops.console import Level, configure_logging, echo, header
from ops.errors import MissingConfigError, load_settings, remediation
from ops.index_setup import INDEX_FILE
from ops.steps import StepStatus, run_pipeline

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate Firestore composite indexes")
    parser.add_argument(
        "--output",
        type=Path,
        default=ROOT / INDEX_FILE,
        help="Where to write the index definitions",
    )
    parser.add_argument(
        "--deploy",
        action="store_true",
        help="Also create missing indexes in the project",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()
    configure_logging(args.verbose)

    header("Firestore indexes")
    try:
        step = indexes_step(load_settings(), path=args.output, deploy=args.deploy)
        (result,) = run_pipeline([step])
    except MissingConfigError as exc:
        echo(str(exc), Level.ERROR)
        echo(exc.remediation, Level.INFO)
        return 1
    except Exception as exc:
        logger.exception("Index setup crashed")
        echo(f"Index setup crashed: {exc}", Level.ERROR)
        return 1

    if result.status is StepStatus.SUCCEEDED:
        echo(result.detail, Level.SUCCESS)
        if not args.deploy:
            echo("Deploy with: firebase deploy --only firestore:indexes", Level.INFO)
            echo("or rerun with --deploy", Level.INFO)
        else:
            echo("Index builds can take several minutes to finish", Level.INFO)
        return 0

    echo(f"Index setup failed: {result.detail}", Level.ERROR)
    if result.error is not None:
        for line in remediation(result.error, "indexes"):
            echo(f"  {line}", Level.INFO)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
