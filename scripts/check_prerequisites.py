"""
Checks local tools, configuration files, environment and cloud access.
"""

from __future__ import annotations

import argparse
import logging
import sys
from itertools import groupby
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ops.console import Level, configure_logging, echo, header
from ops.errors import MissingConfigError, load_settings
from ops.prerequisites import COMMON_FIXES, PrerequisiteChecker, all_passed

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Check development prerequisites")
    parser.add_argument(
        "--root",
        type=Path,
        default=ROOT,
        help="Project directory holding .env and pyproject.toml",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()
    configure_logging(args.verbose)

    try:
        records = PrerequisiteChecker(load_settings(), root=args.root).run_all()
    except MissingConfigError as exc:
        echo(str(exc), Level.ERROR)
        echo(exc.remediation, Level.INFO)
        return 1
    except Exception as exc:
        logger.exception("Prerequisite check crashed")
        echo(f"Prerequisite check crashed: {exc}", Level.ERROR)
        return 1

    for section, group in groupby(records, key=lambda record: record.section):
        header(section.title())
        for record in group:
            text = record.name if not record.detail else f"{record.name}: {record.detail}"
            if not record.passed:
                level = Level.ERROR
            elif record.warning:
                level = Level.WARNING
            else:
                level = Level.SUCCESS
            echo(text, level)

    passed = sum(record.passed for record in records)
    warnings = sum(record.warning for record in records)
    header("Summary")
    if warnings:
        echo(f"{warnings} warning(s); these may be intentional", Level.WARNING)
    if all_passed(records):
        echo(f"All {passed} checks passed", Level.SUCCESS)
        return 0
    echo(f"{len(records) - passed} of {len(records)} checks failed", Level.ERROR)
    echo("Common fixes:", Level.INFO)
    for fix in COMMON_FIXES:
        echo(f"  {fix}", Level.INFO)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
