"""
Shows how POST /api/v1/boards answers with no credentials, a bogus token
and, when given, a real one.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ops.board_auth import run_board_auth_checks
from ops.console import Level, configure_logging, echo, header
from ops.errors import MissingConfigError, load_settings
from ops.steps import Tally, overall_success, report

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Debug board authentication")
    parser.add_argument("--token", default=None, help="ID token (default TEST_USER_TOKEN)")
    parser.add_argument("--api-base-url", default=None, help="Default API_BASE_URL")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()
    configure_logging(args.verbose)

    try:
        settings = load_settings()
    except MissingConfigError as exc:
        echo(str(exc), Level.ERROR)
        echo(exc.remediation, Level.INFO)
        return 1
    token = args.token or settings.test_user_token
    api_base_url = args.api_base_url or settings.api_base_url

    header(f"Board auth against {api_base_url}")
    if not token:
        echo("No token given; the authenticated create/delete steps are skipped", Level.WARNING)
    try:
        results = run_board_auth_checks(api_base_url, token, on_result=report)
    except Exception as exc:
        logger.exception("Board auth checks crashed")
        echo(f"Board auth checks crashed: {exc}", Level.ERROR)
        return 1

    header("Summary")
    echo(str(Tally.from_results(results)))
    return 0 if overall_success(results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
