"""
Signs in with email and password and prints a Firebase ID token for
manual API testing. The token is printed only, never written to disk.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ops.console import Level, configure_logging, echo
from ops.errors import MissingConfigError, load_settings
from ops.tokens import IdentityToolkitError, print_token, sign_in_with_password

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Get a Firebase ID token")
    parser.add_argument("--email", default=None, help="Account email (default TEST_USER_EMAIL)")
    parser.add_argument(
        "--password",
        default=None,
        help="Account password (prompted for when omitted)",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Call the API with the new token",
    )
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
    email = args.email or settings.test_user_email

    if not settings.firebase_web_api_key:
        echo("FIREBASE_WEB_API_KEY is not set", Level.ERROR)
        echo("Copy the Web API key from Firebase console > Project settings", Level.INFO)
        return 1
    if not email:
        echo("No email given; pass --email or set TEST_USER_EMAIL", Level.ERROR)
        return 1
    password = args.password or settings.test_user_password or getpass.getpass("Password: ")

    try:
        token = sign_in_with_password(settings.firebase_web_api_key, email, password)
    except IdentityToolkitError as exc:
        echo(f"Sign-in failed: {exc}", Level.ERROR)
        return 1
    except Exception as exc:
        logger.exception("Sign-in crashed")
        echo(f"Sign-in crashed: {exc}", Level.ERROR)
        return 1

    echo(f"Signed in as {token.email or email} ({token.local_id})", Level.SUCCESS)
    print_token(token, args.api_base_url or settings.api_base_url, verify=args.verify)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
