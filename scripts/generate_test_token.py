"""
Creates (or reuses) a test user with the Admin SDK, mints a custom token
and exchanges it for an ID token. Optionally seeds the user's profile and
a private board.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.dependencies import get_firebase_app
from ops.bootstrap import firestore_client
from ops.console import Level, configure_logging, echo
from ops.errors import MissingConfigError, load_settings
from ops.tokens import (
    IdentityToolkitError,
    create_or_get_user,
    exchange_custom_token,
    mint_custom_token,
    print_token,
    seed_test_user_data,
)

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate a test user ID token")
    parser.add_argument("--email", default=None, help="Test user email (default TEST_USER_EMAIL)")
    parser.add_argument("--password", default=None, help="Default TEST_USER_PASSWORD")
    parser.add_argument("--uid", default=None, help="Fixed user id for a new account")
    parser.add_argument("--display-name", default="Test User")
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Create a culture profile and private board for the user",
    )
    parser.add_argument("--verify", action="store_true", help="Call the API with the token")
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
    password = args.password or settings.test_user_password

    if not email:
        echo("No email given; pass --email or set TEST_USER_EMAIL", Level.ERROR)
        return 1
    if not settings.firebase_web_api_key:
        echo("FIREBASE_WEB_API_KEY is not set; it is needed to exchange the token", Level.ERROR)
        return 1

    try:
        app = get_firebase_app()
        user, created = create_or_get_user(
            email,
            password,
            uid=args.uid,
            display_name=args.display_name,
            app=app,
        )
        echo(
            f"{'Created' if created else 'Found existing'} user {user.uid} ({user.email})",
            Level.SUCCESS,
        )
        custom_token = mint_custom_token(user.uid, {"testUser": True}, app=app)
        token = exchange_custom_token(
            settings.firebase_web_api_key, custom_token, uid=user.uid
        )
        if args.seed:
            seeded = seed_test_user_data(firestore_client(settings), user.uid)
            for name, was_created in seeded.items():
                echo(f"{name}: {'created' if was_created else 'already exists'}", Level.INFO)
    except IdentityToolkitError as exc:
        echo(f"Token exchange failed: {exc}", Level.ERROR)
        return 1
    except Exception as exc:
        logger.exception("Token generation failed")
        echo(f"Token generation failed: {exc}", Level.ERROR)
        return 1

    print_token(token, args.api_base_url or settings.api_base_url, verify=args.verify)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
