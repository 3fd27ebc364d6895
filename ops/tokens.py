"""
ID token issuance for manual API testing.

Tokens are returned to the caller for copy/paste and are never written to
disk. Firebase ID tokens expire one hour after issue.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import StrEnum
from typing import Optional

import requests
from firebase_admin import auth, firestore

from ops.console import Level, echo, header
from ops.firestore_setup import ensure_document
from shared.firebase_constants import BOARDS_COLLECTION, CULTURE_PROFILES_COLLECTION
from shared.types import (
    Board,
    BoardMetadata,
    CultureProfile,
    IconPlacement,
    Position,
    to_document,
)

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
TOKEN_LIFETIME = timedelta(hours=1)
REQUEST_TIMEOUT_SECONDS = 15


class IdentityToolkitError(RuntimeError):
    """The identity provider rejected the request; message is verbatim."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class IssuedToken:
    id_token: str
    refresh_token: Optional[str] = None
    expires_in: int = int(TOKEN_LIFETIME.total_seconds())
    local_id: Optional[str] = None
    email: Optional[str] = None
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.expires_in)


def _post(session, endpoint: str, api_key: str, payload: dict) -> dict:
    response = session.post(
        f"{IDENTITY_TOOLKIT_URL}/{endpoint}",
        params={"key": api_key},
        json={**payload, "returnSecureToken": True},
        timeout=REQUEST_TIMEOUT_SECONDS,
    )
    try:
        body = response.json()
    except ValueError:
        body = {}
    if response.status_code != 200:
        message = (body.get("error") or {}).get("message") or response.text
        raise IdentityToolkitError(message, response.status_code)
    return body


def _issued(body: dict, fallback_id: Optional[str] = None) -> IssuedToken:
    return IssuedToken(
        id_token=body["idToken"],
        refresh_token=body.get("refreshToken"),
        expires_in=int(body.get("expiresIn", TOKEN_LIFETIME.total_seconds())),
        local_id=body.get("localId", fallback_id),
        email=body.get("email"),
    )


def sign_in_with_password(
    api_key: str, email: str, password: str, *, session=requests
) -> IssuedToken:
    body = _post(
        session,
        "accounts:signInWithPassword",
        api_key,
        {"email": email, "password": password},
    )
    return _issued(body)


def exchange_custom_token(
    api_key: str, custom_token: str, *, uid: Optional[str] = None, session=requests
) -> IssuedToken:
    body = _post(session, "accounts:signInWithCustomToken", api_key, {"token": custom_token})
    return _issued(body, fallback_id=uid)


def create_or_get_user(
    email: str,
    password: Optional[str] = None,
    *,
    uid: Optional[str] = None,
    display_name: Optional[str] = None,
    app=None,
) -> tuple[auth.UserRecord, bool]:
    """Returns (user, created). An existing account is fetched, not an error."""
    kwargs = {"email": email, "email_verified": True, "app": app}
    if password:
        kwargs["password"] = password
    if uid:
        kwargs["uid"] = uid
    if display_name:
        kwargs["display_name"] = display_name
    try:
        return auth.create_user(**kwargs), True
    except auth.EmailAlreadyExistsError:
        logger.info("User %s already exists", email)
        return auth.get_user_by_email(email, app=app), False
    except auth.UidAlreadyExistsError:
        logger.info("User id %s already exists", uid)
        return auth.get_user(uid, app=app), False


def mint_custom_token(uid: str, claims: Optional[dict] = None, *, app=None) -> str:
    token = auth.create_custom_token(uid, developer_claims=claims, app=app)
    return token.decode("utf-8") if isinstance(token, bytes) else token


class TokenCheck(StrEnum):
    VALID = "valid"
    VALID_NO_RESOURCE = "valid_no_resource"
    WARNING = "warning"


@dataclass
class TokenCheckResult:
    status: TokenCheck
    detail: str
    http_status: Optional[int] = None


def check_token(
    api_base_url: str, token: str, *, session=requests, timeout: float = 10
) -> TokenCheckResult:
    """Calls GET /api/v1/profile with the token and classifies the answer.

    404 means the token was accepted but the user has no profile yet.
    Anything else, including transport errors, is only a warning.
    """
    url = f"{api_base_url.rstrip('/')}/api/v1/profile"
    try:
        response = session.get(
            url, headers={"Authorization": f"Bearer {token}"}, timeout=timeout
        )
    except requests.RequestException as e:
        return TokenCheckResult(TokenCheck.WARNING, f"could not reach {url}: {e}")
    if response.status_code == 200:
        return TokenCheckResult(TokenCheck.VALID, "token accepted", 200)
    if response.status_code == 404:
        return TokenCheckResult(
            TokenCheck.VALID_NO_RESOURCE, "token accepted; no profile yet", 404
        )
    return TokenCheckResult(
        TokenCheck.WARNING,
        f"unexpected HTTP {response.status_code}: {response.text[:200]}",
        response.status_code,
    )


def print_token(
    token: IssuedToken, api_base_url: str, *, verify: bool = False, session=requests
) -> None:
    """Prints the token for copy/paste with its expiry, and optionally checks it."""
    header("ID token")
    print(token.id_token)
    echo(
        f"Expires at {token.expires_at:%Y-%m-%d %H:%M:%S %Z} "
        f"({token.expires_in // 60} minutes after issue)",
        Level.WARNING,
    )
    echo(
        f"Use it as: curl -H \"Authorization: Bearer <token>\" "
        f"{api_base_url.rstrip('/')}/api/v1/profile"
    )
    if verify:
        result = check_token(api_base_url, token.id_token, session=session)
        level = Level.WARNING if result.status is TokenCheck.WARNING else Level.SUCCESS
        echo(f"API check: {result.detail}", level)


def seed_board_id(uid: str) -> str:
    return f"test-board-{uid}"


def seed_test_user_data(db, uid: str) -> dict[str, bool]:
    """Creates the test user's culture profile and a private board once."""
    profile = to_document(CultureProfile(user_id=uid))
    for name in ("lastUpdated", "createdAt", "updatedAt"):
        profile[name] = firestore.SERVER_TIMESTAMP

    icons = [
        IconPlacement(id="hello", text="Hello", position=Position(0, 0), category="greetings"),
        IconPlacement(id="water", text="Water", position=Position(1, 0), category="needs"),
    ]
    board = to_document(
        Board(
            user_id=uid,
            name="Test Board",
            description="Private board for API testing",
            icons=icons,
            metadata=BoardMetadata(icon_count=len(icons), tags=["test"]),
        )
    )
    board.pop("id")
    board["metadata"]["lastModified"] = firestore.SERVER_TIMESTAMP
    board["createdAt"] = board["updatedAt"] = firestore.SERVER_TIMESTAMP

    return {
        "culture_profile": ensure_document(
            db.collection(CULTURE_PROFILES_COLLECTION).document(uid), profile
        ),
        "board": ensure_document(
            db.collection(BOARDS_COLLECTION).document(seed_board_id(uid)), board
        ),
    }
