"""
Bearer-token authentication dependencies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from fastapi import Depends, Header
from firebase_admin import auth

from backend.dependencies import get_token_verifier
from backend.errors import ApiError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

TokenVerifier = Callable[[str], dict]


@dataclass
class AuthUser:
    uid: str
    email: Optional[str] = None
    email_verified: bool = False
    claims: dict = field(default_factory=dict)


def _unauthorized(code: str, message: str) -> ApiError:
    return ApiError(401, code, message)


def _extract_token(authorization: Optional[str]) -> str:
    if authorization is None:
        raise _unauthorized("MISSING_AUTH_HEADER", "Authorization header is required")
    if not authorization.startswith(BEARER_PREFIX):
        raise _unauthorized(
            "INVALID_AUTH_FORMAT", "Authorization header must use the Bearer scheme"
        )
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise _unauthorized("MISSING_TOKEN", "Bearer token is empty")
    return token


def verify_bearer(authorization: Optional[str], verifier: TokenVerifier) -> AuthUser:
    """Validate an Authorization header value and return the caller."""
    token = _extract_token(authorization)
    try:
        claims = verifier(token)
    # Expired and revoked are subclasses of InvalidIdTokenError.
    except auth.ExpiredIdTokenError:
        raise _unauthorized("TOKEN_EXPIRED", "Token has expired")
    except auth.RevokedIdTokenError:
        raise _unauthorized("TOKEN_REVOKED", "Token has been revoked")
    except (auth.InvalidIdTokenError, ValueError) as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise _unauthorized("INVALID_TOKEN", "Invalid authentication token")
    return AuthUser(
        uid=claims["uid"],
        email=claims.get("email"),
        email_verified=bool(claims.get("email_verified", False)),
        claims=claims,
    )


def require_user(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthUser:
    return verify_bearer(authorization, verifier)


def optional_user(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Optional[AuthUser]:
    """Like require_user, but anonymous or invalid callers yield None."""
    if authorization is None:
        return None
    try:
        return verify_bearer(authorization, verifier)
    except ApiError as exc:
        logger.debug("Continuing anonymously: %s", exc.code)
        return None
