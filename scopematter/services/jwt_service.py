"""
JWT Service — bearer token generation and verification.

Tokens are issued by the identity provider; this service verifies them with
the shared secret and can mint equivalent tokens for tests and local tooling.

Algorithm: HS256 (configurable via JWT_ALGORITHM)
Lifetime:  1 hour (configurable via JWT_ACCESS_EXPIRES)

Token payload:
{
    "sub": <external user id>,
    "type": "access",
    "iat": <issued_at>,
    "exp": <expires_at>,
    "jti": <unique_id>
}
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app


# ─── Defaults ────────────────────────────────────────────────
DEFAULT_ACCESS_EXPIRES = 3600
DEFAULT_ALGORITHM = "HS256"


def _get_secret():
    """Get the JWT secret key from app config."""
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def _get_algorithm():
    return current_app.config.get("JWT_ALGORITHM") or DEFAULT_ALGORITHM


def _get_access_expires():
    return current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES)


def generate_access_token(external_id: str, expires_in: int | None = None) -> str:
    """Generate an access token whose ``sub`` is the provider's user id."""
    now = datetime.now(timezone.utc)
    lifetime = expires_in if expires_in is not None else _get_access_expires()
    payload = {
        "sub": external_id,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(seconds=lifetime),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _get_secret(), algorithm=_get_algorithm())


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an access token.

    Returns the payload dict on success.
    Raises jwt.exceptions on failure (ExpiredSignatureError, InvalidTokenError, etc.)
    """
    payload = jwt.decode(
        token,
        _get_secret(),
        algorithms=[_get_algorithm()],
        options={"require": ["sub", "exp"]},
    )
    if payload.get("type", "access") != "access":
        raise jwt.InvalidTokenError(f"Expected access token, got {payload.get('type')}")
    return payload
