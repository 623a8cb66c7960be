"""Bearer token helpers for the identity provider boundary.

Tokens carry the caller's stable user id in the ``sub`` claim. The service
trusts that id once the signature and expiry check out.
"""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import jwt

from loop_stage.core.settings import settings


def create_access_token(user_id: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create a JWT access token for ``user_id``."""
    to_encode: dict[str, object] = {"sub": user_id}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> str | None:
    """Return the subject of a valid token, or None when the claim is missing.

    Raises:
        jose.JWTError: If the token signature or expiry is invalid.
    """
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
    )
    subject = payload.get("sub")
    if subject is None or not isinstance(subject, str):
        return None
    return subject
