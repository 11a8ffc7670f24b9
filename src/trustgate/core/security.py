"""Bearer token helpers."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import jwt

from trustgate.core.settings import settings


def create_access_token(
    user_id: int,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, str] | None = None,
) -> str:
    """Return a signed JWT whose subject is the user's id."""
    to_encode: dict[str, object] = {"sub": str(user_id)}
    if extra_claims:
        to_encode.update(extra_claims)
    delta = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = datetime.now(UTC) + delta
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_subject(token: str) -> int:
    """Return the user id carried by ``token``.

    Raises:
        jose.JWTError: If the signature, expiry or claims are invalid.
        ValueError: If the subject is missing or not an integer id.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    subject = payload.get("sub")
    if subject is None:
        raise ValueError("token has no subject")
    return int(subject)
