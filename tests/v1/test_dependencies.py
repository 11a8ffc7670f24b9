"""Tests for API dependencies module."""

from datetime import timedelta

import pytest
from fastapi import HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from trustgate.api.v1.dependencies import get_current_user
from trustgate.core.security import create_access_token, decode_subject
from trustgate.core.settings import settings


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestTokens:
    """Token issue and decode helpers."""

    def test_round_trip_subject(self):
        token = create_access_token(42)
        assert decode_subject(token) == 42

    def test_extra_claims_are_kept(self):
        token = create_access_token(7, extra_claims={"scope": "cli"})
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        assert payload["scope"] == "cli"
        assert payload["sub"] == "7"

    def test_non_numeric_subject_is_rejected(self):
        token = jwt.encode({"sub": "alice"}, settings.secret_key, algorithm=settings.jwt_algorithm)
        with pytest.raises(ValueError):
            decode_subject(token)


class TestGetCurrentUser:
    """Test the get_current_user dependency."""

    def test_valid_token_returns_user(self, db_session, member):
        user = get_current_user(_credentials(create_access_token(member.id)), db_session)
        assert user.id == member.id

    def test_expired_token_is_unauthorized(self, db_session, member):
        token = create_access_token(member.id, expires_delta=timedelta(minutes=-1))
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(token), db_session)
        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED

    def test_wrong_secret_is_unauthorized(self, db_session, member):
        token = jwt.encode({"sub": str(member.id)}, "another-secret", algorithm="HS256")
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(token), db_session)
        assert exc_info.value.detail == "Could not validate credentials"

    def test_unknown_user_is_unauthorized(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(create_access_token(999_999)), db_session)
        assert exc_info.value.detail == "User not found"


def test_endpoints_require_a_bearer_token(client):
    r = client.get("/api/v1/users/me")
    assert r.status_code in {401, 403}


def test_garbage_token_is_rejected(client):
    r = client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
