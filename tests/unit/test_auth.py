"""Unit tests for authentication functions."""
from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException
from jose import jwt

from classroom.auth import authenticate_user, hash_password, issue_token, pwd_context, token_subject
from classroom.config import get_settings
from classroom.models import RoleEnum, User


def store_user(db_session, hashed_password, email="test@example.com", role=RoleEnum.USER):
    user = User(full_name="Test User", email=email, role=role, hashed_password=hashed_password)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


class TestPasswordHashing:
    """Test password hashing."""

    def test_hash_uses_pbkdf2_and_is_salted(self):
        first = hash_password("TestPassword123")
        second = hash_password("TestPassword123")

        assert first.startswith("$pbkdf2-sha256$")
        assert first != second
        assert pwd_context.verify("TestPassword123", first) is True


class TestTokens:
    """Test token issuing and subject extraction."""

    def test_issue_token_claims(self, db_session):
        settings = get_settings()
        user = store_user(db_session, hash_password("x" * 8), email="prof@example.com", role=RoleEnum.ADMIN)

        token = issue_token(user)

        claims = jwt.decode(token.access_token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        assert token.token_type == "bearer"
        assert claims["sub"] == "prof@example.com"
        assert claims["role"] == "admin"
        assert claims["exp"] > datetime.utcnow().timestamp()
        assert token_subject(token.access_token) == "prof@example.com"

    def test_invalid_token_is_unauthorized(self):
        with pytest.raises(HTTPException) as exc_info:
            token_subject("invalid.token.here")

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid token"

    def test_expired_token_is_unauthorized(self, db_session):
        user = store_user(db_session, hash_password("x" * 8))
        token = issue_token(user, timedelta(hours=-1))

        with pytest.raises(HTTPException) as exc_info:
            token_subject(token.access_token)

        assert exc_info.value.status_code == 401

    def test_token_without_subject_is_unauthorized(self):
        settings = get_settings()
        anonymous = jwt.encode(
            {"exp": datetime.utcnow() + timedelta(minutes=5)}, settings.jwt_secret, algorithm=settings.jwt_algorithm
        )

        with pytest.raises(HTTPException) as exc_info:
            token_subject(anonymous)

        assert exc_info.value.detail == "Missing subject in token"


class TestUserAuthentication:
    """Test user authentication against stored accounts."""

    def test_authenticate_user_success(self, db_session):
        """Test the email lookup ignores case and padding."""
        store_user(db_session, hash_password("CorrectPassword"))

        result = authenticate_user(db_session, "  Test@Example.com ", "CorrectPassword")

        assert result is not None
        assert result.email == "test@example.com"

    def test_authenticate_user_wrong_password(self, db_session):
        store_user(db_session, hash_password("CorrectPassword"))

        assert authenticate_user(db_session, "test@example.com", "WrongPassword") is None

    def test_authenticate_user_not_found(self, db_session):
        assert authenticate_user(db_session, "nobody@example.com", "anypassword") is None

    def test_legacy_hash_is_upgraded_on_login(self, db_session):
        """Test a deprecated sha256_crypt hash is replaced after a successful login."""
        legacy = pwd_context.handler("sha256_crypt").hash("CorrectPassword")
        user = store_user(db_session, legacy)

        assert authenticate_user(db_session, "test@example.com", "CorrectPassword") is not None

        db_session.refresh(user)
        assert user.hashed_password.startswith("$pbkdf2-sha256$")
        assert authenticate_user(db_session, "test@example.com", "CorrectPassword") is not None
