"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens
"""
import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace
from jose import jwt

from myteacher.core.config import settings
from myteacher.core.exceptions import AuthenticationRequiredError
from myteacher.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_refresh_token,
    decode_token,
    token_payload_for,
    generate_oauth_state,
)
from myteacher.models.user import UserRole


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_password_returns_different_value(self):
        hashed = get_password_hash("testpassword123")

        assert hashed != "testpassword123"
        assert hashed.startswith("$2")

    def test_hash_password_different_each_time(self):
        """Bcrypt salts every hash"""
        assert get_password_hash("testpassword123") != get_password_hash("testpassword123")

    def test_verify_password_correct(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("testpassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("wrongpassword", hashed) is False

    def test_verify_password_without_hash(self):
        """Google-only accounts have no password hash"""
        assert verify_password("anything", None) is False
        assert verify_password("anything", "") is False

    def test_hash_long_password_truncated(self):
        # Bcrypt has a 72 byte limit
        long_password = "a" * 100
        hashed = get_password_hash(long_password)

        assert verify_password(long_password, hashed) is True
        assert verify_password("a" * 72, hashed) is True


class TestTokens:
    """Access and refresh tokens"""

    def test_access_token_has_type_and_data(self):
        token = create_access_token({"sub": "user123", "role": "TEACHER"})

        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        assert payload["type"] == "access"
        assert payload["sub"] == "user123"
        assert payload["role"] == "TEACHER"

    def test_access_token_with_expiry(self):
        token = create_access_token({"sub": "user123"}, expires_delta=timedelta(hours=1))

        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        remaining = (datetime.utcfromtimestamp(payload["exp"]) - datetime.utcnow()).total_seconds()
        assert 3500 < remaining < 3700

    def test_refresh_token_outlives_access_token(self):
        access = decode_token(create_access_token({"sub": "user123"}))
        refresh = decode_token(create_refresh_token({"sub": "user123"}))

        assert refresh["type"] == "refresh"
        assert refresh["exp"] > access["exp"]

    def test_decode_invalid_token(self):
        with pytest.raises(AuthenticationRequiredError) as exc_info:
            decode_token("invalid_token_string")

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Could not validate credentials"

    def test_decode_expired_token(self):
        expired = jwt.encode(
            {"sub": "user123", "exp": datetime.utcnow() - timedelta(hours=1), "type": "access"},
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )

        with pytest.raises(AuthenticationRequiredError):
            decode_token(expired)

    def test_decode_token_wrong_secret(self):
        forged = jwt.encode(
            {"sub": "user123", "exp": datetime.utcnow() + timedelta(hours=1)},
            "wrong_secret_key",
            algorithm=settings.JWT_ALGORITHM,
        )

        with pytest.raises(AuthenticationRequiredError):
            decode_token(forged)

    def test_expected_type_mismatch(self):
        access = create_access_token({"sub": "user123"})

        with pytest.raises(AuthenticationRequiredError) as exc_info:
            decode_token(access, expected_type="refresh")

        assert exc_info.value.message == "Invalid token type"

    def test_expected_type_requires_subject(self):
        anonymous = create_refresh_token({"email": "x@y.org"})

        with pytest.raises(AuthenticationRequiredError) as exc_info:
            decode_token(anonymous, expected_type="refresh")

        assert exc_info.value.message == "Invalid token payload"


def test_token_payload_for_user():
    user = SimpleNamespace(id=42, email="cm@hcpss.org", role=UserRole.CASE_MANAGER)

    assert token_payload_for(user) == {"sub": "42", "email": "cm@hcpss.org", "role": "CASE_MANAGER"}


def test_oauth_state_is_random():
    assert generate_oauth_state() != generate_oauth_state()
