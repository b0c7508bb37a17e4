"""Password hashing (bcrypt) and staff session tokens (JWT)"""

import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from myteacher.core.config import settings
from myteacher.core.exceptions import AuthenticationRequiredError

ACCESS = "access"
REFRESH = "refresh"

BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """False for accounts without a password (Google sign-in only)"""
    if not hashed_password:
        return False
    return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))


def _encode(claims: Dict[str, Any], token_type: str, lifetime: timedelta) -> str:
    payload = {**claims, "exp": datetime.utcnow() + lifetime, "type": token_type}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    return _encode(data, ACCESS, expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(data: Dict[str, Any]) -> str:
    return _encode(data, REFRESH, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str, expected_type: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify signature and expiry.

    With expected_type, also require that token type and a subject claim.
    Every failure is an AuthenticationRequiredError (401).
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationRequiredError("Could not validate credentials")

    if expected_type is not None:
        if payload.get("type") != expected_type:
            raise AuthenticationRequiredError("Invalid token type")
        if not payload.get("sub"):
            raise AuthenticationRequiredError("Invalid token payload")
    return payload


def token_payload_for(user) -> Dict[str, Any]:
    """Claims shared by access and refresh tokens"""
    return {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value if user.role else None,
    }


def generate_oauth_state() -> str:
    return secrets.token_urlsafe(32)
