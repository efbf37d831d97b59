"""
Authentication helpers for the Composition API.

Handles password hashing and JWT token creation and validation.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from ..core.exceptions import InvalidTokenError
from ..infrastructure.config.settings import AuthConfig, get_config

# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash password using bcrypt"""
    rounds = rounds or get_config().auth.bcrypt_rounds
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hash"""
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(
    user: Dict[str, Any],
    config: Optional[AuthConfig] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create JWT access token

    Args:
        user: User with at least ``id`` and ``username``
        config: Auth settings; defaults to the global configuration
        expires_delta: Custom expiration time

    Returns:
        JWT token string
    """
    config = config or get_config().auth
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=config.token_expiration_days))

    payload = {
        "id": user["id"],
        "username": user["username"],
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str, config: Optional[AuthConfig] = None) -> Dict[str, Any]:
    """
    Verify a JWT and return its claims.

    Raises:
        InvalidTokenError: if the token is malformed, expired, or lacks a user id
    """
    config = config or get_config().auth
    try:
        payload = jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
    except jwt.ExpiredSignatureError as e:
        raise InvalidTokenError("expired") from e
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError(str(e)) from e

    if not payload.get("id"):
        raise InvalidTokenError("missing user id")
    return payload
