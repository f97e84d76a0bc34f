"""JWT session tokens and password hashing.

Provides the core security primitives used by AuthService to issue
sessions and by AuthGateway to verify them.

Uses bcrypt directly (not passlib) for Python 3.13 compatibility.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from src.dealreg.config import get_settings
from src.dealreg.core.errors import Unauthenticated

# ── Password Hashing ──────────────────────────────────────────────────────────


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a plaintext password using bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds or get_settings().BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a plaintext password against its bcrypt hash.

    Empty or malformed hashes (externally-authenticated users) never match.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# ── JWT Token Creation ────────────────────────────────────────────────────────


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a signed session token.

    The data dict should contain at minimum:
    - sub: user id (str)
    - email: user email (str)
    - role: resolved role at issuance (str)
    """
    settings = get_settings()
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({
        "exp": expire,
        "iat": now,
        "type": "access",
    })
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


# ── JWT Token Verification ────────────────────────────────────────────────────


def verify_token(token: str, token_type: str = "access") -> dict:
    """Decode and validate a session token from its signature and expiry alone.

    Args:
        token: The JWT string.
        token_type: Expected token type.

    Returns:
        The decoded payload dict.

    Raises:
        Unauthenticated: If the token is invalid, expired, or wrong type.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise Unauthenticated("Your session has expired. Please login again")
    except JWTError:
        raise Unauthenticated("The provided token is invalid")

    if payload.get("type") != token_type:
        raise Unauthenticated("The provided token is invalid")
    if not payload.get("sub"):
        raise Unauthenticated("The provided token is invalid")
    return payload
