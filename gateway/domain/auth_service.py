"""Password hashing and admin session helpers."""
import secrets
from datetime import datetime, timedelta
from enum import Enum

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHashError

from gateway.common.clock import ensure_utc


# Argon2 password hasher
ph = PasswordHasher()

SESSION_TOKEN_BYTES = 64


class AdminRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    VIEWER = "viewer"


# Roles allowed to mutate tokens
WRITE_ROLES = (AdminRole.SUPER_ADMIN, AdminRole.ADMIN)


def hash_password(password: str) -> str:
    """Hash a password using Argon2.

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    return ph.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    """Verify a password against its hash.

    Args:
        password: Plain text password to verify
        hashed_password: The hashed password to check against

    Returns:
        True if password matches, False otherwise
    """
    try:
        ph.verify(hashed_password, password)
        return True
    except (VerifyMismatchError, InvalidHashError):
        return False


def generate_session_token() -> str:
    """Mint a high-entropy opaque session token."""
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def session_expiry(now: datetime, ttl_hours: int) -> datetime:
    """Fixed expiry for a new session. Sessions are never extended."""
    return now + timedelta(hours=ttl_hours)


def is_session_expired(expires_at: datetime, now: datetime) -> bool:
    return ensure_utc(expires_at) <= now
