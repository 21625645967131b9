"""API token generation, masking and validity rules."""
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from gateway.common.clock import ensure_utc


# Secret prefix per environment tag
ENVIRONMENT_PREFIXES = {
    "production": "tok_live",
    "staging": "tok_stage",
    "development": "tok_dev",
    "test": "tok_test",
}
DEFAULT_PREFIX = "tok"
TOKEN_RANDOM_BYTES = 32

MASK = "_****"
MASK_MIN_LENGTH = 12  # at or below this length no trailing characters are shown


@dataclass
class TokenInfo:
    """Information about a generated token (returned only once at creation)."""

    full_token: str  # Only shown once
    token_hash: str  # Stored in database
    token_prefix: str  # Stored in database for display
    token_hint: str  # Masked rendering stored for listings


class TokenState(str, Enum):
    """Outcome of checking a stored token against a request."""

    VALID = "valid"
    EXPIRED = "expired"
    REVOKED = "revoked"
    DISABLED = "disabled"
    IP_NOT_ALLOWED = "ip_not_allowed"


def prefix_for_environment(environment: str | None) -> str:
    """Return the secret prefix for an environment tag."""
    return ENVIRONMENT_PREFIXES.get((environment or "").lower(), DEFAULT_PREFIX)


def generate_api_token(environment: str | None) -> str:
    """Generate a new API token secret.

    Format: <prefix>_<base64url of 32 random bytes>
    Example: tok_live_Zm9vYmFy...

    Args:
        environment: Environment tag selecting the prefix

    Returns:
        The full token string
    """
    return f"{prefix_for_environment(environment)}_{secrets.token_urlsafe(TOKEN_RANDOM_BYTES)}"


def hash_token(token: str) -> str:
    """Hash a token using SHA-256.

    Args:
        token: The full token string to hash

    Returns:
        Hexadecimal string of the hash (64 characters)
    """
    return hashlib.sha256(token.encode()).hexdigest()


def mask_token(value: str, prefix: str) -> str:
    """Render a token for display without exposing the secret.

    ``prefix_****last4``, or ``prefix_****`` for values too short to reveal
    four characters. A value that is already masked is returned unchanged.
    """
    if MASK in value:
        return value
    if len(value) <= MASK_MIN_LENGTH:
        return prefix + MASK
    return prefix + MASK + value[-4:]


def create_token_info(environment: str | None) -> TokenInfo:
    """Create a new token with all necessary information.

    Returns:
        TokenInfo object containing the full token, hash, prefix and hint
    """
    full_token = generate_api_token(environment)
    prefix = prefix_for_environment(environment)
    return TokenInfo(
        full_token=full_token,
        token_hash=hash_token(full_token),
        token_prefix=prefix,
        token_hint=mask_token(full_token, prefix),
    )


def is_token_expired(expires_at: datetime | None, now: datetime) -> bool:
    """Check if a token has expired. Tokens without expiry never expire."""
    if expires_at is None:
        return False
    return ensure_utc(expires_at) <= now


def evaluate_token(token, caller_ip: str | None, now: datetime) -> TokenState:
    """Check a stored token against the validity rules.

    An expiry in the past dominates every other state. Revocation is
    checked before the active flag, and the IP allowlist (exact string
    match, no CIDR) last.

    Args:
        token: Token model
        caller_ip: Client address as seen by the server
        now: Current instant

    Returns:
        TokenState describing the first rule that failed, or VALID
    """
    if is_token_expired(token.expires_at, now):
        return TokenState.EXPIRED
    if token.revoked_at is not None:
        return TokenState.REVOKED
    if not token.is_active:
        return TokenState.DISABLED
    allowlist = token.ip_allowlist or []
    if allowlist and caller_ip not in allowlist:
        return TokenState.IP_NOT_ALLOWED
    return TokenState.VALID


def token_snapshot(token) -> dict:
    """JSON-safe view of a token for audit old/new values. Never includes the hash."""
    def _iso(value):
        value = ensure_utc(value)
        return value.isoformat() if value else None

    return {
        "name": token.name,
        "description": token.description,
        "environment": token.environment,
        "token_hint": token.token_hint,
        "is_active": token.is_active,
        "expires_at": _iso(token.expires_at),
        "revoked_at": _iso(token.revoked_at),
        "revoked_reason": token.revoked_reason,
        "ip_allowlist": list(token.ip_allowlist or []),
        "rate_limit_per_minute": token.rate_limit_per_minute,
        "rate_limit_per_hour": token.rate_limit_per_hour,
        "rate_limit_per_day": token.rate_limit_per_day,
        "vendor_name": token.vendor_name,
        "filter_column": token.filter_column,
        "filter_value": token.filter_value,
        "is_super": token.is_super,
    }
