"""Single-use action tokens for email verification and password reset."""

import hashlib
import secrets
from datetime import UTC, datetime, timedelta

# Token configuration
ACTION_TOKEN_BYTES = 32  # 256 bits of entropy
VERIFICATION_TOKEN_TTL = timedelta(hours=24)
RESET_TOKEN_TTL = timedelta(minutes=10)


def generate_action_token() -> str:
    """Generate a cryptographically secure token.

    Returns:
        URL-safe base64 encoded token string.
    """
    return secrets.token_urlsafe(ACTION_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Hash a token for storage.

    The token has enough entropy that a fast hash is safe; only the hash
    is ever persisted.

    Args:
        token: The plaintext token.

    Returns:
        Hex-encoded SHA-256 hash of the token.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def get_token_expiry(ttl: timedelta, now: datetime | None = None) -> datetime:
    """Calculate a token expiry timestamp."""
    return (now or datetime.now(UTC)) + ttl


def is_token_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    """Check if a token has expired.

    Args:
        expires_at: The token's expiry timestamp. None counts as expired.
        now: Reference time. Defaults to the current UTC time.

    Returns:
        True if the token has expired.
    """
    if expires_at is None:
        return True
    now = now or datetime.now(UTC)
    # Handle timezone-naive datetimes
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return now >= expires_at
