"""Tests for email verification and password reset tokens."""

from datetime import UTC, datetime, timedelta

from dojo.core.auth.tokens import (
    RESET_TOKEN_TTL,
    VERIFICATION_TOKEN_TTL,
    generate_action_token,
    get_token_expiry,
    hash_token,
    is_token_expired,
)


class TestGenerateActionToken:
    """Tests for generate_action_token."""

    def test_generates_unique_tokens(self) -> None:
        """Each call should generate a unique token."""
        tokens = {generate_action_token() for _ in range(100)}

        assert len(tokens) == 100

    def test_token_is_url_safe(self) -> None:
        """Token should be URL-safe (no special characters)."""
        token = generate_action_token()

        assert all(c.isalnum() or c in "-_" for c in token)


class TestHashToken:
    """Tests for hash_token."""

    def test_hash_is_deterministic(self) -> None:
        """Same token should produce same hash."""
        assert hash_token("abc") == hash_token("abc")

    def test_hash_is_sha256_hex(self) -> None:
        """Hash should be 64 hex characters."""
        digest = hash_token(generate_action_token())

        assert len(digest) == 64
        int(digest, 16)


class TestExpiry:
    """Tests for expiry helpers."""

    def test_lifetimes(self) -> None:
        """Verification links last a day, reset links ten minutes."""
        assert VERIFICATION_TOKEN_TTL == timedelta(hours=24)
        assert RESET_TOKEN_TTL == timedelta(minutes=10)

    def test_expiry_relative_to_now(self) -> None:
        """Expiry is now plus the lifetime."""
        now = datetime(2026, 1, 1, tzinfo=UTC)

        assert get_token_expiry(RESET_TOKEN_TTL, now) == now + timedelta(minutes=10)

    def test_expired_boundaries(self) -> None:
        """A token is expired from its expiry instant on."""
        now = datetime(2026, 1, 1, tzinfo=UTC)

        assert is_token_expired(now + timedelta(seconds=1), now) is False
        assert is_token_expired(now, now) is True
        assert is_token_expired(now - timedelta(seconds=1), now) is True

    def test_missing_expiry_is_expired(self) -> None:
        """No expiry means no valid token."""
        assert is_token_expired(None) is True

    def test_naive_expiry_treated_as_utc(self) -> None:
        """Naive timestamps from older rows are read as UTC."""
        now = datetime(2026, 1, 1, tzinfo=UTC)

        assert is_token_expired(datetime(2026, 1, 2), now) is False
