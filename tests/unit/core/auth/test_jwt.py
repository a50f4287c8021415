"""Tests for the token issuer."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import jwt as pyjwt
import pytest

from dojo.core.auth.jwt import TokenIssuer
from dojo.core.auth.types import TokenKind
from dojo.core.config import AuthConfig, TokenConfig
from dojo.core.exceptions import TokenError, TokenExpired, TokenInvalid


class TestIssue:
    """Test token creation."""

    def test_creates_valid_jwt(self, issuer: TokenIssuer) -> None:
        """Should create a valid JWT string."""
        token = issuer.issue_access(uuid4())

        assert isinstance(token, str)
        # JWT has 3 parts separated by dots
        assert len(token.split(".")) == 3

    def test_access_round_trip(self, issuer: TokenIssuer) -> None:
        """Verifying a fresh access token returns its identity id."""
        identity_id = uuid4()

        assert issuer.verify(issuer.issue_access(identity_id), TokenKind.ACCESS) == str(
            identity_id
        )

    def test_refresh_carries_version(self, issuer: TokenIssuer) -> None:
        """Refresh tokens carry the refresh-token version."""
        payload = issuer.decode(issuer.issue_refresh(uuid4(), version=3), TokenKind.REFRESH)

        assert payload.type is TokenKind.REFRESH
        assert payload.ver == 3

    def test_access_has_no_version(self, issuer: TokenIssuer) -> None:
        """Access tokens are not versioned."""
        payload = issuer.decode(issuer.issue_access(uuid4()), TokenKind.ACCESS)

        assert payload.ver is None

    def test_tokens_are_unique(self, issuer: TokenIssuer) -> None:
        """Two tokens issued in the same second differ by jti."""
        identity_id = uuid4()

        assert issuer.issue_access(identity_id) != issuer.issue_access(identity_id)

    def test_lifetimes_follow_config(self, auth_config: AuthConfig) -> None:
        """exp - iat should equal the configured lifetime."""
        issuer = TokenIssuer(auth_config.tokens)
        pair = issuer.issue_pair(uuid4())

        access = issuer.decode(pair.access_token, TokenKind.ACCESS)
        refresh = issuer.decode(pair.refresh_token, TokenKind.REFRESH)

        assert access.exp - access.iat == int(timedelta(days=7).total_seconds())
        assert refresh.exp - refresh.iat == int(timedelta(days=30).total_seconds())


class TestDecode:
    """Test token verification failures."""

    def test_refresh_rejected_as_access(self, issuer: TokenIssuer) -> None:
        """A refresh token never verifies as an access token."""
        token = issuer.issue_refresh(uuid4())

        with pytest.raises(TokenInvalid):
            issuer.verify(token, TokenKind.ACCESS)

    def test_access_rejected_as_refresh(self, issuer: TokenIssuer) -> None:
        """An access token never verifies as a refresh token."""
        token = issuer.issue_access(uuid4())

        with pytest.raises(TokenInvalid):
            issuer.verify(token, TokenKind.REFRESH)

    def test_type_claim_checked(self, auth_config: AuthConfig) -> None:
        """A token with the right signature but wrong type claim is rejected."""
        now = int(datetime.now(UTC).timestamp())
        token = pyjwt.encode(
            {"sub": str(uuid4()), "type": "refresh", "iat": now, "exp": now + 60, "jti": "x"},
            auth_config.tokens.access_secret,
            algorithm="HS256",
        )

        with pytest.raises(TokenInvalid):
            TokenIssuer(auth_config.tokens).verify(token, TokenKind.ACCESS)

    def test_expired_token(self, auth_config: AuthConfig) -> None:
        """A token past its expiry raises TokenExpired."""
        config = TokenConfig(
            access_secret=auth_config.tokens.access_secret,
            refresh_secret=auth_config.tokens.refresh_secret,
            access_ttl=timedelta(seconds=1),
        )
        past = MagicMock(return_value=datetime.now(UTC) - timedelta(seconds=2))
        token = TokenIssuer(config, clock=past).issue_access(uuid4())

        with pytest.raises(TokenExpired):
            TokenIssuer(config).verify(token, TokenKind.ACCESS)

    def test_wrong_secret(self, issuer: TokenIssuer) -> None:
        """A token signed with another secret is rejected."""
        other = TokenIssuer(
            TokenConfig(access_secret="another-access", refresh_secret="another-refresh")
        )

        with pytest.raises(TokenInvalid):
            issuer.verify(other.issue_access(uuid4()), TokenKind.ACCESS)

    def test_tampered_token(self, issuer: TokenIssuer) -> None:
        """Any change to the token invalidates it."""
        token = issuer.issue_access(uuid4())
        header, payload, signature = token.split(".")
        tampered = f"{header}.{payload}.{signature[::-1]}"

        with pytest.raises(TokenInvalid):
            issuer.verify(tampered, TokenKind.ACCESS)

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_token(self, issuer: TokenIssuer, token: str) -> None:
        """Malformed input raises a TokenError, never something else."""
        with pytest.raises(TokenError):
            issuer.verify(token, TokenKind.ACCESS)

    def test_missing_subject(self, auth_config: AuthConfig) -> None:
        """Tokens without a subject are rejected."""
        now = int(datetime.now(UTC).timestamp())
        token = pyjwt.encode(
            {"type": "access", "iat": now, "exp": now + 60},
            auth_config.tokens.access_secret,
            algorithm="HS256",
        )

        with pytest.raises(TokenInvalid):
            TokenIssuer(auth_config.tokens).verify(token, TokenKind.ACCESS)
