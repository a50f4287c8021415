"""JWT token creation and validation."""

from __future__ import annotations

import uuid
from uuid import UUID

import jwt
from pydantic import ValidationError

from dojo.core.auth.types import TokenKind, TokenPair, TokenPayload
from dojo.core.clock import Clock, utcnow
from dojo.core.config import TokenConfig
from dojo.core.exceptions import TokenExpired, TokenInvalid


class TokenIssuer:
    """Issues and verifies access and refresh tokens.

    Each kind is signed with its own secret, so a refresh token presented
    as an access token (or the reverse) fails signature verification. The
    ``type`` claim is checked as well. Tokens are stateless: nothing is
    stored and nothing is revoked here.
    """

    def __init__(self, config: TokenConfig, clock: Clock = utcnow) -> None:
        """Initialize the issuer.

        Args:
            config: Secrets, lifetimes and algorithm.
            clock: Source of the issue time.
        """
        self.config = config
        self._clock = clock

    def _secret(self, kind: TokenKind) -> str:
        if kind is TokenKind.ACCESS:
            return self.config.access_secret
        return self.config.refresh_secret

    def _encode(self, identity_id: UUID | str, kind: TokenKind, **claims: object) -> str:
        now = self._clock()
        ttl = self.config.access_ttl if kind is TokenKind.ACCESS else self.config.refresh_ttl
        payload = {
            "sub": str(identity_id),
            "type": kind.value,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": uuid.uuid4().hex,
            **claims,
        }
        return jwt.encode(payload, self._secret(kind), algorithm=self.config.algorithm)

    def issue_access(self, identity_id: UUID | str) -> str:
        """Create an access token.

        Args:
            identity_id: Identity the token is bound to.

        Returns:
            Encoded JWT string.
        """
        return self._encode(identity_id, TokenKind.ACCESS)

    def issue_refresh(self, identity_id: UUID | str, version: int = 0) -> str:
        """Create a refresh token.

        Args:
            identity_id: Identity the token is bound to.
            version: The identity's current refresh-token version.

        Returns:
            Encoded JWT string.
        """
        return self._encode(identity_id, TokenKind.REFRESH, ver=version)

    def issue_pair(self, identity_id: UUID | str, version: int = 0) -> TokenPair:
        """Create an access and refresh token together."""
        return TokenPair(
            access_token=self.issue_access(identity_id),
            refresh_token=self.issue_refresh(identity_id, version),
        )

    def decode(self, token: str, kind: TokenKind) -> TokenPayload:
        """Decode and validate a token of the given kind.

        Args:
            token: Encoded JWT string.
            kind: Expected token kind.

        Returns:
            Decoded token payload.

        Raises:
            TokenExpired: If the token is past its expiry.
            TokenInvalid: If signature, structure or kind is wrong.
        """
        try:
            raw = jwt.decode(
                token,
                self._secret(kind),
                algorithms=[self.config.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired() from None
        except jwt.InvalidTokenError as e:
            raise TokenInvalid(f"Invalid token: {e}") from None

        try:
            payload = TokenPayload.model_validate(raw)
        except ValidationError:
            raise TokenInvalid("Invalid token: malformed claims") from None

        if payload.type is not kind:
            raise TokenInvalid("Invalid token: wrong token type")
        return payload

    def verify(self, token: str, kind: TokenKind) -> str:
        """Verify a token and return the identity id it carries."""
        return self.decode(token, kind).sub
