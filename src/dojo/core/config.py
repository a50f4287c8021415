"""Auth configuration.

Configuration is read from the environment once at process start and held
in frozen dataclasses. Each component receives only the section it needs.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": "seconds", "s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``7d``, ``12h``, ``30m``, ``45s`` or ``3600``.

    Args:
        value: Duration string. A bare number means seconds.

    Returns:
        The parsed duration.

    Raises:
        ValueError: If the string is not a recognised duration.
    """
    match = _DURATION_RE.match(value.lower())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


@dataclass(frozen=True)
class HasherConfig:
    """Password hashing configuration.

    Attributes:
        rounds: bcrypt cost factor.
    """

    rounds: int = 12

    def __post_init__(self) -> None:
        """Validate the cost factor against bcrypt's accepted range."""
        if not 4 <= self.rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {self.rounds}")


@dataclass(frozen=True)
class TokenConfig:
    """Signed token configuration.

    Attributes:
        access_secret: Secret used to sign access tokens.
        refresh_secret: Secret used to sign refresh tokens. Must differ from access_secret.
        access_ttl: Access token lifetime.
        refresh_ttl: Refresh token lifetime.
        algorithm: JWT signing algorithm.
    """

    access_secret: str = "dev-access-secret-change-in-production"
    refresh_secret: str = "dev-refresh-secret-change-in-production"
    access_ttl: timedelta = timedelta(days=7)
    refresh_ttl: timedelta = timedelta(days=30)
    algorithm: str = "HS256"

    def __post_init__(self) -> None:
        """Reject configurations where one secret signs both token kinds."""
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("Token secrets must not be empty")
        if self.access_secret == self.refresh_secret:
            raise ValueError("Access and refresh tokens must use different secrets")


@dataclass(frozen=True)
class LockoutConfig:
    """Login lockout policy.

    Attributes:
        max_attempts: Failed attempts that trigger a lock.
        lock_duration: How long the account stays locked.
    """

    max_attempts: int = 5
    lock_duration: timedelta = timedelta(hours=2)


@dataclass(frozen=True)
class SessionConfig:
    """Request-time session settings.

    Attributes:
        access_cookie: Cookie carrying the access token.
        refresh_cookie: Cookie carrying the refresh token.
        refresh_header: Header that may carry the refresh token.
        verification_paths: Paths an unverified identity may still call.
        secure_cookies: Whether cookies are marked Secure.
    """

    access_cookie: str = "jwt"
    refresh_cookie: str = "refreshToken"
    refresh_header: str = "X-Refresh-Token"
    verification_paths: frozenset[str] = frozenset(
        {"/api/v1/auth/verify-email", "/api/v1/auth/resend-verification"}
    )
    secure_cookies: bool = False


@dataclass(frozen=True)
class AuthConfig:
    """All auth settings, built once at startup."""

    hasher: HasherConfig = field(default_factory=HasherConfig)
    tokens: TokenConfig = field(default_factory=TokenConfig)
    lockout: LockoutConfig = field(default_factory=LockoutConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AuthConfig:
        """Build configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            Immutable auth configuration.
        """
        env = os.environ if environ is None else environ
        token_defaults = TokenConfig()
        return cls(
            hasher=HasherConfig(rounds=int(env.get("BCRYPT_ROUNDS", "12"))),
            tokens=TokenConfig(
                access_secret=env.get("JWT_SECRET", token_defaults.access_secret),
                refresh_secret=env.get("JWT_REFRESH_SECRET", token_defaults.refresh_secret),
                access_ttl=parse_duration(env.get("JWT_EXPIRE", "7d")),
                refresh_ttl=parse_duration(env.get("JWT_REFRESH_EXPIRE", "30d")),
            ),
            lockout=LockoutConfig(
                max_attempts=int(env.get("LOGIN_MAX_ATTEMPTS", "5")),
                lock_duration=parse_duration(env.get("LOGIN_LOCK_DURATION", "2h")),
            ),
            session=SessionConfig(
                secure_cookies=env.get("ENVIRONMENT", "development").lower() == "production",
            ),
        )
