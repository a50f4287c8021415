"""Auth domain types and utilities."""

from dojo.core.auth.jwt import TokenIssuer
from dojo.core.auth.lockout import LoginGuard, LockoutState, next_failure_state
from dojo.core.auth.password import PasswordHasher
from dojo.core.auth.repository import IdentityRepository
from dojo.core.auth.session import (
    AuthRequest,
    Denied,
    Granted,
    RequestContext,
    SessionAuthenticator,
)
from dojo.core.auth.types import (
    FederatedProvider,
    Identity,
    TokenKind,
    TokenPair,
    TokenPayload,
)

__all__ = [
    "AuthRequest",
    "Denied",
    "FederatedProvider",
    "Granted",
    "Identity",
    "IdentityRepository",
    "LockoutState",
    "LoginGuard",
    "PasswordHasher",
    "RequestContext",
    "SessionAuthenticator",
    "TokenIssuer",
    "TokenKind",
    "TokenPair",
    "TokenPayload",
    "next_failure_state",
]
