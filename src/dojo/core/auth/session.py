"""Request-time session resolution.

A request is authenticated by running an ordered list of guards. Each
guard inspects a ``SessionState`` and returns either ``Granted`` with a
(possibly enriched) state or ``Denied`` with the error to report. The
orchestrator stops at the first denial.

Three pipelines are built from the same guards:

- protect: token, signature, identity, lock, active, verified email
- identify: token, signature, identity (failures mean "anonymous")
- refresh: refresh token, signature, identity, lock, active, rotation
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from uuid import UUID

import structlog

from dojo.core.auth.jwt import TokenIssuer
from dojo.core.auth.lockout import LoginGuard
from dojo.core.auth.repository import IdentityRepository
from dojo.core.auth.types import Identity, TokenKind, TokenPair, TokenPayload
from dojo.core.config import SessionConfig
from dojo.core.exceptions import (
    AuthError,
    Deactivated,
    InternalAuthError,
    InvalidRefreshToken,
    Locked,
    TokenExpired,
    TokenInvalid,
    Unauthenticated,
    UnverifiedEmail,
)
from dojo.core.workspaces.types import Membership

logger = structlog.get_logger()


@dataclass(frozen=True)
class AuthRequest:
    """Framework-neutral view of the parts of a request auth looks at.

    Header names are lower-case.
    """

    path: str
    authorization: str | None = None
    cookies: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    client_host: str | None = None


@dataclass(frozen=True)
class RequestContext:
    """Resolved caller, handed to downstream handlers."""

    identity: Identity
    path: str
    membership: Membership | None = None

    @property
    def identity_id(self) -> UUID:
        """ID of the authenticated identity."""
        return self.identity.id

    def with_membership(self, membership: Membership) -> RequestContext:
        """Return a copy scoped to a workspace membership."""
        return replace(self, membership=membership)


@dataclass(frozen=True)
class SessionState:
    """What the pipeline has established so far."""

    request: AuthRequest
    token: str | None = None
    claims: TokenPayload | None = None
    identity: Identity | None = None


@dataclass(frozen=True)
class Granted:
    """Guard passed."""

    state: SessionState


@dataclass(frozen=True)
class Denied:
    """Guard rejected the request."""

    error: AuthError


GuardOutcome = Granted | Denied
Guard = Callable[[SessionState], Awaitable[GuardOutcome]]


async def run_guards(guards: Sequence[Guard], state: SessionState) -> GuardOutcome:
    """Run guards in order, stopping at the first denial.

    An unexpected exception from a guard is logged and reported as an
    internal error so no raw exception reaches the caller.
    """
    for guard in guards:
        try:
            outcome = await guard(state)
        except Exception:
            logger.exception(
                "session_guard_error",
                guard=getattr(guard, "__name__", repr(guard)),
                path=state.request.path,
            )
            return Denied(InternalAuthError())
        if isinstance(outcome, Denied):
            return outcome
        state = outcome.state
    return Granted(state)


class SessionAuthenticator:
    """Resolves bearer tokens into request contexts."""

    def __init__(
        self,
        issuer: TokenIssuer,
        login_guard: LoginGuard,
        repo: IdentityRepository,
        config: SessionConfig | None = None,
    ) -> None:
        """Initialize the authenticator.

        Args:
            issuer: Token issuer used to verify and mint tokens.
            login_guard: Answers lock-state questions.
            repo: Credential store.
            config: Cookie names and verification allow-list.
        """
        self._issuer = issuer
        self._login_guard = login_guard
        self._repo = repo
        self.config = config or SessionConfig()

        self.protect_guards: tuple[Guard, ...] = (
            self._extract_access_token,
            self._verify_access_token,
            self._load_identity,
            self._check_not_locked,
            self._check_active,
            self._check_email_verified,
        )
        self.identify_guards: tuple[Guard, ...] = self.protect_guards[:3]
        self.refresh_guards: tuple[Guard, ...] = (
            self._extract_refresh_token,
            self._verify_refresh_token,
            self._load_identity,
            self._check_not_locked,
            self._check_active,
            self._rotate_refresh_version,
        )

    # Pipelines

    async def authenticate(self, request: AuthRequest) -> GuardOutcome:
        """Run the full protect pipeline without raising."""
        return await run_guards(self.protect_guards, SessionState(request=request))

    async def protect(self, request: AuthRequest) -> RequestContext:
        """Resolve the caller or raise.

        Raises:
            AuthError: The first failing check, already in the caller taxonomy.
        """
        outcome = await self.authenticate(request)
        if isinstance(outcome, Denied):
            self._log_rejection("session_rejected", request, outcome.error)
            raise outcome.error
        return self._context(outcome.state)

    async def identify(self, request: AuthRequest) -> RequestContext | None:
        """Resolve the caller if a valid token is present, else None."""
        outcome = await run_guards(self.identify_guards, SessionState(request=request))
        if isinstance(outcome, Denied):
            if not isinstance(outcome.error, Unauthenticated) or (
                outcome.error.reason != Unauthenticated.MISSING_TOKEN
            ):
                self._log_rejection("optional_auth_ignored", request, outcome.error)
            return None
        return self._context(outcome.state)

    async def refresh(self, request: AuthRequest) -> tuple[Identity, TokenPair]:
        """Exchange a refresh token for a new access and refresh token.

        The presented refresh token is single-use: its version is bumped
        atomically, so a replayed or concurrently reused token fails.

        Raises:
            InvalidRefreshToken: For any auth failure, whatever the stage.
            InternalAuthError: For unexpected faults.
        """
        outcome = await run_guards(self.refresh_guards, SessionState(request=request))
        if isinstance(outcome, Denied):
            self._log_rejection("refresh_rejected", request, outcome.error)
            if isinstance(outcome.error, InternalAuthError):
                raise outcome.error
            raise InvalidRefreshToken()

        identity = outcome.state.identity
        assert identity is not None
        tokens = self._issuer.issue_pair(identity.id, identity.refresh_token_version)
        logger.info("tokens_refreshed", identity_id=str(identity.id))
        return identity, tokens

    # Guards

    async def _extract_access_token(self, state: SessionState) -> GuardOutcome:
        token = _bearer_token(state.request.authorization) or state.request.cookies.get(
            self.config.access_cookie
        )
        if not token:
            return Denied(Unauthenticated(Unauthenticated.MISSING_TOKEN))
        return Granted(replace(state, token=token))

    async def _extract_refresh_token(self, state: SessionState) -> GuardOutcome:
        request = state.request
        token = request.headers.get(self.config.refresh_header.lower()) or request.cookies.get(
            self.config.refresh_cookie
        )
        if not token:
            return Denied(Unauthenticated(Unauthenticated.MISSING_TOKEN))
        return Granted(replace(state, token=token))

    async def _verify_access_token(self, state: SessionState) -> GuardOutcome:
        return self._verify(state, TokenKind.ACCESS)

    async def _verify_refresh_token(self, state: SessionState) -> GuardOutcome:
        return self._verify(state, TokenKind.REFRESH)

    def _verify(self, state: SessionState, kind: TokenKind) -> GuardOutcome:
        assert state.token is not None
        try:
            claims = self._issuer.decode(state.token, kind)
        except TokenExpired as e:
            return Denied(Unauthenticated(Unauthenticated.EXPIRED_TOKEN, e.message))
        except TokenInvalid:
            return Denied(
                Unauthenticated(
                    Unauthenticated.INVALID_TOKEN, "Invalid token. Please log in again"
                )
            )
        return Granted(replace(state, claims=claims))

    async def _load_identity(self, state: SessionState) -> GuardOutcome:
        assert state.claims is not None
        try:
            identity_id = UUID(state.claims.sub)
        except ValueError:
            return Denied(Unauthenticated(Unauthenticated.INVALID_TOKEN))

        identity = await self._repo.get_identity_by_id(identity_id)
        if identity is None:
            return Denied(
                Unauthenticated(
                    Unauthenticated.UNKNOWN_IDENTITY,
                    "The user belonging to this token no longer exists",
                )
            )
        return Granted(replace(state, identity=identity))

    async def _check_not_locked(self, state: SessionState) -> GuardOutcome:
        assert state.identity is not None
        if self._login_guard.is_locked(state.identity):
            return Denied(Locked())
        return Granted(state)

    async def _check_active(self, state: SessionState) -> GuardOutcome:
        assert state.identity is not None
        if not state.identity.is_active:
            return Denied(Deactivated())
        return Granted(state)

    async def _check_email_verified(self, state: SessionState) -> GuardOutcome:
        assert state.identity is not None
        if state.identity.email_verified:
            return Granted(state)
        if state.request.path in self.config.verification_paths:
            return Granted(state)
        return Denied(UnverifiedEmail())

    async def _rotate_refresh_version(self, state: SessionState) -> GuardOutcome:
        assert state.identity is not None and state.claims is not None
        if state.claims.ver != state.identity.refresh_token_version:
            return Denied(Unauthenticated(Unauthenticated.INVALID_TOKEN, "Refresh token reused"))

        rotated = await self._repo.rotate_refresh_version(
            state.identity.id, state.identity.refresh_token_version
        )
        if rotated is None:
            return Denied(Unauthenticated(Unauthenticated.INVALID_TOKEN, "Refresh token reused"))
        return Granted(replace(state, identity=rotated))

    # Helpers

    @staticmethod
    def _context(state: SessionState) -> RequestContext:
        assert state.identity is not None
        return RequestContext(identity=state.identity, path=state.request.path)

    @staticmethod
    def _log_rejection(event: str, request: AuthRequest, error: AuthError) -> None:
        logger.info(
            event,
            code=error.code,
            reason=getattr(error, "reason", None),
            path=request.path,
            client_host=request.client_host,
        )


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None
