"""Auth service for registration, login, and account recovery."""

from __future__ import annotations

import secrets
from dataclasses import dataclass

import structlog

from dojo.core.auth.jwt import TokenIssuer
from dojo.core.auth.lockout import LoginGuard
from dojo.core.auth.notifications import AccountNotifier
from dojo.core.auth.password import PasswordHasher
from dojo.core.auth.repository import IdentityRepository
from dojo.core.auth.tokens import (
    RESET_TOKEN_TTL,
    VERIFICATION_TOKEN_TTL,
    generate_action_token,
    get_token_expiry,
    hash_token,
)
from dojo.core.auth.types import Identity, TokenPair
from dojo.core.auth.validators import (
    email_domain,
    normalize_email,
    validate_corporate_email,
    validate_password_strength,
)
from dojo.core.clock import Clock, utcnow
from dojo.core.exceptions import (
    AlreadyVerified,
    Deactivated,
    EmailAlreadyRegistered,
    InternalAuthError,
    InvalidActionToken,
    InvalidCredentials,
    Locked,
)
from dojo.core.workspaces.service import WorkspaceService
from dojo.core.workspaces.types import Membership, Workspace

logger = structlog.get_logger()


@dataclass(frozen=True)
class LoginResult:
    """Authenticated identity and its fresh tokens."""

    identity: Identity
    tokens: TokenPair


@dataclass(frozen=True)
class RegistrationResult:
    """New identity with its personal workspace."""

    identity: Identity
    workspace: Workspace
    membership: Membership


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        repo: IdentityRepository,
        workspaces: WorkspaceService,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        login_guard: LoginGuard,
        notifier: AccountNotifier,
        frontend_url: str,
        clock: Clock = utcnow,
    ) -> None:
        """Initialize the service.

        Args:
            repo: Credential store.
            workspaces: Workspace service, used to create the personal workspace.
            hasher: Password hasher.
            issuer: Token issuer.
            login_guard: Failed-login tracking.
            notifier: Delivers verification and reset links.
            frontend_url: Base URL for links sent to users.
            clock: Source of the current time.
        """
        self._repo = repo
        self._workspaces = workspaces
        self._hasher = hasher
        self._issuer = issuer
        self._login_guard = login_guard
        self._notifier = notifier
        self._frontend_url = frontend_url.rstrip("/")
        self._clock = clock
        self._unknown_identity_hash = hasher.hash(secrets.token_urlsafe(32))

    async def validate_email(self, email: str) -> str:
        """Check that an email may be used to register.

        Returns:
            The email domain.

        Raises:
            InvalidEmail: If malformed.
            PersonalEmailNotAllowed: If on a personal provider.
            EmailAlreadyRegistered: If already taken.
        """
        normalized = validate_corporate_email(email)
        if await self._repo.get_identity_by_email(normalized):
            raise EmailAlreadyRegistered()
        return email_domain(normalized)

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> RegistrationResult:
        """Register a new identity with a personal workspace.

        A verification link is sent, but the caller is not logged in.

        Raises:
            InvalidEmail, PersonalEmailNotAllowed, EmailAlreadyRegistered, WeakPassword.
        """
        normalized = validate_corporate_email(email)
        validate_password_strength(password)
        if await self._repo.get_identity_by_email(normalized):
            raise EmailAlreadyRegistered()

        verification_token = generate_action_token()
        identity = await self._repo.create_identity(
            Identity(
                email=normalized,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                email_domain=email_domain(normalized),
                is_corporate_email=True,
                password_hash=await self._hasher.hash_async(password),
                email_verification_token_hash=hash_token(verification_token),
                email_verification_expires_at=get_token_expiry(
                    VERIFICATION_TOKEN_TTL, self._clock()
                ),
            )
        )

        workspace, membership = await self._workspaces.create_workspace(
            identity,
            name=f"{identity.first_name}'s Personal Workspace",
            description="Personal workspace for individual projects and learning",
        )

        try:
            await self._send_verification(identity, verification_token)
        except Exception:
            # Registration stands; the user can ask for a new link
            logger.exception("verification_email_failed", identity_id=str(identity.id))

        logger.info("identity_registered", identity_id=str(identity.id), email=identity.email)
        return RegistrationResult(identity=identity, workspace=workspace, membership=membership)

    async def login(self, email: str, password: str) -> LoginResult:
        """Authenticate with email and password.

        Unknown emails and wrong passwords fail the same way and cost the
        same bcrypt check. A locked account is rejected before the password
        is looked at.

        Raises:
            InvalidCredentials: Email or password wrong.
            Locked: Too many recent failures.
            Deactivated: Account disabled.
        """
        identity = await self._repo.get_identity_by_email(normalize_email(email))
        if identity is None:
            # Same bcrypt cost as a wrong password
            await self._hasher.verify_async(password, self._unknown_identity_hash)
            raise InvalidCredentials()

        if self._login_guard.is_locked(identity):
            logger.info("login_blocked_locked", identity_id=str(identity.id))
            raise Locked(
                "Account is temporarily locked due to too many failed login attempts. "
                "Please try again later"
            )

        if not await self._hasher.verify_async(password, identity.password_hash):
            await self._login_guard.record_failure(identity)
            raise InvalidCredentials()

        if not identity.is_active:
            raise Deactivated()

        identity = await self._login_guard.record_success(identity)
        tokens = self._issuer.issue_pair(identity.id, identity.refresh_token_version)

        logger.info("identity_logged_in", identity_id=str(identity.id), email=identity.email)
        return LoginResult(identity=identity, tokens=tokens)

    async def verify_email(self, token: str) -> Identity:
        """Mark an email as verified using the emailed token.

        Raises:
            InvalidActionToken: If the token is unknown or expired.
        """
        identity = await self._repo.verify_email_by_token(hash_token(token), self._clock())
        if identity is None:
            logger.warning("email_verification_invalid_token")
            raise InvalidActionToken()

        logger.info("email_verified", identity_id=str(identity.id))
        return identity

    async def resend_verification(self, identity: Identity) -> None:
        """Issue a new verification token and send it.

        Raises:
            AlreadyVerified: If the email is already verified.
        """
        if identity.email_verified:
            raise AlreadyVerified()

        token = generate_action_token()
        await self._repo.set_email_verification(
            identity.id,
            hash_token(token),
            get_token_expiry(VERIFICATION_TOKEN_TTL, self._clock()),
        )
        await self._send_verification(identity, token)

    async def request_password_reset(self, email: str) -> None:
        """Send a password reset link if the account exists.

        Always succeeds from the caller's point of view, so responses do
        not reveal whether an account exists.
        """
        identity = await self._repo.get_identity_by_email(normalize_email(email))
        if identity is None:
            logger.info("password_reset_requested_unknown_email")
            return

        if not identity.is_active:
            logger.info("password_reset_requested_inactive_identity", identity_id=str(identity.id))
            return

        token = generate_action_token()
        await self._repo.set_password_reset(
            identity.id,
            hash_token(token),
            get_token_expiry(RESET_TOKEN_TTL, self._clock()),
        )

        reset_url = f"{self._frontend_url}/reset-password?token={token}"
        if await self._notifier.send_password_reset(identity.email, reset_url):
            logger.info("password_reset_email_sent", identity_id=str(identity.id))
        else:
            logger.error("password_reset_email_failed", identity_id=str(identity.id))

    async def reset_password(self, token: str, new_password: str) -> LoginResult:
        """Set a new password using a reset token and log the identity in.

        Clears any lockout and revokes outstanding refresh tokens.

        Raises:
            WeakPassword: If the new password fails the complexity rule.
            InvalidActionToken: If the token is unknown, expired, or the account is disabled.
        """
        validate_password_strength(new_password)

        password_hash = await self._hasher.hash_async(new_password)
        updated = await self._repo.reset_password_by_token(
            hash_token(token), self._clock(), password_hash
        )
        if updated is None:
            logger.warning("password_reset_invalid_token")
            raise InvalidActionToken()

        logger.info("password_reset_successful", identity_id=str(updated.id))
        return LoginResult(
            identity=updated,
            tokens=self._issuer.issue_pair(updated.id, updated.refresh_token_version),
        )

    async def update_password(
        self, identity: Identity, current_password: str, new_password: str
    ) -> LoginResult:
        """Change the password of a logged-in identity.

        Raises:
            InvalidCredentials: If the current password is wrong.
            WeakPassword: If the new password fails the complexity rule.
        """
        if not await self._hasher.verify_async(current_password, identity.password_hash):
            raise InvalidCredentials("Current password is incorrect")
        validate_password_strength(new_password)

        updated = await self._set_password(identity, new_password)
        logger.info("password_updated", identity_id=str(identity.id))
        return LoginResult(
            identity=updated,
            tokens=self._issuer.issue_pair(updated.id, updated.refresh_token_version),
        )

    async def _set_password(self, identity: Identity, password: str) -> Identity:
        password_hash = await self._hasher.hash_async(password)
        updated = await self._repo.update_password(identity.id, password_hash)
        if updated is None:
            raise InternalAuthError("Identity disappeared while updating its password")
        return updated

    async def _send_verification(self, identity: Identity, token: str) -> None:
        verify_url = f"{self._frontend_url}/verify-email?token={token}"
        if await self._notifier.send_verification(identity.email, verify_url):
            logger.info("verification_email_sent", identity_id=str(identity.id))
        else:
            logger.error("verification_email_failed", identity_id=str(identity.id))
