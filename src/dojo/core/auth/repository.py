"""Credential store protocol for identity persistence."""

from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from dojo.core.auth.types import Identity
from dojo.core.config import LockoutConfig


@runtime_checkable
class IdentityRepository(Protocol):
    """Protocol for identity storage.

    Implementations provide actual storage (PostgreSQL, in-memory). Every
    method that changes lockout or refresh state must be atomic with
    respect to concurrent calls for the same identity.
    """

    async def get_identity_by_id(self, identity_id: UUID) -> Identity | None:
        """Get identity by ID."""
        ...

    async def get_identity_by_email(self, email: str) -> Identity | None:
        """Get identity by normalized email address."""
        ...

    async def create_identity(self, identity: Identity) -> Identity:
        """Insert a new identity.

        Raises:
            EmailAlreadyRegistered: If the email is taken.
        """
        ...

    async def register_failed_login(
        self, identity_id: UUID, now: datetime, policy: LockoutConfig
    ) -> Identity | None:
        """Atomically apply one failed login to the lockout counters."""
        ...

    async def reset_failed_logins(self, identity_id: UUID, now: datetime) -> Identity | None:
        """Clear lockout counters and stamp the last login time."""
        ...

    async def rotate_refresh_version(
        self, identity_id: UUID, expected_version: int
    ) -> Identity | None:
        """Increment the refresh-token version if it still equals ``expected_version``.

        Returns None when another rotation already won.
        """
        ...

    async def set_email_verification(
        self, identity_id: UUID, token_hash: str, expires_at: datetime
    ) -> None:
        """Store a pending email verification token hash."""
        ...

    async def verify_email_by_token(self, token_hash: str, now: datetime) -> Identity | None:
        """Mark the identity owning an unexpired verification token as verified."""
        ...

    async def set_password_reset(
        self, identity_id: UUID, token_hash: str, expires_at: datetime
    ) -> None:
        """Store a pending password reset token hash."""
        ...

    async def reset_password_by_token(
        self, token_hash: str, now: datetime, password_hash: str
    ) -> Identity | None:
        """Consume an unexpired reset token of an active identity and set its password.

        Applies the same changes as ``update_password``. The token check and
        the write are one atomic step, so a token works at most once. Returns
        None when no active identity holds the unexpired token.
        """
        ...

    async def update_password(self, identity_id: UUID, password_hash: str) -> Identity | None:
        """Replace the password hash.

        Also clears any reset token and lockout state, and bumps the
        refresh-token version so outstanding refresh tokens stop working.
        """
        ...
