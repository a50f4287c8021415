"""In-memory implementation of IdentityRepository.

Used for development and tests. All mutations run under one asyncio lock
so concurrent requests see the same atomicity the database gives.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any
from uuid import UUID

from dojo.core.auth.lockout import LockoutState, next_failure_state
from dojo.core.auth.tokens import is_token_expired
from dojo.core.auth.types import Identity
from dojo.core.config import LockoutConfig
from dojo.core.exceptions import EmailAlreadyRegistered


def _password_changes(current: Identity, password_hash: str) -> dict[str, Any]:
    return {
        "password_hash": password_hash,
        "password_reset_token_hash": None,
        "password_reset_expires_at": None,
        "failed_login_attempts": 0,
        "lock_until": None,
        "refresh_token_version": current.refresh_token_version + 1,
    }


class InMemoryIdentityRepository:
    """Dict-backed credential store."""

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._identities: dict[UUID, Identity] = {}
        self._lock = asyncio.Lock()

    def _by_email(self, email: str) -> Identity | None:
        return next((i for i in self._identities.values() if i.email == email), None)

    async def _update(self, identity_id: UUID, **changes: Any) -> Identity | None:
        async with self._lock:
            current = self._identities.get(identity_id)
            if current is None:
                return None
            updated = current.model_copy(update=changes)
            self._identities[identity_id] = updated
            return updated

    async def get_identity_by_id(self, identity_id: UUID) -> Identity | None:
        """Get identity by ID."""
        return self._identities.get(identity_id)

    async def get_identity_by_email(self, email: str) -> Identity | None:
        """Get identity by normalized email address."""
        return self._by_email(email.lower())

    async def create_identity(self, identity: Identity) -> Identity:
        """Insert a new identity."""
        async with self._lock:
            if self._by_email(identity.email) is not None:
                raise EmailAlreadyRegistered()
            self._identities[identity.id] = identity
            return identity

    async def register_failed_login(
        self, identity_id: UUID, now: datetime, policy: LockoutConfig
    ) -> Identity | None:
        """Apply one failed login under the store lock."""
        async with self._lock:
            current = self._identities.get(identity_id)
            if current is None:
                return None
            state = next_failure_state(
                LockoutState(current.failed_login_attempts, current.lock_until), now, policy
            )
            updated = current.model_copy(
                update={
                    "failed_login_attempts": state.failed_attempts,
                    "lock_until": state.lock_until,
                }
            )
            self._identities[identity_id] = updated
            return updated

    async def reset_failed_logins(self, identity_id: UUID, now: datetime) -> Identity | None:
        """Clear lockout counters and stamp the last login time."""
        return await self._update(
            identity_id, failed_login_attempts=0, lock_until=None, last_login=now
        )

    async def rotate_refresh_version(
        self, identity_id: UUID, expected_version: int
    ) -> Identity | None:
        """Compare-and-swap the refresh-token version."""
        async with self._lock:
            current = self._identities.get(identity_id)
            if current is None or current.refresh_token_version != expected_version:
                return None
            updated = current.model_copy(
                update={"refresh_token_version": expected_version + 1}
            )
            self._identities[identity_id] = updated
            return updated

    async def set_email_verification(
        self, identity_id: UUID, token_hash: str, expires_at: datetime
    ) -> None:
        """Store a pending email verification token hash."""
        await self._update(
            identity_id,
            email_verification_token_hash=token_hash,
            email_verification_expires_at=expires_at,
        )

    async def verify_email_by_token(self, token_hash: str, now: datetime) -> Identity | None:
        """Mark the identity owning an unexpired verification token as verified."""
        async with self._lock:
            current = next(
                (
                    i
                    for i in self._identities.values()
                    if i.email_verification_token_hash == token_hash
                    and not is_token_expired(i.email_verification_expires_at, now)
                ),
                None,
            )
            if current is None:
                return None
            updated = current.model_copy(
                update={
                    "email_verified": True,
                    "email_verification_token_hash": None,
                    "email_verification_expires_at": None,
                }
            )
            self._identities[current.id] = updated
            return updated

    async def set_password_reset(
        self, identity_id: UUID, token_hash: str, expires_at: datetime
    ) -> None:
        """Store a pending password reset token hash."""
        await self._update(
            identity_id,
            password_reset_token_hash=token_hash,
            password_reset_expires_at=expires_at,
        )

    async def reset_password_by_token(
        self, token_hash: str, now: datetime, password_hash: str
    ) -> Identity | None:
        """Consume an unexpired reset token of an active identity and set its password."""
        async with self._lock:
            current = next(
                (
                    i
                    for i in self._identities.values()
                    if i.password_reset_token_hash == token_hash
                    and not is_token_expired(i.password_reset_expires_at, now)
                    and i.is_active
                ),
                None,
            )
            if current is None:
                return None
            updated = current.model_copy(update=_password_changes(current, password_hash))
            self._identities[current.id] = updated
            return updated

    async def update_password(self, identity_id: UUID, password_hash: str) -> Identity | None:
        """Replace the password hash and revoke outstanding refresh tokens."""
        async with self._lock:
            current = self._identities.get(identity_id)
            if current is None:
                return None
            updated = current.model_copy(update=_password_changes(current, password_hash))
            self._identities[identity_id] = updated
            return updated
