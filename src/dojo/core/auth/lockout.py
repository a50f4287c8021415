"""Failed-login tracking and temporary account lockout."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog

from dojo.core.auth.repository import IdentityRepository
from dojo.core.auth.types import Identity
from dojo.core.clock import Clock, utcnow
from dojo.core.config import LockoutConfig
from dojo.core.exceptions import InternalAuthError

logger = structlog.get_logger()


@dataclass(frozen=True)
class LockoutState:
    """Lockout counters of one identity."""

    failed_attempts: int
    lock_until: datetime | None


def next_failure_state(state: LockoutState, now: datetime, policy: LockoutConfig) -> LockoutState:
    """Apply one failed attempt to the counters.

    An expired lock starts a fresh window at one attempt. Otherwise the
    count grows, and reaching the threshold while unlocked sets a lock.
    An active lock is never extended.

    Args:
        state: Current counters.
        now: Time of the failed attempt.
        policy: Threshold and lock duration.

    Returns:
        The counters after the failure.
    """
    if state.lock_until is not None and state.lock_until <= now:
        return LockoutState(failed_attempts=1, lock_until=None)

    attempts = state.failed_attempts + 1
    lock_until = state.lock_until
    if attempts >= policy.max_attempts and lock_until is None:
        lock_until = now + policy.lock_duration
    return LockoutState(failed_attempts=attempts, lock_until=lock_until)


class LoginGuard:
    """Maintains failed-attempt counters and lock state.

    The guard never rejects a login itself. Callers check ``is_locked``
    before verifying a password and report the outcome afterwards.
    """

    def __init__(
        self,
        repo: IdentityRepository,
        config: LockoutConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        """Initialize the guard.

        Args:
            repo: Credential store that applies counter updates atomically.
            config: Threshold and lock duration. Uses defaults if not provided.
            clock: Source of the current time.
        """
        self._repo = repo
        self.config = config or LockoutConfig()
        self._clock = clock

    def is_locked(self, identity: Identity) -> bool:
        """True iff a lock is set and still in the future."""
        return identity.is_locked_at(self._clock())

    async def record_failure(self, identity: Identity) -> Identity:
        """Count a failed login, locking the account at the threshold.

        Returns:
            The identity with updated counters.
        """
        updated = await self._repo.register_failed_login(identity.id, self._clock(), self.config)
        if updated is None:
            raise InternalAuthError("Identity disappeared while recording a failed login")

        logger.info(
            "login_failed",
            identity_id=str(identity.id),
            failed_attempts=updated.failed_login_attempts,
        )
        if updated.lock_until is not None and updated.lock_until != identity.lock_until:
            logger.warning(
                "account_locked",
                identity_id=str(identity.id),
                lock_until=updated.lock_until.isoformat(),
            )
        return updated

    async def record_success(self, identity: Identity) -> Identity:
        """Clear counters and stamp the last login time.

        Returns:
            The identity with cleared counters.
        """
        updated = await self._repo.reset_failed_logins(identity.id, self._clock())
        if updated is None:
            raise InternalAuthError("Identity disappeared while recording a login")
        return updated
