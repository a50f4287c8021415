"""Tests for failed-login tracking and lockout."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from dojo.adapters.auth.memory import InMemoryIdentityRepository
from dojo.core.auth.lockout import LockoutState, LoginGuard, next_failure_state
from dojo.core.config import LockoutConfig
from dojo.core.exceptions import InternalAuthError

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
POLICY = LockoutConfig(max_attempts=5, lock_duration=timedelta(hours=2))


class TestNextFailureState:
    """Test the pure counter transition."""

    def test_counts_up_below_threshold(self) -> None:
        """Failures below the threshold only count."""
        state = next_failure_state(LockoutState(0, None), NOW, POLICY)

        assert state == LockoutState(1, None)

    def test_locks_at_threshold(self) -> None:
        """The fifth failure sets a two hour lock."""
        state = next_failure_state(LockoutState(4, None), NOW, POLICY)

        assert state == LockoutState(5, NOW + timedelta(hours=2))

    def test_active_lock_not_extended(self) -> None:
        """Failures during a lock count but do not move the lock."""
        lock_until = NOW + timedelta(minutes=30)
        state = next_failure_state(LockoutState(5, lock_until), NOW, POLICY)

        assert state == LockoutState(6, lock_until)

    def test_expired_lock_resets_window(self) -> None:
        """After a lock expires the next failure starts over at one."""
        state = next_failure_state(LockoutState(7, NOW - timedelta(seconds=1)), NOW, POLICY)

        assert state == LockoutState(1, None)

    def test_lock_expiring_now_counts_as_expired(self) -> None:
        """A lock ending exactly now no longer applies."""
        state = next_failure_state(LockoutState(5, NOW), NOW, POLICY)

        assert state == LockoutState(1, None)

    def test_n_failures_lock_exactly_once(self) -> None:
        """Any run of N >= threshold failures ends locked, with one lock time."""
        for n in range(1, 12):
            state = LockoutState(0, None)
            for _ in range(n):
                state = next_failure_state(state, NOW, POLICY)

            assert state.failed_attempts == n
            if n >= POLICY.max_attempts:
                assert state.lock_until == NOW + POLICY.lock_duration
            else:
                assert state.lock_until is None


class TestLoginGuard:
    """Test the guard against the in-memory store."""

    @pytest.mark.asyncio
    async def test_five_failures_lock(
        self, login_guard: LoginGuard, create_identity, clock: MagicMock
    ) -> None:
        """Five consecutive failures lock the account for two hours."""
        identity = await create_identity()
        for _ in range(5):
            identity = await login_guard.record_failure(identity)

        assert identity.failed_login_attempts == 5
        assert identity.lock_until == clock.return_value + timedelta(hours=2)
        assert login_guard.is_locked(identity) is True

    @pytest.mark.asyncio
    async def test_lock_expires(
        self, login_guard: LoginGuard, create_identity, clock: MagicMock
    ) -> None:
        """A lock stops applying once its time has passed."""
        identity = await create_identity()
        for _ in range(5):
            identity = await login_guard.record_failure(identity)

        clock.return_value = clock.return_value + timedelta(hours=2, seconds=1)

        assert login_guard.is_locked(identity) is False

    @pytest.mark.asyncio
    async def test_success_clears_counters(
        self, login_guard: LoginGuard, create_identity, clock: MagicMock
    ) -> None:
        """A successful login resets counters and stamps last_login."""
        identity = await create_identity()
        identity = await login_guard.record_failure(identity)
        identity = await login_guard.record_success(identity)

        assert identity.failed_login_attempts == 0
        assert identity.lock_until is None
        assert identity.last_login == clock.return_value

    @pytest.mark.asyncio
    async def test_concurrent_failures_all_counted(
        self, login_guard: LoginGuard, create_identity
    ) -> None:
        """Concurrent failures for one identity are never lost."""
        identity = await create_identity()

        await asyncio.gather(*(login_guard.record_failure(identity) for _ in range(8)))

        stored = await login_guard._repo.get_identity_by_id(identity.id)
        assert stored is not None
        assert stored.failed_login_attempts == 8
        assert stored.lock_until is not None

    @pytest.mark.asyncio
    async def test_vanished_identity(self, create_identity) -> None:
        """A store that lost the identity surfaces as an internal error."""
        identity = await create_identity()
        repo = MagicMock(spec=InMemoryIdentityRepository)
        repo.register_failed_login = AsyncMock(return_value=None)
        guard = LoginGuard(repo)

        with pytest.raises(InternalAuthError):
            await guard.record_failure(identity)

    def test_unlocked_identity(self, login_guard: LoginGuard) -> None:
        """An identity that never failed is not locked."""
        identity = MagicMock()
        identity.is_locked_at = MagicMock(return_value=False)

        assert login_guard.is_locked(identity) is False
        identity.is_locked_at.assert_called_once()

    def test_default_policy(self) -> None:
        """Without config the guard uses 5 attempts and a 2 hour lock."""
        guard = LoginGuard(InMemoryIdentityRepository())

        assert guard.config == LockoutConfig()
        assert guard.config.max_attempts == 5
