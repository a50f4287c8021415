"""PostgreSQL implementation of IdentityRepository."""

from datetime import datetime
from typing import Any
from uuid import UUID

import asyncpg

from dojo.adapters.db.app_db import AppDatabase
from dojo.core.auth.types import Identity
from dojo.core.config import LockoutConfig
from dojo.core.exceptions import EmailAlreadyRegistered

_IDENTITY_COLUMNS = (
    "id",
    "email",
    "first_name",
    "last_name",
    "email_domain",
    "is_corporate_email",
    "password_hash",
    "oauth_provider",
    "is_active",
    "email_verified",
    "failed_login_attempts",
    "lock_until",
    "last_login",
    "refresh_token_version",
    "email_verification_token_hash",
    "email_verification_expires_at",
    "password_reset_token_hash",
    "password_reset_expires_at",
    "created_at",
)

# One statement, so concurrent failures for the same identity cannot
# under-count. Right-hand sides see the row as it was before the update.
_REGISTER_FAILED_LOGIN_SQL = """
UPDATE identities SET
    failed_login_attempts = CASE
        WHEN lock_until IS NOT NULL AND lock_until <= $2 THEN 1
        ELSE failed_login_attempts + 1
    END,
    lock_until = CASE
        WHEN lock_until IS NOT NULL AND lock_until <= $2 THEN NULL
        WHEN lock_until IS NULL AND failed_login_attempts + 1 >= $3 THEN $4
        ELSE lock_until
    END
WHERE id = $1
RETURNING *
"""


class PostgresIdentityRepository:
    """PostgreSQL implementation of the credential store."""

    def __init__(self, db: AppDatabase) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
        """
        self._db = db

    def _row_to_identity(self, row: dict[str, Any]) -> Identity:
        """Convert database row to Identity model."""
        return Identity(**{column: row.get(column) for column in _IDENTITY_COLUMNS})

    def _maybe_identity(self, row: dict[str, Any] | None) -> Identity | None:
        return self._row_to_identity(row) if row else None

    async def get_identity_by_id(self, identity_id: UUID) -> Identity | None:
        """Get identity by ID."""
        row = await self._db.fetch_one("SELECT * FROM identities WHERE id = $1", identity_id)
        return self._maybe_identity(row)

    async def get_identity_by_email(self, email: str) -> Identity | None:
        """Get identity by normalized email address."""
        row = await self._db.fetch_one(
            "SELECT * FROM identities WHERE email = $1",
            email.lower(),
        )
        return self._maybe_identity(row)

    async def create_identity(self, identity: Identity) -> Identity:
        """Insert a new identity."""
        values = identity.model_dump()
        if identity.oauth_provider is not None:
            values["oauth_provider"] = identity.oauth_provider.value
        columns = ", ".join(_IDENTITY_COLUMNS)
        placeholders = ", ".join(f"${i}" for i in range(1, len(_IDENTITY_COLUMNS) + 1))
        try:
            row = await self._db.execute_returning(
                f"INSERT INTO identities ({columns}) VALUES ({placeholders}) RETURNING *",
                *(values[column] for column in _IDENTITY_COLUMNS),
            )
        except asyncpg.UniqueViolationError:
            raise EmailAlreadyRegistered() from None
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_identity(row)

    async def register_failed_login(
        self, identity_id: UUID, now: datetime, policy: LockoutConfig
    ) -> Identity | None:
        """Atomically apply one failed login to the lockout counters."""
        row = await self._db.execute_returning(
            _REGISTER_FAILED_LOGIN_SQL,
            identity_id,
            now,
            policy.max_attempts,
            now + policy.lock_duration,
        )
        return self._maybe_identity(row)

    async def reset_failed_logins(self, identity_id: UUID, now: datetime) -> Identity | None:
        """Clear lockout counters and stamp the last login time."""
        row = await self._db.execute_returning(
            """
            UPDATE identities
            SET failed_login_attempts = 0, lock_until = NULL, last_login = $2
            WHERE id = $1
            RETURNING *
            """,
            identity_id,
            now,
        )
        return self._maybe_identity(row)

    async def rotate_refresh_version(
        self, identity_id: UUID, expected_version: int
    ) -> Identity | None:
        """Increment the refresh-token version if it is still the expected one."""
        row = await self._db.execute_returning(
            """
            UPDATE identities
            SET refresh_token_version = refresh_token_version + 1
            WHERE id = $1 AND refresh_token_version = $2
            RETURNING *
            """,
            identity_id,
            expected_version,
        )
        return self._maybe_identity(row)

    async def set_email_verification(
        self, identity_id: UUID, token_hash: str, expires_at: datetime
    ) -> None:
        """Store a pending email verification token hash."""
        await self._db.execute(
            """
            UPDATE identities
            SET email_verification_token_hash = $2, email_verification_expires_at = $3
            WHERE id = $1
            """,
            identity_id,
            token_hash,
            expires_at,
        )

    async def verify_email_by_token(self, token_hash: str, now: datetime) -> Identity | None:
        """Mark the identity owning an unexpired verification token as verified."""
        row = await self._db.execute_returning(
            """
            UPDATE identities
            SET email_verified = TRUE,
                email_verification_token_hash = NULL,
                email_verification_expires_at = NULL
            WHERE email_verification_token_hash = $1 AND email_verification_expires_at > $2
            RETURNING *
            """,
            token_hash,
            now,
        )
        return self._maybe_identity(row)

    async def set_password_reset(
        self, identity_id: UUID, token_hash: str, expires_at: datetime
    ) -> None:
        """Store a pending password reset token hash."""
        await self._db.execute(
            """
            UPDATE identities
            SET password_reset_token_hash = $2, password_reset_expires_at = $3
            WHERE id = $1
            """,
            identity_id,
            token_hash,
            expires_at,
        )

    async def reset_password_by_token(
        self, token_hash: str, now: datetime, password_hash: str
    ) -> Identity | None:
        """Consume an unexpired reset token of an active identity and set its password."""
        row = await self._db.execute_returning(
            """
            UPDATE identities
            SET password_hash = $3,
                password_reset_token_hash = NULL,
                password_reset_expires_at = NULL,
                failed_login_attempts = 0,
                lock_until = NULL,
                refresh_token_version = refresh_token_version + 1
            WHERE password_reset_token_hash = $1
                AND password_reset_expires_at > $2
                AND is_active
            RETURNING *
            """,
            token_hash,
            now,
            password_hash,
        )
        return self._maybe_identity(row)

    async def update_password(self, identity_id: UUID, password_hash: str) -> Identity | None:
        """Replace the password hash and revoke outstanding refresh tokens."""
        row = await self._db.execute_returning(
            """
            UPDATE identities
            SET password_hash = $2,
                password_reset_token_hash = NULL,
                password_reset_expires_at = NULL,
                failed_login_attempts = 0,
                lock_until = NULL,
                refresh_token_version = refresh_token_version + 1
            WHERE id = $1
            RETURNING *
            """,
            identity_id,
            password_hash,
        )
        return self._maybe_identity(row)
