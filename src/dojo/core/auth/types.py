"""Auth domain types."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class FederatedProvider(str, Enum):
    """External identity providers that can replace a local password."""

    OKTA = "okta"
    LINKEDIN = "linkedin"
    GITHUB = "github"


class TokenKind(str, Enum):
    """Signed token kinds."""

    ACCESS = "access"
    REFRESH = "refresh"


class Identity(BaseModel):
    """An authenticatable account.

    ``failed_login_attempts`` and ``lock_until`` are written only by the
    login guard through the credential store.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    email: EmailStr
    first_name: str | None = None
    last_name: str | None = None
    email_domain: str
    is_corporate_email: bool = True
    password_hash: str | None = Field(default=None, repr=False)  # None for federated users
    oauth_provider: FederatedProvider | None = None
    is_active: bool = True
    email_verified: bool = False
    failed_login_attempts: int = Field(default=0, ge=0)
    lock_until: datetime | None = None
    last_login: datetime | None = None
    refresh_token_version: int = 0
    email_verification_token_hash: str | None = Field(default=None, repr=False)
    email_verification_expires_at: datetime | None = None
    password_reset_token_hash: str | None = Field(default=None, repr=False)
    password_reset_expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="before")
    @classmethod
    def _require_credential(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("password_hash") and not data.get(
            "oauth_provider"
        ):
            raise ValueError("password_hash is required unless oauth_provider is set")
        return data

    @property
    def full_name(self) -> str:
        """First and last name joined."""
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def is_locked_at(self, now: datetime) -> bool:
        """Whether a lock is in force at ``now``."""
        return self.lock_until is not None and self.lock_until > now

    def public_view(self) -> dict[str, Any]:
        """Fields safe to return to clients."""
        return {
            "id": str(self.id),
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email_domain": self.email_domain,
            "email_verified": self.email_verified,
            "is_active": self.is_active,
            "last_login": self.last_login.isoformat() if self.last_login else None,
        }


class TokenPayload(BaseModel):
    """JWT token payload claims."""

    sub: str  # identity id
    type: TokenKind
    exp: int  # expiration timestamp
    iat: int  # issued at timestamp
    jti: str
    ver: int | None = None  # refresh token version, refresh tokens only


class TokenPair(BaseModel):
    """Access and refresh tokens issued together."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
