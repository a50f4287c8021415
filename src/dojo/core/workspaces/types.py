"""Workspace domain types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dojo.core.rbac.permissions import derive_permissions
from dojo.core.rbac.types import PermissionSet, Role


class WorkspaceType(str, Enum):
    """Workspace kinds."""

    PERSONAL = "personal"
    TEAM = "team"
    ENTERPRISE = "enterprise"


class WorkspaceVisibility(str, Enum):
    """Who can discover a workspace."""

    PRIVATE = "private"
    DOMAIN = "domain"
    PUBLIC = "public"


class MembershipStatus(str, Enum):
    """Membership lifecycle states."""

    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class Workspace(BaseModel):
    """Workspace domain model."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    domain: str
    type: WorkspaceType = WorkspaceType.PERSONAL
    visibility: WorkspaceVisibility = WorkspaceVisibility.PRIVATE
    allow_invites: bool = True
    max_members: int = Field(default=50, ge=1)
    created_by: UUID
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("domain")
    @classmethod
    def _normalize_domain(cls, value: str) -> str:
        return value.strip().lower()


class Membership(BaseModel):
    """An identity's membership in a workspace.

    ``permissions`` is derived from ``role`` on every construction. Any
    permission values passed in are discarded, so the stored set can never
    drift from the role table. Use ``with_role`` to change roles.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    workspace_id: UUID
    identity_id: UUID
    role: Role = Role.MEMBER
    permissions: PermissionSet
    status: MembershipStatus = MembershipStatus.ACTIVE
    is_active: bool = True
    invited_by: UUID | None = None
    invite_token_hash: str | None = Field(default=None, repr=False)
    invite_expires_at: datetime | None = None
    joined_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="before")
    @classmethod
    def _derive_permissions(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            data["permissions"] = derive_permissions(data.get("role") or Role.MEMBER)
        return data

    def with_role(self, role: Role) -> Membership:
        """Return a copy with a new role and freshly derived permissions."""
        return Membership(**{**self.model_dump(), "role": role})

    def deactivated(self) -> Membership:
        """Return a copy marked as removed from the workspace."""
        return Membership(
            **{**self.model_dump(), "is_active": False, "status": MembershipStatus.INACTIVE}
        )


class JoinRejection(str, Enum):
    """Reasons an identity may not join a workspace, in evaluation order."""

    NOT_FOUND = "user or workspace not found"
    ALREADY_MEMBER = "already a member"
    DOMAIN_MISMATCH = "domain mismatch"
    MEMBER_LIMIT = "member limit reached"


@dataclass(frozen=True)
class JoinDecision:
    """Outcome of a join eligibility check."""

    can_join: bool
    reason: JoinRejection | None = None
