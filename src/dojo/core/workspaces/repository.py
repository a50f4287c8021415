"""Membership store protocol for workspace persistence."""

from typing import Protocol, runtime_checkable
from uuid import UUID

from dojo.core.workspaces.types import Membership, Workspace


@runtime_checkable
class WorkspaceRepository(Protocol):
    """Protocol for workspace and membership storage.

    The (workspace, identity) pair is unique: ``add_membership`` raises
    ``MembershipExists`` on a second insert for the same pair.
    """

    async def get_workspace(self, workspace_id: UUID) -> Workspace | None:
        """Get workspace by ID."""
        ...

    async def create_workspace(self, workspace: Workspace, creator: Membership) -> Workspace:
        """Insert a workspace and its creator membership in one operation."""
        ...

    async def get_membership(self, workspace_id: UUID, identity_id: UUID) -> Membership | None:
        """Get the membership for a pair, active or not."""
        ...

    async def add_membership(self, membership: Membership) -> Membership:
        """Insert a membership.

        Raises:
            MembershipExists: If the pair already has a membership.
        """
        ...

    async def save_membership(self, membership: Membership) -> Membership:
        """Persist role, permissions and status of an existing membership."""
        ...

    async def count_active_members(self, workspace_id: UUID) -> int:
        """Number of active memberships in a workspace."""
        ...

    async def list_members(self, workspace_id: UUID) -> list[Membership]:
        """Active memberships of a workspace, highest role first."""
        ...

    async def list_identity_memberships(
        self, identity_id: UUID
    ) -> list[tuple[Workspace, Membership]]:
        """Active memberships of an identity with their workspaces, newest first."""
        ...
