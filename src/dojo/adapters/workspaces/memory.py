"""In-memory implementation of WorkspaceRepository."""

from __future__ import annotations

import asyncio
from uuid import UUID

from dojo.core.exceptions import MembershipExists, NotFound
from dojo.core.rbac.types import ROLE_ORDER
from dojo.core.workspaces.types import Membership, Workspace


class InMemoryWorkspaceRepository:
    """Dict-backed workspace and membership store."""

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._workspaces: dict[UUID, Workspace] = {}
        self._memberships: dict[tuple[UUID, UUID], Membership] = {}
        self._lock = asyncio.Lock()

    async def get_workspace(self, workspace_id: UUID) -> Workspace | None:
        """Get workspace by ID."""
        return self._workspaces.get(workspace_id)

    async def create_workspace(self, workspace: Workspace, creator: Membership) -> Workspace:
        """Insert a workspace and its creator membership together."""
        async with self._lock:
            self._workspaces[workspace.id] = workspace
            self._memberships[(workspace.id, creator.identity_id)] = creator
            return workspace

    async def get_membership(self, workspace_id: UUID, identity_id: UUID) -> Membership | None:
        """Get the membership for a pair, active or not."""
        return self._memberships.get((workspace_id, identity_id))

    async def add_membership(self, membership: Membership) -> Membership:
        """Insert a membership, enforcing pair uniqueness."""
        key = (membership.workspace_id, membership.identity_id)
        async with self._lock:
            if key in self._memberships:
                raise MembershipExists()
            self._memberships[key] = membership
            return membership

    async def save_membership(self, membership: Membership) -> Membership:
        """Persist an existing membership."""
        key = (membership.workspace_id, membership.identity_id)
        async with self._lock:
            if key not in self._memberships:
                raise NotFound("Membership not found")
            self._memberships[key] = membership
            return membership

    async def count_active_members(self, workspace_id: UUID) -> int:
        """Number of active memberships in a workspace."""
        return sum(
            1 for m in self._memberships.values() if m.workspace_id == workspace_id and m.is_active
        )

    async def list_members(self, workspace_id: UUID) -> list[Membership]:
        """Active memberships, highest role first, then by join time."""
        members = [
            m for m in self._memberships.values() if m.workspace_id == workspace_id and m.is_active
        ]
        return sorted(members, key=lambda m: (ROLE_ORDER.index(m.role), m.joined_at))

    async def list_identity_memberships(
        self, identity_id: UUID
    ) -> list[tuple[Workspace, Membership]]:
        """Active memberships of an identity with their workspaces, newest first."""
        pairs = [
            (self._workspaces[m.workspace_id], m)
            for m in self._memberships.values()
            if m.identity_id == identity_id and m.is_active and m.workspace_id in self._workspaces
        ]
        return sorted(pairs, key=lambda pair: pair[1].joined_at, reverse=True)
