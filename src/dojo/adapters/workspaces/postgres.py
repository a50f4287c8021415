"""PostgreSQL implementation of WorkspaceRepository."""

import json
from typing import Any
from uuid import UUID

import asyncpg

from dojo.adapters.db.app_db import AppDatabase
from dojo.core.exceptions import MembershipExists, NotFound
from dojo.core.workspaces.types import Membership, Workspace

_INSERT_WORKSPACE_SQL = """
INSERT INTO workspaces (
    id, name, description, domain, type, visibility,
    allow_invites, max_members, created_by, is_active, created_at
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
RETURNING *
"""

_INSERT_MEMBERSHIP_SQL = """
INSERT INTO workspace_members (
    id, workspace_id, identity_id, role, permissions, status, is_active,
    invited_by, invite_token_hash, invite_expires_at, joined_at
)
VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7, $8, $9, $10, $11)
RETURNING *
"""

# Highest role first; mirrors ROLE_ORDER.
_ROLE_RANK_SQL = """
CASE role
    WHEN 'creator' THEN 0
    WHEN 'admin' THEN 1
    WHEN 'manager' THEN 2
    WHEN 'member' THEN 3
    ELSE 4
END
"""


class PostgresWorkspaceRepository:
    """PostgreSQL implementation of the workspace and membership store."""

    def __init__(self, db: AppDatabase) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
        """
        self._db = db

    def _row_to_workspace(self, row: dict[str, Any]) -> Workspace:
        """Convert database row to Workspace model."""
        return Workspace(**row)

    def _row_to_membership(self, row: dict[str, Any]) -> Membership:
        """Convert database row to Membership model.

        The stored permissions column is ignored; the model re-derives
        permissions from the role.
        """
        return Membership(**{k: v for k, v in row.items() if k != "permissions"})

    def _membership_args(self, membership: Membership) -> tuple[Any, ...]:
        return (
            membership.id,
            membership.workspace_id,
            membership.identity_id,
            membership.role.value,
            json.dumps(membership.permissions.model_dump(by_alias=True)),
            membership.status.value,
            membership.is_active,
            membership.invited_by,
            membership.invite_token_hash,
            membership.invite_expires_at,
            membership.joined_at,
        )

    async def get_workspace(self, workspace_id: UUID) -> Workspace | None:
        """Get workspace by ID."""
        row = await self._db.fetch_one("SELECT * FROM workspaces WHERE id = $1", workspace_id)
        return self._row_to_workspace(row) if row else None

    async def create_workspace(self, workspace: Workspace, creator: Membership) -> Workspace:
        """Insert a workspace and its creator membership in one transaction."""
        async with self._db.transaction() as conn:
            row = await conn.fetchrow(
                _INSERT_WORKSPACE_SQL,
                workspace.id,
                workspace.name,
                workspace.description,
                workspace.domain,
                workspace.type.value,
                workspace.visibility.value,
                workspace.allow_invites,
                workspace.max_members,
                workspace.created_by,
                workspace.is_active,
                workspace.created_at,
            )
            await conn.fetchrow(_INSERT_MEMBERSHIP_SQL, *self._membership_args(creator))
        return self._row_to_workspace(dict(row))

    async def get_membership(self, workspace_id: UUID, identity_id: UUID) -> Membership | None:
        """Get the membership for a pair, active or not."""
        row = await self._db.fetch_one(
            "SELECT * FROM workspace_members WHERE workspace_id = $1 AND identity_id = $2",
            workspace_id,
            identity_id,
        )
        return self._row_to_membership(row) if row else None

    async def add_membership(self, membership: Membership) -> Membership:
        """Insert a membership, relying on the pair constraint for uniqueness."""
        try:
            row = await self._db.execute_returning(
                _INSERT_MEMBERSHIP_SQL, *self._membership_args(membership)
            )
        except asyncpg.UniqueViolationError:
            raise MembershipExists() from None
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_membership(row)

    async def save_membership(self, membership: Membership) -> Membership:
        """Persist role, permissions and status of an existing membership."""
        row = await self._db.execute_returning(
            """
            UPDATE workspace_members
            SET role = $3, permissions = $4::jsonb, status = $5, is_active = $6
            WHERE workspace_id = $1 AND identity_id = $2
            RETURNING *
            """,
            membership.workspace_id,
            membership.identity_id,
            membership.role.value,
            json.dumps(membership.permissions.model_dump(by_alias=True)),
            membership.status.value,
            membership.is_active,
        )
        if row is None:
            raise NotFound("Membership not found")
        return self._row_to_membership(row)

    async def count_active_members(self, workspace_id: UUID) -> int:
        """Number of active memberships in a workspace."""
        count = await self._db.fetch_val(
            "SELECT COUNT(*) FROM workspace_members WHERE workspace_id = $1 AND is_active",
            workspace_id,
        )
        return int(count or 0)

    async def list_members(self, workspace_id: UUID) -> list[Membership]:
        """Active memberships, highest role first, then by join time."""
        rows = await self._db.fetch_all(
            f"""
            SELECT * FROM workspace_members
            WHERE workspace_id = $1 AND is_active
            ORDER BY {_ROLE_RANK_SQL}, joined_at
            """,
            workspace_id,
        )
        return [self._row_to_membership(row) for row in rows]

    async def list_identity_memberships(
        self, identity_id: UUID
    ) -> list[tuple[Workspace, Membership]]:
        """Active memberships of an identity with their workspaces, newest first."""
        rows = await self._db.fetch_all(
            """
            SELECT * FROM workspace_members
            WHERE identity_id = $1 AND is_active
            ORDER BY joined_at DESC
            """,
            identity_id,
        )
        if not rows:
            return []

        memberships = [self._row_to_membership(row) for row in rows]
        workspace_rows = await self._db.fetch_all(
            "SELECT * FROM workspaces WHERE id = ANY($1::uuid[])",
            [m.workspace_id for m in memberships],
        )
        workspaces = {row["id"]: self._row_to_workspace(row) for row in workspace_rows}
        return [
            (workspaces[m.workspace_id], m) for m in memberships if m.workspace_id in workspaces
        ]
