"""Workspace service for creation, joining and member management."""

from __future__ import annotations

import asyncio
from uuid import UUID

import structlog

from dojo.core.auth.repository import IdentityRepository
from dojo.core.auth.types import Identity
from dojo.core.exceptions import (
    Forbidden,
    InvalidRoleChange,
    JoinRejected,
    NotFound,
)
from dojo.core.rbac.permissions import has_permission, role_at_least
from dojo.core.rbac.types import Capability, Role
from dojo.core.workspaces.repository import WorkspaceRepository
from dojo.core.workspaces.types import (
    JoinDecision,
    JoinRejection,
    Membership,
    Workspace,
    WorkspaceType,
    WorkspaceVisibility,
)

logger = structlog.get_logger()


class WorkspaceService:
    """Service for workspace membership operations."""

    def __init__(self, workspaces: WorkspaceRepository, identities: IdentityRepository) -> None:
        """Initialize with stores.

        Args:
            workspaces: Workspace and membership store.
            identities: Credential store, used for join eligibility.
        """
        self._workspaces = workspaces
        self._identities = identities

    async def create_workspace(
        self,
        owner: Identity,
        name: str,
        workspace_type: WorkspaceType = WorkspaceType.PERSONAL,
        description: str | None = None,
        domain: str | None = None,
        max_members: int = 50,
        visibility: WorkspaceVisibility = WorkspaceVisibility.PRIVATE,
    ) -> tuple[Workspace, Membership]:
        """Create a workspace with the owner as its creator.

        Args:
            owner: Identity creating the workspace.
            name: Display name.
            workspace_type: personal, team or enterprise.
            description: Optional description.
            domain: Corporate domain. Defaults to the owner's email domain.
            max_members: Member cap.
            visibility: Discovery scope.

        Returns:
            The workspace and the creator membership.
        """
        workspace = Workspace(
            name=name,
            description=description,
            domain=domain or owner.email_domain,
            type=workspace_type,
            visibility=visibility,
            max_members=max_members,
            created_by=owner.id,
        )
        creator = Membership(workspace_id=workspace.id, identity_id=owner.id, role=Role.CREATOR)
        workspace = await self._workspaces.create_workspace(workspace, creator)

        logger.info(
            "workspace_created",
            workspace_id=str(workspace.id),
            identity_id=str(owner.id),
            type=workspace.type.value,
        )
        return workspace, creator

    async def can_join(self, identity_id: UUID, workspace_id: UUID) -> JoinDecision:
        """Decide whether an identity may join a workspace.

        Checks run in a fixed order and the first failure is the reason:
        both records exist, no membership yet, team domain matches, and
        the workspace is below its member cap.
        """
        identity, workspace, existing = await asyncio.gather(
            self._identities.get_identity_by_id(identity_id),
            self._workspaces.get_workspace(workspace_id),
            self._workspaces.get_membership(workspace_id, identity_id),
        )

        if identity is None or workspace is None:
            return JoinDecision(can_join=False, reason=JoinRejection.NOT_FOUND)

        if existing is not None:
            return JoinDecision(can_join=False, reason=JoinRejection.ALREADY_MEMBER)

        if workspace.type is WorkspaceType.TEAM and identity.email_domain != workspace.domain:
            return JoinDecision(can_join=False, reason=JoinRejection.DOMAIN_MISMATCH)

        member_count = await self._workspaces.count_active_members(workspace_id)
        if member_count >= workspace.max_members:
            return JoinDecision(can_join=False, reason=JoinRejection.MEMBER_LIMIT)

        return JoinDecision(can_join=True)

    async def join(
        self,
        identity_id: UUID,
        workspace_id: UUID,
        role: Role = Role.MEMBER,
        invited_by: UUID | None = None,
    ) -> Membership:
        """Add an identity to a workspace.

        Raises:
            InvalidRoleChange: If ``role`` is creator.
            JoinRejected: If the identity is not eligible.
        """
        if role is Role.CREATOR:
            raise InvalidRoleChange()

        decision = await self.can_join(identity_id, workspace_id)
        if not decision.can_join:
            assert decision.reason is not None
            logger.info(
                "workspace_join_rejected",
                workspace_id=str(workspace_id),
                identity_id=str(identity_id),
                reason=decision.reason.value,
            )
            raise JoinRejected(decision.reason.value)

        membership = await self._workspaces.add_membership(
            Membership(
                workspace_id=workspace_id,
                identity_id=identity_id,
                role=role,
                invited_by=invited_by,
            )
        )
        logger.info(
            "workspace_joined",
            workspace_id=str(workspace_id),
            identity_id=str(identity_id),
            role=role.value,
        )
        return membership

    async def get_active_membership(
        self, workspace_id: UUID, identity_id: UUID
    ) -> Membership | None:
        """Membership for the pair if it exists and is active."""
        membership = await self._workspaces.get_membership(workspace_id, identity_id)
        if membership is None or not membership.is_active:
            return None
        return membership

    async def require_membership(self, workspace_id: UUID, identity_id: UUID) -> Membership:
        """Active membership for the pair.

        Raises:
            Forbidden: If the identity is not an active member.
        """
        membership = await self.get_active_membership(workspace_id, identity_id)
        if membership is None:
            raise Forbidden("No workspace membership found")
        return membership

    async def list_members(self, workspace_id: UUID) -> list[Membership]:
        """Active members of a workspace."""
        return await self._workspaces.list_members(workspace_id)

    async def list_workspaces(self, identity_id: UUID) -> list[tuple[Workspace, Membership]]:
        """Workspaces the identity is an active member of."""
        return await self._workspaces.list_identity_memberships(identity_id)

    async def change_role(
        self, actor: Membership, target_identity_id: UUID, role: Role
    ) -> Membership:
        """Change another member's role and re-derive their permissions.

        Args:
            actor: Membership of the caller in the workspace.
            target_identity_id: Member whose role changes.
            role: New role.

        Returns:
            The updated membership.

        Raises:
            Forbidden: If the actor may not edit roles or grant this role.
            InvalidRoleChange: If creator is involved.
            NotFound: If the target is not an active member.
        """
        if not has_permission(actor, Capability.EDIT_MEMBER_ROLES):
            raise Forbidden(f"You do not have permission to {Capability.EDIT_MEMBER_ROLES.value}")
        if role is Role.CREATOR:
            raise InvalidRoleChange()
        if not role_at_least(actor.role, role):
            raise Forbidden("You cannot grant a role above your own")

        target = await self.get_active_membership(actor.workspace_id, target_identity_id)
        if target is None:
            raise NotFound("Member not found")
        if target.role is Role.CREATOR:
            raise InvalidRoleChange()

        updated = await self._workspaces.save_membership(target.with_role(role))
        logger.info(
            "member_role_changed",
            workspace_id=str(actor.workspace_id),
            identity_id=str(target_identity_id),
            old_role=target.role.value,
            new_role=role.value,
            changed_by=str(actor.identity_id),
        )
        return updated

    async def remove_member(self, actor: Membership, target_identity_id: UUID) -> Membership:
        """Deactivate another member. Memberships are never deleted.

        Raises:
            Forbidden: If the actor may not remove members.
            InvalidRoleChange: If the target is the creator.
            NotFound: If the target is not an active member.
        """
        if not has_permission(actor, Capability.REMOVE_MEMBERS):
            raise Forbidden(f"You do not have permission to {Capability.REMOVE_MEMBERS.value}")

        target = await self.get_active_membership(actor.workspace_id, target_identity_id)
        if target is None:
            raise NotFound("Member not found")
        if target.role is Role.CREATOR:
            raise InvalidRoleChange("The workspace creator cannot be removed")

        updated = await self._workspaces.save_membership(target.deactivated())
        logger.info(
            "member_removed",
            workspace_id=str(actor.workspace_id),
            identity_id=str(target_identity_id),
            removed_by=str(actor.identity_id),
        )
        return updated
