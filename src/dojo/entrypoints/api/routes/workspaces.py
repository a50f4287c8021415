"""Workspace API routes for creation, joining and member management."""

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from dojo.core.auth.session import RequestContext
from dojo.core.rbac.types import Capability, Role
from dojo.core.workspaces.service import WorkspaceService
from dojo.core.workspaces.types import Membership, Workspace, WorkspaceType, WorkspaceVisibility
from dojo.entrypoints.api.deps import get_workspace_service
from dojo.entrypoints.api.middleware.jwt_auth import (
    RequireAuth,
    RequireMember,
    require_permission,
)

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

WorkspaceServiceDep = Annotated[WorkspaceService, Depends(get_workspace_service)]


class CreateWorkspaceRequest(BaseModel):
    """Workspace creation body. The domain is always the caller's email domain."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    type: WorkspaceType = WorkspaceType.TEAM
    visibility: WorkspaceVisibility = WorkspaceVisibility.PRIVATE
    max_members: int = Field(default=50, ge=1, le=10000)


class ChangeRoleRequest(BaseModel):
    """Role change body."""

    role: Role


class WorkspaceResponse(BaseModel):
    """Workspace as returned to clients."""

    id: UUID
    name: str
    description: str | None
    domain: str
    type: WorkspaceType
    visibility: WorkspaceVisibility
    max_members: int
    created_by: UUID
    created_at: datetime

    @classmethod
    def from_workspace(cls, workspace: Workspace) -> "WorkspaceResponse":
        """Build from the domain model."""
        return cls(**workspace.model_dump(include=set(cls.model_fields)))


class MembershipResponse(BaseModel):
    """Membership with its capability map keyed by capability name."""

    id: UUID
    workspace_id: UUID
    identity_id: UUID
    role: Role
    status: str
    is_active: bool
    permissions: dict[str, bool]
    joined_at: datetime

    @classmethod
    def from_membership(cls, membership: Membership) -> "MembershipResponse":
        """Build from the domain model."""
        return cls(
            id=membership.id,
            workspace_id=membership.workspace_id,
            identity_id=membership.identity_id,
            role=membership.role,
            status=membership.status.value,
            is_active=membership.is_active,
            permissions=membership.permissions.model_dump(by_alias=True),
            joined_at=membership.joined_at,
        )


class WorkspaceMembershipResponse(BaseModel):
    """A workspace together with the caller's membership in it."""

    workspace: WorkspaceResponse
    membership: MembershipResponse


@router.get("", response_model=list[WorkspaceMembershipResponse])
async def list_workspaces(
    auth: RequireAuth, service: WorkspaceServiceDep
) -> list[WorkspaceMembershipResponse]:
    """Workspaces the caller is an active member of."""
    pairs = await service.list_workspaces(auth.identity_id)
    return [
        WorkspaceMembershipResponse(
            workspace=WorkspaceResponse.from_workspace(workspace),
            membership=MembershipResponse.from_membership(membership),
        )
        for workspace, membership in pairs
    ]


@router.post("", response_model=WorkspaceMembershipResponse, status_code=201)
async def create_workspace(
    body: CreateWorkspaceRequest, auth: RequireAuth, service: WorkspaceServiceDep
) -> WorkspaceMembershipResponse:
    """Create a workspace with the caller as creator."""
    workspace, membership = await service.create_workspace(
        auth.identity,
        name=body.name,
        workspace_type=body.type,
        description=body.description,
        max_members=body.max_members,
        visibility=body.visibility,
    )
    return WorkspaceMembershipResponse(
        workspace=WorkspaceResponse.from_workspace(workspace),
        membership=MembershipResponse.from_membership(membership),
    )


@router.get("/{workspace_id}/eligibility")
async def join_eligibility(
    workspace_id: UUID, auth: RequireAuth, service: WorkspaceServiceDep
) -> dict[str, Any]:
    """Whether the caller may join the workspace, and why not."""
    decision = await service.can_join(auth.identity_id, workspace_id)
    return {
        "can_join": decision.can_join,
        "reason": decision.reason.value if decision.reason else None,
    }


@router.post("/{workspace_id}/join", response_model=MembershipResponse, status_code=201)
async def join_workspace(
    workspace_id: UUID, auth: RequireAuth, service: WorkspaceServiceDep
) -> MembershipResponse:
    """Join a workspace as a member."""
    membership = await service.join(auth.identity_id, workspace_id)
    return MembershipResponse.from_membership(membership)


@router.get("/{workspace_id}/members", response_model=list[MembershipResponse])
async def list_members(
    workspace_id: UUID, auth: RequireMember, service: WorkspaceServiceDep
) -> list[MembershipResponse]:
    """Active members of a workspace the caller belongs to."""
    members = await service.list_members(workspace_id)
    return [MembershipResponse.from_membership(m) for m in members]


@router.patch("/{workspace_id}/members/{identity_id}", response_model=MembershipResponse)
async def change_member_role(
    identity_id: UUID,
    body: ChangeRoleRequest,
    auth: Annotated[RequestContext, Depends(require_permission(Capability.EDIT_MEMBER_ROLES))],
    service: WorkspaceServiceDep,
) -> MembershipResponse:
    """Change a member's role; permissions follow the role."""
    assert auth.membership is not None
    membership = await service.change_role(auth.membership, identity_id, body.role)
    return MembershipResponse.from_membership(membership)


@router.delete("/{workspace_id}/members/{identity_id}", response_model=MembershipResponse)
async def remove_member(
    identity_id: UUID,
    auth: Annotated[RequestContext, Depends(require_permission(Capability.REMOVE_MEMBERS))],
    service: WorkspaceServiceDep,
) -> MembershipResponse:
    """Deactivate a member."""
    assert auth.membership is not None
    membership = await service.remove_member(auth.membership, identity_id)
    return MembershipResponse.from_membership(membership)
