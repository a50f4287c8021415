"""Workspaces and memberships."""

from dojo.core.workspaces.repository import WorkspaceRepository
from dojo.core.workspaces.service import WorkspaceService
from dojo.core.workspaces.types import (
    JoinDecision,
    JoinRejection,
    Membership,
    MembershipStatus,
    Workspace,
    WorkspaceType,
    WorkspaceVisibility,
)

__all__ = [
    "JoinDecision",
    "JoinRejection",
    "Membership",
    "MembershipStatus",
    "Workspace",
    "WorkspaceRepository",
    "WorkspaceService",
    "WorkspaceType",
    "WorkspaceVisibility",
]
