"""Role to permission derivation.

The table below is the single source of truth for what each workspace
role may do. Permission sets are always rebuilt from it in full, so adding
a capability can never leave a stale value on an existing membership.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dojo.core.rbac.types import ROLE_ORDER, Capability, PermissionSet, Role

if TYPE_CHECKING:
    from dojo.core.workspaces.types import Membership

_C = Capability

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.CREATOR: frozenset(Capability),
    Role.ADMIN: frozenset(
        {
            _C.EDIT_WORKSPACE_SETTINGS,
            _C.INVITE_MEMBERS,
            _C.REMOVE_MEMBERS,
            _C.EDIT_MEMBER_ROLES,
            _C.CREATE_PROJECTS,
            _C.EDIT_PROJECTS,
            _C.DELETE_PROJECTS,
            _C.MANAGE_PROJECT_ACCESS,
            _C.VIEW_ALL_PROJECTS,
            _C.EDIT_ALL_PROJECTS,
            _C.COLLABORATE,
            _C.PRODUCT_SEARCH,
            _C.LABS_ACCESS,
            _C.ADVANCED_ANALYTICS,
            _C.EXPORT_DATA,
            _C.AI_RECOMMENDATIONS,
        }
    ),
    Role.MANAGER: frozenset(
        {
            _C.INVITE_MEMBERS,
            _C.CREATE_PROJECTS,
            _C.EDIT_PROJECTS,
            _C.MANAGE_PROJECT_ACCESS,
            _C.VIEW_ALL_PROJECTS,
            _C.COLLABORATE,
            _C.PRODUCT_SEARCH,
            _C.LABS_ACCESS,
            _C.AI_RECOMMENDATIONS,
        }
    ),
    Role.MEMBER: frozenset(
        {
            _C.CREATE_PROJECTS,
            _C.EDIT_PROJECTS,
            _C.VIEW_ALL_PROJECTS,
            _C.COLLABORATE,
            _C.PRODUCT_SEARCH,
            _C.LABS_ACCESS,
            _C.AI_RECOMMENDATIONS,
        }
    ),
    Role.VIEWER: frozenset(
        {
            _C.VIEW_ALL_PROJECTS,
            _C.PRODUCT_SEARCH,
            _C.AI_RECOMMENDATIONS,
        }
    ),
}


def derive_permissions(role: Role | str) -> PermissionSet:
    """Build the full permission set for a role.

    Args:
        role: Workspace role.

    Returns:
        A fresh PermissionSet with every capability set.

    Raises:
        ValueError: If the role is not one of the defined roles.
    """
    granted = ROLE_CAPABILITIES[Role(role)]
    return PermissionSet(**{cap.field_name: cap in granted for cap in Capability})


def has_permission(membership: Membership | None, capability: Capability | str) -> bool:
    """Check a capability on a membership.

    Inactive or missing memberships grant nothing, and unknown capability
    names are false rather than an error.
    """
    if membership is None or not membership.is_active:
        return False
    return membership.permissions.allows(capability)


def role_at_least(role: Role, minimum: Role) -> bool:
    """Whether ``role`` ranks at or above ``minimum``."""
    return ROLE_ORDER.index(role) <= ROLE_ORDER.index(minimum)
