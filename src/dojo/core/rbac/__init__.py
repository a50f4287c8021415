"""Role-based access control for workspace memberships."""

from dojo.core.rbac.permissions import (
    ROLE_CAPABILITIES,
    derive_permissions,
    has_permission,
    role_at_least,
)
from dojo.core.rbac.types import ROLE_ORDER, Capability, PermissionSet, Role

__all__ = [
    "Capability",
    "PermissionSet",
    "ROLE_CAPABILITIES",
    "ROLE_ORDER",
    "Role",
    "derive_permissions",
    "has_permission",
    "role_at_least",
]
