"""Request authentication dependencies."""

from dojo.entrypoints.api.middleware.jwt_auth import (
    optional_auth,
    require_auth,
    require_permission,
    require_workspace_member,
    require_workspace_role,
)

__all__ = [
    "optional_auth",
    "require_auth",
    "require_permission",
    "require_workspace_member",
    "require_workspace_role",
]
