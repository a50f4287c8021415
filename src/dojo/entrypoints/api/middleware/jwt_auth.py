"""JWT authentication dependencies.

Thin FastAPI adapters over ``SessionAuthenticator``. Failures are raised
as ``DojoError`` subclasses and turned into responses by the app-level
exception handler.
"""

from collections.abc import Callable
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dojo.core.auth.session import RequestContext, SessionAuthenticator
from dojo.core.exceptions import Forbidden
from dojo.core.rbac.permissions import has_permission
from dojo.core.rbac.types import Capability, Role
from dojo.core.workspaces.service import WorkspaceService
from dojo.entrypoints.api.deps import (
    auth_request_from,
    get_authenticator,
    get_workspace_service,
)

# Use Bearer token authentication; cookies are accepted as well
bearer_scheme = HTTPBearer(auto_error=False)


async def require_auth(
    request: Request,
    authenticator: Annotated[SessionAuthenticator, Depends(get_authenticator)],
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> RequestContext:
    """Resolve the caller or fail the request.

    Raises:
        AuthError: 401, 403, 423 or 500 depending on the failing check.
    """
    return await authenticator.protect(auth_request_from(request, credentials))


async def optional_auth(
    request: Request,
    authenticator: Annotated[SessionAuthenticator, Depends(get_authenticator)],
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> RequestContext | None:
    """Resolve the caller if a valid token is present, else None."""
    return await authenticator.identify(auth_request_from(request, credentials))


async def require_workspace_member(
    workspace_id: UUID,
    auth: Annotated[RequestContext, Depends(require_auth)],
    service: Annotated[WorkspaceService, Depends(get_workspace_service)],
) -> RequestContext:
    """Scope the caller to the workspace named in the path.

    Raises:
        Forbidden: If the caller has no active membership there.
    """
    membership = await service.require_membership(workspace_id, auth.identity_id)
    return auth.with_membership(membership)


def require_permission(capability: Capability) -> Callable[..., Any]:
    """Dependency to require a workspace capability.

    Usage:
        @router.delete("/{workspace_id}/projects/{project_id}")
        async def delete_project(
            auth: Annotated[
                RequestContext, Depends(require_permission(Capability.DELETE_PROJECTS))
            ],
        ):
            ...
    """

    async def permission_checker(
        auth: Annotated[RequestContext, Depends(require_workspace_member)],
    ) -> RequestContext:
        if not has_permission(auth.membership, capability):
            raise Forbidden(f"You do not have permission to {capability.value}")
        return auth

    return permission_checker


def require_workspace_role(*roles: Role) -> Callable[..., Any]:
    """Dependency to require one of the given workspace roles."""

    async def role_checker(
        auth: Annotated[RequestContext, Depends(require_workspace_member)],
    ) -> RequestContext:
        assert auth.membership is not None
        if auth.membership.role not in roles:
            allowed = ", ".join(role.value for role in roles)
            raise Forbidden(f"Role required: {allowed}")
        return auth

    return role_checker


# Common dependencies for convenience
RequireAuth = Annotated[RequestContext, Depends(require_auth)]
OptionalAuth = Annotated[RequestContext | None, Depends(optional_auth)]
RequireMember = Annotated[RequestContext, Depends(require_workspace_member)]
