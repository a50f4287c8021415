"""Tests for workspace domain types."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from dojo.core.rbac.permissions import derive_permissions
from dojo.core.rbac.types import Role
from dojo.core.workspaces.types import Membership, MembershipStatus, Workspace


class TestMembership:
    """Membership permissions always follow the role."""

    def test_manager_scenario(self) -> None:
        """Manager can invite and manage access but not delete; viewer cannot collaborate."""
        membership = Membership(workspace_id=uuid4(), identity_id=uuid4(), role=Role.MANAGER)

        assert membership.permissions.invite_members is True
        assert membership.permissions.delete_projects is False
        assert membership.permissions.manage_project_access is True

        demoted = membership.with_role(Role.VIEWER)

        assert demoted.permissions.collaborate is False
        assert demoted.permissions == derive_permissions(Role.VIEWER)
        assert demoted.id == membership.id

    def test_supplied_permissions_ignored(self) -> None:
        """Permissions passed in are replaced by the role's set."""
        membership = Membership(
            workspace_id=uuid4(),
            identity_id=uuid4(),
            role=Role.VIEWER,
            permissions=derive_permissions(Role.CREATOR),
        )

        assert membership.permissions == derive_permissions(Role.VIEWER)

    def test_raw_permission_dict_ignored(self) -> None:
        """Even a hand-written permissions mapping is overwritten."""
        membership = Membership.model_validate(
            {
                "workspace_id": uuid4(),
                "identity_id": uuid4(),
                "role": "member",
                "permissions": {"deleteWorkspace": True},
            }
        )

        assert membership.permissions.delete_workspace is False

    def test_default_role_is_member(self) -> None:
        """Memberships default to the member role."""
        membership = Membership(workspace_id=uuid4(), identity_id=uuid4())

        assert membership.role is Role.MEMBER
        assert membership.permissions == derive_permissions(Role.MEMBER)

    def test_immutable(self) -> None:
        """Permissions cannot be edited in place."""
        membership = Membership(workspace_id=uuid4(), identity_id=uuid4())

        with pytest.raises(ValidationError):
            membership.permissions.delete_workspace = True  # type: ignore[misc]

    def test_deactivated(self) -> None:
        """Removal keeps the record but marks it inactive."""
        membership = Membership(workspace_id=uuid4(), identity_id=uuid4(), role=Role.ADMIN)

        removed = membership.deactivated()

        assert removed.is_active is False
        assert removed.status is MembershipStatus.INACTIVE
        assert removed.role is Role.ADMIN


class TestWorkspace:
    """Test workspace defaults."""

    def test_defaults(self) -> None:
        """Workspaces cap membership at 50 and normalize their domain."""
        workspace = Workspace(name="Acme", domain=" ACME.com ", created_by=uuid4())

        assert workspace.max_members == 50
        assert workspace.domain == "acme.com"

    def test_name_required(self) -> None:
        """Names cannot be empty."""
        with pytest.raises(ValidationError):
            Workspace(name="", domain="acme.com", created_by=uuid4())
