"""Tests for role to permission derivation."""

from uuid import uuid4

import pytest

from dojo.core.rbac.permissions import (
    ROLE_CAPABILITIES,
    derive_permissions,
    has_permission,
    role_at_least,
)
from dojo.core.rbac.types import ROLE_ORDER, Capability, PermissionSet, Role
from dojo.core.workspaces.types import Membership

# role -> capabilities that are true; everything else is false
EXPECTED = {
    Role.CREATOR: set(Capability),
    Role.ADMIN: set(Capability)
    - {Capability.MANAGE_WORKSPACE, Capability.DELETE_WORKSPACE, Capability.TRAIN_AI},
    Role.MANAGER: {
        Capability.INVITE_MEMBERS,
        Capability.CREATE_PROJECTS,
        Capability.EDIT_PROJECTS,
        Capability.MANAGE_PROJECT_ACCESS,
        Capability.VIEW_ALL_PROJECTS,
        Capability.COLLABORATE,
        Capability.PRODUCT_SEARCH,
        Capability.LABS_ACCESS,
        Capability.AI_RECOMMENDATIONS,
    },
    Role.MEMBER: {
        Capability.CREATE_PROJECTS,
        Capability.EDIT_PROJECTS,
        Capability.VIEW_ALL_PROJECTS,
        Capability.COLLABORATE,
        Capability.PRODUCT_SEARCH,
        Capability.LABS_ACCESS,
        Capability.AI_RECOMMENDATIONS,
    },
    Role.VIEWER: {
        Capability.VIEW_ALL_PROJECTS,
        Capability.PRODUCT_SEARCH,
        Capability.AI_RECOMMENDATIONS,
    },
}


class TestDerivePermissions:
    """Test the role table."""

    def test_nineteen_capabilities(self) -> None:
        """The table has exactly 19 capabilities."""
        assert len(Capability) == 19
        assert len(PermissionSet.model_fields) == 19

    @pytest.mark.parametrize("role", list(Role))
    def test_matches_table(self, role: Role) -> None:
        """Each role grants exactly its row of the table."""
        permissions = derive_permissions(role)

        assert permissions.granted() == EXPECTED[role]
        for capability in Capability:
            assert permissions.allows(capability) is (capability in EXPECTED[role])

    @pytest.mark.parametrize("role", list(Role))
    def test_pure_and_total(self, role: Role) -> None:
        """Same role gives an equal, fully specified set every time."""
        first = derive_permissions(role)
        second = derive_permissions(role)

        assert first == second
        assert first is not second
        assert len(first.model_dump()) == 19

    def test_accepts_role_name(self) -> None:
        """Role names are accepted as strings."""
        assert derive_permissions("viewer") == derive_permissions(Role.VIEWER)

    def test_unknown_role(self) -> None:
        """Roles outside the fixed set are rejected."""
        with pytest.raises(ValueError):
            derive_permissions("owner")

    def test_spot_checks(self) -> None:
        """Viewer cannot create projects but can search; creator can do everything."""
        viewer = derive_permissions(Role.VIEWER)
        creator = derive_permissions(Role.CREATOR)

        assert viewer.create_projects is False
        assert viewer.product_search is True
        assert all(creator.model_dump().values())

    def test_only_creator_trains_ai(self) -> None:
        """trainAI is reserved for the creator."""
        assert [r for r in Role if derive_permissions(r).train_ai] == [Role.CREATOR]

    def test_serializes_with_capability_names(self) -> None:
        """Serialized keys are the camelCase capability names."""
        dumped = derive_permissions(Role.MEMBER).model_dump(by_alias=True)

        assert set(dumped) == {c.value for c in Capability}
        assert dumped["trainAI"] is False
        assert dumped["createProjects"] is True

    def test_table_covers_every_role(self) -> None:
        """Every role has a row."""
        assert set(ROLE_CAPABILITIES) == set(Role)


class TestHasPermission:
    """Test capability lookups on memberships."""

    def _membership(self, role: Role, **overrides: object) -> Membership:
        return Membership(workspace_id=uuid4(), identity_id=uuid4(), role=role, **overrides)

    def test_granted(self) -> None:
        """A granted capability is allowed."""
        assert has_permission(self._membership(Role.ADMIN), Capability.REMOVE_MEMBERS) is True

    def test_denied(self) -> None:
        """A capability outside the role is refused."""
        assert has_permission(self._membership(Role.MEMBER), Capability.REMOVE_MEMBERS) is False

    def test_by_name(self) -> None:
        """Capabilities may be named by string."""
        assert has_permission(self._membership(Role.MEMBER), "createProjects") is True

    def test_unknown_capability_is_false(self) -> None:
        """Unknown names never throw and never grant."""
        assert has_permission(self._membership(Role.CREATOR), "launchRockets") is False

    def test_no_membership(self) -> None:
        """No membership means no permission."""
        assert has_permission(None, Capability.VIEW_ALL_PROJECTS) is False

    def test_inactive_membership(self) -> None:
        """Removed members keep no permissions."""
        membership = self._membership(Role.ADMIN).deactivated()

        assert has_permission(membership, Capability.VIEW_ALL_PROJECTS) is False


class TestRoleOrder:
    """Test role ranking."""

    def test_order(self) -> None:
        """Creator ranks highest, viewer lowest."""
        assert ROLE_ORDER == [Role.CREATOR, Role.ADMIN, Role.MANAGER, Role.MEMBER, Role.VIEWER]

    def test_role_at_least(self) -> None:
        """A role satisfies itself and anything below it."""
        assert role_at_least(Role.ADMIN, Role.MANAGER) is True
        assert role_at_least(Role.ADMIN, Role.ADMIN) is True
        assert role_at_least(Role.MEMBER, Role.ADMIN) is False
