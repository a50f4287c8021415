"""RBAC domain types."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    """Workspace membership roles, highest first."""

    CREATOR = "creator"
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"
    VIEWER = "viewer"


# Highest first
ROLE_ORDER = [Role.CREATOR, Role.ADMIN, Role.MANAGER, Role.MEMBER, Role.VIEWER]


class Capability(str, Enum):
    """Named workspace capabilities."""

    # Workspace management
    MANAGE_WORKSPACE = "manageWorkspace"
    DELETE_WORKSPACE = "deleteWorkspace"
    EDIT_WORKSPACE_SETTINGS = "editWorkspaceSettings"

    # Member management
    INVITE_MEMBERS = "inviteMembers"
    REMOVE_MEMBERS = "removeMembers"
    EDIT_MEMBER_ROLES = "editMemberRoles"

    # Project management
    CREATE_PROJECTS = "createProjects"
    EDIT_PROJECTS = "editProjects"
    DELETE_PROJECTS = "deleteProjects"
    MANAGE_PROJECT_ACCESS = "manageProjectAccess"

    # Content and collaboration
    VIEW_ALL_PROJECTS = "viewAllProjects"
    EDIT_ALL_PROJECTS = "editAllProjects"
    COLLABORATE = "collaborate"
    PRODUCT_SEARCH = "productSearch"

    # Advanced features
    LABS_ACCESS = "labsAccess"
    ADVANCED_ANALYTICS = "advancedAnalytics"
    EXPORT_DATA = "exportData"

    # AI and recommendations
    AI_RECOMMENDATIONS = "aiRecommendations"
    TRAIN_AI = "trainAI"

    @property
    def field_name(self) -> str:
        """Attribute name on PermissionSet."""
        return self.name.lower()


class PermissionSet(BaseModel):
    """Fully specified capability flags for one membership.

    Serialized with the camelCase capability names. Always built by
    ``derive_permissions``; never edited in place.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    manage_workspace: bool
    delete_workspace: bool
    edit_workspace_settings: bool
    invite_members: bool
    remove_members: bool
    edit_member_roles: bool
    create_projects: bool
    edit_projects: bool
    delete_projects: bool
    manage_project_access: bool
    view_all_projects: bool
    edit_all_projects: bool
    collaborate: bool
    product_search: bool
    labs_access: bool
    advanced_analytics: bool
    export_data: bool
    ai_recommendations: bool
    train_ai: bool = Field(alias="trainAI")

    def allows(self, capability: Capability | str) -> bool:
        """Look up a capability by enum or camelCase name.

        Unknown names are never granted.
        """
        try:
            cap = Capability(capability)
        except ValueError:
            return False
        return bool(getattr(self, cap.field_name))

    def granted(self) -> frozenset[Capability]:
        """Capabilities set to true."""
        return frozenset(cap for cap in Capability if getattr(self, cap.field_name))
