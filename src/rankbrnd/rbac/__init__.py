"""Organization roles and the permission matrix."""

from rankbrnd.rbac.permissions import (
    OPERATION_MIN_ROLE,
    PERMISSION_MATRIX,
    ROLE_DESCRIPTIONS,
    ROLE_DISPLAY_NAMES,
    ROLE_HIERARCHY,
    PermissionCategory,
    Resource,
    Role,
    can_modify_user_role,
    capabilities,
    has_all_permissions,
    has_any_permission,
    has_permission,
    meets_role_requirement,
    min_role_for_operation,
    resources_with,
    role_permissions,
)

__all__ = [
    "OPERATION_MIN_ROLE",
    "PERMISSION_MATRIX",
    "ROLE_DESCRIPTIONS",
    "ROLE_DISPLAY_NAMES",
    "ROLE_HIERARCHY",
    "PermissionCategory",
    "Resource",
    "Role",
    "can_modify_user_role",
    "capabilities",
    "has_all_permissions",
    "has_any_permission",
    "has_permission",
    "meets_role_requirement",
    "min_role_for_operation",
    "resources_with",
    "role_permissions",
]
