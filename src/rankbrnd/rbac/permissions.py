"""Role-based access control for organization members.

Roles form a strict hierarchy (viewer < editor < admin < owner). What a
role may do to each :class:`Resource` is listed explicitly in
:data:`PERMISSION_MATRIX` rather than derived from the hierarchy, so a
higher role is not automatically granted every category.

Permission strings use ``"category:resource"``, e.g. ``"publish:articles"``.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class Role(str, Enum):
    VIEWER = "viewer"
    EDITOR = "editor"
    ADMIN = "admin"
    OWNER = "owner"


class PermissionCategory(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE_TEAM = "manage_team"
    MANAGE_SETTINGS = "manage_settings"
    MANAGE_BILLING = "manage_billing"
    PUBLISH = "publish"
    ANALYTICS = "analytics"
    INTEGRATIONS = "integrations"
    ADMIN = "admin"


class Resource(str, Enum):
    ARTICLES = "articles"
    KEYWORDS = "keywords"
    PRODUCTS = "products"
    SCHEDULE = "schedule"
    PUBLISHING = "publishing"
    TEAM = "team"
    SETTINGS = "settings"
    BILLING = "billing"
    ANALYTICS = "analytics"
    INTEGRATIONS = "integrations"
    IMAGES = "images"
    BRAND_VOICE = "brand_voice"
    SERP = "serp"
    RANK_TRACKING = "rank_tracking"
    SEARCH_CONSOLE = "search_console"


ROLE_HIERARCHY: dict[Role, int] = {Role.VIEWER: 1, Role.EDITOR: 2, Role.ADMIN: 3, Role.OWNER: 4}

ROLE_DISPLAY_NAMES: dict[Role, str] = {
    Role.OWNER: "Owner",
    Role.ADMIN: "Admin",
    Role.EDITOR: "Editor",
    Role.VIEWER: "Viewer",
}

ROLE_DESCRIPTIONS: dict[Role, str] = {
    Role.OWNER: "Full access to all settings, billing, and can manage team members",
    Role.ADMIN: "Can manage team members, settings, and access all organization resources",
    Role.EDITOR: "Can create, edit, and publish content within the organization",
    Role.VIEWER: "Read-only access to organization resources",
}

_P = PermissionCategory
_R, _C, _U, _D = _P.READ, _P.CREATE, _P.UPDATE, _P.DELETE
_CRUD = (_R, _C, _U, _D)


def _row(
    viewer: Iterable[PermissionCategory],
    editor: Iterable[PermissionCategory],
    admin: Iterable[PermissionCategory],
    owner: Iterable[PermissionCategory] | None = None,
) -> dict[Role, frozenset[PermissionCategory]]:
    admin = frozenset(admin)
    return {
        Role.VIEWER: frozenset(viewer),
        Role.EDITOR: frozenset(editor),
        Role.ADMIN: admin,
        Role.OWNER: admin if owner is None else frozenset(owner),
    }


PERMISSION_MATRIX: dict[Resource, dict[Role, frozenset[PermissionCategory]]] = {
    Resource.ARTICLES: _row([_R], [_R, _C, _U, _P.PUBLISH], [*_CRUD, _P.PUBLISH]),
    Resource.KEYWORDS: _row([_R, _P.ANALYTICS], [_R, _C, _U, _P.ANALYTICS], [*_CRUD, _P.ANALYTICS]),
    Resource.PRODUCTS: _row([_R], [_R, _C, _U], _CRUD),
    Resource.SCHEDULE: _row([_R], _CRUD, _CRUD),
    Resource.PUBLISHING: _row([_R], [_R, _C, _P.PUBLISH], [*_CRUD, _P.PUBLISH]),
    Resource.TEAM: _row([], [], [_R, _P.MANAGE_TEAM], [_R, _P.MANAGE_TEAM, _D]),
    Resource.SETTINGS: _row([], [], [_R, _P.MANAGE_SETTINGS], [_R, _P.MANAGE_SETTINGS, _D]),
    Resource.BILLING: _row([_R], [_R], [_R], [_R, _P.MANAGE_BILLING, _D]),
    Resource.ANALYTICS: _row([_R, _P.ANALYTICS], [_R, _P.ANALYTICS], [_R, _P.ANALYTICS]),
    Resource.INTEGRATIONS: _row([_R], [_R], [_R, _P.INTEGRATIONS], [_R, _P.INTEGRATIONS, _D]),
    Resource.IMAGES: _row([_R], [_R, _C, _D], _CRUD),
    Resource.BRAND_VOICE: _row([_R], [_R, _C, _U], _CRUD),
    Resource.SERP: _row([_R, _P.ANALYTICS], [_R, _C, _P.ANALYTICS], [*_CRUD, _P.ANALYTICS]),
    Resource.RANK_TRACKING: _row([_R, _P.ANALYTICS], [_R, _C, _U, _P.ANALYTICS], [*_CRUD, _P.ANALYTICS]),
    Resource.SEARCH_CONSOLE: _row(
        [_R, _P.ANALYTICS], [_R, _P.ANALYTICS], [_R, _P.INTEGRATIONS, _P.ANALYTICS]
    ),
}

OPERATION_MIN_ROLE: dict[PermissionCategory, Role] = {
    _P.READ: Role.VIEWER,
    _P.CREATE: Role.EDITOR,
    _P.UPDATE: Role.EDITOR,
    _P.DELETE: Role.ADMIN,
    _P.MANAGE_TEAM: Role.ADMIN,
    _P.MANAGE_SETTINGS: Role.ADMIN,
    _P.MANAGE_BILLING: Role.OWNER,
    _P.PUBLISH: Role.EDITOR,
    _P.ANALYTICS: Role.VIEWER,
    _P.INTEGRATIONS: Role.ADMIN,
    _P.ADMIN: Role.ADMIN,
}


def _split(permission: str) -> tuple[PermissionCategory, Resource]:
    category, _, resource = permission.partition(":")
    return PermissionCategory(category), Resource(resource)


def has_permission(role: Role | str, resource: Resource | str, category: PermissionCategory | str) -> bool:
    return PermissionCategory(category) in PERMISSION_MATRIX[Resource(resource)][Role(role)]


def has_any_permission(role: Role | str, permissions: Iterable[str]) -> bool:
    return any(has_permission(role, resource, category) for category, resource in map(_split, permissions))


def has_all_permissions(role: Role | str, permissions: Iterable[str]) -> bool:
    return all(has_permission(role, resource, category) for category, resource in map(_split, permissions))


def meets_role_requirement(role: Role | str, min_role: Role | str) -> bool:
    return ROLE_HIERARCHY[Role(role)] >= ROLE_HIERARCHY[Role(min_role)]


def min_role_for_operation(category: PermissionCategory | str) -> Role:
    return OPERATION_MIN_ROLE[PermissionCategory(category)]


def role_permissions(role: Role | str, resource: Resource | str) -> list[PermissionCategory]:
    """Categories *role* holds on *resource*, in declaration order."""
    granted = PERMISSION_MATRIX[Resource(resource)][Role(role)]
    return [c for c in PermissionCategory if c in granted]


def resources_with(role: Role | str, category: PermissionCategory | str) -> list[Resource]:
    """Resources on which *role* holds *category* (readable, creatable, ...)."""
    role, category = Role(role), PermissionCategory(category)
    return [r for r, grants in PERMISSION_MATRIX.items() if category in grants[role]]


def can_modify_user_role(
    requester_role: Role | str,
    target_role: Role | str,
    new_role: Role | str,
    *,
    is_self: bool = False,
) -> bool:
    """Whether a member with *requester_role* may change *target_role* to *new_role*.

    Owners may change anyone, but cannot raise their own role. Admins
    may only move editors and viewers, and only between those two roles.
    """
    requester, target, new = Role(requester_role), Role(target_role), Role(new_role)
    if not meets_role_requirement(requester, Role.ADMIN):
        return False
    if requester is Role.OWNER:
        if is_self:
            return ROLE_HIERARCHY[new] <= ROLE_HIERARCHY[target]
        return True
    if meets_role_requirement(target, Role.ADMIN):
        return False
    return not meets_role_requirement(new, Role.ADMIN)


def capabilities(role: Role | str) -> dict[str, bool]:
    role = Role(role)
    return {
        "can_read": meets_role_requirement(role, Role.VIEWER),
        "can_create": meets_role_requirement(role, Role.EDITOR),
        "can_update": meets_role_requirement(role, Role.EDITOR),
        "can_publish": meets_role_requirement(role, Role.EDITOR),
        "can_delete": meets_role_requirement(role, Role.ADMIN),
        "can_manage_team": meets_role_requirement(role, Role.ADMIN),
        "can_manage_settings": meets_role_requirement(role, Role.ADMIN),
        "can_manage_billing": meets_role_requirement(role, Role.ADMIN),
    }
