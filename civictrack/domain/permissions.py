# SPDX-License-Identifier: Apache-2.0

"""
Role to permission mapping for complaint access control.

The table is built once at import time and exposed read-only. Every
authorization decision in the package goes through these lookups; no code
compares role names directly except where a rule is defined per role.
"""

from types import MappingProxyType
from typing import Iterable, Mapping, FrozenSet, Union

from ..models.enums import Role


RoleLike = Union[Role, str]


PERMISSIONS: FrozenSet[str] = frozenset({
    # Complaint permissions
    "complaint:create",
    "complaint:view:own",
    "complaint:view:all",
    "complaint:view:ward",
    "complaint:update:own",
    "complaint:update:all",
    "complaint:update:ward",
    "complaint:assign",
    "complaint:resolve",
    "complaint:reopen",
    "complaint:delete",
    # User permissions
    "user:create",
    "user:view:own",
    "user:view:all",
    "user:update:own",
    "user:update:all",
    "user:delete",
    # System permissions
    "system:admin",
    "system:config",
    "system:analytics",
    "system:reports",
    # Ward permissions
    "ward:manage",
    "ward:assign_tasks",
    "ward:view_analytics",
    # Maintenance permissions
    "maintenance:view_tasks",
    "maintenance:update_status",
    "maintenance:complete_tasks",
})


ROLE_PERMISSIONS: Mapping[Role, FrozenSet[str]] = MappingProxyType({
    Role.GUEST: frozenset({
        "complaint:create",
    }),
    Role.CITIZEN: frozenset({
        "complaint:create",
        "complaint:view:own",
        "complaint:update:own",
        "complaint:reopen",
        "user:view:own",
        "user:update:own",
    }),
    Role.WARD_OFFICER: frozenset({
        "complaint:create",
        "complaint:view:own",
        "complaint:view:ward",
        "complaint:update:own",
        "complaint:update:ward",
        "complaint:assign",
        "complaint:resolve",
        "user:view:own",
        "user:update:own",
        "ward:manage",
        "ward:assign_tasks",
        "ward:view_analytics",
        "system:reports",
    }),
    Role.MAINTENANCE_TEAM: frozenset({
        "complaint:create",
        "complaint:view:own",
        "complaint:update:own",
        "complaint:resolve",
        "user:view:own",
        "user:update:own",
        "maintenance:view_tasks",
        "maintenance:update_status",
        "maintenance:complete_tasks",
    }),
    Role.ADMINISTRATOR: frozenset({
        "complaint:create",
        "complaint:view:own",
        "complaint:view:all",
        "complaint:update:own",
        "complaint:update:all",
        "complaint:assign",
        "complaint:resolve",
        "complaint:reopen",
        "complaint:delete",
        "user:create",
        "user:view:own",
        "user:view:all",
        "user:update:own",
        "user:update:all",
        "user:delete",
        "system:admin",
        "system:config",
        "system:analytics",
        "system:reports",
        "ward:manage",
        "ward:assign_tasks",
        "ward:view_analytics",
        "maintenance:view_tasks",
        "maintenance:update_status",
        "maintenance:complete_tasks",
    }),
})


_PERMISSION_DESCRIPTIONS = MappingProxyType({
    "complaint:create": "Submit new complaints",
    "complaint:view:own": "View complaints you submitted or are assigned to",
    "complaint:view:all": "View every complaint",
    "complaint:view:ward": "View complaints in your ward",
    "complaint:update:own": "Update complaints you submitted or are assigned to",
    "complaint:update:all": "Update every complaint",
    "complaint:update:ward": "Update complaints in your ward",
    "complaint:assign": "Assign complaints to staff",
    "complaint:resolve": "Mark complaints as resolved",
    "complaint:reopen": "Reopen resolved or closed complaints",
    "complaint:delete": "Delete complaints",
    "user:create": "Create user accounts",
    "user:view:own": "View your own profile",
    "user:view:all": "View all users",
    "user:update:own": "Update your own profile",
    "user:update:all": "Update any user",
    "user:delete": "Delete user accounts",
    "system:admin": "System administration access",
    "system:config": "Manage system configuration",
    "system:analytics": "View system analytics",
    "system:reports": "Generate reports",
    "ward:manage": "Manage ward operations",
    "ward:assign_tasks": "Assign tasks within the ward",
    "ward:view_analytics": "View ward analytics",
    "maintenance:view_tasks": "View maintenance tasks",
    "maintenance:update_status": "Update maintenance task status",
    "maintenance:complete_tasks": "Complete maintenance tasks",
})


def _coerce_role(role: RoleLike):
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except (ValueError, TypeError):
        return None


class PermissionTable:
    """
    Read-only permission lookups over an injected role mapping.

    The default instance wraps ROLE_PERMISSIONS; tests and alternate
    deployments can construct their own from any mapping.
    """

    def __init__(self, role_permissions: Mapping[Role, Iterable[str]] = ROLE_PERMISSIONS):
        self._table = MappingProxyType({
            role: frozenset(permissions) for role, permissions in role_permissions.items()
        })

    def permissions_for(self, role: RoleLike) -> FrozenSet[str]:
        """All permissions held by a role; empty for unknown roles."""
        resolved = _coerce_role(role)
        if resolved is None:
            return frozenset()
        return self._table.get(resolved, frozenset())

    def has_permission(self, role: RoleLike, permission: str) -> bool:
        return permission in self.permissions_for(role)

    def has_any_permission(self, role: RoleLike, permissions: Iterable[str]) -> bool:
        granted = self.permissions_for(role)
        return any(permission in granted for permission in permissions)

    def has_all_permissions(self, role: RoleLike, permissions: Iterable[str]) -> bool:
        granted = self.permissions_for(role)
        return all(permission in granted for permission in permissions)


default_table = PermissionTable()


def has_permission(role: RoleLike, permission: str) -> bool:
    """
    Check if a role holds a specific permission.

    Args:
        role: Role enum member or role name
        permission: Permission tag, e.g. "complaint:resolve"

    Returns:
        True if granted; False for unknown roles or permissions
    """
    return default_table.has_permission(role, permission)


def has_any_permission(role: RoleLike, permissions: Iterable[str]) -> bool:
    """Check if a role holds at least one of the permissions."""
    return default_table.has_any_permission(role, permissions)


def has_all_permissions(role: RoleLike, permissions: Iterable[str]) -> bool:
    """Check if a role holds every one of the permissions."""
    return default_table.has_all_permissions(role, permissions)


def get_role_permissions(role: RoleLike) -> FrozenSet[str]:
    """Get all permissions for a role."""
    return default_table.permissions_for(role)


def get_permission_description(permission: str) -> str:
    """
    Get human-readable description for a permission.

    Args:
        permission: Permission string (e.g., "complaint:assign")

    Returns:
        Human-readable description
    """
    return _PERMISSION_DESCRIPTIONS.get(permission, f"Permission: {permission}")
