"""Static role to permission table for tenant members."""

from typing import Literal

from renderops_server.auth.models import Role

Permission = Literal["read", "create", "update", "delete"]

ROLE_PERMISSIONS: dict[Role, list[str]] = {
    Role.OWNER: ["read", "create", "update", "delete"],
    Role.ADMIN: ["read", "create", "update", "delete"],
    Role.MEMBER: ["read", "create", "update", "delete"],
    Role.VIEWER: ["read"],
}

OWNER_ONLY_ACTIONS = {"delete_tenant", "transfer_ownership"}

ASSIGNABLE_ROLES: dict[Role, list[Role]] = {
    Role.OWNER: [Role.ADMIN, Role.MEMBER, Role.VIEWER],
    Role.ADMIN: [Role.MEMBER, Role.VIEWER],
}

# Permission needed by each server action
ACTION_PERMISSIONS: dict[str, str] = {
    "db_list": "read",
    "db_get": "read",
    "db_search": "read",
    "db_insert": "create",
    "db_update": "update",
    "db_delete": "delete",
    "http_request": "update",
}

MUTATING_ACTIONS = {"db_insert", "db_update", "db_delete"}


def _as_role(role) -> Role | None:
    try:
        return Role(role)
    except ValueError:
        return None


def has_permission(role: Role | str, permission: str) -> bool:
    resolved = _as_role(role)
    if resolved is None:
        return False
    return permission in ROLE_PERMISSIONS.get(resolved, [])


def get_permissions(role: Role | str) -> list[str]:
    resolved = _as_role(role)
    if resolved is None:
        return []
    return list(ROLE_PERMISSIONS.get(resolved, []))


def is_owner_only(action: str) -> bool:
    return action in OWNER_ONLY_ACTIONS


def can_manage_members(role: Role | str) -> bool:
    return _as_role(role) in (Role.OWNER, Role.ADMIN)


def can_manage_tenant(role: Role | str) -> bool:
    return _as_role(role) in (Role.OWNER, Role.ADMIN)


def get_assignable_roles(role: Role | str) -> list[Role]:
    """Roles ``role`` may grant. OWNER is never assignable, only transferred."""
    resolved = _as_role(role)
    if resolved is None:
        return []
    return list(ASSIGNABLE_ROLES.get(resolved, []))


def get_action_permission(action: str) -> str:
    return ACTION_PERMISSIONS.get(action, "read")
