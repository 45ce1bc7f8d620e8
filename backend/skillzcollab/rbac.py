"""
Role-based access control driven by the `auth.rbac` section of the config.

Permission strings are `resource:action`; either side may be `*`.
Actions can be aliases (`write` -> create/update/delete) declared in
`auth.rbac.action_aliases`. Roles may inherit other roles.

The config is read on every check, so `reload_config()` takes effect
immediately.
"""
from __future__ import annotations
from typing import Iterable
import structlog
from fastapi import Depends
from skillzcollab.auth_deps import get_current_user
from skillzcollab.config import ConfigError, get_rbac_config, RbacConfig
from skillzcollab.errors import Forbidden, Unauthorized
from skillzcollab.models.user import ADMIN_ROLES

log = structlog.get_logger()

WRITE_ACTIONS = ("write", "create", "update", "delete")
READ_ACTIONS = ("read", "get", "list")


def _as_roles(roles: str | Iterable[str] | None) -> list[str]:
    if roles is None:
        return []
    if isinstance(roles, str):
        return [roles]
    return [r for r in roles if r]


def check_permission_string(perm: str, resource: str, action: str, aliases: dict[str, list[str]] | None = None) -> bool:
    if perm == "*:*":
        return True
    p_resource, _, p_action = perm.partition(":")
    if not p_action:
        return False
    if p_resource != "*" and p_resource != resource:
        return False
    if p_action == "*" or p_action == action:
        return True
    return action in (aliases or {}).get(p_action, [])


def _role_grants(rbac: RbacConfig, role: str, resource: str, action: str, seen: set[str]) -> bool:
    if role in seen:
        return False
    seen.add(role)
    role_def = rbac.roles.get(role)
    if role_def is None:
        return False
    if any(check_permission_string(p, resource, action, rbac.action_aliases) for p in role_def.permissions):
        return True
    return any(_role_grants(rbac, parent, resource, action, seen) for parent in role_def.inherits)


def has_permission(roles: str | Iterable[str] | None, resource: str, action: str) -> bool:
    user_roles = _as_roles(roles)
    if not user_roles:
        return False
    try:
        rbac = get_rbac_config()
    except ConfigError as e:
        log.error("rbac_config_unavailable", error=str(e), resource=resource, action=action)
        return False

    # global grants only count for users that actually hold those roles
    for role in user_roles:
        role_def = rbac.roles.get(role)
        if role_def is None:
            continue
        if "*:*" in role_def.permissions:
            return True
        if role == "global_write" and "*:write" in role_def.permissions and action in WRITE_ACTIONS:
            return True
        if role == "global_read" and "*:read" in role_def.permissions and action in READ_ACTIONS:
            return True

    seen: set[str] = set()
    return any(_role_grants(rbac, role, resource, action, seen) for role in user_roles)


def has_role(user, role: str) -> bool:
    return user is not None and user.role == role

def has_any_role(user, roles: Iterable[str]) -> bool:
    return user is not None and user.role in set(roles)

def has_all_roles(user, roles: Iterable[str]) -> bool:
    # one role per account; only satisfiable by that single role
    wanted = set(roles)
    return user is not None and wanted <= {user.role}

def is_admin(user) -> bool:
    return has_any_role(user, ADMIN_ROLES)


def get_role_permissions(role: str) -> list[str]:
    role_def = get_rbac_config().roles.get(role)
    return list(role_def.permissions) if role_def else []


def _collect(rbac: RbacConfig, role: str, seen: set[str]) -> list[str]:
    if role in seen or role not in rbac.roles:
        return []
    seen.add(role)
    role_def = rbac.roles[role]
    perms = list(role_def.permissions)
    for parent in role_def.inherits:
        perms.extend(_collect(rbac, parent, seen))
    return perms


def get_effective_permissions(user) -> list[str]:
    """Every permission string the user's role grants, inherited ones included."""
    if user is None:
        return []
    perms = _collect(get_rbac_config(), user.role, set())
    return sorted(set(perms))


def get_user_permissions(roles: str | Iterable[str] | None, resource: str) -> list[str]:
    """Concrete actions a set of roles may take on `resource`."""
    rbac = get_rbac_config()
    candidates: set[str] = set(WRITE_ACTIONS) | set(READ_ACTIONS)
    for expansions in rbac.action_aliases.values():
        candidates.update(expansions)
    return sorted(a for a in candidates if has_permission(roles, resource, a))


def ensure_owner_or_admin(user, owner_id, message: str = "You can only modify your own resources") -> None:
    if is_admin(user):
        return
    if owner_id is None or str(owner_id) != str(user.id):
        raise Forbidden(message, code="OWNERSHIP_REQUIRED")


# FastAPI dependencies

def require_permission(resource: str, action: str):
    async def _dep(user=Depends(get_current_user)):
        if user is None:
            raise Unauthorized("Authentication required")
        if not has_permission(user.role, resource, action):
            log.warning("permission_denied", user_id=str(user.id), role=user.role, resource=resource, action=action)
            raise Forbidden(f"Missing permission {resource}:{action}", code="INSUFFICIENT_PERMISSIONS")
        return user
    return _dep


def require_role(*roles: str):
    async def _dep(user=Depends(get_current_user)):
        if not has_any_role(user, roles):
            raise Forbidden(f"Requires one of roles: {', '.join(roles)}", code="INSUFFICIENT_ROLE")
        return user
    return _dep


def require_admin():
    return require_role(*ADMIN_ROLES)


def require_super_admin():
    return require_role("super_admin")
