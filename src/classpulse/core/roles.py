"""
Role gate (backend).

Roles are a closed enum (``UserRole``). Anything arriving from outside
(token claims, request bodies, legacy rows) is parsed into the enum once at the
boundary; every gate below compares enum members, never raw strings.

Gates are pure predicates. ``require_role`` raises ``Forbidden`` and is meant
to run after the principal has been resolved, so authentication failures are
always reported first.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from .exceptions import Forbidden
from .models import UserRole

RoleLike = Union[str, UserRole, Any]


def parse_user_role(role: RoleLike) -> Optional[UserRole]:
    """Convert a role-ish value to ``UserRole``; None if missing or unknown."""
    if role is None:
        return None
    if isinstance(role, UserRole):
        return role

    # {"value": "teacher"} or objects exposing .value
    if isinstance(role, dict):
        role = role.get("value")
    elif hasattr(role, "value"):
        role = role.value

    if not isinstance(role, str):
        return None
    raw = role.strip().lower()
    # "UserRole.TEACHER"
    if "." in raw:
        raw = raw.rsplit(".", 1)[-1]
    try:
        return UserRole(raw)
    except ValueError:
        return None


def role_of(user_or_role: Any) -> Optional[UserRole]:
    """Accept a principal/user-like object (with ``.role``) or a role value."""
    if hasattr(user_or_role, "role"):
        return parse_user_role(getattr(user_or_role, "role", None))
    return parse_user_role(user_or_role)


def role_str(user_or_role: Any) -> str:
    """Canonical lowercase role string for API responses ("" if unknown)."""
    role = role_of(user_or_role)
    return role.value if role else ""


def has_role(user_or_role: Any, *roles: RoleLike) -> bool:
    """Return True if the principal's role is one of ``roles``."""
    current = role_of(user_or_role)
    if current is None:
        return False
    allowed = {parse_user_role(r) for r in roles}
    allowed.discard(None)
    return current in allowed


def require_role(principal: Any, *roles: RoleLike) -> None:
    """Raise ``Forbidden`` unless the principal holds one of ``roles``."""
    if not has_role(principal, *roles):
        wanted = " or ".join(sorted(r.value for r in map(parse_user_role, roles) if r))
        raise Forbidden(f"Access denied. {wanted.capitalize()} role required.")


def is_teacher_or_admin(user_or_role: Any) -> bool:
    return has_role(user_or_role, UserRole.TEACHER, UserRole.ADMIN)


def is_admin(user_or_role: Any) -> bool:
    return has_role(user_or_role, UserRole.ADMIN)


def is_teacher(user_or_role: Any) -> bool:
    return has_role(user_or_role, UserRole.TEACHER)
