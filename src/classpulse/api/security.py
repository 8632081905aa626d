"""
FastAPI authentication + authorization helpers.

This centralizes:
- Bearer token -> current Principal dependency
- Standard role-based route guards (dependencies)

The bearer scheme is declared with ``auto_error=False`` so a missing header
reaches the PrincipalResolver and surfaces as ``NoCredential`` (401), and role
guards only run once a principal exists.
"""

from __future__ import annotations

from typing import Optional, Union

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from classpulse.core.models import UserRole
from classpulse.core.roles import require_role, role_str
from classpulse.core.services.auth import (
    Principal,
    PrincipalResolver,
    get_principal_resolver,
)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_current_principal(
    token: Optional[str] = Depends(oauth2_scheme),
    resolver: PrincipalResolver = Depends(get_principal_resolver),
) -> Principal:
    return resolver.resolve(token)


def get_optional_principal(
    token: Optional[str] = Depends(oauth2_scheme),
    resolver: PrincipalResolver = Depends(get_principal_resolver),
) -> Optional[Principal]:
    """Return the principal when a token is present; a bad token still fails 401."""
    if not token:
        return None
    return resolver.resolve(token)


RoleInput = Union[UserRole, str]


def require_roles(*roles: RoleInput):
    """
    Dependency factory that enforces role membership and returns the principal.

    Usage:
        actor: Principal = Depends(require_roles(UserRole.TEACHER))
    """

    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        require_role(principal, *roles)
        return principal

    return _dep


def require_teacher(
    principal: Principal = Depends(require_roles(UserRole.TEACHER)),
) -> Principal:
    return principal


def require_student(
    principal: Principal = Depends(require_roles(UserRole.STUDENT)),
) -> Principal:
    return principal


def principal_role_str(principal: Principal) -> str:
    """Canonical role string for API responses."""
    return role_str(principal)
