"""Auth dependencies — bearer-token validation, role resolution, RBAC."""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ems.auth.resolver import resolve_role
from ems.auth.schemas import CurrentUser, Identity
from ems.auth.service import decode_identity_token, fetch_primary_email
from ems.common.constants import ROLE_HIERARCHY, UserRole
from ems.common.exceptions import (
    ForbiddenException,
    ServiceUnavailableException,
    UnauthorizedException,
)
from ems.database import get_db

logger = logging.getLogger(__name__)


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthorizedException("Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Identity ────────────────────────────────────────────────────────

async def get_current_identity(request: Request) -> Identity:
    """Verify the bearer token; fill in the email from the identity
    provider when the token carries none."""
    identity = decode_identity_token(_extract_bearer(request))
    if identity.email is None:
        identity.email = await fetch_primary_email(identity.auth_id)
    return identity


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the caller's role.

    An identity no table knows is refused with 403. When the only reason
    for the miss is that lookups failed, answer 503 instead so the client
    can retry.
    """
    resolution = await resolve_role(db, identity.auth_id, identity.email)
    if not resolution.matched:
        if resolution.errors:
            raise ServiceUnavailableException("Role lookup failed; please retry.")
        raise ForbiddenException("unauthorized")

    request.state.user_role = resolution.role
    return CurrentUser(
        auth_id=identity.auth_id,
        email=identity.email,
        role=resolution.role,
        employee_id=resolution.employee_id,
        department_id=resolution.department_id,
        display_name=resolution.display_name,
    )


# ── Role-based dependency ───────────────────────────────────────────

def has_role(user: CurrentUser, *allowed_roles: UserRole) -> bool:
    """True if *user*'s role, expanded through the hierarchy, covers any
    of *allowed_roles*."""
    effective = ROLE_HIERARCHY.get(user.role, {user.role})
    return bool(effective.intersection(allowed_roles))


def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership.

    Respects hierarchy — e.g. admin can access manager endpoints.
    """

    async def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not has_role(user, *allowed_roles):
            raise ForbiddenException(
                detail=f"Role '{user.role.value}' is not permitted. Required: {[r.value for r in allowed_roles]}.",
            )
        return user

    return _check


def require_employee(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Caller must be linked to an employee record."""
    if user.employee_id is None:
        raise ForbiddenException("No employee record is linked to this account.")
    return user
