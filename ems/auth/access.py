"""Portal page gate: decide whether a role may open a path.

The frontend asks ``GET /auth/route?path=...`` before rendering a page
and follows ``redirect`` when the answer is not ``allow``.
"""

from __future__ import annotations

import uuid
from typing import Optional

from ems.auth.schemas import RouteDecision
from ems.common.constants import UserRole

UNAUTHORIZED_PATH = "/unauthorized"
ERROR_PATH = "/error"

# Always reachable, whatever the role.
PUBLIC_PATHS = frozenset({UNAUTHORIZED_PATH, ERROR_PATH})

# Path prefixes each role may not enter.
_DENIED_PREFIXES: dict[UserRole, tuple[str, ...]] = {
    UserRole.admin: (),
    UserRole.hr: ("/admin",),
    UserRole.manager: ("/admin", "/hr"),
    UserRole.team_lead: ("/admin", "/hr", "/manager"),
}


def role_dashboard(role: UserRole, employee_id: Optional[uuid.UUID]) -> str:
    """Landing page for *role*.

    Employee-scoped dashboards need an employee id; without one the
    caller has nowhere to land and is sent to ``/unauthorized``.
    """
    if role == UserRole.admin:
        return "/admin/dashboard"
    if role == UserRole.hr:
        return "/hr/dashboard/dashboard"
    if employee_id is None:
        return UNAUTHORIZED_PATH
    if role == UserRole.manager:
        return f"/manager/{employee_id}/dashboard"
    if role == UserRole.team_lead:
        return f"/team-lead/{employee_id}/dashboard"
    return f"/employee/{employee_id}/dashboard"


def evaluate_route(
    role: UserRole,
    employee_id: Optional[uuid.UUID],
    path: str,
) -> RouteDecision:
    """Apply the role hierarchy to a requested page *path*."""
    path = "/" + path.strip().lstrip("/") if path else "/"
    if len(path) > 1:
        path = path.rstrip("/")

    if path in PUBLIC_PATHS:
        return RouteDecision(allow=True)

    if path in ("/", "/dashboard"):
        return RouteDecision(allow=False, redirect=role_dashboard(role, employee_id))

    if role == UserRole.employee:
        if not path.startswith("/employee"):
            return RouteDecision(allow=False, redirect=UNAUTHORIZED_PATH)
        return RouteDecision(allow=True)

    for prefix in _DENIED_PREFIXES.get(role, ()):
        if path.startswith(prefix):
            return RouteDecision(allow=False, redirect=UNAUTHORIZED_PATH)

    return RouteDecision(allow=True)
