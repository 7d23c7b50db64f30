"""Role resolution — map an authenticated identity to a portal role.

Lookup order, first match wins:

1. ``admins`` by email            → admin (backfills ``auth_user_id``)
2. ``hrs`` by email               → hr
3. ``managers`` by auth id        → manager (active rows only)
4. ``employees`` by auth id       → classified from the employee's Role
5. ``employees`` by email         → classified; backfills ``auth_user_id``
6. nothing                        → employee, ``matched=False``

A failing lookup is logged and treated as a miss; the resolver never
raises. Each lookup runs in its own savepoint, so one failure leaves
the session usable for the next. ``RoleResolution.errors`` counts the
failed lookups so callers can tell "not found" apart from "lookup
failed".
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ems.auth.models import Admin, HRUser, ManagerAssignment
from ems.auth.schemas import RoleResolution
from ems.common.constants import EmployeeStatus, UserRole
from ems.core_hr.models import Employee, Role

logger = logging.getLogger(__name__)

_MANAGER_MARKERS = ("manager", "team lead", "teamlead")


# ── Classification ──────────────────────────────────────────────────

def classify_role(role: Optional[Role]) -> UserRole:
    """Return the portal role granted by an employee's job Role.

    An explicit ``access_level`` wins. Rows without one fall back to
    substring matching on the lower-cased ``role_name``.
    """
    if role is None:
        return UserRole.employee
    if role.access_level is not None:
        return UserRole(role.access_level)

    name = (role.role_name or "").lower()
    if "admin" in name:
        return UserRole.admin
    if "hr" in name:
        return UserRole.hr
    if any(marker in name for marker in _MANAGER_MARKERS):
        return UserRole.manager
    return UserRole.employee


# ── Internal helpers ────────────────────────────────────────────────

async def _backfill_auth_id(
    db: AsyncSession,
    row: Any,
    auth_id: Optional[str],
    table: str,
) -> None:
    """Link *row* to *auth_id* when it has none yet.

    The write runs in a savepoint; a failure rolls back only the
    backfill and the match itself stands.
    """
    if not auth_id or row.auth_user_id:
        return
    row_id = row.id
    try:
        async with db.begin_nested():
            row.auth_user_id = auth_id
            await db.flush()
        logger.info("Linked %s row %s to auth id %s", table, row_id, auth_id)
    except SQLAlchemyError:
        logger.exception("Could not backfill auth id on %s row %s", table, row_id)


def _from_employee(
    employee: Employee,
    source: str,
    errors: int,
) -> RoleResolution:
    return RoleResolution(
        role=classify_role(employee.role),
        employee_id=employee.id,
        department_id=employee.department_id,
        display_name=employee.name,
        source=source,
        matched=True,
        errors=errors,
    )


def _active_employee_query():
    return (
        select(Employee)
        .options(selectinload(Employee.role))
        .where(Employee.status == EmployeeStatus.active)
    )


async def _first(db: AsyncSession, stmt) -> Any:
    """Run one lookup inside a savepoint and return the first row."""
    async with db.begin_nested():
        return (await db.execute(stmt)).scalars().first()


# ── Resolver ────────────────────────────────────────────────────────

async def resolve_role(
    db: AsyncSession,
    auth_id: Optional[str],
    email: Optional[str],
) -> RoleResolution:
    """Resolve the portal role for an identity. Never raises."""
    errors = 0
    normalized = email.strip().lower() if email else None

    # 1. Admin table by email
    if normalized:
        try:
            admin = await _first(
                db, select(Admin).where(func.lower(Admin.email) == normalized)
            )
        except SQLAlchemyError:
            logger.exception("Admin lookup failed for %s", normalized)
            errors += 1
            admin = None
        if admin is not None:
            resolution = RoleResolution(
                role=UserRole.admin,
                display_name=admin.name,
                source="admins",
                matched=True,
                errors=errors,
            )
            await _backfill_auth_id(db, admin, auth_id, "admins")
            return resolution

    # 2. HR table by email
    if normalized:
        try:
            hr = await _first(
                db, select(HRUser).where(func.lower(HRUser.email) == normalized)
            )
        except SQLAlchemyError:
            logger.exception("HR lookup failed for %s", normalized)
            errors += 1
            hr = None
        if hr is not None:
            return RoleResolution(
                role=UserRole.hr,
                employee_id=hr.employee_id,
                display_name=hr.name,
                source="hrs",
                matched=True,
                errors=errors,
            )

    # 3. Manager table by auth id
    if auth_id:
        linked: Optional[Employee] = None
        try:
            async with db.begin_nested():
                manager = (
                    await db.execute(
                        select(ManagerAssignment).where(
                            ManagerAssignment.auth_user_id == auth_id,
                            ManagerAssignment.is_active.is_(True),
                        )
                    )
                ).scalars().first()
                if manager is not None and manager.employee_id is not None:
                    linked = await db.get(Employee, manager.employee_id)
        except SQLAlchemyError:
            logger.exception("Manager lookup failed for %s", auth_id)
            errors += 1
            manager = None
        if manager is not None:
            return RoleResolution(
                role=UserRole.manager,
                employee_id=manager.employee_id,
                department_id=linked.department_id if linked else None,
                display_name=linked.name if linked else None,
                source="managers",
                matched=True,
                errors=errors,
            )

    # 4. Employee table by auth id
    if auth_id:
        try:
            employee = await _first(
                db, _active_employee_query().where(Employee.auth_user_id == auth_id)
            )
        except SQLAlchemyError:
            logger.exception("Employee lookup by auth id failed for %s", auth_id)
            errors += 1
            employee = None
        if employee is not None:
            return _from_employee(employee, "employees", errors)

    # 5. Employee table by email (first login, auth id not linked yet)
    if normalized:
        try:
            employee = await _first(
                db,
                _active_employee_query().where(func.lower(Employee.email) == normalized),
            )
        except SQLAlchemyError:
            logger.exception("Employee lookup by email failed for %s", normalized)
            errors += 1
            employee = None
        if employee is not None:
            resolution = _from_employee(employee, "employees_email", errors)
            await _backfill_auth_id(db, employee, auth_id, "employees")
            return resolution

    # 6. No match
    logger.info(
        "No role match for auth_id=%s email=%s (%d lookup errors)",
        auth_id, normalized, errors,
    )
    return RoleResolution(role=UserRole.employee, matched=False, errors=errors)
