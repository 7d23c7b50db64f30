"""Department-manager reconciliation.

Rule: within a department only the employee referenced by
``departments.manager_id`` may hold the Department Manager role.

Stale holders are demoted to the default role and the referenced
employee is promoted when they are an active member. Every write happens
in the caller's transaction with the department row locked, so two
concurrent runs for the same department serialise. A second run with no
intervening change writes nothing.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.common.audit import create_audit_entry
from ems.common.constants import EmployeeStatus
from ems.common.exceptions import NotFoundException
from ems.config import settings
from ems.core_hr.models import Department, Employee, Role
from ems.core_hr.schemas import ReconcileResult

logger = logging.getLogger(__name__)


async def get_role_by_name(db: AsyncSession, role_name: str) -> Optional[Role]:
    result = await db.execute(select(Role).where(Role.role_name == role_name))
    return result.scalars().first()


async def reconcile_department_manager(
    db: AsyncSession,
    department_id: uuid.UUID,
    *,
    actor_id: Optional[str] = None,
    actor_role: Optional[str] = None,
) -> ReconcileResult:
    """Bring the department's Department Manager role holders in line
    with its ``manager_id``."""
    department = (
        await db.execute(
            select(Department)
            .where(Department.id == department_id)
            .with_for_update()
        )
    ).scalars().first()
    if department is None:
        raise NotFoundException("Department", str(department_id))

    result = ReconcileResult()

    manager_role = await get_role_by_name(db, settings.DEPARTMENT_MANAGER_ROLE_NAME)
    if manager_role is None:
        logger.warning(
            "Role %r missing; skipping reconciliation of department %s",
            settings.DEPARTMENT_MANAGER_ROLE_NAME, department_id,
        )
        result.skipped.append("manager_role_missing")
        return result

    members = (
        await db.execute(
            select(Employee).where(
                Employee.department_id == department_id,
                Employee.status == EmployeeStatus.active,
            )
        )
    ).scalars().all()

    # ── Demote stale holders ────────────────────────────────────────
    stale = [
        emp for emp in members
        if emp.role_id == manager_role.id and emp.id != department.manager_id
    ]
    if stale:
        default_role = await get_role_by_name(db, settings.DEFAULT_ROLE_NAME)
        if default_role is None:
            logger.warning(
                "Role %r missing; cannot demote %d stale manager(s) in department %s",
                settings.DEFAULT_ROLE_NAME, len(stale), department_id,
            )
            result.skipped.append("default_role_missing")
        else:
            for emp in stale:
                emp.role_id = default_role.id
                result.demoted.append(emp.id)
                logger.info(
                    "Demoted %s from %s in department %s",
                    emp.id, manager_role.role_name, department_id,
                )

    # ── Promote the referenced manager ──────────────────────────────
    if department.manager_id is not None:
        target = next((e for e in members if e.id == department.manager_id), None)
        if target is None:
            logger.info(
                "Manager %s of department %s is not an active member; not promoted",
                department.manager_id, department_id,
            )
            result.skipped.append("manager_not_active_member")
        elif target.role_id != manager_role.id:
            target.role_id = manager_role.id
            result.promoted = target.id
            logger.info(
                "Promoted %s to %s in department %s",
                target.id, manager_role.role_name, department_id,
            )

    if result.writes:
        await db.flush()
        await create_audit_entry(
            db,
            action="reconcile",
            entity_type="department",
            entity_id=department.id,
            actor_id=actor_id,
            actor_role=actor_role,
            new_values=result.model_dump(mode="json"),
        )

    return result
