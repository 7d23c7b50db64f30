"""Core HR service layer — async CRUD + business logic.

Uses:
  - ``paginate()`` from ems.common.pagination
  - ``apply_filters / apply_search`` from ems.common.filters
  - ``create_audit_entry`` from ems.common.audit
  - ``NotFoundException / ConflictError`` from ems.common.exceptions
  - ``reconcile_department_manager`` from ems.core_hr.reconcile
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from typing import Any, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ems.attendance.service import attendance_percentage
from ems.common.audit import create_audit_entry
from ems.common.constants import (
    PERMISSION_MODULES,
    EmployeeStatus,
    LeaveStatus,
)
from ems.common.exceptions import (
    ConflictError,
    NotFoundException,
    ValidationException,
)
from ems.common.filters import apply_filters, apply_search
from ems.common.pagination import PaginatedResponse, PaginationParams, paginate
from ems.config import settings
from ems.core_hr.models import Department, Employee, Role, RolePermission
from ems.core_hr.reconcile import get_role_by_name, reconcile_department_manager
from ems.core_hr.schemas import (
    DepartmentCreate,
    DepartmentDetail,
    DepartmentResponse,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeResponse,
    EmployeeSummary,
    EmployeeUpdate,
    PermissionMatrix,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
    TeamMember,
)
from ems.leave.models import LeaveRequest

logger = logging.getLogger(__name__)

EMPLOYEE_CSV_HEADER = (
    "Employee ID", "Name", "Email", "Department", "Role", "Join Date", "Status",
)

TEAM_ATTENDANCE_WINDOW_DAYS = 30


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


def employee_to_response(employee: Employee) -> EmployeeResponse:
    """Serialise an employee whose department and role are loaded."""
    item = EmployeeResponse.model_validate(employee)
    item.department_name = employee.department.name if employee.department else None
    item.role_name = employee.role.role_name if employee.role else None
    return item


async def _ensure_exists(db: AsyncSession, model: Any, pk: Optional[uuid.UUID], field: str) -> None:
    if pk is not None and await db.get(model, pk) is None:
        raise ValidationException({field: [f"No {model.__tablename__[:-1]} with id '{pk}'."]})


class EmployeeService:
    """Async CRUD operations for employees."""

    # ── List (paginated, searchable, filterable) ────────────────────

    @staticmethod
    def _list_query(
        *,
        search: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
        role_id: Optional[uuid.UUID] = None,
        status: Optional[EmployeeStatus] = None,
    ):
        query = (
            select(Employee)
            .options(
                selectinload(Employee.department),
                selectinload(Employee.role),
            )
            .order_by(Employee.name)
        )
        query = apply_filters(query, Employee, {
            "department_id": department_id,
            "role_id": role_id,
            "status": status,
        })
        return apply_search(query, Employee, search, ["name", "email", "employee_code"])

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
        role_id: Optional[uuid.UUID] = None,
        status: Optional[EmployeeStatus] = None,
    ) -> PaginatedResponse:
        """Return a paginated, filtered, searchable employee list."""
        query = EmployeeService._list_query(
            search=search,
            department_id=department_id,
            role_id=role_id,
            status=status,
        )
        return await paginate(db, query, pagination, model=Employee)

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_employee(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
        result = await db.execute(
            select(Employee)
            .where(Employee.id == employee_id)
            .options(
                selectinload(Employee.department),
                selectinload(Employee.role),
            )
            .execution_options(populate_existing=True)
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))
        return employee

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def _check_unique(
        db: AsyncSession,
        *,
        email: Optional[str] = None,
        employee_code: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        for field, value in (("email", email), ("employee_code", employee_code)):
            if value is None:
                continue
            query = select(Employee.id).where(getattr(Employee, field) == value)
            if exclude_id is not None:
                query = query.where(Employee.id != exclude_id)
            if (await db.execute(query)).first() is not None:
                raise ConflictError(field, value)

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        data: EmployeeCreate,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> Employee:
        """Create a new employee record."""
        payload = data.model_dump()
        payload["email"] = payload["email"].lower()

        await EmployeeService._check_unique(
            db, email=payload["email"], employee_code=data.employee_code,
        )
        await _ensure_exists(db, Department, data.department_id, "department_id")
        await _ensure_exists(db, Role, data.role_id, "role_id")
        await _ensure_exists(db, Employee, data.manager_id, "manager_id")

        if payload.get("role_id") is None:
            default_role = await get_role_by_name(db, settings.DEFAULT_ROLE_NAME)
            payload["role_id"] = default_role.id if default_role else None

        employee = Employee(**payload)
        db.add(employee)
        try:
            await db.flush()
        except IntegrityError as exc:
            err = str(exc.orig)
            if "employee_code" in err:
                raise ConflictError("employee_code", data.employee_code)
            if "email" in err:
                raise ConflictError("email", data.email)
            raise

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            actor_role=actor_role,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Created employee %s (%s)", employee.id, employee.email)
        return await EmployeeService.get_employee(db, employee.id)

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: EmployeeUpdate,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> Employee:
        """Partial update — only fields present in *data* are written."""
        employee = await EmployeeService.get_employee(db, employee_id)
        changes = data.model_dump(exclude_unset=True)
        if "email" in changes and changes["email"]:
            changes["email"] = changes["email"].lower()

        await EmployeeService._check_unique(
            db,
            email=changes.get("email"),
            employee_code=changes.get("employee_code"),
            exclude_id=employee_id,
        )
        await _ensure_exists(db, Department, changes.get("department_id"), "department_id")
        await _ensure_exists(db, Role, changes.get("role_id"), "role_id")
        if changes.get("manager_id") == employee_id:
            raise ValidationException({"manager_id": ["An employee cannot manage themself."]})
        await _ensure_exists(db, Employee, changes.get("manager_id"), "manager_id")

        old_values: dict[str, Any] = {}
        for field, value in changes.items():
            old = getattr(employee, field)
            if old != value:
                old_values[field] = old
                setattr(employee, field, value)

        if old_values:
            await db.flush()
            await create_audit_entry(
                db,
                action="update",
                entity_type="employee",
                entity_id=employee.id,
                actor_id=actor_id,
                actor_role=actor_role,
                old_values={k: str(v) if v is not None else None for k, v in old_values.items()},
                new_values=data.model_dump(mode="json", exclude_unset=True),
            )
        return await EmployeeService.get_employee(db, employee_id)

    # ── Deactivate ──────────────────────────────────────────────────

    @staticmethod
    async def deactivate_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> Employee:
        """Soft delete: the record stays, status becomes inactive."""
        employee = await EmployeeService.get_employee(db, employee_id)
        if employee.status != EmployeeStatus.inactive:
            old_status = employee.status.value
            employee.status = EmployeeStatus.inactive
            await db.flush()
            await create_audit_entry(
                db,
                action="deactivate",
                entity_type="employee",
                entity_id=employee.id,
                actor_id=actor_id,
                actor_role=actor_role,
                old_values={"status": old_status},
                new_values={"status": EmployeeStatus.inactive.value},
            )
        return employee

    # ── Export ──────────────────────────────────────────────────────

    @staticmethod
    async def export_rows(
        db: AsyncSession,
        *,
        search: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
        role_id: Optional[uuid.UUID] = None,
        status: Optional[EmployeeStatus] = None,
    ) -> list[list]:
        query = EmployeeService._list_query(
            search=search,
            department_id=department_id,
            role_id=role_id,
            status=status,
        )
        employees = (await db.execute(query)).scalars().all()
        return [
            [
                emp.employee_code,
                emp.name,
                emp.email,
                emp.department.name if emp.department else None,
                emp.role.role_name if emp.role else None,
                emp.joining_date.isoformat() if emp.joining_date else None,
                emp.status.value,
            ]
            for emp in employees
        ]

    # ── Manager team view ───────────────────────────────────────────

    @staticmethod
    async def team_for_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        *,
        exclude_employee_id: Optional[uuid.UUID] = None,
        today: Optional[date] = None,
    ) -> list[TeamMember]:
        """Active members with their attendance % over the last 30 days
        and their pending leave count.

        *exclude_employee_id* drops the viewing manager from their own team.
        """
        today = today or date.today()
        window_start = today - timedelta(days=TEAM_ATTENDANCE_WINDOW_DAYS)

        query = (
            select(Employee)
            .options(selectinload(Employee.role))
            .where(
                Employee.department_id == department_id,
                Employee.status == EmployeeStatus.active,
            )
            .order_by(Employee.name)
        )
        if exclude_employee_id is not None:
            query = query.where(Employee.id != exclude_employee_id)
        members = (await db.execute(query)).scalars().all()

        pending = dict(
            (
                await db.execute(
                    select(LeaveRequest.employee_id, func.count())
                    .where(
                        LeaveRequest.employee_id.in_([m.id for m in members]),
                        LeaveRequest.status == LeaveStatus.pending,
                    )
                    .group_by(LeaveRequest.employee_id)
                )
            ).all()
        ) if members else {}

        team: list[TeamMember] = []
        for member in members:
            item = TeamMember.model_validate(member, from_attributes=True)
            item.role_name = member.role.role_name if member.role else None
            item.attendance_percentage = await attendance_percentage(
                db, member.id, window_start, today,
            )
            item.pending_leaves = pending.get(member.id, 0)
            team.append(item)
        return team


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService:
    """Department CRUD plus manager bookkeeping."""

    @staticmethod
    async def _member_counts(db: AsyncSession) -> dict[uuid.UUID, int]:
        rows = (
            await db.execute(
                select(Employee.department_id, func.count())
                .where(
                    Employee.department_id.is_not(None),
                    Employee.status == EmployeeStatus.active,
                )
                .group_by(Employee.department_id)
            )
        ).all()
        return dict(rows)

    @staticmethod
    async def _backfill_managers(
        db: AsyncSession,
        departments: Sequence[Department],
    ) -> None:
        """Departments with no manager_id adopt their sole active
        Department Manager, if there is exactly one."""
        orphaned = [d for d in departments if d.manager_id is None]
        if not orphaned:
            return
        manager_role = await get_role_by_name(db, settings.DEPARTMENT_MANAGER_ROLE_NAME)
        if manager_role is None:
            return

        holders = (
            await db.execute(
                select(Employee.department_id, Employee.id).where(
                    Employee.department_id.in_([d.id for d in orphaned]),
                    Employee.role_id == manager_role.id,
                    Employee.status == EmployeeStatus.active,
                )
            )
        ).all()
        by_department: dict[uuid.UUID, list[uuid.UUID]] = {}
        for dept_id, emp_id in holders:
            by_department.setdefault(dept_id, []).append(emp_id)

        changed = False
        for dept in orphaned:
            candidates = by_department.get(dept.id, [])
            if len(candidates) == 1:
                dept.manager_id = candidates[0]
                changed = True
                logger.info("Department %s adopted manager %s", dept.id, candidates[0])
        if changed:
            await db.flush()

    @staticmethod
    async def _manager_names(
        db: AsyncSession,
        departments: Sequence[Department],
    ) -> dict[uuid.UUID, str]:
        ids = [d.manager_id for d in departments if d.manager_id is not None]
        if not ids:
            return {}
        rows = (
            await db.execute(select(Employee.id, Employee.name).where(Employee.id.in_(ids)))
        ).all()
        return dict(rows)

    # ── List ────────────────────────────────────────────────────────

    @staticmethod
    async def list_departments(
        db: AsyncSession,
        *,
        search: Optional[str] = None,
    ) -> list[DepartmentResponse]:
        """All departments with active head count and manager name."""
        departments = (
            await db.execute(select(Department).order_by(Department.name))
        ).scalars().all()

        await DepartmentService._backfill_managers(db, departments)
        counts = await DepartmentService._member_counts(db)
        names = await DepartmentService._manager_names(db, departments)

        items: list[DepartmentResponse] = []
        needle = search.strip().lower() if search and search.strip() else None
        for dept in departments:
            manager_name = names.get(dept.manager_id) if dept.manager_id else None
            if needle and not any(
                needle in (value or "").lower()
                for value in (dept.name, dept.location, manager_name)
            ):
                continue
            item = DepartmentResponse.model_validate(dept)
            item.employee_count = counts.get(dept.id, 0)
            item.manager_name = manager_name
            items.append(item)
        return items

    # ── Get / detail ────────────────────────────────────────────────

    @staticmethod
    async def get_department(db: AsyncSession, department_id: uuid.UUID) -> Department:
        department = await db.get(Department, department_id)
        if department is None:
            raise NotFoundException("Department", str(department_id))
        return department

    @staticmethod
    async def get_detail(
        db: AsyncSession,
        department_id: uuid.UUID,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> DepartmentDetail:
        """Department with its active members; reconciles manager roles
        first so the view reflects the repaired state."""
        reconciliation = await reconcile_department_manager(
            db, department_id, actor_id=actor_id, actor_role=actor_role,
        )
        department = await DepartmentService.get_department(db, department_id)

        members = (
            await db.execute(
                select(Employee)
                .where(
                    Employee.department_id == department_id,
                    Employee.status == EmployeeStatus.active,
                )
                .order_by(Employee.name)
            )
        ).scalars().all()

        detail = DepartmentDetail(
            **DepartmentResponse.model_validate(department).model_dump(),
            employees=[EmployeeSummary.model_validate(m) for m in members],
            reconciliation=reconciliation,
        )
        detail.employee_count = len(members)
        if department.manager_id is not None:
            manager = await db.get(Employee, department.manager_id)
            detail.manager_name = manager.name if manager else None
        return detail

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def _check_name(
        db: AsyncSession,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Department.id).where(func.lower(Department.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Department.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictError("name", name)

    @staticmethod
    async def create_department(
        db: AsyncSession,
        data: DepartmentCreate,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> Department:
        await DepartmentService._check_name(db, data.name)
        await _ensure_exists(db, Employee, data.manager_id, "manager_id")

        department = Department(**data.model_dump())
        db.add(department)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="department",
            entity_id=department.id,
            actor_id=actor_id,
            actor_role=actor_role,
            new_values=data.model_dump(mode="json"),
        )
        return department

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        data: DepartmentUpdate,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> Department:
        """Rename, change status or (un)assign the manager.

        A manager change is reconciled in the same transaction.
        """
        department = await DepartmentService.get_department(db, department_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("name"):
            await DepartmentService._check_name(db, changes["name"], exclude_id=department_id)
        elif "name" in changes:
            changes.pop("name")
        if changes.get("status") is None:
            changes.pop("status", None)
        await _ensure_exists(db, Employee, changes.get("manager_id"), "manager_id")

        old_values: dict[str, Any] = {}
        for field, value in changes.items():
            old = getattr(department, field)
            if old != value:
                old_values[field] = str(old) if old is not None else None
                setattr(department, field, value)

        if old_values:
            await db.flush()
            await create_audit_entry(
                db,
                action="update",
                entity_type="department",
                entity_id=department.id,
                actor_id=actor_id,
                actor_role=actor_role,
                old_values=old_values,
                new_values=data.model_dump(mode="json", exclude_unset=True),
            )
            if "manager_id" in old_values:
                await reconcile_department_manager(
                    db, department_id, actor_id=actor_id, actor_role=actor_role,
                )
        return department

    # ── Delete ──────────────────────────────────────────────────────

    @staticmethod
    async def delete_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> None:
        """Delete the department; its employees stay, unassigned."""
        department = await DepartmentService.get_department(db, department_id)
        name = department.name

        await db.execute(
            update(Employee)
            .where(Employee.department_id == department_id)
            .values(department_id=None)
        )
        await db.execute(delete(Department).where(Department.id == department_id))

        await create_audit_entry(
            db,
            action="delete",
            entity_type="department",
            entity_id=department_id,
            actor_id=actor_id,
            actor_role=actor_role,
            old_values={"name": name},
        )
        logger.info("Deleted department %s (%s)", department_id, name)

    # ── Reconcile ───────────────────────────────────────────────────

    @staticmethod
    async def reconcile(
        db: AsyncSession,
        department_id: uuid.UUID,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ):
        return await reconcile_department_manager(
            db, department_id, actor_id=actor_id, actor_role=actor_role,
        )


# ═════════════════════════════════════════════════════════════════════
# RoleService
# ═════════════════════════════════════════════════════════════════════


class RoleService:
    """Job roles and their per-module permission matrix."""

    @staticmethod
    async def _employee_counts(db: AsyncSession) -> dict[uuid.UUID, int]:
        rows = (
            await db.execute(
                select(Employee.role_id, func.count())
                .where(Employee.role_id.is_not(None))
                .group_by(Employee.role_id)
            )
        ).all()
        return dict(rows)

    @staticmethod
    def _to_response(role: Role, employee_count: int = 0) -> RoleResponse:
        item = RoleResponse.model_validate(role)
        item.employee_count = employee_count
        return item

    @staticmethod
    async def get_role(db: AsyncSession, role_id: uuid.UUID) -> Role:
        result = await db.execute(
            select(Role).where(Role.id == role_id).options(selectinload(Role.permissions))
        )
        role = result.scalars().first()
        if role is None:
            raise NotFoundException("Role", str(role_id))
        return role

    @staticmethod
    async def list_roles(db: AsyncSession) -> list[RoleResponse]:
        roles = (
            await db.execute(
                select(Role).options(selectinload(Role.permissions)).order_by(Role.role_name)
            )
        ).scalars().all()
        counts = await RoleService._employee_counts(db)
        return [RoleService._to_response(r, counts.get(r.id, 0)) for r in roles]

    @staticmethod
    async def get_role_response(db: AsyncSession, role_id: uuid.UUID) -> RoleResponse:
        role = await RoleService.get_role(db, role_id)
        counts = await RoleService._employee_counts(db)
        return RoleService._to_response(role, counts.get(role.id, 0))

    @staticmethod
    async def _check_name(
        db: AsyncSession,
        role_name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Role.id).where(func.lower(Role.role_name) == role_name.lower())
        if exclude_id is not None:
            query = query.where(Role.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictError("role_name", role_name)

    @staticmethod
    async def create_role(
        db: AsyncSession,
        data: RoleCreate,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> RoleResponse:
        await RoleService._check_name(db, data.role_name)
        role = Role(**data.model_dump(), permissions=[])
        db.add(role)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="role",
            entity_id=role.id,
            actor_id=actor_id,
            actor_role=actor_role,
            new_values=data.model_dump(mode="json"),
        )
        return RoleService._to_response(role)

    @staticmethod
    async def update_role(
        db: AsyncSession,
        role_id: uuid.UUID,
        data: RoleUpdate,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> RoleResponse:
        role = await RoleService.get_role(db, role_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("role_name"):
            await RoleService._check_name(db, changes["role_name"], exclude_id=role_id)
        elif "role_name" in changes:
            changes.pop("role_name")

        for field, value in changes.items():
            setattr(role, field, value)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="role",
            entity_id=role.id,
            actor_id=actor_id,
            actor_role=actor_role,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return await RoleService.get_role_response(db, role_id)

    @staticmethod
    async def delete_role(
        db: AsyncSession,
        role_id: uuid.UUID,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> None:
        """Delete a role nobody holds."""
        role = await RoleService.get_role(db, role_id)
        role_name = role.role_name
        holders = (
            await db.execute(
                select(func.count()).select_from(Employee).where(Employee.role_id == role_id)
            )
        ).scalar() or 0
        if holders:
            raise ConflictError(
                "role_id",
                role_id,
                detail=f"Role '{role_name}' is assigned to {holders} employee(s) and cannot be deleted.",
            )

        await db.delete(role)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="role",
            entity_id=role_id,
            actor_id=actor_id,
            actor_role=actor_role,
            old_values={"role_name": role_name},
        )

    @staticmethod
    async def replace_permissions(
        db: AsyncSession,
        role_id: uuid.UUID,
        matrix: PermissionMatrix,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> RoleResponse:
        """Replace the role's whole permission matrix."""
        unknown = sorted({p.module for p in matrix.permissions} - set(PERMISSION_MODULES))
        if unknown:
            raise ValidationException(
                {"permissions": [f"Unknown module(s): {', '.join(unknown)}."]},
            )
        modules = [p.module for p in matrix.permissions]
        if len(modules) != len(set(modules)):
            raise ValidationException({"permissions": ["Each module may appear once."]})

        role = await RoleService.get_role(db, role_id)
        role.permissions.clear()
        await db.flush()
        role.permissions.extend(
            RolePermission(**entry.model_dump()) for entry in matrix.permissions
        )
        await db.flush()

        await create_audit_entry(
            db,
            action="update_permissions",
            entity_type="role",
            entity_id=role.id,
            actor_id=actor_id,
            actor_role=actor_role,
            new_values=matrix.model_dump(mode="json"),
        )
        return await RoleService.get_role_response(db, role_id)
