"""Core HR router — Employee, Department, Role API endpoints.

Routes:
    /employees                    — List, create employees
    /employees/export             — CSV download
    /employees/team               — Manager's department team view
    /employees/{id}               — Get, update, deactivate employee
    /departments                  — List, create departments
    /departments/{id}             — Detail (reconciles), update, delete
    /departments/{id}/reconcile   — Repair Department Manager role holders
    /roles                        — List, create roles
    /roles/{id}                   — Get, update, delete role
    /roles/{id}/permissions       — Replace the permission matrix
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ems.auth.dependencies import get_current_user, has_role, require_role
from ems.auth.schemas import CurrentUser
from ems.common.constants import EmployeeStatus, UserRole
from ems.common.csv_export import csv_response, rows_to_csv
from ems.common.exceptions import ForbiddenException
from ems.common.pagination import PaginationParams
from ems.core_hr.schemas import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    EmployeeCreate,
    EmployeeUpdate,
    PermissionMatrix,
    RoleCreate,
    RoleUpdate,
)
from ems.core_hr.service import (
    EMPLOYEE_CSV_HEADER,
    DepartmentService,
    EmployeeService,
    RoleService,
    employee_to_response,
)
from ems.database import get_db


# ═════════════════════════════════════════════════════════════════════
# Routers
# ═════════════════════════════════════════════════════════════════════

employees_router = APIRouter(prefix="", tags=["employees"])
departments_router = APIRouter(prefix="", tags=["departments"])
roles_router = APIRouter(prefix="", tags=["roles"])


# ═════════════════════════════════════════════════════════════════════
# Employee Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /employees — List employees ─────────────────────────────────

@employees_router.get("")
async def list_employees(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, email, or employee code"),
    department_id: Optional[uuid.UUID] = Query(None, description="Filter by department"),
    role_id: Optional[uuid.UUID] = Query(None, description="Filter by role"),
    status: Optional[EmployeeStatus] = Query(None, description="Filter by status"),
):
    """List employees with pagination, search, and filtering."""
    result = await EmployeeService.list_employees(
        db,
        pagination,
        search=search,
        department_id=department_id,
        role_id=role_id,
        status=status,
    )
    return {
        "data": [employee_to_response(emp).model_dump(mode="json") for emp in result.data],
        "meta": result.meta.model_dump(),
    }


# ── GET /employees/export — CSV download ───────────────────────────
# NOTE: static paths MUST be defined before /employees/{employee_id}.

@employees_router.get("/export")
async def export_employees(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
    search: Optional[str] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    role_id: Optional[uuid.UUID] = Query(None),
    status: Optional[EmployeeStatus] = Query(None),
):
    rows = await EmployeeService.export_rows(
        db,
        search=search,
        department_id=department_id,
        role_id=role_id,
        status=status,
    )
    return csv_response(
        rows_to_csv(EMPLOYEE_CSV_HEADER, rows),
        f"employees-{date.today().isoformat()}.csv",
    )


# ── GET /employees/team — Manager's team view ──────────────────────

@employees_router.get("/team")
async def get_team(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.manager)),
    department_id: Optional[uuid.UUID] = Query(
        None, description="HR/admin only: department to inspect",
    ),
):
    """Active members of the caller's department with 30-day attendance
    percentage and pending leave count."""
    if department_id is not None and not has_role(user, UserRole.hr):
        raise ForbiddenException("Managers can only view their own department.")
    target = department_id or user.department_id
    if target is None:
        raise ForbiddenException("No department is linked to this account.")

    team = await EmployeeService.team_for_department(
        db, target, exclude_employee_id=user.employee_id,
    )
    return {"data": [member.model_dump(mode="json") for member in team]}


# ── GET /employees/{id} — Employee detail ──────────────────────────

@employees_router.get("/{employee_id}")
async def get_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """HR and admins see anyone; managers their department; others themselves."""
    employee = await EmployeeService.get_employee(db, employee_id)
    allowed = (
        has_role(user, UserRole.hr)
        or user.employee_id == employee_id
        or (
            has_role(user, UserRole.manager)
            and user.department_id is not None
            and employee.department_id == user.department_id
        )
    )
    if not allowed:
        raise ForbiddenException("You can only view your own record.")
    return {"data": employee_to_response(employee).model_dump(mode="json")}


# ── POST /employees — Create employee ──────────────────────────────

@employees_router.post("", status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
):
    employee = await EmployeeService.create_employee(
        db, body, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {
        "data": employee_to_response(employee).model_dump(mode="json"),
        "message": "Employee created",
    }


# ── PATCH /employees/{id} — Update employee ────────────────────────

@employees_router.patch("/{employee_id}")
async def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
):
    employee = await EmployeeService.update_employee(
        db, employee_id, body, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {
        "data": employee_to_response(employee).model_dump(mode="json"),
        "message": "Employee updated",
    }


# ── DELETE /employees/{id} — Deactivate employee ───────────────────

@employees_router.delete("/{employee_id}")
async def deactivate_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
):
    employee = await EmployeeService.deactivate_employee(
        db, employee_id, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {
        "data": employee_to_response(employee).model_dump(mode="json"),
        "message": "Employee deactivated",
    }


# ═════════════════════════════════════════════════════════════════════
# Department Endpoints
# ═════════════════════════════════════════════════════════════════════


@departments_router.get("")
async def list_departments(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
    search: Optional[str] = Query(None, description="Search name, location or manager"),
):
    items = await DepartmentService.list_departments(db, search=search)
    return {"data": [d.model_dump(mode="json") for d in items]}


@departments_router.post("", status_code=201)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.admin)),
):
    department = await DepartmentService.create_department(
        db, body, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {
        "data": DepartmentResponse.model_validate(department).model_dump(mode="json"),
        "message": "Department created",
    }


@departments_router.get("/{department_id}")
async def get_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.admin)),
):
    """Department detail; Department Manager roles are reconciled first."""
    detail = await DepartmentService.get_detail(
        db, department_id, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {"data": detail.model_dump(mode="json")}


@departments_router.patch("/{department_id}")
async def update_department(
    department_id: uuid.UUID,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.admin)),
):
    department = await DepartmentService.update_department(
        db, department_id, body, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {
        "data": DepartmentResponse.model_validate(department).model_dump(mode="json"),
        "message": "Department updated",
    }


@departments_router.delete("/{department_id}")
async def delete_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.admin)),
):
    await DepartmentService.delete_department(
        db, department_id, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {"data": None, "message": "Department deleted"}


@departments_router.post("/{department_id}/reconcile")
async def reconcile_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.admin)),
):
    result = await DepartmentService.reconcile(
        db, department_id, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {
        "data": result.model_dump(mode="json"),
        "message": f"{result.writes} role change(s) applied",
    }


# ═════════════════════════════════════════════════════════════════════
# Role Endpoints
# ═════════════════════════════════════════════════════════════════════


@roles_router.get("")
async def list_roles(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.admin)),
):
    roles = await RoleService.list_roles(db)
    return {"data": [r.model_dump(mode="json") for r in roles]}


@roles_router.post("", status_code=201)
async def create_role(
    body: RoleCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.admin)),
):
    role = await RoleService.create_role(
        db, body, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {"data": role.model_dump(mode="json"), "message": "Role created"}


@roles_router.get("/{role_id}")
async def get_role(
    role_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.admin)),
):
    role = await RoleService.get_role_response(db, role_id)
    return {"data": role.model_dump(mode="json")}


@roles_router.patch("/{role_id}")
async def update_role(
    role_id: uuid.UUID,
    body: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.admin)),
):
    role = await RoleService.update_role(
        db, role_id, body, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {"data": role.model_dump(mode="json"), "message": "Role updated"}


@roles_router.delete("/{role_id}")
async def delete_role(
    role_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.admin)),
):
    await RoleService.delete_role(
        db, role_id, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {"data": None, "message": "Role deleted"}


@roles_router.put("/{role_id}/permissions")
async def replace_permissions(
    role_id: uuid.UUID,
    body: PermissionMatrix,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.admin)),
):
    role = await RoleService.replace_permissions(
        db, role_id, body, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {"data": role.model_dump(mode="json"), "message": "Permissions updated"}
