"""Leave router — apply, approve/reject, balances, leave types, reports.

All endpoints require authentication. Manager/HR-specific endpoints enforce role checks.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ems.auth.dependencies import get_current_user, has_role, require_employee, require_role
from ems.auth.schemas import CurrentUser
from ems.common.constants import LeaveStatus, UserRole
from ems.common.exceptions import ForbiddenException
from ems.common.pagination import PaginationParams
from ems.database import get_db
from ems.leave.schemas import (
    LeaveDecisionRequest,
    LeaveRequestCreate,
    LeaveTypeCreate,
    LeaveTypeOut,
)
from ems.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


async def _decide(
    db: AsyncSession,
    user: CurrentUser,
    request_id: uuid.UUID,
    status: LeaveStatus,
    remarks: Optional[str],
):
    # HR and admins decide any request; managers only their department's.
    if has_role(user, UserRole.hr):
        scope, label = None, "HR"
    else:
        if user.department_id is None:
            raise ForbiddenException("No department is linked to this account.")
        scope, label = user.department_id, "Manager"

    return await LeaveService.decide(
        db,
        request_id,
        status,
        approver_id=user.auth_id,
        actor_role=user.role.value,
        remarks=remarks,
        department_id=scope,
        reviewer_id=user.employee_id,
        reviewer_label=label,
    )


# ── GET /types ──────────────────────────────────────────────────────

@router.get("/types")
async def list_leave_types(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    types = await LeaveService.list_leave_types(db)
    return {"data": [LeaveTypeOut.model_validate(t).model_dump(mode="json") for t in types]}


# ── POST /types ─────────────────────────────────────────────────────

@router.post("/types", status_code=201)
async def create_leave_type(
    body: LeaveTypeCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
):
    leave_type = await LeaveService.create_leave_type(
        db, body, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {
        "data": LeaveTypeOut.model_validate(leave_type).model_dump(mode="json"),
        "message": "Leave type created",
    }


# ── POST /apply ─────────────────────────────────────────────────────

@router.post("/apply", status_code=201)
async def apply_leave(
    body: LeaveRequestCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_employee),
):
    """Apply for leave; the request starts pending."""
    leave = await LeaveService.apply_leave(
        db, user.employee_id, body, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {"data": leave.model_dump(mode="json"), "message": "Leave request submitted"}


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me")
async def my_leaves(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_employee),
    status: Optional[LeaveStatus] = Query(None),
):
    leaves = await LeaveService.list_own(db, user.employee_id, status=status)
    return {"data": [lv.model_dump(mode="json") for lv in leaves]}


# ── GET /me/balances ────────────────────────────────────────────────

@router.get("/me/balances")
async def my_balances(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_employee),
    year: Optional[int] = Query(None, ge=2000, le=2100),
):
    balances = await LeaveService.get_balances(
        db, user.employee_id, year or date.today().year,
    )
    return {"data": [b.model_dump(mode="json") for b in balances]}


# ── GET /team ───────────────────────────────────────────────────────

@router.get("/team")
async def team_leaves(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.manager)),
    status: Optional[LeaveStatus] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
):
    """Leave requests of the caller's department, other than their own."""
    if user.department_id is None:
        raise ForbiddenException("No department is linked to this account.")
    leaves = await LeaveService.list_for_department(
        db, user.department_id, status=status, employee_id=employee_id,
        exclude_employee_id=user.employee_id,
    )
    return {"data": [lv.model_dump(mode="json") for lv in leaves]}


# ── GET /report ─────────────────────────────────────────────────────

@router.get("/report")
async def monthly_report(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    department_id: Optional[uuid.UUID] = Query(None),
):
    today = date.today()
    reports = await LeaveService.monthly_report(
        db, year or today.year, month or today.month, department_id=department_id,
    )
    return {"data": [r.model_dump(mode="json") for r in reports]}


# ── GET / — HR listing ──────────────────────────────────────────────

@router.get("")
async def list_leaves(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
    pagination: PaginationParams = Depends(),
    department_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
    start_date: Optional[date] = Query(None, description="Requests starting on this day"),
    search: Optional[str] = Query(None, description="Employee name or code"),
):
    items, page = await LeaveService.list_requests(
        db,
        pagination,
        department_id=department_id,
        status=status,
        employee_id=employee_id,
        start_date=start_date,
        search=search,
    )
    return {
        "data": [item.model_dump(mode="json") for item in items],
        "meta": page.meta.model_dump(),
    }


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{request_id}")
async def get_leave(
    request_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    leave = await LeaveService.get_request(db, request_id)
    if not (
        has_role(user, UserRole.hr)
        or leave.employee_id == user.employee_id
        or (
            has_role(user, UserRole.manager)
            and user.department_id is not None
            and leave.department_id == user.department_id
        )
    ):
        raise ForbiddenException("You cannot view this leave request.")
    return {"data": leave.model_dump(mode="json")}


# ── POST /{id}/approve ──────────────────────────────────────────────

@router.post("/{request_id}/approve")
async def approve_leave(
    request_id: uuid.UUID,
    body: Optional[LeaveDecisionRequest] = None,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.manager)),
):
    leave = await _decide(
        db, user, request_id, LeaveStatus.approved, body.remarks if body else None,
    )
    return {"data": leave.model_dump(mode="json"), "message": "Leave approved"}


# ── POST /{id}/reject ───────────────────────────────────────────────

@router.post("/{request_id}/reject")
async def reject_leave(
    request_id: uuid.UUID,
    body: Optional[LeaveDecisionRequest] = None,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.manager)),
):
    leave = await _decide(
        db, user, request_id, LeaveStatus.rejected, body.remarks if body else None,
    )
    return {"data": leave.model_dump(mode="json"), "message": "Leave rejected"}
