"""Attendance router — records, percentage calculator, corrections, analytics.

All endpoints require authentication. HR-specific endpoints enforce role checks.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ems.attendance.schemas import AttendanceRecordResponse, AttendanceUpsert
from ems.attendance.service import AttendanceService
from ems.auth.dependencies import get_current_user, has_role, require_employee, require_role
from ems.auth.schemas import CurrentUser
from ems.common.constants import AttendanceStatus, UserRole
from ems.common.csv_export import csv_response, rows_to_csv
from ems.common.exceptions import ForbiddenException
from ems.common.pagination import PaginationParams
from ems.core_hr.service import EmployeeService
from ems.database import get_db

router = APIRouter(prefix="", tags=["attendance"])

ATTENDANCE_CSV_HEADER = [
    "Employee ID",
    "Employee Name",
    "Department",
    "Date",
    "Check In",
    "Check Out",
    "Hours",
    "Status",
]


# ── GET / — HR attendance list ──────────────────────────────────────

@router.get("")
async def list_attendance(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
    pagination: PaginationParams = Depends(),
    day: Optional[date] = Query(None, alias="date", description="Exact day"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    status: Optional[AttendanceStatus] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None, description="Employee name, email or code"),
):
    items, page = await AttendanceService.list_records(
        db,
        pagination,
        day=day,
        date_from=date_from,
        date_to=date_to,
        status=status,
        department_id=department_id,
        employee_id=employee_id,
        search=search,
    )
    return {
        "data": [item.model_dump(mode="json") for item in items],
        "meta": page.meta.model_dump(),
    }


# ── POST / — Manual correction ─────────────────────────────────────

@router.post("")
async def upsert_attendance(
    body: AttendanceUpsert,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
):
    """Create or overwrite one employee-day record."""
    record = await AttendanceService.upsert_record(
        db, body, actor_id=user.auth_id, actor_role=user.role.value,
    )
    return {
        "data": AttendanceRecordResponse.model_validate(record).model_dump(mode="json"),
        "message": "Attendance saved",
    }


# ── GET /export — CSV download ──────────────────────────────────────

@router.get("/export")
async def export_attendance(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    status: Optional[AttendanceStatus] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None),
):
    rows = await AttendanceService.export_rows(
        db,
        date_from=date_from,
        date_to=date_to,
        status=status,
        department_id=department_id,
        search=search,
    )
    return csv_response(
        rows_to_csv(ATTENDANCE_CSV_HEADER, rows),
        f"attendance-{date.today().isoformat()}.csv",
    )


# ── GET /breakdown — Status counts for a day ───────────────────────

@router.get("/breakdown")
async def status_breakdown(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
    day: Optional[date] = Query(None, alias="date", description="Defaults to today"),
):
    breakdown = await AttendanceService.status_breakdown(db, day or date.today())
    return {"data": breakdown.model_dump(mode="json")}


# ── GET /departments — Department-wise monthly attendance ──────────

@router.get("/departments")
async def department_attendance(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.hr)),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
):
    today = date.today()
    stats = await AttendanceService.department_attendance(
        db, year or today.year, month or today.month,
    )
    return {"data": [s.model_dump(mode="json") for s in stats]}


# ── GET /percentage — Calculator ────────────────────────────────────

@router.get("/percentage")
async def attendance_percentage(
    employee_id: uuid.UUID = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Attendance percentage for one employee over an inclusive range.

    Employees may query themselves, managers their department members,
    HR and admins anyone.
    """
    if user.employee_id != employee_id and not has_role(user, UserRole.hr):
        employee = await EmployeeService.get_employee(db, employee_id)
        if not (
            has_role(user, UserRole.manager)
            and user.department_id is not None
            and employee.department_id == user.department_id
        ):
            raise ForbiddenException("You cannot view this employee's attendance.")

    result = await AttendanceService.get_percentage(db, employee_id, start_date, end_date)
    return {"data": result.model_dump(mode="json")}


# ── GET /me — Own records ──────────────────────────────────────────

@router.get("/me")
async def my_attendance(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_employee),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    status: Optional[AttendanceStatus] = Query(None),
):
    records = await AttendanceService.list_for_employee(
        db,
        user.employee_id,
        date_from=date_from,
        date_to=date_to,
        status=status,
    )
    return {"data": [r.model_dump(mode="json") for r in records]}


# ── GET /me/summary — Own monthly summaries ────────────────────────

@router.get("/me/summary")
async def my_monthly_summary(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_employee),
    year: Optional[int] = Query(None, ge=2000, le=2100),
):
    summaries = await AttendanceService.monthly_summaries(
        db, user.employee_id, year or date.today().year,
    )
    return {"data": [s.model_dump(mode="json") for s in summaries]}
