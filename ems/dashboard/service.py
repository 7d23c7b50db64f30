"""Dashboard service — read-only aggregation queries across HR modules.

All methods are static async, following the project convention.
Counts run at DB level; nothing is loaded row by row.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.attendance.service import AttendanceService, attendance_percentage
from ems.common.constants import DepartmentStatus, EmployeeStatus, LeaveStatus
from ems.core_hr.models import Department, Employee
from ems.core_hr.service import EmployeeService
from ems.dashboard.schemas import EmployeeDashboardResponse, HRSummaryResponse
from ems.leave.models import LeaveRequest
from ems.leave.service import LeaveService


class DashboardService:
    """Async dashboard aggregation queries."""

    # ═════════════════════════════════════════════════════════════════
    # HR / admin summary
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def hr_summary(
        db: AsyncSession,
        *,
        today: Optional[date] = None,
    ) -> HRSummaryResponse:
        """Active employees, active departments, joinings since the first
        of the month, and pending leave requests."""
        today = today or date.today()
        month_start = today.replace(day=1)

        total_q = (
            select(func.count())
            .select_from(Employee)
            .where(Employee.status == EmployeeStatus.active)
        )
        departments_q = (
            select(func.count())
            .select_from(Department)
            .where(Department.status == DepartmentStatus.active)
        )
        joinings_q = (
            select(func.count())
            .select_from(Employee)
            .where(Employee.joining_date >= month_start)
        )
        pending_q = (
            select(func.count())
            .select_from(LeaveRequest)
            .where(LeaveRequest.status == LeaveStatus.pending)
        )

        return HRSummaryResponse(
            total_employees=(await db.execute(total_q)).scalar() or 0,
            active_departments=(await db.execute(departments_q)).scalar() or 0,
            new_joinings_this_month=(await db.execute(joinings_q)).scalar() or 0,
            pending_leaves=(await db.execute(pending_q)).scalar() or 0,
        )

    # ═════════════════════════════════════════════════════════════════
    # Employee dashboard
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def employee_dashboard(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        year: Optional[int] = None,
        today: Optional[date] = None,
    ) -> EmployeeDashboardResponse:
        today = today or date.today()
        year = year or today.year
        employee = await EmployeeService.get_employee(db, employee_id)

        current = await attendance_percentage(
            db, employee_id, today.replace(day=1), today,
        )
        monthly = await AttendanceService.monthly_summaries(
            db, employee_id, year, today=today,
        )
        balances = await LeaveService.get_balances(db, employee_id, year)
        pending = await LeaveService.pending_count(db, employee_id=employee_id)

        return EmployeeDashboardResponse(
            employee_id=employee.id,
            name=employee.name,
            department_name=employee.department.name if employee.department else None,
            year=year,
            current_month_attendance=current,
            monthly_attendance=monthly,
            leave_balances=balances,
            pending_leaves=pending,
        )
