"""Dashboard Pydantic response schemas."""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel

from ems.attendance.schemas import MonthlySummary
from ems.leave.schemas import LeaveBalanceOut


class HRSummaryResponse(BaseModel):
    """Headline numbers for the HR and admin dashboards."""

    total_employees: int
    active_departments: int
    new_joinings_this_month: int
    pending_leaves: int


class EmployeeDashboardResponse(BaseModel):
    """Everything the employee dashboard shows for one year."""

    employee_id: uuid.UUID
    name: str
    department_name: Optional[str] = None
    year: int
    current_month_attendance: int
    monthly_attendance: list[MonthlySummary]
    leave_balances: list[LeaveBalanceOut]
    pending_leaves: int
