"""Dashboard router — read-only endpoints for dashboard widgets.

The HR summary is available to HR and admins; the employee dashboard
to anyone linked to an employee record.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ems.auth.dependencies import require_employee, require_role
from ems.auth.schemas import CurrentUser
from ems.common.constants import UserRole
from ems.dashboard.service import DashboardService
from ems.database import get_db

router = APIRouter()


# ── GET /summary ────────────────────────────────────────────────────

@router.get("/summary")
async def hr_summary(
    user: CurrentUser = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Total employees, active departments, new joinings this month,
    pending leave requests."""
    summary = await DashboardService.hr_summary(db)
    return {"data": summary.model_dump(mode="json")}


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me")
async def employee_dashboard(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: CurrentUser = Depends(require_employee),
    db: AsyncSession = Depends(get_db),
):
    """Current-month attendance, monthly summaries, leave balances and
    pending leave count for the caller."""
    dashboard = await DashboardService.employee_dashboard(
        db, user.employee_id, year=year,
    )
    return {"data": dashboard.model_dump(mode="json")}
