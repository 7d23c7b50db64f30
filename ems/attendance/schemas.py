"""Attendance Pydantic schemas — records, summaries, analytics."""


import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ems.common.constants import AttendanceStatus


# ── Records ─────────────────────────────────────────────────────────

class AttendanceRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    date: date
    check_in: Optional[time] = None
    check_out: Optional[time] = None
    total_hours: Optional[Decimal] = None
    status: AttendanceStatus
    regularized: bool = False
    # Enriched fields (set by service layer)
    employee_name: Optional[str] = None
    employee_code: Optional[str] = None
    department_name: Optional[str] = None


class AttendanceUpsert(BaseModel):
    """Manual correction of one employee-day."""

    employee_id: uuid.UUID
    record_date: date = Field(..., alias="date")
    check_in: Optional[time] = None
    check_out: Optional[time] = None
    total_hours: Optional[Decimal] = Field(None, ge=0, le=24)
    status: AttendanceStatus
    regularized: bool = True

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _check_times(self) -> "AttendanceUpsert":
        if self.check_in and self.check_out and self.check_out < self.check_in:
            raise ValueError("check_out must not be before check_in")
        return self


# ── Calculator / summaries ──────────────────────────────────────────

class AttendancePercentageResponse(BaseModel):
    employee_id: uuid.UUID
    start_date: date
    end_date: date
    working_days: int
    present_days: int
    percentage: int


class MonthlySummary(BaseModel):
    year: int
    month: int
    working_days: int
    present: int = 0
    late: int = 0
    half_day: int = 0
    absent: int = 0
    leave: int = 0
    percentage: int = 100


# ── HR analytics ────────────────────────────────────────────────────

class StatusCount(BaseModel):
    status: str
    count: int
    percentage: int


class StatusBreakdown(BaseModel):
    day: date
    total_records: int
    active_employees: int
    not_marked: int
    statuses: list[StatusCount]


class DepartmentAttendance(BaseModel):
    department_id: uuid.UUID
    department: str
    total_employees: int
    working_days: int
    present_count: int
    attendance_percentage: int
