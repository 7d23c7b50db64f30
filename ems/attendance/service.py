"""Attendance service layer — percentage calculator, record reads,
manual corrections and HR analytics.

Business logic:
  - Working days exclude Saturday and Sunday
  - present, late and half_day records count as attended
  - Percentages round half up and never exceed 100
"""

from __future__ import annotations

import calendar
import logging
import math
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ems.attendance.models import AttendanceRecord
from ems.attendance.schemas import (
    AttendancePercentageResponse,
    AttendanceRecordResponse,
    AttendanceUpsert,
    DepartmentAttendance,
    MonthlySummary,
    StatusBreakdown,
    StatusCount,
)
from ems.common.audit import create_audit_entry
from ems.common.constants import (
    ATTENDED_STATUSES,
    AttendanceStatus,
    DepartmentStatus,
    EmployeeStatus,
)
from ems.common.exceptions import NotFoundException, ValidationException
from ems.common.filters import apply_filters, apply_search
from ems.common.pagination import PaginatedResponse, PaginationParams, paginate
from ems.core_hr.models import Department, Employee

logger = logging.getLogger(__name__)

MAX_DATE_RANGE_DAYS = 366


# ═════════════════════════════════════════════════════════════════════
# Pure helpers
# ═════════════════════════════════════════════════════════════════════


def count_working_days(start: date, end: date) -> int:
    """Days in [start, end] that are not Saturday or Sunday."""
    if end < start:
        return 0
    full_weeks, extra = divmod((end - start).days + 1, 7)
    days = full_weeks * 5
    for offset in range(extra):
        if (start + timedelta(days=offset)).weekday() < 5:
            days += 1
    return days


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_attendance_percentage(present_days: int, working_days: int) -> int:
    """Attended share of working days as an integer in [0, 100].

    A range without working days had nothing to miss and scores 100.
    """
    if working_days <= 0:
        return 100
    pct = round_half_up(present_days / working_days * 100)
    return max(0, min(100, pct))


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


# ═════════════════════════════════════════════════════════════════════
# Calculator
# ═════════════════════════════════════════════════════════════════════


async def count_present_days(
    db: AsyncSession,
    employee_id: uuid.UUID,
    start: date,
    end: date,
) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(AttendanceRecord)
        .where(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.date >= start,
            AttendanceRecord.date <= end,
            AttendanceRecord.status.in_(ATTENDED_STATUSES),
        )
    )
    return result.scalar() or 0


async def attendance_percentage(
    db: AsyncSession,
    employee_id: uuid.UUID,
    start: date,
    end: date,
) -> int:
    """Attendance percentage of one employee over [start, end]."""
    working_days = count_working_days(start, end)
    present_days = await count_present_days(db, employee_id, start, end)
    return compute_attendance_percentage(present_days, working_days)


# ═════════════════════════════════════════════════════════════════════
# AttendanceService
# ═════════════════════════════════════════════════════════════════════


def _to_response(record: AttendanceRecord) -> AttendanceRecordResponse:
    item = AttendanceRecordResponse.model_validate(record)
    emp = record.employee
    if emp is not None:
        item.employee_name = emp.name
        item.employee_code = emp.employee_code
        item.department_name = emp.department.name if emp.department else None
    return item


def _hours_between(check_in, check_out) -> Optional[Decimal]:
    if check_in is None or check_out is None:
        return None
    seconds = (
        datetime.combine(date.min, check_out) - datetime.combine(date.min, check_in)
    ).total_seconds()
    return Decimal(str(round(seconds / 3600, 2)))


class AttendanceService:
    """Async attendance reads, corrections and analytics."""

    # ── Percentage ──────────────────────────────────────────────────

    @staticmethod
    async def get_percentage(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start: date,
        end: date,
    ) -> AttendancePercentageResponse:
        if end < start:
            raise ValidationException({"end_date": ["end_date must not be before start_date."]})
        if (end - start).days > MAX_DATE_RANGE_DAYS:
            raise ValidationException(
                {"end_date": [f"Range may not exceed {MAX_DATE_RANGE_DAYS} days."]},
            )
        working_days = count_working_days(start, end)
        present_days = await count_present_days(db, employee_id, start, end)
        return AttendancePercentageResponse(
            employee_id=employee_id,
            start_date=start,
            end_date=end,
            working_days=working_days,
            present_days=present_days,
            percentage=compute_attendance_percentage(present_days, working_days),
        )

    # ── List (HR) ───────────────────────────────────────────────────

    @staticmethod
    async def list_records(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        day: Optional[date] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
        department_id: Optional[uuid.UUID] = None,
        employee_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> tuple[list[AttendanceRecordResponse], PaginatedResponse]:
        query = (
            select(AttendanceRecord)
            .join(Employee, AttendanceRecord.employee_id == Employee.id)
            .options(
                selectinload(AttendanceRecord.employee)
                .selectinload(Employee.department),
            )
            .order_by(AttendanceRecord.date.desc(), Employee.name)
        )
        query = apply_filters(query, AttendanceRecord, {
            "date": day,
            "date__from": date_from,
            "date__to": date_to,
            "status": status,
            "employee_id": employee_id,
        })
        query = apply_filters(query, Employee, {"department_id": department_id})
        query = apply_search(query, Employee, search, ["name", "email", "employee_code"])

        page = await paginate(db, query, pagination, model=AttendanceRecord)
        return [_to_response(r) for r in page.data], page

    # ── Own records ─────────────────────────────────────────────────

    @staticmethod
    async def list_for_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> list[AttendanceRecordResponse]:
        query = (
            select(AttendanceRecord)
            .where(AttendanceRecord.employee_id == employee_id)
            .order_by(AttendanceRecord.date.desc())
        )
        query = apply_filters(query, AttendanceRecord, {
            "date__from": date_from,
            "date__to": date_to,
            "status": status,
        })
        result = await db.execute(query)
        return [AttendanceRecordResponse.model_validate(r) for r in result.scalars().all()]

    @staticmethod
    async def monthly_summaries(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: int,
        *,
        today: Optional[date] = None,
    ) -> list[MonthlySummary]:
        """Per-month counts for *year*; months after *today* are omitted
        and the current month only counts working days up to *today*."""
        today = today or date.today()
        start, _ = month_bounds(year, 1)
        _, end = month_bounds(year, 12)

        rows = (
            await db.execute(
                select(AttendanceRecord.date, AttendanceRecord.status).where(
                    AttendanceRecord.employee_id == employee_id,
                    AttendanceRecord.date >= start,
                    AttendanceRecord.date <= end,
                )
            )
        ).all()

        summaries: list[MonthlySummary] = []
        for month in range(1, 13):
            first, last = month_bounds(year, month)
            if first > today:
                break
            last = min(last, today)
            summary = MonthlySummary(
                year=year,
                month=month,
                working_days=count_working_days(first, last),
            )
            for record_date, status in rows:
                if not (first <= record_date <= last):
                    continue
                field = AttendanceStatus(status).value
                if hasattr(summary, field):
                    setattr(summary, field, getattr(summary, field) + 1)
            attended = summary.present + summary.late + summary.half_day
            summary.percentage = compute_attendance_percentage(attended, summary.working_days)
            summaries.append(summary)
        return summaries

    # ── Manual correction ───────────────────────────────────────────

    @staticmethod
    async def upsert_record(
        db: AsyncSession,
        data: AttendanceUpsert,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> AttendanceRecord:
        """Create or overwrite the record for one employee-day."""
        employee = await db.get(Employee, data.employee_id)
        if employee is None:
            raise NotFoundException("Employee", str(data.employee_id))

        total_hours = data.total_hours
        if total_hours is None:
            total_hours = _hours_between(data.check_in, data.check_out)

        record = (
            await db.execute(
                select(AttendanceRecord).where(
                    AttendanceRecord.employee_id == data.employee_id,
                    AttendanceRecord.date == data.record_date,
                )
            )
        ).scalars().first()

        action = "update"
        old_values = None
        if record is None:
            action = "create"
            record = AttendanceRecord(employee_id=data.employee_id, date=data.record_date)
            db.add(record)
        else:
            old_values = {
                "status": record.status.value,
                "check_in": record.check_in.isoformat() if record.check_in else None,
                "check_out": record.check_out.isoformat() if record.check_out else None,
            }

        record.check_in = data.check_in
        record.check_out = data.check_out
        record.total_hours = total_hours
        record.status = data.status
        record.regularized = data.regularized
        await db.flush()

        await create_audit_entry(
            db,
            action=action,
            entity_type="attendance",
            entity_id=record.id,
            actor_id=actor_id,
            actor_role=actor_role,
            old_values=old_values,
            new_values=data.model_dump(mode="json", by_alias=True),
        )
        logger.info("Attendance %s for %s on %s", action, data.employee_id, data.record_date)
        return record

    # ── Analytics ───────────────────────────────────────────────────

    @staticmethod
    async def status_breakdown(db: AsyncSession, day: date) -> StatusBreakdown:
        """Count of records per status on *day*."""
        rows = (
            await db.execute(
                select(AttendanceRecord.status, func.count())
                .where(AttendanceRecord.date == day)
                .group_by(AttendanceRecord.status)
            )
        ).all()
        counts = {AttendanceStatus(status).value: count for status, count in rows}
        total = sum(counts.values())

        active = (
            await db.execute(
                select(func.count())
                .select_from(Employee)
                .where(Employee.status == EmployeeStatus.active)
            )
        ).scalar() or 0

        marked_active = (
            await db.execute(
                select(func.count(func.distinct(AttendanceRecord.employee_id)))
                .select_from(AttendanceRecord)
                .join(Employee, AttendanceRecord.employee_id == Employee.id)
                .where(
                    AttendanceRecord.date == day,
                    Employee.status == EmployeeStatus.active,
                )
            )
        ).scalar() or 0

        statuses = [
            StatusCount(
                status=status.value,
                count=counts.get(status.value, 0),
                percentage=round_half_up(counts.get(status.value, 0) / total * 100) if total else 0,
            )
            for status in AttendanceStatus
            if counts.get(status.value)
        ]
        return StatusBreakdown(
            day=day,
            total_records=total,
            active_employees=active,
            not_marked=max(0, active - marked_active),
            statuses=statuses,
        )

    @staticmethod
    async def department_attendance(
        db: AsyncSession,
        year: int,
        month: int,
    ) -> list[DepartmentAttendance]:
        """Attended records over (active employees × working days) for
        each active department in the month."""
        if not 1 <= month <= 12:
            raise ValidationException({"month": ["month must be between 1 and 12."]})
        start, end = month_bounds(year, month)
        working_days = count_working_days(start, end)

        departments: Sequence[Department] = (
            await db.execute(
                select(Department)
                .where(Department.status == DepartmentStatus.active)
                .order_by(Department.name)
            )
        ).scalars().all()

        headcounts = dict(
            (
                await db.execute(
                    select(Employee.department_id, func.count())
                    .where(
                        Employee.status == EmployeeStatus.active,
                        Employee.department_id.is_not(None),
                    )
                    .group_by(Employee.department_id)
                )
            ).all()
        )
        present = dict(
            (
                await db.execute(
                    select(Employee.department_id, func.count())
                    .select_from(AttendanceRecord)
                    .join(Employee, AttendanceRecord.employee_id == Employee.id)
                    .where(
                        Employee.status == EmployeeStatus.active,
                        AttendanceRecord.date >= start,
                        AttendanceRecord.date <= end,
                        AttendanceRecord.status.in_(ATTENDED_STATUSES),
                    )
                    .group_by(Employee.department_id)
                )
            ).all()
        )

        stats: list[DepartmentAttendance] = []
        for dept in departments:
            employees = headcounts.get(dept.id, 0)
            present_count = present.get(dept.id, 0)
            possible = employees * working_days
            pct = min(100, round_half_up(present_count / possible * 100)) if possible else 0
            stats.append(
                DepartmentAttendance(
                    department_id=dept.id,
                    department=dept.name,
                    total_employees=employees,
                    working_days=working_days,
                    present_count=present_count,
                    attendance_percentage=pct,
                )
            )
        return stats

    # ── Export ──────────────────────────────────────────────────────

    @staticmethod
    async def export_rows(
        db: AsyncSession,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
        department_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> list[list]:
        query = (
            select(AttendanceRecord)
            .join(Employee, AttendanceRecord.employee_id == Employee.id)
            .options(
                selectinload(AttendanceRecord.employee)
                .selectinload(Employee.department),
            )
            .order_by(AttendanceRecord.date.desc(), Employee.name)
        )
        query = apply_filters(query, AttendanceRecord, {
            "date__from": date_from,
            "date__to": date_to,
            "status": status,
        })
        query = apply_filters(query, Employee, {"department_id": department_id})
        query = apply_search(query, Employee, search, ["name", "email", "employee_code"])

        records = (await db.execute(query)).scalars().all()
        rows: list[list] = []
        for rec in records:
            emp = rec.employee
            rows.append([
                emp.employee_code,
                emp.name,
                emp.department.name if emp.department else None,
                rec.date.isoformat(),
                rec.check_in.strftime("%H:%M") if rec.check_in else None,
                rec.check_out.strftime("%H:%M") if rec.check_out else None,
                rec.total_hours,
                rec.status.value,
            ])
        return rows
