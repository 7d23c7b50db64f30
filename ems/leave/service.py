"""Leave service layer — applications, approvals, balances, reports.

Business logic:
  - total_days counts calendar days from start_date to end_date inclusive
  - Only pending requests can be approved or rejected
  - Approval deducts total_days from the employee's balance for that
    leave type and year, when such a balance exists
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ems.attendance.service import month_bounds
from ems.common.audit import create_audit_entry
from ems.common.constants import LeaveStatus
from ems.common.exceptions import (
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ems.common.filters import apply_filters, apply_search
from ems.common.pagination import PaginatedResponse, PaginationParams, paginate
from ems.core_hr.models import Department, Employee
from ems.leave.models import LeaveBalance, LeaveRequest, LeaveType
from ems.leave.schemas import (
    DepartmentLeaveReport,
    LeaveBalanceOut,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveTypeCreate,
)

logger = logging.getLogger(__name__)

NO_DEPARTMENT = "No Department"


def leave_days(start: date, end: date) -> int:
    """Calendar days in [start, end]."""
    return (end - start).days + 1


def _to_out(req: LeaveRequest) -> LeaveRequestOut:
    out = LeaveRequestOut.model_validate(req)
    emp = req.employee
    if emp is not None:
        out.employee_name = emp.name
        out.employee_code = emp.employee_code
        out.department_id = emp.department_id
        out.department_name = emp.department.name if emp.department else None
    if req.leave_type is not None:
        out.leave_type_name = req.leave_type.name
    return out


def _request_query():
    return select(LeaveRequest).options(
        selectinload(LeaveRequest.employee).selectinload(Employee.department),
        selectinload(LeaveRequest.leave_type),
    )


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: types, balances, requests, approvals."""

    # ── Leave types ─────────────────────────────────────────────────

    @staticmethod
    async def list_leave_types(db: AsyncSession) -> list[LeaveType]:
        result = await db.execute(select(LeaveType).order_by(LeaveType.name))
        return list(result.scalars().all())

    @staticmethod
    async def create_leave_type(
        db: AsyncSession,
        data: LeaveTypeCreate,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> LeaveType:
        existing = await db.execute(
            select(LeaveType.id).where(func.lower(LeaveType.name) == data.name.lower())
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("name", data.name)

        leave_type = LeaveType(**data.model_dump())
        db.add(leave_type)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_type",
            entity_id=leave_type.id,
            actor_id=actor_id,
            actor_role=actor_role,
            new_values=data.model_dump(mode="json"),
        )
        return leave_type

    # ── Balances ────────────────────────────────────────────────────

    @staticmethod
    async def get_balances(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: int,
    ) -> list[LeaveBalanceOut]:
        result = await db.execute(
            select(LeaveBalance)
            .where(LeaveBalance.employee_id == employee_id, LeaveBalance.year == year)
            .options(selectinload(LeaveBalance.leave_type))
        )
        balances = []
        for bal in result.scalars().all():
            out = LeaveBalanceOut.model_validate(bal)
            out.leave_type_name = bal.leave_type.name if bal.leave_type else None
            balances.append(out)
        balances.sort(key=lambda b: b.leave_type_name or "")
        return balances

    # ── Apply ───────────────────────────────────────────────────────

    @staticmethod
    async def apply_leave(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: LeaveRequestCreate,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> LeaveRequestOut:
        """Submit a pending leave request for *employee_id*."""
        employee = await db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))

        leave_type = await db.get(LeaveType, data.leave_type_id)
        if leave_type is None:
            raise ValidationException({"leave_type_id": ["Leave type does not exist."]})

        req = LeaveRequest(
            employee_id=employee_id,
            leave_type_id=leave_type.id,
            start_date=data.start_date,
            end_date=data.end_date,
            total_days=leave_days(data.start_date, data.end_date),
            reason=data.reason,
            status=LeaveStatus.pending,
        )
        db.add(req)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=actor_id,
            actor_role=actor_role,
            new_values={
                "leave_type_id": str(leave_type.id),
                "start_date": data.start_date.isoformat(),
                "end_date": data.end_date.isoformat(),
                "total_days": req.total_days,
            },
        )
        logger.info("Leave request %s submitted by %s", req.id, employee_id)
        return await LeaveService.get_request(db, req.id)

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def _load(db: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
        result = await db.execute(
            _request_query()
            .where(LeaveRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        req = result.scalars().first()
        if req is None:
            raise NotFoundException("LeaveRequest", str(request_id))
        return req

    @staticmethod
    async def get_request(db: AsyncSession, request_id: uuid.UUID) -> LeaveRequestOut:
        return _to_out(await LeaveService._load(db, request_id))

    @staticmethod
    async def list_own(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        status: Optional[LeaveStatus] = None,
    ) -> list[LeaveRequestOut]:
        query = (
            _request_query()
            .where(LeaveRequest.employee_id == employee_id)
            .order_by(LeaveRequest.created_at.desc())
        )
        query = apply_filters(query, LeaveRequest, {"status": status})
        result = await db.execute(query)
        return [_to_out(r) for r in result.scalars().all()]

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        department_id: Optional[uuid.UUID] = None,
        status: Optional[LeaveStatus] = None,
        employee_id: Optional[uuid.UUID] = None,
        start_date: Optional[date] = None,
        search: Optional[str] = None,
    ) -> tuple[list[LeaveRequestOut], PaginatedResponse]:
        """HR listing; *start_date* matches requests starting on that day."""
        query = (
            _request_query()
            .join(Employee, LeaveRequest.employee_id == Employee.id)
            .order_by(LeaveRequest.created_at.desc())
        )
        query = apply_filters(query, LeaveRequest, {
            "status": status,
            "employee_id": employee_id,
            "start_date": start_date,
        })
        query = apply_filters(query, Employee, {"department_id": department_id})
        query = apply_search(query, Employee, search, ["name", "employee_code"])

        page = await paginate(db, query, pagination, model=LeaveRequest)
        return [_to_out(r) for r in page.data], page

    @staticmethod
    async def list_for_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        *,
        status: Optional[LeaveStatus] = None,
        employee_id: Optional[uuid.UUID] = None,
        exclude_employee_id: Optional[uuid.UUID] = None,
    ) -> list[LeaveRequestOut]:
        query = (
            _request_query()
            .join(Employee, LeaveRequest.employee_id == Employee.id)
            .where(Employee.department_id == department_id)
            .order_by(LeaveRequest.created_at.desc())
        )
        if exclude_employee_id is not None:
            query = query.where(LeaveRequest.employee_id != exclude_employee_id)
        query = apply_filters(query, LeaveRequest, {
            "status": status,
            "employee_id": employee_id,
        })
        result = await db.execute(query)
        return [_to_out(r) for r in result.scalars().all()]

    # ── Decisions ───────────────────────────────────────────────────

    @staticmethod
    async def decide(
        db: AsyncSession,
        request_id: uuid.UUID,
        status: LeaveStatus,
        *,
        approver_id: str,
        actor_role: Optional[str] = None,
        remarks: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
        reviewer_id: Optional[uuid.UUID] = None,
        reviewer_label: str = "HR",
    ) -> LeaveRequestOut:
        """Approve or reject a pending request.

        When *department_id* is given the request must belong to an
        employee of that department (manager scope). Nobody decides a
        request filed by *reviewer_id*, their own employee record. A
        missing remark defaults to "Leave {status} by {reviewer_label}".
        """
        if status == LeaveStatus.pending:
            raise ValidationException({"status": ["Decision must be approved or rejected."]})

        req = await LeaveService._load(db, request_id)
        if department_id is not None and (
            req.employee is None or req.employee.department_id != department_id
        ):
            raise ForbiddenException("This leave request is outside your department.")
        if reviewer_id is not None and req.employee_id == reviewer_id:
            raise ForbiddenException("You cannot decide your own leave request.")

        if req.status != LeaveStatus.pending:
            raise ValidationException(
                {"status": [f"Leave request is already {req.status.value}."]}
            )

        old_status = req.status.value
        req.status = status
        req.remarks = remarks or f"Leave {status.value} by {reviewer_label}"
        req.approved_by = approver_id
        req.approved_at = datetime.now(timezone.utc)

        if status == LeaveStatus.approved:
            balance = (
                await db.execute(
                    select(LeaveBalance).where(
                        LeaveBalance.employee_id == req.employee_id,
                        LeaveBalance.leave_type_id == req.leave_type_id,
                        LeaveBalance.year == req.start_date.year,
                    )
                )
            ).scalars().first()
            if balance is not None:
                balance.used_days = (balance.used_days or 0) + req.total_days

        await db.flush()

        await create_audit_entry(
            db,
            action=status.value,
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=approver_id,
            actor_role=actor_role,
            old_values={"status": old_status},
            new_values={"status": status.value, "remarks": req.remarks},
        )
        logger.info("Leave request %s %s by %s", req.id, status.value, approver_id)
        return await LeaveService.get_request(db, req.id)

    # ── Reports ─────────────────────────────────────────────────────

    @staticmethod
    async def monthly_report(
        db: AsyncSession,
        year: int,
        month: int,
        *,
        department_id: Optional[uuid.UUID] = None,
    ) -> list[DepartmentLeaveReport]:
        """Requests starting in the month, counted per department and status."""
        if not 1 <= month <= 12:
            raise ValidationException({"month": ["month must be between 1 and 12."]})
        start, end = month_bounds(year, month)

        query = (
            select(Department.id, Department.name, LeaveRequest.status, func.count())
            .select_from(LeaveRequest)
            .join(Employee, LeaveRequest.employee_id == Employee.id)
            .outerjoin(Department, Employee.department_id == Department.id)
            .where(LeaveRequest.start_date >= start, LeaveRequest.start_date <= end)
            .group_by(Department.id, Department.name, LeaveRequest.status)
        )
        if department_id is not None:
            query = query.where(Employee.department_id == department_id)

        reports: dict[Optional[uuid.UUID], DepartmentLeaveReport] = {}
        for dept_id, dept_name, status, count in (await db.execute(query)).all():
            report = reports.setdefault(
                dept_id,
                DepartmentLeaveReport(
                    department_id=dept_id,
                    department=dept_name or NO_DEPARTMENT,
                ),
            )
            report.total += count
            key = LeaveStatus(status).value
            setattr(report, key, getattr(report, key) + count)

        return sorted(reports.values(), key=lambda r: r.department)

    @staticmethod
    async def pending_count(
        db: AsyncSession,
        *,
        employee_id: Optional[uuid.UUID] = None,
    ) -> int:
        query = (
            select(func.count())
            .select_from(LeaveRequest)
            .where(LeaveRequest.status == LeaveStatus.pending)
        )
        if employee_id is not None:
            query = query.where(LeaveRequest.employee_id == employee_id)
        return (await db.execute(query)).scalar() or 0
