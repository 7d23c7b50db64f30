"""Core HR ORM models: Department, Role, RolePermission, Employee.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations.
The schema is owned by the database; the service never migrates it.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ems.common.constants import (
    DepartmentStatus,
    EmployeeStatus,
    EmploymentType,
    UserRole,
)
from ems.database import Base

if TYPE_CHECKING:
    from ems.attendance.models import AttendanceRecord
    from ems.leave.models import LeaveBalance, LeaveRequest


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class Department(Base):
    """Organisational department with an optional manager reference."""

    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    location: Mapped[Optional[str]] = mapped_column(sa.String(150))
    manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey(
            "employees.id",
            name="fk_department_manager",
            use_alter=True,
            ondelete="SET NULL",
        ),
    )
    status: Mapped[DepartmentStatus] = mapped_column(
        sa.Enum(DepartmentStatus, name="department_status", native_enum=False, length=20),
        default=DepartmentStatus.active,
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    manager: Mapped[Optional[Employee]] = relationship(
        foreign_keys=[manager_id], post_update=True,
    )
    employees: Mapped[list[Employee]] = relationship(
        back_populates="department", foreign_keys="Employee.department_id",
    )

    def __repr__(self) -> str:
        return f"<Department {self.name!r}>"


# ═════════════════════════════════════════════════════════════════════
# Role
# ═════════════════════════════════════════════════════════════════════


class Role(Base):
    """Job role. ``access_level`` is the explicit portal access tag;
    rows without one are classified from ``role_name``."""

    __tablename__ = "roles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    role_name: Mapped[str] = mapped_column(sa.String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    access_level: Mapped[Optional[UserRole]] = mapped_column(
        sa.Enum(UserRole, name="user_role", native_enum=False, length=20),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    permissions: Mapped[list[RolePermission]] = relationship(
        back_populates="role", cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Role {self.role_name!r}>"


class RolePermission(Base):
    """Per-module CRUD flags for a role."""

    __tablename__ = "role_permissions"
    __table_args__ = (
        sa.UniqueConstraint("role_id", "module", name="uq_role_permission_module"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    role_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
    )
    module: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    can_view: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    can_add: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    can_edit: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    can_delete: Mapped[bool] = mapped_column(sa.Boolean, default=False)

    role: Mapped[Role] = relationship(back_populates="permissions")


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class Employee(Base):
    """Core employee record — central entity for the portal."""

    __tablename__ = "employees"

    # ── Primary key ─────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Identifiers ─────────────────────────────────────────────────
    auth_user_id: Mapped[Optional[str]] = mapped_column(
        sa.String(255), unique=True,
    )
    employee_code: Mapped[Optional[str]] = mapped_column(
        sa.String(20), unique=True,
    )

    # ── Identity / contact ──────────────────────────────────────────
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(
        sa.String(255), unique=True, nullable=False,
    )
    phone: Mapped[Optional[str]] = mapped_column(sa.String(20))

    # ── Org placement ───────────────────────────────────────────────
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("departments.id", ondelete="SET NULL"),
    )
    role_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("roles.id"),
    )
    manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"),
    )
    designation: Mapped[Optional[str]] = mapped_column(sa.String(150))

    # ── Employment lifecycle ────────────────────────────────────────
    status: Mapped[EmployeeStatus] = mapped_column(
        sa.Enum(EmployeeStatus, name="employee_status", native_enum=False, length=20),
        default=EmployeeStatus.active,
    )
    employment_type: Mapped[EmploymentType] = mapped_column(
        sa.Enum(EmploymentType, name="employment_type", native_enum=False, length=20),
        default=EmploymentType.full_time,
    )
    joining_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    # ── Timestamps ──────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    department: Mapped[Optional[Department]] = relationship(
        back_populates="employees", foreign_keys=[department_id],
    )
    role: Mapped[Optional[Role]] = relationship(foreign_keys=[role_id])
    manager: Mapped[Optional[Employee]] = relationship(
        remote_side=[id], foreign_keys=[manager_id],
    )

    attendance_records: Mapped[list["AttendanceRecord"]] = relationship(
        back_populates="employee",
    )
    leave_requests: Mapped[list["LeaveRequest"]] = relationship(
        back_populates="employee",
        foreign_keys="LeaveRequest.employee_id",
    )
    leave_balances: Mapped[list["LeaveBalance"]] = relationship(
        back_populates="employee",
    )

    # ── Helpers ─────────────────────────────────────────────────────

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.active

    def __repr__(self) -> str:
        return f"<Employee {self.employee_code} {self.name}>"
