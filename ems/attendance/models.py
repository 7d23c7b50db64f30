"""Attendance ORM model: AttendanceRecord.

Records are written by the external check-in process; this service reads
and aggregates them, and HR may upsert one manually for corrections.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ems.common.constants import AttendanceStatus
from ems.database import Base


class AttendanceRecord(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "date", name="uq_attendance_emp_date"),
        sa.Index("ix_attendance_date", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    check_in: Mapped[Optional[time]] = mapped_column(sa.Time)
    check_out: Mapped[Optional[time]] = mapped_column(sa.Time)
    total_hours: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(5, 2))
    status: Mapped[AttendanceStatus] = mapped_column(
        sa.Enum(AttendanceStatus, name="attendance_status", native_enum=False, length=20),
        nullable=False,
        default=AttendanceStatus.present,
    )
    regularized: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    employee: Mapped["ems.core_hr.models.Employee"] = relationship(
        back_populates="attendance_records"
    )
