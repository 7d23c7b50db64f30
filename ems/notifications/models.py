"""Announcement ORM model, stored in the ``notifications`` table."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ems.common.constants import (
    AnnouncementPriority,
    AnnouncementStatus,
    DeliveryMethod,
    TargetAudience,
)
from ems.database import Base


class Announcement(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    message: Mapped[str] = mapped_column(sa.Text, nullable=False)
    type: Mapped[str] = mapped_column(sa.String(50), default="general")
    priority: Mapped[AnnouncementPriority] = mapped_column(
        sa.Enum(AnnouncementPriority, name="announcement_priority", native_enum=False, length=20),
        default=AnnouncementPriority.normal,
    )
    target_audience: Mapped[TargetAudience] = mapped_column(
        sa.Enum(TargetAudience, name="target_audience", native_enum=False, length=20),
        default=TargetAudience.all,
    )
    target_department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("departments.id", ondelete="CASCADE"),
    )
    delivery_method: Mapped[DeliveryMethod] = mapped_column(
        sa.Enum(DeliveryMethod, name="delivery_method", native_enum=False, length=20),
        default=DeliveryMethod.in_app,
    )
    status: Mapped[AnnouncementStatus] = mapped_column(
        sa.Enum(AnnouncementStatus, name="announcement_status", native_enum=False, length=20),
        default=AnnouncementStatus.active,
    )
    expiry_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    # Role label of the author ("admin", "hr", "manager").
    created_by: Mapped[Optional[str]] = mapped_column(sa.String(50))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    target_department: Mapped[Optional["ems.core_hr.models.Department"]] = relationship()
