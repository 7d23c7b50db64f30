"""Announcement service — authoring (admin, HR, manager) and visibility."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ems.common.audit import create_audit_entry
from ems.common.constants import (
    AnnouncementPriority,
    AnnouncementStatus,
    DeliveryMethod,
    TargetAudience,
)
from ems.common.exceptions import ForbiddenException, NotFoundException, ValidationException
from ems.common.filters import apply_filters, apply_search
from ems.common.pagination import PaginatedResponse, PaginationParams, paginate
from ems.core_hr.models import Department
from ems.notifications.models import Announcement
from ems.notifications.schemas import (
    AnnouncementCreate,
    AnnouncementResponse,
    AnnouncementUpdate,
)

logger = logging.getLogger(__name__)

# Fields an explicit null in an update may clear
_NULLABLE_FIELDS = frozenset({"target_department_id", "expiry_date"})


def announcement_to_response(item: Announcement) -> AnnouncementResponse:
    resp = AnnouncementResponse.model_validate(item)
    if item.target_department is not None:
        resp.target_department_name = item.target_department.name
    return resp


def _base_query():
    return select(Announcement).options(selectinload(Announcement.target_department))


class AnnouncementService:
    """Async announcement operations.

    *department_id* arguments scope an operation to one department's
    announcements; managers always call with their own department.
    """

    @staticmethod
    async def _validate_target(
        db: AsyncSession,
        audience: TargetAudience,
        department_id: Optional[uuid.UUID],
    ) -> None:
        if audience == TargetAudience.department:
            if department_id is None:
                raise ValidationException(
                    {"target_department_id": ["Required when target_audience is department."]}
                )
            if await db.get(Department, department_id) is None:
                raise ValidationException(
                    {"target_department_id": ["Department does not exist."]}
                )

    @staticmethod
    async def list_announcements(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        type: Optional[str] = None,
        priority: Optional[AnnouncementPriority] = None,
        status: Optional[AnnouncementStatus] = None,
        search: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[AnnouncementResponse], PaginatedResponse]:
        query = _base_query().order_by(Announcement.created_at.desc())
        query = apply_filters(query, Announcement, {
            "type": type,
            "priority": priority,
            "status": status,
        })
        if department_id is not None:
            query = query.where(
                Announcement.target_audience == TargetAudience.department,
                Announcement.target_department_id == department_id,
            )
        query = apply_search(query, Announcement, search, ["title", "message"])

        page = await paginate(db, query, pagination, model=Announcement)
        return [announcement_to_response(a) for a in page.data], page

    @staticmethod
    async def get_announcement(
        db: AsyncSession,
        announcement_id: uuid.UUID,
        *,
        department_id: Optional[uuid.UUID] = None,
    ) -> Announcement:
        result = await db.execute(
            _base_query()
            .where(Announcement.id == announcement_id)
            .execution_options(populate_existing=True)
        )
        item = result.scalars().first()
        if item is None:
            raise NotFoundException("Announcement", str(announcement_id))
        if department_id is not None and item.target_department_id != department_id:
            raise ForbiddenException("This announcement belongs to another department.")
        return item

    @staticmethod
    async def create_announcement(
        db: AsyncSession,
        data: AnnouncementCreate,
        *,
        author_role: str,
        department_id: Optional[uuid.UUID] = None,
        actor_id: Optional[str] = None,
    ) -> Announcement:
        values = data.model_dump()
        if department_id is not None:
            values["target_audience"] = TargetAudience.department
            values["target_department_id"] = department_id
            values["delivery_method"] = values["delivery_method"] or DeliveryMethod.both
        else:
            values["target_audience"] = values["target_audience"] or TargetAudience.all
            values["delivery_method"] = values["delivery_method"] or DeliveryMethod.in_app
        values["priority"] = values["priority"] or AnnouncementPriority.normal
        if values["target_audience"] == TargetAudience.all:
            values["target_department_id"] = None

        await AnnouncementService._validate_target(
            db, values["target_audience"], values["target_department_id"],
        )

        item = Announcement(**values, created_by=author_role)
        db.add(item)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="announcement",
            entity_id=item.id,
            actor_id=actor_id,
            actor_role=author_role,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Announcement %s published by %s", item.id, author_role)
        return await AnnouncementService.get_announcement(db, item.id)

    @staticmethod
    async def update_announcement(
        db: AsyncSession,
        announcement_id: uuid.UUID,
        data: AnnouncementUpdate,
        *,
        department_id: Optional[uuid.UUID] = None,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> Announcement:
        item = await AnnouncementService.get_announcement(
            db, announcement_id, department_id=department_id,
        )
        changes = data.model_dump(exclude_unset=True)
        if department_id is not None:
            changes.pop("target_audience", None)
            changes.pop("target_department_id", None)
        if not changes:
            return item

        old_values = {k: str(getattr(item, k)) for k in changes}
        for key, value in changes.items():
            if value is None and key not in _NULLABLE_FIELDS:
                continue
            setattr(item, key, value)
        if item.target_audience == TargetAudience.all:
            item.target_department_id = None
        await AnnouncementService._validate_target(
            db, item.target_audience, item.target_department_id,
        )
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="announcement",
            entity_id=item.id,
            actor_id=actor_id,
            actor_role=actor_role,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return await AnnouncementService.get_announcement(db, item.id)

    @staticmethod
    async def delete_announcement(
        db: AsyncSession,
        announcement_id: uuid.UUID,
        *,
        department_id: Optional[uuid.UUID] = None,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> None:
        item = await AnnouncementService.get_announcement(
            db, announcement_id, department_id=department_id,
        )
        item_id, title = item.id, item.title
        await db.delete(item)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="announcement",
            entity_id=item_id,
            actor_id=actor_id,
            actor_role=actor_role,
            old_values={"title": title},
        )

    @staticmethod
    async def visible_for(
        db: AsyncSession,
        department_id: Optional[uuid.UUID],
        *,
        today: Optional[date] = None,
    ) -> list[AnnouncementResponse]:
        """Active, unexpired announcements addressed to everyone or to
        *department_id*."""
        today = today or date.today()
        audience = Announcement.target_audience == TargetAudience.all
        if department_id is not None:
            audience = or_(
                audience,
                and_(
                    Announcement.target_audience == TargetAudience.department,
                    Announcement.target_department_id == department_id,
                ),
            )
        result = await db.execute(
            _base_query()
            .where(
                Announcement.status == AnnouncementStatus.active,
                or_(Announcement.expiry_date.is_(None), Announcement.expiry_date >= today),
                audience,
            )
            .order_by(Announcement.created_at.desc())
        )
        return [announcement_to_response(a) for a in result.scalars().all()]
