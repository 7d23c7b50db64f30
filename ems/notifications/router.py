"""Announcement endpoints — authoring for admin/HR/managers, feed for everyone."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ems.auth.dependencies import get_current_user, has_role, require_role
from ems.auth.schemas import CurrentUser
from ems.common.constants import AnnouncementPriority, AnnouncementStatus, UserRole
from ems.common.exceptions import ForbiddenException
from ems.common.pagination import PaginationParams
from ems.database import get_db
from ems.notifications.schemas import AnnouncementCreate, AnnouncementUpdate
from ems.notifications.service import AnnouncementService, announcement_to_response

router = APIRouter(prefix="", tags=["announcements"])


def _scope(user: CurrentUser) -> Optional[uuid.UUID]:
    """None for HR and admins (all announcements); the manager's own
    department otherwise."""
    if has_role(user, UserRole.hr):
        return None
    if user.department_id is None:
        raise ForbiddenException("No department is linked to this account.")
    return user.department_id


# ── GET / — authoring list ──────────────────────────────────────────

@router.get("")
async def list_announcements(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.manager)),
    pagination: PaginationParams = Depends(),
    type: Optional[str] = Query(None, description="Filter by type"),
    priority: Optional[AnnouncementPriority] = Query(None),
    status: Optional[AnnouncementStatus] = Query(None),
    search: Optional[str] = Query(None, description="Search title and message"),
):
    items, page = await AnnouncementService.list_announcements(
        db,
        pagination,
        type=type,
        priority=priority,
        status=status,
        search=search,
        department_id=_scope(user),
    )
    return {
        "data": [item.model_dump(mode="json") for item in items],
        "meta": page.meta.model_dump(),
    }


# ── GET /visible — caller's feed ────────────────────────────────────
# NOTE: must be registered before /{announcement_id}.

@router.get("/visible")
async def visible_announcements(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Announcements addressed to everyone or to the caller's department."""
    items = await AnnouncementService.visible_for(db, user.department_id)
    return {"data": [item.model_dump(mode="json") for item in items]}


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", status_code=201)
async def create_announcement(
    body: AnnouncementCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.manager)),
):
    item = await AnnouncementService.create_announcement(
        db,
        body,
        author_role=user.role.value,
        department_id=_scope(user),
        actor_id=user.auth_id,
    )
    return {
        "data": announcement_to_response(item).model_dump(mode="json"),
        "message": "Announcement published",
    }


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{announcement_id}")
async def get_announcement(
    announcement_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.manager)),
):
    item = await AnnouncementService.get_announcement(
        db, announcement_id, department_id=_scope(user),
    )
    return {"data": announcement_to_response(item).model_dump(mode="json")}


# ── PATCH /{id} ─────────────────────────────────────────────────────

@router.patch("/{announcement_id}")
async def update_announcement(
    announcement_id: uuid.UUID,
    body: AnnouncementUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.manager)),
):
    item = await AnnouncementService.update_announcement(
        db,
        announcement_id,
        body,
        department_id=_scope(user),
        actor_id=user.auth_id,
        actor_role=user.role.value,
    )
    return {
        "data": announcement_to_response(item).model_dump(mode="json"),
        "message": "Announcement updated",
    }


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{announcement_id}")
async def delete_announcement(
    announcement_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.manager)),
):
    await AnnouncementService.delete_announcement(
        db,
        announcement_id,
        department_id=_scope(user),
        actor_id=user.auth_id,
        actor_role=user.role.value,
    )
    return {"data": None, "message": "Announcement deleted"}
