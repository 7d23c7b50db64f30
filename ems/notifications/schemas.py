"""Announcement Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ems.common.constants import (
    AnnouncementPriority,
    AnnouncementStatus,
    DeliveryMethod,
    TargetAudience,
)


class AnnouncementCreate(BaseModel):
    """Body for publishing an announcement.

    Fields left unset take the author's defaults: admin and HR publish
    in-app to everyone, managers publish to their department by both
    channels.
    """

    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    type: str = Field("general", max_length=50)
    priority: Optional[AnnouncementPriority] = None
    target_audience: Optional[TargetAudience] = None
    target_department_id: Optional[uuid.UUID] = None
    delivery_method: Optional[DeliveryMethod] = None
    status: AnnouncementStatus = AnnouncementStatus.active
    expiry_date: Optional[date] = None


class AnnouncementUpdate(BaseModel):
    """All fields optional — only provided fields are updated."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    message: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, max_length=50)
    priority: Optional[AnnouncementPriority] = None
    target_audience: Optional[TargetAudience] = None
    target_department_id: Optional[uuid.UUID] = None
    delivery_method: Optional[DeliveryMethod] = None
    status: Optional[AnnouncementStatus] = None
    expiry_date: Optional[date] = None


class AnnouncementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    message: str
    type: str
    priority: AnnouncementPriority
    target_audience: TargetAudience
    target_department_id: Optional[uuid.UUID] = None
    target_department_name: Optional[str] = None
    delivery_method: DeliveryMethod
    status: AnnouncementStatus
    expiry_date: Optional[date] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
