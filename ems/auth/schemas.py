"""Auth Pydantic schemas for request / response validation."""


import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ems.common.constants import UserRole


# ── Requests ────────────────────────────────────────────────────────

class SyncRequest(BaseModel):
    """Identity sync payload posted by the frontend after sign-in.

    Both fields are optional at the schema level so a missing one can be
    answered with a 400 rather than a validation error.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    auth_id: Optional[str] = Field(None, alias="authId")


# ── Identity / resolution ──────────────────────────────────────────

class Identity(BaseModel):
    """Verified caller identity taken from the bearer token."""

    auth_id: str
    email: Optional[str] = None


class RoleResolution(BaseModel):
    role: UserRole
    employee_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    display_name: Optional[str] = None
    source: str = "default"
    matched: bool = False
    errors: int = 0


class CurrentUser(BaseModel):
    """Resolved caller passed to route handlers."""

    auth_id: str
    email: Optional[str] = None
    role: UserRole
    employee_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    display_name: Optional[str] = None


class RouteDecision(BaseModel):
    allow: bool
    redirect: Optional[str] = None


# ── Responses ───────────────────────────────────────────────────────

class SyncResponse(BaseModel):
    success: bool = True


class MeResponse(BaseModel):
    auth_id: str
    email: Optional[str] = None
    role: str
    employee_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    display_name: Optional[str] = None
    source: str
    dashboard: str
