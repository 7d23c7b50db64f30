"""Core HR Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Response / *Detail → response bodies (read)
  - *Summary / *ListItem → compact read representations
"""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ems.common.constants import (
    DepartmentStatus,
    EmployeeStatus,
    EmploymentType,
    UserRole,
)


# ═════════════════════════════════════════════════════════════════════
# Employee — read schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeSummary(BaseModel):
    """Minimal employee info embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: Optional[str] = None
    name: str
    email: str
    designation: Optional[str] = None


class EmployeeResponse(BaseModel):
    """Full employee representation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    auth_user_id: Optional[str] = None
    employee_code: Optional[str] = None
    name: str
    email: str
    phone: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    role_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    designation: Optional[str] = None
    status: EmployeeStatus
    employment_type: EmploymentType
    joining_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime
    # Enriched fields (set by service layer)
    department_name: Optional[str] = None
    role_name: Optional[str] = None


class TeamMember(EmployeeSummary):
    """Row of a manager's team view."""

    status: EmployeeStatus
    role_name: Optional[str] = None
    attendance_percentage: int = 100
    pending_leaves: int = 0


# ═════════════════════════════════════════════════════════════════════
# Employee — write schemas
# ═════════════════════════════════════════════════════════════════════


class EmployeeCreate(BaseModel):
    """Payload for creating a new employee."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    employee_code: Optional[str] = Field(None, max_length=20)
    phone: Optional[str] = Field(None, max_length=20)
    department_id: Optional[uuid.UUID] = None
    role_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    designation: Optional[str] = Field(None, max_length=150)
    status: EmployeeStatus = EmployeeStatus.active
    employment_type: EmploymentType = EmploymentType.full_time
    joining_date: Optional[date] = None


class EmployeeUpdate(BaseModel):
    """Partial update — only supplied fields are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    employee_code: Optional[str] = Field(None, max_length=20)
    phone: Optional[str] = Field(None, max_length=20)
    department_id: Optional[uuid.UUID] = None
    role_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    designation: Optional[str] = Field(None, max_length=150)
    status: Optional[EmployeeStatus] = None
    employment_type: Optional[EmploymentType] = None
    joining_date: Optional[date] = None


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=150)
    manager_id: Optional[uuid.UUID] = None
    status: DepartmentStatus = DepartmentStatus.active


class DepartmentUpdate(BaseModel):
    """Rename, change status, or assign / unassign the manager.

    Sending ``"manager_id": null`` explicitly unassigns the manager.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=150)
    manager_id: Optional[uuid.UUID] = None
    status: Optional[DepartmentStatus] = None


class DepartmentResponse(BaseModel):
    """Full department representation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    manager_id: Optional[uuid.UUID] = None
    status: DepartmentStatus
    created_at: datetime
    updated_at: datetime
    # Enriched fields (set by service layer)
    employee_count: int = 0
    manager_name: Optional[str] = None


class ReconcileResult(BaseModel):
    """Outcome of one department-manager reconciliation."""

    demoted: list[uuid.UUID] = Field(default_factory=list)
    promoted: Optional[uuid.UUID] = None
    skipped: list[str] = Field(default_factory=list)

    @property
    def writes(self) -> int:
        return len(self.demoted) + (1 if self.promoted else 0)


class DepartmentDetail(DepartmentResponse):
    employees: list[EmployeeSummary] = Field(default_factory=list)
    reconciliation: Optional[ReconcileResult] = None


# ═════════════════════════════════════════════════════════════════════
# Role
# ═════════════════════════════════════════════════════════════════════


class PermissionEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    module: str
    can_view: bool = False
    can_add: bool = False
    can_edit: bool = False
    can_delete: bool = False


class PermissionMatrix(BaseModel):
    """Full replacement of a role's per-module permissions."""

    permissions: list[PermissionEntry]


class RoleCreate(BaseModel):
    role_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    access_level: Optional[UserRole] = None


class RoleUpdate(BaseModel):
    role_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    access_level: Optional[UserRole] = None


class RoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    role_name: str
    description: Optional[str] = None
    access_level: Optional[UserRole] = None
    created_at: datetime
    employee_count: int = 0
    permissions: list[PermissionEntry] = Field(default_factory=list)
