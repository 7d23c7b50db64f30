"""Enums and constants for EMS — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "admin"
    hr = "hr"
    manager = "manager"
    team_lead = "team_lead"
    employee = "employee"


# Each role implicitly includes every role below it
ROLE_HIERARCHY: dict[UserRole, set[UserRole]] = {
    UserRole.admin: {UserRole.admin, UserRole.hr, UserRole.manager, UserRole.team_lead, UserRole.employee},
    UserRole.hr: {UserRole.hr, UserRole.manager, UserRole.team_lead, UserRole.employee},
    UserRole.manager: {UserRole.manager, UserRole.team_lead, UserRole.employee},
    UserRole.team_lead: {UserRole.team_lead, UserRole.employee},
    UserRole.employee: {UserRole.employee},
}


# ── Employee / Core HR ──────────────────────────────────────────────

class EmployeeStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    probation = "probation"
    resigned = "resigned"
    on_leave = "on_leave"


class EmploymentType(str, enum.Enum):
    full_time = "full_time"
    part_time = "part_time"
    contract = "contract"
    intern = "intern"


class DepartmentStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceStatus(str, enum.Enum):
    present = "present"
    absent = "absent"
    late = "late"
    half_day = "half_day"
    leave = "leave"
    holiday = "holiday"
    weekoff = "weekoff"


# Statuses that count as "attended" for percentage calculations
ATTENDED_STATUSES: frozenset[AttendanceStatus] = frozenset({
    AttendanceStatus.present,
    AttendanceStatus.late,
    AttendanceStatus.half_day,
})


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# ── Announcements ───────────────────────────────────────────────────

class AnnouncementPriority(str, enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


class TargetAudience(str, enum.Enum):
    all = "all"
    department = "department"


class DeliveryMethod(str, enum.Enum):
    in_app = "in_app"
    email = "email"
    both = "both"


class AnnouncementStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


# ── Role permission modules ─────────────────────────────────────────

PERMISSION_MODULES: tuple[str, ...] = (
    "employees",
    "departments",
    "attendance",
    "leaves",
    "announcements",
    "roles",
)

# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
