"""Common module — shared utilities for the employee management service."""

from ems.common.audit import AuditTrail, create_audit_entry
from ems.common.constants import (
    ATTENDED_STATUSES,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PERMISSION_MODULES,
    ROLE_HIERARCHY,
    AnnouncementPriority,
    AnnouncementStatus,
    AttendanceStatus,
    DeliveryMethod,
    DepartmentStatus,
    EmployeeStatus,
    EmploymentType,
    LeaveStatus,
    TargetAudience,
    UserRole,
)
from ems.common.csv_export import csv_response, rows_to_csv
from ems.common.exceptions import (
    AppException,
    BadRequestException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ServiceUnavailableException,
    UnauthorizedException,
    ValidationException,
    register_exception_handlers,
)
from ems.common.filters import apply_filters, apply_search
from ems.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "AnnouncementPriority",
    "AnnouncementStatus",
    "AttendanceStatus",
    "DeliveryMethod",
    "DepartmentStatus",
    "EmployeeStatus",
    "EmploymentType",
    "LeaveStatus",
    "TargetAudience",
    "UserRole",
    "ATTENDED_STATUSES",
    "PERMISSION_MODULES",
    "ROLE_HIERARCHY",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # CSV
    "csv_response",
    "rows_to_csv",
    # Exceptions
    "AppException",
    "BadRequestException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "ServiceUnavailableException",
    "UnauthorizedException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    "apply_search",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
