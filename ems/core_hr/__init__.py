"""Core HR module — Employee, Department, Role models, schemas and services."""

from ems.core_hr.models import Department, Employee, Role, RolePermission

__all__ = ["Employee", "Department", "Role", "RolePermission"]
