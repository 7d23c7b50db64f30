"""Auth service — identity-provider token checks, email lookup, identity sync."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.auth.models import Admin
from ems.auth.schemas import Identity
from ems.common.constants import EmployeeStatus
from ems.common.exceptions import UnauthorizedException
from ems.config import settings
from ems.core_hr.models import Employee, Role

logger = logging.getLogger(__name__)


# ── Bearer token ────────────────────────────────────────────────────

def decode_identity_token(token: str) -> Identity:
    """Verify an identity-provider JWT and return the caller's identity.

    ``sub`` carries the provider's user id; ``email`` is optional.
    """
    try:
        payload = jwt.decode(
            token,
            settings.IDP_JWT_SECRET,
            algorithms=[settings.IDP_JWT_ALGORITHM],
            audience=settings.IDP_AUDIENCE or None,
            issuer=settings.IDP_ISSUER or None,
            options={"verify_aud": bool(settings.IDP_AUDIENCE)},
        )
    except ExpiredSignatureError:
        raise UnauthorizedException("Token has expired.")
    except JWTError:
        raise UnauthorizedException("Invalid token.")

    auth_id = payload.get("sub")
    if not auth_id:
        raise UnauthorizedException("Token has no subject.")

    email = payload.get("email")
    return Identity(auth_id=auth_id, email=email.strip().lower() if email else None)


def _primary_email(user: dict[str, Any]) -> Optional[str]:
    addresses = user.get("email_addresses") or []
    primary_id = user.get("primary_email_address_id")
    if primary_id:
        for entry in addresses:
            if entry.get("id") == primary_id:
                return entry.get("email_address")
    return addresses[0].get("email_address") if addresses else None


async def fetch_primary_email(auth_id: str) -> Optional[str]:
    """Ask the identity provider's user API for the user's primary email.

    Returns ``None`` when the provider is not configured, unreachable or
    knows no email for the user.
    """
    if not settings.IDP_SECRET_KEY:
        return None

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            resp = await client.get(
                f"{settings.IDP_API_URL.rstrip('/')}/users/{auth_id}",
                headers={"Authorization": f"Bearer {settings.IDP_SECRET_KEY}"},
            )
    except httpx.HTTPError:
        logger.exception("Identity provider lookup failed for %s", auth_id)
        return None

    if resp.status_code != 200:
        logger.warning(
            "Identity provider returned %s for user %s", resp.status_code, auth_id,
        )
        return None

    email = _primary_email(resp.json())
    return email.strip().lower() if email else None


# ── Identity sync ───────────────────────────────────────────────────

async def _default_role(db: AsyncSession) -> Optional[Role]:
    result = await db.execute(
        select(Role).where(Role.role_name == settings.DEFAULT_ROLE_NAME)
    )
    return result.scalars().first()


async def _sync_admin(db: AsyncSession, email: str, auth_id: str) -> Optional[Admin]:
    admin = (
        await db.execute(select(Admin).where(Admin.auth_user_id == auth_id))
    ).scalars().first()
    if admin is not None:
        admin.email = email
        logger.info("Updated admin record for %s", email)
        await db.flush()
        return admin

    taken = (
        await db.execute(select(Admin.id).where(func.lower(Admin.email) == email))
    ).scalar_one_or_none()
    if taken is not None:
        # Linked on the next role lookup by email.
        logger.info("Admin row for %s exists; not relinking to %s", email, auth_id)
        return None

    admin = Admin(email=email, auth_user_id=auth_id)
    db.add(admin)
    logger.info("Created admin record for %s", email)
    await db.flush()
    return admin


async def _sync_employee(db: AsyncSession, email: str, auth_id: str) -> Optional[Employee]:
    employee = (
        await db.execute(select(Employee).where(Employee.auth_user_id == auth_id))
    ).scalars().first()
    if employee is not None:
        # Existing rows keep their name and role.
        employee.email = email
        logger.info("Updated employee record %s for auth id %s", employee.id, auth_id)
        await db.flush()
        return employee

    taken = (
        await db.execute(select(Employee.id).where(func.lower(Employee.email) == email))
    ).scalar_one_or_none()
    if taken is not None:
        # Linked on the next role lookup by email.
        logger.info("Employee row for %s exists; not relinking to %s", email, auth_id)
        return None

    role = await _default_role(db)
    if role is None:
        logger.warning(
            "Default role %r not found; new employee %s has no role",
            settings.DEFAULT_ROLE_NAME, email,
        )
    employee = Employee(
        auth_user_id=auth_id,
        email=email,
        name=email.split("@")[0],
        role_id=role.id if role else None,
        status=EmployeeStatus.active,
    )
    db.add(employee)
    logger.info("Created employee record for %s", email)
    await db.flush()
    return employee


async def sync_identity(db: AsyncSession, email: str, auth_id: str) -> str:
    """Upsert a signed-in identity keyed on its auth id.

    Rows that already carry *email* under another (or no) auth id are
    left untouched. Returns the table the identity belongs to.
    """
    email = email.strip().lower()
    if email in settings.admin_emails_list:
        await _sync_admin(db, email, auth_id)
        return "admins"
    await _sync_employee(db, email, auth_id)
    return "employees"
