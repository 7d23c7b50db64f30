"""Auth router — identity sync, current caller, page gate."""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ems.auth.access import (
    ERROR_PATH,
    PUBLIC_PATHS,
    UNAUTHORIZED_PATH,
    evaluate_route,
    role_dashboard,
)
from ems.auth.dependencies import get_current_identity
from ems.auth.resolver import resolve_role
from ems.auth.schemas import (
    Identity,
    MeResponse,
    RouteDecision,
    SyncRequest,
    SyncResponse,
)
from ems.auth.service import sync_identity
from ems.common.exceptions import (
    BadRequestException,
    ForbiddenException,
    ServiceUnavailableException,
)
from ems.common.rate_limit import limiter
from ems.config import settings
from ems.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["auth"])


# ── POST /sync — Upsert a signed-in identity ───────────────────────

@router.post("/sync", response_model=SyncResponse)
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def sync(
    request: Request,
    body: SyncRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Upsert the caller into admins or employees.

    The posted ``email`` and ``authId`` must be the ones carried by the
    verified bearer token.
    """
    if not body.email or not body.auth_id:
        raise BadRequestException("Missing email or authId.")
    if body.auth_id != identity.auth_id:
        raise ForbiddenException("authId does not match the signed-in user.")
    if identity.email is None or body.email.strip().lower() != identity.email:
        raise ForbiddenException("email does not match the signed-in user.")

    table = await sync_identity(db, identity.email, identity.auth_id)
    logger.info("Synced identity %s into %s", identity.auth_id, table)
    return SyncResponse(success=True)


# ── GET /me — Resolved role for the caller ─────────────────────────

@router.get("/me")
async def me(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    resolution = await resolve_role(db, identity.auth_id, identity.email)
    if not resolution.matched:
        if resolution.errors:
            raise ServiceUnavailableException("Role lookup failed; please retry.")
        raise ForbiddenException("unauthorized")

    payload = MeResponse(
        auth_id=identity.auth_id,
        email=identity.email,
        role=resolution.role.value,
        employee_id=resolution.employee_id,
        department_id=resolution.department_id,
        display_name=resolution.display_name,
        source=resolution.source,
        dashboard=role_dashboard(resolution.role, resolution.employee_id),
    )
    return {"data": payload.model_dump(mode="json")}


# ── GET /route — Page gate ─────────────────────────────────────────

@router.get("/route")
async def check_route(
    path: str = Query("/", description="Portal path the user is opening"),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Tell the frontend whether the caller may open *path*.

    Unknown identities are sent to ``/unauthorized``; identities whose
    lookups failed are sent to ``/error``.
    """
    resolution = await resolve_role(db, identity.auth_id, identity.email)
    if path in PUBLIC_PATHS:
        decision = RouteDecision(allow=True)
    elif not resolution.matched:
        decision = RouteDecision(
            allow=False,
            redirect=ERROR_PATH if resolution.errors else UNAUTHORIZED_PATH,
        )
    else:
        decision = evaluate_route(resolution.role, resolution.employee_id, path)
    return {"data": decision.model_dump(mode="json")}
