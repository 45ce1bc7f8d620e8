from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from skillzcollab.db import get_session
from skillzcollab.errors import BadRequest, NotFound
from skillzcollab.models.user import User, ADMIN_ROLES
from skillzcollab.rbac import require_super_admin
from skillzcollab.schemas.user import UserPublic, AdminApproval

router = APIRouter(prefix="/api/admin", tags=["admin"])
log = structlog.get_logger()

async def _get_admin(session: AsyncSession, admin_id: UUID) -> User:
    user = await session.get(User, admin_id)
    if not user or user.role not in ADMIN_ROLES:
        raise NotFound("Admin account not found", code="ADMIN_NOT_FOUND")
    return user

@router.get("/pending-approvals", response_model=list[UserPublic])
async def pending_approvals(session: AsyncSession = Depends(get_session), caller=Depends(require_super_admin())):
    rows = (await session.execute(
        select(User)
        .where(User.role.in_(ADMIN_ROLES), User.is_verified.is_(False), User.is_active.is_(True))
        .order_by(User.created_at)
    )).scalars().all()
    return [UserPublic.model_validate(u) for u in rows]

@router.get("/admins", response_model=list[UserPublic])
async def list_admins(session: AsyncSession = Depends(get_session), caller=Depends(require_super_admin())):
    rows = (await session.execute(
        select(User).where(User.role.in_(ADMIN_ROLES)).order_by(User.created_at.desc())
    )).scalars().all()
    return [UserPublic.model_validate(u) for u in rows]

@router.patch("/admins/{admin_id}/approve", response_model=UserPublic)
async def approve_admin(
    admin_id: UUID,
    payload: AdminApproval,
    session: AsyncSession = Depends(get_session),
    caller=Depends(require_super_admin()),
):
    target = await _get_admin(session, admin_id)
    if payload.approved:
        target.is_verified = True
        target.is_active = True
    else:
        target.is_active = False
    await session.commit()
    await session.refresh(target)
    log.info("admin_approval", admin_id=str(target.id), approved=payload.approved, reason=payload.reason, by=str(caller.id))
    return UserPublic.model_validate(target)

@router.patch("/admins/{admin_id}/deactivate", response_model=UserPublic)
async def deactivate_admin(
    admin_id: UUID,
    session: AsyncSession = Depends(get_session),
    caller=Depends(require_super_admin()),
):
    target = await _get_admin(session, admin_id)
    if target.id == caller.id:
        raise BadRequest("You cannot deactivate your own account", code="CANNOT_DELETE_SELF")
    target.is_active = False
    target.is_verified = False
    await session.commit()
    await session.refresh(target)
    log.info("admin_deactivated", admin_id=str(target.id), by=str(caller.id))
    return UserPublic.model_validate(target)
