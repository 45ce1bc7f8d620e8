from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from skillzcollab.auth_deps import get_current_user
from skillzcollab.db import get_session
from skillzcollab.errors import BadRequest, Forbidden, NotFound
from skillzcollab.models.brand import Brand
from skillzcollab.models.brief import Brief
from skillzcollab.models.portfolio import Portfolio, Creative
from skillzcollab.models.reaction import Reaction
from skillzcollab.models.submission import Submission
from skillzcollab.models.tag import Tag
from skillzcollab.models.user import User
from skillzcollab.rbac import require_admin, require_permission, is_admin
from skillzcollab.schemas.portfolio import PortfolioPublic
from skillzcollab.schemas.user import UserPublic, UserUpdate, RoleName
from skillzcollab.services import uploads

router = APIRouter(prefix="/api/users", tags=["users"])
log = structlog.get_logger()

SELF_LOCKED_FIELDS = ("role", "is_active", "is_verified")
NO_SYNC = {"synchronize_session": False}

def _visible_roles(caller: User) -> tuple[str, ...]:
    if caller.role == "super_admin":
        return ("user", "admin", "super_admin")
    return ("user", "admin")

async def _get_user(session: AsyncSession, user_id: UUID) -> User:
    user = await session.get(User, user_id)
    if not user:
        raise NotFound("User not found", code="ACCOUNT_NOT_FOUND")
    return user

def _guard_super_admin(caller: User, target: User, verb: str) -> None:
    if target.role == "super_admin" and caller.role != "super_admin":
        raise Forbidden(f"Admins cannot {verb} super admin accounts", code="INSUFFICIENT_PERMISSIONS")

@router.get("", response_model=list[UserPublic])
async def list_users(
    search: str | None = Query(None),
    role: RoleName | None = Query(None),
    is_active: bool | None = Query(None),
    session: AsyncSession = Depends(get_session),
    caller: User = Depends(require_admin()),
):
    visible = _visible_roles(caller)
    if role and role not in visible:
        raise Forbidden("Admins cannot list super admin accounts", code="INSUFFICIENT_PERMISSIONS")
    q = select(User).where(User.role.in_([role] if role else list(visible)))
    if search:
        pattern = f"%{search}%"
        q = q.where(or_(User.username.ilike(pattern), User.email.ilike(pattern), User.display_name.ilike(pattern)))
    if is_active is not None:
        q = q.where(User.is_active == is_active)
    rows = (await session.execute(q.order_by(User.created_at.desc()))).scalars().all()
    return [UserPublic.model_validate(u) for u in rows]

@router.get("/{user_id}", response_model=UserPublic)
async def get_user(
    user_id: UUID,
    session: AsyncSession = Depends(get_session),
    caller: User = Depends(require_admin()),
):
    target = await _get_user(session, user_id)
    _guard_super_admin(caller, target, "view")
    return UserPublic.model_validate(target)

@router.patch("/{user_id}", response_model=UserPublic)
async def update_user(
    user_id: UUID,
    payload: UserUpdate,
    session: AsyncSession = Depends(get_session),
    caller: User = Depends(get_current_user),
):
    target = await _get_user(session, user_id)
    is_self = target.id == caller.id
    if not is_self and not is_admin(caller):
        raise Forbidden("You can only update your own account", code="OWNERSHIP_REQUIRED")
    changes = payload.model_dump(exclude_unset=True)
    if is_self:
        for field in SELF_LOCKED_FIELDS:
            changes.pop(field, None)
    else:
        _guard_super_admin(caller, target, "modify")
        if changes.get("role") == "super_admin" and caller.role != "super_admin":
            raise Forbidden("Admins cannot grant the super_admin role", code="INSUFFICIENT_PERMISSIONS")
    if "followed_tags" in changes:
        wanted = changes["followed_tags"] or []
        found = set((await session.execute(select(Tag.id).where(Tag.id.in_(wanted)))).scalars().all()) if wanted else set()
        missing = [str(t) for t in wanted if t not in found]
        if missing:
            raise BadRequest(f"Unknown tag ids: {', '.join(missing)}", code="UNKNOWN_TAGS", details=missing)
        changes["followed_tags"] = [str(t) for t in dict.fromkeys(wanted)]
    if not changes:
        raise BadRequest("No valid fields to update", code="NO_VALID_FIELDS")
    for k, v in changes.items():
        if v is None and k in ("role", "is_active", "is_verified", "social_links", "skills", "specialities"):
            continue
        setattr(target, k, v)
    await session.commit()
    await session.refresh(target)
    log.info("user_updated", user_id=str(target.id), by=str(caller.id), fields=sorted(changes))
    return UserPublic.model_validate(target)

@router.delete("/{user_id}")
async def delete_user(
    user_id: UUID,
    session: AsyncSession = Depends(get_session),
    caller: User = Depends(require_admin()),
):
    target = await _get_user(session, user_id)
    if target.id == caller.id:
        raise BadRequest("You cannot delete your own account", code="CANNOT_DELETE_SELF")
    _guard_super_admin(caller, target, "delete")

    own_subs = select(Submission.id).where(Submission.user_id == target.id)
    own_portfolios = select(Portfolio.id).where(Portfolio.user_id == target.id)
    sub_rows = (await session.execute(
        select(Submission.brief_id, Submission.files).where(Submission.user_id == target.id)
    )).all()
    if sub_rows:
        joined = (await session.execute(select(Brief).where(Brief.id.in_([r.brief_id for r in sub_rows])))).scalars().all()
        for b in joined:
            b.participants = [p for p in b.participants or [] if p != str(target.id)]
    await session.execute(
        delete(Reaction).where(or_(Reaction.user_id == target.id, Reaction.submission_id.in_(own_subs))),
        execution_options=NO_SYNC,
    )
    await session.execute(delete(Submission).where(Submission.user_id == target.id), execution_options=NO_SYNC)
    await session.execute(delete(Creative).where(Creative.portfolio_id.in_(own_portfolios)), execution_options=NO_SYNC)
    await session.execute(delete(Portfolio).where(Portfolio.user_id == target.id), execution_options=NO_SYNC)
    await session.execute(update(Brand).where(Brand.owner_id == target.id).values(owner_id=None), execution_options=NO_SYNC)
    await session.execute(update(Brief).where(Brief.crm_user_id == target.id).values(crm_user_id=None), execution_options=NO_SYNC)
    await session.execute(update(Brief).where(Brief.winner_user_id == target.id).values(winner_user_id=None), execution_options=NO_SYNC)
    await session.delete(target)
    await session.commit()
    for row in sub_rows:
        for meta in row.files or []:
            uploads.delete_file(meta)
    log.info("user_deleted", user_id=str(user_id), by=str(caller.id))
    return {"success": True, "message": "User deleted"}

@router.get("/{user_id}/portfolios", response_model=list[PortfolioPublic])
async def list_user_portfolios(
    user_id: UUID,
    session: AsyncSession = Depends(get_session),
    caller: User = Depends(require_permission("portfolio", "read")),
):
    await _get_user(session, user_id)
    rows = (await session.execute(
        select(Portfolio).where(Portfolio.user_id == user_id).order_by(Portfolio.created_at.desc())
    )).scalars().all()
    return [PortfolioPublic.model_validate(p) for p in rows]
