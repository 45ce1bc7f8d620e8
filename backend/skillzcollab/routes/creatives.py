from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from skillzcollab.db import get_session
from skillzcollab.errors import BadRequest, NotFound
from skillzcollab.models.portfolio import Portfolio, Creative
from skillzcollab.rbac import require_permission, ensure_owner_or_admin
from skillzcollab.schemas.portfolio import CreativeCreate, CreativeUpdate, CreativePublic

router = APIRouter(prefix="/api/creatives", tags=["creatives"])

async def _get_creative(session: AsyncSession, creative_id: UUID) -> Creative:
    c = await session.get(Creative, creative_id)
    if not c:
        raise NotFound("Creative not found")
    return c

async def _owner_of(session: AsyncSession, portfolio_id: UUID):
    p = await session.get(Portfolio, portfolio_id)
    return p.user_id if p else None

@router.get("", response_model=list[CreativePublic])
async def list_creatives(
    portfolio_id: UUID | None = Query(None),
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("creative", "read")),
):
    q = select(Creative)
    if portfolio_id:
        q = q.where(Creative.portfolio_id == portfolio_id)
    rows = (await session.execute(q.order_by(Creative.created_at.desc()))).scalars().all()
    return [CreativePublic.model_validate(c) for c in rows]

@router.get("/{creative_id}", response_model=CreativePublic)
async def get_creative(
    creative_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("creative", "read")),
):
    return CreativePublic.model_validate(await _get_creative(session, creative_id))

@router.post("", status_code=201, response_model=CreativePublic)
async def create_creative(
    payload: CreativeCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("creative", "create")),
):
    portfolio = await session.get(Portfolio, payload.portfolio_id)
    if not portfolio:
        raise BadRequest("Portfolio does not exist", code="VALIDATION_FAILED")
    ensure_owner_or_admin(user, portfolio.user_id, "You can only add creatives to your own portfolios")
    c = Creative(
        portfolio_id=portfolio.id,
        title=payload.title,
        description=payload.description,
        files=[f.model_dump() for f in payload.files],
    )
    session.add(c)
    await session.commit()
    await session.refresh(c)
    return CreativePublic.model_validate(c)

@router.patch("/{creative_id}", response_model=CreativePublic)
async def update_creative(
    creative_id: UUID,
    payload: CreativeUpdate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("creative", "update")),
):
    c = await _get_creative(session, creative_id)
    ensure_owner_or_admin(user, await _owner_of(session, c.portfolio_id), "You can only modify your own creatives")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("title"):
        c.title = changes["title"]
    if "description" in changes:
        c.description = changes["description"]
    if changes.get("files") is not None:
        c.files = changes["files"]
    await session.commit()
    await session.refresh(c)
    return CreativePublic.model_validate(c)

@router.delete("/{creative_id}")
async def delete_creative(
    creative_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("creative", "delete")),
):
    c = await _get_creative(session, creative_id)
    ensure_owner_or_admin(user, await _owner_of(session, c.portfolio_id), "You can only delete your own creatives")
    await session.delete(c)
    await session.commit()
    return {"success": True, "message": "Creative deleted"}
