from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from skillzcollab.db import get_session
from skillzcollab.errors import NotFound
from skillzcollab.models.portfolio import Portfolio, Creative
from skillzcollab.rbac import require_permission, ensure_owner_or_admin
from skillzcollab.schemas.portfolio import (
    PortfolioCreate, PortfolioUpdate, PortfolioPublic, PortfolioDetail, CreativePublic,
)

router = APIRouter(prefix="/api/portfolios", tags=["portfolios"])
log = structlog.get_logger()

async def get_portfolio_or_404(session: AsyncSession, portfolio_id: UUID) -> Portfolio:
    p = await session.get(Portfolio, portfolio_id)
    if not p:
        raise NotFound("Portfolio not found")
    return p

@router.get("", response_model=list[PortfolioPublic])
async def list_portfolios(
    user_id: UUID | None = Query(None),
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("portfolio", "read")),
):
    q = select(Portfolio)
    if user_id:
        q = q.where(Portfolio.user_id == user_id)
    rows = (await session.execute(q.order_by(Portfolio.created_at.desc()))).scalars().all()
    return [PortfolioPublic.model_validate(p) for p in rows]

@router.get("/{portfolio_id}", response_model=PortfolioDetail)
async def get_portfolio(
    portfolio_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("portfolio", "read")),
):
    p = await get_portfolio_or_404(session, portfolio_id)
    creatives = (await session.execute(
        select(Creative).where(Creative.portfolio_id == p.id).order_by(Creative.created_at)
    )).scalars().all()
    return PortfolioDetail(
        **PortfolioPublic.model_validate(p).model_dump(),
        creatives=[CreativePublic.model_validate(c) for c in creatives],
    )

@router.post("", status_code=201, response_model=PortfolioPublic)
async def create_portfolio(
    payload: PortfolioCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("portfolio", "create")),
):
    p = Portfolio(
        user_id=user.id,
        title=payload.title,
        description=payload.description,
        files=[f.model_dump() for f in payload.files],
    )
    session.add(p)
    await session.commit()
    await session.refresh(p)
    log.info("portfolio_created", portfolio_id=str(p.id), user_id=str(user.id))
    return PortfolioPublic.model_validate(p)

@router.patch("/{portfolio_id}", response_model=PortfolioPublic)
async def update_portfolio(
    portfolio_id: UUID,
    payload: PortfolioUpdate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("portfolio", "update")),
):
    p = await get_portfolio_or_404(session, portfolio_id)
    ensure_owner_or_admin(user, p.user_id, "You can only modify your own portfolios")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("title"):
        p.title = changes["title"]
    if "description" in changes:
        p.description = changes["description"]
    if changes.get("files") is not None:
        p.files = changes["files"]
    await session.commit()
    await session.refresh(p)
    return PortfolioPublic.model_validate(p)

@router.delete("/{portfolio_id}")
async def delete_portfolio(
    portfolio_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("portfolio", "delete")),
):
    p = await get_portfolio_or_404(session, portfolio_id)
    ensure_owner_or_admin(user, p.user_id, "You can only delete your own portfolios")
    await session.execute(
        delete(Creative).where(Creative.portfolio_id == p.id), execution_options={"synchronize_session": False}
    )
    await session.delete(p)
    await session.commit()
    log.info("portfolio_deleted", portfolio_id=str(portfolio_id))
    return {"success": True, "message": "Portfolio deleted"}
