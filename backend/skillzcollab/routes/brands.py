from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from skillzcollab.db import get_session
from skillzcollab.errors import BadRequest, Conflict, NotFound
from skillzcollab.models.brand import Brand
from skillzcollab.models.brief import Brief, ACTIVE_STATUSES, BRIEF_STATUSES
from skillzcollab.rbac import require_permission, ensure_owner_or_admin
from skillzcollab.schemas.brand import BrandCreate, BrandUpdate, BrandPublic, BrandStats
from skillzcollab.schemas.brief import BriefCreate, BriefPublic
from skillzcollab.services import briefs as brief_service

router = APIRouter(prefix="/api/brands", tags=["brands"])
log = structlog.get_logger()

async def _get_brand(session: AsyncSession, brand_id: UUID) -> Brand:
    brand = await session.get(Brand, brand_id)
    if not brand:
        raise NotFound("Brand not found")
    return brand

async def _email_taken(session: AsyncSession, email: str, exclude_id: UUID | None = None) -> bool:
    q = select(Brand.id).where(func.lower(Brand.contact_email) == email.lower())
    if exclude_id is not None:
        q = q.where(Brand.id != exclude_id)
    return await session.scalar(q) is not None

@router.get("", response_model=list[BrandPublic])
async def list_brands(
    business_field: str | None = Query(None),
    brand_id: UUID | None = Query(None),
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("brand", "read")),
):
    q = select(Brand)
    if brand_id:
        q = q.where(Brand.id == brand_id)
    if business_field:
        q = q.where(Brand.business_field.ilike(f"%{business_field}%"))
    rows = (await session.execute(q.order_by(Brand.created_at.desc()))).scalars().all()
    return [BrandPublic.model_validate(b) for b in rows]

@router.get("/{brand_id}", response_model=BrandPublic)
async def get_brand(
    brand_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("brand", "read")),
):
    return BrandPublic.model_validate(await _get_brand(session, brand_id))

@router.get("/{brand_id}/stats", response_model=BrandStats)
async def brand_stats(
    brand_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("brand", "read")),
):
    brand = await _get_brand(session, brand_id)
    briefs = (await session.execute(select(Brief).where(Brief.brand_id == brand.id))).scalars().all()
    await brief_service.advance_expired_briefs(session, briefs)
    breakdown = {s: 0 for s in BRIEF_STATUSES}
    for b in briefs:
        breakdown[b.status] = breakdown.get(b.status, 0) + 1
    return BrandStats(
        brand_id=brand.id,
        total_briefs=len(briefs),
        active_briefs=sum(breakdown.get(s, 0) for s in ACTIVE_STATUSES),
        status_breakdown=breakdown,
    )

@router.post("", status_code=201, response_model=BrandPublic)
async def create_brand(
    payload: BrandCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("brand", "create")),
):
    if await _email_taken(session, payload.contact_email):
        raise Conflict("A brand with this contact email already exists", code="BRAND_EXISTS")
    brand = Brand(**payload.model_dump(), owner_id=user.id)
    session.add(brand)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Conflict("A brand with this contact email already exists", code="BRAND_EXISTS")
    await session.refresh(brand)
    log.info("brand_created", brand_id=str(brand.id), owner_id=str(user.id))
    return BrandPublic.model_validate(brand)

@router.patch("/{brand_id}", response_model=BrandPublic)
async def update_brand(
    brand_id: UUID,
    payload: BrandUpdate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("brand", "update")),
):
    brand = await _get_brand(session, brand_id)
    ensure_owner_or_admin(user, brand.owner_id, "You can only modify brands you own")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("contact_email") and await _email_taken(session, changes["contact_email"], brand.id):
        raise Conflict("A brand with this contact email already exists", code="BRAND_EXISTS")
    for k, v in changes.items():
        if k in ("name", "contact_email") and v is None:
            continue
        setattr(brand, k, v)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Conflict("A brand with this contact email already exists", code="BRAND_EXISTS")
    await session.refresh(brand)
    return BrandPublic.model_validate(brand)

@router.delete("/{brand_id}")
async def delete_brand(
    brand_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("brand", "delete")),
):
    brand = await _get_brand(session, brand_id)
    ensure_owner_or_admin(user, brand.owner_id, "You can only delete brands you own")
    briefs = await session.scalar(select(func.count()).select_from(Brief).where(Brief.brand_id == brand.id))
    if briefs:
        raise BadRequest(f"Brand has {briefs} brief(s); delete them first", code="BRAND_HAS_BRIEFS")
    await session.delete(brand)
    await session.commit()
    log.info("brand_deleted", brand_id=str(brand_id))
    return {"success": True, "message": "Brand deleted"}

@router.get("/{brand_id}/briefs", response_model=list[BriefPublic])
async def list_brand_briefs(
    brand_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("brief", "read")),
):
    brand = await _get_brand(session, brand_id)
    rows = (await session.execute(
        select(Brief).where(Brief.brand_id == brand.id).order_by(Brief.created_at.desc())
    )).scalars().all()
    await brief_service.advance_expired_briefs(session, rows)
    return [BriefPublic.model_validate(b) for b in rows]

@router.post("/{brand_id}/briefs", status_code=201, response_model=BriefPublic)
async def create_brand_brief(
    brand_id: UUID,
    payload: BriefCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("brief", "create")),
):
    brief = await brief_service.create_brief(session, user, brand_id, payload)
    return BriefPublic.model_validate(brief)
