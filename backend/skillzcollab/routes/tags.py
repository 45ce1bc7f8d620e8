from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from skillzcollab.auth_deps import get_optional_user
from skillzcollab.db import get_session
from skillzcollab.errors import Conflict, NotFound
from skillzcollab.models.tag import Tag
from skillzcollab.rbac import require_permission
from skillzcollab.schemas.tag import TagCreate, TagUpdate, TagPublic

router = APIRouter(prefix="/api/tags", tags=["tags"])
log = structlog.get_logger()

async def _get_tag(session: AsyncSession, tag_id: UUID) -> Tag:
    tag = await session.get(Tag, tag_id)
    if not tag:
        raise NotFound("Tag not found")
    return tag

async def _name_taken(session: AsyncSession, name: str, exclude_id: UUID | None = None) -> bool:
    q = select(Tag.id).where(func.lower(Tag.name) == name.strip().lower())
    if exclude_id is not None:
        q = q.where(Tag.id != exclude_id)
    return await session.scalar(q) is not None

@router.get("", response_model=list[TagPublic])
async def list_tags(
    search: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_optional_user),
):
    q = select(Tag)
    if search:
        pattern = f"%{search}%"
        q = q.where(or_(Tag.name.ilike(pattern), Tag.description.ilike(pattern)))
    rows = (await session.execute(q.order_by(Tag.name))).scalars().all()
    return [TagPublic.model_validate(t) for t in rows]

@router.get("/{tag_id}", response_model=TagPublic)
async def get_tag(tag_id: UUID, session: AsyncSession = Depends(get_session), user=Depends(get_optional_user)):
    return TagPublic.model_validate(await _get_tag(session, tag_id))

@router.post("", status_code=201, response_model=TagPublic)
async def create_tag(
    payload: TagCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("tag", "create")),
):
    if await _name_taken(session, payload.name):
        raise Conflict("A tag with this name already exists", code="TAG_EXISTS")
    tag = Tag(name=payload.name.strip(), description=payload.description)
    session.add(tag)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Conflict("A tag with this name already exists", code="TAG_EXISTS")
    await session.refresh(tag)
    log.info("tag_created", tag_id=str(tag.id), name=tag.name)
    return TagPublic.model_validate(tag)

@router.patch("/{tag_id}", response_model=TagPublic)
async def update_tag(
    tag_id: UUID,
    payload: TagUpdate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("tag", "update")),
):
    tag = await _get_tag(session, tag_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name"):
        if await _name_taken(session, changes["name"], tag.id):
            raise Conflict("A tag with this name already exists", code="TAG_EXISTS")
        tag.name = changes["name"].strip()
    if "description" in changes:
        tag.description = changes["description"]
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Conflict("A tag with this name already exists", code="TAG_EXISTS")
    await session.refresh(tag)
    return TagPublic.model_validate(tag)

@router.delete("/{tag_id}")
async def delete_tag(
    tag_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("tag", "delete")),
):
    tag = await _get_tag(session, tag_id)
    # brief tag snapshots are left as they are
    await session.delete(tag)
    await session.commit()
    log.info("tag_deleted", tag_id=str(tag_id))
    return {"success": True, "message": "Tag deleted"}
