from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Query, UploadFile, File, Form
from sqlalchemy import String, cast, select
from sqlalchemy.ext.asyncio import AsyncSession
from skillzcollab.auth_deps import get_optional_user
from skillzcollab.db import get_session
from skillzcollab.errors import BadRequest, NotFound
from skillzcollab.models.brief import Brief
from skillzcollab.models.tag import Tag
from skillzcollab.rbac import require_permission
from skillzcollab.schemas.brief import BriefCreate, BriefUpdate, BriefPublic, BriefStatus
from skillzcollab.schemas.submission import SubmissionPublic
from skillzcollab.services import briefs as brief_service
from skillzcollab.services import submissions as submission_service
from skillzcollab.services.uploads import validate_uploads, upload_files

router = APIRouter(prefix="/api/briefs", tags=["briefs"])

@router.get("", response_model=list[BriefPublic])
async def list_briefs(
    status: BriefStatus | None = Query(None),
    is_active: bool | None = Query(None),
    brand_id: UUID | None = Query(None),
    session: AsyncSession = Depends(get_session),
    user=Depends(get_optional_user),
):
    q = select(Brief).order_by(Brief.created_at.desc())
    if is_active is not None:
        q = q.where(Brief.is_active == is_active)
    if brand_id:
        q = q.where(Brief.brand_id == brand_id)
    if status:
        # expired submission briefs turn in_review once advanced below
        q = q.where(Brief.status.in_([status, "submission"] if status == "in_review" else [status]))
    rows = (await session.execute(q)).scalars().all()
    await brief_service.advance_expired_briefs(session, rows)
    return [BriefPublic.model_validate(b) for b in rows if not status or b.status == status]

@router.get("/tag/{tag_id}", response_model=list[BriefPublic])
async def list_briefs_by_tag(
    tag_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_optional_user),
):
    if not await session.get(Tag, tag_id):
        raise NotFound("Tag not found")
    # tags are JSON snapshots: narrow with a text match, then confirm the id
    q = select(Brief).where(cast(Brief.tags, String).contains(str(tag_id))).order_by(Brief.created_at.desc())
    rows = [
        b for b in (await session.execute(q)).scalars().all()
        if any(str(t.get("id")) == str(tag_id) for t in b.tags or [])
    ]
    await brief_service.advance_expired_briefs(session, rows)
    return [BriefPublic.model_validate(b) for b in rows]

@router.get("/{brief_id}", response_model=BriefPublic)
async def get_brief(
    brief_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_optional_user),
):
    return BriefPublic.model_validate(await brief_service.get_brief_fresh(session, brief_id))

@router.post("", status_code=201, response_model=BriefPublic)
async def create_brief(
    payload: BriefCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("brief", "create")),
):
    if payload.brand_id is None:
        raise BadRequest("brand_id is required", code="VALIDATION_FAILED")
    brief = await brief_service.create_brief(session, user, payload.brand_id, payload)
    return BriefPublic.model_validate(brief)

@router.patch("/{brief_id}", response_model=BriefPublic)
async def update_brief(
    brief_id: UUID,
    payload: BriefUpdate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("brief", "update")),
):
    brief = await brief_service.get_brief(session, brief_id)
    await brief_service.ensure_can_manage_brief(session, user, brief)
    brief = await brief_service.update_brief(session, brief, payload)
    return BriefPublic.model_validate(brief)

@router.delete("/{brief_id}")
async def delete_brief(
    brief_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("brief", "delete")),
):
    brief = await brief_service.get_brief(session, brief_id)
    await brief_service.ensure_can_manage_brief(session, user, brief)
    await brief_service.delete_brief(session, brief)
    return {"success": True, "message": "Brief deleted"}

@router.get("/{brief_id}/submissions", response_model=list[SubmissionPublic])
async def list_brief_submissions(
    brief_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("submission", "read")),
):
    await brief_service.get_brief(session, brief_id)
    rows = await submission_service.list_submissions(session, brief_id=brief_id)
    return [SubmissionPublic.model_validate(s) for s in rows]

@router.post("/{brief_id}/submissions", status_code=201, response_model=SubmissionPublic)
async def submit_to_brief(
    brief_id: UUID,
    description: str | None = Form(None),
    files: list[UploadFile] = File(..., description="Submission files"),
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("submission", "create")),
):
    # status and duplicate checks before anything is uploaded
    await submission_service.ensure_can_submit(session, user, brief_id)
    incoming = await validate_uploads(files)
    metas = upload_files(incoming, folder="submissions")
    sub = await submission_service.create_submission(session, user, brief_id, description, metas)
    return SubmissionPublic.model_validate(sub)
