from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from skillzcollab.db import get_session
from skillzcollab.rbac import require_permission
from skillzcollab.schemas.submission import SubmissionCreate, SubmissionUpdate, SubmissionPublic
from skillzcollab.services import submissions as submission_service

router = APIRouter(prefix="/api/submissions", tags=["submissions"])

@router.get("", response_model=list[SubmissionPublic])
async def list_submissions(
    brief_id: UUID | None = Query(None),
    user_id: UUID | None = Query(None),
    is_finalist: bool | None = Query(None),
    is_winner: bool | None = Query(None),
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("submission", "read")),
):
    rows = await submission_service.list_submissions(session, brief_id, user_id, is_finalist, is_winner)
    return [SubmissionPublic.model_validate(s) for s in rows]

@router.get("/{submission_id}", response_model=SubmissionPublic)
async def get_submission(
    submission_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("submission", "read")),
):
    return SubmissionPublic.model_validate(await submission_service.get_submission(session, submission_id))

@router.post("", status_code=201, response_model=SubmissionPublic)
async def create_submission(
    payload: SubmissionCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("submission", "create")),
):
    files = [f.model_dump() for f in payload.files]
    sub = await submission_service.create_submission(session, user, payload.brief_id, payload.description, files)
    return SubmissionPublic.model_validate(sub)

@router.patch("/{submission_id}", response_model=SubmissionPublic)
async def update_submission(
    submission_id: UUID,
    payload: SubmissionUpdate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("submission", "update")),
):
    sub = await submission_service.get_submission(session, submission_id)
    sub = await submission_service.update_submission(session, user, sub, payload)
    return SubmissionPublic.model_validate(sub)

@router.delete("/{submission_id}")
async def delete_submission(
    submission_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("submission", "delete")),
):
    sub = await submission_service.get_submission(session, submission_id)
    await submission_service.delete_submission(session, user, sub)
    return {"success": True, "message": "Submission deleted"}
