from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from skillzcollab.db import get_session
from skillzcollab.rbac import require_permission
from skillzcollab.schemas.reaction import ReactionCreate, ReactionToggle, ReactionUpdate, ReactionPublic, ToggleResult
from skillzcollab.services import reactions as reaction_service
from skillzcollab.services.submissions import get_submission

router = APIRouter(prefix="/api/reactions", tags=["reactions"])

@router.get("", response_model=list[ReactionPublic])
async def list_reactions(
    submission_id: UUID = Query(...),
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("reaction", "read")),
):
    await get_submission(session, submission_id)
    return [ReactionPublic.model_validate(r) for r in await reaction_service.list_reactions(session, submission_id)]

@router.post("")
async def toggle_reaction(
    payload: ReactionToggle,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("reaction", "create")),
):
    active, reaction, sub = await reaction_service.toggle_reaction(session, user, payload.submission_id, payload.type)
    body = ToggleResult(
        active=active,
        reaction=ReactionPublic.model_validate(reaction) if reaction else None,
        likes=sub.likes,
        votes=sub.votes,
    )
    return JSONResponse(status_code=201 if active else 200, content=body.model_dump(mode="json"))

@router.get("/submission/{submission_id}", response_model=list[ReactionPublic])
async def list_submission_reactions(
    submission_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("reaction", "read")),
):
    await get_submission(session, submission_id)
    return [ReactionPublic.model_validate(r) for r in await reaction_service.list_reactions(session, submission_id)]

@router.post("/submission/{submission_id}", status_code=201, response_model=ReactionPublic)
async def create_reaction(
    submission_id: UUID,
    payload: ReactionCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("reaction", "create")),
):
    reaction, _ = await reaction_service.create_reaction(session, user, submission_id, payload.type)
    return ReactionPublic.model_validate(reaction)

@router.get("/{reaction_id}", response_model=ReactionPublic)
async def get_reaction(
    reaction_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("reaction", "read")),
):
    return ReactionPublic.model_validate(await reaction_service.get_reaction(session, reaction_id))

@router.patch("/{reaction_id}", response_model=ReactionPublic)
async def update_reaction(
    reaction_id: UUID,
    payload: ReactionUpdate,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("reaction", "update")),
):
    return ReactionPublic.model_validate(
        await reaction_service.update_reaction(session, user, reaction_id, payload.type)
    )

@router.delete("/{reaction_id}")
async def delete_reaction(
    reaction_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(require_permission("reaction", "delete")),
):
    await reaction_service.delete_reaction(session, user, reaction_id)
    return {"success": True, "message": "Reaction deleted"}
