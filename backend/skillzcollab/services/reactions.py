from __future__ import annotations
import uuid
import structlog
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from skillzcollab.errors import Conflict, Forbidden, NotFound
from skillzcollab.models.reaction import Reaction
from skillzcollab.models.submission import Submission
from skillzcollab.rbac import ensure_owner_or_admin
from skillzcollab.services.submissions import get_submission

log = structlog.get_logger()


async def sync_counters(session: AsyncSession, sub: Submission) -> None:
    """likes/votes always mirror the reaction rows."""
    rows = (await session.execute(
        select(Reaction.type, func.count()).where(Reaction.submission_id == sub.id).group_by(Reaction.type)
    )).all()
    counts = {t: int(n) for t, n in rows}
    sub.likes = counts.get("like", 0)
    sub.votes = counts.get("vote", 0)


async def _find(session: AsyncSession, submission_id, user_id, rtype: str) -> Reaction | None:
    return await session.scalar(select(Reaction).where(
        Reaction.submission_id == submission_id, Reaction.user_id == user_id, Reaction.type == rtype
    ))


async def _commit_or_conflict(session: AsyncSession, sub: Submission, rtype: str) -> None:
    try:
        await sync_counters(session, sub)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Conflict(f"You have already reacted with {rtype}", code="REACTION_EXISTS")


async def get_reaction(session: AsyncSession, reaction_id: uuid.UUID) -> Reaction:
    r = await session.get(Reaction, reaction_id)
    if not r:
        raise NotFound("Reaction not found")
    return r


async def create_reaction(session: AsyncSession, user, submission_id: uuid.UUID, rtype: str) -> tuple[Reaction, Submission]:
    sub = await get_submission(session, submission_id)
    if await _find(session, sub.id, user.id, rtype):
        raise Conflict(f"You have already reacted with {rtype}", code="REACTION_EXISTS")
    r = Reaction(submission_id=sub.id, user_id=user.id, type=rtype)
    session.add(r)
    await _commit_or_conflict(session, sub, rtype)
    await session.refresh(r)
    log.info("reaction_created", reaction_id=str(r.id), submission_id=str(sub.id), type=rtype)
    return r, sub


async def toggle_reaction(
    session: AsyncSession, user, submission_id: uuid.UUID, rtype: str
) -> tuple[bool, Reaction | None, Submission]:
    """Create the reaction when absent, remove it when present."""
    sub = await get_submission(session, submission_id)
    existing = await _find(session, sub.id, user.id, rtype)
    if existing is not None:
        await session.delete(existing)
        await _commit_or_conflict(session, sub, rtype)
        log.info("reaction_toggled", submission_id=str(sub.id), type=rtype, active=False)
        return False, None, sub
    r = Reaction(submission_id=sub.id, user_id=user.id, type=rtype)
    session.add(r)
    await _commit_or_conflict(session, sub, rtype)
    await session.refresh(r)
    log.info("reaction_toggled", submission_id=str(sub.id), type=rtype, active=True)
    return True, r, sub


async def update_reaction(session: AsyncSession, user, reaction_id: uuid.UUID, rtype: str) -> Reaction:
    r = await get_reaction(session, reaction_id)
    if str(r.user_id) != str(user.id):
        raise Forbidden("You can only modify your own reactions", code="OWNERSHIP_REQUIRED")
    if r.type == rtype:
        return r
    if await _find(session, r.submission_id, r.user_id, rtype):
        raise Conflict(f"You have already reacted with {rtype}", code="REACTION_EXISTS")
    r.type = rtype
    sub = await get_submission(session, r.submission_id)
    await _commit_or_conflict(session, sub, rtype)
    await session.refresh(r)
    return r


async def delete_reaction(session: AsyncSession, user, reaction_id: uuid.UUID) -> None:
    r = await get_reaction(session, reaction_id)
    ensure_owner_or_admin(user, r.user_id, "You can only delete your own reactions")
    sub = await get_submission(session, r.submission_id)
    await session.delete(r)
    await _commit_or_conflict(session, sub, r.type)
    log.info("reaction_deleted", reaction_id=str(reaction_id))


async def list_reactions(session: AsyncSession, submission_id: uuid.UUID) -> list[Reaction]:
    return (await session.execute(
        select(Reaction).where(Reaction.submission_id == submission_id).order_by(Reaction.created_at)
    )).scalars().all()
