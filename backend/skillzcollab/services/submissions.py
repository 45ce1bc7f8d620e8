from __future__ import annotations
import uuid
import structlog
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from skillzcollab.errors import BadRequest, Conflict, Forbidden, NotFound
from skillzcollab.models.brief import Brief
from skillzcollab.models.reaction import Reaction
from skillzcollab.models.submission import Submission
from skillzcollab.rbac import ensure_owner_or_admin, is_admin
from skillzcollab.schemas.submission import SubmissionUpdate
from skillzcollab.services.briefs import get_brief_fresh
from skillzcollab.services import uploads

log = structlog.get_logger()

CONTENT_FIELDS = ("description", "files")
FLAG_FIELDS = ("is_finalist", "is_winner")


def _require_open(brief: Brief) -> None:
    if brief.status != "submission":
        raise BadRequest(
            f"Submissions are closed for this brief (status: {brief.status})", code="SUBMISSIONS_CLOSED"
        )


async def _existing(session: AsyncSession, brief_id, user_id) -> Submission | None:
    return await session.scalar(
        select(Submission).where(Submission.brief_id == brief_id, Submission.user_id == user_id)
    )


async def ensure_can_submit(session: AsyncSession, user, brief_id: uuid.UUID) -> Brief:
    """Checks that run before any file is uploaded."""
    brief = await get_brief_fresh(session, brief_id)
    _require_open(brief)
    if await _existing(session, brief.id, user.id):
        raise Conflict("You have already submitted to this brief", code="SUBMISSION_EXISTS")
    return brief


async def create_submission(
    session: AsyncSession, user, brief_id: uuid.UUID, description: str | None, files: list[dict]
) -> Submission:
    brief = await ensure_can_submit(session, user, brief_id)
    if not files:
        raise BadRequest("At least one file is required", code="VALIDATION_FAILED")
    sub = Submission(brief_id=brief.id, user_id=user.id, description=description, files=files)
    session.add(sub)
    if str(user.id) not in (brief.participants or []):
        brief.participants = [*(brief.participants or []), str(user.id)]
    try:
        await session.commit()
    except IntegrityError:
        # concurrent submit by the same user
        await session.rollback()
        raise Conflict("You have already submitted to this brief", code="SUBMISSION_EXISTS")
    await session.refresh(sub)
    log.info("submission_created", submission_id=str(sub.id), brief_id=str(brief.id), user_id=str(user.id))
    return sub


async def get_submission(session: AsyncSession, submission_id: uuid.UUID) -> Submission:
    sub = await session.get(Submission, submission_id)
    if not sub:
        raise NotFound("Submission not found")
    return sub


async def update_submission(session: AsyncSession, user, sub: Submission, payload: SubmissionUpdate) -> Submission:
    changes = payload.model_dump(exclude_unset=True)
    content = {k: changes[k] for k in CONTENT_FIELDS if k in changes}
    flags = {k: changes[k] for k in FLAG_FIELDS if k in changes and changes[k] is not None}
    if not content and not flags:
        raise BadRequest("No valid fields to update", code="NO_VALID_FIELDS")
    if flags and not is_admin(user):
        raise Forbidden("Only admins can mark finalists or winners", code="INSUFFICIENT_ROLE")

    brief = await get_brief_fresh(session, sub.brief_id)
    replaced: list[dict] = []
    if content:
        if str(sub.user_id) != str(user.id):
            raise Forbidden("You can only modify your own submissions", code="OWNERSHIP_REQUIRED")
        _require_open(brief)
        if "description" in content:
            sub.description = content["description"]
        if content.get("files") is not None:
            replaced = list(sub.files or [])
            sub.files = uploads.carry_stored_keys(replaced, content["files"])

    for k, v in flags.items():
        setattr(sub, k, v)
    if flags.get("is_winner"):
        brief.winner_user_id = sub.user_id
    elif flags.get("is_winner") is False and brief.winner_user_id == sub.user_id:
        brief.winner_user_id = None

    await session.commit()
    await session.refresh(sub)
    uploads.delete_replaced_files(replaced, sub.files)
    log.info("submission_updated", submission_id=str(sub.id), fields=sorted(content) + sorted(flags))
    return sub


async def delete_submission(session: AsyncSession, user, sub: Submission) -> None:
    ensure_owner_or_admin(user, sub.user_id, "You can only delete your own submissions")
    brief = await session.get(Brief, sub.brief_id)
    await session.execute(
        delete(Reaction).where(Reaction.submission_id == sub.id), execution_options={"synchronize_session": False}
    )
    if brief is not None and str(sub.user_id) in (brief.participants or []):
        brief.participants = [p for p in brief.participants if p != str(sub.user_id)]
    await session.delete(sub)
    await session.commit()
    for meta in sub.files or []:
        uploads.delete_file(meta)
    log.info("submission_deleted", submission_id=str(sub.id))


async def list_submissions(
    session: AsyncSession,
    brief_id: uuid.UUID | None = None,
    user_id: uuid.UUID | None = None,
    is_finalist: bool | None = None,
    is_winner: bool | None = None,
) -> list[Submission]:
    q = select(Submission)
    if brief_id:
        q = q.where(Submission.brief_id == brief_id)
    if user_id:
        q = q.where(Submission.user_id == user_id)
    if is_finalist is not None:
        q = q.where(Submission.is_finalist == is_finalist)
    if is_winner is not None:
        q = q.where(Submission.is_winner == is_winner)
    return (await session.execute(q.order_by(Submission.created_at.desc()))).scalars().all()
