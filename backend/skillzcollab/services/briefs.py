from __future__ import annotations
import uuid
from datetime import date, datetime, time, timezone
import structlog
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from skillzcollab.db import as_utc
from skillzcollab.errors import BadRequest, Forbidden, NotFound
from skillzcollab.models.brand import Brand
from skillzcollab.models.brief import Brief
from skillzcollab.models.reaction import Reaction
from skillzcollab.models.submission import Submission
from skillzcollab.models.tag import Tag
from skillzcollab.rbac import is_admin
from skillzcollab.schemas.brief import BriefCreate, BriefUpdate, TagRef
from skillzcollab.services import uploads
from skillzcollab.services.notifications import notify_tag_followers

log = structlog.get_logger()

DATE_FIELDS = ("submission_deadline", "voting_start", "voting_end")


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def start_of_today() -> datetime:
    return datetime.combine(today_utc(), time.min, tzinfo=timezone.utc)


def _utc(value: datetime | None) -> datetime | None:
    value = as_utc(value)
    return value.astimezone(timezone.utc) if value is not None else None


def validate_brief_dates(values: dict, changed: set[str] | None = None) -> None:
    """
    Collect every date problem and raise them together.
    Not-in-the-past checks apply only to fields in `changed` (all when None),
    so untouched dates on an older brief do not block other edits.
    """
    changed = set(DATE_FIELDS) if changed is None else changed
    deadline = _utc(values.get("submission_deadline"))
    v_start = _utc(values.get("voting_start"))
    v_end = _utc(values.get("voting_end"))
    today = today_utc()
    errors: list[str] = []
    if deadline and "submission_deadline" in changed and deadline <= start_of_today():
        errors.append("Submission deadline must be after today")
    if v_start and "voting_start" in changed and v_start.date() < today:
        errors.append("Voting start date cannot be before today")
    if v_start and v_end and v_end <= v_start:
        errors.append("Voting end date must be after voting start date")
    if v_end and deadline and v_end > deadline:
        errors.append("Voting end date cannot be after submission deadline")
    if errors:
        raise BadRequest("Date validation failed", code="DATE_VALIDATION_FAILED", details=errors)


def advance_if_expired(brief: Brief) -> bool:
    """submission -> in_review once the deadline has passed."""
    deadline = as_utc(brief.submission_deadline)
    if brief.status == "submission" and deadline is not None and deadline <= start_of_today():
        brief.status = "in_review"
        log.info("brief_status_advanced", brief_id=str(brief.id), from_status="submission", to_status="in_review")
        return True
    return False


async def advance_expired_briefs(session: AsyncSession, briefs: list[Brief]) -> int:
    changed = sum(1 for b in briefs if advance_if_expired(b))
    if changed:
        await session.commit()
    return changed


async def resolve_tags(session: AsyncSession, refs: list[uuid.UUID | TagRef]) -> list[dict]:
    ids: list[uuid.UUID] = []
    for r in refs:
        tag_id = r.id if isinstance(r, TagRef) else r
        if tag_id not in ids:
            ids.append(tag_id)
    if not ids:
        return []
    found = {t.id: t for t in (await session.execute(select(Tag).where(Tag.id.in_(ids)))).scalars().all()}
    missing = [str(i) for i in ids if i not in found]
    if missing:
        raise BadRequest(f"Unknown tag ids: {', '.join(missing)}", code="UNKNOWN_TAGS", details=missing)
    return [{"id": str(found[i].id), "name": found[i].name, "description": found[i].description} for i in ids]


async def get_brief(session: AsyncSession, brief_id: uuid.UUID) -> Brief:
    brief = await session.get(Brief, brief_id)
    if not brief:
        raise NotFound("Brief not found")
    return brief


async def get_brief_fresh(session: AsyncSession, brief_id: uuid.UUID) -> Brief:
    brief = await get_brief(session, brief_id)
    await advance_expired_briefs(session, [brief])
    return brief


async def ensure_can_manage_brief(session: AsyncSession, user, brief: Brief) -> None:
    if is_admin(user) or str(brief.crm_user_id) == str(user.id):
        return
    brand = await session.get(Brand, brief.brand_id)
    if brand is not None and str(brand.owner_id) == str(user.id):
        return
    raise Forbidden("You can only modify briefs you created", code="OWNERSHIP_REQUIRED")


def _stored_files(payload: BriefCreate | BriefUpdate) -> list[dict]:
    files = [f.model_dump() for f in payload.files or []]
    if payload.base64_images:
        files.extend(uploads.upload_base64_images(payload.base64_images, folder="briefs"))
    return files


async def create_brief(session: AsyncSession, user, brand_id: uuid.UUID, payload: BriefCreate) -> Brief:
    brand = await session.get(Brand, brand_id)
    if not brand:
        raise NotFound("Brand not found")
    validate_brief_dates(payload.model_dump())
    tags = await resolve_tags(session, payload.tags or [])
    brief = Brief(
        brand_id=brand.id,
        title=payload.title,
        description=payload.description,
        is_paid=bool(payload.is_paid),
        prize_amount=payload.prize_amount,
        submission_deadline=_utc(payload.submission_deadline),
        voting_start=_utc(payload.voting_start),
        voting_end=_utc(payload.voting_end),
        status=payload.status,
        crm_user_id=user.id,
        is_active=True if payload.is_active is None else payload.is_active,
        tags=tags,
        files=_stored_files(payload),
        participants=[],
    )
    session.add(brief)
    await session.commit()
    await session.refresh(brief)
    log.info("brief_created", brief_id=str(brief.id), brand_id=str(brand.id), status=brief.status)
    notify_tag_followers(brief.id, [t["id"] for t in tags])
    return brief


async def update_brief(session: AsyncSession, brief: Brief, payload: BriefUpdate) -> Brief:
    changes = payload.model_dump(exclude_unset=True)
    if "brand_id" in changes:
        raise BadRequest("brand_id cannot be changed", code="BRAND_ID_IMMUTABLE")
    changed_dates = {k for k in DATE_FIELDS if k in changes}
    if changed_dates:
        merged = {k: changes[k] if k in changes else getattr(brief, k) for k in DATE_FIELDS}
        validate_brief_dates(merged, changed_dates)

    if "tags" in changes:
        brief.tags = await resolve_tags(session, payload.tags or [])
    previous = list(brief.files or [])
    if "files" in changes or "base64_images" in changes:
        existing = [] if "files" in changes else previous
        brief.files = uploads.carry_stored_keys(previous, existing + _stored_files(payload))
    for field in ("description", "prize_amount", "winner_user_id"):
        if field in changes:
            setattr(brief, field, changes[field])
    for field in ("title", "status", "is_paid", "is_active"):
        if field in changes and changes[field] is not None:
            setattr(brief, field, changes[field])
    for field in changed_dates:
        setattr(brief, field, _utc(changes[field]))
    await session.commit()
    await session.refresh(brief)
    uploads.delete_replaced_files(previous, brief.files)
    log.info("brief_updated", brief_id=str(brief.id), fields=sorted(changes))
    if "tags" in changes:
        notify_tag_followers(brief.id, [t["id"] for t in brief.tags])
    return brief


async def delete_brief(session: AsyncSession, brief: Brief) -> None:
    sub_ids = select(Submission.id).where(Submission.brief_id == brief.id)
    files = list(brief.files or [])
    for sub_files in (await session.execute(select(Submission.files).where(Submission.brief_id == brief.id))).scalars():
        files.extend(sub_files or [])
    await session.execute(
        delete(Reaction).where(Reaction.submission_id.in_(sub_ids)), execution_options={"synchronize_session": False}
    )
    await session.execute(
        delete(Submission).where(Submission.brief_id == brief.id), execution_options={"synchronize_session": False}
    )
    await session.delete(brief)
    await session.commit()
    for meta in files:
        uploads.delete_file(meta)
    log.info("brief_deleted", brief_id=str(brief.id))
