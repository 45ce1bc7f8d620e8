from __future__ import annotations
import asyncio
import smtplib
import uuid
from email.message import EmailMessage
import structlog
from sqlalchemy import select
from skillzcollab.config import get_notifications_config
from skillzcollab.db import SessionLocal
from skillzcollab.models.brief import Brief
from skillzcollab.models.user import User

log = structlog.get_logger()


def followers_by_tag(users: list[User], tag_ids: list[str]) -> dict[str, list[User]]:
    wanted = set(tag_ids)
    grouped: dict[str, list[User]] = {t: [] for t in tag_ids}
    for u in users:
        for t in set(map(str, u.followed_tags or [])) & wanted:
            grouped[t].append(u)
    return grouped


def build_message(user: User, brief: Brief, tag_name: str) -> EmailMessage:
    cfg = get_notifications_config()
    msg = EmailMessage()
    msg["Subject"] = f"New Brief Alert: {brief.title}"
    msg["From"] = cfg.from_email
    msg["To"] = user.email
    msg.set_content(
        f"Hi {user.display_name or user.username},\n\n"
        f"A new brief tagged '{tag_name}' was just posted: {brief.title}\n\n"
        f"{brief.description or ''}\n\n"
        f"View it at {cfg.frontend_url.rstrip('/')}/briefs/{brief.id}\n"
    )
    return msg


async def _run(brief_id: str, tag_ids: list[str]) -> int:
    async with SessionLocal() as session:
        brief = await session.get(Brief, uuid.UUID(brief_id))
        if not brief:
            return 0
        users = (await session.execute(
            select(User).where(User.is_active.is_(True), User.is_verified.is_(True))
        )).scalars().all()

    names = {str(t.get("id")): t.get("name") for t in brief.tags or []}
    # one email per follower even when several tags match
    sent_to: set = set()
    messages = []
    for tag_id, followers in followers_by_tag(users, tag_ids).items():
        for u in followers:
            if u.id in sent_to:
                continue
            sent_to.add(u.id)
            messages.append(build_message(u, brief, names.get(tag_id) or tag_id))
    if not messages:
        return 0

    cfg = get_notifications_config()
    sent = 0
    with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=30) as smtp:
        for msg in messages:
            try:
                smtp.send_message(msg)
                sent += 1
            except smtplib.SMTPException as e:
                log.error("notify_send_failed", brief_id=brief_id, to=msg["To"], error=str(e))
    log.info("notify_followers_done", brief_id=brief_id, sent=sent, total=len(messages))
    return sent


def notify_followers(brief_id: str, tag_ids: list[str]) -> int:
    # RQ entry point (sync); run the async coroutine
    return asyncio.run(_run(brief_id, tag_ids))
