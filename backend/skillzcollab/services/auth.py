from __future__ import annotations
import uuid
from datetime import datetime, timedelta, timezone
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from skillzcollab.auth_deps import check_account_status
from skillzcollab.db import as_utc
from skillzcollab.errors import BadRequest, Conflict, Unauthorized
from skillzcollab.models.user import User, ROLES
from skillzcollab.schemas.auth import RegisterRequest
from skillzcollab.security import (
    hash_password, verify_password, make_access_token, make_refresh_token, decode_token, access_ttl_seconds,
)

log = structlog.get_logger()

PROFILE_FIELDS = ("display_name", "bio", "phone_number", "alternate_email", "social_links", "skills", "specialities")


def issue_tokens(user: User) -> dict:
    return {
        "access_token": make_access_token(user),
        "refresh_token": make_refresh_token(user),
        "expires_at": datetime.now(timezone.utc) + timedelta(seconds=access_ttl_seconds()),
    }


async def register_user(session: AsyncSession, payload: RegisterRequest) -> User:
    if await session.scalar(select(User).where(User.username == payload.username)):
        raise Conflict("Username already taken", code="USER_EXISTS")
    # one account per (email, role)
    if await session.scalar(select(User).where(User.email == payload.email, User.role == payload.role)):
        raise Conflict(f"An account with this email already exists for role {payload.role}", code="USER_EXISTS")

    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        display_name=payload.display_name or f"{payload.first_name} {payload.last_name}",
        role=payload.role,
        # admins wait for super_admin approval
        is_verified=payload.role == "user",
        is_active=True,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Conflict("User already exists", code="USER_EXISTS")
    await session.refresh(user)
    log.info("user_registered", user_id=str(user.id), role=user.role)
    return user


async def create_super_admin(session: AsyncSession, *, username: str, email: str, password: str) -> User:
    user = User(
        username=username,
        email=email.lower(),
        password_hash=hash_password(password),
        display_name=username,
        role="super_admin",
        is_verified=True,
        is_active=True,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Conflict("User already exists", code="USER_EXISTS")
    await session.refresh(user)
    log.info("super_admin_created", user_id=str(user.id))
    return user


async def login_user(session: AsyncSession, email: str, password: str, role: str | None = None) -> User:
    """
    Authenticate by email and password.
    When an email holds several accounts (one per role), `role` selects
    one; otherwise the lowest-privilege account whose password matches wins.
    """
    q = select(User).where(User.email == email.lower())
    if role:
        q = q.where(User.role == role)
    candidates = (await session.execute(q)).scalars().all()
    candidates = sorted(candidates, key=lambda u: ROLES.index(u.role) if u.role in ROLES else len(ROLES))
    user = next((u for u in candidates if verify_password(password, u.password_hash)), None)
    if user is None:
        log.info("login_failed", email=email)
        raise Unauthorized("Invalid email or password", code="INVALID_CREDENTIALS")
    check_account_status(user)
    user.last_login = datetime.now(timezone.utc)
    await session.commit()
    log.info("login_succeeded", user_id=str(user.id), role=user.role)
    return user


async def refresh_tokens(session: AsyncSession, refresh_token: str) -> tuple[User, dict]:
    try:
        data = decode_token(refresh_token)
    except Unauthorized:
        raise Unauthorized("Invalid refresh token", code="INVALID_REFRESH_TOKEN")
    if data.get("type") != "refresh":
        raise Unauthorized("Wrong token type", code="INVALID_REFRESH_TOKEN")
    try:
        user = await session.get(User, uuid.UUID(str(data.get("sub"))))
    except ValueError:
        user = None
    if user is None or not user.is_active:
        raise Unauthorized("Invalid refresh token", code="INVALID_REFRESH_TOKEN")
    if user.last_logout_at is not None and float(data.get("iat", 0)) < as_utc(user.last_logout_at).timestamp():
        raise Unauthorized("Refresh token has been revoked", code="INVALID_REFRESH_TOKEN")
    return user, issue_tokens(user)


async def change_password(session: AsyncSession, user: User, current: str, new: str) -> None:
    if not verify_password(current, user.password_hash):
        raise BadRequest("Current password is incorrect", code="INCORRECT_CURRENT_PASSWORD")
    user.password_hash = hash_password(new)
    await session.commit()
    log.info("password_changed", user_id=str(user.id))


async def logout_user(session: AsyncSession, user: User) -> None:
    user.last_logout_at = datetime.now(timezone.utc)
    await session.commit()
    log.info("logout", user_id=str(user.id))


async def update_profile(session: AsyncSession, user: User, changes: dict) -> User:
    fields = {k: v for k, v in changes.items() if k in PROFILE_FIELDS}
    if not fields:
        raise BadRequest(f"No valid fields to update. Allowed: {', '.join(PROFILE_FIELDS)}", code="NO_VALID_FIELDS")
    for k, v in fields.items():
        setattr(user, k, v)
    await session.commit()
    await session.refresh(user)
    return user
