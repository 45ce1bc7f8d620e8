from __future__ import annotations
import random
import re
from datetime import datetime, timezone
from urllib.parse import urlencode
import httpx
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from skillzcollab.auth_deps import check_account_status
from skillzcollab.config import get_oauth_config
from skillzcollab.errors import BadRequest, UpstreamError, Unauthorized
from skillzcollab.models.user import User
from skillzcollab.security import sign_state, decode_token

log = structlog.get_logger()


def build_authorize_url(role: str = "user") -> str:
    google = get_oauth_config().google
    if not google.client_id:
        raise BadRequest("Google sign-in is not configured", code="OAUTH_FAILED")
    params = {
        "client_id": google.client_id,
        "redirect_uri": google.redirect_url,
        "response_type": "code",
        "scope": " ".join(google.scopes),
        "access_type": "offline",
        "prompt": "consent",
        "state": sign_state({"role": role}),
    }
    return f"{google.auth_url}?{urlencode(params)}"


def verify_state(state: str) -> dict:
    try:
        data = decode_token(state)
    except Unauthorized:
        raise BadRequest("Invalid OAuth state", code="OAUTH_FAILED")
    if data.get("type") != "oauth_state":
        raise BadRequest("Invalid OAuth state", code="OAUTH_FAILED")
    return data


async def fetch_google_profile(code: str) -> dict:
    google = get_oauth_config().google
    try:
        async with httpx.AsyncClient(timeout=10) as client:
            r = await client.post(google.token_url, data={
                "code": code,
                "client_id": google.client_id,
                "client_secret": google.secret,
                "redirect_uri": google.redirect_url,
                "grant_type": "authorization_code",
            })
            r.raise_for_status()
            access_token = r.json().get("access_token")
            if not access_token:
                raise UpstreamError("Google did not return an access token", code="OAUTH_FAILED")
            r = await client.get(google.userinfo_url, headers={"Authorization": f"Bearer {access_token}"})
            r.raise_for_status()
            return r.json()
    except httpx.HTTPError as e:
        log.error("oauth_exchange_failed", error=str(e))
        raise UpstreamError("Google authentication failed", code="OAUTH_FAILED") from e


async def _unique_username(session: AsyncSession, email: str) -> str:
    local = re.sub(r"[^A-Za-z0-9_]", "_", email.split("@", 1)[0])[:40] or "user"
    for _ in range(10):
        candidate = f"{local}_{random.randint(1000, 9999)}"
        if not await session.scalar(select(User.id).where(User.username == candidate)):
            return candidate
    raise UpstreamError("Could not allocate a username", code="OAUTH_FAILED")


async def find_or_create_google_user(session: AsyncSession, profile: dict) -> User:
    email = (profile.get("email") or "").lower()
    google_id = profile.get("id") or profile.get("sub")
    if not email or not google_id:
        raise UpstreamError("Google profile is missing email or id", code="OAUTH_FAILED")

    user = await session.scalar(select(User).where(User.google_id == str(google_id)))
    if user is None:
        rows = (await session.execute(select(User).where(User.email == email))).scalars().all()
        user = next((u for u in rows if u.role == "user"), rows[0] if rows else None)
    now = datetime.now(timezone.utc)
    if user is not None:
        check_account_status(user)
        user.google_id = str(google_id)
        user.profile_image_url = profile.get("picture") or user.profile_image_url
        user.last_login = now
        await session.commit()
        return user

    user = User(
        username=await _unique_username(session, email),
        email=email,
        password_hash=None,
        google_id=str(google_id),
        first_name=profile.get("given_name"),
        last_name=profile.get("family_name"),
        display_name=profile.get("name") or email.split("@", 1)[0],
        profile_image_url=profile.get("picture"),
        role="user",
        is_verified=True,
        is_active=True,
        last_login=now,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    log.info("oauth_user_created", user_id=str(user.id))
    return user


async def complete_oauth(session: AsyncSession, code: str, state: str) -> User:
    verify_state(state)
    profile = await fetch_google_profile(code)
    return await find_or_create_google_user(session, profile)
