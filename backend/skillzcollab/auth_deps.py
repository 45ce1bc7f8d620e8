from __future__ import annotations
import base64
import binascii
import uuid
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from skillzcollab.config import get_basic_auth_config
from skillzcollab.db import get_session, as_utc
from skillzcollab.errors import AppError, Unauthorized, Forbidden
from skillzcollab.security import decode_token, verify_password
from skillzcollab.models.user import User

log = structlog.get_logger()

security = HTTPBearer(auto_error=False)


def check_account_status(user: User) -> None:
    if not user.is_active:
        raise Forbidden("Account is deactivated", code="ACCOUNT_DEACTIVATED")
    # super admins are seeded verified, but never lock them out on the flag
    if not user.is_verified and user.role != "super_admin":
        raise Forbidden("Account is not verified", code="ACCOUNT_NOT_VERIFIED")


async def _from_jwt(token: str, session: AsyncSession) -> User:
    data = decode_token(token)
    if data.get("type") != "access":
        raise Unauthorized("Wrong token type", code="INVALID_TOKEN")
    try:
        user = await session.get(User, uuid.UUID(str(data.get("sub"))))
    except ValueError:
        raise Unauthorized("Invalid token", code="INVALID_TOKEN")
    if not user:
        raise Unauthorized("User not found", code="INVALID_TOKEN")
    logout_at = as_utc(user.last_logout_at)
    if logout_at is not None and float(data.get("iat", 0)) < logout_at.timestamp():
        raise Unauthorized("Token has been revoked", code="INVALID_TOKEN")
    return user


def parse_basic_header(value: str) -> tuple[str, str]:
    try:
        decoded = base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise Unauthorized("Malformed basic credentials", code="INVALID_CREDENTIALS")
    username, sep, password = decoded.partition(":")
    if not sep or not username:
        raise Unauthorized("Malformed basic credentials", code="INVALID_CREDENTIALS")
    return username, password


async def _from_basic(value: str, session: AsyncSession) -> User:
    username, password = parse_basic_header(value)
    rows = (await session.execute(
        select(User).where(or_(User.username == username, User.email == username.lower()))
    )).scalars().all()
    for user in rows:
        if verify_password(password, user.password_hash):
            return user
    raise Unauthorized("Invalid credentials", code="INVALID_CREDENTIALS")


async def _from_api_key(key: str, session: AsyncSession) -> User:
    username = get_basic_auth_config().api_keys.get(key)
    if not username:
        raise Unauthorized("Invalid API key", code="INVALID_CREDENTIALS")
    user = await session.scalar(select(User).where(User.username == username))
    if not user:
        raise Unauthorized("API key user not found", code="INVALID_CREDENTIALS")
    return user


async def authenticate_request(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
    session: AsyncSession,
) -> User:
    """
    Resolve the caller from a Bearer JWT, then HTTP Basic, then X-API-Key
    (the last two only when basic_auth is enabled). The first failure is
    reported when no method succeeds.
    """
    attempts = []
    if credentials is not None and credentials.scheme.lower() == "bearer":
        attempts.append(("jwt", lambda: _from_jwt(credentials.credentials, session)))
    if get_basic_auth_config().enabled:
        header = request.headers.get("authorization") or ""
        scheme, _, value = header.partition(" ")
        if scheme.lower() == "basic" and value:
            attempts.append(("basic", lambda: _from_basic(value.strip(), session)))
        api_key = request.headers.get("x-api-key")
        if api_key:
            attempts.append(("api_key", lambda: _from_api_key(api_key, session)))

    first_error: AppError | None = None
    for method, attempt in attempts:
        try:
            user = await attempt()
        except AppError as e:
            first_error = first_error or e
            continue
        check_account_status(user)
        request.state.auth_method = method
        return user
    if first_error is not None:
        raise first_error
    raise Unauthorized("Authentication required")


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> User:
    return await authenticate_request(request, credentials, session)


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> User | None:
    # fail-open: anonymous on any auth failure
    if credentials is None and not request.headers.get("authorization") and not request.headers.get("x-api-key"):
        return None
    try:
        return await authenticate_request(request, credentials, session)
    except AppError as e:
        log.warning("optional_auth_failed", code=e.code, reason=e.message)
        return None
