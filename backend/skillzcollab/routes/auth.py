from __future__ import annotations
from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from skillzcollab.auth_deps import get_current_user
from skillzcollab.config import get_oauth_config
from skillzcollab.db import get_session
from skillzcollab.errors import BadRequest, Unauthorized
from skillzcollab.models.user import User
from skillzcollab.rbac import get_effective_permissions
from skillzcollab.schemas.auth import RegisterRequest, LoginRequest, RefreshRequest, ChangePasswordRequest, TokenPair, VerifyResponse
from skillzcollab.schemas.user import UserPublic, AuthResult, ProfileUpdate
from skillzcollab.security import decode_token, make_access_token
from skillzcollab.services import auth as auth_service
from skillzcollab.services import oauth as oauth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/register", status_code=201, response_model=AuthResult)
async def register(payload: RegisterRequest, session: AsyncSession = Depends(get_session)):
    user = await auth_service.register_user(session, payload)
    message = None
    if not user.is_verified:
        message = "Registration received. An administrator must approve this account before you can sign in."
    return AuthResult(
        user=UserPublic.model_validate(user),
        access_token=make_access_token(user),
        message=message,
    )

@router.post("/login", response_model=AuthResult)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_session)):
    user = await auth_service.login_user(session, payload.email, payload.password, payload.role)
    tokens = auth_service.issue_tokens(user)
    return AuthResult(user=UserPublic.model_validate(user), **tokens)

@router.post("/refresh", response_model=TokenPair)
async def refresh(payload: RefreshRequest, session: AsyncSession = Depends(get_session)):
    _, tokens = await auth_service.refresh_tokens(session, payload.refresh_token)
    return TokenPair(**tokens)

@router.post("/logout")
async def logout(user: User = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    await auth_service.logout_user(session, user)
    return {"success": True, "message": "Logged out"}

@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await auth_service.change_password(session, user, payload.current_password, payload.new_password)
    return {"success": True, "message": "Password changed"}

@router.get("/profile")
async def profile(user: User = Depends(get_current_user)):
    return {"user": UserPublic.model_validate(user), "permissions": get_effective_permissions(user)}

@router.put("/profile", response_model=UserPublic)
async def update_profile(
    body: dict = Body(...),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    allowed = {k: v for k, v in body.items() if k in auth_service.PROFILE_FIELDS}
    if not allowed:
        raise BadRequest(
            f"No valid fields to update. Allowed: {', '.join(auth_service.PROFILE_FIELDS)}", code="NO_VALID_FIELDS"
        )
    changes = ProfileUpdate.model_validate(allowed).model_dump(exclude_unset=True)
    user = await auth_service.update_profile(session, user, changes)
    return UserPublic.model_validate(user)

@router.post("/verify", response_model=VerifyResponse)
async def verify(request: Request):
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise Unauthorized("Missing access token")
    claims = decode_token(token.strip())
    return VerifyResponse(valid=True, claims=claims)

@router.get("/oauth/google")
async def google_login(redirect: bool = Query(True)):
    # Google sign-in only ever creates plain user accounts
    url = oauth_service.build_authorize_url("user")
    if redirect:
        return RedirectResponse(url, status_code=302)
    return {"auth_url": url}

@router.get("/oauth/google/callback")
async def google_callback(
    code: str = Query(...),
    state: str = Query(...),
    session: AsyncSession = Depends(get_session),
):
    user = await oauth_service.complete_oauth(session, code, state)
    tokens = auth_service.issue_tokens(user)
    frontend = get_oauth_config().google.frontend_redirect_url
    if frontend:
        sep = "&" if "?" in frontend else "?"
        return RedirectResponse(
            f"{frontend}{sep}access_token={tokens['access_token']}&refresh_token={tokens['refresh_token']}",
            status_code=302,
        )
    return AuthResult(user=UserPublic.model_validate(user), **tokens)
