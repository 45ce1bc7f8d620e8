import base64
from urllib.parse import urlparse, parse_qs
import pytest
from fastapi import status
from sqlalchemy import update
from skillzcollab.models.user import User
from skillzcollab.services import oauth as oauth_service

PASSWORD = "Sup3rSecret"


def _register_body(**overrides):
    body = {
        "username": "maria_k",
        "email": "Maria@Example.com",
        "password": PASSWORD,
        "first_name": "Maria",
        "last_name": "K",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_register_login_profile_refresh(client):
    r = await client.post("/api/auth/register", json=_register_body())
    assert r.status_code == status.HTTP_201_CREATED, r.text
    body = r.json()
    assert body["user"]["email"] == "maria@example.com"
    assert body["user"]["role"] == "user"
    assert body["user"]["is_verified"] is True
    assert body["access_token"]
    assert "password_hash" not in body["user"]

    r = await client.post("/api/auth/login", json={"email": "maria@example.com", "password": PASSWORD})
    assert r.status_code == 200, r.text
    tokens = r.json()
    assert tokens["refresh_token"]

    r = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert r.status_code == 200
    assert r.json()["user"]["username"] == "maria_k"
    assert "brief:write" in r.json()["permissions"]

    r = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert r.status_code == 200
    assert r.json()["access_token"] != tokens["access_token"]
    assert r.json()["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(make_user, client):
    u = await make_user()
    r = await client.post("/api/auth/refresh", json={"refresh_token": u["access_token"]})
    assert r.status_code == 401
    assert r.json()["code"] == "INVALID_REFRESH_TOKEN"


@pytest.mark.asyncio
async def test_same_email_allowed_once_per_role(client):
    r = await client.post("/api/auth/register", json=_register_body())
    assert r.status_code == 201
    r = await client.post("/api/auth/register", json=_register_body(username="maria_admin", role="admin"))
    assert r.status_code == 201, r.text
    assert r.json()["user"]["is_verified"] is False
    assert r.json()["message"]

    r = await client.post("/api/auth/register", json=_register_body(username="maria_again"))
    assert r.status_code == status.HTTP_409_CONFLICT
    assert r.json()["code"] == "USER_EXISTS"


@pytest.mark.asyncio
async def test_duplicate_username_conflicts(client):
    assert (await client.post("/api/auth/register", json=_register_body())).status_code == 201
    r = await client.post("/api/auth/register", json=_register_body(email="other@example.com"))
    assert r.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"password": "short1A"},
    {"password": "alllowercase1"},
    {"password": "NoDigitsHere"},
    {"username": "ab"},
    {"username": "bad name!"},
    {"email": "not-an-email"},
    {"role": "super_admin"},
    {"first_name": ""},
])
async def test_register_validation(client, overrides):
    r = await client.post("/api/auth/register", json=_register_body(**overrides))
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_FAILED"


@pytest.mark.asyncio
async def test_unverified_admin_cannot_login(client):
    await client.post("/api/auth/register", json=_register_body(role="admin"))
    r = await client.post("/api/auth/login", json={"email": "maria@example.com", "password": PASSWORD})
    assert r.status_code == 403
    assert r.json()["code"] == "ACCOUNT_NOT_VERIFIED"


@pytest.mark.asyncio
async def test_login_picks_account_by_role(client, session_factory):
    await client.post("/api/auth/register", json=_register_body())
    await client.post("/api/auth/register", json=_register_body(username="maria_admin", role="admin"))
    async with session_factory() as session:
        await session.execute(update(User).where(User.username == "maria_admin").values(is_verified=True))
        await session.commit()

    r = await client.post("/api/auth/login", json={"email": "maria@example.com", "password": PASSWORD})
    assert r.json()["user"]["role"] == "user"
    r = await client.post("/api/auth/login", json={"email": "maria@example.com", "password": PASSWORD, "role": "admin"})
    assert r.status_code == 200
    assert r.json()["user"]["role"] == "admin"


@pytest.mark.asyncio
async def test_bad_password_and_deactivated(make_user, client, session_factory):
    u = await make_user()
    r = await client.post("/api/auth/login", json={"email": u["email"], "password": "Wrong12345"})
    assert r.status_code == 401
    assert r.json()["code"] == "INVALID_CREDENTIALS"

    async with session_factory() as session:
        await session.execute(update(User).where(User.username == u["username"]).values(is_active=False))
        await session.commit()
    r = await client.post("/api/auth/login", json={"email": u["email"], "password": PASSWORD})
    assert r.status_code == 403
    assert r.json()["code"] == "ACCOUNT_DEACTIVATED"
    r = await client.get("/api/auth/profile", headers=u["headers"])
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_missing_and_garbage_tokens(client, session_factory):
    r = await client.get("/api/auth/profile")
    assert r.status_code == 401
    r = await client.get("/api/auth/profile", headers={"Authorization": "Bearer not.a.jwt"})
    assert r.status_code == 401
    assert r.json()["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_logout_revokes_existing_tokens(make_user, client):
    u = await make_user()
    r = await client.post("/api/auth/logout", headers=u["headers"])
    assert r.status_code == 200
    r = await client.get("/api/auth/profile", headers=u["headers"])
    assert r.status_code == 401
    r = await client.post("/api/auth/refresh", json={"refresh_token": u["refresh_token"]})
    assert r.status_code == 401

    r = await client.post("/api/auth/login", json={"email": u["email"], "password": PASSWORD})
    fresh = {"Authorization": f"Bearer {r.json()['access_token']}"}
    assert (await client.get("/api/auth/profile", headers=fresh)).status_code == 200


@pytest.mark.asyncio
async def test_change_password(make_user, client):
    u = await make_user()
    r = await client.post("/api/auth/change-password", headers=u["headers"],
                          json={"current_password": "Nope12345", "new_password": "N3wPassword"})
    assert r.status_code == 400
    assert r.json()["code"] == "INCORRECT_CURRENT_PASSWORD"

    r = await client.post("/api/auth/change-password", headers=u["headers"],
                          json={"current_password": PASSWORD, "new_password": "weak"})
    assert r.status_code == 422

    r = await client.post("/api/auth/change-password", headers=u["headers"],
                          json={"current_password": PASSWORD, "new_password": "N3wPassword"})
    assert r.status_code == 200
    r = await client.post("/api/auth/login", json={"email": u["email"], "password": "N3wPassword"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_update_profile(make_user, client):
    u = await make_user()
    r = await client.put("/api/auth/profile", headers=u["headers"], json={"bio": "Illustrator", "skills": ["ink"], "role": "admin"})
    assert r.status_code == 200, r.text
    assert r.json()["bio"] == "Illustrator"
    assert r.json()["skills"] == ["ink"]
    assert r.json()["role"] == "user"

    r = await client.put("/api/auth/profile", headers=u["headers"], json={"role": "admin"})
    assert r.status_code == 400
    assert r.json()["code"] == "NO_VALID_FIELDS"


@pytest.mark.asyncio
async def test_basic_auth_and_api_key(make_user, client):
    u = await make_user(username="api_robot")
    creds = base64.b64encode(f"{u['username']}:{PASSWORD}".encode()).decode()
    r = await client.get("/api/auth/profile", headers={"Authorization": f"Basic {creds}"})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == u["id"]

    bad = base64.b64encode(f"{u['username']}:wrong".encode()).decode()
    r = await client.get("/api/auth/profile", headers={"Authorization": f"Basic {bad}"})
    assert r.status_code == 401

    r = await client.get("/api/auth/profile", headers={"X-API-Key": "test-api-key"})
    assert r.status_code == 200
    assert r.json()["user"]["username"] == "api_robot"
    r = await client.get("/api/auth/profile", headers={"X-API-Key": "nope"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_optional_auth_fails_open(client):
    r = await client.get("/api/briefs", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 200
    assert r.json() == []


@pytest.mark.asyncio
async def test_verify(make_user, client):
    u = await make_user()
    r = await client.post("/api/auth/verify", headers=u["headers"])
    assert r.status_code == 200
    assert r.json()["valid"] is True
    assert r.json()["claims"]["sub"] == u["id"]
    r = await client.post("/api/auth/verify")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_google_authorize_url(client):
    r = await client.get("/api/auth/oauth/google", params={"redirect": "false"})
    assert r.status_code == 200
    url = urlparse(r.json()["auth_url"])
    qs = parse_qs(url.query)
    assert url.netloc == "accounts.google.com"
    assert qs["client_id"] == ["test-client"]
    assert qs["state"][0]

    r = await client.get("/api/auth/oauth/google")
    assert r.status_code == 302
    assert r.headers["location"].startswith("https://accounts.google.com/")


@pytest.mark.asyncio
async def test_google_callback_creates_then_reuses_user(client, monkeypatch):
    async def fake_profile(code):
        assert code == "abc"
        return {"id": "g-123", "email": "Jo@Gmail.com", "given_name": "Jo", "family_name": "D", "name": "Jo D"}

    monkeypatch.setattr(oauth_service, "fetch_google_profile", fake_profile)
    r = await client.get("/api/auth/oauth/google", params={"redirect": "false"})
    state = parse_qs(urlparse(r.json()["auth_url"]).query)["state"][0]

    r = await client.get("/api/auth/oauth/google/callback", params={"code": "abc", "state": state})
    assert r.status_code == 200, r.text
    first = r.json()
    assert first["user"]["email"] == "jo@gmail.com"
    assert first["user"]["role"] == "user"
    assert first["user"]["username"].startswith("jo_")
    assert first["refresh_token"]

    r = await client.get("/api/auth/oauth/google/callback", params={"code": "abc", "state": state})
    assert r.json()["user"]["id"] == first["user"]["id"]


@pytest.mark.asyncio
async def test_google_callback_rejects_bad_state(client):
    r = await client.get("/api/auth/oauth/google/callback", params={"code": "abc", "state": "forged"})
    assert r.status_code == 400
    assert r.json()["code"] == "OAUTH_FAILED"
