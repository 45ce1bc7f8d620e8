import os
import uuid
from pathlib import Path

os.environ["SKILLZ_CONFIG"] = str(Path(__file__).parent / "config.test.yaml")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from skillzcollab.db import Base, get_session
from skillzcollab.main import app
from skillzcollab.models.user import User
from skillzcollab.services import storage
from skillzcollab.services.auth import create_super_admin

PASSWORD = "Sup3rSecret"


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)

    async def _session():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    yield factory
    app.dependency_overrides.pop(get_session, None)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(session_factory):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture(autouse=True)
def stored_objects(monkeypatch):
    """In-memory stand-in for the object store."""
    objects: dict[str, tuple[bytes, str]] = {}

    def put_bytes(key, data, content_type):
        objects[key] = (data, content_type)

    monkeypatch.setattr(storage, "put_bytes", put_bytes)
    monkeypatch.setattr(storage, "delete_object", lambda key: objects.pop(key, None) is not None)
    return objects


@pytest.fixture
def make_user(client, session_factory):
    async def _make(role: str = "user", password: str = PASSWORD, email: str | None = None, username: str | None = None):
        suffix = uuid.uuid4().hex[:8]
        username = username or f"{role}_{suffix}"
        email = email or f"{role}-{suffix}@example.com"
        if role == "super_admin":
            async with session_factory() as session:
                await create_super_admin(session, username=username, email=email, password=password)
        else:
            r = await client.post("/api/auth/register", json={
                "username": username,
                "email": email,
                "password": password,
                "first_name": "Test",
                "last_name": "User",
                "role": role,
            })
            assert r.status_code == 201, r.text
            if role == "admin":
                async with session_factory() as session:
                    await session.execute(update(User).where(User.username == username).values(is_verified=True))
                    await session.commit()
        r = await client.post("/api/auth/login", json={"email": email, "password": password, "role": role})
        assert r.status_code == 200, r.text
        body = r.json()
        return {
            "id": body["user"]["id"],
            "username": username,
            "email": email,
            "password": password,
            "access_token": body["access_token"],
            "refresh_token": body["refresh_token"],
            "headers": {"Authorization": f"Bearer {body['access_token']}"},
        }
    return _make


@pytest.fixture
def make_brief(client):
    async def _make(headers: dict, status: str = "submission", **fields):
        r = await client.post("/api/brands", json={
            "name": "Acme",
            "contact_email": f"brand-{uuid.uuid4().hex[:8]}@example.com",
        }, headers=headers)
        assert r.status_code == 201, r.text
        brand_id = r.json()["id"]
        r = await client.post(f"/api/brands/{brand_id}/briefs", json={"title": "Logo", "status": status, **fields}, headers=headers)
        assert r.status_code == 201, r.text
        return r.json()
    return _make


def _file_meta(name: str = "work.png") -> dict:
    return {
        "id": str(uuid.uuid4()),
        "filename": name,
        "size": 10,
        "type": "image/png",
        "url": f"http://cdn.test/test-bucket/submissions/{name}",
        "hash": "d41d8cd98f00b204e9800998ecf8427e",
    }


@pytest.fixture
def file_meta():
    return _file_meta


@pytest.fixture
def make_submission(client):
    async def _make(headers: dict, brief_id: str, description: str = "my take"):
        r = await client.post("/api/submissions", json={
            "brief_id": brief_id,
            "description": description,
            "files": [_file_meta()],
        }, headers=headers)
        assert r.status_code == 201, r.text
        return r.json()
    return _make
