from types import SimpleNamespace
import uuid
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from skillzcollab.config import NotificationsConfig
from skillzcollab.jobs import notify_followers as job
from skillzcollab.services import briefs as brief_service
from skillzcollab.services import notifications


class FakeQueue:
    def __init__(self, fail=False):
        self.fail = fail
        self.jobs = []

    def enqueue(self, func, *args, **kwargs):
        if self.fail:
            raise RedisConnectionError("redis down")
        self.jobs.append((func, args, kwargs))


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


def _enable(monkeypatch):
    monkeypatch.setattr(notifications, "get_notifications_config", lambda: NotificationsConfig(enabled=True))


def test_disabled_or_no_tags_is_a_no_op(monkeypatch):
    queue = FakeQueue()
    monkeypatch.setattr(notifications, "_queue", lambda: queue)
    assert notifications.notify_tag_followers(uuid.uuid4(), ["t1"]) is False
    _enable(monkeypatch)
    assert notifications.notify_tag_followers(uuid.uuid4(), []) is False
    assert queue.jobs == []


def test_enqueues_job(monkeypatch):
    _enable(monkeypatch)
    queue = FakeQueue()
    monkeypatch.setattr(notifications, "_queue", lambda: queue)
    brief_id = uuid.uuid4()
    assert notifications.notify_tag_followers(brief_id, [uuid.UUID(int=1)]) is True
    func, args, kwargs = queue.jobs[0]
    assert func is job.notify_followers
    assert args == (str(brief_id), [str(uuid.UUID(int=1))])
    assert kwargs == {"job_timeout": 60}


def test_redis_failure_does_not_raise(monkeypatch):
    _enable(monkeypatch)
    monkeypatch.setattr(notifications, "_queue", lambda: FakeQueue(fail=True))
    assert notifications.notify_tag_followers(uuid.uuid4(), ["t1"]) is False


def test_followers_by_tag_and_message():
    a = SimpleNamespace(id=1, email="a@x.io", username="a", display_name=None, followed_tags=["t1", "t2"])
    b = SimpleNamespace(id=2, email="b@x.io", username="b", display_name="Bee", followed_tags=["t2"])
    c = SimpleNamespace(id=3, email="c@x.io", username="c", display_name=None, followed_tags=[])
    grouped = job.followers_by_tag([a, b, c], ["t1", "t2"])
    assert [u.id for u in grouped["t1"]] == [1]
    assert sorted(u.id for u in grouped["t2"]) == [1, 2]

    brief = SimpleNamespace(id="b-1", title="Logo", description="Need a logo")
    msg = job.build_message(b, brief, "Branding")
    assert msg["To"] == "b@x.io"
    assert msg["Subject"] == "New Brief Alert: Logo"
    assert "Hi Bee" in msg.get_content()
    assert "/briefs/b-1" in msg.get_content()


@pytest.mark.asyncio
async def test_brief_creation_notifies_tag_followers(make_user, client, monkeypatch):
    calls = []
    monkeypatch.setattr(brief_service, "notify_tag_followers", lambda brief_id, tags: calls.append((brief_id, tags)))
    admin = await make_user("admin")
    tag = (await client.post("/api/tags", json={"name": "Branding"}, headers=admin["headers"])).json()
    brand = (await client.post("/api/brands", json={"name": "Acme", "contact_email": "a@acme.io"},
                               headers=admin["headers"])).json()
    r = await client.post(f"/api/brands/{brand['id']}/briefs", json={"title": "Logo", "tags": [tag["id"]]},
                          headers=admin["headers"])
    assert r.status_code == 201
    assert calls == [(uuid.UUID(r.json()["id"]), [tag["id"]])]


@pytest.mark.asyncio
async def test_job_emails_each_follower_once(make_user, make_brief, client, session_factory, monkeypatch):
    admin = await make_user("admin")
    follower = await make_user()
    t1 = (await client.post("/api/tags", json={"name": "Branding"}, headers=admin["headers"])).json()["id"]
    t2 = (await client.post("/api/tags", json={"name": "Print"}, headers=admin["headers"])).json()["id"]
    await client.patch(f"/api/users/{follower['id']}", json={"followed_tags": [t1, t2]}, headers=follower["headers"])
    brief = await make_brief(admin["headers"], tags=[t1, t2])

    FakeSMTP.sent = []
    monkeypatch.setattr(job, "SessionLocal", session_factory)
    monkeypatch.setattr(job.smtplib, "SMTP", FakeSMTP)
    sent = await job._run(brief["id"], [t1, t2])
    assert sent == 1
    assert [m["To"] for m in FakeSMTP.sent] == [follower["email"]]
    assert await job._run(str(uuid.uuid4()), [t1]) == 0
