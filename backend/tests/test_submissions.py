import io
import pytest
from fastapi import status
from PIL import Image


def _png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (2, 2)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.mark.asyncio
async def test_submit_and_participants(make_user, make_brief, make_submission, client):
    owner = await make_user()
    creator = await make_user()
    brief = await make_brief(owner["headers"])
    sub = await make_submission(creator["headers"], brief["id"])
    assert sub["user_id"] == creator["id"]
    assert sub["likes"] == 0 and sub["votes"] == 0
    assert sub["is_winner"] is False

    r = await client.get(f"/api/briefs/{brief['id']}")
    assert r.json()["participants"] == [creator["id"]]

    r = await client.get(f"/api/briefs/{brief['id']}/submissions", headers=owner["headers"])
    assert [s["id"] for s in r.json()] == [sub["id"]]
    r = await client.get(f"/api/submissions/{sub['id']}", headers=owner["headers"])
    assert r.json()["description"] == "my take"


@pytest.mark.asyncio
async def test_one_submission_per_brief(make_user, make_brief, make_submission, client, file_meta):
    owner = await make_user()
    creator = await make_user()
    brief = await make_brief(owner["headers"])
    await make_submission(creator["headers"], brief["id"])
    r = await client.post("/api/submissions", json={"brief_id": brief["id"], "files": [file_meta()]},
                          headers=creator["headers"])
    assert r.status_code == status.HTTP_409_CONFLICT
    assert r.json()["code"] == "SUBMISSION_EXISTS"


@pytest.mark.asyncio
async def test_closed_brief_rejects_submissions(make_user, make_brief, client, file_meta):
    owner = await make_user()
    brief = await make_brief(owner["headers"], status="draft")
    r = await client.post("/api/submissions", json={"brief_id": brief["id"], "files": [file_meta()]},
                          headers=owner["headers"])
    assert r.status_code == 400
    assert r.json()["code"] == "SUBMISSIONS_CLOSED"


@pytest.mark.asyncio
@pytest.mark.parametrize("files", [[], [{"id": "x", "filename": "a.png"}], [{"id": "", "filename": "a", "size": 1,
                                                                         "type": "t", "url": "u", "hash": "h"}]])
async def test_file_metadata_shape(make_user, make_brief, client, files):
    u = await make_user()
    brief = await make_brief(u["headers"])
    r = await client.post("/api/submissions", json={"brief_id": brief["id"], "files": files}, headers=u["headers"])
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_FAILED"


@pytest.mark.asyncio
async def test_owner_edits_while_open(make_user, make_brief, make_submission, client):
    owner = await make_user()
    creator = await make_user()
    brief = await make_brief(owner["headers"])
    sub = await make_submission(creator["headers"], brief["id"])

    r = await client.patch(f"/api/submissions/{sub['id']}", json={"description": "v2"}, headers=creator["headers"])
    assert r.status_code == 200
    assert r.json()["description"] == "v2"

    r = await client.patch(f"/api/submissions/{sub['id']}", json={"description": "mine now"}, headers=owner["headers"])
    assert r.status_code == 403
    assert r.json()["code"] == "OWNERSHIP_REQUIRED"

    await client.patch(f"/api/briefs/{brief['id']}", json={"status": "in_review"}, headers=owner["headers"])
    r = await client.patch(f"/api/submissions/{sub['id']}", json={"description": "v3"}, headers=creator["headers"])
    assert r.status_code == 400
    assert r.json()["code"] == "SUBMISSIONS_CLOSED"

    r = await client.patch(f"/api/submissions/{sub['id']}", json={}, headers=creator["headers"])
    assert r.json()["code"] == "NO_VALID_FIELDS"


@pytest.mark.asyncio
async def test_only_admins_pick_finalists_and_winners(make_user, make_brief, make_submission, client):
    owner = await make_user()
    creator = await make_user()
    admin = await make_user("admin")
    brief = await make_brief(owner["headers"])
    sub = await make_submission(creator["headers"], brief["id"])

    r = await client.patch(f"/api/submissions/{sub['id']}", json={"is_winner": True}, headers=creator["headers"])
    assert r.status_code == 403
    assert r.json()["code"] == "INSUFFICIENT_ROLE"

    r = await client.patch(f"/api/submissions/{sub['id']}", json={"is_finalist": True, "is_winner": True},
                           headers=admin["headers"])
    assert r.status_code == 200
    assert r.json()["is_finalist"] is True
    assert r.json()["is_winner"] is True

    r = await client.get(f"/api/briefs/{brief['id']}")
    assert r.json()["winner_user_id"] == creator["id"]
    r = await client.get("/api/submissions", params={"is_winner": "true"}, headers=owner["headers"])
    assert [s["id"] for s in r.json()] == [sub["id"]]


@pytest.mark.asyncio
async def test_delete_submission(make_user, make_brief, make_submission, client):
    owner = await make_user()
    creator = await make_user()
    brief = await make_brief(owner["headers"])
    sub = await make_submission(creator["headers"], brief["id"])
    await client.post("/api/reactions", json={"submission_id": sub["id"], "type": "like"}, headers=owner["headers"])

    r = await client.delete(f"/api/submissions/{sub['id']}", headers=owner["headers"])
    assert r.status_code == 403
    r = await client.delete(f"/api/submissions/{sub['id']}", headers=creator["headers"])
    assert r.status_code == 200
    assert (await client.get(f"/api/submissions/{sub['id']}", headers=owner["headers"])).status_code == 404
    r = await client.get(f"/api/briefs/{brief['id']}")
    assert r.json()["participants"] == []


@pytest.mark.asyncio
async def test_multipart_submission_uploads_files(make_user, make_brief, client, stored_objects):
    owner = await make_user()
    creator = await make_user()
    brief = await make_brief(owner["headers"])
    data = _png_bytes()
    r = await client.post(
        f"/api/briefs/{brief['id']}/submissions",
        data={"description": "two takes"},
        files=[("files", ("a.png", data, "image/png")), ("files", ("b.pdf", b"%PDF-1.4", "application/pdf"))],
        headers=creator["headers"],
    )
    assert r.status_code == 201, r.text
    files = r.json()["files"]
    assert [f["filename"] for f in files] == ["a.png", "b.pdf"]
    assert files[0]["size"] == len(data)
    assert len(files[0]["hash"]) == 32
    assert sorted(k.rsplit(".", 1)[1] for k in stored_objects) == ["pdf", "png"]
    assert all(k.startswith("submissions/") for k in stored_objects)

    # stored objects go away with the submission
    r = await client.delete(f"/api/submissions/{r.json()['id']}", headers=creator["headers"])
    assert r.status_code == 200
    assert stored_objects == {}


@pytest.mark.asyncio
async def test_delete_only_removes_files_the_submission_uploaded(make_user, make_brief, client, stored_objects):
    owner = await make_user()
    author = await make_user()
    copier = await make_user()
    first = await make_brief(owner["headers"])
    second = await make_brief(owner["headers"])
    r = await client.post(f"/api/briefs/{first['id']}/submissions",
                          files=[("files", ("a.pdf", b"%PDF-1.4", "application/pdf"))], headers=author["headers"])
    assert r.status_code == 201, r.text
    original = r.json()

    # metadata copied from another submission is stored without its storage key
    r = await client.post("/api/submissions", json={"brief_id": second["id"], "files": original["files"]},
                          headers=copier["headers"])
    assert r.status_code == 201, r.text
    assert "key" not in r.json()["files"][0]
    assert (await client.delete(f"/api/submissions/{r.json()['id']}", headers=copier["headers"])).status_code == 200
    assert len(stored_objects) == 1

    assert (await client.delete(f"/api/submissions/{original['id']}", headers=author["headers"])).status_code == 200
    assert stored_objects == {}


@pytest.mark.asyncio
async def test_replacing_files_removes_dropped_uploads(make_user, make_brief, client, stored_objects):
    owner = await make_user()
    creator = await make_user()
    brief = await make_brief(owner["headers"])
    r = await client.post(
        f"/api/briefs/{brief['id']}/submissions",
        files=[("files", ("a.png", _png_bytes(), "image/png")), ("files", ("b.pdf", b"%PDF-1.4", "application/pdf"))],
        headers=creator["headers"],
    )
    assert r.status_code == 201, r.text
    sub = r.json()
    png = {k: v for k, v in sub["files"][0].items() if k != "key"}

    r = await client.patch(f"/api/submissions/{sub['id']}", json={"files": [png]}, headers=creator["headers"])
    assert r.status_code == 200, r.text
    assert [k.rsplit(".", 1)[1] for k in stored_objects] == ["png"]
    # the kept file is still tracked as this submission's upload
    assert r.json()["files"][0]["key"] in stored_objects

    assert (await client.delete(f"/api/submissions/{sub['id']}", headers=creator["headers"])).status_code == 200
    assert stored_objects == {}


@pytest.mark.asyncio
async def test_multipart_rejects_bad_type(make_user, make_brief, client, stored_objects):
    u = await make_user()
    brief = await make_brief(u["headers"])
    r = await client.post(f"/api/briefs/{brief['id']}/submissions",
                          files=[("files", ("run.sh", b"#!/bin/sh", "text/x-shellscript"))], headers=u["headers"])
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_FILE_TYPE"
    assert stored_objects == {}


@pytest.mark.asyncio
async def test_multipart_size_and_count_limits(make_user, make_brief, client, stored_objects):
    u = await make_user()
    brief = await make_brief(u["headers"])
    r = await client.post(f"/api/briefs/{brief['id']}/submissions",
                          files=[("files", ("big.png", b"0" * 4096, "image/png"))], headers=u["headers"])
    assert r.status_code == 413
    assert r.json()["code"] == "FILE_TOO_LARGE"

    many = [("files", (f"{i}.png", b"0", "image/png")) for i in range(4)]
    r = await client.post(f"/api/briefs/{brief['id']}/submissions", files=many, headers=u["headers"])
    assert r.status_code == 413
    assert r.json()["code"] == "TOO_MANY_FILES"
    assert stored_objects == {}
