import pytest
from fastapi import status


@pytest.mark.asyncio
async def test_portfolio_with_creatives(make_user, client, file_meta):
    u = await make_user()
    r = await client.post("/api/portfolios", json={"title": "Posters", "files": [file_meta("cover.png")]}, headers=u["headers"])
    assert r.status_code == status.HTTP_201_CREATED, r.text
    p = r.json()
    assert p["user_id"] == u["id"]
    assert p["like_count"] == 0

    r = await client.post("/api/creatives", json={"portfolio_id": p["id"], "title": "Jazz night"}, headers=u["headers"])
    assert r.status_code == 201
    creative = r.json()

    r = await client.get(f"/api/portfolios/{p['id']}", headers=u["headers"])
    assert [c["id"] for c in r.json()["creatives"]] == [creative["id"]]
    r = await client.get(f"/api/users/{u['id']}/portfolios", headers=u["headers"])
    assert [x["id"] for x in r.json()] == [p["id"]]
    r = await client.get("/api/creatives", params={"portfolio_id": p["id"]}, headers=u["headers"])
    assert len(r.json()) == 1

    r = await client.delete(f"/api/portfolios/{p['id']}", headers=u["headers"])
    assert r.status_code == 200
    assert (await client.get(f"/api/creatives/{creative['id']}", headers=u["headers"])).status_code == 404


@pytest.mark.asyncio
async def test_ownership(make_user, client):
    owner = await make_user()
    other = await make_user()
    admin = await make_user("admin")
    p = (await client.post("/api/portfolios", json={"title": "Mine"}, headers=owner["headers"])).json()

    r = await client.patch(f"/api/portfolios/{p['id']}", json={"title": "Theirs"}, headers=other["headers"])
    assert r.status_code == 403
    r = await client.post("/api/creatives", json={"portfolio_id": p["id"], "title": "x"}, headers=other["headers"])
    assert r.status_code == 403

    c = (await client.post("/api/creatives", json={"portfolio_id": p["id"], "title": "x"}, headers=owner["headers"])).json()
    r = await client.patch(f"/api/creatives/{c['id']}", json={"title": "y"}, headers=other["headers"])
    assert r.status_code == 403
    r = await client.patch(f"/api/creatives/{c['id']}", json={"title": "y"}, headers=admin["headers"])
    assert r.json()["title"] == "y"
    r = await client.patch(f"/api/portfolios/{p['id']}", json={"description": "curated"}, headers=admin["headers"])
    assert r.json()["description"] == "curated"

    r = await client.delete(f"/api/creatives/{c['id']}", headers=owner["headers"])
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_creative_needs_existing_portfolio(make_user, client):
    u = await make_user()
    r = await client.post("/api/creatives", json={"portfolio_id": "00000000-0000-0000-0000-000000000007", "title": "x"},
                          headers=u["headers"])
    assert r.status_code == 400
