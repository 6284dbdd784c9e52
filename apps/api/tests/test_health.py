import pytest


@pytest.mark.asyncio
async def test_liveness_and_root(client):
    live = await client.get("/health/live")
    assert live.status_code == 200
    assert live.json() == {"alive": True}

    root = await client.get("/")
    assert root.status_code == 200
    assert root.json()["name"] == "Study Hub API"


@pytest.mark.asyncio
async def test_health_reports_dependency_status(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["api"] == "up"
    assert body["status"] in {"healthy", "degraded"}
    assert body["uploads"] == "writable"


@pytest.mark.asyncio
async def test_unknown_routes_and_wrong_verbs(client):
    assert (await client.get("/does-not-exist")).status_code == 404
    assert (await client.post("/health/live")).status_code == 405


@pytest.mark.asyncio
async def test_admin_stats_counts_own_content(client, auth_headers, admin_headers):
    await client.post(
        "/blogs",
        json={"title": "Admin post", "content": "x", "published": True},
        headers=admin_headers,
    )
    await client.post("/blogs", json={"title": "Other post", "content": "x"}, headers=auth_headers("ext-writer"))

    forbidden = await client.get("/admin/stats", headers=auth_headers("ext-writer"))
    assert forbidden.status_code == 403

    stats = await client.get("/admin/stats", headers=admin_headers)
    assert stats.status_code == 200
    body = stats.json()
    assert body["blogs"] == 1
    assert body["notes"] == 0
    assert body["users"] == 2
