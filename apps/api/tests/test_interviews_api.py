import pytest


def _resource(**overrides):
    payload = {
        "title": "System design primer",
        "description": "Scalability notes",
        "content": "Load balancers, caches and queues.",
        "type": "study-guide",
        "category": "System Design",
        "difficulty": "Medium",
        "tags": ["scaling"],
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_link_resources_require_http_url_and_no_file(client, auth_headers):
    headers = auth_headers("ext-prep")

    missing_url = await client.post("/interviews", json=_resource(type="link"), headers=headers)
    assert missing_url.status_code == 400

    with_file = await client.post(
        "/interviews",
        json=_resource(type="link", url="https://example.com/guide", file_url="/uploads/guide.pdf"),
        headers=headers,
    )
    assert with_file.status_code == 400

    bad_scheme = await client.post(
        "/interviews",
        json=_resource(type="link", url="ftp://example.com/guide"),
        headers=headers,
    )
    assert bad_scheme.status_code == 400

    valid = await client.post(
        "/interviews",
        json=_resource(type="LINK", url="https://example.com/guide"),
        headers=headers,
    )
    assert valid.status_code == 201
    assert valid.json()["type"] == "link"
    assert valid.json()["difficulty"] == "medium"

    unknown_type = await client.post("/interviews", json=_resource(type="podcast"), headers=headers)
    assert unknown_type.status_code == 400


@pytest.mark.asyncio
async def test_switching_to_link_drops_file_fields(client, auth_headers):
    headers = auth_headers("ext-prep")
    created = await client.post(
        "/interviews",
        json=_resource(type="document", file_url="/uploads/notes.pdf", file_name="notes.pdf", file_size=1024),
        headers=headers,
    )
    assert created.status_code == 201
    resource_id = created.json()["id"]

    switched = await client.put(
        f"/interviews/{resource_id}",
        json={"type": "link", "url": "https://example.com/notes"},
        headers=headers,
    )
    assert switched.status_code == 200
    body = switched.json()
    assert body["type"] == "link"
    assert body["file_url"] is None
    assert body["file_size"] is None
    assert body["title"] == "System design primer"


@pytest.mark.asyncio
async def test_each_fetch_counts_a_view(client, auth_headers):
    created = await client.post("/interviews", json=_resource(), headers=auth_headers("ext-prep"))
    resource_id = created.json()["id"]

    first = await client.get(f"/interviews/{resource_id}")
    second = await client.get(f"/interviews/{resource_id}")
    assert first.json()["views"] == 1
    assert second.json()["views"] == 2
    assert second.json()["comment_count"] == 0

    download = await client.post(f"/interviews/{resource_id}/download")
    assert download.status_code == 200
    assert download.json()["downloads"] == 1

    most_viewed = await client.get("/interviews", params={"sort": "mostViewed"})
    assert most_viewed.json()["resources"][0]["views"] == 2


@pytest.mark.asyncio
async def test_private_resources_are_hidden_from_others(client, auth_headers, admin_headers):
    owner = auth_headers("ext-owner")
    created = await client.post("/interviews", json=_resource(is_public=False), headers=owner)
    resource_id = created.json()["id"]

    assert (await client.get(f"/interviews/{resource_id}")).status_code == 403
    assert (await client.get(f"/interviews/{resource_id}", headers=auth_headers("ext-other"))).status_code == 403
    assert (await client.get(f"/interviews/{resource_id}", headers=owner)).status_code == 200
    assert (await client.get(f"/interviews/{resource_id}", headers=admin_headers)).status_code == 200

    public_listing = await client.get("/interviews")
    assert public_listing.json()["pagination"]["total"] == 0
    admin_listing = await client.get("/interviews", headers=admin_headers)
    assert admin_listing.json()["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_rating_is_one_per_user_and_aggregated(client, auth_headers):
    created = await client.post("/interviews", json=_resource(), headers=auth_headers("ext-owner"))
    resource_id = created.json()["id"]
    alice = auth_headers("ext-alice")
    bob = auth_headers("ext-bob")

    first = await client.post(f"/interviews/{resource_id}/rating", json={"rating": 5}, headers=alice)
    assert first.status_code == 200
    assert first.json() == {"id": resource_id, "rating": 5.0, "rating_count": 1, "your_rating": 5}

    second = await client.post(f"/interviews/{resource_id}/rating", json={"rating": 2}, headers=bob)
    assert second.json()["rating"] == 3.5
    assert second.json()["rating_count"] == 2

    rerated = await client.post(f"/interviews/{resource_id}/rating", json={"rating": 3}, headers=alice)
    assert rerated.json()["rating"] == 2.5
    assert rerated.json()["rating_count"] == 2

    out_of_range = await client.post(f"/interviews/{resource_id}/rating", json={"rating": 6}, headers=bob)
    assert out_of_range.status_code == 400

    anonymous = await client.post(f"/interviews/{resource_id}/rating", json={"rating": 4})
    assert anonymous.status_code == 401

    missing = await client.post("/interviews/nope/rating", json={"rating": 4}, headers=bob)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_stats_are_admin_only(client, auth_headers, admin_headers):
    headers = auth_headers("ext-owner")
    await client.post("/interviews", json=_resource(), headers=headers)
    await client.post("/interviews", json=_resource(type="link", url="https://example.com", is_public=False), headers=headers)

    assert (await client.get("/interviews/stats", headers=headers)).status_code == 403

    stats = await client.get("/interviews/stats", headers=admin_headers)
    assert stats.status_code == 200
    body = stats.json()
    assert body["total"] == 2
    assert body["public"] == 1
    assert body["by_type"]["link"] == 1
    assert body["by_type"]["study-guide"] == 1
    assert body["average_rating"] == 0.0


@pytest.mark.asyncio
async def test_delete_interview_resource(client, auth_headers):
    owner = auth_headers("ext-owner")
    created = await client.post("/interviews", json=_resource(), headers=owner)
    resource_id = created.json()["id"]

    assert (await client.delete(f"/interviews/{resource_id}", headers=auth_headers("ext-other"))).status_code == 403
    assert (await client.delete(f"/interviews/{resource_id}", headers=owner)).status_code == 200
    assert (await client.get(f"/interviews/{resource_id}")).status_code == 404
