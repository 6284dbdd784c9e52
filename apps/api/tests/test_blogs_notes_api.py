import pytest


@pytest.mark.asyncio
async def test_blog_create_computes_read_time_and_excerpt(client, auth_headers):
    headers = auth_headers("ext-blogger", name="Blogger")
    response = await client.post(
        "/blogs",
        json={
            "title": "Consistent Hashing",
            "content": "word " * 400,
            "tags": "distributed, hashing",
            "published": True,
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    blog = response.json()
    assert blog["read_time"] == 2
    assert blog["tags"] == ["distributed", "hashing"]
    assert blog["excerpt"].endswith("...")
    assert blog["published_at"] is not None
    assert blog["author"]["name"] == "Blogger"


@pytest.mark.asyncio
async def test_drafts_are_hidden_from_other_readers(client, auth_headers, admin_headers):
    author = auth_headers("ext-author")
    draft = await client.post("/blogs", json={"title": "Draft", "content": "wip"}, headers=author)
    live = await client.post("/blogs", json={"title": "Live", "content": "done", "published": True}, headers=author)
    draft_id = draft.json()["id"]

    public = await client.get("/blogs")
    assert [blog["id"] for blog in public.json()["blogs"]] == [live.json()["id"]]
    assert "content" not in public.json()["blogs"][0]

    assert (await client.get(f"/blogs/{draft_id}")).status_code == 404
    assert (await client.get(f"/blogs/{draft_id}", headers=auth_headers("ext-stranger"))).status_code == 404
    assert (await client.get(f"/blogs/{draft_id}", headers=author)).status_code == 200

    drafts = await client.get("/blogs", params={"published": "false"}, headers=admin_headers)
    assert [blog["id"] for blog in drafts.json()["blogs"]] == [draft_id]


@pytest.mark.asyncio
async def test_blog_partial_update_and_publish(client, auth_headers):
    headers = auth_headers("ext-author")
    created = await client.post(
        "/blogs",
        json={"title": "Caching", "content": "short", "excerpt": "Hand written", "category": "Backend"},
        headers=headers,
    )
    blog_id = created.json()["id"]

    updated = await client.put(
        f"/blogs/{blog_id}",
        json={"content": "word " * 250, "published": True},
        headers=headers,
    )
    assert updated.status_code == 200
    body = updated.json()
    assert body["title"] == "Caching"
    assert body["category"] == "Backend"
    assert body["excerpt"] == "Hand written"
    assert body["read_time"] == 2
    assert body["published"] is True
    assert body["published_at"] is not None


@pytest.mark.asyncio
async def test_only_author_or_admin_may_modify_blog(client, auth_headers, admin_headers):
    author = auth_headers("ext-author")
    created = await client.post("/blogs", json={"title": "Mine", "content": "x", "published": True}, headers=author)
    blog_id = created.json()["id"]

    forbidden = await client.put(f"/blogs/{blog_id}", json={"title": "Theirs"}, headers=auth_headers("ext-other"))
    assert forbidden.status_code == 403

    admin_edit = await client.put(f"/blogs/{blog_id}", json={"title": "Moderated"}, headers=admin_headers)
    assert admin_edit.status_code == 200
    assert admin_edit.json()["title"] == "Moderated"

    deleted = await client.delete(f"/blogs/{blog_id}", headers=author)
    assert deleted.status_code == 200
    assert (await client.get(f"/blogs/{blog_id}")).status_code == 404
    assert (await client.get("/blogs")).json()["pagination"]["total"] == 0
    assert (await client.delete(f"/blogs/{blog_id}", headers=author)).status_code == 404


@pytest.mark.asyncio
async def test_blog_listing_search_sort_and_pagination(client, auth_headers):
    headers = auth_headers("ext-author")
    for title in ("Bravo Trees", "Alpha Graphs", "Charlie Graphs"):
        await client.post("/blogs", json={"title": title, "content": title, "published": True}, headers=headers)

    alphabetical = await client.get("/blogs", params={"sort": "alphabetical"})
    assert [blog["title"] for blog in alphabetical.json()["blogs"]] == ["Alpha Graphs", "Bravo Trees", "Charlie Graphs"]

    searched = await client.get("/blogs", params={"search": "graphs", "limit": 1, "page": 2, "sort": "alphabetical"})
    body = searched.json()
    assert [blog["title"] for blog in body["blogs"]] == ["Charlie Graphs"]
    assert body["pagination"] == {"page": 2, "limit": 1, "total": 2, "total_pages": 2}

    unsupported = await client.get("/blogs", params={"sort": "mostDownloaded"})
    assert unsupported.status_code == 400


@pytest.mark.asyncio
async def test_blog_rejects_unsafe_cover_image(client, auth_headers):
    response = await client.post(
        "/blogs",
        json={"title": "Cover", "cover_image": "javascript:alert(1)"},
        headers=auth_headers("ext-author"),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_note_requires_title_category_and_content(client, auth_headers):
    headers = auth_headers("ext-noter")
    missing = await client.post("/notes", json={"title": "Only title"}, headers=headers)
    assert missing.status_code == 400

    blank = await client.post("/notes", json={"title": "T", "category": "   ", "content": "c"}, headers=headers)
    assert blank.status_code == 400

    anonymous = await client.post("/notes", json={"title": "T", "category": "C", "content": "c"})
    assert anonymous.status_code == 401


@pytest.mark.asyncio
async def test_note_crud_round_trip(client, auth_headers):
    headers = auth_headers("ext-noter")
    created = await client.post(
        "/notes",
        json={"title": "Big O", "category": "Fundamentals", "content": "word " * 201, "tags": ["complexity"]},
        headers=headers,
    )
    assert created.status_code == 201
    note = created.json()
    assert note["read_time"] == 2
    assert note["topic"] is None

    updated = await client.put(f"/notes/{note['id']}", json={"category": "Basics"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["category"] == "Basics"
    assert updated.json()["title"] == "Big O"

    filtered = await client.get("/notes", params={"category": "Basics"})
    assert filtered.json()["pagination"]["total"] == 1

    forbidden = await client.delete(f"/notes/{note['id']}", headers=auth_headers("ext-other"))
    assert forbidden.status_code == 403

    deleted = await client.delete(f"/notes/{note['id']}", headers=headers)
    assert deleted.status_code == 200
    assert (await client.get(f"/notes/{note['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_note_filing_rejects_unknown_topic(client, auth_headers):
    response = await client.post(
        "/notes",
        json={"title": "T", "category": "C", "content": "c", "topic_id": "missing"},
        headers=auth_headers("ext-noter"),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_blog_search_treats_wildcards_literally(client, auth_headers):
    headers = auth_headers("ext-author")
    for title in ("a_b", "axb", "50% off", "500 off"):
        await client.post("/blogs", json={"title": title, "content": "body", "published": True}, headers=headers)

    underscore = await client.get("/blogs", params={"search": "a_b"})
    assert [blog["title"] for blog in underscore.json()["blogs"]] == ["a_b"]

    percent = await client.get("/blogs", params={"search": "50%"})
    assert [blog["title"] for blog in percent.json()["blogs"]] == ["50% off"]
