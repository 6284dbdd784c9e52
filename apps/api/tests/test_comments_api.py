import pytest


async def _resource_id(client, headers, **overrides):
    payload = {
        "title": "Behavioral questions",
        "type": "study-guide",
        "category": "Behavioral",
        "difficulty": "easy",
    }
    payload.update(overrides)
    response = await client.post("/interviews", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.mark.asyncio
async def test_comment_tree_is_nested_in_ascending_order(client, auth_headers):
    headers = auth_headers("ext-commenter", name="Commenter")
    resource_id = await _resource_id(client, headers)
    url = f"/interviews/{resource_id}/comments"

    first = (await client.post(url, json={"content": "First"}, headers=headers)).json()
    second = (await client.post(url, json={"content": "Second"}, headers=headers)).json()
    reply_a = (await client.post(url, json={"content": "Reply A", "parent_id": first["id"]}, headers=headers)).json()
    await client.post(url, json={"content": "Reply B", "parent_id": first["id"]}, headers=headers)
    await client.post(url, json={"content": "Nested", "parent_id": reply_a["id"]}, headers=headers)

    listing = await client.get(url)
    assert listing.status_code == 200
    body = listing.json()
    assert body["total"] == 5
    roots = body["comments"]
    assert [root["id"] for root in roots] == [first["id"], second["id"]]
    assert [reply["content"] for reply in roots[0]["replies"]] == ["Reply A", "Reply B"]
    assert roots[0]["reply_count"] == 2
    assert roots[0]["replies"][0]["replies"][0]["content"] == "Nested"
    assert roots[0]["author"]["name"] == "Commenter"
    assert roots[0]["is_anonymous"] is False

    counted = await client.get(f"/interviews/{resource_id}")
    assert counted.json()["comment_count"] == 5


@pytest.mark.asyncio
async def test_reply_requires_parent_on_same_resource(client, auth_headers):
    headers = auth_headers("ext-commenter")
    first_resource = await _resource_id(client, headers)
    other_resource = await _resource_id(client, headers, title="Other")

    parent = (await client.post(f"/interviews/{first_resource}/comments", json={"content": "Hi"}, headers=headers)).json()

    missing = await client.post(
        f"/interviews/{first_resource}/comments",
        json={"content": "Reply", "parent_id": "does-not-exist"},
        headers=headers,
    )
    assert missing.status_code == 404

    cross_resource = await client.post(
        f"/interviews/{other_resource}/comments",
        json={"content": "Reply", "parent_id": parent["id"]},
        headers=headers,
    )
    assert cross_resource.status_code == 404

    no_resource = await client.post("/interviews/nope/comments", json={"content": "Hi"}, headers=headers)
    assert no_resource.status_code == 404


@pytest.mark.asyncio
async def test_anonymous_comments_need_a_name(client, auth_headers):
    resource_id = await _resource_id(client, auth_headers("ext-owner"))
    url = f"/interviews/{resource_id}/comments"

    nameless = await client.post(url, json={"content": "Hello"})
    assert nameless.status_code == 400

    bad_email = await client.post(url, json={"content": "Hello", "author_name": "Guest", "author_email": "nope"})
    assert bad_email.status_code == 400

    posted = await client.post(url, json={"content": "Hello", "author_name": "Guest", "author_email": "g@example.com"})
    assert posted.status_code == 201
    body = posted.json()
    assert body["is_anonymous"] is True
    assert body["author"] == {"id": None, "name": "Guest"}
    assert "author_email" not in body


@pytest.mark.asyncio
async def test_registered_identity_overrides_anonymous_fields(client, auth_headers):
    headers = auth_headers("ext-member", name="Member")
    resource_id = await _resource_id(client, headers)

    posted = await client.post(
        f"/interviews/{resource_id}/comments",
        json={"content": "Signed in", "author_name": "Someone Else"},
        headers=headers,
    )
    assert posted.status_code == 201
    assert posted.json()["author"]["name"] == "Member"
    assert posted.json()["is_anonymous"] is False


@pytest.mark.asyncio
async def test_edit_marks_comment_as_edited(client, auth_headers, admin_headers):
    author = auth_headers("ext-author")
    resource_id = await _resource_id(client, author)
    comment = (await client.post(f"/interviews/{resource_id}/comments", json={"content": "Draft"}, headers=author)).json()
    assert comment["is_edited"] is False

    unchanged = await client.patch(f"/comments/{comment['id']}", json={"content": "Draft"}, headers=author)
    assert unchanged.json()["is_edited"] is False

    edited = await client.patch(f"/comments/{comment['id']}", json={"content": "Final"}, headers=author)
    assert edited.status_code == 200
    assert edited.json()["content"] == "Final"
    assert edited.json()["is_edited"] is True

    stranger = await client.patch(f"/comments/{comment['id']}", json={"content": "Mine now"}, headers=auth_headers("ext-x"))
    assert stranger.status_code == 403

    moderated = await client.patch(f"/comments/{comment['id']}", json={"content": "Moderated"}, headers=admin_headers)
    assert moderated.status_code == 200


@pytest.mark.asyncio
async def test_reactions_are_one_per_user(client, auth_headers):
    author = auth_headers("ext-author")
    voter = auth_headers("ext-voter")
    other = auth_headers("ext-other-voter")
    resource_id = await _resource_id(client, author)
    comment = (await client.post(f"/interviews/{resource_id}/comments", json={"content": "Vote"}, headers=author)).json()
    url = f"/comments/{comment['id']}/reaction"

    liked = await client.put(url, json={"kind": "like"}, headers=voter)
    assert liked.json() == {"comment_id": comment["id"], "likes": 1, "dislikes": 0, "my_reaction": "like"}

    repeated = await client.put(url, json={"kind": "like"}, headers=voter)
    assert repeated.json()["likes"] == 1

    await client.put(url, json={"kind": "like"}, headers=other)
    switched = await client.put(url, json={"kind": "dislike"}, headers=voter)
    assert switched.json()["likes"] == 1
    assert switched.json()["dislikes"] == 1
    assert switched.json()["my_reaction"] == "dislike"

    listing = await client.get(f"/interviews/{resource_id}/comments", headers=voter)
    assert listing.json()["comments"][0]["my_reaction"] == "dislike"

    cleared = await client.delete(url, headers=voter)
    assert cleared.json() == {"comment_id": comment["id"], "likes": 1, "dislikes": 0, "my_reaction": None}

    cleared_again = await client.delete(url, headers=voter)
    assert cleared_again.json()["dislikes"] == 0

    invalid = await client.put(url, json={"kind": "love"}, headers=voter)
    assert invalid.status_code == 400

    missing = await client.put("/comments/nope/reaction", json={"kind": "like"}, headers=voter)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_comments_on_private_resource_are_restricted(client, auth_headers):
    owner = auth_headers("ext-owner")
    resource_id = await _resource_id(client, owner, is_public=False)

    assert (await client.get(f"/interviews/{resource_id}/comments")).status_code == 403
    denied = await client.post(
        f"/interviews/{resource_id}/comments",
        json={"content": "Hi", "author_name": "Guest"},
    )
    assert denied.status_code == 403
    assert (await client.get(f"/interviews/{resource_id}/comments", headers=owner)).status_code == 200
