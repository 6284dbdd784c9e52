import csv
import io

import pytest


def _problem(**overrides):
    payload = {
        "title": "Two Sum",
        "description": "Find two numbers adding up to target.",
        "difficulty": "easy",
        "problem_number": 1,
        "companies": ["Google", "Amazon"],
        "tags": "array, hash-table",
        "leetcode_url": "https://leetcode.com/problems/two-sum/",
        "solutions": [
            {"language": "python", "code": "def brute(): ...", "approach": "Brute force"},
            {"language": "python", "code": "def hashed(): ...", "approach": "Hash map", "is_optimal": True},
            {"language": "go", "code": "func twoSum() {}"},
        ],
        "resources": [
            {"title": "Editorial", "type": "article", "url": "https://leetcode.com/problems/two-sum/editorial/"},
            {"title": "Walkthrough", "type": "VIDEO", "url": "https://youtube.com/watch?v=abc"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_problem_with_nested_solutions_and_resources(client, auth_headers):
    response = await client.post("/leetcode", json=_problem(), headers=auth_headers("ext-coder"))
    assert response.status_code == 201, response.text
    problem = response.json()

    assert problem["difficulty"] == "EASY"
    assert problem["category"] == "DSA"
    assert problem["tags"] == ["array", "hash-table"]
    assert len(problem["solutions"]) == 3
    assert len(problem["resources"]) == 2
    assert problem["solutions"][0]["approach"] == "Hash map"
    assert [item["type"] for item in problem["resources"]] == ["ARTICLE", "VIDEO"]

    fetched = await client.get(f"/leetcode/{problem['id']}")
    assert fetched.status_code == 200
    assert [item["id"] for item in fetched.json()["solutions"]] == [item["id"] for item in problem["solutions"]]


@pytest.mark.asyncio
async def test_problem_validation_errors(client, auth_headers):
    headers = auth_headers("ext-coder")
    bad_difficulty = await client.post("/leetcode", json=_problem(difficulty="impossible"), headers=headers)
    assert bad_difficulty.status_code == 400

    bad_resource = await client.post(
        "/leetcode",
        json=_problem(resources=[{"title": "x", "type": "PODCAST", "url": "https://example.com"}]),
        headers=headers,
    )
    assert bad_resource.status_code == 400

    bad_solution = await client.post(
        "/leetcode",
        json=_problem(solutions=[{"language": "python", "code": ""}]),
        headers=headers,
    )
    assert bad_solution.status_code == 400

    missing_description = await client.post(
        "/leetcode",
        json={"title": "No body", "difficulty": "EASY"},
        headers=headers,
    )
    assert missing_description.status_code == 400


@pytest.mark.asyncio
async def test_update_replaces_nested_collections(client, auth_headers):
    headers = auth_headers("ext-coder")
    created = (await client.post("/leetcode", json=_problem(), headers=headers)).json()

    updated = await client.put(
        f"/leetcode/{created['id']}",
        json={
            "difficulty": "Medium",
            "solutions": [{"language": "rust", "code": "fn two_sum() {}"}],
        },
        headers=headers,
    )
    assert updated.status_code == 200, updated.text
    body = updated.json()
    assert body["difficulty"] == "MEDIUM"
    assert [item["language"] for item in body["solutions"]] == ["rust"]
    assert len(body["resources"]) == 2
    assert body["title"] == "Two Sum"

    cleared = await client.put(f"/leetcode/{created['id']}", json={"resources": []}, headers=headers)
    assert cleared.json()["resources"] == []

    forbidden = await client.put(
        f"/leetcode/{created['id']}",
        json={"title": "Hijacked"},
        headers=auth_headers("ext-other"),
    )
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_list_filters_and_stats(client, auth_headers):
    headers = auth_headers("ext-coder")
    await client.post("/leetcode", json=_problem(), headers=headers)
    await client.post(
        "/leetcode",
        json=_problem(
            title="LRU Cache",
            difficulty="MEDIUM",
            problem_number=146,
            companies=["Meta"],
            solutions=[{"language": "java", "code": "class LRUCache {}"}],
        ),
        headers=headers,
    )
    await client.post(
        "/leetcode",
        json=_problem(title="Median of Two Sorted Arrays", difficulty="hard", problem_number=4, solutions=[]),
        headers=headers,
    )

    everything = await client.get("/leetcode", params={"sort": "problemNumber"})
    body = everything.json()
    assert [item["problem_number"] for item in body["problems"]] == [1, 4, 146]
    assert body["stats"] == {"total": 3, "easy": 1, "medium": 1, "hard": 1}

    by_company = await client.get("/leetcode", params={"company": "meta"})
    assert [item["title"] for item in by_company.json()["problems"]] == ["LRU Cache"]

    by_difficulty = await client.get("/leetcode", params={"difficulty": "hard"})
    assert by_difficulty.json()["pagination"]["total"] == 1

    by_language = await client.get("/leetcode", params={"language": "go"})
    problems = by_language.json()["problems"]
    assert [item["title"] for item in problems] == ["Two Sum"]
    assert [item["language"] for item in problems[0]["solutions"]] == ["go"]


@pytest.mark.asyncio
async def test_bulk_import_is_all_or_nothing(client, auth_headers):
    headers = auth_headers("ext-importer")
    rows = [
        {"title": "Valid Parentheses", "description": "Stack", "difficulty": "EASY"},
        {"title": "Broken", "description": "Nope", "difficulty": "legendary"},
        {"title": "", "description": "Missing title", "difficulty": "HARD"},
    ]
    rejected = await client.post("/leetcode/bulk-import", json={"problems": rows}, headers=headers)
    assert rejected.status_code == 400
    detail = rejected.json()["detail"]
    assert detail["message"] == "Bulk import failed validation"
    assert detail["errors"][0].startswith("Row 2:")
    assert detail["errors"][1].startswith("Row 3:")
    assert (await client.get("/leetcode")).json()["pagination"]["total"] == 0

    accepted = await client.post("/leetcode/bulk-import", json={"problems": rows[:1]}, headers=headers)
    assert accepted.status_code == 201
    assert accepted.json()["imported"] == 1

    empty = await client.post("/leetcode/bulk-import", json={"problems": []}, headers=headers)
    assert empty.status_code == 400


@pytest.mark.asyncio
async def test_export_json_and_csv(client, auth_headers):
    headers = auth_headers("ext-exporter")
    await client.post("/leetcode", json=_problem(), headers=headers)
    await client.post("/leetcode", json=_problem(title="Someone else's"), headers=auth_headers("ext-other"))

    as_json = await client.get("/leetcode/export", params={"format": "json"}, headers=headers)
    assert as_json.status_code == 200
    assert as_json.headers["content-type"].startswith("application/json")
    assert ".json" in as_json.headers["content-disposition"]
    exported = as_json.json()
    assert [item["title"] for item in exported] == ["Two Sum"]

    as_csv = await client.get("/leetcode/export", params={"format": "csv"}, headers=headers)
    assert as_csv.status_code == 200
    assert as_csv.headers["content-type"].startswith("text/csv")
    rows = list(csv.DictReader(io.StringIO(as_csv.text)))
    assert len(rows) == 1
    assert rows[0]["companies"] == "Google;Amazon"
    assert rows[0]["solution_count"] == "3"

    unsupported = await client.get("/leetcode/export", params={"format": "xml"}, headers=headers)
    assert unsupported.status_code == 400


@pytest.mark.asyncio
async def test_delete_problem_soft_deletes(client, auth_headers):
    headers = auth_headers("ext-coder")
    created = (await client.post("/leetcode", json=_problem(), headers=headers)).json()

    deleted = await client.delete(f"/leetcode/{created['id']}", headers=headers)
    assert deleted.status_code == 200
    assert (await client.get(f"/leetcode/{created['id']}")).status_code == 404
    assert (await client.get("/leetcode")).json()["stats"]["total"] == 0


@pytest.mark.asyncio
async def test_move_problem_swaps_custom_order(client, auth_headers):
    headers = auth_headers("ext-coder")
    ids = {}
    for title in ("First", "Second", "Third"):
        created = await client.post("/leetcode", json=_problem(title=title, solutions=[], resources=[]), headers=headers)
        ids[title] = created.json()["id"]
        assert created.json()["sort_order"] == len(ids) - 1

    moved = await client.post(f"/leetcode/{ids['Third']}/move", json={"direction": "up"}, headers=headers)
    assert moved.status_code == 200, moved.text
    assert moved.json()["moved_problem"] == {"id": ids["Third"], "title": "Third", "old_order": 2, "new_order": 1}

    listing = await client.get("/leetcode", params={"sort": "custom"})
    assert [item["title"] for item in listing.json()["problems"]] == ["First", "Third", "Second"]

    top = await client.post(f"/leetcode/{ids['First']}/move", json={"direction": "up"}, headers=headers)
    assert top.status_code == 400
    assert top.json()["detail"] == "Cannot move problem beyond bounds"
    bottom = await client.post(f"/leetcode/{ids['Second']}/move", json={"direction": "down"}, headers=headers)
    assert bottom.status_code == 400

    sideways = await client.post(f"/leetcode/{ids['First']}/move", json={"direction": "sideways"}, headers=headers)
    assert sideways.status_code == 400
    stranger = await client.post(
        f"/leetcode/{ids['First']}/move", json={"direction": "down"}, headers=auth_headers("ext-other")
    )
    assert stranger.status_code == 403
    missing = await client.post("/leetcode/nope/move", json={"direction": "down"}, headers=headers)
    assert missing.status_code == 404

    imported = await client.post(
        "/leetcode/bulk-import",
        json={"problems": [{"title": "Fourth", "description": "Appended", "difficulty": "EASY"}]},
        headers=headers,
    )
    fourth = await client.get(f"/leetcode/{imported.json()['ids'][0]}")
    assert fourth.json()["sort_order"] == 3
