import re

import pytest

from services.comments import build_comment_tree
from services.errors import ValidationError
from services.study_rooms import clamp_max_members, generate_room_code, normalize_room_code
from services.text import compute_read_time, is_http_url, is_valid_slug, make_excerpt, slugify, split_list, word_count
from services.topics import resolve_slug


def test_slugify_collapses_punctuation_and_trims_hyphens():
    assert slugify("System Design!") == "system-design"
    assert slugify("  --Dynamic   Programming?? 101-- ") == "dynamic-programming-101"
    assert slugify("C++ & Go") == "c-go"


def test_slugify_is_deterministic():
    assert {slugify("Graphs & Trees") for _ in range(5)} == {"graphs-trees"}


def test_resolve_slug_rejects_malformed_explicit_slug():
    assert resolve_slug("Anything", "custom-slug") == "custom-slug"
    with pytest.raises(ValidationError):
        resolve_slug("Anything", "Not A Slug")
    with pytest.raises(ValidationError):
        resolve_slug("!!!", None)
    assert is_valid_slug("a-b-c")
    assert not is_valid_slug("a--b")


def test_read_time_rounds_up_and_ignores_markup():
    assert compute_read_time("word " * 400) == 2
    assert compute_read_time("word " * 401) == 3
    assert compute_read_time("") == 0
    assert word_count("<p>hello <strong>there</strong></p>") == 2


def test_excerpt_is_tag_stripped_and_bounded():
    short = make_excerpt("<h1>Title</h1><p>Body text</p>")
    assert short == "Title Body text"
    long_excerpt = make_excerpt("x" * 500)
    assert long_excerpt.endswith("...")
    assert len(long_excerpt) == 203


def test_split_list_accepts_lists_and_comma_strings():
    assert split_list("google, amazon ,, meta") == ["google", "amazon", "meta"]
    assert split_list(["a", " b ", ""]) == ["a", "b"]
    assert split_list(None) == []


def test_is_http_url():
    assert is_http_url("https://leetcode.com/problems/two-sum/")
    assert not is_http_url("ftp://example.com/file")
    assert not is_http_url("javascript:alert(1)")
    assert not is_http_url("")


def test_generated_room_codes_are_six_uppercase_alphanumerics():
    codes = {generate_room_code() for _ in range(200)}
    assert all(re.fullmatch(r"[A-Z0-9]{6}", code) for code in codes)
    assert len(codes) > 190
    assert normalize_room_code(" ab12cd ") == "AB12CD"


def test_max_members_is_clamped():
    assert clamp_max_members(1) == 2
    assert clamp_max_members(500) == 100
    assert clamp_max_members(None) == 10
    assert clamp_max_members(25) == 25
    with pytest.raises(ValidationError):
        clamp_max_members("many")


def test_comment_tree_keeps_order_and_counts_replies():
    def node(node_id, parent_id=None):
        return {"id": node_id, "parent_id": parent_id, "replies": [], "reply_count": 0}

    nodes = [node("a"), node("b"), node("a1", "a"), node("a2", "a"), node("a1x", "a1"), node("orphan", "gone")]
    roots = build_comment_tree(nodes)

    assert [root["id"] for root in roots] == ["a", "b", "orphan"]
    first = roots[0]
    assert [reply["id"] for reply in first["replies"]] == ["a1", "a2"]
    assert first["reply_count"] == 2
    assert first["replies"][0]["replies"][0]["id"] == "a1x"
    assert roots[1]["reply_count"] == 0


def test_service_error_message_uses_plain_detail():
    detail = {"message": "Bulk import failed validation", "errors": ["Row 1: title is required"]}
    exc = ValidationError(detail)
    assert exc.detail is detail
    assert str(exc) == str(detail)
    assert "Row 1: title is required" in str(exc)
    assert str(ValidationError("name is required")) == "name is required"
