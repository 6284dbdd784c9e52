"""Text helpers shared by content services: slugs, read time, excerpts."""

from __future__ import annotations

import math
import re
from typing import Any, List, Optional
from urllib.parse import urlparse

WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 200

_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_TAG_PATTERN = re.compile(r"<[^>]+>")


def slugify(value: Any) -> str:
    """Lowercase, collapse non-alphanumeric runs to one hyphen, trim hyphens."""
    text = str(value or "").strip().lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


def is_valid_slug(value: str) -> bool:
    return bool(_SLUG_PATTERN.match(value or ""))


def strip_html(value: Any) -> str:
    return _TAG_PATTERN.sub(" ", str(value or ""))


def word_count(content: Any) -> int:
    return len(strip_html(content).split())


def compute_read_time(content: Any) -> int:
    """Minutes to read at 200 words per minute, rounded up."""
    return math.ceil(word_count(content) / WORDS_PER_MINUTE)


def make_excerpt(content: Any, length: int = EXCERPT_LENGTH) -> str:
    text = " ".join(strip_html(content).split())
    if len(text) <= length:
        return text
    return text[:length].rstrip() + "..."


def split_list(value: Any) -> List[str]:
    """Accept a list or a comma-separated string and return trimmed items."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = str(value).split(",")
    return [str(item).strip() for item in items if str(item).strip()]


def is_http_url(value: Optional[str]) -> bool:
    text = (value or "").strip()
    if not text:
        return False
    parsed = urlparse(text)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)
