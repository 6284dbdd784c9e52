"""LeetCode problem tracking: CRUD with nested solutions/resources, bulk import and export."""

from __future__ import annotations

import csv
import io
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import String, cast, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from database import utcnow
from models.leetcode_problem import PROBLEM_DIFFICULTIES, LeetcodeProblem
from models.leetcode_solution import LeetcodeSolution
from models.problem_resource import PROBLEM_RESOURCE_TYPES, ProblemResource
from models.user import User
from services.content import (
    apply_search,
    apply_sort,
    apply_taxonomy_filter,
    author_summary,
    clamp_page,
    ensure_owner_or_admin,
    iso,
    paginate,
    pagination_payload,
    refile,
    resolve_filing,
    taxonomy_summary,
)
from services.errors import NotFoundError, ServiceError, ValidationError
from services.text import is_http_url, split_list

logger = logging.getLogger(__name__)

ALLOWED_EXPORT_FORMATS = {"csv", "json"}
MAX_BULK_IMPORT_ROWS = 500
MOVE_DIRECTIONS = ("up", "down")
DEFAULT_CATEGORY = "DSA"

PROBLEM_SORTS = {
    "newest": (LeetcodeProblem.created_at.desc(), LeetcodeProblem.id.desc()),
    "oldest": (LeetcodeProblem.created_at.asc(), LeetcodeProblem.id.asc()),
    "alphabetical": (LeetcodeProblem.title.asc(), LeetcodeProblem.id.asc()),
    "problemNumber": (
        LeetcodeProblem.problem_number.is_(None),
        LeetcodeProblem.problem_number.asc(),
        LeetcodeProblem.id.asc(),
    ),
    "custom": (LeetcodeProblem.sort_order.asc(), LeetcodeProblem.created_at.asc(), LeetcodeProblem.id.asc()),
}
PROBLEM_OPTIONS = (
    selectinload(LeetcodeProblem.author),
    selectinload(LeetcodeProblem.topic),
    selectinload(LeetcodeProblem.sub_topic),
    selectinload(LeetcodeProblem.solutions),
    selectinload(LeetcodeProblem.resources),
)
SCALAR_FIELDS = (
    "title",
    "description",
    "difficulty",
    "category",
    "tags",
    "companies",
    "hints",
    "follow_up",
    "leetcode_url",
    "problem_number",
    "frequency",
    "acceptance",
    "is_premium",
)
EXPORT_FIELDS = [
    "id",
    "problem_number",
    "title",
    "difficulty",
    "category",
    "tags",
    "companies",
    "hints",
    "acceptance",
    "frequency",
    "is_premium",
    "leetcode_url",
    "solution_count",
    "resource_count",
    "created_at",
]


def normalize_difficulty(value: Any) -> str:
    difficulty = str(value or "").strip().upper()
    if difficulty not in PROBLEM_DIFFICULTIES:
        raise ValidationError("difficulty must be one of EASY, MEDIUM, HARD")
    return difficulty


def _required_text(payload: Dict[str, Any], key: str, label: Optional[str] = None) -> str:
    text = str(payload.get(key) or "").strip()
    if not text:
        raise ValidationError(f"{label or key} is required")
    return text


def _optional_text(value: Any) -> Optional[str]:
    text = str(value or "").strip()
    return text or None


def _optional_url(value: Any, label: str) -> Optional[str]:
    text = _optional_text(value)
    if text and not is_http_url(text):
        raise ValidationError(f"{label} must be an http(s) URL")
    return text


def _problem_number(value: Any) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    try:
        number = int(str(value).strip())
    except ValueError as exc:
        raise ValidationError("problem_number must be a positive integer") from exc
    if number <= 0:
        raise ValidationError("problem_number must be a positive integer")
    return number


def _acceptance(value: Any) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return None
    try:
        rate = float(str(value).strip().rstrip("%"))
    except ValueError as exc:
        raise ValidationError("acceptance must be a number between 0 and 100") from exc
    if not 0 <= rate <= 100:
        raise ValidationError("acceptance must be a number between 0 and 100")
    return rate


def _clean_solution(item: Dict[str, Any], index: int) -> Dict[str, Any]:
    label = f"solutions[{index}]"
    if not isinstance(item, dict):
        raise ValidationError(f"{label} must be an object")
    return {
        "language": _required_text(item, "language", f"{label}.language"),
        "code": _required_text(item, "code", f"{label}.code"),
        "approach": _optional_text(item.get("approach")),
        "time_complexity": _optional_text(item.get("time_complexity")),
        "space_complexity": _optional_text(item.get("space_complexity")),
        "explanation": _optional_text(item.get("explanation")),
        "notes": _optional_text(item.get("notes")),
        "is_optimal": bool(item.get("is_optimal")),
    }


def _clean_resource(item: Dict[str, Any], index: int) -> Dict[str, Any]:
    label = f"resources[{index}]"
    if not isinstance(item, dict):
        raise ValidationError(f"{label} must be an object")
    resource_type = str(item.get("type") or "").strip().upper()
    if resource_type not in PROBLEM_RESOURCE_TYPES:
        raise ValidationError(f"{label}.type must be one of {', '.join(PROBLEM_RESOURCE_TYPES)}")
    url = _required_text(item, "url", f"{label}.url")
    if not is_http_url(url):
        raise ValidationError(f"{label}.url must be an http(s) URL")
    return {
        "title": _required_text(item, "title", f"{label}.title"),
        "type": resource_type,
        "url": url,
        "description": _optional_text(item.get("description")),
    }


def clean_problem_payload(payload: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate and normalize a problem payload.

    With `partial=True` only the keys present in the payload are cleaned, so
    the result can be applied as an update.
    """

    def present(key: str) -> bool:
        return key in payload or not partial

    cleaned: Dict[str, Any] = {}
    if present("title"):
        cleaned["title"] = _required_text(payload, "title")
    if present("description"):
        cleaned["description"] = _required_text(payload, "description")
    if present("difficulty"):
        cleaned["difficulty"] = normalize_difficulty(payload.get("difficulty"))
    if present("category"):
        cleaned["category"] = _optional_text(payload.get("category")) or DEFAULT_CATEGORY
    for key in ("tags", "companies", "hints"):
        if present(key):
            cleaned[key] = split_list(payload.get(key))
    if present("follow_up"):
        cleaned["follow_up"] = _optional_text(payload.get("follow_up"))
    if present("leetcode_url"):
        cleaned["leetcode_url"] = _optional_url(payload.get("leetcode_url"), "leetcode_url")
    if present("problem_number"):
        cleaned["problem_number"] = _problem_number(payload.get("problem_number"))
    if present("frequency"):
        cleaned["frequency"] = _optional_text(payload.get("frequency"))
    if present("acceptance"):
        cleaned["acceptance"] = _acceptance(payload.get("acceptance"))
    if present("is_premium"):
        cleaned["is_premium"] = bool(payload.get("is_premium"))
    if present("solutions"):
        cleaned["solutions"] = [
            _clean_solution(item, index) for index, item in enumerate(payload.get("solutions") or [])
        ]
    if present("resources"):
        cleaned["resources"] = [
            _clean_resource(item, index) for index, item in enumerate(payload.get("resources") or [])
        ]
    return cleaned


def _build_solutions(items: List[Dict[str, Any]]) -> List[LeetcodeSolution]:
    return [LeetcodeSolution(position=position, **item) for position, item in enumerate(items)]


def _build_resources(items: List[Dict[str, Any]]) -> List[ProblemResource]:
    return [ProblemResource(position=position, **item) for position, item in enumerate(items)]


def serialize_solution(solution: LeetcodeSolution) -> Dict[str, Any]:
    return {
        "id": solution.id,
        "position": solution.position,
        "language": solution.language,
        "code": solution.code,
        "approach": solution.approach,
        "time_complexity": solution.time_complexity,
        "space_complexity": solution.space_complexity,
        "explanation": solution.explanation,
        "notes": solution.notes,
        "is_optimal": bool(solution.is_optimal),
    }


def serialize_resource(resource: ProblemResource) -> Dict[str, Any]:
    return {
        "id": resource.id,
        "position": resource.position,
        "title": resource.title,
        "type": resource.type,
        "url": resource.url,
        "description": resource.description,
    }


def serialize_problem(problem: LeetcodeProblem, language: Optional[str] = None) -> Dict[str, Any]:
    solutions = sorted(problem.solutions, key=lambda item: (not item.is_optimal, item.position))
    if language:
        solutions = [item for item in solutions if item.language.lower() == language.lower()]
    payload = {
        "id": problem.id,
        "title": problem.title,
        "description": problem.description,
        "difficulty": problem.difficulty,
        "category": problem.category,
        "tags": list(problem.tags or []),
        "companies": list(problem.companies or []),
        "hints": list(problem.hints or []),
        "follow_up": problem.follow_up,
        "leetcode_url": problem.leetcode_url,
        "problem_number": problem.problem_number,
        "frequency": problem.frequency,
        "acceptance": problem.acceptance,
        "is_premium": bool(problem.is_premium),
        "sort_order": problem.sort_order,
        "author": author_summary(problem.author),
        "author_id": problem.author_id,
        "topic_id": problem.topic_id,
        "sub_topic_id": problem.sub_topic_id,
        "solutions": [serialize_solution(item) for item in solutions],
        "resources": [serialize_resource(item) for item in problem.resources],
        "created_at": iso(problem.created_at),
        "updated_at": iso(problem.updated_at),
    }
    payload.update(taxonomy_summary(problem.topic, problem.sub_topic))
    return payload


async def _load_problem(db: AsyncSession, problem_id: str) -> LeetcodeProblem:
    result = await db.execute(
        select(LeetcodeProblem)
        .where(LeetcodeProblem.id == problem_id, LeetcodeProblem.deleted_at.is_(None))
        .options(*PROBLEM_OPTIONS)
        .execution_options(populate_existing=True)
    )
    problem = result.scalar_one_or_none()
    if not problem:
        raise NotFoundError("Problem not found")
    return problem


async def difficulty_stats(db: AsyncSession) -> Dict[str, int]:
    result = await db.execute(
        select(LeetcodeProblem.difficulty, func.count(LeetcodeProblem.id))
        .where(LeetcodeProblem.deleted_at.is_(None))
        .group_by(LeetcodeProblem.difficulty)
    )
    stats = {"total": 0, "easy": 0, "medium": 0, "hard": 0}
    for difficulty, total in result.all():
        key = str(difficulty or "").lower()
        if key in stats:
            stats[key] = int(total)
        stats["total"] += int(total)
    return stats


async def list_problems_service(
    db: AsyncSession,
    search: Optional[str] = None,
    difficulty: Optional[str] = None,
    category: Optional[str] = None,
    company: Optional[str] = None,
    language: Optional[str] = None,
    topic_slug: Optional[str] = None,
    subtopic_slug: Optional[str] = None,
    sort: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    page, limit = clamp_page(page, limit)
    stmt = select(LeetcodeProblem).where(LeetcodeProblem.deleted_at.is_(None))
    if difficulty:
        stmt = stmt.where(LeetcodeProblem.difficulty == normalize_difficulty(difficulty))
    if category:
        stmt = stmt.where(LeetcodeProblem.category == category)
    if company:
        # companies is a JSON array; match the quoted element in its text form
        stmt = stmt.where(cast(LeetcodeProblem.companies, String).ilike(f'%"{company.strip()}"%'))
    if language:
        stmt = stmt.where(
            LeetcodeProblem.id.in_(
                select(LeetcodeSolution.problem_id).where(
                    func.lower(LeetcodeSolution.language) == language.strip().lower()
                )
            )
        )
    stmt = apply_search(stmt, search, (LeetcodeProblem.title, LeetcodeProblem.description))
    stmt = apply_taxonomy_filter(stmt, LeetcodeProblem, topic_slug, subtopic_slug)
    stmt = apply_sort(stmt, sort, PROBLEM_SORTS)

    problems, total = await paginate(db, stmt, page, limit, options=PROBLEM_OPTIONS)
    return {
        "problems": [serialize_problem(problem, language=language) for problem in problems],
        "pagination": pagination_payload(page, limit, total),
        "stats": await difficulty_stats(db),
    }


async def get_problem_service(db: AsyncSession, problem_id: str) -> Dict[str, Any]:
    return serialize_problem(await _load_problem(db, problem_id))


async def _next_sort_order(db: AsyncSession, author_id: str) -> int:
    result = await db.execute(
        select(func.max(LeetcodeProblem.sort_order)).where(
            LeetcodeProblem.author_id == author_id, LeetcodeProblem.deleted_at.is_(None)
        )
    )
    highest = result.scalar_one_or_none()
    return 0 if highest is None else int(highest) + 1


def _new_problem(
    user: User,
    cleaned: Dict[str, Any],
    topic_id: Optional[str],
    sub_topic_id: Optional[str],
    sort_order: int = 0,
):
    scalars = {key: cleaned[key] for key in SCALAR_FIELDS}
    return LeetcodeProblem(
        author_id=user.id,
        sort_order=sort_order,
        topic_id=topic_id,
        sub_topic_id=sub_topic_id,
        solutions=_build_solutions(cleaned["solutions"]),
        resources=_build_resources(cleaned["resources"]),
        **scalars,
    )


async def create_problem_service(db: AsyncSession, user: User, payload: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = clean_problem_payload(payload)
    topic_id, sub_topic_id = await resolve_filing(db, payload.get("topic_id"), payload.get("sub_topic_id"))
    problem = _new_problem(user, cleaned, topic_id, sub_topic_id, await _next_sort_order(db, user.id))
    db.add(problem)
    await db.commit()
    logger.info(
        "Problem %s created by user %s with %s solutions and %s resources",
        problem.id,
        user.id,
        len(cleaned["solutions"]),
        len(cleaned["resources"]),
    )
    return serialize_problem(await _load_problem(db, problem.id))


async def update_problem_service(
    db: AsyncSession,
    user: User,
    problem_id: str,
    changes: Dict[str, Any],
) -> Dict[str, Any]:
    problem = await _load_problem(db, problem_id)
    ensure_owner_or_admin(user, problem.author_id)
    cleaned = clean_problem_payload(changes, partial=True)
    await refile(db, problem, changes)

    for key in SCALAR_FIELDS:
        if key in cleaned:
            setattr(problem, key, cleaned[key])
    # Nested collections are replaced wholesale; orphans are deleted in the same commit.
    if "solutions" in cleaned:
        problem.solutions = _build_solutions(cleaned["solutions"])
    if "resources" in cleaned:
        problem.resources = _build_resources(cleaned["resources"])
    problem.updated_at = utcnow()

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Failed to update problem %s", problem_id)
        raise
    return serialize_problem(await _load_problem(db, problem.id))


async def delete_problem_service(db: AsyncSession, user: User, problem_id: str) -> Dict[str, Any]:
    problem = await _load_problem(db, problem_id)
    ensure_owner_or_admin(user, problem.author_id)
    problem.deleted_at = utcnow()
    await db.commit()
    logger.info("Problem %s soft-deleted by user %s", problem_id, user.id)
    return {"message": "Problem deleted", "id": problem_id}


async def move_problem_service(
    db: AsyncSession,
    user: User,
    problem_id: str,
    direction: str,
) -> Dict[str, Any]:
    """
    Swap a problem with its neighbour in the author's custom order.

    The author's live problems are renumbered 0..n-1 in the same commit, so
    rows that share a `sort_order` still move.
    """
    direction = str(direction or "").strip().lower()
    if direction not in MOVE_DIRECTIONS:
        raise ValidationError("direction must be 'up' or 'down'")
    problem = await _load_problem(db, problem_id)
    ensure_owner_or_admin(user, problem.author_id)

    result = await db.execute(
        select(LeetcodeProblem)
        .where(LeetcodeProblem.author_id == problem.author_id, LeetcodeProblem.deleted_at.is_(None))
        .order_by(*PROBLEM_SORTS["custom"])
    )
    ordered = list(result.scalars().all())
    index = next(position for position, item in enumerate(ordered) if item.id == problem.id)
    target = index - 1 if direction == "up" else index + 1
    if target < 0 or target >= len(ordered):
        raise ValidationError("Cannot move problem beyond bounds")

    ordered[index], ordered[target] = ordered[target], ordered[index]
    for position, item in enumerate(ordered):
        if item.sort_order != position:
            item.sort_order = position
    title = problem.title
    await db.commit()

    logger.info("Problem %s moved %s by user %s (%s -> %s)", problem_id, direction, user.id, index, target)
    return {
        "message": f"Problem moved {direction}",
        "moved_problem": {"id": problem_id, "title": title, "old_order": index, "new_order": target},
    }


async def bulk_import_problems_service(
    db: AsyncSession,
    user: User,
    rows: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Import many problems at once. Every row is validated first; a single bad
    row rejects the whole batch with one `Row N: ...` message per failure.
    """
    if not rows:
        raise ValidationError("No problems to import")
    if len(rows) > MAX_BULK_IMPORT_ROWS:
        raise ValidationError(f"Too many rows. Max {MAX_BULK_IMPORT_ROWS} per import.")

    prepared: List[Tuple[Dict[str, Any], Optional[str], Optional[str]]] = []
    errors: List[str] = []
    for row_number, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            errors.append(f"Row {row_number}: must be an object")
            continue
        try:
            cleaned = clean_problem_payload(row)
            topic_id, sub_topic_id = await resolve_filing(db, row.get("topic_id"), row.get("sub_topic_id"))
        except (ValidationError, NotFoundError) as exc:
            errors.append(f"Row {row_number}: {exc.detail}")
            continue
        prepared.append((cleaned, topic_id, sub_topic_id))

    if errors:
        raise ValidationError({"message": "Bulk import failed validation", "errors": errors})

    start = await _next_sort_order(db, user.id)
    problems = [
        _new_problem(user, cleaned, topic_id, sub_topic_id, start + offset)
        for offset, (cleaned, topic_id, sub_topic_id) in enumerate(prepared)
    ]
    db.add_all(problems)
    try:
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.exception("Bulk import of %s problems failed for user %s", len(problems), user.id)
        raise ServiceError("Bulk import failed") from exc

    logger.info("bulk_import user=%s imported=%s", user.id, len(problems))
    return {"imported": len(problems), "ids": [problem.id for problem in problems]}


def _export_row(problem: LeetcodeProblem) -> Dict[str, Any]:
    return {
        "id": problem.id,
        "problem_number": problem.problem_number,
        "title": problem.title,
        "difficulty": problem.difficulty,
        "category": problem.category,
        "tags": ";".join(problem.tags or []),
        "companies": ";".join(problem.companies or []),
        "hints": ";".join(problem.hints or []),
        "acceptance": problem.acceptance,
        "frequency": problem.frequency,
        "is_premium": bool(problem.is_premium),
        "leetcode_url": problem.leetcode_url,
        "solution_count": len(problem.solutions),
        "resource_count": len(problem.resources),
        "created_at": iso(problem.created_at),
    }


async def export_problems_service(db: AsyncSession, user: User, fmt: str = "json") -> Tuple[str, str, str]:
    """Return `(body, media_type, filename)` for the caller's problems (all problems for admins)."""
    fmt = (fmt or "json").strip().lower()
    if fmt not in ALLOWED_EXPORT_FORMATS:
        raise ValidationError("format must be 'csv' or 'json'")

    stmt = select(LeetcodeProblem).where(LeetcodeProblem.deleted_at.is_(None))
    if not user.is_admin:
        stmt = stmt.where(LeetcodeProblem.author_id == user.id)
    stmt = stmt.order_by(*PROBLEM_SORTS["problemNumber"]).options(*PROBLEM_OPTIONS)
    problems = list((await db.execute(stmt)).scalars().all())
    stamp = utcnow().strftime("%Y%m%d%H%M%S")

    if fmt == "json":
        body = json.dumps([serialize_problem(problem) for problem in problems], indent=2, ensure_ascii=True)
        return body, "application/json", f"leetcode-problems-{stamp}.json"

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_FIELDS)
    writer.writeheader()
    for problem in problems:
        writer.writerow(_export_row(problem))
    return buffer.getvalue(), "text/csv", f"leetcode-problems-{stamp}.csv"
