"""Admin dashboard router."""

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.blog import Blog
from models.interview_resource import InterviewResource
from models.leetcode_problem import LeetcodeProblem
from models.note import Note
from models.user import User
from routers.auth_scope import require_admin

router = APIRouter()

AUTHORED_CONTENT = (
    ("blogs", Blog),
    ("notes", Note),
    ("leetcode_problems", LeetcodeProblem),
    ("interview_resources", InterviewResource),
)


@router.get("/stats")
async def admin_stats(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Counts of the calling admin's live content, plus site-wide user count."""
    stats = {}
    for key, model in AUTHORED_CONTENT:
        result = await db.execute(
            select(func.count(model.id)).where(model.author_id == admin.id, model.deleted_at.is_(None))
        )
        stats[key] = int(result.scalar() or 0)
    users = await db.execute(select(func.count(User.id)))
    stats["users"] = int(users.scalar() or 0)
    return stats
