"""add study room notes and problem ordering

Revision ID: 20261019_000002
Revises: 20261019_000001
Create Date: 2026-10-19 00:00:02.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_000002"
down_revision: Union[str, None] = "20261019_000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "leetcode_problems",
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index(op.f("ix_leetcode_problems_sort_order"), "leetcode_problems", ["sort_order"], unique=False)

    op.create_table(
        "study_notes",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("study_room_id", sa.String(), nullable=False),
        sa.Column("author_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["study_room_id"], ["study_rooms.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("study_room_id", "author_id", "created_at"):
        op.create_index(op.f(f"ix_study_notes_{column}"), "study_notes", [column], unique=False)


def downgrade() -> None:
    for column in ("created_at", "author_id", "study_room_id"):
        op.drop_index(op.f(f"ix_study_notes_{column}"), table_name="study_notes")
    op.drop_table("study_notes")
    op.drop_index(op.f("ix_leetcode_problems_sort_order"), table_name="leetcode_problems")
    op.drop_column("leetcode_problems", "sort_order")
