"""create progress tables

Revision ID: 3b7d2c9e41a0
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7d2c9e41a0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "learners",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
    )
    op.create_table(
        "courses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column(
            "status", sa.String(length=32), nullable=False, server_default="pending"
        ),
    )
    op.create_table(
        "lessons",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.id"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column(
            "content_type", sa.String(length=16), nullable=False, server_default="text"
        ),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("video_url", sa.Text(), nullable=True),
        sa.Column("quiz_question", sa.Text(), nullable=True),
        sa.Column(
            "quiz_options",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("correct_option_index", sa.Integer(), nullable=True),
    )
    op.create_index("ix_lessons_course_position", "lessons", ["course_id", "position"])

    op.create_table(
        "course_enrollments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "learner_id", sa.Integer(), sa.ForeignKey("learners.id"), nullable=False
        ),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.id"),
            nullable=False,
        ),
        sa.Column("enrolled_at", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.Integer(), nullable=True),
        sa.Column(
            "progress_percent", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.UniqueConstraint("learner_id", "course_id"),
        sa.CheckConstraint(
            "progress_percent BETWEEN 0 AND 100", name="ck_enrollment_percent"
        ),
    )

    op.create_table(
        "lesson_completions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "learner_id", sa.Integer(), sa.ForeignKey("learners.id"), nullable=False
        ),
        sa.Column(
            "lesson_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("lessons.id"),
            nullable=False,
        ),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.id"),
            nullable=False,
        ),
        sa.Column("completed_at", sa.Integer(), nullable=False),
        sa.UniqueConstraint(
            "learner_id", "lesson_id", name="uq_completion_learner_lesson"
        ),
    )
    op.create_index(
        "ix_lesson_completions_learner_course",
        "lesson_completions",
        ["learner_id", "course_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_lesson_completions_learner_course", table_name="lesson_completions"
    )
    op.drop_table("lesson_completions")
    op.drop_table("course_enrollments")
    op.drop_index("ix_lessons_course_position", table_name="lessons")
    op.drop_table("lessons")
    op.drop_table("courses")
    op.drop_table("learners")
