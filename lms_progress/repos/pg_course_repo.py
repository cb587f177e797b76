"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms_progress.db.tables import CourseRow, LessonRow
from lms_progress.models.course import Course, Lesson, LessonContentType


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, course_id: UUID) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.id == course_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None

        lesson_stmt = (
            select(LessonRow)
            .where(LessonRow.course_id == course_id)
            .order_by(LessonRow.position)
        )
        lesson_rows = (await self._session.execute(lesson_stmt)).scalars().all()
        return Course(
            id=row.id,
            title=row.title,
            status=row.status,
            lessons=tuple(_row_to_lesson(r) for r in lesson_rows),
        )


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        course_id=row.course_id,
        title=row.title,
        position=row.position,
        content_type=LessonContentType(row.content_type),
        content=row.content,
        video_url=row.video_url,
        quiz_question=row.quiz_question,
        quiz_options=tuple(row.quiz_options) if row.quiz_options else (),
        correct_option_index=row.correct_option_index,
    )
