"""PostgreSQL implementation of CompletionRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms_progress.db.tables import LessonCompletionRow
from lms_progress.models.progress import LessonCompletion

_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"


class PgCompletionRepo:
    """Satisfies the CompletionRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists(self, learner_id: int, lesson_id: UUID) -> bool:
        stmt = select(LessonCompletionRow.id).where(
            LessonCompletionRow.learner_id == learner_id,
            LessonCompletionRow.lesson_id == lesson_id,
        )
        return (await self._session.execute(stmt)).first() is not None

    async def add(self, completion: LessonCompletion) -> None:
        row = LessonCompletionRow(
            id=completion.id,
            learner_id=completion.learner_id,
            lesson_id=completion.lesson_id,
            course_id=completion.course_id,
            completed_at=completion.completed_at,
        )
        # Savepoint so a lost double-click race doesn't poison the
        # request transaction.
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError as e:
            code = _sqlstate(e)
            if code == _FOREIGN_KEY_VIOLATION:
                raise KeyError("referenced learner, lesson or course not found") from e
            if code == _UNIQUE_VIOLATION:
                raise ValueError("completion already exists") from e
            raise

    async def list_lesson_ids(self, learner_id: int, course_id: UUID) -> list[UUID]:
        stmt = (
            select(LessonCompletionRow.lesson_id)
            .where(
                LessonCompletionRow.learner_id == learner_id,
                LessonCompletionRow.course_id == course_id,
            )
            .order_by(LessonCompletionRow.completed_at)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_for_course(self, learner_id: int, course_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(LessonCompletionRow)
            .where(
                LessonCompletionRow.learner_id == learner_id,
                LessonCompletionRow.course_id == course_id,
            )
        )
        return int((await self._session.execute(stmt)).scalar_one())


def _sqlstate(error: IntegrityError) -> str | None:
    orig = error.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
