"""Course progress controller.

Orchestrates one "mark lesson complete" action end to end:

  1. ledger.record_completion     (ConflictError / NotFoundError stop here)
  2. aggregator.recompute         (failures become PartialProgressError)
  3. report new percent + whether the course is now complete

This is the only write path that touches both the completion ledger and
the enrollment percentage.  The two steps are sequential; when they run
on one database session the request transaction makes them atomic, and
when recompute fails the ledger write is kept and reported as partial
success.
"""

from __future__ import annotations

import logging
from uuid import UUID

from lms_progress.models.progress import Enrollment, ProgressResult
from lms_progress.repos.course_repo import CourseRepo
from lms_progress.services.completion_ledger import CompletionLedger
from lms_progress.services.errors import (
    NotFoundError,
    PartialProgressError,
    ProgressError,
    persistence_guard,
)
from lms_progress.services.progress_aggregator import ProgressAggregator

logger = logging.getLogger(__name__)


class CourseProgressController:
    def __init__(
        self,
        ledger: CompletionLedger,
        aggregator: ProgressAggregator,
        courses: CourseRepo,
    ) -> None:
        self._ledger = ledger
        self._aggregator = aggregator
        self._courses = courses

    async def get_completed_lessons(
        self, learner_id: int, course_id: UUID
    ) -> frozenset[UUID]:
        return await self._ledger.list_completed_lesson_ids(learner_id, course_id)

    async def mark_lesson_complete(
        self,
        learner_id: int,
        course_id: UUID,
        lesson_id: UUID,
        total_lesson_count: int | None = None,
    ) -> ProgressResult:
        if total_lesson_count is None:
            total_lesson_count = await self._lesson_count(course_id, step="ledger")

        completed_ids = await self._ledger.record_completion(
            learner_id, lesson_id, course_id
        )

        try:
            enrollment = await self._aggregator.recompute(
                learner_id, course_id, total_lesson_count
            )
        except ProgressError as e:
            logger.error(
                "Lesson recorded but progress not updated: %s",
                e.message,
                extra={
                    "learner_id": learner_id,
                    "course_id": course_id,
                    "lesson_id": lesson_id,
                    "step": "recompute",
                },
            )
            raise PartialProgressError(
                "lesson recorded; progress percentage may be stale until retried",
                completed_lesson_ids=completed_ids,
                cause=e,
            ) from e

        return _result(enrollment, completed_ids)

    async def refresh_progress(
        self, learner_id: int, course_id: UUID
    ) -> ProgressResult:
        """Re-run the recompute step, e.g. after a PartialProgressError."""
        total = await self._lesson_count(course_id, step="recompute")
        enrollment = await self._aggregator.recompute(learner_id, course_id, total)
        completed_ids = await self._ledger.list_completed_lesson_ids(
            learner_id, course_id
        )
        return _result(enrollment, completed_ids)

    async def _lesson_count(self, course_id: UUID, *, step: str) -> int:
        with persistence_guard(step):
            course = await self._courses.get_by_id(course_id)
        if course is None:
            raise NotFoundError(f"course {course_id} not found", step=step)
        return course.lesson_count


def _result(enrollment: Enrollment, completed_ids: frozenset[UUID]) -> ProgressResult:
    return ProgressResult(
        new_percent=enrollment.progress_percent,
        course_completed=enrollment.is_completed,
        completed_lesson_ids=completed_ids,
        enrollment_id=enrollment.id,
    )
