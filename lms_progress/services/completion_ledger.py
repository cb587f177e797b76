"""Lesson completion ledger.

Records that a learner finished a lesson, exactly once.  A second attempt
for the same (learner, lesson) is rejected with ConflictError and writes
nothing, so callers can treat it as "already done".
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable
from uuid import UUID

from lms_progress.core.metrics import LESSON_COMPLETIONS
from lms_progress.models.progress import LessonCompletion
from lms_progress.repos.completion_repo import CompletionRepo
from lms_progress.repos.course_repo import CourseRepo
from lms_progress.repos.learner_repo import LearnerRepo
from lms_progress.services.errors import (
    ConflictError,
    NotFoundError,
    persistence_guard,
    validate_learner_id,
)

logger = logging.getLogger(__name__)


def utc_now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


class CompletionLedger:
    def __init__(
        self,
        completions: CompletionRepo,
        courses: CourseRepo,
        learners: LearnerRepo,
        *,
        clock: Callable[[], int] = utc_now,
    ) -> None:
        self._completions = completions
        self._courses = courses
        self._learners = learners
        self._clock = clock

    async def record_completion(
        self, learner_id: int, lesson_id: UUID, course_id: UUID
    ) -> frozenset[UUID]:
        """Append a completion and return the learner's completed ids for the course.

        Raises ValidationFailure, NotFoundError, ConflictError or
        PersistenceFailure; on any of them nothing is written.
        """
        validate_learner_id(learner_id)
        context = {
            "learner_id": learner_id,
            "course_id": course_id,
            "lesson_id": lesson_id,
        }

        try:
            with persistence_guard("ledger"):
                await self._check_references(learner_id, lesson_id, course_id)

                if await self._completions.exists(learner_id, lesson_id):
                    raise ConflictError(
                        "lesson already marked as completed by this learner",
                        step="ledger",
                    )

                completion = LessonCompletion.new(
                    learner_id=learner_id,
                    lesson_id=lesson_id,
                    course_id=course_id,
                    completed_at=self._clock(),
                )
                try:
                    await self._completions.add(completion)
                except ValueError:
                    # Lost a race with a concurrent request for the same lesson.
                    raise ConflictError(
                        "lesson already marked as completed by this learner",
                        step="ledger",
                    ) from None
                except KeyError:
                    raise NotFoundError(
                        "learner, lesson or course not found", step="ledger"
                    ) from None

                completed = frozenset(
                    await self._completions.list_lesson_ids(learner_id, course_id)
                )
        except ConflictError:
            LESSON_COMPLETIONS.labels(result="conflict").inc()
            logger.info("Completion already recorded", extra=context)
            raise
        except NotFoundError as e:
            LESSON_COMPLETIONS.labels(result="not_found").inc()
            logger.warning("Completion rejected: %s", e.message, extra=context)
            raise
        except Exception:
            LESSON_COMPLETIONS.labels(result="error").inc()
            raise

        LESSON_COMPLETIONS.labels(result="recorded").inc()
        logger.info(
            "Completion recorded learner=%d lesson=%s completed=%d",
            learner_id,
            lesson_id,
            len(completed),
            extra=context,
        )
        return completed

    async def list_completed_lesson_ids(
        self, learner_id: int, course_id: UUID
    ) -> frozenset[UUID]:
        validate_learner_id(learner_id)
        with persistence_guard("ledger"):
            return frozenset(
                await self._completions.list_lesson_ids(learner_id, course_id)
            )

    async def _check_references(
        self, learner_id: int, lesson_id: UUID, course_id: UUID
    ) -> None:
        if await self._learners.get_by_id(learner_id) is None:
            raise NotFoundError(f"learner {learner_id} not found", step="ledger")
        course = await self._courses.get_by_id(course_id)
        if course is None:
            raise NotFoundError(f"course {course_id} not found", step="ledger")
        if course.get_lesson(lesson_id) is None:
            raise NotFoundError(
                f"lesson {lesson_id} not found in course {course_id}", step="ledger"
            )
