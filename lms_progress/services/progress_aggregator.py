"""Enrollment progress aggregator.

Keeps the enrollment's cached percentage consistent with the completion
ledger.  This is the only code that writes `progress_percent` and
`completed_at`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from uuid import UUID

from lms_progress.core.metrics import COURSE_COMPLETIONS, PROGRESS_RECOMPUTES
from lms_progress.models.progress import Enrollment
from lms_progress.repos.completion_repo import CompletionRepo
from lms_progress.repos.enrollment_repo import EnrollmentRepo
from lms_progress.services.completion_ledger import utc_now
from lms_progress.services.errors import (
    NotFoundError,
    ValidationFailure,
    persistence_guard,
    validate_learner_id,
)

logger = logging.getLogger(__name__)


def compute_percent(completed_count: int, total_lesson_count: int) -> int:
    """round(completed / total * 100) clamped to [0, 100]; 0 for an empty course.

    Halves round up (1 of 8 lessons is 13%), using integer arithmetic so
    the result never depends on float representation.
    """
    if total_lesson_count <= 0:
        return 0
    completed_count = max(0, completed_count)
    percent = (completed_count * 200 + total_lesson_count) // (2 * total_lesson_count)
    return min(100, percent)


class ProgressAggregator:
    def __init__(
        self,
        enrollments: EnrollmentRepo,
        completions: CompletionRepo,
        *,
        clock: Callable[[], int] = utc_now,
    ) -> None:
        self._enrollments = enrollments
        self._completions = completions
        self._clock = clock

    async def recompute(
        self, learner_id: int, course_id: UUID, total_lesson_count: int
    ) -> Enrollment:
        """Recompute and persist the enrollment percentage.

        Idempotent: the same ledger state always yields the same stored
        values.  The percentage never decreases, and an existing
        completed_at is never overwritten.
        """
        validate_learner_id(learner_id)
        if total_lesson_count < 0:
            raise ValidationFailure(
                f"total lesson count must not be negative (got {total_lesson_count})",
                step="recompute",
            )
        context = {"learner_id": learner_id, "course_id": course_id}

        try:
            with persistence_guard("recompute"):
                enrollment = await self._enrollments.get(learner_id, course_id)
                if enrollment is None:
                    raise NotFoundError(
                        f"enrollment for learner {learner_id} in course {course_id} "
                        "not found",
                        step="recompute",
                    )

                completed = await self._completions.count_for_course(
                    learner_id, course_id
                )
                percent = max(
                    enrollment.progress_percent,
                    compute_percent(completed, total_lesson_count),
                )
                completed_at = enrollment.completed_at
                if percent == 100 and completed_at is None:
                    completed_at = self._clock()

                if (percent, completed_at) == (
                    enrollment.progress_percent,
                    enrollment.completed_at,
                ):
                    PROGRESS_RECOMPUTES.labels(result="unchanged").inc()
                    return enrollment

                updated = await self._enrollments.save_progress(
                    enrollment.id, percent, completed_at
                )
                if updated is None:
                    raise NotFoundError(
                        f"enrollment {enrollment.id} disappeared during recompute",
                        step="recompute",
                    )
        except NotFoundError as e:
            PROGRESS_RECOMPUTES.labels(result="not_found").inc()
            logger.warning("Recompute failed: %s", e.message, extra=context)
            raise
        except Exception:
            PROGRESS_RECOMPUTES.labels(result="error").inc()
            raise

        PROGRESS_RECOMPUTES.labels(result="updated").inc()
        if updated.is_completed and enrollment.completed_at is None:
            COURSE_COMPLETIONS.inc()
            logger.info("Course completed enrollment=%s", updated.id, extra=context)
        logger.info(
            "Progress updated enrollment=%s %d%% -> %d%% (%d/%d lessons)",
            updated.id,
            enrollment.progress_percent,
            updated.progress_percent,
            completed,
            total_lesson_count,
            extra=context,
        )
        return updated
