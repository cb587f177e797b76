from __future__ import annotations

import logging
from collections.abc import Callable
from uuid import UUID

from lms_progress.models.progress import Enrollment
from lms_progress.repos.course_repo import CourseRepo
from lms_progress.repos.enrollment_repo import EnrollmentRepo
from lms_progress.repos.learner_repo import LearnerRepo
from lms_progress.services.completion_ledger import utc_now
from lms_progress.services.errors import (
    ConflictError,
    NotFoundError,
    persistence_guard,
    validate_learner_id,
)

logger = logging.getLogger(__name__)


class AlreadyEnrolledError(ConflictError):
    code = "already_enrolled"


class EnrollmentService:
    """Creates enrollments at 0% and lists a learner's enrollments."""

    def __init__(
        self,
        enrollments: EnrollmentRepo,
        courses: CourseRepo,
        learners: LearnerRepo,
        *,
        clock: Callable[[], int] = utc_now,
    ) -> None:
        self._enrollments = enrollments
        self._courses = courses
        self._learners = learners
        self._clock = clock

    async def enroll(self, learner_id: int, course_id: UUID) -> Enrollment:
        validate_learner_id(learner_id)
        with persistence_guard("enroll"):
            if await self._learners.get_by_id(learner_id) is None:
                raise NotFoundError(f"learner {learner_id} not found", step="enroll")

            course = await self._courses.get_by_id(course_id)
            if course is None or not course.is_approved:
                logger.warning(
                    "Enrollment rejected: course=%s missing or not approved", course_id
                )
                raise NotFoundError(
                    "approved course not found or not available for enrollment",
                    step="enroll",
                )

            if await self._enrollments.get(learner_id, course_id) is not None:
                raise AlreadyEnrolledError(
                    "learner is already enrolled in this course", step="enroll"
                )

            enrollment = Enrollment.new(
                learner_id=learner_id, course_id=course_id, enrolled_at=self._clock()
            )
            try:
                await self._enrollments.add(enrollment)
            except ValueError:
                raise AlreadyEnrolledError(
                    "learner is already enrolled in this course", step="enroll"
                ) from None

        logger.info(
            "Enrolled learner=%d course=%s enrollment=%s",
            learner_id,
            course_id,
            enrollment.id,
        )
        return enrollment

    async def list_for_learner(self, learner_id: int) -> list[Enrollment]:
        validate_learner_id(learner_id)
        with persistence_guard("enroll"):
            return await self._enrollments.list_by_learner(learner_id)
