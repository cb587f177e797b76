from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class LessonCompletion:
    """Append-only ledger entry, the source of truth for learner progress.

    At most one per (learner_id, lesson_id); never updated or deleted.
    """

    id: UUID
    learner_id: int
    lesson_id: UUID
    course_id: UUID
    completed_at: int

    @staticmethod
    def new(
        *, learner_id: int, lesson_id: UUID, course_id: UUID, completed_at: int
    ) -> LessonCompletion:
        return LessonCompletion(
            id=uuid4(),
            learner_id=learner_id,
            lesson_id=lesson_id,
            course_id=course_id,
            completed_at=completed_at,
        )


@dataclass(frozen=True, slots=True)
class Enrollment:
    """Projection / read model, derived from lesson completions.

    The ledger is the source of truth; progress_percent is a cached view
    of completions / lesson count.  completed_at is set iff the
    percentage is 100.
    """

    id: UUID
    learner_id: int
    course_id: UUID
    enrolled_at: int
    completed_at: int | None = None
    progress_percent: int = 0

    @property
    def is_completed(self) -> bool:
        return self.progress_percent == 100

    @staticmethod
    def new(*, learner_id: int, course_id: UUID, enrolled_at: int) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            learner_id=learner_id,
            course_id=course_id,
            enrolled_at=enrolled_at,
        )


@dataclass(frozen=True, slots=True)
class ProgressResult:
    """Outcome of one mark-complete action."""

    new_percent: int
    course_completed: bool
    completed_lesson_ids: frozenset[UUID]
    enrollment_id: UUID | None = None
