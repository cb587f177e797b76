"""Client-held state for one learner viewing one course.

Two layers meet here.  The engagement gate and quiz attempts are
ephemeral and live only in this object; completions are durable and go
through a ProgressBackend, either the in-process controller or the REST
API via HttpProgressBackend.  Durable writes happen only at the
"mark complete" boundary.

mark_lesson_complete applies an optimistic local mark and reverts it if
the backend fails, so the view never claims a lesson is done when the
server disagrees.  ConflictError means the server already has it, so
the mark is kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from lms_progress.models.course import Course, Lesson
from lms_progress.models.progress import ProgressResult
from lms_progress.models.quiz import QuizAnswerResult, QuizAttemptState
from lms_progress.services.engagement_gate import (
    DEFAULT_GATE_MS,
    Clock,
    EngagementGate,
    monotonic_ms,
)
from lms_progress.services.errors import (
    CompletionInFlightError,
    ConflictError,
    LessonNotReadyError,
    NotFoundError,
    PartialProgressError,
)
from lms_progress.services.progress_aggregator import compute_percent
from lms_progress.services.progress_controller import CourseProgressController
from lms_progress.services.quiz_attempts import (
    QuizAttemptStore,
    display_options,
    effective_correct_index,
)

logger = logging.getLogger(__name__)


class ProgressBackend(Protocol):
    async def get_completed_lessons(self, course_id: UUID) -> frozenset[UUID]: ...
    async def mark_lesson_complete(
        self, course_id: UUID, lesson_id: UUID
    ) -> ProgressResult: ...


class ControllerBackend:
    """In-process backend bound to one learner."""

    def __init__(self, controller: CourseProgressController, learner_id: int) -> None:
        self._controller = controller
        self._learner_id = learner_id

    async def get_completed_lessons(self, course_id: UUID) -> frozenset[UUID]:
        return await self._controller.get_completed_lessons(self._learner_id, course_id)

    async def mark_lesson_complete(
        self, course_id: UUID, lesson_id: UUID
    ) -> ProgressResult:
        return await self._controller.mark_lesson_complete(
            self._learner_id, course_id, lesson_id
        )


@dataclass(frozen=True, slots=True)
class QuizView:
    lesson_id: UUID
    question: str | None
    options: tuple[str, ...]
    state: QuizAttemptState
    revealed: bool
    correct_option_index: int | None  # only exposed once revealed


class CourseViewSession:
    def __init__(
        self,
        course: Course,
        backend: ProgressBackend,
        *,
        gate_ms: int = DEFAULT_GATE_MS,
        clock: Clock = monotonic_ms,
    ) -> None:
        self.course = course
        self._backend = backend
        self._gate = EngagementGate(gate_ms=gate_ms, clock=clock)
        self._quizzes = QuizAttemptStore()
        self._completed: set[UUID] = set()
        self._in_flight = False
        self._percent: int | None = None

    # --- read side ---

    @property
    def completed_lesson_ids(self) -> frozenset[UUID]:
        return frozenset(self._completed)

    @property
    def progress_percent(self) -> int:
        if self._percent is not None:
            return self._percent
        return compute_percent(len(self._completed), self.course.lesson_count)

    @property
    def completion_in_flight(self) -> bool:
        return self._in_flight

    def is_completed(self, lesson_id: UUID) -> bool:
        return lesson_id in self._completed

    def can_complete(self, lesson_id: UUID) -> bool:
        """Whether the "mark complete" control should be enabled."""
        return (
            not self._in_flight
            and lesson_id not in self._completed
            and self._gate.is_ready(lesson_id)
        )

    async def load(self) -> frozenset[UUID]:
        """Rehydrate completions from the backend and seed the gate."""
        completed = await self._backend.get_completed_lessons(self.course.id)
        self._completed = set(completed)
        self._percent = None
        self._gate.seed(self._completed, self._quizzes.answered_lesson_ids())
        return frozenset(self._completed)

    # --- navigation ---

    def open_lesson(self, lesson_id: UUID) -> Lesson:
        lesson = self._lesson(lesson_id)
        if lesson.id in self._completed:
            self._gate.mark_ready(lesson.id)
        self._gate.activate(lesson)
        return lesson

    def close_lesson(self) -> None:
        self._gate.deactivate()

    def remaining_ms(self, lesson_id: UUID) -> int | None:
        return self._gate.remaining_ms(lesson_id)

    # --- quiz ---

    def get_quiz_state(self, lesson_id: UUID) -> QuizAttemptState:
        return self._quizzes.get_state(lesson_id)

    def quiz_view(self, lesson_id: UUID) -> QuizView:
        lesson = self._lesson(lesson_id)
        revealed = lesson.id in self._completed
        return QuizView(
            lesson_id=lesson.id,
            question=lesson.quiz_question,
            options=display_options(lesson),
            state=self._quizzes.get_state(lesson.id),
            revealed=revealed,
            correct_option_index=effective_correct_index(lesson) if revealed else None,
        )

    def start_quiz(self, lesson_id: UUID) -> QuizAttemptState:
        lesson = self._lesson(lesson_id)
        return self._quizzes.start(lesson, completed=lesson.id in self._completed)

    def answer_quiz(self, lesson_id: UUID, option_index: int) -> QuizAnswerResult:
        lesson = self._lesson(lesson_id)
        result = self._quizzes.answer(
            lesson, option_index, completed=lesson.id in self._completed
        )
        self._gate.mark_ready(lesson.id)
        return result

    # --- durable write ---

    async def mark_lesson_complete(self, lesson_id: UUID) -> ProgressResult:
        lesson = self._lesson(lesson_id)
        if self._in_flight:
            raise CompletionInFlightError(
                "a completion request is already in flight", step="gate"
            )
        if lesson.id in self._completed:
            raise ConflictError("lesson already completed", step="gate")
        if not self._gate.is_ready(lesson.id):
            raise LessonNotReadyError(
                f"lesson {lesson.id} is not ready for completion yet", step="gate"
            )

        self._in_flight = True
        self._completed.add(lesson.id)
        try:
            result = await self._backend.mark_lesson_complete(self.course.id, lesson.id)
        except ConflictError:
            logger.info("Lesson already completed on server lesson=%s", lesson.id)
            raise
        except PartialProgressError as e:
            self._completed.update(e.completed_lesson_ids)
            self._percent = None
            raise
        except Exception:
            self._completed.discard(lesson.id)
            logger.warning("Completion failed, mark reverted lesson=%s", lesson.id)
            raise
        finally:
            self._in_flight = False

        self._completed = set(result.completed_lesson_ids) | {lesson.id}
        self._percent = result.new_percent
        return result

    def _lesson(self, lesson_id: UUID) -> Lesson:
        lesson = self.course.get_lesson(lesson_id)
        if lesson is None:
            raise NotFoundError(
                f"lesson {lesson_id} not found in course {self.course.id}"
            )
        return lesson
