"""Client-held quiz attempt state machine.

    unstarted --start--> started --answer--> answered

`answer` from `unstarted` starts the attempt implicitly.  The answer is
locked at first submission: correctness is computed once, against the
lesson's configured correct option, and a second `answer` returns the
stored result unchanged.  Once the lesson is completed the stored answer
stays visible read-only.

Quizzes whose configuration is unusable (fewer than two non-empty
options, or no valid correct index) still render, using placeholder
options with the first one treated as correct.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

from lms_progress.models.course import Lesson
from lms_progress.models.quiz import QuizAnswerResult, QuizAttemptState
from lms_progress.services.errors import ConflictError, ValidationFailure

logger = logging.getLogger(__name__)

PLACEHOLDER_OPTIONS: tuple[str, ...] = ("Option A", "Option B", "Option C")


def _configured_options(lesson: Lesson) -> list[tuple[int, str]]:
    """(configured index, text) for each non-empty option."""
    return [(i, opt) for i, opt in enumerate(lesson.quiz_options) if opt.strip()]


def _configured_correct_index(lesson: Lesson) -> int | None:
    """Display index of the configured correct option, or None if unusable."""
    options = _configured_options(lesson)
    if len(options) < 2 or lesson.correct_option_index is None:
        return None
    for display_index, (configured_index, _) in enumerate(options):
        if configured_index == lesson.correct_option_index:
            return display_index
    return None


def uses_placeholders(lesson: Lesson) -> bool:
    return _configured_correct_index(lesson) is None


def display_options(lesson: Lesson) -> tuple[str, ...]:
    if uses_placeholders(lesson):
        return PLACEHOLDER_OPTIONS
    return tuple(opt for _, opt in _configured_options(lesson))


def effective_correct_index(lesson: Lesson) -> int:
    index = _configured_correct_index(lesson)
    return 0 if index is None else index


class QuizAttemptStore:
    """Ephemeral attempt state keyed by lesson id."""

    def __init__(self) -> None:
        self._states: dict[UUID, QuizAttemptState] = {}

    def get_state(self, lesson_id: UUID) -> QuizAttemptState:
        return self._states.get(lesson_id) or QuizAttemptState(lesson_id=lesson_id)

    def answered_lesson_ids(self) -> frozenset[UUID]:
        return frozenset(lid for lid, s in self._states.items() if s.answered)

    def start(self, lesson: Lesson, *, completed: bool = False) -> QuizAttemptState:
        _require_quiz(lesson)
        state = self.get_state(lesson.id)
        if completed or state.answered:
            return state
        state = QuizAttemptState(lesson_id=lesson.id, started=True)
        self._states[lesson.id] = state
        return state

    def answer(
        self, lesson: Lesson, option_index: int, *, completed: bool = False
    ) -> QuizAnswerResult:
        _require_quiz(lesson)
        options = display_options(lesson)
        if (
            isinstance(option_index, bool)
            or not isinstance(option_index, int)
            or not 0 <= option_index < len(options)
        ):
            raise ValidationFailure(
                f"option index must be between 0 and {len(options) - 1} "
                f"(got {option_index!r})",
                step="quiz",
            )

        state = self.get_state(lesson.id)
        if state.answered:
            return QuizAnswerResult(is_correct=bool(state.is_correct))
        if completed:
            raise ConflictError("quiz lesson already completed", step="quiz")

        if not state.started:
            state = replace(state, started=True)
        is_correct = option_index == effective_correct_index(lesson)
        self._states[lesson.id] = replace(
            state,
            answered=True,
            selected_option_index=option_index,
            is_correct=is_correct,
        )
        logger.debug(
            "Quiz answered lesson=%s option=%d correct=%s",
            lesson.id,
            option_index,
            is_correct,
        )
        return QuizAnswerResult(is_correct=is_correct)

    def clear(self) -> None:
        self._states.clear()


def _require_quiz(lesson: Lesson) -> None:
    if not lesson.is_quiz:
        raise ValidationFailure(f"lesson {lesson.id} is not a quiz", step="quiz")
