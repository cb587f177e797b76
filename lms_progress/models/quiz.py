from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID


class QuizPhase(StrEnum):
    UNSTARTED = "unstarted"
    STARTED = "started"
    ANSWERED = "answered"


@dataclass(frozen=True, slots=True)
class QuizAttemptState:
    """Client-held quiz attempt for one lesson.  Never persisted."""

    lesson_id: UUID
    started: bool = False
    answered: bool = False
    selected_option_index: int | None = None
    is_correct: bool | None = None

    @property
    def phase(self) -> QuizPhase:
        if self.answered:
            return QuizPhase.ANSWERED
        if self.started:
            return QuizPhase.STARTED
        return QuizPhase.UNSTARTED


@dataclass(frozen=True, slots=True)
class QuizAnswerResult:
    is_correct: bool
