"""Lesson engagement gate.

A text or video lesson cannot be marked complete the instant it is
opened: it has to stay the active lesson for `gate_ms` first.  A quiz is
unlocked by answering it instead, regardless of dwell time.  Lessons
that are already completed are always unlocked.

`evaluate_gate` is the whole rule as a pure function of
(lesson, elapsed time, prior completion/answer state).  `EngagementGate`
wraps it with the bookkeeping a course view needs: one running timer for
the active lesson and the set of lesson ids that are ready for
completion.  Nothing here is persisted; on reload the set is seeded from
completed lessons and answered quizzes.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from uuid import UUID

from lms_progress.models.course import Lesson

logger = logging.getLogger(__name__)

DEFAULT_GATE_MS = 3000

Clock = Callable[[], int]


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


def evaluate_gate(
    lesson: Lesson,
    *,
    active_since_ms: int | None,
    now_ms: int,
    completed: bool = False,
    quiz_answered: bool = False,
    gate_ms: int = DEFAULT_GATE_MS,
) -> bool:
    """Return True if `lesson` is ready for completion."""
    if completed:
        return True
    if lesson.is_quiz:
        return quiz_answered
    if active_since_ms is None:
        return False
    return now_ms - active_since_ms >= gate_ms


class EngagementGate:
    def __init__(
        self, *, gate_ms: int = DEFAULT_GATE_MS, clock: Clock = monotonic_ms
    ) -> None:
        if gate_ms <= 0:
            raise ValueError(f"gate_ms must be positive (got {gate_ms})")
        self._gate_ms = gate_ms
        self._clock = clock
        self._ready: set[UUID] = set()
        self._active: Lesson | None = None
        self._active_since: int | None = None

    @property
    def gate_ms(self) -> int:
        return self._gate_ms

    @property
    def active_lesson_id(self) -> UUID | None:
        return self._active.id if self._active is not None else None

    @property
    def ready_lesson_ids(self) -> frozenset[UUID]:
        self.poll()
        return frozenset(self._ready)

    def seed(
        self,
        completed_ids: Iterable[UUID],
        answered_quiz_ids: Iterable[UUID] = (),
    ) -> None:
        """Rehydrate after a reload so unlocked lessons stay unlocked."""
        self._ready.update(completed_ids)
        self._ready.update(answered_quiz_ids)

    def activate(self, lesson: Lesson) -> None:
        """Make `lesson` the focused lesson, starting its timer if needed."""
        self.poll()
        if (
            self._active is not None
            and self._active.id == lesson.id
            and self._active_since is not None
        ):
            return
        self._active = lesson
        self._active_since = None
        if lesson.id in self._ready or lesson.is_quiz:
            return
        self._active_since = self._clock()
        logger.debug(
            "Engagement timer started lesson=%s gate_ms=%d", lesson.id, self._gate_ms
        )

    def deactivate(self) -> None:
        """Navigate away.  An unfinished timer is cancelled, not granted."""
        self.poll()
        if self._active is not None and self._active_since is not None:
            logger.debug("Engagement timer cancelled lesson=%s", self._active.id)
        self._active = None
        self._active_since = None

    def poll(self) -> None:
        """Promote the active lesson to ready once its timer has elapsed."""
        if self._active is None or self._active_since is None:
            return
        if evaluate_gate(
            self._active,
            active_since_ms=self._active_since,
            now_ms=self._clock(),
            gate_ms=self._gate_ms,
        ):
            self._ready.add(self._active.id)
            self._active_since = None
            logger.debug("Lesson ready for completion lesson=%s", self._active.id)

    def mark_ready(self, lesson_id: UUID) -> None:
        self._ready.add(lesson_id)
        if self._active is not None and self._active.id == lesson_id:
            self._active_since = None

    def is_ready(self, lesson_id: UUID) -> bool:
        self.poll()
        return lesson_id in self._ready

    def remaining_ms(self, lesson_id: UUID) -> int | None:
        """Milliseconds until the lesson unlocks.

        0 if already ready, None if no timer is running for it.
        """
        if self.is_ready(lesson_id):
            return 0
        active = self._active
        if active is None or active.id != lesson_id or self._active_since is None:
            return None
        return max(0, self._gate_ms - (self._clock() - self._active_since))
