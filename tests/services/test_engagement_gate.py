from __future__ import annotations

import uuid

import pytest

from lms_progress.models.course import Lesson, LessonContentType
from lms_progress.services.engagement_gate import EngagementGate, evaluate_gate
from tests.conftest import FakeClock

COURSE_ID = uuid.uuid4()


def _lesson(content_type: LessonContentType = LessonContentType.TEXT) -> Lesson:
    return Lesson.new(
        course_id=COURSE_ID, title="L", position=0, content_type=content_type
    )


# ---- evaluate_gate ----


@pytest.mark.parametrize(
    ("elapsed", "expected"),
    [(0, False), (2999, False), (3000, True), (3001, True)],
)
def test_text_lesson_needs_gate_duration(elapsed: int, expected: bool) -> None:
    assert (
        evaluate_gate(_lesson(), active_since_ms=1000, now_ms=1000 + elapsed)
        is expected
    )


def test_video_lesson_follows_same_timer() -> None:
    video = _lesson(LessonContentType.VIDEO)
    assert evaluate_gate(video, active_since_ms=0, now_ms=10) is False
    assert evaluate_gate(video, active_since_ms=0, now_ms=3001) is True


def test_quiz_ignores_time_and_needs_answer() -> None:
    quiz = _lesson(LessonContentType.QUIZ)
    assert evaluate_gate(quiz, active_since_ms=0, now_ms=60_000) is False
    assert evaluate_gate(quiz, active_since_ms=None, now_ms=0, quiz_answered=True)


def test_completed_lesson_is_always_ready() -> None:
    assert evaluate_gate(_lesson(), active_since_ms=None, now_ms=0, completed=True)


def test_no_timer_means_not_ready() -> None:
    assert evaluate_gate(_lesson(), active_since_ms=None, now_ms=99_999) is False


def test_custom_gate_duration() -> None:
    lesson = _lesson()
    assert evaluate_gate(lesson, active_since_ms=0, now_ms=500, gate_ms=500) is True
    assert evaluate_gate(lesson, active_since_ms=0, now_ms=499, gate_ms=500) is False


# ---- EngagementGate ----


def test_gate_rejects_non_positive_duration() -> None:
    with pytest.raises(ValueError, match="gate_ms must be positive"):
        EngagementGate(gate_ms=0)


def test_active_lesson_unlocks_after_duration() -> None:
    clock = FakeClock()
    gate = EngagementGate(clock=clock)
    lesson = _lesson()
    gate.activate(lesson)

    assert gate.is_ready(lesson.id) is False
    assert gate.remaining_ms(lesson.id) == 3000

    clock.advance(3001)
    assert gate.is_ready(lesson.id) is True
    assert gate.remaining_ms(lesson.id) == 0


def test_refocusing_active_lesson_keeps_timer_running() -> None:
    clock = FakeClock()
    gate = EngagementGate(clock=clock)
    lesson = _lesson()
    gate.activate(lesson)

    clock.advance(2000)
    gate.activate(lesson)
    assert gate.remaining_ms(lesson.id) == 1000

    clock.advance(1001)
    assert gate.is_ready(lesson.id) is True


def test_reopening_after_navigating_away_restarts_timer() -> None:
    clock = FakeClock()
    gate = EngagementGate(clock=clock)
    lesson = _lesson()
    gate.activate(lesson)
    clock.advance(2000)
    gate.deactivate()

    gate.activate(lesson)
    clock.advance(2000)
    assert gate.is_ready(lesson.id) is False
    assert gate.remaining_ms(lesson.id) == 1000


def test_navigating_away_cancels_unfinished_timer() -> None:
    clock = FakeClock()
    gate = EngagementGate(clock=clock)
    first, second = _lesson(), _lesson()

    gate.activate(first)
    clock.advance(2000)
    gate.activate(second)
    clock.advance(2000)
    gate.activate(first)  # timer restarts from zero

    assert gate.is_ready(first.id) is False
    assert gate.remaining_ms(first.id) == 3000
    assert gate.remaining_ms(second.id) is None


def test_deactivate_keeps_already_elapsed_timer() -> None:
    clock = FakeClock()
    gate = EngagementGate(clock=clock)
    lesson = _lesson()
    gate.activate(lesson)
    clock.advance(3000)

    gate.deactivate()

    assert gate.active_lesson_id is None
    assert gate.is_ready(lesson.id) is True


def test_ready_lesson_stays_ready_after_revisit() -> None:
    clock = FakeClock()
    gate = EngagementGate(clock=clock)
    lesson = _lesson()
    gate.activate(lesson)
    clock.advance(3000)
    gate.deactivate()

    gate.activate(lesson)
    assert gate.is_ready(lesson.id) is True


def test_quiz_activation_starts_no_timer() -> None:
    clock = FakeClock()
    gate = EngagementGate(clock=clock)
    quiz = _lesson(LessonContentType.QUIZ)
    gate.activate(quiz)
    clock.advance(10_000)

    assert gate.is_ready(quiz.id) is False
    assert gate.remaining_ms(quiz.id) is None

    gate.mark_ready(quiz.id)
    assert gate.is_ready(quiz.id) is True


def test_seed_restores_readiness() -> None:
    gate = EngagementGate(clock=FakeClock())
    done, answered = uuid.uuid4(), uuid.uuid4()
    gate.seed([done], [answered])
    assert gate.ready_lesson_ids == frozenset({done, answered})
