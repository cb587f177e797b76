"""Demo: one learner working through the sample course.

Drives a CourseViewSession against the API over an in-process ASGI
transport, so the gate, quiz and optimistic completion logic run exactly
as a remote course view would.

Run with:
    python scripts/demo_course_flow.py
"""

from __future__ import annotations

import asyncio

import httpx

from lms_progress.api.dependencies import (
    SAMPLE_COURSE_ID,
    SAMPLE_LESSON_IDS,
    course_repo,
)
from lms_progress.main import app
from lms_progress.services.course_session import CourseViewSession
from lms_progress.services.errors import ConflictError, LessonNotReadyError
from lms_progress.services.http_backend import HttpProgressBackend
from lms_progress.services.token_service import create_access_token


class FakeClock:
    def __init__(self) -> None:
        self.now = 0

    def __call__(self) -> int:
        return self.now


async def run() -> None:
    token = create_access_token(sub="1")
    client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://demo"
    )
    backend = HttpProgressBackend("http://demo", token, client=client)

    r = await client.post(
        f"/v1/courses/{SAMPLE_COURSE_ID}/enroll",
        headers={"Authorization": f"Bearer {token}"},
    )
    print(f"1. POST enroll                  -> {r.status_code}")

    course = await course_repo.get_by_id(SAMPLE_COURSE_ID)
    assert course is not None
    clock = FakeClock()
    session = CourseViewSession(course, backend, clock=clock)
    await session.load()
    print(f"2. load                         -> {session.progress_percent}%")

    quiz_id, text_id, video_id = SAMPLE_LESSON_IDS

    # ── Quiz: ready as soon as it is answered ───────────────────────
    session.open_lesson(quiz_id)
    answer = session.answer_quiz(quiz_id, 1)
    result = await session.mark_lesson_complete(quiz_id)
    print(
        f"3. quiz answered correct={answer.is_correct} -> {result.new_percent}%"
    )

    # ── Text lesson: gated on time spent ────────────────────────────
    session.open_lesson(text_id)
    try:
        await session.mark_lesson_complete(text_id)
    except LessonNotReadyError:
        left = session.remaining_ms(text_id)
        print(f"4. text at t=0                  -> not ready ({left}ms left)")
    clock.now += 3001
    result = await session.mark_lesson_complete(text_id)
    print(f"5. text at t=3001               -> {result.new_percent}%")

    # ── Video lesson ────────────────────────────────────────────────
    session.open_lesson(video_id)
    clock.now += 3001
    result = await session.mark_lesson_complete(video_id)
    print(
        f"6. video                        -> {result.new_percent}%"
        f"  course_completed={result.course_completed}"
    )

    try:
        await backend.mark_lesson_complete(SAMPLE_COURSE_ID, video_id)
    except ConflictError as e:
        print(f"7. repeat completion            -> conflict ({e.message})")

    await backend.aclose()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
