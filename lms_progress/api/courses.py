"""Course catalogue and enrollment endpoints."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from lms_progress.api.dependencies import (
    ProgressRepos,
    get_enrollment_service,
    get_repos,
    require_learner,
)
from lms_progress.api.enrollments import EnrollmentOut, enrollment_out
from lms_progress.api.errors import raise_http_error
from lms_progress.models.course import Course, Lesson
from lms_progress.models.principal import Principal
from lms_progress.services.enrollment_service import EnrollmentService
from lms_progress.services.errors import ProgressError, persistence_guard
from lms_progress.services.quiz_attempts import display_options

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class LessonOut(BaseModel):
    id: str
    title: str
    position: int
    content_type: str
    content: str | None = None
    video_url: str | None = None
    quiz_question: str | None = None
    quiz_options: list[str] | None = None


class CourseOut(BaseModel):
    id: str
    title: str
    status: str
    lesson_count: int
    lessons: list[LessonOut]


def _lesson_out(lesson: Lesson) -> LessonOut:
    # The correct option is never sent; answers are judged client-side
    # and only revealed once the lesson is complete.
    return LessonOut(
        id=str(lesson.id),
        title=lesson.title,
        position=lesson.position,
        content_type=str(lesson.content_type),
        content=lesson.content,
        video_url=lesson.video_url,
        quiz_question=lesson.quiz_question if lesson.is_quiz else None,
        quiz_options=list(display_options(lesson)) if lesson.is_quiz else None,
    )


def _course_out(course: Course) -> CourseOut:
    return CourseOut(
        id=str(course.id),
        title=course.title,
        status=course.status,
        lesson_count=course.lesson_count,
        lessons=[_lesson_out(lesson) for lesson in course.lessons],
    )


@router.get("/{course_id}", response_model=CourseOut)
async def get_course(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_learner)],
    repos: Annotated[ProgressRepos, Depends(get_repos)],
) -> CourseOut:
    """Return an approved course with its lessons in display order."""
    try:
        with persistence_guard("ledger"):
            course = await repos.courses.get_by_id(course_id)
    except ProgressError as e:
        raise_http_error(e)
    if course is None or not course.is_approved:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Course not found"
        )
    return _course_out(course)


@router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_learner)],
    svc: Annotated[EnrollmentService, Depends(get_enrollment_service)],
) -> EnrollmentOut:
    try:
        enrollment = await svc.enroll(principal.learner_id, course_id)
    except ProgressError as e:
        raise_http_error(e)
    return enrollment_out(enrollment)
