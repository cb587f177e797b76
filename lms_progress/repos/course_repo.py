from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from lms_progress.models.course import Course, Lesson


class CourseRepo(Protocol):
    async def get_by_id(self, course_id: UUID) -> Course | None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Course] = {}

    async def get_by_id(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    def add(self, course: Course, lessons: list[Lesson] | None = None) -> Course:
        if course.id in self._by_id:
            raise ValueError("course already exists")
        if lessons is not None:
            ordered = tuple(sorted(lessons, key=lambda lesson: lesson.position))
            course = replace(course, lessons=ordered)
        self._by_id[course.id] = course
        return course
