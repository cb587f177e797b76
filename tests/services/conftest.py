from __future__ import annotations

import asyncio
from dataclasses import dataclass

import pytest

from lms_progress.models.course import Course, Lesson, LessonContentType
from lms_progress.models.learner import Learner
from lms_progress.models.progress import Enrollment
from lms_progress.repos.completion_repo import InMemoryCompletionRepo
from lms_progress.repos.course_repo import InMemoryCourseRepo
from lms_progress.repos.enrollment_repo import InMemoryEnrollmentRepo
from lms_progress.repos.learner_repo import InMemoryLearnerRepo

LEARNER_ID = 7


@dataclass
class World:
    learners: InMemoryLearnerRepo
    courses: InMemoryCourseRepo
    enrollments: InMemoryEnrollmentRepo
    completions: InMemoryCompletionRepo
    course: Course

    @property
    def lesson_ids(self) -> list:
        return [lesson.id for lesson in self.course.lessons]

    def enroll(self, learner_id: int = LEARNER_ID, course: Course | None = None):
        enrollment = Enrollment.new(
            learner_id=learner_id,
            course_id=(course or self.course).id,
            enrolled_at=1_700_000_000,
        )
        asyncio.run(self.enrollments.add(enrollment))
        return enrollment

    def add_course(self, lesson_count: int, status: str = "approved") -> Course:
        course = Course.new(title=f"{lesson_count}-lesson course", status=status)
        lessons = [
            Lesson.new(course_id=course.id, title=f"Lesson {i}", position=i)
            for i in range(lesson_count)
        ]
        return self.courses.add(course, lessons)


def make_world() -> World:
    learners = InMemoryLearnerRepo()
    learners.add(Learner(id=LEARNER_ID, email="learner@example.com"))
    learners.add(Learner(id=8, email="other@example.com"))

    courses = InMemoryCourseRepo()
    course = Course.new(title="Intro to UX", status="approved")
    course = courses.add(
        course,
        [
            Lesson.new(
                course_id=course.id,
                title="Quiz",
                position=0,
                content_type=LessonContentType.QUIZ,
                quiz_question="Pick B",
                quiz_options=("A", "B", "C"),
                correct_option_index=1,
            ),
            Lesson.new(course_id=course.id, title="Reading", position=1),
            Lesson.new(
                course_id=course.id,
                title="Video",
                position=2,
                content_type=LessonContentType.VIDEO,
                video_url="https://example.com/v.mp4",
            ),
        ],
    )
    return World(
        learners=learners,
        courses=courses,
        enrollments=InMemoryEnrollmentRepo(),
        completions=InMemoryCompletionRepo(),
        course=course,
    )


@pytest.fixture
def world() -> World:
    return make_world()
