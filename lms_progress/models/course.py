from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID, uuid4


class LessonContentType(StrEnum):
    TEXT = "text"
    VIDEO = "video"
    QUIZ = "quiz"


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    course_id: UUID
    title: str
    position: int
    content_type: LessonContentType = LessonContentType.TEXT
    content: str | None = None
    video_url: str | None = None
    quiz_question: str | None = None
    quiz_options: tuple[str, ...] = ()
    correct_option_index: int | None = None

    @property
    def is_quiz(self) -> bool:
        return self.content_type is LessonContentType.QUIZ

    @staticmethod
    def new(
        *,
        course_id: UUID,
        title: str,
        position: int,
        content_type: LessonContentType | str = LessonContentType.TEXT,
        content: str | None = None,
        video_url: str | None = None,
        quiz_question: str | None = None,
        quiz_options: tuple[str, ...] = (),
        correct_option_index: int | None = None,
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            course_id=course_id,
            title=title,
            position=position,
            content_type=LessonContentType(content_type),
            content=content,
            video_url=video_url,
            quiz_question=quiz_question,
            quiz_options=tuple(quiz_options),
            correct_option_index=correct_option_index,
        )


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    status: str = "pending"  # pending|approved|rejected
    lessons: tuple[Lesson, ...] = field(default=())

    @property
    def lesson_count(self) -> int:
        return len(self.lessons)

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"

    def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None

    @staticmethod
    def new(*, title: str, status: str = "pending") -> Course:
        return Course(id=uuid4(), title=title, status=status)
