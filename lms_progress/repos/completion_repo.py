from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms_progress.models.progress import LessonCompletion


class CompletionRepo(Protocol):
    async def exists(self, learner_id: int, lesson_id: UUID) -> bool: ...
    async def add(self, completion: LessonCompletion) -> None: ...
    async def list_lesson_ids(self, learner_id: int, course_id: UUID) -> list[UUID]: ...
    async def count_for_course(self, learner_id: int, course_id: UUID) -> int: ...


class InMemoryCompletionRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[int, UUID], LessonCompletion] = {}

    async def exists(self, learner_id: int, lesson_id: UUID) -> bool:
        return (learner_id, lesson_id) in self._store

    async def add(self, completion: LessonCompletion) -> None:
        key = (completion.learner_id, completion.lesson_id)
        if key in self._store:
            raise ValueError("completion already exists")
        self._store[key] = completion

    async def list_lesson_ids(self, learner_id: int, course_id: UUID) -> list[UUID]:
        return [
            c.lesson_id
            for c in self._store.values()
            if c.learner_id == learner_id and c.course_id == course_id
        ]

    async def count_for_course(self, learner_id: int, course_id: UUID) -> int:
        return len(await self.list_lesson_ids(learner_id, course_id))
