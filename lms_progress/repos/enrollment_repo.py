from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from lms_progress.models.progress import Enrollment


class EnrollmentRepo(Protocol):
    async def get(self, learner_id: int, course_id: UUID) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def save_progress(
        self, enrollment_id: UUID, progress_percent: int, completed_at: int | None
    ) -> Enrollment | None: ...
    async def list_by_learner(self, learner_id: int) -> list[Enrollment]: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Enrollment] = {}
        self._by_key: dict[tuple[int, UUID], UUID] = {}

    async def get(self, learner_id: int, course_id: UUID) -> Enrollment | None:
        enrollment_id = self._by_key.get((learner_id, course_id))
        if enrollment_id is None:
            return None
        return self._by_id.get(enrollment_id)

    async def add(self, enrollment: Enrollment) -> None:
        key = (enrollment.learner_id, enrollment.course_id)
        if key in self._by_key:
            raise ValueError("enrollment already exists")
        self._by_id[enrollment.id] = enrollment
        self._by_key[key] = enrollment.id

    async def save_progress(
        self, enrollment_id: UUID, progress_percent: int, completed_at: int | None
    ) -> Enrollment | None:
        existing = self._by_id.get(enrollment_id)
        if existing is None:
            return None
        updated = replace(
            existing, progress_percent=progress_percent, completed_at=completed_at
        )
        self._by_id[enrollment_id] = updated
        return updated

    async def list_by_learner(self, learner_id: int) -> list[Enrollment]:
        return sorted(
            (e for e in self._by_id.values() if e.learner_id == learner_id),
            key=lambda e: e.enrolled_at,
            reverse=True,
        )
