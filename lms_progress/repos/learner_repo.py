from __future__ import annotations

from typing import Protocol

from lms_progress.models.learner import Learner


class LearnerRepo(Protocol):
    async def get_by_id(self, learner_id: int) -> Learner | None: ...


class InMemoryLearnerRepo:
    def __init__(self) -> None:
        self._by_id: dict[int, Learner] = {}

    async def get_by_id(self, learner_id: int) -> Learner | None:
        return self._by_id.get(learner_id)

    def add(self, learner: Learner) -> None:
        if learner.id in self._by_id:
            raise ValueError("learner already exists")
        self._by_id[learner.id] = learner
