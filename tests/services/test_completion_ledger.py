from __future__ import annotations

import asyncio
import uuid

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.exc import OperationalError

from lms_progress.services.completion_ledger import CompletionLedger
from lms_progress.services.errors import (
    ConflictError,
    NotFoundError,
    PersistenceFailure,
    ValidationFailure,
)
from tests.services.conftest import LEARNER_ID, World


def _ledger(world: World) -> CompletionLedger:
    return CompletionLedger(
        world.completions, world.courses, world.learners, clock=lambda: 1_700_000_123
    )


def _completions(result: str) -> float:
    value = REGISTRY.get_sample_value(
        "lesson_completions_total", {"result": result}
    )
    return value or 0.0


def test_record_completion_appends_and_returns_completed_ids(world: World) -> None:
    ledger = _ledger(world)
    first, second, _ = world.lesson_ids

    assert asyncio.run(
        ledger.record_completion(LEARNER_ID, first, world.course.id)
    ) == frozenset({first})
    assert asyncio.run(
        ledger.record_completion(LEARNER_ID, second, world.course.id)
    ) == frozenset({first, second})

    stored = world.completions._store[(LEARNER_ID, first)]
    assert stored.completed_at == 1_700_000_123
    assert stored.course_id == world.course.id


def test_second_completion_conflicts_and_writes_nothing(world: World) -> None:
    ledger = _ledger(world)
    lesson_id = world.lesson_ids[0]
    asyncio.run(ledger.record_completion(LEARNER_ID, lesson_id, world.course.id))
    before = _completions("conflict")

    with pytest.raises(ConflictError) as exc:
        asyncio.run(ledger.record_completion(LEARNER_ID, lesson_id, world.course.id))

    assert exc.value.code == "already_completed"
    assert len(world.completions._store) == 1
    assert _completions("conflict") - before == 1


def test_completions_are_per_learner(world: World) -> None:
    ledger = _ledger(world)
    lesson_id = world.lesson_ids[0]
    asyncio.run(ledger.record_completion(LEARNER_ID, lesson_id, world.course.id))
    assert asyncio.run(
        ledger.record_completion(8, lesson_id, world.course.id)
    ) == frozenset({lesson_id})


def test_unknown_learner_not_found(world: World) -> None:
    with pytest.raises(NotFoundError, match="learner 999"):
        asyncio.run(
            _ledger(world).record_completion(999, world.lesson_ids[0], world.course.id)
        )
    assert world.completions._store == {}


def test_unknown_course_not_found(world: World) -> None:
    with pytest.raises(NotFoundError, match="course"):
        asyncio.run(
            _ledger(world).record_completion(
                LEARNER_ID, world.lesson_ids[0], uuid.uuid4()
            )
        )


def test_lesson_from_another_course_not_found(world: World) -> None:
    other = world.add_course(2)
    with pytest.raises(NotFoundError) as exc:
        asyncio.run(
            _ledger(world).record_completion(
                LEARNER_ID, other.lessons[0].id, world.course.id
            )
        )
    assert exc.value.step == "ledger"


@pytest.mark.parametrize("bad_id", [0, -3])
def test_non_positive_learner_id_rejected(world: World, bad_id: int) -> None:
    with pytest.raises(ValidationFailure):
        asyncio.run(
            _ledger(world).record_completion(
                bad_id, world.lesson_ids[0], world.course.id
            )
        )


def test_race_on_insert_reported_as_conflict(world: World) -> None:
    class RacingRepo(type(world.completions)):
        async def exists(self, learner_id, lesson_id) -> bool:
            return False

        async def add(self, completion) -> None:
            raise ValueError("duplicate key")

    world.completions = RacingRepo()
    with pytest.raises(ConflictError):
        asyncio.run(
            _ledger(world).record_completion(
                LEARNER_ID, world.lesson_ids[0], world.course.id
            )
        )


def test_storage_failure_becomes_persistence_failure(world: World) -> None:
    class DownRepo(type(world.completions)):
        async def add(self, completion) -> None:
            raise OperationalError("INSERT", {}, Exception("connection refused"))

    world.completions = DownRepo()
    before = _completions("error")
    with pytest.raises(PersistenceFailure) as exc:
        asyncio.run(
            _ledger(world).record_completion(
                LEARNER_ID, world.lesson_ids[0], world.course.id
            )
        )
    assert exc.value.step == "ledger"
    assert _completions("error") - before == 1


def test_list_completed_lesson_ids(world: World) -> None:
    ledger = _ledger(world)
    assert asyncio.run(
        ledger.list_completed_lesson_ids(LEARNER_ID, world.course.id)
    ) == frozenset()
    asyncio.run(
        ledger.record_completion(LEARNER_ID, world.lesson_ids[2], world.course.id)
    )
    assert asyncio.run(
        ledger.list_completed_lesson_ids(LEARNER_ID, world.course.id)
    ) == frozenset({world.lesson_ids[2]})
