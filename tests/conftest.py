from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from lms_progress.api.dependencies import reset_sample_data
from lms_progress.main import app
from lms_progress.services import token_service
from lms_progress.services.cache import cache_service

# Ensure repo root is on sys.path so `import lms_progress` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_sample_state() -> None:
    """Reseed learners and courses; drop enrollments and completions."""
    reset_sample_data()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_dependency_overrides() -> None:
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    learner_id: int | str = 1,
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=str(learner_id), roles=roles)


def auth(learner_id: int | str = 1) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(learner_id)}"}


@pytest.fixture
def token() -> str:
    """Token for seeded learner 1."""
    return mint_token()


class FakeClock:
    """Millisecond clock the test advances by hand."""

    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms
