from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated learner extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system.  Every
    progress operation is scoped to `learner_id`; the service never takes
    a learner id from the request body or path.
    """

    learner_id: int
    roles: frozenset[str]
