"""
Repository Status

Processing state machine for a repository. Values are persisted verbatim
in the ``repositories.status`` column and surfaced by the API.

    pending ──► ready_for_embedding ──► completed
       │                │
       └──────► failed ◄┘

Any state may go back to ``pending`` when the same URL is resubmitted.
"""

from __future__ import annotations

from enum import StrEnum


class RepositoryStatus(StrEnum):
    PENDING = "pending"
    READY_FOR_EMBEDDING = "ready_for_embedding"
    COMPLETED = "completed"
    FAILED = "failed"

    def can_transition_to(self, target: RepositoryStatus) -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[RepositoryStatus, frozenset[RepositoryStatus]] = {
    RepositoryStatus.PENDING: frozenset(
        {
            RepositoryStatus.PENDING,
            RepositoryStatus.READY_FOR_EMBEDDING,
            RepositoryStatus.FAILED,
        }
    ),
    RepositoryStatus.READY_FOR_EMBEDDING: frozenset(
        {
            RepositoryStatus.PENDING,
            RepositoryStatus.COMPLETED,
            RepositoryStatus.FAILED,
        }
    ),
    RepositoryStatus.COMPLETED: frozenset({RepositoryStatus.PENDING}),
    RepositoryStatus.FAILED: frozenset({RepositoryStatus.PENDING}),
}
