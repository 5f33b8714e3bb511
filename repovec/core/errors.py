"""
Error Kinds

Exception hierarchy shared by the chunking, embedding and lifecycle
services. The API layer maps each kind to an HTTP status; the lifecycle
controller converts phase failures into a ``failed`` repository status.
"""

from __future__ import annotations

from uuid import UUID


class RepovecError(Exception):
    """Base class for all domain errors."""


class ValidationError(RepovecError):
    """Malformed repository locator or name."""


class NotFoundError(RepovecError):
    """Unknown repository id."""

    def __init__(self, repository_id: UUID) -> None:
        super().__init__(f"Repository {repository_id} not found")
        self.repository_id = repository_id


class ConflictError(RepovecError):
    """Request conflicts with the repository's current state."""


class InvalidStatusTransitionError(ConflictError):
    """A status change not allowed by the repository state machine."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Illegal status transition: {current} -> {target}")
        self.current = current
        self.target = target


class UpstreamFetchError(RepovecError):
    """The file source is unreachable, unauthorized or returned garbage."""


class EmbeddingProviderError(RepovecError):
    """Vector generation failed for one or more chunks."""


class PersistenceError(RepovecError):
    """A datastore read or write failed."""


class CacheMissError(RepovecError):
    """Embedding was requested for a repository with no chunked files."""

    def __init__(self, repository_id: UUID) -> None:
        super().__init__(f"No processed files found for repository {repository_id}")
        self.repository_id = repository_id
