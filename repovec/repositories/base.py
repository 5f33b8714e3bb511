"""
Storage Protocol

Datastore operations consumed by the lifecycle controller. Implemented by
``SqlStorage`` (PostgreSQL + pgvector) and ``MemoryStorage`` (in-process).

All methods return Pydantic read models, never ORM instances, so callers
can hold results after the underlying session is closed.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol
from uuid import UUID

from repovec.models.schemas import FileCreate, FileRead, RepositoryRead
from repovec.models.status import RepositoryStatus


class Storage(Protocol):
    async def create_repository(
        self,
        url: str,
        name: str,
        processed_at: datetime,
    ) -> RepositoryRead:
        """Insert a repository in ``pending``; ``url`` must already be normalized."""
        ...

    async def get_repository(self, repository_id: UUID) -> RepositoryRead | None: ...

    async def get_repository_by_url(self, url: str) -> RepositoryRead | None: ...

    async def update_repository(
        self,
        repository_id: UUID,
        *,
        name: str | None = None,
        status: RepositoryStatus | None = None,
        processed_at: datetime | None = None,
    ) -> RepositoryRead:
        """
        Update the given fields in place.

        Raises:
            NotFoundError: If no repository has this id.
        """
        ...

    async def list_repositories(self) -> list[RepositoryRead]: ...

    async def delete_files_by_repository(self, repository_id: UUID) -> int:
        """Delete every file row of a repository; returns the number removed."""
        ...

    async def create_file(self, file: FileCreate) -> FileRead: ...

    async def create_files(self, files: Sequence[FileCreate]) -> int:
        """Insert several file rows in one write; returns the number inserted."""
        ...

    async def get_files_by_repository(self, repository_id: UUID) -> list[FileRead]: ...
