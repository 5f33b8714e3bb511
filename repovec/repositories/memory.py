"""
In-Memory Storage

Process-local ``Storage`` implementation. Used by the test-suite and by
``scripts/process_repository.py --memory`` for runs without PostgreSQL.
Nothing survives a restart.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID, uuid4

from repovec.core.errors import NotFoundError, PersistenceError
from repovec.models.schemas import FileCreate, FileRead, RepositoryRead
from repovec.models.status import RepositoryStatus


class MemoryStorage:
    """
    Dict-backed storage honouring the same URL uniqueness as the SQL table.

    Methods never await, so each one runs atomically on the event loop.
    Returned models are copies; mutating them does not touch stored state.
    """

    def __init__(self) -> None:
        self._repositories: dict[UUID, RepositoryRead] = {}
        self._files: dict[UUID, FileRead] = {}

    async def create_repository(
        self,
        url: str,
        name: str,
        processed_at: datetime,
    ) -> RepositoryRead:
        if any(r.url == url for r in self._repositories.values()):
            raise PersistenceError(f"Duplicate repository url: {url}")
        repository = RepositoryRead(
            id=uuid4(),
            url=url,
            name=name,
            processed_at=processed_at,
            status=RepositoryStatus.PENDING,
        )
        self._repositories[repository.id] = repository
        return repository.model_copy()

    async def get_repository(self, repository_id: UUID) -> RepositoryRead | None:
        repository = self._repositories.get(repository_id)
        return repository.model_copy() if repository else None

    async def get_repository_by_url(self, url: str) -> RepositoryRead | None:
        for repository in self._repositories.values():
            if repository.url == url:
                return repository.model_copy()
        return None

    async def update_repository(
        self,
        repository_id: UUID,
        *,
        name: str | None = None,
        status: RepositoryStatus | None = None,
        processed_at: datetime | None = None,
    ) -> RepositoryRead:
        current = self._repositories.get(repository_id)
        if current is None:
            raise NotFoundError(repository_id)
        changes = {
            key: value
            for key, value in (
                ("name", name),
                ("status", status),
                ("processed_at", processed_at),
            )
            if value is not None
        }
        updated = current.model_copy(update=changes)
        self._repositories[repository_id] = updated
        return updated.model_copy()

    async def list_repositories(self) -> list[RepositoryRead]:
        return sorted(
            (r.model_copy() for r in self._repositories.values()),
            key=lambda r: r.processed_at,
            reverse=True,
        )

    async def delete_files_by_repository(self, repository_id: UUID) -> int:
        doomed = [
            file_id
            for file_id, file in self._files.items()
            if file.repository_id == repository_id
        ]
        for file_id in doomed:
            del self._files[file_id]
        return len(doomed)

    async def create_file(self, file: FileCreate) -> FileRead:
        if file.repository_id not in self._repositories:
            raise PersistenceError(f"Unknown repository {file.repository_id}")
        row = FileRead(
            id=uuid4(),
            repository_id=file.repository_id,
            path=file.path,
            content=file.content,
            metadata=dict(file.metadata),
            embedding=list(file.embedding) if file.embedding is not None else None,
        )
        self._files[row.id] = row
        return row.model_copy(deep=True)

    async def create_files(self, files: Sequence[FileCreate]) -> int:
        # All-or-nothing, like the SQL transaction
        unknown = {f.repository_id for f in files} - self._repositories.keys()
        if unknown:
            raise PersistenceError(f"Unknown repositories: {sorted(map(str, unknown))}")
        for file in files:
            await self.create_file(file)
        return len(files)

    async def get_files_by_repository(self, repository_id: UUID) -> list[FileRead]:
        return [
            file.model_copy(deep=True)
            for file in self._files.values()
            if file.repository_id == repository_id
        ]
