"""
SQL Storage

Data access layer backed by PostgreSQL via async SQLAlchemy.

Each operation opens its own session from the injected factory, so the
same instance is safe to use from request handlers and from background
tasks that outlive the request session. ``SQLAlchemyError`` never leaks:
it is logged and re-raised as ``PersistenceError``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repovec.core.errors import NotFoundError, PersistenceError
from repovec.models.orm import FileRecord, RepositoryRecord
from repovec.models.schemas import FileCreate, FileRead, RepositoryRead
from repovec.models.status import RepositoryStatus

logger = logging.getLogger(__name__)


class SqlStorage:
    """
    ``Storage`` implementation over the ``repositories`` and ``files`` tables.

    Usage::

        storage = SqlStorage(get_session_factory())
        repo = await storage.create_repository(url, name, datetime.now(UTC))
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Datastore operation '%s' failed: %s", action, exc)
            raise PersistenceError(f"{action} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    async def create_repository(
        self,
        url: str,
        name: str,
        processed_at: datetime,
    ) -> RepositoryRead:
        record = RepositoryRecord(
            url=url,
            name=name,
            processed_at=processed_at,
            status=RepositoryStatus.PENDING,
        )
        async with self._session("create_repository") as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
        logger.info("Created repository %s (%s)", record.id, url)
        return RepositoryRead.model_validate(record)

    async def get_repository(self, repository_id: UUID) -> RepositoryRead | None:
        async with self._session("get_repository") as session:
            record = await session.get(RepositoryRecord, repository_id)
        return RepositoryRead.model_validate(record) if record else None

    async def get_repository_by_url(self, url: str) -> RepositoryRead | None:
        stmt = select(RepositoryRecord).where(RepositoryRecord.url == url)
        async with self._session("get_repository_by_url") as session:
            result = await session.execute(stmt)
            record = result.scalars().first()
        return RepositoryRead.model_validate(record) if record else None

    async def update_repository(
        self,
        repository_id: UUID,
        *,
        name: str | None = None,
        status: RepositoryStatus | None = None,
        processed_at: datetime | None = None,
    ) -> RepositoryRead:
        async with self._session("update_repository") as session:
            record = await session.get(RepositoryRecord, repository_id)
            if record is None:
                raise NotFoundError(repository_id)
            if name is not None:
                record.name = name
            if status is not None:
                record.status = status
            if processed_at is not None:
                record.processed_at = processed_at
            await session.commit()
            await session.refresh(record)
        return RepositoryRead.model_validate(record)

    async def list_repositories(self) -> list[RepositoryRead]:
        stmt = select(RepositoryRecord).order_by(RepositoryRecord.processed_at.desc())
        async with self._session("list_repositories") as session:
            result = await session.execute(stmt)
            records = result.scalars().all()
        return [RepositoryRead.model_validate(r) for r in records]

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def delete_files_by_repository(self, repository_id: UUID) -> int:
        stmt = delete(FileRecord).where(FileRecord.repository_id == repository_id)
        async with self._session("delete_files_by_repository") as session:
            result = await session.execute(stmt)
            await session.commit()
        deleted = result.rowcount or 0
        logger.info("Deleted %d files of repository %s", deleted, repository_id)
        return deleted

    async def create_file(self, file: FileCreate) -> FileRead:
        record = self._to_record(file)
        async with self._session("create_file") as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
        return FileRead.model_validate(record)

    async def create_files(self, files: Sequence[FileCreate]) -> int:
        if not files:
            return 0
        records = [self._to_record(f) for f in files]
        # All rows in one transaction: a failed batch leaves nothing behind
        async with self._session("create_files") as session:
            session.add_all(records)
            await session.commit()
        return len(records)

    async def get_files_by_repository(self, repository_id: UUID) -> list[FileRead]:
        stmt = (
            select(FileRecord)
            .where(FileRecord.repository_id == repository_id)
            .order_by(FileRecord.created_at, FileRecord.path)
        )
        async with self._session("get_files_by_repository") as session:
            result = await session.execute(stmt)
            records = result.scalars().all()
        return [FileRead.model_validate(r) for r in records]

    @staticmethod
    def _to_record(file: FileCreate) -> FileRecord:
        return FileRecord(
            repository_id=file.repository_id,
            path=file.path,
            content=file.content,
            file_metadata=file.metadata,
            embedding=file.embedding,
        )
