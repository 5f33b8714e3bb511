"""
Repository Lifecycle Controller

Coordinates the processing of one repository and owns its status:

    submit ──► fetch_and_chunk ──► (cache hand-off) ──► embed
    pending    ready_for_embedding                      completed
                    failed ◄──────── any phase error ────┘

The two phases are decoupled: ``fetch_and_chunk`` leaves the chunk set in
the ``ProcessingCache`` and ``embed`` must be triggered explicitly. Every
(re)process is a full replace: a repository's file rows are deleted
before anything new is written, so an interrupted run leaves no rows
rather than stale ones. Nothing is retried here; operators resubmit.

Phases of one repository never overlap: submit, fetch_and_chunk and embed
all hold that repository's lock, so a resubmission waits for an in-flight
fetch and a second embed trigger waits for the first (then finds the
hand-off consumed). Different repositories proceed concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Hashable
from datetime import UTC, datetime
from uuid import UUID

from repovec.core.errors import (
    CacheMissError,
    InvalidStatusTransitionError,
    NotFoundError,
    RepovecError,
    ValidationError,
)
from repovec.models.schemas import FileCreate, FileRead, RepositoryRead
from repovec.models.status import RepositoryStatus
from repovec.repositories.base import Storage
from repovec.services.cache import ProcessingCache
from repovec.services.chunking import FileChunker
from repovec.services.github import FileSource, normalize_url, parse_repository_url
from repovec.services.pipeline import EmbeddingPipeline

logger = logging.getLogger(__name__)


class RepositoryLifecycle:
    """
    Orchestrates fetch → chunk → embed → persist for repositories.

    One instance should live for the whole process: it owns the
    ``ProcessingCache`` that hands chunks from one phase to the next.

    Usage::

        lifecycle = RepositoryLifecycle(storage, source, FileChunker(), pipeline)
        repo = await lifecycle.submit("https://github.com/a/b", "b")
        await lifecycle.fetch_and_chunk(repo.id)
        await lifecycle.embed(repo.id)
    """

    def __init__(
        self,
        storage: Storage,
        source: FileSource,
        chunker: FileChunker,
        pipeline: EmbeddingPipeline,
        cache: ProcessingCache | None = None,
    ) -> None:
        self._storage = storage
        self._source = source
        self._chunker = chunker
        self._pipeline = pipeline
        self._cache = cache if cache is not None else ProcessingCache()
        # Keyed by repository id, or by normalized URL while registering
        self._locks: defaultdict[Hashable, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def cache(self) -> ProcessingCache:
        return self._cache

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, url: str, name: str) -> RepositoryRead:
        """
        Register a repository, or reset a known one for reprocessing.

        A known URL (after normalization) keeps its id: its files and
        cached chunks are dropped first, then name, ``processed_at`` and
        status are reset.

        Raises:
            ValidationError: Malformed URL or blank name.
        """
        name = name.strip()
        if not name:
            raise ValidationError("Repository name must not be blank")
        parse_repository_url(url)
        normalized = normalize_url(url)

        async with self._locks[normalized]:
            existing = await self._storage.get_repository_by_url(normalized)
            if existing is None:
                repository = await self._storage.create_repository(
                    normalized, name, datetime.now(UTC)
                )
                logger.info("Registered repository %s (%s)", repository.id, normalized)
                return repository

            # Waits for any phase still running on this repository
            async with self._locks[existing.id]:
                return await self._reset(existing.id, name, normalized)

    async def _reset(self, repository_id: UUID, name: str, normalized: str) -> RepositoryRead:
        current = await self.get_repository(repository_id)
        self._check_transition(current, RepositoryStatus.PENDING)
        # Wipe before anything new is written
        deleted = await self._storage.delete_files_by_repository(repository_id)
        await self._cache.clear(repository_id)
        repository = await self._storage.update_repository(
            repository_id,
            name=name,
            status=RepositoryStatus.PENDING,
            processed_at=datetime.now(UTC),
        )
        logger.info(
            "Resubmitted repository %s (%s): removed %d stale files",
            repository.id,
            normalized,
            deleted,
        )
        return repository

    async def process(self, url: str, name: str) -> RepositoryRead:
        """Submit and run the fetch+chunk phase; returns the updated repository."""
        repository = await self.submit(url, name)
        await self.fetch_and_chunk(repository.id)
        return await self.get_repository(repository.id)

    # ------------------------------------------------------------------
    # Phase 1: fetch + chunk
    # ------------------------------------------------------------------

    async def fetch_and_chunk(self, repository_id: UUID) -> RepositoryStatus:
        """
        Fetch files, persist them, chunk them into the cache.

        Failures are logged and recorded as ``failed``; they are not
        raised, since this phase usually runs as a background task.

        Returns:
            The resulting status (``ready_for_embedding`` or ``failed``).

        Raises:
            NotFoundError: Unknown repository id.
            InvalidStatusTransitionError: Repository is not ``pending``.
        """
        async with self._locks[repository_id]:
            return await self._fetch_and_chunk(repository_id)

    async def _fetch_and_chunk(self, repository_id: UUID) -> RepositoryStatus:
        repository = await self.get_repository(repository_id)
        self._check_transition(repository, RepositoryStatus.READY_FOR_EMBEDDING)
        logger.info("Fetching files for repository %s (%s)", repository_id, repository.url)

        try:
            files = await self._source.fetch_files(repository.url)
            for source_file in files:
                await self._storage.create_file(
                    FileCreate(
                        repository_id=repository_id,
                        path=source_file.path,
                        content=source_file.content,
                        metadata=source_file.metadata(),
                    )
                )

            persisted = await self._storage.get_files_by_repository(repository_id)
            chunks = self._chunker.split_many(persisted)
            await self._cache.store(repository_id, chunks)
            await self._transition(repository_id, RepositoryStatus.READY_FOR_EMBEDDING)
        except Exception:
            logger.exception("Fetch+chunk failed for repository %s", repository_id)
            await self._cache.clear(repository_id)
            await self._mark_failed(repository_id)
            return RepositoryStatus.FAILED

        logger.info(
            "Repository %s ready for embedding: %d files, %d chunks",
            repository_id,
            len(persisted),
            len(chunks),
        )
        return RepositoryStatus.READY_FOR_EMBEDDING

    # ------------------------------------------------------------------
    # Phase 2: embed
    # ------------------------------------------------------------------

    async def embed(self, repository_id: UUID) -> int:
        """
        Embed the cached chunks and replace the repository's file rows.

        Returns:
            Number of embedded file rows written.

        Raises:
            NotFoundError: Unknown repository id.
            CacheMissError: Nothing cached; status is left untouched.
            InvalidStatusTransitionError: Not ``ready_for_embedding``;
                status is left untouched.
            EmbeddingProviderError, PersistenceError: After the status
                has been set to ``failed``.
        """
        async with self._locks[repository_id]:
            return await self._embed(repository_id)

    async def _embed(self, repository_id: UUID) -> int:
        repository = await self.get_repository(repository_id)
        chunks = await self._cache.get(repository_id)
        if chunks is None:
            raise CacheMissError(repository_id)
        self._check_transition(repository, RepositoryStatus.COMPLETED)

        logger.info(
            "Starting embedding generation for repository %s (%d chunks)",
            repository_id,
            len(chunks),
        )
        try:
            await self._storage.delete_files_by_repository(repository_id)
            embedded = await self._pipeline.embed(chunks)
            written = await self._storage.create_files(
                [
                    FileCreate(
                        repository_id=repository_id,
                        path=chunk.file_path,
                        content=chunk.content,
                        metadata=chunk.row_metadata(),
                        embedding=chunk.embedding,
                    )
                    for chunk in embedded
                ]
            )
            await self._transition(repository_id, RepositoryStatus.COMPLETED)
        except Exception:
            logger.exception("Error processing embeddings for repository %s", repository_id)
            await self._mark_failed(repository_id)
            raise

        await self._cache.clear(repository_id)
        logger.info("Stored %d embedded chunks for repository %s", written, repository_id)
        return written

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_repository(self, repository_id: UUID) -> RepositoryRead:
        repository = await self._storage.get_repository(repository_id)
        if repository is None:
            raise NotFoundError(repository_id)
        return repository

    async def list_repositories(self) -> list[RepositoryRead]:
        return await self._storage.list_repositories()

    async def list_files(self, repository_id: UUID) -> list[FileRead]:
        await self.get_repository(repository_id)
        return await self._storage.get_files_by_repository(repository_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_transition(repository: RepositoryRead, target: RepositoryStatus) -> None:
        if not repository.status.can_transition_to(target):
            raise InvalidStatusTransitionError(repository.status, target)

    async def _transition(self, repository_id: UUID, target: RepositoryStatus) -> None:
        """Re-read the current status and move to ``target`` if the table allows it."""
        current = await self.get_repository(repository_id)
        self._check_transition(current, target)
        await self._storage.update_repository(repository_id, status=target)
        logger.info("Repository %s: %s -> %s", repository_id, current.status, target)

    async def _mark_failed(self, repository_id: UUID) -> None:
        """Record ``failed`` without masking the error that caused it."""
        try:
            await self._transition(repository_id, RepositoryStatus.FAILED)
        except RepovecError:
            logger.exception("Could not mark repository %s as failed", repository_id)
