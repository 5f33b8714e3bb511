"""
Processing Cache

Hand-off between the fetch+chunk phase and the embedding phase: holds the
latest chunk set per repository for the lifetime of the process.

A missing entry means "not chunked yet" (or lost to a restart) and must
never be papered over with stale data; the embedding phase turns it into
a ``CacheMissError``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from uuid import UUID

from repovec.models.schemas import Chunk

logger = logging.getLogger(__name__)


class ProcessingCache:
    """
    Lock-guarded map of repository id → chunk tuple. Last write wins.

    One instance is owned by each ``RepositoryLifecycle``; there is no
    module-level cache.
    """

    def __init__(self) -> None:
        self._entries: dict[UUID, tuple[Chunk, ...]] = {}
        self._lock = asyncio.Lock()

    async def store(self, repository_id: UUID, chunks: Iterable[Chunk]) -> None:
        entry = tuple(chunks)
        async with self._lock:
            self._entries[repository_id] = entry
        logger.info("Cached %d chunks for repository %s", len(entry), repository_id)

    async def get(self, repository_id: UUID) -> tuple[Chunk, ...] | None:
        async with self._lock:
            return self._entries.get(repository_id)

    async def clear(self, repository_id: UUID) -> None:
        async with self._lock:
            removed = self._entries.pop(repository_id, None)
        if removed is not None:
            logger.info("Cleared cached chunks for repository %s", repository_id)
