"""
Embedding Batch Pipeline

Turns a chunk set into EmbeddedChunks with bounded concurrency:

    - chunks are partitioned into fixed-size batches;
    - inside a batch, one provider call per chunk runs concurrently;
    - batch N+1 starts only after every call of batch N has resolved.

Peak in-flight provider calls therefore never exceed ``batch_size``.
A single failing call aborts its batch (siblings are cancelled) and no
later batch is started; there is no partial result and no retry.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence

from repovec.core.errors import EmbeddingProviderError
from repovec.models.schemas import Chunk, EmbeddedChunk
from repovec.services.embeddings import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE: int = 20


class EmbeddingPipeline:
    """
    Batched, fail-fast embedding of chunks.

    Usage::

        pipeline = EmbeddingPipeline(provider, batch_size=20)
        embedded = await pipeline.embed(chunks)
        assert [e.content for e in embedded] == [c.content for c in chunks]

    Args:
        provider: Backend producing one vector per text.
        batch_size: Chunks per batch, i.e. maximum concurrent provider calls.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size ({batch_size}) must be at least 1")
        self._provider = provider
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def dimension(self) -> int:
        """Vector length every EmbeddedChunk is checked against."""
        return self._provider.dimension

    async def embed(self, chunks: Sequence[Chunk]) -> list[EmbeddedChunk]:
        """
        Embed all chunks, preserving input order.

        Raises:
            EmbeddingProviderError: If any chunk fails; nothing is returned.
        """
        embedded: list[EmbeddedChunk] = []
        async for batch in self.iter_batches(chunks):
            embedded.extend(batch)
        return embedded

    async def iter_batches(
        self,
        chunks: Sequence[Chunk],
    ) -> AsyncIterator[list[EmbeddedChunk]]:
        """Yield one embedded batch at a time; the next batch starts on resume."""
        total = (len(chunks) + self._batch_size - 1) // self._batch_size
        for number, start in enumerate(range(0, len(chunks), self._batch_size), 1):
            batch = chunks[start : start + self._batch_size]
            logger.info("Processing batch %d of %d (%d chunks)", number, total, len(batch))
            yield await self._embed_batch(batch)

    async def _embed_batch(self, batch: Sequence[Chunk]) -> list[EmbeddedChunk]:
        tasks = [asyncio.create_task(self._embed_one(chunk)) for chunk in batch]
        try:
            # gather keeps input order regardless of completion order
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    async def _embed_one(self, chunk: Chunk) -> EmbeddedChunk:
        try:
            vector = await self._provider.embed(chunk.content)
        except EmbeddingProviderError:
            logger.error(
                "Embedding failed for chunk %s[%d:%d]",
                chunk.file_path,
                chunk.start_line,
                chunk.end_line,
            )
            raise
        except Exception as exc:
            logger.error("Error generating embedding for chunk from %s: %s", chunk.file_path, exc)
            raise EmbeddingProviderError(
                f"Embedding failed for {chunk.file_path}: {exc}"
            ) from exc

        if len(vector) != self.dimension:
            raise EmbeddingProviderError(
                f"Provider returned {len(vector)} dimensions for {chunk.file_path}, "
                f"expected {self.dimension}"
            )
        return EmbeddedChunk.from_chunk(chunk, vector)
