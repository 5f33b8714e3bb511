"""
Embedding Providers

Backends that turn one text into one fixed-length float vector.

    - OpenAIEmbeddingProvider: OpenAI API (text-embedding-3-large, 3072 dims).
    - LocalEmbeddingProvider: sentence-transformers model run in a thread.
    - MockEmbeddingProvider: deterministic pseudo-random vectors for local
      development and tests (no API costs, no network dependency).

``build_embedding_provider`` picks one from settings. Like the rest of the
pipeline, a missing or ``mock`` OPENAI_API_KEY selects the mock backend.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import random
from typing import Any, Protocol

import openai
from openai import AsyncOpenAI

from repovec.core.config import LOCAL_EMBEDDING_DIMENSION, LOCAL_EMBEDDING_MODEL, Settings
from repovec.core.errors import EmbeddingProviderError

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL: str = "text-embedding-3-large"


class EmbeddingProvider(Protocol):
    @property
    def dimension(self) -> int: ...

    async def embed(self, text: str) -> list[float]:
        """
        Raises:
            EmbeddingProviderError: On rate limit, invalid input or transport failure.
        """
        ...


class OpenAIEmbeddingProvider:
    """
    Embedding provider backed by the OpenAI embeddings endpoint.

    Usage::

        provider = OpenAIEmbeddingProvider(api_key="sk-...")
        vector = await provider.embed("def main(): ...")
        assert len(vector) == provider.dimension
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_OPENAI_MODEL,
        dimension: int = 3072,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key)
        self._model = model
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed(self, text: str) -> list[float]:
        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=text,
                encoding_format="float",
            )
        except openai.OpenAIError as exc:
            raise EmbeddingProviderError(
                f"OpenAI embedding request failed ({type(exc).__name__}): {exc}"
            ) from exc
        return list(response.data[0].embedding)


class LocalEmbeddingProvider:
    """
    Embedding provider backed by a local sentence-transformers model.

    The model is loaded lazily on first use. Inference is CPU-bound, so it
    runs in a thread pool to keep the event loop responsive.
    """

    def __init__(
        self,
        model_name: str = LOCAL_EMBEDDING_MODEL,
        dimension: int = LOCAL_EMBEDDING_DIMENSION,
    ) -> None:
        self._model_name = model_name
        self._dimension = dimension
        self._model: Any = None

    @property
    def dimension(self) -> int:
        return self._dimension

    def _get_model(self) -> Any:
        """
        Get or lazily initialize the sentence-transformers model.

        The import is deferred so that ``sentence_transformers`` is only
        needed when this provider is selected.
        """
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info("Loading embedding model: %s ...", self._model_name)
            self._model = SentenceTransformer(self._model_name)
            logger.info("Model loaded (dim=%d)", self._dimension)
        return self._model

    def _encode_sync(self, text: str) -> list[float]:
        """Always call via ``asyncio.to_thread``."""
        vector = self._get_model().encode([text], normalize_embeddings=True)[0]
        # numpy ndarray → native Python list for pgvector compatibility
        return [float(x) for x in vector]

    async def embed(self, text: str) -> list[float]:
        try:
            return await asyncio.to_thread(self._encode_sync, text)
        except Exception as exc:
            raise EmbeddingProviderError(f"Local embedding failed: {exc}") from exc


class MockEmbeddingProvider:
    """Pseudo-random vectors seeded by the text, so equal inputs get equal vectors."""

    def __init__(self, dimension: int = 3072) -> None:
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed(self, text: str) -> list[float]:
        seed = int.from_bytes(hashlib.sha256(text.encode()).digest()[:8], "big")
        rng = random.Random(seed)
        return [rng.random() for _ in range(self._dimension)]


def build_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Select the embedding backend configured by EMBEDDING_PROVIDER / OPENAI_API_KEY."""
    if settings.EMBEDDING_PROVIDER == "local":
        return LocalEmbeddingProvider(
            model_name=settings.EMBEDDING_MODEL,
            dimension=settings.EMBEDDING_DIMENSION,
        )

    api_key = settings.OPENAI_API_KEY
    if not api_key or api_key.lower() == "mock":
        logger.warning("OPENAI_API_KEY missing or 'mock': using mock embeddings")
        return MockEmbeddingProvider(dimension=settings.EMBEDDING_DIMENSION)

    return OpenAIEmbeddingProvider(
        api_key=api_key,
        model=settings.EMBEDDING_MODEL,
        dimension=settings.EMBEDDING_DIMENSION,
    )
