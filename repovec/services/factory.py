"""
Service wiring

Builds a ``RepositoryLifecycle`` from settings. Shared by the FastAPI
lifespan and the operator script.
"""

from __future__ import annotations

from repovec.core.config import Settings
from repovec.core.database import get_session_factory
from repovec.repositories.base import Storage
from repovec.repositories.sql import SqlStorage
from repovec.services.chunking import FileChunker
from repovec.services.embeddings import build_embedding_provider
from repovec.services.github import GitHubFileSource
from repovec.services.lifecycle import RepositoryLifecycle
from repovec.services.pipeline import EmbeddingPipeline


def build_lifecycle(settings: Settings, storage: Storage | None = None) -> RepositoryLifecycle:
    """Assemble the controller; defaults to PostgreSQL storage."""
    return RepositoryLifecycle(
        storage=storage if storage is not None else SqlStorage(get_session_factory()),
        source=GitHubFileSource(
            token=settings.GITHUB_TOKEN,
            graphql_url=settings.GITHUB_GRAPHQL_URL,
            timeout=settings.GITHUB_TIMEOUT,
        ),
        chunker=FileChunker(
            chunk_size=settings.CHUNK_SIZE,
            chunk_overlap=settings.CHUNK_OVERLAP,
        ),
        pipeline=EmbeddingPipeline(
            build_embedding_provider(settings),
            batch_size=settings.EMBEDDING_BATCH_SIZE,
        ),
    )
