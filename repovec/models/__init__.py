"""Models package — Pydantic schemas, status enum and SQLAlchemy ORM."""

from repovec.models.orm import EMBEDDING_DIMENSION, Base, FileRecord, RepositoryRecord
from repovec.models.schemas import (
    Chunk,
    EmbeddedChunk,
    FileCreate,
    FileRead,
    RepositoryRead,
    SourceFile,
)
from repovec.models.status import RepositoryStatus

__all__ = [
    # Pydantic schemas (processing pipeline)
    "Chunk",
    "EmbeddedChunk",
    "FileCreate",
    "FileRead",
    "RepositoryRead",
    "SourceFile",
    # State machine
    "RepositoryStatus",
    # SQLAlchemy ORM (persistence layer)
    "Base",
    "EMBEDDING_DIMENSION",
    "FileRecord",
    "RepositoryRecord",
]
