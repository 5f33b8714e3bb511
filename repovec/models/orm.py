"""
Database Models

SQLAlchemy 2.0 ORM models for repository and file storage.
Uses pgvector for the optional per-file embedding column.

Tables:
    repositories — One row per normalized GitHub URL with processing status.
    files        — Raw files after fetch, or embedded chunks after the
                   embedding phase (full replace on every reprocess).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from repovec.core.config import settings
from repovec.models.status import RepositoryStatus

# Pipeline-wide vector length; must match the configured provider's output
EMBEDDING_DIMENSION: int = settings.EMBEDDING_DIMENSION


class Base(DeclarativeBase):
    """Declarative base class for all SQLAlchemy ORM models."""


class RepositoryRecord(Base):
    """
    Persistent storage for submitted repositories.

    Attributes:
        id: UUID primary key (generated Python-side).
        url: Normalized URL (lower-cased, no trailing slash), unique.
        name: Display name, not unique.
        processed_at: Start of the most recent (re)process.
        status: Lifecycle state, stored as its string value.
        files: Related FileRecord instances (cascade delete).
    """

    __tablename__ = "repositories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    url: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    status: Mapped[RepositoryStatus] = mapped_column(
        Enum(
            RepositoryStatus,
            native_enum=False,
            length=32,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=RepositoryStatus.PENDING,
    )

    files: Mapped[list[FileRecord]] = relationship(
        back_populates="repository",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<RepositoryRecord(id={self.id!s:.8}, url='{self.url}', status={self.status})>"


class FileRecord(Base):
    """
    Persistent storage for repository files and embedded chunks.

    Attributes:
        id: UUID primary key.
        repository_id: Owning repository (CASCADE delete).
        path: Relative, slash-separated path inside the repository.
        content: File text, or chunk text once embedded.
        file_metadata: JSONB blob (size, extension, last_modified, line range).
        embedding: Vector (NULL until the embedding phase writes the row).
        created_at: Insertion timestamp (server-side default).
    """

    __tablename__ = "files"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    repository_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    path: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    file_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
    )
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSION),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    repository: Mapped[RepositoryRecord] = relationship(back_populates="files")

    def __repr__(self) -> str:
        return (
            f"<FileRecord(id={self.id!s:.8}, "
            f"repo={self.repository_id!s:.8}, path='{self.path}')>"
        )
