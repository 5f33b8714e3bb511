"""
Pipeline Schemas

Pydantic models for the data flowing through the processing pipeline:
fetched source files, transient chunks, embedded chunks, and the read
models returned by the storage layer.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from repovec.models.status import RepositoryStatus


class SourceFile(BaseModel):
    """A file as returned by the file source, before persistence."""

    path: str = Field(min_length=1, description="Relative, slash-separated path")
    content: str = Field(description="Full text content")
    size: int = Field(ge=0, description="Size in bytes as reported upstream")
    extension: str = Field(default="", description="Text after the last dot")
    last_modified: str = Field(description="ISO-8601 timestamp of the fetch")

    def metadata(self) -> dict[str, Any]:
        return {
            "size": self.size,
            "extension": self.extension,
            "last_modified": self.last_modified,
        }


class Chunk(BaseModel):
    """
    A segment of a file for embedding.

    Line numbers are 0-based and half-open: the chunk holds lines
    ``[start_line, end_line)`` of the source file, i.e. 1-based lines
    ``start_line + 1`` through ``end_line`` inclusive. The first chunk of
    a file therefore has ``start_line == 0`` and the last one ends at the
    file's line count.

    Attributes:
        content: Chunk text, newline-terminated lines.
        file_path: Path of the owning file (weak reference, not a FK).
        start_line: Index of the first line covered.
        end_line: Index one past the last line covered.
        original_metadata: Copy of the owning file's metadata.
    """

    model_config = ConfigDict(frozen=True)

    content: str = Field(min_length=1)
    file_path: str
    start_line: int = Field(ge=0)
    end_line: int = Field(ge=0)
    original_metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_line_range(self) -> Chunk:
        if self.end_line < self.start_line:
            raise ValueError(
                f"end_line ({self.end_line}) precedes start_line ({self.start_line})"
            )
        return self

    def row_metadata(self) -> dict[str, Any]:
        """Metadata persisted with the embedded row: file info plus line range."""
        return {
            **self.original_metadata,
            "start_line": self.start_line,
            "end_line": self.end_line,
        }


class EmbeddedChunk(Chunk):
    """A Chunk annotated with its embedding vector."""

    embedding: list[float]

    @classmethod
    def from_chunk(cls, chunk: Chunk, embedding: list[float]) -> EmbeddedChunk:
        return cls(**chunk.model_dump(), embedding=embedding)


class RepositoryRead(BaseModel):
    """Repository row as exposed by the storage layer and the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    url: str
    name: str
    processed_at: datetime
    status: RepositoryStatus


class FileCreate(BaseModel):
    """Input for a new file row."""

    repository_id: UUID
    path: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    embedding: list[float] | None = None


class FileRead(BaseModel):
    """File row as exposed by the storage layer and the API."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    repository_id: UUID
    path: str
    content: str
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias="file_metadata",
    )
    embedding: list[float] | None = None

    @field_validator("embedding", mode="before")
    @classmethod
    def _vector_to_list(cls, value: Any) -> Any:
        # pgvector hands back numpy arrays
        if value is not None and not isinstance(value, list):
            return [float(x) for x in value]
        return value
