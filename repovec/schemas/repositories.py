"""
Repository API Schemas

Pydantic models for the repository endpoints' request/response cycle.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from repovec.models.schemas import RepositoryRead


class RepositoryCreate(BaseModel):
    """Request body for submitting (or resubmitting) a repository."""

    url: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="GitHub repository URL, e.g. https://github.com/owner/name",
    )
    name: str = Field(..., min_length=1, max_length=200, description="Display name")


class EmbeddingResponse(BaseModel):
    """Response for a completed embedding run."""

    repository: RepositoryRead
    files_count: int = Field(description="Number of embedded file rows written")
