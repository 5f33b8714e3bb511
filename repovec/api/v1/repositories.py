"""
Repository API Router

HTTP endpoints for submitting repositories and driving their processing.

Endpoints:
    POST /                 — Submit a repository (fetch+chunk runs in background, 202).
    GET  /                 — List repositories.
    GET  /{id}             — Repository with its current status.
    GET  /{id}/files       — Files (raw, or embedded chunks once completed).
    POST /{id}/embeddings  — Run the embedding phase and wait for it.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response

from repovec.core.errors import (
    CacheMissError,
    ConflictError,
    EmbeddingProviderError,
    NotFoundError,
    PersistenceError,
    RepovecError,
    UpstreamFetchError,
    ValidationError,
)
from repovec.models.schemas import FileRead, RepositoryRead
from repovec.schemas.repositories import EmbeddingResponse, RepositoryCreate
from repovec.services.lifecycle import RepositoryLifecycle

logger = logging.getLogger(__name__)

router = APIRouter()

# First match wins: subclasses before their bases
_STATUS_CODES: tuple[tuple[type[RepovecError], int], ...] = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (CacheMissError, 409),
    (ConflictError, 409),
    (EmbeddingProviderError, 502),
    (UpstreamFetchError, 502),
    (PersistenceError, 503),
)


def _to_http(exc: RepovecError) -> HTTPException:
    for kind, status_code in _STATUS_CODES:
        if isinstance(exc, kind):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_lifecycle(request: Request) -> RepositoryLifecycle:
    """FastAPI dependency — the process-wide lifecycle built at startup."""
    return request.app.state.lifecycle


# ---------------------------------------------------------------------------
# Background task
# ---------------------------------------------------------------------------


async def _run_fetch_and_chunk(lifecycle: RepositoryLifecycle, repository_id: UUID) -> None:
    """
    Background task for the fetch+chunk phase.

    Phase failures are already recorded as ``failed`` by the lifecycle;
    only errors that prevent the phase from starting reach this handler.
    """
    try:
        await lifecycle.fetch_and_chunk(repository_id)
    except RepovecError:
        logger.exception("Fetch+chunk could not start for repository %s", repository_id)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/",
    response_model=RepositoryRead,
    status_code=202,
    summary="Submit a repository for processing",
)
async def submit_repository(
    body: RepositoryCreate,
    background_tasks: BackgroundTasks,
    lifecycle: RepositoryLifecycle = Depends(get_lifecycle),
) -> RepositoryRead:
    """
    Register a GitHub repository (or reset a known one) and start fetching.

    Resubmitting a URL that matches an existing repository after
    normalization reuses its id and replaces all of its files.
    """
    try:
        repository = await lifecycle.submit(body.url, body.name)
    except RepovecError as exc:
        raise _to_http(exc) from exc

    background_tasks.add_task(_run_fetch_and_chunk, lifecycle, repository.id)
    return repository


@router.get("/", response_model=list[RepositoryRead], summary="List repositories")
async def list_repositories(
    lifecycle: RepositoryLifecycle = Depends(get_lifecycle),
) -> list[RepositoryRead]:
    try:
        return await lifecycle.list_repositories()
    except RepovecError as exc:
        raise _to_http(exc) from exc


@router.get("/{repository_id}", response_model=RepositoryRead, summary="Get a repository")
async def get_repository(
    repository_id: UUID,
    lifecycle: RepositoryLifecycle = Depends(get_lifecycle),
) -> RepositoryRead:
    try:
        return await lifecycle.get_repository(repository_id)
    except RepovecError as exc:
        raise _to_http(exc) from exc


@router.get(
    "/{repository_id}/files",
    response_model=list[FileRead],
    summary="List a repository's files",
)
async def list_files(
    repository_id: UUID,
    response: Response,
    lifecycle: RepositoryLifecycle = Depends(get_lifecycle),
) -> list[FileRead]:
    try:
        files = await lifecycle.list_files(repository_id)
    except RepovecError as exc:
        raise _to_http(exc) from exc
    response.headers["X-Total-Count"] = str(len(files))
    return files


@router.post(
    "/{repository_id}/embeddings",
    response_model=EmbeddingResponse,
    summary="Generate embeddings for a chunked repository",
    responses={
        404: {"description": "Unknown repository"},
        409: {"description": "Not chunked yet, or not ready for embedding"},
        502: {"description": "Embedding provider failed"},
    },
)
async def embed_repository(
    repository_id: UUID,
    lifecycle: RepositoryLifecycle = Depends(get_lifecycle),
) -> EmbeddingResponse:
    """
    Run the embedding phase synchronously.

    Requires a prior successful fetch+chunk in this process. On failure the
    repository is marked ``failed`` and the error is returned.
    """
    try:
        written = await lifecycle.embed(repository_id)
        repository = await lifecycle.get_repository(repository_id)
    except RepovecError as exc:
        raise _to_http(exc) from exc
    return EmbeddingResponse(repository=repository, files_count=written)
