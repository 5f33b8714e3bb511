"""
Repovec — Application Entry Point

FastAPI application that chunks GitHub repositories and stores vector
embeddings for every chunk.

Start locally:
    uvicorn repovec.main:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from repovec.api.v1.repositories import router as repositories_router
from repovec.core.config import settings
from repovec.core.database import dispose_engine, verify_database
from repovec.core.logging import setup_logging
from repovec.services.factory import build_lifecycle

# Initialize logging before any log statements
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        1. Validate database connectivity (blocks startup on failure).
        2. Build the process-wide lifecycle controller and its cache.

    Shutdown:
        1. Dispose database engine.
    """
    logger.info("Starting %s...", settings.PROJECT_NAME)

    try:
        await verify_database()
    except Exception:
        logger.exception("Database connection failed")
        raise

    app.state.lifecycle = build_lifecycle(settings)

    yield

    await dispose_engine()
    logger.info("%s shutdown complete", settings.PROJECT_NAME)


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Repository chunking and embedding pipeline.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(
    repositories_router,
    prefix="/api/v1/repositories",
    tags=["Repositories"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check for load balancers and orchestrators."""
    return {
        "status": "ok",
        "service": "repovec",
        "environment": os.getenv("ENVIRONMENT", "local"),
    }
