#!/usr/bin/env python3
"""
Process a Repository

Runs the full pipeline for one GitHub repository without the HTTP API:
submit → fetch + chunk → embed.

Usage:
    python scripts/process_repository.py https://github.com/owner/name
    python scripts/process_repository.py https://github.com/owner/name --name demo
    python scripts/process_repository.py https://github.com/owner/name --skip-embed
    python scripts/process_repository.py https://github.com/owner/name --memory  # no PostgreSQL

Exit codes:
    0 — repository reached the expected final status
    1 — processing failed (see logs)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from repovec.core.config import settings
from repovec.core.database import dispose_engine
from repovec.core.errors import RepovecError
from repovec.core.logging import setup_logging
from repovec.models.status import RepositoryStatus
from repovec.repositories.memory import MemoryStorage
from repovec.services.factory import build_lifecycle
from repovec.services.github import parse_repository_url

logger = logging.getLogger("repovec.scripts.process_repository")


async def run(url: str, name: str, skip_embed: bool, memory: bool) -> int:
    lifecycle = build_lifecycle(settings, storage=MemoryStorage() if memory else None)
    try:
        repository = await lifecycle.process(url, name)
        logger.info("Repository %s is %s", repository.id, repository.status)
        if repository.status is not RepositoryStatus.READY_FOR_EMBEDDING:
            return 1
        if skip_embed:
            return 0

        written = await lifecycle.embed(repository.id)
        logger.info("Repository %s completed with %d embedded chunks", repository.id, written)
        return 0
    except RepovecError as exc:
        logger.error("Processing failed: %s", exc)
        return 1
    finally:
        await dispose_engine()


def main() -> int:
    parser = argparse.ArgumentParser(description="Chunk and embed a GitHub repository")
    parser.add_argument("url", help="GitHub repository URL")
    parser.add_argument("--name", help="Display name (defaults to the repository name)")
    parser.add_argument(
        "--skip-embed", action="store_true", help="Stop after fetch + chunk"
    )
    parser.add_argument(
        "--memory", action="store_true", help="Use in-memory storage instead of PostgreSQL"
    )
    args = parser.parse_args()

    setup_logging()
    try:
        _, repo_name = parse_repository_url(args.url)
    except RepovecError as exc:
        parser.error(str(exc))

    return asyncio.run(run(args.url, args.name or repo_name, args.skip_embed, args.memory))


if __name__ == "__main__":
    sys.exit(main())
