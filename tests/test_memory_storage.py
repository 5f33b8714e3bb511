"""
In-Memory Storage Unit Tests

The offline ``Storage`` used by the unit suite must behave like the SQL
one on the points the lifecycle relies on.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from repovec.core.errors import NotFoundError, PersistenceError
from repovec.models.schemas import FileCreate
from repovec.models.status import RepositoryStatus
from repovec.repositories.memory import MemoryStorage

URL = "https://github.com/owner/demo"


@pytest.mark.asyncio
async def test_url_is_unique(storage: MemoryStorage):
    await storage.create_repository(URL, "demo", datetime.now(UTC))

    with pytest.raises(PersistenceError):
        await storage.create_repository(URL, "again", datetime.now(UTC))


@pytest.mark.asyncio
async def test_update_keeps_unset_fields(storage: MemoryStorage):
    created = await storage.create_repository(URL, "demo", datetime.now(UTC))

    updated = await storage.update_repository(created.id, status=RepositoryStatus.FAILED)

    assert updated.status is RepositoryStatus.FAILED
    assert updated.name == "demo"
    assert updated.processed_at == created.processed_at


@pytest.mark.asyncio
async def test_update_unknown_repository(storage: MemoryStorage):
    with pytest.raises(NotFoundError):
        await storage.update_repository(uuid4(), name="x")


@pytest.mark.asyncio
async def test_list_newest_first(storage: MemoryStorage):
    now = datetime.now(UTC)
    older = await storage.create_repository(URL, "older", now - timedelta(days=1))
    newer = await storage.create_repository(URL + "2", "newer", now)

    assert [r.id for r in await storage.list_repositories()] == [newer.id, older.id]


@pytest.mark.asyncio
async def test_files_are_scoped_to_repository(storage: MemoryStorage):
    now = datetime.now(UTC)
    a = await storage.create_repository(URL, "a", now)
    b = await storage.create_repository(URL + "2", "b", now)
    await storage.create_file(FileCreate(repository_id=a.id, path="a.py", content="a\n"))
    await storage.create_file(FileCreate(repository_id=b.id, path="b.py", content="b\n"))

    assert await storage.delete_files_by_repository(a.id) == 1

    assert await storage.get_files_by_repository(a.id) == []
    assert [f.path for f in await storage.get_files_by_repository(b.id)] == ["b.py"]


@pytest.mark.asyncio
async def test_create_files_is_all_or_nothing(storage: MemoryStorage):
    repo = await storage.create_repository(URL, "demo", datetime.now(UTC))

    with pytest.raises(PersistenceError):
        await storage.create_files(
            [
                FileCreate(repository_id=repo.id, path="ok.py", content="ok\n"),
                FileCreate(repository_id=uuid4(), path="bad.py", content="bad\n"),
            ]
        )

    assert await storage.get_files_by_repository(repo.id) == []


@pytest.mark.asyncio
async def test_returned_rows_are_copies(storage: MemoryStorage):
    repo = await storage.create_repository(URL, "demo", datetime.now(UTC))
    row = await storage.create_file(
        FileCreate(repository_id=repo.id, path="a.py", content="a\n", metadata={"size": 2})
    )

    row.metadata["size"] = 999

    stored = await storage.get_files_by_repository(repo.id)
    assert stored[0].metadata == {"size": 2}
