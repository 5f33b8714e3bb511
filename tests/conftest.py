"""
Pytest Configuration and Fixtures

Shared fixtures and in-process fakes for the file source and the
embedding provider. Unit tests run offline against ``MemoryStorage``.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults: MUST be before any repovec imports.
#
# 1. Load .env first so that local credentials are available.
# 2. setdefault fills in anything still missing (CI runners, fresh clones
#    without a .env file) so that pydantic Settings validation doesn't crash.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

_test_env = {
    "POSTGRES_USER": "repovec",
    "POSTGRES_PASSWORD": "repovec_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "repovec_db",
    "OPENAI_API_KEY": "mock",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import asyncio  # noqa: E402
from collections.abc import Callable  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402

from repovec.core.errors import EmbeddingProviderError  # noqa: E402
from repovec.models.schemas import FileRead, SourceFile  # noqa: E402
from repovec.repositories.memory import MemoryStorage  # noqa: E402
from repovec.services.chunking import FileChunker  # noqa: E402
from repovec.services.lifecycle import RepositoryLifecycle  # noqa: E402
from repovec.services.pipeline import EmbeddingPipeline  # noqa: E402

TEST_DIMENSION = 8


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeFileSource:
    """
    FileSource returning canned files, or raising ``error`` if set.

    ``delay`` keeps a fetch in flight long enough for another call to
    arrive while it runs.
    """

    def __init__(self, files: list[SourceFile] | None = None, delay: float = 0.0) -> None:
        self.files = files or []
        self.delay = delay
        self.error: Exception | None = None
        self.calls: list[str] = []

    async def fetch_files(self, url: str) -> list[SourceFile]:
        self.calls.append(url)
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.files)


class RecordingProvider:
    """
    EmbeddingProvider that records every call and tracks peak concurrency.

    Vectors are ``[len(text), 0, 0, ...]`` so results can be traced back to
    their input. ``fail_when`` makes matching texts raise.
    """

    def __init__(
        self,
        dimension: int = TEST_DIMENSION,
        fail_when: Callable[[str], bool] | None = None,
    ) -> None:
        self._dimension = dimension
        self.fail_when = fail_when
        self.calls: list[str] = []
        self.completed: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Yield so every call of a batch is in flight at the same time
            await asyncio.sleep(0)
            if self.fail_when is not None and self.fail_when(text):
                raise EmbeddingProviderError(f"rate limited on {text!r}")
            self.completed.append(text)
            return [float(len(text))] + [0.0] * (self._dimension - 1)
        finally:
            self.in_flight -= 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_source_file(path: str, content: str) -> SourceFile:
    return SourceFile(
        path=path,
        content=content,
        size=len(content.encode()),
        extension=path.rsplit(".", 1)[-1] if "." in path else "",
        last_modified="2026-01-01T00:00:00+00:00",
    )


def make_file(content: str, path: str = "src/app.py") -> FileRead:
    return FileRead(
        id=uuid4(),
        repository_id=uuid4(),
        path=path,
        content=content,
        metadata={"size": len(content), "extension": "py"},
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def source_files() -> list[SourceFile]:
    """Three files; ``big.py`` is 2500 chars and splits into 3 chunks."""
    big = "".join(f"{i:04d}" + "x" * 45 + "\n" for i in range(50))
    return [
        make_source_file("README.md", "# Demo\n\nA tiny repository.\n"),
        make_source_file("src/big.py", big),
        make_source_file("src/util.py", "def add(a, b):\n    return a + b\n"),
    ]


@pytest.fixture
def source(source_files: list[SourceFile]) -> FakeFileSource:
    return FakeFileSource(source_files)


@pytest.fixture
def provider() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def lifecycle(
    storage: MemoryStorage,
    source: FakeFileSource,
    provider: RecordingProvider,
) -> RepositoryLifecycle:
    return RepositoryLifecycle(
        storage=storage,
        source=source,
        chunker=FileChunker(chunk_size=1000, chunk_overlap=200),
        pipeline=EmbeddingPipeline(provider, batch_size=20),
    )
