"""
Chunking Service Unit Tests

Verifies FileChunker behaviour: line-aligned splitting, overlap seeding,
line-range bookkeeping, edge cases, and metadata propagation.

No external services required — runs entirely offline.
"""

from __future__ import annotations

import pytest
from conftest import make_file

from repovec.models.schemas import Chunk
from repovec.services.chunking import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    FileChunker,
    split_lines,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _lines(count: int, width: int = 49) -> str:
    """``count`` newline-terminated lines of ``width`` chars (+1 for \\n)."""
    return "".join(f"{i:04d}".ljust(width, "x") + "\n" for i in range(count))


def _assert_contiguous(chunks: list[Chunk], line_count: int) -> None:
    """Ranges start at 0, end at line_count, and never leave a gap."""
    assert chunks[0].start_line == 0
    assert chunks[-1].end_line == line_count
    for previous, current in zip(chunks, chunks[1:]):
        assert current.start_line <= previous.end_line
        assert current.end_line >= previous.end_line


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def chunker() -> FileChunker:
    """Default FileChunker instance (1000 / 200)."""
    return FileChunker()


@pytest.fixture
def small_chunker() -> FileChunker:
    """FileChunker with small settings for deterministic testing."""
    return FileChunker(chunk_size=50, chunk_overlap=10)


# ---------------------------------------------------------------------------
# Basic splitting
# ---------------------------------------------------------------------------


class TestBasicSplitting:
    def test_empty_file_produces_no_chunks(self, chunker: FileChunker) -> None:
        assert chunker.split(make_file("")) == []

    def test_short_file_produces_single_chunk(self, chunker: FileChunker) -> None:
        content = "import os\n\nprint(os.getcwd())\n"
        chunks = chunker.split(make_file(content))

        assert len(chunks) == 1
        assert chunks[0].content == content
        assert chunks[0].start_line == 0
        assert chunks[0].end_line == 3

    def test_missing_trailing_newline_is_added(self, chunker: FileChunker) -> None:
        chunks = chunker.split(make_file("a\nb"))

        assert chunks[0].content == "a\nb\n"
        assert chunks[0].end_line == 2

    def test_2500_char_file_produces_three_chunks(self, chunker: FileChunker) -> None:
        content = _lines(50)
        assert len(content) == 2500

        chunks = chunker.split(make_file(content))

        assert len(chunks) == 3
        assert [(c.start_line, c.end_line) for c in chunks] == [(0, 20), (16, 36), (32, 50)]

    def test_second_chunk_starts_at_overlap_lines(self, chunker: FileChunker) -> None:
        chunks = chunker.split(make_file(_lines(50)))
        first, second = chunks[0], chunks[1]

        tail = first.content[-chunker.chunk_overlap :]
        assert second.start_line == first.end_line - tail.count("\n")
        assert second.content.startswith(tail)

    def test_file_of_exactly_chunk_size_keeps_overlap_tail(self, chunker: FileChunker) -> None:
        content = _lines(10, width=99)
        assert len(content) == DEFAULT_CHUNK_SIZE

        chunks = chunker.split(make_file(content))

        # The buffer left after the full chunk is its 200-char tail (2 lines)
        assert [(c.start_line, c.end_line) for c in chunks] == [(0, 10), (8, 10)]
        assert chunks[1].content == content[-DEFAULT_CHUNK_OVERLAP:]


# ---------------------------------------------------------------------------
# Line ranges
# ---------------------------------------------------------------------------


class TestLineRanges:
    @pytest.mark.parametrize("line_count", [1, 7, 19, 20, 21, 50, 333])
    def test_ranges_cover_every_line(self, chunker: FileChunker, line_count: int) -> None:
        chunks = chunker.split(make_file(_lines(line_count)))

        _assert_contiguous(chunks, line_count)

    def test_ranges_stay_within_file(self, small_chunker: FileChunker) -> None:
        content = "short\n" + "a much longer line of source code here\n" * 12 + "end\n"
        line_count = len(split_lines(content))

        for chunk in small_chunker.split(make_file(content)):
            assert 0 <= chunk.start_line <= chunk.end_line <= line_count

    def test_zero_overlap_partitions_the_file(self) -> None:
        chunker = FileChunker(chunk_size=100, chunk_overlap=0)
        content = _lines(30, width=29)

        chunks = chunker.split(make_file(content))

        assert "".join(c.content for c in chunks) == content
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_line == previous.end_line

    def test_single_line_longer_than_chunk_size(self, small_chunker: FileChunker) -> None:
        content = "x" * 120 + "\nshort\n"

        chunks = small_chunker.split(make_file(content))

        _assert_contiguous(chunks, 2)
        assert chunks[0].content == "x" * 120 + "\n"

    def test_crlf_lines_keep_carriage_return(self, chunker: FileChunker) -> None:
        chunks = chunker.split(make_file("a\r\nb\r\n"))

        assert chunks[0].content == "a\r\nb\r\n"
        assert chunks[0].end_line == 2


# ---------------------------------------------------------------------------
# Determinism and metadata
# ---------------------------------------------------------------------------


class TestChunkMetadata:
    def test_split_is_deterministic(self, small_chunker: FileChunker) -> None:
        file = make_file(_lines(40, width=17))

        assert small_chunker.split(file) == small_chunker.split(file)

    def test_file_path_propagated(self, chunker: FileChunker) -> None:
        file = make_file(_lines(50), path="pkg/module.py")

        assert {c.file_path for c in chunker.split(file)} == {"pkg/module.py"}

    def test_original_metadata_is_copied(self, chunker: FileChunker) -> None:
        file = make_file(_lines(5))
        chunk = chunker.split(file)[0]

        assert chunk.original_metadata == file.metadata
        assert chunk.original_metadata is not file.metadata

    def test_split_many_keeps_file_order(self, chunker: FileChunker) -> None:
        files = [
            make_file(_lines(3), path="a.py"),
            make_file(_lines(50), path="b.py"),
            make_file("", path="empty.py"),
            make_file(_lines(2), path="c.py"),
        ]

        chunks = chunker.split_many(files)

        assert [c.file_path for c in chunks] == ["a.py", "b.py", "b.py", "b.py", "c.py"]


# ---------------------------------------------------------------------------
# Configuration and validation
# ---------------------------------------------------------------------------


class TestConfiguration:
    def test_default_config_values(self) -> None:
        assert DEFAULT_CHUNK_SIZE == 1000
        assert DEFAULT_CHUNK_OVERLAP == 200

    def test_properties_match_config(self) -> None:
        chunker = FileChunker(chunk_size=300, chunk_overlap=75)
        assert chunker.chunk_size == 300
        assert chunker.chunk_overlap == 75

    def test_overlap_must_be_less_than_size(self) -> None:
        with pytest.raises(ValueError, match="chunk_overlap"):
            FileChunker(chunk_size=100, chunk_overlap=100)

    def test_overlap_greater_than_size_raises(self) -> None:
        with pytest.raises(ValueError, match="chunk_overlap"):
            FileChunker(chunk_size=100, chunk_overlap=200)

    def test_negative_overlap_raises(self) -> None:
        with pytest.raises(ValueError, match="chunk_overlap"):
            FileChunker(chunk_size=100, chunk_overlap=-1)

    def test_non_positive_size_raises(self) -> None:
        with pytest.raises(ValueError, match="chunk_size"):
            FileChunker(chunk_size=0, chunk_overlap=0)


class TestSplitLines:
    def test_trailing_newline_does_not_add_a_line(self) -> None:
        assert split_lines("a\nb\n") == ["a", "b"]

    def test_blank_lines_are_kept(self) -> None:
        assert split_lines("a\n\n\nb") == ["a", "", "", "b"]

    def test_empty_string(self) -> None:
        assert split_lines("") == []
