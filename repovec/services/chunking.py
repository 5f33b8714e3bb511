"""
Chunking Service

Splits repository files into overlapping, line-aligned Chunks suitable
for embedding.

Algorithm:
    Lines are appended (newline-terminated) to a buffer. As soon as the
    buffer reaches ``chunk_size`` characters it is emitted as a chunk, and
    the next buffer is seeded with the last ``chunk_overlap`` characters of
    the emitted one. The new chunk's start line is the current line minus
    the number of lines touched by that tail, clamped at zero.
    Whatever is left in the buffer at end of file becomes the last chunk,
    even when it is only the overlap tail of the previous one.

Defaults:
    - chunk_size=1000 chars
    - chunk_overlap=200 chars
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from repovec.models.schemas import Chunk, FileRead

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE: int = 1000
DEFAULT_CHUNK_OVERLAP: int = 200


def split_lines(content: str) -> list[str]:
    """
    Split text on ``\\n``. A trailing newline ends the last line rather
    than opening an empty one, so ``"a\\nb\\n"`` has two lines.
    """
    if not content:
        return []
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


class FileChunker:
    """
    Splits a file into overlapping text Chunks with line ranges.

    Pure and deterministic: the same file always yields the same chunks.

    Usage::

        chunker = FileChunker()
        chunks = chunker.split(file)
        # Each chunk has: content, file_path, start_line, end_line,
        # original_metadata

    Args:
        chunk_size: Buffer length (characters) at which a chunk is closed.
        chunk_overlap: Characters carried over into the next chunk.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size ({chunk_size}) must be positive")
        if chunk_overlap < 0:
            raise ValueError(f"chunk_overlap ({chunk_overlap}) must not be negative")
        if chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap ({chunk_overlap}) must be less than "
                f"chunk_size ({chunk_size})"
            )
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    @property
    def chunk_size(self) -> int:
        """Buffer length at which a chunk is closed."""
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        """Characters shared between consecutive chunks."""
        return self._chunk_overlap

    def split(self, file: FileRead) -> list[Chunk]:
        """
        Split one file into Chunks.

        Args:
            file: Persisted file with its full text.

        Returns:
            Chunks in file order. Empty content yields no chunks; content
            shorter than ``chunk_size`` yields one chunk spanning the file.
        """
        chunks: list[Chunk] = []
        buffer = ""
        start_line = 0
        current_line = 0

        for line in split_lines(file.content):
            buffer += line + "\n"
            current_line += 1

            if len(buffer) >= self._chunk_size:
                chunks.append(self._make_chunk(file, buffer, start_line, current_line))

                buffer = buffer[-self._chunk_overlap :] if self._chunk_overlap else ""
                start_line = max(0, current_line - buffer.count("\n"))

        if buffer:
            chunks.append(self._make_chunk(file, buffer, start_line, current_line))

        logger.debug(
            "Split '%s' into %d chunks (%d lines)",
            file.path,
            len(chunks),
            current_line,
        )
        return chunks

    def split_many(self, files: Iterable[FileRead]) -> list[Chunk]:
        """Split several files, concatenating their chunks in input order."""
        chunks: list[Chunk] = []
        for file in files:
            file_chunks = self.split(file)
            chunks.extend(file_chunks)
            logger.info("Processed %d chunks from %s", len(file_chunks), file.path)
        return chunks

    @staticmethod
    def _make_chunk(file: FileRead, buffer: str, start: int, end: int) -> Chunk:
        return Chunk(
            content=buffer,
            file_path=file.path,
            start_line=start,
            end_line=end,
            original_metadata=dict(file.metadata),
        )
