"""Split large pasted inputs into row/size bounded chunks, repeating headers."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

DEFAULT_MAX_CHUNK_SIZE = 50_000
DEFAULT_MAX_ROWS_PER_CHUNK = 100

HEADER_PATTERNS = [
    re.compile(r"rep\s*id", re.IGNORECASE),
    re.compile(r"street\s*address", re.IGNORECASE),
    re.compile(r"installation\s*date", re.IGNORECASE),
    re.compile(r"fiber\s*plan", re.IGNORECASE),
    re.compile(r"order\s*date", re.IGNORECASE),
    re.compile(r"customer\s*name", re.IGNORECASE),
    re.compile(r"email", re.IGNORECASE),
    re.compile(r"phone", re.IGNORECASE),
]


@dataclass
class BatchChunk:
    id: str
    data: str
    chunk_index: int
    total_chunks: int
    row_count: int
    has_headers: bool


@dataclass
class SplitResult:
    chunks: List[BatchChunk] = field(default_factory=list)
    original_size: int = 0
    total_rows: int = 0
    split_reason: str = "size"
    headers: Optional[str] = None


@dataclass
class ChunkInfo:
    should_split: bool
    estimated_chunks: int
    reason: str


def _non_empty_lines(data: str) -> List[str]:
    return [line for line in data.split("\n") if line.strip()]


def looks_like_header(line: str) -> bool:
    """True for a first row that names spreadsheet columns.

    A row holding an actual address (``@``) is data even if it mentions
    "email".
    """

    if "@" in line:
        return False
    return any(pattern.search(line) for pattern in HEADER_PATTERNS)


class BatchSplitter:
    """Stateless helpers that chunk text for the completion service."""

    @staticmethod
    def should_split(
        data: str,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        max_rows_per_chunk: int = DEFAULT_MAX_ROWS_PER_CHUNK,
    ) -> bool:
        return len(data) > max_chunk_size or len(_non_empty_lines(data)) > max_rows_per_chunk

    @staticmethod
    def split(
        data: str,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        max_rows_per_chunk: int = DEFAULT_MAX_ROWS_PER_CHUNK,
        preserve_headers: bool = True,
    ) -> SplitResult:
        """Chunk ``data`` so no chunk exceeds either limit.

        When the first row is a header and ``preserve_headers`` is set, every
        chunk starts with that header and ``row_count`` excludes it.
        """

        lines = _non_empty_lines(data)
        first = lines[0] if lines else ""
        has_headers = looks_like_header(first)
        data_lines = lines[1:] if has_headers else lines
        repeat_header = has_headers and preserve_headers
        header_rows = 1 if repeat_header else 0

        chunks: List[BatchChunk] = []
        current: List[str] = [first] if repeat_header else []
        current_size = len(first) if repeat_header else 0

        def flush() -> None:
            chunks.append(
                BatchChunk(
                    id=f"chunk_{len(chunks)}",
                    data="\n".join(current),
                    chunk_index=len(chunks),
                    total_chunks=0,
                    row_count=len(current) - header_rows,
                    has_headers=repeat_header,
                )
            )

        for line in data_lines:
            line_size = len(line) + 1
            too_big = current_size + line_size > max_chunk_size
            too_many = len(current) >= max_rows_per_chunk + header_rows
            if (too_big or too_many) and len(current) > header_rows:
                flush()
                current = [first] if repeat_header else []
                current_size = len(first) if repeat_header else 0
            current.append(line)
            current_size += line_size

        if len(current) > header_rows:
            flush()

        for chunk in chunks:
            chunk.total_chunks = len(chunks)

        if len(data) > max_chunk_size and len(lines) > max_rows_per_chunk:
            reason = "both"
        elif len(lines) > max_rows_per_chunk:
            reason = "rows"
        else:
            reason = "size"

        return SplitResult(
            chunks=chunks,
            original_size=len(data),
            total_rows=len(data_lines),
            split_reason=reason,
            headers=first if has_headers else None,
        )

    @staticmethod
    def combine(chunks: Sequence[BatchChunk], preserve_headers: bool = True) -> str:
        """Reassemble chunks in index order, keeping only the first header."""

        combined: List[str] = []
        for position, chunk in enumerate(sorted(chunks, key=lambda c: c.chunk_index)):
            lines = _non_empty_lines(chunk.data)
            if position > 0 and chunk.has_headers and preserve_headers:
                lines = lines[1:]
            combined.extend(lines)
        return "\n".join(combined)

    @staticmethod
    def chunk_info(data: str) -> ChunkInfo:
        lines = _non_empty_lines(data)
        size_chunks = math.ceil(len(data) / DEFAULT_MAX_CHUNK_SIZE)
        row_chunks = math.ceil(len(lines) / DEFAULT_MAX_ROWS_PER_CHUNK)
        estimated = max(size_chunks, row_chunks)

        reasons = []
        if len(data) > DEFAULT_MAX_CHUNK_SIZE:
            reasons.append(
                f"Data size ({round(len(data) / 1000)}KB) exceeds limit ({DEFAULT_MAX_CHUNK_SIZE // 1000}KB)."
            )
        if len(lines) > DEFAULT_MAX_ROWS_PER_CHUNK:
            reasons.append(f"Row count ({len(lines)}) exceeds limit ({DEFAULT_MAX_ROWS_PER_CHUNK}).")

        return ChunkInfo(
            should_split=estimated > 1,
            estimated_chunks=estimated,
            reason=" ".join(reasons) or "Data is within limits",
        )
