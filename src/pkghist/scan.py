"""Parallel scan of unconsumed log bytes.

The region to scan is cut into contiguous, line-aligned chunks.  Each chunk
is parsed independently on a thread pool and the per-chunk results are
concatenated in chunk order, so the merged event list is the same for any
chunk count.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from dataclasses import field
from functools import partial

from pkghist.config import ParserConfig
from pkghist.config import ScanConfig
from pkghist.events.normalizer import parse_line
from pkghist.events.schemas import PackageEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkResult:
    """Events parsed from one chunk, in line order."""

    index: int
    events: list[PackageEvent] = field(default_factory=list)
    lines_seen: int = 0
    lines_skipped: int = 0


@dataclass(frozen=True)
class ScanResult:
    """Merged outcome of scanning one byte range of the log."""

    events: list[PackageEvent] = field(default_factory=list)
    lines_seen: int = 0
    lines_skipped: int = 0
    chunk_count: int = 0
    start_offset: int = 0
    # Just past the last complete line scanned.
    end_offset: int = 0
    # Parsed from an unterminated last line; reported but never persisted.
    pending_events: list[PackageEvent] = field(default_factory=list)

    @property
    def bytes_scanned(self) -> int:
        return self.end_offset - self.start_offset


# ---------------------------------------------------------------------------
# Partitioning
# ---------------------------------------------------------------------------


def complete_lines_end(data: bytes, start: int, end: int) -> int:
    """Offset just past the last ``\\n`` in ``data[start:end]``, or *start*."""
    last_newline = data.rfind(b"\n", start, end)
    if last_newline == -1:
        return start
    return last_newline + 1


def partition_chunks(
    data: bytes,
    start: int,
    end: int,
    count: int,
) -> list[tuple[int, int]]:
    """Split ``data[start:end]`` into at most *count* line-aligned ranges.

    Each cut is moved forward to the next line start, so no line is split
    across chunks.  Ranges are contiguous, non-empty and cover the region.
    """
    if end <= start:
        return []
    if count < 1:
        raise ValueError("count must be >= 1")

    size = end - start
    bounds = [start]
    for i in range(1, count):
        target = start + (size * i) // count
        newline = data.find(b"\n", max(target - 1, bounds[-1]), end)
        if newline == -1:
            break
        cut = newline + 1
        if cut >= end:
            break
        if cut > bounds[-1]:
            bounds.append(cut)
    bounds.append(end)
    return list(zip(bounds, bounds[1:]))


# ---------------------------------------------------------------------------
# Per-chunk work
# ---------------------------------------------------------------------------


def scan_chunk(
    data: bytes,
    indexed_range: tuple[int, tuple[int, int]],
    *,
    config: ParserConfig,
) -> ChunkResult:
    """Parse every line of one chunk.

    Lines are decoded one at a time, so undecodable bytes only cost the
    lines they sit on.
    """
    index, (start, end) = indexed_range
    events: list[PackageEvent] = []
    seen = 0
    for raw in data[start:end].split(b"\n"):
        if not raw:
            continue
        seen += 1
        event = parse_line(raw, config)
        if event is not None:
            events.append(event)
    return ChunkResult(
        index=index,
        events=events,
        lines_seen=seen,
        lines_skipped=seen - len(events),
    )


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class ScanCoordinator:
    """Fork/join scan over a fixed-size thread pool."""

    def __init__(
        self,
        config: ScanConfig | None = None,
        parser_config: ParserConfig | None = None,
    ) -> None:
        self._config = config or ScanConfig()
        self._parser_config = parser_config or ParserConfig()

    def chunk_count(self, size: int) -> int:
        """Number of chunks to cut a *size*-byte region into."""
        if size <= 0:
            return 0
        if self._config.chunks is not None:
            return self._config.chunks
        wanted = math.ceil(size / self._config.min_chunk_bytes)
        return max(1, min(self._config.workers, wanted))

    def scan(self, data: bytes, consumed: range) -> ScanResult:
        """Parse ``data[consumed.start:consumed.stop]``.

        Complete lines are split across the pool and advance ``end_offset``.
        A trailing line with no ``\\n`` yet is parsed on its own into
        ``pending_events`` and stays outside ``end_offset``, so the next scan
        reads it again once it is finished.
        """
        start = consumed.start
        end = complete_lines_end(data, start, consumed.stop)
        pending = self._scan_tail(data, end, consumed.stop)
        chunks = partition_chunks(data, start, end, self.chunk_count(end - start))
        if not chunks:
            return ScanResult(
                start_offset=start,
                end_offset=start,
                pending_events=pending,
            )

        work = partial(scan_chunk, data, config=self._parser_config)
        indexed = list(enumerate(chunks))
        if len(chunks) == 1:
            results = [work(indexed[0])]
        else:
            workers = min(self._config.workers, len(chunks))
            with ThreadPoolExecutor(
                max_workers=workers,
                thread_name_prefix="pkghist-scan",
            ) as pool:
                # map() yields in submission order, i.e. chunk order.
                results = list(pool.map(work, indexed))

        events: list[PackageEvent] = []
        for result in results:
            events.extend(result.events)
        seen = sum(r.lines_seen for r in results)
        skipped = sum(r.lines_skipped for r in results)

        logger.debug(
            "Scanned bytes %d-%d in %d chunks: %d lines, %d events, %d skipped",
            start,
            end,
            len(chunks),
            seen,
            len(events),
            skipped,
        )
        return ScanResult(
            events=events,
            lines_seen=seen,
            lines_skipped=skipped,
            chunk_count=len(chunks),
            start_offset=start,
            end_offset=end,
            pending_events=pending,
        )

    def _scan_tail(self, data: bytes, start: int, stop: int) -> list[PackageEvent]:
        if start >= stop:
            return []
        event = parse_line(data[start:stop], self._parser_config)
        return [event] if event is not None else []
