"""Per-operation timing for engine runs.

``timed()`` wraps the engine's stages (``cache.load``, ``scan.run``,
``cache.save``, ``engine.run``).  Each sample is logged at DEBUG and folded
into a process-wide table; the CLI prints that table with ``--verbose``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from dataclasses import replace
from threading import Lock
from time import perf_counter

logger = logging.getLogger(__name__)


@dataclass
class OperationTimings:
    """Running totals for one named operation."""

    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0
    slowest_ms: float = 0.0

    @property
    def mean_ms(self) -> float:
        return self.total_ms / self.calls if self.calls else 0.0

    def add(self, duration_ms: float, ok: bool) -> None:
        self.calls += 1
        self.failures += 0 if ok else 1
        self.total_ms += duration_ms
        self.slowest_ms = max(self.slowest_ms, duration_ms)


_lock = Lock()
_timings: dict[str, OperationTimings] = {}


def record_timing(operation: str, duration_ms: float, *, ok: bool = True) -> None:
    """Fold one sample into the table; negative durations count as zero."""
    duration_ms = max(duration_ms, 0.0)
    with _lock:
        _timings.setdefault(operation, OperationTimings()).add(duration_ms, ok)
    logger.debug("%s took %.3f ms (ok=%s)", operation, duration_ms, ok)


@contextmanager
def timed(operation: str) -> Iterator[None]:
    """Time the enclosed block; an escaping exception counts as a failure."""
    start = perf_counter()
    ok = False
    try:
        yield
        ok = True
    finally:
        record_timing(operation, (perf_counter() - start) * 1000, ok=ok)


def timing_summary() -> dict[str, OperationTimings]:
    """Copy of the table, keyed by operation name in sorted order."""
    with _lock:
        return {name: replace(t) for name, t in sorted(_timings.items())}


def log_timing_summary(level: int = logging.DEBUG) -> None:
    for name, t in timing_summary().items():
        logger.log(
            level,
            "%s: %d calls, %d failed, mean %.3f ms, slowest %.3f ms",
            name,
            t.calls,
            t.failures,
            t.mean_ms,
            t.slowest_ms,
        )


def reset_timings() -> None:
    with _lock:
        _timings.clear()
