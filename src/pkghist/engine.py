"""History engine: incremental scan of the transaction log.

One run is: read the log, load the cache snapshot, scan only the bytes the
snapshot does not cover, persist the extended snapshot once, and fold the
full event list into a ``PackageHistory``.  An unterminated last line is
folded into the history but kept out of the snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pkghist.cache.schemas import CacheSnapshot
from pkghist.cache.schemas import Watermark
from pkghist.cache.store import CacheStore
from pkghist.config import ParserConfig
from pkghist.config import ScanConfig
from pkghist.errors import CacheWriteError
from pkghist.errors import LogUnreadableError
from pkghist.history.reconstruct import PackageHistory
from pkghist.history.reconstruct import reconstruct
from pkghist.observability import timed
from pkghist.scan import ScanCoordinator
from pkghist.scan import ScanResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineResult:
    """Outcome of one engine run."""

    history: PackageHistory
    scan: ScanResult
    snapshot: CacheSnapshot
    # True when a cached prefix was reused instead of rescanning from zero.
    cache_hit: bool
    persisted: bool


def read_log(path: str | Path) -> bytes:
    """Read the whole log read-only; failures are fatal."""
    try:
        with open(path, "rb") as fh:
            return fh.read()
    except OSError as exc:
        raise LogUnreadableError(str(path), exc.strerror or str(exc)) from exc


class HistoryEngine:
    """Orchestrates cache, scan and reconstruction for one log file."""

    def __init__(
        self,
        store: CacheStore,
        scan_config: ScanConfig | None = None,
        parser_config: ParserConfig | None = None,
    ) -> None:
        self._store = store
        self._scanner = ScanCoordinator(scan_config, parser_config)

    def run(
        self,
        log_path: str | Path,
        *,
        known_installed: Iterable[str] = (),
    ) -> EngineResult:
        """Bring the cache up to date with *log_path* and rebuild history.

        Raises ``LogUnreadableError`` if the log cannot be read.  A failed
        cache write is logged and reported via ``persisted=False``.
        """
        with timed("engine.run"):
            log = read_log(log_path)
            return self.run_bytes(log, known_installed=known_installed)

    def run_bytes(
        self,
        log: bytes,
        *,
        known_installed: Iterable[str] = (),
    ) -> EngineResult:
        """Same as ``run`` for log content already in memory."""
        with timed("cache.load"):
            base = self._store.load()
        consumed = self._store.unconsumed_suffix(log, base)
        cache_hit = consumed.start > 0
        stale = not cache_hit and not base.is_empty
        if stale:
            logger.info("Cached history no longer matches the log; rebuilding")
            base = CacheSnapshot()

        with timed("scan.run"):
            scan = self._scanner.scan(log, consumed)

        snapshot, persisted = self._persist(log, base, scan, force=stale)
        history = reconstruct(
            [*snapshot.events, *scan.pending_events],
            known_installed,
        )
        logger.debug(
            "History has %d events across %d packages (%d new, %d pending)",
            len(history.events),
            len(history.statuses),
            len(scan.events),
            len(scan.pending_events),
        )
        return EngineResult(
            history=history,
            scan=scan,
            snapshot=snapshot,
            cache_hit=cache_hit,
            persisted=persisted,
        )

    def _persist(
        self,
        log: bytes,
        base: CacheSnapshot,
        scan: ScanResult,
        *,
        force: bool = False,
    ) -> tuple[CacheSnapshot, bool]:
        watermark = base.watermark
        if scan.end_offset != watermark.offset:
            watermark = Watermark.for_prefix(log, scan.end_offset)
        if not force and not scan.events and watermark == base.watermark:
            # Nothing new: the stored snapshot already matches.
            return base, True

        try:
            with timed("cache.save"):
                return self._store.save(base, scan.events, watermark), True
        except CacheWriteError as exc:
            logger.warning("Cache not updated: %s", exc)
            return base.extended(scan.events, watermark), False
