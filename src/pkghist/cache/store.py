"""Snapshot stores for parsed events.

``JsonFileCacheStore`` persists one JSON document and replaces it
atomically on every save; ``MemoryCacheStore`` keeps the snapshot in
process for tests.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from abc import ABC
from abc import abstractmethod
from pathlib import Path

from pydantic import ValidationError

from pkghist.cache.schemas import CacheSnapshot
from pkghist.cache.schemas import Watermark
from pkghist.config import CacheConfig
from pkghist.errors import CacheWriteError
from pkghist.events.schemas import PackageEvent

logger = logging.getLogger(__name__)


class CacheStore(ABC):
    """Loads and persists ``CacheSnapshot`` values."""

    @abstractmethod
    def load(self) -> CacheSnapshot:
        """Return the stored snapshot, or an empty one if there is none.

        Must not raise: an unusable cache is a cache miss.
        """

    @abstractmethod
    def _write(self, snapshot: CacheSnapshot) -> None:
        """Make *snapshot* the stored one, all or nothing."""

    @abstractmethod
    def clear(self) -> None:
        """Drop the stored snapshot."""

    # ------------------------------------------------------------------
    # Shared logic
    # ------------------------------------------------------------------

    @staticmethod
    def unconsumed_suffix(log: bytes, snapshot: CacheSnapshot) -> range:
        """Byte range of *log* not yet covered by *snapshot*.

        If the log no longer starts with the prefix the watermark recorded
        (rotated, truncated or replaced), the whole log is unconsumed.
        """
        watermark = snapshot.watermark
        if watermark.offset == 0:
            return range(0, len(log))
        if not watermark.matches(log):
            logger.info(
                "Log prefix no longer matches cache watermark at offset %d; "
                "rescanning from start",
                watermark.offset,
            )
            return range(0, len(log))
        return range(watermark.offset, len(log))

    def save(
        self,
        base: CacheSnapshot,
        new_events: list[PackageEvent],
        new_watermark: Watermark,
    ) -> CacheSnapshot:
        """Persist *base* extended by *new_events* and return the result.

        Raises ``CacheWriteError`` if the snapshot could not be stored; the
        previously stored snapshot is left untouched in that case.
        """
        snapshot = base.extended(new_events, new_watermark)
        self._write(snapshot)
        return snapshot


class JsonFileCacheStore(CacheStore):
    """Single-file JSON cache with write-temp-then-replace updates."""

    def __init__(self, config: CacheConfig) -> None:
        self.config = config

    @property
    def path(self) -> Path:
        return Path(self.config.file_path)

    def load(self) -> CacheSnapshot:
        if not self.config.enabled:
            return CacheSnapshot()
        path = self.path
        if not path.exists():
            logger.debug("No cache at %s; starting empty", path)
            return CacheSnapshot()
        try:
            raw = path.read_bytes()
        except OSError as exc:
            logger.warning("Cannot read cache %s (%s); rescanning log", path, exc)
            return CacheSnapshot()
        try:
            snapshot = CacheSnapshot.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "Discarding corrupt cache %s (%d errors); rescanning log",
                path,
                exc.error_count(),
            )
            return CacheSnapshot()
        logger.debug(
            "Loaded %d cached events up to offset %d from %s",
            len(snapshot.events),
            snapshot.watermark.offset,
            path,
        )
        return snapshot

    def _write(self, snapshot: CacheSnapshot) -> None:
        if not self.config.enabled:
            return
        path = self.path
        data = snapshot.model_dump_json().encode("utf-8")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
            )
        except OSError as exc:
            raise CacheWriteError(
                f"cannot create cache file in {path.parent}: {exc}"
            ) from exc

        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise CacheWriteError(f"cannot write cache {path}: {exc}") from exc

    def clear(self) -> None:
        if not self.config.enabled:
            return
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise CacheWriteError(f"cannot remove cache {self.path}: {exc}") from exc


class MemoryCacheStore(CacheStore):
    """In-process store; counts writes so callers can observe them."""

    def __init__(self, snapshot: CacheSnapshot | None = None) -> None:
        self.snapshot = snapshot if snapshot is not None else CacheSnapshot()
        self.writes = 0

    def load(self) -> CacheSnapshot:
        return self.snapshot

    def _write(self, snapshot: CacheSnapshot) -> None:
        self.snapshot = snapshot
        self.writes += 1

    def clear(self) -> None:
        self.snapshot = CacheSnapshot()
