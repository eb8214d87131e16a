"""Cache snapshot data models."""

from __future__ import annotations

import hashlib

from pydantic import BaseModel
from pydantic import Field

from pkghist.events.schemas import PackageEvent

CACHE_FORMAT_VERSION = 1

_EMPTY_DIGEST = hashlib.sha256(b"").hexdigest()


def prefix_digest(log: bytes, offset: int) -> str:
    """SHA-256 hex digest of ``log[:offset]``."""
    return hashlib.sha256(memoryview(log)[:offset]).hexdigest()


class Watermark(BaseModel):
    """How much of the log has been consumed, and what that prefix was."""

    model_config = {"frozen": True}

    offset: int = Field(
        default=0,
        ge=0,
        description="Bytes of the log consumed; always a line boundary.",
    )
    digest: str = Field(
        default=_EMPTY_DIGEST,
        description="SHA-256 hex digest of the consumed prefix.",
    )

    @classmethod
    def for_prefix(cls, log: bytes, offset: int) -> Watermark:
        """Watermark covering the first *offset* bytes of *log*."""
        return cls(offset=offset, digest=prefix_digest(log, offset))

    def matches(self, log: bytes) -> bool:
        """Whether *log* still starts with the prefix this watermark recorded."""
        if len(log) < self.offset:
            return False
        return prefix_digest(log, self.offset) == self.digest


class CacheSnapshot(BaseModel):
    """Persisted events plus the watermark of the log prefix that produced them.

    Unknown fields are ignored and missing ones take their defaults, so
    snapshots written by older or newer releases still load.
    """

    model_config = {"frozen": True}

    format_version: int = Field(
        default=CACHE_FORMAT_VERSION,
        description="Layout version of the snapshot file.",
    )
    watermark: Watermark = Field(
        default_factory=Watermark,
        description="Log prefix covered by ``events``.",
    )
    events: list[PackageEvent] = Field(
        default_factory=list,
        description="Every event parsed so far, in log order.",
    )

    @property
    def is_empty(self) -> bool:
        return self.watermark.offset == 0 and not self.events

    def extended(
        self,
        new_events: list[PackageEvent],
        watermark: Watermark,
    ) -> CacheSnapshot:
        """Return a new snapshot with *new_events* appended."""
        return CacheSnapshot(
            format_version=CACHE_FORMAT_VERSION,
            watermark=watermark,
            events=[*self.events, *new_events],
        )
