"""Exception hierarchy for pkghist."""

from __future__ import annotations


class PkghistError(Exception):
    """Base class for all errors raised by pkghist."""


class LogUnreadableError(PkghistError):
    """Raised when the transaction log cannot be opened or read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot read transaction log {path}: {reason}")
        self.path = path
        self.reason = reason


class CacheWriteError(PkghistError):
    """Raised when a cache snapshot cannot be persisted."""


class PackageQueryError(PkghistError):
    """Raised when the package manager cannot be queried."""
