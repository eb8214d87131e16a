"""Application configuration dataclasses.

Frozen dataclasses with sensible defaults for each subsystem.
Only ``Settings.from_env`` and the cache-path default read the environment;
everything else is plain defaults that can be overridden at construction
time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from dataclasses import field
from datetime import timedelta
from functools import cached_property
from pathlib import Path

from dotenv import find_dotenv
from dotenv import load_dotenv

from pkghist.events.schemas import PackageAction

LOG_FILE_ENV = "PKGHIST_LOG_FILE"
CACHE_FILE_ENV = "PKGHIST_CACHE_FILE"

DEFAULT_LOG_FILE = "/var/log/pacman.log"


def default_cache_file() -> str:
    """``$XDG_CACHE_HOME/pkghist/cache.json``, falling back to ``~/.cache``."""
    base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return str(Path(base) / "pkghist" / "cache.json")


@dataclass(frozen=True)
class VerbRule:
    """Maps one log verb onto a package action.

    ``transition`` verbs carry ``old -> new`` version pairs; the others
    carry a single version.
    """

    verb: str
    action: PackageAction
    transition: bool = False


DEFAULT_VERBS: tuple[VerbRule, ...] = (
    VerbRule("installed", PackageAction.INSTALLED),
    VerbRule("reinstalled", PackageAction.INSTALLED),
    VerbRule("upgraded", PackageAction.UPGRADED, transition=True),
    VerbRule("downgraded", PackageAction.UPGRADED, transition=True),
    VerbRule("removed", PackageAction.REMOVED),
)


@dataclass(frozen=True)
class ParserConfig:
    """Vocabulary used by the tokenizer and normalizer."""

    transaction_tags: tuple[str, ...] = ("ALPM",)
    accept_untagged: bool = True
    verbs: tuple[VerbRule, ...] = DEFAULT_VERBS
    # Offset applied to legacy ``YYYY-MM-DD HH:MM`` stamps; None rejects them.
    legacy_utc_offset: timedelta | None = None

    def rule_for(self, verb: str) -> VerbRule | None:
        """Return the rule for *verb* (case-insensitive), if any."""
        wanted = verb.lower()
        for rule in self.verbs:
            if rule.verb.lower() == wanted:
                return rule
        return None

    @cached_property
    def _tag_set(self) -> frozenset[str]:
        return frozenset(t.upper() for t in self.transaction_tags)

    def is_transaction_tag(self, tag: str | None) -> bool:
        """Whether lines carrying *tag* (case-insensitive) are transactions.

        Untagged lines (*tag* is None) follow ``accept_untagged``.
        """
        if tag is None:
            return self.accept_untagged
        return tag.upper() in self._tag_set


@dataclass(frozen=True)
class ScanConfig:
    """Tuneable parameters for the parallel log scan."""

    workers: int = 4
    min_chunk_bytes: int = 256 * 1024
    # Forces an exact chunk count, ignoring min_chunk_bytes.
    chunks: int | None = None

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
        if self.min_chunk_bytes < 1:
            raise ValueError("min_chunk_bytes must be >= 1")
        if self.chunks is not None and self.chunks < 1:
            raise ValueError("chunks must be >= 1")


@dataclass(frozen=True)
class CacheConfig:
    """Settings for the persisted event cache."""

    file_path: str = field(default_factory=default_cache_file)
    # False leaves the cache file untouched; loads come back empty.
    enabled: bool = True


@dataclass(frozen=True)
class Settings:
    """Resolved locations of the transaction log and the cache file."""

    log_file: str = DEFAULT_LOG_FILE
    cache_file: str = field(default_factory=default_cache_file)

    @classmethod
    def from_env(cls, dotenv_path: str | Path | None = None) -> Settings:
        """Build settings from the environment.

        A ``.env`` file (searched upwards from the working directory unless
        *dotenv_path* is given) is loaded first; variables already present in the
        environment stay authoritative.
        """
        if dotenv_path is None:
            dotenv_path = find_dotenv(usecwd=True)
        load_dotenv(dotenv_path=dotenv_path, override=False)
        return cls(
            log_file=os.environ.get(LOG_FILE_ENV) or DEFAULT_LOG_FILE,
            cache_file=os.environ.get(CACHE_FILE_ENV) or default_cache_file(),
        )
