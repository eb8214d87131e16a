"""Package event types and data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel
from pydantic import Field


class PackageAction(str, Enum):
    """Kinds of package transactions recorded in the log."""

    INSTALLED = "installed"
    UPGRADED = "upgraded"
    REMOVED = "removed"

    @property
    def code(self) -> str:
        """Three-letter display code (INS, UPG, REM)."""
        return _ACTION_CODES[self]


_ACTION_CODES = {
    PackageAction.INSTALLED: "INS",
    PackageAction.UPGRADED: "UPG",
    PackageAction.REMOVED: "REM",
}


@dataclass(frozen=True)
class TokenizedLine:
    """One log line split into its bracketed prefix parts and free text."""

    timestamp: datetime
    tag: str | None
    text: str


class PackageEvent(BaseModel):
    """A single immutable package transaction."""

    model_config = {"frozen": True}

    package_name: str = Field(
        min_length=1,
        description="Canonical package name as written by the package manager.",
    )
    action: PackageAction = Field(
        description="Transaction kind.",
    )
    timestamp: datetime = Field(
        description="Timezone-aware time taken from the line's bracketed prefix.",
    )
    version: str | None = Field(
        default=None,
        description="Version left by the action (removed version for removals).",
    )
    previous_version: str | None = Field(
        default=None,
        description="Old version of an ``old -> new`` transition.",
    )
