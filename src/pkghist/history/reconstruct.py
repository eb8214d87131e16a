"""State reconstruction: folds ordered events into per-package status."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from enum import Enum

from pkghist.events.schemas import PackageAction
from pkghist.events.schemas import PackageEvent


class PackageState(str, Enum):
    """Lifecycle state derived from a package's latest event."""

    INSTALLED = "installed"
    REMOVED = "removed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PackageStatus:
    """Current status of one package, derived from its events."""

    package_name: str
    current_action: PackageAction | None = None
    last_event_timestamp: datetime | None = None
    version: str | None = None

    @classmethod
    def from_event(cls, event: PackageEvent) -> PackageStatus:
        return cls(
            package_name=event.package_name,
            current_action=event.action,
            last_event_timestamp=event.timestamp,
            version=event.version,
        )

    @property
    def state(self) -> PackageState:
        if self.current_action is None:
            return PackageState.UNKNOWN
        if self.current_action is PackageAction.REMOVED:
            return PackageState.REMOVED
        return PackageState.INSTALLED


@dataclass(frozen=True)
class PackageHistory:
    """Chronological event list plus the status table folded from it."""

    events: list[PackageEvent] = field(default_factory=list)
    statuses: dict[str, PackageStatus] = field(default_factory=dict)

    def latest(self) -> list[PackageStatus]:
        """Every package's latest status, removed and unknown ones included.

        Same order as ``installed()``.
        """
        return sorted(self.statuses.values(), key=_status_sort_key)

    def installed(self) -> list[PackageStatus]:
        """Packages whose latest action is not a removal.

        Packages with no recorded events come first, then the rest by the
        time of their last event; ties are ordered by name.
        """
        present = [
            s for s in self.statuses.values() if s.state is not PackageState.REMOVED
        ]
        return sorted(present, key=_status_sort_key)

    def installed_names(self) -> set[str]:
        return {s.package_name for s in self.installed()}


def _status_sort_key(status: PackageStatus) -> tuple[bool, float, str]:
    ts = status.last_event_timestamp
    return (ts is not None, ts.timestamp() if ts else 0.0, status.package_name)


def sort_events(events: Iterable[PackageEvent]) -> list[PackageEvent]:
    """Stable sort by timestamp; equal timestamps keep log order."""
    return sorted(events, key=lambda e: e.timestamp)


def reconstruct(
    events: Iterable[PackageEvent],
    known_installed: Iterable[str] = (),
) -> PackageHistory:
    """Fold *events* (in log order) into a ``PackageHistory``.

    *known_installed* names packages the package manager reports as
    present; those without any event get an ``unknown`` status.
    """
    ordered = sort_events(events)
    statuses: dict[str, PackageStatus] = {}
    for event in ordered:
        # Later events overwrite earlier ones; ties resolve to the later line.
        statuses[event.package_name] = PackageStatus.from_event(event)
    for name in known_installed:
        if name and name not in statuses:
            statuses[name] = PackageStatus(package_name=name)
    return PackageHistory(events=ordered, statuses=statuses)
