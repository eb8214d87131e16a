"""History domain — chronological history and derived package status."""

from pkghist.history.reconstruct import PackageHistory
from pkghist.history.reconstruct import PackageState
from pkghist.history.reconstruct import PackageStatus
from pkghist.history.reconstruct import reconstruct
from pkghist.history.reconstruct import sort_events

__all__ = [
    "PackageHistory",
    "PackageState",
    "PackageStatus",
    "reconstruct",
    "sort_events",
]
