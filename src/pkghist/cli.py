"""Command-line entry point.

Usage:
    pkghist                     # full history, oldest first
    pkghist --status            # latest status of every package, by date
    pkghist --installed         # packages whose latest action is not a removal
    pkghist --status --query-installed
    pkghist --log-file ./pacman.log --no-cache --workers 8
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from datetime import datetime
from typing import TextIO

from pkghist.cache.store import CacheStore
from pkghist.cache.store import JsonFileCacheStore
from pkghist.config import CacheConfig
from pkghist.config import ScanConfig
from pkghist.config import Settings
from pkghist.engine import HistoryEngine
from pkghist.errors import CacheWriteError
from pkghist.errors import LogUnreadableError
from pkghist.errors import PackageQueryError
from pkghist.events.schemas import PackageEvent
from pkghist.history.reconstruct import PackageHistory
from pkghist.history.reconstruct import PackageStatus
from pkghist.observability import log_timing_summary
from pkghist.sources import query_explicit_packages

logger = logging.getLogger(__name__)

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
_NO_TIMESTAMP = "----------T--:--:--+----"


def _parse_args(argv: Sequence[str] | None, settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pkghist",
        description="Package install/upgrade/removal history from the pacman log.",
    )
    parser.add_argument("--log-file", default=settings.log_file)
    parser.add_argument("--cache-file", default=settings.cache_file)
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Parse the whole log and leave the cache file alone.",
    )
    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Discard the cache file before scanning.",
    )
    views = parser.add_mutually_exclusive_group()
    views.add_argument(
        "--status",
        dest="view",
        action="store_const",
        const="status",
        help="List every package once with its latest action, oldest first.",
    )
    views.add_argument(
        "--installed",
        dest="view",
        action="store_const",
        const="installed",
        help="Only list packages whose latest action is not a removal.",
    )
    parser.set_defaults(view="events")
    parser.add_argument(
        "--query-installed",
        action="store_true",
        help=(
            "Add explicitly installed packages missing from the log "
            "(pacman -Qeq) to the --status or --installed listing."
        ),
    )
    parser.add_argument("--workers", type=int, default=ScanConfig().workers)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)
    if args.workers < 1:
        parser.error("--workers must be >= 1")
    if args.query_installed and args.view == "events":
        parser.error("--query-installed needs --status or --installed")
    return args


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _format_timestamp(ts: datetime | None) -> str:
    return ts.strftime(_TIMESTAMP_FORMAT) if ts is not None else _NO_TIMESTAMP


def format_event(event: PackageEvent) -> str:
    version = event.version or ""
    if event.previous_version:
        version = f"{event.previous_version} -> {version}"
    stamp = _format_timestamp(event.timestamp)
    line = f"{stamp} :: {event.action.code} :: {event.package_name}"
    return f"{line} ({version})" if version else line


def format_status(status: PackageStatus) -> str:
    code = status.current_action.code if status.current_action else "UNK"
    stamp = _format_timestamp(status.last_event_timestamp)
    line = f"{stamp} :: {code} :: {status.package_name}"
    return f"{line} ({status.version})" if status.version else line


def render(history: PackageHistory, *, view: str = "events", out: TextIO) -> None:
    """Write one line per event (``events``) or per package (``status``,
    ``installed``)."""
    if view == "events":
        lines = [format_event(e) for e in history.events]
    elif view == "status":
        lines = [format_status(s) for s in history.latest()]
    elif view == "installed":
        lines = [format_status(s) for s in history.installed()]
    else:
        raise ValueError(f"unknown view: {view!r}")
    for line in lines:
        out.write(line + "\n")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def _build_store(args: argparse.Namespace) -> CacheStore:
    store = JsonFileCacheStore(
        CacheConfig(file_path=args.cache_file, enabled=not args.no_cache)
    )
    if args.rebuild:
        try:
            store.clear()
        except CacheWriteError as exc:
            logger.warning("Could not discard cache: %s", exc)
    return store


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv, Settings.from_env())
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    known_installed: list[str] = []
    if args.query_installed:
        try:
            known_installed = query_explicit_packages()
        except PackageQueryError as exc:
            logger.warning("Skipping installed-package query: %s", exc)

    engine = HistoryEngine(_build_store(args), ScanConfig(workers=args.workers))
    try:
        result = engine.run(args.log_file, known_installed=known_installed)
    except LogUnreadableError as exc:
        print(f"pkghist: {exc}", file=sys.stderr)
        return 1

    render(result.history, view=args.view, out=sys.stdout)
    if args.verbose:
        log_timing_summary()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
