"""Root conftest — suite markers and transaction-log fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

SAMPLE_LINES = [
    "[2024-01-15T14:30:45+0100] [ALPM] installed firefox (120.0)",
    "[2024-01-15T14:30:46+0100] [ALPM-SCRIPTLET] >>> Updated font cache",
    "[2024-01-16T09:15:22+0100] [ALPM] upgraded linux (6.6-1 -> 6.7-1)",
    "[2024-01-16T09:15:30+0100] [PACMAN] Running 'pacman -Syu'",
    "[2024-01-17T16:45:33+0100] [ALPM] removed old-package (1.0)",
]


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Attach suite markers from test path.

    - `tests/unit/*` -> `unit`
    - `tests/integration/*` -> `integration`
    """
    root = Path(__file__).resolve().parents[1]
    for item in items:
        item_path = Path(str(item.fspath)).resolve()
        try:
            rel = item_path.relative_to(root)
        except ValueError:
            continue

        parts = rel.parts
        if len(parts) < 2 or parts[0] != "tests":
            continue
        if parts[1] == "unit":
            item.add_marker(pytest.mark.unit)
        elif parts[1] == "integration":
            item.add_marker(pytest.mark.integration)


def as_log(lines: list[str]) -> bytes:
    """Join *lines* into newline-terminated log bytes."""
    return "".join(f"{line}\n" for line in lines).encode("utf-8")


@pytest.fixture()
def sample_log_bytes() -> bytes:
    return as_log(SAMPLE_LINES)


@pytest.fixture()
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "pacman.log"


@pytest.fixture()
def write_log(log_path: Path) -> Callable[[list[str]], Path]:
    """Write (replace) the log file with *lines*."""

    def _write(lines: list[str]) -> Path:
        log_path.write_bytes(as_log(lines))
        return log_path

    return _write


@pytest.fixture()
def append_log(log_path: Path) -> Callable[[list[str]], Path]:
    """Append *lines* to the log file."""

    def _append(lines: list[str]) -> Path:
        with log_path.open("ab") as fh:
            fh.write(as_log(lines))
        return log_path

    return _append
