"""Package manager queries."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence

from pkghist.errors import PackageQueryError

logger = logging.getLogger(__name__)

# Explicitly installed packages, names only.
EXPLICIT_PACKAGES_COMMAND: tuple[str, ...] = ("pacman", "-Qeq")


def query_explicit_packages(
    command: Sequence[str] = EXPLICIT_PACKAGES_COMMAND,
) -> list[str]:
    """Return package names reported by *command*, one per output line."""
    try:
        completed = subprocess.run(
            list(command),
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise PackageQueryError(f"{command[0]} not found") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip()
        raise PackageQueryError(
            f"{' '.join(command)} exited with status {exc.returncode}: {detail[:200]}"
        ) from exc
    except OSError as exc:
        raise PackageQueryError(f"cannot run {command[0]}: {exc}") from exc

    names = [line.strip() for line in completed.stdout.splitlines() if line.strip()]
    logger.debug("%s reported %d packages", " ".join(command), len(names))
    return names
