"""Utility functions for logging."""

import time
from pathlib import Path

from ..core.paths import state_root

LOG_FILE_NAME = "chroot-pbuilder.log"


def log_path() -> Path:
    """Return the location of the debug log."""
    return state_root() / LOG_FILE_NAME


def _log_debug(message: str) -> None:
    """Append a simple debug line to the chroot-pbuilder log.

    This is intentionally very small and best-effort so it never interferes
    with the pbuilder run it describes. Writes timestamped lines to
    ``state_root()/chroot-pbuilder.log``; any IO error is ignored.
    """
    try:
        path = log_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
        with open(path, "a", encoding="utf-8") as f:
            f.write(f"[{timestamp}] {message}\n")
    except OSError:
        pass
