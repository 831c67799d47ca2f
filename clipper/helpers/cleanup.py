"""Best-effort removal of the temporary artifacts owned by a clip request."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


def _remove_path(target: Path) -> bool:
    """Remove *target* whether it is a file or directory.

    Returns ``True`` when something was deleted and ``False`` when the path
    did not exist. Other errors propagate to the caller.
    """

    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
        return True

    try:
        target.unlink()
    except FileNotFoundError:
        return False
    return True


def _iter_unique(paths: Iterable[Path | str]) -> list[Path]:
    seen: set[Path] = set()
    unique: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path in seen:
            continue
        seen.add(path)
        unique.append(path)
    return unique


def cleanup_paths(paths: Iterable[Path | str]) -> list[Path]:
    """Delete every path in *paths* and return the ones actually removed.

    Missing files are skipped and a failure on one path is logged without
    stopping the rest of the list. Never raises for an individual path.
    """

    removed: list[Path] = []
    for target in _iter_unique(paths):
        try:
            if _remove_path(target):
                removed.append(target)
                logger.debug("Removed %s", target)
            else:
                logger.debug("Nothing to remove at %s", target)
        except OSError as exc:
            logger.error("Error deleting %s: %s", target, exc)
    return removed


__all__ = ["cleanup_paths"]
