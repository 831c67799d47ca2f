"""Detect when a file written by an external process has stopped growing.

The tools give no explicit "done" signal for their output files, so a file is
treated as complete once it exists, is non-empty, and reports the same size
on two samples one interval apart.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Callable, Protocol

from clipper.config import WATCH_INTERVAL_SECONDS, WATCH_TIMEOUT_SECONDS
from clipper.errors import WatchFailed, WatchTimeout

logger = logging.getLogger(__name__)


class FileWatcher(Protocol):
    def wait_until_stable(self, path: Path) -> int:
        """Block until ``path`` is stable and return its size in bytes."""
        raise NotImplementedError


class PollingFileWatcher:
    """Two-sample size equality check on a fixed polling interval."""

    def __init__(
        self,
        interval: float = WATCH_INTERVAL_SECONDS,
        timeout: float = WATCH_TIMEOUT_SECONDS,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval = interval
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock

    def _size(self, path: Path) -> int | None:
        """Return the size of ``path`` or ``None`` when it does not exist."""
        try:
            return os.stat(path).st_size
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise WatchFailed(f"Cannot inspect {path}: {exc}") from exc

    def wait_until_stable(self, path: Path) -> int:
        path = Path(path)
        deadline = self._clock() + self.timeout
        previous: int | None = None
        polls = 0

        while True:
            size = self._size(path)
            polls += 1
            if size is not None and size > 0 and size == previous:
                logger.debug("%s stable at %d bytes after %d polls", path, size, polls)
                return size
            previous = size if size else None
            if self._clock() >= deadline:
                raise WatchTimeout(f"Timeout waiting for file: {path}")
            self._sleep(self.interval)


__all__ = ["FileWatcher", "PollingFileWatcher"]
