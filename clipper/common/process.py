"""Run an external command to completion while streaming its output lines."""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Sequence

logger = logging.getLogger(__name__)

LineCallback = Callable[[str], None]

TAIL_LINES = 20


class SpawnError(RuntimeError):
    """The command could not be started (missing binary, permissions)."""


@dataclass(slots=True)
class ExitInfo:
    args: list[str]
    returncode: int
    elapsed_seconds: float = 0.0
    output_tail: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run_command(
    args: Sequence[str],
    *,
    on_line: LineCallback | None = None,
    env: dict[str, str] | None = None,
) -> ExitInfo:
    """Start ``args``, wait for it to exit and return its :class:`ExitInfo`.

    stdout and stderr are merged and read line by line on a helper thread;
    carriage-return progress lines count as separate lines. ``on_line`` sees
    every line, and the last few are kept for error reporting. Raises
    :class:`SpawnError` when the process cannot be started.
    """

    argv = [str(arg) for arg in args]
    t0 = time.perf_counter()
    try:
        proc = subprocess.Popen(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            errors="replace",
            bufsize=1,
            env=env,
        )
    except OSError as exc:
        raise SpawnError(f"Could not start {argv[0]}: {exc}") from exc

    tail: deque[str] = deque(maxlen=TAIL_LINES)

    def _read_output() -> None:
        assert proc.stdout is not None
        for raw in iter(proc.stdout.readline, ""):
            line = raw.rstrip("\n")
            if not line:
                continue
            tail.append(line)
            if on_line is None:
                continue
            try:
                on_line(line)
            except Exception:
                logger.exception("Line callback failed for %s", argv[0])

    reader = threading.Thread(target=_read_output, daemon=True)
    reader.start()
    returncode = proc.wait()
    reader.join(timeout=5.0)
    if proc.stdout is not None and not reader.is_alive():
        proc.stdout.close()

    elapsed = time.perf_counter() - t0
    logger.debug("%s exited with %s after %.2fs", argv[0], returncode, elapsed)
    return ExitInfo(
        args=argv,
        returncode=returncode,
        elapsed_seconds=elapsed,
        output_tail=list(tail),
    )


__all__ = ["ExitInfo", "LineCallback", "SpawnError", "run_command"]
