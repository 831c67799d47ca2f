"""Logging helpers for clip steps with optional observer integration."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Callable, Generator, TypeVar

from clipper.interfaces.progress import ClipEvent, ClipEventType, ClipObserver

from .formatting import Fore, Style

T = TypeVar("T")

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)

_OBSERVER: ContextVar[ClipObserver | None] = ContextVar("clip_observer", default=None)


def configure_logging(level: str | int = "INFO") -> None:
    """Attach a single stream handler to the ``clipper`` logger."""

    root = logging.getLogger("clipper")
    root.setLevel(level)
    if not any(getattr(h, "_clipper_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._clipper_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)


def push_observer(observer: ClipObserver | None) -> Token[ClipObserver | None]:
    """Store ``observer`` in the context and return the token for later reset."""

    return _OBSERVER.set(observer)


def reset_observer(token: Token[ClipObserver | None]) -> None:
    """Restore the previous observer using ``token`` returned from :func:`push_observer`."""

    _OBSERVER.reset(token)


def _get_observer(override: ClipObserver | None) -> ClipObserver | None:
    """Return the active observer, preferring ``override`` when provided."""

    return override if override is not None else _OBSERVER.get()


def notify(event: ClipEvent, observer: ClipObserver | None = None) -> None:
    """Deliver ``event`` to the active observer; observer errors are only logged."""

    obs = _get_observer(observer)
    if obs is None:
        return
    try:
        obs.handle_event(event)
    except Exception:
        logger.exception("Observer failed to handle %s event", event.type.value)


@contextmanager
def log_timing(
    name: str,
    *,
    step_id: str | None = None,
    job_id: str | None = None,
    observer: ClipObserver | None = None,
) -> Generator[None, None, None]:
    """Print a colored start line and the elapsed time when the block exits.

    The block is reported to the active observer as one clip step:
    ``STEP_STARTED`` first, then ``STEP_COMPLETED`` or ``STEP_FAILED`` with
    the elapsed seconds. Exceptions are re-raised unchanged.
    """
    step = step_id or name
    print(f"{Fore.CYAN}{name}{Style.RESET_ALL}")
    notify(
        ClipEvent(type=ClipEventType.STEP_STARTED, job_id=job_id, message=name, step=step),
        observer,
    )
    start = time.perf_counter()
    try:
        yield
    except Exception as exc:
        elapsed = time.perf_counter() - start
        print(
            f"{Fore.RED}  ↳ failed after {Fore.MAGENTA}{elapsed:.2f}s{Fore.RED}: {exc}{Style.RESET_ALL}"
        )
        notify(
            ClipEvent(
                type=ClipEventType.STEP_FAILED,
                job_id=job_id,
                message=str(exc),
                step=step,
                data={"elapsed_seconds": elapsed, "error": str(exc)},
            ),
            observer,
        )
        raise
    elapsed = time.perf_counter() - start
    print(f"{Fore.GREEN}  ↳ completed in {Fore.MAGENTA}{elapsed:.2f}s{Style.RESET_ALL}")
    notify(
        ClipEvent(
            type=ClipEventType.STEP_COMPLETED,
            job_id=job_id,
            message=name,
            step=step,
            data={"elapsed_seconds": elapsed},
        ),
        observer,
    )


def run_step(
    name: str,
    func: Callable[..., T],
    *args: Any,
    step_id: str | None = None,
    job_id: str | None = None,
    observer: ClipObserver | None = None,
    **kwargs: Any,
) -> T:
    """Call ``func(*args, **kwargs)`` inside :func:`log_timing` and return its result."""
    with log_timing(name, step_id=step_id, job_id=job_id, observer=observer):
        return func(*args, **kwargs)


__all__ = [
    "configure_logging",
    "log_timing",
    "notify",
    "push_observer",
    "reset_observer",
    "run_step",
]
