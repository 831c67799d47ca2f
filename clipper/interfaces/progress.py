"""Clip request progress events for optional observers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import time
from typing import Any, Protocol


class ClipEventType(str, Enum):
    """Enumerates the event categories emitted while serving a clip request."""

    REQUEST_STARTED = "request_started"
    STATE_CHANGED = "state_changed"
    STEP_STARTED = "step_started"
    STEP_COMPLETED = "step_completed"
    STEP_FAILED = "step_failed"
    STEP_PROGRESS = "step_progress"
    COMMAND_STARTED = "command_started"
    REQUEST_COMPLETED = "request_completed"


@dataclass(slots=True)
class ClipEvent:
    """Represents an event dispatched by the orchestrator or a tool invoker."""

    type: ClipEventType
    job_id: str | None = None
    message: str | None = None
    step: str | None = None
    data: dict[str, Any] | None = None
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def progress(cls, job_id: str | None, step: str, fraction: float, **data: Any) -> ClipEvent:
        """Build a ``STEP_PROGRESS`` event; ``fraction`` is clamped to ``[0, 1]``."""

        clamped = max(0.0, min(1.0, float(fraction)))
        return cls(
            type=ClipEventType.STEP_PROGRESS,
            job_id=job_id,
            step=step,
            data={"progress": clamped, **data},
        )

    @property
    def fraction(self) -> float | None:
        """Progress in ``[0, 1]`` for ``STEP_PROGRESS`` events, else ``None``."""

        if self.type is not ClipEventType.STEP_PROGRESS or not self.data:
            return None
        value = self.data.get("progress")
        return None if value is None else float(value)

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serialisable representation of the event."""

        payload: dict[str, Any] = {
            "type": self.type.value,
            "timestamp": self.timestamp,
        }
        if self.job_id is not None:
            payload["job_id"] = self.job_id
        if self.message is not None:
            payload["message"] = self.message
        if self.step is not None:
            payload["step"] = self.step
        if self.data:
            payload["data"] = self.data
        return payload


class ClipObserver(Protocol):
    """Protocol for consumers interested in clip events.

    Events are observability only; raising from ``handle_event`` does not
    change the outcome of a request.
    """

    def handle_event(self, event: ClipEvent) -> None:
        """Handle an event dispatched while a clip is being produced."""
        raise NotImplementedError


__all__ = ["ClipEvent", "ClipEventType", "ClipObserver"]
