"""Error taxonomy for clip requests.

Client input problems map to HTTP 400, failures of the external tools or the
filesystem map to HTTP 500 with the underlying message attached as details.
"""

from __future__ import annotations


class ClipError(Exception):
    """Base class for every error raised while serving a clip request."""

    status_code: int = 500
    kind: str = "clip_error"


class ClipRequestError(ClipError, ValueError):
    """The caller supplied parameters that can never produce a clip."""

    status_code = 400
    kind = "invalid_request"


class InvalidFormat(ClipRequestError):
    kind = "invalid_format"


class InvalidRange(ClipRequestError):
    kind = "invalid_range"


class DurationExceeded(ClipRequestError):
    kind = "duration_exceeded"


class DownstreamError(ClipError, RuntimeError):
    """An external tool or the filesystem failed while processing a request."""

    status_code = 500
    kind = "downstream_error"


class RetrievalFailed(DownstreamError):
    kind = "retrieval_failed"


class WatchFailed(DownstreamError):
    kind = "watch_failed"


class WatchTimeout(DownstreamError):
    kind = "watch_timeout"


class TranscodeFailed(DownstreamError):
    kind = "transcode_failed"


__all__ = [
    "ClipError",
    "ClipRequestError",
    "DownstreamError",
    "DurationExceeded",
    "InvalidFormat",
    "InvalidRange",
    "RetrievalFailed",
    "TranscodeFailed",
    "WatchFailed",
    "WatchTimeout",
]
