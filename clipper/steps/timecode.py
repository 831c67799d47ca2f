"""Conversion between ``HH:MM:SS`` text and integer seconds."""

from __future__ import annotations

from clipper.errors import DurationExceeded, InvalidFormat, InvalidRange


def parse_timecode(text: str) -> int:
    """Return the number of seconds described by ``text``.

    The rightmost field is seconds, then minutes, then hours. Missing
    high-order fields count as zero, so ``"90"`` and ``"1:30"`` are both
    accepted.
    """

    if not isinstance(text, str):
        raise InvalidFormat(f"timecode must be a string, got {type(text).__name__}")
    fields = text.strip().split(":")
    if len(fields) > 3:
        raise InvalidFormat(f"invalid timecode {text!r}: expected HH:MM:SS")

    total = 0
    for field in fields:
        # isdigit() would also accept superscripts and other unicode digits
        if not field or not (field.isascii() and field.isdigit()):
            raise InvalidFormat(
                f"invalid timecode {text!r}: fields must be non-negative integers"
            )
        total = total * 60 + int(field)
    return total


def format_timecode(seconds: int) -> str:
    """Return ``seconds`` as zero padded ``HH:MM:SS``."""

    if seconds < 0:
        raise InvalidFormat(f"cannot format negative seconds: {seconds}")
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def normalize_timecode(text: str) -> str:
    return format_timecode(parse_timecode(text))


def format_section_time(seconds: int) -> str:
    """Format seconds for ``yt-dlp --download-sections`` (``M:SS`` or ``H:MM:SS``)."""

    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def validate_range(start_seconds: int, end_seconds: int, max_seconds: int) -> int:
    """Return the clip duration or raise when the range cannot be served."""

    if end_seconds <= start_seconds:
        raise InvalidRange("end must be > start")
    duration = end_seconds - start_seconds
    if duration > max_seconds:
        raise DurationExceeded(
            f"clip duration {duration}s exceeds the maximum of {max_seconds}s"
        )
    return duration


__all__ = [
    "format_section_time",
    "format_timecode",
    "normalize_timecode",
    "parse_timecode",
    "validate_range",
]
