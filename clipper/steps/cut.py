from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from clipper.common.process import ExitInfo, SpawnError, run_command
from clipper.config import ClipperSettings
from clipper.errors import TranscodeFailed
from clipper.helpers.formatting import tail_lines

logger = logging.getLogger(__name__)

ProgressHook = Callable[[float, dict[str, Any]], None]
CommandHook = Callable[[list[str]], None]

FFMPEG_TIME_REGEX = re.compile(r"time=(\d+):(\d+):(\d+(?:\.\d+)?)")


def build_trim_command(
    input_path: str | Path,
    output_path: str | Path,
    *,
    start: float,
    duration: float,
    ffmpeg_path: str = "ffmpeg",
    reencode: bool = True,
    extra_ffmpeg_args: Optional[list[str]] = None,
) -> list[str]:
    """Build the ffmpeg argv cutting ``[start, start + duration)`` from ``input_path``.

    If `reencode=False`, we stream copy for speed (may be slightly off by keyframes).
    If `reencode=True`, we re-encode with H.264/AAC for frame-accurate cuts.
    """
    if duration <= 0:
        raise ValueError("duration must be positive")

    # -ss before -i for fast seek
    cmd = [
        ffmpeg_path,
        "-hide_banner",
        "-y",
        "-ss", f"{start:.3f}",
        "-i", str(input_path),
        "-t", f"{duration:.3f}",
    ]

    if reencode:
        cmd += [
            "-c:v", "libx264",
            "-preset", "veryfast",
            "-crf", "18",
            "-c:a", "aac",
        ]
    else:
        cmd += ["-c", "copy"]

    cmd += ["-movflags", "+faststart"]

    if extra_ffmpeg_args:
        cmd += list(extra_ffmpeg_args)

    cmd.append(str(output_path))
    return cmd


def _build_line_hook(duration: float, callback: ProgressHook | None) -> Callable[[str], None] | None:
    if callback is None:
        return None

    def _hook(line: str) -> None:
        match = FFMPEG_TIME_REGEX.search(line)
        if not match:
            return
        elapsed = int(match.group(1)) * 3600 + int(match.group(2)) * 60 + float(match.group(3))
        callback(max(0.0, min(1.0, elapsed / duration)), {"line": line})

    return _hook


class FfmpegTranscoder:
    """Cuts a sub-range of a local media file into a new mp4 container."""

    def __init__(self, settings: ClipperSettings):
        self.settings = settings

    def trim(
        self,
        input_path: str | Path,
        output_path: str | Path,
        *,
        start: float,
        duration: float,
        progress_callback: ProgressHook | None = None,
        on_command: CommandHook | None = None,
    ) -> ExitInfo:
        """Write the trimmed clip to ``output_path``.

        ``progress_callback`` and ``on_command`` are diagnostics only. The
        outcome is either a returned :class:`ExitInfo` or
        :class:`~clipper.errors.TranscodeFailed`.
        """
        src = Path(input_path)
        out = Path(output_path)
        if not src.exists():
            raise TranscodeFailed(f"source not found: {src}")
        out.parent.mkdir(parents=True, exist_ok=True)

        cmd = build_trim_command(
            src,
            out,
            start=start,
            duration=duration,
            ffmpeg_path=self.settings.ffmpeg_path,
            reencode=self.settings.trim_reencode,
        )
        logger.info("FFmpeg command: %s", " ".join(cmd))
        if on_command:
            on_command(cmd)

        try:
            info = run_command(cmd, on_line=_build_line_hook(duration, progress_callback))
        except SpawnError as exc:
            raise TranscodeFailed(str(exc)) from exc

        if not info.ok:
            details = tail_lines(info.output_tail) or "no output"
            raise TranscodeFailed(f"ffmpeg exited with code {info.returncode}: {details}")
        logger.info("FFMPEG: wrote %s in %.2fs", out.name, info.elapsed_seconds)
        return info


class Transcoder(Protocol):
    def trim(
        self,
        input_path: str | Path,
        output_path: str | Path,
        *,
        start: float,
        duration: float,
        progress_callback: ProgressHook | None = None,
        on_command: CommandHook | None = None,
    ) -> ExitInfo:
        raise NotImplementedError


def staging_path_for(path: str | Path) -> Path:
    target = Path(path)
    return target.with_name(f"{target.stem}.trimming{target.suffix}")


def trim_in_place(
    transcoder: Transcoder,
    path: str | Path,
    *,
    start: float,
    duration: float,
    progress_callback: ProgressHook | None = None,
    on_command: CommandHook | None = None,
) -> Path:
    """Trim ``path`` and atomically replace it with the result.

    ffmpeg cannot write over its own input, so the clip goes to a sibling
    file first and is renamed over the source once the tool succeeded.
    """
    target = Path(path)
    staging = staging_path_for(target)
    try:
        transcoder.trim(
            target,
            staging,
            start=start,
            duration=duration,
            progress_callback=progress_callback,
            on_command=on_command,
        )
        try:
            os.replace(staging, target)
        except OSError as exc:
            raise TranscodeFailed(f"Could not replace {target}: {exc}") from exc
    finally:
        if staging.exists():
            staging.unlink()
    return target


__all__ = [
    "FfmpegTranscoder",
    "Transcoder",
    "build_trim_command",
    "staging_path_for",
    "trim_in_place",
]
