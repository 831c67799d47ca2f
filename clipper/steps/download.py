"""Retrieve source media with yt-dlp running as a child process."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol

from clipper.common.process import ExitInfo, SpawnError, run_command
from clipper.config import ClipperSettings
from clipper.errors import InvalidFormat, RetrievalFailed
from clipper.helpers.formatting import tail_lines

from .timecode import format_section_time

logger = logging.getLogger(__name__)

ProgressHook = Callable[[float, dict[str, Any]], None]

PROGRESS_REGEX = re.compile(r"\[download\]\s+(\d+(?:\.\d+)?)%")


@dataclass(frozen=True)
class DownloadSection:
    start_seconds: int
    end_seconds: int

    def to_arg(self) -> str:
        return f"*{format_section_time(self.start_seconds)}-{format_section_time(self.end_seconds)}"


@dataclass(frozen=True)
class RetrievalJob:
    source_url: str
    format_selector: str
    output_path: Path
    section: DownloadSection | None = None

    @property
    def part_path(self) -> Path:
        """Sibling yt-dlp writes to while the download is in flight."""
        return self.output_path.with_name(self.output_path.name + ".part")


def build_format_selector(quality: str, format_map: Mapping[str, str]) -> str:
    try:
        return format_map[quality]
    except KeyError:
        raise InvalidFormat(
            f"unsupported quality {quality!r}; expected one of {', '.join(format_map)}"
        ) from None


def build_download_command(job: RetrievalJob, settings: ClipperSettings) -> list[str]:
    """Return the full yt-dlp argv for ``job``."""

    cmd = [
        *settings.ytdlp_command(),
        "-f", job.format_selector,
        "--merge-output-format", "mp4",
        "--no-playlist",
        "--no-warnings",
        "--newline",
        "--force-overwrites",
        "--retries", str(settings.retries),
        "--fragment-retries", str(settings.fragment_retries),
        "--file-access-retries", str(settings.file_access_retries),
        "--max-filesize", settings.max_filesize,
        "-o", str(job.output_path),
    ]
    for extractor_arg in settings.extractor_args:
        cmd += ["--extractor-args", extractor_arg]
    if job.section is not None:
        cmd += ["--download-sections", job.section.to_arg(), "--force-keyframes-at-cuts"]
    # "--" keeps a locator starting with "-" from being read as an option
    cmd += ["--", job.source_url]
    return cmd


def _build_line_hook(callback: ProgressHook | None) -> Callable[[str], None] | None:
    if callback is None:
        return None

    def _hook(line: str) -> None:
        match = PROGRESS_REGEX.search(line)
        if not match:
            return
        percent = float(match.group(1))
        callback(max(0.0, min(1.0, percent / 100.0)), {"line": line})

    return _hook


class Downloader(Protocol):
    def download(
        self, job: RetrievalJob, *, progress_callback: ProgressHook | None = None
    ) -> ExitInfo:
        raise NotImplementedError


class YtDlpDownloader:
    """Runs yt-dlp for a :class:`RetrievalJob` and checks its exit status."""

    def __init__(self, settings: ClipperSettings):
        self.settings = settings

    def download(
        self, job: RetrievalJob, *, progress_callback: ProgressHook | None = None
    ) -> ExitInfo:
        cmd = build_download_command(job, self.settings)
        logger.info("Downloading %s (%s) to %s", job.source_url, job.format_selector, job.output_path)
        logger.debug("yt-dlp command: %s", cmd)
        try:
            info = run_command(cmd, on_line=_build_line_hook(progress_callback))
        except SpawnError as exc:
            raise RetrievalFailed(str(exc)) from exc

        if not info.ok:
            details = tail_lines(info.output_tail) or "no output"
            raise RetrievalFailed(f"yt-dlp exited with code {info.returncode}: {details}")
        if progress_callback:
            progress_callback(1.0, {"line": "finished"})
        logger.info("Download finished in %.2fs", info.elapsed_seconds)
        return info


def get_tool_version(settings: ClipperSettings) -> str:
    """Return the version string reported by ``yt-dlp --version``."""

    try:
        info = run_command([*settings.ytdlp_command(), "--version"])
    except SpawnError as exc:
        raise RetrievalFailed(str(exc)) from exc
    if not info.ok:
        raise RetrievalFailed(
            f"yt-dlp --version exited with code {info.returncode}: {tail_lines(info.output_tail)}"
        )
    version = tail_lines(info.output_tail, limit=1)
    if not version:
        raise RetrievalFailed("yt-dlp --version printed nothing")
    return version


__all__ = [
    "DownloadSection",
    "Downloader",
    "ProgressHook",
    "RetrievalJob",
    "YtDlpDownloader",
    "build_download_command",
    "build_format_selector",
    "get_tool_version",
]
