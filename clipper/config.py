"""Central configuration for the clip service.

Sections are grouped by feature for easier editing. Values that operators
tune per deployment are read from the environment by :func:`load_settings`;
the resulting :class:`ClipperSettings` is passed explicitly to the
orchestrator and the app instead of being read as ambient state.
"""

from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping

# ---------------------------------------
# Server
# ---------------------------------------
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3001
# Origins the browser front-end is served from
DEFAULT_CORS_ALLOW_ORIGINS = (
    "http://localhost:3000",
    "https://yt-clipper.vercel.app",
    "https://yt-clipper-frontend.vercel.app",
)

# ---------------------------------------
# Clip limits
# ---------------------------------------
MAX_CLIP_SECONDS = 900
DEFAULT_QUALITY = "720p"
QUALITY_HEIGHTS: dict[str, int] = {"720p": 720, "480p": 480, "360p": 360}

# ---------------------------------------
# Retrieval (yt-dlp)
# ---------------------------------------
DEFAULT_RETRIES = 10
DEFAULT_FRAGMENT_RETRIES = 10
DEFAULT_FILE_ACCESS_RETRIES = 10
DEFAULT_MAX_FILESIZE = "500M"


def height_capped_selector(height: int) -> str:
    """Return a yt-dlp format selector capped at ``height`` pixels.

    Prefers separate mp4/m4a streams merged into one container, then a single
    progressive mp4, then anything at the height cap, then whatever is best.
    """

    return (
        f"bestvideo[height<={height}][ext=mp4]+bestaudio[ext=m4a]"
        f"/best[height<={height}][ext=mp4]"
        f"/best[height<={height}]"
        "/best"
    )


QUALITY_FORMAT_MAP: dict[str, str] = {
    quality: height_capped_selector(height) for quality, height in QUALITY_HEIGHTS.items()
}

# ---------------------------------------
# Completion watcher
# ---------------------------------------
WATCH_INTERVAL_SECONDS = 1.0
WATCH_TIMEOUT_SECONDS = 60.0

# ---------------------------------------
# Concurrency
# ---------------------------------------
# Upper bound on requests running external tools at the same time
MAX_CONCURRENT_JOBS = 2


class Environment(str, Enum):
    """Deployment flavour; selects how the retrieval tool is invoked."""

    PRODUCTION = "production"
    DEVELOPMENT = "development"


class TrimStrategy(str, Enum):
    """Where the transcode step writes its output."""

    SEPARATE = "separate"
    IN_PLACE = "in_place"


def _default_temp_dir() -> Path:
    return Path(tempfile.gettempdir()) / "yt_clipper"


@dataclass(frozen=True)
class ClipperSettings:
    environment: Environment = Environment.DEVELOPMENT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    temp_dir: Path = field(default_factory=_default_temp_dir)
    ytdlp_path: str | None = None
    ffmpeg_path: str = "ffmpeg"
    max_clip_seconds: int = MAX_CLIP_SECONDS
    watch_interval_seconds: float = WATCH_INTERVAL_SECONDS
    watch_timeout_seconds: float = WATCH_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES
    fragment_retries: int = DEFAULT_FRAGMENT_RETRIES
    file_access_retries: int = DEFAULT_FILE_ACCESS_RETRIES
    max_filesize: str = DEFAULT_MAX_FILESIZE
    extractor_args: tuple[str, ...] = ()
    quality_formats: Mapping[str, str] = field(default_factory=lambda: dict(QUALITY_FORMAT_MAP))
    use_section_download: bool = False
    trim_strategy: TrimStrategy = TrimStrategy.SEPARATE
    trim_reencode: bool = True
    max_concurrent_jobs: int = MAX_CONCURRENT_JOBS
    cors_allow_origins: tuple[str, ...] = DEFAULT_CORS_ALLOW_ORIGINS
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment is Environment.PRODUCTION

    def ytdlp_command(self) -> list[str]:
        """Return the argv prefix used to launch yt-dlp.

        An explicit ``ytdlp_path`` always wins. Production falls back to the
        ``yt-dlp`` binary on ``PATH``; development runs the module from the
        current interpreter so the pinned Python dependency is used.
        """

        if self.ytdlp_path:
            return [self.ytdlp_path]
        if self.is_production:
            return ["yt-dlp"]
        return [sys.executable, "-m", "yt_dlp"]


def _parse_csv(name: str, default: Iterable[str]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",") if item.strip()]
    return tuple(values) or tuple(default)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y")


def _resolve_environment() -> Environment:
    raw = os.environ.get("CLIPPER_ENV") or os.environ.get("NODE_ENV") or ""
    if raw.strip().lower() == Environment.PRODUCTION.value:
        return Environment.PRODUCTION
    return Environment.DEVELOPMENT


def load_settings() -> ClipperSettings:
    """Build :class:`ClipperSettings` from the current environment."""

    temp_override = os.environ.get("CLIPPER_TEMP_DIR")
    temp_dir = Path(temp_override).expanduser() if temp_override else _default_temp_dir()

    try:
        trim_strategy = TrimStrategy(os.environ.get("TRIM_STRATEGY", TrimStrategy.SEPARATE.value))
    except ValueError as exc:
        raise ValueError(
            f"TRIM_STRATEGY must be one of {[s.value for s in TrimStrategy]}"
        ) from exc

    return ClipperSettings(
        environment=_resolve_environment(),
        host=os.environ.get("HOST", DEFAULT_HOST),
        port=int(os.environ.get("PORT", str(DEFAULT_PORT))),
        temp_dir=temp_dir,
        ytdlp_path=os.environ.get("YTDLP_PATH") or None,
        ffmpeg_path=os.environ.get("FFMPEG_PATH", "ffmpeg"),
        max_clip_seconds=int(os.environ.get("MAX_CLIP_SECONDS", str(MAX_CLIP_SECONDS))),
        watch_interval_seconds=float(
            os.environ.get("WATCH_INTERVAL_SECONDS", str(WATCH_INTERVAL_SECONDS))
        ),
        watch_timeout_seconds=float(
            os.environ.get("WATCH_TIMEOUT_SECONDS", str(WATCH_TIMEOUT_SECONDS))
        ),
        retries=int(os.environ.get("YTDLP_RETRIES", str(DEFAULT_RETRIES))),
        fragment_retries=int(
            os.environ.get("YTDLP_FRAGMENT_RETRIES", str(DEFAULT_FRAGMENT_RETRIES))
        ),
        file_access_retries=int(
            os.environ.get("YTDLP_FILE_ACCESS_RETRIES", str(DEFAULT_FILE_ACCESS_RETRIES))
        ),
        max_filesize=os.environ.get("YTDLP_MAX_FILESIZE", DEFAULT_MAX_FILESIZE),
        extractor_args=_parse_csv("YTDLP_EXTRACTOR_ARGS", ()),
        use_section_download=_env_bool("USE_SECTION_DOWNLOAD", False),
        trim_strategy=trim_strategy,
        trim_reencode=_env_bool("TRIM_REENCODE", True),
        max_concurrent_jobs=max(1, int(os.environ.get("MAX_CONCURRENT_JOBS", str(MAX_CONCURRENT_JOBS)))),
        cors_allow_origins=_parse_csv("CORS_ALLOW_ORIGINS", DEFAULT_CORS_ALLOW_ORIGINS),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )


__all__ = [
    "ClipperSettings",
    "DEFAULT_CORS_ALLOW_ORIGINS",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "DEFAULT_QUALITY",
    "Environment",
    "MAX_CLIP_SECONDS",
    "MAX_CONCURRENT_JOBS",
    "QUALITY_FORMAT_MAP",
    "QUALITY_HEIGHTS",
    "TrimStrategy",
    "WATCH_INTERVAL_SECONDS",
    "WATCH_TIMEOUT_SECONDS",
    "height_capped_selector",
    "load_settings",
]
