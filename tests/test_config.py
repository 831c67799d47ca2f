import sys
from pathlib import Path

import pytest

from clipper.config import (
    DEFAULT_CORS_ALLOW_ORIGINS,
    ClipperSettings,
    Environment,
    TrimStrategy,
    load_settings,
)

_KEYS = (
    "CLIPPER_ENV",
    "NODE_ENV",
    "PORT",
    "CLIPPER_TEMP_DIR",
    "YTDLP_PATH",
    "YTDLP_EXTRACTOR_ARGS",
    "USE_SECTION_DOWNLOAD",
    "TRIM_STRATEGY",
    "TRIM_REENCODE",
    "MAX_CONCURRENT_JOBS",
    "CORS_ALLOW_ORIGINS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    settings = load_settings()

    assert settings.port == 3001
    assert settings.environment is Environment.DEVELOPMENT
    assert settings.max_clip_seconds == 900
    assert settings.watch_interval_seconds == 1.0
    assert settings.watch_timeout_seconds == 60.0
    assert settings.trim_strategy is TrimStrategy.SEPARATE
    assert settings.trim_reencode is True
    assert settings.use_section_download is False
    assert settings.cors_allow_origins == DEFAULT_CORS_ALLOW_ORIGINS
    assert settings.ytdlp_command() == [sys.executable, "-m", "yt_dlp"]


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NODE_ENV", "production")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("CLIPPER_TEMP_DIR", str(tmp_path))
    monkeypatch.setenv("YTDLP_EXTRACTOR_ARGS", "youtube:player_client=android, ")
    monkeypatch.setenv("USE_SECTION_DOWNLOAD", "yes")
    monkeypatch.setenv("TRIM_STRATEGY", "in_place")
    monkeypatch.setenv("TRIM_REENCODE", "false")
    monkeypatch.setenv("MAX_CONCURRENT_JOBS", "0")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example,https://b.example")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.is_production
    assert settings.ytdlp_command() == ["yt-dlp"]
    assert settings.port == 8080
    assert settings.temp_dir == tmp_path
    assert settings.extractor_args == ("youtube:player_client=android",)
    assert settings.use_section_download is True
    assert settings.trim_strategy is TrimStrategy.IN_PLACE
    assert settings.trim_reencode is False
    assert settings.max_concurrent_jobs == 1
    assert settings.cors_allow_origins == ("https://a.example", "https://b.example")
    assert settings.log_level == "DEBUG"


def test_clipper_env_takes_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLIPPER_ENV", "development")
    monkeypatch.setenv("NODE_ENV", "production")
    assert load_settings().environment is Environment.DEVELOPMENT


def test_invalid_trim_strategy(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRIM_STRATEGY", "sideways")
    with pytest.raises(ValueError, match="TRIM_STRATEGY"):
        load_settings()


def test_settings_are_frozen() -> None:
    settings = ClipperSettings()
    with pytest.raises(AttributeError):
        settings.port = 1  # type: ignore[misc]
