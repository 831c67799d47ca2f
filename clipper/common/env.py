"""Minimal ``.env`` loader applied before settings are read."""

from __future__ import annotations

import os
from pathlib import Path


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def load_env(path: Path | str = Path(".env")) -> dict[str, str]:
    """Load ``KEY=VALUE`` pairs from ``path`` into ``os.environ``.

    Blank lines, ``#`` comments and an optional ``export`` prefix are
    accepted. Variables already present in the environment are left alone.
    Returns the pairs that were applied.
    """

    env_path = Path(path)
    if not env_path.exists():
        return {}

    applied: dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key or key in os.environ:
            continue
        os.environ[key] = _strip_quotes(value.strip())
        applied[key] = os.environ[key]
    return applied


__all__ = ["load_env"]
