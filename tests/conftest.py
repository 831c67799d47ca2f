"""Test configuration helpers for import path setup and fake external tools."""

from __future__ import annotations

import stat
import sys
from pathlib import Path
from typing import Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]

root_path = str(ROOT)
if root_path not in sys.path:
    sys.path.insert(0, root_path)


FakeToolFactory = Callable[[str, str], Path]


@pytest.fixture
def fake_tool(tmp_path: Path) -> FakeToolFactory:
    """Write an executable ``/bin/sh`` script standing in for yt-dlp or ffmpeg.

    Each script records its argv, one argument per line, to ``<name>.args``
    next to itself before running ``body``.
    """

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def _make(name: str, body: str) -> Path:
        script = bin_dir / name
        script.write_text(
            "#!/bin/sh\n"
            f"printf '%s\\n' \"$@\" > \"{bin_dir / (name + '.args')}\"\n"
            f"{body}\n",
            encoding="utf-8",
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make

