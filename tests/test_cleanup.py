from pathlib import Path

import pytest

from clipper.helpers import cleanup as cleanup_module
from clipper.helpers.cleanup import cleanup_paths


def test_cleanup_removes_files_and_directories(tmp_path: Path) -> None:
    job_dir = tmp_path / "job"
    job_dir.mkdir()
    source = job_dir / "output_1.mp4"
    trimmed = job_dir / "trimmed_1.mp4"
    source.write_bytes(b"v")
    trimmed.write_bytes(b"t")
    (job_dir / "output_1.f137.mp4").write_bytes(b"fragment")

    removed = cleanup_paths([source, trimmed, job_dir])

    assert removed == [source, trimmed, job_dir]
    assert not job_dir.exists()


def test_cleanup_skips_missing_and_duplicate_paths(tmp_path: Path) -> None:
    present = tmp_path / "present.mp4"
    present.write_bytes(b"v")

    removed = cleanup_paths([tmp_path / "missing.mp4", present, str(present)])

    assert removed == [present]


def test_cleanup_continues_after_a_failing_path(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    first = tmp_path / "first.mp4"
    locked = tmp_path / "locked.mp4"
    last = tmp_path / "last.mp4"
    for path in (first, locked, last):
        path.write_bytes(b"x")

    original = cleanup_module._remove_path

    def _flaky(target: Path) -> bool:
        if target == locked:
            raise PermissionError(13, "Permission denied", str(target))
        return original(target)

    monkeypatch.setattr(cleanup_module, "_remove_path", _flaky)

    removed = cleanup_paths([first, locked, last])

    assert removed == [first, last]
    assert locked.exists()
    assert "Error deleting" in caplog.text
