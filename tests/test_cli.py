from pathlib import Path

import pytest

from clipper.cli.clip_cli import ConsoleProgress
from clipper.cli.clip_cli import main as clip_main
from clipper.cli.ytcheck_cli import main as ytcheck_main
from clipper.errors import RetrievalFailed
from clipper.helpers.logging import notify
from clipper.interfaces.progress import ClipEvent, ClipEventType


class _FakeOrchestrator:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = []

    def clip_to(self, request, destination):
        self.calls.append((request, destination))
        notify(ClipEvent(type=ClipEventType.STEP_PROGRESS, step="retrieve", data={"progress": 0.5}))
        if self.error:
            raise self.error
        return Path(destination)


def test_clip_cli_builds_request(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    fake = _FakeOrchestrator()
    monkeypatch.setattr("clipper.cli.clip_cli._get_orchestrator", lambda: fake)

    clip_main(
        [
            "https://youtu.be/test",
            "--start",
            "00:00:10",
            "--end",
            "00:00:20",
            "--quality",
            "480p",
            "--output",
            "out.mp4",
        ]
    )

    request, destination = fake.calls[0]
    assert (request.url, request.start, request.end, request.quality) == (
        "https://youtu.be/test",
        "00:00:10",
        "00:00:20",
        "480p",
    )
    assert destination == "out.mp4"
    out = capsys.readouterr().out
    assert "retrieve: 50%" in out
    assert "Saved clip to out.mp4" in out


def test_clip_cli_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeOrchestrator()
    monkeypatch.setattr("clipper.cli.clip_cli._get_orchestrator", lambda: fake)

    clip_main(["https://youtu.be/test", "--start", "0:01", "--end", "0:02"])

    request, destination = fake.calls[0]
    assert request.quality == "720p"
    assert destination == "clip.mp4"


def test_clip_cli_exits_on_error(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    fake = _FakeOrchestrator(error=RetrievalFailed("yt-dlp exited with code 1: boom"))
    monkeypatch.setattr("clipper.cli.clip_cli._get_orchestrator", lambda: fake)

    with pytest.raises(SystemExit) as excinfo:
        clip_main(["https://youtu.be/test", "--start", "0:01", "--end", "0:02"])

    assert excinfo.value.code == 1
    assert "error: yt-dlp exited with code 1" in capsys.readouterr().err


def test_console_progress_prints_each_percent_once(capsys: pytest.CaptureFixture) -> None:
    progress = ConsoleProgress()
    for fraction in (0.1, 0.1, 0.2):
        progress.handle_event(
            ClipEvent(type=ClipEventType.STEP_PROGRESS, step="trim", data={"progress": fraction})
        )
    progress.handle_event(ClipEvent(type=ClipEventType.STATE_CHANGED, message="done"))

    assert capsys.readouterr().out.splitlines() == ["  trim: 10%", "  trim: 20%"]


def test_ytcheck_prints_version(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setattr("clipper.cli.ytcheck_cli._get_version_reader", lambda: lambda: "2024.08.06")

    ytcheck_main([])

    assert capsys.readouterr().out.strip() == "2024.08.06"


def test_ytcheck_exits_on_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def _broken() -> str:
        raise RetrievalFailed("Could not start yt-dlp")

    monkeypatch.setattr("clipper.cli.ytcheck_cli._get_version_reader", lambda: _broken)

    with pytest.raises(SystemExit) as excinfo:
        ytcheck_main([])
    assert excinfo.value.code == 1
