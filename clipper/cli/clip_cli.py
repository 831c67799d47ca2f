import argparse

from clipper.config import DEFAULT_QUALITY, QUALITY_HEIGHTS
from clipper.errors import ClipError
from clipper.interfaces.progress import ClipEvent


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Cut a clip out of a YouTube video and save it as mp4"
    )
    parser.add_argument("url", help="YouTube video URL")
    parser.add_argument("--start", required=True, help="Clip start as HH:MM:SS")
    parser.add_argument("--end", required=True, help="Clip end as HH:MM:SS")
    parser.add_argument(
        "--quality",
        default=DEFAULT_QUALITY,
        choices=sorted(QUALITY_HEIGHTS, key=QUALITY_HEIGHTS.get, reverse=True),
        help="Maximum vertical resolution",
    )
    parser.add_argument("--output", default="clip.mp4", help="Path to save the clip")
    return parser


class ConsoleProgress:
    """Print whole-percent progress for each tool step."""

    def __init__(self) -> None:
        self._last: dict[str, int] = {}

    def handle_event(self, event: ClipEvent) -> None:
        fraction = event.fraction
        if fraction is None:
            return
        percent = int(fraction * 100)
        step = event.step or "step"
        if self._last.get(step) == percent:
            return
        self._last[step] = percent
        print(f"  {step}: {percent}%")


def _get_orchestrator():
    from clipper.common.env import load_env
    from clipper.config import load_settings
    from clipper.helpers.logging import configure_logging
    from clipper.pipeline import ClipOrchestrator

    load_env()
    settings = load_settings()
    configure_logging(settings.log_level)
    return ClipOrchestrator(settings)


def main(argv: list[str] | None = None) -> None:
    from clipper.helpers.logging import push_observer, reset_observer
    from clipper.pipeline import ClipRequest

    parser = create_parser()
    args = parser.parse_args(argv)
    orchestrator = _get_orchestrator()
    request = ClipRequest(url=args.url, start=args.start, end=args.end, quality=args.quality)
    token = push_observer(ConsoleProgress())
    try:
        saved = orchestrator.clip_to(request, args.output)
    except ClipError as exc:
        parser.exit(1, f"error: {exc}\n")
    finally:
        reset_observer(token)
    print(f"Saved clip to {saved}")


if __name__ == "__main__":  # pragma: no cover
    main()
