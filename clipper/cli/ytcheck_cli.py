import argparse

from clipper.errors import ClipError


def create_parser() -> argparse.ArgumentParser:
    return argparse.ArgumentParser(
        description="Print the version of the yt-dlp the service would invoke"
    )


def _get_version_reader():
    from clipper.config import load_settings
    from clipper.steps.download import get_tool_version

    settings = load_settings()
    return lambda: get_tool_version(settings)


def main(argv: list[str] | None = None) -> None:
    parser = create_parser()
    parser.parse_args(argv)
    read_version = _get_version_reader()
    try:
        print(read_version())
    except ClipError as exc:
        parser.exit(1, f"{exc}\n")


if __name__ == "__main__":  # pragma: no cover
    main()
