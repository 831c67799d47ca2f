import colorama
from colorama import Fore, Style

colorama.init(autoreset=True)


def format_bytes(size: int) -> str:
    """Return ``size`` as a short human readable string (``1.5 MB``)."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def tail_lines(lines: list[str], limit: int = 5) -> str:
    """Join the last ``limit`` non-empty ``lines`` for error details."""
    kept = [line.strip() for line in lines if line.strip()]
    return "\n".join(kept[-limit:])


__all__ = ["Fore", "Style", "format_bytes", "tail_lines"]
