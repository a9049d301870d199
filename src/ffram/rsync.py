"""rsync argument building and progress parsing."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

__all__ = [
    "copy_in_args",
    "parse_progress_bytes",
    "sync_back_args",
]


def _source_contents(source: Path) -> str:
    # Trailing slash: copy the contents of source, not source itself
    return f"{source}/"


def copy_in_args(rsync: str, source: Path, destination: Path) -> list[str]:
    """Archive copy of source into destination with per-file progress."""
    return [rsync, "-a", "--progress", _source_contents(source), str(destination)]


def sync_back_args(
    rsync: str,
    staged: Path,
    original: Path,
    excludes: Iterable[str] = (),
) -> list[str]:
    """Archive copy of staged back to original, deleting extras.

    Paths matching an exclude pattern are neither copied nor deleted, so
    they survive in original even when absent from staged.
    """
    args = [rsync, "-Ha", "--delete"]
    args.extend(f"--exclude={pattern}" for pattern in excludes)
    args.extend([_source_contents(staged), str(original)])
    return args


def parse_progress_bytes(line: str) -> int | None:
    """Byte count from an rsync --progress line.

    A line carries progress only if its first whitespace-delimited token is
    an unsigned decimal integer. The number is the byte count of the file
    currently being transferred, not a running total.

    Examples:
        "      32768 100%   31.25MB/s    0:00:00" -> 32768
        "prefs.js"                               -> None
        "sending incremental file list"          -> None
    """
    parts = line.split(maxsplit=1)
    if not parts:
        return None
    token = parts[0]
    if token.isascii() and token.isdigit():
        return int(token)
    return None
