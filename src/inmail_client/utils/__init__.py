"""Utility functions for the In-Mail client."""

import re
from pathlib import Path

_UNSAFE_FILENAME_CHARS = re.compile(r'[\x00-\x1f<>:"/\\|?*]')


def safe_filename(name: str, fallback: str = "attachment") -> str:
    """Reduce a server-supplied filename to a single safe path component.

    Args:
        name: Suggested filename, possibly containing directories.
        fallback: Name used when nothing usable remains.

    Returns:
        A filename without path separators or control characters.
    """

    base = re.split(r"[\\/]", name)[-1]
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", base).strip(" .")
    return cleaned or fallback


def unique_path(directory: Path, filename: str) -> Path:
    """Return ``directory/filename``, adding `` (n)`` before the suffix if taken."""

    candidate = directory / filename
    stem, suffix = candidate.stem, candidate.suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem} ({counter}){suffix}"
        counter += 1
    return candidate


def format_size(size: int) -> str:
    """Format a byte count the way the attachment list shows it (KB, 2 decimals)."""

    return f"{size / 1024:.2f} KB"
