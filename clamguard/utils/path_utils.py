"""Path utility functions for ClamGuard."""

import os
from pathlib import Path
from typing import Iterator


def strip_trailing_separators(value: str) -> str:
    """
    Remove trailing path separators, keeping a bare root intact.

    Args:
        value: Raw path string

    Returns:
        Path string without trailing separators ("/" stays "/")
    """
    stripped = value.rstrip(os.sep)
    if os.altsep:
        stripped = stripped.rstrip(os.altsep)
    return stripped or value[:1]


def is_within(path: Path, base: Path) -> bool:
    """
    Check whether path is base itself or lives below it.

    Args:
        path: Path to test
        base: Candidate parent directory

    Returns:
        True if path is inside base
    """
    try:
        path.resolve().relative_to(base.resolve())
        return True
    except ValueError:
        return False


def iter_files(root: Path) -> Iterator[Path]:
    """
    Yield regular files below root (or root itself if it is a file).

    Unreadable directories are skipped silently; symlinks are not followed.
    """
    if root.is_file():
        yield root
        return

    for dirpath, _dirnames, filenames in os.walk(root, onerror=None):
        for name in filenames:
            candidate = Path(dirpath) / name
            if candidate.is_file() and not candidate.is_symlink():
                yield candidate


def format_bytes(num_bytes: float) -> str:
    """Format bytes as human-readable string.

    Args:
        num_bytes: Number of bytes.

    Returns:
        Formatted string like "1.5 GB".
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(num_bytes) < 1024.0:
            return f"{num_bytes:.1f} {unit}"
        num_bytes /= 1024.0
    return f"{num_bytes:.1f} PB"
