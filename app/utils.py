"""Shared utility functions."""

from __future__ import annotations

import os
import platform
import re
import subprocess
from pathlib import Path

ILLEGAL_FILENAME_CHARS = '<>:"/\\|?*'

_ILLEGAL_RE = re.compile("[" + re.escape(ILLEGAL_FILENAME_CHARS) + "\x00-\x1f]")


def format_size(size_bytes: int) -> str:
    """Format byte count to human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"


def open_folder(path: str | Path) -> None:
    """Open a folder in the system file manager."""
    path = Path(path)
    target = path if path.is_dir() else path.parent

    system = platform.system()
    if system == "Windows":
        os.startfile(str(target))  # noqa: S606
    elif system == "Darwin":
        subprocess.Popen(["open", str(target)])  # noqa: S603, S607
    else:
        subprocess.Popen(["xdg-open", str(target)])  # noqa: S603, S607


def sanitize_filename(name: str) -> str:
    """
    Make *name* usable as a single path component.

    Splits on every illegal character, drops the empty pieces and joins
    the rest with ``_``, so ``a:b??c`` becomes ``a_b_c``.  A name made only
    of illegal characters becomes ``_``.
    """
    parts = [p for p in _ILLEGAL_RE.split(name) if p]
    return "_".join(parts) or "_"
