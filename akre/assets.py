"""Verbatim copy of the static asset tree."""
from __future__ import annotations

from pathlib import Path
import shutil

from .console import Diagnostics


def copy_static_assets(source: Path, destination: Path, console: Diagnostics) -> int:
    """Recursively copy ``source`` into ``destination``.

    Existing files are overwritten. Returns the number of files copied; a
    missing or unreadable source tree is reported and copies nothing.
    """

    if not source.is_dir():
        console.error(f"Could not copy static assets: {source} is not a directory")
        return 0

    copied: list[str] = []

    def _copy(src: str, dst: str) -> str:
        result = shutil.copy2(src, dst)
        copied.append(dst)
        return result

    try:
        shutil.copytree(source, destination, copy_function=_copy, dirs_exist_ok=True)
    except OSError as exc:
        console.error(f"Could not copy static assets from {source}: {exc}")
    console.debug(f"Copied {len(copied)} static file(s) into {destination}")
    return len(copied)
