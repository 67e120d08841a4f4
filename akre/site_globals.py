"""Shared data made available to every page under the ``globals`` key."""
from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from .config_loader import DataLoadError, load_data_file
from .console import Diagnostics


def load_globals(path: Path, console: Diagnostics) -> Mapping[str, Any]:
    """Load the globals file once for a build.

    A missing or malformed file is reported and replaced by an empty mapping
    so the build carries on without globals.
    """

    try:
        data = load_data_file(path)
    except DataLoadError as exc:
        console.error(f"Could not load globals: {exc}")
        return MappingProxyType({})
    console.debug(f"Loaded {len(data)} global key(s) from {path.name}")
    return MappingProxyType(data)
