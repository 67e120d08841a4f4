"""Partial registry, helpers and rendering around the Handlebars compiler."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping
import re
import threading

from pybars import Compiler, PybarsError, strlist

from .config_loader import TEMPLATE_EXT
from .console import Diagnostics


_LINE_BREAK_PATTERN = re.compile(r"\r\n|\n|\r")

_ESCAPE_TABLE = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#x27;",
        "`": "&#x60;",
        "=": "&#x3D;",
    }
)

# pybars keeps its code builder on the Compiler class, so compilation is not
# safe to run from several threads at once.
_COMPILE_LOCK = threading.Lock()


class TemplateError(ValueError):
    """Raised when a template cannot be compiled or rendered."""


def escape_expression(value: Any) -> str:
    """HTML-escape ``value`` the same way Handlebars escapes ``{{expr}}``."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).translate(_ESCAPE_TABLE)


def breaklines(this: Any, text: Any) -> strlist:
    """Escape ``text`` and turn every line break into ``<br>``.

    The result is a :class:`pybars.strlist`, which the engine emits verbatim.
    """

    escaped = escape_expression(text)
    return strlist([_LINE_BREAK_PATTERN.sub("<br>", escaped)])


HELPERS: Mapping[str, Callable[..., Any]] = MappingProxyType({"breaklines": breaklines})


@dataclass(frozen=True, slots=True)
class PartialRegistry:
    """Snapshot of partial sources keyed by file stem, built once per build."""

    sources: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "sources", MappingProxyType(dict(self.sources)))

    def __contains__(self, name: object) -> bool:
        return name in self.sources

    def __len__(self) -> int:
        return len(self.sources)

    def names(self) -> list[str]:
        return sorted(self.sources)


def load_partials(partials_dir: Path, console: Diagnostics) -> PartialRegistry:
    """Scan ``partials_dir`` and register every template file by its stem."""

    try:
        entries = sorted(partials_dir.iterdir())
    except OSError as exc:
        console.error(f"Could not read partials directory {partials_dir}: {exc}")
        return PartialRegistry()

    sources: Dict[str, str] = {}
    for entry in entries:
        if entry.suffix != TEMPLATE_EXT or not entry.is_file():
            console.info(f"Partials directory contains non {TEMPLATE_EXT} file: {entry.name}")
            continue
        try:
            sources[entry.stem] = entry.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            console.error(f"Could not read partial {entry.name}: {exc}")
            continue
        console.debug(f"Registered partial '{entry.stem}'")
    return PartialRegistry(sources)


def compile_template(source: str) -> Callable[..., Any]:
    with _COMPILE_LOCK:
        try:
            return Compiler().compile(source)
        except PybarsError as exc:
            raise TemplateError(str(exc)) from exc
        except Exception as exc:  # the grammar raises its own parse errors
            raise TemplateError(f"Invalid template syntax: {exc}") from exc


class TemplateRenderer:
    """Renders page templates with the shared partials and helpers.

    Partials are compiled once when the renderer is created; a partial that
    fails to compile is reported and left out.
    """

    def __init__(self, registry: PartialRegistry, console: Diagnostics) -> None:
        compiled: Dict[str, Callable[..., Any]] = {}
        for name in registry.names():
            try:
                compiled[name] = compile_template(registry.sources[name])
            except TemplateError as exc:
                console.error(f"Could not compile partial {name}{TEMPLATE_EXT}: {exc}")
        self._partials: Mapping[str, Callable[..., Any]] = MappingProxyType(compiled)

    def render(self, source: str, context: Mapping[str, Any]) -> str:
        template = compile_template(source)
        try:
            output = template(dict(context), helpers=dict(HELPERS), partials=dict(self._partials))
        except PybarsError as exc:
            raise TemplateError(str(exc)) from exc
        except RecursionError as exc:
            raise TemplateError("Template nesting is too deep, check for partials that include themselves") from exc
        except Exception as exc:  # helpers and context lookups raise arbitrary errors
            raise TemplateError(f"{type(exc).__name__}: {exc}") from exc
        return str(output)
