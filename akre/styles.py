"""Stylesheet compilation for the shared base sheet and per-page sheets."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

import sass

from .config_loader import STYLE_EXT, SiteConfig
from .console import Diagnostics


BASE_STYLESHEET = "main.css"


class StyleCompileError(RuntimeError):
    """Raised when a stylesheet cannot be compiled or written."""


@dataclass(frozen=True, slots=True)
class StyleOutcome:
    """Result of compiling one stylesheet.

    ``href`` is the output-tree-relative path of the intended CSS file; it is
    set even when compilation failed.
    """

    source: Path
    href: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def compile_stylesheet(source: Path, destination: Path, *, include_paths: List[Path] | None = None) -> None:
    """Compile the SCSS file ``source`` into the CSS file ``destination``."""

    try:
        css = sass.compile(
            filename=str(source),
            output_style="expanded",
            include_paths=[str(path) for path in include_paths or []],
        )
    except sass.CompileError as exc:
        raise StyleCompileError(str(exc).strip()) from exc
    except OSError as exc:
        raise StyleCompileError(f"Could not read '{source}': {exc}") from exc

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(css, encoding="utf-8")
    except OSError as exc:
        raise StyleCompileError(f"Could not write '{destination}': {exc}") from exc


class StyleResolver:
    """Compiles the base stylesheet once and page stylesheets on demand."""

    def __init__(self, config: SiteConfig, console: Diagnostics) -> None:
        self._config = config
        self._console = console
        self._base: StyleOutcome | None = None

    def href_for(self, destination: Path) -> str:
        return destination.relative_to(self._config.target_dir).as_posix()

    def compile_base(self) -> StyleOutcome | None:
        source = self._config.base_style_path
        if not source.is_file():
            self._console.info(f"No base stylesheet found at {source}")
            self._base = None
            return None
        destination = self._config.css_dir / BASE_STYLESHEET
        self._base = self._compile(source, destination)
        if not self._base.ok:
            self._console.error(f"Could not compile stylesheet {source.name}: {self._base.error}")
        return self._base

    def compile_page(self, page_name: str, page_dir: Path) -> StyleOutcome | None:
        """Compile the optional page stylesheet; failures are left to the caller to report."""

        source = page_dir / f"{page_name}{STYLE_EXT}"
        if not source.is_file():
            return None
        destination = self._config.css_dir / f"{page_name}.css"
        return self._compile(source, destination)

    def stylesheets_for(self, page: StyleOutcome | None) -> List[str]:
        """Return the links for one page: base sheet first, page sheet second."""

        hrefs: List[str] = []
        for outcome in (self._base, page):
            if outcome is None:
                continue
            if not outcome.ok and not self._config.keep_failed_stylesheets:
                continue
            hrefs.append(outcome.href)
        return hrefs

    def _compile(self, source: Path, destination: Path) -> StyleOutcome:
        href = self.href_for(destination)
        include_paths = [source.parent, self._config.base_style_path.parent]
        try:
            compile_stylesheet(source, destination, include_paths=include_paths)
        except StyleCompileError as exc:
            return StyleOutcome(source=source, href=href, error=str(exc))
        self._console.debug(f"Compiled {source.name} -> {href}")
        return StyleOutcome(source=source, href=href)
