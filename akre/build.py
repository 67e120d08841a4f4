"""Core page building and build orchestration logic."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence
import copy
import os
import time

from .assets import copy_static_assets
from .config_loader import DATA_EXT, TEMPLATE_EXT, DataLoadError, SiteConfig, load_data_file
from .console import Diagnostics
from .site_globals import load_globals
from .styles import StyleResolver
from .template import TemplateError, TemplateRenderer, load_partials


INDEX_PAGE = "index"
GLOBALS_KEY = "globals"
STYLESHEETS_KEY = "stylesheets"


class ErrorKind(str, Enum):
    MISSING_DATA_FILE = "missing-data-file"
    MISSING_TEMPLATE_FILE = "missing-template-file"
    DATA_PARSE_ERROR = "data-parse-error"
    STYLE_COMPILE_ERROR = "style-compile-error"
    TEMPLATE_RENDER_ERROR = "template-render-error"
    DIRECTORY_CREATE_ERROR = "directory-create-error"
    ASSET_COPY_ERROR = "asset-copy-error"
    PARTIALS_READ_ERROR = "partials-read-error"
    GLOBALS_LOAD_ERROR = "globals-load-error"
    PAGES_DIRECTORY_ERROR = "pages-directory-error"


class PageStatus(str, Enum):
    SUCCESS = "success"
    DATA_PARSE_ERROR = ErrorKind.DATA_PARSE_ERROR.value
    TEMPLATE_RENDER_ERROR = ErrorKind.TEMPLATE_RENDER_ERROR.value
    MISSING_DATA_FILE = ErrorKind.MISSING_DATA_FILE.value
    MISSING_TEMPLATE_FILE = ErrorKind.MISSING_TEMPLATE_FILE.value
    STYLE_COMPILE_ERROR = ErrorKind.STYLE_COMPILE_ERROR.value


@dataclass(slots=True)
class BuildIssue:
    kind: ErrorKind
    message: str
    page: str | None = None


@dataclass(slots=True)
class PageResult:
    name: str
    status: PageStatus
    output_path: Path | None = None
    issues: List[BuildIssue] = field(default_factory=list)

    @property
    def written(self) -> bool:
        return self.output_path is not None


@dataclass(slots=True)
class BuildSummary:
    pages: List[PageResult] = field(default_factory=list)
    issues: List[BuildIssue] = field(default_factory=list)
    duration_ms: float = 0.0
    fatal: bool = False

    @property
    def all_issues(self) -> List[BuildIssue]:
        collected = list(self.issues)
        for page in self.pages:
            collected.extend(page.issues)
        return collected

    @property
    def written(self) -> List[PageResult]:
        return [page for page in self.pages if page.written]

    @property
    def ok(self) -> bool:
        return not self.fatal and not self.all_issues


@dataclass(frozen=True, slots=True)
class RenderContext:
    """Everything one page template is rendered against.

    Precedence when flattened by :meth:`as_mapping`: page data keys first,
    then ``globals``, then ``stylesheets``. The reserved keys replace any page
    key of the same name.
    """

    page_data: Mapping[str, Any]
    globals: Mapping[str, Any]
    stylesheets: Sequence[str] = ()

    def as_mapping(self) -> Dict[str, Any]:
        merged: Dict[str, Any] = copy.deepcopy(dict(self.page_data))
        merged[GLOBALS_KEY] = copy.deepcopy(dict(self.globals))
        merged[STYLESHEETS_KEY] = list(self.stylesheets)
        return merged


def output_name(page_name: str) -> str:
    """``index`` becomes ``index.html``; every other page keeps its bare name."""

    if page_name == INDEX_PAGE:
        return f"{INDEX_PAGE}.html"
    return page_name


def discover_pages(pages_dir: Path, console: Diagnostics) -> List[str]:
    """List page names under ``pages_dir`` in sorted order.

    Raises :class:`OSError` when the directory cannot be read.
    """

    names: List[str] = []
    for entry in sorted(pages_dir.iterdir()):
        if entry.name.startswith("."):
            console.debug(f"Ignoring hidden entry in pages directory: {entry.name}")
            continue
        if not entry.is_dir():
            console.info(f"Pages directory contains a file instead of a page directory: {entry.name}")
            continue
        names.append(entry.name)
    return names


def _write_atomic(path: Path, text: str) -> None:
    temp_path = path.with_name(f".{path.name}.tmp")
    try:
        with temp_path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(text)
        os.replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


class PageBuilder:
    """Builds one page at a time from shared, read-only build inputs."""

    def __init__(
        self,
        *,
        config: SiteConfig,
        renderer: TemplateRenderer,
        globals_data: Mapping[str, Any],
        styles: StyleResolver,
        console: Diagnostics,
    ) -> None:
        self._config = config
        self._renderer = renderer
        self._globals = globals_data
        self._styles = styles
        self._console = console

    def page_path(self, page_name: str, ext: str) -> Path:
        return self._config.pages_dir / page_name / f"{page_name}{ext}"

    def output_path(self, page_name: str) -> Path:
        return self._config.target_dir / output_name(page_name)

    def build_page(self, page_name: str) -> PageResult:
        data_path = self.page_path(page_name, DATA_EXT)
        template_path = self.page_path(page_name, TEMPLATE_EXT)

        if not data_path.is_file():
            return self._skip(page_name, ErrorKind.MISSING_DATA_FILE, f"Data file not found for page {page_name}")
        if not template_path.is_file():
            return self._skip(page_name, ErrorKind.MISSING_TEMPLATE_FILE, f"Template file not found for page {page_name}")

        issues: List[BuildIssue] = []

        page_data: Mapping[str, Any] = {}
        try:
            page_data = load_data_file(data_path)
        except DataLoadError as exc:
            issues.append(
                self._report(page_name, ErrorKind.DATA_PARSE_ERROR, f"Could not parse data file {data_path.name}: {exc}")
            )

        page_style = self._styles.compile_page(page_name, data_path.parent)
        if page_style is not None and not page_style.ok:
            issues.append(
                self._report(
                    page_name,
                    ErrorKind.STYLE_COMPILE_ERROR,
                    f"Could not compile stylesheet {page_style.source.name}: {page_style.error}",
                )
            )

        context = RenderContext(
            page_data=page_data,
            globals=self._globals,
            stylesheets=tuple(self._styles.stylesheets_for(page_style)),
        )

        destination = self.output_path(page_name)
        try:
            source = template_path.read_text(encoding="utf-8")
            rendered = self._renderer.render(source, context.as_mapping())
            _write_atomic(destination, rendered)
        except (TemplateError, OSError, UnicodeDecodeError) as exc:
            issues.append(
                self._report(
                    page_name,
                    ErrorKind.TEMPLATE_RENDER_ERROR,
                    f"Could not render template {template_path.name}: {exc}",
                )
            )
            return PageResult(name=page_name, status=PageStatus.TEMPLATE_RENDER_ERROR, issues=issues)

        self._console.debug(f"Built page {page_name} -> {destination}")
        status = PageStatus(issues[0].kind.value) if issues else PageStatus.SUCCESS
        return PageResult(name=page_name, status=status, output_path=destination, issues=issues)

    def _report(self, page_name: str, kind: ErrorKind, message: str) -> BuildIssue:
        self._console.error(message)
        return BuildIssue(kind=kind, message=message, page=page_name)

    def _skip(self, page_name: str, kind: ErrorKind, message: str) -> PageResult:
        issue = self._report(page_name, kind, message)
        return PageResult(name=page_name, status=PageStatus(kind.value), issues=[issue])


class _StepDiagnostics:
    """Console wrapper that also records every error as a build issue."""

    def __init__(self, console: Diagnostics, kind: ErrorKind, issues: List[BuildIssue]) -> None:
        self._console = console
        self._kind = kind
        self._issues = issues

    def info(self, message: str) -> None:
        self._console.info(message)

    def debug(self, message: str) -> None:
        self._console.debug(message)

    def error(self, message: str) -> None:
        self._console.error(message)
        self._issues.append(BuildIssue(kind=self._kind, message=message))


class BuildOrchestrator:
    """Runs one full, non-incremental build per :meth:`run_build` call."""

    def __init__(self, config: SiteConfig, console: Diagnostics) -> None:
        self._config = config
        self._console = console

    @property
    def config(self) -> SiteConfig:
        return self._config

    def run_build(self) -> BuildSummary:
        start = time.perf_counter()
        summary = BuildSummary()
        config = self._config

        self._ensure_directories(summary)

        partials_console = self._step(ErrorKind.PARTIALS_READ_ERROR, summary)
        partials = load_partials(config.partials_dir, partials_console)
        renderer = TemplateRenderer(partials, partials_console)

        globals_data = load_globals(config.globals_path, self._step(ErrorKind.GLOBALS_LOAD_ERROR, summary))

        styles = StyleResolver(config, self._step(ErrorKind.STYLE_COMPILE_ERROR, summary))
        styles.compile_base()

        try:
            page_names = discover_pages(config.pages_dir, self._console)
        except OSError as exc:
            message = f"Could not read pages directory {config.pages_dir}: {exc}"
            self._console.error(message)
            summary.issues.append(BuildIssue(kind=ErrorKind.PAGES_DIRECTORY_ERROR, message=message))
            summary.fatal = True
            summary.duration_ms = (time.perf_counter() - start) * 1000
            return summary

        builder = PageBuilder(
            config=config,
            renderer=renderer,
            globals_data=globals_data,
            styles=styles,
            console=self._console,
        )
        summary.pages = self._build_pages(builder, page_names)

        copy_static_assets(config.static_dir, config.assets_dir, self._step(ErrorKind.ASSET_COPY_ERROR, summary))

        summary.duration_ms = (time.perf_counter() - start) * 1000
        self._console.info(
            f"Built {len(summary.written)} of {len(summary.pages)} page(s) "
            f"with {len(summary.all_issues)} issue(s)"
        )
        self._console.info(f"build executed in {summary.duration_ms:.0f}ms")
        return summary

    def _build_pages(self, builder: PageBuilder, page_names: List[str]) -> List[PageResult]:
        workers = self._config.workers
        if workers <= 1 or len(page_names) <= 1:
            return [builder.build_page(name) for name in page_names]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(builder.build_page, page_names))

    def _ensure_directories(self, summary: BuildSummary) -> None:
        try:
            self._config.css_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            message = f"Could not create target directory: {exc}"
            self._console.error(message)
            summary.issues.append(BuildIssue(kind=ErrorKind.DIRECTORY_CREATE_ERROR, message=message))

    def _step(self, kind: ErrorKind, summary: BuildSummary) -> _StepDiagnostics:
        return _StepDiagnostics(self._console, kind, summary.issues)
