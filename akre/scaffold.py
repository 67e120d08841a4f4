"""Scaffolding for new pages and new source trees."""
from __future__ import annotations

from pathlib import Path
from typing import List
import re

from .build import INDEX_PAGE
from .config_loader import DATA_EXT, STYLE_EXT, TEMPLATE_EXT, SiteConfig
from .console import Diagnostics


_PAGE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class ScaffoldError(ValueError):
    """Raised when a page cannot be scaffolded."""


def _create_file(path: Path, content: str, console: Diagnostics) -> bool:
    if path.exists():
        console.info(f"Keeping existing {path}")
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    console.info(f"Created {path}")
    return True


def validate_page_name(name: str) -> str:
    text = name.strip()
    if not _PAGE_NAME_PATTERN.match(text) or text in {".", ".."}:
        raise ScaffoldError(
            f"Invalid page name '{name}': use letters, digits, '.', '_' or '-' and start with a letter or digit"
        )
    return text


def new_page(config: SiteConfig, name: str, console: Diagnostics) -> List[Path]:
    """Create empty data, template and style files for page ``name``.

    Existing files are left untouched. Returns the files that were created.
    """

    page_name = validate_page_name(name)
    page_dir = config.pages_dir / page_name
    created: List[Path] = []
    for ext in (DATA_EXT, TEMPLATE_EXT, STYLE_EXT):
        path = page_dir / f"{page_name}{ext}"
        if _create_file(path, "", console):
            created.append(path)
    return created


_INDEX_DATA = "title: Home\n"

_INDEX_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{{title}} | {{globals.site}}</title>
    {{#each stylesheets}}
    <link rel="stylesheet" href="{{this}}">
    {{/each}}
  </head>
  <body>
    <h1>{{title}}</h1>
  </body>
</html>
"""

_GLOBALS = "site: My Site\n"

_BASE_STYLE = "body {\n  margin: 0;\n}\n"


def init_site(config: SiteConfig, console: Diagnostics) -> List[Path]:
    """Create the source tree layout together with an ``index`` page."""

    for directory in (config.pages_dir, config.partials_dir, config.static_dir, config.base_style_path.parent):
        directory.mkdir(parents=True, exist_ok=True)

    created: List[Path] = []
    if _create_file(config.globals_path, _GLOBALS, console):
        created.append(config.globals_path)
    if _create_file(config.base_style_path, _BASE_STYLE, console):
        created.append(config.base_style_path)

    index_dir = config.pages_dir / INDEX_PAGE
    scaffold = {
        DATA_EXT: _INDEX_DATA,
        TEMPLATE_EXT: _INDEX_TEMPLATE,
        STYLE_EXT: "",
    }
    for ext, content in scaffold.items():
        path = index_dir / f"{INDEX_PAGE}{ext}"
        if _create_file(path, content, console):
            created.append(path)
    return created
