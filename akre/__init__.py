"""akre: build a static site from Handlebars pages, YAML data and SCSS."""
from __future__ import annotations

from .build import BuildOrchestrator, BuildSummary, PageResult, PageStatus
from .cli import main

__all__ = ["BuildOrchestrator", "BuildSummary", "PageResult", "PageStatus", "main"]
