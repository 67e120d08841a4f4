"""Structured-data loading and project configuration."""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping
import json
import tomllib

import yaml


DataLoader = Callable[[Any], Any]

DATA_EXT = ".yaml"
TEMPLATE_EXT = ".hbs"
STYLE_EXT = ".scss"

CONFIG_STEM = "akre"


class DataLoadError(ValueError):
    """Raised when a data file is missing or cannot be decoded into a mapping."""


class ConfigError(ValueError):
    """Raised when the project configuration is invalid."""


_FILE_LOADERS: Dict[str, DataLoader] = {
    ".toml": lambda stream: tomllib.load(stream),
    ".json": lambda stream: json.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream),
    ".yml": lambda stream: yaml.safe_load(stream),
}


def load_data_file(path: Path) -> Dict[str, Any]:
    """Decode the mapping stored in ``path``.

    An empty document decodes to an empty mapping. Anything that is not a
    mapping at the root is rejected with :class:`DataLoadError`.
    """

    suffix = path.suffix.lower()
    loader = _FILE_LOADERS.get(suffix)
    if loader is None:
        supported = ", ".join(sorted(_FILE_LOADERS))
        raise DataLoadError(f"Unsupported data file extension: {suffix}. Supported: {supported}")

    mode = "rb" if suffix == ".toml" else "r"
    kwargs: Dict[str, Any] = {}
    if mode == "r":
        kwargs["encoding"] = "utf-8"

    try:
        with path.open(mode, **kwargs) as handle:
            data = loader(handle)
    except FileNotFoundError as exc:
        raise DataLoadError(f"File not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise DataLoadError(f"Could not read '{path}': {exc}") from exc
    except (yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise DataLoadError(str(exc)) from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise DataLoadError(f"'{path.name}' must contain a mapping at the root, got {type(data).__name__}")
    return dict(data)


@dataclass(frozen=True, slots=True)
class SiteConfig:
    source_dir: Path = Path("src")
    target_dir: Path = Path("dist")
    port: int = 3000
    log_level: str = "info"
    workers: int = 1
    keep_failed_stylesheets: bool = True

    # Input
    @property
    def pages_dir(self) -> Path:
        return self.source_dir / "pages"

    @property
    def partials_dir(self) -> Path:
        return self.source_dir / "partials"

    @property
    def static_dir(self) -> Path:
        return self.source_dir / "static"

    @property
    def globals_path(self) -> Path:
        return self.source_dir / f"globals{DATA_EXT}"

    @property
    def base_style_path(self) -> Path:
        return self.source_dir / "style" / f"main{STYLE_EXT}"

    # Output
    @property
    def assets_dir(self) -> Path:
        return self.target_dir / "assets"

    @property
    def css_dir(self) -> Path:
        return self.assets_dir / "css"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base_dir: Path | None = None) -> "SiteConfig":
        section = data.get("site", {}) if isinstance(data, Mapping) else {}
        if not isinstance(section, Mapping):
            raise ConfigError("[site] must be a table of settings")

        defaults = cls()
        unknown = sorted(set(section) - _SITE_KEYS)
        if unknown:
            raise ConfigError(f"Unknown [site] settings: {', '.join(unknown)}")

        source_dir = _as_path(section.get("source_dir"), defaults.source_dir, base_dir)
        target_dir = _as_path(section.get("target_dir"), defaults.target_dir, base_dir)
        port = _as_int(section.get("port", defaults.port), field_name="site.port", minimum=0)
        workers = _as_int(section.get("workers", defaults.workers), field_name="site.workers", minimum=1)

        log_level = str(section.get("log_level", defaults.log_level)).lower()
        if log_level not in _LOG_LEVELS:
            raise ConfigError(f"site.log_level must be one of: {', '.join(_LOG_LEVELS)}")

        keep_failed = section.get("keep_failed_stylesheets", defaults.keep_failed_stylesheets)
        if not isinstance(keep_failed, bool):
            raise ConfigError("site.keep_failed_stylesheets must be a boolean")

        return cls(
            source_dir=source_dir,
            target_dir=target_dir,
            port=port,
            log_level=log_level,
            workers=workers,
            keep_failed_stylesheets=keep_failed,
        )

    def with_overrides(self, **overrides: Any) -> "SiteConfig":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        for key in ("source_dir", "target_dir"):
            if key in changes:
                changes[key] = Path(changes[key])
        return replace(self, **changes)


_SITE_KEYS = {"source_dir", "target_dir", "port", "log_level", "workers", "keep_failed_stylesheets"}
_LOG_LEVELS = ("none", "error", "info", "debug")


def _as_path(value: Any, default: Path, base_dir: Path | None) -> Path:
    if value is None:
        path = default
    elif isinstance(value, str) and value.strip():
        path = Path(value.strip())
    else:
        raise ConfigError("Directory settings must be non-empty strings")
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    return path


def _as_int(value: Any, *, field_name: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{field_name} must be an integer")
    if value < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum}")
    return value


def find_config_file(directory: Path) -> Path | None:
    """Return the single ``akre.*`` configuration file in ``directory``, if any."""

    found = [directory / f"{CONFIG_STEM}{suffix}" for suffix in sorted(_FILE_LOADERS)]
    found = [path for path in found if path.is_file()]
    if len(found) > 1:
        names = ", ".join(path.name for path in found)
        raise ConfigError(f"Multiple configuration files found: {names}. Only one format is allowed.")
    return found[0] if found else None


def load_site_config(path: Path | None = None, *, workspace: Path | None = None) -> SiteConfig:
    """Load the project configuration.

    With no explicit ``path`` the workspace is searched for an ``akre.*``
    file; when none exists the defaults apply.
    """

    root = workspace or Path.cwd()
    if path is None:
        path = find_config_file(root)
        if path is None:
            return SiteConfig()
    elif not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        data = load_data_file(path)
    except DataLoadError as exc:
        raise ConfigError(f"Could not load configuration '{path}': {exc}") from exc
    return SiteConfig.from_mapping(data, base_dir=path.parent if path.parent != Path(".") else None)
