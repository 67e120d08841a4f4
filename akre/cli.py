"""Command line interface for the akre site builder."""
from __future__ import annotations

from argparse import ArgumentParser, ArgumentTypeError, Namespace
from pathlib import Path
from typing import Callable, Dict, Iterable
import sys

from .build import BuildOrchestrator
from .config_loader import ConfigError, SiteConfig, load_site_config
from .console import Console
from .scaffold import ScaffoldError, init_site, new_page
from .watch import watch_and_serve


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def _build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="akre", description="Static site builder for Handlebars pages, YAML data and SCSS")
    parser.add_argument("--config", type=Path, help="Path to an akre.toml/.yaml/.json configuration file")
    parser.add_argument("--source", dest="source_dir", help="Source directory (default: ./src)")
    parser.add_argument("--target", dest="target_dir", help="Output directory (default: ./dist)")
    parser.add_argument(
        "--log",
        dest="log_level",
        choices=list(Console.LEVELS),
        help="Set log level (default: info)",
    )
    parser.add_argument("--workers", type=_positive_int, help="Number of pages to build in parallel (default: 1)")

    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.add_parser("build", help="Run one full build")
    watch_parser = subparsers.add_parser("watch", help="Build, rebuild on change and serve the output")
    watch_parser.add_argument("--port", type=_positive_int, help="Port for the local server (default: 3000)")
    new_parser = subparsers.add_parser("new", help="Scaffold data, template and style files for a page")
    new_parser.add_argument("name", help="Page name")
    subparsers.add_parser("init", help="Scaffold the source directory with an index page")
    return parser


def _handle_build(args: Namespace, config: SiteConfig, console: Console) -> int:
    summary = BuildOrchestrator(config, console).run_build()
    if summary.fatal:
        return 1
    if not summary.ok:
        console.info("Build finished with errors, see the messages above")
    return 0


def _handle_watch(args: Namespace, config: SiteConfig, console: Console) -> int:
    config = config.with_overrides(port=getattr(args, "port", None))
    return watch_and_serve(BuildOrchestrator(config, console), console)


def _handle_new(args: Namespace, config: SiteConfig, console: Console) -> int:
    try:
        new_page(config, args.name, console)
    except (ScaffoldError, OSError) as exc:
        console.error(str(exc))
        return 1
    return 0


def _handle_init(args: Namespace, config: SiteConfig, console: Console) -> int:
    try:
        init_site(config, console)
    except OSError as exc:
        console.error(f"Could not initialize {config.source_dir}: {exc}")
        return 1
    return 0


COMMANDS: Dict[str, Callable[[Namespace, SiteConfig, Console], int]] = {
    "build": _handle_build,
    "watch": _handle_watch,
    "new": _handle_new,
    "init": _handle_init,
}


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(sys.argv[1:] if argv is None else argv))

    if args.command is None:
        parser.print_usage()
        print(f"Please use a command from the following options: {', '.join(COMMANDS)}")
        return 2

    try:
        config = load_site_config(args.config).with_overrides(
            source_dir=args.source_dir,
            target_dir=args.target_dir,
            log_level=args.log_level,
            workers=args.workers,
        )
    except ConfigError as exc:
        Console("error").error(str(exc))
        return 1

    console = Console(config.log_level, color=sys.stdout.isatty())
    return COMMANDS[args.command](args, config, console)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
