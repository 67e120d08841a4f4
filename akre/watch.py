"""Rebuild-on-change watcher and local development server."""
from __future__ import annotations

from functools import partial
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Callable
import threading

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .build import BuildOrchestrator
from .console import Diagnostics


class RebuildQueue:
    """Serializes rebuilds through a single pending slot.

    Requests made while a rebuild is running collapse into one follow-up
    rebuild. Rebuilds run on a dedicated worker thread.
    """

    def __init__(self, rebuild: Callable[[], Any], console: Diagnostics) -> None:
        self._rebuild = rebuild
        self._console = console
        self._condition = threading.Condition()
        self._pending = False
        self._closed = False
        self._thread = threading.Thread(target=self._run, name="akre-rebuild", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def request(self) -> None:
        with self._condition:
            self._pending = True
            self._condition.notify()

    def stop(self, timeout: float | None = None) -> None:
        with self._condition:
            self._closed = True
            self._condition.notify()
        if self._thread.is_alive():
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._condition:
                while not self._pending and not self._closed:
                    self._condition.wait()
                if self._closed:
                    return
                self._pending = False
            try:
                self._rebuild()
            except Exception as exc:
                self._console.error(f"Rebuild failed: {exc}")


class SourceChangeHandler(FileSystemEventHandler):
    """Requests a full rebuild for every file change under the source root."""

    def __init__(self, queue: RebuildQueue, console: Diagnostics) -> None:
        super().__init__()
        self._queue = queue
        self._console = console

    def _changed(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._console.info(f"{event.event_type}: {event.src_path}")
        self._queue.request()

    def on_modified(self, event: FileSystemEvent) -> None:
        self._changed(event)

    def on_created(self, event: FileSystemEvent) -> None:
        self._changed(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._changed(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._changed(event)


class SiteRequestHandler(SimpleHTTPRequestHandler):
    """Serves the output tree; extension-less page files are sent as HTML."""

    def guess_type(self, path: str) -> str:  # type: ignore[override]
        if not Path(path).suffix:
            return "text/html"
        return super().guess_type(path)

    def log_message(self, format: str, *args: Any) -> None:
        pass


def make_server(directory: Path, port: int, host: str = "") -> ThreadingHTTPServer:
    handler = partial(SiteRequestHandler, directory=str(directory.resolve()))
    return ThreadingHTTPServer((host, port), handler)


def watch_and_serve(orchestrator: BuildOrchestrator, console: Diagnostics) -> int:
    """Build once, then rebuild on every source change while serving the output."""

    config = orchestrator.config
    summary = orchestrator.run_build()
    if summary.fatal:
        return 1

    queue = RebuildQueue(orchestrator.run_build, console)
    queue.start()

    observer = Observer()
    observer.schedule(SourceChangeHandler(queue, console), str(config.source_dir), recursive=True)
    observer.start()
    console.info(f"Watching {config.source_dir}")

    server = make_server(config.target_dir, config.port)
    console.info(f"Server running at http://localhost:{server.server_address[1]}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        console.info("Stopping...")
    finally:
        server.server_close()
        observer.stop()
        observer.join()
        queue.stop()
    return 0
