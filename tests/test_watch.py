from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
import http.client
import io
import tempfile
import threading
import time
import unittest

from akre.console import Console
from akre.watch import RebuildQueue, SourceChangeHandler, make_server


class RebuildQueueTests(unittest.TestCase):
    def setUp(self) -> None:
        self.stderr = io.StringIO()
        self.console = Console("info", stdout=io.StringIO(), stderr=self.stderr)

    def test_requests_during_a_build_collapse_into_one_follow_up(self) -> None:
        started = threading.Event()
        release = threading.Event()
        finished = threading.Semaphore(0)
        calls: list[int] = []

        def rebuild() -> None:
            calls.append(len(calls) + 1)
            if len(calls) == 1:
                started.set()
                release.wait(5)
            finished.release()

        queue = RebuildQueue(rebuild, self.console)
        queue.start()
        try:
            queue.request()
            self.assertTrue(started.wait(5))
            for _ in range(5):
                queue.request()
            release.set()
            self.assertTrue(finished.acquire(timeout=5))
            self.assertTrue(finished.acquire(timeout=5))
            self.assertFalse(finished.acquire(timeout=0.2))
        finally:
            queue.stop(timeout=5)
        self.assertEqual(calls, [1, 2])

    def test_failing_rebuild_keeps_the_queue_alive(self) -> None:
        done = threading.Event()
        calls: list[str] = []

        def rebuild() -> None:
            calls.append("run")
            if len(calls) == 1:
                raise RuntimeError("boom")
            done.set()

        queue = RebuildQueue(rebuild, self.console)
        queue.start()
        try:
            queue.request()
            for _ in range(50):
                if calls:
                    break
                time.sleep(0.05)
            queue.request()
            self.assertTrue(done.wait(5))
        finally:
            queue.stop(timeout=5)
        self.assertIn("Rebuild failed: boom", self.stderr.getvalue())

    def test_stop_without_requests(self) -> None:
        queue = RebuildQueue(lambda: None, self.console)
        queue.start()
        queue.stop(timeout=5)


class SourceChangeHandlerTests(unittest.TestCase):
    def test_file_events_request_rebuild(self) -> None:
        requests: list[str] = []
        queue = SimpleNamespace(request=lambda: requests.append("rebuild"))
        handler = SourceChangeHandler(queue, Console("none"))  # type: ignore[arg-type]
        handler.on_modified(SimpleNamespace(is_directory=False, event_type="modified", src_path="src/a.hbs"))
        handler.on_created(SimpleNamespace(is_directory=True, event_type="created", src_path="src/new"))
        handler.on_deleted(SimpleNamespace(is_directory=False, event_type="deleted", src_path="src/b.yaml"))
        self.assertEqual(requests, ["rebuild", "rebuild"])


class SiteServerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        (self.root / "index.html").write_text("<h1>Home</h1>", encoding="utf-8")
        (self.root / "about").write_text("<h1>About</h1>", encoding="utf-8")
        self.server = make_server(self.root, 0, host="127.0.0.1")
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        self.port = self.server.server_address[1]

    def tearDown(self) -> None:
        self.server.shutdown()
        self.server.server_close()
        self.thread.join(5)
        self.temp_dir.cleanup()

    def get(self, path: str) -> tuple[str, str]:
        connection = http.client.HTTPConnection("127.0.0.1", self.port, timeout=5)
        try:
            connection.request("GET", path)
            response = connection.getresponse()
            return response.getheader("Content-Type", ""), response.read().decode("utf-8")
        finally:
            connection.close()

    def test_index_is_served_at_root(self) -> None:
        _, body = self.get("/")
        self.assertEqual(body, "<h1>Home</h1>")

    def test_extensionless_pages_are_served_as_html(self) -> None:
        content_type, body = self.get("/about")
        self.assertTrue(content_type.startswith("text/html"))
        self.assertEqual(body, "<h1>About</h1>")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
