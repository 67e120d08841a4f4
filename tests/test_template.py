from __future__ import annotations

from pathlib import Path
import io
import tempfile
import unittest

from pybars import strlist

from akre.console import Console
from akre.template import (
    PartialRegistry,
    TemplateError,
    TemplateRenderer,
    breaklines,
    escape_expression,
    load_partials,
)


class BreaklinesHelperTests(unittest.TestCase):
    def test_newline_becomes_break(self) -> None:
        self.assertEqual(str(breaklines(None, "a\nb")), "a<br>b")

    def test_all_line_break_sequences(self) -> None:
        self.assertEqual(str(breaklines(None, "a\r\nb\rc\nd")), "a<br>b<br>c<br>d")

    def test_input_is_escaped_before_substitution(self) -> None:
        self.assertEqual(str(breaklines(None, "<b>\n&")), "&lt;b&gt;<br>&amp;")

    def test_result_is_marked_safe(self) -> None:
        self.assertIsInstance(breaklines(None, "x"), strlist)

    def test_none_renders_empty(self) -> None:
        self.assertEqual(str(breaklines(None, None)), "")

    def test_escape_expression_matches_handlebars(self) -> None:
        self.assertEqual(escape_expression("\"'`=&"), "&quot;&#x27;&#x60;&#x3D;&amp;")

    def test_booleans_render_like_handlebars(self) -> None:
        self.assertEqual(str(breaklines(None, False)), "false")
        self.assertEqual(escape_expression(True), "true")


class LoadPartialsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.partials_dir = Path(self.temp_dir.name) / "partials"
        self.partials_dir.mkdir()
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()
        self.console = Console("info", stdout=self.stdout, stderr=self.stderr)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_registers_template_files_by_stem(self) -> None:
        (self.partials_dir / "header.hbs").write_text("<header>{{title}}</header>", encoding="utf-8")
        (self.partials_dir / "footer.hbs").write_text("<footer/>", encoding="utf-8")
        registry = load_partials(self.partials_dir, self.console)
        self.assertEqual(registry.names(), ["footer", "header"])
        self.assertEqual(registry.sources["header"], "<header>{{title}}</header>")

    def test_non_template_files_are_skipped_with_info(self) -> None:
        (self.partials_dir / "header.hbs").write_text("h", encoding="utf-8")
        (self.partials_dir / "README.md").write_text("notes", encoding="utf-8")
        registry = load_partials(self.partials_dir, self.console)
        self.assertNotIn("README", registry)
        self.assertEqual(len(registry), 1)
        self.assertIn("[INFO] Partials directory contains non .hbs file: README.md", self.stdout.getvalue())
        self.assertEqual(self.stderr.getvalue(), "")

    def test_unreadable_directory_yields_empty_registry(self) -> None:
        registry = load_partials(self.partials_dir / "missing", self.console)
        self.assertEqual(len(registry), 0)
        self.assertIn("[ERROR]", self.stderr.getvalue())

    def test_registry_is_read_only(self) -> None:
        registry = PartialRegistry({"a": "x"})
        with self.assertRaises(TypeError):
            registry.sources["b"] = "y"  # type: ignore[index]


class TemplateRendererTests(unittest.TestCase):
    def setUp(self) -> None:
        self.stderr = io.StringIO()
        self.console = Console("info", stdout=io.StringIO(), stderr=self.stderr)

    def test_renders_with_partials_and_helper(self) -> None:
        registry = PartialRegistry({"title": "<h1>{{title}}</h1>"})
        renderer = TemplateRenderer(registry, self.console)
        output = renderer.render("{{> title}}<p>{{breaklines body}}</p>", {"title": "Home", "body": "1 < 2\nok"})
        self.assertEqual(output, "<h1>Home</h1><p>1 &lt; 2<br>ok</p>")

    def test_plain_expressions_are_escaped(self) -> None:
        renderer = TemplateRenderer(PartialRegistry(), self.console)
        self.assertEqual(renderer.render("{{value}}", {"value": "<i>"}), "&lt;i&gt;")

    def test_missing_partial_raises_template_error(self) -> None:
        renderer = TemplateRenderer(PartialRegistry(), self.console)
        with self.assertRaises(TemplateError):
            renderer.render("{{> absent}}", {})

    def test_self_including_partial_raises_template_error(self) -> None:
        renderer = TemplateRenderer(PartialRegistry({"loop": "{{> loop}}"}), self.console)
        with self.assertRaises(TemplateError):
            renderer.render("{{> loop}}", {})

    def test_stylesheet_links_from_context(self) -> None:
        renderer = TemplateRenderer(PartialRegistry(), self.console)
        output = renderer.render(
            '{{#each stylesheets}}<link href="{{this}}">{{/each}}',
            {"stylesheets": ["assets/css/main.css", "assets/css/about.css"]},
        )
        self.assertEqual(output, '<link href="assets/css/main.css"><link href="assets/css/about.css">')


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
