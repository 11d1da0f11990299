"""Tests for HtmlProcessor."""

from __future__ import annotations

import logging

import pytest

from modulizer.processors.html_processor import HtmlExtraction, HtmlProcessor


@pytest.fixture
def processor() -> HtmlProcessor:
    return HtmlProcessor()


class TestLinks:
    """Import link extraction."""

    def test_import_links_in_order(self, processor: HtmlProcessor) -> None:
        extraction = processor.extract(
            '<link rel="import" href="./a.html">\n'
            '<link rel="stylesheet" href="style.css">\n'
            '<link rel="import" href="../b.html"/>'
        )
        assert isinstance(extraction, HtmlExtraction)
        assert extraction.links == ["./a.html", "../b.html"]

    def test_rel_is_case_insensitive_token_list(self, processor: HtmlProcessor) -> None:
        extraction = processor.extract('<LINK REL="Import preload" HREF="a.html">')
        assert extraction.links == ["a.html"]

    def test_link_without_href_is_ignored(self, processor: HtmlProcessor) -> None:
        assert processor.extract('<link rel="import">').links == []


class TestScripts:
    """Inline script extraction."""

    def test_inline_scripts_in_order(self, processor: HtmlProcessor) -> None:
        extraction = processor.extract(
            "<dom-module>\n"
            "  <template><h1>Hi</h1></template>\n"
            "  <script>Polymer.A = 1;</script>\n"
            "</dom-module>\n"
            "<script type=\"text/javascript\">\nPolymer.B = '<b>';\n</script>"
        )
        assert extraction.scripts == ["Polymer.A = 1;", "\nPolymer.B = '<b>';\n"]
        assert extraction.script_lines == [3, 5]

    def test_script_body_is_not_unescaped(self, processor: HtmlProcessor) -> None:
        extraction = processor.extract("<script>if (a &amp;&amp; b < c) {}</script>")
        assert extraction.scripts == ["if (a &amp;&amp; b < c) {}"]

    def test_non_javascript_scripts_are_ignored(self, processor: HtmlProcessor) -> None:
        extraction = processor.extract(
            '<script type="module">import x from "./x.js";</script>'
            '<script type="text/x-template"><div></div></script>'
        )
        assert extraction.scripts == []

    def test_external_scripts_are_reported(
        self, processor: HtmlProcessor, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="modulizer"):
            extraction = processor.extract('<script src="vendor.js"></script>', origin="test.html")

        assert extraction.scripts == []
        assert extraction.external_scripts == ["vendor.js"]
        assert "vendor.js" in caplog.text

    def test_empty_script(self, processor: HtmlProcessor) -> None:
        extraction = processor.extract("<script></script>")
        assert extraction.scripts == [""]
