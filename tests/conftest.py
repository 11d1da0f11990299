"""Shared fixtures and helpers for conversion tests."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from modulizer.core.config import ConversionConfig
from modulizer.core.document_graph import DocumentAnalyzer, DocumentGraph, InMemoryLoader
from modulizer.core.orchestrator import ConversionOrchestrator
from modulizer.processors.js_processor import JsProcessor, ParsedScript


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------

def build_graph(sources: dict[str, str], entries: list[str] | None = None) -> DocumentGraph:
    """Load an in-memory document set starting from ``test.html``."""
    loader = InMemoryLoader(sources)
    return DocumentAnalyzer(loader).analyze(entries or ["test.html"])


def parse_script(code: str, origin: str = "test.js") -> ParsedScript:
    """Parse a script, failing the test on syntax errors."""
    result = JsProcessor().parse(textwrap.dedent(code), origin=origin)
    assert result.success, f"Script did not parse: {result.errors}"
    return result.script


def convert_sources(
    sources: dict[str, str],
    excludes: list[str] | None = None,
    config: ConversionConfig | None = None,
) -> dict[str, str]:
    """Convert every document reachable from ``test.html``."""
    orchestrator = ConversionOrchestrator(build_graph(sources), config=config, excludes=excludes)
    return orchestrator.convert()


def convert_test_document(sources: dict[str, str]) -> str | None:
    """Convert only ``test.html`` and return the source of ``./test.js``."""
    graph = build_graph(sources)
    orchestrator = ConversionOrchestrator(graph)
    orchestrator.convert_document(graph.get_document("test.html"))
    module = orchestrator.modules.get("./test.js")
    return module.source if module is not None else None


def create_test_file(directory: Path, name: str, content: str = "") -> Path:
    """Create a test file with the given name and content."""
    file_path = directory / name
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(textwrap.dedent(content), encoding="utf-8")
    return file_path


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def default_config() -> ConversionConfig:
    """Return a ConversionConfig with the Polymer conventions."""
    return ConversionConfig()


@pytest.fixture
def components_dir(tmp_path: Path) -> Path:
    """Create a small component tree on disk."""
    root = tmp_path / "components"
    create_test_file(
        root,
        "case-map/case-map.html",
        """\
        <link rel="import" href="../polymer/polymer.html">
        <script>
        (function() {
          'use strict';

          const caseMap = {};

          /**
           * @namespace
           * @memberof Polymer
           */
          Polymer.CaseMap = {
            dashToCamelCase(dash) {
              return caseMap[dash] || dash.replace(/-[a-z]/g, (m) => m[1].toUpperCase());
            },
            camelToDashCase(camel) {
              return camel.replace(/([A-Z])/g, '-$1').toLowerCase();
            }
          };
        })();
        </script>
        """,
    )
    create_test_file(
        root,
        "polymer/polymer.html",
        """\
        <script>
          window.Polymer = window.Polymer || {};
          Polymer.version = '2.0.0';
        </script>
        """,
    )
    return root
