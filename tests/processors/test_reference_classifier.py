"""Tests for ReferenceClassifier."""

from __future__ import annotations

import pytest

from conftest import build_graph

from modulizer.core.export_table import ExportTableBuilder, NamespaceExportTable
from modulizer.processors.namespace_scanner import DocumentScan, NamespaceScanner
from modulizer.processors.reference_classifier import (
    GLOBAL_REFERENCE,
    ReferenceClassifier,
    ReferenceKind,
)


@pytest.fixture
def scans() -> dict[str, DocumentScan]:
    """Scans of a test document and two dependencies."""
    graph = build_graph(
        {
            "test.html": """
              <link rel="import" href="./dep.html">
              <script>
                class Impl {}
                Polymer.Own = Impl;
                /** @namespace */
                Polymer.Mine = { helper() {} };
              </script>
            """,
            "dep.html": """
              <script>
                Polymer.Element = {};
                /** @namespace */
                Polymer.Foo = { Bar: 1 };
              </script>
            """,
            "legacy.html": "<script>Polymer.Legacy = {};</script>",
        },
        entries=["test.html", "legacy.html"],
    )
    scanner = NamespaceScanner()
    return {document.key: scanner.scan(document) for document in graph}


@pytest.fixture
def table(scans: dict[str, DocumentScan]) -> NamespaceExportTable:
    builder = ExportTableBuilder()
    for scan in scans.values():
        builder.add_scan(scan)
    return builder.build()


@pytest.fixture
def classifier(scans, table) -> ReferenceClassifier:
    return ReferenceClassifier(table, scans["test.html"], excludes=["legacy.html"])


class TestClassify:
    """Classification outcomes."""

    def test_named_import(self, classifier: ReferenceClassifier) -> None:
        result = classifier.classify(("Polymer", "Element"))
        assert result.kind is ReferenceKind.NAMED_IMPORT
        assert result.owner == "dep.html"
        assert result.matched == 2

    def test_longest_prefix_wins(self, classifier: ReferenceClassifier) -> None:
        result = classifier.classify(("Polymer", "Foo", "Bar", "baz"))
        assert result.kind is ReferenceKind.NAMED_IMPORT
        assert result.entry.name == "Bar"
        assert result.matched == 3

    def test_namespace_import(self, classifier: ReferenceClassifier) -> None:
        result = classifier.classify(("Polymer", "Foo"))
        assert result.kind is ReferenceKind.NAMESPACE_IMPORT
        assert result.matched == 2

    def test_unexported_member_of_foreign_namespace_is_global(
        self, classifier: ReferenceClassifier
    ) -> None:
        assert classifier.classify(("Polymer", "Foo", "Missing")) is GLOBAL_REFERENCE
        assert classifier.classify(("Polymer", "Foo", "Missing", "call")) is GLOBAL_REFERENCE

    def test_local_reference_uses_binding(self, classifier: ReferenceClassifier) -> None:
        result = classifier.classify(("Polymer", "Own", "prototype"))
        assert result.kind is ReferenceKind.LOCAL
        assert result.local_name == "Impl"
        assert result.matched == 2

    def test_local_namespace_member(self, classifier: ReferenceClassifier) -> None:
        result = classifier.classify(("Polymer", "Mine", "helper"))
        assert result.kind is ReferenceKind.LOCAL
        assert result.local_name == "helper"

    def test_own_namespace_object_is_global(self, classifier: ReferenceClassifier) -> None:
        assert classifier.classify(("Polymer", "Mine")) is GLOBAL_REFERENCE

    def test_excluded_owner_is_global(self, classifier: ReferenceClassifier) -> None:
        assert classifier.classify(("Polymer", "Legacy")) is GLOBAL_REFERENCE

    @pytest.mark.parametrize(
        "path",
        [("Polymer",), ("Polymer", "Unknown"), ("Other", "Element"), ("Element",)],
    )
    def test_unmatched_paths_are_global(self, classifier: ReferenceClassifier, path) -> None:
        result = classifier.classify(path)
        assert result.kind is ReferenceKind.GLOBAL
        assert result.owner is None

    def test_own_binding_wins_over_table(self, scans, table) -> None:
        """A document keeps its own binding even when it lost the table entry."""
        graph = build_graph({"z.html": "<script>Polymer.Element = 2;</script>"}, entries=["z.html"])
        scan = NamespaceScanner().scan(graph.get_document("z.html"))

        result = ReferenceClassifier(table, scan).classify(("Polymer", "Element"))
        assert result.kind is ReferenceKind.LOCAL
        assert table.lookup(("Polymer", "Element")).owner == "dep.html"
