"""Conversion orchestrator driving the two-phase namespace-to-module run.

This module provides the ConversionOrchestrator class that coordinates the
conversion of a loaded document set:

1. **Validation** (VALIDATING): every import link of an included document
   must point at a document of the set; a missing one is fatal.
2. **Scanning** (SCANNING): every non-excluded document is scanned and its
   exports merged into the shared NamespaceExportTable, which is then
   frozen. No document is rewritten before this phase has seen the whole
   set, because any document may reference exports of any other.
3. **Rewriting** (REWRITING): each document is rewritten into a module
   against the frozen table.
4. **Completion** (COMPLETED/FAILED).

State Transitions::

    PENDING -> VALIDATING -> SCANNING -> REWRITING -> COMPLETED
                  |
                  v
                FAILED

Example:
    >>> from modulizer.core.document_graph import DocumentAnalyzer, FileSystemLoader
    >>> graph = DocumentAnalyzer(FileSystemLoader("components")).analyze(["app.html"])
    >>> orchestrator = ConversionOrchestrator(graph)
    >>> output = orchestrator.convert()
    >>> print(output["./app.js"])
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from modulizer.core.config import ConversionConfig
from modulizer.core.diagnostics import ConversionIssue, IssueKind
from modulizer.core.document_graph import Document, DocumentGraph, LoaderError
from modulizer.core.export_table import ExportTableBuilder, NamespaceExportTable
from modulizer.processors.document_rewriter import DocumentRewriter, JsModule
from modulizer.processors.namespace_scanner import DocumentScan, NamespaceScanner
from modulizer.utils.logger import get_logger
from modulizer.utils.path_utils import module_key, normalize_key

logger = get_logger("modulizer.core.orchestrator")


class JobState(Enum):
    """Enumeration of possible states of a conversion.

    States:
        PENDING: Orchestrator created, nothing done yet
        VALIDATING: Checking that the document set is complete
        SCANNING: Building the export table (phase 1)
        REWRITING: Generating modules (phase 2)
        COMPLETED: All documents converted
        FAILED: The document set could not be converted
    """
    PENDING = "pending"
    VALIDATING = "validating"
    SCANNING = "scanning"
    REWRITING = "rewriting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ConversionResult:
    """Result of a complete conversion run.

    Attributes:
        success: Whether the conversion ran to completion
        current_state: Final state of the job
        output: Output key -> generated module text
        modules: Output key -> JsModule
        issues: All non-fatal issues, in document order
        errors: Fatal error messages
        metadata: Counts and timings of the run
    """
    success: bool
    current_state: JobState = field(default=JobState.PENDING)
    output: dict[str, str] = field(default_factory=dict)
    modules: dict[str, JsModule] = field(default_factory=dict)
    issues: list[ConversionIssue] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


class ConversionOrchestrator:
    """Converts a document set into ES modules.

    Attributes:
        graph: The documents being converted and their import links
        config: Conversion configuration
        excludes: Keys of documents left out of the conversion
        table: The shared export table
        modules: Output key -> converted module, filled as documents are
            converted

    Example:
        Converting one document at a time while still sharing exports::

            orchestrator = ConversionOrchestrator(graph)
            orchestrator.convert_document(graph.get_document("test.html"))
            module = orchestrator.modules["./test.js"]
    """

    def __init__(
        self,
        documents: DocumentGraph | Mapping[str, Document] | Iterable[Document],
        config: ConversionConfig | None = None,
        excludes: Iterable[str] | None = None,
    ) -> None:
        self.config = config or ConversionConfig()
        self.config.validate()
        self.graph = _as_graph(documents)
        self.excludes = {
            normalize_key(key)
            for key in (self.config.excludes if excludes is None else excludes)
        }
        self.table = NamespaceExportTable()
        self.modules: dict[str, JsModule] = {}
        self._scanner = NamespaceScanner(self.config)
        self._builder = ExportTableBuilder(self.table)
        self._scans: dict[str, DocumentScan] = {}
        self._cycle_issues: list[ConversionIssue] = []
        self._current_state = JobState.PENDING
        self._logger = get_logger("modulizer.core.orchestrator")

    @property
    def state(self) -> JobState:
        return self._current_state

    @property
    def namespaced_exports(self) -> Mapping[str, str]:
        """Read-only mapping of dotted member path to exporting document."""
        return self.table.namespaced_exports

    @property
    def issues(self) -> list[ConversionIssue]:
        """All non-fatal issues found so far, in document order."""
        issues: list[ConversionIssue] = []
        for key in self.graph.documents:
            issues.extend(self._issues_for(key))
        return issues

    def _transition_state(self, new_state: JobState) -> None:
        old_state = self._current_state
        self._current_state = new_state
        self._logger.info(f"State transition: {old_state.name} -> {new_state.name}")

    def included_documents(self) -> list[Document]:
        return [doc for doc in self.graph if doc.key not in self.excludes]

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def convert(self) -> dict[str, str]:
        """Convert every non-excluded document.

        Returns:
            Mapping of output key (``./path/doc.js``) to module text

        Raises:
            LoaderError: If a document links to a document missing from
                the set, or two documents map to the same output key
        """
        self._transition_state(JobState.VALIDATING)
        self._logger.debug(f"Document graph: {self.graph.to_dict()}")
        try:
            self._validate_links(self.included_documents())
            self._validate_output_keys(self.included_documents())
        except LoaderError:
            self._transition_state(JobState.FAILED)
            raise

        self._transition_state(JobState.SCANNING)
        for document in self.included_documents():
            self._scan(document)
        self._detect_cycles()
        if not self.table.is_frozen:
            self._builder.build()
        self._logger.debug(f"Export table: {self.table.to_dict()}")

        self._transition_state(JobState.REWRITING)
        output: dict[str, str] = {}
        for document in self.included_documents():
            module = self._rewrite(document)
            output[module.key] = module.source

        self._transition_state(JobState.COMPLETED)
        self._logger.info(
            f"Converted {len(output)} documents "
            f"({len(self.excludes)} excluded, {len(self.issues)} issues)"
        )
        return output

    def convert_document(self, document: Document | str) -> JsModule:
        """Convert a single document.

        The document and the documents it transitively imports are scanned
        into the shared table first (unless already scanned), so exports of
        its dependencies resolve without converting the whole set.

        Raises:
            ValueError: If the document is excluded or not part of the set
            LoaderError: If one of its dependencies is missing from the set,
                or another converted document already produced its output key
        """
        key = document if isinstance(document, str) else document.key
        key = normalize_key(key)
        if key in self.excludes:
            raise ValueError(f"Document {key} is excluded from conversion")
        resolved = self.graph.get_document(key)
        if resolved is None:
            raise ValueError(f"Document {key} is not part of the document set")
        existing = self.modules.get(module_key(key, self.config.module_extension))
        if existing is not None and existing.document != key:
            raise LoaderError(
                key,
                f"output module '{existing.key}' is already produced by '{existing.document}'",
            )

        if not self.table.is_frozen:
            dependencies = [
                self.graph.documents[dep]
                for dep in self.graph.transitive_dependencies(key)
                if dep in self.graph.documents and dep not in self.excludes
            ]
            self._validate_links([resolved] + dependencies)
            for dependency in dependencies + [resolved]:
                self._scan(dependency)

        return self._rewrite(resolved)

    def run(self) -> ConversionResult:
        """Run a full conversion and report the outcome instead of raising.

        Returns:
            ConversionResult with output, issues and metadata
        """
        result = ConversionResult(success=False)
        start = time.perf_counter()
        try:
            result.output = self.convert()
            result.success = True
        except LoaderError as e:
            result.errors.append(e.message)
            self._logger.error(e.message)

        result.current_state = self._current_state
        result.modules = dict(self.modules)
        result.issues = self.issues
        result.metadata = {
            "document_count": len(self.graph),
            "converted_count": len(result.output),
            "excluded": sorted(self.excludes),
            "export_count": len(self.table),
            "issue_count": len(result.issues),
            "total_time_seconds": time.perf_counter() - start,
        }
        return result

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _validate_links(self, documents: Iterable[Document]) -> None:
        for document in documents:
            for dependency in self.graph.get_dependencies(document.key):
                if dependency not in self.graph.documents and dependency not in self.excludes:
                    raise LoaderError(
                        document.key, f"linked document '{dependency}' is not loaded"
                    )

    def _validate_output_keys(self, documents: Iterable[Document]) -> None:
        producers: dict[str, str] = {}
        for document in documents:
            output_key = module_key(document.key, self.config.module_extension)
            producer = producers.setdefault(output_key, document.key)
            if producer != document.key:
                raise LoaderError(
                    document.key,
                    f"output module '{output_key}' is also produced by '{producer}'",
                )

    def _scan(self, document: Document) -> DocumentScan:
        scan = self._scans.get(document.key)
        if scan is None:
            scan = self._scanner.scan(document)
            self._scans[document.key] = scan
            self._builder.add_scan(scan)
        return scan

    def _detect_cycles(self) -> None:
        self._cycle_issues = []
        for cycle in self.graph.detect_cycles():
            if any(key in self.excludes for key in cycle):
                continue
            issue = ConversionIssue(
                kind=IssueKind.CIRCULAR_IMPORT,
                document=cycle[0],
                message=f"Import cycle {' -> '.join(cycle)} is kept in the generated modules",
            )
            self._cycle_issues.append(issue)
            self._logger.warning(str(issue))

    def _rewrite(self, document: Document) -> JsModule:
        rewriter = DocumentRewriter(self.table, self.config, self.excludes)
        module = rewriter.rewrite(document, self._scans[document.key])
        module.issues = self._issues_for(document.key)
        self.modules[module.key] = module
        return module

    def _issues_for(self, key: str) -> list[ConversionIssue]:
        scan = self._scans.get(key)
        issues = list(scan.issues) if scan is not None else []
        issues.extend(issue for issue in self._builder.issues if issue.document == key)
        issues.extend(issue for issue in self._cycle_issues if issue.document == key)
        return issues


def _as_graph(
    documents: DocumentGraph | Mapping[str, Document] | Iterable[Document],
) -> DocumentGraph:
    if isinstance(documents, DocumentGraph):
        return documents
    if isinstance(documents, Mapping):
        documents = documents.values()
    graph = DocumentGraph()
    for document in documents:
        graph.add_document(document)
    return graph


def convert(
    documents: DocumentGraph | Mapping[str, Document] | Iterable[Document],
    excludes: Iterable[str] | None = None,
    config: ConversionConfig | None = None,
) -> dict[str, str]:
    """Convert a document set in one call.

    Example:
        >>> output = convert(graph, excludes=["legacy/shim.html"])
    """
    return ConversionOrchestrator(documents, config=config, excludes=excludes).convert()
