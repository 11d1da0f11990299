"""Core conversion data model and document handling.

This module provides the configuration data model, the document graph and
its loaders, the shared namespace export table and the diagnostics
reported during a conversion. The orchestrator lives in
``modulizer.core.orchestrator``.

Classes:
    ConversionConfig: Configuration data model
    Document: A loaded HTML-import or script document
    DocumentGraph: Documents and their import links
    DocumentAnalyzer: Loads documents and follows their import links
    InMemoryLoader: Loader backed by a dictionary
    FileSystemLoader: Loader reading below a root directory
    ExportEntry: A single exported member path
    NamespaceExportTable: Member path -> exporting document mapping
    ConversionIssue: A non-fatal conversion issue
    LoaderError: Exception for documents that cannot be loaded
"""

__version__ = "0.1.0"

from modulizer.core.config import ConversionConfig, load_config
from modulizer.core.diagnostics import ConversionIssue, IssueKind
from modulizer.core.document_graph import (
    Document,
    DocumentAnalyzer,
    DocumentGraph,
    FileSystemLoader,
    ImportLink,
    InMemoryLoader,
    LoaderError,
    ScriptSyntaxError,
)
from modulizer.core.export_table import (
    ExportEntry,
    ExportKind,
    ExportTableBuilder,
    NamespaceExportTable,
)

__all__ = [
    "__version__",
    "ConversionConfig",
    "load_config",
    "ConversionIssue",
    "IssueKind",
    "Document",
    "DocumentAnalyzer",
    "DocumentGraph",
    "FileSystemLoader",
    "ImportLink",
    "InMemoryLoader",
    "LoaderError",
    "ScriptSyntaxError",
    "ExportEntry",
    "ExportKind",
    "ExportTableBuilder",
    "NamespaceExportTable",
]
