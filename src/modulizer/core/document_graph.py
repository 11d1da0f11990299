"""Document graph module for loading HTML-import documents.

This module provides the loaders that fetch document text by key, the
DocumentAnalyzer that follows ``<link rel="import">`` links from a set of
entry documents, and the DocumentGraph that holds the loaded documents and
their import edges. Loading is all-or-nothing: a missing document, an
unresolvable link or a script with syntax errors raises LoaderError before
any conversion starts.

Example:
    >>> from modulizer.core.document_graph import DocumentAnalyzer, InMemoryLoader
    >>>
    >>> loader = InMemoryLoader({"test.html": '<link rel="import" href="./dep.html">',
    ...                          "dep.html": "<script>Polymer.Element = {};</script>"})
    >>> graph = DocumentAnalyzer(loader).analyze(["test.html"])
    >>> graph.get_dependencies("test.html")
    ['dep.html']
"""

from __future__ import annotations

import posixpath
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Protocol

from modulizer.processors.html_processor import HtmlProcessor
from modulizer.processors.js_processor import JsProcessor, ParsedScript
from modulizer.utils.logger import get_logger
from modulizer.utils.path_utils import (
    is_external_href,
    is_readable,
    is_safe_path,
    normalize_key,
    normalize_path,
    resolve_link,
)

logger = get_logger("modulizer.core.document_graph")

HTML_EXTENSIONS = (".html", ".htm")
SCRIPT_EXTENSIONS = (".js",)


# ============================================================================
# Custom Exceptions
# ============================================================================


class LoaderError(Exception):
    """Exception raised when the document set cannot be loaded completely.

    Attributes:
        key: Key of the document that failed to load
        message: Detailed error message
    """

    def __init__(self, key: str, details: str = ""):
        self.key = key
        detail_suffix = f": {details}" if details else ""
        self.message = f"Cannot load document '{key}'{detail_suffix}"
        super().__init__(self.message)


class ScriptSyntaxError(LoaderError):
    """Exception raised when an inline script of a document fails to parse.

    Attributes:
        errors: Individual syntax error messages
    """

    def __init__(self, key: str, errors: list[str]):
        self.errors = errors
        super().__init__(key, "; ".join(errors))


# ============================================================================
# Loaders
# ============================================================================


class DocumentLoader(Protocol):
    """Fetches document text by key."""

    def load(self, key: str) -> str:
        """Return the text of a document or raise LoaderError."""
        ...


class InMemoryLoader:
    """Loader backed by a dictionary of key -> text.

    Example:
        >>> loader = InMemoryLoader()
        >>> loader.contents["test.html"] = "<script></script>"
    """

    def __init__(self, contents: dict[str, str] | None = None) -> None:
        self.contents: dict[str, str] = {}
        for key, text in (contents or {}).items():
            self.contents[normalize_key(key)] = text

    def load(self, key: str) -> str:
        try:
            return self.contents[normalize_key(key)]
        except ValueError as e:
            raise LoaderError(key, str(e)) from e
        except KeyError:
            raise LoaderError(key, "no such document") from None


class FileSystemLoader:
    """Loader reading documents below a root directory.

    Keys are POSIX paths relative to the root; keys resolving outside the
    root are refused.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = normalize_path(root)

    def load(self, key: str) -> str:
        try:
            path = self.root / normalize_key(key)
        except ValueError as e:
            raise LoaderError(key, str(e)) from e
        if not is_safe_path(path, self.root):
            raise LoaderError(key, f"resolves outside {self.root}")
        if not path.is_file() or not is_readable(path):
            raise LoaderError(key, f"file not found or not readable: {path}")
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise LoaderError(key, str(e)) from e


# ============================================================================
# Data Structures
# ============================================================================


@dataclass
class Document:
    """A loaded source document.

    Attributes:
        key: Canonical document key (POSIX path relative to the load root)
        scripts: Parsed inline scripts, in document order
        imports: Keys of the documents this one links to, in link order
        kind: "html" or "js"
    """
    key: str
    scripts: list[ParsedScript] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    kind: str = "html"

    def __hash__(self) -> int:
        return hash(self.key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return self.key == other.key


@dataclass
class ImportLink:
    """An import link between two documents.

    Attributes:
        from_key: Key of the importing document
        to_key: Key of the imported document
        href: The link target as written in the source
    """
    from_key: str
    to_key: str
    href: str = ""

    def __post_init__(self) -> None:
        if self.from_key == self.to_key:
            raise ValueError(f"Self-loop detected: {self.from_key} cannot import itself")


@dataclass
class DocumentGraph:
    """Loaded documents and their import links.

    Attributes:
        documents: Mapping of document key to Document, in load order
        links: All import links
        adjacency_list: Forward adjacency (document -> documents it imports)
    """
    documents: dict[str, Document] = field(default_factory=dict)
    links: list[ImportLink] = field(default_factory=list)
    adjacency_list: dict[str, list[str]] = field(default_factory=dict)

    def add_document(self, document: Document) -> Document:
        """Add a document and the links it declares."""
        self.documents[document.key] = document
        self.adjacency_list.setdefault(document.key, [])

        for target in document.imports:
            self.links.append(ImportLink(document.key, target))
            if target not in self.adjacency_list[document.key]:
                self.adjacency_list[document.key].append(target)

        return document

    def get_document(self, key: str) -> Document | None:
        return self.documents.get(normalize_key(key))

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalize_key(key) in self.documents

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents.values())

    def __len__(self) -> int:
        return len(self.documents)

    def get_dependencies(self, key: str) -> list[str]:
        """Get the documents a document imports directly, in link order."""
        return list(self.adjacency_list.get(normalize_key(key), []))

    def transitive_dependencies(self, key: str) -> list[str]:
        """Get every document reachable through import links.

        Dependencies come before their dependents (depth-first post-order,
        following links in declaration order); the document itself is not
        included.
        """
        start = normalize_key(key)
        visited: set[str] = {start}
        order: list[str] = []

        def visit(current: str) -> None:
            for dep in self.adjacency_list.get(current, []):
                if dep in visited:
                    continue
                visited.add(dep)
                visit(dep)
                order.append(dep)

        visit(start)
        return order

    def detect_cycles(self) -> list[list[str]]:
        """Detect import cycles using DFS with color marking.

        Returns:
            List of cycles, each a list of keys starting and ending with
            the same document
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        color: dict[str, int] = {key: WHITE for key in self.documents}
        cycles: list[list[str]] = []

        def dfs(node: str, path: list[str]) -> None:
            color[node] = GRAY
            for neighbor in self.adjacency_list.get(node, []):
                if neighbor not in color:
                    continue
                if color[neighbor] == GRAY:
                    start = path.index(neighbor)
                    cycles.append(path[start:] + [neighbor])
                elif color[neighbor] == WHITE:
                    dfs(neighbor, path + [neighbor])
            color[node] = BLACK

        for key in self.documents:
            if color[key] == WHITE:
                dfs(key, [key])

        return cycles

    def to_dict(self) -> dict[str, Any]:
        """Serialize the graph for debugging/logging."""
        return {
            "documents": {
                key: {
                    "kind": document.kind,
                    "scripts": len(document.scripts),
                    "imports": list(document.imports),
                }
                for key, document in self.documents.items()
            },
            "links": [
                {"from": link.from_key, "to": link.to_key} for link in self.links
            ],
            "document_count": len(self.documents),
            "link_count": len(self.links),
        }


# ============================================================================
# Document Analyzer
# ============================================================================


class DocumentAnalyzer:
    """Loads documents and follows their import links.

    Attributes:
        loader: Source of document text
        graph: The graph being built

    Example:
        >>> analyzer = DocumentAnalyzer(FileSystemLoader("components"))
        >>> graph = analyzer.analyze(["paper-button/paper-button.html"])
    """

    def __init__(
        self,
        loader: DocumentLoader,
        js_processor: JsProcessor | None = None,
        html_processor: HtmlProcessor | None = None,
    ) -> None:
        self.loader = loader
        self.js_processor = js_processor or JsProcessor()
        self.html_processor = html_processor or HtmlProcessor()
        self.graph = DocumentGraph()
        self._logger = get_logger("modulizer.core.document_graph")

    def analyze(self, entry_keys: Iterable[str]) -> DocumentGraph:
        """Load the entry documents and everything they import.

        Documents are loaded breadth-first from the entries, in entry and
        link order, so the resulting graph is the same for the same inputs.

        Raises:
            LoaderError: If any reachable document cannot be loaded or parsed
        """
        queue: deque[str] = deque()
        for key in entry_keys:
            try:
                queue.append(normalize_key(key))
            except ValueError as e:
                raise LoaderError(key, str(e)) from e
        seen: set[str] = set(self.graph.documents)

        while queue:
            key = queue.popleft()
            if key in seen:
                continue
            seen.add(key)

            document = self.load_document(key)
            self.graph.add_document(document)
            queue.extend(dep for dep in document.imports if dep not in seen)

        self._logger.info(
            f"Document graph complete: {len(self.graph.documents)} documents, "
            f"{len(self.graph.links)} import links"
        )
        return self.graph

    def load_document(self, key: str) -> Document:
        """Load and parse a single document.

        Raises:
            LoaderError: If the document cannot be loaded or has an
                unsupported extension
            ScriptSyntaxError: If one of its scripts does not parse
        """
        text = self.loader.load(key)
        extension = posixpath.splitext(key)[1].lower()

        if extension in HTML_EXTENSIONS:
            return self._load_html(key, text)
        if extension in SCRIPT_EXTENSIONS:
            script = self._parse_script(key, text, 0, 0)
            return Document(key=key, scripts=[script], imports=[], kind="js")

        raise LoaderError(key, f"unsupported document type '{extension or key}'")

    def _load_html(self, key: str, text: str) -> Document:
        extraction = self.html_processor.extract(text, origin=key)

        imports: list[str] = []
        for href in extraction.links:
            if is_external_href(href):
                self._logger.warning(f"Skipping external import '{href}' in {key}")
                continue
            try:
                target = resolve_link(key, href)
            except ValueError as e:
                raise LoaderError(key, f"cannot resolve import '{href}': {e}") from e
            if target == key:
                self._logger.warning(f"Skipping self-import '{href}' in {key}")
                continue
            if target not in imports:
                imports.append(target)

        scripts = [
            self._parse_script(key, code, index, line - 1)
            for index, (code, line) in enumerate(
                zip(extraction.scripts, extraction.script_lines)
            )
        ]

        self._logger.debug(
            f"Loaded {key}: {len(imports)} imports, {len(scripts)} scripts"
        )
        return Document(key=key, scripts=scripts, imports=imports, kind="html")

    def _parse_script(self, key: str, code: str, index: int, line_offset: int) -> ParsedScript:
        result = self.js_processor.parse(code, origin=key, index=index, line_offset=line_offset)
        if not result.success or result.script is None:
            raise ScriptSyntaxError(key, result.errors)
        return result.script
