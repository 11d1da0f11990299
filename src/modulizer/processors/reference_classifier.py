"""Reference classifier for namespace member paths.

Decides what a reference such as ``Polymer.Foo.Element`` inside a document
turns into once the document becomes a module: a binding of the module
itself, a named import, a namespace import, or nothing at all (references
that match no export are left as plain global property access).

Example:
    >>> classifier = ReferenceClassifier(table, scan)
    >>> result = classifier.classify(("Polymer", "Element", "prototype"))
    >>> result.kind, result.matched
    (<ReferenceKind.NAMED_IMPORT: 'named_import'>, 2)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from modulizer.core.export_table import ExportEntry, ExportKind, NamespaceExportTable
from modulizer.processors.member_path import MemberPath
from modulizer.processors.namespace_scanner import DocumentScan


class ReferenceKind(Enum):
    """Classification of a member path reference.

    Kinds:
        GLOBAL: No export matches; the reference is left unchanged
        LOCAL: Exported by the referencing document itself
        NAMED_IMPORT: Exported by name from another document
        NAMESPACE_IMPORT: Names a whole namespace object of another
            document, imported as ``import * as $alias``
    """
    GLOBAL = "global"
    LOCAL = "local"
    NAMED_IMPORT = "named_import"
    NAMESPACE_IMPORT = "namespace_import"


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one reference.

    Attributes:
        kind: What the reference becomes
        entry: Matching export entry (None for GLOBAL)
        matched: Number of leading path names covered by the entry
        local_name: Module binding for LOCAL references
    """
    kind: ReferenceKind
    entry: ExportEntry | None = None
    matched: int = 0
    local_name: str = ""

    @property
    def owner(self) -> str | None:
        return self.entry.owner if self.entry is not None else None


GLOBAL_REFERENCE = Classification(ReferenceKind.GLOBAL)


class ReferenceClassifier:
    """Classifies the member path references of one document.

    The longest prefix of the path that names an export wins. Exports of
    the document itself are checked before the shared table, so a document
    always uses its own binding even when it lost a path conflict to
    another document. A path that only reaches into a foreign namespace
    object without naming one of its exports is left alone; the namespace
    object itself is imported only when it is referenced as a whole.
    """

    def __init__(
        self,
        table: NamespaceExportTable,
        scan: DocumentScan,
        excludes: Iterable[str] = (),
    ) -> None:
        self.table = table
        self.scan = scan
        self.excludes = set(excludes)
        self._own_namespaces = {
            entry.path for entry in scan.exports if entry.kind is ExportKind.NAMESPACE
        }
        self._own_entries = {entry.path: entry for entry in scan.exports}

    def classify(self, path: MemberPath) -> Classification:
        """Classify a resolved member path.

        Args:
            path: Member path with global aliases and local aliases resolved

        Returns:
            Classification (GLOBAL_REFERENCE when nothing matches)
        """
        for length in range(len(path), 1, -1):
            prefix = tuple(path[:length])

            if prefix in self.scan.local_names:
                return Classification(
                    ReferenceKind.LOCAL,
                    self._own_entries[prefix],
                    length,
                    self.scan.local_names[prefix],
                )
            if prefix in self._own_namespaces:
                # Namespace objects of the module itself have no binding
                return GLOBAL_REFERENCE

            entry = self.table.lookup(prefix)
            if entry is None:
                continue
            if entry.owner == self.scan.key or entry.owner in self.excludes:
                return GLOBAL_REFERENCE
            if entry.kind is ExportKind.NAMESPACE:
                if length < len(path):
                    # Member the namespace does not export
                    return GLOBAL_REFERENCE
                return Classification(ReferenceKind.NAMESPACE_IMPORT, entry, length)
            return Classification(ReferenceKind.NAMED_IMPORT, entry, length)

        return GLOBAL_REFERENCE
