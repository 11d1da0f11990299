"""Namespace export table shared by every document of a conversion.

Phase 1 of a conversion scans each document for assignments to the
namespace root and records the resulting exports here; phase 2 only reads
the table. The table is frozen once phase 1 has seen the whole document
set, after which any attempt to add an entry raises RuntimeError.

Example:
    >>> table = NamespaceExportTable()
    >>> table.add(ExportEntry("dep.html", ("Polymer", "Element"), ExportKind.VALUE))
    >>> table.freeze()
    >>> table.lookup(("Polymer", "Element")).owner
    'dep.html'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from modulizer.core.diagnostics import ConversionIssue, IssueKind
from modulizer.utils.logger import get_logger

if TYPE_CHECKING:
    from modulizer.processors.namespace_scanner import DocumentScan

logger = get_logger("modulizer.core.export_table")


class ExportKind(Enum):
    """Shape of the value behind an exported path.

    Kinds:
        VALUE: Any expression, exported as ``export let name = <expr>;``
        FUNCTION: A function expression or method, exported as a named
            function declaration
        NAMESPACE: An annotated namespace object; never exported by name,
            only imported as a whole
        REFERENCE: An identifier naming another binding, exported as
            ``export { local as name };``
    """
    VALUE = "value"
    FUNCTION = "function"
    NAMESPACE = "namespace"
    REFERENCE = "reference"


@dataclass(frozen=True)
class ExportEntry:
    """A single exported member path.

    Attributes:
        owner: Key of the document declaring the export
        path: Full member path, namespace root included
        kind: Shape of the exported value
        line: 1-based line of the declaring statement, 0 if unknown
    """
    owner: str
    path: tuple[str, ...]
    kind: ExportKind
    line: int = 0

    def __post_init__(self) -> None:
        if len(self.path) < 2:
            raise ValueError(
                f"Export path must name a member of a namespace root, got {self.path!r}"
            )

    @property
    def name(self) -> str:
        """Name the export is declared under in its module."""
        return self.path[-1]

    @property
    def dotted_path(self) -> str:
        return ".".join(self.path)

    @property
    def is_exported(self) -> bool:
        """Whether the entry is exported by name (namespace objects are not)."""
        return self.kind is not ExportKind.NAMESPACE


class NamespaceExportTable:
    """Mapping of member paths to the documents exporting them.

    Attributes:
        _entries: Dict mapping member path to ExportEntry
        _is_frozen: Whether the table is immutable
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, ...], ExportEntry] = {}
        self._is_frozen: bool = False

    def add(self, entry: ExportEntry) -> ExportEntry | None:
        """Add an entry to the table.

        When another document already exports the same path, the entry of
        the document with the smaller key is kept so the outcome does not
        depend on the order documents were scanned in.

        Args:
            entry: The entry to add

        Returns:
            The entry that lost a path conflict, or None if there was none

        Raises:
            RuntimeError: If table is frozen
        """
        if self._is_frozen:
            raise RuntimeError(
                "Cannot add export to frozen NamespaceExportTable. "
                "Table is immutable after freeze()."
            )

        existing = self._entries.get(entry.path)
        if existing is not None and existing.owner != entry.owner:
            winner, loser = sorted((existing, entry), key=lambda e: e.owner)
            if winner is entry:
                self._entries[entry.path] = entry
            logger.debug(
                f"Conflicting export {entry.dotted_path}: keeping {winner.owner}, "
                f"dropping {loser.owner}"
            )
            return loser
        if existing is not None:
            logger.debug(f"Export {entry.dotted_path} already registered for {entry.owner}")
            return None

        self._entries[entry.path] = entry
        logger.debug(f"Added export: {entry.dotted_path} ({entry.kind.value}, {entry.owner})")
        return None

    def freeze(self) -> None:
        """Make the table immutable."""
        self._is_frozen = True
        logger.info(f"NamespaceExportTable frozen with {len(self._entries)} entries")

    @property
    def is_frozen(self) -> bool:
        """Check if table is immutable."""
        return self._is_frozen

    def lookup(self, path: tuple[str, ...]) -> ExportEntry | None:
        """Return the entry registered for exactly ``path``."""
        return self._entries.get(tuple(path))

    @property
    def namespaced_exports(self) -> Mapping[str, str]:
        """Read-only mapping of dotted path to owning document key."""
        return MappingProxyType(
            {entry.dotted_path: entry.owner for entry in self._entries.values()}
        )

    def __contains__(self, path: object) -> bool:
        return isinstance(path, tuple) and path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries.values())

    def to_dict(self) -> dict[str, Any]:
        """Serialize table to dictionary for debugging/logging."""
        return {
            "is_frozen": self._is_frozen,
            "entry_count": len(self._entries),
            "entries": {
                entry.dotted_path: {
                    "owner": entry.owner,
                    "kind": entry.kind.value,
                    "line": entry.line,
                }
                for entry in self._entries.values()
            },
        }


class ExportTableBuilder:
    """Builds the shared export table from per-document scans.

    Scans are merged in a single-writer step: each DocumentScan is produced
    independently, then its entries are added here one by one.

    Example:
        >>> builder = ExportTableBuilder()
        >>> for scan in scans:
        ...     builder.add_scan(scan)
        >>> table = builder.build()
    """

    def __init__(self, table: NamespaceExportTable | None = None) -> None:
        self.table = table if table is not None else NamespaceExportTable()
        self.issues: list[ConversionIssue] = []

    def add_scan(self, scan: DocumentScan) -> list[ConversionIssue]:
        """Merge the exports of one scanned document.

        Returns:
            Issues raised by path conflicts with other documents
        """
        issues: list[ConversionIssue] = []
        for entry in scan.exports:
            loser = self.table.add(entry)
            if loser is None:
                continue
            winner = self.table.lookup(entry.path)
            issue = ConversionIssue(
                kind=IssueKind.DUPLICATE_EXPORT,
                document=loser.owner,
                message=(
                    f"{loser.dotted_path} is also exported by {winner.owner}; "
                    f"other documents import it from {winner.owner}"
                ),
                line=loser.line,
            )
            issues.append(issue)
            logger.warning(str(issue))

        self.issues.extend(issues)
        logger.debug(f"Merged {len(scan.exports)} exports from {scan.key}")
        return issues

    def build(self) -> NamespaceExportTable:
        """Freeze and return the table."""
        self.table.freeze()
        return self.table
