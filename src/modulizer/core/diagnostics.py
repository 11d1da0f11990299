"""Non-fatal conversion diagnostics.

Problems that only affect part of a document (an assignment whose target
cannot be resolved statically, two assignments exporting the same name)
do not stop the conversion. They are recorded as ConversionIssue objects,
attached to the generated module and logged as warnings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class IssueKind(Enum):
    """Kinds of non-fatal conversion issues.

    Kinds:
        STRUCTURAL_AMBIGUITY: An export-producing assignment could not be
            resolved to a static member path; the statement is emitted
            unconverted.
        DUPLICATE_EXPORT: A name (or namespace path) was exported twice;
            the first declaration wins.
        CIRCULAR_IMPORT: Documents import each other; the generated
            modules keep the cycle.
    """
    STRUCTURAL_AMBIGUITY = "structural_ambiguity"
    DUPLICATE_EXPORT = "duplicate_export"
    CIRCULAR_IMPORT = "circular_import"


@dataclass(frozen=True)
class ConversionIssue:
    """A single non-fatal issue.

    Attributes:
        kind: Issue category
        document: Key of the document the issue was found in
        message: Human-readable description
        line: 1-based line within the script, 0 if not line-specific
    """
    kind: IssueKind
    document: str
    message: str
    line: int = 0

    def __str__(self) -> str:
        location = f"{self.document}:{self.line}" if self.line else self.document
        return f"{location}: {self.kind.value}: {self.message}"
