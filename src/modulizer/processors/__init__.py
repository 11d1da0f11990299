"""Public API for source processors with lazy imports.

Processor modules are only imported when one of their names is first
accessed, so loading ``modulizer.core`` (which the processors themselves
import) never pulls in the rewriter.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORT_MAP: dict[str, tuple[str, str]] = {
    "JsProcessor": ("modulizer.processors.js_processor", "JsProcessor"),
    "ParsedScript": ("modulizer.processors.js_processor", "ParsedScript"),
    "ParseResult": ("modulizer.processors.js_processor", "ParseResult"),
    "HtmlProcessor": ("modulizer.processors.html_processor", "HtmlProcessor"),
    "HtmlExtraction": ("modulizer.processors.html_processor", "HtmlExtraction"),
    "MemberPath": ("modulizer.processors.member_path", "MemberPath"),
    "get_member_path": ("modulizer.processors.member_path", "get_member_path"),
    "NamespaceScanner": ("modulizer.processors.namespace_scanner", "NamespaceScanner"),
    "DocumentScan": ("modulizer.processors.namespace_scanner", "DocumentScan"),
    "ReferenceClassifier": (
        "modulizer.processors.reference_classifier",
        "ReferenceClassifier",
    ),
    "ReferenceKind": ("modulizer.processors.reference_classifier", "ReferenceKind"),
    "DocumentRewriter": ("modulizer.processors.document_rewriter", "DocumentRewriter"),
    "ConversionContext": ("modulizer.processors.document_rewriter", "ConversionContext"),
    "ImportDeclaration": ("modulizer.processors.document_rewriter", "ImportDeclaration"),
    "JsModule": ("modulizer.processors.document_rewriter", "JsModule"),
}

__all__ = sorted(_EXPORT_MAP)


def __getattr__(name: str) -> Any:
    """Resolve exported names lazily on first access."""
    target = _EXPORT_MAP.get(name)
    if target is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attr_name = target
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
