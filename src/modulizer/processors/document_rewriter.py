"""Document rewriter producing ES module text from a scanned document.

Phase 2 of a conversion. For one document the rewriter:

1. collects every member path reference in the statements it emits and
   classifies it against the frozen export table,
2. allocates import bindings (named imports, or one ``$alias`` namespace
   import per dependency that is also used as a whole),
3. renders the statements, copying untouched source text verbatim and
   splicing in the rewritten references and the generated export
   declarations.

Source text is only ever sliced from the original script bytes, so
anything the rewriter does not touch comes out exactly as written (apart
from re-indentation relative to the statement's own line).

Example:
    >>> rewriter = DocumentRewriter(table, config)
    >>> module = rewriter.rewrite(document, scan)
    >>> print(module.source)
    import { Element } from './dep.js';
    class MyElement extends Element {}
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

import tree_sitter

from modulizer.core.config import ConversionConfig
from modulizer.core.diagnostics import ConversionIssue
from modulizer.core.document_graph import Document
from modulizer.core.export_table import NamespaceExportTable
from modulizer.processors.js_processor import ParsedScript
from modulizer.processors.member_path import MemberPath, get_member_path, prefix_node
from modulizer.processors.namespace_scanner import (
    DECLARATION_TYPES,
    DocumentScan,
    ExportPlan,
    ExportStyle,
    ItemAction,
    StatementItem,
)
from modulizer.processors.reference_classifier import (
    Classification,
    ReferenceClassifier,
    ReferenceKind,
)
from modulizer.utils.logger import get_logger
from modulizer.utils.path_utils import module_key, module_specifier

logger = get_logger("modulizer.processors.document_rewriter")

ASSIGNMENT_TYPES = frozenset({"assignment_expression", "augmented_assignment_expression"})
BLANK_LINE = re.compile(r"\n[ \t\r\f\v]*\n")
_WORD_SEPARATOR = re.compile(r"[^A-Za-z0-9_$]+")


class ImportKind(Enum):
    """Form of a generated import declaration."""
    NAMED = "named"
    NAMESPACE = "namespace"
    SIDE_EFFECT = "side_effect"


@dataclass
class ImportDeclaration:
    """An import declaration of a generated module.

    Attributes:
        source_document: Key of the document imported from
        specifier: Relative module specifier (``./dep.js``)
        kind: Named, namespace or side-effect import
        names: (exported name, local name) pairs for named imports
        alias: Local alias of a namespace import
    """
    source_document: str
    specifier: str
    kind: ImportKind = ImportKind.SIDE_EFFECT
    names: list[tuple[str, str]] = field(default_factory=list)
    alias: str = ""

    def render(self) -> str:
        if self.kind is ImportKind.NAMESPACE:
            return f"import * as {self.alias} from '{self.specifier}';"
        if self.kind is ImportKind.NAMED:
            specifiers = ", ".join(
                name if name == local else f"{name} as {local}"
                for name, local in self.names
            )
            return f"import {{ {specifiers} }} from '{self.specifier}';"
        return f"import '{self.specifier}';"


@dataclass
class JsModule:
    """A converted document.

    Attributes:
        key: Output key (``./path/to/doc.js``)
        document: Key of the source document
        source: Generated module text
        exported_names: Names the module exports, in declaration order
        imports: Import declarations, in output order
        issues: Non-fatal issues found in the document
    """
    key: str
    document: str
    source: str
    exported_names: list[str] = field(default_factory=list)
    imports: list[ImportDeclaration] = field(default_factory=list)
    issues: list[ConversionIssue] = field(default_factory=list)


@dataclass
class ConversionContext:
    """Per-document state while rewriting.

    Attributes:
        document: The document being rewritten
        scan: Its scan result
        module_key: Output key of the module
        module_extension: Extension of generated module keys
        imports: Import declarations by source document, in first-use order
        aliases: Local name -> member path it stands for
        namespace_locals: Local names bound to a whole namespace import;
            property access through them is left alone
        bound_names: Names already bound or referenced in the module
    """
    document: Document
    scan: DocumentScan
    module_key: str
    module_extension: str = ".js"
    imports: dict[str, ImportDeclaration] = field(default_factory=dict)
    aliases: dict[str, MemberPath] = field(default_factory=dict)
    namespace_locals: set[str] = field(default_factory=set)
    bound_names: set[str] = field(default_factory=set)

    def bind(self, name: str) -> str:
        """Reserve a module-level name, suffixing ``$1``, ``$2``... when
        it is already taken."""
        candidate = name
        counter = 0
        while candidate in self.bound_names:
            counter += 1
            candidate = f"{name}${counter}"
        self.bound_names.add(candidate)
        return candidate

    def declaration_for(self, owner: str) -> ImportDeclaration:
        declaration = self.imports.get(owner)
        if declaration is None:
            declaration = ImportDeclaration(
                source_document=owner,
                specifier=module_specifier(
                    self.module_key, module_key(owner, self.module_extension)
                ),
            )
            self.imports[owner] = declaration
        return declaration


@dataclass
class _Reference:
    """A rewritable member path occurrence."""
    script: ParsedScript
    node: tree_sitter.Node
    path: MemberPath
    classification: Classification

    @property
    def target(self) -> tree_sitter.Node:
        """Sub-expression covering the matched part of the path."""
        return prefix_node(self.node, len(self.path) - self.classification.matched)


# (start byte, end byte, replacement)
Edit = tuple[int, int, str]


class DocumentRewriter:
    """Rewrites scanned documents into ES modules.

    Attributes:
        table: The (frozen) export table
        config: Conversion configuration
    """

    def __init__(
        self,
        table: NamespaceExportTable,
        config: ConversionConfig | None = None,
        excludes: Iterable[str] | None = None,
    ) -> None:
        self.table = table
        self.config = config or ConversionConfig()
        self.excludes = set(self.config.excludes if excludes is None else excludes)
        self._global_aliases = tuple(self.config.global_aliases)
        self._protected_rows: dict[int, set[int]] = {}

    def rewrite(self, document: Document, scan: DocumentScan) -> JsModule:
        """Convert one document.

        Args:
            document: The loaded document
            scan: Its scan (from NamespaceScanner)

        Returns:
            JsModule with the generated source
        """
        self._protected_rows = {}
        context = ConversionContext(
            document=document,
            scan=scan,
            module_key=module_key(document.key, self.config.module_extension),
            module_extension=self.config.module_extension,
            aliases=dict(scan.aliases),
        )
        context.bound_names = self._names_in_use(document, scan)
        classifier = ReferenceClassifier(self.table, scan, self.excludes)

        self._find_namespace_locals(context, classifier)
        references = self._collect_references(context, classifier)
        edits = self._allocate_imports(context, references)
        imports = self._ordered_imports(context)

        body = self._render_items(scan.items, edits)
        lines = [declaration.render() for declaration in imports]
        if body:
            lines.append(body)
        source = "\n".join(lines) + "\n" if lines else ""

        logger.debug(
            f"Rewrote {document.key} -> {context.module_key}: {len(imports)} imports, "
            f"{len(references)} rewritten references"
        )
        return JsModule(
            key=context.module_key,
            document=document.key,
            source=source,
            exported_names=scan.exported_names,
            imports=imports,
            issues=list(scan.issues),
        )

    # ------------------------------------------------------------------
    # Reference collection
    # ------------------------------------------------------------------

    def _names_in_use(self, document: Document, scan: DocumentScan) -> set[str]:
        names = set(scan.bindings) | set(scan.exported_names) | set(scan.local_names.values())
        for script in document.scripts:
            for node in _walk(script.root):
                if node.type in ("identifier", "shorthand_property_identifier"):
                    names.add(script.text(node))
        return names

    def _find_namespace_locals(
        self, context: ConversionContext, classifier: ReferenceClassifier
    ) -> None:
        """Record ``const Foo = Polymer.Foo;`` declarations binding a whole
        namespace of another document."""
        for item in context.scan.items:
            if item.action is not ItemAction.KEEP or item.node.type not in DECLARATION_TYPES:
                continue
            for declarator in item.node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name = declarator.child_by_field_name("name")
                value = declarator.child_by_field_name("value")
                if name is None or name.type != "identifier" or value is None:
                    continue
                path = self._resolve(value, item.script, context)
                if path is None:
                    continue
                result = classifier.classify(path)
                if result.kind is ReferenceKind.NAMESPACE_IMPORT and result.matched == len(path):
                    local = item.script.text(name)
                    context.namespace_locals.add(local)
                    context.aliases[local] = path

    def _resolve(
        self, node: tree_sitter.Node, script: ParsedScript, context: ConversionContext
    ) -> MemberPath | None:
        if node.type != "member_expression":
            return None
        path = get_member_path(node, script, self._global_aliases)
        if path is None or path[0] in context.namespace_locals:
            return None
        if path[0] in context.aliases:
            return context.aliases[path[0]] + path[1:]
        return path

    def _collect_references(
        self, context: ConversionContext, classifier: ReferenceClassifier
    ) -> list[_Reference]:
        """Rewritable references of every emitted statement, in source
        order."""
        references: list[_Reference] = []
        for item in context.scan.items:
            if item.action is ItemAction.KEEP:
                self._collect_in(item.script, [item.node], context, classifier, references)
            elif item.action is ItemAction.EXPORT:
                for plan in item.exports:
                    self._collect_in(
                        item.script,
                        _plan_code_nodes(plan),
                        context,
                        classifier,
                        references,
                        own_path=plan.entry.path,
                    )
        return references

    def _collect_in(
        self,
        script: ParsedScript,
        nodes: list[tree_sitter.Node],
        context: ConversionContext,
        classifier: ReferenceClassifier,
        references: list[_Reference],
        own_path: MemberPath | None = None,
    ) -> None:
        stack = list(reversed(nodes))
        while stack:
            node = stack.pop()
            if node.type == "member_expression":
                path = self._resolve(node, script, context)
                if path is not None:
                    result = classifier.classify(path)
                    if self._is_rewritable(node, path, result, own_path):
                        references.append(_Reference(script, node, path, result))
                    continue
            stack.extend(reversed(node.children))

    def _is_rewritable(
        self,
        node: tree_sitter.Node,
        path: MemberPath,
        result: Classification,
        own_path: MemberPath | None,
    ) -> bool:
        if result.kind is ReferenceKind.GLOBAL:
            return False
        if own_path is not None and path[:result.matched] == own_path:
            # An export's initializer reading its own legacy path
            return False
        if _is_assignment_target(node):
            # Only property mutation through an imported binding survives
            # module conversion; bindings themselves are read-only.
            if result.matched == len(path) or result.kind is ReferenceKind.NAMESPACE_IMPORT:
                return False
        return True

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def _allocate_imports(
        self, context: ConversionContext, references: list[_Reference]
    ) -> dict[int, list[Edit]]:
        """Create import declarations and the text edits for every
        reference, keyed by script.

        A dependency whose namespace object is bound or passed around as a
        whole gets a single namespace import, and every other reference to
        it goes through that alias; otherwise it gets named imports.
        """
        # Whole namespace objects only; unexported members stay global
        namespace_owners = {
            ref.classification.owner
            for ref in references
            if ref.classification.kind is ReferenceKind.NAMESPACE_IMPORT
        }
        named_locals: dict[tuple[str, str], str] = {}
        edits: dict[int, list[Edit]] = {}

        for ref in references:
            result = ref.classification
            entry = result.entry
            if result.kind is ReferenceKind.LOCAL:
                replacement = result.local_name
            elif result.owner in namespace_owners:
                declaration = context.declaration_for(entry.owner)
                if declaration.kind is not ImportKind.NAMESPACE:
                    declaration.kind = ImportKind.NAMESPACE
                    declaration.alias = context.bind(self._namespace_alias(entry.owner))
                if result.kind is ReferenceKind.NAMESPACE_IMPORT:
                    replacement = declaration.alias
                else:
                    replacement = f"{declaration.alias}.{entry.name}"
            else:
                declaration = context.declaration_for(entry.owner)
                declaration.kind = ImportKind.NAMED
                key = (entry.owner, entry.name)
                if key not in named_locals:
                    named_locals[key] = context.bind(entry.name)
                    declaration.names.append((entry.name, named_locals[key]))
                replacement = named_locals[key]

            target = ref.target
            edits.setdefault(id(ref.script), []).append(
                (target.start_byte, target.end_byte, replacement)
            )
            logger.debug(
                f"{context.document.key}:{ref.script.line(ref.node)}: "
                f"{ref.script.text(target)} -> {replacement} ({result.kind.value})"
            )

        return edits

    def _namespace_alias(self, owner: str) -> str:
        stem = posixpath.splitext(posixpath.basename(owner))[0]
        words = [word for word in _WORD_SEPARATOR.split(stem) if word]
        if not words:
            words = ["module"]
        camel = words[0][:1].lower() + words[0][1:] + "".join(
            word[:1].upper() + word[1:] for word in words[1:]
        )
        return self.config.namespace_alias_prefix + camel

    def _ordered_imports(self, context: ConversionContext) -> list[ImportDeclaration]:
        """Linked documents in link order, then documents only reached
        through references in first-use order."""
        linked = [
            dependency
            for dependency in context.document.imports
            if dependency not in self.excludes and dependency != context.document.key
        ]
        owners = linked + [owner for owner in context.imports if owner not in linked]
        return [context.declaration_for(owner) for owner in owners]

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_items(self, items: list[StatementItem], edits: dict[int, list[Edit]]) -> str:
        parts: list[str] = []
        previous: StatementItem | None = None
        for item in items:
            if item.action is ItemAction.DROP:
                continue
            if item.action is ItemAction.EXPORT and not item.exports:
                # Empty namespace literal
                continue
            if item.action is ItemAction.EXPORT:
                text = "\n".join(
                    self._render_plan(item.script, plan, edits.get(id(item.script), []))
                    for plan in item.exports
                )
            else:
                text = self._render_node(
                    item.script, item.node, edits.get(id(item.script), []), item.node
                )
            if previous is not None:
                parts.append(self._separator(previous, item))
            parts.append(text)
            previous = item
        return "".join(parts)

    def _separator(self, previous: StatementItem, item: StatementItem) -> str:
        if previous.script is not item.script:
            return "\n"
        gap = item.script.source[previous.node.end_byte:item.node.start_byte].decode("utf-8")
        if "\n" not in gap:
            return " "
        if BLANK_LINE.search(gap):
            return "\n\n"
        return "\n"

    def _render_plan(self, script: ParsedScript, plan: ExportPlan, edits: list[Edit]) -> str:
        lines = [
            self._render_node(script, comment, edits, comment) for comment in plan.comments
        ]
        name = plan.entry.name

        if plan.style is ExportStyle.REFERENCE:
            if plan.local == name:
                lines.append(f"export {{ {name} }};")
            else:
                lines.append(f"export {{ {plan.local} as {name} }};")
        elif plan.style is ExportStyle.FUNCTION:
            node = plan.node
            flags = {child.type for child in node.children if not child.is_named}
            prefix = "async " if "async" in flags else ""
            star = "*" if "*" in flags else ""
            parameters = node.child_by_field_name("parameters")
            body = node.child_by_field_name("body")
            params_text = self._render_node(script, parameters, edits, plan.anchor)
            body_text = self._render_node(script, body, edits, plan.anchor)
            if plan.local:
                lines.append(f"{prefix}function{star} {plan.local}{params_text} {body_text}")
                lines.append(f"export {{ {plan.local} as {name} }};")
            else:
                lines.append(f"export {prefix}function{star} {name}{params_text} {body_text}")
        else:
            value = self._render_node(script, plan.node, edits, plan.anchor)
            if plan.local:
                lines.append(f"let {plan.local} = {value};")
                lines.append(f"export {{ {plan.local} as {name} }};")
            else:
                lines.append(f"export let {name} = {value};")

        return "\n".join(lines)

    def _render_node(
        self,
        script: ParsedScript,
        node: tree_sitter.Node,
        edits: list[Edit],
        anchor: tree_sitter.Node,
    ) -> str:
        """Source text of a node with edits applied, continuation lines
        re-indented relative to the anchor's line."""
        start, end = node.start_byte, node.end_byte
        pieces: list[bytes] = []
        cursor = start
        for edit_start, edit_end, replacement in sorted(edits):
            if edit_start < start or edit_end > end:
                continue
            pieces.append(script.source[cursor:edit_start])
            pieces.append(replacement.encode("utf-8"))
            cursor = edit_end
        pieces.append(script.source[cursor:end])
        text = b"".join(pieces).decode("utf-8")

        if "\n" not in text:
            return text
        indent = _line_indent(script, anchor)
        protected = self._protected(script)
        first_row = node.start_point[0]
        lines = text.split("\n")
        for offset in range(1, len(lines)):
            if first_row + offset in protected:
                continue
            line = lines[offset]
            leading = len(line) - len(line.lstrip(" \t"))
            lines[offset] = line[min(leading, indent):]
        return "\n".join(lines)

    def _protected(self, script: ParsedScript) -> set[int]:
        """Rows that start inside a template literal."""
        rows = self._protected_rows.get(id(script))
        if rows is None:
            rows = set()
            for node in _walk(script.root):
                if node.type == "template_string":
                    rows.update(range(node.start_point[0] + 1, node.end_point[0] + 1))
            self._protected_rows[id(script)] = rows
        return rows


def _walk(root: tree_sitter.Node) -> Iterable[tree_sitter.Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _plan_code_nodes(plan: ExportPlan) -> list[tree_sitter.Node]:
    if plan.style is ExportStyle.REFERENCE:
        return []
    if plan.style is ExportStyle.FUNCTION:
        return [
            child
            for child in (
                plan.node.child_by_field_name("parameters"),
                plan.node.child_by_field_name("body"),
            )
            if child is not None
        ]
    return [plan.node]


def _is_assignment_target(node: tree_sitter.Node) -> bool:
    parent = node.parent
    if parent is None:
        return False
    if parent.type in ASSIGNMENT_TYPES:
        left = parent.child_by_field_name("left")
        return left is not None and left == node
    return parent.type == "update_expression"


def _line_indent(script: ParsedScript, node: tree_sitter.Node) -> int:
    line_start = script.source.rfind(b"\n", 0, node.start_byte) + 1
    line = script.source[line_start:node.start_byte]
    return len(line) - len(line.lstrip(b" \t"))
