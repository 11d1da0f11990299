"""Namespace scanner for finding the exports a document declares.

The scanner walks the top-level statements of every inline script of a
document and classifies each one: statements that assign to a member of a
namespace root (``Polymer.Foo = ...``) become export plans, scope-wrapping
IIFEs are unwrapped, ``'use strict'`` directives and namespace marker
comments are dropped, and everything else is kept as-is.

The resulting DocumentScan is used twice: phase 1 merges its export
entries into the shared export table, phase 2 renders its statement items.

Example:
    >>> scanner = NamespaceScanner(ConversionConfig())
    >>> scan = scanner.scan(document)
    >>> [entry.dotted_path for entry in scan.exports]
    ['Polymer.Foo']
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

import tree_sitter

from modulizer.core.config import IDENTIFIER_PATTERN, ConversionConfig
from modulizer.core.diagnostics import ConversionIssue, IssueKind
from modulizer.core.document_graph import Document
from modulizer.core.export_table import ExportEntry, ExportKind
from modulizer.processors.js_processor import (
    FUNCTION_EXPRESSION_TYPES,
    FUNCTION_TYPES,
    ParsedScript,
)
from modulizer.processors.member_path import (
    MemberPath,
    chain_root,
    format_path,
    get_member_path,
)
from modulizer.utils.logger import get_logger

logger = get_logger("modulizer.processors.namespace_scanner")

DECLARATION_TYPES = frozenset({"lexical_declaration", "variable_declaration"})
NAMED_DECLARATION_TYPES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
})


class ItemAction(Enum):
    """What the rewriter does with a top-level statement.

    Actions:
        KEEP: Copy the statement through, with references rewritten
        DROP: Leave the statement out of the module
        EXPORT: Replace the statement with its export declarations
    """
    KEEP = "keep"
    DROP = "drop"
    EXPORT = "export"


class ExportStyle(Enum):
    """Form of a generated export declaration."""
    LET = "let"
    FUNCTION = "function"
    REFERENCE = "reference"


@dataclass
class ExportPlan:
    """One export declaration to generate.

    Attributes:
        entry: The table entry the declaration exports
        style: Form of the declaration
        node: Initializer (LET), function or method node (FUNCTION) or the
            identifier of the exported binding (REFERENCE)
        anchor: Node whose start column continuation lines are relative to
        local: Module-level name bound to the export when it differs from
            the export name (always set for REFERENCE)
        comments: Comments that preceded the property in a namespace literal
    """
    entry: ExportEntry
    style: ExportStyle
    node: tree_sitter.Node
    anchor: tree_sitter.Node
    local: str = ""
    comments: list[tree_sitter.Node] = field(default_factory=list)


@dataclass
class StatementItem:
    """A top-level statement (or comment) of one script."""
    script: ParsedScript
    node: tree_sitter.Node
    action: ItemAction = ItemAction.KEEP
    exports: list[ExportPlan] = field(default_factory=list)

    @property
    def is_comment(self) -> bool:
        return self.node.type == "comment"


@dataclass
class DocumentScan:
    """Result of scanning one document.

    Attributes:
        key: Document key
        items: Top-level statements of all scripts, in document order
        exports: Export entries, namespace objects included
        issues: Non-fatal problems found while scanning
        bindings: Names declared at the top level of the module
        local_names: Member path -> module-level name it is bound to
        aliases: Local namespace variable -> member path it was exported as
    """
    key: str
    items: list[StatementItem] = field(default_factory=list)
    exports: list[ExportEntry] = field(default_factory=list)
    issues: list[ConversionIssue] = field(default_factory=list)
    bindings: set[str] = field(default_factory=set)
    local_names: dict[MemberPath, str] = field(default_factory=dict)
    aliases: dict[str, MemberPath] = field(default_factory=dict)

    @property
    def exported_names(self) -> list[str]:
        return [entry.name for entry in self.exports if entry.is_exported]


class _NamespaceAmbiguity(Exception):
    """A namespace literal member that cannot be exported statically."""

    def __init__(self, node: tree_sitter.Node, reason: str):
        self.node = node
        self.reason = reason
        super().__init__(reason)


class NamespaceScanner:
    """Finds the exports and top-level statement plan of a document.

    Attributes:
        config: Conversion configuration (namespace roots, global aliases,
            namespace marker)
    """

    def __init__(self, config: ConversionConfig | None = None) -> None:
        self.config = config or ConversionConfig()
        self._roots = set(self.config.namespaces)
        self._aliases = tuple(self.config.global_aliases)
        self._marker = re.compile(re.escape(self.config.namespace_marker) + r"(?![\w-])")

    def scan(self, document: Document) -> DocumentScan:
        """Scan every inline script of a document.

        Args:
            document: The loaded document

        Returns:
            DocumentScan with statement items and export entries
        """
        result = _ScanState(DocumentScan(key=document.key))

        for script in document.scripts:
            items = [
                StatementItem(script=script, node=node)
                for node in self._top_level_nodes(script)
            ]
            result.scan.items.extend(items)

        result.scan.bindings = self._collect_bindings(result.scan.items)
        result.local_namespaces = self._collect_local_namespaces(result.scan.items)

        for index, item in enumerate(result.scan.items):
            if item.action is not ItemAction.KEEP or item.is_comment:
                continue
            if self._is_use_strict(item):
                item.action = ItemAction.DROP
                continue
            assignment = self._assignment_of(item.node)
            if assignment is not None:
                self._scan_assignment(result, index, item, assignment)

        scan = result.scan
        logger.debug(
            f"Scanned {scan.key}: {len(scan.items)} statements, "
            f"{len(scan.exports)} exports, {len(scan.issues)} issues"
        )
        return scan

    # ------------------------------------------------------------------
    # Statement discovery
    # ------------------------------------------------------------------

    def _top_level_nodes(self, script: ParsedScript) -> list[tree_sitter.Node]:
        """Top-level statements and comments, with a scope-wrapping IIFE
        replaced by its body."""
        children = list(script.root.named_children)
        statements = [node for node in children if node.type != "comment"]
        if len(statements) != 1:
            return children

        body = self._iife_body(statements[0])
        if body is None:
            return children

        unwrapped: list[tree_sitter.Node] = []
        for node in children:
            if node == statements[0]:
                unwrapped.extend(body.named_children)
            else:
                unwrapped.append(node)
        logger.debug(f"Unwrapped scope IIFE in {script.origin} (script {script.index + 1})")
        return unwrapped

    def _iife_body(self, statement: tree_sitter.Node) -> tree_sitter.Node | None:
        """Return the body block of ``(function(){...})()`` style wrappers."""
        if statement.type != "expression_statement":
            return None
        expression = _first_named(statement)
        while expression is not None and expression.type == "parenthesized_expression":
            expression = _first_named(expression)
        if expression is None or expression.type != "call_expression":
            return None

        arguments = expression.child_by_field_name("arguments")
        if arguments is None or arguments.type != "arguments":
            return None
        if any(child.type != "comment" for child in arguments.named_children):
            return None

        function = expression.child_by_field_name("function")
        while function is not None and function.type == "parenthesized_expression":
            function = _first_named(function)
        if function is None or function.type not in FUNCTION_EXPRESSION_TYPES | {"arrow_function"}:
            return None

        parameters = function.child_by_field_name("parameters")
        if parameters is None or any(
            child.type != "comment" for child in parameters.named_children
        ):
            return None

        body = function.child_by_field_name("body")
        if body is None or body.type != "statement_block":
            return None
        return body

    def _is_use_strict(self, item: StatementItem) -> bool:
        if not self.config.strip_use_strict or item.node.type != "expression_statement":
            return False
        expression = _first_named(item.node)
        if expression is None or expression.type != "string":
            return False
        return item.script.text(expression)[1:-1] == "use strict"

    def _assignment_of(self, node: tree_sitter.Node) -> tree_sitter.Node | None:
        if node.type != "expression_statement":
            return None
        expression = _first_named(node)
        if expression is None or expression.type != "assignment_expression":
            return None
        return expression

    def _collect_bindings(self, items: list[StatementItem]) -> set[str]:
        """Names declared by top-level function, class and variable
        declarations."""
        bindings: set[str] = set()
        for item in items:
            node = item.node
            if node.type in NAMED_DECLARATION_TYPES:
                name = node.child_by_field_name("name")
                if name is not None:
                    bindings.add(item.script.text(name))
            elif node.type in DECLARATION_TYPES:
                for declarator in _declarators(node):
                    name = declarator.child_by_field_name("name")
                    if name is not None and name.type == "identifier":
                        bindings.add(item.script.text(name))
        return bindings

    def _collect_local_namespaces(
        self, items: list[StatementItem]
    ) -> dict[str, tuple[int, tree_sitter.Node]]:
        """Top-level single-variable declarations initialized with a marked
        namespace literal, by variable name."""
        found: dict[str, tuple[int, tree_sitter.Node]] = {}
        for index, item in enumerate(items):
            if item.node.type not in DECLARATION_TYPES:
                continue
            declarators = _declarators(item.node)
            if len(declarators) != 1:
                continue
            name = declarators[0].child_by_field_name("name")
            value = declarators[0].child_by_field_name("value")
            if name is None or name.type != "identifier" or value is None:
                continue
            if value.type == "object" and self._marker_index(items, index) is not None:
                found.setdefault(item.script.text(name), (index, value))
        return found

    def _escaping_use(
        self,
        items: list[StatementItem],
        name: str,
        members: set[str],
        skip: list[tree_sitter.Node | None],
    ) -> tuple[ParsedScript, tree_sitter.Node] | None:
        """First use of a local namespace variable other than a read of
        one of its exported members.

        Once the variable is consumed only ``name.member`` accesses can be
        rewritten to module bindings; any other use would be left dangling.
        """
        skipped = [node for node in skip if node is not None]
        for item in items:
            if item.is_comment:
                continue
            script = item.script
            stack = [item.node]
            while stack:
                node = stack.pop()
                stack.extend(reversed(node.children))
                if node.type not in ("identifier", "shorthand_property_identifier"):
                    continue
                if script.text(node) != name or any(node == other for other in skipped):
                    continue
                parent = node.parent
                if (
                    node.type == "identifier"
                    and parent is not None
                    and parent.type == "member_expression"
                    and parent.child_by_field_name("object") == node
                ):
                    member = parent.child_by_field_name("property")
                    if member is not None and script.text(member) in members:
                        continue
                return script, node
        return None

    def _marker_index(self, items: list[StatementItem], index: int) -> int | None:
        """Index of the namespace marker comment directly preceding an
        item, if any."""
        position = index - 1
        while position >= 0:
            candidate = items[position]
            if not candidate.is_comment or candidate.script is not items[index].script:
                return None
            text = candidate.script.text(candidate.node)
            if text.startswith("/**") and self._marker.search(text):
                return position
            position -= 1
        return None

    # ------------------------------------------------------------------
    # Assignment classification
    # ------------------------------------------------------------------

    def _scan_assignment(
        self,
        state: _ScanState,
        index: int,
        item: StatementItem,
        assignment: tree_sitter.Node,
    ) -> None:
        script = item.script
        left = assignment.child_by_field_name("left")
        right = assignment.child_by_field_name("right")
        if left is None or right is None:
            return

        root = chain_root(left, script, self._aliases)
        if root not in self._roots:
            return

        path = get_member_path(left, script, self._aliases)
        if path is None:
            state.issue(
                IssueKind.STRUCTURAL_AMBIGUITY,
                f"Assignment target '{script.text(left)}' is not a static member path; "
                f"statement left unconverted",
                script.line(item.node),
            )
            return
        if len(path) < 2:
            return

        # Marked namespace literal
        marker = self._marker_index(state.scan.items, index)
        if right.type == "object" and marker is not None:
            plans = self._namespace_plans(state, path, right, script, item.node)
            if plans is not None and state.claim(path, plans, script.line(item.node)):
                item.action = ItemAction.EXPORT
                item.exports = plans
                state.scan.items[marker].action = ItemAction.DROP
                state.add_namespace(path, script.line(item.node))
            return

        # Local variable holding a marked namespace literal
        if right.type == "identifier" and script.text(right) in state.local_namespaces:
            name = script.text(right)
            declaration_index, literal = state.local_namespaces[name]
            declaration = state.scan.items[declaration_index]
            plans = self._namespace_plans(
                state, path, literal, declaration.script, declaration.node
            )
            if plans is None:
                return
            declared = _declarators(declaration.node)[0].child_by_field_name("name")
            members = {plan.entry.name for plan in plans if plan.entry.is_exported}
            escaping = self._escaping_use(state.scan.items, name, members, [declared, right])
            if escaping is not None:
                use_script, use = escaping
                state.issue(
                    IssueKind.STRUCTURAL_AMBIGUITY,
                    f"Namespace variable '{name}' is used other than through its "
                    f"exported members; statement left unconverted",
                    use_script.line(use),
                )
                return
            if state.claim(path, plans, script.line(item.node)):
                declaration.action = ItemAction.EXPORT
                declaration.exports = plans
                marker = self._marker_index(state.scan.items, declaration_index)
                if marker is not None:
                    state.scan.items[marker].action = ItemAction.DROP
                item.action = ItemAction.DROP
                state.scan.aliases[name] = path
                state.add_namespace(path, script.line(item.node))
            return

        # Single member of the root
        if len(path) == 2:
            kind = ExportKind.REFERENCE if right.type == "identifier" else ExportKind.VALUE
            plan = self._value_plan(state, path, right, script, item.node, kind)
            if state.claim(path, [plan], script.line(item.node)):
                item.action = ItemAction.EXPORT
                item.exports = [plan]
            return

        # Property added to a namespace declared earlier in this document
        if path[:-1] in state.namespaces:
            plan = self._member_plan(state, path, right, script, item.node)
            if state.claim(path, [plan], script.line(item.node)):
                item.action = ItemAction.EXPORT
                item.exports = [plan]

    def _namespace_plans(
        self,
        state: _ScanState,
        path: MemberPath,
        literal: tree_sitter.Node,
        script: ParsedScript,
        statement: tree_sitter.Node,
    ) -> list[ExportPlan] | None:
        """One export plan per property of a namespace literal, or None
        if a property cannot be exported statically."""
        plans: list[ExportPlan] = []
        comments: list[tree_sitter.Node] = []
        try:
            for member in literal.named_children:
                if member.type == "comment":
                    comments.append(member)
                    continue
                plan = self._property_plan(state, path, member, script)
                plan.comments = comments
                comments = []
                plans.append(plan)
        except _NamespaceAmbiguity as e:
            state.issue(
                IssueKind.STRUCTURAL_AMBIGUITY,
                f"Namespace {format_path(path)} has a member that cannot be exported "
                f"statically ({e.reason}: '{script.text(e.node)}'); statement left unconverted",
                script.line(e.node),
            )
            return None
        return plans

    def _property_plan(
        self,
        state: _ScanState,
        path: MemberPath,
        member: tree_sitter.Node,
        script: ParsedScript,
    ) -> ExportPlan:
        line = script.line(member)

        if member.type == "shorthand_property_identifier":
            name = script.text(member)
            entry = ExportEntry(state.scan.key, path + (name,), ExportKind.REFERENCE, line)
            return ExportPlan(entry, ExportStyle.REFERENCE, member, member, local=name)

        if member.type == "method_definition":
            if any(child.type in ("get", "set") for child in member.children):
                raise _NamespaceAmbiguity(member, "accessor property")
            name = self._property_name(member.child_by_field_name("name"), member, script)
            entry = ExportEntry(state.scan.key, path + (name,), ExportKind.FUNCTION, line)
            return ExportPlan(entry, ExportStyle.FUNCTION, member, member)

        if member.type == "pair":
            name = self._property_name(member.child_by_field_name("key"), member, script)
            value = member.child_by_field_name("value")
            if value is None:
                raise _NamespaceAmbiguity(member, "missing value")
            return self._member_plan(state, path + (name,), value, script, member)

        raise _NamespaceAmbiguity(member, member.type.replace("_", " "))

    def _property_name(
        self, key: tree_sitter.Node | None, member: tree_sitter.Node, script: ParsedScript
    ) -> str:
        if key is None:
            raise _NamespaceAmbiguity(member, "missing name")
        if key.type == "property_identifier":
            return script.text(key)
        if key.type == "string":
            name = script.text(key)[1:-1]
            if IDENTIFIER_PATTERN.match(name):
                return name
        raise _NamespaceAmbiguity(key, "non-identifier key")

    def _member_plan(
        self,
        state: _ScanState,
        path: MemberPath,
        value: tree_sitter.Node,
        script: ParsedScript,
        anchor: tree_sitter.Node,
    ) -> ExportPlan:
        """Plan for a namespace member: functions become function
        declarations, identifiers re-exports, anything else a ``let``."""
        line = script.line(anchor)
        if value.type in FUNCTION_TYPES and value.type != "arrow_function":
            entry = ExportEntry(state.scan.key, path, ExportKind.FUNCTION, line)
            inner = value.child_by_field_name("name")
            if inner is not None and script.text(inner) != path[-1]:
                # The body may call itself through its own name
                return ExportPlan(entry, ExportStyle.LET, value, anchor)
            return ExportPlan(entry, ExportStyle.FUNCTION, value, anchor)
        if value.type == "identifier":
            return self._value_plan(state, path, value, script, anchor, ExportKind.REFERENCE)
        return self._value_plan(state, path, value, script, anchor, ExportKind.VALUE)

    def _value_plan(
        self,
        state: _ScanState,
        path: MemberPath,
        value: tree_sitter.Node,
        script: ParsedScript,
        anchor: tree_sitter.Node,
        kind: ExportKind,
    ) -> ExportPlan:
        line = script.line(anchor)
        if kind is ExportKind.REFERENCE:
            local = script.text(value)
            # export { x as y } needs a declared x
            if local == path[-1] or local in state.scan.bindings:
                entry = ExportEntry(state.scan.key, path, ExportKind.REFERENCE, line)
                return ExportPlan(entry, ExportStyle.REFERENCE, value, anchor, local=local)
            kind = ExportKind.VALUE
        entry = ExportEntry(state.scan.key, path, kind, line)
        return ExportPlan(entry, ExportStyle.LET, value, anchor)


class _ScanState:
    """Mutable bookkeeping while scanning one document."""

    def __init__(self, scan: DocumentScan) -> None:
        self.scan = scan
        self.namespaces: set[MemberPath] = set()
        self.local_namespaces: dict[str, tuple[int, tree_sitter.Node]] = {}
        self._names: dict[str, MemberPath] = {}
        self._paths: set[MemberPath] = set()
        self._locals: set[str] = set()

    def issue(self, kind: IssueKind, message: str, line: int = 0) -> None:
        issue = ConversionIssue(kind=kind, document=self.scan.key, message=message, line=line)
        self.scan.issues.append(issue)
        logger.warning(str(issue))

    def claim(self, path: MemberPath, plans: list[ExportPlan], line: int) -> bool:
        """Register the exports of one statement unless any of its names or
        paths is already taken in this document."""
        if path in self._paths:
            self.issue(
                IssueKind.DUPLICATE_EXPORT,
                f"{format_path(path)} is already exported; first declaration wins",
                line,
            )
            return False

        seen: set[str] = set()
        for plan in plans:
            name = plan.entry.name
            if name in self._names or name in seen:
                first = self._names.get(name, plan.entry.path)
                self.issue(
                    IssueKind.DUPLICATE_EXPORT,
                    f"Export name '{name}' of {plan.entry.dotted_path} is already used "
                    f"by {format_path(first)}; first declaration wins",
                    plan.entry.line or line,
                )
                return False
            seen.add(name)

        for plan in plans:
            entry = plan.entry
            if plan.style is not ExportStyle.REFERENCE and entry.name in self.scan.bindings:
                plan.local = self.rename(entry.name)
                logger.debug(
                    f"Export {entry.dotted_path} clashes with a top-level binding; "
                    f"declared as {plan.local}"
                )
            self._names[entry.name] = entry.path
            self._paths.add(entry.path)
            self.scan.exports.append(entry)
            self.scan.local_names[entry.path] = plan.local or entry.name
            logger.debug(f"Export {entry.dotted_path} ({entry.kind.value}) in {self.scan.key}")
        return True

    def rename(self, name: str) -> str:
        """Free module-level name for an export whose own name is taken."""
        counter = 1
        candidate = f"{name}$1"
        while (
            candidate in self.scan.bindings
            or candidate in self._locals
            or candidate in self._names
        ):
            counter += 1
            candidate = f"{name}${counter}"
        self._locals.add(candidate)
        return candidate

    def add_namespace(self, path: MemberPath, line: int) -> None:
        self.namespaces.add(path)
        self._paths.add(path)
        self.scan.exports.append(
            ExportEntry(self.scan.key, path, ExportKind.NAMESPACE, line)
        )


def _first_named(node: tree_sitter.Node) -> tree_sitter.Node | None:
    for child in node.named_children:
        if child.type != "comment":
            return child
    return None


def _declarators(node: tree_sitter.Node) -> list[tree_sitter.Node]:
    return [child for child in node.named_children if child.type == "variable_declarator"]
