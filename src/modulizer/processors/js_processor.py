"""JavaScript processor for parsing inline scripts into syntax trees.

This module wraps tree-sitter with the JavaScript grammar. The resulting
concrete syntax tree keeps byte ranges for every node, which the rewriter
uses to copy untouched code through verbatim: only the spans that are
actually converted are re-rendered.

Example:
    >>> processor = JsProcessor()
    >>> result = processor.parse("Polymer.Foo = 'Bar';", origin="test.html")
    >>> if result.success:
    ...     print(result.script.root.type)
    program
"""

from __future__ import annotations

from dataclasses import dataclass, field

import tree_sitter
import tree_sitter_javascript

from modulizer.utils.logger import get_logger

logger = get_logger("modulizer.processors.js_processor")

JS_LANGUAGE = tree_sitter.Language(tree_sitter_javascript.language())
_parser: tree_sitter.Parser | None = None

# Function node types across grammar releases
FUNCTION_EXPRESSION_TYPES = frozenset({"function", "function_expression"})
FUNCTION_TYPES = FUNCTION_EXPRESSION_TYPES | {"generator_function", "arrow_function"}


def _get_parser() -> tree_sitter.Parser:
    global _parser
    if _parser is None:
        _parser = tree_sitter.Parser(JS_LANGUAGE)
    return _parser


@dataclass
class ParsedScript:
    """A parsed inline script.

    Attributes:
        source: UTF-8 encoded script text
        tree: tree-sitter syntax tree over ``source``
        origin: Document key the script came from
        index: Position of the script within its document
        line_offset: Lines preceding the script in its document
    """

    source: bytes
    tree: tree_sitter.Tree
    origin: str = "<inline>"
    index: int = 0
    line_offset: int = 0

    @property
    def root(self) -> tree_sitter.Node:
        return self.tree.root_node

    def text(self, node: tree_sitter.Node) -> str:
        """Return the source text covered by a node."""
        return self.source[node.start_byte:node.end_byte].decode("utf-8")

    def line(self, node: tree_sitter.Node) -> int:
        """Return the 1-based document line number a node starts on."""
        return node.start_point[0] + 1 + self.line_offset


@dataclass
class ParseResult:
    """Result of parsing a script.

    Attributes:
        script: The parsed script (None if parsing failed)
        success: Whether the script parsed without syntax errors
        errors: List of error messages (empty if successful)
    """

    script: ParsedScript | None
    success: bool
    errors: list[str] = field(default_factory=list)


class JsProcessor:
    """Parses JavaScript text with tree-sitter.

    tree-sitter always produces a tree; a script is rejected when the tree
    contains ``ERROR`` or missing nodes.
    """

    def parse(
        self,
        code: str,
        origin: str = "<inline>",
        index: int = 0,
        line_offset: int = 0,
    ) -> ParseResult:
        """Parse script text.

        Args:
            code: JavaScript source
            origin: Document key used in error messages
            index: Position of the script within its document
            line_offset: Lines preceding the script in its document

        Returns:
            ParseResult with the parsed script or error messages
        """
        source = code.encode("utf-8")
        tree = _get_parser().parse(source)
        script = ParsedScript(
            source=source, tree=tree, origin=origin, index=index, line_offset=line_offset
        )

        if tree.root_node.has_error:
            errors = [
                f"Syntax error in {origin} (script {index + 1}) at line {line + line_offset}, column {column}"
                for line, column in self._error_positions(tree.root_node)
            ]
            for error in errors:
                logger.error(error)
            return ParseResult(script=None, success=False, errors=errors)

        logger.debug(
            f"Parsed script {index + 1} of {origin}: "
            f"{tree.root_node.named_child_count} top-level nodes"
        )
        return ParseResult(script=script, success=True)

    def _error_positions(self, root: tree_sitter.Node) -> list[tuple[int, int]]:
        """Collect 1-based positions of ERROR and missing nodes."""
        positions: list[tuple[int, int]] = []
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "ERROR" or node.is_missing:
                row, column = node.start_point
                positions.append((row + 1, column + 1))
                continue
            if node.has_error:
                stack.extend(reversed(node.children))
        return positions or [(1, 1)]
