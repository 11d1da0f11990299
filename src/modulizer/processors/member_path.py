"""Member path resolution for static property-access chains.

A member path is the tuple of names in a chain such as ``Polymer.Foo.Bar``.
Only chains made of plain identifiers and dotted property names resolve;
computed access (``Polymer['Foo']``), optional chaining, calls or ``this``
anywhere in the chain make the expression unresolvable. A leading global
alias (``window`` by default) is dropped, so ``window.Polymer.Foo`` and
``Polymer.Foo`` resolve to the same path.

Example:
    >>> script = JsProcessor().parse("window.Foo.Bar.Baz = 'A';").script
    >>> assignment = script.root.named_children[0].named_children[0]
    >>> get_member_path(assignment.child_by_field_name("left"), script)
    ('Foo', 'Bar', 'Baz')
"""

from __future__ import annotations

from typing import Iterable, Tuple

import tree_sitter

from modulizer.processors.js_processor import ParsedScript

MemberPath = Tuple[str, ...]

DEFAULT_GLOBAL_ALIASES: tuple[str, ...] = ("window",)

# Node types that continue an access chain toward its root identifier
_CHAIN_TYPES = frozenset({"member_expression", "subscript_expression"})


def get_member_path(
    node: tree_sitter.Node,
    script: ParsedScript,
    global_aliases: Iterable[str] = DEFAULT_GLOBAL_ALIASES,
) -> MemberPath | None:
    """Resolve an expression to its member path.

    Args:
        node: Expression node (identifier or member expression)
        script: Script the node belongs to
        global_aliases: Identifiers that denote the global scope

    Returns:
        Non-empty tuple of names, or None if the expression is not a
        static access chain.
    """
    names: list[str] = []
    current = node

    while current.type == "member_expression":
        if any(child.type == "optional_chain" for child in current.children):
            return None
        prop = current.child_by_field_name("property")
        if prop is None or prop.type != "property_identifier":
            return None
        names.append(script.text(prop))
        current = current.child_by_field_name("object")
        if current is None:
            return None

    if current.type != "identifier":
        return None

    names.append(script.text(current))
    names.reverse()

    aliases = set(global_aliases)
    while names and names[0] in aliases:
        names.pop(0)

    return tuple(names) or None


def chain_root(
    node: tree_sitter.Node,
    script: ParsedScript,
    global_aliases: Iterable[str] = DEFAULT_GLOBAL_ALIASES,
) -> str | None:
    """Return the first non-alias identifier at the root of an access chain.

    Unlike :func:`get_member_path` this also walks through computed access,
    so ``Polymer['x'].y`` yields ``"Polymer"``. Used to recognise assignment
    targets that address a namespace root but cannot be resolved
    statically.
    """
    chain: list[tree_sitter.Node] = []
    current = node
    while current is not None and current.type in _CHAIN_TYPES:
        chain.append(current)
        current = current.child_by_field_name("object")

    if current is None or current.type != "identifier":
        return None

    aliases = set(global_aliases)
    name = script.text(current)
    # window.Polymer['x']: step outward past global aliases
    for link in reversed(chain):
        if name not in aliases:
            break
        if link.type != "member_expression":
            return None
        prop = link.child_by_field_name("property")
        if prop is None:
            return None
        name = script.text(prop)

    return None if name in aliases else name


def prefix_node(node: tree_sitter.Node, drop: int) -> tree_sitter.Node:
    """Return the sub-expression of a member chain with ``drop`` trailing
    property accesses removed (``A.B.C`` with ``drop=1`` gives ``A.B``)."""
    current = node
    for _ in range(drop):
        current = current.child_by_field_name("object")
    return current


def format_path(path: MemberPath) -> str:
    """Render a member path in dotted form."""
    return ".".join(path)
