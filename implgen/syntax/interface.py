# implgen/syntax/interface.py
"""
Grammar abstraction and grammar-independent tree helpers.

The expansion engine only ever talks to a FragmentGrammar and walks the
node kinds defined in nodes.py. Which positions count as type references
is decided once, by the grammar, when a fragment is parsed; after that the
engine enumerates TypeRef nodes and text-bearing leaves without knowing
anything about the source language.
"""
from __future__ import annotations
from typing import Callable, Iterator, Optional, Protocol, Tuple, Union

from implgen.syntax.nodes import (
    Branch,
    Fragment,
    Leaf,
    Member,
    Node,
    TypeRef,
)

# A visitor returns None to descend, a Node to replace the visited node, or a
# tuple of nodes to splice in its place (an empty tuple deletes it).
Replacement = Union[Node, Tuple[Node, ...], None]
Visitor = Callable[[Node], Replacement]


class FragmentGrammar(Protocol):
    """What the engine needs from a source language."""

    name: str

    def parse(self, text: str) -> Fragment:
        """Parse declaration text into a fragment whose type positions are TypeRefs."""
        ...

    def type_nodes(self, text: str, in_expr: bool = False) -> Tuple[Node, ...]:
        """Classified nodes for a type spelled as `text`, used as a replacement."""
        ...

    def read_group(self, text: str, like: Node) -> Node:
        """Re-read the raw text of a macro body after a textual rewrite."""
        ...


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal."""
    yield node
    if isinstance(node, Branch):
        for child in node.children:
            yield from walk(child)


def iter_type_refs(node: Node) -> Iterator[TypeRef]:
    """Outermost type-reference positions; nested ones sit inside their GenericArgs."""
    if isinstance(node, TypeRef):
        yield node
        return
    if isinstance(node, Branch):
        for child in node.children:
            yield from iter_type_refs(child)


def iter_text_leaves(node: Node) -> Iterator[Leaf]:
    """Comments and string literals anywhere in the tree, macro bodies included."""
    for n in walk(node):
        if isinstance(n, Leaf) and n.type in ("COMMENT", "STRING"):
            yield n


def iter_members(node: Node) -> Iterator[Member]:
    """Members of the outermost body that has any; nested bodies are not searched."""
    if isinstance(node, Member):
        yield node
        return
    if not isinstance(node, Branch):
        return
    if any(isinstance(c, Member) for c in node.children):
        yield from (c for c in node.children if isinstance(c, Member))
        return
    for child in node.children:
        yield from iter_members(child)


def render(node: Node) -> str:
    return node.render()


def rewrite(node: Node, visit: Visitor) -> Node:
    """Rebuild `node` bottom-up through `visit`, sharing untouched subtrees.

    The root itself is never spliced away: a tuple returned for the root
    raises ValueError.
    """
    result = _rewrite(node, visit)
    if isinstance(result, tuple):
        raise ValueError("cannot splice at the root of a tree")
    return result


def _rewrite(node: Node, visit: Visitor) -> Union[Node, Tuple[Node, ...]]:
    replaced = visit(node)
    if replaced is not None:
        return replaced
    if not isinstance(node, Branch):
        return node

    changed = False
    children = []
    for child in node.children:
        new = _rewrite(child, visit)
        if isinstance(new, tuple):
            children.extend(new)
            changed = True
        else:
            changed = changed or new is not child
            children.append(new)
    if not changed:
        return node
    return node.with_children(children)


def first_significant(node: Node) -> Optional[Leaf]:
    for n in walk(node):
        if isinstance(n, Leaf) and not n.is_trivia():
            return n
    return None
