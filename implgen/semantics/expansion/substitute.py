# semantics/expansion/substitute.py
"""
Tree substitution: one fragment + one binding + one argument index → one new fragment.

Every TypeRef that matches the placeholder is replaced by freshly
classified nodes for the argument, with the part of the occurrence past the
placeholder (trailing segments, carried generic arguments) appended
unchanged apart from its own nested substitutions. The input fragment is
never modified.
"""
from __future__ import annotations
from typing import Dict, Tuple, Union

from implgen.semantics.binding import GenericBinding
from implgen.semantics.expansion.matcher import match_prefix
from implgen.semantics.typepath import TypeExpr, TypePath
from implgen.syntax.interface import FragmentGrammar, Visitor, rewrite
from implgen.syntax.nodes import Fragment, Leaf, Node, TypeRef


class TreeSubstituter:
    """Replaces placeholder occurrences in type positions."""

    def __init__(self, grammar: FragmentGrammar) -> None:
        self.grammar = grammar
        # classified replacement nodes per (text, expression position); nodes are immutable
        self._nodes: Dict[Tuple[str, bool], Tuple[Node, ...]] = {}

    def substitute(self, fragment: Fragment, binding: GenericBinding, index: int) -> Fragment:
        """Copy of `fragment` with `binding.placeholder` replaced by argument `index`.

        When the argument is the placeholder itself the fragment is returned
        as is, so the first copy of a legacy binding is the declaration.
        """
        argument = binding.arguments[index]
        if argument == binding.placeholder:
            return fragment

        placeholder = binding.placeholder

        def visit(node: Node):
            if isinstance(node, TypeRef):
                return self._replace(node, placeholder, argument, visit)
            return None

        return rewrite(fragment, visit)

    def _replace(self, ref: TypeRef, placeholder: TypePath, argument: TypeExpr,
                 visit: Visitor) -> Union[Node, Tuple[Node, ...]]:
        end = match_prefix(ref, placeholder)
        if end is None:
            # not this one, but its generic arguments may hold occurrences
            return rewrite(ref, lambda n: None if n is ref else visit(n))

        rest = tuple(rewrite(child, visit) for child in ref.children[end:])

        if isinstance(argument, TypePath):
            head = self._nodes_for(render_path(argument, ref.in_expr), ref.in_expr)
            if len(head) == 1 and isinstance(head[0], TypeRef):
                return TypeRef(children=head[0].children + rest, in_expr=ref.in_expr)
            return head + rest

        if rest and _starts_with_scope(rest):
            # `T::new()` bound to `&U` reads `<&U>::new()`
            text = f"<{argument}>" + "".join(n.render() for n in rest)
            return self._nodes_for(text, ref.in_expr)
        return self._nodes_for(str(argument), False) + rest

    def _nodes_for(self, text: str, in_expr: bool) -> Tuple[Node, ...]:
        key = (text, in_expr)
        nodes = self._nodes.get(key)
        if nodes is None:
            nodes = self.grammar.type_nodes(text, in_expr=in_expr)
            self._nodes[key] = nodes
        return nodes


def render_path(path: TypePath, in_expr: bool = False) -> str:
    """Spell a path for a type position, or with turbofish (`Vec::<u8>`) for an expression."""
    if not in_expr:
        return str(path)
    parts = []
    for seg in path.segments:
        if seg.args:
            parts.append(f"{seg.name}::<{', '.join(str(a) for a in seg.args)}>")
        else:
            parts.append(seg.name)
    return ("::" if path.is_global else "") + "::".join(parts)


def _starts_with_scope(nodes: Tuple[Node, ...]) -> bool:
    for node in nodes:
        if isinstance(node, Leaf) and node.is_trivia():
            continue
        return isinstance(node, Leaf) and node.type == "PUNCT" and node.value == "::"
    return False
