# semantics/expansion/template.py
"""
Template text substitution inside comments, string literals and macro bodies.

The marker is the placeholder's rendering wrapped in the configured
delimiters, `${T}` by default. It is a plain text splice: every marker
occurrence is replaced by the argument's spelling, with no escaping and no
notion of type positions.
"""
from __future__ import annotations
from typing import FrozenSet

from implgen.internals.lexer import make_token
from implgen.semantics.binding import GenericBinding
from implgen.syntax.interface import FragmentGrammar, rewrite
from implgen.syntax.nodes import Fragment, Leaf, MacroCall, Node


class TemplateSubstituter:

    def __init__(self, grammar: FragmentGrammar, marker_open: str = "${", marker_close: str = "}",
                 comments: bool = True, strings: bool = True, macros: bool = True) -> None:
        self.grammar = grammar
        self.marker_open = marker_open
        self.marker_close = marker_close
        self.macros = macros
        types = set()
        if comments:
            types.add("COMMENT")
        if strings:
            types.add("STRING")
        self.leaf_types: FrozenSet[str] = frozenset(types)

    def marker(self, binding: GenericBinding) -> str:
        return f"{self.marker_open}{binding.marker}{self.marker_close}"

    def substitute(self, fragment: Fragment, binding: GenericBinding, index: int) -> Fragment:
        marker = self.marker(binding)
        text = str(binding.arguments[index])

        def visit(node: Node):
            if self.macros and isinstance(node, MacroCall):
                return self._macro(node, marker, text)
            if isinstance(node, Leaf) and node.type in self.leaf_types and marker in node.value:
                value = node.value.replace(marker, text)
                return Leaf(make_token(node.type, value, node.token))
            return None

        return rewrite(fragment, visit)

    def _macro(self, call: MacroCall, marker: str, text: str) -> Node:
        body = call.body
        inner = body.inner_text()
        if marker not in inner:
            return call
        new_body = self.grammar.read_group(inner.replace(marker, text), body)
        return call.with_children(new_body if child is body else child for child in call.children)
