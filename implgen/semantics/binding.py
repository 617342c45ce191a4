"""
Attribute argument text → GenericBinding.

Three surface forms normalize to the same binding:

    T -> A, B, C        placeholder T, arguments [A, B, C]
    T in [A, B, C]      same, bracketed
    A, B, C             legacy: placeholder A, arguments [A, B, C]

In the legacy form the first argument doubles as the placeholder, so the
first generated copy is the declaration itself.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Tuple

from lark import Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput

from implgen.internals.errors import (
    EmptyArgumentList,
    InvalidPlaceholderShape,
    MalformedBinding,
)
from implgen.internals.parser import parse_attribute
from implgen.internals.report import Span, span_of
from implgen.semantics.typepath import (
    TypeExpr,
    TypePath,
    build_type,
    build_type_list,
)


@dataclass(frozen=True)
class GenericBinding:
    placeholder: TypePath
    arguments: Tuple[TypeExpr, ...]
    form: str = "canonical"          # canonical | bracketed | legacy
    span: Optional[Span] = None      # position of the argument text, when known

    def __post_init__(self) -> None:
        if not self.arguments:
            raise EmptyArgumentList(self.span, text=str(self.placeholder))
        if not isinstance(self.placeholder, TypePath):
            raise InvalidPlaceholderShape(self.span, placeholder=str(self.placeholder))

    def __len__(self) -> int:
        return len(self.arguments)

    def __str__(self) -> str:
        args = ", ".join(str(a) for a in self.arguments)
        return f"{self.placeholder} -> {args}"

    @property
    def marker(self) -> str:
        """Literal name used by template markers, e.g. `T` in `${T}`.

        This is the whole rendered placeholder path, not only its leading
        identifier: `a::T -> u8` is written `${a::T}`, and `${T}` is left alone.
        """
        return str(self.placeholder)


BindingStack = List[GenericBinding]


@dataclass(frozen=True)
class OverrideMarker:
    """`Sqlite -> update_sqlite` attached to a default member.

    In the copy where the bound argument equals `type`, the member named
    `alternate` takes the default member's place and name.
    """
    type: TypeExpr
    alternate: str
    span: Optional[Span] = None

    def __str__(self) -> str:
        return f"{self.type} -> {self.alternate}"


def parse_binding(text: str, origin: Optional[Span] = None) -> GenericBinding:
    """Parse one expansion attribute's argument text.

    Args:
        text: Text between the attribute's parentheses.
        origin: Position of `text` in its file; diagnostics are moved there.

    Raises:
        MalformedBinding, EmptyArgumentList, InvalidPlaceholderShape
    """
    source = text.strip()
    try:
        if not source:
            raise EmptyArgumentList(text=source)
        tree = _parse(source, "binding")
        return _build_binding(tree, source)
    except MalformedBinding as e:
        raise e.relocate(origin)


def parse_override(text: str, origin: Optional[Span] = None) -> OverrideMarker:
    """Parse an override marker's argument text (`<type> -> <member name>`)."""
    source = text.strip()
    try:
        tree = _parse(source, "override")
        ty = build_type(tree.children[0])
        name = tree.children[1]
        return OverrideMarker(ty, str(name), span=origin)
    except MalformedBinding as e:
        raise e.relocate(origin)


def _parse(source: str, start: str) -> Tree:
    try:
        return parse_attribute(source, start=start)
    except UnexpectedInput as e:
        raise MalformedBinding(_error_span(e), text=source, reason=_describe(e)) from e


def _build_binding(tree: Tree, source: str) -> GenericBinding:
    form = tree.data
    span = span_of(tree)

    if form == "legacy":
        arguments = build_type_list(tree.children[0])
        placeholder_node = tree.children[0].children[0]
    elif form in ("canonical", "bracketed"):
        placeholder_node = tree.children[0]
        if len(tree.children) < 2:
            raise EmptyArgumentList(span_of(tree), text=source)
        arguments = build_type_list(tree.children[1])
    else:
        raise MalformedBinding(span, text=source, reason=f"unknown form '{form}'")

    placeholder = build_type(placeholder_node)
    if not isinstance(placeholder, TypePath):
        raise InvalidPlaceholderShape(span_of(placeholder_node), placeholder=str(placeholder))
    return GenericBinding(placeholder, arguments, form=form, span=span)


def _error_span(e: UnexpectedInput) -> Optional[Span]:
    line = getattr(e, "line", -1)
    column = getattr(e, "column", -1)
    if line is None or line < 1:
        return None
    return Span(line, column, line, column + 1)


def _describe(e: UnexpectedInput) -> str:
    if isinstance(e, UnexpectedEOF):
        return "unexpected end of input"
    if isinstance(e, UnexpectedCharacters):
        return f"unexpected character {e.char!r}"
    token = getattr(e, "token", None)
    if isinstance(token, Token):
        if token.type == "$END":
            return "unexpected end of input"
        return f"unexpected '{token}'"
    return "does not match 'T -> A, B', 'T in [A, B]' or 'A, B'"
