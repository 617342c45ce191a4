# implgen/syntax/nodes.py
"""
Fragment tree: a tagged-variant tree over source tokens.

Every node is frozen. Leaves wrap one lark Token each and branches only
group their children, so rendering a tree is the concatenation of its
leaf texts and a freshly parsed fragment renders back to its source.
Rewrites build new nodes; unchanged subtrees are shared, which is safe
because nothing is ever mutated.
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple

from lark import Token

from implgen.internals.report import Span, span_of


class NodeKind(str, Enum):
    TRIVIA    = "trivia"       # whitespace
    COMMENT   = "comment"      # line, block and doc comments
    LITERAL   = "literal"      # strings, chars, numbers
    WORD      = "word"         # identifiers, keywords, lifetimes
    PUNCT     = "punct"
    GROUP     = "group"        # (...) [...] {...}
    TYPE      = "type"         # path in a type-reference position
    ARGS      = "args"         # <...> generic arguments of a path segment
    MACRO     = "macro"        # name!(...)
    ATTRIBUTE = "attribute"    # #[...]
    MEMBER    = "member"       # fn item inside an impl or trait body
    FRAGMENT  = "fragment"


_LEAF_KINDS = {
    "WS": NodeKind.TRIVIA,
    "COMMENT": NodeKind.COMMENT,
    "STRING": NodeKind.LITERAL,
    "CHAR": NodeKind.LITERAL,
    "NUMBER": NodeKind.LITERAL,
    "IDENT": NodeKind.WORD,
    "LIFETIME": NodeKind.WORD,
    "PUNCT": NodeKind.PUNCT,
}


@dataclass(frozen=True)
class Node:
    kind = NodeKind.FRAGMENT

    def tokens(self) -> Iterator[Token]:
        raise NotImplementedError

    def render(self) -> str:
        return "".join(str(t) for t in self.tokens())

    def first_token(self) -> Optional[Token]:
        return next(iter(self.tokens()), None)

    @property
    def span(self) -> Optional[Span]:
        tok = self.first_token()
        return span_of(tok) if tok is not None else None


@dataclass(frozen=True)
class Leaf(Node):
    token: Token

    @property
    def kind(self) -> NodeKind:
        return _LEAF_KINDS.get(self.token.type, NodeKind.PUNCT)

    @property
    def type(self) -> str:
        return self.token.type

    @property
    def value(self) -> str:
        return str(self.token)

    def tokens(self) -> Iterator[Token]:
        yield self.token

    def is_trivia(self) -> bool:
        return self.kind in (NodeKind.TRIVIA, NodeKind.COMMENT)

    def __repr__(self) -> str:
        return f"Leaf({self.token.type}, {self.value!r})"


@dataclass(frozen=True)
class Branch(Node):
    children: Tuple[Node, ...]

    def tokens(self) -> Iterator[Token]:
        for child in self.children:
            yield from child.tokens()

    def with_children(self, children: Iterable[Node]) -> "Branch":
        return replace(self, children=tuple(children))


@dataclass(frozen=True)
class Group(Branch):
    open: Token
    close: Token
    kind = NodeKind.GROUP

    @property
    def delimiter(self) -> str:
        return str(self.open)

    def tokens(self) -> Iterator[Token]:
        yield self.open
        yield from super().tokens()
        yield self.close

    def inner_text(self) -> str:
        return "".join(c.render() for c in self.children)


@dataclass(frozen=True)
class GenericArgs(Branch):
    open: Token                    # '<'
    close: Token                   # '>'
    kind = NodeKind.ARGS

    def tokens(self) -> Iterator[Token]:
        yield self.open
        yield from super().tokens()
        yield self.close

    def regions(self) -> List[Tuple[Node, ...]]:
        """Children split at top-level commas, trivia dropped, empty tail dropped."""
        regions: List[Tuple[Node, ...]] = []
        current: List[Node] = []
        for child in self.children:
            if isinstance(child, Leaf) and child.type == "PUNCT" and child.value == ",":
                regions.append(tuple(current))
                current = []
            elif not (isinstance(child, Leaf) and child.is_trivia()):
                current.append(child)
        if current:
            regions.append(tuple(current))
        return regions


@dataclass(frozen=True)
class PathSegmentRef:
    """Where one segment of a TypeRef sits among the TypeRef's children."""
    name: str
    name_index: int
    args_index: Optional[int] = None   # index of the GenericArgs child, if any
    end: int = 0                       # one past the last child of the segment


@dataclass(frozen=True)
class TypeRef(Branch):
    """A path in a type-reference position: `a::b::C<D>`, `T::default`, `Vec::<T>`.

    Children are the path's own tokens (names, `::`, interior trivia) and
    the GenericArgs attached to its segments.
    """
    in_expr: bool = False          # written in expression/pattern position
    kind = NodeKind.TYPE

    @property
    def is_global(self) -> bool:
        first = self.children[0] if self.children else None
        return isinstance(first, Leaf) and first.type == "PUNCT" and first.value == "::"

    def segments(self) -> List[PathSegmentRef]:
        segments: List[PathSegmentRef] = []
        for i, child in enumerate(self.children):
            if isinstance(child, Leaf) and child.type == "IDENT":
                segments.append(PathSegmentRef(child.value, i, None, i + 1))
            elif isinstance(child, GenericArgs) and segments:
                last = segments[-1]
                segments[-1] = PathSegmentRef(last.name, last.name_index, i, i + 1)
        return segments

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(s.name for s in self.segments())


@dataclass(frozen=True)
class MacroCall(Branch):
    kind = NodeKind.MACRO

    @property
    def body(self) -> Group:
        for child in reversed(self.children):
            if isinstance(child, Group):
                return child
        raise ValueError("macro call without a body")

    @property
    def name(self) -> str:
        return "".join(
            c.value for c in self.children
            if isinstance(c, Leaf) and c.type in ("IDENT", "PUNCT") and c.value != "!"
        )


@dataclass(frozen=True)
class Attribute(Branch):
    """`#[path(args)]` or `#![...]`; the bracket group is kept raw."""
    kind = NodeKind.ATTRIBUTE

    @property
    def bracket(self) -> Group:
        return next(c for c in self.children if isinstance(c, Group))

    @property
    def is_inner(self) -> bool:
        return any(isinstance(c, Leaf) and c.value == "!" for c in self.children)

    @property
    def name(self) -> str:
        """Attribute path, e.g. `implgen` or `doc`."""
        parts = []
        for child in self.bracket.children:
            if isinstance(child, Leaf) and child.is_trivia():
                continue
            if isinstance(child, Leaf) and (child.type == "IDENT" or child.value == "::"):
                parts.append(child.value)
                continue
            break
        return "".join(parts)

    @property
    def arguments(self) -> Optional[Group]:
        """The `(...)` group after the attribute path, if any."""
        for child in self.bracket.children:
            if isinstance(child, Group) and child.delimiter == "(":
                return child
        return None


@dataclass(frozen=True)
class Member(Branch):
    """A fn item (with its attributes) directly inside an impl or trait body."""
    name: str = ""
    kind = NodeKind.MEMBER

    def attributes(self) -> List[Attribute]:
        return [c for c in self.children if isinstance(c, Attribute)]

    def renamed(self, new_name: str) -> "Member":
        """Copy with the identifier after `fn` replaced."""
        children = list(self.children)
        seen_fn = False
        for i, child in enumerate(children):
            if not isinstance(child, Leaf) or child.type != "IDENT":
                continue
            if seen_fn:
                tok = Token.new_borrow_pos("IDENT", new_name, child.token)
                children[i] = Leaf(tok)
                break
            if child.value == "fn":
                seen_fn = True
        return replace(self, children=tuple(children), name=new_name)

    def without(self, attributes: Iterable[Attribute]) -> "Member":
        """Copy with the given attributes (and the whitespace after each) removed."""
        drop = set(id(a) for a in attributes)
        return replace(self, children=tuple(drop_with_trailing_ws(self.children, drop)))


@dataclass(frozen=True)
class Fragment(Branch):
    kind = NodeKind.FRAGMENT


def drop_with_trailing_ws(children: Iterable[Node], drop: set) -> List[Node]:
    out: List[Node] = []
    skip_ws = False
    for child in children:
        if id(child) in drop:
            skip_ws = True
            continue
        if skip_ws and isinstance(child, Leaf) and child.type == "WS":
            skip_ws = False
            continue
        skip_ws = False
        out.append(child)
    return out
