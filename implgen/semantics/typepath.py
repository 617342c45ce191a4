"""
Type references as they appear in attribute arguments.

A TypePath is the dotted/scoped reference `a::b::C<D, E>`: a non-empty
sequence of segments, each optionally carrying generic arguments. The other
type forms (references, pointers, slices, tuples, trait objects, fn
pointers) wrap paths and can be bound as concrete arguments, but only a bare
TypePath can serve as a placeholder.

All forms are frozen dataclasses: equality is structural and recursive, and
str() renders the canonical spelling, so `str(parse_type(s)) == s` for any
canonically spelled `s`.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from lark import Token, Tree
from lark.exceptions import UnexpectedInput

from implgen.internals.errors import InvalidPlaceholderShape, MalformedBinding
from implgen.internals.parser import parse_attribute
from implgen.internals.report import Span


@dataclass(frozen=True)
class Lifetime:
    name: str                      # including the quote: 'a, 'static

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ConstArg:
    """Const generic argument given as a literal (`4`, `-1`) or a name."""
    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class AssocBinding:
    """Associated type binding inside generic arguments: `Item = T`."""
    name: str
    ty: "TypeExpr"

    def __str__(self) -> str:
        return f"{self.name} = {self.ty}"


@dataclass(frozen=True)
class PathSegment:
    name: str
    args: Tuple["GenericArg", ...] = ()

    def __str__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}<{', '.join(str(a) for a in self.args)}>"


@dataclass(frozen=True)
class TypePath:
    segments: Tuple[PathSegment, ...]
    is_global: bool = False        # written with a leading `::`

    def __post_init__(self) -> None:
        if not self.segments:
            raise ValueError("a type path needs at least one segment")

    def __str__(self) -> str:
        prefix = "::" if self.is_global else ""
        return prefix + "::".join(str(s) for s in self.segments)

    @property
    def leading(self) -> str:
        """Identifier of the first segment."""
        return self.segments[0].name

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(s.name for s in self.segments)

    @classmethod
    def parse(cls, text: str) -> "TypePath":
        """Parse `text` as a bare type path (the only valid placeholder shape)."""
        ty = parse_type(text)
        if not isinstance(ty, TypePath):
            raise InvalidPlaceholderShape(placeholder=text.strip())
        return ty

    @classmethod
    def of(cls, *names: str) -> "TypePath":
        """Build an argument-free path from segment names."""
        return cls(tuple(PathSegment(n) for n in names))


@dataclass(frozen=True)
class RefType:
    inner: "TypeExpr"
    mutable: bool = False
    lifetime: Optional[Lifetime] = None

    def __str__(self) -> str:
        parts = ["&"]
        if self.lifetime is not None:
            parts.append(f"{self.lifetime} ")
        if self.mutable:
            parts.append("mut ")
        parts.append(str(self.inner))
        return "".join(parts)


@dataclass(frozen=True)
class PtrType:
    inner: "TypeExpr"
    mutable: bool = False

    def __str__(self) -> str:
        return f"*{'mut' if self.mutable else 'const'} {self.inner}"


@dataclass(frozen=True)
class SliceType:
    inner: "TypeExpr"

    def __str__(self) -> str:
        return f"[{self.inner}]"


@dataclass(frozen=True)
class ArrayType:
    inner: "TypeExpr"
    length: str

    def __str__(self) -> str:
        return f"[{self.inner}; {self.length}]"


@dataclass(frozen=True)
class ParenType:
    inner: "TypeExpr"

    def __str__(self) -> str:
        return f"({self.inner})"


@dataclass(frozen=True)
class TupleType:
    items: Tuple["TypeExpr", ...] = ()

    def __str__(self) -> str:
        if len(self.items) == 1:
            return f"({self.items[0]},)"
        return f"({', '.join(str(t) for t in self.items)})"


@dataclass(frozen=True)
class NeverType:
    def __str__(self) -> str:
        return "!"


@dataclass(frozen=True)
class InferType:
    def __str__(self) -> str:
        return "_"


@dataclass(frozen=True)
class MaybeBound:
    """`?Sized`-style relaxed bound."""
    path: TypePath

    def __str__(self) -> str:
        return f"?{self.path}"


@dataclass(frozen=True)
class TraitObjectType:
    """`dyn A + B` or `impl A + B`."""
    keyword: str
    bounds: Tuple[Union[TypePath, Lifetime, MaybeBound], ...]

    def __str__(self) -> str:
        return f"{self.keyword} {' + '.join(str(b) for b in self.bounds)}"


@dataclass(frozen=True)
class FnPointerType:
    params: Tuple["TypeExpr", ...] = ()
    ret: Optional["TypeExpr"] = None
    is_unsafe: bool = False

    def __str__(self) -> str:
        head = "unsafe fn" if self.is_unsafe else "fn"
        text = f"{head}({', '.join(str(p) for p in self.params)})"
        if self.ret is not None:
            text += f" -> {self.ret}"
        return text


TypeExpr = Union[
    TypePath, RefType, PtrType, SliceType, ArrayType, ParenType, TupleType,
    NeverType, InferType, TraitObjectType, FnPointerType,
]
GenericArg = Union[TypeExpr, Lifetime, AssocBinding, ConstArg]


def parse_type(text: str) -> TypeExpr:
    """Parse a single type written in attribute-argument syntax."""
    try:
        tree = parse_attribute(text, start="type")
    except UnexpectedInput as e:
        span = Span(e.line, e.column, e.line, e.column + 1) if e.line and e.line > 0 else None
        raise MalformedBinding(span, text=text.strip(), reason="not a type") from e
    return build_type(tree)


#
# --- Tree → model
#

def build_type(node: Tree | Token) -> TypeExpr:
    """Convert a `type` subtree of binding.lark into a TypeExpr."""
    if not isinstance(node, Tree):
        raise MalformedBinding(text=str(node), reason="expected a type")

    kind = node.data
    kids = [c for c in node.children if c is not None]

    if kind == "path":
        return build_path(node)
    if kind == "ref_type":
        lifetime = next((Lifetime(str(c)) for c in kids if _is_token(c, "LIFETIME")), None)
        mutable = any(_is_token(c, "MUT") for c in kids)
        return RefType(build_type(kids[-1]), mutable=mutable, lifetime=lifetime)
    if kind == "ptr_type":
        return PtrType(build_type(kids[-1]), mutable=_is_token(kids[0], "MUT"))
    if kind == "slice_type":
        return SliceType(build_type(kids[0]))
    if kind == "array_type":
        length = kids[1]
        return ArrayType(build_type(kids[0]), "".join(str(t) for t in length.children))
    if kind == "paren_type":
        return ParenType(build_type(kids[0]))
    if kind == "tuple_type":
        return TupleType(tuple(build_type(c) for c in kids))
    if kind == "never_type":
        return NeverType()
    if kind == "infer_type":
        return InferType()
    if kind in ("dyn_type", "impl_type"):
        keyword = "dyn" if kind == "dyn_type" else "impl"
        return TraitObjectType(keyword, _build_bounds(kids[0]))
    if kind == "fn_type":
        is_unsafe = any(_is_token(c, "UNSAFE") for c in kids)
        params: Tuple[TypeExpr, ...] = ()
        ret: Optional[TypeExpr] = None
        for child in kids:
            if isinstance(child, Tree) and child.data == "type_list":
                params = build_type_list(child)
            elif isinstance(child, Tree) and child.data == "fn_ret":
                ret = build_type(child.children[0])
        return FnPointerType(params, ret, is_unsafe)

    raise MalformedBinding(text=kind, reason="unsupported type form")


def build_type_list(node: Tree) -> Tuple[TypeExpr, ...]:
    return tuple(build_type(c) for c in node.children if c is not None)


def build_path(node: Tree) -> TypePath:
    is_global = False
    segments = []
    for child in node.children:
        if isinstance(child, Tree) and child.data == "leading":
            is_global = True
        elif isinstance(child, Tree) and child.data == "segment":
            segments.append(_build_segment(child))
    return TypePath(tuple(segments), is_global=is_global)


def _build_segment(node: Tree) -> PathSegment:
    name = str(node.children[0])
    args: Tuple[GenericArg, ...] = ()
    if len(node.children) > 1:
        args = tuple(_build_generic_arg(c) for c in node.children[1].children)
    return PathSegment(name, args)


def _build_generic_arg(node: Tree | Token) -> GenericArg:
    if _is_token(node, "LIFETIME"):
        return Lifetime(str(node))
    if isinstance(node, Tree) and node.data == "assoc_binding":
        return AssocBinding(str(node.children[0]), build_type(node.children[1]))
    if isinstance(node, Tree) and node.data == "const_arg":
        return ConstArg("".join(str(t) for t in node.children))
    return build_type(node)


def _build_bounds(node: Tree) -> Tuple[Union[TypePath, Lifetime, MaybeBound], ...]:
    bounds = []
    for child in node.children:
        if _is_token(child, "LIFETIME"):
            bounds.append(Lifetime(str(child)))
        elif isinstance(child, Tree) and child.data == "maybe_bound":
            bounds.append(MaybeBound(build_path(child.children[0])))
        elif isinstance(child, Tree) and child.data == "path":
            bounds.append(build_path(child))
    return tuple(bounds)


def _is_token(node, type_: str) -> bool:
    return isinstance(node, Token) and node.type == type_
