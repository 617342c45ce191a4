# semantics/expansion/matcher.py
"""
Occurrence matching: does a TypeRef of a fragment denote the placeholder?

Comparison is structural and starts at the first segment. A reference
matches placeholder P when its first len(P) segments carry P's names, the
generic arguments on all but the last of those segments equal P's, and,
when P's last segment has arguments, those are equal too. Anything past
the matched prefix (`T::Output`, the `<X>` of `T<X>`) belongs to the
occurrence and is carried into the replacement.

No scope analysis is done: a local item spelled like the placeholder is
still matched wherever it appears in a type position.
"""
from __future__ import annotations
from typing import Optional, Sequence, Tuple

from implgen.internals.errors import MalformedBinding
from implgen.internals.lexer import TRIVIA_TYPES
from implgen.semantics.typepath import (
    AssocBinding,
    ConstArg,
    GenericArg,
    Lifetime,
    PathSegment,
    TypePath,
    parse_type,
)
from implgen.syntax.nodes import GenericArgs, Leaf, Node, TypeRef


def match_prefix(ref: TypeRef, placeholder: TypePath) -> Optional[int]:
    """Index of the first child of `ref` past the placeholder, or None if `ref` does not match."""
    if ref.is_global != placeholder.is_global:
        return None

    segments = ref.segments()
    wanted = placeholder.segments
    if len(segments) < len(wanted):
        return None

    last = len(wanted) - 1
    for i, (have, want) in enumerate(zip(segments, wanted)):
        if have.name != want.name:
            return None
        if want.args:
            if have.args_index is None or segment_args(ref, have.args_index) != want.args:
                return None
        elif i < last and have.args_index is not None:
            return None

    matched = segments[last]
    if wanted[last].args:
        return matched.end
    return matched.name_index + 1


def matches(ref: TypeRef, placeholder: TypePath) -> bool:
    return match_prefix(ref, placeholder) is not None


def typepath_of(ref: TypeRef) -> TypePath:
    """Structural model of a TypeRef, for equality checks."""
    segments = []
    for seg in ref.segments():
        args: Tuple[GenericArg, ...] = ()
        if seg.args_index is not None:
            args = segment_args(ref, seg.args_index)
        segments.append(PathSegment(seg.name, args))
    return TypePath(tuple(segments), is_global=ref.is_global)


def segment_args(ref: TypeRef, index: int) -> Tuple[GenericArg, ...]:
    args = ref.children[index]
    assert isinstance(args, GenericArgs)
    return tuple(_generic_arg(region) for region in args.regions())


def _generic_arg(region: Sequence[Node]) -> GenericArg:
    if len(region) == 1 and isinstance(region[0], TypeRef):
        return typepath_of(region[0])

    text = _compact(region)
    if len(region) == 1 and isinstance(region[0], Leaf) and region[0].type == "LIFETIME":
        return Lifetime(text)
    try:
        return parse_type(text)
    except MalformedBinding:
        pass
    name, sep, rest = text.partition("=")
    if sep and name.strip().isidentifier():
        try:
            return AssocBinding(name.strip(), parse_type(rest))
        except MalformedBinding:
            pass
    return ConstArg(_compact(region, sep=""))


def _compact(region: Sequence[Node], sep: str = " ") -> str:
    """Region text with trivia dropped, tokens joined by `sep`."""
    return sep.join(
        str(tok) for node in region for tok in node.tokens() if tok.type not in TRIVIA_TYPES
    )
