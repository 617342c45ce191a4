# semantics/expansion/overrides.py
"""
Per-member overrides.

A default member carries one or more markers naming a concrete type and an
alternate member of the same body:

    #[implgen_override(Sqlite -> update_sqlite)]
    fn update(&self) { ... }

    fn update_sqlite(&self) { ... }

In the copy where a layer binds `Sqlite`, `update_sqlite` takes the place of
`update` under the name `update`. Markers are consumed by the layer whose
arguments contain their type; alternates are dropped from every final copy.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from implgen.internals.errors import MalformedBinding, UnresolvedOverrideTarget
from implgen.semantics.binding import GenericBinding, OverrideMarker, parse_override
from implgen.syntax.interface import first_significant, iter_members, rewrite
from implgen.syntax.nodes import Attribute, Branch, Fragment, Leaf, Member, Node


@dataclass(frozen=True)
class OverrideSite:
    member: str                    # name of the default member carrying the marker
    marker: OverrideMarker


class OverrideResolver:

    def __init__(self, attribute: str = "implgen_override") -> None:
        self.attribute = attribute

    def parse(self, attr: Attribute) -> OverrideMarker:
        args = attr.arguments
        if args is None:
            raise MalformedBinding(attr.span, text=attr.render(),
                                   reason="expected '(<type> -> <member>)'")
        first = first_significant(args)
        origin = first.span if first is not None else attr.span
        return parse_override(args.inner_text(), origin)

    def markers(self, member: Member) -> List[Tuple[Attribute, OverrideMarker]]:
        return [(a, self.parse(a)) for a in member.attributes() if a.name == self.attribute]

    def collect(self, fragment: Fragment) -> List[OverrideSite]:
        """Parse and check every marker before anything is substituted.

        Raises:
            MalformedBinding: a marker's text is not `<type> -> <name>`.
            UnresolvedOverrideTarget: the alternate is not a member of the body.
        """
        members = list(iter_members(fragment))
        names = {m.name for m in members}
        sites = []
        for member in members:
            for _, marker in self.markers(member):
                if marker.alternate not in names:
                    raise UnresolvedOverrideTarget(marker.span, type=str(marker.type),
                                                   name=marker.alternate)
                sites.append(OverrideSite(member.name, marker))
        return sites

    def unbound(self, sites: Iterable[OverrideSite],
                stack: Sequence[GenericBinding]) -> List[OverrideSite]:
        """Sites whose type is not an argument of any layer."""
        return [s for s in sites if not any(s.marker.type in b.arguments for b in stack)]

    def apply(self, fragment: Fragment, binding: GenericBinding, index: int) -> Fragment:
        """Resolve the markers this layer decides, for the copy of argument `index`."""
        argument = binding.arguments[index]

        def visit(node: Node):
            if _is_body(node):
                return node.with_children(self._apply_body(node.children, binding, argument))
            return None

        return rewrite(fragment, visit)

    def _apply_body(self, children: Sequence[Node], binding: GenericBinding, argument) -> List[Node]:
        by_name = {c.name: c for c in children if isinstance(c, Member)}
        out: List[Node] = []
        for child in children:
            if not isinstance(child, Member):
                out.append(child)
                continue
            markers = self.markers(child)
            decided = [a for a, m in markers if m.type in binding.arguments]
            if not decided:
                out.append(child)
                continue
            hit: Optional[OverrideMarker] = next((m for _, m in markers if m.type == argument), None)
            if hit is not None and hit.alternate != child.name:
                out.append(by_name[hit.alternate].renamed(child.name))
            else:
                out.append(child.without(decided))
        return out

    def strip(self, fragment: Fragment, sites: Iterable[OverrideSite]) -> Fragment:
        """Drop alternate members and any markers left over.

        A member that carries markers of its own is a default and is kept,
        even when a marker names it as an alternate.
        """
        sites = list(sites)
        alternates: Set[str] = {s.marker.alternate for s in sites} - {s.member for s in sites}

        def visit(node: Node):
            if _is_body(node):
                return node.with_children(self._strip_body(node.children, alternates))
            return None

        return rewrite(fragment, visit)

    def _strip_body(self, children: Sequence[Node], alternates: Set[str]) -> List[Node]:
        out: List[Node] = []
        for child in children:
            if isinstance(child, Member) and child.name in alternates:
                # the indentation in front of the member goes with it
                if out and isinstance(out[-1], Leaf) and out[-1].type == "WS":
                    out.pop()
                continue
            if isinstance(child, Member):
                leftover = [a for a in child.attributes() if a.name == self.attribute]
                if leftover:
                    child = child.without(leftover)
            out.append(child)
        return out


def _is_body(node: Node) -> bool:
    return isinstance(node, Branch) and any(isinstance(c, Member) for c in node.children)
