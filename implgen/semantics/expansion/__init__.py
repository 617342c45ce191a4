# semantics/expansion/__init__.py
"""
Expansion of one annotated declaration.

    Expander().expand_declaration(text, ["T -> Meter, Foot"])

parses every binding and override marker up front (so a bad attribute
aborts the declaration before any tree is walked), classifies the
declaration with the grammar, composes the copies layer by layer and
renders them back to text.

This module is a facade over the specialised sub-modules:
- matcher: which type references denote the placeholder
- substitute (TreeSubstituter): replacement in type positions
- template (TemplateSubstituter): `${T}` markers in comments, strings and macro bodies
- overrides (OverrideResolver): per-member alternates
- composer (Composer): stacked layers into the Cartesian product
"""
from __future__ import annotations
import logging
from typing import List, Optional, Sequence, Tuple, Union

from implgen.compiler.config import ExpansionConfig
from implgen.internals import errors as er
from implgen.internals.errors import EmptyArgumentList
from implgen.internals.report import Reporter, Span
from implgen.semantics.binding import BindingStack, GenericBinding, parse_binding
from implgen.syntax.classifier import RustGrammar
from implgen.syntax.interface import FragmentGrammar, first_significant
from implgen.syntax.nodes import Attribute, Fragment, drop_with_trailing_ws

from .composer import Composer
from .overrides import OverrideResolver, OverrideSite
from .substitute import TreeSubstituter
from .template import TemplateSubstituter

log = logging.getLogger(__name__)

AttributeText = Union[str, Tuple[str, Optional[Span]]]


class Expander:
    """Binds a grammar and settings to the expansion pipeline."""

    def __init__(self, config: Optional[ExpansionConfig] = None,
                 grammar: Optional[FragmentGrammar] = None) -> None:
        self.config = config or ExpansionConfig()
        self.grammar = grammar or RustGrammar()
        self.substitutor = TreeSubstituter(self.grammar)
        self.templates = TemplateSubstituter(
            self.grammar,
            marker_open=self.config.marker_open,
            marker_close=self.config.marker_close,
            comments=self.config.template_comments,
            strings=self.config.template_strings,
            macros=self.config.template_macros,
        )
        self.overrides = OverrideResolver(self.config.override_attribute)
        self.composer = Composer(self.substitutor, self.templates, self.overrides)

    def parse_stack(self, attributes: Sequence[AttributeText]) -> BindingStack:
        """Bindings for the attribute texts, outermost first."""
        stack = []
        for attr in attributes:
            text, origin = (attr, None) if isinstance(attr, str) else attr
            stack.append(parse_binding(text, origin))
        return stack

    def stack_of(self, fragment: Fragment) -> Tuple[Fragment, BindingStack]:
        """Bindings from the expansion attributes heading `fragment`, and the fragment without them."""
        ours = [c for c in fragment.children
                if isinstance(c, Attribute) and c.name == self.config.attribute]
        stack = []
        for attr in ours:
            args = attr.arguments
            if args is None:
                raise EmptyArgumentList(attr.span, text=attr.render())
            first = first_significant(args)
            stack.append(parse_binding(args.inner_text(), first.span if first else attr.span))
        if not ours:
            return fragment, stack
        drop = set(id(a) for a in ours)
        return fragment.with_children(drop_with_trailing_ws(fragment.children, drop)), stack

    def prepare(self, text: str) -> Tuple[Fragment, BindingStack, List[OverrideSite]]:
        """Parse an annotated declaration and check all of its attributes.

        Raises:
            ExpansionError: a binding, an override marker or the text itself is malformed.
        """
        fragment, stack = self.stack_of(self.grammar.parse(text))
        return fragment, stack, self.overrides.collect(fragment)

    def expand_annotated(self, text: str, reporter: Optional[Reporter] = None) -> List[str]:
        """Rendered copies of a declaration that still carries its expansion attributes."""
        fragment, stack, sites = self.prepare(text)
        if not stack:
            return [text]
        self.warn_unbound(sites, stack, reporter)
        return [c.render() for c in self.expand(fragment, stack, sites)]

    def warn_unbound(self, sites: Sequence[OverrideSite], stack: Sequence[GenericBinding],
                     reporter: Optional[Reporter]) -> None:
        if reporter is None:
            return
        for site in self.overrides.unbound(sites, stack):
            er.emit(reporter, er.ERR.IG2002, site.marker.span,
                    type=str(site.marker.type), name=site.marker.alternate)

    def expand(self, fragment: Fragment, stack: Sequence[GenericBinding],
               sites: Sequence[OverrideSite] = ()) -> List[Fragment]:
        return self.composer.compose(fragment, stack, sites)

    def expand_declaration(self, text: str, attributes: Sequence[AttributeText],
                           reporter: Optional[Reporter] = None) -> List[str]:
        """Rendered copies of the declaration `text` for the given attribute texts.

        The declaration must no longer contain the expansion attributes
        themselves. Warnings (override types no layer binds) go to `reporter`.

        Raises:
            ExpansionError: any binding, marker or the declaration itself is malformed.
        """
        stack = self.parse_stack(attributes)
        if not stack:
            return [text]

        fragment = self.grammar.parse(text)
        sites = self.overrides.collect(fragment)
        self.warn_unbound(sites, stack, reporter)

        copies = self.expand(fragment, stack, sites)
        log.debug("%d binding(s), %d override(s): %d copies", len(stack), len(sites), len(copies))
        return [c.render() for c in copies]


def expand(text: str, *attributes: str, config: Optional[ExpansionConfig] = None) -> str:
    """Expand a declaration and join its copies with newlines."""
    return "\n".join(Expander(config).expand_declaration(text, attributes))


__all__ = [
    "Expander",
    "Composer",
    "OverrideResolver",
    "OverrideSite",
    "TemplateSubstituter",
    "TreeSubstituter",
    "expand",
]
