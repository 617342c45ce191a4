# semantics/expansion/composer.py
"""
Composition of stacked bindings into the Cartesian product of copies.

Layers are applied first-declared first. Each layer maps every fragment of
the current list to one copy per argument, so the last-declared layer
varies fastest:

    T -> A, B   then   U -> X, Y   gives   (A,X) (A,Y) (B,X) (B,Y)

Every step is a pure transform on immutable fragments; copies share the
subtrees no layer touched.
"""
from __future__ import annotations
import logging
from typing import List, Sequence

from implgen.semantics.binding import GenericBinding
from implgen.semantics.expansion.overrides import OverrideResolver, OverrideSite
from implgen.semantics.expansion.substitute import TreeSubstituter
from implgen.semantics.expansion.template import TemplateSubstituter
from implgen.syntax.nodes import Fragment

log = logging.getLogger(__name__)


class Composer:

    def __init__(self, substitutor: TreeSubstituter, templates: TemplateSubstituter,
                 overrides: OverrideResolver) -> None:
        self.substitutor = substitutor
        self.templates = templates
        self.overrides = overrides

    def copy(self, fragment: Fragment, binding: GenericBinding, index: int) -> Fragment:
        """One copy for argument `index`: overrides, then type positions, then template text."""
        out = self.overrides.apply(fragment, binding, index)
        out = self.substitutor.substitute(out, binding, index)
        return self.templates.substitute(out, binding, index)

    def expand_layer(self, fragments: Sequence[Fragment], binding: GenericBinding) -> List[Fragment]:
        return [
            self.copy(fragment, binding, index)
            for fragment in fragments
            for index in range(len(binding.arguments))
        ]

    def compose(self, fragment: Fragment, stack: Sequence[GenericBinding],
                sites: Sequence[OverrideSite] = ()) -> List[Fragment]:
        """All copies of `fragment` for `stack`, in composition order."""
        current = [fragment]
        for depth, binding in enumerate(stack):
            current = self.expand_layer(current, binding)
            log.debug("layer %d (%s): %d copies", depth, binding, len(current))
        if sites:
            current = [self.overrides.strip(f, sites) for f in current]
        return current
