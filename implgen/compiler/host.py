"""Whole-file expansion: find annotated declarations, expand each, splice the copies back."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from implgen.compiler.config import ExpansionConfig
from implgen.internals import errors as er
from implgen.internals.lexer import tokenize
from implgen.internals.report import Reporter, Span, span_of
from implgen.semantics.expansion import Expander
from implgen.syntax.nodes import Attribute, Group, Leaf, Node
from implgen.syntax.reader import read_tree

log = logging.getLogger(__name__)

# items whose `{...}` is part of an initializer, not the end of the item
_SEMICOLON_ITEMS = frozenset({"const", "static", "type", "use", "let"})


@dataclass
class Declaration:
    """An item carrying at least one expansion attribute."""
    nodes: List[Node]              # leading doc comments and attributes, then the item
    attributes: List[Attribute]    # the expansion attributes among them
    has_item: bool
    start: int = field(init=False)
    end: int = field(init=False)

    def __post_init__(self) -> None:
        first = next(self.nodes[0].tokens())
        last = list(self.nodes[-1].tokens())[-1]
        self.start = first.start_pos
        self.end = last.end_pos

    @property
    def origin(self) -> Optional[Span]:
        return self.nodes[0].span


def find_declarations(source: str, attribute: str = "implgen") -> List[Declaration]:
    """Annotated items at the top level and inside inline `mod { ... }` bodies, in source order.

    Raises:
        MalformedSource: the file does not lex or has unbalanced delimiters.
    """
    found: List[Declaration] = []
    _scan(read_tree(tokenize(source)), attribute, found)
    return found


def _scan(nodes: Sequence[Node], attribute: str, found: List[Declaration]) -> None:
    i = 0
    while i < len(nodes):
        lead, attrs, k = _leading(nodes, i)
        if lead is None:
            return
        end = _item_end(nodes, k)
        ours = [a for a in attrs if a.name == attribute]
        if ours:
            found.append(Declaration(list(nodes[lead:end]), ours, has_item=end > k))
        else:
            body = _mod_body(nodes[k:end])
            if body is not None:
                _scan(body.children, attribute, found)
        i = max(end, k + 1)


def _leading(nodes: Sequence[Node], i: int):
    """Doc comments and attributes before the item at or after `i`.

    Returns (index where the declaration starts or None at the end of the
    list, the attributes, index of the item's first node).
    """
    lead: Optional[int] = None
    attrs: List[Attribute] = []
    k = i
    while k < len(nodes):
        node = nodes[k]
        if isinstance(node, Leaf) and node.is_trivia():
            # plain comments in front of the first doc comment or attribute stay outside
            if lead is None and node.type == "COMMENT" and _is_doc(node):
                lead = k
            k += 1
            continue
        attr_end = _attribute_end(nodes, k)
        if attr_end is None:
            break
        attrs.append(Attribute(children=tuple(nodes[k:attr_end])))
        if lead is None:
            lead = k
        k = attr_end
    if k >= len(nodes) and lead is None:
        return None, [], k
    return (k if lead is None else lead), attrs, k


def _is_doc(node: Leaf) -> bool:
    return node.value.startswith(("///", "/**"))


def _attribute_end(nodes: Sequence[Node], k: int) -> Optional[int]:
    if not (isinstance(nodes[k], Leaf) and nodes[k].value == "#"):
        return None
    j = _next_significant(nodes, k + 1)
    if j < len(nodes) and isinstance(nodes[j], Leaf) and nodes[j].value == "!":
        j = _next_significant(nodes, j + 1)
    if j < len(nodes) and isinstance(nodes[j], Group) and nodes[j].delimiter == "[":
        return j + 1
    return None


def _next_significant(nodes: Sequence[Node], k: int) -> int:
    while k < len(nodes) and isinstance(nodes[k], Leaf) and nodes[k].is_trivia():
        k += 1
    return k


def _item_keyword(nodes: Sequence[Node], k: int) -> Optional[str]:
    words = [n for n in nodes[k:] if isinstance(n, Leaf) and not n.is_trivia()][:6]
    for pos, node in enumerate(words):
        if node.type != "IDENT":
            if node.type == "STRING":
                continue
            return None
        after = words[pos + 1].value if pos + 1 < len(words) else ""
        if node.value in ("pub", "unsafe", "async", "default"):
            continue
        if node.value == "const" and after in ("fn", "unsafe", "async", "extern"):
            continue
        if node.value == "extern" and after in ("fn", "unsafe"):
            continue
        return node.value
    return None


def _item_end(nodes: Sequence[Node], k: int) -> int:
    """One past the item starting at `k`: its `;` or its body `{...}`."""
    keyword = _item_keyword(nodes, k)
    j = k
    while j < len(nodes):
        node = nodes[j]
        if isinstance(node, Leaf):
            if node.value == ";":
                return j + 1
            if j > k and _attribute_end(nodes, j) is not None:
                break
        elif isinstance(node, Group) and node.delimiter == "{" and keyword not in _SEMICOLON_ITEMS:
            return j + 1
        j += 1
    # unterminated item: stop before trailing whitespace
    while j > k and isinstance(nodes[j - 1], Leaf) and nodes[j - 1].is_trivia():
        j -= 1
    return j


def _mod_body(item: Sequence[Node]) -> Optional[Group]:
    significant = [n for n in item if not (isinstance(n, Leaf) and n.is_trivia())]
    words = [n.value for n in significant if isinstance(n, Leaf)]
    if "mod" in words and significant and isinstance(significant[-1], Group) \
            and significant[-1].delimiter == "{":
        return significant[-1]
    return None


def _indent_of(source: str, pos: int) -> str:
    line_start = source.rfind("\n", 0, pos) + 1
    prefix = source[line_start:pos]
    return prefix if prefix.isspace() else ""


def _newline_at(source: str, pos: int) -> str:
    """Line ending of the line holding `pos`, or of the line before it."""
    end = source.find("\n", pos)
    if end == -1:
        end = source.rfind("\n", 0, pos)
    return "\r\n" if end > 0 and source[end - 1] == "\r" else "\n"


def expand_source(source: str, reporter: Reporter,
                  config: Optional[ExpansionConfig] = None, check_only: bool = False) -> str:
    """Expand every annotated declaration of `source`.

    A declaration that fails is reported, left as written, and does not stop
    the others. With `check_only` the attributes are parsed and validated but
    nothing is expanded and the source is returned unchanged.
    """
    config = config or ExpansionConfig()
    expander = Expander(config)

    try:
        declarations = find_declarations(source, config.attribute)
    except er.ExpansionError as e:
        e.report(reporter)
        return source
    log.debug("%d annotated declaration(s)", len(declarations))

    pieces: List[str] = []
    cursor = 0
    for decl in declarations:
        if not decl.has_item:
            er.emit(reporter, er.ERR.IG2001, span_of_attribute(decl.attributes[0]),
                    attribute=config.attribute)
            continue

        text = source[decl.start:decl.end]
        try:
            if check_only:
                _, stack, sites = expander.prepare(text)
                expander.warn_unbound(sites, stack, _Relocating(reporter, decl.origin))
                continue
            copies = expander.expand_annotated(text, _Relocating(reporter, decl.origin))
        except er.ExpansionError as e:
            e.relocate(decl.origin).report(reporter)
            continue

        indent = _indent_of(source, decl.start)
        pieces.append(source[cursor:decl.start])
        pieces.append((_newline_at(source, decl.start) + indent).join(copies))
        cursor = decl.end
        log.debug("declaration at %d: %d copies", decl.start, len(copies))

    pieces.append(source[cursor:])
    return "".join(pieces)


def span_of_attribute(attr: Attribute) -> Optional[Span]:
    first = next(attr.tokens(), None)
    return span_of(first) if first is not None else None


class _Relocating(Reporter):
    """Forwards diagnostics measured inside a declaration to the file's reporter."""

    def __init__(self, target: Reporter, origin: Optional[Span]) -> None:
        super().__init__(target.source, target.filename)
        self.target = target
        self.origin = origin

    def _move(self, span: Optional[Span]) -> Optional[Span]:
        if span is None or self.origin is None:
            return span or self.origin
        return span.relative_to(self.origin)

    def error(self, code: str, msg: str, span: Optional[Span]):
        self.target.error(code, msg, self._move(span))

    def warn(self, code: str, msg: str, span: Optional[Span]):
        self.target.warn(code, msg, self._move(span))
