# implgen/syntax/classifier.py
"""
RustGrammar: finds the type-reference positions of Rust-shaped source.

This is not a full Rust parser. It is a recursive descent over the token
tree that recognises just enough structure (items, generics, signatures,
`let`, casts, closures, paths) to wrap every path standing in a type
position in a TypeRef node, every `<...>` after a path segment in a
GenericArgs node, every `#[...]` in an Attribute, every macro invocation in
a MacroCall, and every fn item of an impl or trait body in a Member.
Everything it does not recognise is passed through as raw leaves and
groups, so the fragment always renders back to its input.
"""
from __future__ import annotations
import logging
from typing import FrozenSet, List, Optional, Sequence, Tuple

from implgen.internals.lexer import KEYWORDS, is_name, tokenize
from implgen.syntax.nodes import (
    Attribute,
    Fragment,
    GenericArgs,
    Group,
    Leaf,
    MacroCall,
    Member,
    Node,
    TypeRef,
)
from implgen.syntax.reader import read_tree

log = logging.getLogger(__name__)

# marker for "the last thing emitted was an operand" (a value, a call, a path)
_OPERAND = object()

_OPERAND_KEYWORDS = frozenset({"self", "Self", "true", "false"})
_ITEM_STARTS = frozenset({"fn", "struct", "enum", "trait", "type", "mod", "use", "impl", "pub"})


#
# --- Node predicates
#

def _is_trivia(node: Node) -> bool:
    return isinstance(node, Leaf) and node.is_trivia()


def _punct(node: Optional[Node], *values: str) -> bool:
    return (isinstance(node, Leaf) and node.type == "PUNCT"
            and (not values or node.value in values))


def _word(node: Optional[Node], *values: str) -> bool:
    return (isinstance(node, Leaf) and node.type == "IDENT"
            and (not values or node.value in values))


def _name(node: Optional[Node]) -> bool:
    return isinstance(node, Leaf) and is_name(node.token)


def _group(node: Optional[Node], delimiter: Optional[str] = None) -> bool:
    return isinstance(node, Group) and (delimiter is None or node.delimiter == delimiter)


def _literal(node: Optional[Node]) -> bool:
    return isinstance(node, Leaf) and node.type in ("NUMBER", "STRING", "CHAR")


def _is_operand(prev) -> bool:
    if prev is None:
        return False
    if prev is _OPERAND or isinstance(prev, (Group, TypeRef, MacroCall)):
        return True
    if isinstance(prev, Leaf):
        if prev.type in ("NUMBER", "STRING", "CHAR", "LIFETIME"):
            return True
        if prev.type == "IDENT":
            return prev.value not in KEYWORDS or prev.value in _OPERAND_KEYWORDS
        return prev.value == "?"
    return False


def _is_doc_comment(node: Node) -> bool:
    if not isinstance(node, Leaf) or node.type != "COMMENT":
        return False
    return node.value.startswith(("///", "//!", "/**", "/*!"))


class _Stream:
    """Cursor over a sibling list; `peek` looks past trivia."""

    def __init__(self, nodes: Sequence[Node]) -> None:
        self.nodes = list(nodes)
        self.pos = 0

    def _index(self, k: int) -> int:
        seen = -1
        for i in range(self.pos, len(self.nodes)):
            if not _is_trivia(self.nodes[i]):
                seen += 1
                if seen == k:
                    return i
        return -1

    def peek(self, k: int = 0) -> Optional[Node]:
        i = self._index(k)
        return self.nodes[i] if i >= 0 else None

    def at_end(self) -> bool:
        return self._index(0) < 0

    def trivia(self, out: List[Node]) -> None:
        while self.pos < len(self.nodes) and _is_trivia(self.nodes[self.pos]):
            out.append(self.nodes[self.pos])
            self.pos += 1

    def next(self) -> Node:
        """Take the node at the cursor; callers flush trivia first."""
        node = self.nodes[self.pos]
        self.pos += 1
        return node

    def advance(self, out: List[Node]) -> Optional[Node]:
        """Move trivia and the next significant node to `out`."""
        self.trivia(out)
        if self.pos >= len(self.nodes):
            return None
        node = self.next()
        out.append(node)
        return node

    def top_level_before(self, target: str, stops: FrozenSet[str]) -> bool:
        """Does punctuation `target` occur before any of `stops` at this level?"""
        for node in self.nodes[self.pos:]:
            if _punct(node, target):
                return True
            if _punct(node, *stops):
                return False
        return False


class RustGrammar:
    """FragmentGrammar for Rust-shaped declarations."""

    name = "rust"

    def parse(self, text: str) -> Fragment:
        tree = read_tree(tokenize(text))
        return Fragment(children=tuple(self.items(tree)))

    def type_nodes(self, text: str, in_expr: bool = False) -> Tuple[Node, ...]:
        s = _Stream(read_tree(tokenize(text)))
        out: List[Node] = []
        if in_expr and (_name(s.peek()) or _punct(s.peek(), "::")):
            ref = self.path(s, out, expr=True)
            if ref is not None:
                out.append(ref)
        elif not self.type_(s, out):
            log.debug("no type in %r", text)
        while not s.at_end():
            s.advance(out)
        s.trivia(out)
        return tuple(out)

    def read_group(self, text: str, like: Node) -> Node:
        if not isinstance(like, Group):
            raise TypeError(f"expected a group, got {type(like).__name__}")
        children = read_tree(tokenize(text))
        return Group(children=children, open=like.open, close=like.close)

    #
    # --- Items
    #

    def items(self, nodes: Sequence[Node], members: bool = False) -> List[Node]:
        """Classify a sequence of items; in impl/trait bodies fn items become Members."""
        s = _Stream(nodes)
        out: List[Node] = []
        while True:
            leading: List[Node] = []
            s.trivia(leading)
            if s.pos >= len(s.nodes):
                out.extend(leading)
                return out

            # doc comments and attributes travel with the item they decorate
            split = next((i for i, n in enumerate(leading) if _is_doc_comment(n)), len(leading))
            out.extend(leading[:split])
            pending = leading[split:]
            while self._attribute_ahead(s):
                pending.append(self.attribute(s))
                s.trivia(pending)

            if s.pos >= len(s.nodes):
                out.extend(pending)
                return out

            body: List[Node] = []
            info = self.item(s, body)
            if info is None:
                self._scan_one(s, body, None)
            elif info[0] == "macro" and _punct(s.peek(), ";"):
                s.advance(body)

            if members and info is not None and info[0] == "fn":
                out.append(Member(children=tuple(pending + body), name=info[1]))
            else:
                out.extend(pending)
                out.extend(body)

    def item(self, s: _Stream, out: List[Node]) -> Optional[Tuple[str, str]]:
        """Parse one item at the cursor; returns (kind, name) or None if there is none."""
        start = s.pos
        while True:
            n = s.peek()
            if _word(n, "pub"):
                s.advance(out)
                if _group(s.peek(), "("):
                    s.advance(out)
                continue
            if _word(n, "default", "async", "unsafe") and _word(
                    s.peek(1), "fn", "unsafe", "async", "const", "extern", "impl", "trait", "type"):
                s.advance(out)
                continue
            if _word(n, "const") and _word(s.peek(1), "fn", "unsafe", "async", "extern"):
                s.advance(out)
                continue
            if _word(n, "extern") and isinstance(s.peek(1), Leaf) and s.peek(1).type == "STRING" \
                    and _word(s.peek(2), "fn"):
                s.advance(out)
                s.advance(out)
                continue
            if _word(n, "extern") and _word(s.peek(1), "fn"):
                s.advance(out)
                continue
            break

        n = s.peek()
        if _word(n, "fn"):
            return "fn", self.fn_item(s, out)
        if _word(n, "impl"):
            self.impl_item(s, out)
            return "impl", ""
        if _word(n, "trait"):
            return "trait", self.trait_item(s, out)
        if _word(n, "struct") or (_word(n, "union") and _name(s.peek(1))):
            return "struct", self.struct_item(s, out)
        if _word(n, "enum"):
            return "enum", self.enum_item(s, out)
        if _word(n, "type"):
            return "type", self.type_alias(s, out)
        if _word(n, "const", "static"):
            return "const", self.const_item(s, out)
        if _word(n, "mod"):
            return "mod", self.mod_item(s, out)
        if _word(n, "use"):
            self._raw_until_semicolon(s, out)
            return "use", ""
        if _word(n, "extern"):
            self.extern_item(s, out)
            return "extern", ""
        if (_name(n) or _word(n, "macro_rules")) and self._macro_ahead(s):
            out.append(self.macro_call(s, out))
            return "macro", ""
        if s.pos != start:
            return "other", ""
        return None

    def fn_item(self, s: _Stream, out: List[Node]) -> str:
        s.advance(out)                                     # fn
        name = ""
        if _name(s.peek()):
            name = s.advance(out).value
        if _punct(s.peek(), "<"):
            self.generic_params(s, out)
        if _group(s.peek(), "("):
            s.trivia(out)
            out.append(self.params_group(s.next()))
        if _punct(s.peek(), "->"):
            s.advance(out)
            self.type_(s, out)
        if _word(s.peek(), "where"):
            self.where_clause(s, out)
        if _group(s.peek(), "{"):
            s.trivia(out)
            out.append(self.block(s.next()))
        elif _punct(s.peek(), ";"):
            s.advance(out)
        return name

    def impl_item(self, s: _Stream, out: List[Node]) -> None:
        s.advance(out)                                     # impl
        if _punct(s.peek(), "<"):
            self.generic_params(s, out)
        if _word(s.peek(), "const"):
            s.advance(out)
        if _punct(s.peek(), "!"):
            s.advance(out)
        self.type_(s, out)
        if _word(s.peek(), "for"):
            s.advance(out)
            self.type_(s, out)
        if _word(s.peek(), "where"):
            self.where_clause(s, out)
        if _group(s.peek(), "{"):
            s.trivia(out)
            out.append(self.body(s.next()))
        elif _punct(s.peek(), ";"):
            s.advance(out)

    def trait_item(self, s: _Stream, out: List[Node]) -> str:
        s.advance(out)                                     # trait
        name = ""
        if _name(s.peek()):
            name = s.advance(out).value
        if _punct(s.peek(), "<"):
            self.generic_params(s, out)
        if _punct(s.peek(), ":"):
            s.advance(out)
            self.bounds(s, out)
        if _punct(s.peek(), "="):                         # trait alias
            s.advance(out)
            self.bounds(s, out)
        if _word(s.peek(), "where"):
            self.where_clause(s, out)
        if _group(s.peek(), "{"):
            s.trivia(out)
            out.append(self.body(s.next()))
        elif _punct(s.peek(), ";"):
            s.advance(out)
        return name

    def struct_item(self, s: _Stream, out: List[Node]) -> str:
        s.advance(out)                                     # struct / union
        name = ""
        if _name(s.peek()):
            name = s.advance(out).value
        if _punct(s.peek(), "<"):
            self.generic_params(s, out)
        if _word(s.peek(), "where"):
            self.where_clause(s, out)
        if _group(s.peek(), "{"):
            s.trivia(out)
            out.append(self.fields_group(s.next()))
            return name
        if _group(s.peek(), "("):
            s.trivia(out)
            out.append(self.tuple_fields_group(s.next()))
            if _word(s.peek(), "where"):
                self.where_clause(s, out)
        if _punct(s.peek(), ";"):
            s.advance(out)
        return name

    def enum_item(self, s: _Stream, out: List[Node]) -> str:
        s.advance(out)                                     # enum
        name = ""
        if _name(s.peek()):
            name = s.advance(out).value
        if _punct(s.peek(), "<"):
            self.generic_params(s, out)
        if _word(s.peek(), "where"):
            self.where_clause(s, out)
        if _group(s.peek(), "{"):
            s.trivia(out)
            out.append(self.variants_group(s.next()))
        return name

    def type_alias(self, s: _Stream, out: List[Node]) -> str:
        s.advance(out)                                     # type
        name = ""
        if _name(s.peek()):
            name = s.advance(out).value
        if _punct(s.peek(), "<"):
            self.generic_params(s, out)
        if _punct(s.peek(), ":"):
            s.advance(out)
            self.bounds(s, out)
        if _word(s.peek(), "where"):
            self.where_clause(s, out)
        if _punct(s.peek(), "="):
            s.advance(out)
            self.type_(s, out)
        if _word(s.peek(), "where"):
            self.where_clause(s, out)
        if _punct(s.peek(), ";"):
            s.advance(out)
        return name

    def const_item(self, s: _Stream, out: List[Node]) -> str:
        s.advance(out)                                     # const / static
        if _word(s.peek(), "mut"):
            s.advance(out)
        name = ""
        if _name(s.peek()) or _word(s.peek(), "_"):
            name = s.advance(out).value
        if _punct(s.peek(), ":"):
            s.advance(out)
            self.type_(s, out)
        if _punct(s.peek(), "="):
            s.advance(out)
            self.scan(s, out, stop=frozenset({";"}))
        if _punct(s.peek(), ";"):
            s.advance(out)
        return name

    def mod_item(self, s: _Stream, out: List[Node]) -> str:
        s.advance(out)                                     # mod
        name = ""
        if _name(s.peek()):
            name = s.advance(out).value
        if _group(s.peek(), "{"):
            s.trivia(out)
            g = s.next()
            out.append(g.with_children(self.items(g.children)))
        elif _punct(s.peek(), ";"):
            s.advance(out)
        return name

    def extern_item(self, s: _Stream, out: List[Node]) -> None:
        s.advance(out)                                     # extern
        if _word(s.peek(), "crate"):
            self._raw_until_semicolon(s, out)
            return
        if isinstance(s.peek(), Leaf) and s.peek().type == "STRING":
            s.advance(out)
        if _group(s.peek(), "{"):
            s.trivia(out)
            g = s.next()
            out.append(g.with_children(self.items(g.children)))

    def _raw_until_semicolon(self, s: _Stream, out: List[Node]) -> None:
        while not s.at_end():
            node = s.advance(out)
            if _punct(node, ";"):
                return

    def body(self, group: Group) -> Group:
        """Impl or trait body: items whose fn items are Members."""
        return group.with_children(self.items(group.children, members=True))

    #
    # --- Attributes and macros
    #

    def _attribute_ahead(self, s: _Stream) -> bool:
        if not _punct(s.peek(), "#"):
            return False
        if _group(s.peek(1), "["):
            return True
        return _punct(s.peek(1), "!") and _group(s.peek(2), "[")

    def attribute(self, s: _Stream) -> Attribute:
        children: List[Node] = []
        s.trivia(children)
        children.append(s.next())                          # '#'
        if _punct(s.peek(), "!"):
            s.advance(children)
        s.advance(children)                                # [ ... ]
        return Attribute(children=tuple(children))

    def _macro_ahead(self, s: _Stream) -> bool:
        """`name!(...)`, `a::b!{...}` or `macro_rules! name {...}` at the cursor."""
        k = 0
        if _punct(s.peek(k), "::"):
            k += 1
        while _name(s.peek(k)) or _word(s.peek(k), "macro_rules"):
            if _punct(s.peek(k + 1), "::"):
                k += 2
                continue
            if not _punct(s.peek(k + 1), "!"):
                return False
            after = s.peek(k + 2)
            if _name(after) and _group(s.peek(k + 3)):
                return True
            return _group(after)
        return False

    def macro_call(self, s: _Stream, out: List[Node]) -> MacroCall:
        s.trivia(out)
        children: List[Node] = []
        while True:
            node = s.advance(children)
            if node is None or _punct(node, "!"):
                break
        if _name(s.peek()):
            s.advance(children)                            # macro_rules! name
        s.advance(children)                                # body, kept raw
        return MacroCall(children=tuple(children))

    #
    # --- Generics, bounds and where clauses
    #

    def generic_params(self, s: _Stream, out: List[Node]) -> None:
        """`<'a, T: Bound = Default, const N: usize>`; the declared names stay raw."""
        s.advance(out)                                     # <
        while True:
            n = s.peek()
            if n is None:
                return
            if _punct(n, ">"):
                s.advance(out)
                return
            if _punct(n, ","):
                s.advance(out)
                continue
            if self._attribute_ahead(s):
                s.trivia(out)
                out.append(self.attribute(s))
                continue
            if isinstance(n, Leaf) and n.type == "LIFETIME":
                s.advance(out)
                if _punct(s.peek(), ":"):
                    s.advance(out)
                    self.bounds(s, out)
                continue
            if _word(n, "const"):
                s.advance(out)
                if _name(s.peek()):
                    s.advance(out)
                if _punct(s.peek(), ":"):
                    s.advance(out)
                    self.type_(s, out)
                if _punct(s.peek(), "="):
                    s.advance(out)
                    self._const_arg(s, out)
                continue
            if _name(n):
                s.advance(out)
                if _punct(s.peek(), ":"):
                    s.advance(out)
                    self.bounds(s, out)
                if _punct(s.peek(), "="):
                    s.advance(out)
                    self.type_(s, out)
                continue
            s.advance(out)

    def _const_arg(self, s: _Stream, out: List[Node]) -> None:
        if _punct(s.peek(), "-"):
            s.advance(out)
        n = s.peek()
        if _group(n, "{"):
            s.trivia(out)
            out.append(self.block(s.next()))
        elif n is not None:
            s.advance(out)

    def bounds(self, s: _Stream, out: List[Node]) -> None:
        """`A + ?Sized + 'a + for<'b> Fn(&'b T) -> U`."""
        while True:
            n = s.peek()
            if n is None:
                return
            if _punct(n, "?", "~"):
                s.advance(out)
                if _word(s.peek(), "const"):
                    s.advance(out)
                continue
            if isinstance(n, Leaf) and n.type == "LIFETIME":
                s.advance(out)
            elif _word(n, "for") and _punct(s.peek(1), "<"):
                s.advance(out)
                self.generic_params(s, out)
                continue
            elif _group(n, "("):
                s.trivia(out)
                g = s.next()
                inner: List[Node] = []
                gs = _Stream(g.children)
                self.bounds(gs, inner)
                self._rest_raw(gs, inner)
                out.append(g.with_children(inner))
            elif _word(n, "dyn"):
                s.advance(out)
                continue
            elif not self._type_path(s, out):
                return
            if _punct(s.peek(), "+"):
                s.advance(out)
                continue
            return

    def where_clause(self, s: _Stream, out: List[Node]) -> None:
        s.advance(out)                                     # where
        while True:
            n = s.peek()
            if n is None or _group(n, "{") or _punct(n, ";", "="):
                return
            if _punct(n, ","):
                s.advance(out)
                continue
            if isinstance(n, Leaf) and n.type == "LIFETIME":
                s.advance(out)
                if _punct(s.peek(), ":"):
                    s.advance(out)
                    self.bounds(s, out)
                continue
            if _word(n, "for") and _punct(s.peek(1), "<"):
                s.advance(out)
                self.generic_params(s, out)
                continue
            if not self.type_(s, out):
                s.advance(out)
                continue
            if _punct(s.peek(), ":"):
                s.advance(out)
                self.bounds(s, out)

    #
    # --- Types and paths
    #

    def type_(self, s: _Stream, out: List[Node]) -> bool:
        """Classify one type at the cursor; False (nothing consumed) if there is none."""
        n = s.peek()
        if n is None:
            return False
        if _punct(n, "&"):
            s.advance(out)
            if isinstance(s.peek(), Leaf) and s.peek().type == "LIFETIME":
                s.advance(out)
            if _word(s.peek(), "mut"):
                s.advance(out)
            self.type_(s, out)
            return True
        if _punct(n, "*"):
            s.advance(out)
            if _word(s.peek(), "const", "mut"):
                s.advance(out)
            self.type_(s, out)
            return True
        if _group(n, "("):
            s.trivia(out)
            out.append(self.type_list_group(s.next()))
            return True
        if _group(n, "["):
            s.trivia(out)
            out.append(self.array_group(s.next()))
            return True
        if _punct(n, "!") or _word(n, "_"):
            s.advance(out)
            return True
        if _word(n, "dyn", "impl"):
            s.advance(out)
            self.bounds(s, out)
            return True
        if _word(n, "for") and _punct(s.peek(1), "<"):
            s.advance(out)
            self.generic_params(s, out)
            return self.type_(s, out)
        if _word(n, "unsafe", "extern", "fn"):
            return self._fn_pointer(s, out)
        if _punct(n, "<"):
            return self.qualified_path(s, out)
        if _name(n) or _punct(n, "::"):
            if self._macro_ahead(s):
                out.append(self.macro_call(s, out))
                return True
            return self._type_path(s, out)
        return False

    def _fn_pointer(self, s: _Stream, out: List[Node]) -> bool:
        while _word(s.peek(), "unsafe", "extern"):
            s.advance(out)
            if isinstance(s.peek(), Leaf) and s.peek().type == "STRING":
                s.advance(out)
        if _word(s.peek(), "fn"):
            s.advance(out)
        if _group(s.peek(), "("):
            s.trivia(out)
            out.append(self.params_group(s.next()))
        if _punct(s.peek(), "->"):
            s.advance(out)
            self.type_(s, out)
        return True

    def _type_path(self, s: _Stream, out: List[Node]) -> bool:
        """A type-mode path, with `Fn(A) -> B` sugar when a paren group follows."""
        ref = self.path(s, out)
        if ref is None:
            return False
        out.append(ref)
        if _group(s.peek(), "("):
            s.trivia(out)
            out.append(self.type_list_group(s.next()))
            if _punct(s.peek(), "->"):
                s.advance(out)
                self.type_(s, out)
        return True

    def qualified_path(self, s: _Stream, out: List[Node]) -> bool:
        """`<T as Trait>::Name`; the head types are classified, the tail is a global-looking path."""
        mark = s.pos
        tmp: List[Node] = []
        s.advance(tmp)                                     # <
        if not self.type_(s, tmp):
            s.pos = mark
            return False
        if _word(s.peek(), "as"):
            s.advance(tmp)
            self.type_(s, tmp)
        if not _punct(s.peek(), ">"):
            s.pos = mark
            return False
        s.advance(tmp)
        out.extend(tmp)
        if _punct(s.peek(), "::"):
            tail = self.path(s, out, expr=True)
            if tail is not None:
                out.append(tail)
        return True

    def path(self, s: _Stream, out: List[Node], expr: bool = False) -> Optional[TypeRef]:
        """Read a path at the cursor without appending it.

        Leading trivia goes to `out`. In type mode `<` after a segment name
        opens generic arguments; in expression mode only `::<` does.
        """
        s.trivia(out)
        mark = s.pos
        children: List[Node] = []
        if _punct(s.peek(), "::"):
            children.append(s.next())
            s.trivia(children)
        if not _name(s.peek()):
            s.pos = mark
            return None
        children.append(s.next())

        after_name = True
        while True:
            save = s.pos
            tail: List[Node] = []
            s.trivia(tail)
            n = s.peek()
            if not expr and after_name and _punct(n, "<"):
                args = self.generic_args(s)
                if args is None:
                    s.pos = save
                    break
                children.extend(tail)
                children.append(args)
                after_name = False
                continue
            if _punct(n, "::"):
                tail.append(s.next())
                s.trivia(tail)
                n2 = s.peek()
                if _punct(n2, "<"):
                    args = self.generic_args(s)
                    if args is not None:
                        children.extend(tail)
                        children.append(args)
                        after_name = False
                        continue
                elif _name(n2):
                    tail.append(s.next())
                    children.extend(tail)
                    after_name = True
                    continue
            s.pos = save
            break
        return TypeRef(children=tuple(children), in_expr=expr)

    def generic_args(self, s: _Stream) -> Optional[GenericArgs]:
        """`<...>` at the cursor, or None (cursor restored) when it is not an argument list."""
        mark = s.pos
        open_tok = s.next().token
        children: List[Node] = []
        while True:
            s.trivia(children)
            n = s.peek()
            if n is None:
                s.pos = mark
                return None
            if _punct(n, ">"):
                return GenericArgs(children=tuple(children), open=open_tok, close=s.next().token)
            if _punct(n, ","):
                children.append(s.next())
                continue
            if isinstance(n, Leaf) and n.type == "LIFETIME":
                children.append(s.next())
                continue
            if _name(n) and _punct(s.peek(1), "=") and not _punct(s.peek(2), "="):
                s.advance(children)
                s.advance(children)
                if not self.type_(s, children):
                    self._const_arg(s, children)
                continue
            if _name(n) and _punct(s.peek(1), ":") and not _punct(s.peek(2), ":"):
                s.advance(children)
                s.advance(children)
                self.bounds(s, children)
                continue
            if _literal(n) or _punct(n, "-"):
                self._const_arg(s, children)
                continue
            if _group(n, "{"):
                children.append(self.block(s.next()))
                continue
            if self.type_(s, children):
                continue
            s.pos = mark
            return None

    #
    # --- Groups
    #

    def type_list_group(self, group: Group) -> Group:
        """`(A, B)` as a tuple type or Fn-sugar parameter list."""
        s = _Stream(group.children)
        out: List[Node] = []
        while not s.at_end():
            if _punct(s.peek(), ","):
                s.advance(out)
            elif not self.type_(s, out):
                s.advance(out)
        s.trivia(out)
        return group.with_children(out)

    def array_group(self, group: Group) -> Group:
        """`[T]` or `[T; N]`."""
        s = _Stream(group.children)
        out: List[Node] = []
        self.type_(s, out)
        if _punct(s.peek(), ";"):
            s.advance(out)
        self.scan(s, out)
        return group.with_children(out)

    def params_group(self, group: Group) -> Group:
        """Fn parameters: `pattern: Type` pairs; bare entries (`&self`, fn pointer params) are types."""
        s = _Stream(group.children)
        out: List[Node] = []
        while not s.at_end():
            if _punct(s.peek(), ","):
                s.advance(out)
                continue
            if self._attribute_ahead(s):
                s.trivia(out)
                out.append(self.attribute(s))
                continue
            start = s.pos
            if s.top_level_before(":", frozenset({","})):
                self.scan(s, out, stop=frozenset({":", ","}))
                if _punct(s.peek(), ":"):
                    s.advance(out)
                    self.type_(s, out)
            elif not self.type_(s, out):
                s.advance(out)
            while not s.at_end() and not _punct(s.peek(), ","):
                self._scan_one(s, out, None)
            if s.pos == start:
                s.advance(out)
        s.trivia(out)
        return group.with_children(out)

    def fields_group(self, group: Group) -> Group:
        """Named fields: `pub name: Type,`."""
        s = _Stream(group.children)
        out: List[Node] = []
        while not s.at_end():
            n = s.peek()
            if self._attribute_ahead(s):
                s.trivia(out)
                out.append(self.attribute(s))
            elif _word(n, "pub"):
                s.advance(out)
                if _group(s.peek(), "("):
                    s.advance(out)
            elif _name(n) and _punct(s.peek(1), ":"):
                s.advance(out)
                s.advance(out)
                self.type_(s, out)
            else:
                s.advance(out)
        s.trivia(out)
        return group.with_children(out)

    def tuple_fields_group(self, group: Group) -> Group:
        """Tuple fields: `pub Type,`."""
        s = _Stream(group.children)
        out: List[Node] = []
        while not s.at_end():
            n = s.peek()
            if self._attribute_ahead(s):
                s.trivia(out)
                out.append(self.attribute(s))
            elif _word(n, "pub"):
                s.advance(out)
                if _group(s.peek(), "("):
                    s.advance(out)
            elif _punct(n, ",") or not self.type_(s, out):
                s.advance(out)
        s.trivia(out)
        return group.with_children(out)

    def variants_group(self, group: Group) -> Group:
        s = _Stream(group.children)
        out: List[Node] = []
        while not s.at_end():
            n = s.peek()
            if self._attribute_ahead(s):
                s.trivia(out)
                out.append(self.attribute(s))
            elif _name(n):
                s.advance(out)
                if _group(s.peek(), "{"):
                    s.trivia(out)
                    out.append(self.fields_group(s.next()))
                elif _group(s.peek(), "("):
                    s.trivia(out)
                    out.append(self.tuple_fields_group(s.next()))
                if _punct(s.peek(), "="):
                    s.advance(out)
                    self.scan(s, out, stop=frozenset({","}))
            else:
                s.advance(out)
        s.trivia(out)
        return group.with_children(out)

    def block(self, group: Group) -> Group:
        """Statements and expressions inside `{...}`, `(...)` or `[...]`."""
        out: List[Node] = []
        s = _Stream(group.children)
        self.scan(s, out)
        self._rest_raw(s, out)
        return group.with_children(out)

    def _rest_raw(self, s: _Stream, out: List[Node]) -> None:
        while not s.at_end():
            s.advance(out)
        s.trivia(out)

    #
    # --- Statements and expressions
    #

    def scan(self, s: _Stream, out: List[Node], stop: FrozenSet[str] = frozenset()) -> None:
        """Expressions and statements up to a top-level punctuation in `stop`."""
        prev = None
        while True:
            s.trivia(out)
            n = s.peek()
            if n is None or (stop and _punct(n, *stop)):
                return
            prev = self._scan_one(s, out, prev)

    def _scan_one(self, s: _Stream, out: List[Node], prev):
        """Consume at least one node; returns what counts as the previous token."""
        s.trivia(out)
        n = s.peek()
        if n is None:
            return prev

        if isinstance(n, Group):
            out.append(self.block(s.next()))
            return n
        if self._attribute_ahead(s):
            out.append(self.attribute(s))
            return None
        if _word(n, "let"):
            s.advance(out)
            self.scan(s, out, stop=frozenset({":", "=", ";"}))
            if _punct(s.peek(), ":"):
                s.advance(out)
                self.type_(s, out)
            return None
        if _word(n, "as"):
            s.advance(out)
            self.type_(s, out)
            return _OPERAND
        if self._item_ahead(s) and self.item(s, out) is not None:
            return None
        if _punct(n, "|") and not _is_operand(prev):
            self.closure(s, out)
            return None
        if _word(n, "move") and _punct(s.peek(1), "|"):
            s.advance(out)
            self.closure(s, out)
            return None
        if _punct(n, "<") and not _is_operand(prev):
            if self.qualified_path(s, out):
                return _OPERAND
        if _name(n) or _punct(n, "::") or _word(n, "macro_rules"):
            if self._macro_ahead(s):
                out.append(self.macro_call(s, out))
                return _OPERAND
            ref = self.path(s, out, expr=True)
            if ref is not None:
                if len(ref.segments()) >= 2 or any(isinstance(c, GenericArgs) for c in ref.children):
                    out.append(ref)
                else:
                    out.extend(ref.children)
                return _OPERAND

        return s.advance(out)

    def _item_ahead(self, s: _Stream) -> bool:
        n0 = s.peek()
        if not _word(n0):
            return False
        n1 = s.peek(1)
        v = n0.value
        if v in _ITEM_STARTS:
            return True
        if v in ("const", "static"):
            return _name(n1) or _word(n1, "mut", "_", "fn", "unsafe", "async", "extern")
        if v == "unsafe":
            return _word(n1, "fn", "impl", "trait", "extern")
        if v == "async":
            return _word(n1, "fn", "unsafe")
        if v == "extern":
            return _word(n1, "crate", "fn") or (isinstance(n1, Leaf) and n1.type == "STRING")
        if v == "union":
            return _name(n1) and (_group(s.peek(2), "{") or _punct(s.peek(2), "<"))
        return False

    def closure(self, s: _Stream, out: List[Node]) -> None:
        """`|a: T, b| -> R`; the body is left to the caller's scan."""
        s.advance(out)                                     # |
        while True:
            n = s.peek()
            if n is None:
                return
            if _punct(n, "|"):
                s.advance(out)
                break
            if _punct(n, ","):
                s.advance(out)
                continue
            start = s.pos
            self.scan(s, out, stop=frozenset({":", ",", "|"}))
            if _punct(s.peek(), ":"):
                s.advance(out)
                self.type_(s, out)
            if s.pos == start:
                s.advance(out)
        if _punct(s.peek(), "->"):
            s.advance(out)
            self.type_(s, out)
