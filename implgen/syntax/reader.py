"""Token list → token tree with (), [] and {} grouped."""
from __future__ import annotations
from typing import List, Sequence, Tuple

from lark import Token

from implgen.internals.errors import MalformedSource
from implgen.internals.report import span_of
from implgen.syntax.nodes import Group, Leaf, Node

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {v: k for k, v in OPENERS.items()}


def read_tree(tokens: Sequence[Token]) -> Tuple[Node, ...]:
    """Group delimiters; everything else stays a Leaf.

    Raises:
        MalformedSource: on a closing delimiter without a matching opener, a
            mismatched pair, or an opener that is never closed.
    """
    # each frame: (open token or None for the root, children so far)
    stack: List[Tuple[Token | None, List[Node]]] = [(None, [])]

    for tok in tokens:
        if tok.type == "PUNCT" and tok.value in OPENERS:
            stack.append((tok, []))
            continue

        if tok.type == "PUNCT" and tok.value in CLOSERS:
            open_tok, children = stack[-1]
            if open_tok is None:
                raise MalformedSource(span_of(tok), reason=f"unexpected '{tok}'")
            if OPENERS[open_tok.value] != tok.value:
                raise MalformedSource(span_of(tok),
                                      reason=f"'{tok}' does not close '{open_tok}'")
            stack.pop()
            stack[-1][1].append(Group(children=tuple(children), open=open_tok, close=tok))
            continue

        stack[-1][1].append(Leaf(tok))

    if len(stack) > 1:
        open_tok = stack[-1][0]
        raise MalformedSource(span_of(open_tok), reason=f"unclosed '{open_tok}'")

    return tuple(stack[0][1])
