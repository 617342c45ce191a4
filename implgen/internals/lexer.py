"""Source tokenizer built on the terminals of grammar/tokens.lark.

Tokens keep their exact text, whitespace and comments included, so any
token sequence renders back to the source it came from. Token types:

    WS, COMMENT, STRING, CHAR, LIFETIME, NUMBER, IDENT, PUNCT
"""
from __future__ import annotations

from typing import List

from lark import Token
from lark.exceptions import UnexpectedCharacters

from implgen.internals.errors import MalformedSource
from implgen.internals.parser import source_lexer
from implgen.internals.report import Span

TRIVIA_TYPES = frozenset({"WS", "COMMENT"})
PATH_KEYWORDS = frozenset({"self", "Self", "super", "crate"})

KEYWORDS = frozenset({
    "as", "async", "await", "break", "const", "continue", "crate", "dyn",
    "else", "enum", "extern", "false", "fn", "for", "if", "impl", "in",
    "let", "loop", "match", "mod", "move", "mut", "pub", "ref", "return",
    "self", "Self", "static", "struct", "super", "trait", "true", "type",
    "union", "unsafe", "use", "where", "while", "yield",
})


def tokenize(text: str) -> List[Token]:
    """Split source text into tokens."""
    try:
        return list(source_lexer().lex(text))
    except UnexpectedCharacters as e:
        span = Span(e.line, e.column, e.line, e.column + 1)
        raise MalformedSource(span, reason=f"unexpected character {e.char!r}") from e


def make_token(type_: str, value: str, like: Token | None = None) -> Token:
    """Create a token, borrowing the position of `like` when given."""
    if like is None:
        return Token(type_, value)
    return Token.new_borrow_pos(type_, value, like)


def is_name(tok: Token) -> bool:
    """An identifier that is not a reserved word (`self`, `crate` and friends count as names)."""
    if tok.type != "IDENT":
        return False
    return tok.value not in KEYWORDS or tok.value in PATH_KEYWORDS
