"""Lark parser setup for attribute arguments and source tokens."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from lark import Lark, Token, Tree

GRAMMAR_DIR = Path(__file__).parent.parent / "grammar"
BINDING_GRAMMAR_PATH = GRAMMAR_DIR / "binding.lark"
TOKENS_GRAMMAR_PATH = GRAMMAR_DIR / "tokens.lark"

ATTRIBUTE_STARTS = ["binding", "override", "type"]


@lru_cache(maxsize=None)
def attribute_parser() -> Lark:
    """LALR parser for the text between the parentheses of an attribute."""
    return Lark.open(
        str(BINDING_GRAMMAR_PATH),
        start=ATTRIBUTE_STARTS,
        parser="lalr",
        lexer="basic",
        propagate_positions=True,
        maybe_placeholders=False,
    )


@lru_cache(maxsize=None)
def source_lexer() -> Lark:
    """Lexer over the terminals of tokens.lark; only `lex` is used."""
    return Lark.open(
        str(TOKENS_GRAMMAR_PATH),
        parser="lalr",
        lexer="basic",
    )


def parse_attribute(text: str, start: str) -> Tree | Token:
    """Parse attribute argument text with the given start rule.

    Raises lark.UnexpectedInput when the text does not match the grammar;
    callers translate that into a MalformedBinding diagnostic.
    """
    return attribute_parser().parse(text, start=start)
