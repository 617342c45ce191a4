"""Shared fixtures for the implgen test suite."""
from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from implgen.semantics.expansion import Expander
from implgen.syntax.classifier import RustGrammar
from implgen.syntax.interface import walk
from implgen.syntax.nodes import Node, TypeRef

CASES_DIR = Path(__file__).parent / "cases"


@pytest.fixture
def grammar() -> RustGrammar:
    return RustGrammar()


@pytest.fixture
def expander() -> Expander:
    return Expander()


def type_refs(node: Node) -> List[str]:
    """Rendered text of every TypeRef in the tree, nested ones included, in source order."""
    return [n.render() for n in walk(node) if isinstance(n, TypeRef)]
