import pytest

from implgen.semantics.expansion.matcher import match_prefix, matches, typepath_of
from implgen.semantics.typepath import ConstArg, Lifetime, TypePath
from implgen.syntax.interface import iter_type_refs


def ref_of(grammar, text):
    """The outermost TypeRef of a `type X = <text>;` item."""
    fragment = grammar.parse(f"type X = {text};")
    refs = list(iter_type_refs(fragment))
    assert len(refs) == 1
    return refs[0]


@pytest.mark.parametrize("text, placeholder, expected", [
    ("T", "T", True),
    ("T::Output", "T", True),
    ("T<u8>", "T", True),
    ("U", "T", False),
    ("Tx", "T", False),
    ("a::T", "T", False),
    ("::T", "T", False),
    ("::T", "::T", True),
    ("crate::T", "T", False),
    ("m::T", "m::T", True),
    ("m::T::Item", "m::T", True),
    ("m<u8>::T", "m::T", False),
    ("Wrap<u8>", "Wrap<u8>", True),
    ("Wrap<u16>", "Wrap<u8>", False),
    ("Wrap", "Wrap<u8>", False),
    ("Wrap<u8>::Inner", "Wrap<u8>", True),
])
def test_prefix_matching(grammar, text, placeholder, expected):
    assert matches(ref_of(grammar, text), TypePath.parse(placeholder)) is expected


def test_prefix_end_keeps_trailing_segments(grammar):
    ref = ref_of(grammar, "T::Output")
    end = match_prefix(ref, TypePath.parse("T"))
    assert "".join(c.render() for c in ref.children[end:]) == "::Output"


def test_prefix_end_keeps_carried_arguments(grammar):
    ref = ref_of(grammar, "T<X>")
    end = match_prefix(ref, TypePath.parse("T"))
    assert "".join(c.render() for c in ref.children[end:]) == "<X>"


def test_prefix_end_after_placeholder_arguments(grammar):
    ref = ref_of(grammar, "Wrap<u8>::Inner")
    end = match_prefix(ref, TypePath.parse("Wrap<u8>"))
    assert "".join(c.render() for c in ref.children[end:]) == "::Inner"


def test_arguments_compare_structurally(grammar):
    # spacing does not matter, only structure
    ref = ref_of(grammar, "Map< K ,Vec<V> >")
    assert matches(ref, TypePath.parse("Map<K, Vec<V>>"))


def test_typepath_of(grammar):
    path = typepath_of(ref_of(grammar, "a::Thing<'a, 3>"))
    assert path.names == ("a", "Thing")
    assert path.segments[1].args == (Lifetime("'a"), ConstArg("3"))
    assert str(path) == "a::Thing<'a, 3>"
