import pytest

from implgen.internals.errors import (
    EmptyArgumentList,
    InvalidPlaceholderShape,
    MalformedBinding,
)
from implgen.internals.report import Span
from implgen.semantics.binding import GenericBinding, parse_binding, parse_override
from implgen.semantics.typepath import RefType, TypePath, parse_type


def test_canonical_form():
    b = parse_binding("T -> Meter, Foot, Mile")
    assert b.form == "canonical"
    assert b.placeholder == TypePath.of("T")
    assert b.arguments == tuple(TypePath.of(n) for n in ("Meter", "Foot", "Mile"))
    assert len(b) == 3


def test_bracketed_form():
    b = parse_binding("T in [Meter, Foot]")
    assert b.form == "bracketed"
    assert b.arguments == (TypePath.of("Meter"), TypePath.of("Foot"))


def test_legacy_form_uses_first_argument_as_placeholder():
    b = parse_binding("Meter, Foot, Mile")
    assert b.form == "legacy"
    assert b.placeholder == TypePath.of("Meter")
    assert b.arguments[0] == b.placeholder


def test_all_forms_normalize_to_the_same_arguments():
    canonical = parse_binding("u32 -> u32, i32, u64")
    legacy = parse_binding("u32, i32, u64")
    assert canonical.placeholder == legacy.placeholder
    assert canonical.arguments == legacy.arguments


def test_arguments_may_be_any_type_form_and_repeat():
    b = parse_binding("T -> &U, Box<U>, &U")
    assert b.arguments[0] == RefType(TypePath.of("U"))
    assert b.arguments[1] == parse_type("Box<U>")
    assert b.arguments[0] == b.arguments[2]


def test_scoped_placeholder():
    b = parse_binding("gen::T -> u8")
    assert b.placeholder.names == ("gen", "T")
    assert b.marker == "gen::T"


def test_trailing_comma_is_accepted():
    assert len(parse_binding("T -> A, B,")) == 2


@pytest.mark.parametrize("text", ["", "   ", "T ->", "T in []"])
def test_empty_argument_list(text):
    with pytest.raises(EmptyArgumentList) as info:
        parse_binding(text)
    assert info.value.code == "IG1002"


@pytest.mark.parametrize("text", ["&T -> A", "[T] -> A", "(A, B) in [C]", "&A, B"])
def test_placeholder_must_be_a_bare_path(text):
    with pytest.raises(InvalidPlaceholderShape) as info:
        parse_binding(text)
    assert info.value.code == "IG1003"


@pytest.mark.parametrize("text", ["T -> A B", "T => A", "-> A", "T -> A,, B", "T in [A"])
def test_malformed(text):
    with pytest.raises(MalformedBinding) as info:
        parse_binding(text)
    assert info.value.code == "IG1001"


def test_errors_are_all_malformed_bindings():
    # callers can catch the family with a single handler
    with pytest.raises(MalformedBinding):
        parse_binding("")
    with pytest.raises(MalformedBinding):
        parse_binding("&T -> A")


def test_error_span_is_moved_to_the_attribute_position():
    origin = Span(10, 12, 10, 30)
    with pytest.raises(MalformedBinding) as info:
        parse_binding("T -> A B", origin)
    span = info.value.span
    assert span.line == 10
    assert span.col == 12 + 8 - 1          # `B` is column 8 of the argument text


def test_binding_rejects_empty_arguments_directly():
    with pytest.raises(EmptyArgumentList):
        GenericBinding(TypePath.of("T"), ())


def test_binding_rendering():
    assert str(parse_binding("T in [A, B]")) == "T -> A, B"


def test_override_marker():
    m = parse_override("Sqlite -> update_sqlite")
    assert m.type == TypePath.of("Sqlite")
    assert m.alternate == "update_sqlite"
    assert str(m) == "Sqlite -> update_sqlite"


def test_override_marker_needs_a_member_name():
    with pytest.raises(MalformedBinding):
        parse_override("Sqlite -> &update")
