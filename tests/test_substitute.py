import pytest

from implgen.semantics.binding import parse_binding
from implgen.semantics.expansion.substitute import TreeSubstituter, render_path
from implgen.semantics.typepath import TypePath


@pytest.fixture
def substitutor(grammar):
    return TreeSubstituter(grammar)


def substitute(grammar, substitutor, text, binding, index=1):
    fragment = grammar.parse(text)
    return substitutor.substitute(fragment, parse_binding(binding), index).render()


METER_IMPL = """\
impl Add for T {
    type Output = T;

    fn add(self, other: T) -> T {
        T(self.0 + other.0)
    }
}"""


def test_type_positions_only(grammar, substitutor):
    out = substitute(grammar, substitutor, METER_IMPL, "T -> Meter, Foot", 0)
    # the tuple-struct constructor `T(...)` is a value, not a type position
    assert out == METER_IMPL.replace("for T", "for Meter") \
        .replace("Output = T", "Output = Meter") \
        .replace("other: T) -> T", "other: Meter) -> Meter")


def test_expression_paths(grammar, substitutor):
    out = substitute(grammar, substitutor, "fn f() -> T { T::default() }", "T -> A, B")
    assert out == "fn f() -> B { B::default() }"


def test_path_argument_in_expression_gets_turbofish(grammar, substitutor):
    out = substitute(grammar, substitutor, "fn f() -> T { T::new() }", "T -> Vec<u8>", 0)
    assert out == "fn f() -> Vec<u8> { Vec::<u8>::new() }"


def test_turbofish_argument(grammar, substitutor):
    out = substitute(grammar, substitutor, "fn f() { let x = y.into::<T>(); }", "T -> u32", 0)
    assert out == "fn f() { let x = y.into::<u32>(); }"


def test_non_path_argument_is_spliced(grammar, substitutor):
    out = substitute(grammar, substitutor, "fn f(x: T) -> Option<T> {}", "T -> &U", 0)
    assert out == "fn f(x: &U) -> Option<&U> {}"


def test_non_path_argument_with_trailing_segments(grammar, substitutor):
    out = substitute(grammar, substitutor, "fn f() { T::new(); }", "T -> &U", 0)
    assert out == "fn f() { <&U>::new(); }"


def test_trailing_segments_and_arguments_carry_over(grammar, substitutor):
    text = "fn f(a: T::Item, b: T<X>) {}"
    out = substitute(grammar, substitutor, text, "T -> m::Seq", 0)
    assert out == "fn f(a: m::Seq::Item, b: m::Seq<X>) {}"


def test_nested_occurrences(grammar, substitutor):
    out = substitute(grammar, substitutor, "type X = Box<Vec<T>>;", "T -> u8", 0)
    assert out == "type X = Box<Vec<u8>>;"


def test_carried_arguments_are_substituted_too(grammar, substitutor):
    out = substitute(grammar, substitutor, "type X = Wrap<T>::Inner<T>;", "Wrap<T> -> Plain", 0)
    # the placeholder `Wrap<T>` matches first; the carried `<T>` is not `Wrap<T>`
    assert out == "type X = Plain::Inner<T>;"


def test_scoped_names_are_not_matched(grammar, substitutor):
    text = "fn f(x: super::T, y: crate::m::T) -> T {}"
    out = substitute(grammar, substitutor, text, "T -> u8", 0)
    assert out == "fn f(x: super::T, y: crate::m::T) -> u8 {}"


def test_value_names_are_not_matched(grammar, substitutor):
    text = "fn f() -> u64 { const T: u64 = 1; let v = T; v }"
    assert substitute(grammar, substitutor, text, "T -> u8", 0) == text


def test_multi_segment_placeholder(grammar, substitutor):
    text = "fn f(x: inner::Tmp) -> inner::Tmp::Out {}"
    out = substitute(grammar, substitutor, text, "inner::Tmp -> f32", 0)
    assert out == "fn f(x: f32) -> f32::Out {}"


def test_identity_returns_the_same_fragment(grammar, substitutor):
    fragment = grammar.parse("impl Tr for A {}")
    assert substitutor.substitute(fragment, parse_binding("A, B"), 0) is fragment


def test_input_is_unchanged(grammar, substitutor):
    fragment = grammar.parse("impl Tr for T {}")
    substitutor.substitute(fragment, parse_binding("T -> A"), 0)
    assert fragment.render() == "impl Tr for T {}"


@pytest.mark.parametrize("text, in_expr, expected", [
    ("Vec<u8>", False, "Vec<u8>"),
    ("Vec<u8>", True, "Vec::<u8>"),
    ("a::B<C, D>::E", True, "a::B::<C, D>::E"),
    ("::std::String", True, "::std::String"),
])
def test_render_path(text, in_expr, expected):
    assert render_path(TypePath.parse(text), in_expr) == expected
