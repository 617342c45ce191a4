from implgen.syntax.interface import iter_members, iter_text_leaves, iter_type_refs, render, walk
from implgen.syntax.nodes import Attribute, MacroCall, Member, TypeRef

from conftest import type_refs


def test_parse_renders_back_to_source(grammar):
    text = "impl<T: Clone> From<T> for Wrapper<T> where T: Debug {\n    fn f(&self) {}\n}\n"
    assert grammar.parse(text).render() == text


def test_impl_header_positions(grammar):
    fragment = grammar.parse("impl<T: Clone> From<T> for Wrapper<T> where T: Debug {}")
    # the declared parameter after `impl<` is a name, not a reference
    assert type_refs(fragment) == ["Clone", "From<T>", "T", "Wrapper<T>", "T", "T", "Debug"]


def test_signature_and_body_positions(grammar):
    fragment = grammar.parse(
        "fn f(x: &T) -> Vec<T> { let y: Option<T> = None; y as u8; T::new() }"
    )
    assert type_refs(fragment) == ["T", "Vec<T>", "T", "Option<T>", "T", "u8", "T::new"]


def test_value_identifiers_are_not_type_positions(grammar):
    fragment = grammar.parse("fn f() -> u64 { const T: u64 = 0; self.offset + T }")
    assert type_refs(fragment) == ["u64", "u64"]


def test_expression_paths_are_marked(grammar):
    fragment = grammar.parse("fn f() { T::default(); Self::new(); x.into::<T>(); }")
    refs = [r for r in walk(fragment) if isinstance(r, TypeRef)]
    assert [r.render() for r in refs] == ["T::default", "Self::new", "into::<T>", "T"]
    assert all(r.in_expr for r in refs[:3])
    assert not refs[3].in_expr


def test_scope_qualified_paths(grammar):
    fragment = grammar.parse("fn f() { let x: super::T = super::T { offset: 0 }; }")
    refs = [r for r in walk(fragment) if isinstance(r, TypeRef)]
    assert [r.names for r in refs] == [("super", "T"), ("super", "T")]


def test_closures(grammar):
    fragment = grammar.parse("fn f() { let c = |a: T, b| -> U { a }; a < b; }")
    assert type_refs(fragment) == ["T", "U"]


def test_qualified_paths(grammar):
    fragment = grammar.parse("fn f() -> <T as Trait>::Output { <T as Default>::default() }")
    assert type_refs(fragment) == ["T", "Trait", "::Output", "T", "Default", "::default"]


def test_bounds_and_fn_sugar(grammar):
    fragment = grammar.parse(
        "fn f<F: Fn(T) -> U + Send, G>(g: Box<dyn Iterator<Item = T>>) where G: ?Sized {}"
    )
    assert type_refs(fragment) == [
        "Fn", "T", "U", "Send", "Box<dyn Iterator<Item = T>>", "Iterator<Item = T>", "T", "G", "Sized",
    ]


def test_struct_and_enum_fields(grammar):
    fragment = grammar.parse(
        "struct S<T> { pub a: T, b: Vec<T> }\n"
        "enum E { A(T), B { x: T }, C = 3 }"
    )
    assert type_refs(fragment) == ["T", "Vec<T>", "T", "T", "T"]


def test_trait_items(grammar):
    fragment = grammar.parse(
        "trait Tr: Base { type Out: Clone; const N: T; fn get(&self) -> T; }"
    )
    assert type_refs(fragment) == ["Base", "Clone", "T", "self", "T"]


def test_macro_bodies_stay_raw(grammar):
    fragment = grammar.parse('fn f() { println!("{}", T::MAX); vec![T::default()]; }')
    macros = [m for m in walk(fragment) if isinstance(m, MacroCall)]
    assert [m.name for m in macros] == ["println", "vec"]
    assert not any(isinstance(n, TypeRef) for m in macros for n in walk(m))


def test_members_of_impl_body(grammar):
    fragment = grammar.parse(
        "impl DB {\n"
        "    /// default\n"
        "    #[implgen_override(Sqlite -> update_sqlite)]\n"
        "    fn update(&self) {}\n"
        "\n"
        "    pub fn update_sqlite(&self) {}\n"
        "    const X: u8 = 1;\n"
        "}"
    )
    members = list(iter_members(fragment))
    assert [m.name for m in members] == ["update", "update_sqlite"]
    first = members[0]
    assert first.render().startswith("/// default\n    #[implgen_override")
    assert [a.name for a in first.attributes()] == ["implgen_override"]


def test_nested_bodies_are_not_members(grammar):
    fragment = grammar.parse("fn outer() { fn inner() {} }")
    assert not any(isinstance(n, Member) for n in walk(fragment))


def test_attributes(grammar):
    fragment = grammar.parse('#[derive(Clone)]\n#[doc = "x"]\nstruct S;')
    attrs = [a for a in fragment.children if isinstance(a, Attribute)]
    assert [a.name for a in attrs] == ["derive", "doc"]
    assert attrs[0].arguments.inner_text() == "Clone"


def test_outermost_type_refs(grammar):
    fragment = grammar.parse("fn f(x: Vec<T>) {}")
    assert [r.render() for r in iter_type_refs(fragment)] == ["Vec<T>"]


def test_replacement_nodes(grammar):
    nodes = grammar.type_nodes("&mut Vec<u8>")
    assert "".join(n.render() for n in nodes) == "&mut Vec<u8>"
    expr = grammar.type_nodes("Vec::<u8>", in_expr=True)
    assert len(expr) == 1 and isinstance(expr[0], TypeRef) and expr[0].in_expr


def test_inner_attributes(grammar):
    fragment = grammar.parse("#![allow(dead_code)]\nmod m {}")
    (attr,) = [a for a in fragment.children if isinstance(a, Attribute)]
    assert attr.is_inner
    assert attr.name == "allow"


def test_text_leaves(grammar):
    text = '/// doc\nfn f() { // note\n    g!("in macro"); let s = r"raw"; }'
    fragment = grammar.parse(text)
    assert [leaf.value for leaf in iter_text_leaves(fragment)] == [
        "/// doc", "// note", '"in macro"', 'r"raw"',
    ]
    assert render(fragment) == text
