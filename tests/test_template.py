from implgen.semantics.binding import parse_binding
from implgen.semantics.expansion.template import TemplateSubstituter
from implgen.syntax.nodes import MacroCall, TypeRef
from implgen.syntax.interface import walk


def run(grammar, text, binding="T -> Meter", index=0, **flags):
    templates = TemplateSubstituter(grammar, **flags)
    return templates.substitute(grammar.parse(text), parse_binding(binding), index).render()


def test_doc_comments(grammar):
    out = run(grammar, "/// Adds two ${T} values.\nimpl Add for T {}")
    assert out == "/// Adds two Meter values.\nimpl Add for T {}"


def test_block_and_line_comments(grammar):
    out = run(grammar, "fn f() { /* ${T} */ // ${T}\n}")
    assert out == "fn f() { /* Meter */ // Meter\n}"


def test_string_literals(grammar):
    out = run(grammar, 'fn name() { let s = "unit: ${T}"; }')
    assert out == 'fn name() { let s = "unit: Meter"; }'


def test_doc_attribute(grammar):
    out = run(grammar, '#[doc = "Unit ${T}"]\nstruct S;')
    assert out == '#[doc = "Unit Meter"]\nstruct S;'


def test_macro_bodies(grammar):
    out = run(grammar, "fn f() { println!(${T}); }")
    assert out == "fn f() { println!(Meter); }"


def test_macro_body_is_reread(grammar):
    templates = TemplateSubstituter(grammar)
    fragment = grammar.parse("fn f() { m!(${T} + 1); }")
    out = templates.substitute(fragment, parse_binding("T -> a::B"), 0)
    call = next(n for n in walk(out) if isinstance(n, MacroCall))
    assert call.body.inner_text() == "a::B + 1"
    # the body stays raw token groups
    assert not any(isinstance(n, TypeRef) for n in walk(call))


def test_full_argument_spelling(grammar):
    out = run(grammar, "/// ${T}\nstruct S;", binding="T -> &'a mut Vec<u8>")
    assert out == "/// &'a mut Vec<u8>\nstruct S;"


def test_multi_segment_marker(grammar):
    out = run(grammar, "/// ${m::T} and ${T}\nstruct S;", binding="m::T -> u8")
    assert out == "/// u8 and ${T}\nstruct S;"


def test_code_identifiers_are_untouched(grammar):
    # only text leaves are searched; a marker is never a type position
    text = "fn f() -> T { let x = 1; x }"
    assert run(grammar, text) == text


def test_flags_disable_regions(grammar):
    text = '/// ${T}\nfn f() { "${T}"; g!(${T}); }'
    assert run(grammar, text, comments=False) == '/// ${T}\nfn f() { "Meter"; g!(Meter); }'
    assert run(grammar, text, strings=False) == '/// Meter\nfn f() { "${T}"; g!(Meter); }'
    assert run(grammar, text, macros=False) == '/// Meter\nfn f() { "Meter"; g!(${T}); }'


def test_custom_delimiters(grammar):
    out = run(grammar, "/// {{T}} ${T}\nstruct S;", marker_open="{{", marker_close="}}")
    assert out == "/// Meter ${T}\nstruct S;"


def test_strings_inside_macros_with_macros_disabled(grammar):
    out = run(grammar, 'fn f() { println!("${T}"); }', macros=False)
    assert out == 'fn f() { println!("Meter"); }'
