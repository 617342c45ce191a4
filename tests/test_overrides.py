import pytest

from implgen.internals.errors import MalformedBinding, UnresolvedOverrideTarget
from implgen.internals.report import Reporter
from implgen.semantics.binding import parse_binding
from implgen.semantics.expansion.overrides import OverrideResolver
from implgen.semantics.typepath import TypePath

BACKEND = """\
impl Backend for DB {
    #[implgen_override(Sqlite -> update_sqlite)]
    fn update(&self) -> String {
        String::from("generic")
    }

    fn update_sqlite(&self) -> String {
        String::from("sqlite")
    }
}"""

SQLITE = """\
impl Backend for Sqlite {
    fn update(&self) -> String {
        String::from("sqlite")
    }
}"""

MYSQL = """\
impl Backend for MySql {
    fn update(&self) -> String {
        String::from("generic")
    }
}"""


@pytest.fixture
def resolver():
    return OverrideResolver()


def test_collect(grammar, resolver):
    sites = resolver.collect(grammar.parse(BACKEND))
    assert len(sites) == 1
    assert sites[0].member == "update"
    assert sites[0].marker.type == TypePath.of("Sqlite")
    assert sites[0].marker.alternate == "update_sqlite"


def test_alternate_replaces_default(expander):
    copies = expander.expand_declaration(BACKEND, ["DB -> Sqlite, MySql"])
    assert copies == [SQLITE, MYSQL]


def test_apply_then_strip(grammar, resolver):
    fragment = grammar.parse(BACKEND)
    binding = parse_binding("DB -> Sqlite, MySql")
    sites = resolver.collect(fragment)

    applied = resolver.apply(fragment, binding, 1)
    # the marker is consumed but the alternate is still there
    assert "implgen_override" not in applied.render()
    assert "fn update_sqlite" in applied.render()

    stripped = resolver.strip(applied, sites)
    assert "update_sqlite" not in stripped.render()


def test_unresolved_alternate(grammar, resolver):
    text = BACKEND.replace("fn update_sqlite", "fn update_lite")
    with pytest.raises(UnresolvedOverrideTarget) as info:
        resolver.collect(grammar.parse(text))
    assert info.value.code == "IG1004"
    assert "update_sqlite" in info.value.text


def test_malformed_marker(grammar, resolver):
    text = BACKEND.replace("Sqlite -> update_sqlite", "Sqlite => update_sqlite")
    with pytest.raises(MalformedBinding):
        resolver.collect(grammar.parse(text))


def test_marker_without_arguments(grammar, resolver):
    text = BACKEND.replace("#[implgen_override(Sqlite -> update_sqlite)]", "#[implgen_override]")
    with pytest.raises(MalformedBinding):
        resolver.collect(grammar.parse(text))


def test_unbound_marker_warns(expander):
    reporter = Reporter()
    copies = expander.expand_declaration(BACKEND, ["DB -> Postgres"], reporter)
    assert [d.code for d in reporter.items] == ["IG2002"]
    assert reporter.exit_code() == 1
    # the marker is removed and the alternate dropped all the same
    assert copies == [MYSQL.replace("MySql", "Postgres")]


def test_markers_decided_by_the_layer_that_binds_them(expander):
    text = """\
impl Store<K> for DB {
    #[implgen_override(Sqlite -> put_sqlite)]
    fn put(&self) {}
    fn put_sqlite(&self) { sqlite() }
}"""
    copies = expander.expand_declaration(text, ["K -> u8, u16", "DB -> Sqlite, MySql"])
    assert len(copies) == 4
    assert copies[0] == "impl Store<u8> for Sqlite {\n    fn put(&self) { sqlite() }\n}"
    assert copies[1] == "impl Store<u8> for MySql {\n    fn put(&self) {}\n}"
    assert copies[2] == copies[0].replace("u8", "u16")


def test_several_markers_on_one_member(expander):
    text = """\
impl Db for B {
    #[implgen_override(Sqlite -> get_sqlite)]
    #[implgen_override(MySql -> get_mysql)]
    fn get(&self) -> u8 { 0 }
    fn get_sqlite(&self) -> u8 { 1 }
    fn get_mysql(&self) -> u8 { 2 }
}"""
    copies = expander.expand_declaration(text, ["B -> Sqlite, MySql, Pg"])
    assert [c.count("fn ") for c in copies] == [1, 1, 1]
    assert "{ 1 }" in copies[0]
    assert "{ 2 }" in copies[1]
    assert "{ 0 }" in copies[2]


def test_custom_attribute_name(grammar):
    resolver = OverrideResolver("alt")
    text = BACKEND.replace("implgen_override", "alt")
    assert len(resolver.collect(grammar.parse(text))) == 1
    # markers under another name are ordinary attributes
    assert resolver.collect(grammar.parse(BACKEND)) == []


def test_marker_naming_its_own_member(expander):
    text = """\
impl Db for DB {
    #[implgen_override(Sqlite -> update)]
    fn update(&self) { default() }
}"""
    copies = expander.expand_declaration(text, ["DB -> Sqlite, MySql"])
    assert copies == [
        "impl Db for Sqlite {\n    fn update(&self) { default() }\n}",
        "impl Db for MySql {\n    fn update(&self) { default() }\n}",
    ]


def test_default_named_as_an_alternate_is_kept(expander):
    text = """\
impl Db for DB {
    #[implgen_override(Sqlite -> get_fast)]
    fn get(&self) -> u8 { 0 }
    #[implgen_override(MySql -> get)]
    fn get_fast(&self) -> u8 { 1 }
}"""
    copies = expander.expand_declaration(text, ["DB -> Sqlite, Pg"])
    # get_fast carries a marker of its own, so it is never stripped
    assert "fn get(&self) -> u8 { 1 }" in copies[0]
    assert "fn get(&self) -> u8 { 0 }" in copies[1]
    assert all("fn get_fast(&self) -> u8 { 1 }" in c for c in copies)
