import pytest

from implgen.internals.errors import MalformedSource
from implgen.internals.lexer import is_name, tokenize
from implgen.syntax.nodes import Group, Leaf
from implgen.syntax.reader import read_tree

SOURCE = '''\
/// Doc for ${T}
impl<'a> Add for T {
    // plain comment
    fn add(self, rhs: T) -> T { /* block */
        let s = r#"raw "quoted" ${T}"#;
        let c = b'x';
        Self(self.0 + rhs.0 + 1.5e3 as u8)
    }
}
'''


def test_tokens_reproduce_the_input():
    assert "".join(str(t) for t in tokenize(SOURCE)) == SOURCE


def test_token_types():
    types = {str(t): t.type for t in tokenize(SOURCE)}
    assert types["/// Doc for ${T}"] == "COMMENT"
    assert types["'a"] == "LIFETIME"
    assert types['r#"raw "quoted" ${T}"#'] == "STRING"
    assert types["b'x'"] == "CHAR"
    assert types["->"] == "PUNCT"
    assert types["impl"] == "IDENT"


def test_multi_character_punctuation():
    values = [str(t) for t in tokenize("a::b -> c => d ..= e") if t.type == "PUNCT"]
    assert values == ["::", "->", "=>", "..="]


def test_angle_brackets_are_single_characters():
    values = [str(t) for t in tokenize("Vec<Vec<u8>>") if t.type == "PUNCT"]
    assert values == ["<", "<", ">", ">"]


def test_lexing_is_total():
    # an unterminated string falls back to punctuation and words
    text = 'let s = "unterminated'
    tokens = tokenize(text)
    assert "".join(str(t) for t in tokens) == text
    assert all(t.type != "STRING" for t in tokens)


def test_names():
    tokens = {str(t): t for t in tokenize("self Self crate fn r#type value")}
    assert is_name(tokens["self"])
    assert is_name(tokens["crate"])
    assert is_name(tokens["r#type"])
    assert is_name(tokens["value"])
    assert not is_name(tokens["fn"])


def test_groups():
    tree = read_tree(tokenize("f(a, [b], {c})"))
    assert isinstance(tree[0], Leaf)
    group = tree[1]
    assert isinstance(group, Group)
    assert group.delimiter == "("
    inner = [c for c in group.children if isinstance(c, Group)]
    assert [g.delimiter for g in inner] == ["[", "{"]
    assert "".join(n.render() for n in tree) == "f(a, [b], {c})"


@pytest.mark.parametrize("text, reason", [
    ("a )", "unexpected ')'"),
    ("(a ]", "']' does not close '('"),
    ("{ a", "unclosed '{'"),
])
def test_unbalanced_delimiters(text, reason):
    with pytest.raises(MalformedSource) as info:
        read_tree(tokenize(text))
    assert reason in info.value.text
