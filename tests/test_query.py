"""
Tests for the tag query language.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from archivesearch.query import (
    Clause,
    CompiledFilter,
    glob_to_regex,
    matches,
    parse_filter,
)


class TestBasicMatching:
    """Substring matching, negation and conjunction."""

    @pytest.mark.parametrize("blob", ["", "cat,dog", "anything at all"])
    def test_empty_filter_always_matches(self, blob):
        assert matches("", blob)
        assert matches(None, blob)

    def test_substring(self):
        assert matches("cat", "cat,dog")
        assert matches("ate", "category,dog")

    def test_negation(self):
        assert not matches("-cat", "cat,dog")
        assert matches("-cat", "dog")

    def test_conjunction(self):
        assert matches("cat dog", "cat,dog,toy")
        assert not matches("cat fish", "cat,dog")

    def test_case_insensitive(self):
        assert matches("CAT", "cat,dog")
        assert matches("artist:ALICE", "Artist:Alice")

    def test_mixed_positive_and_negative(self):
        blob = "artist:alice,parody:foo"
        assert matches("artist:alice -color", blob)
        assert not matches("artist:alice -parody", blob)


class TestExactMatching:
    """Clauses marked with $ must equal a whole tag entry."""

    def test_quoted_with_dollar_inside(self):
        assert not matches('"cat$"', "category,dog")
        assert matches('"cat$"', "cat,dog")

    def test_quoted_with_dollar_after(self):
        assert matches('"cat"$', "cat,dog")
        assert not matches('"cat"$', "category,dog")

    def test_bare_with_dollar(self):
        assert matches("dog$", "cat,dog")
        assert not matches("do$", "cat,dog")

    def test_entry_after_comma_and_space(self):
        assert matches('"dog"$', "cat, dog")

    def test_namespaced_entry(self):
        blob = "artist:alicia,artist:alice"
        assert matches('"artist:alice"$', blob)
        assert not matches('"artist:ali"$', blob)

    def test_negated_exact(self):
        assert matches('-"cat"$', "category")
        assert not matches('-"cat"$', "cat,dog")

    def test_quoted_phrase_with_space(self):
        assert matches('"big cat"$ dog', "big cat,dog")
        assert not matches('"big cat"$', "big,cat")


class TestWildcards:

    def test_single_character(self):
        assert matches("c?t", "cat,dog")
        assert matches("c_t", "cut")
        assert not matches("c?t", "ct")

    def test_any_run(self):
        assert matches("c*t", "cart,dog")
        assert matches("c%t", "ct")
        assert not matches("c*t", "dog")

    def test_wildcard_in_exact_clause(self):
        assert matches('"artist:a*"$', "color,artist:alice")
        assert not matches('"artist:a?"$', "artist:alice")


class TestHostileInput:
    """Regex syntax in filters is always literal; nothing raises."""

    @pytest.mark.parametrize("filter_text", [
        "(", ")", "[", "a+b", "\\", "^$", "{2}", "a|b", '"', "-", '-"', "$", "--", '""$',
    ])
    def test_never_raises(self, filter_text):
        matches(filter_text, "a+b,(x),[y],a|b")

    def test_metacharacters_are_literal(self):
        assert matches("a+b", "a+b")
        assert not matches("a+b", "aab")
        assert matches(".", "a.b")
        assert not matches(".", "abc")
        assert matches("a|b", "x,a|b")
        assert not matches("a|b", "a")

    def test_unterminated_quote_is_literal(self):
        assert matches('"big cat', "big cat,dog")
        assert not matches('"big cat', "big,cat")

    def test_dangling_dash_is_ignored(self):
        assert matches("cat -", "cat")
        assert matches("-", "anything")


class TestParser:

    def test_clause_structure(self):
        clauses = parse_filter('artist:alice -"big cat"$ c?t$')
        assert clauses == (
            Clause("artist:alice"),
            Clause("big cat", negated=True, exact=True),
            Clause("c?t", exact=True),
        )

    def test_extra_whitespace(self):
        assert parse_filter("  cat \t dog  ") == (Clause("cat"), Clause("dog"))

    def test_glob_translation(self):
        assert glob_to_regex("a?b_c*d%") == "a.b.c.*d.*"
        assert glob_to_regex("a+b") == r"a\+b"

    def test_concurrent_parses_do_not_interfere(self):
        """Many filters parsed and matched at once give sequential results."""
        cases = [
            (f'tag{i} -"other{i}"$ x?{i}', f"tag{i},xz{i},other{i}1")
            for i in range(200)
        ]
        parse_filter.cache_clear()
        expected = [matches(f, b) for f, b in cases]
        parse_filter.cache_clear()
        with ThreadPoolExecutor(max_workers=8) as ex:
            actual = list(ex.map(lambda c: matches(*c), cases))
        assert actual == expected
        assert all(expected)


class TestCompiledFilter:

    def test_empty_is_falsy_and_matches(self):
        f = CompiledFilter("")
        assert not f
        assert f.matches("anything")

    def test_agrees_with_matches(self):
        f = CompiledFilter('cat -"dog"$')
        for blob in ["cat", "cat,dog", "category,doggo", "fish"]:
            assert f.matches(blob) == matches('cat -"dog"$', blob)
