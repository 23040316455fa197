"""Tests for the primary index filter expression builder."""

from media_libs.search_backends.filters import (
    AnyOf,
    Condition,
    FilterClauses,
    Not,
    build_filter,
    quote_value,
)


def test_formats_and_genres():
    """Format clause leads, genre clause is AND-ed."""
    clauses = build_filter(formats=["TV", "OVA"], genres=["Action"])
    assert clauses.to_expression() == "(format = TV OR format = OVA) AND (genres = Action)"


def test_excluded_genres_without_formats_keep_leading_and():
    """Without a format clause the first clause still carries its AND prefix."""
    clauses = build_filter(formats=[], genres_excluded=["Horror"])
    assert clauses.to_expression() == " AND NOT (genres = Horror)"


def test_all_clauses_in_fixed_order():
    clauses = build_filter(
        formats=["MANGA"],
        genres=["Drama", "Romance"],
        genres_excluded=["Ecchi"],
        tags=["Isekai"],
        tags_excluded=["Gore", "Tragedy"],
    )
    assert clauses.to_expression() == (
        "(format = MANGA)"
        " AND (genres = Drama OR genres = Romance)"
        " AND NOT (genres = Ecchi)"
        " AND (tags = Isekai)"
        " AND NOT (tags = Gore OR tags = Tragedy)"
    )


def test_no_filters_is_empty_string():
    clauses = build_filter()
    assert clauses.is_empty()
    assert clauses.to_expression() == ""


def test_tags_only():
    assert build_filter(tags=["Time Skip"]).to_expression() == ' AND (tags = "Time Skip")'


def test_plain_values_are_bare():
    assert quote_value("TV_SHORT") == "TV_SHORT"
    assert quote_value("Sci-Fi") == "Sci-Fi"
    assert quote_value("2.5D") == "2.5D"


def test_values_with_spaces_are_quoted():
    clauses = build_filter(genres=["Slice of Life"])
    assert clauses.to_expression() == ' AND (genres = "Slice of Life")'


def test_injection_attempt_stays_inside_literal():
    """Operators in a value cannot escape the string literal."""
    value = 'Action) OR (genres = "Hentai'
    expression = build_filter(genres=[value]).to_expression()
    assert expression == ' AND (genres = "Action) OR (genres = \\"Hentai")'


def test_backslashes_are_escaped():
    assert quote_value('a\\"b') == '"a\\\\\\"b"'


def test_nodes_serialize_independently():
    group = AnyOf((Condition("format", "TV"), Condition("format", "MOVIE")))
    assert Condition("format", "TV").to_expression() == "format = TV"
    assert group.to_expression() == "(format = TV OR format = MOVIE)"
    assert Not(group).to_expression() == "NOT (format = TV OR format = MOVIE)"
    assert FilterClauses(leading=group, conjuncts=(Not(AnyOf.of("tags", ["Gore"])),)).to_expression() == (
        "(format = TV OR format = MOVIE) AND NOT (tags = Gore)"
    )


def test_filter_keywords_are_quoted():
    """Operator words are never emitted bare, whatever their case."""
    assert quote_value("AND") == '"AND"'
    assert quote_value("to") == '"to"'
    assert quote_value("Exists") == '"Exists"'
    assert build_filter(tags=["NOT"], tags_excluded=["OR"]).to_expression() == (
        ' AND (tags = "NOT") AND NOT (tags = "OR")'
    )
    assert quote_value("Android") == "Android"
