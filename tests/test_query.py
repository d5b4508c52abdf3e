import pytest

from worktrack_core.errors import QuerySyntaxError
from worktrack_core.query import (
    CompareMode,
    Conjunction,
    FieldEquals,
    MatchAll,
    QUERY_FIELDS,
    lookup_field,
    parse_query,
)


@pytest.mark.parametrize("query", [None, "", "   "])
def test_empty_query_matches_all(query):
    assert isinstance(parse_query(query), MatchAll)


def test_single_clause_is_a_leaf():
    expression = parse_query("state=new")

    assert expression == FieldEquals(QUERY_FIELDS["state"], "new")


def test_conjunction_keeps_clause_order():
    expression = parse_query("state=new AND priority=high and label=ui")

    assert isinstance(expression, Conjunction)
    assert [(c.field.name, c.value) for c in expression.clauses] == [
        ("state", "new"),
        ("priority", "high"),
        ("labels", "ui"),
    ]
    assert str(expression) == "state=new AND priority=high AND labels=ui"


def test_value_may_contain_equals_sign():
    expression = parse_query("title=a=b")

    assert expression.value == "a=b"


def test_equal_strings_yield_equal_trees():
    assert parse_query("kind=bug AND state=active") == parse_query("kind=bug  AND  state=active")


@pytest.mark.parametrize(
    "query,reason",
    [
        ("state=", "missing value"),
        ("AND x=1", "expected a clause, found AND"),
        ("state=new AND", "query ends with AND"),
        ("state=new AND AND priority=low", "expected a clause, found AND"),
        ("state=new priority=low", "expected AND between clauses"),
        ("=new", "missing field name"),
        ("state", "expected field=value"),
        ("stat=new", "unknown field 'stat'"),
    ],
)
def test_malformed_queries_raise(query, reason):
    with pytest.raises(QuerySyntaxError) as exc_info:
        parse_query(query)

    assert reason in exc_info.value.reason
    assert exc_info.value.query == query


def test_syntax_error_reports_position():
    with pytest.raises(QuerySyntaxError) as exc_info:
        parse_query("state=new AND bogus=1")

    assert exc_info.value.token == "bogus=1"
    assert exc_info.value.position == 14
    assert "position 14" in str(exc_info.value)


def test_field_registry_modes_and_aliases():
    assert lookup_field("STATE").mode == CompareMode.EQUALS_IGNORE_CASE
    assert lookup_field("labels").mode == CompareMode.CONTAINS
    assert lookup_field("label") is QUERY_FIELDS["labels"]
    assert lookup_field("createdAt") is QUERY_FIELDS["created_at"]
    assert lookup_field("title").mode == CompareMode.EQUALS
    assert lookup_field("owner") is None
