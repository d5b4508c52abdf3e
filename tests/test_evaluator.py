import pytest

from worktrack_core.errors import QuerySyntaxError
from worktrack_core.evaluator import evaluate, execute_query, order_work_items, parse_order_by
from worktrack_core.models import Priority, WorkItemKind
from worktrack_core.query import parse_query

from conftest import make_item


def test_conjunction_selects_only_full_matches():
    items = [
        {"state": "new", "priority": "high"},
        {"state": "new", "priority": "low"},
        {"state": "active", "priority": "high"},
    ]

    result = execute_query(items, parse_query("state=new AND priority=high"))

    assert result == [items[0]]


def test_empty_query_returns_all_in_order():
    items = [make_item("B-2"), make_item("A-1"), make_item("C-3")]

    assert execute_query(items, parse_query("")) == items


def test_enum_fields_compare_case_insensitively():
    item = make_item("BUG-001", WorkItemKind.BUG, priority=Priority.CRITICAL)

    assert evaluate(parse_query("kind=BUG"), item)
    assert evaluate(parse_query("priority=Critical"), item)
    assert not evaluate(parse_query("kind=task"), item)


def test_text_fields_compare_case_sensitively():
    item = make_item("TASK-001", assignee="alice", title="Login")

    assert evaluate(parse_query("assignee=alice"), item)
    assert not evaluate(parse_query("assignee=Alice"), item)
    assert evaluate(parse_query("title=Login"), item)


def test_labels_match_on_membership():
    item = make_item("TASK-001", labels=["ui", "backend"])

    assert evaluate(parse_query("labels=ui"), item)
    assert evaluate(parse_query("label=backend"), item)
    assert not evaluate(parse_query("labels=ui,backend"), item)
    assert not evaluate(parse_query("labels=UI"), item)


def test_absent_field_never_matches():
    item = make_item("TASK-001")

    assert not evaluate(parse_query("assignee=alice"), item)
    assert not evaluate(parse_query("closed_at=2024-01-01"), item)
    assert not evaluate(parse_query("state=new"), {"priority": "high"})


def test_order_by_priority_uses_rank():
    items = [
        make_item("T1", priority=Priority.HIGH),
        make_item("T2", priority=Priority.LOW),
        make_item("T3", priority=Priority.CRITICAL),
        make_item("T4", priority=Priority.MEDIUM),
    ]

    ascending = order_work_items(items, "priority")
    descending = order_work_items(items, "priority:desc")

    assert [i.id for i in ascending] == ["T2", "T4", "T1", "T3"]
    assert [i.id for i in descending] == ["T3", "T1", "T4", "T2"]


def test_order_by_is_stable_and_puts_missing_last():
    items = [
        make_item("T1", assignee="bob"),
        make_item("T2"),
        make_item("T3", assignee="alice"),
        make_item("T4", assignee="bob"),
    ]

    assert [i.id for i in order_work_items(items, "assignee")] == ["T3", "T1", "T4", "T2"]
    assert order_work_items(items, None) == items


def test_descending_order_still_puts_missing_last():
    items = [make_item("T1", assignee="bob"), make_item("T2"), make_item("T3", assignee="alice")]

    assert [i.id for i in order_work_items(items, "assignee:desc")] == ["T1", "T3", "T2"]

    ties = [make_item("T1", assignee="bob"), make_item("T2"), make_item("T3", assignee="bob")]
    assert [i.id for i in order_work_items(ties, "assignee:desc")] == ["T1", "T3", "T2"]


@pytest.mark.parametrize("order_by", ["owner", "priority:sideways", ":asc"])
def test_bad_order_by_raises(order_by):
    with pytest.raises(QuerySyntaxError):
        parse_order_by(order_by)
