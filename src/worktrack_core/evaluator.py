"""Evaluate query expressions against work items."""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from .errors import QuerySyntaxError
from .models import Priority
from .query import CompareMode, Conjunction, Expression, FieldEquals, MatchAll, QueryField, lookup_field

T = TypeVar("T")


def _raw_value(item: Any, attribute: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(attribute)
    return getattr(item, attribute, None)


def _as_text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _matches(leaf: FieldEquals, item: Any) -> bool:
    raw = _raw_value(item, leaf.field.attribute)
    if raw is None:
        return False
    mode = leaf.field.mode
    if mode == CompareMode.CONTAINS and isinstance(raw, (list, tuple, set, frozenset)):
        return leaf.value in (_as_text(v) for v in raw)
    if mode == CompareMode.EQUALS_IGNORE_CASE:
        return _as_text(raw).lower() == leaf.value.lower()
    return _as_text(raw) == leaf.value


def evaluate(expression: Expression, item: Any) -> bool:
    """Return True if `item` (WorkItem or mapping) satisfies `expression`.

    A field absent on the item is a non-match, never an error.
    """
    if isinstance(expression, MatchAll):
        return True
    if isinstance(expression, FieldEquals):
        return _matches(expression, item)
    if isinstance(expression, Conjunction):
        return all(_matches(clause, item) for clause in expression.clauses)
    raise TypeError(f"Not a query expression: {expression!r}")


def execute_query(items: Iterable[T], expression: Expression) -> List[T]:
    """Filter `items` by `expression`, preserving input order."""
    return [item for item in items if evaluate(expression, item)]


def parse_order_by(order_by: str) -> Tuple[QueryField, bool]:
    """Parse ``field[:asc|desc]``; returns (field, descending).

    Raises:
        QuerySyntaxError: Unknown field or direction
    """
    name, _, direction = order_by.strip().partition(":")
    field = lookup_field(name) if name else None
    if field is None:
        raise QuerySyntaxError(order_by, f"unknown order field '{name}'", name, 0)
    direction = direction.strip().lower() or "asc"
    if direction not in ("asc", "desc"):
        raise QuerySyntaxError(order_by, "order direction must be asc or desc", direction, len(name) + 1)
    return field, direction == "desc"


def _sort_key(field: QueryField, raw: Any) -> Any:
    if field.name == "priority":
        try:
            return Priority(_as_text(raw).lower()).rank
        except ValueError:
            return 0
    if isinstance(raw, (list, tuple, set, frozenset)):
        return ",".join(sorted(_as_text(v) for v in raw))
    return _as_text(raw)


def order_work_items(items: Sequence[T], order_by: Optional[str]) -> List[T]:
    """Stable sort by a query field; priority sorts by rank (low < critical).

    Items without a value for the field come last in either direction.
    """
    if not order_by:
        return list(items)
    field, descending = parse_order_by(order_by)
    present: List[Tuple[Any, T]] = []
    missing: List[T] = []
    for item in items:
        raw = _raw_value(item, field.attribute)
        if raw is None:
            missing.append(item)
        else:
            present.append((_sort_key(field, raw), item))
    present.sort(key=lambda pair: pair[0], reverse=descending)
    return [item for _, item in present] + missing
