"""Query language: ``field=value[ AND field=value]*``.

Parsing compiles a query string into an immutable expression tree. Field names
are checked against a closed registry, so a typo such as ``stat=new`` is a
syntax error rather than a filter that silently matches nothing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from .errors import QuerySyntaxError

logger = logging.getLogger(__name__)


class CompareMode(str, Enum):
    """How a leaf compares an item's field to the literal."""

    EQUALS = "equals"
    EQUALS_IGNORE_CASE = "equals_ignore_case"
    CONTAINS = "contains"


@dataclass(frozen=True)
class QueryField:
    """A queryable work item attribute."""

    name: str
    attribute: str
    mode: CompareMode = CompareMode.EQUALS
    description: str = ""


_FIELDS = [
    QueryField("id", "id", description="Work item ID"),
    QueryField("kind", "kind", CompareMode.EQUALS_IGNORE_CASE, "task|bug|epic|story"),
    QueryField("title", "title", description="Exact title"),
    QueryField("description", "description", description="Exact description"),
    QueryField("state", "state", CompareMode.EQUALS_IGNORE_CASE, "new|active|closed"),
    QueryField("priority", "priority", CompareMode.EQUALS_IGNORE_CASE, "low|medium|high|critical"),
    QueryField("assignee", "assignee", description="Assigned user"),
    QueryField("labels", "labels", CompareMode.CONTAINS, "Matches when the label is present"),
    QueryField("created_at", "created_at", description="Creation timestamp"),
    QueryField("updated_at", "updated_at", description="Last update timestamp"),
    QueryField("closed_at", "closed_at", description="Close timestamp"),
]

QUERY_FIELDS: Dict[str, QueryField] = {f.name: f for f in _FIELDS}

FIELD_ALIASES: Dict[str, str] = {
    "label": "labels",
    "createdat": "created_at",
    "updatedat": "updated_at",
    "closedat": "closed_at",
}


def lookup_field(name: str) -> Optional[QueryField]:
    """Resolve a field name or alias (case-insensitive) to its registry entry."""
    key = name.strip().lower()
    key = FIELD_ALIASES.get(key, key)
    return QUERY_FIELDS.get(key)


@dataclass(frozen=True)
class MatchAll:
    """The empty query."""

    def __str__(self) -> str:
        return ""


@dataclass(frozen=True)
class FieldEquals:
    """Leaf clause ``field=value``."""

    field: QueryField
    value: str

    def __str__(self) -> str:
        return f"{self.field.name}={self.value}"


@dataclass(frozen=True)
class Conjunction:
    """``A AND B AND ...``; holds at least two clauses."""

    clauses: Tuple[FieldEquals, ...]

    def __str__(self) -> str:
        return " AND ".join(str(c) for c in self.clauses)


Expression = Union[MatchAll, FieldEquals, Conjunction]

MATCH_ALL = MatchAll()

_TOKEN_RE = re.compile(r"\S+")


def _parse_clause(query: str, token: str, position: int) -> FieldEquals:
    if "=" not in token:
        raise QuerySyntaxError(query, "expected field=value", token, position)
    field_name, value = token.split("=", 1)
    if not field_name:
        raise QuerySyntaxError(query, "missing field name before '='", token, position)
    if not value:
        raise QuerySyntaxError(query, f"missing value for field '{field_name}'", token, position)
    field = lookup_field(field_name)
    if field is None:
        known = ", ".join(QUERY_FIELDS)
        raise QuerySyntaxError(query, f"unknown field '{field_name}' (known: {known})", token, position)
    return FieldEquals(field=field, value=value)


def parse_query(query: Optional[str]) -> Expression:
    """Compile a query string into an expression tree.

    Args:
        query: ``field=value`` clauses joined by ``AND``; empty matches all

    Returns:
        MatchAll, a single FieldEquals, or a Conjunction

    Raises:
        QuerySyntaxError: Malformed clause, unknown field, or misplaced AND
    """
    text = query or ""
    clauses = []
    expect_clause = True
    last_token, last_position = "", 0

    for match in _TOKEN_RE.finditer(text):
        token, position = match.group(), match.start()
        last_token, last_position = token, position
        is_and = token.upper() == "AND"
        if expect_clause:
            if is_and:
                raise QuerySyntaxError(text, "expected a clause, found AND", token, position)
            clauses.append(_parse_clause(text, token, position))
            expect_clause = False
        else:
            if not is_and:
                raise QuerySyntaxError(text, "expected AND between clauses", token, position)
            expect_clause = True

    if not clauses:
        return MATCH_ALL
    if expect_clause:
        raise QuerySyntaxError(text, "query ends with AND", last_token, last_position)

    expression: Expression = clauses[0] if len(clauses) == 1 else Conjunction(tuple(clauses))
    logger.debug(f"Compiled query {text!r} -> {expression}")
    return expression
