"""In-memory relation store (the edge set between work item IDs).

The store performs no validation; callers run the graph validator before
`add_edge`.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .models import Relation, RelationType

logger = logging.getLogger(__name__)

EdgeKey = Tuple[str, str, RelationType]


class RelationStore:
    """Ordered set of directed, typed edges.

    Iteration order is insertion order, which keeps navigator results stable
    for a given snapshot.
    """

    def __init__(self, relations: Optional[Iterable[Relation]] = None) -> None:
        self._edges: Dict[EdgeKey, Relation] = {}
        for relation in relations or []:
            self.add_edge(relation)

    def add_edge(self, relation: Relation) -> bool:
        """Insert an edge; returns False if the identical edge already exists."""
        if relation.key in self._edges:
            logger.debug(f"Edge already present: {relation}")
            return False
        self._edges[relation.key] = relation
        logger.debug(f"Added edge: {relation}")
        return True

    def remove_edge(self, source: str, target: str, relation_type: RelationType | str) -> bool:
        """Remove a matching edge if present; returns whether anything was removed."""
        key = (source, target, RelationType(relation_type))
        removed = self._edges.pop(key, None)
        if removed is None:
            logger.debug(f"No edge to remove: {source} {key[2].value} {target}")
            return False
        logger.debug(f"Removed edge: {removed}")
        return True

    def remove_item(self, item_id: str) -> List[Relation]:
        """Remove every edge touching `item_id` and return them."""
        doomed = [r for r in self._edges.values() if r.source == item_id or r.target == item_id]
        for relation in doomed:
            del self._edges[relation.key]
        if doomed:
            logger.debug(f"Cascaded {len(doomed)} edge(s) for {item_id}")
        return doomed

    def edges(self) -> List[Relation]:
        return list(self._edges.values())

    def edges_from(self, item_id: str) -> List[Relation]:
        return [r for r in self._edges.values() if r.source == item_id]

    def edges_to(self, item_id: str) -> List[Relation]:
        return [r for r in self._edges.values() if r.target == item_id]

    def edges_of_types(self, types: Iterable[RelationType]) -> List[Relation]:
        wanted = set(types)
        return [r for r in self._edges.values() if r.type in wanted]

    def __contains__(self, relation: object) -> bool:
        return isinstance(relation, Relation) and relation.key in self._edges

    def __iter__(self) -> Iterator[Relation]:
        return iter(list(self._edges.values()))

    def __len__(self) -> int:
        return len(self._edges)
