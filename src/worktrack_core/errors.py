"""Exception taxonomy for worktrack-core."""

from pathlib import Path
from typing import List, Optional, Sequence


class WorkError(Exception):
    """Base exception for all worktrack errors."""

    pass


# Config errors


class ConfigError(WorkError):
    """Failed to resolve workspace context or load configuration."""

    pass


# Storage errors


class WorkItemNotFoundError(WorkError):
    """Work item not found in the active store."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Work item not found: {item_id}")


class ParseError(WorkError):
    """Failed to parse a stored work item or relation file."""

    def __init__(self, path: Optional[Path], details: str) -> None:
        self.path = path
        self.details = details
        super().__init__(f"Parse error in {path}: {details}")


class WriteError(WorkError):
    """Failed to write a work item or relation file."""

    pass


# Relation errors


class RelationError(WorkError):
    """Proposed relation was rejected."""

    pass


class UnknownRelationTypeError(RelationError):
    """Relation type is not part of the relation schema."""

    def __init__(self, relation_type: str) -> None:
        self.relation_type = relation_type
        super().__init__(f"Unknown relation type: {relation_type}")


class InvalidRelationKindError(RelationError):
    """Endpoint kinds are not permitted for the relation type."""

    def __init__(
        self,
        relation_type: str,
        from_kind: str,
        to_kind: str,
        allowed_from: Sequence[str],
        allowed_to: Sequence[str],
    ) -> None:
        self.relation_type = relation_type
        self.from_kind = from_kind
        self.to_kind = to_kind
        self.allowed_from = list(allowed_from)
        self.allowed_to = list(allowed_to)
        allowed_from_text = ", ".join(self.allowed_from) or "any"
        allowed_to_text = ", ".join(self.allowed_to) or "any"
        super().__init__(
            f"Relation '{relation_type}' not allowed from {from_kind} to {to_kind} "
            f"(allowed from: {allowed_from_text}; allowed to: {allowed_to_text})"
        )


class CyclicRelationError(RelationError):
    """Relation would close a cycle within its cycle group."""

    def __init__(
        self,
        source: str,
        target: str,
        relation_type: str,
        cycle: Optional[List[str]] = None,
    ) -> None:
        self.source = source
        self.target = target
        self.relation_type = relation_type
        self.cycle = list(cycle) if cycle else [source, target]
        path = " -> ".join(self.cycle)
        super().__init__(
            f"Relation {source} {relation_type} {target} would create a cycle: {path}"
        )


# Query errors


class QuerySyntaxError(WorkError):
    """Query string could not be parsed."""

    def __init__(
        self,
        query: str,
        reason: str,
        token: Optional[str] = None,
        position: Optional[int] = None,
    ) -> None:
        self.query = query
        self.reason = reason
        self.token = token
        self.position = position
        location = f" at position {position}" if position is not None else ""
        near = f" near '{token}'" if token else ""
        super().__init__(f'Query syntax error in "{query}"{location}{near}: {reason}')


# Notification errors


class NotificationError(WorkError):
    """A notification target failed to deliver."""

    pass


class NotifyTargetNotFoundError(NotificationError):
    """No notification target with this name in the active context."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Notification target not found: {name}")
