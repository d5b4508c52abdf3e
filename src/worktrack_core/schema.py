"""Relation schema: allowed endpoint kinds and cycle groups per relation type.

The schema is plain configuration. The graph validator consults it to decide
whether an edge is structurally acceptable; nothing in the algorithms branches
on a specific relation type.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigError, UnknownRelationTypeError
from .models import RelationType, WorkItemKind


class RelationTypeDef(BaseModel):
    """Schema entry for one relation type."""

    name: RelationType
    description: str = ""
    inverse: RelationType
    from_kinds: List[WorkItemKind] = Field(default_factory=list, description="Empty means any kind")
    to_kinds: List[WorkItemKind] = Field(default_factory=list, description="Empty means any kind")
    cycle_group: Optional[str] = Field(None, description="Types sharing a group must stay jointly acyclic")
    reverse_in_group: bool = Field(False, description="Traverse target -> source inside the cycle group")

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    def allows_from(self, kind: WorkItemKind) -> bool:
        return not self.from_kinds or kind in self.from_kinds

    def allows_to(self, kind: WorkItemKind) -> bool:
        return not self.to_kinds or kind in self.to_kinds


class SchemaAttribute(BaseModel):
    """Description of a work item attribute, as reported by `schema attrs`."""

    name: str
    type: str
    required: bool
    description: str


SCHEMA_ATTRIBUTES: List[SchemaAttribute] = [
    SchemaAttribute(name="title", type="string", required=True, description="Work item title"),
    SchemaAttribute(name="description", type="string", required=False, description="Work item description"),
    SchemaAttribute(
        name="priority", type="enum", required=False, description="Priority level (low, medium, high, critical)"
    ),
    SchemaAttribute(name="assignee", type="string", required=False, description="Assigned user"),
    SchemaAttribute(name="labels", type="array", required=False, description="Labels for categorization"),
]


_WORK_KINDS = [WorkItemKind.TASK, WorkItemKind.BUG, WorkItemKind.STORY]
_PARENT_KINDS = [WorkItemKind.EPIC, WorkItemKind.STORY]
_CHILD_KINDS = [WorkItemKind.STORY, WorkItemKind.TASK, WorkItemKind.BUG]

DEFAULT_RELATION_TYPES: List[RelationTypeDef] = [
    RelationTypeDef(
        name=RelationType.PARENT_OF,
        description="This item is parent of another",
        inverse=RelationType.CHILD_OF,
        from_kinds=_PARENT_KINDS,
        to_kinds=_CHILD_KINDS,
        cycle_group="hierarchy",
    ),
    RelationTypeDef(
        name=RelationType.CHILD_OF,
        description="This item is child of another",
        inverse=RelationType.PARENT_OF,
        from_kinds=_CHILD_KINDS,
        to_kinds=_PARENT_KINDS,
        cycle_group="hierarchy",
        reverse_in_group=True,
    ),
    RelationTypeDef(
        name=RelationType.BLOCKS,
        description="This item blocks another",
        inverse=RelationType.BLOCKED_BY,
        from_kinds=_WORK_KINDS,
        to_kinds=_WORK_KINDS,
        cycle_group="blocking",
    ),
    RelationTypeDef(
        name=RelationType.BLOCKED_BY,
        description="This item is blocked by another",
        inverse=RelationType.BLOCKS,
        from_kinds=_WORK_KINDS,
        to_kinds=_WORK_KINDS,
        cycle_group="blocking",
        reverse_in_group=True,
    ),
    RelationTypeDef(
        name=RelationType.DUPLICATES,
        description="This item duplicates another",
        inverse=RelationType.DUPLICATE_OF,
        from_kinds=_WORK_KINDS,
        to_kinds=_WORK_KINDS,
        cycle_group="duplication",
    ),
    RelationTypeDef(
        name=RelationType.DUPLICATE_OF,
        description="This item is a duplicate of another",
        inverse=RelationType.DUPLICATES,
        from_kinds=_WORK_KINDS,
        to_kinds=_WORK_KINDS,
        cycle_group="duplication",
        reverse_in_group=True,
    ),
    RelationTypeDef(
        name=RelationType.RELATES_TO,
        description="This item relates to another",
        inverse=RelationType.RELATES_TO,
    ),
]

# Keys that identify a relation type; overrides may not change them.
_FIXED_KEYS = frozenset({"name", "inverse"})


def _coerce_type(relation_type: RelationType | str) -> RelationType:
    if isinstance(relation_type, RelationType):
        return relation_type
    try:
        return RelationType(str(relation_type).strip().lower())
    except ValueError:
        raise UnknownRelationTypeError(str(relation_type))


def _coerce_kinds(kinds: Iterable[WorkItemKind | str]) -> List[WorkItemKind]:
    return [k if isinstance(k, WorkItemKind) else WorkItemKind(str(k).strip().lower()) for k in kinds]


class RelationSchema:
    """Injectable table of relation type definitions."""

    def __init__(
        self,
        definitions: Iterable[RelationTypeDef],
        kinds: Optional[Sequence[WorkItemKind]] = None,
    ) -> None:
        self._defs: Dict[RelationType, RelationTypeDef] = {d.name: d for d in definitions}
        self.kinds: List[WorkItemKind] = list(kinds) if kinds else list(WorkItemKind)

    @classmethod
    def default(cls) -> "RelationSchema":
        return cls(DEFAULT_RELATION_TYPES)

    @classmethod
    def from_overrides(
        cls,
        overrides: Mapping[str, Mapping[str, Any]],
        kinds: Optional[Sequence[WorkItemKind | str]] = None,
    ) -> "RelationSchema":
        """Build a schema from the defaults with per-type overrides.

        Args:
            overrides: ``{"parent_of": {"from_kinds": [...], ...}, ...}``
            kinds: Enabled work item kinds (defaults to all)

        Raises:
            ConfigError: If an override names an unknown type or invalid value
        """
        defs = {d.name: d for d in DEFAULT_RELATION_TYPES}
        for raw_name, values in overrides.items():
            try:
                name = _coerce_type(raw_name)
            except UnknownRelationTypeError as e:
                raise ConfigError(f"Unknown relation type in config: {raw_name}") from e
            if not isinstance(values, Mapping):
                raise ConfigError(f"Relation config for '{raw_name}' must be a table")
            fixed = sorted(set(values) & _FIXED_KEYS)
            if fixed:
                raise ConfigError(f"Relation config for '{raw_name}' cannot override: {', '.join(fixed)}")
            try:
                merged = defs[name].model_dump()
                merged.update(dict(values))
                defs[name] = RelationTypeDef.model_validate(merged)
            except Exception as e:
                raise ConfigError(f"Invalid relation config for '{raw_name}': {e}") from e
        try:
            enabled = _coerce_kinds(kinds) if kinds else None
        except ValueError as e:
            raise ConfigError(f"Invalid work item kind in config: {e}") from e
        return cls(defs.values(), kinds=enabled)

    def get(self, relation_type: RelationType | str) -> RelationTypeDef:
        """Return the definition for a relation type.

        Raises:
            UnknownRelationTypeError: If the type is not in the schema
        """
        name = _coerce_type(relation_type)
        definition = self._defs.get(name)
        if definition is None:
            raise UnknownRelationTypeError(name.value)
        return definition

    def definitions(self) -> List[RelationTypeDef]:
        return list(self._defs.values())

    def group_of(self, relation_type: RelationType | str) -> Optional[str]:
        return self.get(relation_type).cycle_group

    def types_in_group(self, group: str) -> List[RelationType]:
        return [d.name for d in self._defs.values() if d.cycle_group == group]

    def groups(self) -> List[str]:
        seen: List[str] = []
        for d in self._defs.values():
            if d.cycle_group and d.cycle_group not in seen:
                seen.append(d.cycle_group)
        return seen

    def _replace(self, relation_type: RelationType | str, **changes: Any) -> "RelationSchema":
        current = self.get(relation_type)
        updated = current.model_copy(update=changes)
        defs = [updated if d.name == current.name else d for d in self._defs.values()]
        return RelationSchema(defs, kinds=self.kinds)

    def with_allowed_kinds(
        self,
        relation_type: RelationType | str,
        from_kinds: Optional[Iterable[WorkItemKind | str]] = None,
        to_kinds: Optional[Iterable[WorkItemKind | str]] = None,
    ) -> "RelationSchema":
        """Return a copy with the endpoint kinds of one type replaced."""
        changes: Dict[str, Any] = {}
        if from_kinds is not None:
            changes["from_kinds"] = _coerce_kinds(from_kinds)
        if to_kinds is not None:
            changes["to_kinds"] = _coerce_kinds(to_kinds)
        return self._replace(relation_type, **changes)

    def with_cycle_group(
        self,
        relation_type: RelationType | str,
        group: Optional[str],
        reverse_in_group: Optional[bool] = None,
    ) -> "RelationSchema":
        """Return a copy with one type moved to another cycle group (None disables)."""
        changes: Dict[str, Any] = {"cycle_group": group}
        if reverse_in_group is not None:
            changes["reverse_in_group"] = reverse_in_group
        return self._replace(relation_type, **changes)
