"""Pydantic models for work items and relations."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WorkItemKind(str, Enum):
    """Work item kind."""

    TASK = "task"
    BUG = "bug"
    EPIC = "epic"
    STORY = "story"


class WorkItemState(str, Enum):
    """Work item state. Any state may follow any other."""

    NEW = "new"
    ACTIVE = "active"
    CLOSED = "closed"


class Priority(str, Enum):
    """Work item priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]


PRIORITY_RANK: Dict[Priority, int] = {
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
    Priority.CRITICAL: 4,
}


class RelationType(str, Enum):
    """Directed relation type between two work items."""

    PARENT_OF = "parent_of"
    CHILD_OF = "child_of"
    BLOCKS = "blocks"
    BLOCKED_BY = "blocked_by"
    DUPLICATES = "duplicates"
    DUPLICATE_OF = "duplicate_of"
    RELATES_TO = "relates_to"

    @property
    def inverse(self) -> "RelationType":
        return INVERSE_RELATIONS[self]


INVERSE_RELATIONS: Dict[RelationType, RelationType] = {
    RelationType.PARENT_OF: RelationType.CHILD_OF,
    RelationType.CHILD_OF: RelationType.PARENT_OF,
    RelationType.BLOCKS: RelationType.BLOCKED_BY,
    RelationType.BLOCKED_BY: RelationType.BLOCKS,
    RelationType.DUPLICATES: RelationType.DUPLICATE_OF,
    RelationType.DUPLICATE_OF: RelationType.DUPLICATES,
    RelationType.RELATES_TO: RelationType.RELATES_TO,
}


class WorkItem(BaseModel):
    """A trackable unit of work as supplied by the storage collaborator."""

    id: str = Field(..., description="Display ID (e.g., TASK-001)")
    kind: WorkItemKind
    title: str
    description: Optional[str] = None
    state: WorkItemState = WorkItemState.NEW
    priority: Priority = Priority.MEDIUM
    assignee: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    created_at: str = Field(..., description="ISO 8601 timestamp")
    updated_at: str = Field(..., description="ISO 8601 timestamp")
    closed_at: Optional[str] = None

    model_config = ConfigDict(use_enum_values=False)


class Relation(BaseModel):
    """Directed, typed edge between two work item IDs.

    Serialized with the keys ``from``/``to``/``type``; constructed in Python
    with ``source``/``target``.
    """

    source: str = Field(..., alias="from")
    target: str = Field(..., alias="to")
    type: RelationType

    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=False)

    @property
    def key(self) -> tuple[str, str, RelationType]:
        return (self.source, self.target, self.type)

    def to_dict(self) -> Dict[str, str]:
        return {"from": self.source, "to": self.target, "type": self.type.value}

    def __str__(self) -> str:
        return f"{self.source} {self.type.value} {self.target}"


class CreateWorkItemRequest(BaseModel):
    """Fields accepted when creating a work item."""

    title: str
    kind: WorkItemKind
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    assignee: Optional[str] = None
    labels: List[str] = Field(default_factory=list)


class UpdateWorkItemRequest(BaseModel):
    """Partial update; ``None`` leaves a field unchanged."""

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    assignee: Optional[str] = None
    labels: Optional[List[str]] = None
