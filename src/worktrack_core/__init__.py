"""worktrack core - relation graph and query engine for work items."""

from .__version__ import __version__, __version_info__

from .models import (
    CreateWorkItemRequest,
    Priority,
    Relation,
    RelationType,
    UpdateWorkItemRequest,
    WorkItem,
    WorkItemKind,
    WorkItemState,
)
from .schema import RelationSchema, RelationTypeDef, SchemaAttribute
from .relations import RelationStore
from .graph import detect_cycles, find_cycle, validate_relation
from .navigator import Direction, GraphSlice, build_graph_slice, get_related_items
from .query import QUERY_FIELDS, Conjunction, FieldEquals, MatchAll, parse_query
from .evaluator import evaluate, execute_query, order_work_items
from .config import ConfigLoader, WorkConfig, WorkspaceContext
from .errors import (
    ConfigError,
    CyclicRelationError,
    InvalidRelationKindError,
    ParseError,
    QuerySyntaxError,
    RelationError,
    UnknownRelationTypeError,
    WorkError,
    WorkItemNotFoundError,
    WriteError,
)

__all__ = [
    # Version
    "__version__",
    "__version_info__",
    # Models
    "CreateWorkItemRequest",
    "Priority",
    "Relation",
    "RelationType",
    "UpdateWorkItemRequest",
    "WorkItem",
    "WorkItemKind",
    "WorkItemState",
    # Schema
    "RelationSchema",
    "RelationTypeDef",
    "SchemaAttribute",
    # Graph
    "RelationStore",
    "detect_cycles",
    "find_cycle",
    "validate_relation",
    "Direction",
    "GraphSlice",
    "build_graph_slice",
    "get_related_items",
    # Query
    "QUERY_FIELDS",
    "Conjunction",
    "FieldEquals",
    "MatchAll",
    "parse_query",
    "evaluate",
    "execute_query",
    "order_work_items",
    # Config
    "ConfigLoader",
    "WorkConfig",
    "WorkspaceContext",
    # Errors
    "ConfigError",
    "CyclicRelationError",
    "InvalidRelationKindError",
    "ParseError",
    "QuerySyntaxError",
    "RelationError",
    "UnknownRelationTypeError",
    "WorkError",
    "WorkItemNotFoundError",
    "WriteError",
]
