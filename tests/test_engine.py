import pytest

from worktrack_core.errors import (
    ConfigError,
    CyclicRelationError,
    InvalidRelationKindError,
    QuerySyntaxError,
    UnknownRelationTypeError,
    WorkItemNotFoundError,
)
from worktrack_core.models import (
    CreateWorkItemRequest,
    Priority,
    RelationType,
    UpdateWorkItemRequest,
    WorkItemKind,
    WorkItemState,
)
from worktrack_core.navigator import Direction
from worktrack_core.schema import RelationSchema
from worktrack_ops.engine import WorkEngine
from worktrack_ops.storage import InMemoryStorage

from conftest import TIMESTAMP, make_engine, make_item, rel


@pytest.fixture
def engine():
    items = [
        make_item("EPIC-001", WorkItemKind.EPIC),
        make_item("STORY-001", WorkItemKind.STORY),
        make_item("TASK-001", WorkItemKind.TASK, priority=Priority.HIGH, labels=["ui"]),
        make_item("TASK-002", WorkItemKind.TASK, state=WorkItemState.ACTIVE),
        make_item("BUG-001", WorkItemKind.BUG, priority=Priority.CRITICAL),
    ]
    return make_engine(items)


def test_create_relation_twice_yields_one_edge(engine):
    assert engine.create_relation(rel("TASK-001", "blocks", "TASK-002")) is True
    assert engine.create_relation(rel("TASK-001", "blocks", "TASK-002")) is False

    assert engine.storage.load_relations() == [rel("TASK-001", "blocks", "TASK-002")]
    assert engine.storage.relation_saves == 1


def test_delete_relation_is_idempotent(engine):
    engine.create_relation(rel("TASK-001", "blocks", "TASK-002"))
    engine.create_relation(rel("TASK-001", "relates_to", "BUG-001"))

    assert engine.delete_relation("TASK-001", "TASK-002", "blocks") is True
    assert engine.delete_relation("TASK-001", "TASK-002", "blocks") is False
    assert engine.delete_relation("EPIC-001", "BUG-001", RelationType.PARENT_OF) is False
    assert engine.storage.load_relations() == [rel("TASK-001", "relates_to", "BUG-001")]


def test_delete_relation_unknown_type_raises(engine):
    with pytest.raises(UnknownRelationTypeError):
        engine.delete_relation("TASK-001", "TASK-002", "depends_on")


def test_rejected_relation_is_not_persisted(engine):
    engine.create_relation(rel("EPIC-001", "parent_of", "STORY-001"))
    engine.create_relation(rel("TASK-001", "blocks", "TASK-002"))

    with pytest.raises(CyclicRelationError):
        engine.create_relation(rel("TASK-002", "blocks", "TASK-001"))
    with pytest.raises(CyclicRelationError):
        engine.create_relation(rel("TASK-001", "blocked_by", "TASK-002"))
    with pytest.raises(InvalidRelationKindError):
        engine.create_relation(rel("TASK-001", "parent_of", "BUG-001"))

    assert len(engine.storage.load_relations()) == 2
    assert engine.storage.relation_saves == 2


def test_create_relation_requires_existing_endpoints(engine):
    with pytest.raises(WorkItemNotFoundError) as exc_info:
        engine.create_relation(rel("TASK-001", "blocks", "TASK-999"))

    assert exc_info.value.item_id == "TASK-999"
    assert engine.storage.load_relations() == []


def test_custom_schema_gates_kinds():
    schema = RelationSchema.default().with_allowed_kinds("parent_of", ["epic"], ["task", "story"])
    engine = make_engine(
        [make_item("TASK-001"), make_item("TASK-002"), make_item("EPIC-001", WorkItemKind.EPIC)],
        schema=schema,
    )

    with pytest.raises(InvalidRelationKindError):
        engine.create_relation(rel("TASK-001", "parent_of", "TASK-002"))
    assert engine.create_relation(rel("EPIC-001", "parent_of", "TASK-001"))


def test_list_work_items_filters_orders_and_limits(engine):
    tasks = engine.list_work_items("kind=task")
    assert [i.id for i in tasks] == ["TASK-001", "TASK-002"]

    by_priority = engine.list_work_items(order_by="priority:desc", limit=2)
    assert [i.id for i in by_priority] == ["BUG-001", "TASK-001"]

    assert [i.id for i in engine.list_work_items("label=ui")] == ["TASK-001"]
    assert len(engine.list_work_items()) == 5


def test_list_work_items_rejects_bad_input(engine):
    with pytest.raises(QuerySyntaxError):
        engine.list_work_items("state=")
    with pytest.raises(QuerySyntaxError):
        engine.list_work_items(order_by="owner")
    with pytest.raises(ValueError):
        engine.list_work_items(limit=0)


def test_get_related_items_returns_work_items(engine):
    engine.create_relation(rel("TASK-001", "blocks", "TASK-002"))
    engine.create_relation(rel("BUG-001", "relates_to", "TASK-001"))

    assert [i.id for i in engine.get_related_items("TASK-001")] == ["TASK-002", "BUG-001"]
    assert [i.id for i in engine.get_related_items("TASK-001", "relates_to")] == ["BUG-001"]
    with pytest.raises(WorkItemNotFoundError):
        engine.get_related_items("TASK-404")


def test_build_graph_slice_through_engine(engine):
    engine.create_relation(rel("EPIC-001", "parent_of", "STORY-001"))
    engine.create_relation(rel("STORY-001", "parent_of", "TASK-001"))
    engine.create_relation(rel("TASK-001", "blocks", "TASK-002"))

    graph_slice = engine.build_graph_slice("EPIC-001", Direction.OUTGOING, relation_types=["parent_of"])

    assert graph_slice.nodes == {"EPIC-001": 0, "STORY-001": 1, "TASK-001": 2}
    assert engine.build_graph_slice("TASK-002", "incoming", max_depth=1).ids() == ["TASK-002", "TASK-001"]


def test_create_and_update_work_items():
    engine = make_engine()

    first = engine.create_work_item(CreateWorkItemRequest(title="Write docs", kind=WorkItemKind.TASK))
    second = engine.create_work_item(
        CreateWorkItemRequest(title="Crash", kind=WorkItemKind.BUG, priority=Priority.HIGH, labels=["p1"])
    )

    assert (first.id, second.id) == ("TASK-001", "BUG-001")
    assert first.state == WorkItemState.NEW
    assert first.created_at == TIMESTAMP

    updated = engine.update_work_item("BUG-001", UpdateWorkItemRequest(assignee="alice"))
    assert updated.assignee == "alice"
    assert updated.priority == Priority.HIGH
    assert updated.labels == ["p1"]
    assert engine.get_work_item("BUG-001") == updated


def test_create_work_item_rejects_disabled_kind():
    engine = make_engine(schema=RelationSchema.from_overrides({}, kinds=["task"]))

    with pytest.raises(ConfigError):
        engine.create_work_item(CreateWorkItemRequest(title="Big", kind=WorkItemKind.EPIC))


def test_change_state_tracks_closed_at(engine):
    closed = engine.change_state("TASK-001", WorkItemState.CLOSED)
    assert closed.state == WorkItemState.CLOSED
    assert closed.closed_at == TIMESTAMP

    reopened = engine.change_state("TASK-001", "new")
    assert reopened.state == WorkItemState.NEW
    assert engine.list_work_items("state=new AND kind=task")[0].id == "TASK-001"


def test_missing_item_raises(engine):
    with pytest.raises(WorkItemNotFoundError):
        engine.get_work_item("TASK-404")
    with pytest.raises(WorkItemNotFoundError):
        engine.change_state("TASK-404", WorkItemState.ACTIVE)
    with pytest.raises(WorkItemNotFoundError):
        engine.delete_work_item("TASK-404")


def test_delete_work_item_cascades_relations(engine):
    engine.create_relation(rel("TASK-001", "blocks", "TASK-002"))
    engine.create_relation(rel("BUG-001", "relates_to", "TASK-001"))
    engine.create_relation(rel("BUG-001", "blocks", "TASK-002"))

    removed = engine.delete_work_item("TASK-001")

    assert len(removed) == 2
    assert engine.storage.load_relations() == [rel("BUG-001", "blocks", "TASK-002")]
    assert [i.id for i in engine.list_work_items("kind=task")] == ["TASK-002"]


def test_check_graph_reports_damage():
    engine = make_engine(
        [make_item("A"), make_item("B")],
        [rel("A", "blocks", "B"), rel("B", "blocks", "A"), rel("A", "relates_to", "GONE")],
    )

    report = engine.check_graph()

    assert not report.ok
    assert report.relations == 3
    assert len(report.cycles) == 1
    assert report.dangling == [rel("A", "relates_to", "GONE")]
    assert make_engine([make_item("A")]).check_graph().ok


def test_schema_introspection(engine):
    assert engine.get_kinds() == list(WorkItemKind)
    assert {d.name for d in engine.get_relation_types()} == set(RelationType)
    assert [a.name for a in engine.get_attributes()] == ["title", "description", "priority", "assignee", "labels"]


@pytest.mark.parametrize("field_name", ["assignee", "Description"])
def test_unset_field_clears_optional_values(field_name):
    engine = make_engine([make_item("TASK-001", assignee="bob", description="Old notes")])

    cleared = engine.unset_field("TASK-001", field_name)

    assert getattr(cleared, field_name.lower()) is None
    assert engine.get_work_item("TASK-001") == cleared
    assert cleared.title == "Item TASK-001"


def test_update_with_none_keeps_existing_values():
    engine = make_engine([make_item("TASK-001", assignee="bob")])

    updated = engine.update_work_item("TASK-001", UpdateWorkItemRequest(assignee=None, title="New"))

    assert updated.assignee == "bob"


@pytest.mark.parametrize("field_name", ["title", "priority", "owner"])
def test_unset_field_rejects_required_or_unknown_fields(field_name):
    engine = make_engine([make_item("TASK-001")])

    with pytest.raises(ValueError, match="Cannot unset"):
        engine.unset_field("TASK-001", field_name)


def test_delete_work_item_saves_relations_before_removing_the_item():
    calls = []

    class RecordingStorage(InMemoryStorage):
        def save_relations(self, relations):
            calls.append("save_relations")
            super().save_relations(relations)

        def delete_work_item(self, item_id):
            calls.append("delete_work_item")
            super().delete_work_item(item_id)

    storage = RecordingStorage([make_item("TASK-001"), make_item("TASK-002")], [rel("TASK-001", "blocks", "TASK-002")])
    WorkEngine(storage).delete_work_item("TASK-001")

    assert calls == ["save_relations", "delete_work_item"]
