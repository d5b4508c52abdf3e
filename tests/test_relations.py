from worktrack_core.models import Relation, RelationType
from worktrack_core.relations import RelationStore

from conftest import rel


def test_add_edge_is_idempotent():
    store = RelationStore()
    assert store.add_edge(rel("A", "blocks", "B")) is True
    assert store.add_edge(rel("A", "blocks", "B")) is False
    assert len(store) == 1


def test_same_pair_different_types_are_distinct_edges():
    store = RelationStore([rel("A", "blocks", "B"), rel("A", "relates_to", "B")])
    assert len(store) == 2
    assert [r.type for r in store.edges_from("A")] == [RelationType.BLOCKS, RelationType.RELATES_TO]


def test_remove_edge_only_touches_matching_edge():
    store = RelationStore([rel("A", "blocks", "B"), rel("B", "blocks", "C"), rel("A", "relates_to", "B")])

    assert store.remove_edge("A", "B", "blocks") is True
    assert store.edges() == [rel("B", "blocks", "C"), rel("A", "relates_to", "B")]


def test_remove_missing_edge_is_noop():
    store = RelationStore([rel("A", "blocks", "B")])
    before = store.edges()

    assert store.remove_edge("B", "A", RelationType.BLOCKS) is False
    assert store.remove_edge("X", "Y", "relates_to") is False
    assert store.edges() == before


def test_remove_item_cascades_both_directions():
    store = RelationStore(
        [
            rel("A", "parent_of", "B"),
            rel("C", "blocks", "A"),
            rel("B", "blocks", "C"),
        ]
    )
    removed = store.remove_item("A")

    assert set(r.key for r in removed) == {
        ("A", "B", RelationType.PARENT_OF),
        ("C", "A", RelationType.BLOCKS),
    }
    assert store.edges() == [rel("B", "blocks", "C")]


def test_membership_and_lookup_by_endpoint():
    store = RelationStore([rel("A", "blocks", "B"), rel("C", "blocks", "B")])

    assert rel("A", "blocks", "B") in store
    assert rel("B", "blocks", "A") not in store
    assert "A" not in store
    assert [r.source for r in store.edges_to("B")] == ["A", "C"]
    assert store.edges_of_types([RelationType.PARENT_OF]) == []


def test_relation_serializes_with_from_to_keys():
    relation = Relation.model_validate({"from": "TASK-001", "to": "BUG-002", "type": "blocks"})

    assert relation.source == "TASK-001"
    assert relation.target == "BUG-002"
    assert relation.to_dict() == {"from": "TASK-001", "to": "BUG-002", "type": "blocks"}
    assert str(relation) == "TASK-001 blocks BUG-002"
