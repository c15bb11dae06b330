"""
causal_atlas/tests/test_traversal.py: Tests for traverse, find_paths and
causal_neighbourhood.

Tests verify:
- Traversal terminates on cycles and reports each vertex once.
- The start vertex is never part of a traversal result.
- Path strength is the product of edge strengths.
- Paths never repeat a vertex and respect max_depth.
- Unknown start/target raise NotFoundError; "no path" is an empty list.
"""

import pytest

from causal_atlas.exceptions import NotFoundError, ValidationError
from causal_atlas.graph.store import GraphStore
from causal_atlas.graph.traversal import causal_neighbourhood, find_paths, traverse


# ── Helpers ───────────────────────────────────────────────────────────────────

def make_event_graph(edges: list[tuple[str, str, float]]) -> GraphStore:
    """
    Build a store of Event vertices keyed by single letters and link them
    with 'causes' edges in the given order.
    """
    store = GraphStore()
    names = []
    for u, v, _ in edges:
        for n in (u, v):
            if n not in names:
                names.append(n)
    for n in names:
        store.add_vertex("Event", {"name": n.upper()}, key=n)
    for u, v, s in edges:
        store.add_edge("causes", f"events/{u}", f"events/{v}", s)
    return store


def ids(vertices) -> list[str]:
    return [v.id for v in vertices]


# ── traverse tests ────────────────────────────────────────────────────────────

def test_traverse_terminates_on_cycle():
    """A → B → C → A must yield B and C once each, never A."""
    store = make_event_graph([("a", "b", 1.0), ("b", "c", 1.0), ("c", "a", 1.0)])
    result = traverse(store, "events/a", 10)
    assert ids(result) == ["events/b", "events/c"]


def test_traverse_deduplicates_diamond():
    """D is reachable via B and C but must be reported once."""
    store = make_event_graph(
        [("a", "b", 0.5), ("a", "c", 0.5), ("b", "d", 0.5), ("c", "d", 0.5)]
    )
    result = traverse(store, "events/a", 2)
    assert ids(result) == ["events/b", "events/c", "events/d"]


def test_traverse_respects_max_depth():
    store = make_event_graph([("a", "b", 1.0), ("b", "c", 1.0), ("c", "d", 1.0)])
    assert ids(traverse(store, "events/a", 2)) == ["events/b", "events/c"]
    assert traverse(store, "events/a", 0) == []


def test_traverse_min_depth_window():
    store = make_event_graph([("a", "b", 1.0), ("b", "c", 1.0), ("c", "d", 1.0)])
    assert ids(traverse(store, "events/a", 3, min_depth=2)) == ["events/c", "events/d"]


def test_traverse_inbound():
    store = make_event_graph([("a", "b", 1.0), ("b", "c", 1.0)])
    assert ids(traverse(store, "events/c", 5, "inbound")) == ["events/b", "events/a"]


def test_traverse_any_direction(org_store):
    """Metric m2 reaches initiative i1 through employee e1 ignoring direction."""
    result = traverse(org_store, "metrics/m2", 2, "any", kinds=["Initiative"])
    assert ids(result) == ["initiatives/i1"]


def test_traverse_outcome_filter(org_store):
    result = traverse(
        org_store, "initiatives/i1", 2, edge_types=["causes"], outcome_types={"unintended"}
    )
    assert ids(result) == ["outcomes/o2"]


def test_traverse_edge_type_filter(org_store):
    result = traverse(org_store, "initiatives/i1", 1, edge_types=["measures"])
    assert ids(result) == ["metrics/m1"]


def test_traverse_unknown_start_raises(org_store):
    with pytest.raises(NotFoundError):
        traverse(org_store, "initiatives/ghost", 2)


def test_traverse_negative_depth_rejected(org_store):
    with pytest.raises(ValidationError):
        traverse(org_store, "initiatives/i1", -1)


# ── find_paths tests ──────────────────────────────────────────────────────────

def test_path_strength_is_product():
    """A → B (0.9) → C (0.5) has strength 0.45."""
    store = make_event_graph([("a", "b", 0.9), ("b", "c", 0.5)])
    paths = find_paths(store, "events/a", "events/c")
    assert len(paths) == 1
    assert paths[0].total_strength == pytest.approx(0.45)
    assert paths[0].length == 3
    assert [step.node for step in paths[0].path] == ["events/a", "events/b", "events/c"]
    assert paths[0].path[0].type == "events"
    assert paths[0].path[1].label == "B"


def test_every_simple_path_enumerated():
    store = make_event_graph([("a", "b", 0.9), ("b", "c", 0.5), ("a", "c", 0.2)])
    paths = find_paths(store, "events/a", "events/c")
    strengths = sorted(p.total_strength for p in paths)
    assert strengths == pytest.approx([0.2, 0.45])


def test_paths_never_repeat_a_vertex():
    store = make_event_graph(
        [("a", "b", 1.0), ("b", "a", 1.0), ("b", "c", 1.0), ("c", "b", 1.0), ("c", "d", 1.0)]
    )
    paths = find_paths(store, "events/a", "events/d", max_depth=10)
    assert len(paths) == 1
    for p in paths:
        nodes = [step.node for step in p.path]
        assert len(nodes) == len(set(nodes))


def test_paths_respect_max_depth():
    store = make_event_graph([("a", "b", 1.0), ("b", "c", 1.0), ("c", "d", 1.0)])
    assert find_paths(store, "events/a", "events/d", max_depth=2) == []
    assert len(find_paths(store, "events/a", "events/d", max_depth=3)) == 1


def test_no_path_returns_empty():
    store = make_event_graph([("a", "b", 1.0), ("c", "d", 1.0)])
    assert find_paths(store, "events/a", "events/d") == []


def test_same_start_and_target_returns_empty():
    store = make_event_graph([("a", "b", 1.0), ("b", "a", 1.0)])
    assert find_paths(store, "events/a", "events/a") == []


def test_parallel_edges_give_distinct_paths():
    store = make_event_graph([("a", "b", 0.4), ("a", "b", 0.8)])
    paths = find_paths(store, "events/a", "events/b")
    assert len(paths) == 2
    assert len({tuple(p.edges) for p in paths}) == 2


def test_paths_follow_only_requested_edge_types(org_store):
    """Default edge set is 'causes'; the employee link needs participates_in."""
    assert find_paths(org_store, "employees/e1", "outcomes/o2") == []
    paths = find_paths(
        org_store, "employees/e1", "outcomes/o2",
        edge_types=["participates_in", "causes"],
    )
    assert len(paths) == 1
    assert paths[0].total_strength == pytest.approx(0.9)


def test_find_paths_accepts_single_edge_type_name(org_store):
    """A bare type name is one edge type, not a sequence of characters."""
    single = find_paths(org_store, "initiatives/i1", "outcomes/o2", edge_types="causes")
    listed = find_paths(org_store, "initiatives/i1", "outcomes/o2", edge_types=["causes"])
    assert len(single) == 1
    assert [p.edges for p in single] == [p.edges for p in listed]


def test_find_paths_single_edge_type_filters(org_store):
    assert find_paths(org_store, "employees/e1", "outcomes/o2", edge_types="participates_in") == []


def test_find_paths_none_follows_every_edge_type(org_store):
    paths = find_paths(org_store, "employees/e1", "outcomes/o2", edge_types=None)
    assert len(paths) == 1
    assert paths[0].total_strength == pytest.approx(0.9)


def test_find_paths_unknown_endpoint_raises(org_store):
    with pytest.raises(NotFoundError):
        find_paths(org_store, "initiatives/i1", "outcomes/ghost")
    with pytest.raises(NotFoundError):
        find_paths(org_store, "initiatives/ghost", "outcomes/o1")


def test_find_paths_on_snapshot(org_store):
    snap = org_store.snapshot()
    paths = find_paths(snap, "initiatives/i1", "outcomes/o2")
    assert [p.edges for p in paths] == [[org_store.edges()[1].id]]


# ── causal_neighbourhood tests ────────────────────────────────────────────────

def test_neighbourhood_radius_one(org_store):
    hood = causal_neighbourhood(org_store, "initiatives/i1", max_depth=1)
    assert ids(hood.vertices) == [
        "initiatives/i1", "outcomes/o1", "outcomes/o2", "metrics/m1", "employees/e1",
    ]
    assert len(hood.edges) == 4


def test_neighbourhood_default_radius_reaches_department(org_store):
    hood = causal_neighbourhood(org_store, "initiatives/i1")
    found = ids(hood.vertices)
    assert "departments/eng" in found
    assert "employees/e2" in found
    assert "metrics/m3" not in found
