"""
causal_atlas/tests/conftest.py: Shared pytest fixtures.

The `org_store` fixture builds a small, fully deterministic organization:

    departments/eng   "Engineering"
    employees/e1      wellness 80, engagement 75   ─participates_in─► I1
    employees/e2      wellness 70, engagement 65
    employees/e3      no scores

    initiatives/i1    "Mandatory Fun Fridays", completed
        ─causes (0.5)─►    outcomes/o1  intended
        ─causes (0.9)─►    outcomes/o2  unintended, severity 8
        ─measures (0.7)─►  metrics/m1   value 50, target 90
    initiatives/i2    "Open Office Plan", abandoned (no edges)

    metrics/m2        value 95, target 90   ─measures─► employees/e1
    metrics/m3        value 10, no target (isolated)

Expected values (used throughout the metric tests):
    gap(i1)       = 1×10 + (40/90)×50 + 0 ≈ 32.22  → moderate
    gap(i2)       = 25 (no intended outcome)
    synergy(eng)  = 75×0.3 + 70×0.3 + (1/3)×40 ≈ 56.83 → SILOED
    theater       = [m3]
"""

import pandas as pd
import pytest

from causal_atlas.graph.store import GraphStore


def build_org_store() -> GraphStore:
    store = GraphStore()

    store.add_vertex(
        "Department", {"name": "Engineering", "employee_count": 3}, key="eng"
    )
    store.add_vertex(
        "Employee",
        {"employee_id": "E-001", "name": "Ada", "department": "Engineering",
         "wellness_score": 80, "engagement_level": 75},
        key="e1",
    )
    store.add_vertex(
        "Employee",
        {"employee_id": "E-002", "name": "Grace", "department": "Engineering",
         "wellness_score": 70, "engagement_level": 65},
        key="e2",
    )
    store.add_vertex(
        "Employee",
        {"employee_id": "E-003", "name": "Linus", "department": "Engineering"},
        key="e3",
    )

    store.add_vertex(
        "Initiative",
        {"name": "Mandatory Fun Fridays", "department": "Engineering",
         "intended_outcome": "Higher morale", "status": "completed",
         "start_date": "2024-01-01T00:00:00Z", "participants": ["E-001"]},
        key="i1",
    )
    store.add_vertex(
        "Initiative",
        {"name": "Open Office Plan", "department": "Engineering",
         "intended_outcome": "More collaboration", "status": "abandoned"},
        key="i2",
    )

    store.add_vertex(
        "Outcome",
        {"description": "Morale improved", "type": "intended", "severity": 2,
         "timestamp": "2024-02-01T00:00:00Z"},
        key="o1",
    )
    store.add_vertex(
        "Outcome",
        {"description": "Weekend resentment", "type": "unintended", "severity": 8,
         "timestamp": "2024-02-15T00:00:00Z"},
        key="o2",
    )

    store.add_vertex(
        "Metric",
        {"name": "Morale Index", "type": "wellness", "value": 50, "target": 90},
        key="m1",
    )
    store.add_vertex(
        "Metric",
        {"name": "Engagement Survey", "type": "engagement", "value": 95, "target": 90},
        key="m2",
    )
    store.add_vertex(
        "Metric",
        {"name": "Badge Swipes", "type": "productivity", "value": 10},
        key="m3",
    )

    store.add_edge("causes", "initiatives/i1", "outcomes/o1", 0.5)
    store.add_edge("causes", "initiatives/i1", "outcomes/o2", 0.9)
    store.add_edge("measures", "initiatives/i1", "metrics/m1", 0.7)
    store.add_edge("measures", "metrics/m2", "employees/e1", 0.6)
    store.add_edge("participates_in", "employees/e1", "initiatives/i1", 1.0)
    store.add_edge("belongs_to", "employees/e1", "departments/eng", 1.0)
    store.add_edge("belongs_to", "employees/e2", "departments/eng", 1.0)
    return store


# The same organization as flat CSV rows. Every cell is text, as read back
# from disk; blank cells are omitted.
ORG_VERTEX_ROWS = [
    {"id": "departments/eng", "kind": "Department", "name": "Engineering",
     "employee_count": "3"},
    {"id": "employees/e1", "kind": "Employee", "employee_id": "E-001", "name": "Ada",
     "department": "Engineering", "wellness_score": "80", "engagement_level": "75"},
    {"id": "employees/e2", "kind": "Employee", "employee_id": "E-002", "name": "Grace",
     "department": "Engineering", "wellness_score": "70", "engagement_level": "65"},
    {"id": "employees/e3", "kind": "Employee", "employee_id": "E-003", "name": "Linus",
     "department": "Engineering"},
    {"id": "initiatives/i1", "kind": "Initiative", "name": "Mandatory Fun Fridays",
     "department": "Engineering", "intended_outcome": "Higher morale",
     "status": "completed", "participants": "E-001; E-002"},
    {"id": "initiatives/i2", "kind": "Initiative", "name": "Open Office Plan",
     "department": "Engineering", "intended_outcome": "More collaboration",
     "status": "abandoned"},
    {"id": "outcomes/o1", "kind": "Outcome", "description": "Morale improved",
     "type": "intended", "severity": "2"},
    {"id": "outcomes/o2", "kind": "Outcome", "description": "Weekend resentment",
     "type": "unintended", "severity": "8"},
    {"id": "metrics/m1", "kind": "Metric", "name": "Morale Index", "type": "wellness",
     "value": "50", "target": "90"},
    {"id": "metrics/m2", "kind": "Metric", "name": "Engagement Survey", "type": "engagement",
     "value": "95", "target": "90"},
    {"id": "metrics/m3", "kind": "Metric", "name": "Badge Swipes", "type": "productivity",
     "value": "10"},
]

ORG_EDGE_ROWS = [
    {"type": "causes", "from": "initiatives/i1", "to": "outcomes/o1", "strength": "0.5",
     "evidence": "pulse-survey-q1"},
    {"type": "causes", "from": "initiatives/i1", "to": "outcomes/o2", "strength": "0.9",
     "link_type": "indirect", "evidence": "exit-interviews; slack-sentiment"},
    {"type": "measures", "from": "initiatives/i1", "to": "metrics/m1", "strength": "0.7"},
    {"type": "measures", "from": "metrics/m2", "to": "employees/e1", "strength": "0.6"},
    {"type": "participates_in", "from": "employees/e1", "to": "initiatives/i1",
     "strength": "1.0"},
    {"type": "belongs_to", "from": "employees/e1", "to": "departments/eng", "strength": "1.0"},
    {"type": "belongs_to", "from": "employees/e2", "to": "departments/eng", "strength": "1.0"},
]


@pytest.fixture
def org_store() -> GraphStore:
    """Fresh copy of the deterministic organization graph (function-scoped)."""
    return build_org_store()


@pytest.fixture
def empty_store() -> GraphStore:
    return GraphStore()


@pytest.fixture
def org_csv(tmp_path) -> tuple[str, str]:
    """(vertices.csv, edges.csv) paths holding the reference organization."""
    vertices_path = tmp_path / "vertices.csv"
    edges_path = tmp_path / "edges.csv"
    pd.DataFrame(ORG_VERTEX_ROWS).to_csv(vertices_path, index=False)
    pd.DataFrame(ORG_EDGE_ROWS).to_csv(edges_path, index=False)
    return str(vertices_path), str(edges_path)
