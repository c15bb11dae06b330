"""
causal_atlas/graph/builder.py: Build a GraphStore from tabular data.

Two CSV tables describe an organization:

    vertices.csv   id, kind, <attribute columns...>
                   id is '<collection>/<key>' (e.g. 'initiatives/fun-fridays').
                   kind is optional when the collection already names it.
                   One wide table serves every kind: blank cells are ignored,
                   so each row only carries the columns its kind defines.
                   List attributes (participants, affected_employees,
                   measured_by) are ';'-separated.

    edges.csv      type, from, to, strength[, link_type][, evidence]
                   evidence is ';'-separated.

Rows missing a required field (id, from, to, type) are skipped with a warning.
Rows that are present but invalid (unknown kind, strength outside [0, 1],
dangling endpoint, out-of-range attribute) raise: bad data is not silently
dropped.

Loading is row by row; a failure part-way leaves earlier rows in the store.
"""

import logging
from typing import Any, Iterable, Optional

import pandas as pd

from causal_atlas.config import DEFAULT_CONFIG, CausalAtlasConfig
from causal_atlas.exceptions import ValidationError
from causal_atlas.graph.model import VertexKind
from causal_atlas.graph.store import GraphStore

logger = logging.getLogger(__name__)

LIST_ATTRIBUTES = frozenset({"participants", "affected_employees", "measured_by"})


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(";") if item.strip()]


def _clean_row(row: dict[str, Any]) -> dict[str, Any]:
    """Drop blank cells and strip whitespace from string cells."""
    cleaned: dict[str, Any] = {}
    for column, value in row.items():
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        cleaned[str(column).strip()] = value
    return cleaned


def load_vertices(store: GraphStore, records: Iterable[dict[str, Any]]) -> int:
    """
    Add vertex records to `store`. Returns the number of vertices added.

    Raises:
        ValidationError: Unknown kind, kind/collection mismatch, duplicate id
                         or invalid attributes.
    """
    added = 0
    for row in records:
        row = _clean_row(row)
        vertex_id = row.pop("id", None)
        kind_name = row.pop("kind", None)
        if not vertex_id:
            logger.warning("Skipping vertex row with empty id: %s", row)
            continue

        kind = VertexKind.from_id(vertex_id)
        if kind_name is not None and VertexKind.parse(kind_name) is not kind:
            raise ValidationError(
                f"Vertex '{vertex_id}' is declared as {kind_name} but its id names {kind.value}."
            )

        attributes = {
            name: _split_list(value) if name in LIST_ATTRIBUTES and isinstance(value, str) else value
            for name, value in row.items()
        }
        store.add_vertex(kind, attributes, key=vertex_id.partition("/")[2])
        added += 1

    logger.info("Added %d vertices.", added)
    return added


def load_edges(store: GraphStore, records: Iterable[dict[str, Any]]) -> int:
    """
    Add edge records to `store`. Returns the number of edges added.

    Raises:
        ValidationError:        Unknown edge type, bad strength or link type.
        DanglingReferenceError: 'from' or 'to' is not a loaded vertex.
    """
    added = 0
    for row in records:
        row = _clean_row(row)
        edge_type = row.get("type")
        source = row.get("from")
        target = row.get("to")
        if not edge_type or not source or not target:
            logger.warning("Skipping edge row with missing type/from/to: %s", row)
            continue

        raw_strength = row.get("strength")
        strength = pd.to_numeric(raw_strength, errors="coerce") if raw_strength is not None else None
        if strength is None or pd.isna(strength):
            raise ValidationError(
                f"Edge {source} → {target} has a missing or non-numeric strength "
                f"({row.get('strength')!r})."
            )

        evidence = row.get("evidence", "")
        store.add_edge(
            edge_type,
            source,
            target,
            float(strength),
            evidence=_split_list(evidence) if isinstance(evidence, str) else evidence,
            link_type=row.get("link_type", "direct"),
        )
        added += 1

    logger.info("Added %d edges.", added)
    return added


def build_store_from_records(
    vertices: Iterable[dict[str, Any]],
    edges: Iterable[dict[str, Any]] = (),
    config: CausalAtlasConfig = DEFAULT_CONFIG,
    store: Optional[GraphStore] = None,
) -> GraphStore:
    """Build (or extend) a GraphStore from in-memory vertex and edge records."""
    store = store if store is not None else GraphStore(config)
    load_vertices(store, vertices)
    load_edges(store, edges)
    return store


def build_store_from_csv(
    vertices_path: str,
    edges_path: Optional[str] = None,
    config: CausalAtlasConfig = DEFAULT_CONFIG,
) -> GraphStore:
    """
    Build a GraphStore from a vertex CSV and an optional edge CSV.

    Every cell is read as text; numeric and timestamp attributes are coerced
    by the attribute models.

    Args:
        vertices_path: Path to the vertex table.
        edges_path:    Path to the edge table (None: vertices only).
        config:        CausalAtlasConfig for the new store.

    Returns:
        Populated GraphStore.
    """
    logger.info("Loading vertices from: %s", vertices_path)
    df_vertices = pd.read_csv(vertices_path, dtype=str, keep_default_na=False)
    df_edges = None
    if edges_path:
        logger.info("Loading edges from: %s", edges_path)
        df_edges = pd.read_csv(edges_path, dtype=str, keep_default_na=False)

    store = build_store_from_records(
        df_vertices.to_dict(orient="records"),
        df_edges.to_dict(orient="records") if df_edges is not None else (),
        config=config,
    )

    logger.info(
        "Graph construction complete: %d vertices, %d edges.",
        len(store),
        store.number_of_edges(),
    )
    return store
