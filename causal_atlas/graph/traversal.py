"""
causal_atlas/graph/traversal.py: Depth-bounded traversal and causal path search.

Three queries, all safe on cyclic graphs:

    traverse()              BFS reachability within a hop window. Each vertex
                            is reported once (first discovery, i.e. at its
                            shortest hop distance), so cycles cannot loop.
    find_paths()            All simple paths start → target up to max_depth
                            edges. A vertex never repeats within one path;
                            the visited set belongs to the path being built,
                            not to the whole search.
    causal_neighbourhood()  Vertices and edges within a radius, ignoring
                            edge direction (the graph around one initiative).

Path strength is the product of edge strengths along the path: every hop
independently attenuates confidence, so A → B (0.9) → C (0.5) has strength
0.45, never 1.4 or 0.5.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

import networkx as nx
import numpy as np

from causal_atlas.config import DEFAULT_CONFIG, CausalAtlasConfig
from causal_atlas.exceptions import ValidationError
from causal_atlas.graph.model import (
    CAUSAL_GRAPH_EDGES,
    Direction,
    Edge,
    EdgeType,
    Vertex,
    VertexKind,
)
from causal_atlas.graph.store import GraphView, _edge_type_filter

logger = logging.getLogger(__name__)

EdgeTypes = Optional[Iterable[Union[str, EdgeType]]]


@dataclass
class PathStep:
    """One vertex on a causal path."""

    node: str
    type: str
    label: str


@dataclass
class CausalPath:
    """
    A simple path from `source` to `target`.

    Fields:
        source:         Start vertex id.
        target:         End vertex id.
        path:           PathStep per vertex, start first.
        edges:          Edge ids along the path, in order.
        total_strength: Product of edge strengths.
        length:         Number of vertices on the path (edges + 1).
    """

    source: str
    target: str
    path: list[PathStep] = field(default_factory=list)
    edges: list[str] = field(default_factory=list)
    total_strength: float = 0.0
    length: int = 0


@dataclass
class Neighbourhood:
    """Vertices (start first) and edges around a vertex."""

    center: str
    vertices: list[Vertex]
    edges: list[Edge]


def _check_depth(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{name} must be a non-negative integer, got {value!r}.")
    return value


def traverse(
    view: GraphView,
    start: str,
    max_depth: int,
    direction: "str | Direction" = Direction.OUTBOUND,
    edge_types: EdgeTypes = None,
    min_depth: int = 1,
    outcome_types: Optional[Iterable[str]] = None,
    kinds: Optional[Iterable["str | VertexKind"]] = None,
) -> list[Vertex]:
    """
    Distinct vertices reachable from `start` within [min_depth, max_depth] hops.

    Algorithm (BFS, O(V + E) within the hop bound):
        1. Expand layer by layer from `start` along edges of the allowed
           types in the given direction, never re-entering a vertex already
           discovered. Each vertex gets its shortest hop distance.
        2. Report vertices whose distance lies in the window, in discovery
           order, after applying the result filters.

    Args:
        view:          GraphStore or snapshot.
        start:         Start vertex id. It is never part of the result.
        max_depth:     Maximum hop count (0 returns nothing).
        direction:     'outbound', 'inbound' or 'any' / 'either'.
        edge_types:    Edge types that may be followed (default: all).
        min_depth:     Minimum hop count for a vertex to be reported.
        outcome_types: If given, only Outcome vertices whose `type` is in this
                       set are reported. Expansion is not restricted.
        kinds:         If given, only vertices of these kinds are reported.

    Returns:
        List of Vertex, deduplicated by id. Empty if nothing qualifies.

    Raises:
        NotFoundError: `start` is not in the graph.
    """
    view.require_vertex(start)
    max_depth = _check_depth("max_depth", max_depth)
    min_depth = _check_depth("min_depth", min_depth)
    direction = Direction.parse(direction)

    wanted_outcomes = frozenset(outcome_types) if outcome_types is not None else None
    wanted_kinds = (
        frozenset(VertexKind.parse(k) for k in kinds) if kinds is not None else None
    )
    if wanted_outcomes is not None:
        wanted_kinds = frozenset({VertexKind.OUTCOME}) & (wanted_kinds or frozenset(VertexKind))

    depth_of: dict[str, int] = {start: 0}
    order: list[Vertex] = []
    queue: deque[tuple[str, int]] = deque([(start, 0)])

    while queue:
        vertex_id, depth = queue.popleft()
        if depth >= max_depth:
            continue
        for _, neighbour in view.neighbors(vertex_id, direction, edge_types):
            if neighbour.id in depth_of:
                continue
            depth_of[neighbour.id] = depth + 1
            order.append(neighbour)
            queue.append((neighbour.id, depth + 1))

    results = [
        v for v in order
        if min_depth <= depth_of[v.id] <= max_depth
        and (wanted_kinds is None or v.kind in wanted_kinds)
        and (wanted_outcomes is None or v.get("type") in wanted_outcomes)
    ]

    logger.debug(
        "traverse(%s, %s, depth %d..%d): %d vertices discovered, %d reported.",
        start, direction.value, min_depth, max_depth, len(order), len(results),
    )
    return results


def find_paths(
    view: GraphView,
    start: str,
    target: str,
    max_depth: Optional[int] = None,
    edge_types: EdgeTypes = (EdgeType.CAUSES,),
    config: CausalAtlasConfig = DEFAULT_CONFIG,
) -> list[CausalPath]:
    """
    Enumerate all simple outbound paths from `start` to `target`.

    Uses NetworkX's all_simple_edge_paths() on an edge-type-filtered view of
    the multigraph, so parallel edges produce distinct paths and a vertex is
    never repeated within one path. The cutoff bounds the search on cyclic
    graphs.

    Args:
        view:       GraphStore or snapshot.
        start:      Start vertex id.
        target:     Target vertex id.
        max_depth:  Maximum number of edges per path
                    (default config.path_max_depth).
        edge_types: Edge type or types to follow (default: 'causes' only;
                    None follows every causal edge type).
        config:     CausalAtlasConfig.

    Returns:
        List of CausalPath. Empty when no path exists within the bound, or
        when start == target.

    Raises:
        NotFoundError: `start` or `target` is not in the graph.
    """
    view.require_vertex(start)
    view.require_vertex(target)
    if max_depth is None:
        max_depth = config.path_max_depth
    max_depth = _check_depth("max_depth", max_depth)
    if start == target or max_depth == 0:
        return []

    allowed = _edge_type_filter(edge_types)
    if allowed is None:
        allowed = CAUSAL_GRAPH_EDGES
    G = view.graph
    G_typed = nx.subgraph_view(
        G, filter_edge=lambda u, v, k: G.edges[u, v, k]["edge"].type in allowed
    )

    paths: list[CausalPath] = []
    for edge_path in nx.all_simple_edge_paths(G_typed, start, target, cutoff=max_depth):
        edges = [G.edges[u, v, k]["edge"] for u, v, k in edge_path]
        vertex_ids = [start] + [e.target for e in edges]
        steps = []
        for vid in vertex_ids:
            vertex = view.get_vertex(vid)
            steps.append(PathStep(node=vid, type=vertex.kind.collection, label=vertex.label))
        paths.append(
            CausalPath(
                source=start,
                target=target,
                path=steps,
                edges=[e.id for e in edges],
                total_strength=float(np.prod([e.strength for e in edges])),
                length=len(vertex_ids),
            )
        )

    logger.debug(
        "find_paths(%s → %s, max_depth=%d): %d paths.", start, target, max_depth, len(paths)
    )
    return paths


def causal_neighbourhood(
    view: GraphView,
    start: str,
    max_depth: Optional[int] = None,
    edge_types: EdgeTypes = None,
    config: CausalAtlasConfig = DEFAULT_CONFIG,
) -> Neighbourhood:
    """
    Undirected neighbourhood of `start` over the causal_graph edge set.

    Every edge incident to a vertex closer than `max_depth` hops is included,
    along with the vertex on its far side.

    Raises:
        NotFoundError: `start` is not in the graph.
    """
    center = view.require_vertex(start)
    if max_depth is None:
        max_depth = config.neighbourhood_max_depth
    max_depth = _check_depth("max_depth", max_depth)
    if edge_types is None:
        edge_types = CAUSAL_GRAPH_EDGES

    seen: dict[str, Vertex] = {start: center}
    edges: dict[str, Edge] = {}
    frontier = [start]
    for _ in range(max_depth):
        next_frontier = []
        for vertex_id in frontier:
            for edge, neighbour in view.neighbors(vertex_id, Direction.ANY, edge_types):
                edges.setdefault(edge.id, edge)
                if neighbour.id not in seen:
                    seen[neighbour.id] = neighbour
                    next_frontier.append(neighbour.id)
        frontier = next_frontier

    return Neighbourhood(
        center=start,
        vertices=list(seen.values()),
        edges=sorted(edges.values(), key=lambda e: e.seq),
    )
