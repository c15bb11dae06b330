"""
causal_atlas/graph/store.py: In-memory causal graph store.

Backed by a NetworkX MultiDiGraph: vertex identifiers are graph nodes, and
each edge is stored under its own key so that two vertices may be linked by
several edges of different types. The store owns every record; callers only
ever receive frozen Vertex / Edge objects.

Concurrency model:
    - Writes (add / update / remove) are serialized by a re-entrant lock and
      are all-or-nothing: every check runs before the graph is touched.
    - snapshot() returns a frozen copy of the graph. Analytics run against a
      snapshot, so a query never observes a half-applied write.

Change notification:
    Every committed write emits a ChangeEvent to subscribed listeners (see
    causal_atlas.graph.mirror). Listeners observe, they never write back.
"""

import logging
import math
import numbers
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

import networkx as nx

from causal_atlas.config import DEFAULT_CONFIG, CausalAtlasConfig
from causal_atlas.exceptions import DanglingReferenceError, NotFoundError, ValidationError
from causal_atlas.graph.mirror import ChangeEvent
from causal_atlas.graph.model import (
    EDGE_ENDPOINTS,
    Direction,
    Edge,
    EdgeType,
    LinkType,
    Vertex,
    VertexKind,
    build_attributes,
)

logger = logging.getLogger(__name__)

Listener = Callable[[ChangeEvent], None]


def _edge_type_filter(edge_types: Optional[Iterable["str | EdgeType"]]) -> Optional[frozenset[EdgeType]]:
    if edge_types is None:
        return None
    if isinstance(edge_types, (str, EdgeType)):
        edge_types = [edge_types]
    return frozenset(EdgeType.parse(t) for t in edge_types)


class GraphView:
    """
    Read-only access to a causal graph.

    Both the live GraphStore and its frozen snapshots expose this interface,
    so traversal and scoring code accept either.
    """

    def __init__(self, graph: nx.MultiDiGraph) -> None:
        self._graph = graph

    @property
    def graph(self) -> nx.MultiDiGraph:
        """The underlying NetworkX graph (frozen for snapshots)."""
        return self._graph

    def __contains__(self, vertex_id: object) -> bool:
        return vertex_id in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def number_of_edges(self) -> int:
        return self._graph.number_of_edges()

    def get_vertex(self, vertex_id: str) -> Optional[Vertex]:
        if vertex_id not in self._graph:
            return None
        return self._graph.nodes[vertex_id]["vertex"]

    def require_vertex(self, vertex_id: str, kind: Optional[VertexKind] = None) -> Vertex:
        """
        Return the vertex or raise NotFoundError.

        When `kind` is given the vertex must also be of that kind; an
        identifier resolving to a different kind counts as not found.
        """
        vertex = self.get_vertex(vertex_id)
        if vertex is None or (kind is not None and vertex.kind is not kind):
            raise NotFoundError(vertex_id, kind.value if kind is not None else None)
        return vertex

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        for _, _, key, edge in self._graph.edges(keys=True, data="edge"):
            if key == edge_id:
                return edge
        return None

    def vertices(self, kind: "Optional[str | VertexKind]" = None) -> list[Vertex]:
        """All vertices in insertion order, optionally restricted to one kind."""
        wanted = VertexKind.parse(kind) if kind is not None else None
        return [
            v for _, v in self._graph.nodes(data="vertex")
            if wanted is None or v.kind is wanted
        ]

    def edges(self, edge_types: Optional[Iterable["str | EdgeType"]] = None) -> list[Edge]:
        """All edges in insertion order, optionally restricted to some types."""
        allowed = _edge_type_filter(edge_types)
        found = [
            e for _, _, e in self._graph.edges(data="edge")
            if allowed is None or e.type in allowed
        ]
        found.sort(key=lambda e: e.seq)
        return found

    def neighbors(
        self,
        vertex_id: str,
        direction: "str | Direction" = Direction.OUTBOUND,
        edge_types: Optional[Iterable["str | EdgeType"]] = None,
    ) -> list[tuple[Edge, Vertex]]:
        """
        Adjacent (edge, vertex) pairs for one vertex.

        Args:
            vertex_id:  Vertex to expand.
            direction:  'outbound' (follow edges forward), 'inbound'
                        (backward) or 'any'/'either' (both).
            edge_types: Optional edge type filter.

        Returns:
            List of (edge, neighbour) in edge insertion order. An unknown
            vertex yields an empty list.
        """
        if vertex_id not in self._graph:
            return []
        direction = Direction.parse(direction)
        allowed = _edge_type_filter(edge_types)

        candidates: dict[str, tuple[Edge, str]] = {}
        if direction in (Direction.OUTBOUND, Direction.ANY):
            for _, v, e in self._graph.out_edges(vertex_id, data="edge"):
                candidates[e.id] = (e, v)
        if direction in (Direction.INBOUND, Direction.ANY):
            for u, _, e in self._graph.in_edges(vertex_id, data="edge"):
                # Self-loops appear on both sides; keyed by edge id they count once.
                candidates.setdefault(e.id, (e, u))

        pairs = [
            (e, self._graph.nodes[other]["vertex"])
            for e, other in candidates.values()
            if allowed is None or e.type in allowed
        ]
        pairs.sort(key=lambda pair: pair[0].seq)
        return pairs


class GraphStore(GraphView):
    """
    The single writer of a causal graph.

    Usage:
        store = GraphStore()
        i = store.add_vertex("Initiative", {"name": "Wellness Week"})
        o = store.add_vertex("Outcome", {"description": "Burnout", "type": "unintended"})
        store.add_edge("causes", i, o, strength=0.8)
    """

    def __init__(self, config: CausalAtlasConfig = DEFAULT_CONFIG) -> None:
        super().__init__(nx.MultiDiGraph(name="causal_graph"))
        self.config = config
        self._lock = threading.RLock()
        self._key_counters: dict[str, int] = defaultdict(int)
        self._edge_index: dict[str, tuple[str, str]] = {}
        self._edge_seq = 0
        self._listeners: list[Listener] = []

    # ── Change notification ───────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: str, record: "Vertex | Edge") -> None:
        event = ChangeEvent(kind=kind, record=record)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # The write is already committed.
                logger.exception("Change listener %r failed on %s event.", listener, kind)

    # ── Reads (locked) ────────────────────────────────────────────────────────

    def snapshot(self) -> GraphView:
        """Frozen, snapshot-consistent copy of the current graph."""
        with self._lock:
            frozen = nx.freeze(self._graph.copy())
        return GraphView(frozen)

    def get_vertex(self, vertex_id: str) -> Optional[Vertex]:
        with self._lock:
            return super().get_vertex(vertex_id)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        with self._lock:
            endpoints = self._edge_index.get(edge_id)
            if endpoints is None:
                return None
            u, v = endpoints
            return self._graph.edges[u, v, edge_id]["edge"]

    def vertices(self, kind: "Optional[str | VertexKind]" = None) -> list[Vertex]:
        with self._lock:
            return super().vertices(kind)

    def edges(self, edge_types: Optional[Iterable["str | EdgeType"]] = None) -> list[Edge]:
        with self._lock:
            return super().edges(edge_types)

    def neighbors(
        self,
        vertex_id: str,
        direction: "str | Direction" = Direction.OUTBOUND,
        edge_types: Optional[Iterable["str | EdgeType"]] = None,
    ) -> list[tuple[Edge, Vertex]]:
        with self._lock:
            return super().neighbors(vertex_id, direction, edge_types)

    # ── Writes ────────────────────────────────────────────────────────────────

    def add_vertex(
        self,
        kind: "str | VertexKind",
        attributes: dict[str, Any],
        key: Optional[str] = None,
    ) -> str:
        """
        Create a vertex and return its identifier.

        Args:
            kind:       VertexKind or its name ('Initiative', 'metrics', ...).
            attributes: Kind-specific attribute mapping (see graph.model).
            key:        Optional caller-chosen key. Generated from a per-kind
                        counter when omitted.

        Raises:
            ValidationError: Invalid attributes, malformed key, or a key that
                             is already taken within the kind's namespace.
        """
        kind = VertexKind.parse(kind)
        record_attrs = build_attributes(kind, attributes)

        with self._lock:
            vertex_id = self._resolve_new_id(kind, key)
            vertex = Vertex(id=vertex_id, kind=kind, attributes=record_attrs)
            self._graph.add_node(vertex_id, vertex=vertex)
            logger.debug("Created vertex %s.", vertex_id)
            self._emit("vertex_created", vertex)
        return vertex_id

    def _resolve_new_id(self, kind: VertexKind, key: Optional[str]) -> str:
        collection = kind.collection
        if key is not None:
            key = str(key).strip()
            if not key or "/" in key:
                raise ValidationError(f"Invalid vertex key '{key}'.")
            vertex_id = f"{collection}/{key}"
            if vertex_id in self._graph:
                raise ValidationError(f"Vertex id '{vertex_id}' already exists.")
            return vertex_id

        while True:
            self._key_counters[collection] += 1
            vertex_id = f"{collection}/{self._key_counters[collection]}"
            if vertex_id not in self._graph:
                return vertex_id

    def add_edge(
        self,
        edge_type: "str | EdgeType",
        source: str,
        target: str,
        strength: float,
        evidence: Iterable[str] = (),
        link_type: "str | LinkType" = LinkType.DIRECT,
        discovered_at: Optional[datetime] = None,
    ) -> str:
        """
        Create a directed edge and return its identifier.

        Raises:
            ValidationError:        Strength outside [0, 1], unknown type or
                                    link type, or (with enforce_edge_schema)
                                    endpoint kinds not declared for the type.
            DanglingReferenceError: Either endpoint is not in the store.
        """
        edge_type = EdgeType.parse(edge_type)
        strength = _validate_strength(strength)
        try:
            link_type = LinkType(link_type)
        except ValueError:
            raise ValidationError(f"Unknown link type '{link_type}'.") from None
        if isinstance(evidence, str):
            evidence = [evidence]
        evidence = tuple(str(item) for item in evidence)

        with self._lock:
            if source not in self._graph:
                raise DanglingReferenceError(source, "source")
            if target not in self._graph:
                raise DanglingReferenceError(target, "target")
            if self.config.enforce_edge_schema:
                self._check_endpoints(edge_type, source, target)

            self._edge_seq += 1
            edge = Edge(
                id=f"edges/{self._edge_seq}",
                type=edge_type,
                source=source,
                target=target,
                strength=strength,
                link_type=link_type,
                evidence=evidence,
                discovered_at=discovered_at or datetime.now(timezone.utc),
                seq=self._edge_seq,
            )
            self._graph.add_edge(source, target, key=edge.id, edge=edge)
            self._edge_index[edge.id] = (source, target)
            logger.debug("Created %s edge %s: %s → %s.", edge_type.value, edge.id, source, target)
            self._emit("edge_created", edge)
        return edge.id

    def _check_endpoints(self, edge_type: EdgeType, source: str, target: str) -> None:
        allowed_from, allowed_to = EDGE_ENDPOINTS[edge_type]
        source_kind = self._graph.nodes[source]["vertex"].kind
        target_kind = self._graph.nodes[target]["vertex"].kind
        if source_kind not in allowed_from or target_kind not in allowed_to:
            raise ValidationError(
                f"'{edge_type.value}' edges cannot link {source_kind.value} → {target_kind.value}."
            )

    def update_vertex(self, vertex_id: str, attributes: dict[str, Any]) -> Vertex:
        """
        Replace a vertex's attributes wholesale (no partial merge).

        Raises:
            NotFoundError:   Unknown vertex.
            ValidationError: Invalid attributes for the vertex's kind.
        """
        with self._lock:
            current = self.require_vertex(vertex_id)
            record_attrs = build_attributes(current.kind, attributes)
            updated = Vertex(id=vertex_id, kind=current.kind, attributes=record_attrs)
            self._graph.nodes[vertex_id]["vertex"] = updated
            self._emit("vertex_updated", updated)
        return updated

    def remove_vertex(self, vertex_id: str) -> Vertex:
        """
        Remove a vertex together with every incident edge.

        Raises:
            NotFoundError: Unknown vertex.
        """
        with self._lock:
            vertex = self.require_vertex(vertex_id)
            incident = [edge for edge, _ in super().neighbors(vertex_id, Direction.ANY)]
            self._graph.remove_node(vertex_id)
            for edge in incident:
                self._edge_index.pop(edge.id, None)
                self._emit("edge_removed", edge)
            self._emit("vertex_removed", vertex)
            logger.debug("Removed vertex %s and %d incident edges.", vertex_id, len(incident))
        return vertex

    def remove_edge(self, edge_id: str) -> Edge:
        """
        Remove a single edge.

        Raises:
            NotFoundError: Unknown edge.
        """
        with self._lock:
            endpoints = self._edge_index.get(edge_id)
            if endpoints is None:
                raise NotFoundError(edge_id, "edge")
            u, v = endpoints
            edge = self._graph.edges[u, v, edge_id]["edge"]
            self._graph.remove_edge(u, v, key=edge_id)
            del self._edge_index[edge_id]
            self._emit("edge_removed", edge)
        return edge


def _validate_strength(strength: Any) -> float:
    if isinstance(strength, bool) or not isinstance(strength, numbers.Real):
        raise ValidationError(f"Edge strength must be a number, got {strength!r}.")
    value = float(strength)
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise ValidationError(f"Edge strength {strength!r} is outside [0, 1].")
    return value
