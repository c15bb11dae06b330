"""
causal_atlas/graph/mirror.py: Change events and the eventually-consistent
semantic mirror.

The graph store is the source of truth. A secondary RDF view of the same
facts is kept up to date asynchronously:

    GraphStore ──emit──► ChangeLog (append-only) ──sync()──► TripleMirror

The store never waits on the mirror and the mirror never writes back into the
store. A MirrorSynchronizer remembers the log offset it has applied, so
sync() can be called on any schedule (after each request, on a timer, in a
worker thread) and always converges to the store's state.

Log offsets are absolute: truncating the log releases old events but never
renumbers the ones that remain.
"""

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

from rdflib import RDF, RDFS, Graph, Literal, Namespace, URIRef
from rdflib.term import Identifier

from causal_atlas.graph.model import Edge, EdgeType, Vertex

logger = logging.getLogger(__name__)

EVENT_KINDS = frozenset({
    "vertex_created",
    "vertex_updated",
    "vertex_removed",
    "edge_created",
    "edge_removed",
})

Triple = tuple[Identifier, Identifier, Identifier]


@dataclass(frozen=True)
class ChangeEvent:
    """A committed write, as seen by listeners."""

    kind: str
    record: Union[Vertex, Edge]
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.kind not in EVENT_KINDS:
            raise ValueError(f"Unknown change event kind '{self.kind}'.")


class ChangeLog:
    """
    Append-only event stream. Subscribe an instance to a GraphStore:

        log = ChangeLog()
        store.subscribe(log)
    """

    def __init__(self) -> None:
        self._events: list[ChangeEvent] = []
        self._base = 0
        self._lock = threading.Lock()

    def __call__(self, event: ChangeEvent) -> None:
        self.append(event)

    def append(self, event: ChangeEvent) -> int:
        """Append one event; returns its absolute offset."""
        with self._lock:
            self._events.append(event)
            return self._base + len(self._events) - 1

    def __len__(self) -> int:
        """Number of events still held (after truncation)."""
        with self._lock:
            return len(self._events)

    @property
    def start_offset(self) -> int:
        """Offset of the oldest retained event."""
        with self._lock:
            return self._base

    @property
    def end_offset(self) -> int:
        """Offset the next appended event will receive."""
        with self._lock:
            return self._base + len(self._events)

    def read(self, offset: int = 0) -> list[ChangeEvent]:
        """
        Events from `offset` (inclusive) to the current end.

        Raises:
            ValueError: `offset` points at events already truncated.
        """
        with self._lock:
            if offset < self._base:
                raise ValueError(
                    f"Offset {offset} was truncated; the log now starts at {self._base}."
                )
            return list(self._events[offset - self._base:])

    def truncate(self, offset: int) -> int:
        """Release every event before `offset`. Returns the number released."""
        with self._lock:
            cut = max(0, min(offset, self._base + len(self._events)) - self._base)
            del self._events[:cut]
            self._base += cut
            return cut


class TripleMirror:
    """
    RDF projection of the causal graph, held in an rdflib Graph.

    Vertex facts:
        (<iri>, rdf:type, atlas:<Kind>)
        (<iri>, rdfs:label, "<name or description>")
        (<iri>, atlas:<attribute>, "<value>")   for every non-empty attribute
    Edge facts:
        (<source iri>, atlas:<edge type>, <target iri>)

    Vertex iris are base_iri + vertex id. No ontology or inference is applied.
    """

    def __init__(self, base_iri: str = "urn:causal-atlas:") -> None:
        self.base_iri = base_iri
        self.ns = Namespace(base_iri)
        self.graph = Graph()
        self.graph.bind("atlas", self.ns)
        self._edge_predicates = frozenset(self.ns[t.value] for t in EdgeType)
        # Parallel edges of the same type project to one triple; count them.
        self._edge_refs: Counter = Counter()

    def iri(self, vertex_id: str) -> URIRef:
        return URIRef(f"{self.base_iri}{vertex_id}")

    def predicate(self, name: str) -> URIRef:
        """'a' and 'label' map to rdf:type / rdfs:label, anything else to atlas:<name>."""
        if name == "a":
            return RDF.type
        if name == "label":
            return RDFS.label
        return self.ns[name]

    # ── Projection ────────────────────────────────────────────────────────────

    def apply(self, event: ChangeEvent) -> None:
        record = event.record
        if event.kind in ("vertex_created", "vertex_updated"):
            self._retract_vertex(record.id)
            self._assert_vertex(record)
        elif event.kind == "vertex_removed":
            self._retract_vertex(record.id)
        elif event.kind == "edge_created":
            fact = self._project_edge(record)
            self._edge_refs[fact] += 1
            self.graph.add(fact)
        elif event.kind == "edge_removed":
            fact = self._project_edge(record)
            self._edge_refs[fact] -= 1
            if self._edge_refs[fact] <= 0:
                del self._edge_refs[fact]
                self.graph.remove(fact)

    def _assert_vertex(self, vertex: Vertex) -> None:
        subject = self.iri(vertex.id)
        self.graph.add((subject, RDF.type, self.ns[vertex.kind.value]))
        self.graph.add((subject, RDFS.label, Literal(vertex.label)))
        for name, value in vertex.attributes.model_dump().items():
            if value is None or value == "" or (isinstance(value, (list, tuple)) and not value):
                continue
            values = value if isinstance(value, (list, tuple)) else (value,)
            for item in values:
                self.graph.add((subject, self.ns[name], Literal(item)))

    def _retract_vertex(self, vertex_id: str) -> None:
        # Outgoing edge facts share the subject and must survive an update.
        subject = self.iri(vertex_id)
        for predicate, obj in list(self.graph.predicate_objects(subject)):
            if predicate not in self._edge_predicates:
                self.graph.remove((subject, predicate, obj))

    def _project_edge(self, edge: Edge) -> Triple:
        return (self.iri(edge.source), self.ns[edge.type.value], self.iri(edge.target))

    # ── Queries ───────────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self.graph)

    def triples(self) -> set[Triple]:
        return set(self.graph)

    def subjects(self) -> set[URIRef]:
        """Iris of every mirrored vertex."""
        return set(self.graph.subjects(RDF.type, None))

    def match(
        self,
        subject: Optional[Union[str, URIRef]] = None,
        predicate: Optional[Union[str, URIRef]] = None,
        obj: object = None,
    ) -> list[Triple]:
        """
        Triples matching the given pattern; None is a wildcard.

        A plain-string predicate is resolved with predicate(). A subject that
        is not already a URIRef is treated as a vertex id, and a non-RDF
        object is wrapped in a Literal.
        """
        if subject is not None and not isinstance(subject, URIRef):
            subject = self.iri(subject)
        if predicate is not None and not isinstance(predicate, URIRef):
            predicate = self.predicate(predicate)
        if obj is not None and not isinstance(obj, Identifier):
            obj = Literal(obj)
        return sorted(
            self.graph.triples((subject, predicate, obj)),
            key=lambda t: tuple(term.n3() for term in t),
        )

    def serialize(self, fmt: str = "turtle") -> str:
        return self.graph.serialize(format=fmt)


class MirrorSynchronizer:
    """
    Replays a ChangeLog into a TripleMirror from the last applied offset.

    With release_applied=True the synchronizer truncates the log after each
    sync. Only set it when this synchronizer is the log's sole consumer.
    """

    def __init__(self, log: ChangeLog, mirror: TripleMirror, release_applied: bool = False) -> None:
        self.log = log
        self.mirror = mirror
        self.release_applied = release_applied
        self.offset = log.start_offset
        self._lock = threading.Lock()

    @property
    def lag(self) -> int:
        """Number of logged events not yet applied to the mirror."""
        return self.log.end_offset - self.offset

    def sync(self) -> int:
        """Apply all pending events. Returns the number applied."""
        with self._lock:
            pending = self.log.read(self.offset)
            for event in pending:
                self.mirror.apply(event)
            self.offset += len(pending)
            if self.release_applied:
                self.log.truncate(self.offset)
        if pending:
            logger.debug("Mirror synchronized %d events (offset=%d).", len(pending), self.offset)
        return len(pending)
