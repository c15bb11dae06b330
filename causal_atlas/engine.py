"""
causal_atlas/engine.py: In-process API of the analytics engine.

AnalyticsEngine wraps one GraphStore (passed in by the caller; there is no
process-wide default) and exposes the write and query operations. Every
query takes a fresh snapshot first, so it runs over a consistent, frozen
graph even while other threads keep writing.

Usage:
    from causal_atlas.engine import AnalyticsEngine

    engine = AnalyticsEngine()
    i1 = engine.create_vertex("Initiative", {"name": "Mandatory Fun Fridays"})
    ...
    gap = engine.calculate_gap(i1)
    print(gap.gap_score, gap.analysis)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from causal_atlas.config import DEFAULT_CONFIG, CausalAtlasConfig
from causal_atlas.graph.model import Direction, Edge, Vertex, VertexKind
from causal_atlas.graph.store import GraphStore, Listener
from causal_atlas.graph import traversal
from causal_atlas.metrics import auditor, gap, synergy

logger = logging.getLogger(__name__)


@dataclass
class AtlasSummary:
    """
    Every analytic for the whole graph, computed over one snapshot.

    Fields:
        vertex_count:     Vertices in the snapshot.
        edge_count:       Edges in the snapshot.
        gaps:             IntentionRealityGap per initiative, highest score first.
        gameable_metrics: Gameable metrics at the default threshold.
        theater_metrics:  Theater metrics.
        synergy:          DepartmentSynergy per department, highest score first.
    """

    vertex_count: int
    edge_count: int
    gaps: list = field(default_factory=list)
    gameable_metrics: list = field(default_factory=list)
    theater_metrics: list = field(default_factory=list)
    synergy: list = field(default_factory=list)


class AnalyticsEngine:
    """
    Facade over a GraphStore and the traversal/scoring functions.

    Without an explicit config the engine scores with the store's own
    config, so edge-schema enforcement and scoring thresholds never diverge.
    """

    def __init__(
        self,
        store: Optional[GraphStore] = None,
        config: Optional[CausalAtlasConfig] = None,
    ) -> None:
        if config is None:
            config = store.config if store is not None else DEFAULT_CONFIG
        self.config = config
        self.store = store if store is not None else GraphStore(config)

    # ── Writes ────────────────────────────────────────────────────────────────

    def create_vertex(
        self, kind: "str | VertexKind", attributes: dict[str, Any], key: Optional[str] = None
    ) -> str:
        return self.store.add_vertex(kind, attributes, key=key)

    def create_edge(
        self,
        edge_type: str,
        source: str,
        target: str,
        strength: float,
        evidence: Iterable[str] = (),
        link_type: str = "direct",
    ) -> str:
        return self.store.add_edge(
            edge_type, source, target, strength, evidence=evidence, link_type=link_type
        )

    def update_vertex(self, vertex_id: str, attributes: dict[str, Any]) -> Vertex:
        return self.store.update_vertex(vertex_id, attributes)

    def remove_vertex(self, vertex_id: str) -> Vertex:
        return self.store.remove_vertex(vertex_id)

    def subscribe(self, listener: Listener):
        """Register a change listener on the store (see graph.mirror)."""
        return self.store.subscribe(listener)

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_vertex(self, vertex_id: str) -> Optional[Vertex]:
        return self.store.get_vertex(vertex_id)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self.store.get_edge(edge_id)

    def traverse(
        self,
        start: str,
        max_depth: int,
        direction: "str | Direction" = Direction.OUTBOUND,
        edge_types=None,
        outcome_types: Optional[Iterable[str]] = None,
        min_depth: int = 1,
    ) -> list[Vertex]:
        return traversal.traverse(
            self.store.snapshot(), start, max_depth, direction,
            edge_types=edge_types, min_depth=min_depth, outcome_types=outcome_types,
        )

    def find_paths(
        self, start: str, target: str, max_depth: Optional[int] = None, edge_types=("causes",)
    ) -> list[traversal.CausalPath]:
        return traversal.find_paths(
            self.store.snapshot(), start, target, max_depth,
            edge_types=edge_types, config=self.config,
        )

    def causal_neighbourhood(
        self, start: str, max_depth: Optional[int] = None
    ) -> traversal.Neighbourhood:
        return traversal.causal_neighbourhood(
            self.store.snapshot(), start, max_depth, config=self.config
        )

    # ── Scores ────────────────────────────────────────────────────────────────

    def calculate_gap(self, initiative_id: str) -> gap.IntentionRealityGap:
        return gap.calculate_gap(self.store.snapshot(), initiative_id, self.config)

    def initiative_outcomes(self, initiative_id: str) -> gap.InitiativeOutcomes:
        return gap.initiative_outcomes(self.store.snapshot(), initiative_id)

    def find_unintended_consequences(
        self, initiative_id: str, max_depth: Optional[int] = None
    ) -> list[Vertex]:
        return gap.find_unintended_consequences(
            self.store.snapshot(), initiative_id, max_depth, self.config
        )

    def find_gameable_metrics(self, threshold: Optional[float] = None) -> list[auditor.GameableMetric]:
        return auditor.find_gameable_metrics(self.store.snapshot(), threshold, self.config)

    def detect_theater_metrics(self) -> list[auditor.TheaterMetric]:
        return auditor.detect_theater_metrics(self.store.snapshot(), self.config)

    def metric_series(
        self,
        name: Optional[str] = None,
        metric_type: Optional[str] = None,
        start=None,
        end=None,
    ) -> list[Vertex]:
        return auditor.metric_series(self.store.snapshot(), name, metric_type, start, end)

    def metric_time_series(
        self, metric_type: Optional[str] = None, start=None, end=None
    ) -> dict[str, list[Vertex]]:
        return auditor.metric_time_series(self.store.snapshot(), metric_type, start, end)

    def calculate_synergy(self, department_id: str) -> synergy.DepartmentSynergy:
        return synergy.calculate_synergy(self.store.snapshot(), department_id, self.config)

    def summary(self) -> AtlasSummary:
        """Run every analytic over a single snapshot."""
        view = self.store.snapshot()
        gaps = [
            gap.calculate_gap(view, i.id, self.config)
            for i in view.vertices(VertexKind.INITIATIVE)
        ]
        gaps.sort(key=lambda g: g.gap_score, reverse=True)
        departments = [
            synergy.calculate_synergy(view, d.id, self.config)
            for d in view.vertices(VertexKind.DEPARTMENT)
        ]
        departments.sort(key=lambda s: s.synergy_score, reverse=True)

        result = AtlasSummary(
            vertex_count=len(view),
            edge_count=view.number_of_edges(),
            gaps=gaps,
            gameable_metrics=auditor.find_gameable_metrics(view, None, self.config),
            theater_metrics=auditor.detect_theater_metrics(view, self.config),
            synergy=departments,
        )
        logger.info(
            "Summary: %d vertices, %d edges, %d initiatives, %d gameable, %d theater, "
            "%d departments.",
            result.vertex_count, result.edge_count, len(gaps),
            len(result.gameable_metrics), len(result.theater_metrics), len(departments),
        )
        return result
