"""
causal_atlas/metrics/gap.py: Intention/Reality Gap per initiative.

The flagship metric. An initiative states what it intends; the graph records
what it actually caused and how its metrics moved. The gap score measures how
far the two diverge, on a 0–100 scale:

    intended      = hop-1 outbound 'causes' outcomes with type 'intended'
    actual        = hop 1–2 outbound 'causes' outcomes, type 'unintended'
                    or 'emergent'
    metrics       = hop-1 outbound 'measures' metrics with value and target
    metric_gap(m) = |value - target| / target     (target == 0 → excluded)

    gap_score = clamp(|actual| × 10
                      + mean(metric_gap) × 50
                      + (25 if no intended outcome else 0), 0, 100)

Each surprise outcome is a fixed penalty, metric deviation is the
quantitative signal, and an initiative that never declared an intended
outcome is penalised for never defining success. The three terms are not
independently calibrated; the weights live in CausalAtlasConfig.

Also provides the initiative outcome summary (hop-1 intended vs. everything
else, with mean severity) and the deep unintended-consequence search.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from causal_atlas.config import DEFAULT_CONFIG, CausalAtlasConfig
from causal_atlas.graph.model import Direction, EdgeType, Vertex, VertexKind
from causal_atlas.graph.store import GraphView
from causal_atlas.graph.traversal import traverse

logger = logging.getLogger(__name__)


@dataclass
class IntentionRealityGap:
    """
    Gap analysis result for one initiative.

    Fields:
        initiative_id:           Initiative vertex id.
        initiative_name:         Initiative name.
        intended_outcome:        Free-text intended outcome of the initiative.
        intended:                Hop-1 intended Outcome vertices.
        actual_outcomes:         Hop 1–2 unintended/emergent Outcome vertices.
        unintended_consequences: Same vertices as actual_outcomes.
        metrics:                 Hop-1 measured Metric vertices with a usable target.
        avg_metric_gap:          Mean relative metric deviation (0.0 if none).
        gap_score:               Clamped score in [0, 100].
        analysis:                Human-readable classification sentence.
        severity_class:          'severe' | 'significant' | 'moderate'.
    """

    initiative_id: str
    initiative_name: str
    intended_outcome: str
    intended: list[Vertex]
    actual_outcomes: list[Vertex]
    unintended_consequences: list[Vertex]
    metrics: list[Vertex]
    avg_metric_gap: float
    gap_score: float
    analysis: str
    severity_class: str


@dataclass
class InitiativeOutcomes:
    """Hop-1 outcome summary for one initiative."""

    initiative: Vertex
    intended: list[Vertex] = field(default_factory=list)
    actual: list[Vertex] = field(default_factory=list)
    gap: float = 0.0
    # gap = mean severity of the non-intended hop-1 outcomes (0.0 if none)


def metric_gap(metric: Vertex) -> Optional[float]:
    """
    Relative deviation |value - target| / target of a Metric vertex.

    Returns None when value or target is missing or the target is zero
    (the ratio is undefined and the metric is excluded). Targets are
    assumed positive; a negative target is used as given.
    """
    value = metric.get("value")
    target = metric.get("target")
    if value is None or target is None or target == 0:
        return None
    return abs(value - target) / target


def classify_gap(score: float, config: CausalAtlasConfig = DEFAULT_CONFIG) -> str:
    if score > config.gap_severe_above:
        return "severe"
    if score > config.gap_significant_above:
        return "significant"
    return "moderate"


def calculate_gap(
    view: GraphView,
    initiative_id: str,
    config: CausalAtlasConfig = DEFAULT_CONFIG,
) -> IntentionRealityGap:
    """
    Compute the Intention/Reality Gap for one initiative.

    Args:
        view:          GraphStore or snapshot.
        initiative_id: Initiative vertex id.
        config:        CausalAtlasConfig. Uses the gap_* weights, the
                       intended/actual/metric hop bounds and the analysis
                       cut-offs.

    Returns:
        IntentionRealityGap. An initiative with no outgoing edges scores the
        no-intent penalty only (25 with default weights).

    Raises:
        NotFoundError: initiative_id does not resolve to an Initiative vertex.
    """
    initiative = view.require_vertex(initiative_id, VertexKind.INITIATIVE)

    intended = traverse(
        view, initiative_id, config.intended_hops, Direction.OUTBOUND,
        edge_types=[EdgeType.CAUSES], outcome_types={"intended"},
    )
    actual = traverse(
        view, initiative_id, config.actual_hops, Direction.OUTBOUND,
        edge_types=[EdgeType.CAUSES], outcome_types={"unintended", "emergent"},
    )
    measured = traverse(
        view, initiative_id, config.metric_hops, Direction.OUTBOUND,
        edge_types=[EdgeType.MEASURES], kinds=[VertexKind.METRIC],
    )

    metrics: list[Vertex] = []
    gaps: list[float] = []
    for m in measured:
        g = metric_gap(m)
        if g is None:
            continue
        metrics.append(m)
        gaps.append(g)
    avg_metric_gap = float(np.mean(gaps)) if gaps else 0.0

    raw_score = (
        len(actual) * config.gap_outcome_weight
        + avg_metric_gap * config.gap_metric_weight
        + (config.gap_no_intent_penalty if not intended else 0.0)
    )
    gap_score = float(np.clip(raw_score, 0.0, 100.0))
    severity_class = classify_gap(gap_score, config)

    name = initiative.get("name")
    analysis = (
        f'Initiative "{name}" shows {severity_class} divergence from stated intentions. '
        f"{len(actual)} unintended outcomes detected."
    )

    logger.debug(
        "Gap for %s: score=%.2f (actual=%d, intended=%d, metrics=%d, avg_metric_gap=%.3f).",
        initiative_id, gap_score, len(actual), len(intended), len(metrics), avg_metric_gap,
    )

    return IntentionRealityGap(
        initiative_id=initiative_id,
        initiative_name=name,
        intended_outcome=initiative.get("intended_outcome", ""),
        intended=intended,
        actual_outcomes=actual,
        unintended_consequences=list(actual),
        metrics=metrics,
        avg_metric_gap=avg_metric_gap,
        gap_score=gap_score,
        analysis=analysis,
        severity_class=severity_class,
    )


def initiative_outcomes(view: GraphView, initiative_id: str) -> InitiativeOutcomes:
    """
    Split an initiative's hop-1 'causes' outcomes into intended vs. the rest.

    `gap` is the mean severity of the non-intended outcomes, a quick
    harm-weighted view that complements the gap score.

    Raises:
        NotFoundError: initiative_id does not resolve to an Initiative vertex.
    """
    initiative = view.require_vertex(initiative_id, VertexKind.INITIATIVE)
    outcomes = traverse(
        view, initiative_id, 1, Direction.OUTBOUND,
        edge_types=[EdgeType.CAUSES], kinds=[VertexKind.OUTCOME],
    )
    intended = [o for o in outcomes if o.get("type") == "intended"]
    actual = [o for o in outcomes if o.get("type") != "intended"]
    gap = float(np.mean([o.get("severity") for o in actual])) if actual else 0.0
    return InitiativeOutcomes(initiative=initiative, intended=intended, actual=actual, gap=gap)


def find_unintended_consequences(
    view: GraphView,
    initiative_id: str,
    max_depth: Optional[int] = None,
    config: CausalAtlasConfig = DEFAULT_CONFIG,
) -> list[Vertex]:
    """
    Distinct 'unintended' outcomes within 1..max_depth outbound 'causes' hops
    (default config.unintended_search_hops).

    Raises:
        NotFoundError: initiative_id does not resolve to an Initiative vertex.
    """
    view.require_vertex(initiative_id, VertexKind.INITIATIVE)
    if max_depth is None:
        max_depth = config.unintended_search_hops
    return traverse(
        view, initiative_id, max_depth, Direction.OUTBOUND,
        edge_types=[EdgeType.CAUSES], outcome_types={"unintended"},
    )
