"""
causal_atlas/metrics/auditor.py: Gameable metric and metric theater detection.

Two independent audits over Metric vertices:

    Gameable:  the metric's value sits far from its target,
               gap = |value - target| / target > threshold (default 0.5).
               Suspicion level uses the highest cut-off the gap clears:
                   gap > 0.9  → EXTREME
                   gap > 0.7  → HIGH
                   otherwise  → MODERATE

    Theater:   the metric has no Initiative within 2 hops in any direction
               over the causal_graph edge set. It is collected, but nothing
               the organization does is connected to it. Binary: every
               theater metric scores 100.

The predicates share no state: a metric can be gameable, theater, both or
neither.

metric_series() and metric_time_series() return metric readings over time,
filtered by name, type and an inclusive timestamp window.
"""

import logging
import numbers
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import pandas as pd

from causal_atlas.config import DEFAULT_CONFIG, CausalAtlasConfig
from causal_atlas.exceptions import ValidationError
from causal_atlas.graph.model import (
    CAUSAL_GRAPH_EDGES,
    METRIC_TYPES,
    Direction,
    EdgeType,
    Vertex,
    VertexKind,
)
from causal_atlas.graph.store import GraphView
from causal_atlas.graph.traversal import traverse
from causal_atlas.metrics.gap import metric_gap

logger = logging.getLogger(__name__)


@dataclass
class GameableMetric:
    """
    A metric whose value deviates suspiciously from its target.

    Fields:
        metric:            The Metric vertex.
        gap:               |value - target| / target.
        gap_percentage:    gap × 100.
        measured_entities: Hop-1 outbound 'measures' neighbours of the metric.
        suspicion_level:   'MODERATE' | 'HIGH' | 'EXTREME'.
    """

    metric: Vertex
    gap: float
    gap_percentage: float
    measured_entities: list[Vertex]
    suspicion_level: str


@dataclass
class TheaterMetric:
    """A metric with no causal connection to any initiative."""

    metric: Vertex
    message: str
    theater_score: float


def suspicion_level(gap: float, config: CausalAtlasConfig = DEFAULT_CONFIG) -> str:
    if gap > config.suspicion_extreme_above:
        return "EXTREME"
    if gap > config.suspicion_high_above:
        return "HIGH"
    return "MODERATE"


def find_gameable_metrics(
    view: GraphView,
    threshold: float | None = None,
    config: CausalAtlasConfig = DEFAULT_CONFIG,
) -> list[GameableMetric]:
    """
    Metrics whose relative gap to target exceeds `threshold`.

    Args:
        view:      GraphStore or snapshot.
        threshold: Minimum gap (exclusive). Default config.gameable_threshold.
        config:    CausalAtlasConfig. Uses the suspicion_* cut-offs.

    Returns:
        List of GameableMetric sorted by gap, largest first. Metrics with a
        missing value/target or a zero target are skipped.

    Raises:
        ValidationError: threshold is not a non-negative number.
    """
    if threshold is None:
        threshold = config.gameable_threshold
    if isinstance(threshold, bool) or not isinstance(threshold, numbers.Real) or threshold < 0:
        raise ValidationError(f"threshold must be a non-negative number, got {threshold!r}.")

    flagged: list[GameableMetric] = []
    for metric in view.vertices(VertexKind.METRIC):
        gap = metric_gap(metric)
        if gap is None or gap <= threshold:
            continue
        measured = [
            v for _, v in view.neighbors(metric.id, Direction.OUTBOUND, [EdgeType.MEASURES])
        ]
        flagged.append(
            GameableMetric(
                metric=metric,
                gap=gap,
                gap_percentage=gap * 100.0,
                measured_entities=measured,
                suspicion_level=suspicion_level(gap, config),
            )
        )

    # Stable sort: equal gaps keep vertex insertion order.
    flagged.sort(key=lambda r: r.gap, reverse=True)

    logger.debug(
        "Gameable metric scan (threshold=%.3f): %d flagged, %d EXTREME.",
        threshold,
        len(flagged),
        sum(1 for r in flagged if r.suspicion_level == "EXTREME"),
    )
    return flagged


def detect_theater_metrics(
    view: GraphView,
    config: CausalAtlasConfig = DEFAULT_CONFIG,
) -> list[TheaterMetric]:
    """
    Metrics with no Initiative within config.theater_hops undirected hops.

    Returns:
        One TheaterMetric per disconnected metric, in vertex insertion order,
        each with theater_score = config.theater_score.
    """
    theater: list[TheaterMetric] = []
    metrics = view.vertices(VertexKind.METRIC)
    for metric in metrics:
        linked = traverse(
            view, metric.id, config.theater_hops, Direction.ANY,
            edge_types=CAUSAL_GRAPH_EDGES, kinds=[VertexKind.INITIATIVE],
        )
        if linked:
            continue
        theater.append(
            TheaterMetric(
                metric=metric,
                message=(
                    f'Metric "{metric.get("name")}" has been collected but shows no causal '
                    "link to any initiative. Possible metric theater detected."
                ),
                theater_score=config.theater_score,
            )
        )

    logger.debug(
        "Metric theater scan: %d of %d metrics disconnected.", len(theater), len(metrics)
    )
    return theater


# ── Metric time series ────────────────────────────────────────────────────────

def _as_utc(value) -> datetime:
    """Parse a datetime or ISO string; naive values are taken as UTC."""
    if not isinstance(value, datetime):
        value = pd.Timestamp(value).to_pydatetime()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def metric_series(
    view: GraphView,
    name: Optional[str] = None,
    metric_type: Optional[str] = None,
    start=None,
    end=None,
) -> list[Vertex]:
    """
    Metric vertices matching the filters, oldest first.

    Args:
        view:        GraphStore or snapshot.
        name:        Only metrics with this name (default: any name).
        metric_type: Only metrics of this type ('wellness', 'productivity',
                     'engagement', 'synergy', 'custom').
        start:       Inclusive lower bound on the timestamp (datetime or ISO string).
        end:         Inclusive upper bound on the timestamp.

    Returns:
        Dated metrics in ascending timestamp order, then undated metrics in
        insertion order. Undated metrics are dropped once a start or end
        bound is given, since they cannot fall inside a window.

    Raises:
        ValidationError: Unknown metric_type, or an unparseable bound.
    """
    if metric_type is not None and metric_type not in METRIC_TYPES:
        raise ValidationError(
            f"Unknown metric type '{metric_type}'; expected one of {sorted(METRIC_TYPES)}."
        )
    try:
        lower = _as_utc(start) if start is not None else None
        upper = _as_utc(end) if end is not None else None
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid time window bound: {exc}") from exc

    stamped, unstamped = [], []
    for metric in view.vertices(VertexKind.METRIC):
        if name is not None and metric.get("name") != name:
            continue
        if metric_type is not None and metric.get("type") != metric_type:
            continue
        timestamp = metric.get("timestamp")
        if timestamp is None:
            unstamped.append(metric)
            continue
        when = _as_utc(timestamp)
        if (lower is not None and when < lower) or (upper is not None and when > upper):
            continue
        stamped.append((when, metric))

    stamped.sort(key=lambda pair: pair[0])
    series = [metric for _, metric in stamped]
    if lower is None and upper is None:
        series.extend(unstamped)
    return series


def metric_time_series(
    view: GraphView,
    metric_type: Optional[str] = None,
    start=None,
    end=None,
) -> dict[str, list[Vertex]]:
    """
    Metrics grouped by name, each group oldest first.

    Same filters as metric_series(); names are returned in sorted order.
    """
    grouped: dict[str, list[Vertex]] = defaultdict(list)
    for metric in metric_series(view, None, metric_type, start, end):
        grouped[metric.get("name")].append(metric)
    return {name: grouped[name] for name in sorted(grouped)}
