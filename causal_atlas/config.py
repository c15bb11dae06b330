"""
causal_atlas/config.py: All tunable parameters for the analytics engine.

No weight or threshold is hardcoded in a scorer module. Every gap weight,
hop bound, suspicion cut-off and synergy weight lives here so that
calibration changes are a single-file diff.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CausalAtlasConfig:
    """
    Immutable configuration for the causal graph analytics engine.

    Override by constructing a new CausalAtlasConfig with the desired values.
    """

    # ── Graph Store ───────────────────────────────────────────────────────────
    enforce_edge_schema: bool = False
    # When True, add_edge() rejects endpoint kinds not declared for the edge
    # type (see graph.model.EDGE_ENDPOINTS). Off by default: gap analysis
    # reads initiative → metric 'measures' links, which the declared table
    # does not list.

    # ── Traversal ─────────────────────────────────────────────────────────────
    path_max_depth: int = 5
    # Default edge budget for find_paths().

    neighbourhood_max_depth: int = 3
    # Default radius for causal_neighbourhood().

    # ── Gap Scorer ────────────────────────────────────────────────────────────
    intended_hops: int = 1
    actual_hops: int = 2
    metric_hops: int = 1
    unintended_search_hops: int = 3

    gap_outcome_weight: float = 10.0
    # Points per unintended/emergent outcome reachable from the initiative.

    gap_metric_weight: float = 50.0
    # Multiplier on the mean relative metric deviation.

    gap_no_intent_penalty: float = 25.0
    # Flat penalty when the initiative has no hop-1 intended outcome.

    gap_severe_above: float = 75.0
    gap_significant_above: float = 50.0
    # analysis = 'severe' if score > 75, 'significant' if > 50, else 'moderate'.

    # ── Metric Auditor ────────────────────────────────────────────────────────
    gameable_threshold: float = 0.5
    # Default relative gap a metric must exceed to be reported as gameable.

    suspicion_high_above: float = 0.7
    suspicion_extreme_above: float = 0.9

    theater_hops: int = 2
    theater_score: float = 100.0
    # Theater is binary: every disconnected metric scores the same.

    # ── Synergy Scorer ────────────────────────────────────────────────────────
    synergy_wellness_weight: float = 0.3
    synergy_engagement_weight: float = 0.3
    synergy_success_weight: float = 40.0

    synergy_synergized_above: float = 80.0
    synergy_aligned_above: float = 60.0


# Default instance, imported wherever no override is needed.
DEFAULT_CONFIG = CausalAtlasConfig()
