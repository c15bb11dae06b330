"""
causal_atlas.metrics: Scores computed over the causal graph.

Modules:
    gap      Intention/Reality gap, outcome summary, unintended consequences.
    auditor  Gameable metrics, metric theater, metric time series.
    synergy  Department synergy composite.

Every scorer accepts a GraphStore or a frozen snapshot, and reads its
weights and thresholds from causal_atlas.config.CausalAtlasConfig.
"""
