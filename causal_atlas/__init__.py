"""
causal_atlas: causal graph analytics for organizational initiatives.

Models an organization as a typed, weighted property graph (initiatives,
outcomes, employees, metrics, departments, events) and computes analytics
over it:

- Intention/reality gap per initiative (causal_atlas.metrics.gap)
- Gameable and theater metric detection (causal_atlas.metrics.auditor)
- Department synergy composite (causal_atlas.metrics.synergy)
- Causal path discovery (causal_atlas.graph.traversal)

The single-call facade is causal_atlas.engine.AnalyticsEngine.
"""

__version__ = "0.1.0"
