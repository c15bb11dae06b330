"""
causal_atlas.graph: Causal property graph model, store and traversal.

Modules:
    model      Vertex kinds, edge types, frozen attribute models and records.
    store      GraphStore (NetworkX MultiDiGraph, single writer) and
               read-only GraphView snapshots.
    traversal  Bounded reachability, simple path enumeration, neighbourhoods.
    mirror     Change events, append-only change log, triple mirror sync.
    builder    Load a GraphStore from vertex/edge CSV tables.

Vertex kinds : Initiative, Outcome, Employee, Metric, Department, Event
Edge types   : causes, measures, participates_in, belongs_to, influences
"""
