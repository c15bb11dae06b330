"""
causal_atlas/cli.py: Command-line interface for the analytics engine.

Loads an organization graph from CSV tables (see causal_atlas.graph.builder)
and prints one analytic as JSON on stdout.

Usage:
    python -m causal_atlas --vertices v.csv --edges e.csv summary
    python -m causal_atlas --vertices v.csv --edges e.csv gap initiatives/fun-fridays
    python -m causal_atlas --vertices v.csv --edges e.csv paths initiatives/a outcomes/b
    python -m causal_atlas --vertices v.csv --edges e.csv gameable --threshold 0.3
    python -m causal_atlas --vertices v.csv --edges e.csv theater
    python -m causal_atlas --vertices v.csv --edges e.csv series --type wellness --start 2024-01-01
    python -m causal_atlas --vertices v.csv --edges e.csv synergy departments/hr
    python -m causal_atlas --vertices v.csv --edges e.csv consequences initiatives/a
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import fields, is_dataclass
from typing import Any

from causal_atlas.exceptions import CausalAtlasError
from causal_atlas.graph.model import METRIC_TYPES, Edge, Vertex


# ── Logging setup ─────────────────────────────────────────────────────────────

def _setup_logging(level: str = "INFO") -> None:
    """Configure root logger with timestamps; logs go to stderr, JSON to stdout."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    fmt = "%(asctime)s  %(levelname)-8s  %(name)s: %(message)s"
    datefmt = "%H:%M:%S"
    logging.basicConfig(level=numeric, format=fmt, datefmt=datefmt, stream=sys.stderr)


logger = logging.getLogger("causal_atlas.cli")


def to_jsonable(obj: Any) -> Any:
    """Convert result dataclasses (and the vertices inside them) to JSON types."""
    if isinstance(obj, (Vertex, Edge)):
        return obj.to_dict()
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [to_jsonable(v) for v in obj]
    return obj


def _emit(result: Any) -> None:
    print(json.dumps(to_jsonable(result), indent=2, default=str))


def _load_engine(args: argparse.Namespace):
    from causal_atlas.engine import AnalyticsEngine
    from causal_atlas.graph.builder import build_store_from_csv

    store = build_store_from_csv(args.vertices, args.edges)
    return AnalyticsEngine(store)


# ── Subcommands ───────────────────────────────────────────────────────────────

def cmd_summary(args: argparse.Namespace) -> int:
    """Every analytic over the loaded graph."""
    engine = _load_engine(args)
    _emit(engine.summary())
    return 0


def cmd_gap(args: argparse.Namespace) -> int:
    engine = _load_engine(args)
    _emit(engine.calculate_gap(args.initiative))
    return 0


def cmd_paths(args: argparse.Namespace) -> int:
    engine = _load_engine(args)
    options = {"edge_types": args.edge_types.split(",")} if args.edge_types else {}
    _emit(engine.find_paths(args.source, args.target, args.max_depth, **options))
    return 0


def cmd_gameable(args: argparse.Namespace) -> int:
    engine = _load_engine(args)
    _emit(engine.find_gameable_metrics(args.threshold))
    return 0


def cmd_theater(args: argparse.Namespace) -> int:
    engine = _load_engine(args)
    _emit(engine.detect_theater_metrics())
    return 0


def cmd_series(args: argparse.Namespace) -> int:
    """One metric's readings over time, or every metric grouped by name."""
    engine = _load_engine(args)
    if args.name:
        _emit(engine.metric_series(args.name, args.metric_type, args.start, args.end))
    else:
        _emit(engine.metric_time_series(args.metric_type, args.start, args.end))
    return 0


def cmd_synergy(args: argparse.Namespace) -> int:
    engine = _load_engine(args)
    _emit(engine.calculate_synergy(args.department))
    return 0


def cmd_consequences(args: argparse.Namespace) -> int:
    engine = _load_engine(args)
    _emit(engine.find_unintended_consequences(args.initiative, args.max_depth))
    return 0


# ── Argument parser ───────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="causal-atlas",
        description="Causal graph analytics: intention/reality gaps, metric audits, synergy.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # All analytics for a graph
  python -m causal_atlas --vertices vertices.csv --edges edges.csv summary

  # Gap score for one initiative
  python -m causal_atlas --vertices vertices.csv --edges edges.csv gap initiatives/fun-fridays

  # Metrics at least 30% away from target
  python -m causal_atlas --vertices vertices.csv --edges edges.csv gameable --threshold 0.3
        """,
    )
    parser.add_argument(
        "--vertices", required=True, metavar="PATH", help="Vertex table (CSV)",
    )
    parser.add_argument(
        "--edges", default=None, metavar="PATH", help="Edge table (CSV)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    p_summary = subparsers.add_parser("summary", help="All analytics over the graph")
    p_summary.set_defaults(func=cmd_summary)

    p_gap = subparsers.add_parser("gap", help="Intention/reality gap for one initiative")
    p_gap.add_argument("initiative", metavar="INITIATIVE_ID")
    p_gap.set_defaults(func=cmd_gap)

    p_paths = subparsers.add_parser("paths", help="All simple causal paths between two vertices")
    p_paths.add_argument("source", metavar="FROM_ID")
    p_paths.add_argument("target", metavar="TO_ID")
    p_paths.add_argument(
        "--max-depth", type=int, default=None, metavar="N",
        help="Maximum edges per path (default: 5)",
    )
    p_paths.add_argument(
        "--edge-types", default=None, metavar="T1,T2",
        help="Comma-separated edge types to follow (default: causes)",
    )
    p_paths.set_defaults(func=cmd_paths)

    p_gameable = subparsers.add_parser("gameable", help="Metrics far from their targets")
    p_gameable.add_argument(
        "--threshold", type=float, default=None, metavar="GAP",
        help="Minimum relative gap, exclusive (default: 0.5)",
    )
    p_gameable.set_defaults(func=cmd_gameable)

    p_theater = subparsers.add_parser("theater", help="Metrics not linked to any initiative")
    p_theater.set_defaults(func=cmd_theater)

    p_series = subparsers.add_parser("series", help="Metric readings over time")
    p_series.add_argument("--name", default=None, help="Only this metric (default: all, grouped by name)")
    p_series.add_argument(
        "--type", dest="metric_type", default=None,
        choices=sorted(METRIC_TYPES),
    )
    p_series.add_argument("--start", default=None, metavar="ISO_DATE", help="Inclusive lower bound")
    p_series.add_argument("--end", default=None, metavar="ISO_DATE", help="Inclusive upper bound")
    p_series.set_defaults(func=cmd_series)

    p_synergy = subparsers.add_parser("synergy", help="Synergy score for one department")
    p_synergy.add_argument("department", metavar="DEPARTMENT_ID")
    p_synergy.set_defaults(func=cmd_synergy)

    p_cons = subparsers.add_parser(
        "consequences", help="Unintended outcomes reachable from an initiative",
    )
    p_cons.add_argument("initiative", metavar="INITIATIVE_ID")
    p_cons.add_argument("--max-depth", type=int, default=None, metavar="N")
    p_cons.set_defaults(func=cmd_consequences)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)
    try:
        return args.func(args)
    except CausalAtlasError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
