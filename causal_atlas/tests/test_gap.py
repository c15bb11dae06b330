"""
causal_atlas/tests/test_gap.py: Tests for the Intention/Reality Gap scorer.

Tests verify:
- The reference scenario scores ≈32.22 with 'moderate' divergence.
- An initiative with no edges scores exactly the no-intent penalty.
- Each extra unintended outcome adds the outcome weight until clamped.
- Scores are clamped to [0, 100].
- Zero and missing targets are excluded from the metric term.
- NaN and infinite metric values never reach the score.
- The outcome summary and the deep unintended-consequence search.
"""

import pytest

from causal_atlas.config import CausalAtlasConfig
from causal_atlas.exceptions import NotFoundError, ValidationError
from causal_atlas.metrics.gap import (
    calculate_gap,
    classify_gap,
    find_unintended_consequences,
    initiative_outcomes,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def add_unintended(store, initiative_id: str, n: int, key_prefix: str = "u") -> None:
    for i in range(n):
        oid = store.add_vertex(
            "Outcome", {"description": f"side effect {i}", "type": "unintended"},
            key=f"{key_prefix}{i}",
        )
        store.add_edge("causes", initiative_id, oid, 0.5)


# ── calculate_gap tests ───────────────────────────────────────────────────────

def test_reference_scenario(org_store):
    """1 unintended outcome, metric 50/90, intended outcome present → ≈32.22."""
    result = calculate_gap(org_store, "initiatives/i1")
    assert result.gap_score == pytest.approx(10 + (40 / 90) * 50)
    assert result.gap_score == pytest.approx(32.22, abs=0.01)
    assert result.severity_class == "moderate"
    assert result.avg_metric_gap == pytest.approx(40 / 90)
    assert [o.id for o in result.actual_outcomes] == ["outcomes/o2"]
    assert [o.id for o in result.intended] == ["outcomes/o1"]
    assert [m.id for m in result.metrics] == ["metrics/m1"]
    assert result.analysis == (
        'Initiative "Mandatory Fun Fridays" shows moderate divergence from stated '
        "intentions. 1 unintended outcomes detected."
    )


def test_no_edges_scores_no_intent_penalty(org_store):
    result = calculate_gap(org_store, "initiatives/i2")
    assert result.gap_score == pytest.approx(25.0)
    assert result.actual_outcomes == []
    assert result.metrics == []
    assert result.avg_metric_gap == 0.0


def test_second_hop_outcomes_count(org_store):
    """An emergent outcome caused by o2 is two hops out and counts."""
    oid = org_store.add_vertex("Outcome", {"description": "Attrition", "type": "emergent"})
    org_store.add_edge("causes", "outcomes/o2", oid, 0.4)
    result = calculate_gap(org_store, "initiatives/i1")
    assert len(result.actual_outcomes) == 2
    assert result.gap_score == pytest.approx(20 + (40 / 90) * 50)


def test_third_hop_outcomes_ignored(org_store):
    mid = org_store.add_vertex("Outcome", {"description": "Mid", "type": "intended"})
    far = org_store.add_vertex("Outcome", {"description": "Far", "type": "unintended"})
    org_store.add_edge("causes", "outcomes/o1", mid, 0.4)
    org_store.add_edge("causes", mid, far, 0.4)
    result = calculate_gap(org_store, "initiatives/i1")
    assert far not in [o.id for o in result.actual_outcomes]


def test_adding_unintended_outcome_raises_score(org_store):
    before = calculate_gap(org_store, "initiatives/i1").gap_score
    add_unintended(org_store, "initiatives/i1", 1)
    after = calculate_gap(org_store, "initiatives/i1").gap_score
    assert after == pytest.approx(before + 10.0)


def test_score_clamped_to_100(org_store):
    add_unintended(org_store, "initiatives/i2", 12)
    result = calculate_gap(org_store, "initiatives/i2")
    assert result.gap_score == 100.0
    assert result.severity_class == "severe"


def test_zero_target_metric_excluded(org_store):
    mid = org_store.add_vertex("Metric", {"name": "Zero", "value": 5, "target": 0})
    org_store.add_edge("measures", "initiatives/i1", mid, 0.5)
    result = calculate_gap(org_store, "initiatives/i1")
    assert [m.id for m in result.metrics] == ["metrics/m1"]
    assert result.avg_metric_gap == pytest.approx(40 / 90)


def test_missing_value_metric_excluded(org_store):
    mid = org_store.add_vertex("Metric", {"name": "Unset", "target": 10})
    org_store.add_edge("measures", "initiatives/i2", mid, 0.5)
    result = calculate_gap(org_store, "initiatives/i2")
    assert result.metrics == []
    assert result.gap_score == pytest.approx(25.0)


@pytest.mark.parametrize("number", [float("nan"), float("inf")])
def test_non_finite_metric_rejected_and_gap_unchanged(org_store, number):
    before = len(org_store)
    with pytest.raises(ValidationError):
        org_store.add_vertex("Metric", {"name": "Broken", "value": number, "target": 10})
    with pytest.raises(ValidationError):
        org_store.update_vertex(
            "metrics/m1", {"name": "Morale Index", "value": 50, "target": number}
        )
    assert len(org_store) == before
    result = calculate_gap(org_store, "initiatives/i1")
    assert 0.0 <= result.gap_score <= 100.0
    assert result.gap_score == pytest.approx(32.22, abs=0.01)


def test_custom_weights(org_store):
    config = CausalAtlasConfig(gap_outcome_weight=20.0, gap_metric_weight=0.0)
    result = calculate_gap(org_store, "initiatives/i1", config)
    assert result.gap_score == pytest.approx(20.0)


def test_unknown_initiative_raises(org_store):
    with pytest.raises(NotFoundError):
        calculate_gap(org_store, "initiatives/ghost")


def test_non_initiative_id_raises(org_store):
    with pytest.raises(NotFoundError):
        calculate_gap(org_store, "metrics/m1")


@pytest.mark.parametrize(
    "score, expected",
    [(0.0, "moderate"), (50.0, "moderate"), (50.01, "significant"),
     (75.0, "significant"), (75.01, "severe"), (100.0, "severe")],
)
def test_classify_gap_boundaries(score, expected):
    assert classify_gap(score) == expected


# ── initiative_outcomes tests ─────────────────────────────────────────────────

def test_initiative_outcomes_summary(org_store):
    summary = initiative_outcomes(org_store, "initiatives/i1")
    assert summary.initiative.id == "initiatives/i1"
    assert [o.id for o in summary.intended] == ["outcomes/o1"]
    assert [o.id for o in summary.actual] == ["outcomes/o2"]
    assert summary.gap == pytest.approx(8.0)


def test_initiative_outcomes_empty(org_store):
    summary = initiative_outcomes(org_store, "initiatives/i2")
    assert summary.intended == []
    assert summary.actual == []
    assert summary.gap == 0.0


# ── find_unintended_consequences tests ────────────────────────────────────────

def test_unintended_consequences_three_hops(org_store):
    chain = ["outcomes/o2"]
    for i in range(3):
        oid = org_store.add_vertex(
            "Outcome", {"description": f"knock-on {i}", "type": "unintended"}, key=f"k{i}"
        )
        org_store.add_edge("causes", chain[-1], oid, 0.5)
        chain.append(oid)
    found = [o.id for o in find_unintended_consequences(org_store, "initiatives/i1")]
    # o2 at hop 1, k0 at 2, k1 at 3; k2 at hop 4 is out of range.
    assert found == ["outcomes/o2", "outcomes/k0", "outcomes/k1"]


def test_unintended_consequences_excludes_emergent(org_store):
    oid = org_store.add_vertex("Outcome", {"description": "New norm", "type": "emergent"})
    org_store.add_edge("causes", "initiatives/i1", oid, 0.5)
    found = [o.id for o in find_unintended_consequences(org_store, "initiatives/i1")]
    assert found == ["outcomes/o2"]
