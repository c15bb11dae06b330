"""
causal_atlas/metrics/synergy.py: Department Synergy Score.

Blends how the people in a department are doing with how its initiatives end:

    avg_wellness   = mean(wellness_score)   over members with a score (0 if none)
    avg_engagement = mean(engagement_level) over members with a score (0 if none)
    success_ratio  = completed / (completed + abandoned + 1)
    synergy_score  = avg_wellness × 0.3 + avg_engagement × 0.3 + success_ratio × 40

The +1 keeps the ratio defined for departments with no finished initiatives
and dampens tiny samples (one completed initiative gives 0.5, not 1.0).

Grades:
    synergy_score > 80  → 'SYNERGIZED'
    synergy_score > 60  → 'ALIGNED'
    otherwise           → 'SILOED'

Membership is by department name: employees and initiatives whose
`department` attribute equals the department vertex's `name`.
"""

import logging
from dataclasses import dataclass

import numpy as np

from causal_atlas.config import DEFAULT_CONFIG, CausalAtlasConfig
from causal_atlas.graph.model import Vertex, VertexKind
from causal_atlas.graph.store import GraphView

logger = logging.getLogger(__name__)


@dataclass
class DepartmentSynergy:
    """
    Synergy result for one department.

    Fields:
        department:              The Department vertex.
        employee_count:          Employees whose department matches.
        initiative_count:        Initiatives whose department matches.
        avg_wellness:            Mean wellness over scored employees (0.0 if none).
        avg_engagement:          Mean engagement over scored employees (0.0 if none).
        completed_initiatives:   Count with status 'completed'.
        abandoned_initiatives:   Count with status 'abandoned'.
        initiative_success_rate: completed / (completed + abandoned + 1).
        synergy_score:           Weighted composite.
        synergy_grade:           'SYNERGIZED' | 'ALIGNED' | 'SILOED'.
    """

    department: Vertex
    employee_count: int
    initiative_count: int
    avg_wellness: float
    avg_engagement: float
    completed_initiatives: int
    abandoned_initiatives: int
    initiative_success_rate: float
    synergy_score: float
    synergy_grade: str


def _mean_defined(values: list) -> float:
    defined = [v for v in values if v is not None]
    return float(np.mean(defined)) if defined else 0.0


def synergy_grade(score: float, config: CausalAtlasConfig = DEFAULT_CONFIG) -> str:
    if score > config.synergy_synergized_above:
        return "SYNERGIZED"
    if score > config.synergy_aligned_above:
        return "ALIGNED"
    return "SILOED"


def calculate_synergy(
    view: GraphView,
    department_id: str,
    config: CausalAtlasConfig = DEFAULT_CONFIG,
) -> DepartmentSynergy:
    """
    Compute the synergy score for one department.

    Args:
        view:          GraphStore or snapshot.
        department_id: Department vertex id.
        config:        CausalAtlasConfig. Uses the synergy_* weights and cut-offs.

    Returns:
        DepartmentSynergy. An empty department scores 0.0 and grades SILOED.

    Raises:
        NotFoundError: department_id does not resolve to a Department vertex.
    """
    department = view.require_vertex(department_id, VertexKind.DEPARTMENT)
    name = department.get("name")

    employees = [e for e in view.vertices(VertexKind.EMPLOYEE) if e.get("department") == name]
    initiatives = [
        i for i in view.vertices(VertexKind.INITIATIVE) if i.get("department") == name
    ]

    avg_wellness = _mean_defined([e.get("wellness_score") for e in employees])
    avg_engagement = _mean_defined([e.get("engagement_level") for e in employees])

    completed = sum(1 for i in initiatives if i.get("status") == "completed")
    abandoned = sum(1 for i in initiatives if i.get("status") == "abandoned")
    success_ratio = completed / (completed + abandoned + 1)

    score = (
        avg_wellness * config.synergy_wellness_weight
        + avg_engagement * config.synergy_engagement_weight
        + success_ratio * config.synergy_success_weight
    )

    logger.debug(
        "Synergy for %s (%s): %.2f from %d employees, %d initiatives.",
        department_id, name, score, len(employees), len(initiatives),
    )

    return DepartmentSynergy(
        department=department,
        employee_count=len(employees),
        initiative_count=len(initiatives),
        avg_wellness=avg_wellness,
        avg_engagement=avg_engagement,
        completed_initiatives=completed,
        abandoned_initiatives=abandoned,
        initiative_success_rate=success_ratio,
        synergy_score=score,
        synergy_grade=synergy_grade(score, config),
    )
