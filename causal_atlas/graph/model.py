"""
causal_atlas/graph/model.py: Vertex and edge records for the causal graph.

Vertices are a closed set of kinds, each with its own attribute model:

    Kind        Collection    Attribute model
    Initiative  initiatives   InitiativeAttributes
    Outcome     outcomes      OutcomeAttributes
    Employee    employees     EmployeeAttributes
    Metric      metrics       MetricAttributes
    Department  departments   DepartmentAttributes
    Event       events        EventAttributes

Identifiers take the form '<collection>/<key>', so the collection prefix is
the kind's namespace. Attribute models are frozen pydantic models: range
checks (severity 0-10, wellness 0-100, ...) happen on construction, and
callers can never mutate a record held by the store.

Edges are directed and typed. All five edge types together form the
'causal_graph' edge set used by theater detection and neighbourhood queries.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from causal_atlas.exceptions import ValidationError


class VertexKind(str, Enum):
    INITIATIVE = "Initiative"
    OUTCOME = "Outcome"
    EMPLOYEE = "Employee"
    METRIC = "Metric"
    DEPARTMENT = "Department"
    EVENT = "Event"

    @property
    def collection(self) -> str:
        return _COLLECTIONS[self]

    @classmethod
    def parse(cls, value: "str | VertexKind") -> "VertexKind":
        """Accept a kind name ('Initiative', 'initiative') or a collection ('initiatives')."""
        if isinstance(value, VertexKind):
            return value
        text = str(value).strip()
        for kind in cls:
            if text.lower() in (kind.value.lower(), kind.collection):
                return kind
        raise ValidationError(f"Unknown vertex kind '{value}'.")

    @classmethod
    def from_id(cls, vertex_id: str) -> "VertexKind":
        collection, sep, key = vertex_id.partition("/")
        if not sep or not key:
            raise ValidationError(
                f"Vertex id '{vertex_id}' must have the form '<collection>/<key>'."
            )
        return cls.parse(collection)


_COLLECTIONS = {
    VertexKind.INITIATIVE: "initiatives",
    VertexKind.OUTCOME: "outcomes",
    VertexKind.EMPLOYEE: "employees",
    VertexKind.METRIC: "metrics",
    VertexKind.DEPARTMENT: "departments",
    VertexKind.EVENT: "events",
}


class EdgeType(str, Enum):
    CAUSES = "causes"
    MEASURES = "measures"
    PARTICIPATES_IN = "participates_in"
    BELONGS_TO = "belongs_to"
    INFLUENCES = "influences"

    @classmethod
    def parse(cls, value: "str | EdgeType") -> "EdgeType":
        if isinstance(value, EdgeType):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            raise ValidationError(f"Unknown edge type '{value}'.") from None


class LinkType(str, Enum):
    DIRECT = "direct"
    INDIRECT = "indirect"
    SPURIOUS = "spurious"


class Direction(str, Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"
    ANY = "any"

    @classmethod
    def parse(cls, value: "str | Direction") -> "Direction":
        if isinstance(value, Direction):
            return value
        text = str(value).strip().lower()
        if text == "either":
            return cls.ANY
        try:
            return cls(text)
        except ValueError:
            raise ValidationError(f"Unknown traversal direction '{value}'.") from None


# Every edge type participates in the named 'causal_graph'.
CAUSAL_GRAPH_EDGES: frozenset[EdgeType] = frozenset(EdgeType)

# Declared endpoint kinds per edge type. Enforced only when
# CausalAtlasConfig.enforce_edge_schema is set.
EDGE_ENDPOINTS: dict[EdgeType, tuple[frozenset[VertexKind], frozenset[VertexKind]]] = {
    EdgeType.CAUSES: (
        frozenset({VertexKind.INITIATIVE, VertexKind.EVENT, VertexKind.METRIC}),
        frozenset({VertexKind.OUTCOME, VertexKind.EVENT, VertexKind.METRIC}),
    ),
    EdgeType.MEASURES: (
        frozenset({VertexKind.METRIC}),
        frozenset({VertexKind.EMPLOYEE, VertexKind.DEPARTMENT, VertexKind.OUTCOME}),
    ),
    EdgeType.PARTICIPATES_IN: (
        frozenset({VertexKind.EMPLOYEE}),
        frozenset({VertexKind.INITIATIVE, VertexKind.EVENT}),
    ),
    EdgeType.BELONGS_TO: (
        frozenset({VertexKind.EMPLOYEE}),
        frozenset({VertexKind.DEPARTMENT}),
    ),
    EdgeType.INFLUENCES: (
        frozenset({VertexKind.INITIATIVE, VertexKind.METRIC}),
        frozenset({VertexKind.EMPLOYEE, VertexKind.DEPARTMENT}),
    ),
}


# ── Attribute models ──────────────────────────────────────────────────────────

class _Attributes(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", use_enum_values=True, allow_inf_nan=False)


def _unique(values: tuple[str, ...]) -> tuple[str, ...]:
    # Order-preserving de-duplication: participant lists are sets.
    return tuple(dict.fromkeys(values))


class InitiativeAttributes(_Attributes):
    name: str
    description: str = ""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    department: str = ""
    intended_outcome: str = ""
    status: Literal["planned", "active", "completed", "abandoned"] = "planned"
    participants: tuple[str, ...] = ()
    budget: Optional[float] = None

    @field_validator("participants")
    @classmethod
    def dedupe_participants(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _unique(value)


class OutcomeAttributes(_Attributes):
    description: str
    timestamp: Optional[datetime] = None
    type: Literal["intended", "unintended", "emergent"]
    severity: float = Field(default=0.0, ge=0, le=10)
    affected_employees: tuple[str, ...] = ()
    measured_by: tuple[str, ...] = ()

    @field_validator("affected_employees")
    @classmethod
    def dedupe_affected(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _unique(value)


class EmployeeAttributes(_Attributes):
    employee_id: str
    name: str = ""
    department: str = ""
    role: str = ""
    wellness_score: Optional[float] = Field(default=None, ge=0, le=100)
    engagement_level: Optional[float] = Field(default=None, ge=0, le=100)


MetricType = Literal["wellness", "productivity", "engagement", "synergy", "custom"]
METRIC_TYPES = frozenset(get_args(MetricType))


class MetricAttributes(_Attributes):
    name: str
    description: str = ""
    type: MetricType = "custom"
    value: Optional[float] = None
    target: Optional[float] = None
    timestamp: Optional[datetime] = None
    unit: Optional[str] = None


class DepartmentAttributes(_Attributes):
    name: str
    description: str = ""
    employee_count: int = Field(default=0, ge=0)
    synergy_index: Optional[float] = Field(default=None, ge=0, le=100)


class EventAttributes(_Attributes):
    name: str
    description: str = ""
    timestamp: Optional[datetime] = None


ATTRIBUTE_MODELS: dict[VertexKind, type[_Attributes]] = {
    VertexKind.INITIATIVE: InitiativeAttributes,
    VertexKind.OUTCOME: OutcomeAttributes,
    VertexKind.EMPLOYEE: EmployeeAttributes,
    VertexKind.METRIC: MetricAttributes,
    VertexKind.DEPARTMENT: DepartmentAttributes,
    VertexKind.EVENT: EventAttributes,
}


def build_attributes(kind: VertexKind, attributes: "dict[str, Any] | _Attributes") -> _Attributes:
    """
    Validate a raw attribute mapping against the model for `kind`.

    Raises:
        ValidationError: Unknown field, missing required field, wrong
                         vocabulary or out-of-range value.
    """
    model = ATTRIBUTE_MODELS[kind]
    if isinstance(attributes, model):
        return attributes
    if isinstance(attributes, _Attributes):
        raise ValidationError(
            f"{type(attributes).__name__} cannot be used as attributes of a {kind.value}."
        )
    try:
        return model.model_validate(dict(attributes))
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {kind.value} attributes: {exc}") from exc


# ── Records ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Vertex:
    """
    Immutable vertex record.

    Fields:
        id:         '<collection>/<key>', stable once assigned.
        kind:       VertexKind tag.
        attributes: Kind-specific frozen attribute model.
    """

    id: str
    kind: VertexKind
    attributes: _Attributes

    @property
    def key(self) -> str:
        return self.id.partition("/")[2]

    def get(self, name: str, default: Any = None) -> Any:
        return getattr(self.attributes, name, default)

    @property
    def label(self) -> str:
        return self.get("name") or self.get("description") or self.key

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            **self.attributes.model_dump(mode="json"),
        }


@dataclass(frozen=True)
class Edge:
    """
    Immutable directed edge record.

    Fields:
        id:            'edges/<n>', assigned by the store.
        type:          EdgeType.
        source:        Identifier of the tail vertex.
        target:        Identifier of the head vertex.
        strength:      Confidence in the relationship, within [0, 1].
        link_type:     direct | indirect | spurious.
        evidence:      Free-text evidence references.
        discovered_at: UTC timestamp of creation.
        seq:           Store-wide insertion sequence number (tie-break order).
    """

    id: str
    type: EdgeType
    source: str
    target: str
    strength: float
    link_type: LinkType = LinkType.DIRECT
    evidence: tuple[str, ...] = ()
    discovered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    seq: int = 0

    def other(self, vertex_id: str) -> str:
        return self.target if vertex_id == self.source else self.source

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "from": self.source,
            "to": self.target,
            "strength": self.strength,
            "link_type": self.link_type.value,
            "evidence": list(self.evidence),
            "discovered_at": self.discovered_at.isoformat(),
        }
