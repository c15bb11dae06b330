"""
causal_atlas/exceptions.py: Error kinds raised by the graph store and scorers.

All errors are raised synchronously at the offending call. A query that
matches nothing is never an error; it returns an empty collection or a
neutral score.
"""


class CausalAtlasError(Exception):
    """Base class for every error raised by causal_atlas."""


class ValidationError(CausalAtlasError, ValueError):
    """An attribute or argument is outside its declared range or vocabulary."""


class DanglingReferenceError(CausalAtlasError):
    """An edge references a vertex identifier that is not in the store."""

    def __init__(self, vertex_id: str, role: str = "endpoint") -> None:
        self.vertex_id = vertex_id
        self.role = role
        super().__init__(f"Edge {role} '{vertex_id}' does not exist in the graph store.")


class NotFoundError(CausalAtlasError, LookupError):
    """A query references a vertex identifier absent from the store."""

    def __init__(self, vertex_id: str, expected_kind: str | None = None) -> None:
        self.vertex_id = vertex_id
        self.expected_kind = expected_kind
        if expected_kind:
            message = f"No {expected_kind} vertex with id '{vertex_id}'."
        else:
            message = f"No vertex with id '{vertex_id}'."
        super().__init__(message)
