# src/stategraph/contracts/errors.py
"""Exception taxonomy for schema, graph construction, and execution failures.

Construction-time errors (GraphValidationError and subclasses) are raised by
the builder and by compile(); a graph that raised one never becomes runnable.
Execution-time errors (SchemaError from a node's output, RoutingError,
NodeExecutionError) abort the current run only.
"""

from collections.abc import Iterable


class StateGraphError(Exception):
    """Base class for every error raised by stategraph."""


# =============================================================================
# Schema Errors
# =============================================================================


class SchemaError(StateGraphError, ValueError):
    """Raised when a value or key does not match the declared state schema.

    Covers undeclared fields in initial overrides or partial updates,
    values that fail the field's type check, and malformed field declarations.

    Attributes:
        field_name: Offending field, when the error concerns a single field
        node_name: Node whose partial update was rejected, when raised mid-run
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        node_name: str | None = None,
    ) -> None:
        self.field_name = field_name
        self.node_name = node_name
        if node_name is not None:
            message = f"Node '{node_name}': {message}"
        super().__init__(message)


class StructuredOutputError(SchemaError):
    """Raised when LLM output cannot be parsed into the requested model.

    Attributes:
        model_name: Name of the pydantic model that was requested
        raw_preview: First 500 characters of the raw output
    """

    def __init__(self, message: str, *, model_name: str, raw: str) -> None:
        self.model_name = model_name
        self.raw_preview = raw[:500]
        super().__init__(f"{model_name}: {message}")


# =============================================================================
# Construction-time Errors
# =============================================================================


class GraphValidationError(StateGraphError, ValueError):
    """Raised when graph construction or compilation fails."""


class DuplicateNodeError(GraphValidationError):
    """Raised when a node name is registered twice."""

    def __init__(self, node_name: str) -> None:
        self.node_name = node_name
        super().__init__(f"Node '{node_name}' is already registered")


class ConflictingEdgeError(GraphValidationError):
    """Raised when a source node is given a second outgoing edge.

    A source resolves its successor through exactly one plain edge OR exactly
    one conditional edge. Any second registration is rejected rather than
    resolved by precedence.
    """

    def __init__(self, source: str, existing: str, attempted: str) -> None:
        self.source = source
        self.existing = existing
        self.attempted = attempted
        super().__init__(f"Source '{source}' already has a {existing} edge; cannot add a {attempted} edge")


# =============================================================================
# Execution-time Errors
# =============================================================================


class RoutingError(StateGraphError):
    """Raised when a router selects a destination it did not declare.

    Attributes:
        source: Node whose conditional edge was being resolved
        destination: Value returned by the router (None if the router raised)
        allowed: Destinations declared for the conditional edge
    """

    def __init__(
        self,
        source: str,
        destination: object,
        allowed: Iterable[str],
        *,
        reason: str | None = None,
    ) -> None:
        self.source = source
        self.destination = destination
        self.allowed = tuple(sorted(allowed))
        detail = reason or f"router returned {destination!r}"
        super().__init__(f"Routing from '{source}' failed: {detail}. Declared destinations: {list(self.allowed)}")


class NodeExecutionError(StateGraphError):
    """Raised when a node's update function fails.

    The original exception is available as ``cause`` and as ``__cause__``.
    Nothing the failing node produced is merged into state.
    """

    def __init__(self, node_name: str, cause: BaseException) -> None:
        self.node_name = node_name
        self.cause = cause
        super().__init__(f"Node '{node_name}' failed: {type(cause).__name__}: {cause}")
