"""Shared contracts for cross-boundary data types.

Errors, enums, events, and type aliases used by both the core (schema and
graph construction) and the engine (execution). This package is a LEAF MODULE
with no outbound dependencies to core/engine.

Import patterns:
    # Contracts (lightweight, no heavy dependencies)
    from stategraph.contracts import END, START, SchemaError

    # Settings classes live in core
    from stategraph.core.config import StateGraphSettings
"""

from stategraph.contracts.enums import EdgeKind, RunStatus
from stategraph.contracts.errors import (
    ConflictingEdgeError,
    DuplicateNodeError,
    GraphValidationError,
    NodeExecutionError,
    RoutingError,
    SchemaError,
    StateGraphError,
    StructuredOutputError,
)
from stategraph.contracts.events import (
    NodeCompleted,
    NodeFailed,
    NodeStarted,
    RouteSelected,
    RunEvent,
    RunFinished,
    RunStarted,
)
from stategraph.contracts.types import (
    END,
    RESERVED_NAMES,
    START,
    MergeFunction,
    NodeFunction,
    PartialState,
    RouterFunction,
    State,
)

__all__ = [
    "END",
    "RESERVED_NAMES",
    "START",
    "ConflictingEdgeError",
    "DuplicateNodeError",
    "EdgeKind",
    "GraphValidationError",
    "MergeFunction",
    "NodeCompleted",
    "NodeExecutionError",
    "NodeFailed",
    "NodeFunction",
    "NodeStarted",
    "PartialState",
    "RouteSelected",
    "RouterFunction",
    "RoutingError",
    "RunEvent",
    "RunFinished",
    "RunStarted",
    "RunStatus",
    "SchemaError",
    "State",
    "StateGraphError",
    "StructuredOutputError",
]
