"""
stategraph: declarative state-merge graphs for LLM-driven workflows.

Declare a state schema, register async nodes that return partial updates,
wire them with plain or router-bound edges, compile, and invoke.
"""

from stategraph.contracts import (
    END,
    START,
    ConflictingEdgeError,
    DuplicateNodeError,
    GraphValidationError,
    NodeExecutionError,
    RoutingError,
    SchemaError,
    StateGraphError,
    StructuredOutputError,
)
from stategraph.core.dag import CompiledGraph, GraphBuilder
from stategraph.core.schema import Field, StateSchema
from stategraph.engine.executor import GraphExecutor, invoke

__version__ = "0.1.0"

__all__ = [
    "END",
    "START",
    "CompiledGraph",
    "ConflictingEdgeError",
    "DuplicateNodeError",
    "Field",
    "GraphBuilder",
    "GraphExecutor",
    "GraphValidationError",
    "NodeExecutionError",
    "RoutingError",
    "SchemaError",
    "StateGraphError",
    "StateSchema",
    "StructuredOutputError",
    "invoke",
]
