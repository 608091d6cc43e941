"""Core subsystem: state schema, merge functions, graph construction, config, logging."""

from stategraph.core.reducers import add, append, merge_mappings, replace
from stategraph.core.schema import MISSING, Field, StateSchema, zero_value

__all__ = [
    "MISSING",
    "Field",
    "StateSchema",
    "add",
    "append",
    "merge_mappings",
    "replace",
    "zero_value",
]
