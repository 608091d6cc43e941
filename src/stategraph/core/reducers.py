# src/stategraph/core/reducers.py
"""Ready-made merge functions for state fields.

A merge function receives (previous, incoming) and returns the new field
value. Every function here returns a new object and never mutates either
argument, so StateSchema.merge() stays pure.

Example:
    schema = StateSchema([
        Field("messages", list[str], merge=append),
        Field("attempts", int, merge=add),
    ])
"""

from collections.abc import Mapping
from typing import Any


def append(previous: list[Any] | None, incoming: Any) -> list[Any]:
    """Append incoming to the previous list.

    A list or tuple is concatenated item by item; any other value is
    appended as a single item. A None previous value starts a new list.
    """
    base = list(previous) if previous is not None else []
    if isinstance(incoming, (list, tuple)):
        return [*base, *incoming]
    return [*base, incoming]


def add(previous: Any, incoming: Any) -> Any:
    """Combine with ``+``. Suited to counters and to sequence concatenation."""
    if previous is None:
        return incoming
    return previous + incoming


def merge_mappings(previous: Mapping[str, Any] | None, incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow dict union; keys in incoming win."""
    if not isinstance(incoming, Mapping):
        raise TypeError(f"merge_mappings expects a mapping, got {type(incoming).__name__}")
    return {**(previous or {}), **incoming}


def replace(previous: Any, incoming: Any) -> Any:
    """Last writer wins. Equivalent to declaring no merge function."""
    return incoming
